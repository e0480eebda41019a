import json
import logging
from typing import Optional

import aiohttp
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

import image_resolver
import llm_client
import ppt_generator
from config import Settings, get_settings
from errors import AssemblyFailure, DeckError, EmptyInput, InvalidInput, MalformedResponse, UpstreamModelError
from models import (
    DEFAULT_PRESENTATION_TITLE,
    ExportRequest,
    GenerateRequest,
    PresentationData,
    Slide,
)
from prompt_builder import build_prompt
from response_parser import extract_slide_schema

# Logging configuration
logging.basicConfig(level=get_settings().log_level)

# --- FastAPI App ---
app = FastAPI(
    title="Slide Deck Chat Service",
    description="Turns chat prompts into slide data and exports it as PowerPoint files.",
    version="1.0.0",
)


@app.exception_handler(DeckError)
async def deck_error_handler(request: Request, exc: DeckError):
    if exc.status_code >= 500:
        logging.error(f"{request.url.path}: {exc.error}: {exc.details}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _read_json_body(request: Request, error: str) -> dict:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logging.error(f"Failed to parse request JSON: {e}")
        raise InvalidInput(error=error) from e
    if not isinstance(data, dict):
        raise InvalidInput(error=error)
    return data


# --- Helper Function to call LLM and resolve slide images ---
async def generate_presentation(
    prompt: str,
    current_slides: Optional[PresentationData],
    settings: Settings,
    session: Optional[aiohttp.ClientSession] = None,
) -> PresentationData:
    """Runs prompt -> model -> parse -> image resolution and returns the new deck."""
    full_prompt = build_prompt(prompt, current_slides)
    raw_text = await llm_client.generate_slide_text(full_prompt, settings)

    try:
        model_slides = extract_slide_schema(raw_text)
    except MalformedResponse as e:
        logging.error(f"Failed to parse JSON from model response: {e}")
        logging.error(f"Original model response was: {raw_text}")
        raise

    keywords = [slide.image_keyword for slide in model_slides.slides]
    image_urls = await image_resolver.resolve_images(keywords, settings, session)

    return PresentationData(
        slides=[
            Slide(title=slide.title, content=slide.content, image=image_url)
            for slide, image_url in zip(model_slides.slides, image_urls)
        ]
    )


# --- Main Endpoints --- #
@app.post("/api/generate", summary="Generate or edit slides from a chat prompt")
async def generate_endpoint(request: Request):
    """Receives a prompt and the current slides, returns the replacement slide set."""
    data = await _read_json_body(request, "Prompt is required")
    try:
        payload = GenerateRequest.model_validate(data)
    except ValidationError as e:
        if any(err["loc"][:1] == ("prompt",) for err in e.errors()):
            raise InvalidInput(str(e), error="Prompt is required") from e
        raise InvalidInput(str(e), error="Invalid slide data") from e

    prompt = (payload.prompt or "").strip()
    if not prompt:
        raise InvalidInput(error="Prompt is required")

    settings = get_settings()
    llm_client.require_credentials(settings)

    try:
        presentation = await generate_presentation(prompt, payload.currentSlides, settings)
    except DeckError:
        raise
    except Exception as e:
        logging.error(f"Error generating slides: {e}", exc_info=True)
        raise UpstreamModelError(str(e)) from e

    logging.info(f"Generated {len(presentation.slides)} slides")
    return presentation.model_dump()


@app.post("/api/download-pptx", summary="Export slides as a PowerPoint file")
async def download_pptx_endpoint(request: Request):
    """Builds the .pptx for the given slides and returns it as an attachment."""
    data = await _read_json_body(request, EmptyInput.error)
    try:
        payload = ExportRequest.model_validate(data)
    except ValidationError as e:
        raise EmptyInput(str(e)) from e

    if not payload.slides:
        raise EmptyInput()

    title = (payload.presentationTitle or "").strip() or DEFAULT_PRESENTATION_TITLE
    try:
        content = await ppt_generator.build_presentation(payload.slides, title, get_settings())
    except DeckError:
        raise
    except Exception as e:
        logging.error(f"Server-side PPTX generation error: {e}", exc_info=True)
        raise AssemblyFailure(str(e)) from e

    disposition = ppt_generator.content_disposition(title)
    logging.info(f"Returning '{title}' ({len(content)} bytes)")
    return Response(
        content=content,
        media_type=ppt_generator.PPTX_MEDIA_TYPE,
        headers={"Content-Disposition": disposition},
    )


@app.get("/")
async def root():
    return {"message": "Slide Deck Chat API is running."}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
