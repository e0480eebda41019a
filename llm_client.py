import logging

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from config import Settings
from errors import ConfigurationError, MalformedResponse, UpstreamModelError

logger = logging.getLogger(__name__)

SAFETY_SETTINGS = [
    types.SafetySetting(
        category=types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    ),
]


def require_credentials(settings: Settings) -> None:
    if not settings.has_model_credentials:
        raise ConfigurationError(
            "Set GOOGLE_API_KEY, or GOOGLE_GENAI_USE_VERTEXAI with GOOGLE_CLOUD_PROJECT.",
            error="Gemini API key not found",
        )


def create_client(settings: Settings) -> genai.Client:
    """Creates a Gemini client from an API key, or Vertex AI with default credentials."""
    require_credentials(settings)
    http_options = types.HttpOptions(timeout=int(settings.llm_timeout_seconds * 1000))

    if settings.google_api_key:
        return genai.Client(api_key=settings.google_api_key, http_options=http_options)

    logger.info(
        f"Initializing Vertex AI for project '{settings.google_cloud_project}' "
        f"in '{settings.google_cloud_location}'..."
    )
    return genai.Client(
        vertexai=True,
        project=settings.google_cloud_project,
        location=settings.google_cloud_location,
        http_options=http_options,
    )


async def generate_slide_text(prompt: str, settings: Settings) -> str:
    """Sends the prompt to the model and returns its raw text answer."""
    client = create_client(settings)
    config = types.GenerateContentConfig(
        temperature=0.9,
        top_k=1,
        top_p=1,
        max_output_tokens=8192,
        response_mime_type="application/json",
        safety_settings=SAFETY_SETTINGS,
    )

    logger.info(f"Calling {settings.model_name} to generate slide data...")
    try:
        response = await client.aio.models.generate_content(
            model=settings.model_name,
            contents=prompt,
            config=config,
        )
    except genai_errors.APIError as e:
        logger.error(f"LLM call failed: {e}", exc_info=True)
        raise UpstreamModelError(str(e)) from e

    raw_text = response.text or ""
    logger.debug(f"Received raw response from LLM: {raw_text}")
    if not raw_text.strip():
        raise MalformedResponse("The model returned an empty response.", raw_text=raw_text)
    return raw_text
