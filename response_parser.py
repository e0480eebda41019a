import json
import logging
import re
from typing import Any, Iterator

from pydantic import ValidationError

from errors import MalformedResponse
from models import ModelPresentation

logger = logging.getLogger(__name__)

FENCED_JSON_PATTERN = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)


def _candidate_json_strings(raw_text: str) -> Iterator[str]:
    """Yields the fenced ```json block first, then the first '{' .. last '}' span."""
    fenced = FENCED_JSON_PATTERN.search(raw_text)
    if fenced:
        yield fenced.group(1)

    first_brace = raw_text.find("{")
    last_brace = raw_text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        yield raw_text[first_brace : last_brace + 1]


def extract_json_text(raw_text: str) -> str:
    """Returns the first candidate span that parses as JSON."""
    last_error = None
    for candidate in _candidate_json_strings(raw_text or ""):
        try:
            json.loads(candidate, strict=False)
            return candidate
        except json.JSONDecodeError as e:
            last_error = e
            logger.debug(f"Discarding unparseable JSON candidate: {e}")

    if last_error is None:
        raise MalformedResponse("Could not find a JSON object in the model response.", raw_text=raw_text)
    raise MalformedResponse(f"Failed to parse AI response as JSON. {last_error}", raw_text=raw_text)


def _parse(raw_text: str) -> Any:
    return json.loads(extract_json_text(raw_text), strict=False)


def extract_slide_schema(raw_text: str) -> ModelPresentation:
    """
    Parses raw model output into the model-facing slide schema.

    Raises MalformedResponse when no JSON object can be located, when the
    object has no "slides" array, or when a slide entry is not an object.
    """
    data = _parse(raw_text)

    if not isinstance(data, dict) or not isinstance(data.get("slides"), list):
        raise MalformedResponse("AI response JSON has no 'slides' array.", raw_text=raw_text)

    try:
        presentation = ModelPresentation.model_validate({"slides": data["slides"]})
    except ValidationError as e:
        raise MalformedResponse(f"AI response slides failed validation: {e}", raw_text=raw_text) from e

    logger.info(f"Parsed {len(presentation.slides)} slides from model response")
    return presentation
