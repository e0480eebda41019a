import json
import re
from typing import Optional
from urllib.parse import unquote

from models import PresentationData, Slide

# Fallback when neither the image URL nor the title yields a keyword.
DEFAULT_IMAGE_KEYWORD = "presentation"

# Legacy public search URLs end in "/?<keyword>".
LEGACY_KEYWORD_PATTERN = re.compile(r"/\?([^/]+)$")

JSON_STRUCTURE = """
{
  "slides": [
    {
      "title": "Slide 1 Title",
      "content": [
        "Bullet point 1",
        "Bullet point 2"
      ],
      "image_keyword": "<keyword>"
    },
    {
      "title": "Slide 2 Title",
      "content": [
        "Content for slide 2..."
      ],
      "image_keyword": "<another-keyword>"
    }
  ]
}
"""


def keyword_from_image_url(image_url: str) -> str:
    """Recovers the keyword embedded in a legacy search-query URL, or ''."""
    match = LEGACY_KEYWORD_PATTERN.search(image_url or "")
    if not match:
        return ""
    return unquote(match.group(1)).strip()


def keyword_from_title(title: str) -> str:
    words = []
    for word in (title or "").split()[:2]:
        cleaned = re.sub(r"[^\w-]", "", word.lower())
        if cleaned:
            words.append(cleaned)
    return "-".join(words)


def derive_image_keyword(slide: Slide) -> str:
    """
    Turns a slide's resolved image back into the keyword the model works with.

    Resolved API URLs carry no keyword, so the title stands in for it. An
    empty image stays an empty keyword.
    """
    if not slide.image:
        return ""
    return (
        keyword_from_image_url(slide.image)
        or keyword_from_title(slide.title)
        or DEFAULT_IMAGE_KEYWORD
    )


def prepare_slides_for_model(presentation: Optional[PresentationData]) -> Optional[dict]:
    if presentation is None or not presentation.slides:
        return None
    return {
        "slides": [
            {
                "title": slide.title,
                "content": list(slide.content),
                "image_keyword": derive_image_keyword(slide),
            }
            for slide in presentation.slides
        ]
    }


def build_prompt(user_instruction: str, current_presentation: Optional[PresentationData]) -> str:
    slides_for_prompt = prepare_slides_for_model(current_presentation)

    prompt = f"""You are an assistant that helps create PowerPoint presentations.
Your **ONLY** output must be a single, valid JSON object. Do not include any text before or after the JSON, and do not use markdown (e.g., ```json).
The JSON object must follow this exact structure:
{JSON_STRUCTURE}
**IMAGE RULE:** You **must** populate the "image_keyword" field for every slide.
- The value **must** be a single, relevant, URL-safe keyword for the slide's content (e.g., "technology", "nature", "business").
- If no image is relevant, you **must** set the image_keyword field to an empty string: `"image_keyword": ""`

**User's Request:** {user_instruction}
"""

    if slides_for_prompt:
        slide_data = json.dumps(slides_for_prompt, indent=2, ensure_ascii=False)
        prompt += f"""
**Current Slide Data (to be edited):**
{slide_data}

Based on the user's request, modify the "Current Slide Data". Do not just generate new slides unless the user asks to "add" new ones.
"""
    else:
        prompt += """
Generate a new presentation based on the user's request.
"""

    return prompt
