import asyncio
import io
import logging
import re
import unicodedata
from typing import List, NamedTuple, Optional, Sequence
from urllib.parse import quote

import aiohttp
from PIL import Image, UnidentifiedImageError
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.text import PP_ALIGN, MSO_ANCHOR
from pptx.oxml.ns import qn
from pptx.oxml.xmlchemy import OxmlElement
from pptx.util import Inches, Pt

from config import Settings
from errors import EmptyInput, UpstreamFetchFailure
from models import DEFAULT_PRESENTATION_TITLE, Slide

logger = logging.getLogger(__name__)

PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

# --- 1. Design Constants ---
# Colors
TEXT_COLOR = RGBColor(0, 0, 0)
BODY_COLOR = RGBColor(0x36, 0x36, 0x36)
WHITE = RGBColor(255, 255, 255)
RED = RGBColor(255, 0, 0)
# Slide Dimensions (16:9)
SLIDE_WIDTH = Inches(13.333)
SLIDE_HEIGHT = Inches(7.5)
# Margins
MARGIN_LEFT = Inches(0.5)
MARGIN_RIGHT = Inches(0.5)
# Regions
TITLE_TOP = Inches(0.25)
TITLE_HEIGHT = Inches(1)
BODY_TOP = Inches(1.5)
BODY_HEIGHT = Inches(5)
BODY_WIDTH = int(SLIDE_WIDTH / 2) - MARGIN_LEFT
IMAGE_LEFT = int(SLIDE_WIDTH / 2) + Inches(0.3)
IMAGE_TOP = BODY_TOP
IMAGE_WIDTH = SLIDE_WIDTH - IMAGE_LEFT - MARGIN_RIGHT
IMAGE_HEIGHT = BODY_HEIGHT
# Font Sizes
TITLE_FONT_SIZE = Pt(32)
BODY_FONT_SIZE = Pt(18)
PLACEHOLDER_FONT_SIZE = Pt(14)
BULLET_CHAR = "•"
IMAGE_FAILED_TEXT = "Image Failed to Load (Server Error)"
BOLD_PATTERN = re.compile(r"(\*\*.*?\*\*)")

# Some image hosts reject non-browser clients.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": "image/webp,image/apng,image/*,*/*;q=0.8",
    "Cache-Control": "no-cache",
}
DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"
# Formats python-pptx can embed as-is. MPO becomes JPEG, anything else PNG.
EMBEDDABLE_FORMATS = {"JPEG", "PNG", "GIF", "BMP", "TIFF"}


class SlideImage(NamedTuple):
    content_type: str
    data: bytes
    width: int
    height: int


# --- 2. Image Fetching ---

def prepare_image(data: bytes, content_type: str) -> SlideImage:
    """Probes image bytes and re-encodes formats PowerPoint cannot embed."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            width, height = image.size
            if image.format in EMBEDDABLE_FORMATS:
                return SlideImage(content_type, data, width, height)

            buffer = io.BytesIO()
            if image.format == "MPO":
                # Multi-picture camera JPEG; keep the primary frame.
                image.convert("RGB").save(buffer, format="JPEG", quality=90)
                return SlideImage("image/jpeg", buffer.getvalue(), width, height)

            converted = image if image.mode in ("RGB", "RGBA") else image.convert("RGBA")
            converted.save(buffer, format="PNG")
            return SlideImage("image/png", buffer.getvalue(), width, height)
    except (OSError, UnidentifiedImageError) as e:
        raise UpstreamFetchFailure(f"Downloaded content is not a usable image ({content_type}): {e}") from e


async def fetch_image(url: str, session: aiohttp.ClientSession, settings: Settings) -> SlideImage:
    timeout = aiohttp.ClientTimeout(total=settings.image_timeout_seconds)
    try:
        async with session.get(url, headers=BROWSER_HEADERS, timeout=timeout, allow_redirects=True) as response:
            if response.status != 200:
                raise UpstreamFetchFailure(f"Failed to download image from: {url}. Status: {response.status}")
            data = await response.read()
            content_type = (response.headers.get("Content-Type") or "").split(";")[0].strip()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise UpstreamFetchFailure(f"Error downloading image from {url}: {e}") from e

    if not content_type.startswith("image/"):
        content_type = DEFAULT_IMAGE_CONTENT_TYPE
    logger.debug(f"Fetched {len(data)} bytes ({content_type}) from {url}")
    return prepare_image(data, content_type)


async def fetch_slide_image(url: str, session: aiohttp.ClientSession, settings: Settings) -> Optional[SlideImage]:
    """Returns the slide's image, or None when there is none or it failed to load."""
    if not url:
        return None
    try:
        return await fetch_image(url, session, settings)
    except UpstreamFetchFailure as e:
        logger.error(str(e))
        return None


async def fetch_slide_images(
    slides: Sequence[Slide],
    settings: Settings,
    session: Optional[aiohttp.ClientSession] = None,
) -> List[Optional[SlideImage]]:
    """Downloads every slide's image concurrently; results keep slide order."""
    semaphore = asyncio.Semaphore(settings.max_concurrent_fetches)

    async def fetch_with_semaphore(slide: Slide, client: aiohttp.ClientSession) -> Optional[SlideImage]:
        async with semaphore:
            return await fetch_slide_image(slide.image, client, settings)

    if session is not None:
        return list(await asyncio.gather(*[fetch_with_semaphore(s, session) for s in slides]))

    async with aiohttp.ClientSession() as own_session:
        return list(await asyncio.gather(*[fetch_with_semaphore(s, own_session) for s in slides]))


# --- 3. Helper Functions ---

def set_bullet(paragraph, char=BULLET_CHAR):
    """Gives a text-box paragraph a real bullet (text boxes have none by default)."""
    pPr = paragraph._p.get_or_add_pPr()
    for child in list(pPr):
        if child.tag in {qn("a:buChar"), qn("a:buAutoNum"), qn("a:buNone")}:
            pPr.remove(child)
    pPr.set("marL", str(Inches(0.3)))
    pPr.set("indent", str(-Inches(0.3)))
    bu = OxmlElement("a:buChar")
    bu.set("char", char)
    pPr.insert_element_before(bu, "a:buBlip", "a:tabLst", "a:defRPr", "a:extLst")


def apply_formatted_text_to_paragraph(p, text):
    """Adds text to a paragraph as runs, rendering **bold** spans in bold."""
    for part in BOLD_PATTERN.split(text):
        if not part:
            continue
        run = p.add_run()
        if part.startswith("**") and part.endswith("**") and len(part) > 4:
            run.text = part[2:-2]
            run.font.bold = True
        else:
            run.text = part


def contain_box(image_width, image_height, left, top, width, height):
    """Scales an image to fit inside the box, keeping aspect ratio, centred."""
    if image_width <= 0 or image_height <= 0:
        return left, top, width, height
    scale = min(width / image_width, height / image_height)
    fitted_width = int(image_width * scale)
    fitted_height = int(image_height * scale)
    return (
        left + (width - fitted_width) // 2,
        top + (height - fitted_height) // 2,
        fitted_width,
        fitted_height,
    )


def safe_filename(title):
    """Header-safe file stem: whitespace becomes '_', quotes and separators are dropped."""
    stem = re.sub(r'[\\/"\x00-\x1f\x7f]', "", title or "").strip()
    stem = re.sub(r"\s+", "_", stem)
    return stem or "presentation"


def content_disposition(title):
    """
    Attachment header for the exported deck.

    Headers are latin-1 only, so non-ASCII titles get an ASCII `filename`
    plus the UTF-8 name in `filename*`.
    """
    file_name = f"{safe_filename(title)}.pptx"
    ascii_title = unicodedata.normalize("NFKD", title or "").encode("ascii", "ignore").decode("ascii")
    ascii_name = f"{safe_filename(ascii_title)}.pptx"
    if ascii_name == file_name:
        return f'attachment; filename="{file_name}"'
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(file_name, safe='')}"


# --- 4. Slide Drawing Functions ---

def draw_title(slide, title):
    title_shape = slide.shapes.add_textbox(
        MARGIN_LEFT, TITLE_TOP, SLIDE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT, TITLE_HEIGHT
    )
    title_tf = title_shape.text_frame
    title_tf.word_wrap = True
    p = title_tf.paragraphs[0]
    p.text = title
    p.font.size = TITLE_FONT_SIZE
    p.font.bold = True
    p.font.color.rgb = TEXT_COLOR


def draw_bullets(slide, content):
    """Writes all bullets into one text box on the left half, one paragraph per entry."""
    body_shape = slide.shapes.add_textbox(MARGIN_LEFT, BODY_TOP, BODY_WIDTH, BODY_HEIGHT)
    body_tf = body_shape.text_frame
    body_tf.word_wrap = True

    for i, item_text in enumerate(content):
        p = body_tf.paragraphs[0] if i == 0 else body_tf.add_paragraph()
        apply_formatted_text_to_paragraph(p, item_text)
        p.font.size = BODY_FONT_SIZE
        p.font.color.rgb = BODY_COLOR
        set_bullet(p)


def draw_image(slide, image):
    logger.debug(f"Embedding {image.content_type} image ({image.width}x{image.height})")
    left, top, width, height = contain_box(
        image.width, image.height, IMAGE_LEFT, IMAGE_TOP, IMAGE_WIDTH, IMAGE_HEIGHT
    )
    slide.shapes.add_picture(io.BytesIO(image.data), left, top, width, height)


def draw_image_placeholder(slide):
    box_height = Inches(1)
    shape = slide.shapes.add_textbox(
        IMAGE_LEFT, IMAGE_TOP + (IMAGE_HEIGHT - box_height) // 2, IMAGE_WIDTH, box_height
    )
    tf = shape.text_frame
    tf.word_wrap = True
    tf.vertical_anchor = MSO_ANCHOR.MIDDLE
    p = tf.paragraphs[0]
    p.alignment = PP_ALIGN.CENTER
    p.text = IMAGE_FAILED_TEXT
    p.font.size = PLACEHOLDER_FONT_SIZE
    p.font.color.rgb = RED


def draw_slide(slide, data, image):
    background = slide.background.fill
    background.solid()
    background.fore_color.rgb = WHITE

    draw_title(slide, data.title)
    draw_bullets(slide, data.content)

    if data.image:
        if image is None:
            draw_image_placeholder(slide)
            return
        try:
            draw_image(slide, image)
        except Exception as e:
            logger.error(f"Could not embed image {data.image}: {e}")
            draw_image_placeholder(slide)


# --- 5. Main Execution Logic ---

def create_presentation(slides, images, title=DEFAULT_PRESENTATION_TITLE):
    """Creates a presentation with one slide per entry, in input order."""
    prs = Presentation()
    prs.slide_width = SLIDE_WIDTH
    prs.slide_height = SLIDE_HEIGHT
    prs.core_properties.title = title

    blank_layout = prs.slide_layouts[6]
    for i, (slide_data, image) in enumerate(zip(slides, images)):
        logger.debug(f"Processing slide {i + 1}: '{slide_data.title}'")
        slide = prs.slides.add_slide(blank_layout)
        slide.name = f"Slide_{i + 1}"
        draw_slide(slide, slide_data, image)

    return prs


async def build_presentation(
    slides: Sequence[Slide],
    title: str,
    settings: Settings,
    session: Optional[aiohttp.ClientSession] = None,
) -> bytes:
    """Fetches all slide images, assembles the deck and returns the .pptx bytes."""
    if not slides:
        raise EmptyInput("At least one slide is required.")

    images = await fetch_slide_images(slides, settings, session)
    failed = sum(1 for slide, image in zip(slides, images) if slide.image and image is None)
    logger.info(f"Assembling '{title}' with {len(slides)} slides ({failed} image failures)")

    prs = create_presentation(slides, images, title)
    buffer = io.BytesIO()
    prs.save(buffer)
    return buffer.getvalue()
