# models.py
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_PRESENTATION_TITLE = "AI Generated Presentation"


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _coerce_bullets(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [line for line in value.split("\n") if line.strip()]
    if isinstance(value, (list, tuple)):
        return [_coerce_text(item) for item in value if item is not None]
    return [_coerce_text(value)]


# --- Slide schema ---
class Slide(BaseModel):
    title: str = ""
    content: List[str] = Field(default_factory=list)
    image: str = ""

    @field_validator("title", "image", mode="before")
    @classmethod
    def _text(cls, value):
        return _coerce_text(value)

    @field_validator("content", mode="before")
    @classmethod
    def _bullets(cls, value):
        return _coerce_bullets(value)


class PresentationData(BaseModel):
    slides: List[Slide] = Field(default_factory=list)


# --- Model-facing shape (image keywords instead of URLs) ---
class ModelSlide(BaseModel):
    title: str = ""
    content: List[str] = Field(default_factory=list)
    image_keyword: str = ""

    @field_validator("title", mode="before")
    @classmethod
    def _text(cls, value):
        return _coerce_text(value)

    @field_validator("image_keyword", mode="before")
    @classmethod
    def _keyword(cls, value):
        return _coerce_text(value).strip()

    @field_validator("content", mode="before")
    @classmethod
    def _bullets(cls, value):
        return _coerce_bullets(value)


class ModelPresentation(BaseModel):
    slides: List[ModelSlide]


# --- Chat session ---
class ChatMessage(BaseModel):
    role: Literal["user", "model"]
    content: str


class SimulatedStep(BaseModel):
    title: str
    subtitle: str


# --- Request payloads ---
class GenerateRequest(BaseModel):
    prompt: Optional[str] = None
    currentSlides: Optional[PresentationData] = None


class ExportRequest(BaseModel):
    slides: List[Slide] = Field(default_factory=list)
    presentationTitle: Optional[str] = None
