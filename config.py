import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MODEL_NAME = "gemini-2.5-pro"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    google_api_key: str = ""
    use_vertexai: bool = False
    google_cloud_project: Optional[str] = None
    google_cloud_location: Optional[str] = None
    model_name: str = DEFAULT_MODEL_NAME
    unsplash_access_key: str = ""
    image_timeout_seconds: float = 15.0
    llm_timeout_seconds: float = 120.0
    max_concurrent_fetches: int = 8
    log_level: str = "INFO"

    @property
    def has_model_credentials(self) -> bool:
        if self.google_api_key:
            return True
        return self.use_vertexai and bool(self.google_cloud_project)


def get_settings() -> Settings:
    """Reads the environment each call so credentials are checked per request."""
    return Settings(
        google_api_key=os.getenv("GOOGLE_API_KEY", ""),
        use_vertexai=_env_flag("GOOGLE_GENAI_USE_VERTEXAI"),
        google_cloud_project=os.getenv("GOOGLE_CLOUD_PROJECT"),
        google_cloud_location=os.getenv("GOOGLE_CLOUD_LOCATION"),
        model_name=os.getenv("GEMINI_MODEL", DEFAULT_MODEL_NAME),
        unsplash_access_key=os.getenv("UNSPLASH_ACCESS_KEY", ""),
        image_timeout_seconds=_env_float("IMAGE_TIMEOUT_SECONDS", 15.0),
        llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 120.0),
        max_concurrent_fetches=_env_int("MAX_CONCURRENT_FETCHES", 8),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
