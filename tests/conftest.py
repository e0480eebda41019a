import io

import pytest
from PIL import Image

from config import Settings


@pytest.fixture
def settings():
    return Settings(
        google_api_key="test-key",
        unsplash_access_key="unsplash-key",
        image_timeout_seconds=5.0,
        max_concurrent_fetches=4,
    )


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (200, 100), (10, 120, 200)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def webp_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (120, 120), (200, 40, 40)).save(buffer, format="WEBP")
    return buffer.getvalue()


@pytest.fixture
def mpo_bytes():
    # Two-frame multi-picture file, as written by many cameras.
    buffer = io.BytesIO()
    first = Image.new("RGB", (160, 80), (20, 20, 160))
    first.save(buffer, format="MPO", save_all=True, append_images=[Image.new("RGB", (160, 80), (160, 20, 20))])
    return buffer.getvalue()
