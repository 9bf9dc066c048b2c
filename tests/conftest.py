import io
import copy
import base64

import pytest
from PIL import Image

from client.api_client import Endpoint


SAMPLE_RESULT = {
    "detectedTextSummary": "Corridor outside room 12, polished floor, one ceiling light off.",
    "possibleCauses": ["Glare on polished floor", "Dim lighting at the corner"],
    "preventionStrategies": [
        {"measure": "Replace the broken light", "rationale": "Improves visibility at night", "category": "Environment"},
        {"measure": "Non-slip mat at the corner", "rationale": "Reduces slipping", "category": "Other"},
    ],
    "handoverNote": "Safety round at corridor outside room 12: dim corner lighting and glare noted.",
}


def make_image(width, height, color=(200, 200, 200)):
    return Image.new("RGB", (width, height), color)


def image_bytes(img, fmt="JPEG"):
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def decode_b64_image(b64):
    return Image.open(io.BytesIO(base64.b64decode(b64, validate=True)))


@pytest.fixture
def sample_result():
    return copy.deepcopy(SAMPLE_RESULT)


@pytest.fixture
def jpeg_b64():
    return base64.b64encode(image_bytes(make_image(64, 48))).decode("utf-8")


@pytest.fixture
def local_endpoint():
    return Endpoint(url="http://localhost:8000/analyze", is_local=True)


@pytest.fixture
def remote_endpoint():
    return Endpoint(url="https://fallguard.example.org/api/analyze", is_local=False)
