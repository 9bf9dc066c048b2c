# main.py
import os
import json
import base64
import logging
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from api.prompts import build_directive, build_system_instruction
from api.schemas import AnalysisRequest, AnalysisResult, ErrorBody, ErrorKind
from utils.image_prep import strip_data_url

# ----------------------------
# Configuration
# ----------------------------
MODEL_NAME = os.environ.get("FALLGUARD_MODEL", "gemini-2.5-flash")
OUTPUT_LANGUAGE = os.environ.get("FALLGUARD_OUTPUT_LANGUAGE", "Traditional Chinese")
UPSTREAM_TIMEOUT = float(os.environ.get("FALLGUARD_UPSTREAM_TIMEOUT", "120"))

# Low randomness keeps the model from inventing clinical detail.
TEMPERATURE = 0.1

API_KEY_ENV = "API_KEY"
# Older deployments exposed the key under the bundler-visible name.
LEGACY_API_KEY_ENV = "VITE_API_KEY"

# The client classifies this error by the "API_KEY" substring; keep it verbatim.
MISSING_KEY_MESSAGE = "Server configuration error: API_KEY is missing."
RATE_LIMIT_MESSAGE = "API usage limit exceeded. Please try again later."

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]

# ----------------------------
# Logging
# ----------------------------
logging.basicConfig(
    level=os.environ.get("FALLGUARD_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def resolve_api_key() -> Optional[str]:
    key = os.environ.get(API_KEY_ENV)
    if key:
        return key
    legacy = os.environ.get(LEGACY_API_KEY_ENV)
    if legacy:
        logger.warning("%s is deprecated, set %s instead", LEGACY_API_KEY_ENV, API_KEY_ENV)
        return legacy
    return None


def error_response(status_code: int, message: str, kind: ErrorKind) -> JSONResponse:
    body = ErrorBody(error=message, kind=kind)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def decode_images(images: List[str]) -> List[bytes]:
    """Base64 payloads -> raw JPEG bytes. Raises ValueError on bad input."""
    return [base64.b64decode(strip_data_url(img), validate=True) for img in images]


def is_rate_limited(exc: genai_errors.APIError) -> bool:
    return exc.code == 429 or exc.status == "RESOURCE_EXHAUSTED"


def parse_model_output(text: Optional[str]) -> dict:
    """Parse the model's JSON and check it against the result schema.

    The parsed dict is returned as-is so the response relays the model
    output verbatim.
    """
    if not text:
        raise ValueError("No response from AI")
    data = json.loads(text)
    AnalysisResult.model_validate(data)
    return data


# ----------------------------
# Upstream model call
# ----------------------------
_client: Optional[genai.Client] = None
_client_key: Optional[str] = None


def get_client(api_key: str) -> genai.Client:
    """Shared SDK client; rebuilt only when the configured key changes."""
    global _client, _client_key
    if _client is None or _client_key != api_key:
        _client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(UPSTREAM_TIMEOUT * 1000)),
        )
        _client_key = api_key
    return _client


async def call_model(images: List[bytes], api_key: str) -> Optional[str]:
    client = get_client(api_key)

    parts = [types.Part.from_bytes(data=img, mime_type="image/jpeg") for img in images]
    parts.append(types.Part.from_text(text=build_directive(len(images), OUTPUT_LANGUAGE)))

    response = await client.aio.models.generate_content(
        model=MODEL_NAME,
        contents=parts,
        config=types.GenerateContentConfig(
            system_instruction=build_system_instruction(OUTPUT_LANGUAGE),
            response_mime_type="application/json",
            response_schema=AnalysisResult,
            temperature=TEMPERATURE,
        ),
    )
    return response.text


# ----------------------------
# FastAPI app
# ----------------------------
app = FastAPI(title="FallGuard AI Proxy")

logger.info("Proxy ready: model=%s, API key configured: %s", MODEL_NAME, resolve_api_key() is not None)


# ----------------------------
# CORS
# ----------------------------
@app.middleware("http")
async def cors(request: Request, call_next):
    # Starlette's CORSMiddleware answers preflights with a body; this one must be empty.
    if request.method == "OPTIONS":
        response = Response(status_code=200)
    else:
        response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET,OPTIONS,PATCH,DELETE,POST,PUT"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Accept, X-Requested-With"
    return response


# ----------------------------
# Unknown routes
# ----------------------------
@app.exception_handler(404)
async def not_found(request: Request, exc):
    return error_response(404, "Not Found", ErrorKind.NOT_FOUND)


# ----------------------------
# Health check
# ----------------------------
@app.get("/")
def health():
    return {
        "status": "ok",
        "model": MODEL_NAME,
        "api_key_configured": resolve_api_key() is not None,
    }


# ----------------------------
# Analysis endpoint
# ----------------------------
@app.api_route("/analyze", methods=ALL_METHODS)
@app.api_route("/api/analyze", methods=ALL_METHODS)
async def analyze(request: Request):
    if request.method != "POST":
        return error_response(405, "Method Not Allowed", ErrorKind.METHOD_NOT_ALLOWED)

    try:
        payload = await request.json()
        body = AnalysisRequest.model_validate(payload)
    except (ValueError, ValidationError):
        return error_response(400, "Request body must be a JSON object with image data.", ErrorKind.INVALID_REQUEST)

    images = body.payloads()
    if not images or not all(images):
        return error_response(400, "Image data is required", ErrorKind.INVALID_REQUEST)

    try:
        decoded = decode_images(images)
    except ValueError:
        return error_response(400, "Image data must be base64-encoded JPEG.", ErrorKind.INVALID_REQUEST)

    api_key = resolve_api_key()
    if not api_key:
        logger.error("Rejecting analysis request: %s is not set", API_KEY_ENV)
        return error_response(500, MISSING_KEY_MESSAGE, ErrorKind.MISSING_API_KEY)

    logger.info("Analyzing %d image(s)", len(decoded))
    try:
        text = await call_model(decoded, api_key)
    except genai_errors.APIError as e:
        if is_rate_limited(e):
            logger.warning("Upstream rate limit hit: %s", e)
            return error_response(429, RATE_LIMIT_MESSAGE, ErrorKind.RATE_LIMITED)
        logger.exception("Upstream analysis failed")
        return error_response(500, e.message or str(e), ErrorKind.UPSTREAM_ERROR)
    except Exception as e:
        logger.exception("Upstream analysis failed")
        return error_response(500, str(e) or "Internal Server Error", ErrorKind.UPSTREAM_ERROR)

    try:
        result = parse_model_output(text)
    except ValueError as e:
        logger.error("Model returned an unusable response: %s", e)
        return error_response(500, f"Invalid response from AI: {e}", ErrorKind.BAD_UPSTREAM_RESPONSE)

    return JSONResponse(status_code=200, content=result)
