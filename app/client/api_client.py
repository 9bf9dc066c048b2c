import os
from dataclasses import dataclass
from typing import Optional, Sequence, Union
from urllib.parse import urlsplit

import requests
from pydantic import ValidationError

from api.schemas import AnalysisResult

LOCAL_ENDPOINT = "http://localhost:8000/analyze"
PROXY_PATH = "/api/analyze"
LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1", "0.0.0.0"}

REQUEST_TIMEOUT = float(os.environ.get("FALLGUARD_TIMEOUT", "60"))

# Marker the proxy puts in its missing-credential message.
MISSING_KEY_MARKER = "API_KEY"


@dataclass(frozen=True)
class Endpoint:
    url: str
    is_local: bool


def bare_hostname(host: str) -> str:
    # "example.com:8501" / "[::1]:8501" -> bare hostname
    return urlsplit(f"//{host}").hostname or host


def resolve_endpoint(base_url: Optional[str] = None, host: Optional[str] = None, scheme: str = "https") -> Endpoint:
    """Decide where analysis requests go.

    An explicit `base_url` always wins (https is assumed when it carries no
    scheme). Otherwise a local host (or no host
    at all) talks to the development server and anything else uses the
    proxy path on the same host.
    """
    if base_url:
        url = base_url.strip().rstrip("/")
        if "://" not in url:
            # "proxy.example.org" -> "https://proxy.example.org"
            url = f"https://{url}"
        if not url.endswith("/analyze"):
            url = f"{url}/analyze"
        return Endpoint(url=url, is_local=bare_hostname(urlsplit(url).netloc) in LOCAL_HOSTS)

    if not host or bare_hostname(host) in LOCAL_HOSTS:
        return Endpoint(url=LOCAL_ENDPOINT, is_local=True)

    return Endpoint(url=f"{scheme}://{host}{PROXY_PATH}", is_local=False)


# ----------------------------
# Errors
# ----------------------------
class AnalysisError(Exception):
    """Base class for every failure surfaced to the UI."""

    kind = "generic"

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message


class RateLimited(AnalysisError):
    kind = "rate_limited"


class ServerMisconfigured(AnalysisError):
    kind = "server_misconfigured"


class EndpointMissing(AnalysisError):
    kind = "endpoint_missing"


class NetworkUnreachable(AnalysisError):
    kind = "network_unreachable"


class GenericServerError(AnalysisError):
    kind = "generic"


def _error_text(body) -> Optional[str]:
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return None


def classify_response(status: int, body, endpoint: Endpoint) -> AnalysisError:
    """Map a non-2xx proxy response to the client error taxonomy.

    The typed `kind` field is preferred; the message substring check only
    covers proxies that predate it.
    """
    message = _error_text(body)
    kind = body.get("kind") if isinstance(body, dict) else None

    if status == 429 or kind == "rate_limited":
        return RateLimited(
            message or "Rate limited",
            "Too many analysis requests. Please wait a minute and try again.",
        )

    if status == 500 and (kind == "missing_api_key" or (message and MISSING_KEY_MARKER in message)):
        return ServerMisconfigured(
            message or "API_KEY is missing",
            "The server has no API key configured. Set the API_KEY environment "
            "variable on the proxy and redeploy it.",
        )

    if status == 404:
        if endpoint.is_local:
            hint = "No local analysis server found. Start it with `python main.py` and try again."
        else:
            hint = "The analysis service was not found. Check that the proxy (/api/analyze) is deployed."
        return EndpointMissing(f"404 from {endpoint.url}", hint)

    return GenericServerError(
        message or f"Server error ({status})",
        message or f"Analysis failed (server error {status}). Please try again.",
    )


# ----------------------------
# Request
# ----------------------------
def build_payload(images: Union[str, Sequence[str]]) -> dict:
    if isinstance(images, str):
        return {"image": images}
    images = list(images)
    if len(images) == 1:
        return {"image": images[0]}
    return {"images": images}


def analyze_images(images: Union[str, Sequence[str]], endpoint: Endpoint, timeout: float = REQUEST_TIMEOUT) -> dict:
    """POST one or more base64 JPEGs to the proxy and return the AnalysisResult dict."""
    payload = build_payload(images)
    if not payload.get("image") and not payload.get("images"):
        raise ValueError("At least one image is required")

    try:
        r = requests.post(endpoint.url, json=payload, timeout=timeout)
    except (requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema, requests.exceptions.InvalidURL) as e:
        raise GenericServerError(
            str(e),
            f"The analysis service address \"{endpoint.url}\" is not a valid URL. Check FALLGUARD_API_URL.",
        ) from e
    except requests.RequestException as e:
        # refused, timed out, cut off mid-response, redirect loop
        if endpoint.is_local:
            hint = "Cannot reach the local analysis server. Is `python main.py` running?"
        else:
            hint = "Cannot reach the analysis service. Check your network connection and try again."
        raise NetworkUnreachable(str(e), hint) from e

    try:
        body = r.json()
    except ValueError:
        body = None

    if not r.ok:
        raise classify_response(r.status_code, body, endpoint)

    try:
        AnalysisResult.model_validate(body)
    except ValidationError as e:
        raise GenericServerError(
            f"Malformed analysis response: {e}",
            "The analysis service returned an unreadable result. Please try again.",
        ) from e
    return body
