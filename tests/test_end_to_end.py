"""Camera/upload -> client -> proxy -> (mocked) model -> UI state, without a network."""

import json
from urllib.parse import urlsplit

import pytest
from fastapi.testclient import TestClient
from google.genai import errors as genai_errors

import api.main as proxy
from client import api_client
from client.api_client import GenericServerError, RateLimited, ServerMisconfigured
from client.session import AppState, Phase, Submit, error_view, run_analysis, transition
from client.staging import StagingList, make_staged
from utils.image_prep import normalize_image

from conftest import image_bytes, make_image


class RelayedResponse:
    """requests.Response look-alike wrapping a TestClient (httpx) response."""

    def __init__(self, response):
        self.status_code = response.status_code
        self._response = response

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._response.json()


@pytest.fixture
def wired(monkeypatch, local_endpoint):
    """Route the client's requests.post into the FastAPI app in-process."""
    test_client = TestClient(proxy.app)

    def post(url, json=None, timeout=None):
        return RelayedResponse(test_client.post(urlsplit(url).path, json=json))

    monkeypatch.setattr(api_client.requests, "post", post)
    monkeypatch.setenv("API_KEY", "test-key")

    def analyze(images):
        return api_client.analyze_images(images, local_endpoint)

    return analyze


def upstream_returns(monkeypatch, text=None, exc=None):
    async def fake_call_model(images, api_key):
        if exc is not None:
            raise exc
        return text

    monkeypatch.setattr(proxy, "call_model", fake_call_model)


def submitted(count=2):
    staging = StagingList()
    for i in range(count):
        raw = image_bytes(make_image(2000, 1000, (40 * i, 100, 150)))
        staging.add(make_staged(normalize_image(raw), "upload", f"page-{i}.jpg"))
    phase = transition(Phase(), Submit(tuple(staging.payloads())))
    assert phase.state is AppState.ANALYZING
    return phase


def test_valid_result_reaches_success(wired, monkeypatch, sample_result):
    upstream_returns(monkeypatch, text=json.dumps(sample_result))

    phase = run_analysis(submitted(), wired)

    assert phase.state is AppState.SUCCESS
    for field in ("detectedTextSummary", "possibleCauses", "preventionStrategies", "handoverNote"):
        assert phase.result[field] == sample_result[field]


def test_non_json_model_output_ends_in_generic_error(wired, monkeypatch):
    upstream_returns(monkeypatch, text="I could not read the form, sorry.")

    phase = run_analysis(submitted(1), wired)

    assert phase.state is AppState.ERROR
    assert isinstance(phase.error, GenericServerError)
    assert error_view(phase.error).title == "Analysis failed"


def test_missing_key_marker_drives_setup_guidance(wired, monkeypatch):
    monkeypatch.delenv("API_KEY")
    monkeypatch.delenv("VITE_API_KEY", raising=False)

    phase = run_analysis(submitted(1), wired)

    assert isinstance(phase.error, ServerMisconfigured)
    assert error_view(phase.error).title == "Server not configured"


def test_missing_key_marker_without_kind_tag_still_classified(wired, monkeypatch):
    """Older proxies only send {"error": ...}; the API_KEY substring must still work."""
    monkeypatch.delenv("API_KEY")
    monkeypatch.delenv("VITE_API_KEY", raising=False)
    original = proxy.error_response

    def untagged(status_code, message, kind):
        response = original(status_code, message, kind)
        body = json.loads(response.body)
        body.pop("kind")
        return proxy.JSONResponse(status_code=status_code, content=body)

    monkeypatch.setattr(proxy, "error_response", untagged)

    phase = run_analysis(submitted(1), wired)

    assert isinstance(phase.error, ServerMisconfigured)


def test_upstream_rate_limit_shows_rate_limit_copy(wired, monkeypatch):
    exc = genai_errors.ClientError(429, {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}})
    upstream_returns(monkeypatch, exc=exc)

    phase = run_analysis(submitted(1), wired)

    assert isinstance(phase.error, RateLimited)
    view = error_view(phase.error)
    assert view.tone == "warning"
    assert view.title != error_view(GenericServerError("x")).title
