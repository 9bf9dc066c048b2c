"""
UI state machine.

The whole screen is driven by one immutable `Phase` value. Transitions are
pure functions of (phase, event); the Streamlit script only stores the
current phase and renders it.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from client.api_client import AnalysisError, Endpoint, GenericServerError


class AppState(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Phase:
    state: AppState = AppState.IDLE
    images: Tuple[str, ...] = ()
    result: Optional[dict] = None
    error: Optional[AnalysisError] = None


# ----------------------------
# Events
# ----------------------------
@dataclass(frozen=True)
class Submit:
    images: Tuple[str, ...]


@dataclass(frozen=True)
class Resolved:
    result: dict


@dataclass(frozen=True)
class Rejected:
    error: AnalysisError


@dataclass(frozen=True)
class Reset:
    keep_images: bool = False


Event = Union[Submit, Resolved, Rejected, Reset]


class InvalidTransition(Exception):
    def __init__(self, state: AppState, event):
        super().__init__(f"{type(event).__name__} is not allowed while {state.value}")
        self.state = state
        self.event = event


def transition(phase: Phase, event: Event) -> Phase:
    if isinstance(event, Submit) and phase.state is AppState.IDLE:
        if not event.images:
            raise InvalidTransition(phase.state, event)
        return Phase(state=AppState.ANALYZING, images=tuple(event.images))

    if isinstance(event, Resolved) and phase.state is AppState.ANALYZING:
        return replace(phase, state=AppState.SUCCESS, result=event.result, error=None)

    if isinstance(event, Rejected) and phase.state is AppState.ANALYZING:
        return replace(phase, state=AppState.ERROR, result=None, error=event.error)

    if isinstance(event, Reset) and phase.state in (AppState.SUCCESS, AppState.ERROR):
        return Phase(images=phase.images if event.keep_images else ())

    raise InvalidTransition(phase.state, event)


def retry(phase: Phase) -> Phase:
    """Error -> Idle -> Analyzing again with the same images."""
    idle = transition(phase, Reset(keep_images=True))
    return transition(idle, Submit(idle.images))


def run_analysis(phase: Phase, analyze: Callable[[List[str]], dict]) -> Phase:
    """Perform the single request of an ANALYZING phase and fold in the outcome."""
    if phase.state is not AppState.ANALYZING:
        raise InvalidTransition(phase.state, Resolved({}))
    try:
        result = analyze(list(phase.images))
    except AnalysisError as e:
        return transition(phase, Rejected(e))
    return transition(phase, Resolved(result))


# ----------------------------
# Error rendering
# ----------------------------
@dataclass(frozen=True)
class ErrorView:
    title: str
    message: str
    tone: str  # "warning" or "error"
    hints: List[str] = field(default_factory=list)


def error_view(error: AnalysisError, endpoint: Optional[Endpoint] = None) -> ErrorView:
    kind = getattr(error, "kind", GenericServerError.kind)
    message = getattr(error, "user_message", str(error))

    if kind == "rate_limited":
        return ErrorView(
            title="Too many requests",
            message=message,
            tone="warning",
            hints=["The free model quota refills every minute. Wait briefly, then tap Retry."],
        )

    if kind == "server_misconfigured":
        return ErrorView(
            title="Server not configured",
            message=message,
            tone="error",
            hints=[
                "Open the hosting dashboard for the proxy service.",
                "Add an environment variable named API_KEY holding your Gemini API key.",
                "Redeploy the service so the new variable takes effect.",
            ],
        )

    if kind in ("endpoint_missing", "network_unreachable"):
        local = endpoint.is_local if endpoint else True
        if local:
            hints = ["Local development: run `python main.py` in a separate terminal."]
        else:
            hints = ["Deployment: check that the proxy is deployed and reachable at /api/analyze."]
        return ErrorView(title="Cannot reach the analysis service", message=message, tone="error", hints=hints)

    return ErrorView(
        title="Analysis failed",
        message=message or "Check your network or the photo quality, then retry.",
        tone="error",
    )
