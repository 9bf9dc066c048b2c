import pytest

from client.api_client import (
    EndpointMissing,
    GenericServerError,
    NetworkUnreachable,
    RateLimited,
    ServerMisconfigured,
)
from client.session import (
    AppState,
    InvalidTransition,
    Phase,
    Rejected,
    Reset,
    Resolved,
    Submit,
    error_view,
    retry,
    run_analysis,
    transition,
)


def analyzing(images=("a", "b")):
    return transition(Phase(), Submit(images))


def test_submit_moves_idle_to_analyzing():
    phase = analyzing()
    assert phase.state is AppState.ANALYZING
    assert phase.images == ("a", "b")


def test_submit_requires_an_image():
    with pytest.raises(InvalidTransition):
        transition(Phase(), Submit(()))


def test_second_submit_while_analyzing_is_refused():
    with pytest.raises(InvalidTransition):
        transition(analyzing(), Submit(("c",)))


def test_resolve_and_reject(sample_result):
    ok = transition(analyzing(), Resolved(sample_result))
    assert ok.state is AppState.SUCCESS and ok.result == sample_result

    failed = transition(analyzing(), Rejected(RateLimited("429")))
    assert failed.state is AppState.ERROR and failed.result is None


@pytest.mark.parametrize("event", [Resolved({}), Rejected(GenericServerError("x")), Reset()])
def test_idle_ignores_completion_events(event):
    with pytest.raises(InvalidTransition):
        transition(Phase(), event)


def test_reset_returns_to_idle_and_discards_result(sample_result):
    done = transition(analyzing(), Resolved(sample_result))
    idle = transition(done, Reset())
    assert idle == Phase()


def test_retry_resubmits_the_same_images():
    failed = transition(analyzing(("p1", "p2")), Rejected(NetworkUnreachable("down")))
    again = retry(failed)
    assert again.state is AppState.ANALYZING
    assert again.images == ("p1", "p2")
    assert again.error is None


def test_run_analysis_success_path(sample_result):
    seen = []

    def analyze(images):
        seen.append(images)
        return sample_result

    phase = run_analysis(analyzing(), analyze)

    assert phase.state is AppState.SUCCESS
    assert seen == [["a", "b"]]


def test_run_analysis_failure_path():
    def analyze(images):
        raise ServerMisconfigured("Server configuration error: API_KEY is missing.")

    phase = run_analysis(analyzing(), analyze)

    assert phase.state is AppState.ERROR
    assert isinstance(phase.error, ServerMisconfigured)


def test_run_analysis_only_runs_while_analyzing():
    with pytest.raises(InvalidTransition):
        run_analysis(Phase(), lambda images: {})


def test_rate_limit_copy_differs_from_generic_failure(local_endpoint):
    limited = error_view(RateLimited("429", "Too many analysis requests. Please wait a minute and try again."))
    generic = error_view(GenericServerError("boom"))

    assert limited.tone == "warning"
    assert generic.tone == "error"
    assert limited.title != generic.title
    assert limited.message != generic.message


def test_misconfigured_view_explains_the_api_key():
    view = error_view(ServerMisconfigured("API_KEY is missing"))
    assert any("API_KEY" in hint for hint in view.hints)


def test_connection_hints_follow_the_endpoint(local_endpoint, remote_endpoint):
    err = EndpointMissing("404")
    assert "python main.py" in error_view(err, local_endpoint).hints[0]
    assert "/api/analyze" in error_view(err, remote_endpoint).hints[0]
