import json

import httpx
import pytest

from workout_tracking.errors import GeneratorError
from workout_tracking.services.generator import HttpWorkoutGenerator


def use_transport(monkeypatch, handler):
    real_client = httpx.Client
    monkeypatch.setattr(httpx, "Client", lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw))


def test_posts_constraints_and_unwraps_instance(monkeypatch):
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"instance": {"title": "Legs", "exercises": []}})

    use_transport(monkeypatch, handler)
    out = HttpWorkoutGenerator("generator.local/workouts").generate("u1", {"intent": "legs"})
    assert out == {"title": "Legs", "exercises": []}
    assert seen["body"] == {"user_id": "u1", "constraints": {"intent": "legs"}}


def test_unwrapped_body_is_returned_as_is(monkeypatch):
    use_transport(monkeypatch, lambda request: httpx.Response(200, json={"title": "Arms"}))
    assert HttpWorkoutGenerator("http://gen").generate("u1", {}) == {"title": "Arms"}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=["a", "list"]),
    ],
)
def test_bad_responses_become_generator_errors(monkeypatch, response):
    use_transport(monkeypatch, lambda request: response)
    with pytest.raises(GeneratorError):
        HttpWorkoutGenerator("http://gen").generate("u1", {})


def test_unreachable_generator(monkeypatch):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    use_transport(monkeypatch, handler)
    with pytest.raises(GeneratorError):
        HttpWorkoutGenerator("http://gen").generate("u1", {})
