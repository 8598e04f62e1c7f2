import random
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from serafina_chat.api import routes
from serafina_chat.core.cache import DEFAULT_TTL_SEC, ReplyCache, cache_key
from serafina_chat.core.chat import ChatHandler
from serafina_chat.core.errors import UpstreamError
from serafina_chat.core.limiter import RateLimiter
from serafina_chat.core.metrics import metrics
from serafina_chat.core.quick_replies import GREETING_REPLY
from serafina_chat.core.settings import load_settings
from serafina_chat.core.upstream import Completion
from serafina_chat.main import app

ALLOWED_ORIGIN = "https://ilpiattosano.netlify.app"


class FakeClock:
    def __init__(self, now: float = 10_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeUpstream:
    def __init__(self, reply=" Eat more veggies! ", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, message, locale):
        self.calls.append((message, locale))
        if self.error is not None:
            raise self.error
        if callable(self.reply):
            return self.reply(message, locale)
        return Completion(self.reply.strip())


@pytest.fixture
def harness(monkeypatch):
    settings = replace(
        load_settings(),
        api_key="sk-test",
        max_message_chars=500,
        allowed_origins=[ALLOWED_ORIGIN, "http://localhost:5173"],
    )
    clock = FakeClock()
    fake = FakeUpstream()
    handler = ChatHandler(
        settings=settings,
        cache=ReplyCache(ttl_sec=DEFAULT_TTL_SEC, clock=clock),
        limiter=RateLimiter(5, 60.0, clock=clock),
        upstream=fake,
        rng=random.Random(3),
    )
    monkeypatch.setattr(routes, "chat_handler", handler)
    monkeypatch.setattr(routes.SETTINGS, "allowed_origins", settings.allowed_origins)
    metrics.reset()

    class Harness:
        pass

    h = Harness()
    h.client = TestClient(app)
    h.handler = handler
    h.upstream = fake
    h.clock = clock
    return h


def _assert_cors(response, origin=ALLOWED_ORIGIN):
    assert response.headers["access-control-allow-origin"] == origin
    assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type"
    assert response.headers["vary"] == "Origin"


@pytest.mark.parametrize("locale", ["it", "en", "es", "zh", "fr"])
@pytest.mark.parametrize("message", ["", "   ", "\n\t"])
def test_blank_message_is_rejected(harness, locale, message):
    response = harness.client.post("/chat", json={"message": message, "locale": locale})
    assert response.status_code == 400
    assert "error" in response.json()
    _assert_cors(response)
    assert harness.upstream.calls == []


def test_missing_message_is_rejected(harness):
    response = harness.client.post("/chat", json={"locale": "en"})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing message"


def test_non_string_message_is_rejected(harness):
    response = harness.client.post("/chat", json={"message": 123})
    assert response.status_code == 400


def test_invalid_json_is_rejected(harness):
    response = harness.client.post(
        "/chat",
        content="{invalid",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400
    _assert_cors(response)


def test_oversized_message_is_rejected(harness):
    response = harness.client.post("/chat", json={"message": "a" * 501, "locale": "en"})
    assert response.status_code == 400
    assert "500" in response.json()["error"]
    assert harness.upstream.calls == []


def test_message_at_limit_is_accepted(harness):
    response = harness.client.post("/chat", json={"message": "b" * 500, "locale": "en"})
    assert response.status_code == 200


@pytest.mark.parametrize("message", [" " + "a" * 500, "a" * 500 + "\n", "what to eat?" + " " * 20_000])
def test_whitespace_padding_counts_toward_length_limit(harness, message):
    response = harness.client.post("/chat", json={"message": message, "locale": "en"})
    assert response.status_code == 400
    assert harness.upstream.calls == []


def test_padded_message_within_limit_is_trimmed_for_matching(harness):
    response = harness.client.post("/chat", json={"message": "   hello   ", "locale": "en"})
    assert response.json() == {"reply": GREETING_REPLY["en"]}

    harness.client.post("/chat", json={"message": " What should I eat? ", "locale": "en"})
    harness.client.post("/chat", json={"message": "what should i eat?", "locale": "en"})
    assert len(harness.upstream.calls) == 1
    assert all(len(message) <= 500 for message, _ in harness.upstream.calls)


@pytest.mark.parametrize("locale", ["it", "en", "es", "zh"])
def test_greeting_short_circuits_upstream(harness, locale):
    response = harness.client.post("/chat", json={"message": "  HELLO ", "locale": locale})
    assert response.status_code == 200
    assert response.json() == {"reply": GREETING_REPLY[locale]}
    assert harness.upstream.calls == []


def test_red_flag_never_reaches_upstream(harness):
    response = harness.client.post("/chat", json={"message": "Posso non mangiare per dimagrire?"})
    assert response.status_code == 200
    assert "pediatra" in response.json()["reply"]
    assert harness.upstream.calls == []


def test_unsupported_locale_behaves_as_italian(harness):
    response = harness.client.post("/chat", json={"message": "ciao", "locale": "fr"})
    assert response.json() == {"reply": GREETING_REPLY["it"]}

    harness.client.post("/chat", json={"message": "Cosa metto nel piatto?", "locale": "fr"})
    assert harness.upstream.calls[-1][1] == "it"


def test_missing_locale_defaults_to_italian(harness):
    harness.client.post("/chat", json={"message": "Cosa metto nel piatto?"})
    assert harness.upstream.calls == [("Cosa metto nel piatto?", "it")]


def test_upstream_reply_is_trimmed_and_cached(harness):
    response = harness.client.post("/chat", json={"message": "What should I eat?", "locale": "en"})
    assert response.status_code == 200
    assert response.json() == {"reply": "Eat more veggies!"}
    _assert_cors(response)
    assert harness.handler.cache.get(cache_key("en", "What should I eat?")) == "Eat more veggies!"


def test_same_question_twice_calls_upstream_once(harness):
    payload = {"message": "What should I eat?", "locale": "en"}
    first = harness.client.post("/chat", json=payload)
    second = harness.client.post("/chat", json={"message": "  what SHOULD i eat?  ", "locale": "en-US"})
    assert first.json() == second.json()
    assert len(harness.upstream.calls) == 1
    snapshot = metrics.snapshot()
    assert snapshot["serafina_cache_total{result=hit}"] == 1


def test_cache_expires_after_ttl(harness):
    payload = {"message": "What should I eat?", "locale": "en"}
    harness.client.post("/chat", json=payload)
    harness.clock.now += DEFAULT_TTL_SEC
    harness.client.post("/chat", json=payload)
    assert len(harness.upstream.calls) == 2


def test_cache_is_keyed_by_locale(harness):
    harness.client.post("/chat", json={"message": "pasta?", "locale": "en"})
    harness.client.post("/chat", json={"message": "pasta?", "locale": "es"})
    assert len(harness.upstream.calls) == 2


def test_fallback_reply_is_not_cached(harness):
    harness.upstream.reply = lambda message, locale: Completion("Could you rephrase that?", fallback=True)
    payload = {"message": "???", "locale": "en"}
    first = harness.client.post("/chat", json=payload)
    assert first.json() == {"reply": "Could you rephrase that?"}
    harness.client.post("/chat", json=payload)
    assert len(harness.upstream.calls) == 2


def test_sixth_request_in_window_is_rate_limited(harness):
    headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
    statuses = []
    for idx in range(6):
        response = harness.client.post("/chat", json={"message": f"question {idx}", "locale": "en"}, headers=headers)
        statuses.append(response.status_code)
    assert statuses == [200, 200, 200, 200, 200, 429]
    assert len(harness.upstream.calls) == 5
    assert metrics.snapshot()["serafina_rate_limited_total"] == 1


def test_rate_limit_is_per_forwarded_client(harness):
    for idx in range(5):
        harness.client.post("/chat", json={"message": f"q{idx}"}, headers={"x-forwarded-for": "198.51.100.1"})
    blocked = harness.client.post("/chat", json={"message": "q5"}, headers={"x-forwarded-for": "198.51.100.1"})
    other = harness.client.post("/chat", json={"message": "q5"}, headers={"x-forwarded-for": "198.51.100.2"})
    assert blocked.status_code == 429
    _assert_cors(blocked)
    assert other.status_code == 200


def test_cache_hits_bypass_rate_limit(harness):
    harness.client.post("/chat", json={"message": "cached question", "locale": "en"})
    for idx in range(4):
        harness.client.post("/chat", json={"message": f"q{idx}", "locale": "en"})
    response = harness.client.post("/chat", json={"message": "cached question", "locale": "en"})
    assert response.status_code == 200
    assert len(harness.upstream.calls) == 5


def test_upstream_error_status_is_propagated(harness):
    harness.upstream.error = UpstreamError("LLM error", detail="Rate limit reached", status_code=429)
    response = harness.client.post("/chat", json={"message": "What should I eat?", "locale": "en"})
    assert response.status_code == 429
    assert response.json() == {"error": "LLM error", "detail": "Rate limit reached"}
    _assert_cors(response)
    assert harness.handler.cache.get(cache_key("en", "What should I eat?")) is None


def test_unexpected_failure_returns_generic_500(harness):
    harness.upstream.error = RuntimeError("secret internals")
    response = harness.client.post("/chat", json={"message": "What should I eat?"})
    assert response.status_code == 500
    assert response.json() == {"error": routes.INTERNAL_ERROR}
    assert "secret" not in response.text
    _assert_cors(response)


def test_missing_api_key_returns_500(harness):
    harness.handler.settings = replace(harness.handler.settings, api_key="")
    response = harness.client.post("/chat", json={"message": "ciao"})
    assert response.status_code == 500
    assert "error" in response.json()
    _assert_cors(response)


def test_options_preflight(harness):
    response = harness.client.options("/chat", headers={"origin": "http://localhost:5173"})
    assert response.status_code == 204
    assert response.content == b""
    _assert_cors(response, "http://localhost:5173")


def test_unknown_origin_falls_back_to_default(harness):
    response = harness.client.post("/chat", json={"message": "ciao"}, headers={"origin": "https://evil.example"})
    _assert_cors(response, ALLOWED_ORIGIN)


def test_other_methods_are_not_allowed(harness):
    response = harness.client.get("/chat")
    assert response.status_code == 405
    assert response.headers["allow"] == "POST, OPTIONS"
    _assert_cors(response)


def test_health_and_metrics(harness):
    harness.client.post("/chat", json={"message": "grazie"})
    assert harness.client.get("/health").json() == {"status": "ok"}
    snapshot = harness.client.get("/metrics").json()
    assert snapshot["serafina_quick_reply_total{kind=thanks}"] == 1
    assert snapshot["serafina_requests_total{result=ok,source=quick_reply}"] == 1


@pytest.mark.parametrize("method", ["HEAD", "PUT", "PATCH", "DELETE", "TRACE"])
def test_every_other_method_gets_405_with_cors(harness, method):
    response = harness.client.request(method, "/chat", headers={"origin": "http://localhost:5173"})
    assert response.status_code == 405
    assert response.headers["allow"] == "POST, OPTIONS"
    _assert_cors(response, "http://localhost:5173")
