import sentry_sdk

from journal.core.config import SentryConfig
from journal.core.sentry_init import FILTERED, before_send, build_sentry_options, init_sentry, scrub


def test_before_send_filters_request_body_and_sensitive_headers():
    event = {
        "request": {
            "headers": {
                "Authorization": "Bearer secret",
                "Cookie": "a=b",
                "X-Test": "ok",
            },
            "data": {"password": "cleartext", "other": "value"},
            "cookies": {"a": "b"},
            "body": "raw-body",
        },
        "extra": {"password": "cleartext", "review": {"confidential_comments": "reject quietly", "rating": 2}},
    }

    out = before_send(event, {})
    assert out is not None

    request = out["request"]
    assert request["data"] == FILTERED
    assert request["body"] == FILTERED
    assert request["cookies"] == FILTERED
    assert request["headers"] == {"X-Test": "ok"}
    assert out["extra"]["password"] == FILTERED
    assert out["extra"]["review"] == {"confidential_comments": FILTERED, "rating": 2}


def test_scrub_drops_file_payloads():
    assert scrub(b"%PDF-1.7 ...") == FILTERED
    assert scrub("x" * 6000) == FILTERED
    assert scrub({"manuscript": ("paper.pdf", "short")}) == {"manuscript": FILTERED}
    assert scrub(["ok", {"refreshToken": "t"}]) == ["ok", {"refreshToken": FILTERED}]


def test_init_sentry_disabled_without_dsn(monkeypatch):
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    monkeypatch.delenv("SENTRY_ENABLED", raising=False)
    assert init_sentry() is False


def test_init_sentry_respects_explicit_disable(monkeypatch):
    monkeypatch.setenv("SENTRY_DSN", "https://public@example.ingest.sentry.io/1")
    monkeypatch.setenv("SENTRY_ENABLED", "0")
    assert init_sentry() is False


def test_init_sentry_passes_options(monkeypatch):
    captured = {}
    monkeypatch.setattr(sentry_sdk, "init", lambda **kwargs: captured.update(kwargs))
    cfg = SentryConfig(enabled=True, dsn="https://public@example.ingest.sentry.io/1", environment="staging", traces_sample_rate=0.2)

    assert init_sentry(cfg) is True
    assert captured["environment"] == "staging"
    assert captured["send_default_pii"] is False
    assert captured["before_send"] is before_send
    assert build_sentry_options(cfg)["max_request_body_size"] == "never"
