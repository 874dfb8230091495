"""
Secret redaction and per-pass log context.
"""
from __future__ import annotations

import structlog

from shared.utils.logging import REDACTED, pass_context, redact_secrets


class TestRedactSecrets:

    def test_top_level_keys_masked(self) -> None:
        out = redact_secrets(None, "info", {"event": "x", "api_key": "abc", "provider": "api_sports"})
        assert out["api_key"] == REDACTED
        assert out["provider"] == "api_sports"

    def test_header_values_masked(self) -> None:
        out = redact_secrets(None, "info", {"event": "x", "headers": {"x-apisports-key": "abc", "Accept": "json"}})
        assert out["headers"] == {"x-apisports-key": REDACTED, "Accept": "json"}


class TestPassContext:

    def test_binds_and_unbinds(self) -> None:
        structlog.contextvars.clear_contextvars()
        with pass_context("FOOTBALL", pass_id="p1") as pass_id:
            assert pass_id == "p1"
            assert structlog.contextvars.get_contextvars() == {"pass_id": "p1", "sport": "FOOTBALL"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_generates_pass_id(self) -> None:
        with pass_context("RUGBY") as pass_id:
            assert len(pass_id) == 12
