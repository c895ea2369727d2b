"""Tests for structlog context binding."""

import logging

import structlog

from clawforge.logging_config import bind_request_context, clear_request_context, configure_logging


class TestLoggingContext:
    def test_service_binding_survives_request_clear(self):
        configure_logging(level="DEBUG", json_format=False, service_version="9.9.9")
        bind_request_context("req-1", actor_id="user-1", skill_id="s-1")

        context = structlog.contextvars.get_contextvars()
        assert context["request_id"] == "req-1"
        assert context["actor_id"] == "user-1"
        assert context["version"] == "9.9.9"

        clear_request_context()

        context = structlog.contextvars.get_contextvars()
        assert "request_id" not in context
        assert "actor_id" not in context
        assert context["service"] == "clawforge-certification"
        structlog.contextvars.clear_contextvars()

    def test_library_loggers_are_quieted(self):
        configure_logging(level="DEBUG", json_format=True)
        assert logging.getLogger("httpx").level == logging.WARNING
        structlog.contextvars.clear_contextvars()
