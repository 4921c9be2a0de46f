"""Tests for the built-in error handlers.

Covers:
- LogHandler levels and record attributes
- DatabaseLogHandler record building and failure isolation (mocked session)
- EmailNotificationHandler gating, subject/body and delivery failures (fake mailer)
- SlackNotificationHandler payload and HTTP behaviour (httpx.MockTransport)
- UserInterfaceHandler flashes
- RecoveryActionHandler actions
- ErrorSimulationHandler environment gate
- build_default_handlers order
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import unittest
from unittest.mock import AsyncMock, MagicMock

import httpx

from uem.config.settings import (
    DatabaseLogSettings,
    EmailSettings,
    ErrorManagerSettings,
    SlackSettings,
    UiSettings,
)
from uem.core.exceptions import ExternalServiceError
from uem.errors.definitions import build_store
from uem.errors.formatter import MessageFormatter
from uem.errors.handlers import (
    DatabaseLogHandler,
    EmailNotificationHandler,
    ErrorSimulationHandler,
    LogHandler,
    RecoveryActionHandler,
    SlackNotificationHandler,
    UserInterfaceHandler,
    build_default_handlers,
)
from uem.errors.handlers.email_handler import CONTEXT_REDACTED_BY_CONFIG, REDACTED_BY_CONFIG
from uem.errors.handlers.slack_handler import color_for
from uem.errors.request import StaticRequest
from uem.errors.testing import TestingConditionsManager
from uem.errors.translations import DictTranslator
from uem.errors.types import ErrorConfig
from uem.infra.database.models import ErrorLog


# ─── helpers ─────────────────────────────────────────────────────────────────

def _run(coro):
    return asyncio.run(coro)


STORE = build_store()
FORMATTER = MessageFormatter(DictTranslator(), UiSettings())


def _raised(exc):
    try:
        raise exc
    except Exception as caught:
        return caught


class _FakeSessionCtx:
    def __init__(self, session):
        self.session = session

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, *_):
        return False


def _fake_session():
    session = MagicMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    return session


# ─── LogHandler ──────────────────────────────────────────────────────────────

class TestLogHandler(unittest.TestCase):
    def test_logs_at_type_level_with_code_attribute(self):
        handler = LogHandler(STORE, FORMATTER)
        cfg = STORE.get("DATABASE_ERROR")
        with self.assertLogs("uem.errors", level="DEBUG") as logs:
            _run(handler.handle("DATABASE_ERROR", cfg, {"details": "timeout"}))
        record = logs.records[-1]
        self.assertEqual(record.levelno, logging.CRITICAL)
        self.assertEqual(record.getMessage(), "[DATABASE_ERROR] A database query or connection error occurred. Details: timeout")
        self.assertEqual(record.error_code, "DATABASE_ERROR")
        self.assertEqual(record.error_context, {"details": "timeout"})

    def test_notice_maps_to_info(self):
        handler = LogHandler(STORE, FORMATTER)
        with self.assertLogs("uem.errors", level="DEBUG") as logs:
            _run(handler.handle("NOTE", ErrorConfig(type="notice", dev_message="fyi"), {}))
        self.assertEqual(logs.records[-1].levelno, logging.INFO)

    def test_exception_is_attached(self):
        handler = LogHandler(STORE, FORMATTER)
        exc = _raised(ValueError("bad"))
        with self.assertLogs("uem.errors", level="DEBUG") as logs:
            _run(handler.handle("X", ErrorConfig(type="error"), {}, exc))
        self.assertIs(logs.records[-1].exc_info[1], exc)


# ─── DatabaseLogHandler ──────────────────────────────────────────────────────

class TestDatabaseLogHandler(unittest.TestCase):
    def _handler(self, session, **settings):
        return DatabaseLogHandler(
            lambda: _FakeSessionCtx(session), STORE, FORMATTER, DatabaseLogSettings(**settings)
        )

    def test_build_record_sanitizes_and_merges_request(self):
        handler = self._handler(_fake_session())
        request = StaticRequest(path="/upload", method="POST", ip_address="10.0.0.1", user_agent="pytest")
        record = handler.build_record(
            "VIRUS_FOUND",
            STORE.get("VIRUS_FOUND"),
            {"fileName": "a.exe", "password": "hunter2", "user_id": 42},
            None,
            request,
        )
        self.assertEqual(record["error_code"], "VIRUS_FOUND")
        self.assertEqual(record["error_type"], "error")
        self.assertEqual(record["error_level"], "blocking")
        self.assertEqual(record["http_status_code"], 422)
        self.assertEqual(record["display_method"], "sweet-alert")
        self.assertEqual(record["context"]["password"], "[REDACTED]")
        self.assertEqual(record["request_method"], "POST")
        self.assertEqual(record["ip_address"], "10.0.0.1")
        self.assertEqual(record["user_id"], "42")
        self.assertIn("a.exe", record["user_message"])

    def test_trace_is_cut_to_max_length(self):
        handler = self._handler(_fake_session(), max_trace_length=120)
        record = handler.build_record("X", ErrorConfig(), {}, _raised(RuntimeError("boom")))
        self.assertEqual(record["exception_message"], "boom")
        self.assertTrue(record["exception_class"].endswith("RuntimeError"))
        self.assertLessEqual(len(record["exception_trace"]), 120)
        self.assertIsNotNone(record["exception_line"])

    def test_trace_omitted_when_disabled(self):
        handler = self._handler(_fake_session(), include_trace=False)
        record = handler.build_record("X", ErrorConfig(), {}, _raised(RuntimeError("boom")))
        self.assertNotIn("exception_trace", record)

    def test_handle_stores_row_and_commits(self):
        session = _fake_session()
        handler = self._handler(session)
        _run(handler.handle("RECORD_NOT_FOUND", STORE.get("RECORD_NOT_FOUND"), {"model": "User", "id": 1}))

        session.add.assert_called_once()
        row = session.add.call_args.args[0]
        self.assertIsInstance(row, ErrorLog)
        self.assertEqual(row.error_code, "RECORD_NOT_FOUND")
        session.commit.assert_awaited_once()

    def test_failures_are_logged_not_raised(self):
        session = _fake_session()
        session.flush = AsyncMock(side_effect=RuntimeError("db down"))
        handler = self._handler(session)
        with self.assertLogs("uem.errors.handlers.database_handler", level="ERROR"):
            _run(handler.handle("X", ErrorConfig(), {}))
        session.commit.assert_not_awaited()

    def test_disabled_setting(self):
        handler = self._handler(_fake_session(), enabled=False)
        self.assertFalse(handler.should_handle(ErrorConfig()))


# ─── EmailNotificationHandler ────────────────────────────────────────────────

class TestEmailNotificationHandler(unittest.TestCase):
    def _handler(self, mailer=None, **email):
        values = {"enabled": True, "to": "dev@example.com", "from_address": "noreply@example.com"}
        values.update(email)
        settings = ErrorManagerSettings(app_name="shop", environment="staging", email=EmailSettings(**values))
        self.mailer = mailer or MagicMock(send=AsyncMock())
        return EmailNotificationHandler(settings, STORE, FORMATTER, self.mailer)

    def test_should_handle_follows_config_and_type_defaults(self):
        handler = self._handler()
        self.assertTrue(handler.should_handle(ErrorConfig(type="critical")))
        self.assertFalse(handler.should_handle(ErrorConfig(type="error")))
        self.assertTrue(handler.should_handle(ErrorConfig(type="warning", notify_email=True)))

    def test_disabled_or_without_recipient(self):
        self.assertFalse(self._handler(enabled=False).should_handle(ErrorConfig(type="critical")))
        self.assertFalse(self._handler(to=None).should_handle(ErrorConfig(type="critical")))

    def test_subject(self):
        self.assertEqual(self._handler().subject("DATABASE_ERROR"), "[UEM Error] shop (staging): DATABASE_ERROR")

    def test_body_redacts_by_config(self):
        handler = self._handler()
        body = handler.body(
            "DATABASE_ERROR",
            STORE.get("DATABASE_ERROR"),
            {"details": "timeout", "api_key": "abc"},
            None,
            StaticRequest(path="/orders", method="GET", ip_address="1.2.3.4"),
        )
        self.assertIn("Error Code: DATABASE_ERROR", body)
        self.assertIn("URL: GET /orders", body)
        self.assertIn(f"IP Address: {REDACTED_BY_CONFIG}", body)
        self.assertIn('"api_key": "[REDACTED]"', body)
        self.assertNotIn("abc", body)

    def test_body_includes_details_when_enabled(self):
        handler = self._handler(include_ip_address=True, include_context=False, include_trace=True)
        body = handler.body(
            "X", ErrorConfig(type="critical"), {"ip_address": "1.2.3.4"}, _raised(KeyError("k")), None
        )
        self.assertIn("IP Address: 1.2.3.4", body)
        self.assertIn(CONTEXT_REDACTED_BY_CONFIG, body)
        self.assertIn("Exception: KeyError", body)
        self.assertIn("Trace:", body)

    def test_handle_sends_message(self):
        handler = self._handler()
        _run(handler.handle("DATABASE_ERROR", STORE.get("DATABASE_ERROR"), {}))
        message = self.mailer.send.await_args.args[0]
        self.assertEqual(message["To"], "dev@example.com")
        self.assertEqual(message["Subject"], "[UEM Error] shop (staging): DATABASE_ERROR")
        self.assertIn("noreply@example.com", message["From"])

    def test_send_failure_is_logged(self):
        mailer = MagicMock(send=AsyncMock(side_effect=ExternalServiceError("smtp down")))
        handler = self._handler(mailer)
        with self.assertLogs("uem.errors.handlers.email_handler", level="ERROR"):
            _run(handler.handle("X", ErrorConfig(type="critical"), {}))


# ─── SlackNotificationHandler ────────────────────────────────────────────────

class TestSlackNotificationHandler(unittest.TestCase):
    def _handler(self, handler_fn=None, **slack):
        values = {"enabled": True, "webhook_url": "https://hooks.slack.test/T/B/X", "channel": "#alerts"}
        values.update(slack)
        settings = ErrorManagerSettings(app_name="shop", environment="production", slack=SlackSettings(**values))
        self.requests = []

        def _default(request):
            self.requests.append(request)
            return httpx.Response(200, text="ok")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler_fn or _default))
        return SlackNotificationHandler(settings, FORMATTER, http_client=client)

    def test_should_handle(self):
        handler = self._handler()
        self.assertTrue(handler.should_handle(ErrorConfig(type="critical")))
        self.assertTrue(handler.should_handle(ErrorConfig(type="error", notify_slack=True)))
        self.assertFalse(handler.should_handle(ErrorConfig(type="error")))
        self.assertFalse(self._handler(notify_all_critical=False).should_handle(ErrorConfig(type="critical")))
        self.assertFalse(self._handler(webhook_url=None).should_handle(ErrorConfig(type="critical")))

    def test_colors(self):
        self.assertEqual(color_for("critical"), "danger")
        self.assertEqual(color_for("error"), "#FFA500")
        self.assertEqual(color_for("notice"), "#439FE0")
        self.assertEqual(color_for("other"), "#808080")

    def test_posts_payload(self):
        handler = self._handler()
        _run(handler.handle("DATABASE_ERROR", STORE.get("DATABASE_ERROR"), {"details": "x"}, _raised(OSError("io"))))

        self.assertEqual(len(self.requests), 1)
        payload = json.loads(self.requests[0].content)
        attachment = payload["attachments"][0]
        self.assertEqual(attachment["color"], "danger")
        self.assertIn("DATABASE_ERROR", attachment["blocks"][0]["text"]["text"])
        self.assertEqual(payload["channel"], "#alerts")
        self.assertEqual(payload["username"], "shop Error Bot")
        texts = [b.get("text", {}).get("text", "") for b in attachment["blocks"]]
        self.assertTrue(any(t.startswith("*Exception:*") for t in texts))
        self.assertEqual(attachment["blocks"][-1], {"type": "divider"})

    def test_context_is_truncated(self):
        handler = self._handler(context_max_length=100)
        context = {f"key{i}": "v" * 50 for i in range(10)}
        payload = handler.build_payload("X", ErrorConfig(type="critical"), context)
        texts = [b.get("text", {}).get("text", "") for b in payload["attachments"][0]["blocks"]]
        context_text = [t for t in texts if t.startswith("*Context")][0]
        self.assertTrue(context_text.startswith("*Context (Truncated):*"))
        self.assertIn("... [TRUNCATED]", context_text)

    def test_non_success_is_logged_as_warning(self):
        handler = self._handler(lambda request: httpx.Response(500, text="invalid_payload"))
        with self.assertLogs("uem.errors.handlers.slack_handler", level="WARNING") as logs:
            _run(handler.handle("X", ErrorConfig(type="critical"), {}))
        self.assertEqual(logs.records[-1].levelno, logging.WARNING)

    def test_transport_error_is_logged(self):
        def _fail(request):
            raise httpx.ConnectError("refused", request=request)

        handler = self._handler(_fail)
        with self.assertLogs("uem.errors.handlers.slack_handler", level="ERROR"):
            _run(handler.handle("X", ErrorConfig(type="critical"), {}))


# ─── UserInterfaceHandler ────────────────────────────────────────────────────

class TestUserInterfaceHandler(unittest.TestCase):
    def test_flashes_message_code_and_info(self):
        handler = UserInterfaceHandler(FORMATTER, UiSettings(show_error_codes=True))
        request = StaticRequest()
        cfg = ErrorConfig(type="warning", blocking="not", display_mode="toast", user_message="Slow down, :name")
        _run(handler.handle("TOO_FAST", cfg, {"name": "Ada"}, request=request))

        self.assertEqual(request.flashes["error_toast"], "Slow down, Ada")
        self.assertEqual(request.flashes["error_code_toast"], "TOO_FAST")
        self.assertEqual(
            request.flashes["error_info"],
            {
                "error_code": "TOO_FAST",
                "message": "Slow down, Ada",
                "type": "warning",
                "blocking": "not",
                "display_target": "toast",
            },
        )

    def test_codes_hidden_by_default(self):
        handler = UserInterfaceHandler(FORMATTER)
        request = StaticRequest()
        _run(handler.handle("X", ErrorConfig(user_message="m"), {}, request=request))
        self.assertIn("error_div", request.flashes)
        self.assertNotIn("error_code_div", request.flashes)

    def test_should_handle(self):
        handler = UserInterfaceHandler(FORMATTER)
        self.assertFalse(handler.should_handle(ErrorConfig(display_mode="log-only", user_message="m")))
        self.assertFalse(handler.should_handle(ErrorConfig(dev_message="only dev")))
        self.assertTrue(handler.should_handle(ErrorConfig(user_message_key="errors.user.json_error")))

    def test_without_request_nothing_happens(self):
        handler = UserInterfaceHandler(FORMATTER)
        _run(handler.handle("X", ErrorConfig(user_message="m"), {}))


# ─── RecoveryActionHandler ───────────────────────────────────────────────────

class TestRecoveryActionHandler(unittest.TestCase):
    def test_create_temp_directory(self):
        handler = RecoveryActionHandler()
        with tempfile.TemporaryDirectory() as tmp:
            target = os.path.join(tmp, "uploads", "tmp")
            _run(handler.handle("TEMP_DIR_MISSING", ErrorConfig(recovery_action="create_temp_directory"), {"directory": target}))
            self.assertTrue(os.path.isdir(target))

    def test_custom_action_receives_context_and_exception(self):
        action = AsyncMock(return_value=True)
        handler = RecoveryActionHandler()
        handler.register_action("retry_upload", action)
        exc = ValueError("x")
        _run(handler.handle("UPLOAD_FAILED", ErrorConfig(recovery_action="retry_upload"), {"id": 1}, exc))
        action.assert_awaited_once_with({"id": 1}, exc)
        self.assertIn("retry_upload", handler.actions)

    def test_unknown_action_warns(self):
        handler = RecoveryActionHandler()
        with self.assertLogs("uem.errors.handlers.recovery_handler", level="WARNING"):
            _run(handler.handle("X", ErrorConfig(recovery_action="does_not_exist"), {}))

    def test_failing_action_is_logged(self):
        handler = RecoveryActionHandler({"explode": AsyncMock(side_effect=RuntimeError("nope"))})
        with self.assertLogs("uem.errors.handlers.recovery_handler", level="ERROR"):
            _run(handler.handle("X", ErrorConfig(recovery_action="explode"), {}))

    def test_should_handle_only_with_action(self):
        handler = RecoveryActionHandler()
        self.assertFalse(handler.should_handle(ErrorConfig()))
        self.assertTrue(handler.should_handle(ErrorConfig(recovery_action="schedule_cleanup")))


# ─── ErrorSimulationHandler ──────────────────────────────────────────────────

class TestErrorSimulationHandler(unittest.TestCase):
    def test_only_outside_production(self):
        conditions = TestingConditionsManager("production")
        self.assertFalse(ErrorSimulationHandler(conditions, "production").should_handle(ErrorConfig()))
        self.assertTrue(ErrorSimulationHandler(conditions, "local").should_handle(ErrorConfig()))

    def test_reports_simulated_flag(self):
        conditions = TestingConditionsManager("testing")
        conditions.activate("VIRUS_FOUND")
        handler = ErrorSimulationHandler(conditions, "testing")
        with self.assertLogs("uem.errors.handlers.simulation_handler", level="INFO") as logs:
            _run(handler.handle("VIRUS_FOUND", ErrorConfig(), {}))
        self.assertIn("simulated=True", logs.output[-1])


# ─── build_default_handlers ──────────────────────────────────────────────────

class TestBuildDefaultHandlers(unittest.TestCase):
    def test_order_without_database(self):
        handlers = build_default_handlers(
            ErrorManagerSettings(), STORE, FORMATTER, TestingConditionsManager(), mailer=MagicMock()
        )
        self.assertEqual([h.name() for h in handlers], ["log", "email", "slack", "ui", "recovery", "simulation"])

    def test_database_handler_second(self):
        handlers = build_default_handlers(
            ErrorManagerSettings(),
            STORE,
            FORMATTER,
            TestingConditionsManager(),
            session_factory=MagicMock(),
            mailer=MagicMock(),
        )
        self.assertEqual(handlers[1].name(), "database")


if __name__ == "__main__":
    unittest.main()
