"""Tests for the server-side error pipeline.

Covers:
- ErrorConfig / ErrorConfigStore: wire names, type and blocking defaults
- ConfigResolver: runtime entries and the fallback chain
- MessageFormatter: template selection order and placeholder substitution
- HandlerDispatcher: ordering and failure isolation
- ResponseBuilder: JSON / raise / flash decision
- ErrorManager: end-to-end handle()
"""
from __future__ import annotations

import asyncio
import json
import unittest

from uem.config.settings import ErrorManagerSettings, UiSettings
from uem.core.exceptions import ConfigurationError, UltraErrorException
from uem.errors.builder import ResponseBuilder
from uem.errors.definitions import build_store
from uem.errors.dispatcher import ErrorHandler, HandlerDispatcher
from uem.errors.formatter import MessageFormatter, hardcoded_fallback, substitute
from uem.errors.manager import ErrorManager
from uem.errors.request import StaticRequest
from uem.errors.resolver import ConfigResolver
from uem.errors.store import ErrorConfigStore
from uem.errors.translations import EN_TRANSLATIONS, DictTranslator
from uem.errors.types import (
    FALLBACK_ERROR,
    FATAL_FALLBACK_FAILURE,
    UNDEFINED_ERROR_CODE,
    BlockingLevelDefaults,
    ErrorConfig,
    ErrorInfo,
    ErrorTypeDefaults,
)


# ─── helpers ─────────────────────────────────────────────────────────────────

def _run(coro):
    return asyncio.run(coro)


def _store(errors=None, *, types=None, blocking_levels=None, fallback_error=None):
    return ErrorConfigStore.from_dict(
        {
            "errors": errors or {},
            "types": types if types is not None else {
                "critical": {"log_level": "critical", "notify_team": True, "http_status": 500},
                "error": {"log_level": "error", "notify_team": False, "http_status": 400},
                "warning": {"log_level": "warning", "notify_team": False, "http_status": 400},
                "notice": {"log_level": "notice", "notify_team": False, "http_status": 200},
            },
            "blocking_levels": blocking_levels if blocking_levels is not None else {
                "blocking": {"terminate_request": True},
                "semi-blocking": {"terminate_request": False, "flash_session": True},
                "not": {"terminate_request": False, "flash_session": True},
            },
            "fallback_error": fallback_error,
        }
    )


def _info(**overrides):
    values = {
        "error_code": "FILE_NOT_FOUND",
        "type": "error",
        "blocking": "semi-blocking",
        "message": "dev text",
        "user_message": "The requested file could not be found.",
        "http_status_code": 404,
        "context": {"path": "/tmp/x"},
        "display_mode": "div",
        "timestamp": "2024-01-01T00:00:00+00:00",
    }
    values.update(overrides)
    return ErrorInfo(**values)


class _RecordingHandler(ErrorHandler):
    def __init__(self, label, calls, *, applies=True, fail=False):
        self._label = label
        self._calls = calls
        self._applies = applies
        self._fail = fail

    def name(self):
        return self._label

    def should_handle(self, config):
        return self._applies

    async def handle(self, code, config, context, exception=None, *, request=None):
        self._calls.append((self._label, code, dict(context), exception, request))
        if self._fail:
            raise RuntimeError(f"{self._label} exploded")


# ─── ErrorConfig / ErrorConfigStore ──────────────────────────────────────────

class TestErrorConfig(unittest.TestCase):
    def test_from_dict_accepts_wire_names(self):
        cfg = ErrorConfig.from_dict(
            {
                "type": "critical",
                "blocking": "semi-blocking",
                "http_status_code": "503",
                "msg_to": "toast",
                "devTeam_email_need": True,
                "team": "payments",
            }
        )
        self.assertEqual(cfg.display_mode, "toast")
        self.assertTrue(cfg.notify_email)
        self.assertEqual(cfg.http_status_code, 503)
        self.assertEqual(cfg.extra, {"team": "payments"})
        self.assertTrue(cfg.is_critical)

    def test_display_mode_alias(self):
        self.assertEqual(ErrorConfig.from_dict({"display_mode": "log-only"}).display_mode, "log-only")

    def test_to_dict_uses_wire_names_and_keeps_extra(self):
        cfg = ErrorConfig.from_dict({"type": "warning", "msg_to": "div", "devTeam_email_need": False, "x": 1})
        out = cfg.to_dict()
        self.assertEqual(out["msg_to"], "div")
        self.assertFalse(out["devTeam_email_need"])
        self.assertEqual(out["x"], 1)
        self.assertNotIn("http_status_code", out)

    def test_is_hashable_and_extra_is_read_only(self):
        cfg = ErrorConfig.from_dict({"type": "warning", "team": "payments"})
        self.assertEqual(hash(cfg), hash(ErrorConfig.from_dict({"type": "warning", "team": "payments"})))
        with self.assertRaises(TypeError):
            cfg.extra["team"] = "billing"
        self.assertEqual(cfg.to_dict()["team"], "payments")

    def test_rejects_non_mapping_entries(self):
        for build in (ErrorConfig.from_dict, ErrorTypeDefaults.from_dict, BlockingLevelDefaults.from_dict):
            with self.subTest(build=build):
                with self.assertRaises(ConfigurationError):
                    build("not-an-object")

    def test_rejects_unknown_type(self):
        with self.assertRaises(ConfigurationError):
            ErrorConfig.from_dict({"type": "fatal"})

    def test_rejects_unknown_display_mode(self):
        with self.assertRaises(ConfigurationError):
            ErrorConfig.from_dict({"msg_to": "popup"})


class TestErrorConfigStore(unittest.TestCase):
    def test_http_status_prefers_config_then_type(self):
        store = _store()
        self.assertEqual(store.http_status_for(ErrorConfig(type="warning", http_status_code=422)), 422)
        self.assertEqual(store.http_status_for(ErrorConfig(type="notice")), 200)

    def test_http_status_without_type_defaults_is_500(self):
        store = _store(types={})
        self.assertEqual(store.http_status_for(ErrorConfig(type="warning")), 500)

    def test_wants_email_falls_back_to_type_notify_team(self):
        store = _store()
        self.assertTrue(store.wants_email(ErrorConfig(type="critical")))
        self.assertFalse(store.wants_email(ErrorConfig(type="error")))
        self.assertFalse(store.wants_email(ErrorConfig(type="critical", notify_email=False)))

    def test_blocking_defaults_for_missing_level(self):
        store = _store(blocking_levels={})
        self.assertTrue(store.blocking_defaults("blocking").terminate_request)
        self.assertFalse(store.blocking_defaults("not").terminate_request)
        self.assertTrue(store.blocking_defaults("semi-blocking").flash_session)

    def test_codes_filtered_by_type(self):
        store = _store({"A": {"type": "warning"}, "B": {"type": "critical"}, "C": {"type": "warning"}})
        self.assertEqual(store.codes("warning"), ["A", "C"])
        self.assertEqual(store.errors_by_type(), {"warning": ["A", "C"], "critical": ["B"]})

    def test_payload_can_be_loaded_again(self):
        store = build_store()
        again = ErrorConfigStore.from_dict(store.to_payload())
        self.assertEqual(sorted(again.errors), sorted(store.errors))
        self.assertEqual(again.get("VALIDATION_ERROR"), store.get("VALIDATION_ERROR"))

    def test_invalid_entry_names_the_code(self):
        with self.assertRaises(ConfigurationError) as ctx:
            _store({"BROKEN": {"type": "nope"}})
        self.assertEqual(ctx.exception.details["code"], "BROKEN")

    def test_section_must_be_mapping(self):
        with self.assertRaises(ConfigurationError):
            ErrorConfigStore.from_dict({"errors": ["A"]})


# ─── ConfigResolver ──────────────────────────────────────────────────────────

class TestConfigResolver(unittest.TestCase):
    def test_known_code_resolves_to_itself(self):
        resolver = ConfigResolver(_store({"KNOWN": {"type": "error"}}))
        resolved = resolver.resolve("KNOWN", {"a": 1})
        self.assertEqual(resolved.code, "KNOWN")
        self.assertFalse(resolved.used_fallback)
        self.assertEqual(resolved.context, {"a": 1})

    def test_runtime_definition_shadows_static(self):
        resolver = ConfigResolver(_store({"CODE": {"type": "error"}}))
        resolver.define_error("CODE", {"type": "notice", "blocking": "not"})
        self.assertEqual(resolver.get_error_config("CODE").type, "notice")
        self.assertEqual(resolver.runtime_codes(), ["CODE"])
        self.assertTrue(resolver.has("CODE"))

    def test_unknown_code_uses_undefined_entry(self):
        resolver = ConfigResolver(_store({UNDEFINED_ERROR_CODE: {"type": "critical"}}))
        ctx = {"a": 1}
        resolved = resolver.resolve("NOPE", ctx)
        self.assertEqual(resolved.code, UNDEFINED_ERROR_CODE)
        self.assertEqual(resolved.original_code, "NOPE")
        self.assertEqual(resolved.context["_original_code"], "NOPE")
        self.assertNotIn("_original_code", ctx)

    def test_falls_back_to_fallback_error(self):
        resolver = ConfigResolver(_store(fallback_error={"type": "critical", "blocking": "blocking"}))
        resolved = resolver.resolve("NOPE")
        self.assertEqual(resolved.code, FALLBACK_ERROR)
        self.assertTrue(resolved.used_fallback)

    def test_missing_fallback_is_fatal(self):
        resolver = ConfigResolver(_store())
        boom = ValueError("root cause")
        with self.assertRaises(UltraErrorException) as ctx:
            resolver.resolve("NOPE", {"k": "v"}, boom)
        exc = ctx.exception
        self.assertEqual(exc.string_code, FATAL_FALLBACK_FAILURE)
        self.assertEqual(exc.http_status, 500)
        self.assertIs(exc.previous, boom)
        self.assertEqual(exc.context["_original_code"], "NOPE")


# ─── MessageFormatter ────────────────────────────────────────────────────────

class TestMessageFormatter(unittest.TestCase):
    def _formatter(self, catalogue, **ui):
        return MessageFormatter(DictTranslator(catalogue), UiSettings(**ui))

    def test_direct_code_translation_wins(self):
        fmt = self._formatter(
            {"errors": {"codes": {"X": "Direct :name"}, "user": {"x": "Keyed"}, "generic_error": "G"}}
        )
        cfg = ErrorConfig(user_message_key="errors.user.x", user_message="Literal")
        self.assertEqual(fmt.user_message("X", cfg, {"name": "Ada"}), "Direct Ada")

    def test_user_key_then_literal(self):
        fmt = self._formatter({"errors": {"user": {"x": "Keyed"}, "generic_error": "G"}})
        self.assertEqual(fmt.user_message("X", ErrorConfig(user_message_key="errors.user.x")), "Keyed")
        cfg = ErrorConfig(user_message_key="errors.user.missing", user_message="Literal")
        self.assertEqual(fmt.user_message("X", cfg), "Literal")

    def test_dev_message_hidden_from_users_by_default(self):
        fmt = self._formatter({"errors": {"generic_error": "Generic"}})
        cfg = ErrorConfig(dev_message="SQL failed on users table")
        with self.assertLogs("uem.errors.formatter", level="WARNING"):
            self.assertEqual(fmt.user_message("X", cfg), "Generic")

    def test_dev_message_shown_when_exposed(self):
        fmt = self._formatter({"errors": {"generic_error": "Generic"}}, expose_dev_message=True)
        cfg = ErrorConfig(dev_message="SQL failed on :table")
        self.assertEqual(fmt.user_message("X", cfg, {"table": "users"}), "SQL failed on users")

    def test_hardcoded_text_when_generic_key_missing(self):
        fmt = self._formatter({})
        self.assertEqual(fmt.user_message("X", ErrorConfig()), hardcoded_fallback("X"))
        self.assertIn("[Ref: X]", hardcoded_fallback("X"))

    def test_dev_message_order(self):
        fmt = self._formatter({"errors": {"dev": {"x": "Keyed dev :id"}}})
        self.assertEqual(fmt.dev_message("X", ErrorConfig(dev_message_key="errors.dev.x"), {"id": 7}), "Keyed dev 7")
        self.assertEqual(fmt.dev_message("X", ErrorConfig(dev_message="Literal")), "Literal")
        self.assertEqual(fmt.dev_message("X", ErrorConfig()), "Dev message missing for X")


class TestSubstitute(unittest.TestCase):
    def test_scalars_are_substituted(self):
        self.assertEqual(substitute("File :fileName (:size bytes, ok=:ok)", {"fileName": "a.pdf", "size": 10, "ok": True}),
                         "File a.pdf (10 bytes, ok=True)")

    def test_unknown_and_non_scalar_tokens_are_left(self):
        self.assertEqual(substitute("A :missing :items", {"items": [1, 2]}), "A :missing :items")

    def test_no_context(self):
        self.assertEqual(substitute("Hi :name", None), "Hi :name")

    def test_times_are_not_placeholders(self):
        self.assertEqual(substitute("at 12:30", {"30": "x"}), "at 12:30")


# ─── HandlerDispatcher ───────────────────────────────────────────────────────

class TestHandlerDispatcher(unittest.TestCase):
    def test_runs_applicable_handlers_in_order(self):
        calls = []
        dispatcher = HandlerDispatcher()
        dispatcher.register(_RecordingHandler("first", calls))
        dispatcher.register(_RecordingHandler("skipped", calls, applies=False))
        dispatcher.register(_RecordingHandler("second", calls))

        count = _run(dispatcher.dispatch("CODE", ErrorConfig(), {"a": 1}))

        self.assertEqual(count, 2)
        self.assertEqual([c[0] for c in calls], ["first", "second"])

    def test_failing_handler_does_not_stop_others(self):
        calls = []
        dispatcher = HandlerDispatcher()
        dispatcher.register(_RecordingHandler("first", calls))
        dispatcher.register(_RecordingHandler("mailer", calls, fail=True))
        dispatcher.register(_RecordingHandler("third", calls))

        with self.assertLogs("uem.errors.dispatcher", level="ERROR") as logs:
            count = _run(dispatcher.dispatch("CODE", ErrorConfig(), {}))

        self.assertEqual(count, 3)
        self.assertEqual([c[0] for c in calls], ["first", "mailer", "third"])
        self.assertEqual(len(logs.records), 1)
        self.assertIn("mailer", logs.records[0].getMessage())

    def test_same_instance_registered_once(self):
        dispatcher = HandlerDispatcher()
        handler = _RecordingHandler("one", [])
        self.assertTrue(dispatcher.register(handler))
        self.assertFalse(dispatcher.register(handler))
        self.assertEqual(len(dispatcher), 1)

    def test_request_is_passed_through(self):
        calls = []
        dispatcher = HandlerDispatcher()
        dispatcher.register(_RecordingHandler("one", calls))
        request = StaticRequest(path="/x")
        _run(dispatcher.dispatch("CODE", ErrorConfig(), {}, request=request))
        self.assertIs(calls[0][4], request)


# ─── ResponseBuilder ─────────────────────────────────────────────────────────

class TestResponseBuilder(unittest.TestCase):
    def setUp(self):
        self.builder = ResponseBuilder(_store())

    def test_json_request_gets_envelope(self):
        request = StaticRequest(path="/upload", accept="application/json")
        resp = self.builder.build(_info(), request)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(
            json.loads(resp.body),
            {
                "error": "FILE_NOT_FOUND",
                "message": "The requested file could not be found.",
                "blocking": "semi-blocking",
                "display_mode": "div",
            },
        )

    def test_api_path_counts_as_json(self):
        resp = self.builder.build(_info(blocking="blocking"), StaticRequest(path="/api/files/1"))
        self.assertEqual(resp.status_code, 404)

    def test_ajax_header_counts_as_json(self):
        request = StaticRequest(path="/page", requested_with="XMLHttpRequest")
        self.assertTrue(self.builder.is_json_transport(request))

    def test_blocking_html_raises(self):
        with self.assertRaises(UltraErrorException) as ctx:
            self.builder.build(_info(blocking="blocking"), StaticRequest(path="/page"))
        self.assertEqual(ctx.exception.string_code, "FILE_NOT_FOUND")
        self.assertEqual(ctx.exception.http_status, 404)
        self.assertEqual(ctx.exception.context, {"path": "/tmp/x"})

    def test_non_blocking_html_flashes_and_continues(self):
        request = StaticRequest(path="/page")
        self.assertIsNone(self.builder.build(_info(), request))
        self.assertEqual(request.flashes["error_div"], "The requested file could not be found.")

    def test_existing_flash_is_kept(self):
        request = StaticRequest(path="/page", flashes={"error_div": "from ui handler"})
        self.builder.build(_info(), request)
        self.assertEqual(request.flashes["error_div"], "from ui handler")

    def test_log_only_does_not_flash(self):
        request = StaticRequest(path="/page")
        self.assertIsNone(self.builder.build(_info(display_mode="log-only"), request))
        self.assertEqual(request.flashes, {})

    def test_force_throw_wins_over_json(self):
        boom = KeyError("x")
        with self.assertRaises(UltraErrorException) as ctx:
            self.builder.build(_info(), StaticRequest(accept="application/json"), force_throw=True, exception=boom)
        self.assertIs(ctx.exception.previous, boom)

    def test_force_throw_wins_over_non_blocking_html(self):
        request = StaticRequest(path="/page")
        with self.assertRaises(UltraErrorException) as ctx:
            self.builder.build(_info(blocking="not"), request, force_throw=True)
        self.assertEqual(ctx.exception.string_code, "FILE_NOT_FOUND")
        self.assertEqual(ctx.exception.http_status, 404)
        self.assertEqual(request.flashes, {})

    def test_no_request_non_blocking_returns_none(self):
        self.assertIsNone(self.builder.build(_info(blocking="not")))


# ─── ErrorManager ────────────────────────────────────────────────────────────

class TestErrorManager(unittest.TestCase):
    def setUp(self):
        self.calls = []
        self.manager = ErrorManager(build_store(), settings=ErrorManagerSettings(environment="testing"))
        self.manager.register_handler(_RecordingHandler("rec", self.calls))

    def test_json_request_returns_envelope_and_dispatches(self):
        request = StaticRequest(path="/api/upload", accept="application/json")
        resp = _run(self.manager.handle("VIRUS_FOUND", {"fileName": "evil.exe"}, request=request))

        body = json.loads(resp.body)
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(body["error"], "VIRUS_FOUND")
        self.assertIn('"evil.exe"', body["message"])
        self.assertEqual(body["display_mode"], "sweet-alert")
        self.assertNotIn("context", body)
        self.assertEqual(self.calls[0][1], "VIRUS_FOUND")

    def test_undefined_code_is_reported_under_undefined_entry(self):
        request = StaticRequest(accept="application/json")
        resp = _run(self.manager.handle("DOES_NOT_EXIST", request=request))
        self.assertEqual(json.loads(resp.body)["error"], UNDEFINED_ERROR_CODE)
        self.assertEqual(self.calls[0][2]["_original_code"], "DOES_NOT_EXIST")

    def test_throw_raises_after_dispatch(self):
        with self.assertRaises(UltraErrorException) as ctx:
            _run(self.manager.handle("RECORD_NOT_FOUND", {"model": "User", "id": 3}, throw=True))
        self.assertEqual(ctx.exception.string_code, "RECORD_NOT_FOUND")
        self.assertEqual(ctx.exception.http_status, 404)
        self.assertEqual(len(self.calls), 1)

    def test_non_blocking_html_returns_none(self):
        request = StaticRequest(path="/form")
        self.assertIsNone(_run(self.manager.handle("VALIDATION_ERROR", request=request)))
        self.assertIn("error_div", request.flashes)

    def test_fatal_when_no_fallback_exists(self):
        store = build_store({}, include_defaults=False, fallback_error=None)
        manager = ErrorManager(store)
        with self.assertRaises(UltraErrorException) as ctx:
            _run(manager.handle("ANY", request=StaticRequest(accept="application/json")))
        self.assertEqual(ctx.exception.string_code, FATAL_FALLBACK_FAILURE)

    def test_define_error_at_runtime(self):
        self.manager.define_error("QUOTA_EXCEEDED", {"type": "warning", "blocking": "not", "user_message": "Quota :n"})
        resp = _run(self.manager.handle("QUOTA_EXCEEDED", {"n": 5}, request=StaticRequest(accept="application/json")))
        body = json.loads(resp.body)
        self.assertEqual(body["message"], "Quota 5")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("QUOTA_EXCEEDED", self.manager.error_codes("warning"))
        self.assertIn("QUOTA_EXCEEDED", self.manager.definitions_payload()["errors"])

    def test_config_without_message_gets_generic_text(self):
        self.manager.define_error("STATIC_ERROR", {"type": "error", "blocking": "not", "http_status_code": 400})
        resp = _run(self.manager.handle("STATIC_ERROR", request=StaticRequest(accept="application/json")))
        body = json.loads(resp.body)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(body["error"], "STATIC_ERROR")
        self.assertEqual(body["message"], EN_TRANSLATIONS["errors"]["generic_error"])
        self.assertEqual(self.calls[0][1], "STATIC_ERROR")

    def test_prepare_error_info_defaults(self):
        self.manager.define_error("PLAIN", {"type": "notice", "blocking": "not"})
        resolved = self.manager.resolver.resolve("PLAIN", {})
        try:
            raise RuntimeError("disk full")
        except RuntimeError as exc:
            info = self.manager.prepare_error_info(resolved, exc)
        self.assertEqual(info.http_status_code, 200)
        self.assertEqual(info.display_mode, "div")
        self.assertEqual(info.exception["message"], "disk full")
        self.assertTrue(info.exception["class"].endswith("RuntimeError"))

    def test_error_codes_type_filter(self):
        critical = self.manager.error_codes("critical")
        self.assertIn("DATABASE_ERROR", critical)
        self.assertNotIn("VALIDATION_ERROR", critical)


if __name__ == "__main__":
    unittest.main()
