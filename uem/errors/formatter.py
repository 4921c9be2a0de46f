"""Message formatter: picks a template for an error and fills ``:placeholder`` tokens."""
from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional

from uem.config.settings import UiSettings
from uem.errors.translations import Translator
from uem.errors.types import ErrorConfig

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")
_SCALARS = (str, int, float, bool)

DIRECT_KEY_PREFIX = "errors.codes."


def hardcoded_fallback(code: str) -> str:
    return f"An unexpected error occurred. Please contact support. [Ref: {code}]"


def substitute(template: str, context: Optional[Mapping[str, Any]]) -> str:
    """Replace ``:key`` with ``str(context[key])`` for scalar values; leave other tokens alone."""
    if not context:
        return template

    def _replace(match: "re.Match[str]") -> str:
        value = context.get(match.group(1), None)
        if isinstance(value, _SCALARS):
            return str(value)
        return match.group(0)

    return _PLACEHOLDER.sub(_replace, template)


class MessageFormatter:
    def __init__(self, translator: Translator, ui: Optional[UiSettings] = None) -> None:
        self._translator = translator
        self._ui = ui or UiSettings()

    def _translate(self, key: str, context: Mapping[str, Any]) -> Optional[str]:
        value = self._translator.get(key, context)
        if not value or value == key:
            return None
        return value

    def select_user_template(self, code: str, config: ErrorConfig, context: Mapping[str, Any]) -> str:
        """Raw (unsubstituted) user template, in priority order; never empty."""
        direct = self._translate(f"{DIRECT_KEY_PREFIX}{code}", context)
        if direct is not None:
            return direct

        if config.user_message_key:
            translated = self._translate(config.user_message_key, context)
            if translated is not None:
                return translated
            logger.warning(
                "MessageFormatter: translation key %s not found for %s",
                config.user_message_key, code,
            )

        if config.user_message:
            return config.user_message

        if config.dev_message:
            if self._ui.expose_dev_message:
                logger.warning("MessageFormatter: showing developer message to user for %s", code)
                return config.dev_message
            logger.warning("MessageFormatter: %s has only a developer message; using generic text", code)

        generic = self._translate(self._ui.generic_error_message, context)
        if generic is not None:
            return generic
        logger.warning(
            "MessageFormatter: generic key %s missing, using hardcoded text", self._ui.generic_error_message
        )
        return hardcoded_fallback(code)

    def user_message(self, code: str, config: ErrorConfig, context: Optional[Mapping[str, Any]] = None) -> str:
        ctx = context or {}
        return substitute(self.select_user_template(code, config, ctx), ctx)

    def dev_message(self, code: str, config: ErrorConfig, context: Optional[Mapping[str, Any]] = None) -> str:
        ctx = context or {}
        template: Optional[str] = None
        if config.dev_message_key:
            template = self._translate(config.dev_message_key, ctx)
        if template is None and config.dev_message:
            template = config.dev_message
        if template is None:
            template = f"Dev message missing for {code}"
        return substitute(template, ctx)
