"""Slack incoming-webhook notifications (Block Kit inside a coloured attachment)."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import httpx

from uem.config.settings import ErrorManagerSettings
from uem.errors.dispatcher import ErrorHandler
from uem.errors.formatter import MessageFormatter
from uem.errors.request import RequestContext
from uem.errors.sanitize import exception_location, format_trace, sanitize_context, truncate
from uem.errors.types import ErrorConfig

logger = logging.getLogger(__name__)

_COLORS = {
    "critical": "danger",
    "error": "#FFA500",
    "warning": "warning",
    "notice": "#439FE0",
}
_TRACE_MAX_CHARS = 2800


def color_for(error_type: str) -> str:
    return _COLORS.get(error_type.lower(), "#808080")


def _mrkdwn(text: str) -> Dict[str, Any]:
    return {"type": "mrkdwn", "text": text}


def _section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": _mrkdwn(text)}


class SlackNotificationHandler(ErrorHandler):
    def __init__(
        self,
        settings: ErrorManagerSettings,
        formatter: MessageFormatter,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._app = settings.app_name
        self._env = settings.environment
        self._settings = settings.slack
        self._formatter = formatter
        self._client = http_client

    def name(self) -> str:
        return "slack"

    def should_handle(self, config: ErrorConfig) -> bool:
        s = self._settings
        wanted = (s.notify_all_critical and config.is_critical) or config.notify_slack
        return bool(wanted and s.enabled and s.webhook_url)

    def build_payload(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        request: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        s = self._settings
        meta = dict(request.metadata()) if request is not None else {}
        meta.update(context)

        fields = [
            _mrkdwn(f"*Type:*\n`{config.type.capitalize()}`"),
            _mrkdwn(f"*Blocking:*\n`{config.blocking}`"),
            _mrkdwn(f"*Time:*\n{datetime.now(timezone.utc):%Y-%m-%d %H:%M:%S UTC}"),
            _mrkdwn(f"*URL:*\n{meta.get('request_url') or 'N/A'}"),
        ]
        if s.include_ip_address and meta.get("ip_address"):
            fields.append(_mrkdwn(f"*IP Address:*\n`{meta['ip_address']}`"))
        if s.include_user_details and meta.get("user_id") is not None:
            fields.append(_mrkdwn(f"*User ID:*\n`{meta['user_id']}`"))

        dev_message = self._formatter.dev_message(code, config, context)
        blocks: List[Dict[str, Any]] = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"\U0001F6A8 {self._app} ({self._env}) Error: {code}",
                    "emoji": True,
                },
            },
            {"type": "section", "fields": fields},
            _section(f"*Message:*\n>{truncate(dev_message, 1000)}"),
        ]

        if exception is not None:
            blocks.append(
                _section(f"*Exception:*\n```{type(exception).__name__}: {truncate(str(exception), 500)}```")
            )
            filename, lineno = exception_location(exception)
            if filename:
                blocks.append(_section(f"*Location:*\n`{filename}:{lineno}`"))
            if s.include_trace_snippet:
                trace = format_trace(exception, max_lines=s.trace_max_lines, max_length=_TRACE_MAX_CHARS)
                blocks.append(_section(f"*Trace Snippet (Top {s.trace_max_lines}):*\n```{trace}```"))

        if s.include_context and context:
            text = json.dumps(
                sanitize_context(context, max_string_length=200, summarize_collections=True),
                indent=2, default=str, ensure_ascii=False,
            )
            truncated = len(text) > s.context_max_length
            if truncated:
                text = text[: s.context_max_length - 20] + "\n... [TRUNCATED]"
            label = "Context (Truncated)" if truncated else "Context"
            blocks.append(_section(f"*{label}:*\n```{text}```"))

        blocks.append({"type": "divider"})

        payload: Dict[str, Any] = {
            "attachments": [{"color": color_for(config.type), "blocks": blocks}],
            "username": s.username or f"{self._app} Error Bot",
            "icon_emoji": s.icon_emoji,
        }
        if s.channel:
            payload["channel"] = s.channel
        return payload

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        url = self._settings.webhook_url or ""
        if self._client is not None:
            return await self._client.post(url, json=payload, timeout=self._settings.timeout)
        async with httpx.AsyncClient(timeout=self._settings.timeout) as client:
            return await client.post(url, json=payload)

    async def handle(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        *,
        request: Optional[RequestContext] = None,
    ) -> None:
        try:
            resp = await self._post(self.build_payload(code, config, context, exception, request))
        except Exception as exc:
            logger.error(
                "SlackHandler: exception while sending notification for %s: %s",
                code, exc,
                extra={"error_code": code},
            )
            return
        if resp.is_success:
            logger.info("SlackHandler: notification for %s sent", code, extra={"error_code": code})
        else:
            logger.warning(
                "SlackHandler: notification for %s failed (status=%s): %s",
                code, resp.status_code, resp.text,
                extra={"error_code": code},
            )
