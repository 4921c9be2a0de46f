"""Developer e-mail notifications for errors that ask for them."""
from __future__ import annotations

import asyncio
import json
import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Mapping, Optional, Protocol

from uem.config.settings import EmailSettings, ErrorManagerSettings
from uem.core.exceptions import ExternalServiceError
from uem.errors.dispatcher import ErrorHandler
from uem.errors.formatter import MessageFormatter
from uem.errors.request import RequestContext
from uem.errors.sanitize import format_trace, sanitize_context
from uem.errors.store import ErrorConfigStore
from uem.errors.types import ErrorConfig

logger = logging.getLogger(__name__)

REDACTED_BY_CONFIG = "[Redacted by Config]"
CONTEXT_REDACTED_BY_CONFIG = "[Context Redacted by Config]"


class Mailer(Protocol):
    async def send(self, message: EmailMessage) -> None:
        ...


class SmtpMailer:
    """Sends through smtplib in a worker thread so the event loop is never blocked."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 25,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = False,
        timeout: float = 15.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: EmailSettings) -> SmtpMailer:
        return cls(
            settings.smtp_host,
            settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
        )

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)

    async def send(self, message: EmailMessage) -> None:
        try:
            await asyncio.to_thread(self._send_sync, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise ExternalServiceError(
                f"SMTP delivery to {self.host}:{self.port} failed", cause=exc
            ) from exc


class EmailNotificationHandler(ErrorHandler):
    def __init__(
        self,
        settings: ErrorManagerSettings,
        store: ErrorConfigStore,
        formatter: MessageFormatter,
        mailer: Optional[Mailer] = None,
    ) -> None:
        self._app = settings.app_name
        self._env = settings.environment
        self._settings = settings.email
        self._store = store
        self._formatter = formatter
        self._mailer = mailer or SmtpMailer.from_settings(settings.email)

    def name(self) -> str:
        return "email"

    def should_handle(self, config: ErrorConfig) -> bool:
        if not self._settings.enabled or not self._settings.to:
            return False
        return self._store.wants_email(config)

    def subject(self, code: str) -> str:
        return f"{self._settings.subject_prefix}{self._app} ({self._env}): {code}"

    def body(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        request: Optional[RequestContext] = None,
    ) -> str:
        s = self._settings
        meta = dict(request.metadata()) if request is not None else {}
        meta.update(context)

        def _field(enabled: bool, key: str) -> str:
            if not enabled:
                return REDACTED_BY_CONFIG
            value = meta.get(key)
            return str(value) if value is not None else "N/A"

        lines = [
            f"Application: {self._app}",
            f"Environment: {self._env}",
            f"Error Code: {code}",
            f"Type: {config.type}",
            f"Message: {self._formatter.dev_message(code, config, context)}",
            f"Timestamp: {datetime.now(timezone.utc).isoformat()}",
            f"URL: {meta.get('request_method') or 'N/A'} {meta.get('request_url') or 'N/A'}",
            f"IP Address: {_field(s.include_ip_address, 'ip_address')}",
            f"User Agent: {_field(s.include_user_agent, 'user_agent')}",
            f"User: {_field(s.include_user_details, 'user_id')}",
            "",
            "Context:",
        ]
        if s.include_context:
            lines.append(json.dumps(sanitize_context(context), indent=2, default=str, ensure_ascii=False))
        else:
            lines.append(CONTEXT_REDACTED_BY_CONFIG)

        if exception is not None:
            lines += ["", f"Exception: {type(exception).__name__}: {exception}"]
            if s.include_trace:
                lines += ["Trace:", format_trace(exception, max_lines=s.trace_max_lines)]
        return "\n".join(lines)

    def build_message(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        request: Optional[RequestContext] = None,
    ) -> EmailMessage:
        s = self._settings
        message = EmailMessage()
        message["Subject"] = self.subject(code)
        message["To"] = s.to
        if s.from_address:
            message["From"] = formataddr((s.from_name or self._app, s.from_address))
        message.set_content(self.body(code, config, context, exception, request))
        return message

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
            await self._mailer.send(self.build_message(code, config, context, exception, request))
        except Exception as exc:
            logger.error(
                "EmailNotificationHandler: failed to send notification for %s: %s",
                code, exc,
                extra={"error_code": code},
            )
            return
        logger.info(
            "EmailNotificationHandler: notification for %s sent to %s",
            code, self._settings.to,
            extra={"error_code": code},
        )
