"""Structured logging middleware for FastAPI requests."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional

from cryptography.fernet import Fernet
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from flight_scheduler.config.settings import settings
from flight_scheduler.utils import AuthenticationError, decode_access_token

logger = logging.getLogger("flight_scheduler.middleware.structured")

COLOR_RESET = "\u001b[0m"
COLOR_GREEN = "\u001b[32m"
COLOR_CYAN = "\u001b[36m"
COLOR_YELLOW = "\u001b[33m"
COLOR_RED = "\u001b[31m"


@dataclass(slots=True)
class SessionContext:
    """Who made the request, derived from the bearer token."""

    token: str
    user_id: int | str
    role: Optional[str]
    started_at: datetime
    expires_at: Optional[datetime]
    fingerprint: str


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log one colourised line per request and optionally persist it."""

    _cipher: ClassVar[Optional[Fernet]] = None

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start_time = time.perf_counter()
        log_payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "url": str(request.url),
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }

        session_context = self._build_session_context(request)
        if session_context is not None:
            log_payload["user_id"] = session_context.user_id

        try:
            response = await call_next(request)
        except Exception as exc:
            log_payload["status_code"] = 500
            log_payload["duration_ms"] = self._elapsed_ms(start_time)
            log_payload["error"] = repr(exc)
            logger.exception(self._format_console_message(log_payload))
            raise

        log_payload["status_code"] = response.status_code
        log_payload["duration_ms"] = self._elapsed_ms(start_time)
        logger.info(self._format_console_message(log_payload))
        await self._persist_log(log_payload, session_context)
        return response

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        """Return elapsed milliseconds rounded to two decimals."""

        return round((time.perf_counter() - start_time) * 1000, 2)

    async def _persist_log(
        self,
        payload: dict[str, Any],
        session_context: SessionContext | None,
    ) -> None:
        """Write a ``RequestLog`` row when request persistence is enabled."""

        if not settings.persist_request_logs:
            return
        if payload.get("status_code") == 307:
            return

        from flight_scheduler.database import session_scope
        from flight_scheduler.models.log import RequestLog

        user_id = None
        if session_context is not None:
            try:
                user_id = int(session_context.user_id)
            except (TypeError, ValueError):
                user_id = None

        log_entry = RequestLog(
            timestamp=self._normalize_timestamp(
                datetime.fromisoformat(payload["timestamp"])
            ),
            method=payload.get("method"),
            path=payload.get("path"),
            status_code=payload.get("status_code", 0),
            client_ip=payload.get("client_ip"),
            duration_ms=self._safe_duration(payload.get("duration_ms")),
            user_id=user_id,
            user_role=session_context.role if session_context else None,
            session_token=session_context.token if session_context else None,
            session_fingerprint=session_context.fingerprint if session_context else None,
            session_expires_at=(
                self._normalize_timestamp(session_context.expires_at)
                if session_context
                else None
            ),
        )

        async with session_scope() as session:
            session.add(log_entry)
            try:
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                logger.exception("Failed to persist request log entry")

    @staticmethod
    def _safe_duration(value: Any) -> int | None:
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _normalize_timestamp(value: Optional[datetime]) -> datetime | None:
        """Return a naive UTC datetime for persistence."""

        if value is None:
            return None
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def _build_session_context(self, request: Request) -> SessionContext | None:
        """Construct an encrypted session descriptor from the bearer token."""

        token = self._extract_bearer_token(request)
        if not token:
            return None
        try:
            token_payload = decode_access_token(token)
        except AuthenticationError:
            return None

        token_user = token_payload.user or {}
        user_id = token_user.get("id") or token_payload.sub
        started_at = (token_payload.iat or datetime.now(timezone.utc)).astimezone(
            timezone.utc
        )
        expires_at = token_payload.exp.astimezone(timezone.utc)

        identifier_source = f"{user_id}:{int(started_at.timestamp())}"
        fingerprint = hashlib.sha256(identifier_source.encode("utf-8")).hexdigest()

        descriptor = {
            "session": fingerprint,
            "user_id": str(user_id),
            "role": token_payload.role,
            "started_at": started_at.isoformat(),
            "expires_at": expires_at.isoformat(),
        }
        if request.client:
            descriptor["client_ip"] = request.client.host
        user_agent = request.headers.get("user-agent")
        if user_agent:
            descriptor["user_agent"] = user_agent[:256]

        return SessionContext(
            token=self._encrypt_session_metadata(descriptor),
            user_id=user_id,
            role=token_payload.role,
            started_at=started_at,
            expires_at=expires_at,
            fingerprint=fingerprint,
        )

    @classmethod
    def _encrypt_session_metadata(cls, metadata: dict[str, Any]) -> str:
        """Encrypt session metadata into an opaque token."""

        cipher = cls._get_cipher()
        payload_bytes = json.dumps(metadata, default=str, separators=(",", ":")).encode(
            "utf-8"
        )
        return cipher.encrypt(payload_bytes).decode("utf-8")

    @classmethod
    def _get_cipher(cls) -> Fernet:
        """Return a cached Fernet cipher initialised from the JWT secret."""

        if cls._cipher is None:
            secret_bytes = (
                settings.security.jwt_secret_key.get_secret_value().encode("utf-8")
            )
            digest = hashlib.sha256(secret_bytes).digest()
            cls._cipher = Fernet(base64.urlsafe_b64encode(digest))
        return cls._cipher

    @staticmethod
    def _extract_bearer_token(request: Request) -> Optional[str]:
        auth_header = request.headers.get("authorization")
        if not auth_header:
            return None
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None
        return token

    @staticmethod
    def _format_console_message(payload: dict[str, Any]) -> str:
        """Return minimal request metadata wrapped with ANSI color codes."""

        status = payload.get("status_code") or 0
        if 200 <= status < 300:
            color = COLOR_GREEN
        elif 400 <= status < 500:
            color = COLOR_YELLOW
        elif status >= 500:
            color = COLOR_RED
        else:
            color = COLOR_CYAN

        fields = [
            ("timestamp", payload.get("timestamp")),
            ("method", payload.get("method")),
            ("url", payload.get("url")),
            ("status", status),
            ("client_ip", payload.get("client_ip")),
            ("user_id", payload.get("user_id")),
        ]
        message = ", ".join(
            f"{name}={value if value is not None else '-'}" for name, value in fields
        )
        return f"{color}{message}{COLOR_RESET}"
