"""Persisted HTTP request log entries."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String

from flight_scheduler.models.base import Base, utcnow


class RequestLog(Base):
    """One handled request, written when request persistence is enabled."""

    __tablename__ = "request_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    method = Column(String(10), nullable=False)
    path = Column(String(2048), nullable=False)
    status_code = Column(Integer, nullable=False)
    client_ip = Column(String(64), nullable=True)
    duration_ms = Column(Integer, nullable=True)
    user_id = Column(Integer, nullable=True, index=True)
    user_role = Column(String(32), nullable=True)
    session_token = Column(String(512), nullable=True)
    session_fingerprint = Column(String(64), nullable=True, index=True)
    session_expires_at = Column(DateTime, nullable=True)


__all__ = ["RequestLog"]
