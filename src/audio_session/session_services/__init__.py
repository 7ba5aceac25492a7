"""Lifecycle services that wrap the capture session for application run loops."""

from .capture_session_service import CaptureSessionService
from .session_service import BaseSessionService, SessionService

__all__ = ["BaseSessionService", "CaptureSessionService", "SessionService"]
