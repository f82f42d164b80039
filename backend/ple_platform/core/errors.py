"""
PLE Platform - Error Taxonomy
=============================
Named failures raised by the content services and rendered by the API
exception handler as error envelopes.
"""

from __future__ import annotations

from typing import Any


class ContentError(Exception):
    code = "content_error"
    status_code = 400

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ContentError):
    code = "validation_error"
    status_code = 400


class NotAuthenticated(ContentError):
    code = "not_authenticated"
    status_code = 401

    def __init__(self, message: str = "Authentication required", *, details: Any = None) -> None:
        super().__init__(message, details=details)


class NotAuthorized(ContentError):
    code = "not_authorized"
    status_code = 403


class NotFound(ContentError):
    code = "not_found"
    status_code = 404

    def __init__(self, message: str = "Content not found", *, details: Any = None) -> None:
        super().__init__(message, details=details)


class InvalidTransition(ContentError):
    code = "invalid_transition"
    status_code = 400


class Conflict(ContentError):
    code = "conflict"
    status_code = 409


class VersionNotFound(NotFound):
    code = "version_not_found"

    def __init__(self, message: str = "Version not found", *, details: Any = None) -> None:
        super().__init__(message, details=details)


class InternalError(ContentError):
    code = "internal_error"
    status_code = 500

    def __init__(self, message: str = "Internal server error", *, details: Any = None) -> None:
        super().__init__(message, details=details)
