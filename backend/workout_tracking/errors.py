"""
Error taxonomy for the tracking core.

Every error carries a stable ``kind`` and a human-readable message. The HTTP
layer maps ``status_code`` onto the response; nothing here is retried by the
service itself.
"""
from __future__ import annotations
from typing import Any


class TrackingError(Exception):
    kind = "tracking_error"
    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, **self.extra}


class ValidationError(TrackingError):
    kind = "validation_error"
    status_code = 422


class InvalidSetIndex(ValidationError):
    kind = "invalid_set_index"

    def __init__(self, set_index: int, set_count: int):
        super().__init__(
            f"set_index {set_index} out of range (exercise has {set_count} sets)",
            set_index=set_index,
        )


class VersionConflict(TrackingError):
    kind = "version_conflict"
    status_code = 409

    def __init__(self, current_version: int, expected_version: int):
        super().__init__(
            f"Version conflict: expected {expected_version}, current is {current_version}",
            current_payload_version=current_version,
        )
        self.current_version = current_version
        self.expected_version = expected_version


class UnsupportedSchemaVersion(TrackingError):
    kind = "unsupported_schema_version"
    status_code = 500

    def __init__(self, version: int, latest: int):
        super().__init__(f"Unsupported payload schema_version {version} (latest known is {latest})")
        self.version = version


class NotFound(TrackingError):
    kind = "not_found"
    status_code = 404


class Forbidden(TrackingError):
    kind = "forbidden"
    status_code = 403


class SessionClosed(TrackingError):
    kind = "session_closed"
    status_code = 409


class GeneratorError(TrackingError):
    kind = "generator_error"
    status_code = 502


class AlreadyExists(Exception):
    """Raised by the ledger when a command_id has already been recorded."""
