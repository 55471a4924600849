"""Exceptions shared by the flight sync, stats and admin services."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ShapeNotFound(Exception):
    """No array of flight records could be located in an API document."""

    def __init__(self, document: Any):
        super().__init__("Could not locate an array of flight records in the API response")
        self.document = document


class SyncError(Exception):
    """A flight sync failed; ``stage`` names the step that broke."""

    def __init__(self, stage: str, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.stage = stage
        self.message = message
        self.detail = detail or {}


class ValidationError(Exception):
    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))
        self.errors = errors


__all__ = ["ShapeNotFound", "SyncError", "ValidationError"]
