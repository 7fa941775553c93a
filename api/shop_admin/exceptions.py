"""Exception classes raised by services and mapped to HTTP responses in main.py."""
from __future__ import annotations
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base exception class for all application errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or out-of-range input (e.g. negative stock)."""
    status_code = 400


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class PermissionDeniedError(AppError):
    """Authenticated but not allowed (e.g. non-admin)."""
    status_code = 403


class NotFoundError(AppError):
    """Unknown product, variant, order, customer, category."""
    status_code = 404


class ConflictError(AppError):
    """Illegal state transition or delete blocked by dependent records."""
    status_code = 409
