"""Error types raised across the storefront core."""

from __future__ import annotations


class StorefrontError(Exception):
    """Base class for storefront errors."""


class StoreError(StorefrontError):
    """A read, write or subscription against the backing store failed."""


class BusinessRuleError(StorefrontError):
    """An operation was refused by a business rule; message is user-facing."""


class EmailNotConfigured(StorefrontError):
    pass


class EmailSendError(StorefrontError):
    """Email dispatch failed; the same send may be retried."""

    retryable = True

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
