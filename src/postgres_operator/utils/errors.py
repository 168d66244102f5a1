"""Error types and sanitization utilities for the Postgres Operator."""

from __future__ import annotations

import re


class OperatorError(Exception):
    """Base class for errors raised by the operator."""


class StoreError(OperatorError):
    """Raised when the Kubernetes API rejects a request."""

    def __init__(self, message: str, status: int | None = None, reason: str | None = None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class NotFoundError(StoreError):
    """Raised when the requested object does not exist."""

    def __init__(self, kind: str, namespace: str, name: str):
        super().__init__(f"{kind} {namespace}/{name} not found", status=404, reason="NotFound")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class AlreadyExistsError(StoreError):
    """Raised when creating an object whose name is already taken."""

    def __init__(self, kind: str, namespace: str, name: str):
        super().__init__(f"{kind} {namespace}/{name} already exists", status=409, reason="AlreadyExists")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class ConflictError(StoreError):
    """Raised when a write carries a stale resourceVersion."""

    def __init__(self, kind: str, namespace: str, name: str):
        super().__init__(
            f"{kind} {namespace}/{name} was modified concurrently, retrying from a fresh read",
            status=409,
            reason="Conflict",
        )
        self.kind = kind
        self.namespace = namespace
        self.name = name


class DependencyNotFoundError(OperatorError):
    """Raised when an object the resource depends on is missing.

    Retryable: the dependency is owned by another actor and may appear later.
    """

    def __init__(self, kind: str, namespace: str, name: str):
        super().__init__(f"Referenced {kind} {namespace}/{name} not found")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class ChildOwnershipError(OperatorError):
    """Raised when an object with a child's name belongs to someone else.

    Never adopted or modified; retried until the name is freed.
    """

    def __init__(self, kind: str, namespace: str, name: str, owner: str | None = None):
        holder = f"controlled by {owner}" if owner else "not managed by this resource"
        super().__init__(f"{kind} {namespace}/{name} already exists and is {holder}")
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.owner = owner


class InvalidSpecError(OperatorError, ValueError):
    """Raised when a resource spec lacks a field needed to render children."""


class ReconcileAborted(OperatorError):
    """Raised between reconcile steps once shutdown has been requested."""


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"password[=:\s]+([^\s,;\)]+)",
    r"postgres(?:ql)?://[^:/\s]+:([^@\s]+)@",
    r"authorization[:\s]+(bearer\s+[A-Za-z0-9\-\._~\+/]+=*)",
]


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(
            pattern,
            lambda m: m.group(0).replace(m.group(1), "[REDACTED]"),
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))
