"""Caller-facing error taxonomy.

Every error that leaves the adapter is a ToolError subclass carrying an
ErrorKind tag. The dispatcher decides whether to re-raise or rewrap by
matching on the tag, never on the message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNKNOWN_OPERATION = "unknown_operation"
    MISSING_ARGUMENT = "missing_argument"
    CONFIRMATION_REQUIRED = "confirmation_required"
    NOT_FOUND = "not_found"
    VALIDATION = "validation_error"
    UPSTREAM_FAILURE = "upstream_failure"
    INVALID_RESOURCE = "invalid_resource"


class ToolError(Exception):
    """Base exception for errors reported back to the caller."""

    kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE

    def with_context(self, context: str) -> ToolError:
        """Return an error of the same kind with `context` prefixed."""
        return type(self)(f"{context}: {self}")


class UnknownOperation(ToolError):
    """Operation name is not in the catalog."""
    kind = ErrorKind.UNKNOWN_OPERATION


class MissingArgument(ToolError):
    """A required argument was not supplied."""
    kind = ErrorKind.MISSING_ARGUMENT

    @classmethod
    def either(cls, plural: str, singular: str) -> MissingArgument:
        return cls(f"Either '{plural}' array or '{singular}' must be provided")


class ConfirmationRequired(ToolError):
    """A destructive operation was called without its confirmation flag."""
    kind = ErrorKind.CONFIRMATION_REQUIRED


class NotFound(ToolError):
    """A named deck, model, note, card or profile does not exist."""
    kind = ErrorKind.NOT_FOUND

    @classmethod
    def named(cls, what: str, name: object, available: list[str] | None = None) -> NotFound:
        message = f"{what} '{name}' not found."
        if available is not None:
            message += f" Available {what.lower()}s: {', '.join(available) or '(none)'}"
        return cls(message)


class ValidationError(ToolError):
    """A value is out of range or badly formatted."""
    kind = ErrorKind.VALIDATION


class UpstreamFailure(ToolError):
    """The collection service call failed."""
    kind = ErrorKind.UPSTREAM_FAILURE


class InvalidResource(ToolError):
    """Resource URI does not address one of the known views."""
    kind = ErrorKind.INVALID_RESOURCE


# Detected locally and already caller-actionable; passed through untouched.
PASSTHROUGH_KINDS = frozenset({ErrorKind.NOT_FOUND, ErrorKind.CONFIRMATION_REQUIRED})
