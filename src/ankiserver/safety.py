"""Confirmation gate for irreversible operations."""

from .errors import ConfirmationRequired


def require_confirmation(tool_name: str, flag_name: str, args: dict) -> None:
    """Raise ConfirmationRequired unless ``args[flag_name]`` is truthy.

    Runs before the handler, so nothing has been sent to Anki when it fails.
    """
    if args.get(flag_name):
        return
    raise ConfirmationRequired(
        f"'{tool_name}' requires {flag_name}: true to prevent accidental data loss. "
        "This action cannot be undone!"
    )
