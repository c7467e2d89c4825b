"""Normalize loosely typed tool arguments into canonical Python values.

Most operations accept either a plural array (``noteIds``) or a single value
(``noteId``) for the same target set. Handlers resolve that once, at the top,
through ids_argument/names_argument and only ever see a list afterwards.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Callable, TypeVar

from .errors import MissingArgument, ValidationError

T = TypeVar("T")

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000
DEFAULT_DAYS = 30
MAX_HISTORY_DAYS = 365


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def to_number(value: Any, name: str = "value") -> float | int:
    """Coerce to int when integral, float otherwise; ValidationError if not numeric."""
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{name}' must be a number, got {value!r}") from None
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"'{name}' must be a finite number, got {value!r}")
    return int(number) if number.is_integer() else number


def to_int(value: Any, name: str = "value") -> int:
    number = to_number(value, name)
    if isinstance(number, float):
        raise ValidationError(f"'{name}' must be a whole number, got {value!r}")
    return number


def plural_argument(
    args: dict,
    plural: str,
    singular: str,
    coerce: Callable[[Any, str], T],
) -> list[T]:
    """Resolve the singular/plural pair into a non-empty list.

    The plural field wins when it is present and a sequence; otherwise the
    singular field is wrapped in a one-element list.
    """
    values = args.get(plural)
    if values is not None and _is_sequence(values):
        items = list(values)
        name = plural
    elif args.get(singular) is not None:
        items = [args[singular]]
        name = singular
    else:
        raise MissingArgument.either(plural, singular)

    if not items:
        raise MissingArgument(f"'{plural}' must contain at least one value")
    return [coerce(item, name) for item in items]


def ids_argument(args: dict, plural: str, singular: str) -> list[int]:
    """e.g. ids_argument(args, "cardIds", "cardId") -> [123, 456]"""
    return plural_argument(args, plural, singular, to_int)


def names_argument(args: dict, plural: str, singular: str) -> list[str]:
    return plural_argument(args, plural, singular, lambda value, _name: str(value))


def flag(args: dict, name: str, default: bool = False) -> bool:
    """Boolean by truthiness; absent means `default`."""
    if name not in args or args[name] is None:
        return default
    return bool(args[name])


def string_argument(args: dict, name: str, what: str | None = None) -> str:
    """Required non-blank string."""
    value = args.get(name)
    if value is None or str(value).strip() == "":
        raise MissingArgument(f"{what or repr(name)} cannot be empty")
    return str(value)


def optional_string(args: dict, name: str) -> str | None:
    value = args.get(name)
    if value is None or str(value) == "":
        return None
    return str(value)


def string_list(args: dict, name: str, what: str) -> list[str]:
    """Required non-empty array of strings (e.g. tags, field names)."""
    values = args.get(name)
    if not _is_sequence(values) or not values:
        raise MissingArgument(f"{what} array must be provided with at least one entry")
    return [str(v) for v in values]


def mapping_argument(args: dict, name: str, required: bool = True) -> dict:
    """Object argument such as ``fields``; required ones must be non-empty."""
    value = args.get(name)
    if value is None:
        if required:
            raise MissingArgument(f"'{name}' object must be provided")
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"'{name}' must be an object, got {type(value).__name__}")
    if required and not value:
        raise MissingArgument(f"'{name}' object must contain at least one entry")
    return value


def _bounded(value: Any, default: int, maximum: int | None) -> int:
    try:
        number = int(to_number(value)) if value is not None else 0
    except ValidationError:
        number = 0
    if number == 0:
        number = default
    number = max(number, 1)
    if maximum is not None:
        number = min(number, maximum)
    return number


def limit_argument(args: dict, name: str = "limit") -> int:
    """Result limit: default 100, at most 1000."""
    return _bounded(args.get(name), DEFAULT_LIMIT, MAX_LIMIT)


def days_argument(args: dict, maximum: int | None = None, name: str = "days") -> int:
    """Look-back window in days: default 30, optionally capped."""
    return _bounded(args.get(name), DEFAULT_DAYS, maximum)
