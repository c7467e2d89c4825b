"""Route a tool call to its handler and shape the result for the caller.

Order of checks for every call:
    1. the name must be in the catalog
    2. destructive tools need their confirmation flag
    3. every ``required`` field of the schema must be present
    4. the handler runs; its result becomes a text content envelope

No AnkiConnect traffic happens unless all three checks pass.
"""

from __future__ import annotations

import json
import time
from typing import Any, TYPE_CHECKING

from loguru import logger

from .client import AnkiConnectionError
from .errors import PASSTHROUGH_KINDS, MissingArgument, ToolError, UnknownOperation, UpstreamFailure
from .safety import require_confirmation
from .tool_handlers import HANDLERS
from .tools import DESTRUCTIVE_TOOLS, get_tool

if TYPE_CHECKING:
    from .client import AnkiClient


def to_envelope(result: Any) -> dict:
    """Wrap a handler result as a single text content block."""
    text = result if isinstance(result, str) else json.dumps(result, ensure_ascii=False, indent=2)
    return {"content": [{"type": "text", "text": text}]}


def _missing_required(tool: dict, args: dict, skip: str | None) -> list[str]:
    required = tool["inputSchema"].get("required", [])
    return [field for field in required if field != skip and args.get(field) is None]


async def dispatch(anki: AnkiClient, name: str, arguments: dict | None) -> dict:
    """Execute a tool call by name.

    Raises a ToolError subclass on failure. NotFound and ConfirmationRequired
    pass through untouched; other local errors gain a "Failed to <action>"
    prefix; anything raised by AnkiConnect becomes UpstreamFailure.
    """
    tool = get_tool(name)
    entry = HANDLERS.get(name)
    if tool is None or entry is None:
        raise UnknownOperation(f"Unknown tool: '{name}'")

    args = dict(arguments or {})
    confirm_flag = DESTRUCTIVE_TOOLS.get(name)
    if confirm_flag:
        require_confirmation(name, confirm_flag, args)

    missing = _missing_required(tool, args, confirm_flag)
    if missing:
        raise MissingArgument(
            f"Failed to {entry.action}: missing required argument(s): {', '.join(missing)}"
        )

    logger.info("Tool call: {} args={}", name, sorted(args))
    start = time.monotonic()
    try:
        result = await entry.fn(anki, args)
    except ToolError as e:
        logger.warning("Tool {} failed ({}): {}", name, e.kind.value, e)
        if e.kind in PASSTHROUGH_KINDS:
            raise
        raise e.with_context(f"Failed to {entry.action}") from e
    except AnkiConnectionError as e:
        logger.warning("Tool {} could not reach Anki: {}", name, e)
        raise UpstreamFailure(
            f"Failed to {entry.action}. Anki is not reachable. {entry.hint} Error: {e}"
        ) from e
    except Exception as e:
        logger.warning("Tool {} failed upstream: {}", name, e)
        raise UpstreamFailure(f"Failed to {entry.action}. {entry.hint} Error: {e}") from e

    logger.debug("Tool {} finished in {:.3f}s", name, time.monotonic() - start)
    return to_envelope(result)
