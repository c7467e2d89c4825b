"""Tool handler registry.

Each handler is registered with @handler("tool_name", action, hint) and is an
async function receiving:
    anki: AnkiClient instance
    args: the raw argument bag from the caller

Handlers normalize their arguments first, then talk to AnkiConnect, and
return a dict/list (JSON-encoded by the dispatcher) or a plain string.
`action` and `hint` are used by the dispatcher to phrase failures, e.g.
"Failed to list decks. Make sure Anki is running ...".
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, TYPE_CHECKING

from .arguments import (
    MAX_HISTORY_DAYS,
    MAX_LIMIT,
    days_argument,
    flag,
    ids_argument,
    limit_argument,
    mapping_argument,
    names_argument,
    optional_string,
    string_argument,
    string_list,
    to_int,
)
from .client import AnkiConnectError
from .errors import MissingArgument, NotFound, ValidationError
from .models import DeckStats
from .resources import find_cards_and_order
from .sanitize import SanitizeMode, sanitize

if TYPE_CHECKING:
    from .client import AnkiClient

HandlerFn = Callable[["AnkiClient", dict], Awaitable[Any]]

MIN_EASE_FACTOR = 1300
MAX_EASE_FACTOR = 4000
DEFAULT_DECK = "Default"
DEFAULT_MODEL = "Basic"
DUE_TOKEN = "isdue"
NEW_TOKEN = "isnew"

_ANKI_RUNNING = "Make sure Anki is running and AnkiConnect is installed."
_DUE_SPEC = re.compile(r"^\d+(-\d+)?!?$")


@dataclass
class Handler:
    name: str
    fn: HandlerFn
    action: str
    hint: str


HANDLERS: dict[str, Handler] = {}


def handler(name: str, action: str, hint: str = _ANKI_RUNNING):
    """Decorator to register a tool handler."""
    def decorator(fn: HandlerFn) -> HandlerFn:
        HANDLERS[name] = Handler(name=name, fn=fn, action=action, hint=hint)
        return fn
    return decorator


def _iso(seconds: float | None) -> str | None:
    if not seconds:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _count_ok(result: Any, total: int) -> int:
    """AnkiConnect answers either a list of per-item booleans or one boolean."""
    if isinstance(result, list):
        return sum(1 for r in result if r)
    return total if result else 0


async def _deck_ids(anki: AnkiClient, deck_name: str) -> dict[str, int]:
    """Return all deck name -> id, raising NotFound if `deck_name` is absent."""
    decks = await anki.deck_names_and_ids()
    if deck_name not in decks:
        raise NotFound.named("Deck", deck_name, sorted(decks))
    return decks


async def _require_models(anki: AnkiClient, model_names: list[str]) -> None:
    existing = await anki.model_names()
    for name in model_names:
        if name not in existing:
            raise NotFound.named("Model", name, existing)


async def _deck_stats(anki: AnkiClient, deck_names: list[str]) -> list[DeckStats]:
    if not deck_names:
        return []
    stats = await anki.get_deck_stats(deck_names)
    return [DeckStats.from_anki(s) for s in (stats or {}).values()]


def _missing(infos: list[dict], ids: list[int], key: str) -> list[int]:
    found = {info.get(key) for info in infos or [] if info}
    return [i for i in ids if i not in found]


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------

@handler("update_cards", "update cards", "Make sure Anki is running and card IDs are valid.")
async def handle_update_cards(anki: AnkiClient, args: dict) -> dict:
    answers = args.get("answers")
    if not isinstance(answers, list) or not answers:
        raise MissingArgument("'answers' array must contain at least one {cardId, ease} entry")

    normalized = []
    for answer in answers:
        if not isinstance(answer, dict) or answer.get("cardId") is None:
            raise ValidationError("Each answer must be an object with 'cardId' and 'ease'")
        card_id = to_int(answer["cardId"], "cardId")
        ease = to_int(answer.get("ease"), "ease")
        if not 1 <= ease <= 4:
            raise ValidationError(
                f"Ease {ease} for card {card_id} must be between 1 (Again) and 4 (Easy)"
            )
        normalized.append({"cardId": card_id, "ease": ease})

    outcome = await anki.answer_cards(normalized)
    if not isinstance(outcome, list):
        outcome = [bool(outcome)] * len(normalized)

    results = []
    for i, answer in enumerate(normalized):
        ok = bool(outcome[i]) if i < len(outcome) else False
        entry = {"card_id": answer["cardId"], "ease": answer["ease"], "success": ok}
        if not ok:
            entry["error"] = "Anki scheduler rejected the answer"
        results.append(entry)

    successful = sum(1 for r in results if r["success"])
    return {
        "total_cards": len(results),
        "successful_answers": successful,
        "failed_answers": len(results) - successful,
        "results": results,
    }


@handler("add_card", "add card", "Make sure Anki is running, the deck exists, and the note type has Front/Back fields.")
async def handle_add_card(anki: AnkiClient, args: dict) -> dict:
    front = string_argument(args, "front", "Card front")
    back = string_argument(args, "back", "Card back")
    deck_name = optional_string(args, "deckName") or DEFAULT_DECK
    model_name = optional_string(args, "modelName") or DEFAULT_MODEL
    tags = [str(t) for t in args.get("tags") or []]

    note_id = await anki.add_note({
        "deckName": deck_name,
        "modelName": model_name,
        "fields": {"Front": front, "Back": back},
        "tags": tags,
    })
    card_ids = await anki.find_cards(f"nid:{note_id}")
    card_id = card_ids[0] if card_ids else None
    return {
        "success": True,
        "note_id": note_id,
        "card_id": card_id,
        "deck_name": deck_name,
        "message": f"Created card with id {card_id}",
    }


def _card_count(args: dict) -> int:
    num = to_int(args.get("num"), "num")
    if num < 0:
        raise ValidationError(f"'num' must be zero or more, got {num}")
    return min(num, MAX_LIMIT)


@handler("get_due_cards", "get due cards")
async def handle_get_due_cards(anki: AnkiClient, args: dict) -> list:
    num = _card_count(args)
    cards = await find_cards_and_order(anki, DUE_TOKEN)
    return [asdict(c) for c in cards[:num]]


@handler("get_new_cards", "get new cards")
async def handle_get_new_cards(anki: AnkiClient, args: dict) -> list:
    num = _card_count(args)
    cards = await find_cards_and_order(anki, NEW_TOKEN)
    return [asdict(c) for c in cards[:num]]


# ---------------------------------------------------------------------------
# Deck operations
# ---------------------------------------------------------------------------

@handler("list_decks", "list decks")
async def handle_list_decks(anki: AnkiClient, args: dict) -> Any:
    if flag(args, "includeStats"):
        names = await anki.deck_names()
        return [s.to_dict() for s in await _deck_stats(anki, names)]
    if flag(args, "includeIds"):
        return await anki.deck_names_and_ids()
    return await anki.deck_names()


@handler("get_deck_info", "get deck info", "Make sure Anki is running and the deck name is correct.")
async def handle_get_deck_info(anki: AnkiClient, args: dict) -> dict:
    deck_name = string_argument(args, "deckName", "Deck name")
    decks = await _deck_ids(anki, deck_name)

    result: dict[str, Any] = {"name": deck_name, "deck_id": decks[deck_name]}
    if flag(args, "includeStats"):
        stats = await _deck_stats(anki, [deck_name])
        if stats:
            s = stats[0]
            result.update(
                new_count=s.new_count,
                learn_count=s.learn_count,
                review_count=s.review_count,
                total_in_deck=s.total_in_deck,
            )
    return result


@handler("get_deck_stats", "get deck statistics", "Make sure Anki is running and deck names are correct.")
async def handle_get_deck_stats(anki: AnkiClient, args: dict) -> list:
    deck_names = names_argument(args, "deckNames", "deckName")
    return [s.to_dict() for s in await _deck_stats(anki, deck_names)]


@handler(
    "create_deck",
    "create deck",
    "Make sure Anki is running and the deck name is valid. Use '::' for nested decks (e.g., 'Parent::Child').",
)
async def handle_create_deck(anki: AnkiClient, args: dict) -> dict:
    deck_name = string_argument(args, "deckName", "Deck name")
    if any(part.strip() == "" for part in deck_name.split("::")):
        raise ValidationError(
            f"Invalid deck name '{deck_name}'. Each part separated by '::' must be non-empty. "
            "Example: 'Parent::Child'"
        )
    deck_id = await anki.create_deck(deck_name)
    return {
        "success": True,
        "deck_name": deck_name,
        "deck_id": deck_id,
        "message": f"Successfully created deck '{deck_name}'",
    }


@handler("delete_deck", "delete deck", "Make sure Anki is running and the deck exists.")
async def handle_delete_deck(anki: AnkiClient, args: dict) -> dict:
    deck_name = string_argument(args, "deckName", "Deck name")
    await _deck_ids(anki, deck_name)

    stats = await _deck_stats(anki, [deck_name])
    total_cards = stats[0].total_in_deck if stats else 0

    await anki.delete_decks([deck_name], cards_too=True)
    return {
        "success": True,
        "deck_name": deck_name,
        "cards_deleted": total_cards,
        "message": f"Successfully deleted deck '{deck_name}' and {total_cards} cards",
    }


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

@handler("get_collection_stats", "get collection statistics")
async def handle_get_collection_stats(anki: AnkiClient, args: dict) -> dict:
    stats = await _deck_stats(anki, await anki.deck_names())
    reviewed_today = await anki.get_num_cards_reviewed_today()

    result: dict[str, Any] = {
        "collection_summary": {
            "total_decks": len(stats),
            "total_cards": sum(s.total_in_deck for s in stats),
            "new_cards": sum(s.new_count for s in stats),
            "learning_cards": sum(s.learn_count for s in stats),
            "review_cards": sum(s.review_count for s in stats),
            "cards_reviewed_today": reviewed_today,
        },
        "deck_breakdown": [
            {
                "name": s.name,
                "total_cards": s.total_in_deck,
                "new_count": s.new_count,
                "learn_count": s.learn_count,
                "review_count": s.review_count,
            }
            for s in stats
        ],
    }
    if flag(args, "includeHTML"):
        result["html_report"] = await anki.get_collection_stats_html(whole_collection=True)
    return result


@handler("get_cards_reviewed_today", "get cards reviewed today")
async def handle_get_cards_reviewed_today(anki: AnkiClient, args: dict) -> dict:
    return {
        "cards_reviewed_today": await anki.get_num_cards_reviewed_today(),
        "date": date.today().isoformat(),
    }


@handler("get_review_history", "get review history")
async def handle_get_review_history(anki: AnkiClient, args: dict) -> dict:
    days = days_argument(args, maximum=MAX_HISTORY_DAYS)
    history = (await anki.get_num_cards_reviewed_by_day() or [])[:days]
    daily = [{"date": day, "cards_reviewed": count} for day, count in history]

    total = sum(d["cards_reviewed"] for d in daily)
    return {
        "period_days": days,
        "total_reviews": total,
        "average_per_day": round(total / len(daily), 2) if daily else 0,
        "max_day": max(daily, key=lambda d: d["cards_reviewed"]) if daily else {"date": "", "cards_reviewed": 0},
        "daily_history": daily,
    }


@handler("get_card_reviews", "get card reviews", "Make sure Anki is running and card IDs are valid.")
async def handle_get_card_reviews(anki: AnkiClient, args: dict) -> list:
    card_ids = ids_argument(args, "cardIds", "cardId")
    reviews = await anki.get_reviews_of_cards([str(i) for i in card_ids])

    # review["type"]: 0=learning, 1=review, 2=relearn, 3=filtered
    return [
        {
            "card_id": int(card_id),
            "review_count": len(entries),
            "reviews": [
                {
                    "review_time": _iso(r.get("id", 0) / 1000),
                    "ease": r.get("ease"),
                    "interval_days": r.get("ivl"),
                    "previous_interval_days": r.get("lastIvl"),
                    "ease_factor": r.get("factor"),
                    "time_taken_ms": r.get("time"),
                    "review_type": r.get("type"),
                }
                for r in entries
            ],
        }
        for card_id, entries in (reviews or {}).items()
    ]


async def _recent_reviews(anki: AnkiClient, days: int) -> list[list]:
    return (await anki.get_num_cards_reviewed_by_day() or [])[:days]


@handler("get_deck_performance", "get deck performance", "Make sure Anki is running and deck names are correct.")
async def handle_get_deck_performance(anki: AnkiClient, args: dict) -> dict:
    days = days_argument(args)
    if args.get("deckNames") is not None or args.get("deckName") is not None:
        deck_names = names_argument(args, "deckNames", "deckName")
    else:
        deck_names = await anki.deck_names()

    stats = await _deck_stats(anki, deck_names)
    recent = await _recent_reviews(anki, days)

    performance = []
    for s in stats:
        completed = s.total_in_deck - s.total_due
        rate = (completed / s.total_in_deck) * 100 if s.total_in_deck > 0 else 0
        performance.append({
            "deck_name": s.name,
            "deck_id": s.deck_id,
            "total_cards": s.total_in_deck,
            "completed_cards": completed,
            "due_cards": s.total_due,
            "completion_rate_percent": round(rate, 2),
            "card_distribution": {
                "new": s.new_count,
                "learning": s.learn_count,
                "review": s.review_count,
            },
            "analysis_period_days": days,
        })

    return {
        "analysis_period_days": days,
        "total_recent_reviews": sum(count for _, count in recent),
        "deck_performance": performance,
    }


@handler(
    "get_learning_stats",
    "get learning statistics",
    "Make sure Anki is running and deck name is correct (if provided).",
)
async def handle_get_learning_stats(anki: AnkiClient, args: dict) -> dict:
    days = days_argument(args)
    deck_name = optional_string(args, "deckName")
    deck_names = [deck_name] if deck_name else await anki.deck_names()

    stats = await _deck_stats(anki, deck_names)
    recent = await _recent_reviews(anki, days)

    total_cards = sum(s.total_in_deck for s in stats)
    new_cards = sum(s.new_count for s in stats)
    learning_cards = sum(s.learn_count for s in stats)
    mature_cards = total_cards - new_cards - learning_cards
    maturity = (mature_cards / total_cards) * 100 if total_cards > 0 else 0

    total_reviews = sum(count for _, count in recent)
    window = min(days, len(recent))
    most_active = {"date": "", "count": 0}
    for day, count in recent:
        if count > most_active["count"]:
            most_active = {"date": day, "count": count}

    result: dict[str, Any] = {
        "analysis_period_days": days,
        "scope": deck_name or "All decks",
        "learning_progress": {
            "total_cards": total_cards,
            "mature_cards": mature_cards,
            "learning_cards": learning_cards,
            "new_cards": new_cards,
            "maturity_rate_percent": round(maturity, 2),
        },
        "recent_activity": {
            "total_reviews": total_reviews,
            "average_reviews_per_day": round(total_reviews / window, 2) if window else 0,
            "most_active_day": most_active,
        },
    }
    if not deck_name:
        result["deck_breakdown"] = [
            {
                "name": s.name,
                "total_cards": s.total_in_deck,
                "new_count": s.new_count,
                "learn_count": s.learn_count,
                "review_count": s.review_count,
            }
            for s in stats
        ]
    return result


# ---------------------------------------------------------------------------
# Note operations
# ---------------------------------------------------------------------------

def _search_result(query: str, ids: list[int], limit: int, key: str) -> dict:
    limited = ids[:limit]
    return {
        "query": query,
        "total_found": len(ids),
        "returned_count": len(limited),
        key: limited,
        "truncated": len(ids) > limit,
    }


@handler(
    "find_notes",
    "find notes",
    "Make sure Anki is running and query syntax is correct. "
    "Examples: 'deck:Japanese', 'tag:grammar', 'front:*word*'.",
)
async def handle_find_notes(anki: AnkiClient, args: dict) -> dict:
    query = string_argument(args, "query", "Query")
    limit = limit_argument(args)
    note_ids = await anki.find_notes(query) or []
    return _search_result(query, note_ids, limit, "note_ids")


@handler("get_note_info_detailed", "get note information", "Make sure Anki is running and note IDs are valid.")
async def handle_get_note_info_detailed(anki: AnkiClient, args: dict) -> dict:
    note_ids = ids_argument(args, "noteIds", "noteId")
    infos = [n for n in await anki.notes_info(note_ids) or [] if n and n.get("noteId")]
    missing = _missing(infos, note_ids, "noteId")
    if not infos:
        raise NotFound(f"Note(s) not found: {', '.join(map(str, missing))}")

    return {
        "notes": [
            {
                "note_id": n.get("noteId"),
                "model_name": n.get("modelName"),
                "tags": n.get("tags", []),
                "fields": n.get("fields", {}),
                "cards": n.get("cards", []),
                "modification_time": _iso(n.get("mod")),
                "profile": n.get("profile"),
            }
            for n in infos
        ],
        "missing_note_ids": missing,
    }


@handler(
    "update_note_fields",
    "update note fields",
    "Make sure Anki is running, note IDs are valid, and field names exist in the note type.",
)
async def handle_update_note_fields(anki: AnkiClient, args: dict) -> dict:
    note_ids = ids_argument(args, "noteIds", "noteId")
    fields = {str(k): str(v) for k, v in mapping_argument(args, "fields").items()}

    results = []
    for note_id in note_ids:
        try:
            await anki.update_note_fields(note_id, fields)
            results.append({"note_id": note_id, "success": True})
        except AnkiConnectError as e:
            results.append({"note_id": note_id, "success": False, "error": str(e)})

    successful = sum(1 for r in results if r["success"])
    return {
        "total_notes": len(note_ids),
        "successful_updates": successful,
        "failed_updates": len(results) - successful,
        "updated_fields": list(fields),
        "results": results,
    }


@handler("delete_notes", "delete notes", "Make sure Anki is running and note IDs are valid.")
async def handle_delete_notes(anki: AnkiClient, args: dict) -> dict:
    note_ids = ids_argument(args, "noteIds", "noteId")
    infos = await anki.notes_info(note_ids) or []
    missing = _missing(infos, note_ids, "noteId")
    if missing:
        raise NotFound(f"Note(s) not found: {', '.join(map(str, missing))}. Nothing was deleted.")

    total_cards = sum(len(n.get("cards", [])) for n in infos if n)
    await anki.delete_notes(note_ids)
    return {
        "success": True,
        "deleted_notes": len(note_ids),
        "deleted_cards": total_cards,
        "note_ids": note_ids,
        "message": f"Successfully deleted {len(note_ids)} notes and {total_cards} associated cards",
    }


@handler("add_tags_to_notes", "add tags to notes", "Make sure Anki is running and note IDs are valid.")
async def handle_add_tags_to_notes(anki: AnkiClient, args: dict) -> dict:
    note_ids = ids_argument(args, "noteIds", "noteId")
    tags = string_list(args, "tags", "Tags")
    await anki.add_tags(note_ids, " ".join(tags))
    return {
        "success": True,
        "notes_updated": len(note_ids),
        "tags_added": tags,
        "note_ids": note_ids,
        "message": f"Successfully added tags [{', '.join(tags)}] to {len(note_ids)} notes",
    }


@handler("remove_tags_from_notes", "remove tags from notes", "Make sure Anki is running and note IDs are valid.")
async def handle_remove_tags_from_notes(anki: AnkiClient, args: dict) -> dict:
    note_ids = ids_argument(args, "noteIds", "noteId")
    tags = string_list(args, "tags", "Tags")
    await anki.remove_tags(note_ids, " ".join(tags))
    return {
        "success": True,
        "notes_updated": len(note_ids),
        "tags_removed": tags,
        "note_ids": note_ids,
        "message": f"Successfully removed tags [{', '.join(tags)}] from {len(note_ids)} notes",
    }


@handler("get_all_tags", "get tags")
async def handle_get_all_tags(anki: AnkiClient, args: dict) -> dict:
    tags = await anki.get_tags() or []
    if not flag(args, "includeUsage"):
        return {"total_tags": len(tags), "tags": sorted(tags)}

    usage = []
    for tag in tags:
        try:
            note_ids = await anki.find_notes(f'tag:"{tag}"')
            usage.append({"tag": tag, "note_count": len(note_ids or [])})
        except AnkiConnectError as e:
            usage.append({"tag": tag, "note_count": 0, "error": str(e)})
    usage.sort(key=lambda u: u["note_count"], reverse=True)
    return {"total_tags": len(tags), "tags_with_usage": usage}


@handler(
    "duplicate_note",
    "duplicate note",
    "Make sure Anki is running, note ID is valid, and target deck exists (if specified).",
)
async def handle_duplicate_note(anki: AnkiClient, args: dict) -> dict:
    note_id = to_int(args.get("noteId"), "noteId")
    target_deck = optional_string(args, "targetDeck")
    field_updates = mapping_argument(args, "fieldUpdates", required=False)
    additional_tags = [str(t) for t in args.get("additionalTags") or []]

    infos = await anki.notes_info([note_id])
    if not infos or not infos[0] or not infos[0].get("noteId"):
        raise NotFound.named("Note", note_id)
    original = infos[0]

    fields = original.get("fields", {})
    unknown = [name for name in field_updates if name not in fields]
    if unknown:
        raise ValidationError(
            f"Field(s) {', '.join(unknown)} do not exist on note type '{original.get('modelName')}'. "
            f"Available fields: {', '.join(fields)}"
        )
    new_fields = {
        name: str(field_updates[name] if name in field_updates else data.get("value", ""))
        for name, data in fields.items()
    }

    if target_deck is None:
        target_deck = DEFAULT_DECK
        card_ids = original.get("cards") or []
        if card_ids:
            card_infos = await anki.cards_info(card_ids[:1])
            if card_infos and card_infos[0].get("deckName"):
                target_deck = card_infos[0]["deckName"]

    new_note_id = await anki.add_note({
        "deckName": target_deck,
        "modelName": original.get("modelName"),
        "fields": new_fields,
        "tags": list(original.get("tags", [])) + additional_tags,
        "options": {"allowDuplicate": True},
    })
    return {
        "success": True,
        "original_note_id": note_id,
        "new_note_id": new_note_id,
        "target_deck": target_deck,
        "fields_updated": list(field_updates),
        "additional_tags": additional_tags,
        "message": f"Successfully duplicated note {note_id} to new note {new_note_id}",
    }


# ---------------------------------------------------------------------------
# Card operations
# ---------------------------------------------------------------------------

@handler(
    "find_cards_advanced",
    "find cards",
    "Make sure Anki is running and query syntax is correct. "
    "Examples: 'deck:Japanese prop:ease<2.0', 'is:review prop:ivl>30', 'is:suspended'.",
)
async def handle_find_cards_advanced(anki: AnkiClient, args: dict) -> dict:
    query = string_argument(args, "query", "Query")
    limit = limit_argument(args)
    card_ids = await anki.find_cards(query) or []
    return _search_result(query, card_ids, limit, "card_ids")


@handler("get_card_info_detailed", "get detailed card information", "Make sure Anki is running and card IDs are valid.")
async def handle_get_card_info_detailed(anki: AnkiClient, args: dict) -> dict:
    card_ids = ids_argument(args, "cardIds", "cardId")
    infos = [c for c in await anki.cards_info(card_ids) or [] if c and c.get("cardId")]
    missing = _missing(infos, card_ids, "cardId")
    if not infos:
        raise NotFound(f"Card(s) not found: {', '.join(map(str, missing))}")

    # type: 0=new, 1=learning, 2=review; queue: -1=suspended, 0=new, 1=learning, 2=review, 3=day learning
    return {
        "cards": [
            {
                "card_id": c.get("cardId"),
                "note_id": c.get("note"),
                "deck_name": c.get("deckName"),
                "model_name": c.get("modelName"),
                "question": sanitize(c.get("question", ""), SanitizeMode.LINES),
                "answer": sanitize(c.get("answer", ""), SanitizeMode.LINES),
                "fields": c.get("fields", {}),
                "ease_factor": c.get("factor") or None,
                "interval_days": c.get("interval"),
                "due_date": c.get("due"),
                "card_type": c.get("type"),
                "queue": c.get("queue"),
                "lapses": c.get("lapses"),
                "reviews": c.get("reps"),
                "remaining_steps": c.get("left"),
                "modification_time": _iso(c.get("mod")),
            }
            for c in infos
        ],
        "missing_card_ids": missing,
    }


@handler("suspend_cards", "suspend/unsuspend cards", "Make sure Anki is running and card IDs are valid.")
async def handle_suspend_cards(anki: AnkiClient, args: dict) -> dict:
    card_ids = ids_argument(args, "cardIds", "cardId")
    suspend = flag(args, "suspend")
    if suspend:
        result = await anki.suspend(card_ids)
    else:
        result = await anki.unsuspend(card_ids)

    action = "suspended" if suspend else "unsuspended"
    affected = _count_ok(result, len(card_ids))
    return {
        "success": True,
        "action": action,
        "cards_affected": affected,
        "total_cards": len(card_ids),
        "card_ids": card_ids,
        "message": f"Successfully {action} {affected} out of {len(card_ids)} cards",
    }


@handler(
    "set_card_due_date",
    "set card due dates",
    "Make sure Anki is running, card IDs are valid, and days format is correct (e.g., '0', '1', '3-7').",
)
async def handle_set_card_due_date(anki: AnkiClient, args: dict) -> dict:
    card_ids = ids_argument(args, "cardIds", "cardId")
    days = string_argument(args, "days", "Due date specification").strip()
    if not _DUE_SPEC.match(days):
        raise ValidationError(
            f"Invalid due date specification '{days}'. "
            "Use '0' (today), '1' (tomorrow), a range like '3-7', optionally followed by '!'"
        )

    result = await anki.set_due_date(card_ids, days)
    rescheduled = _count_ok(result, len(card_ids))
    return {
        "success": True,
        "cards_rescheduled": rescheduled,
        "total_cards": len(card_ids),
        "due_date_spec": days,
        "card_ids": card_ids,
        "message": f"Successfully rescheduled {rescheduled} out of {len(card_ids)} cards to be due in {days} days",
    }


@handler("forget_cards", "forget cards", "Make sure Anki is running and card IDs are valid.")
async def handle_forget_cards(anki: AnkiClient, args: dict) -> dict:
    card_ids = ids_argument(args, "cardIds", "cardId")
    infos = await anki.cards_info(card_ids) or []
    missing = _missing(infos, card_ids, "cardId")
    if missing:
        raise NotFound(f"Card(s) not found: {', '.join(map(str, missing))}. Nothing was reset.")

    total_reviews = sum(c.get("reps", 0) or 0 for c in infos if c)
    await anki.forget_cards(card_ids)
    return {
        "success": True,
        "cards_reset": len(card_ids),
        "total_reviews_lost": total_reviews,
        "card_ids": card_ids,
        "message": f"Successfully reset {len(card_ids)} cards to 'new' status, removing {total_reviews} total reviews",
    }


@handler(
    "set_card_ease_factors",
    "set card ease factors",
    f"Make sure Anki is running, card IDs are valid, and ease factors are within {MIN_EASE_FACTOR}-{MAX_EASE_FACTOR}.",
)
async def handle_set_card_ease_factors(anki: AnkiClient, args: dict) -> dict:
    card_ids = ids_argument(args, "cardIds", "cardId")

    if isinstance(args.get("easeFactors"), list):
        factors = [to_int(f, "easeFactors") for f in args["easeFactors"]]
        if len(factors) != len(card_ids):
            raise ValidationError(
                f"Number of ease factors ({len(factors)}) must match number of card IDs ({len(card_ids)})"
            )
    elif args.get("easeFactor") is not None:
        factors = [to_int(args["easeFactor"], "easeFactor")] * len(card_ids)
    else:
        raise MissingArgument.either("easeFactors", "easeFactor")

    for factor in factors:
        if not MIN_EASE_FACTOR <= factor <= MAX_EASE_FACTOR:
            raise ValidationError(
                f"Ease factor {factor} is outside the accepted range ({MIN_EASE_FACTOR}-{MAX_EASE_FACTOR})"
            )

    result = await anki.set_ease_factors(card_ids, factors)
    updated = _count_ok(result, len(card_ids))
    return {
        "success": True,
        "cards_updated": updated,
        "total_cards": len(card_ids),
        "ease_factors": factors,
        "card_ids": card_ids,
        "message": f"Successfully updated ease factors for {updated} out of {len(card_ids)} cards",
    }


@handler("get_card_intervals", "get card intervals", "Make sure Anki is running and card IDs are valid.")
async def handle_get_card_intervals(anki: AnkiClient, args: dict) -> dict:
    card_ids = ids_argument(args, "cardIds", "cardId")
    include_history = flag(args, "includeHistory")
    intervals = await anki.get_intervals(card_ids, complete=include_history) or []

    # Positive intervals are days, negative ones are seconds (learning steps)
    entries = []
    for i, card_id in enumerate(card_ids):
        value = intervals[i] if i < len(intervals) else None
        if include_history:
            history = value or []
            entries.append({
                "card_id": card_id,
                "current_interval": history[-1] if history else None,
                "interval_history": history,
                "total_intervals": len(history),
            })
        else:
            entries.append({
                "card_id": card_id,
                "current_interval": value,
                "interval_days": value if value and value > 0 else None,
                "interval_seconds": abs(value) if value and value < 0 else None,
            })

    return {"include_history": include_history, "card_intervals": entries}


# ---------------------------------------------------------------------------
# Model (note type) operations
# ---------------------------------------------------------------------------

@handler("list_models", "list models")
async def handle_list_models(anki: AnkiClient, args: dict) -> Any:
    names_and_ids = await anki.model_names_and_ids()
    if not flag(args, "includeDetails"):
        return names_and_ids

    models = await anki.find_models_by_id(list(names_and_ids.values()))
    # type: 0=standard, 1=cloze
    return [
        {
            "id": m.get("id"),
            "name": m.get("name"),
            "type": m.get("type"),
            "field_count": len(m.get("flds", [])),
            "template_count": len(m.get("tmpls", [])),
            "fields": [f.get("name") for f in m.get("flds", [])],
            "templates": [t.get("name") for t in m.get("tmpls", [])],
            "css_length": len(m.get("css", "")),
            "modification_time": _iso(m.get("mod")),
        }
        for m in models or []
    ]


@handler("get_model_info", "get model information", "Make sure Anki is running and model names are correct.")
async def handle_get_model_info(anki: AnkiClient, args: dict) -> list:
    model_names = names_argument(args, "modelNames", "modelName")
    await _require_models(anki, model_names)
    models = await anki.find_models_by_name(model_names)

    return [
        {
            "id": m.get("id"),
            "name": m.get("name"),
            "type": m.get("type"),
            "modification_time": _iso(m.get("mod")),
            "fields": [
                {
                    "name": f.get("name"),
                    "order": f.get("ord"),
                    "sticky": f.get("sticky"),
                    "rtl": f.get("rtl"),
                    "font": f.get("font"),
                    "size": f.get("size"),
                    "description": f.get("description") or "",
                    "collapsed": f.get("collapsed"),
                    "exclude_from_search": f.get("excludeFromSearch"),
                }
                for f in m.get("flds", [])
            ],
            "templates": [
                {
                    "name": t.get("name"),
                    "order": t.get("ord"),
                    "question_format": t.get("qfmt"),
                    "answer_format": t.get("afmt"),
                    "browser_question_format": t.get("bqfmt") or "",
                    "browser_answer_format": t.get("bafmt") or "",
                }
                for t in m.get("tmpls", [])
            ],
            "css": m.get("css"),
            "latex_pre": m.get("latexPre"),
            "latex_post": m.get("latexPost"),
            "sort_field": m.get("sortf"),
        }
        for m in models or []
    ]


@handler("get_model_fields", "get model fields", "Make sure Anki is running and model names are correct.")
async def handle_get_model_fields(anki: AnkiClient, args: dict) -> list:
    model_names = names_argument(args, "modelNames", "modelName")
    include_properties = flag(args, "includeProperties")
    await _require_models(anki, model_names)

    result = []
    for model_name in model_names:
        field_names = await anki.model_field_names(model_name) or []
        entry: dict[str, Any] = {"model_name": model_name, "field_count": len(field_names)}
        if include_properties:
            fonts = await anki.model_field_fonts(model_name) or {}
            entry["fields"] = [
                {
                    "name": name,
                    "order": index,
                    "font": fonts.get(name, {}).get("font", "Arial"),
                    "size": fonts.get(name, {}).get("size", 20),
                }
                for index, name in enumerate(field_names)
            ]
        else:
            entry["field_names"] = field_names
        result.append(entry)
    return result


@handler(
    "create_model",
    "create model",
    "Make sure Anki is running, model name is unique, and template syntax is valid.",
)
async def handle_create_model(anki: AnkiClient, args: dict) -> dict:
    model_name = string_argument(args, "modelName", "Model name")
    fields = string_list(args, "fields", "Fields")
    templates = args.get("templates")
    if not isinstance(templates, list) or not templates:
        raise MissingArgument("Templates array must be provided with at least one template")
    for template in templates:
        if not isinstance(template, dict) or not all(template.get(k) for k in ("name", "front", "back")):
            raise ValidationError("Each template must have 'name', 'front', and 'back' properties")
    css = optional_string(args, "css")
    is_cloze = flag(args, "isCloze")

    if model_name in await anki.model_names():
        raise ValidationError(f"Model '{model_name}' already exists. Choose a different name.")

    created = await anki.create_model(
        model_name,
        fields,
        [{"Name": t["name"], "Front": t["front"], "Back": t["back"]} for t in templates],
        css=css,
        is_cloze=is_cloze,
    )
    return {
        "success": True,
        "model_name": model_name,
        "model_id": created.get("id") if isinstance(created, dict) else None,
        "field_count": len(fields),
        "template_count": len(templates),
        "is_cloze": is_cloze,
        "fields": fields,
        "templates": [t["name"] for t in templates],
        "message": f"Successfully created model '{model_name}' with {len(fields)} fields and {len(templates)} templates",
    }


@handler(
    "update_model_templates",
    "update model templates",
    "Make sure Anki is running, model exists, and template syntax is valid.",
)
async def handle_update_model_templates(anki: AnkiClient, args: dict) -> dict:
    model_name = string_argument(args, "modelName", "Model name")
    templates = mapping_argument(args, "templates", required=False)
    css = optional_string(args, "css")
    if not templates and not css:
        raise MissingArgument("Provide 'templates' and/or 'css' to update")

    await _require_models(anki, [model_name])

    if templates:
        formatted = {}
        for name, data in templates.items():
            if not isinstance(data, dict):
                raise ValidationError(f"Template '{name}' must be an object with 'front' and 'back'")
            formatted[name] = {
                "Front": data.get("front") or data.get("Front"),
                "Back": data.get("back") or data.get("Back"),
            }
        await anki.update_model_templates(model_name, formatted)
    if css:
        await anki.update_model_styling(model_name, css)

    updated = []
    if templates:
        updated.append(f"{len(templates)} templates")
    if css:
        updated.append("CSS styling")
    return {
        "success": True,
        "model_name": model_name,
        "updated_templates": list(templates),
        "updated_css": bool(css),
        "message": f"Successfully updated {' and '.join(updated)} for model '{model_name}'",
    }


# ---------------------------------------------------------------------------
# Profiles and collection
# ---------------------------------------------------------------------------

@handler("get_profiles", "get profiles")
async def handle_get_profiles(anki: AnkiClient, args: dict) -> dict:
    profiles = await anki.get_profiles() or []
    return {"profiles": profiles, "profile_count": len(profiles)}


@handler("get_active_profile", "get active profile")
async def handle_get_active_profile(anki: AnkiClient, args: dict) -> dict:
    return {"active_profile": await anki.get_active_profile(), "timestamp": _now()}


@handler("switch_profile", "switch profile", "Make sure Anki is running and profile name is correct.")
async def handle_switch_profile(anki: AnkiClient, args: dict) -> dict:
    profile_name = string_argument(args, "profileName", "Profile name")
    profiles = await anki.get_profiles() or []
    if profile_name not in profiles:
        raise NotFound.named("Profile", profile_name, profiles)

    previous = await anki.get_active_profile()
    await anki.load_profile(profile_name)
    current = await anki.get_active_profile()
    return {
        "success": True,
        "previous_profile": previous,
        "new_profile": current,
        "profile_switched": current == profile_name,
        "message": f"Successfully switched from '{previous}' to '{current}'",
    }


@handler(
    "sync_collection",
    "sync collection",
    "Make sure Anki is running, you're logged into AnkiWeb, and have an internet connection.",
)
async def handle_sync_collection(anki: AnkiClient, args: dict) -> dict:
    result = await anki.sync()
    return {
        "success": True,
        "sync_result": result,
        "force_sync": flag(args, "forceSync"),
        "timestamp": _now(),
        "message": "Collection sync completed successfully",
    }


@handler("export_deck", "export deck", "Make sure Anki is running, deck exists, and file path is valid.")
async def handle_export_deck(anki: AnkiClient, args: dict) -> dict:
    deck_name = string_argument(args, "deckName", "Deck name")
    file_path = string_argument(args, "filePath", "File path")
    include_scheduling = flag(args, "includeScheduling", default=True)
    if not file_path.lower().endswith(".apkg"):
        raise ValidationError(f"File path '{file_path}' must end with .apkg extension")

    await _deck_ids(anki, deck_name)
    result = await anki.export_package(deck_name, file_path, include_sched=include_scheduling)
    return {
        "success": True,
        "deck_name": deck_name,
        "file_path": file_path,
        "include_scheduling": include_scheduling,
        "export_result": result,
        "message": f"Successfully exported deck '{deck_name}' to '{file_path}'",
    }


@handler("reload_collection", "reload collection")
async def handle_reload_collection(anki: AnkiClient, args: dict) -> dict:
    await anki.reload_collection()
    return {
        "success": True,
        "timestamp": _now(),
        "message": "Collection reloaded successfully",
    }
