"""Read-only card views addressed by anki:// URIs."""

from __future__ import annotations

import json
from dataclasses import asdict
from urllib.parse import urlparse

from loguru import logger

from .client import AnkiClient, AnkiConnectError, AnkiConnectionError
from .errors import InvalidResource, UpstreamFailure
from .models import Card
from .query import translate_query
from .sanitize import SanitizeMode, sanitize

RESOURCE_SCHEME = "anki"
RESOURCE_MIME_TYPE = "application/json"

RESOURCES = [
    {
        "uri": "anki://search/deckcurrent",
        "mimeType": RESOURCE_MIME_TYPE,
        "name": "Current Deck",
        "description": "Current Anki deck",
    },
    {
        "uri": "anki://search/isdue",
        "mimeType": RESOURCE_MIME_TYPE,
        "name": "Due cards",
        "description": "Cards in review and learning waiting to be studied",
    },
    {
        "uri": "anki://search/isnew",
        "mimeType": RESOURCE_MIME_TYPE,
        "name": "New cards",
        "description": "All unseen cards",
    },
]

RESOURCE_TOKENS = frozenset(r["uri"].rsplit("/", 1)[-1] for r in RESOURCES)


def resource_token(uri: str) -> str:
    """Extract the filter token (last path segment) from a resource URI."""
    parsed = urlparse(uri)
    if parsed.scheme != RESOURCE_SCHEME:
        raise InvalidResource(f"Invalid resource URI '{uri}': expected the {RESOURCE_SCHEME}:// scheme")
    token = parsed.path.rstrip("/").rsplit("/", 1)[-1]
    if token not in RESOURCE_TOKENS:
        known = ", ".join(r["uri"] for r in RESOURCES)
        raise InvalidResource(f"Unknown resource '{uri}'. Available resources: {known}")
    return token


async def find_cards_and_order(anki: AnkiClient, token: str) -> list[Card]:
    """Fetch cards for a filter token, sanitized and ordered by due value."""
    query = translate_query(token)
    card_ids = await anki.find_cards(query)
    if not card_ids:
        return []
    infos = await anki.cards_info(card_ids)
    cards = [
        Card(
            cardId=info.get("cardId"),
            question=sanitize(info.get("question", ""), SanitizeMode.LINES),
            answer=sanitize(info.get("answer", ""), SanitizeMode.LINES),
            due=info.get("due", 0),
        )
        for info in infos or []
    ]
    cards.sort(key=lambda c: c.due)
    logger.debug("Query {!r} matched {} card(s)", query, len(cards))
    return cards


async def read_resource(anki: AnkiClient, uri: str) -> dict:
    """Serve one of the three card views as a JSON resource."""
    token = resource_token(uri)
    try:
        cards = await find_cards_and_order(anki, token)
    except AnkiConnectionError as e:
        raise UpstreamFailure(f"Failed to read resource '{uri}'. Anki is not reachable: {e}") from e
    except AnkiConnectError as e:
        raise UpstreamFailure(f"Failed to read resource '{uri}'. Error: {e}") from e
    return {
        "contents": [{
            "uri": uri,
            "mimeType": RESOURCE_MIME_TYPE,
            "text": json.dumps([asdict(c) for c in cards], ensure_ascii=False),
        }]
    }


def list_resources() -> dict:
    return {"resources": [dict(r) for r in RESOURCES]}
