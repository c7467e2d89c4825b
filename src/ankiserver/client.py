"""Async AnkiConnect client for talking to Anki desktop."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from .config import DEFAULT_ANKI_CONNECT_URL, Config

ANKI_CONNECT_VERSION = 6


class AnkiConnectError(Exception):
    """AnkiConnect returned an error or an unreadable response."""
    pass


class AnkiConnectionError(AnkiConnectError):
    """Could not reach AnkiConnect at all."""
    pass


def _loggable(params: dict) -> dict:
    """Shorten long lists so debug logs stay readable."""
    return {
        k: f"[{len(v)} items]" if isinstance(v, list) and len(v) > 10 else v
        for k, v in params.items()
    }


class AnkiClient:
    """Client for interacting with Anki via AnkiConnect.

    One method per AnkiConnect action, grouped the way AnkiConnect groups
    them. Results are returned exactly as AnkiConnect sends them.
    """

    def __init__(
        self,
        url: str = DEFAULT_ANKI_CONNECT_URL,
        version: int = ANKI_CONNECT_VERSION,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.version = version
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_config(cls, config: Config) -> AnkiClient:
        return cls(
            url=config.anki_connect_url,
            version=config.api_version,
            timeout=config.request_timeout,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> AnkiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, action: str, **params) -> Any:
        """Make a request to AnkiConnect."""
        payload = {"action": action, "version": self.version, "params": params}
        logger.debug("AnkiConnect request: action={}, params={}", action, _loggable(params))

        try:
            response = await self._http.post(self.url, json=payload)
        except httpx.TimeoutException as e:
            raise AnkiConnectionError(
                f"Anki did not respond to '{action}' in time. "
                "Check if Anki is frozen or busy syncing."
            ) from e
        except httpx.TransportError as e:
            raise AnkiConnectionError(
                "Cannot connect to Anki. Make sure Anki is running with AnkiConnect installed."
            ) from e
        except httpx.HTTPError as e:
            raise AnkiConnectError(f"AnkiConnect request for action '{action}' failed: {e}") from e

        if response.status_code >= 400:
            raise AnkiConnectError(
                f"AnkiConnect returned HTTP {response.status_code} for action '{action}'"
            )

        try:
            result = response.json()
        except ValueError as e:
            raise AnkiConnectError(
                f"Invalid response from AnkiConnect for action '{action}': {response.text[:200]}"
            ) from e

        if not isinstance(result, dict):
            raise AnkiConnectError(
                f"Unexpected response from AnkiConnect for action '{action}': {str(result)[:200]}"
            )
        if result.get("error"):
            raise AnkiConnectError(result["error"])

        return result.get("result")

    async def ping(self) -> bool:
        """Check if AnkiConnect is available."""
        try:
            return await self._request("version") is not None
        except AnkiConnectError:
            return False

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    async def find_cards(self, query: str) -> list[int]:
        return await self._request("findCards", query=query)

    async def cards_info(self, cards: list[int]) -> list[dict]:
        return await self._request("cardsInfo", cards=cards)

    async def answer_cards(self, answers: list[dict]) -> list[bool]:
        """answers: [{"cardId": int, "ease": 1-4}, ...]"""
        return await self._request("answerCards", answers=answers)

    async def suspend(self, cards: list[int]) -> bool:
        return await self._request("suspend", cards=cards)

    async def unsuspend(self, cards: list[int]) -> bool:
        return await self._request("unsuspend", cards=cards)

    async def set_due_date(self, cards: list[int], days: str) -> bool:
        return await self._request("setDueDate", cards=cards, days=days)

    async def forget_cards(self, cards: list[int]) -> None:
        return await self._request("forgetCards", cards=cards)

    async def set_ease_factors(self, cards: list[int], ease_factors: list[int]) -> list[bool]:
        return await self._request("setEaseFactors", cards=cards, easeFactors=ease_factors)

    async def get_intervals(self, cards: list[int], complete: bool = False) -> list:
        return await self._request("getIntervals", cards=cards, complete=complete)

    # ------------------------------------------------------------------
    # Notes and tags
    # ------------------------------------------------------------------

    async def find_notes(self, query: str) -> list[int]:
        return await self._request("findNotes", query=query)

    async def notes_info(self, notes: list[int]) -> list[dict]:
        return await self._request("notesInfo", notes=notes)

    async def add_note(self, note: dict) -> int:
        return await self._request("addNote", note=note)

    async def update_note_fields(self, note_id: int, fields: dict[str, str]) -> None:
        return await self._request("updateNoteFields", note={"id": note_id, "fields": fields})

    async def delete_notes(self, notes: list[int]) -> None:
        return await self._request("deleteNotes", notes=notes)

    async def add_tags(self, notes: list[int], tags: str) -> None:
        """Add tags to notes (space-separated tag string)."""
        return await self._request("addTags", notes=notes, tags=tags)

    async def remove_tags(self, notes: list[int], tags: str) -> None:
        """Remove tags from notes (space-separated tag string)."""
        return await self._request("removeTags", notes=notes, tags=tags)

    async def get_tags(self) -> list[str]:
        return await self._request("getTags")

    # ------------------------------------------------------------------
    # Decks
    # ------------------------------------------------------------------

    async def deck_names(self) -> list[str]:
        return await self._request("deckNames")

    async def deck_names_and_ids(self) -> dict[str, int]:
        return await self._request("deckNamesAndIds")

    async def get_deck_stats(self, decks: list[str]) -> dict[str, dict]:
        """Stats keyed by deck id (as a string)."""
        return await self._request("getDeckStats", decks=decks)

    async def create_deck(self, deck: str) -> int:
        return await self._request("createDeck", deck=deck)

    async def delete_decks(self, decks: list[str], cards_too: bool = True) -> None:
        return await self._request("deleteDecks", decks=decks, cardsToo=cards_too)

    # ------------------------------------------------------------------
    # Models (note types)
    # ------------------------------------------------------------------

    async def model_names(self) -> list[str]:
        return await self._request("modelNames")

    async def model_names_and_ids(self) -> dict[str, int]:
        return await self._request("modelNamesAndIds")

    async def model_field_names(self, model_name: str) -> list[str]:
        return await self._request("modelFieldNames", modelName=model_name)

    async def model_field_fonts(self, model_name: str) -> dict[str, dict]:
        return await self._request("modelFieldFonts", modelName=model_name)

    async def find_models_by_id(self, model_ids: list[int]) -> list[dict]:
        return await self._request("findModelsById", modelIds=model_ids)

    async def find_models_by_name(self, model_names: list[str]) -> list[dict]:
        return await self._request("findModelsByName", modelNames=model_names)

    async def create_model(
        self,
        model_name: str,
        in_order_fields: list[str],
        card_templates: list[dict],
        css: str | None = None,
        is_cloze: bool = False,
    ) -> dict:
        params: dict[str, Any] = {
            "modelName": model_name,
            "inOrderFields": in_order_fields,
            "cardTemplates": card_templates,
            "isCloze": is_cloze,
        }
        if css is not None:
            params["css"] = css
        return await self._request("createModel", **params)

    async def update_model_templates(self, model_name: str, templates: dict[str, dict]) -> None:
        return await self._request(
            "updateModelTemplates", model={"name": model_name, "templates": templates}
        )

    async def update_model_styling(self, model_name: str, css: str) -> None:
        return await self._request("updateModelStyling", model={"name": model_name, "css": css})

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def get_num_cards_reviewed_today(self) -> int:
        return await self._request("getNumCardsReviewedToday")

    async def get_num_cards_reviewed_by_day(self) -> list[list]:
        """[[date string, count], ...], most recent first."""
        return await self._request("getNumCardsReviewedByDay")

    async def get_reviews_of_cards(self, cards: list[str]) -> dict[str, list[dict]]:
        return await self._request("getReviewsOfCards", cards=cards)

    async def get_collection_stats_html(self, whole_collection: bool = True) -> str:
        return await self._request("getCollectionStatsHTML", wholeCollection=whole_collection)

    # ------------------------------------------------------------------
    # Profiles and miscellaneous
    # ------------------------------------------------------------------

    async def get_profiles(self) -> list[str]:
        return await self._request("getProfiles")

    async def get_active_profile(self) -> str:
        return await self._request("getActiveProfile")

    async def load_profile(self, name: str) -> bool:
        return await self._request("loadProfile", name=name)

    async def sync(self) -> None:
        """Trigger a sync with AnkiWeb."""
        return await self._request("sync")

    async def export_package(self, deck: str, path: str, include_sched: bool = True) -> bool:
        return await self._request("exportPackage", deck=deck, path=path, includeSched=include_sched)

    async def reload_collection(self) -> None:
        return await self._request("reloadCollection")
