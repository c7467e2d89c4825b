"""Data models for Anki collection views."""

from dataclasses import dataclass


@dataclass
class Card:
    """A card as served by the due/new/current-deck views."""

    cardId: int
    question: str
    answer: str
    due: int


@dataclass
class DeckStats:
    """Counts for one deck, as reported by getDeckStats."""

    name: str
    deck_id: int
    new_count: int = 0
    learn_count: int = 0
    review_count: int = 0
    total_in_deck: int = 0

    @property
    def total_due(self) -> int:
        """Total cards due for review."""
        return self.new_count + self.learn_count + self.review_count

    @classmethod
    def from_anki(cls, stat: dict) -> "DeckStats":
        return cls(
            name=stat.get("name", ""),
            deck_id=stat.get("deck_id", 0),
            new_count=stat.get("new_count", 0),
            learn_count=stat.get("learn_count", 0),
            review_count=stat.get("review_count", 0),
            total_in_deck=stat.get("total_in_deck", 0),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "deck_id": self.deck_id,
            "new_count": self.new_count,
            "learn_count": self.learn_count,
            "review_count": self.review_count,
            "total_in_deck": self.total_in_deck,
        }
