"""Tests for tool_handlers module - handler registry and handler behavior."""

import asyncio
import inspect
from unittest.mock import AsyncMock

import pytest

from ankiserver.client import AnkiConnectError
from ankiserver.errors import MissingArgument, NotFound, ValidationError
from ankiserver.tool_handlers import HANDLERS, Handler, handler
from ankiserver.tools import TOOLS


def run(name, anki, args):
    return asyncio.run(HANDLERS[name].fn(anki, args))


class TestHandlerRegistry:
    """Tests for the handler decorator and HANDLERS dict."""

    def test_handlers_is_dict(self):
        assert isinstance(HANDLERS, dict)

    def test_handler_decorator_registers(self):
        """The @handler decorator should add a Handler record."""
        original_len = len(HANDLERS)

        @handler("__test_dummy__", "do a test thing", "Try again.")
        async def dummy(anki, args):
            pass

        entry = HANDLERS["__test_dummy__"]
        assert isinstance(entry, Handler)
        assert entry.fn is dummy
        assert entry.action == "do a test thing"
        assert entry.hint == "Try again."

        # Clean up
        del HANDLERS["__test_dummy__"]
        assert len(HANDLERS) == original_len

    def test_handler_decorator_returns_function(self):
        async def my_func(anki, args):
            pass

        result = handler("__test_return__", "return")(my_func)
        assert result is my_func

        # Clean up
        del HANDLERS["__test_return__"]

    def test_all_handlers_are_coroutines(self):
        for name, entry in HANDLERS.items():
            assert inspect.iscoroutinefunction(entry.fn), f"Handler '{name}' is not async"

    def test_all_handlers_have_action_and_hint(self):
        for name, entry in HANDLERS.items():
            assert entry.action, f"Handler '{name}' has no action"
            assert entry.hint, f"Handler '{name}' has no hint"


class TestHandlerToolCoverage:
    """Tests that handlers cover the tools defined in TOOLS."""

    def test_every_tool_has_handler(self):
        missing = {t["name"] for t in TOOLS} - set(HANDLERS)
        assert not missing, f"Tools without handlers: {missing}"

    def test_no_orphan_handlers(self):
        orphans = set(HANDLERS) - {t["name"] for t in TOOLS}
        assert not orphans, f"Handlers without corresponding tools: {orphans}"


class TestReviewHandlers:
    """Tests for update_cards, add_card and the due/new card lists."""

    def test_update_cards_reports_each_card(self):
        anki = AsyncMock()
        anki.answer_cards.return_value = [True, False]
        result = run("update_cards", anki, {"answers": [
            {"cardId": 1, "ease": 3},
            {"cardId": "2", "ease": 1},
        ]})
        anki.answer_cards.assert_awaited_once_with([
            {"cardId": 1, "ease": 3},
            {"cardId": 2, "ease": 1},
        ])
        assert result["successful_answers"] == 1
        assert result["failed_answers"] == 1
        assert result["results"][1]["success"] is False

    def test_update_cards_ease_out_of_range(self):
        anki = AsyncMock()
        with pytest.raises(ValidationError):
            run("update_cards", anki, {"answers": [{"cardId": 1, "ease": 5}]})
        anki.answer_cards.assert_not_called()

    def test_update_cards_empty(self):
        with pytest.raises(MissingArgument):
            run("update_cards", AsyncMock(), {"answers": []})

    def test_add_card_defaults(self):
        anki = AsyncMock()
        anki.add_note.return_value = 100
        anki.find_cards.return_value = [200]
        result = run("add_card", anki, {"front": "perro", "back": "dog"})
        note = anki.add_note.await_args.args[0]
        assert note["deckName"] == "Default"
        assert note["modelName"] == "Basic"
        assert note["fields"] == {"Front": "perro", "Back": "dog"}
        anki.find_cards.assert_awaited_once_with("nid:100")
        assert result["card_id"] == 200
        assert "Created card with id 200" == result["message"]

    def test_add_card_empty_front(self):
        anki = AsyncMock()
        with pytest.raises(MissingArgument):
            run("add_card", anki, {"front": " ", "back": "dog"})
        anki.add_note.assert_not_called()

    def test_get_due_cards_sorted_and_sliced(self):
        anki = AsyncMock()
        anki.find_cards.return_value = [1, 2, 3]
        anki.cards_info.return_value = [
            {"cardId": 1, "question": "<div>q1</div>", "answer": "a1", "due": 30},
            {"cardId": 2, "question": "q2", "answer": "a2", "due": 10},
            {"cardId": 3, "question": "q3", "answer": "a3", "due": 20},
        ]
        result = run("get_due_cards", anki, {"num": 2})
        anki.find_cards.assert_awaited_once_with("is:due")
        assert [c["cardId"] for c in result] == [2, 3]
        assert set(result[0]) == {"cardId", "question", "answer", "due"}

    def test_get_new_cards_none_found(self):
        anki = AsyncMock()
        anki.find_cards.return_value = []
        assert run("get_new_cards", anki, {"num": 5}) == []
        anki.find_cards.assert_awaited_once_with("is:new")
        anki.cards_info.assert_not_called()

    def test_get_due_cards_negative_num(self):
        with pytest.raises(ValidationError):
            run("get_due_cards", AsyncMock(), {"num": -1})


class TestDeckHandlers:
    """Tests for deck operations."""

    def test_list_decks_names(self):
        anki = AsyncMock()
        anki.deck_names.return_value = ["Default", "Spanish"]
        assert run("list_decks", anki, {}) == ["Default", "Spanish"]

    def test_list_decks_with_ids(self):
        anki = AsyncMock()
        anki.deck_names_and_ids.return_value = {"Default": 1}
        assert run("list_decks", anki, {"includeIds": True}) == {"Default": 1}

    def test_list_decks_with_stats(self):
        anki = AsyncMock()
        anki.deck_names.return_value = ["Spanish"]
        anki.get_deck_stats.return_value = {
            "5": {"deck_id": 5, "name": "Spanish", "new_count": 2,
                  "learn_count": 1, "review_count": 3, "total_in_deck": 40},
        }
        result = run("list_decks", anki, {"includeStats": True})
        assert result == [{
            "name": "Spanish", "deck_id": 5, "new_count": 2,
            "learn_count": 1, "review_count": 3, "total_in_deck": 40,
        }]

    def test_get_deck_info_not_found(self):
        anki = AsyncMock()
        anki.deck_names_and_ids.return_value = {"Default": 1}
        with pytest.raises(NotFound) as exc:
            run("get_deck_info", anki, {"deckName": "Nope"})
        assert "Available decks: Default" in str(exc.value)

    def test_create_deck(self):
        anki = AsyncMock()
        anki.create_deck.return_value = 123
        result = run("create_deck", anki, {"deckName": "Parent::Child"})
        anki.create_deck.assert_awaited_once_with("Parent::Child")
        assert result["deck_id"] == 123

    @pytest.mark.parametrize("name", ["Parent::", "::Child", "A:: ::B"])
    def test_create_deck_empty_segment(self, name):
        anki = AsyncMock()
        with pytest.raises(ValidationError):
            run("create_deck", anki, {"deckName": name})
        anki.create_deck.assert_not_called()

    def test_delete_deck_checks_existence_first(self):
        anki = AsyncMock()
        anki.deck_names_and_ids.return_value = {"Default": 1}
        with pytest.raises(NotFound):
            run("delete_deck", anki, {"deckName": "Gone", "confirmDelete": True})
        anki.delete_decks.assert_not_called()


class TestStatisticsHandlers:
    """Tests for statistics operations."""

    def test_review_history_window(self):
        anki = AsyncMock()
        anki.get_num_cards_reviewed_by_day.return_value = [
            ["2024-01-03", 10], ["2024-01-02", 30], ["2024-01-01", 5],
        ]
        result = run("get_review_history", anki, {"days": 2})
        assert result["total_reviews"] == 40
        assert result["average_per_day"] == 20
        assert result["max_day"] == {"date": "2024-01-02", "cards_reviewed": 30}
        assert len(result["daily_history"]) == 2

    def test_review_history_empty(self):
        anki = AsyncMock()
        anki.get_num_cards_reviewed_by_day.return_value = []
        result = run("get_review_history", anki, {})
        assert result["period_days"] == 30
        assert result["average_per_day"] == 0
        assert result["max_day"] == {"date": "", "cards_reviewed": 0}

    def test_review_history_days_capped(self):
        anki = AsyncMock()
        anki.get_num_cards_reviewed_by_day.return_value = []
        assert run("get_review_history", anki, {"days": 9999})["period_days"] == 365

    def test_card_reviews_ids_sent_as_strings(self):
        anki = AsyncMock()
        anki.get_reviews_of_cards.return_value = {
            "7": [{"id": 1700000000000, "ease": 3, "ivl": 4, "lastIvl": 1,
                   "factor": 2500, "time": 1200, "type": 1}],
        }
        result = run("get_card_reviews", anki, {"cardId": 7})
        anki.get_reviews_of_cards.assert_awaited_once_with(["7"])
        assert result[0]["card_id"] == 7
        assert result[0]["reviews"][0]["review_time"].startswith("2023-11-14T")

    def test_learning_stats_single_deck_has_no_breakdown(self):
        anki = AsyncMock()
        anki.get_deck_stats.return_value = {
            "1": {"deck_id": 1, "name": "A", "new_count": 10,
                  "learn_count": 5, "review_count": 0, "total_in_deck": 100},
        }
        anki.get_num_cards_reviewed_by_day.return_value = [["2024-01-01", 4]]
        result = run("get_learning_stats", anki, {"deckName": "A"})
        assert result["learning_progress"]["mature_cards"] == 85
        assert result["learning_progress"]["maturity_rate_percent"] == 85.0
        assert "deck_breakdown" not in result
        anki.deck_names.assert_not_called()

    def test_deck_performance_completion_rate(self):
        anki = AsyncMock()
        anki.get_deck_stats.return_value = {
            "1": {"deck_id": 1, "name": "A", "new_count": 5,
                  "learn_count": 0, "review_count": 5, "total_in_deck": 40},
        }
        anki.get_num_cards_reviewed_by_day.return_value = []
        result = run("get_deck_performance", anki, {"deckName": "A"})
        deck = result["deck_performance"][0]
        assert deck["completed_cards"] == 30
        assert deck["completion_rate_percent"] == 75.0


class TestNoteHandlers:
    """Tests for note operations."""

    def test_find_notes_truncates(self):
        anki = AsyncMock()
        anki.find_notes.return_value = list(range(10))
        result = run("find_notes", anki, {"query": "tag:x", "limit": 3})
        assert result["note_ids"] == [0, 1, 2]
        assert result["total_found"] == 10
        assert result["returned_count"] == 3
        assert result["truncated"] is True

    def test_find_notes_query_passed_verbatim(self):
        anki = AsyncMock()
        anki.find_notes.return_value = []
        run("find_notes", anki, {"query": "deck:Japanese"})
        anki.find_notes.assert_awaited_once_with("deck:Japanese")

    def test_update_note_fields_partial_failure(self):
        anki = AsyncMock()
        anki.update_note_fields.side_effect = [None, AnkiConnectError("note was not found: 2")]
        result = run("update_note_fields", anki, {"noteIds": [1, 2], "fields": {"Front": "x"}})
        assert result["successful_updates"] == 1
        assert result["failed_updates"] == 1
        assert result["results"][0] == {"note_id": 1, "success": True}
        assert "not found" in result["results"][1]["error"]

    def test_delete_notes_missing_note(self):
        anki = AsyncMock()
        anki.notes_info.return_value = [{"noteId": 1, "cards": [10]}, {}]
        with pytest.raises(NotFound):
            run("delete_notes", anki, {"noteIds": [1, 2], "confirmDelete": True})
        anki.delete_notes.assert_not_called()

    def test_delete_notes_counts_cards(self):
        anki = AsyncMock()
        anki.notes_info.return_value = [{"noteId": 1, "cards": [10, 11]}]
        result = run("delete_notes", anki, {"noteId": 1, "confirmDelete": True})
        anki.delete_notes.assert_awaited_once_with([1])
        assert result["deleted_cards"] == 2

    def test_add_tags_joins_with_spaces(self):
        anki = AsyncMock()
        run("add_tags_to_notes", anki, {"noteId": 1, "tags": ["verb", "n5"]})
        anki.add_tags.assert_awaited_once_with([1], "verb n5")

    def test_get_all_tags_usage_sorted(self):
        anki = AsyncMock()
        anki.get_tags.return_value = ["a", "b"]
        anki.find_notes.side_effect = [[1], [1, 2, 3]]
        result = run("get_all_tags", anki, {"includeUsage": True})
        assert [t["tag"] for t in result["tags_with_usage"]] == ["b", "a"]
        anki.find_notes.assert_any_await('tag:"a"')

    def test_duplicate_note_uses_original_deck(self):
        anki = AsyncMock()
        anki.notes_info.return_value = [{
            "noteId": 1,
            "modelName": "Basic",
            "tags": ["old"],
            "fields": {"Front": {"value": "a", "order": 0}, "Back": {"value": "b", "order": 1}},
            "cards": [11],
        }]
        anki.cards_info.return_value = [{"cardId": 11, "deckName": "Spanish"}]
        anki.add_note.return_value = 99
        result = run("duplicate_note", anki, {
            "noteId": 1, "fieldUpdates": {"Back": "c"}, "additionalTags": ["copy"],
        })
        note = anki.add_note.await_args.args[0]
        assert note["deckName"] == "Spanish"
        assert note["fields"] == {"Front": "a", "Back": "c"}
        assert note["tags"] == ["old", "copy"]
        assert result["new_note_id"] == 99

    def test_duplicate_note_empty_update_clears_field(self):
        anki = AsyncMock()
        anki.notes_info.return_value = [{
            "noteId": 1,
            "modelName": "Basic",
            "tags": [],
            "fields": {"Front": {"value": "a", "order": 0}, "Back": {"value": "b", "order": 1}},
            "cards": [11],
        }]
        anki.cards_info.return_value = [{"cardId": 11, "deckName": "Spanish"}]
        anki.add_note.return_value = 99
        run("duplicate_note", anki, {"noteId": 1, "fieldUpdates": {"Back": ""}})
        note = anki.add_note.await_args.args[0]
        assert note["fields"] == {"Front": "a", "Back": ""}

    def test_duplicate_note_unknown_field(self):
        anki = AsyncMock()
        anki.notes_info.return_value = [{
            "noteId": 1, "modelName": "Basic", "fields": {"Front": {"value": "a"}}, "cards": [],
        }]
        with pytest.raises(ValidationError):
            run("duplicate_note", anki, {"noteId": 1, "fieldUpdates": {"Extra": "x"}})
        anki.add_note.assert_not_called()

    def test_duplicate_note_missing(self):
        anki = AsyncMock()
        anki.notes_info.return_value = [{}]
        with pytest.raises(NotFound):
            run("duplicate_note", anki, {"noteId": 1})


class TestCardHandlers:
    """Tests for card operations."""

    def test_card_info_sanitized(self):
        anki = AsyncMock()
        anki.cards_info.return_value = [{
            "cardId": 5, "note": 1, "deckName": "A",
            "question": "<style>x</style><div>Q</div>", "answer": "A&amp;B",
            "factor": 2500, "mod": 0,
        }]
        result = run("get_card_info_detailed", anki, {"cardId": 5})
        card = result["cards"][0]
        assert card["question"] == "Q"
        assert card["answer"] == "A&B"
        assert card["ease_factor"] == 2500
        assert result["missing_card_ids"] == []

    def test_suspend_cards(self):
        anki = AsyncMock()
        anki.suspend.return_value = True
        result = run("suspend_cards", anki, {"cardIds": [1, 2], "suspend": True})
        anki.suspend.assert_awaited_once_with([1, 2])
        anki.unsuspend.assert_not_called()
        assert result["cards_affected"] == 2

    def test_unsuspend_cards(self):
        anki = AsyncMock()
        anki.unsuspend.return_value = True
        result = run("suspend_cards", anki, {"cardId": 1, "suspend": False})
        assert result["action"] == "unsuspended"

    @pytest.mark.parametrize("days", ["0", "1", "3-7", "1!"])
    def test_due_date_accepted(self, days):
        anki = AsyncMock()
        anki.set_due_date.return_value = True
        run("set_card_due_date", anki, {"cardId": 1, "days": days})
        anki.set_due_date.assert_awaited_once_with([1], days)

    def test_due_date_rejected(self):
        anki = AsyncMock()
        with pytest.raises(ValidationError):
            run("set_card_due_date", anki, {"cardId": 1, "days": "tomorrow"})
        anki.set_due_date.assert_not_called()

    def test_forget_cards_counts_reviews(self):
        anki = AsyncMock()
        anki.cards_info.return_value = [{"cardId": 1, "reps": 4}, {"cardId": 2, "reps": 6}]
        result = run("forget_cards", anki, {"cardIds": [1, 2], "confirmReset": True})
        anki.forget_cards.assert_awaited_once_with([1, 2])
        assert result["total_reviews_lost"] == 10

    def test_ease_factor_single_value_applied_to_all(self):
        anki = AsyncMock()
        anki.set_ease_factors.return_value = [True, True]
        run("set_card_ease_factors", anki, {"cardIds": [1, 2], "easeFactor": 2500})
        anki.set_ease_factors.assert_awaited_once_with([1, 2], [2500, 2500])

    def test_ease_factor_count_mismatch(self):
        with pytest.raises(ValidationError):
            run("set_card_ease_factors", AsyncMock(), {"cardIds": [1, 2], "easeFactors": [2500]})

    def test_ease_factor_missing(self):
        with pytest.raises(MissingArgument):
            run("set_card_ease_factors", AsyncMock(), {"cardId": 1})

    def test_intervals_days_and_seconds(self):
        anki = AsyncMock()
        anki.get_intervals.return_value = [5, -600]
        result = run("get_card_intervals", anki, {"cardIds": [1, 2]})
        first, second = result["card_intervals"]
        assert first["interval_days"] == 5
        assert first["interval_seconds"] is None
        assert second["interval_days"] is None
        assert second["interval_seconds"] == 600

    def test_intervals_history(self):
        anki = AsyncMock()
        anki.get_intervals.return_value = [[-60, 1, 3]]
        result = run("get_card_intervals", anki, {"cardId": 1, "includeHistory": True})
        anki.get_intervals.assert_awaited_once_with([1], complete=True)
        assert result["card_intervals"][0]["current_interval"] == 3


class TestModelHandlers:
    """Tests for model (note type) operations."""

    def test_model_info_unknown(self):
        anki = AsyncMock()
        anki.model_names.return_value = ["Basic"]
        with pytest.raises(NotFound) as exc:
            run("get_model_info", anki, {"modelName": "Fancy"})
        assert "Available models: Basic" in str(exc.value)
        anki.find_models_by_name.assert_not_called()

    def test_model_fields_with_properties(self):
        anki = AsyncMock()
        anki.model_names.return_value = ["Basic"]
        anki.model_field_names.return_value = ["Front", "Back"]
        anki.model_field_fonts.return_value = {"Front": {"font": "Arial", "size": 20}}
        result = run("get_model_fields", anki, {"modelName": "Basic", "includeProperties": True})
        fields = result[0]["fields"]
        assert fields[0] == {"name": "Front", "order": 0, "font": "Arial", "size": 20}
        assert fields[1]["order"] == 1

    def test_create_model_existing_name(self):
        anki = AsyncMock()
        anki.model_names.return_value = ["Basic"]
        with pytest.raises(ValidationError):
            run("create_model", anki, {
                "modelName": "Basic",
                "fields": ["Front"],
                "templates": [{"name": "Card 1", "front": "{{Front}}", "back": "{{Front}}"}],
            })
        anki.create_model.assert_not_called()

    def test_create_model_template_shape(self):
        anki = AsyncMock()
        anki.model_names.return_value = []
        anki.create_model.return_value = {"id": 42}
        result = run("create_model", anki, {
            "modelName": "Vocab",
            "fields": ["Word", "Meaning"],
            "templates": [{"name": "Card 1", "front": "{{Word}}", "back": "{{Meaning}}"}],
        })
        anki.create_model.assert_awaited_once_with(
            "Vocab",
            ["Word", "Meaning"],
            [{"Name": "Card 1", "Front": "{{Word}}", "Back": "{{Meaning}}"}],
            css=None,
            is_cloze=False,
        )
        assert result["model_id"] == 42

    def test_create_model_incomplete_template(self):
        with pytest.raises(ValidationError):
            run("create_model", AsyncMock(), {
                "modelName": "X", "fields": ["A"], "templates": [{"name": "Card 1"}],
            })

    def test_update_model_templates_needs_something(self):
        with pytest.raises(MissingArgument):
            run("update_model_templates", AsyncMock(), {"modelName": "Basic"})

    def test_update_model_css_only(self):
        anki = AsyncMock()
        anki.model_names.return_value = ["Basic"]
        run("update_model_templates", anki, {"modelName": "Basic", "css": ".card {}"})
        anki.update_model_styling.assert_awaited_once_with("Basic", ".card {}")
        anki.update_model_templates.assert_not_called()


class TestProfileHandlers:
    """Tests for profile and collection operations."""

    def test_switch_profile_unknown(self):
        anki = AsyncMock()
        anki.get_profiles.return_value = ["User 1"]
        with pytest.raises(NotFound):
            run("switch_profile", anki, {"profileName": "Other"})
        anki.load_profile.assert_not_called()

    def test_switch_profile(self):
        anki = AsyncMock()
        anki.get_profiles.return_value = ["User 1", "Work"]
        anki.get_active_profile.side_effect = ["User 1", "Work"]
        result = run("switch_profile", anki, {"profileName": "Work"})
        anki.load_profile.assert_awaited_once_with("Work")
        assert result["previous_profile"] == "User 1"
        assert result["profile_switched"] is True

    def test_export_deck_requires_apkg(self):
        anki = AsyncMock()
        with pytest.raises(ValidationError):
            run("export_deck", anki, {"deckName": "A", "filePath": "/tmp/a.zip"})
        anki.export_package.assert_not_called()

    def test_export_deck(self):
        anki = AsyncMock()
        anki.deck_names_and_ids.return_value = {"A": 1}
        anki.export_package.return_value = True
        result = run("export_deck", anki, {"deckName": "A", "filePath": "/tmp/a.apkg"})
        anki.export_package.assert_awaited_once_with("A", "/tmp/a.apkg", include_sched=True)
        assert result["include_scheduling"] is True
