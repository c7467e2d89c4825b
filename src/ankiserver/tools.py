"""Tool definitions advertised to the calling agent.

TOOLS is the single catalog of operations: the dispatcher rejects names that
are not here and checks each entry's ``required`` list before running the
handler registered under the same name.
"""


def _string(description: str) -> dict:
    return {"type": "string", "description": description}


def _number(description: str) -> dict:
    return {"type": "number", "description": description}


def _boolean(description: str) -> dict:
    return {"type": "boolean", "description": description}


def _array(item_type: str, description: str) -> dict:
    return {"type": "array", "items": {"type": item_type}, "description": description}


def _ids(plural: str, singular: str, purpose: str) -> dict:
    """Schema for the plural/singular id pair, e.g. cardIds/cardId."""
    return {
        plural: _array("number", f"Array of {purpose}"),
        singular: _number(f"Single ID (alternative to {plural} array)"),
    }


def _names(plural: str, singular: str, purpose: str) -> dict:
    return {
        plural: _array("string", f"Array of {purpose}"),
        singular: _string(f"Single name (alternative to {plural} array)"),
    }


def _schema(properties: dict | None = None, required: list[str] | None = None) -> dict:
    return {
        "type": "object",
        "properties": properties or {},
        "required": required or [],
    }


TOOLS = [
    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------
    {
        "name": "update_cards",
        "description": "After the user answers cards you've quizzed them on, use this tool to mark them answered and update their ease",
        "inputSchema": _schema(
            {
                "answers": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "cardId": _number("Id of the card to answer"),
                            "ease": _number("Ease of the card between 1 (Again) and 4 (Easy)"),
                        },
                        "required": ["cardId", "ease"],
                    },
                    "description": "Cards to answer with their ease rating",
                },
            },
            ["answers"],
        ),
    },
    {
        "name": "add_card",
        "description": (
            "Create a new flashcard in Anki for the user. Must use HTML formatting only. "
            "IMPORTANT FORMATTING RULES:\n"
            "1. Use HTML tags for ALL formatting - NO markdown\n"
            "2. Use <br> for ALL line breaks\n"
            "3. For code blocks, use <pre> with inline CSS styling\n"
            "4. Lists: <ol>/<ul> and <li>; bold: <strong>; italic: <em>"
        ),
        "inputSchema": _schema(
            {
                "front": _string("The front of the card. Must use HTML formatting only."),
                "back": _string("The back of the card. Must use HTML formatting only."),
                "deckName": _string("Deck to add the card to (default: 'Default')"),
                "modelName": _string("Note type to use; must have Front and Back fields (default: 'Basic')"),
                "tags": _array("string", "Tags to attach to the new note (optional)"),
            },
            ["front", "back"],
        ),
    },
    {
        "name": "get_due_cards",
        "description": "Returns a given number (num) of cards due for review, ordered by due date.",
        "inputSchema": _schema({"num": _number("Number of due cards to get")}, ["num"]),
    },
    {
        "name": "get_new_cards",
        "description": "Returns a given number (num) of new and unseen cards.",
        "inputSchema": _schema({"num": _number("Number of new cards to get")}, ["num"]),
    },
    # ------------------------------------------------------------------
    # Decks
    # ------------------------------------------------------------------
    {
        "name": "list_decks",
        "description": "Get all deck names, optionally with IDs and basic statistics",
        "inputSchema": _schema(
            {
                "includeIds": _boolean("Include deck IDs in the response"),
                "includeStats": _boolean("Include basic statistics (new, learning, review counts)"),
            }
        ),
    },
    {
        "name": "get_deck_info",
        "description": "Get detailed information about a specific deck including statistics",
        "inputSchema": _schema(
            {
                "deckName": _string("Name of the deck to get information for"),
                "includeStats": _boolean("Include detailed statistics for the deck"),
            },
            ["deckName"],
        ),
    },
    {
        "name": "get_deck_stats",
        "description": "Get comprehensive statistics for one or more decks",
        "inputSchema": _schema(_names("deckNames", "deckName", "deck names to get statistics for")),
    },
    {
        "name": "create_deck",
        "description": "Create a new deck. Supports nested decks using '::' separator (e.g., 'Japanese::JLPT N5')",
        "inputSchema": _schema(
            {"deckName": _string("Name of the deck to create. Use '::' for nested decks (e.g., 'Parent::Child')")},
            ["deckName"],
        ),
    },
    {
        "name": "delete_deck",
        "description": "Delete a deck and all its cards. Requires explicit confirmation for safety.",
        "inputSchema": _schema(
            {
                "deckName": _string("Name of the deck to delete"),
                "confirmDelete": _boolean("Must be set to true to confirm deletion (safety check)"),
            },
            ["deckName", "confirmDelete"],
        ),
    },
    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------
    {
        "name": "get_collection_stats",
        "description": "Get comprehensive statistics about your entire Anki collection",
        "inputSchema": _schema({"includeHTML": _boolean("Include raw HTML stats report from Anki")}),
    },
    {
        "name": "get_cards_reviewed_today",
        "description": "Get the number of cards reviewed today",
        "inputSchema": _schema(),
    },
    {
        "name": "get_review_history",
        "description": "Get historical review data over a specified period",
        "inputSchema": _schema({"days": _number("Number of days to look back (default: 30, max: 365)")}),
    },
    {
        "name": "get_card_reviews",
        "description": "Get detailed review history for specific cards",
        "inputSchema": _schema(_ids("cardIds", "cardId", "card IDs to get review history for")),
    },
    {
        "name": "get_deck_performance",
        "description": "Get performance analytics for specific decks including completion rates and card distribution",
        "inputSchema": _schema(
            {
                **_names("deckNames", "deckName", "deck names to analyze (all decks if omitted)"),
                "days": _number("Number of days to analyze (default: 30)"),
            }
        ),
    },
    {
        "name": "get_learning_stats",
        "description": "Get learning progress analytics including maturity rates and recent activity",
        "inputSchema": _schema(
            {
                "deckName": _string("Specific deck to analyze (optional, analyzes all decks if not provided)"),
                "days": _number("Number of days to analyze (default: 30)"),
            }
        ),
    },
    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------
    {
        "name": "find_notes",
        "description": "Search for notes using advanced filters and queries (e.g., 'deck:Japanese tag:grammar', 'front:*kanji*')",
        "inputSchema": _schema(
            {
                "query": _string("Search query using Anki search syntax (e.g., 'deck:Japanese tag:grammar', 'note:Basic added:7')"),
                "limit": _number("Maximum number of results to return (default: 100, max: 1000)"),
            },
            ["query"],
        ),
    },
    {
        "name": "get_note_info_detailed",
        "description": "Get comprehensive information about specific notes including all fields, tags, and associated cards",
        "inputSchema": _schema(_ids("noteIds", "noteId", "note IDs to get information for")),
    },
    {
        "name": "update_note_fields",
        "description": "Update fields in existing notes. Preserves HTML formatting and card scheduling.",
        "inputSchema": _schema(
            {
                **_ids("noteIds", "noteId", "note IDs to update"),
                "fields": {
                    "type": "object",
                    "description": "Object with field names as keys and new values as values (e.g., {'Front': 'new front', 'Back': 'new back'})",
                },
            },
            ["fields"],
        ),
    },
    {
        "name": "delete_notes",
        "description": "Delete notes and all associated cards. Requires explicit confirmation for safety.",
        "inputSchema": _schema(
            {
                **_ids("noteIds", "noteId", "note IDs to delete"),
                "confirmDelete": _boolean("Must be set to true to confirm deletion (safety check)"),
            },
            ["confirmDelete"],
        ),
    },
    {
        "name": "add_tags_to_notes",
        "description": "Add tags to existing notes. Creates new tags automatically if they don't exist.",
        "inputSchema": _schema(
            {
                **_ids("noteIds", "noteId", "note IDs to add tags to"),
                "tags": _array("string", "Array of tags to add (e.g., ['grammar', 'difficult'])"),
            },
            ["tags"],
        ),
    },
    {
        "name": "remove_tags_from_notes",
        "description": "Remove specific tags from notes. Does not delete the tags entirely, just removes them from specified notes.",
        "inputSchema": _schema(
            {
                **_ids("noteIds", "noteId", "note IDs to remove tags from"),
                "tags": _array("string", "Array of tags to remove (e.g., ['old', 'deprecated'])"),
            },
            ["tags"],
        ),
    },
    {
        "name": "get_all_tags",
        "description": "Get all tags in the collection with optional usage statistics",
        "inputSchema": _schema({"includeUsage": _boolean("Include count of how many notes use each tag")}),
    },
    {
        "name": "duplicate_note",
        "description": "Create a copy of an existing note, optionally modifying fields and changing deck",
        "inputSchema": _schema(
            {
                "noteId": _number("ID of the note to duplicate"),
                "targetDeck": _string("Deck to create the duplicate in (optional, uses the original note's deck if not specified)"),
                "fieldUpdates": {
                    "type": "object",
                    "description": "Fields to modify in the duplicate (optional, e.g., {'Front': 'modified front'})",
                },
                "additionalTags": _array("string", "Additional tags to add to the duplicate (optional)"),
            },
            ["noteId"],
        ),
    },
    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------
    {
        "name": "find_cards_advanced",
        "description": "Search for cards using advanced filters including ease factors, intervals, and scheduling (e.g., 'deck:Japanese prop:ease<2.0', 'is:due prop:ivl>30')",
        "inputSchema": _schema(
            {
                "query": _string("Advanced search query using Anki search syntax with properties (e.g., 'deck:Japanese prop:ease<2.0', 'is:review prop:ivl>30')"),
                "limit": _number("Maximum number of results to return (default: 100, max: 1000)"),
            },
            ["query"],
        ),
    },
    {
        "name": "get_card_info_detailed",
        "description": "Get comprehensive information about specific cards including ease factors, intervals, lapses, and scheduling details",
        "inputSchema": _schema(_ids("cardIds", "cardId", "card IDs to get detailed information for")),
    },
    {
        "name": "suspend_cards",
        "description": "Suspend or unsuspend cards to control their review scheduling. Suspended cards won't appear in reviews.",
        "inputSchema": _schema(
            {
                **_ids("cardIds", "cardId", "card IDs to suspend or unsuspend"),
                "suspend": _boolean("true to suspend cards, false to unsuspend cards"),
            },
            ["suspend"],
        ),
    },
    {
        "name": "set_card_due_date",
        "description": "Reschedule cards to specific due dates. Useful for managing review timing and catching up on overdue cards.",
        "inputSchema": _schema(
            {
                **_ids("cardIds", "cardId", "card IDs to reschedule"),
                "days": _string("Due date specification: '0' = today, '1' = tomorrow, '3-7' = random 3-7 days, '1!' = also reset interval"),
            },
            ["days"],
        ),
    },
    {
        "name": "forget_cards",
        "description": "Reset card progress to 'new' status, removing all review history. Requires explicit confirmation for safety.",
        "inputSchema": _schema(
            {
                **_ids("cardIds", "cardId", "card IDs to reset"),
                "confirmReset": _boolean("Must be set to true to confirm resetting card progress (safety check)"),
            },
            ["confirmReset"],
        ),
    },
    {
        "name": "set_card_ease_factors",
        "description": "Adjust ease factors for cards to make them easier or harder. Higher ease = longer intervals.",
        "inputSchema": _schema(
            {
                **_ids("cardIds", "cardId", "card IDs to adjust"),
                "easeFactors": _array("number", "Array of ease factors (one per card, 1300-4000, default ~2500)"),
                "easeFactor": _number("Single ease factor to apply to all cards (alternative to easeFactors array)"),
            }
        ),
    },
    {
        "name": "get_card_intervals",
        "description": "Get interval information for cards including current intervals and historical progression",
        "inputSchema": _schema(
            {
                **_ids("cardIds", "cardId", "card IDs to analyze"),
                "includeHistory": _boolean("Include complete interval history for each card (default: false)"),
            }
        ),
    },
    # ------------------------------------------------------------------
    # Models (note types)
    # ------------------------------------------------------------------
    {
        "name": "list_models",
        "description": "Get all note types/models in the collection with optional detailed information",
        "inputSchema": _schema(
            {"includeDetails": _boolean("Include detailed model information including fields and templates (default: false)")}
        ),
    },
    {
        "name": "get_model_info",
        "description": "Get comprehensive information about specific models including fields, templates, and styling",
        "inputSchema": _schema(_names("modelNames", "modelName", "model names to get information for")),
    },
    {
        "name": "get_model_fields",
        "description": "Get field definitions and properties for specific models",
        "inputSchema": _schema(
            {
                **_names("modelNames", "modelName", "model names to get field information for"),
                "includeProperties": _boolean("Include field fonts and sizes (default: false)"),
            }
        ),
    },
    {
        "name": "create_model",
        "description": "Create a new note type with custom fields and templates. Supports both basic and cloze deletion models.",
        "inputSchema": _schema(
            {
                "modelName": _string("Name for the new model (must be unique)"),
                "fields": _array("string", "Array of field names for the model (e.g., ['Front', 'Back', 'Extra'])"),
                "templates": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": _string("Template name (e.g., 'Card 1')"),
                            "front": _string("Front template HTML (e.g., '{{Front}}')"),
                            "back": _string("Back template HTML (e.g., '{{FrontSide}}<hr>{{Back}}')"),
                        },
                        "required": ["name", "front", "back"],
                    },
                    "description": "Array of card templates",
                },
                "css": _string("CSS styling for the model (optional, uses default if not provided)"),
                "isCloze": _boolean("Create as cloze deletion model (default: false)"),
            },
            ["modelName", "fields", "templates"],
        ),
    },
    {
        "name": "update_model_templates",
        "description": "Update card templates and styling for existing models",
        "inputSchema": _schema(
            {
                "modelName": _string("Name of the model to update"),
                "templates": {
                    "type": "object",
                    "description": "Templates to update, with template names as keys and {front, back} objects as values",
                },
                "css": _string("New CSS styling for the model (optional)"),
            },
            ["modelName"],
        ),
    },
    # ------------------------------------------------------------------
    # Profiles and collection
    # ------------------------------------------------------------------
    {
        "name": "get_profiles",
        "description": "Get all available Anki profiles on the system",
        "inputSchema": _schema(),
    },
    {
        "name": "get_active_profile",
        "description": "Get information about the currently active Anki profile",
        "inputSchema": _schema(),
    },
    {
        "name": "switch_profile",
        "description": "Switch to a different Anki profile. This will change the active profile and reload the collection.",
        "inputSchema": _schema({"profileName": _string("Name of the profile to switch to")}, ["profileName"]),
    },
    {
        "name": "sync_collection",
        "description": "Sync the collection with AnkiWeb. Requires AnkiWeb account setup in Anki.",
        "inputSchema": _schema({"forceSync": _boolean("Force sync even if no changes detected (default: false)")}),
    },
    {
        "name": "export_deck",
        "description": "Export a deck to an .apkg file for backup or sharing",
        "inputSchema": _schema(
            {
                "deckName": _string("Name of the deck to export"),
                "filePath": _string("Path where to save the .apkg file (should end with .apkg)"),
                "includeScheduling": _boolean("Include scheduling information in export (default: true)"),
            },
            ["deckName", "filePath"],
        ),
    },
    {
        "name": "reload_collection",
        "description": "Reload the collection to refresh data after external changes",
        "inputSchema": _schema(),
    },
]

# Tools that destroy data or history, mapped to their confirmation flag.
DESTRUCTIVE_TOOLS: dict[str, str] = {
    "delete_deck": "confirmDelete",
    "delete_notes": "confirmDelete",
    "forget_cards": "confirmReset",
}

_TOOLS_BY_NAME = {tool["name"]: tool for tool in TOOLS}


def get_tool(name: str) -> dict | None:
    """Look up a catalog entry by name."""
    return _TOOLS_BY_NAME.get(name)
