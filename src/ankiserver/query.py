"""Translate short filter tokens into Anki search syntax."""


def translate_query(token: str) -> str:
    """Map a filter token to an Anki query.

    ``deckcurrent`` becomes ``deck:current`` and ``isdue`` becomes ``is:due``.
    The match is on the literal prefix only, so ``deckstroyed`` becomes
    ``deck:stroyed``; anything else is assumed to be native syntax already.
    """
    if token.startswith("deck"):
        return f"deck:{token[4:]}"
    if token.startswith("is"):
        return f"is:{token[2:]}"
    return token
