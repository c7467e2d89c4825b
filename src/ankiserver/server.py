"""Upstream facade: what a tool-calling host sees."""

from __future__ import annotations

import copy

from loguru import logger

from . import resources
from .client import AnkiClient
from .config import Config
from .dispatcher import dispatch
from .tools import TOOLS


class AnkiServer:
    """Expose the tool catalog, tool calls and card resources over one client.

    Usage:
        async with AnkiServer.from_config(load_config()) as server:
            result = await server.call_tool("list_decks", {})
    """

    def __init__(self, anki: AnkiClient, name: str = "anki-server") -> None:
        self.anki = anki
        self.name = name

    @classmethod
    def from_config(cls, config: Config) -> AnkiServer:
        logger.debug("Using AnkiConnect at {}", config.anki_connect_url)
        return cls(AnkiClient.from_config(config), name=config.server_name)

    async def aclose(self) -> None:
        await self.anki.aclose()

    async def __aenter__(self) -> AnkiServer:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def list_tools(self) -> dict:
        return {"tools": copy.deepcopy(TOOLS)}

    async def call_tool(self, name: str, arguments: dict | None = None) -> dict:
        return await dispatch(self.anki, name, arguments)

    def list_resources(self) -> dict:
        return resources.list_resources()

    async def read_resource(self, uri: str) -> dict:
        return await resources.read_resource(self.anki, uri)
