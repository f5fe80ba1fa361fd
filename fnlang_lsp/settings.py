"""Client settings and capability flags."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from lsprotocol import types as lsp
from pygls.exceptions import JsonRpcException

log = logging.getLogger(__name__)

# Configuration section requested from the client
CONFIG_SECTION = 'fnlang'

DEFAULT_MAX_NUMBER_OF_PROBLEMS = 1000

ConfigFetch = Callable[[str], Awaitable[Any]]


@dataclass(frozen=True)
class Settings:
    max_number_of_problems: int = DEFAULT_MAX_NUMBER_OF_PROBLEMS

    @classmethod
    def from_config(cls, raw: Any) -> Settings:
        """Build settings from the client's configuration section."""
        if not isinstance(raw, dict):
            return cls()
        value = raw.get('maxNumberOfProblems', DEFAULT_MAX_NUMBER_OF_PROBLEMS)
        # bool is an int subclass but never a valid cap
        if (isinstance(value, bool)
                or not isinstance(value, (int, float))
                or not math.isfinite(value)):
            log.warning('Ignoring invalid maxNumberOfProblems: %r', value)
            return cls()
        # A fractional cap still lets the next whole problem through
        return cls(max_number_of_problems=math.ceil(value))


@dataclass(frozen=True)
class ClientFeatures:
    """Capabilities announced by the client in its initialize request."""

    configuration: bool = False
    workspace_folders: bool = False
    related_information: bool = False
    pull_diagnostics: bool = False
    diagnostic_refresh: bool = False

    @classmethod
    def from_capabilities(cls, caps: lsp.ClientCapabilities) -> ClientFeatures:
        workspace = caps.workspace
        text_document = caps.text_document
        publish = text_document.publish_diagnostics if text_document else None
        refresh = workspace.diagnostics if workspace else None
        return cls(
            configuration=bool(workspace and workspace.configuration),
            workspace_folders=bool(workspace and workspace.workspace_folders),
            related_information=bool(
                publish and publish.related_information
            ),
            pull_diagnostics=bool(
                text_document and text_document.diagnostic
            ),
            diagnostic_refresh=bool(refresh and refresh.refresh_support),
        )


class SettingsCache:
    """Settings per open document, shared across requests.

    With a fetch coroutine installed, each document's settings are
    requested from the client once and reused until forgotten. Without
    one, every document sees the global settings.
    """

    def __init__(self, fetch: Optional[ConfigFetch] = None) -> None:
        self._fetch = fetch
        self._documents: dict[str, asyncio.Future] = {}
        self.global_settings = Settings()

    def set_fetch(self, fetch: Optional[ConfigFetch]) -> None:
        self._fetch = fetch
        self.clear()

    @property
    def per_document(self) -> bool:
        return self._fetch is not None

    def __contains__(self, uri: str) -> bool:
        return uri in self._documents

    async def get(self, uri: str) -> Settings:
        if self._fetch is None:
            return self.global_settings
        pending = self._documents.get(uri)
        if pending is None:
            pending = asyncio.ensure_future(self._load(uri))
            self._documents[uri] = pending
        return await pending

    async def _load(self, uri: str) -> Settings:
        try:
            raw = await self._fetch(uri)
        except (JsonRpcException, asyncio.TimeoutError) as e:
            log.warning('Cannot fetch settings for %s: %s', uri, e)
            # A clear() may have replaced this entry already
            if self._documents.get(uri) is asyncio.current_task():
                del self._documents[uri]
            return self.global_settings
        return Settings.from_config(raw)

    def update_global(self, raw: Any) -> None:
        self.global_settings = Settings.from_config(raw)
        log.info(
            'Global maxNumberOfProblems is now %d',
            self.global_settings.max_number_of_problems,
        )

    def forget(self, uri: str) -> None:
        self._documents.pop(uri, None)

    def clear(self) -> None:
        self._documents.clear()
