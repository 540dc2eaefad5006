"""Credential gate: no Gemini request is issued until a key is usable.

The gate is a small state machine::

    CHECKING --probe true--> UNLOCKED
    CHECKING --probe false/error--> LOCKED --select()--> UNLOCKED

``select()`` is optimistic by default: once the selection flow returns, the
gate unlocks without probing again. Pass ``verify_selection=True`` to re-probe
and stay locked when no key turned up.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Protocol

from .config import Config
from .errors import AccessError

log = logging.getLogger(__name__)


class AccessState(str, Enum):
    CHECKING = "checking"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class CredentialProvider(Protocol):
    async def has_credential(self) -> bool: ...

    async def request_credential(self) -> None: ...


class ConfigCredentials:
    """Credentials held in :class:`Config`.

    ``request_credential`` runs the supplied selection flow (a web form
    submission, a terminal prompt) and stores whatever key it returns.
    """

    def __init__(
        self,
        config: Config,
        select_key: Callable[[], Awaitable[str | None]] | None = None,
        persist: bool = False,
    ) -> None:
        self.config = config
        self.select_key = select_key
        self.persist = persist

    async def has_credential(self) -> bool:
        return bool(self.config.gemini_api_key)

    async def request_credential(self) -> None:
        if self.select_key is None:
            return
        key = await self.select_key()
        if key:
            self.config.gemini_api_key = key.strip()
            if self.persist:
                self.config.save()


class AccessGate:
    def __init__(self, credentials: CredentialProvider, verify_selection: bool = False) -> None:
        self.credentials = credentials
        self.verify_selection = verify_selection
        self._state = AccessState.CHECKING

    @property
    def state(self) -> AccessState:
        return self._state

    @property
    def is_unlocked(self) -> bool:
        return self._state is AccessState.UNLOCKED

    async def check(self) -> AccessState:
        """Silent probe run once at startup."""
        if self.is_unlocked:
            return self._state
        self._state = AccessState.UNLOCKED if await self._probe() else AccessState.LOCKED
        log.info("Access gate: %s", self._state.value)
        return self._state

    async def select(self) -> AccessState:
        """User-initiated selection flow."""
        if self.is_unlocked:
            return self._state
        try:
            await self.credentials.request_credential()
        except Exception as e:
            log.error("Credential selection failed: %s", e)
            self._state = AccessState.LOCKED
            raise AccessError(f"Credential selection failed: {e}") from e

        if self.verify_selection and not await self._probe():
            self._state = AccessState.LOCKED
        else:
            self._state = AccessState.UNLOCKED
        log.info("Access gate after selection: %s", self._state.value)
        return self._state

    def require(self) -> None:
        if not self.is_unlocked:
            raise AccessError("A Gemini API key must be selected before generating.")

    async def _probe(self) -> bool:
        try:
            return bool(await self.credentials.has_credential())
        except Exception as e:
            log.warning("Credential probe failed: %s", e)
            return False
