"""Acquire, prompt for, and scope access to granted locations."""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from ..models.access import AccessGrant, GrantKind
from .base import GrantPrompter
from .store import GrantStore

logger = logging.getLogger(__name__)


class AccessToken:
    """Proof that access to a grant's root is active. Release exactly once."""

    def __init__(self, broker: "ResourceAccessBroker", grant: AccessGrant):
        self.grant = grant
        self._broker = broker
        self._released = False

    @property
    def root(self) -> Path:
        return self.grant.root

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._broker._end_scoped_access(self)


class ResourceAccessBroker:
    def __init__(self, grants: GrantStore, prompter: GrantPrompter):
        self.grants = grants
        self.prompter = prompter
        self._locks = {kind: asyncio.Lock() for kind in GrantKind}
        self._active: set[AccessToken] = set()

    @property
    def active_tokens(self) -> int:
        return len(self._active)

    def resolve_grant(self, kind: GrantKind) -> Optional[AccessGrant]:
        return self.grants.resolve(kind)

    async def prompt_for_grant(self, kind: GrantKind, hint: Optional[str] = None) -> Optional[AccessGrant]:
        """Ask the user for a grant and persist it before returning.

        Only one prompt per kind is ever in flight. Callers that queued up
        behind a prompt take its outcome instead of prompting again.
        """
        kind = GrantKind(kind)
        lock = self._locks[kind]
        queued = lock.locked()
        async with lock:
            if queued:
                return self.resolve_grant(kind)

            picked = await self.prompter.prompt(kind, hint)
            if picked is None:
                logger.info(f"'{kind.value}' grant prompt declined")
                return None
            if self.grants.save(kind, Path(picked)) is None:
                return None
            return self.resolve_grant(kind)

    def begin_scoped_access(self, grant: Optional[AccessGrant]) -> Optional[AccessToken]:
        if grant is None or grant.is_stale:
            return None
        if not os.access(grant.root, os.R_OK):
            logger.warning(f"Cannot access '{grant.kind.value}' grant root {grant.root}")
            return None
        token = AccessToken(self, grant)
        self._active.add(token)
        return token

    def _end_scoped_access(self, token: AccessToken) -> None:
        self._active.discard(token)

    def _resolve_and_begin(self, kind: GrantKind) -> tuple[Optional[Path], Optional[AccessToken]]:
        token = self.begin_scoped_access(self.resolve_grant(kind))
        if token is None:
            return None, None
        return token.root, token

    async def begin_access_or_prompt(
        self, kind: GrantKind, hint: Optional[str] = None
    ) -> tuple[Optional[Path], Optional[AccessToken]]:
        """Resolve and begin access, prompting once if that fails.

        The caller owns the returned token; prefer :meth:`access`.
        """
        kind = GrantKind(kind)
        root, token = self._resolve_and_begin(kind)
        if token is not None:
            return root, token

        await self.prompt_for_grant(kind, hint)
        return self._resolve_and_begin(kind)

    @asynccontextmanager
    async def access(self, kind: GrantKind, hint: Optional[str] = None) -> AsyncIterator[Optional[Path]]:
        """Yield the granted root (or None) with access held for the whole block."""
        root, token = await self.begin_access_or_prompt(kind, hint)
        try:
            yield root
        finally:
            if token is not None:
                token.release()
