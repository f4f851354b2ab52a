"""Grant prompts answered over the HTTP API."""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from ..models.access import GrantKind, PendingPrompt
from .base import PROMPT_TITLES, GrantPrompter
from .paths import vm_folder_start_dir

logger = logging.getLogger(__name__)


class PendingPromptQueue(GrantPrompter):
    """Turns each prompt into a pending request a client can answer or decline.

    A prompt that nobody answers within ``timeout`` seconds counts as
    declined.
    """

    def __init__(self, timeout: float = 300.0, tool_start_dir: Optional[Path] = None):
        self.timeout = timeout
        self.tool_start_dir = tool_start_dir
        self._pending: dict[GrantKind, tuple[PendingPrompt, asyncio.Future]] = {}
        self._listeners: list[Callable] = []

    def add_listener(self, callback: Callable) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def _notify(self) -> None:
        for cb in list(self._listeners):
            try:
                await cb(self.pending())
            except Exception as e:
                logger.warning(f"Prompt listener failed: {e}")

    def pending(self) -> list[PendingPrompt]:
        return [prompt for prompt, _ in self._pending.values()]

    def get(self, kind: GrantKind) -> Optional[PendingPrompt]:
        entry = self._pending.get(GrantKind(kind))
        return entry[0] if entry else None

    def _start_dir(self, kind: GrantKind, hint: Optional[str]) -> Optional[Path]:
        if kind == GrantKind.TOOL:
            return self.tool_start_dir
        return vm_folder_start_dir(hint)

    async def prompt(self, kind: GrantKind, hint: Optional[str] = None) -> Optional[Path]:
        kind = GrantKind(kind)
        if kind in self._pending:
            # Callers are serialised per kind, so this only happens if that is bypassed
            raise RuntimeError(f"A '{kind.value}' prompt is already pending")

        prompt = PendingPrompt(
            kind=kind,
            title=PROMPT_TITLES[kind],
            start_dir=self._start_dir(kind, hint),
            hint=hint,
        )
        future = asyncio.get_running_loop().create_future()
        self._pending[kind] = (prompt, future)
        logger.info(f"Waiting for '{kind.value}' grant: {prompt.title}")
        await self._notify()

        try:
            return await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.info(f"'{kind.value}' prompt timed out after {self.timeout:g}s")
            return None
        finally:
            self._pending.pop(kind, None)
            await self._notify()

    def answer(self, kind: GrantKind, path: Path) -> bool:
        entry = self._pending.get(GrantKind(kind))
        if entry is None or entry[1].done():
            return False
        entry[1].set_result(Path(path))
        return True

    def decline(self, kind: GrantKind) -> bool:
        entry = self._pending.get(GrantKind(kind))
        if entry is None or entry[1].done():
            return False
        entry[1].set_result(None)
        return True
