# src/area_client/prompts.py

import asyncio
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, Optional

from loguru import logger


class PromptKind(str, Enum):
    ALERT = "alert"
    CONFIRM = "confirm"
    INPUT = "input"


_CONFIRM_VALUES = {PromptKind.ALERT: None, PromptKind.CONFIRM: True}
_CANCEL_VALUES = {PromptKind.ALERT: None, PromptKind.CONFIRM: False, PromptKind.INPUT: None}


class PendingPrompt:
    """One dialog waiting for the user, answered exactly once."""

    def __init__(self, kind: PromptKind, message: str, options: Optional[Dict[str, Any]] = None):
        self.kind = kind
        self.message = message
        self.options = dict(options or {})
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, value: Any = None) -> None:
        if self.done:
            return
        if self.kind is PromptKind.INPUT:
            self._future.set_result(value)
        else:
            self._future.set_result(_CONFIRM_VALUES[self.kind])

    def cancel(self) -> None:
        if not self.done:
            self._future.set_result(_CANCEL_VALUES[self.kind])

    def __await__(self):
        return self._future.__await__()


class PromptQueue:
    """
    Single-slot dialog broker.

    At most one prompt is ``active``; later requests wait in FIFO order and
    become active as the previous one is answered.
    """

    def __init__(self):
        self.active: Optional[PendingPrompt] = None
        self._waiting: Deque[PendingPrompt] = deque()

    @property
    def pending(self) -> int:
        return len(self._waiting) + (1 if self.active else 0)

    async def request(self, kind: PromptKind, message: str, **options) -> Any:
        prompt = PendingPrompt(kind, message, options)
        if self.active is None:
            self.active = prompt
        else:
            self._waiting.append(prompt)
        logger.debug("Prompt queued ({}): {}", kind.value, message)
        try:
            return await prompt
        except asyncio.CancelledError:
            self._discard(prompt)
            raise

    async def alert(self, message: str, **options) -> None:
        await self.request(PromptKind.ALERT, message, **options)

    async def confirm(self, message: str, **options) -> bool:
        return await self.request(PromptKind.CONFIRM, message, **options)

    async def prompt(self, message: str, **options) -> Optional[str]:
        return await self.request(PromptKind.INPUT, message, **options)

    def resolve(self, value: Any = None) -> None:
        if self.active is None:
            return
        self.active.resolve(value)
        self._advance()

    def cancel(self) -> None:
        if self.active is None:
            return
        self.active.cancel()
        self._advance()

    def _discard(self, prompt: PendingPrompt) -> None:
        """Drop a prompt whose caller stopped waiting."""
        if self.active is prompt:
            self._advance()
        elif prompt in self._waiting:
            self._waiting.remove(prompt)
        logger.debug("Prompt withdrawn: {}", prompt.message)

    def _advance(self) -> None:
        self.active = self._waiting.popleft() if self._waiting else None
