"""
Keyed debounce: a new call for a key cancels the pending call for that key.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)


class Debouncer:

    def __init__(self):
        self._pending: Dict[str, asyncio.Task] = {}

    def debounce(self, key: str, delay_ms: float, fn: Callable[..., Awaitable[Any]], *args) -> asyncio.Task:
        """
        Schedule `fn(*args)` after `delay_ms` of quiet for `key`.

        Returns the task; a superseded task ends cancelled.
        """
        self.cancel(key)
        task = asyncio.ensure_future(self._run(key, delay_ms, fn, args))
        self._pending[key] = task
        return task

    async def _run(self, key: str, delay_ms: float, fn, args):
        try:
            await asyncio.sleep(delay_ms / 1000)
            return await fn(*args)
        finally:
            if self._pending.get(key) is asyncio.current_task():
                del self._pending[key]

    def cancel(self, key: str) -> bool:
        task = self._pending.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self):
        for task in self._pending.values():
            task.cancel()
        self._pending.clear()

    def pending(self) -> List[str]:
        return list(self._pending)
