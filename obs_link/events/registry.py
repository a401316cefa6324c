"""
events/registry.py — Ordered subscriber lists per EventKind.

Subscribers are invoked in registration order and isolated from each other: a
subscriber that raises is logged and the rest still run. Coroutine subscribers
are scheduled as tasks (in registration order) so they may await OBS requests
without holding up the dispatch loop that would deliver the replies.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from .types import EventKind

log = logging.getLogger(__name__)

EventCallback = Callable[[Any], Any]


@dataclass(eq=False)
class Subscription:
    kind: EventKind
    callback: EventCallback


class SubscriberRegistry:
    def __init__(self):
        self._subscribers: dict[EventKind, list[Subscription]] = defaultdict(list)
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, kind: EventKind, callback: EventCallback) -> Subscription:
        sub = Subscription(EventKind(kind), callback)
        self._subscribers[sub.kind].append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> bool:
        subs = self._subscribers.get(sub.kind, [])
        if sub in subs:
            subs.remove(sub)
            return True
        return False

    def subscribers(self, kind: EventKind) -> list[Subscription]:
        return list(self._subscribers.get(kind, []))

    def publish(self, kind: EventKind, event: Any) -> int:
        """Invoke every subscriber of kind with event. Returns how many were invoked."""
        invoked = 0
        for sub in self.subscribers(kind):
            invoked += 1
            try:
                result = sub.callback(event)
            except Exception as e:
                log.error(f"{kind.value} subscriber {_name(sub.callback)} failed: {e}", exc_info=True)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(lambda t, k=kind, cb=sub.callback: self._task_done(t, k, cb))
        return invoked

    async def drain(self) -> None:
        """Wait for every coroutine subscriber scheduled so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _task_done(self, task: asyncio.Task, kind: EventKind, callback: EventCallback) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error(f"{kind.value} subscriber {_name(callback)} failed: {exc}", exc_info=exc)


def _name(callback: EventCallback) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)
