"""
ghostleak/ghost/navigation.py
Navigation Event Adapter.

Turns host navigation callbacks of the shape

    (tab_id, change_info{url?, status?}, tab{url?})

into dispatches. Only two shapes are acted on, and never both for one
callback: a URL change, or else a "complete" status carrying the tab's URL.
Duplicate origins are not filtered here; that is the dispatcher's job.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Set

from ghostleak.engine.dispatcher import CheckDispatcher
from ghostleak.engine.targets import parse_target
from ghostleak.errors import TargetError
from ghostleak.utils.async_helpers import create_safe_task

logger = logging.getLogger(__name__)

STATUS_COMPLETE = "complete"


def navigation_url(change_info: Mapping[str, Any], tab: Optional[Mapping[str, Any]]) -> Optional[str]:
    url = change_info.get("url")
    if url:
        return url
    if change_info.get("status") == STATUS_COMPLETE and tab and tab.get("url"):
        return tab["url"]
    return None


class NavigationEventAdapter:
    def __init__(
        self,
        dispatcher: CheckDispatcher,
        spawn: Callable[..., asyncio.Task] = create_safe_task,
    ):
        self.dispatcher = dispatcher
        self._spawn = spawn
        self._pending: Set[asyncio.Task] = set()

    def on_updated(
        self,
        tab_id: Any,
        change_info: Mapping[str, Any],
        tab: Optional[Mapping[str, Any]] = None,
    ) -> Optional[asyncio.Task]:
        """Host callback. Schedules the dispatch and returns its task, if any."""
        url = navigation_url(change_info, tab)
        if url is None:
            return None

        try:
            scheme, hostname = parse_target(url)
        except TargetError:
            return None

        task = self._spawn(self.dispatcher.dispatch(scheme, hostname), name=f"dispatch tab={tab_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every dispatch scheduled so far to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._pending)
