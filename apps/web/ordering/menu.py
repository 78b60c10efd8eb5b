"""
Menu data source - cached menu with stale-while-revalidate semantics.

Handles:
1. Sharing one in-flight request between concurrent callers
2. Serving last-known-good data while a background refresh runs
3. Periodic revalidation as an explicit task with a cancellation handle
4. Notifying subscribers when a fresh menu arrives
"""

import asyncio
import logging
import time
from collections.abc import Callable

from tableside_schemas import MenuItem

from apps.web.ordering.client import OrderAPIClient
from apps.web.ordering.exceptions import FetchError, OrderingAPIError

logger = logging.getLogger(__name__)

MenuSubscriber = Callable[[list[MenuItem]], None]


class MenuSource:
    """
    Fetches and caches the menu item list.

    Menu state is kept apart from cart state: a refresh never touches the
    cart, so a revalidation completing after a cart change is harmless.
    """

    def __init__(
        self,
        api: OrderAPIClient,
        refresh_interval: float | None = None,
        dedupe_interval: float = 2.0,
    ) -> None:
        """
        Initialize the menu source.

        Args:
            api: Order API client used for ``GET /api/menu``.
            refresh_interval: Seconds between automatic revalidations.
                None or 0 disables polling.
            dedupe_interval: Cached data younger than this is served
                without any refresh.
        """
        self.api = api
        self.refresh_interval = refresh_interval or None
        self.dedupe_interval = dedupe_interval
        self.error: OrderingAPIError | None = None

        self._items: list[MenuItem] | None = None
        self._fetched_at: float | None = None
        self._inflight: asyncio.Task[list[MenuItem]] | None = None
        self._background: set[asyncio.Task[list[MenuItem]]] = set()
        self._refresh_task: asyncio.Task[None] | None = None
        self._subscribers: list[MenuSubscriber] = []

    @property
    def items(self) -> list[MenuItem] | None:
        """Last-known-good menu, or None before the first successful fetch."""
        return list(self._items) if self._items is not None else None

    @property
    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        return time.monotonic() - self._fetched_at >= self.dedupe_interval

    def subscribe(self, callback: MenuSubscriber) -> Callable[[], None]:
        """Register a callback for fresh menus; returns an unsubscribe handle."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def get_menu(self) -> list[MenuItem]:
        """
        Return the menu.

        Fresh cached data is returned as is. Stale cached data is returned
        immediately while a background refresh runs. Without cached data the
        call waits for the (shared) fetch.

        Raises:
            FetchError: If nothing is cached and the fetch failed.
        """
        if self._items is not None:
            if self.is_stale:
                self._revalidate_in_background()
            return list(self._items)
        return await self.revalidate()

    async def revalidate(self) -> list[MenuItem]:
        """
        Fetch the menu now, joining any request already in flight.

        Raises:
            FetchError: If the fetch failed.
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._fetch())
        # Shield so one cancelled waiter does not cancel the shared request
        return list(await asyncio.shield(self._inflight))

    async def _fetch(self) -> list[MenuItem]:
        try:
            items = await self.api.get_menu()
        except OrderingAPIError as e:
            self.error = e
            logger.warning("Menu fetch failed (%s): %s", type(e).__name__, e.message)
            raise FetchError(f"Failed to load menu: {e.message}") from e
        finally:
            self._inflight = None

        self._items = items
        self._fetched_at = time.monotonic()
        self.error = None
        logger.debug("Menu refreshed: %d items", len(items))

        for callback in list(self._subscribers):
            callback(list(items))
        return items

    def _revalidate_in_background(self) -> None:
        task = asyncio.create_task(self.revalidate())
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: "asyncio.Task[list[MenuItem]]") -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            # Last-known-good data stays in place
            logger.info("Background menu refresh failed: %s", task.exception())

    # =========================================================================
    # Polling
    # =========================================================================

    def start(self) -> None:
        """Start periodic revalidation if an interval is configured."""
        if self.refresh_interval is None or self._refresh_task is not None:
            return
        self._refresh_task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        """Cancel periodic revalidation, background refreshes and the shared fetch."""
        tasks = list(self._background)
        if self._inflight is not None:
            tasks.append(self._inflight)
        if self._refresh_task is not None:
            tasks.append(self._refresh_task)
            self._refresh_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _poll(self) -> None:
        assert self.refresh_interval is not None
        while True:
            await asyncio.sleep(self.refresh_interval)
            try:
                await self.revalidate()
            except FetchError:
                # Already logged; keep serving the last good menu
                continue

    # =========================================================================
    # Helpers
    # =========================================================================

    def categories(self) -> list[str]:
        """``All`` followed by distinct categories in first-seen order."""
        seen: list[str] = []
        for item in self._items or []:
            if item.category and item.category not in seen:
                seen.append(item.category)
        return ["All", *seen]
