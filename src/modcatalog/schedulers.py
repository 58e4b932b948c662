"""Background catalog refresh.

RefreshScheduler owns the currently published Snapshot. A single asyncio
task refreshes it at startup and then once per interval. Publication is a
single attribute assignment, so readers see either the old or the new
Snapshot in full and never need a lock.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from modcatalog.models.catalog import Snapshot
from modcatalog.snapshot import build_snapshot

if TYPE_CHECKING:
    from modcatalog.protocols import CatalogSourceProtocol

log = structlog.get_logger()

DEFAULT_REFRESH_INTERVAL_SECONDS = 60 * 60


class RefreshScheduler:
    """Periodically mirrors the catalog into an immutable Snapshot."""

    def __init__(
        self,
        source: CatalogSourceProtocol,
        *,
        interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
    ) -> None:
        self._source = source
        self._interval_seconds = interval_seconds
        self._snapshot = Snapshot()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.last_refreshed_at: datetime | None = None
        self.refresh_count = 0

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self, reason: str = "manual") -> bool:
        """Fetch, index and publish. Returns False and keeps the old Snapshot on failure."""
        log.info("catalog_refresh_started", reason=reason)
        try:
            packages = await self._source.fetch_catalog()
            snapshot = build_snapshot(packages)
        except Exception:
            log.warning("catalog_refresh_failed", reason=reason, exc_info=True)
            return False

        self._snapshot = snapshot
        self.last_refreshed_at = snapshot.built_at
        self.refresh_count += 1
        log.info(
            "catalog_refresh_complete",
            reason=reason,
            packages=len(snapshot.packages),
            authors=len(snapshot.authors),
            categories=len(snapshot.categories),
        )
        return True

    async def run(self) -> None:
        """Refresh immediately, then every interval until stopped."""
        if self._stop_event.is_set():
            return
        await self.refresh("initial")

        while not self._stop_event.is_set():
            with suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_seconds)
            if self._stop_event.is_set():
                break
            await self.refresh("periodic")

        log.info("catalog_refresh_loop_stopped", refreshes=self.refresh_count)

    def start(self) -> asyncio.Task[None]:
        """Spawn the refresh loop. Calling start() on a running scheduler is a no-op."""
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self.run(), name="catalog-refresh")
            log.info(
                "catalog_refresh_loop_started",
                interval_seconds=self._interval_seconds,
                started_at=datetime.now(UTC).isoformat(),
            )
        return self._task

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it, cancelling any in-flight refresh."""
        self._stop_event.set()
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
