"""Application state container.

AppState is created once inside the ``app.lifespan`` context manager and
handed to the presentation layer. It owns every long-lived collaborator so
nothing reads ambient module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from modcatalog.client import RegistryClient
    from modcatalog.config import Settings
    from modcatalog.models.catalog import Snapshot
    from modcatalog.resolver import ModResolver
    from modcatalog.schedulers import RefreshScheduler
    from modcatalog.suggest import SuggestionEngine


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    http_client: httpx.AsyncClient
    registry: RegistryClient
    scheduler: RefreshScheduler
    suggestions: SuggestionEngine
    resolver: ModResolver

    @property
    def snapshot(self) -> Snapshot:
        return self.scheduler.snapshot
