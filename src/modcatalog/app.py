"""Runtime wiring.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState inside an async lifespan context manager
- Start and stop the catalog refresh loop
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog

from modcatalog import __version__
from modcatalog.client import RegistryClient, build_http_client
from modcatalog.config import Settings
from modcatalog.importer import import_profile
from modcatalog.resolver import MetadataCache, ModResolver
from modcatalog.schedulers import RefreshScheduler
from modcatalog.state import AppState
from modcatalog.suggest import SuggestionEngine

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx

    from modcatalog.models.profile import ProfileImport

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    configure_logging: bool = True,
) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources.

    The refresh loop starts immediately; the first snapshot is published
    in the background, so early suggestion queries may return empty lists.
    A caller-supplied ``http_client`` is not closed on exit.
    """
    settings = settings or Settings()
    if configure_logging:
        setup_logging(settings)

    log.info(
        "modcatalog_starting",
        version=__version__,
        community=settings.registry.community,
        refresh_interval_hours=settings.registry.refresh_interval_hours,
    )

    owns_client = http_client is None
    client = http_client if http_client is not None else build_http_client(settings)
    registry = RegistryClient(client, settings.registry, settings.profiles)

    scheduler = RefreshScheduler(
        registry,
        interval_seconds=settings.registry.refresh_interval_hours * 3600,
    )
    resolver = ModResolver(
        registry,
        MetadataCache(ttl_seconds=settings.resolver.metadata_ttl_seconds),
    )

    state = AppState(
        settings=settings,
        http_client=client,
        registry=registry,
        scheduler=scheduler,
        suggestions=SuggestionEngine(scheduler),
        resolver=resolver,
    )

    scheduler.start()
    log.info("modcatalog_started", version=__version__)

    try:
        yield state
    finally:
        await scheduler.stop()
        if owns_client:
            await client.aclose()
        log.info("modcatalog_stopping")


async def import_profile_code(state: AppState, code: str) -> ProfileImport:
    """Run the profile import pipeline with the configured community and deadline."""
    return await import_profile(
        state.registry,
        state.resolver,
        code,
        default_community=state.settings.profiles.default_community,
        timeout=state.settings.profiles.import_timeout_seconds,
    )
