"""Profile import pipeline: fetch → decode → resolve under one deadline."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from modcatalog.decoder import decode_profile
from modcatalog.errors import ProfileTimeoutError
from modcatalog.models.profile import ProfileImport

if TYPE_CHECKING:
    from modcatalog.protocols import ProfileSourceProtocol
    from modcatalog.resolver import ModResolver

log = structlog.get_logger()

DEFAULT_COMMUNITY = "valheim"
DEFAULT_IMPORT_TIMEOUT_SECONDS = 20.0


async def import_profile(
    source: ProfileSourceProtocol,
    resolver: ModResolver,
    code: str,
    *,
    default_community: str = DEFAULT_COMMUNITY,
    timeout: float | None = DEFAULT_IMPORT_TIMEOUT_SECONDS,
) -> ProfileImport:
    """Decode a legacy profile and enrich its mods.

    The community named by the export wins over ``default_community``. A
    profile without mods is returned as-is without touching the metadata
    endpoint. Both network round trips share the same ``timeout``.
    """
    try:
        async with asyncio.timeout(timeout):
            decoded = await decode_profile(source, code)
            community = (decoded.community or "").strip() or default_community
            enriched = await resolver.enrich(decoded.mods, community) if decoded.mods else []
    except TimeoutError as exc:
        log.warning("profile_import_timeout", code=code, timeout=timeout)
        raise ProfileTimeoutError(f"Timed out importing profile {code} after {timeout}s") from exc

    log.info(
        "profile_imported",
        code=code,
        community=community,
        strategy=decoded.strategy,
        mods=len(enriched),
    )
    return ProfileImport(
        profile_name=decoded.profile_name,
        community=community,
        strategy=decoded.strategy,
        mods=enriched,
    )
