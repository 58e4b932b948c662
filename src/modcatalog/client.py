"""Thunderstore HTTP client.

All network I/O goes through a single RegistryClient instance. The client
receives an httpx.AsyncClient via constructor injection; the lifespan owns
the client lifecycle.

Catalog and community fetches do not retry: the refresh scheduler and the
resolver's metadata cache own that policy. The legacy-profile fetch retries
429, 5xx and connectivity failures with capped exponential backoff.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from modcatalog.errors import (
    FormatError,
    InvalidInputError,
    KeyNotFoundError,
    NetworkError,
    RateLimitedError,
    TransportError,
)
from modcatalog.models.catalog import Package

if TYPE_CHECKING:
    from modcatalog.config import ProfileSettings, RegistrySettings, Settings

log = structlog.get_logger()

PROFILE_MARKER = "#r2modman"

_PACKAGE_LIST = TypeAdapter(list[Package])


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        base_url=settings.registry.base_url,
        follow_redirects=True,
        timeout=httpx.Timeout(
            settings.registry.request_timeout_seconds,
            connect=settings.registry.connect_timeout_seconds,
        ),
        headers={"User-Agent": "modcatalog/1.0"},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


def community_packages_path(community: str) -> str:
    return f"/c/{quote(community, safe='')}/api/v1/package/"


def legacy_profile_path(code: str) -> str:
    return f"/api/experimental/legacyprofile/get/{quote(code, safe='')}/"


def parse_retry_after(value: str | None) -> float | None:
    """Return the Retry-After header as seconds, or None if absent/not positive."""
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    return float(seconds) if seconds > 0 else None


class RegistryClient:
    """Reads the package catalog and legacy profiles from Thunderstore."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        registry: RegistrySettings,
        profiles: ProfileSettings,
    ) -> None:
        self._client = client
        self._registry = registry
        self._profiles = profiles

    @property
    def catalog_community(self) -> str:
        return self._registry.community

    async def fetch_catalog(self) -> list[Package]:
        """Fetch the full catalog for the configured community."""
        return await self.fetch_community_packages(self._registry.community)

    async def fetch_community_packages(self, community: str) -> list[Package]:
        """Fetch every package published in one community.

        Raises NetworkError on connectivity failure, TransportError on a
        non-2xx status and FormatError when the body is not a package list.
        """
        path = community_packages_path(community)
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Network error fetching {path}: {exc}") from exc

        if not response.is_success:
            raise TransportError(
                f"HTTP {response.status_code} fetching {path}",
                status_code=response.status_code,
            )

        try:
            packages = _PACKAGE_LIST.validate_json(response.content)
        except ValidationError as exc:
            raise FormatError(f"Unexpected package list shape from {path}") from exc

        log.info(
            "community_packages_fetched",
            community=community,
            packages=len(packages),
            content_length=len(response.content),
        )
        return packages

    async def fetch_legacy_profile(self, code: str) -> str:
        """Download the raw legacy profile text (``#r2modman`` + base64 zip)."""
        code = code.strip()
        if not code:
            raise InvalidInputError("Profile code is empty.")

        path = legacy_profile_path(code)
        settings = self._profiles
        delay = settings.initial_backoff_seconds

        for attempt in range(1, settings.max_attempts + 1):
            last_attempt = attempt == settings.max_attempts

            try:
                response = await self._client.get(path)
            except httpx.HTTPError as exc:
                if last_attempt:
                    raise NetworkError(f"Network error fetching profile {code}: {exc}") from exc
                log.warning("profile_fetch_retry", reason="network_error", attempt=attempt)
                await asyncio.sleep(delay)
                delay = self._next_delay(delay)
                continue

            if response.is_success:
                text = response.text
                if not text.startswith(PROFILE_MARKER):
                    raise FormatError(
                        f"Response for profile {code} does not start with {PROFILE_MARKER!r}"
                    )
                log.info("profile_fetch_complete", code=code, attempts=attempt)
                return text

            status = response.status_code

            if status == 404:
                raise KeyNotFoundError(f"Profile code not found: {code}")

            if status == 429:
                if last_attempt:
                    raise RateLimitedError(
                        f"Rate limited fetching profile {code} after {attempt} attempts"
                    )
                retry_after = parse_retry_after(response.headers.get("retry-after"))
                sleep_for = (
                    min(retry_after, settings.max_retry_after_seconds)
                    if retry_after is not None
                    else delay
                )
                log.warning(
                    "profile_fetch_retry",
                    reason="rate_limited",
                    attempt=attempt,
                    sleep_seconds=sleep_for,
                )
                await asyncio.sleep(sleep_for)
                delay = self._next_delay(delay)
                continue

            if status >= 500 and not last_attempt:
                log.warning(
                    "profile_fetch_retry",
                    reason="server_error",
                    attempt=attempt,
                    status_code=status,
                )
                await asyncio.sleep(delay)
                delay = self._next_delay(delay)
                continue

            raise TransportError(
                f"HTTP {status} fetching profile {code}: {response.text[:200]}",
                status_code=status,
            )

        # Unreachable but satisfies the type checker
        raise TransportError(f"Failed to fetch profile {code} after retries")

    def _next_delay(self, delay: float) -> float:
        return min(
            delay * self._profiles.backoff_multiplier,
            self._profiles.max_backoff_seconds,
        )
