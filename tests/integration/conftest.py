"""Integration test fixtures.

Provides Settings tuned for fast refresh and retry cycles plus the catalog
payload served by respx. Catalog fixtures come from tests/conftest.py
(sample_packages, profile_text_factory).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from modcatalog.config import ProfileSettings, RegistrySettings, Settings

if TYPE_CHECKING:
    from modcatalog.models.catalog import Package

BASE_URL = "https://thunderstore.io"


@pytest.fixture()
def settings() -> Settings:
    """Settings with a ~36 ms refresh interval and near-zero retry backoff."""
    return Settings(
        registry=RegistrySettings(base_url=BASE_URL, refresh_interval_hours=0.00001),
        profiles=ProfileSettings(
            initial_backoff_seconds=0.001,
            max_backoff_seconds=0.01,
            import_timeout_seconds=5.0,
        ),
    )


@pytest.fixture()
def catalog_payload(sample_packages: list[Package]) -> list[dict]:
    """sample_packages serialised the way the package listing endpoint returns them."""
    return [package.model_dump(mode="json") for package in sample_packages]
