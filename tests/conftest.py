"""Shared test fixtures for the modcatalog test suite."""

from __future__ import annotations

import base64
import io
import zipfile
from typing import Any

import pytest

from modcatalog.models.catalog import Package, Snapshot
from modcatalog.snapshot import build_snapshot


def make_package(
    owner: str,
    name: str,
    versions: list[tuple[str, int, str]] | None = None,
    categories: list[str] | None = None,
    **extra: Any,
) -> Package:
    """Build a Package the way the API would return it.

    ``versions`` is a list of (version_number, downloads, date_created).
    """
    payload: dict[str, Any] = {
        "owner": owner,
        "name": name,
        "full_name": f"{owner}-{name}",
        "package_url": f"https://thunderstore.io/c/valheim/p/{owner}/{name}/",
        "categories": categories or [],
        "date_created": versions[-1][2] if versions else "",
        "versions": [
            {
                "version_number": number,
                "downloads": downloads,
                "date_created": created,
                "icon": f"https://gcdn.thunderstore.io/{owner}-{name}-{number}.png",
                "description": f"{name} {number}",
                "dependencies": [],
            }
            for number, downloads, created in (versions or [])
        ],
    }
    payload.update(extra)
    return Package.model_validate(payload)


def make_profile_text(files: dict[str, str | bytes]) -> str:
    """Zip ``files``, base64 it and prepend the r2modman marker."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return "#r2modman\n" + base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture()
def sample_packages() -> list[Package]:
    """Small Valheim-like catalog with a duplicate and a nameless entry."""
    return [
        make_package(
            "Azumatt",
            "AzuCraftyBoxes",
            [
                ("1.6.1", 1000, "2024-03-01T10:00:00Z"),
                ("1.6.0", 500, "2024-01-01T10:00:00Z"),
            ],
            ["Mods", "Tweaks"],
        ),
        make_package(
            "Azumatt",
            "AzuExtendedPlayerInventory",
            [("1.4.0", 3000, "2024-02-01T10:00:00Z")],
            ["Mods"],
        ),
        make_package(
            "RandyKnapp",
            "EpicLoot",
            [
                ("5.0.0", 2000, "2023-06-01T10:00:00Z"),
                ("5.1.0", 2600, "2023-09-01T10:00:00Z"),
            ],
            ["Mods", "Items"],
        ),
        make_package(
            "denikson",
            "BepInExPack_Valheim",
            [("5.4.2202", 10000, "2023-01-01T10:00:00Z")],
            ["Libraries"],
            is_pinned=True,
        ),
        make_package(
            "Org",
            "My-Mod",
            [("2.0.0", 10, "2024-04-01T10:00:00Z")],
            ["Modpacks"],
        ),
        # duplicate identity with fewer versions: collapses into the first entry
        make_package(
            "azumatt",
            "azucraftyboxes",
            [("0.0.1", 99999, "2022-01-01T10:00:00Z")],
            ["Mods"],
        ),
        make_package("", "Orphan", [("1.0.0", 5, "2024-01-01T10:00:00Z")]),
    ]


@pytest.fixture()
def snapshot(sample_packages: list[Package]) -> Snapshot:
    """Snapshot built from sample_packages."""
    return build_snapshot(sample_packages)


@pytest.fixture()
def package_factory():
    """Expose make_package to tests that build their own catalogs."""
    return make_package


@pytest.fixture()
def profile_text_factory():
    """Expose make_profile_text to tests that build legacy profiles."""
    return make_profile_text
