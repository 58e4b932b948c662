"""Legacy profile decoding.

A legacy profile is ``#r2modman`` followed by a base64-encoded zip. The zip
is parsed by a chain of strategies of decreasing precision; the first one
that yields mods wins:

  1. ``export.r2x``: indented key/value export with profile name,
     community and enabled flags
  2. ``manifest.json``: ``dependencies`` array of ``Author-Name-1.2.3``
  3. ``BepInEx/config/*.cfg``: author/name guessed from file names

A decode that yields no mods is not an error.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import json
import re
import zipfile
import zlib
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

import structlog

from modcatalog.client import PROFILE_MARKER
from modcatalog.errors import FormatError, ProfileTimeoutError
from modcatalog.models.profile import DecodedProfile, ModReference

if TYPE_CHECKING:
    from collections.abc import Callable

    from modcatalog.protocols import ProfileSourceProtocol

log = structlog.get_logger()

R2X_ENTRY = "export.r2x"
MANIFEST_ENTRY = "manifest.json"
CONFIG_DIR = "bepinex/config/"

# Config files from vendored framework components, not mods
EXCLUDED_CONFIG_PREFIXES: tuple[str, ...] = ("org.bepinex",)

_PROFILE_NAME_RE = re.compile(r"^\s*profileName\s*:\s*(?P<value>.+?)\s*$", re.MULTILINE)
_COMMUNITY_RE = re.compile(r"^\s*community\s*:\s*(?P<value>[A-Za-z0-9_\-]+)\s*$", re.MULTILINE)
_MODS_START_RE = re.compile(r"^\s*mods\s*:\s*$")
_ITEM_NAME_RE = re.compile(r"^\s*-\s*name\s*:\s*(?P<value>.+?)\s*$")
_VERSION_PART_RE = re.compile(r"^\s*(?P<part>major|minor|patch)\s*:\s*(?P<value>\d+)\s*$")
_INLINE_VERSION_RE = re.compile(r"^\s*version\s*:\s*\{(?P<body>[^}]*)\}\s*$")
_INLINE_PART_RE = re.compile(r"(?P<part>major|minor|patch)\s*:\s*(?P<value>\d+)")
_ENABLED_RE = re.compile(r"^\s*enabled\s*:\s*(?P<value>true|false)\s*$", re.IGNORECASE)


async def decode_profile(
    source: ProfileSourceProtocol,
    code: str,
    *,
    timeout: float | None = None,
) -> DecodedProfile:
    """Fetch a legacy profile by code and decode its mod list.

    The whole fetch (including retries) is bounded by ``timeout`` seconds;
    expiry raises ProfileTimeoutError. Errors from the source propagate.
    """
    try:
        async with asyncio.timeout(timeout):
            text = await source.fetch_legacy_profile(code)
    except TimeoutError as exc:
        raise ProfileTimeoutError(f"Timed out fetching profile {code} after {timeout}s") from exc

    profile = parse_profile_archive(decode_profile_text(text))
    log.info(
        "profile_decoded",
        code=code,
        strategy=profile.strategy,
        mods=len(profile.mods),
        community=profile.community,
    )
    return profile


def decode_profile_text(text: str) -> bytes:
    """Strip the marker and base64-decode the remainder into zip bytes."""
    if not text.startswith(PROFILE_MARKER):
        raise FormatError(f"Profile data does not start with {PROFILE_MARKER!r}")

    payload = "".join(text[len(PROFILE_MARKER) :].split())
    if not payload:
        raise FormatError("Profile data is empty after the marker")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FormatError("Profile data is not valid base64") from exc


def parse_profile_archive(data: bytes) -> DecodedProfile:
    """Open the zip and run the strategy chain. First non-empty result wins."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as exc:
        raise FormatError("Profile data is not a zip archive") from exc

    with archive:
        for strategy in STRATEGIES:
            try:
                result = strategy(archive)
            except (
                zipfile.BadZipFile,
                zipfile.LargeZipFile,
                zlib.error,
                NotImplementedError,  # unsupported compression method
                RuntimeError,  # encrypted entry
                OSError,
            ) as exc:
                raise FormatError("Profile archive is corrupt") from exc
            if result is not None and result.mods:
                return result
    return DecodedProfile()


# ---------------------------------------------------------------------------
# Strategy 1: export.r2x
# ---------------------------------------------------------------------------


def parse_from_r2x(archive: zipfile.ZipFile) -> DecodedProfile | None:
    entry = _find_entry(archive, lambda name: name.lower() == R2X_ENTRY)
    if entry is None:
        return None
    text = archive.read(entry).decode("utf-8-sig", errors="replace")
    mods, community, profile_name = parse_r2x(text)
    return DecodedProfile(
        mods=mods, community=community, profile_name=profile_name, strategy="r2x"
    )


def parse_r2x(text: str) -> tuple[list[ModReference], str | None, str | None]:
    """Line-scan an r2x export into (mods, community, profile name).

    Only enabled items carrying all three version parts are kept. An item is
    flushed when the next ``- name:`` line or the end of input is reached.
    """
    profile_match = _PROFILE_NAME_RE.search(text)
    profile_name = profile_match.group("value").strip() if profile_match else None
    community_match = _COMMUNITY_RE.search(text)
    community = community_match.group("value").strip() if community_match else None

    mods: list[ModReference] = []
    in_mods = False
    item: _R2xItem | None = None

    for line in text.splitlines():
        if not in_mods:
            in_mods = bool(_MODS_START_RE.match(line))
            continue

        name_match = _ITEM_NAME_RE.match(line)
        if name_match:
            if item is not None:
                item.flush_into(mods)
            item = _R2xItem(name_match.group("value"))
            continue

        if item is None:
            continue

        part_match = _VERSION_PART_RE.match(line)
        if part_match:
            item.parts[part_match.group("part")] = int(part_match.group("value"))
            continue

        inline_match = _INLINE_VERSION_RE.match(line)
        if inline_match:
            for part in _INLINE_PART_RE.finditer(inline_match.group("body")):
                item.parts[part.group("part")] = int(part.group("value"))
            continue

        enabled_match = _ENABLED_RE.match(line)
        if enabled_match:
            item.enabled = enabled_match.group("value").lower() == "true"

    if item is not None:
        item.flush_into(mods)

    return mods, community, profile_name


class _R2xItem:
    """Accumulates one ``mods:`` list item while scanning."""

    def __init__(self, full_name: str) -> None:
        self.full_name = full_name.strip().strip("'\"")
        self.parts: dict[str, int] = {}
        self.enabled = True

    def flush_into(self, mods: list[ModReference]) -> None:
        if not self.enabled or not self.full_name:
            return
        if not {"major", "minor", "patch"} <= self.parts.keys():
            return
        author, sep, name = self.full_name.partition("-")
        if not sep or not author or not name:
            return
        version = f"{self.parts['major']}.{self.parts['minor']}.{self.parts['patch']}"
        mods.append(
            ModReference(
                author=author,
                name=name,
                version=version,
                original=f"{author}-{name}-{version}",
            )
        )


# ---------------------------------------------------------------------------
# Strategy 2: manifest.json
# ---------------------------------------------------------------------------


def parse_from_manifest(archive: zipfile.ZipFile) -> DecodedProfile | None:
    entry = _find_entry(archive, lambda name: name.lower() == MANIFEST_ENTRY)
    if entry is None:
        entry = _find_entry(archive, lambda name: name.lower().endswith("/" + MANIFEST_ENTRY))
    if entry is None:
        return None

    try:
        manifest = json.loads(archive.read(entry).decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        log.debug("profile_manifest_unreadable", entry=entry.filename)
        return None

    dependencies = manifest.get("dependencies") if isinstance(manifest, dict) else None
    if not isinstance(dependencies, list):
        return None

    mods = [
        mod
        for dep in dependencies
        if isinstance(dep, str) and (mod := parse_dependency(dep)) is not None
    ]
    # Old manifests carry neither community nor profile name
    return DecodedProfile(mods=mods, strategy="manifest")


def parse_dependency(dependency: str) -> ModReference | None:
    """Parse ``Author-Name-Version``, splitting from the right.

    The version is the last token, the author the first, and the name
    everything in between, so ``Org-My-Mod-2.0.0`` → Org / My-Mod / 2.0.0.
    """
    parts = [part for part in dependency.split("-") if part]
    if len(parts) < 3:
        return None

    author = parts[0].strip()
    name = "-".join(parts[1:-1]).strip()
    version = parts[-1].strip()
    if not author or not name or not version:
        return None
    return ModReference(author=author, name=name, version=version, original=dependency)


# ---------------------------------------------------------------------------
# Strategy 3: BepInEx config file names
# ---------------------------------------------------------------------------


def guess_from_configs(archive: zipfile.ZipFile) -> DecodedProfile:
    """Best-effort author/name guesses from ``BepInEx/config/*.cfg`` file names.

    Versions are unknown. Results are lossy and may mis-attribute files
    written by third-party frameworks.
    """
    guesses: dict[str, ModReference] = {}
    for info in archive.infolist():
        filename = info.filename.replace("\\", "/")
        lowered = filename.lower()
        if not lowered.startswith(CONFIG_DIR) or not lowered.endswith(".cfg"):
            continue

        stem = PurePosixPath(filename).stem
        if not stem.strip():
            continue
        if stem.lower().startswith(EXCLUDED_CONFIG_PREFIXES):
            continue

        pair = _split_config_stem(stem)
        if pair is None:
            continue
        author, name = pair
        guesses.setdefault(
            f"{author}-{name}".lower(),
            ModReference(author=author, name=name, version="", original=f"{author}-{name}"),
        )

    return DecodedProfile(mods=list(guesses.values()), strategy="configs")


def _split_config_stem(stem: str) -> tuple[str, str] | None:
    # Prefer Author.NameLikeThis, then Author_NameLikeThis
    for separator in (".", "_"):
        parts = [part for part in stem.split(separator) if part]
        if len(parts) >= 2:
            return parts[0], separator.join(parts[1:])
    return None


def _find_entry(
    archive: zipfile.ZipFile,
    predicate: Callable[[str], bool],
) -> zipfile.ZipInfo | None:
    for info in archive.infolist():
        if not info.is_dir() and predicate(info.filename.replace("\\", "/")):
            return info
    return None


STRATEGIES: tuple[Callable[[zipfile.ZipFile], DecodedProfile | None], ...] = (
    parse_from_r2x,
    parse_from_manifest,
    guess_from_configs,
)
