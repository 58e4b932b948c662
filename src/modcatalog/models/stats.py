from __future__ import annotations

from pydantic import BaseModel


class AuthorStats(BaseModel):
    """Download statistics for a single author."""

    author: str
    mods_count: int
    total_downloads: int
    average_downloads: int
    median_downloads: int
    median_downloads_multiplied: int  # median × mods_count
    most_downloaded_mod: str | None = None
    most_downloaded_mod_url: str | None = None
    top_mods: list[str] = []


class LeaderboardEntry(BaseModel):
    author: str
    mods_count: int
    total_downloads: int
    median_downloads: int
    median_downloads_multiplied: int
