"""Runtime configuration for the Garden package.

Environment variables (all optional; explicit keyword arguments take precedence):
    GARDEN_SOURCE_DIR            – note corpus directory (default ``content/garden``)
    GARDEN_SEARCH_INDEX          – search index output path
                                   (default ``public/garden-search-index.json``)
    GARDEN_CACHE_PATH            – corpus snapshot file (default ``.garden-cache.json``)
    GARDEN_EXCLUDED_DIRS         – comma-separated directory names to skip
    GARDEN_DROPBOX_APP_KEY       – Dropbox app key
    GARDEN_DROPBOX_APP_SECRET    – Dropbox app secret
    GARDEN_DROPBOX_REFRESH_TOKEN – long-lived Dropbox refresh token
    GARDEN_WP_BASE_URL           – WordPress site URL
    GARDEN_WP_APP_USER           – WordPress application-password user
    GARDEN_WP_APP_PASSWORD       – WordPress application password
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_SOURCE_DIR = Path("content") / "garden"
DEFAULT_SEARCH_INDEX = Path("public") / "garden-search-index.json"
DEFAULT_CACHE_PATH = Path(".garden-cache.json")
DEFAULT_EXCLUDED_DIRS = frozenset({"templates", ".obsidian", ".trash"})
SEARCH_INDEX_URL = "/garden-search-index.json"


def _split_csv(value: str) -> frozenset[str]:
    return frozenset(part.strip() for part in value.split(",") if part.strip())


@dataclass
class GardenConfig:
    source_dir: Path = DEFAULT_SOURCE_DIR
    search_index_path: Path = DEFAULT_SEARCH_INDEX
    cache_path: Path = DEFAULT_CACHE_PATH
    excluded_dirs: frozenset[str] = DEFAULT_EXCLUDED_DIRS
    dropbox_app_key: str = ""
    dropbox_app_secret: str = ""
    dropbox_refresh_token: str = field(default="", repr=False)
    wp_base_url: str = ""
    wp_app_user: str = ""
    wp_app_password: str = field(default="", repr=False)

    @classmethod
    def from_env(
        cls,
        *,
        source_dir: Path | str | None = None,
        search_index_path: Path | str | None = None,
        cache_path: Path | str | None = None,
    ) -> "GardenConfig":
        excluded = os.getenv("GARDEN_EXCLUDED_DIRS", "")
        return cls(
            source_dir=Path(source_dir or os.getenv("GARDEN_SOURCE_DIR", "") or DEFAULT_SOURCE_DIR),
            search_index_path=Path(
                search_index_path or os.getenv("GARDEN_SEARCH_INDEX", "") or DEFAULT_SEARCH_INDEX
            ),
            cache_path=Path(cache_path or os.getenv("GARDEN_CACHE_PATH", "") or DEFAULT_CACHE_PATH),
            excluded_dirs=_split_csv(excluded) if excluded else DEFAULT_EXCLUDED_DIRS,
            dropbox_app_key=os.getenv("GARDEN_DROPBOX_APP_KEY", ""),
            dropbox_app_secret=os.getenv("GARDEN_DROPBOX_APP_SECRET", ""),
            dropbox_refresh_token=os.getenv("GARDEN_DROPBOX_REFRESH_TOKEN", ""),
            wp_base_url=os.getenv("GARDEN_WP_BASE_URL", ""),
            wp_app_user=os.getenv("GARDEN_WP_APP_USER", ""),
            wp_app_password=os.getenv("GARDEN_WP_APP_PASSWORD", ""),
        )
