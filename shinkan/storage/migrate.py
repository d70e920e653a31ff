"""
One-off conversion of the legacy single-file format.

Older installs kept every feed in ``{"mangas": [...]}``. The current store
expects ``{"feeds": [...]}`` per kind, with ``type`` and ``category`` set
on every entry.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..core.types import DEFAULT_CATEGORY, FeedKind
from ..errors import PersistenceError


def migrate_legacy_document(source: Path, destination: Path | None = None) -> int:
    """Rewrite a legacy ``{"mangas": [...]}`` document as ``{"feeds": [...]}``.

    Unknown keys on each entry are preserved. Missing ``type`` defaults to
    manga, missing ``category`` to "Uncategorized" and missing ``addedAt``
    to an empty string.

    Args:
        source: Path of the legacy document
        destination: Output path, defaults to overwriting source

    Returns:
        Number of migrated entries
    """
    destination = destination or source
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise PersistenceError(f"failed to read legacy file {source}: {exc}") from exc

    if not isinstance(raw, dict) or not isinstance(raw.get("mangas"), list):
        raise PersistenceError(f"{source} is not a legacy document (missing 'mangas' list)")

    feeds = [_migrate_entry(entry) for entry in raw["mangas"] if isinstance(entry, dict)]

    tmp_path = destination.with_suffix(destination.suffix + ".tmp")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps({"feeds": feeds}, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        tmp_path.replace(destination)
    except OSError as exc:
        raise PersistenceError(f"failed to write {destination}: {exc}") from exc
    return len(feeds)


def _migrate_entry(entry: dict[str, Any]) -> dict[str, Any]:
    feed = dict(entry)
    feed.setdefault("type", FeedKind.MANGA.value)
    feed.setdefault("category", DEFAULT_CATEGORY)
    feed.setdefault("addedAt", "")
    return feed
