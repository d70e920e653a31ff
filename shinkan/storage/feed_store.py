"""
Durable feed storage split into a manga and an anime partition.

Each partition is one JSON document ({"feeds": [...]}) guarded by its own
reader/writer lock. Every write reads the full partition, mutates it in
memory and replaces the whole file (temp file + rename).

Writes lock and replace a single partition. An update that moves a record
between kinds, or an import that touches both kinds, performs two
independent file replacements; a crash between them can leave the two
files inconsistent with each other.
"""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
from dataclasses import replace
import json
import logging
from pathlib import Path
import threading
import time
from typing import Iterable, Iterator

from ..core.types import DEFAULT_CATEGORY, UNSET, FeedKind, FeedPatch, FeedRecord
from ..errors import NotFoundError, PersistenceError, ValidationError
from ..utils.clock import Clock, to_rfc3339, utc_now
from .locks import ReadWriteLock

logger = logging.getLogger(__name__)


class _IdGenerator:
    """Monotonic, time-derived ids (nanoseconds since the epoch)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next(self) -> str:
        with self._lock:
            self._last = max(time.time_ns(), self._last + 1)
            return str(self._last)


class _Partition:
    def __init__(self, kind: FeedKind, path: Path):
        self.kind = kind
        self.path = path
        self.lock = ReadWriteLock()

    def ensure(self) -> None:
        """Create an empty document if missing, else verify it parses."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"failed to create data directory {self.path.parent}: {exc}") from exc
        if not self.path.exists():
            self.save([])
            logger.info("Created empty %s data file at %s", self.kind.value, self.path)
            return
        self.load()

    def load(self) -> list[FeedRecord]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"failed to read {self.path}: {exc}") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"failed to parse {self.path}: {exc}") from exc

        if isinstance(data, dict):
            entries = data.get("feeds", [])
        elif isinstance(data, list):
            entries = data
        else:
            raise PersistenceError(f"unexpected document shape in {self.path}")
        if not isinstance(entries, list):
            raise PersistenceError(f"'feeds' is not a list in {self.path}")

        try:
            return [FeedRecord.from_dict(entry) for entry in entries]
        except ValidationError as exc:
            raise PersistenceError(f"invalid feed entry in {self.path}: {exc}") from exc

    def save(self, records: list[FeedRecord]) -> None:
        payload = {"feeds": [record.to_dict() for record in records]}
        content = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp_path.write_text(content, encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            raise PersistenceError(f"failed to write {self.path}: {exc}") from exc


def _find(records: list[FeedRecord], feed_id: str) -> FeedRecord | None:
    for record in records:
        if record.id == feed_id:
            return record
    return None


class FeedStore:
    """Persistent collection of feed records partitioned by kind.

    Construct once and share the instance between every caller; the
    locks only serialize access through the same instance.
    """

    def __init__(self, manga_path: Path | str, anime_path: Path | str, clock: Clock = utc_now):
        self._partitions = {
            FeedKind.MANGA: _Partition(FeedKind.MANGA, Path(manga_path)),
            FeedKind.ANIME: _Partition(FeedKind.ANIME, Path(anime_path)),
        }
        self._clock = clock
        self._ids = _IdGenerator()
        for partition in self._partitions.values():
            partition.ensure()

    @property
    def manga_path(self) -> Path:
        return self._partitions[FeedKind.MANGA].path

    @property
    def anime_path(self) -> Path:
        return self._partitions[FeedKind.ANIME].path

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self) -> list[FeedRecord]:
        """Return every record, manga partition first."""
        records: list[FeedRecord] = []
        for partition in self._partitions.values():
            with partition.lock.read():
                records.extend(partition.load())
        return records

    def get(self, feed_id: str) -> FeedRecord:
        for record in self.list():
            if record.id == feed_id:
                return record
        raise NotFoundError(feed_id)

    def search(self, query: str) -> list[FeedRecord]:
        """Case-insensitive substring match over name, URL and marker."""
        needle = query.lower()
        if not needle:
            return []
        return [
            record
            for record in self.list()
            if needle in record.name.lower()
            or needle in record.source_url.lower()
            or (record.last_chapter is not None and needle in record.last_chapter.lower())
        ]

    def list_categories(self) -> set[str]:
        return {record.category or DEFAULT_CATEGORY for record in self.list()}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, record: FeedRecord) -> FeedRecord:
        """Store a copy of record with a fresh id and creation timestamp."""
        new_record = replace(
            record,
            id=self._ids.next(),
            added_at=to_rfc3339(self._clock()),
            fail_count=0,
            category=record.category or DEFAULT_CATEGORY,
        )
        partition = self._partitions[new_record.kind]
        with partition.lock.write():
            records = partition.load()
            records.append(new_record)
            partition.save(records)
        logger.debug("Added feed %s (%s)", new_record.id, new_record.name)
        return replace(new_record)

    def delete(self, feed_id: str) -> None:
        """Remove the record with feed_id; absent ids are ignored."""
        for partition in self._partitions.values():
            with partition.lock.write():
                records = partition.load()
                kept = [record for record in records if record.id != feed_id]
                if len(kept) != len(records):
                    partition.save(kept)
                    return

    def update(self, feed_id: str, patch: FeedPatch) -> FeedRecord:
        """Apply the present fields of patch to the record with feed_id.

        Only the owning partition is locked. A kind change takes both locks
        and moves the record to the other partition, which is two separate
        file writes.

        Raises:
            NotFoundError: If no partition holds feed_id
        """
        for kind, partition in self._partitions.items():
            with partition.lock.write():
                records = partition.load()
                record = _find(records, feed_id)
                if record is None:
                    continue
                if patch.kind is not UNSET and patch.kind is not kind:
                    break
                patch.apply(record)
                partition.save(records)
                return replace(record)
        else:
            raise NotFoundError(feed_id)
        return self._move(feed_id, patch)

    def _move(self, feed_id: str, patch: FeedPatch) -> FeedRecord:
        with self._write_all():
            loaded = {kind: partition.load() for kind, partition in self._partitions.items()}
            for kind, records in loaded.items():
                record = _find(records, feed_id)
                if record is None:
                    continue
                patch.apply(record)
                if record.kind is not kind:
                    records.remove(record)
                    loaded[record.kind].append(record)
                    self._partitions[record.kind].save(loaded[record.kind])
                self._partitions[kind].save(records)
                return replace(record)
        raise NotFoundError(feed_id)

    def import_records(self, candidates: Iterable[FeedRecord]) -> tuple[int, int]:
        """Insert candidates whose source URL is not stored yet.

        Returns:
            (imported, skipped)
        """
        imported = 0
        skipped = 0
        with self._write_all():
            loaded = {kind: partition.load() for kind, partition in self._partitions.items()}
            existing_urls = {record.source_url for records in loaded.values() for record in records}
            touched: set[FeedKind] = set()
            for candidate in candidates:
                if candidate.source_url in existing_urls:
                    skipped += 1
                    continue
                record = replace(
                    candidate,
                    id=self._ids.next(),
                    added_at=to_rfc3339(self._clock()),
                    fail_count=0,
                    last_chapter=None,
                    last_checked=None,
                    last_error=None,
                    category=candidate.category or DEFAULT_CATEGORY,
                )
                loaded[record.kind].append(record)
                existing_urls.add(record.source_url)
                touched.add(record.kind)
                imported += 1
            for kind in touched:
                self._partitions[kind].save(loaded[kind])
        return imported, skipped

    @contextmanager
    def _write_all(self) -> Iterator[None]:
        # Fixed acquisition order: manga, then anime
        with ExitStack() as stack:
            for partition in self._partitions.values():
                stack.enter_context(partition.lock.write())
            yield
