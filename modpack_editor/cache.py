"""Metadata cache for addon, file and slug lookups, persisted as a gzip snapshot."""

import gzip
import json
import logging
import os
import tempfile
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from .records import AddonRecord, FileRecord

logger = logging.getLogger(__name__)

# Snapshots written with an older version are discarded on load.
CACHE_VERSION = 3
ADDON_TTL = timedelta(hours=48)
DEFAULT_CACHE_FILE = "modpack-editor-cache.json.gz"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheLoadError(Exception):
    """Raised when a cache snapshot cannot be read or decoded."""

    pass


class MetadataCache:
    """
    Addon, file and slug maps, each guarded by its own lock.

    Addon records expire after ADDON_TTL. Available file records and slug
    mappings never expire.
    """

    def __init__(
        self,
        path: Path | None = None,
        persist: bool = True,
        clock: Clock | None = None,
    ):
        self.path = Path(path) if path is not None else None
        self.persist = persist
        self.last_opened_folder: str = ""
        self._clock = clock or _utcnow
        self._addons: dict[int, AddonRecord] = {}
        self._files: dict[int, FileRecord] = {}
        self._slugs: dict[str, int] = {}
        self._addons_lock = threading.Lock()
        self._files_lock = threading.Lock()
        self._slugs_lock = threading.Lock()

    # -- addons --

    def get_addon(self, addon_id: int) -> AddonRecord | None:
        """Return a fresh, available addon record or None."""
        with self._addons_lock:
            record = self._addons.get(addon_id)
        if record is None or not record.available or record.last_queried is None:
            return None
        if self._clock() - record.last_queried >= ADDON_TTL:
            return None
        return record

    def put_addon(self, record: AddonRecord) -> AddonRecord:
        """Store an addon record stamped with the current time."""
        stamped = replace(record, last_queried=self._clock())
        with self._files_lock:
            for file_record in stamped.latest_files:
                self._files.setdefault(file_record.id, file_record)
        with self._addons_lock:
            self._addons[stamped.id] = stamped
        return stamped

    # -- files --

    def get_file(self, file_id: int) -> FileRecord | None:
        with self._files_lock:
            record = self._files.get(file_id)
        if record is None or not record.available:
            return None
        return record

    def put_file(self, record: FileRecord) -> None:
        with self._files_lock:
            existing = self._files.get(record.id)
            if existing is not None and existing.available:
                return
            self._files[record.id] = record

    # -- slugs --

    def resolve_slug(self, slug: str) -> int | None:
        with self._slugs_lock:
            return self._slugs.get(slug)

    def record_slug(self, slug: str, addon_id: int) -> None:
        with self._slugs_lock:
            self._slugs.setdefault(slug, addon_id)

    # -- persistence --

    def to_dict(self) -> dict[str, Any]:
        with self._addons_lock:
            addons = {str(k): v.to_dict() for k, v in self._addons.items()}
        with self._files_lock:
            files = {str(k): v.to_dict() for k, v in self._files.items()}
        with self._slugs_lock:
            slugs = dict(self._slugs)
        return {
            "addonsByID": addons,
            "filesByID": files,
            "idsBySlug": slugs,
            "lastOpenedFolder": self.last_opened_folder,
            "version": CACHE_VERSION,
        }

    def _restore(self, data: dict[str, Any]) -> None:
        self._addons = {
            int(k): AddonRecord.from_dict(v) for k, v in (data.get("addonsByID") or {}).items()
        }
        self._files = {
            int(k): FileRecord.from_dict(v) for k, v in (data.get("filesByID") or {}).items()
        }
        self._slugs = {str(k): int(v) for k, v in (data.get("idsBySlug") or {}).items()}
        self.last_opened_folder = data.get("lastOpenedFolder") or ""

    @classmethod
    def load(
        cls,
        path: Path,
        persist: bool = True,
        clock: Clock | None = None,
    ) -> "MetadataCache":
        """
        Load a snapshot from disk.

        A missing, outdated or unreadable snapshot yields an empty cache;
        loading never fails.
        """
        cache = cls(path=path, persist=persist, clock=clock)
        if not persist:
            return cache

        try:
            data = _read_snapshot(Path(path))
        except FileNotFoundError:
            return cache
        except CacheLoadError as e:
            logger.warning("Error loading from cache, starting empty: %s", e)
            return cache

        version = data.get("version", 0)
        if not isinstance(version, int) or version < CACHE_VERSION:
            logger.info("Cache is too old (version %s), discarding", version)
            return cache

        try:
            cache._restore(data)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Error loading from cache, starting empty: %s", e)
            return cls(path=path, persist=persist, clock=clock)

        logger.debug(
            "Loaded cache: %d addons, %d files, %d slugs",
            len(cache._addons), len(cache._files), len(cache._slugs),
        )
        return cache

    def save(self, path: Path | None = None) -> None:
        """
        Write the snapshot, replacing the previous one atomically.

        Persistence is best-effort: failures are logged, not raised. Callers
        must not run two saves at once.
        """
        if not self.persist:
            return
        target = Path(path) if path is not None else self.path
        if target is None:
            return

        payload = json.dumps(self.to_dict()).encode("utf-8")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
            )
            try:
                with os.fdopen(fd, "wb") as raw, gzip.GzipFile(fileobj=raw, mode="wb") as f:
                    f.write(payload)
                os.replace(tmp_name, target)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error("Error writing to cache %s: %s", target, e)


def _read_snapshot(path: Path) -> dict[str, Any]:
    """Decompress and decode a snapshot file."""
    try:
        with gzip.open(path, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        raise
    except (OSError, EOFError) as e:
        raise CacheLoadError(f"Cannot read {path}: {e}")

    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CacheLoadError(f"Invalid cache snapshot {path}: {e}")
    if not isinstance(data, dict):
        raise CacheLoadError(f"Invalid cache snapshot {path}: not an object")
    return data
