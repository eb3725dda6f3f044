"""Read-through lookups: check the cache, fetch on a miss, store on success."""

import logging
import threading

from .api import CurseProxyAPI
from .cache import MetadataCache
from .records import AddonRecord, FileRecord

logger = logging.getLogger(__name__)


class AddonLookup:
    """Combines the metadata cache with the remote client.

    Remote errors propagate unchanged and leave the cache untouched.
    Concurrent resolutions of the same slug share one remote call.
    """

    def __init__(self, cache: MetadataCache, api: CurseProxyAPI):
        self.cache = cache
        self.api = api
        self._slug_locks: dict[str, threading.Lock] = {}
        self._slug_locks_lock = threading.Lock()

    def addon(self, addon_id: int) -> AddonRecord:
        record = self.cache.get_addon(addon_id)
        if record is not None:
            return record
        logger.debug("Fetching addon %d", addon_id)
        return self.cache.put_addon(self.api.fetch_addon(addon_id))

    def file(self, addon_id: int, file_id: int) -> FileRecord:
        record = self.cache.get_file(file_id)
        if record is not None:
            return record
        logger.debug("Fetching file %d of addon %d", file_id, addon_id)
        record = self.api.fetch_file(addon_id, file_id)
        self.cache.put_file(record)
        return record

    def _slug_lock(self, slug: str) -> threading.Lock:
        with self._slug_locks_lock:
            return self._slug_locks.setdefault(slug, threading.Lock())

    def addon_id_for_slug(self, slug: str) -> int:
        addon_id = self.cache.resolve_slug(slug)
        if addon_id is not None:
            return addon_id
        with self._slug_lock(slug):
            # Another worker may have resolved it while we waited.
            addon_id = self.cache.resolve_slug(slug)
            if addon_id is not None:
                return addon_id
            logger.debug("Resolving slug %s", slug)
            addon_id = self.api.resolve_slug_to_id(slug)
            self.cache.record_slug(slug, addon_id)
            return addon_id

    def addon_for_slug(self, slug: str) -> AddonRecord:
        return self.addon(self.addon_id_for_slug(slug))

    def file_for_slug(self, slug: str, file_id: int) -> FileRecord:
        return self.file(self.addon_id_for_slug(slug), file_id)
