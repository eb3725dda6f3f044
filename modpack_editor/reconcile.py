"""
Rewrites the pack's manifest files, ignore list and additional files from
an edited mod mapping.

Entries that did not change keep their positions so that diffs of the
config files stay readable. New entries are always appended at the end of
their list.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Iterable, Mapping, TypeVar

from .api import RemoteError
from .links import (
    ProjectURLParseError,
    build_download_url,
    is_project_url,
    parse_project_file_url,
    parse_project_slug,
)
from .lookup import AddonLookup
from .modinfo import ModInfo
from .pack import AdditionalFileEntry, ManifestEntry, Modpack

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class InvalidPlacement(Exception):
    """Raised when a mod is on neither the client nor the server."""

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Mod is not on server or client: {project_id}")


class ReconciliationError(Exception):
    """Raised when a new additional file entry cannot be built."""

    pass


class IndexedList(Generic[K, T]):
    """
    An ordered list plus an explicit key -> position index.

    Items whose key is None are carried along but never indexed, so they
    can't be updated or removed. Later duplicates of a key are dropped.
    """

    def __init__(self, items: Iterable[T], key: Callable[[T], K | None]):
        self.items: list[T] = []
        self._index: dict[K, int] = {}
        for item in items:
            k = key(item)
            if k is None:
                self.items.append(item)
            elif k in self._index:
                logger.warning("Dropping duplicate entry for %s", k)
            else:
                self._index[k] = len(self.items)
                self.items.append(item)

    def __contains__(self, k: K) -> bool:
        return k in self._index

    def __len__(self) -> int:
        return len(self.items)

    def keys(self) -> list[K]:
        return list(self._index)

    def get(self, k: K) -> T | None:
        pos = self._index.get(k)
        return self.items[pos] if pos is not None else None

    def append(self, k: K, item: T) -> None:
        self._index[k] = len(self.items)
        self.items.append(item)

    def replace(self, k: K, item: T) -> None:
        self.items[self._index[k]] = item

    def remove(self, k: K) -> None:
        pos = self._index.pop(k, None)
        if pos is None:
            return
        del self.items[pos]
        for other, other_pos in self._index.items():
            if other_pos > pos:
                self._index[other] = other_pos - 1


@dataclass
class ReconciledLists:
    files: list[ManifestEntry]
    ignore_projects: list[int]
    additional_files: list[AdditionalFileEntry]


def _additional_file_slug(entry: AdditionalFileEntry) -> str | None:
    if not is_project_url(entry.url):
        return None
    try:
        return parse_project_slug(entry.url)
    except ProjectURLParseError as e:
        raise ReconciliationError(str(e))


def _build_additional_file(
    project_id: int, slug: str, file_id: int, lookup: AddonLookup
) -> AdditionalFileEntry:
    try:
        file = lookup.file(project_id, file_id)
    except RemoteError as e:
        raise ReconciliationError(
            f"Could not look up file {file_id} of {slug} ({project_id}): {e}"
        ) from e
    if not file.file_name_on_disk:
        raise ReconciliationError(f"File {file_id} of {slug} has no file name")
    lookup.cache.record_slug(slug, project_id)
    return AdditionalFileEntry(
        url=build_download_url(slug, file_id),
        destination=f"mods/{file.file_name_on_disk}",
    )


class _Reconciler:
    def __init__(
        self,
        files: list[ManifestEntry],
        ignore_projects: list[int],
        additional_files: list[AdditionalFileEntry],
        lookup: AddonLookup,
    ):
        self.lookup = lookup
        self.manifest: IndexedList[int, ManifestEntry] = IndexedList(
            files, lambda e: e.project_id
        )
        self.ignore: IndexedList[int, int] = IndexedList(ignore_projects, lambda p: p)
        self.additional: IndexedList[str, AdditionalFileEntry] = IndexedList(
            additional_files, _additional_file_slug
        )
        self.seen_projects: set[int] = set()
        self.seen_ignored: set[int] = set()
        self.seen_slugs: set[str] = set()

    def sync_manifest(self, should_exist: bool, project_id: int, file_id: int) -> None:
        self.seen_projects.add(project_id)
        entry = self.manifest.get(project_id)
        if entry is not None:
            if not should_exist:
                self.manifest.remove(project_id)
                logger.info("Removed project %d from manifest", project_id)
            elif entry.file_id != file_id:
                logger.info(
                    "Updated project %d in manifest: file %d -> %d",
                    project_id, entry.file_id, file_id,
                )
                self.manifest.replace(
                    project_id, ManifestEntry(project_id, file_id, entry.required)
                )
        elif should_exist:
            self.manifest.append(project_id, ManifestEntry(project_id, file_id, True))
            logger.info("Added project %d to manifest", project_id)

    def sync_ignore(self, should_exist: bool, project_id: int) -> None:
        self.seen_ignored.add(project_id)
        if project_id in self.ignore:
            if not should_exist:
                self.ignore.remove(project_id)
                logger.info("Removed project %d from ignore list", project_id)
        elif should_exist:
            self.ignore.append(project_id, project_id)
            logger.info("Added project %d to ignore list", project_id)

    def sync_additional(
        self, should_exist: bool, project_id: int, slug: str, file_id: int
    ) -> None:
        if not slug:
            if should_exist:
                raise ReconciliationError(
                    f"Project {project_id} has no slug to build a download URL from"
                )
            return
        self.seen_slugs.add(slug)

        entry = self.additional.get(slug)
        if entry is not None:
            if not should_exist:
                self.additional.remove(slug)
                logger.info("Removed %s from additional files", slug)
                return
            try:
                old_file_id = parse_project_file_url(entry.url).file_id
            except ProjectURLParseError:
                old_file_id = None
            if old_file_id != file_id:
                self.additional.replace(
                    slug, _build_additional_file(project_id, slug, file_id, self.lookup)
                )
                logger.info("Updated %s in additional files to file %d", slug, file_id)
        elif should_exist:
            self.additional.append(
                slug, _build_additional_file(project_id, slug, file_id, self.lookup)
            )
            logger.info("Added %s to additional files", slug)

    def apply(self, project_id: int, mod: ModInfo) -> None:
        if mod.on_client:
            self.sync_manifest(True, project_id, mod.file_id)
            self.sync_ignore(not mod.on_server, project_id)
            self.sync_additional(False, project_id, mod.slug, mod.file_id)
        elif mod.on_server:
            self.sync_manifest(False, project_id, mod.file_id)
            self.sync_ignore(False, project_id)
            self.sync_additional(True, project_id, mod.slug, mod.file_id)
        else:
            raise InvalidPlacement(project_id)

    def drop_unseen(self, keep_slugs: Iterable[str]) -> None:
        for project_id in self.manifest.keys():
            if project_id not in self.seen_projects:
                self.manifest.remove(project_id)
                logger.info("Removed project %d from manifest", project_id)
        for project_id in self.ignore.keys():
            if project_id not in self.seen_ignored:
                self.ignore.remove(project_id)
                logger.info("Removed project %d from ignore list", project_id)
        keep = self.seen_slugs | set(keep_slugs)
        for slug in self.additional.keys():
            if slug not in keep:
                self.additional.remove(slug)
                logger.info("Removed %s from additional files", slug)


def reconcile_lists(
    files: list[ManifestEntry],
    ignore_projects: list[int],
    additional_files: list[AdditionalFileEntry],
    mods: Mapping[int, ModInfo],
    lookup: AddonLookup,
    keep_slugs: Iterable[str] = (),
) -> ReconciledLists:
    """
    Rewrite the three lists so they match the placement of every mod.

    Mods missing from ``mods`` are removed from all lists; additional files
    whose slug is in ``keep_slugs`` are left alone. The input lists are not
    modified.
    """
    reconciler = _Reconciler(files, ignore_projects, additional_files, lookup)
    for project_id, mod in mods.items():
        reconciler.apply(int(project_id), mod)
    reconciler.drop_unseen(keep_slugs)
    return ReconciledLists(
        files=reconciler.manifest.items,
        ignore_projects=reconciler.ignore.items,
        additional_files=reconciler.additional.items,
    )


def update_mod_lists(pack: Modpack, mods: Mapping[int, ModInfo], lookup: AddonLookup) -> None:
    """
    Apply an edited mod mapping to a pack.

    The pack is only changed once every list has been reconciled.
    """
    result = reconcile_lists(
        pack.manifest_entries(),
        pack.ignore_projects(),
        pack.additional_files(),
        mods,
        lookup,
        keep_slugs=pack.unresolved_slugs,
    )
    pack.set_lists(result.files, result.ignore_projects, result.additional_files)
    pack.mods = {int(pid): mod for pid, mod in mods.items()}
