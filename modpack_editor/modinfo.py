"""Per-mod presentation records built from concurrent metadata lookups."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any

from .api import RemoteError
from .links import (
    ProjectURLParseError,
    is_project_url,
    parse_project_file_url,
    parse_project_slug,
)
from .lookup import AddonLookup
from .pack import AdditionalFileEntry, ManifestEntry, Modpack
from .records import AddonRecord, Dependency, FileRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


@dataclass
class ModInfo:
    """What the editor shows, and edits, for one mod."""

    name: str = ""
    icon_url: str = ""
    error_message: str = ""
    summary: str = ""
    website_url: str = ""
    slug: str = ""
    on_client: bool = False
    on_server: bool = False
    file_id: int = 0
    dependencies: list[Dependency] = field(default_factory=list)
    dependants: list[Dependency] = field(default_factory=list)

    @classmethod
    def from_records(
        cls,
        addon: AddonRecord,
        file: FileRecord,
        on_client: bool,
        on_server: bool,
        file_id: int,
    ) -> "ModInfo":
        return cls(
            name=addon.name,
            icon_url=addon.icon_url(),
            summary=addon.summary,
            website_url=addon.website_url,
            slug=addon.slug,
            on_client=on_client,
            on_server=on_server,
            file_id=file_id,
            dependencies=list(file.dependencies),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "Name": self.name,
            "IconURL": self.icon_url,
            "ErrorMessage": self.error_message or None,
            "Summary": self.summary,
            "WebsiteURL": self.website_url,
            "Slug": self.slug,
            "OnClient": self.on_client,
            "OnServer": self.on_server,
            "FileID": self.file_id,
            "Dependencies": [d.to_dict() for d in self.dependencies],
            "Dependants": [d.to_dict() for d in self.dependants],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModInfo":
        return cls(
            name=data.get("Name") or "",
            icon_url=data.get("IconURL") or "",
            error_message=data.get("ErrorMessage") or "",
            summary=data.get("Summary") or "",
            website_url=data.get("WebsiteURL") or "",
            slug=data.get("Slug") or "",
            on_client=bool(data.get("OnClient", False)),
            on_server=bool(data.get("OnServer", False)),
            file_id=int(data.get("FileID") or 0),
            dependencies=[Dependency.from_dict(d) for d in data.get("Dependencies") or []],
            dependants=[Dependency.from_dict(d) for d in data.get("Dependants") or []],
        )


@dataclass
class ModInfoResult:
    mods: dict[int, ModInfo]
    unresolved_slugs: list[str]


def _manifest_mod(entry: ManifestEntry, on_server: bool, lookup: AddonLookup) -> ModInfo:
    try:
        addon = lookup.addon(entry.project_id)
        file = lookup.file(entry.project_id, entry.file_id)
    except RemoteError as e:
        logger.warning("Lookup failed for project %d: %s", entry.project_id, e)
        return ModInfo(
            error_message=str(e),
            on_client=True,
            on_server=on_server,
            file_id=entry.file_id,
        )
    return ModInfo.from_records(addon, file, True, on_server, entry.file_id)


def _additional_mod(slug: str, file_id: int, lookup: AddonLookup) -> tuple[int, ModInfo] | None:
    """Look up a server-only mod; None when its slug cannot be resolved."""
    try:
        project_id = lookup.addon_id_for_slug(slug)
    except RemoteError as e:
        logger.warning("Could not resolve slug %s: %s", slug, e)
        return None

    try:
        addon = lookup.addon(project_id)
        file = lookup.file(project_id, file_id)
    except RemoteError as e:
        logger.warning("Lookup failed for project %d (%s): %s", project_id, slug, e)
        return project_id, ModInfo(
            error_message=str(e),
            slug=slug,
            on_client=False,
            on_server=True,
            file_id=file_id,
        )
    return project_id, ModInfo.from_records(addon, file, False, True, file_id)


def compute_dependants(mods: dict[int, ModInfo]) -> None:
    """Fill in reverse dependency edges, in the order the mods were discovered."""
    for mod in mods.values():
        mod.dependants = []
    for project_id, mod in mods.items():
        for dep in mod.dependencies:
            target = mods.get(dep.addon_id)
            if target is not None:
                target.dependants.append(Dependency(addon_id=project_id, type=dep.type))


def build_mod_infos(
    manifest_entries: list[ManifestEntry],
    ignore_projects: list[int],
    additional_files: list[AdditionalFileEntry],
    lookup: AddonLookup,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> ModInfoResult:
    """
    Build a ModInfo for every mod in the pack.

    Lookups run concurrently; a failing lookup yields an error-marked record
    instead of aborting the batch. Dependants are computed after every
    lookup has finished.

    Project URLs that carry a slug but no file ID are skipped and their slug
    is reported as unresolved. A project listed in the manifest keeps its
    manifest record even when an additional file also points at it.
    """
    ignored = set(ignore_projects)
    manifest_futures: list[tuple[int, Future]] = []
    additional_futures: list[tuple[str, Future]] = []
    unresolved: list[str] = []

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        for entry in manifest_entries:
            future = pool.submit(_manifest_mod, entry, entry.project_id not in ignored, lookup)
            manifest_futures.append((entry.project_id, future))

        for additional in additional_files:
            if not is_project_url(additional.url):
                continue
            try:
                link = parse_project_file_url(additional.url)
            except ProjectURLParseError as e:
                logger.warning("Skipping additional file: %s", e)
                try:
                    unresolved.append(parse_project_slug(additional.url))
                except ProjectURLParseError:
                    pass
                continue
            future = pool.submit(_additional_mod, link.slug, link.file_id, lookup)
            additional_futures.append((link.slug, future))

        wait([f for _, f in manifest_futures] + [f for _, f in additional_futures])

    mods: dict[int, ModInfo] = {}
    for project_id, future in manifest_futures:
        mods[project_id] = future.result()
    for slug, future in additional_futures:
        result = future.result()
        if result is None:
            unresolved.append(slug)
            continue
        project_id, mod = result
        if project_id in mods:
            logger.warning("Project %d is both in the manifest and an additional file", project_id)
            if not mods[project_id].slug:
                mods[project_id].slug = slug
            continue
        mods[project_id] = mod

    compute_dependants(mods)
    return ModInfoResult(mods=mods, unresolved_slugs=unresolved)


def refresh_mod_infos(
    pack: Modpack,
    lookup: AddonLookup,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> None:
    """Rebuild ``pack.mods`` and persist the cache once for the whole batch."""
    result = build_mod_infos(
        pack.manifest_entries(),
        pack.ignore_projects(),
        pack.additional_files(),
        lookup,
        max_workers=max_workers,
    )
    pack.mods = result.mods
    pack.unresolved_slugs = result.unresolved_slugs
    lookup.cache.save()
