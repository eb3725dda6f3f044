"""Shared fixtures: an in-memory remote directory, a fake clock and pack folders."""

import json
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from modpack_editor.api import AddonNotFound, RemoteError
from modpack_editor.cache import MetadataCache
from modpack_editor.config import EditorConfig
from modpack_editor.lookup import AddonLookup
from modpack_editor.records import AddonRecord, Attachment, Dependency, FileRecord
from modpack_editor.service import ModpackEditorService


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def make_file(file_id: int, name: str | None = None, deps=()) -> FileRecord:
    name = name or f"file-{file_id}.jar"
    return FileRecord(
        id=file_id,
        file_name=name,
        file_name_on_disk=name,
        download_url=f"https://edge.forgecdn.net/files/{file_id}/{name}",
        dependencies=[Dependency(addon_id=a, type=t) for a, t in deps],
        available=True,
    )


def make_addon(addon_id: int, slug: str | None = None, files=()) -> AddonRecord:
    slug = slug or f"mod-{addon_id}"
    return AddonRecord(
        id=addon_id,
        name=f"Mod {addon_id}",
        slug=slug,
        summary=f"Summary of {slug}",
        website_url=f"https://minecraft.curseforge.com/projects/{slug}",
        attachments=[
            Attachment(
                thumbnail_url=f"https://media.forgecdn.net/avatars/thumbnails/1/{addon_id}/256/256/icon.png",
                default=True,
            )
        ],
        latest_files=list(files),
        available=True,
    )


class FakeAPI:
    """Stands in for CurseProxyAPI, serving records from dicts and counting calls."""

    def __init__(self, auto_files: bool = False):
        self.addons: dict[int, AddonRecord] = {}
        self.files: dict[int, FileRecord] = {}
        self.slugs: dict[str, int] = {}
        self.failing: set = set()
        self.auto_files = auto_files
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def add(self, addon: AddonRecord, *files: FileRecord) -> None:
        self.addons[addon.id] = addon
        self.slugs[addon.slug] = addon.id
        for f in files:
            self.files[f.id] = f

    def _record(self, *call) -> None:
        with self._lock:
            self.calls.append(call)

    def count(self, kind: str) -> int:
        return sum(1 for c in self.calls if c[0] == kind)

    def fetch_addon(self, addon_id: int) -> AddonRecord:
        self._record("addon", addon_id)
        if ("addon", addon_id) in self.failing or addon_id not in self.addons:
            raise RemoteError(f"Resource not found: addon {addon_id}")
        return self.addons[addon_id]

    def fetch_file(self, addon_id: int, file_id: int) -> FileRecord:
        self._record("file", addon_id, file_id)
        if ("file", file_id) in self.failing:
            raise RemoteError(f"Resource not found: file {file_id}")
        if file_id in self.files:
            return self.files[file_id]
        if self.auto_files:
            return make_file(file_id, f"mod-{addon_id}-{file_id}.jar")
        raise RemoteError(f"Resource not found: file {file_id}")

    def resolve_slug_to_id(self, slug: str) -> int:
        self._record("slug", slug)
        if ("slug", slug) in self.failing:
            raise RemoteError(f"Error requesting id for slug: {slug}")
        if slug not in self.slugs:
            raise AddonNotFound(slug)
        return self.slugs[slug]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def api() -> FakeAPI:
    return FakeAPI()


@pytest.fixture()
def cache(clock) -> MetadataCache:
    return MetadataCache(persist=False, clock=clock)


@pytest.fixture()
def lookup(cache, api) -> AddonLookup:
    return AddonLookup(cache, api)


def write_pack(folder: Path, files=(), ignore=(), additional=()) -> Path:
    """Write a minimal pack folder with the given managed lists."""
    folder.mkdir(parents=True, exist_ok=True)
    manifest = {
        "minecraft": {"version": "1.12.2", "modLoaders": [{"id": "forge-14.23.5.2768", "primary": True}]},
        "manifestType": "minecraftModpack",
        "manifestVersion": 1,
        "name": "Test Pack",
        "version": "1.0.0",
        "author": "tester",
        "files": [{"projectID": p, "fileID": f, "required": True} for p, f in files],
        "overrides": "overrides",
    }
    config = {
        "_specver": 2,
        "modpack": {"name": "Test Pack", "description": "for tests"},
        "install": {
            "mcVersion": "1.12.2",
            "formatSpecific": {"ignoreProject": list(ignore)},
            "additionalFiles": [{"url": u, "destination": d} for u, d in additional],
            "checkFolder": True,
        },
        "launch": {"maxRam": "5G", "javaArgs": []},
    }
    (folder / "manifest.json").write_text(json.dumps(manifest, indent=2))
    (folder / "server-setup-config.yaml").write_text(yaml.safe_dump(config, sort_keys=False))
    return folder


@pytest.fixture()
def service(api, cache) -> ModpackEditorService:
    return ModpackEditorService(EditorConfig(persist_cache=False, max_workers=4), api=api, cache=cache)
