"""Service layer - pack operations shared by the CLI and the web UI."""

import copy
import logging
import threading
from pathlib import Path
from typing import Mapping

from .api import CurseProxyAPI
from .cache import MetadataCache
from .config import EditorConfig
from .lookup import AddonLookup
from .modinfo import ModInfo, compute_dependants, refresh_mod_infos
from .pack import Modpack, PackError
from .reconcile import update_mod_lists

logger = logging.getLogger(__name__)


class ModpackEditorService:
    """
    Owns the metadata cache and the currently open pack.

    Pack operations and cache writes are serialized by a single lock.
    """

    def __init__(
        self,
        config: EditorConfig | None = None,
        api: CurseProxyAPI | None = None,
        cache: MetadataCache | None = None,
    ):
        self.config = config or EditorConfig()
        if cache is None:
            cache = MetadataCache.load(
                self.config.cache_file, persist=self.config.persist_cache
            )
        self.cache = cache
        self.api = api or CurseProxyAPI(
            api_url=self.config.api_url,
            graphql_url=self.config.graphql_url,
            timeout=self.config.timeout,
        )
        self.lookup = AddonLookup(self.cache, self.api)
        self.pack: Modpack | None = None
        self._lock = threading.Lock()

    def open_last_pack(self) -> Modpack | None:
        """Reopen the pack folder recorded in the cache, if there is one."""
        folder = self.cache.last_opened_folder
        if not folder:
            return None
        try:
            return self.load_pack(Path(folder))
        except PackError as e:
            logger.warning("Error loading modpack from cached folder: %s", e)
            return None

    def current_pack(self) -> Modpack | None:
        with self._lock:
            return self.pack

    def load_pack(self, folder: Path) -> Modpack:
        """Load a pack folder and look up every mod in it."""
        with self._lock:
            pack = Modpack.load(folder)
            self.cache.last_opened_folder = str(pack.folder)
            refresh_mod_infos(pack, self.lookup, max_workers=self.config.max_workers)
            self.pack = pack
            return pack

    def create_pack(self, folder: Path) -> Modpack:
        """Create a blank pack folder and open it."""
        with self._lock:
            pack = Modpack.create(folder)
            self.cache.last_opened_folder = str(pack.folder)
            self.cache.save()
            self.pack = pack
            return pack

    def save_pack(self, mods: Mapping[int, ModInfo]) -> Modpack:
        """
        Apply an edited mod mapping to the open pack and write its files.

        On failure the open pack is left exactly as it was.
        """
        with self._lock:
            if self.pack is None:
                raise PackError("No modpack is open")
            scratch = copy.deepcopy(self.pack)
            update_mod_lists(scratch, copy.deepcopy(dict(mods)), self.lookup)
            compute_dependants(scratch.mods)
            scratch.save()
            self.pack = scratch
            self.cache.save()
            return scratch

    def set_placement(
        self,
        project_id: int,
        on_client: bool,
        on_server: bool,
        file_id: int | None = None,
    ) -> Modpack:
        """Add a mod to the open pack, or move or update an existing one."""
        pack = self.current_pack()
        if pack is None:
            raise PackError("No modpack is open")

        mods = copy.deepcopy(pack.mods)
        mod = mods.get(project_id)
        if mod is None:
            if file_id is None:
                raise PackError(f"A file ID is required to add project {project_id}")
            addon = self.lookup.addon(project_id)
            file = self.lookup.file(project_id, file_id)
            mod = ModInfo.from_records(addon, file, on_client, on_server, file_id)
            mods[project_id] = mod
        mod.on_client = on_client
        mod.on_server = on_server
        if file_id is not None:
            mod.file_id = file_id
        return self.save_pack(mods)

    def remove_mod(self, project_id: int) -> Modpack:
        pack = self.current_pack()
        if pack is None:
            raise PackError("No modpack is open")
        if project_id not in pack.mods:
            raise PackError(f"Project {project_id} is not in the pack")
        mods = {pid: mod for pid, mod in pack.mods.items() if pid != project_id}
        return self.save_pack(mods)
