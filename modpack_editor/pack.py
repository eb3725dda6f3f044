"""Reading and writing the modpack config files."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from .modinfo import ModInfo

MANIFEST_FILENAME = "manifest.json"
SERVER_CONFIG_FILENAME = "server-setup-config.yaml"


class PackError(Exception):
    """Raised when pack config files cannot be read or written."""

    pass


@dataclass
class ManifestEntry:
    """A file selection in the client manifest."""

    project_id: int
    file_id: int
    required: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"projectID": self.project_id, "fileID": self.file_id, "required": self.required}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManifestEntry":
        return cls(
            project_id=int(data["projectID"]),
            file_id=int(data["fileID"]),
            required=bool(data.get("required", True)),
        )


@dataclass
class AdditionalFileEntry:
    """A server-side file delivered by direct download."""

    url: str
    destination: str

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "destination": self.destination}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AdditionalFileEntry":
        return cls(url=data.get("url") or "", destination=data.get("destination") or "")


def blank_manifest(name: str) -> dict[str, Any]:
    return {
        "minecraft": {
            "version": "1.12.2",
            "modLoaders": [{"id": "forge-14.23.5.2768", "primary": True}],
        },
        "manifestType": "minecraftModpack",
        "manifestVersion": 1,
        "name": name,
        "version": "1.0.0",
        "author": "",
        "projectID": 0,
        "files": [],
        "overrides": "overrides",
    }


def blank_server_config(name: str) -> dict[str, Any]:
    return {
        "_specver": 2,
        "modpack": {"name": name, "description": ""},
        "install": {
            "mcVersion": "1.12.2",
            "forgeVersion": "14.23.5.2768",
            "forgeInstallerUrl": "",
            "modpackUrl": "",
            "modpackFormat": "curse",
            "formatSpecific": {"ignoreProject": []},
            "baseInstallPath": "setup",
            "ignoreFiles": [],
            "additionalFiles": [],
            "localFiles": [],
            "checkFolder": True,
            "installForge": True,
            "spongeBootstrapper": "",
        },
        "launch": {
            "spongefix": False,
            "checkOffline": True,
            "maxRam": "5G",
            "autoRestart": True,
            "crashLimit": 10,
            "crashTimer": "60min",
            "preJavaArgs": "",
            "javaArgs": [],
        },
    }


@dataclass
class Modpack:
    """
    A modpack folder being edited.

    The raw config dicts are kept whole so that fields this tool does not
    manage are written back unchanged.
    """

    folder: Path
    manifest: dict[str, Any] = field(default_factory=dict)
    server_config: dict[str, Any] = field(default_factory=dict)
    mods: dict[int, "ModInfo"] = field(default_factory=dict)
    # Slugs of project download URLs that could not be resolved to an ID
    unresolved_slugs: list[str] = field(default_factory=list)

    @property
    def manifest_path(self) -> Path:
        return self.folder / MANIFEST_FILENAME

    @property
    def server_config_path(self) -> Path:
        return self.folder / SERVER_CONFIG_FILENAME

    @classmethod
    def load(cls, folder: Path) -> "Modpack":
        """Load both config files from a pack folder."""
        pack = cls(folder=Path(folder).resolve())
        try:
            with open(pack.manifest_path) as f:
                pack.manifest = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PackError(f"Failed to read {pack.manifest_path}: {e}")

        try:
            with open(pack.server_config_path) as f:
                pack.server_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise PackError(f"Failed to read {pack.server_config_path}: {e}")

        if not isinstance(pack.manifest, dict) or not isinstance(pack.server_config, dict):
            raise PackError(f"Config files in {pack.folder} are not mappings")
        return pack

    @classmethod
    def create(cls, folder: Path) -> "Modpack":
        """Create a new pack folder with blank config files."""
        folder = Path(folder).resolve()
        if folder.is_dir():
            raise PackError("Pack already exists")
        try:
            folder.mkdir(parents=True)
        except OSError as e:
            raise PackError(f"Failed to create {folder}: {e}")

        pack = cls(
            folder=folder,
            manifest=blank_manifest(folder.name),
            server_config=blank_server_config(folder.name),
        )
        pack.save()
        return pack

    def save(self) -> None:
        """Write both config files back to the pack folder."""
        try:
            with open(self.manifest_path, "w") as f:
                json.dump(self.manifest, f, indent=2)
                f.write("\n")
            with open(self.server_config_path, "w") as f:
                yaml.safe_dump(self.server_config, f, sort_keys=False, default_flow_style=False)
        except OSError as e:
            raise PackError(f"Failed to write config files in {self.folder}: {e}")

    # -- typed views of the three managed lists --

    def _format_specific(self) -> dict[str, Any]:
        install = self.server_config.get("install") or {}
        return install.get("formatSpecific") or {}

    def manifest_entries(self) -> list[ManifestEntry]:
        return [ManifestEntry.from_dict(f) for f in self.manifest.get("files") or []]

    def ignore_projects(self) -> list[int]:
        return [int(p) for p in self._format_specific().get("ignoreProject") or []]

    def additional_files(self) -> list[AdditionalFileEntry]:
        install = self.server_config.get("install") or {}
        return [AdditionalFileEntry.from_dict(a) for a in install.get("additionalFiles") or []]

    def set_lists(
        self,
        files: list[ManifestEntry],
        ignore_projects: list[int],
        additional_files: list[AdditionalFileEntry],
    ) -> None:
        """Replace the three managed lists, leaving every other field intact."""
        self.manifest["files"] = [e.to_dict() for e in files]

        install = self.server_config.get("install")
        if not isinstance(install, dict):
            install = self.server_config["install"] = {}
        format_specific = install.get("formatSpecific")
        if not isinstance(format_specific, dict):
            format_specific = install["formatSpecific"] = {}
        format_specific["ignoreProject"] = list(ignore_projects)
        install["additionalFiles"] = [a.to_dict() for a in additional_files]

    def to_dict(self) -> dict[str, Any]:
        """JSON shape sent to the editor UI."""
        return {
            "Folder": str(self.folder),
            "CurseManifest": self.manifest,
            "ServerSetupConfig": self.server_config,
            "Mods": {str(pid): mod.to_dict() for pid, mod in self.mods.items()},
        }
