"""Addon and file records as returned by the remote addon directory."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Dependency:
    """A dependency edge from a file (or mod) to another addon."""

    addon_id: int
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {"addOnId": self.addon_id, "type": self.type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Dependency":
        return cls(addon_id=int(data.get("addOnId", 0)), type=str(data.get("type", "")))


@dataclass
class Attachment:
    """An image attached to an addon page."""

    thumbnail_url: str
    url: str = ""
    default: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"thumbnailUrl": self.thumbnail_url, "url": self.url, "default": self.default}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Attachment":
        return cls(
            thumbnail_url=data.get("thumbnailUrl") or "",
            url=data.get("url") or "",
            default=bool(data.get("default", False)),
        )


@dataclass
class FileRecord:
    """
    A published file of an addon.

    Files never change after publication, so an available record is kept
    forever once cached.
    """

    id: int
    file_name: str = ""
    file_name_on_disk: str = ""
    download_url: str = ""
    dependencies: list[Dependency] = field(default_factory=list)
    game_versions: list[str] = field(default_factory=list)
    available: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "fileNameOnDisk": self.file_name_on_disk,
            "downloadURL": self.download_url,
            "dependencies": [d.to_dict() for d in self.dependencies],
            "gameVersion": list(self.game_versions),
            "available": self.available,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileRecord":
        return cls(
            id=int(data.get("id", 0)),
            file_name=data.get("fileName") or "",
            file_name_on_disk=data.get("fileNameOnDisk") or "",
            download_url=data.get("downloadURL") or "",
            dependencies=[Dependency.from_dict(d) for d in data.get("dependencies") or []],
            game_versions=list(data.get("gameVersion") or []),
            available=bool(data.get("available", False)),
        )

    # The API and the snapshot share one shape.
    from_api = from_dict


@dataclass
class AddonRecord:
    """Addon metadata plus the files the directory listed with it."""

    id: int
    name: str = ""
    slug: str = ""
    summary: str = ""
    website_url: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    latest_files: list[FileRecord] = field(default_factory=list)
    available: bool = False
    last_queried: datetime | None = None

    def icon_url(self) -> str:
        """
        Small icon URL derived from the default attachment.

        The directory serves 256x256 thumbnails; the small size lives at the
        same path with 62/62. Animated icons only have a static preview under
        the ``_animated.gif`` name.
        """
        icon = ""
        for attachment in self.attachments:
            if not attachment.default:
                continue
            icon = attachment.thumbnail_url.replace("256/256", "62/62", 1)
            icon = icon.replace(".gif", "_animated.gif", 1)
        return icon

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "summary": self.summary,
            "webSiteURL": self.website_url,
            "attachments": [a.to_dict() for a in self.attachments],
            "latestFiles": [f.to_dict() for f in self.latest_files],
            "available": self.available,
            "lastQueried": self.last_queried.isoformat() if self.last_queried else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AddonRecord":
        last_queried = data.get("lastQueried")
        return cls(
            id=int(data.get("id", 0)),
            name=data.get("name") or "",
            slug=data.get("slug") or "",
            summary=data.get("summary") or "",
            website_url=data.get("webSiteURL") or "",
            attachments=[Attachment.from_dict(a) for a in data.get("attachments") or []],
            latest_files=[FileRecord.from_dict(f) for f in data.get("latestFiles") or []],
            available=bool(data.get("available", False)),
            last_queried=datetime.fromisoformat(last_queried) if last_queried else None,
        )

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "AddonRecord":
        """Build a record from an API response; freshness is stamped by the cache."""
        record = cls.from_dict(data)
        record.last_queried = None
        return record
