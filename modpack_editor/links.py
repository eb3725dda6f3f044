"""CurseForge project URL parsing and construction."""

import re
from dataclasses import dataclass

PROJECT_URL_PREFIX = "https://minecraft.curseforge.com/projects/"

_SLUG_RE = re.compile(r"^https://minecraft\.curseforge\.com/projects/([\w\-]+)/")
_FILE_RE = re.compile(r"^https://minecraft\.curseforge\.com/projects/([\w\-]+)/files/(\d+)/")


@dataclass
class ProjectFileLink:
    """Parsed project file download URL."""

    slug: str
    file_id: int
    url: str


class ProjectURLParseError(Exception):
    """Raised when a project URL cannot be parsed."""

    pass


def is_project_url(url: str) -> bool:
    """True for URLs served by the CurseForge project site."""
    return url.startswith(PROJECT_URL_PREFIX)


def parse_project_slug(url: str) -> str:
    """
    Extract the project slug from a CurseForge project URL.

    Supported format:
        - https://minecraft.curseforge.com/projects/{slug}/...
    """
    match = _SLUG_RE.match(url)
    if not match:
        raise ProjectURLParseError(f"Could not match slug from project URL: {url}")
    return match.group(1)


def parse_project_file_url(url: str) -> ProjectFileLink:
    """
    Parse a CurseForge file download URL.

    Supported format:
        - https://minecraft.curseforge.com/projects/{slug}/files/{file_id}/download
    """
    match = _FILE_RE.match(url)
    if not match:
        raise ProjectURLParseError(
            f"Invalid project file URL format: {url}\n"
            f"Expected: {PROJECT_URL_PREFIX}{{slug}}/files/{{file_id}}/download"
        )
    return ProjectFileLink(slug=match.group(1), file_id=int(match.group(2)), url=url)


def build_download_url(slug: str, file_id: int) -> str:
    return f"{PROJECT_URL_PREFIX}{slug}/files/{file_id}/download"
