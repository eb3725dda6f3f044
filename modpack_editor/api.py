"""CurseProxy API client for addon, file and slug lookups."""

from typing import Any

import requests

from .records import AddonRecord, FileRecord

API_BASE_URL = "https://curse.nikky.moe/api"
GRAPHQL_URL = "https://curse.nikky.moe/graphql"
USER_AGENT = "modpack-editor/0.1.0"

SLUG_QUERY = """
query getIDFromSlug($slug: String) {
    addons(slug: $slug) {
        id
    }
}
"""


class RemoteError(Exception):
    """Base exception for remote addon directory errors."""

    pass


class AddonNotFound(RemoteError):
    """Raised when a slug resolves to no addons."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Addon not found: {slug}")


class CurseProxyAPI:
    """Client for the CurseProxy REST and GraphQL endpoints.

    Every call is a plain request/response; nothing here touches the cache.
    """

    def __init__(
        self,
        api_url: str = API_BASE_URL,
        graphql_url: str = GRAPHQL_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.graphql_url = graphql_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            }
        )

    def _handle_response(self, response: requests.Response) -> Any:
        """Check the status code and decode the JSON body."""
        if response.status_code == 404:
            raise RemoteError(f"Resource not found: {response.url}")
        if not response.ok:
            raise RemoteError(
                f"Unexpected status {response.status_code} from {response.url}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(f"Invalid JSON from {response.url}: {e}")

    def _get(self, url: str) -> dict[str, Any]:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteError(f"Request to {url} failed: {e}")
        data = self._handle_response(response)
        if not isinstance(data, dict):
            raise RemoteError(f"Unexpected response from {url}: {data!r}")
        return data

    def fetch_addon(self, addon_id: int) -> AddonRecord:
        """Get addon metadata, including its latest files."""
        url = f"{self.api_url}/addon/{addon_id}"
        data = self._get(url)
        try:
            return AddonRecord.from_api(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RemoteError(f"Malformed response from {url}: {e}") from e

    def fetch_file(self, addon_id: int, file_id: int) -> FileRecord:
        """Get metadata for one file of an addon."""
        url = f"{self.api_url}/addon/{addon_id}/file/{file_id}"
        data = self._get(url)
        try:
            return FileRecord.from_api(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RemoteError(f"Malformed response from {url}: {e}") from e

    def resolve_slug_to_id(self, slug: str) -> int:
        """
        Resolve a project slug to its numeric addon ID.

        The GraphQL endpoint answers errors with HTTP 200 and an embedded
        exception object, so the body is inspected rather than the status.
        """
        try:
            response = self.session.post(
                self.graphql_url,
                json={"query": SLUG_QUERY, "variables": {"slug": slug}},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RemoteError(f"Slug lookup for {slug} failed: {e}")

        data = self._handle_response(response)
        if not isinstance(data, dict):
            raise RemoteError(f"Unexpected slug lookup response: {data!r}")
        if data.get("exception") or data.get("message"):
            raise RemoteError(
                f"Error requesting id for slug {slug}: {data.get('message') or data.get('exception')}"
            )
        if data.get("errors"):
            raise RemoteError(f"GraphQL errors: {data['errors']}")

        addons = (data.get("data") or {}).get("addons") or []
        if not addons:
            raise AddonNotFound(slug)
        try:
            return int(addons[0]["id"])
        except (KeyError, TypeError, ValueError):
            raise RemoteError(f"Malformed slug lookup response: {addons[0]!r}")
