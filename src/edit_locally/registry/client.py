"""Client for the crates.io package metadata API."""

from typing import Optional

import requests

from ..config import get_config, get_registry_api_url
from ..core.errors import RegistryError
from ..utils.console import _rich_debug, _rich_status
from ..utils.helpers import with_retry
from ..version import get_user_agent


class CratesRegistryClient:
    """Fetches package metadata, in particular the source repository URL."""

    def __init__(self, api_url: Optional[str] = None, retries: int = 2, backoff: float = 1.0,
                 session: Optional[requests.Session] = None, timeout: float = 30.0):
        """Initialize the registry client.

        Args:
            api_url (str, optional): Base metadata URL; the package name is appended.
                Defaults to EDIT_LOCALLY_REGISTRY_URL or the configured URL.
            retries (int): Extra attempts on connection errors and timeouts.
            backoff (float): Initial retry delay in seconds.
            session (requests.Session, optional): Session to reuse.
            timeout (float): Per-request timeout in seconds.
        """
        self.api_url = (api_url or get_registry_api_url()).rstrip("/")
        self.retries = retries
        self.backoff = backoff
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": get_config().get("user_agent") or get_user_agent(),
        })

    def get_crate(self, name: str) -> dict:
        """Get the metadata document of a package.

        Args:
            name (str): Package name.

        Returns:
            dict: The decoded JSON document.

        Raises:
            NetworkError: If the request kept failing at the transport level.
            RegistryError: On a non-200 status or a body that is not JSON.
        """
        url = f"{self.api_url}/{name}"
        _rich_status("Fetching", f"metadata for `{name}`")

        response = with_retry(
            lambda: self.session.get(url, timeout=self.timeout),
            retries=self.retries,
            backoff=self.backoff,
            description="download crate metadata",
            transient=(requests.ConnectionError, requests.Timeout),
        )

        if response.status_code != 200:
            raise RegistryError(f"failed to get 200, got {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise RegistryError(f"invalid JSON in metadata for `{name}`: {e}")

    def get_repository_url(self, name: str) -> Optional[str]:
        """Get the repository URL a package lists, if any.

        Args:
            name (str): Package name.

        Returns:
            Optional[str]: Repository URL, or None when the package lists none.
        """
        data = self.get_crate(name)
        crate = data.get("crate") if isinstance(data, dict) else None
        if not isinstance(crate, dict):
            raise RegistryError(f"metadata for `{name}` has no `crate` object")

        repository = crate.get("repository")
        if not isinstance(repository, str) or not repository.strip():
            return None
        _rich_debug(f"`{name}` lists repository {repository}")
        return repository.strip()
