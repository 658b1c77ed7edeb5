"""Exception hierarchy for edit-locally.

Input errors derive from ``ValueError``, not-found errors from ``LookupError``
and transport failures from ``RuntimeError`` so callers can catch either the
specific class or the broad built-in category.
"""

from pathlib import Path
from typing import List, Optional


class EditLocallyError(Exception):
    """Base class for every fatal error raised by edit-locally."""


class ManifestNotFoundError(EditLocallyError, FileNotFoundError):
    """No project manifest could be located."""


class PackageSpecError(EditLocallyError, ValueError):
    """The package ID specification is invalid, unmatched or ambiguous."""


class AlreadyPathDependencyError(EditLocallyError, ValueError):
    """The package is already a path dependency."""

    def __init__(self, package_id: str):
        self.package_id = package_id
        super().__init__(f"{package_id} is already a path dependency to edit locally")


class AlreadyReplacedError(EditLocallyError, ValueError):
    """The package already has a ``[replace]`` entry."""

    def __init__(self, package_id: str):
        self.package_id = package_id
        super().__init__(f"{package_id} is already replaced, cannot replace it again")


class DestinationExistsError(EditLocallyError, ValueError):
    """The checkout directory already exists."""

    def __init__(self, destination: Path):
        self.destination = destination
        super().__init__(
            "looks like the destination directory for this checkout already "
            f"exists: {destination}"
        )


class PatchError(EditLocallyError, ValueError):
    """The project manifest cannot be patched safely."""


class AmbiguousSectionError(PatchError):
    """``[replace]`` appears somewhere other than a line-leading section header."""

    def __init__(self, offset: int):
        self.offset = offset
        super().__init__(
            f"found `[replace]` at offset {offset} but not as a section header; "
            "add the entry to the manifest manually"
        )


class DuplicateEntryError(PatchError):
    """The ``[replace]`` section already contains the directive key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"the `[replace]` section already contains an entry for `{key}`")


class MalformedManifestError(PatchError):
    """The project manifest itself is not valid TOML."""


class SourceMismatchError(EditLocallyError, ValueError):
    """An explicit replacement source does not contain the requested package."""

    def __init__(self, name: str, version: str, source: str, suggestion: str):
        self.name = name
        self.version = version
        self.source = source
        self.suggestion = suggestion
        super().__init__(
            f"could not find `{name}` at version `{version}` in {source}\n\n"
            f"  * {suggestion}"
        )


class RevisionNotFoundError(EditLocallyError, LookupError):
    """Neither a conventional ref nor the history walk found the version."""

    def __init__(self, name: str, version: str, repo_url: str,
                 destination: Optional[Path], candidates: List[str],
                 manifest_name: str = "Cargo.toml"):
        self.name = name
        self.version = version
        self.repo_url = repo_url
        self.destination = destination
        self.candidates = list(candidates)
        message = (
            f"failed to check out the crate `{name}` at a revision for the version `{version}`\n"
            f"after cloning `{repo_url}` into: {destination}\n\n"
            f"  * no branch or tag found with the names: {', '.join(self.candidates)}\n"
            f"  * no commit found with a `{manifest_name}` that contains `version = '{version}'`\n\n"
            "please file an issue with edit-locally if you believe this message is in error"
        )
        super().__init__(message)


class ReferenceNotFoundError(EditLocallyError, LookupError):
    """A branch, tag or revision does not exist in a fetched repository."""


class MissingDefaultBranchError(EditLocallyError, LookupError):
    """The repository has no default branch to walk history from."""


class RegistrySourceNotFoundError(EditLocallyError, LookupError):
    """The registry source of a package has not been downloaded by Cargo."""


class ManifestProbeError(EditLocallyError, ValueError):
    """A manifest blob could not be decoded into a name/version pair."""


class NetworkError(EditLocallyError, RuntimeError):
    """A network operation failed after all retries."""


class RegistryError(EditLocallyError, RuntimeError):
    """The package registry returned an unusable response."""


class LockfileError(EditLocallyError, RuntimeError):
    """The lock file is missing, unreadable or could not be regenerated."""
