"""Package, source and reference data models."""

import re
import urllib.parse
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..core.errors import PackageSpecError


DEFAULT_BRANCH = "master"
CRATES_IO_INDEX = "https://github.com/rust-lang/crates.io-index"
CRATES_IO_SPARSE_INDEX = "https://index.crates.io/"

_NAME_RE = re.compile(r'^[A-Za-z0-9_-]+$')
_VERSION_RE = re.compile(r'^\d+(\.\d+){0,2}([-+][0-9A-Za-z.+-]+)?$')


class GitReferenceType(Enum):
    """Kinds of git reference a dependency can pin."""
    BRANCH = "branch"
    TAG = "tag"
    REV = "rev"


class ResolutionStrategy(Enum):
    """How a revision was located inside a repository."""
    TAG = "tag"
    BRANCH = "branch"
    HISTORY = "history"
    LOCKED = "locked"


@dataclass(frozen=True)
class GitReference:
    """A branch, tag or revision inside a git repository."""
    kind: GitReferenceType = GitReferenceType.BRANCH
    value: str = DEFAULT_BRANCH

    @property
    def is_default(self) -> bool:
        """True for the implicit default: the branch named ``master``."""
        return self.kind == GitReferenceType.BRANCH and self.value == DEFAULT_BRANCH

    @classmethod
    def from_query(cls, query: str) -> "GitReference":
        """Build a reference from a lock-file source query such as ``tag=v1.0``.

        Args:
            query: The query string of a ``git+`` source URL (may be empty)

        Returns:
            GitReference: The parsed reference, or the default branch
        """
        for key, values in urllib.parse.parse_qs(query).items():
            try:
                kind = GitReferenceType(key)
            except ValueError:
                continue
            return cls(kind=kind, value=values[0])
        return cls()

    def __str__(self) -> str:
        return f"{self.kind.value} `{self.value}`"


@dataclass(frozen=True)
class DefaultRegistry:
    """The crates.io registry."""

    @property
    def url(self) -> str:
        return CRATES_IO_INDEX


@dataclass(frozen=True)
class AlternateRegistry:
    """Any registry other than crates.io."""
    url: str


@dataclass(frozen=True)
class VersionControlled:
    """A git dependency, optionally pinned to the commit recorded in the lock file."""
    url: str
    reference: GitReference = field(default_factory=GitReference)
    precise: Optional[str] = None


@dataclass(frozen=True)
class LocalPath:
    """A path dependency (workspace members included)."""
    path: Optional[Path] = None

    @property
    def url(self) -> str:
        return self.path.as_uri() if self.path and self.path.is_absolute() else ""


SourceKind = Union[DefaultRegistry, AlternateRegistry, VersionControlled, LocalPath]


def parse_source_id(source: Optional[str]) -> SourceKind:
    """Parse the ``source`` field of a ``Cargo.lock`` package entry.

    Args:
        source: The raw source string; ``None`` for path dependencies

    Returns:
        SourceKind: The typed source

    Raises:
        ValueError: If the source string has an unknown scheme
    """
    if not source:
        return LocalPath()

    kind, sep, rest = source.partition("+")
    if not sep:
        raise ValueError(f"unsupported source `{source}`")

    if kind == "registry":
        if rest.rstrip("/") == CRATES_IO_INDEX:
            return DefaultRegistry()
        return AlternateRegistry(url=rest)
    if kind == "sparse":
        if rest.rstrip("/") + "/" == CRATES_IO_SPARSE_INDEX:
            return DefaultRegistry()
        return AlternateRegistry(url=rest)
    if kind == "git":
        url_and_query, _, precise = rest.partition("#")
        parsed = urllib.parse.urlparse(url_and_query)
        url = urllib.parse.urlunparse(parsed._replace(query=""))
        return VersionControlled(
            url=url,
            reference=GitReference.from_query(parsed.query),
            precise=precise or None,
        )
    if kind == "path":
        parsed = urllib.parse.urlparse(rest)
        return LocalPath(path=Path(urllib.parse.unquote(parsed.path)))

    raise ValueError(f"unsupported source `{source}`")


@dataclass(frozen=True)
class PackageIdentifier:
    """A fully resolved package: name, exact version and source."""
    name: str
    version: str
    source: SourceKind = field(default_factory=DefaultRegistry)

    @property
    def is_default_registry(self) -> bool:
        return isinstance(self.source, DefaultRegistry)

    @property
    def is_path(self) -> bool:
        return isinstance(self.source, LocalPath)

    @property
    def is_git(self) -> bool:
        return isinstance(self.source, VersionControlled)

    def replace_key(self) -> str:
        """Key used for this package in a ``[replace]`` section."""
        if self.is_default_registry:
            return f"{self.name}:{self.version}"
        return f"{self.source.url}#{self.name}:{self.version}"

    def __str__(self) -> str:
        if self.is_default_registry or not self.source.url:
            return f"{self.name} v{self.version}"
        return f"{self.name} v{self.version} ({self.source.url})"


def _version_matches(wanted: str, actual: str) -> bool:
    """Compare a possibly partial version (``0.3``) against an exact one."""
    if wanted == actual:
        return True
    if "-" in wanted or "+" in wanted:
        return False
    wanted_parts = wanted.split(".")
    actual_parts = actual.split("-")[0].split("+")[0].split(".")
    if len(wanted_parts) >= 3:
        return False
    return actual_parts[:len(wanted_parts)] == wanted_parts


@dataclass(frozen=True)
class PackageIdSpec:
    """A parsed package ID specification, as accepted by ``cargo pkgid``."""
    name: Optional[str] = None
    version: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def parse(cls, spec: str) -> "PackageIdSpec":
        """Parse a package ID specification.

        Supports formats:
        - name
        - name:version / name@version
        - url
        - url#name, url#version
        - url#name:version / url#name@version

        Args:
            spec: The specification string

        Returns:
            PackageIdSpec: Parsed specification

        Raises:
            PackageSpecError: If the specification is malformed
        """
        spec = spec.strip()
        if not spec:
            raise PackageSpecError("empty package ID specification")

        if "://" in spec:
            url, _, fragment = spec.partition("#")
            parsed = urllib.parse.urlparse(url)
            if not parsed.scheme or not parsed.netloc:
                raise PackageSpecError(f"invalid url in package ID specification `{spec}`")
            url = url.rstrip("/")
            if not fragment:
                name = cls._name_from_url(url)
                version = None
            elif ":" in fragment or "@" in fragment:
                name, version = re.split(r'[:@]', fragment, maxsplit=1)
            elif fragment[0].isdigit():
                name, version = cls._name_from_url(url), fragment
            else:
                name, version = fragment, None
        else:
            url = None
            if ":" in spec or "@" in spec:
                name, version = re.split(r'[:@]', spec, maxsplit=1)
            else:
                name, version = spec, None

        if not name or not _NAME_RE.match(name):
            raise PackageSpecError(f"invalid package name `{name}` in `{spec}`")
        if version is not None and not _VERSION_RE.match(version):
            raise PackageSpecError(f"invalid version `{version}` in `{spec}`")

        return cls(name=name, version=version, url=url)

    @staticmethod
    def _name_from_url(url: str) -> str:
        segment = urllib.parse.urlparse(url).path.rstrip("/").rsplit("/", 1)[-1]
        if segment.endswith(".git"):
            segment = segment[:-4]
        return segment

    def matches(self, package: PackageIdentifier) -> bool:
        """Check whether a resolved package satisfies this specification."""
        if self.name and package.name != self.name:
            return False
        if self.version and not _version_matches(self.version, package.version):
            return False
        if self.url:
            source_url = (package.source.url or "").rstrip("/")
            if source_url != self.url:
                return False
        return True

    def __str__(self) -> str:
        result = self.name or ""
        if self.version:
            result += f":{self.version}"
        if self.url:
            result = f"{self.url}#{result}"
        return result


@dataclass(frozen=True)
class ManifestDescriptor:
    """The ``name``/``version`` pair declared by a manifest."""
    name: str
    version: str

    def matches(self, name: str, version: str) -> bool:
        return self.name == name and self.version == version


@dataclass
class ResolvedLocation:
    """A commit selected inside a checked out repository."""
    commit: str
    strategy: ResolutionStrategy
    ref_name: Optional[str] = None
    candidates: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.ref_name:
            return f"{self.ref_name} ({self.commit[:8]})"
        return self.commit[:8]


@dataclass(frozen=True)
class PathReplacement:
    """Replace the dependency with a local directory."""
    path: Path

    def describe(self) -> str:
        return f"path `{self.path}`"

    def suggestion(self) -> str:
        return ("check that the path points at the package's source "
                "(a directory containing its `Cargo.toml`)")


@dataclass(frozen=True)
class GitReplacement:
    """Replace the dependency with a git repository at a reference."""
    url: str
    reference: GitReference = field(default_factory=GitReference)

    def describe(self) -> str:
        return f"git repository `{self.url}` ({self.reference})"

    def suggestion(self) -> str:
        return ("pass the branch or tag holding this version with "
                "`--branch`, `--tag` or `--rev`")


ReplacementSource = Union[PathReplacement, GitReplacement]


@dataclass(frozen=True)
class ReplaceDirective:
    """A single ``[replace]`` entry: package key and replacement table."""
    spec_key: str
    spec_value: Dict[str, str]
