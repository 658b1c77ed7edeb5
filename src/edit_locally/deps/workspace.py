"""Cargo workspace discovery and resolved package lookup.

Dependency resolution itself is Cargo's job. The resolved package set is read
from ``Cargo.lock`` and Cargo is invoked to create or refresh that file.
"""

import subprocess
from pathlib import Path
from typing import List, Optional

import toml

from ..core.errors import (
    LockfileError,
    MalformedManifestError,
    ManifestNotFoundError,
    PackageSpecError,
)
from ..manifest.probe import MANIFEST_NAME
from ..models.package import PackageIdentifier, PackageIdSpec, parse_source_id
from ..utils.console import _rich_debug, _rich_status, _rich_warning
from ..utils.helpers import is_tool_available


LOCKFILE_NAME = "Cargo.lock"


def _load_toml(path: Path) -> dict:
    try:
        return toml.load(str(path))
    except (toml.TomlDecodeError, TypeError, IndexError) as e:
        raise MalformedManifestError(f"failed to parse manifest at {path}: {e}")


def find_root_manifest(manifest_path: Optional[Path], cwd: Path) -> Path:
    """Locate the workspace root manifest.

    With ``manifest_path`` that file is the starting point; otherwise the
    nearest ``Cargo.toml`` in ``cwd`` or its parents is. From there the nearest
    manifest (itself included) declaring a ``[workspace]`` table is the root.

    Args:
        manifest_path: Explicit manifest path, relative to ``cwd`` when not absolute
        cwd: Working directory

    Returns:
        Path: Absolute path of the root manifest

    Raises:
        ManifestNotFoundError: If no manifest exists
    """
    cwd = Path(cwd).absolute()
    if manifest_path is not None:
        start = Path(manifest_path)
        if not start.is_absolute():
            start = cwd / start
        if start.name != MANIFEST_NAME:
            raise ManifestNotFoundError(f"the manifest-path must be a path to a {MANIFEST_NAME} file")
        if not start.is_file():
            raise ManifestNotFoundError(f"manifest path `{start}` does not exist")
    else:
        start = None
        for directory in [cwd, *cwd.parents]:
            if (directory / MANIFEST_NAME).is_file():
                start = directory / MANIFEST_NAME
                break
        if start is None:
            raise ManifestNotFoundError(
                f"could not find `{MANIFEST_NAME}` in `{cwd}` or any parent directory"
            )

    for directory in [start.parent, *start.parent.parents]:
        candidate = directory / MANIFEST_NAME
        if candidate.is_file() and "workspace" in _load_toml(candidate):
            return candidate
    return start


class CargoWorkspace:
    """A Cargo workspace: its root manifest and the packages pinned in its lock file."""

    def __init__(self, root_manifest: Path):
        self.root_manifest = Path(root_manifest)
        self._entries: Optional[List[dict]] = None

    @classmethod
    def discover(cls, manifest_path: Optional[Path], cwd: Path) -> "CargoWorkspace":
        return cls(find_root_manifest(manifest_path, cwd))

    @property
    def root(self) -> Path:
        return self.root_manifest.parent

    @property
    def lockfile_path(self) -> Path:
        return self.root / LOCKFILE_NAME

    def _lock_entries(self) -> List[dict]:
        if self._entries is None:
            if not self.lockfile_path.exists():
                self._run_cargo("generate-lockfile", status="Resolving",
                                missing_message=f"no {LOCKFILE_NAME} found next to {self.root_manifest}")
            try:
                document = toml.load(str(self.lockfile_path))
            except (toml.TomlDecodeError, TypeError, IndexError) as e:
                raise LockfileError(f"failed to parse {self.lockfile_path}: {e}")
            entries = document.get("package", [])
            if not isinstance(entries, list):
                raise LockfileError(f"`package` in {self.lockfile_path} is not an array of tables")
            self._entries = entries
        return self._entries

    def packages(self) -> List[PackageIdentifier]:
        """All packages of the resolved dependency graph.

        Raises:
            LockfileError: If the lock file is missing, unreadable or malformed
        """
        packages = []
        for entry in self._lock_entries():
            packages.append(self._identifier(entry))
        return packages

    def _identifier(self, entry: dict) -> PackageIdentifier:
        try:
            return PackageIdentifier(
                name=entry["name"],
                version=entry["version"],
                source=parse_source_id(entry.get("source")),
            )
        except (KeyError, ValueError) as e:
            raise LockfileError(f"invalid package entry in {self.lockfile_path}: {e}")

    def query(self, spec: str) -> PackageIdentifier:
        """Resolve a package ID specification to exactly one package.

        Raises:
            PackageSpecError: If ``spec`` is malformed, matches nothing or is ambiguous
        """
        parsed = PackageIdSpec.parse(spec)
        matches = [package for package in self.packages() if parsed.matches(package)]

        if not matches:
            raise PackageSpecError(f"package ID specification `{spec}` did not match any packages")
        if len(matches) > 1:
            suggestions = "\n".join(f"  {package.replace_key()}" for package in matches)
            raise PackageSpecError(
                f"There are multiple `{parsed.name}` packages in your project, and the "
                f"specification `{spec}` is ambiguous.\n"
                f"Please re-run this command with one of the following specifications:\n{suggestions}"
            )
        return matches[0]

    def replaced_keys(self) -> List[str]:
        """Keys of the root manifest's ``[replace]`` table."""
        table = _load_toml(self.root_manifest).get("replace")
        return list(table) if isinstance(table, dict) else []

    def is_replaced(self, package: PackageIdentifier) -> bool:
        """True when the lock file or the root manifest already replaces ``package``."""
        for entry in self._lock_entries():
            if entry.get("replace") and self._identifier(entry) == package:
                return True

        for key in self.replaced_keys():
            try:
                spec = PackageIdSpec.parse(key)
            except PackageSpecError:
                continue
            if spec.version and spec.matches(package):
                return True
        return False

    def fetch_sources(self) -> bool:
        """Ask Cargo to download every registry source; False when Cargo is unavailable."""
        return self._run_cargo("fetch", status="Downloading")

    def regenerate_lockfile(self) -> bool:
        """Reload the workspace so Cargo rewrites the lock file; False when Cargo is unavailable."""
        self._entries = None
        return self._run_cargo("metadata", "--format-version", "1", status="Updating")

    def _run_cargo(self, *args: str, status: str, missing_message: Optional[str] = None) -> bool:
        """Run a cargo subcommand against the root manifest.

        Raises:
            LockfileError: If cargo fails, or is missing while ``missing_message`` is set
        """
        if not is_tool_available("cargo"):
            if missing_message:
                raise LockfileError(f"{missing_message} and `cargo` is not installed to create one")
            _rich_warning(f"`cargo` not found on PATH, skipping `cargo {args[0]}`")
            return False

        command = ["cargo", *args, "--manifest-path", str(self.root_manifest)]
        _rich_status(status, f"running `{' '.join(command)}`")
        result = subprocess.run(command, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE,
                                text=True, check=False)
        if result.returncode != 0:
            raise LockfileError(f"`cargo {args[0]}` failed:\n{result.stderr.strip()}")
        _rich_debug(f"`cargo {args[0]}` finished")
        return True

