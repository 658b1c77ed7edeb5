"""Core operations for edit-locally."""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config import get_cargo_home, get_net_retry
from ..deps.git_checkout import GitCheckout
from ..deps.revision_resolver import RevisionResolver, find_nested_manifest
from ..deps.workspace import CargoWorkspace
from ..manifest.patcher import SECTION_HEADER, compose_replace_directive, patch_manifest, read_manifest
from ..manifest.probe import find_manifest_in_directory, manifest_matches
from ..models.package import (
    AlternateRegistry,
    PackageIdentifier,
    PathReplacement,
    ReplaceDirective,
    ReplacementSource,
    ResolutionStrategy,
    ResolvedLocation,
    VersionControlled,
)
from ..registry.client import CratesRegistryClient
from ..registry.source import copy_registry_source, find_registry_source
from ..utils.console import _rich_debug, _rich_warning
from ..utils.helpers import atomic_write
from .errors import (
    AlreadyPathDependencyError,
    AlreadyReplacedError,
    DestinationExistsError,
    ReferenceNotFoundError,
    SourceMismatchError,
)


@dataclass
class EditLocallyRequest:
    """What to edit locally and where.

    Attributes:
        spec: Package ID specification, e.g. ``log`` or ``log:0.3.5``
        destination: Parent directory for the checkout; the current directory when None
        replacement: Explicit source to point the dependency at instead of checking it out
        write_manifest: When False the manifest and lock file are left untouched
    """
    spec: str
    destination: Optional[Path] = None
    replacement: Optional[ReplacementSource] = None
    write_manifest: bool = True


@dataclass
class EditLocallyResult:
    """Outcome of a successful run."""
    package: PackageIdentifier
    directive: ReplaceDirective
    manifest_path: Path
    checkout_path: Optional[Path] = None
    location: Optional[ResolvedLocation] = None
    copied_from: Optional[Path] = None
    section_existed: bool = False
    manifest_written: bool = False
    lockfile_updated: bool = False
    created_parent: Optional[Path] = None


class LocalEditor:
    """Checks out a dependency of a workspace and redirects the workspace to it."""

    def __init__(self, workspace: CargoWorkspace, cwd: Optional[Path] = None,
                 registry_client: Optional[CratesRegistryClient] = None,
                 git_checkout: Optional[GitCheckout] = None,
                 resolver: Optional[RevisionResolver] = None,
                 cargo_home: Optional[Path] = None):
        self.workspace = workspace
        self.cwd = Path(cwd or os.getcwd()).absolute()
        self.registry_client = registry_client or CratesRegistryClient(retries=get_net_retry())
        self.git_checkout = git_checkout or GitCheckout(retries=get_net_retry())
        self.resolver = resolver or RevisionResolver()
        self.cargo_home = Path(cargo_home or get_cargo_home())

    def run(self, request: EditLocallyRequest) -> EditLocallyResult:
        """Edit the requested package locally.

        The manifest is patched in memory before anything is fetched, so a
        manifest that cannot be patched fails the run without side effects.
        If acquisition or writing fails afterwards, the checkout directory and
        any destination parents created by this run are removed and the
        manifest text restored.

        Args:
            request: What to edit and where

        Returns:
            EditLocallyResult: The package, the directive and what was done

        Raises:
            EditLocallyError: Any of its subclasses on failure
        """
        package = self.workspace.query(request.spec)
        _rich_debug(f"`{request.spec}` resolved to {package}")
        self._check_editable(package)

        checkout_path = None
        if request.replacement is None:
            checkout_path = self._prepare_destination(request.destination, package)
            replacement = PathReplacement(checkout_path)
        else:
            replacement = self._absolutize(request.replacement)
            self._verify_replacement(package, replacement)

        directive = compose_replace_directive(package, replacement, self.workspace.root)
        manifest_path = self.workspace.root_manifest
        original = read_manifest(manifest_path)
        patched = patch_manifest(original, directive)

        result = EditLocallyResult(
            package=package,
            directive=directive,
            manifest_path=manifest_path,
            checkout_path=checkout_path,
            section_existed=SECTION_HEADER in original,
        )

        try:
            if checkout_path is not None:
                result.created_parent = self._create_parent(checkout_path.parent)
                result.location, result.copied_from = self._acquire(package, checkout_path)
            if request.write_manifest:
                atomic_write(manifest_path, patched)
                result.manifest_written = True
                result.lockfile_updated = self.workspace.regenerate_lockfile()
        except Exception:
            self._roll_back(result, original)
            raise

        return result

    def _check_editable(self, package: PackageIdentifier) -> None:
        if package.is_path:
            raise AlreadyPathDependencyError(str(package))
        if self.workspace.is_replaced(package):
            raise AlreadyReplacedError(str(package))

    def _prepare_destination(self, destination: Optional[Path],
                             package: PackageIdentifier) -> Path:
        """Reserve ``<parent>/<name>`` for the checkout.

        Raises:
            DestinationExistsError: If the checkout directory already exists
        """
        parent = Path(destination) if destination is not None else self.cwd
        if not parent.is_absolute():
            parent = self.cwd / parent
        if parent.exists() and not parent.is_dir():
            raise NotADirectoryError(f"destination `{parent}` is not a directory")

        checkout_path = parent / package.name
        if checkout_path.exists():
            raise DestinationExistsError(checkout_path)
        return checkout_path

    def _create_parent(self, parent: Path) -> Optional[Path]:
        """Create the checkout parent, returning the topmost directory this made, if any."""
        missing = None
        for ancestor in (parent, *parent.parents):
            if ancestor.exists():
                break
            missing = ancestor
        parent.mkdir(parents=True, exist_ok=True)
        return missing

    def _absolutize(self, replacement: ReplacementSource) -> ReplacementSource:
        if isinstance(replacement, PathReplacement) and not Path(replacement.path).is_absolute():
            return PathReplacement(self.cwd / replacement.path)
        return replacement

    def _verify_replacement(self, package: PackageIdentifier,
                            replacement: ReplacementSource) -> None:
        """Check that an explicit replacement actually provides the package.

        Raises:
            SourceMismatchError: If no manifest for the package's name and version is found
        """
        mismatch = SourceMismatchError(package.name, package.version,
                                       replacement.describe(), replacement.suggestion())

        if isinstance(replacement, PathReplacement):
            path = Path(replacement.path)
            if not path.is_dir() or find_manifest_in_directory(path, package.name, package.version) is None:
                raise mismatch
            return

        def is_match(data: bytes) -> bool:
            return manifest_matches(data, package.name, package.version)

        try:
            with self.git_checkout.temporary_fetch(replacement.url, replacement.reference) as (_, commit):
                found = find_nested_manifest(commit.tree, is_match)
        except ReferenceNotFoundError as e:
            raise mismatch from e
        if not found:
            raise mismatch
        _rich_debug(f"{replacement.describe()} provides {package}")

    def _acquire(self, package: PackageIdentifier, checkout_path: Path):
        """Materialize the package's source at ``checkout_path``.

        Returns:
            tuple: ``(ResolvedLocation or None, copied source directory or None)``
        """
        source = package.source
        if isinstance(source, VersionControlled):
            repo, commit = self.git_checkout.checkout(checkout_path, source.url,
                                                      source.reference, source.precise)
            repo.close()
            location = ResolvedLocation(commit=commit.hexsha, strategy=ResolutionStrategy.LOCKED,
                                        ref_name=source.reference.value)
            return location, None

        if isinstance(source, AlternateRegistry):
            _rich_warning(f"repository lookups are only supported for crates.io, "
                          f"copying the downloaded source of {package} instead")
            return None, self._copy_from_registry(package, checkout_path)

        repo_url = self.registry_client.get_repository_url(package.name)
        if repo_url is None:
            _rich_warning(f"{package} does not list a repository, "
                          "copying its downloaded source instead")
            return None, self._copy_from_registry(package, checkout_path)

        repo = self.git_checkout.fetch_into(checkout_path, repo_url)
        try:
            return self.resolver.resolve(repo, package, repo_url, checkout_path), None
        finally:
            repo.close()

    def _copy_from_registry(self, package: PackageIdentifier, checkout_path: Path) -> Path:
        if find_registry_source(package, self.cargo_home) is None:
            self.workspace.fetch_sources()
        return copy_registry_source(package, self.cargo_home, checkout_path)

    def _roll_back(self, result: EditLocallyResult, original: str) -> None:
        if result.manifest_written:
            atomic_write(result.manifest_path, original)
            result.manifest_written = False
        if result.checkout_path is not None and result.checkout_path.exists():
            _rich_debug(f"removing {result.checkout_path}")
            shutil.rmtree(result.checkout_path, ignore_errors=True)
        if result.created_parent is not None and result.created_parent.exists():
            _rich_debug(f"removing {result.created_parent}")
            shutil.rmtree(result.created_parent, ignore_errors=True)


def edit_locally(request: EditLocallyRequest, manifest_path: Optional[Path] = None,
                 cwd: Optional[Path] = None) -> EditLocallyResult:
    """Discover the workspace around ``cwd`` and run a :class:`LocalEditor` on it.

    Args:
        request: What to edit and where
        manifest_path: Explicit manifest, relative to ``cwd`` when not absolute
        cwd: Working directory; the process's when None

    Returns:
        EditLocallyResult: Outcome of the run
    """
    cwd = Path(cwd or os.getcwd()).absolute()
    workspace = CargoWorkspace.discover(manifest_path, cwd)
    return LocalEditor(workspace, cwd=cwd).run(request)
