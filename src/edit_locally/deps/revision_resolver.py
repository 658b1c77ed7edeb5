"""Locate the commit of a repository that corresponds to a published version.

Packages on a registry rarely record the commit they were published from, so
the commit is recovered from the repository itself: first from conventional
tag and branch names, then by walking history for a commit whose manifest
declares the exact name and version.
"""

from pathlib import Path
from typing import Callable, List, Optional

from git import Commit, Repo, Tree

from ..core.errors import MissingDefaultBranchError, RevisionNotFoundError
from ..manifest.probe import MANIFEST_NAME, manifest_matches
from ..models.package import PackageIdentifier, ResolutionStrategy, ResolvedLocation
from ..utils.console import _rich_debug, _rich_warning
from .git_checkout import hard_reset


def reference_candidates(name: str, version: str) -> List[str]:
    """Conventional tag/branch names for a release, in order of precedence."""
    return [
        version,
        f"v{version}",
        f"{name}-{version}",
        f"{name}-v{version}",
    ]


def find_nested_manifest(tree: Tree, is_match: Callable[[bytes], bool],
                         manifest_name: str = MANIFEST_NAME) -> bool:
    """Search a git tree depth-first for a matching manifest blob.

    Entries are visited in the tree's own order. Only blobs named exactly
    ``manifest_name`` are probed; submodules and other entry kinds are skipped.

    Args:
        tree: Tree object to search
        is_match: Predicate applied to each candidate blob's bytes
        manifest_name: Manifest file name

    Returns:
        bool: True on the first matching manifest at any depth
    """
    for entry in tree:
        if entry.type == "tree":
            if find_nested_manifest(entry, is_match, manifest_name):
                return True
            continue
        if entry.type != "blob" or entry.name != manifest_name:
            continue
        if is_match(entry.data_stream.read()):
            return True
    return False


class RevisionResolver:
    """Maps a package name and version to a commit inside a fetched repository."""

    def __init__(self, manifest_name: str = MANIFEST_NAME):
        self.manifest_name = manifest_name

    def resolve(self, repo: Repo, package: PackageIdentifier, remote_url: str,
                destination: Optional[Path] = None) -> ResolvedLocation:
        """Find the commit for ``package`` and hard-reset the working tree to it.

        Args:
            repo: Repository with branches and tags already fetched
            package: Target package; only its name and version are used
            remote_url: URL the repository was fetched from, for diagnostics
            destination: Checkout directory, for diagnostics

        Returns:
            ResolvedLocation: The selected commit and how it was found

        Raises:
            RevisionNotFoundError: If no ref or commit matches the version
            MissingDefaultBranchError: If history cannot be walked
        """
        location = self.find_revision(repo, package.name, package.version,
                                      remote_url=remote_url, destination=destination)
        self.checkout(repo, location.commit)
        return location

    def find_revision(self, repo: Repo, name: str, version: str, remote_url: str = "",
                      destination: Optional[Path] = None) -> ResolvedLocation:
        """Find the commit for ``name`` at ``version`` without touching the working tree."""
        candidates = reference_candidates(name, version)

        location = self._match_reference(repo, candidates)
        if location is not None:
            _rich_debug(f"matched {location.strategy.value} `{location.ref_name}`")
            return location

        _rich_warning(f"failed to find tag or branch for `{version}`, probing git history")

        commit = self._walk_history(repo, name, version)
        if commit is None:
            raise RevisionNotFoundError(
                name=name,
                version=version,
                repo_url=remote_url,
                destination=destination if destination is not None else Path(repo.working_tree_dir),
                candidates=candidates,
                manifest_name=self.manifest_name,
            )
        _rich_debug(f"history walk selected {commit.hexsha}")
        return ResolvedLocation(
            commit=commit.hexsha,
            strategy=ResolutionStrategy.HISTORY,
            candidates=candidates,
        )

    def _match_reference(self, repo: Repo, candidates: List[str]) -> Optional[ResolvedLocation]:
        """Try each candidate as a tag, then as a local branch."""
        tags = {tag.name: tag for tag in repo.tags}
        heads = {head.name: head for head in repo.heads}

        for candidate in candidates:
            tag = tags.get(candidate)
            if tag is not None:
                try:
                    commit = tag.commit
                except ValueError:
                    # tag points at a tree or blob
                    commit = None
                if commit is not None:
                    return ResolvedLocation(commit=commit.hexsha, strategy=ResolutionStrategy.TAG,
                                            ref_name=candidate, candidates=candidates)

            head = heads.get(candidate)
            if head is not None:
                return ResolvedLocation(commit=head.commit.hexsha, strategy=ResolutionStrategy.BRANCH,
                                        ref_name=candidate, candidates=candidates)
        return None

    def _walk_history(self, repo: Repo, name: str, version: str) -> Optional[Commit]:
        """Walk commits from the default branch, children before parents, newest first."""
        tip = default_branch_tip(repo)

        def is_match(data: bytes) -> bool:
            return manifest_matches(data, name, version)

        for commit in repo.iter_commits(tip, date_order=True):
            tree = commit.tree
            try:
                root_manifest = tree / self.manifest_name
            except KeyError:
                root_manifest = None
            if root_manifest is not None and root_manifest.type == "blob":
                if is_match(root_manifest.data_stream.read()):
                    return commit

            if find_nested_manifest(tree, is_match, self.manifest_name):
                return commit
        return None

    @staticmethod
    def checkout(repo: Repo, commit: str) -> None:
        hard_reset(repo, repo.commit(commit))


def default_branch_tip(repo: Repo) -> Commit:
    """Tip of the repository's default branch.

    HEAD is used when it points at an existing commit; otherwise the local
    ``master`` and ``main`` branches are tried.

    Raises:
        MissingDefaultBranchError: If none of them exists
    """
    if repo.head.is_valid():
        return repo.head.commit

    heads = {head.name: head for head in repo.heads}
    for name in ("master", "main"):
        if name in heads:
            return heads[name].commit

    raise MissingDefaultBranchError(
        f"repository at {repo.working_tree_dir} has no default branch to search history from"
    )
