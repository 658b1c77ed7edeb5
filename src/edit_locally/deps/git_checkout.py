"""Fetch git repositories into local checkout directories."""

import os
import re
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from git import Commit, Repo
from git.exc import BadName, BadObject, GitCommandError

from ..core.errors import ReferenceNotFoundError
from ..models.package import GitReference, GitReferenceType
from ..utils.console import _rich_debug, _rich_status
from ..utils.helpers import with_retry


FETCH_REFSPECS = ("+refs/heads/*:refs/heads/*", "+refs/tags/*:refs/tags/*")


def hard_reset(repo: Repo, commit: Commit) -> None:
    """Detach HEAD at ``commit`` and hard-reset the index and working tree to it."""
    repo.head.reference = commit
    repo.head.reset(index=True, working_tree=True)


class GitCheckout:
    """Initializes repositories and fetches every branch and tag of a remote into them."""

    def __init__(self, retries: int = 2, backoff: float = 1.0):
        """Initialize the checkout helper.

        Args:
            retries: Extra attempts for fetch and ls-remote on transient failures
            backoff: Initial retry delay in seconds
        """
        self.retries = retries
        self.backoff = backoff
        self.git_env = self._setup_git_environment()

    def _setup_git_environment(self) -> Dict[str, str]:
        """Set up the environment for git subprocesses.

        Returns:
            Dict containing environment variables for Git operations
        """
        env = os.environ.copy()
        env['GIT_TERMINAL_PROMPT'] = '0'  # Prevent interactive credential prompts
        return env

    @staticmethod
    def _sanitize_git_error(error_message: str) -> str:
        """Mask credentials embedded in URLs of git error messages.

        Args:
            error_message: Raw error message from Git operations

        Returns:
            str: Sanitized error message
        """
        return re.sub(r'(\w+://)[^@/\s]+@', r'\1***@', error_message)

    def fetch_into(self, destination: Path, url: str) -> Repo:
        """Create a repository at ``destination`` holding every branch and tag of ``url``.

        HEAD is pointed at the remote's default branch when it can be determined.
        The working tree is left empty; callers check out a commit afterwards.

        Args:
            destination: Directory for the new repository (created if missing)
            url: Remote repository URL

        Returns:
            Repo: The initialized and fetched repository

        Raises:
            NetworkError: If fetching failed after all retries
        """
        repo = Repo.init(destination)

        _rich_status("Cloning", self._sanitize_git_error(url))

        def fetch():
            return repo.git.fetch("--update-head-ok", url, *FETCH_REFSPECS, env=self.git_env)

        with_retry(fetch, retries=self.retries, backoff=self.backoff,
                   description=f"fetch `{self._sanitize_git_error(url)}`",
                   transient=(GitCommandError,))

        default_ref = self._remote_default_branch(repo, url)
        if default_ref and default_ref in [head.path for head in repo.heads]:
            repo.git.symbolic_ref("HEAD", default_ref)
            _rich_debug(f"default branch is {default_ref}")
        return repo

    def _remote_default_branch(self, repo: Repo, url: str) -> Optional[str]:
        """Ask the remote which branch its HEAD points at, e.g. ``refs/heads/main``."""
        try:
            output = repo.git.ls_remote("--symref", url, "HEAD", env=self.git_env)
        except GitCommandError as e:
            _rich_debug(f"could not query default branch: {self._sanitize_git_error(str(e))}")
            return None

        for line in output.splitlines():
            if line.startswith("ref:"):
                return line[len("ref:"):].split("\t")[0].strip()
        return None

    def resolve_reference(self, repo: Repo, reference: GitReference,
                          precise: Optional[str] = None) -> Commit:
        """Resolve a branch, tag or revision of a fetched repository to a commit.

        Args:
            repo: Fetched repository
            reference: Reference recorded for the dependency
            precise: Exact commit pinned by the lock file, preferred when present

        Returns:
            Commit: The resolved commit

        Raises:
            ReferenceNotFoundError: If the reference does not exist in the repository
        """
        if precise:
            try:
                commit = repo.commit(precise)
            except (BadName, BadObject, ValueError):
                commit = None
            if commit is not None and commit.binsha != Commit.NULL_BIN_SHA:
                return commit
            _rich_debug(f"locked commit {precise} not fetched, using {reference}")

        if reference.kind == GitReferenceType.BRANCH:
            refs = {head.name: head for head in repo.heads}
        elif reference.kind == GitReferenceType.TAG:
            refs = {tag.name: tag for tag in repo.tags}
        else:
            try:
                return repo.commit(reference.value)
            except (BadName, BadObject, ValueError) as e:
                raise ReferenceNotFoundError(f"{reference} not found in repository: {e}")

        if reference.value not in refs:
            raise ReferenceNotFoundError(f"{reference} not found in repository")
        return refs[reference.value].commit

    def checkout(self, destination: Path, url: str, reference: GitReference,
                 precise: Optional[str] = None) -> Tuple[Repo, Commit]:
        """Fetch ``url`` into ``destination`` and hard-reset to the given reference."""
        repo = self.fetch_into(destination, url)
        commit = self.resolve_reference(repo, reference, precise)
        hard_reset(repo, commit)
        return repo, commit

    @contextmanager
    def temporary_fetch(self, url: str, reference: GitReference) -> Iterator[Tuple[Repo, Commit]]:
        """Fetch ``url`` into a throwaway directory and yield the commit for ``reference``.

        The directory is removed on exit, whether or not an error occurred.
        """
        temp_dir = Path(tempfile.mkdtemp(prefix="edit-locally-"))
        try:
            repo = self.fetch_into(temp_dir, url)
            try:
                yield repo, self.resolve_reference(repo, reference)
            finally:
                repo.close()
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)
