"""Shared fixtures: isolated configuration, quiet git identity and repository builders."""

from pathlib import Path

import pytest
from git import Actor, Repo

from edit_locally import config
from edit_locally.utils.console import configure_console


AUTHOR = Actor("Test Author", "author@example.com")

CRATES_IO = "registry+https://github.com/rust-lang/crates.io-index"


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory, monkeypatch):
    """Point the config file at a scratch directory and give git an identity."""
    config_dir = tmp_path_factory.mktemp("config")
    monkeypatch.setattr(config, "CONFIG_DIR", str(config_dir))
    monkeypatch.setattr(config, "CONFIG_FILE", str(config_dir / "config.json"))
    monkeypatch.delenv("EDIT_LOCALLY_REGISTRY_URL", raising=False)
    monkeypatch.delenv("CARGO_HOME", raising=False)
    for role in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{role}_NAME", AUTHOR.name)
        monkeypatch.setenv(f"GIT_{role}_EMAIL", AUTHOR.email)
    configure_console()
    yield
    configure_console()


def manifest_text(name, version, table="package"):
    return f'[{table}]\nname = "{name}"\nversion = "{version}"\n'


def commit_files(repo, files, message, when, remove=()):
    """Write ``files`` into the work tree and commit them at a fixed timestamp.

    Args:
        repo: Repository to commit into
        files: Mapping of relative path to text content
        message: Commit message
        when: Seconds since the epoch, used for author and committer dates
        remove: Relative paths to delete in the same commit
    """
    root = Path(repo.working_tree_dir)
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    if files:
        repo.index.add(list(files))
    if remove:
        repo.index.remove(list(remove), working_tree=True)
    date = f"{when} +0000"
    return repo.index.commit(message, author=AUTHOR, committer=AUTHOR,
                             author_date=date, commit_date=date)


@pytest.fixture
def upstream(tmp_path):
    """An empty repository standing in for a package's upstream."""
    repo = Repo.init(tmp_path / "upstream")
    yield repo
    repo.close()


def write_workspace(root, lock_packages, manifest=None):
    """Create a workspace with a root manifest and a lock file.

    Args:
        root: Directory to create the workspace in
        lock_packages: Iterable of ``(name, version, source)`` triples, source may be None
        manifest: Root manifest text; a minimal ``app`` package by default

    Returns:
        Path: The root manifest
    """
    root.mkdir(parents=True, exist_ok=True)
    manifest_path = root / "Cargo.toml"
    manifest_path.write_text(manifest if manifest is not None else (
        manifest_text("app", "0.1.0") + '\n[dependencies]\nlog = "0.3"\n'
    ))

    lines = ["version = 3", ""]
    for name, version, source in [("app", "0.1.0", None), *lock_packages]:
        lines += ["[[package]]", f'name = "{name}"', f'version = "{version}"']
        if source:
            lines.append(f'source = "{source}"')
        lines.append("")
    (root / "Cargo.lock").write_text("\n".join(lines))
    return manifest_path
