"""Extract a package's name and version from manifest contents."""

import os
from pathlib import Path
from typing import Optional

import toml

from ..core.errors import ManifestProbeError
from ..models.package import ManifestDescriptor


MANIFEST_NAME = "Cargo.toml"

# Older manifests used `[project]` where current ones use `[package]`.
LEGACY_TABLES = ("package", "project")


def probe_manifest(data: bytes) -> ManifestDescriptor:
    """Decode manifest bytes into a name/version descriptor.

    The first of ``[package]`` or ``[project]`` present in the document is
    used; it must carry string ``name`` and ``version`` keys.

    Args:
        data: Raw manifest contents

    Returns:
        ManifestDescriptor: The declared name and version

    Raises:
        ManifestProbeError: On invalid UTF-8, invalid TOML or missing fields
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        raise ManifestProbeError("non-utf8 bytes")

    try:
        document = toml.loads(text)
    except (toml.TomlDecodeError, TypeError, IndexError) as e:
        raise ManifestProbeError(f"failed to parse toml: {e}")

    for table_name in LEGACY_TABLES:
        table = document.get(table_name)
        if table is None:
            continue
        if not isinstance(table, dict):
            raise ManifestProbeError(f"`{table_name}` is not a table")
        name = table.get("name")
        version = table.get("version")
        if not isinstance(name, str) or not isinstance(version, str):
            raise ManifestProbeError(f"`[{table_name}]` lacks a literal name and version")
        return ManifestDescriptor(name=name, version=version)

    raise ManifestProbeError("no `[package]` or `[project]` table")


def manifest_matches(data: bytes, name: str, version: str) -> bool:
    """True when the manifest bytes declare exactly ``name`` at ``version``.

    Undecodable manifests are treated as non-matches.
    """
    try:
        return probe_manifest(data).matches(name, version)
    except ManifestProbeError:
        return False


def find_manifest_in_directory(root: Path, name: str, version: str,
                               manifest_name: str = MANIFEST_NAME) -> Optional[Path]:
    """Search a directory tree for a manifest declaring ``name`` at ``version``.

    Directories are visited depth-first in sorted order and ``.git`` is skipped.

    Args:
        root: Directory to search
        name: Package name to look for
        version: Exact version to look for
        manifest_name: Manifest file name (exact basename match)

    Returns:
        Optional[Path]: Path of the first matching manifest, or None
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d != ".git")
        if manifest_name in filenames:
            candidate = Path(dirpath) / manifest_name
            if manifest_matches(candidate.read_bytes(), name, version):
                return candidate
    return None
