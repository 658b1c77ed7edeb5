"""Access to registry sources Cargo has already downloaded and unpacked."""

import shutil
from pathlib import Path
from typing import Optional

from ..core.errors import RegistrySourceNotFoundError
from ..models.package import PackageIdentifier


def find_registry_source(package: PackageIdentifier, cargo_home: Path) -> Optional[Path]:
    """Find the unpacked source of a registry package under Cargo's home.

    Sources live in ``$CARGO_HOME/registry/src/<index>/<name>-<version>``; when
    several indexes hold the package the first in sorted order wins.

    Args:
        package: Registry package to look for
        cargo_home: Cargo's home directory

    Returns:
        Optional[Path]: The source directory, or None if it is not unpacked
    """
    src_root = Path(cargo_home) / "registry" / "src"
    if not src_root.is_dir():
        return None

    dir_name = f"{package.name}-{package.version}"
    for index_dir in sorted(p for p in src_root.iterdir() if p.is_dir()):
        candidate = index_dir / dir_name
        if candidate.is_dir():
            return candidate
    return None


def copy_registry_source(package: PackageIdentifier, cargo_home: Path, destination: Path) -> Path:
    """Copy a package's unpacked registry source verbatim into ``destination``.

    ``destination`` must not exist yet; it is created by the copy.

    Returns:
        Path: The source directory that was copied

    Raises:
        RegistrySourceNotFoundError: If Cargo has not unpacked the package
    """
    source = find_registry_source(package, cargo_home)
    if source is None:
        raise RegistrySourceNotFoundError(
            f"the source of {package} was not found under {Path(cargo_home) / 'registry' / 'src'}; "
            "run `cargo fetch` and try again"
        )
    shutil.copytree(source, destination, symlinks=True)
    return source
