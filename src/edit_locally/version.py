"""Version management for edit-locally."""

import re
from importlib import metadata
from pathlib import Path

# Build-time version constant (will be injected during build)
__BUILD_VERSION__ = None


def get_version() -> str:
    """
    Get the current version.

    Tries the build-time constant, then the installed distribution metadata,
    then falls back to scanning pyproject.toml for development checkouts.

    Returns:
        str: Version string
    """
    if __BUILD_VERSION__:
        return __BUILD_VERSION__

    try:
        return metadata.version("edit-locally")
    except metadata.PackageNotFoundError:
        pass

    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        content = pyproject_path.read_text(encoding="utf-8")
        match = re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE)
        if match:
            return match.group(1)

    return "unknown"


def get_user_agent() -> str:
    """User-Agent header sent to the package registry."""
    return f"cargo-edit-locally/{get_version()}"


__version__ = get_version()
