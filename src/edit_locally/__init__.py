"""Check out a Cargo dependency locally and patch it into a workspace."""

from .version import get_version

__version__ = get_version()
