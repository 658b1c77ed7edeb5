"""Package registry access for edit-locally."""

from .client import CratesRegistryClient
from .source import find_registry_source, copy_registry_source

__all__ = ["CratesRegistryClient", "find_registry_source", "copy_registry_source"]
