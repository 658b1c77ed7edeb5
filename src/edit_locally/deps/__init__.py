"""Dependency source acquisition for edit-locally."""

from .git_checkout import GitCheckout, hard_reset
from .revision_resolver import RevisionResolver, find_nested_manifest, reference_candidates
from .workspace import CargoWorkspace, find_root_manifest

__all__ = [
    'GitCheckout',
    'hard_reset',
    'RevisionResolver',
    'find_nested_manifest',
    'reference_candidates',
    'CargoWorkspace',
    'find_root_manifest',
]
