"""Manifest reading and minimal-diff patching."""

from .probe import MANIFEST_NAME, probe_manifest, manifest_matches, find_manifest_in_directory
from .patcher import compose_replace_directive, render_directive, patch_manifest

__all__ = [
    'MANIFEST_NAME',
    'probe_manifest',
    'manifest_matches',
    'find_manifest_in_directory',
    'compose_replace_directive',
    'render_directive',
    'patch_manifest',
]
