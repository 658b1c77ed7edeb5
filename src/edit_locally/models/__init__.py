"""Models for edit-locally data structures."""

from .package import (
    AlternateRegistry,
    DefaultRegistry,
    GitReference,
    GitReferenceType,
    GitReplacement,
    LocalPath,
    ManifestDescriptor,
    PackageIdentifier,
    PackageIdSpec,
    PathReplacement,
    ReplaceDirective,
    ReplacementSource,
    ResolutionStrategy,
    ResolvedLocation,
    SourceKind,
    VersionControlled,
    parse_source_id,
)

__all__ = [
    "AlternateRegistry",
    "DefaultRegistry",
    "GitReference",
    "GitReferenceType",
    "GitReplacement",
    "LocalPath",
    "ManifestDescriptor",
    "PackageIdentifier",
    "PackageIdSpec",
    "PathReplacement",
    "ReplaceDirective",
    "ReplacementSource",
    "ResolutionStrategy",
    "ResolvedLocation",
    "SourceKind",
    "VersionControlled",
    "parse_source_id",
]
