"""Compose ``[replace]`` directives and splice them into a manifest.

The manifest is edited as text rather than re-serialized so that comments,
ordering and whitespace outside the inserted line survive untouched. ``toml``
is only used to read the original document: to reject a malformed manifest
and to detect a key that is already replaced.
"""

import os
from pathlib import Path

import toml

from ..core.errors import AmbiguousSectionError, DuplicateEntryError, MalformedManifestError
from ..models.package import (
    GitReplacement,
    PackageIdentifier,
    PathReplacement,
    ReplaceDirective,
    ReplacementSource,
)


SECTION_NAME = "replace"
SECTION_HEADER = f"[{SECTION_NAME}]"

_encoder = toml.TomlEncoder()


def _format_path(path: Path, project_root: Path) -> str:
    """Render a replacement path, relative to the project root when it lies beneath it."""
    path = Path(path)
    if not path.is_absolute():
        return path.as_posix()
    try:
        relative = path.resolve().relative_to(Path(project_root).resolve())
    except ValueError:
        return Path(os.path.normpath(path)).as_posix()
    return relative.as_posix()


def compose_replace_directive(package: PackageIdentifier, replacement: ReplacementSource,
                              project_root: Path) -> ReplaceDirective:
    """Build the ``[replace]`` entry substituting ``package`` with ``replacement``.

    Args:
        package: The resolved package being replaced
        replacement: Local path or git source to use instead
        project_root: Directory holding the root manifest

    Returns:
        ReplaceDirective: Key and value of the new entry
    """
    if isinstance(replacement, PathReplacement):
        value = {"path": _format_path(replacement.path, project_root)}
    elif isinstance(replacement, GitReplacement):
        value = {"git": replacement.url}
        if not replacement.reference.is_default:
            value[replacement.reference.kind.value] = replacement.reference.value
    else:
        raise TypeError(f"unsupported replacement source: {replacement!r}")

    return ReplaceDirective(spec_key=package.replace_key(), spec_value=value)


def render_directive(directive: ReplaceDirective) -> str:
    """Render a directive as one TOML line, e.g. ``"log:0.3.5" = { path = "log" }``."""
    pairs = ", ".join(
        f"{key} = {_encoder.dump_value(value)}" for key, value in directive.spec_value.items()
    )
    return f"{_encoder.dump_value(directive.spec_key)} = {{ {pairs} }}"


def _newline_style(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def _find_section_header(text: str) -> int:
    """Offset of the newline preceding the section header, 0 for a first-line header, -1 if absent."""
    if text.startswith(SECTION_HEADER):
        return 0
    return text.find("\n" + SECTION_HEADER)


def _parse_manifest(text: str) -> dict:
    try:
        return toml.loads(text)
    except (toml.TomlDecodeError, TypeError, IndexError) as e:
        raise MalformedManifestError(f"failed to parse manifest: {e}")


def patch_manifest(original: str, directive: ReplaceDirective) -> str:
    """Insert a directive into the manifest's ``[replace]`` section.

    The new entry becomes the first line of an existing section. Without a
    section, one is appended after exactly one blank line.

    Args:
        original: Full manifest text
        directive: Entry to insert

    Returns:
        str: The patched manifest text

    Raises:
        MalformedManifestError: If the original text is not valid TOML
        DuplicateEntryError: If the section already has the directive's key
        AmbiguousSectionError: If ``[replace]`` only appears outside a header position
    """
    document = _parse_manifest(original)
    existing = document.get(SECTION_NAME)
    if isinstance(existing, dict) and directive.spec_key in existing:
        raise DuplicateEntryError(directive.spec_key)

    newline = _newline_style(original)
    line = render_directive(directive) + newline
    header_at = _find_section_header(original)

    if header_at >= 0:
        if not isinstance(existing, dict):
            # header text inside a multi-line string
            raise AmbiguousSectionError(header_at)
        search_from = header_at + 1 if original[header_at] == "\n" else header_at
        line_end = original.find("\n", search_from)
        if line_end == -1:
            return original + newline + line
        return original[:line_end + 1] + line + original[line_end + 1:]

    if SECTION_HEADER in original:
        raise AmbiguousSectionError(original.find(SECTION_HEADER))
    if SECTION_NAME in document:
        # e.g. dotted keys; appending a second table would be invalid TOML
        raise AmbiguousSectionError(max(original.find(SECTION_NAME), 0))

    if not original:
        return SECTION_HEADER + newline + line

    trailing = len(original) - len(original.rstrip("\r\n"))
    trailing_newlines = original[len(original) - trailing:].count("\n")
    separator = newline * max(2 - trailing_newlines, 0)
    return original + separator + SECTION_HEADER + newline + line


def read_manifest(path: Path) -> str:
    """Read the whole manifest as UTF-8 text without newline translation."""
    try:
        with open(os.fspath(path), "r", encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise MalformedManifestError(f"manifest at {path} is not valid UTF-8: {e}")
