"""Command-line interface for edit-locally."""

import os
import sys
from pathlib import Path

import click
from rich.panel import Panel
from rich.text import Text

from edit_locally.config import DEFAULT_CONFIG, get_config, update_config
from edit_locally.core.errors import EditLocallyError
from edit_locally.core.operations import EditLocallyRequest, EditLocallyResult, edit_locally
from edit_locally.manifest.patcher import SECTION_HEADER, render_directive
from edit_locally.models.package import GitReference, GitReferenceType, GitReplacement, PathReplacement
from edit_locally.utils.console import (
    _get_console,
    _rich_echo,
    _rich_error,
    _rich_info,
    _rich_panel,
    _rich_success,
    configure_console,
    is_quiet,
)
from edit_locally.version import get_version


HELP = """Check out a dependency in a local directory for modifications.

SPEC is a package ID specification, as accepted by `cargo pkgid`; usually
just the name of a crate. DESTINATION is the directory the crate is checked
out into, as a folder named after the crate (default: current directory).

The checkout is wired into the workspace with a `[replace]` entry in the root
`Cargo.toml`. Delete that entry when you are done working on the source.

\b
Examples:
    cargo-edit-locally edit-locally log
    cargo-edit-locally edit-locally log:0.3.5 ../deps
    cargo-edit-locally edit-locally log --git https://github.com/me/log --branch fix
"""


def print_version(ctx, param, value):
    """Print version information and exit."""
    if not value or ctx.resilient_parsing:
        return

    version_text = Text()
    version_text.append("cargo-edit-locally", style="bold cyan")
    version_text.append(f" version {get_version()}", style="white")
    _get_console().print(Panel(version_text, border_style="cyan", padding=(0, 1)))
    ctx.exit()


@click.group(help="Check out Cargo dependencies locally and patch them into a workspace")
@click.option('--version', is_flag=True, callback=print_version,
              expose_value=False, is_eager=True, help="Show version and exit.")
@click.pass_context
def cli(ctx):
    """Main entry point for the edit-locally CLI."""
    ctx.ensure_object(dict)


def _replacement_from_options(path, git, branch, tag, rev):
    """Build the explicit replacement source selected on the command line, if any."""
    refs = [(kind, value) for kind, value in (
        (GitReferenceType.BRANCH, branch),
        (GitReferenceType.TAG, tag),
        (GitReferenceType.REV, rev),
    ) if value]

    if path and git:
        raise click.UsageError("--path and --git cannot be used together")
    if refs and not git:
        raise click.UsageError("--branch, --tag and --rev require --git")
    if len(refs) > 1:
        raise click.UsageError("only one of --branch, --tag or --rev may be given")

    if path:
        return PathReplacement(Path(path))
    if git:
        if refs:
            kind, value = refs[0]
            return GitReplacement(url=git, reference=GitReference(kind=kind, value=value))
        return GitReplacement(url=git)
    return None


def _pretty_path(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


def _report(result: EditLocallyResult):
    """Tell the user where the source lives and how the manifest was changed."""
    if is_quiet():
        return

    package = result.package
    line = render_directive(result.directive)

    if result.checkout_path is not None:
        _rich_success(f"Dependency `{package.name}` has its source code now located at "
                      f"`{_pretty_path(result.checkout_path)}`.", symbol="success")
        if result.location is not None:
            _rich_info(f"Checked out {result.location} (matched by {result.location.strategy.value})")
        elif result.copied_from is not None:
            _rich_info(f"Copied from {result.copied_from}")
    else:
        _rich_success(f"Dependency `{package.name}` will use {result.directive.spec_value}",
                      symbol="success")

    if result.manifest_written:
        _rich_info(f"Added a `{SECTION_HEADER}` entry to `{_pretty_path(result.manifest_path)}`:",
                   symbol="check")
        _rich_echo(f"    {line}")
        if not result.lockfile_updated:
            _rich_info(f"Run `cargo update -p {package.name}` to refresh the lock file")
    else:
        if result.section_existed:
            where = f"inside of the existing `{SECTION_HEADER}` section"
            snippet = line
        else:
            where = ""
            snippet = f"{SECTION_HEADER}\n{line}"
        _rich_info("To use this source code ensure that the following section is added "
                   f"to `{_pretty_path(result.manifest_path)}` {where}".rstrip())
        _rich_panel(snippet, title="Cargo.toml")

    _rich_info(f"When you're done working with the source code then you can delete "
               f"the `{SECTION_HEADER}` section entry")


@cli.command(name="edit-locally", help=HELP)
@click.argument('spec')
@click.argument('destination', required=False, type=click.Path(file_okay=False, path_type=Path))
@click.option('--manifest-path', type=click.Path(dir_okay=False, path_type=Path),
              help="Path to the manifest which lists dependencies")
@click.option('--path', 'replace_path', type=click.Path(path_type=Path),
              help="Point the dependency at an existing local checkout instead of cloning")
@click.option('--git', help="Point the dependency at this git repository instead of cloning")
@click.option('--branch', help="Branch of the --git repository")
@click.option('--tag', help="Tag of the --git repository")
@click.option('--rev', help="Revision of the --git repository")
@click.option('--print-only', is_flag=True,
              help="Print the [replace] entry instead of writing it to Cargo.toml")
@click.option('--verbose', '-v', count=True, help="Use verbose output")
@click.option('--quiet', '-q', is_flag=True, help="No output printed to stdout")
@click.option('--color', type=click.Choice(['auto', 'always', 'never']), default='auto',
              help="Coloring: auto, always, never")
@click.pass_context
def edit_locally_command(ctx, spec, destination, manifest_path, replace_path, git, branch, tag, rev,
                         print_only, verbose, quiet, color):
    """Check out a dependency and add a [replace] entry for it."""
    configure_console(verbose=verbose, quiet=quiet, color=color)
    replacement = _replacement_from_options(replace_path, git, branch, tag, rev)
    if replacement is not None and destination is not None:
        raise click.UsageError("DESTINATION cannot be combined with --path or --git")

    try:
        request = EditLocallyRequest(
            spec=spec,
            destination=destination,
            replacement=replacement,
            write_manifest=not print_only,
        )
        result = edit_locally(request, manifest_path=manifest_path, cwd=Path(os.getcwd()))
        _report(result)
    except EditLocallyError as e:
        _rich_error(f"error: {e}")
        sys.exit(1)


def _parse_setting(assignment: str):
    key, sep, value = assignment.partition("=")
    key = key.strip()
    if not sep or not key:
        raise click.BadParameter(f"expected KEY=VALUE, got `{assignment}`", param_hint="--set")
    if key not in DEFAULT_CONFIG:
        known = ", ".join(sorted(DEFAULT_CONFIG))
        raise click.BadParameter(f"unknown key `{key}` (known keys: {known})", param_hint="--set")

    value = value.strip()
    if key == "net_retry":
        try:
            return key, int(value)
        except ValueError:
            raise click.BadParameter(f"`net_retry` must be an integer, got `{value}`", param_hint="--set")
    return key, value or None


@cli.command(help="Show or change edit-locally configuration")
@click.option('--show', is_flag=True, help="Show the effective configuration")
@click.option('--set', 'settings', multiple=True, metavar="KEY=VALUE",
              help="Set a configuration value (repeatable)")
def config(show, settings):
    """Show or update ~/.edit-locally/config.json."""
    configure_console()
    try:
        if settings:
            updates = dict(_parse_setting(assignment) for assignment in settings)
            update_config(updates)
            for key, value in updates.items():
                _rich_success(f"Set {key} = {value}", symbol="check")

        if show or not settings:
            current = get_config()
            lines = [f"{key} = {current.get(key)}" for key in sorted(current)]
            _rich_panel("\n".join(lines), title="edit-locally configuration")
    except (OSError, ValueError) as e:
        _rich_error(f"error: failed to update configuration: {e}")
        sys.exit(1)


def main():
    """Main entry point for the CLI."""
    try:
        cli(obj={})
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
