"""Tests for workspace discovery and lock-file queries."""

from unittest.mock import MagicMock, patch

import pytest

from edit_locally.core.errors import LockfileError, ManifestNotFoundError, PackageSpecError
from edit_locally.deps.workspace import CargoWorkspace, find_root_manifest
from edit_locally.models.package import AlternateRegistry, DefaultRegistry, LocalPath, VersionControlled

from conftest import CRATES_IO, manifest_text, write_workspace


GIT_LOG = "git+https://github.com/me/log?branch=fix#0123456789abcdef0123456789abcdef01234567"


class TestFindRootManifest:
    """Test locating the root manifest."""

    def test_nearest_manifest_from_subdirectory(self, tmp_path):
        manifest = write_workspace(tmp_path / "app", [])
        nested = tmp_path / "app" / "src" / "bin"
        nested.mkdir(parents=True)

        assert find_root_manifest(None, nested) == manifest

    def test_workspace_root_from_member(self, tmp_path):
        root = tmp_path / "ws"
        root.mkdir()
        (root / "Cargo.toml").write_text('[workspace]\nmembers = ["member"]\n')
        member = root / "member"
        member.mkdir()
        (member / "Cargo.toml").write_text(manifest_text("member", "0.1.0"))

        assert find_root_manifest(None, member) == root / "Cargo.toml"
        assert find_root_manifest("member/Cargo.toml", root) == root / "Cargo.toml"

    def test_explicit_path_must_name_manifest(self, tmp_path):
        write_workspace(tmp_path, [])
        with pytest.raises(ManifestNotFoundError, match="must be a path to a Cargo.toml"):
            find_root_manifest(tmp_path / "Cargo.lock", tmp_path)

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ManifestNotFoundError, match="could not find `Cargo.toml`"):
            find_root_manifest(None, tmp_path)


class TestQuery:
    """Test resolving package ID specifications against the lock file."""

    def test_sources_are_typed(self, tmp_path):
        manifest = write_workspace(tmp_path, [
            ("log", "0.3.5", CRATES_IO),
            ("env_logger", "0.3.5", GIT_LOG),
            ("private", "1.0.0", "registry+https://my-registry.example.com/index"),
        ])
        workspace = CargoWorkspace(manifest)

        assert workspace.query("log").source == DefaultRegistry()
        assert isinstance(workspace.query("env_logger").source, VersionControlled)
        assert isinstance(workspace.query("private").source, AlternateRegistry)
        assert workspace.query("app").source == LocalPath()

    def test_ambiguous_spec_lists_choices(self, tmp_path):
        manifest = write_workspace(tmp_path, [
            ("log", "0.3.5", CRATES_IO),
            ("log", "0.4.0", CRATES_IO),
        ])
        with pytest.raises(PackageSpecError) as excinfo:
            CargoWorkspace(manifest).query("log")

        assert "log:0.3.5" in str(excinfo.value)
        assert "log:0.4.0" in str(excinfo.value)

    def test_version_disambiguates(self, tmp_path):
        manifest = write_workspace(tmp_path, [
            ("log", "0.3.5", CRATES_IO),
            ("log", "0.4.0", CRATES_IO),
        ])
        assert CargoWorkspace(manifest).query("log:0.4").version == "0.4.0"

    def test_unmatched_spec(self, tmp_path):
        manifest = write_workspace(tmp_path, [("log", "0.3.5", CRATES_IO)])
        with pytest.raises(PackageSpecError, match="did not match any packages"):
            CargoWorkspace(manifest).query("serde")

    def test_malformed_lock_file(self, tmp_path):
        manifest = write_workspace(tmp_path, [])
        (tmp_path / "Cargo.lock").write_text("[[package]\n")
        with pytest.raises(LockfileError):
            CargoWorkspace(manifest).packages()

    @patch("edit_locally.deps.workspace.is_tool_available", return_value=False)
    def test_missing_lock_file_without_cargo(self, _mock_tool, tmp_path):
        manifest = write_workspace(tmp_path, [])
        (tmp_path / "Cargo.lock").unlink()
        with pytest.raises(LockfileError, match="not installed"):
            CargoWorkspace(manifest).packages()


class TestIsReplaced:
    """Test detection of packages that are already replaced."""

    def test_manifest_replace_key(self, tmp_path):
        manifest = write_workspace(tmp_path, [("log", "0.3.5", CRATES_IO)], manifest=(
            manifest_text("app", "0.1.0") + '\n[replace]\n"log:0.3.5" = { path = "log" }\n'
        ))
        workspace = CargoWorkspace(manifest)
        assert workspace.is_replaced(workspace.query("log"))

    def test_lock_replace_field(self, tmp_path):
        manifest = write_workspace(tmp_path, [("log", "0.3.5", CRATES_IO)])
        lock = tmp_path / "Cargo.lock"
        lock.write_text(lock.read_text() + 'replace = "log 0.3.5"\n')
        workspace = CargoWorkspace(manifest)
        assert workspace.is_replaced(workspace.query("log"))

    def test_other_version_not_replaced(self, tmp_path):
        manifest = write_workspace(tmp_path, [("log", "0.3.5", CRATES_IO)], manifest=(
            manifest_text("app", "0.1.0") + '\n[replace]\n"log:0.3.4" = { path = "log" }\n'
        ))
        workspace = CargoWorkspace(manifest)
        assert not workspace.is_replaced(workspace.query("log"))


class TestRunCargo:
    """Test the Cargo subprocess wrapper."""

    @patch("edit_locally.deps.workspace.is_tool_available", return_value=False)
    def test_refresh_skipped_without_cargo(self, _mock_tool, tmp_path, capsys):
        workspace = CargoWorkspace(write_workspace(tmp_path, []))
        assert workspace.regenerate_lockfile() is False
        assert "`cargo` not found" in capsys.readouterr().err

    @patch("edit_locally.deps.workspace.subprocess.run")
    @patch("edit_locally.deps.workspace.is_tool_available", return_value=True)
    def test_refresh_runs_metadata(self, _mock_tool, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=0, stderr="")
        manifest = write_workspace(tmp_path, [])

        assert CargoWorkspace(manifest).regenerate_lockfile() is True
        command = mock_run.call_args[0][0]
        assert command == ["cargo", "metadata", "--format-version", "1", "--manifest-path", str(manifest)]

    @patch("edit_locally.deps.workspace.subprocess.run")
    @patch("edit_locally.deps.workspace.is_tool_available", return_value=True)
    def test_cargo_failure_raises(self, _mock_tool, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=101, stderr="error: failed to select a version\n")
        with pytest.raises(LockfileError, match="failed to select a version"):
            CargoWorkspace(write_workspace(tmp_path, [])).regenerate_lockfile()
