# tests/unit/test_preflight.py: Unit tests for startup precondition checks.

from pathlib import Path

import pytest

from gitsops.config import Settings
from gitsops.preflight import check_environment
from gitsops.util.errors import PreconditionError
from gitsops.util.paths import resolve_age_key_file


@pytest.fixture
def workspace(tmp_path: Path, mocker):
    key_file = tmp_path / "keys.txt"
    key_file.write_text("AGE-SECRET-KEY-1TEST\n")
    root = tmp_path / "repo"
    root.mkdir()
    (root / ".sops.yaml").write_text("creation_rules: []\n")

    mocker.patch("gitsops.preflight.resolve_age_key_file", return_value=key_file)
    mocker.patch("gitsops.preflight.find_in_path", return_value="/usr/bin/sops")
    mocker.patch("gitsops.preflight.git_is_inside_work_tree", return_value=True)
    mocker.patch("gitsops.preflight.git_toplevel", return_value=root)
    return root, key_file


def test_environment_is_resolved(workspace):
    root, key_file = workspace
    env = check_environment(Settings(), cwd=root)
    assert env.root == root
    assert env.key_file == key_file
    assert env.sops_binary == "/usr/bin/sops"
    assert env.sops_config == root / ".sops.yaml"


def test_missing_key_file_is_checked_first(workspace, mocker):
    mocker.patch(
        "gitsops.preflight.resolve_age_key_file",
        side_effect=PreconditionError("Age key not found"),
    )
    sops = mocker.patch("gitsops.preflight.find_in_path")
    with pytest.raises(PreconditionError, match="Age key not found"):
        check_environment(Settings())
    sops.assert_not_called()


def test_missing_sops(workspace, mocker):
    mocker.patch("gitsops.preflight.find_in_path", return_value=None)
    with pytest.raises(PreconditionError, match="Not found: sops"):
        check_environment(Settings())


def test_outside_a_repository(workspace, mocker):
    mocker.patch("gitsops.preflight.git_is_inside_work_tree", return_value=False)
    with pytest.raises(PreconditionError, match="Not inside a Git repository"):
        check_environment(Settings())


def test_missing_sops_config(workspace):
    root, _ = workspace
    (root / ".sops.yaml").unlink()
    with pytest.raises(PreconditionError, match="Not found: .*\\.sops\\.yaml"):
        check_environment(Settings())


def test_age_key_file_resolution(tmp_path: Path, monkeypatch):
    key_file = tmp_path / "keys.txt"
    monkeypatch.setenv("SOPS_AGE_KEY_FILE", str(key_file))
    with pytest.raises(PreconditionError, match="age-keygen"):
        resolve_age_key_file()

    key_file.write_text("AGE-SECRET-KEY-1TEST\n")
    assert resolve_age_key_file() == key_file.resolve()
