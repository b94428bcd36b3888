# tests/e2e/scenario_filter_roundtrip.py: E2E test against real git, sops and age.

import os
import shutil
import subprocess
import sys
from pathlib import Path

import pytest

pytestmark = pytest.mark.skipif(
    not all(shutil.which(tool) for tool in ("git", "sops", "age-keygen")),
    reason="git, sops and age-keygen are required",
)


def git(repo: Path, *args, env=None):
    return subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True, env=env)


def test_secret_is_encrypted_in_history_and_plain_in_worktree(tmp_path: Path):
    """
    Tests that a file routed through the filter is committed as sops ciphertext,
    stays readable in the working tree and shows as plaintext in `git diff`.
    """
    # 1. Generate an age key and point sops at it
    key_file = tmp_path / "keys.txt"
    subprocess.run(["age-keygen", "-o", str(key_file)], check=True, capture_output=True)
    recipient = next(
        line.split(": ", 1)[1]
        for line in key_file.read_text().splitlines()
        if line.startswith("# public key: ")
    )
    env = os.environ.copy()
    env["SOPS_AGE_KEY_FILE"] = str(key_file)
    env["GIT_SOPS_CONFIG"] = str(tmp_path / "absent.yaml")

    # 2. Create a repository that routes *.env through the filter
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "--quiet")
    git(repo, "config", "user.email", "e2e@example.com")
    git(repo, "config", "user.name", "e2e")
    (repo / ".sops.yaml").write_text(f"creation_rules:\n  - age: {recipient}\n")
    (repo / ".gitattributes").write_text("*.env filter=crypt diff=crypt\n")
    git(repo, "add", ".sops.yaml", ".gitattributes")
    git(repo, "commit", "--quiet", "-m", "Initial")

    subprocess.run(
        [sys.executable, "-m", "gitsops", "init", "--no-decrypt"],
        cwd=repo, check=True, capture_output=True, env=env,
    )

    # 3. Commit a secret
    (repo / "db.env").write_text("DB_PASSWORD=s3cret\n")
    git(repo, "add", "db.env", env=env)
    git(repo, "commit", "--quiet", "-m", "Add secret", env=env)

    # 4. Verification
    committed = git(repo, "cat-file", "-p", "HEAD:db.env").stdout
    assert b"s3cret" not in committed
    assert b"ENC[AES256" in committed
    assert (repo / "db.env").read_text() == "DB_PASSWORD=s3cret\n"

    # Re-staging an unchanged file must not produce a new blob
    (repo / "db.env").touch()
    git(repo, "add", "db.env", env=env)
    assert git(repo, "status", "--porcelain", env=env).stdout == b""

    (repo / "db.env").write_text("DB_PASSWORD=rotated\n")
    diff = git(repo, "diff", env=env).stdout
    assert b"-DB_PASSWORD=s3cret" in diff
    assert b"+DB_PASSWORD=rotated" in diff
