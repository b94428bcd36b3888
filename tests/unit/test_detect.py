# tests/unit/test_detect.py: Unit tests for working-tree change detection.

from gitsops.detect import ChangeDetector


def test_file_missing_from_head_is_new(repo, engine):
    detector = ChangeDetector(repo, engine)
    assert detector.is_changed("new.env", b"anything") is True
    assert engine.calls == []


def test_identical_ciphertext_is_unchanged_without_decrypting(repo, engine, encrypted):
    blob = encrypted(b"API_KEY=1\n")
    repo.head["a.env"] = blob

    assert ChangeDetector(repo, engine).is_changed("a.env", blob) is False
    assert engine.calls == []


def test_plaintext_matching_decrypted_head_is_unchanged(repo, engine, encrypted):
    repo.head["a.env"] = encrypted(b"API_KEY=1\n")

    assert ChangeDetector(repo, engine).is_changed("a.env", b"API_KEY=1\n") is False
    assert [call[0] for call in engine.calls] == ["decrypt"]


def test_fresh_encryption_of_same_plaintext_is_not_a_change(repo, engine, encrypted):
    # Two encryptions of one plaintext differ byte-wise; only decryption can tell.
    repo.head["a.env"] = encrypted(b"API_KEY=1\n")
    other = encrypted(b"API_KEY=1\n")
    assert other != repo.head["a.env"]

    assert ChangeDetector(repo, engine).is_changed("a.env", b"API_KEY=1\n") is False


def test_one_byte_difference_is_a_change(repo, engine, encrypted):
    repo.head["a.env"] = encrypted(b"API_KEY=1\n")

    assert ChangeDetector(repo, engine).is_changed("a.env", b"API_KEY=2\n") is True


def test_plaintext_at_rest(repo, engine):
    repo.head["legacy.env"] = b"TOKEN=abc\n"
    detector = ChangeDetector(repo, engine)

    assert detector.is_changed("legacy.env", b"TOKEN=abc\n") is False
    assert detector.is_changed("legacy.env", b"TOKEN=abd\n") is True
    assert engine.calls == []


def test_reads_the_working_tree_when_no_content_given(repo, engine, encrypted):
    repo.head["a.env"] = encrypted(b"v1")
    repo.working["a.env"] = b"v1"

    assert ChangeDetector(repo, engine).is_changed("a.env") is False

    repo.working["a.env"] = b"v2"
    assert ChangeDetector(repo, engine).is_changed("a.env") is True


def test_deleted_working_file_counts_as_changed(repo, engine, encrypted):
    repo.head["a.env"] = encrypted(b"v1")
    assert ChangeDetector(repo, engine).is_changed("a.env") is True
