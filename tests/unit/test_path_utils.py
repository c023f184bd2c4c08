from pathlib import Path

import pytest

from splurge_assert_migrator.helpers import path_utils
from splurge_assert_migrator.helpers.path_utils import (
    PathValidationError,
    backup_path_for,
    create_backup,
    ensure_parent_dir,
    normalize_path_for_display,
    read_source,
    validate_source_path,
    with_retries,
    write_source,
)


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    monkeypatch.setattr(path_utils, "RETRY_DELAY_SECONDS", 0)


class TestValidateSourcePath:
    def test_existing_file(self, tmp_path):
        source = tmp_path / "t.py"
        source.write_text("x = 1\n")
        assert validate_source_path(str(source)) == source

    @pytest.mark.parametrize("kind", ["missing", "not_a_file", "empty_path"])
    def test_rejections(self, tmp_path, kind):
        path = {"missing": str(tmp_path / "nope.py"), "not_a_file": str(tmp_path), "empty_path": "  "}[kind]
        with pytest.raises(PathValidationError) as exc_info:
            validate_source_path(path)
        assert exc_info.value.details["validation_type"] == kind


class TestRetries:
    def test_transient_os_error_is_retried(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise PermissionError("locked")
            return "ok"

        assert with_retries("read", "f.py", flaky, retries=2) == "ok"
        assert len(calls) == 3

    def test_gives_up_after_retries(self):
        calls = []

        def always_fails():
            calls.append(1)
            raise OSError("disk on fire")

        with pytest.raises(OSError, match="disk on fire"):
            with_retries("write", "f.py", always_fails, retries=1)
        assert len(calls) == 2

    def test_missing_file_not_retried(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_source(tmp_path / "missing.py", retries=5)


def test_read_and_write_preserve_newlines(tmp_path):
    target = tmp_path / "nested" / "dir" / "t.py"
    write_source(target, "a = 1\r\nb = 2\n")
    assert target.read_bytes() == b"a = 1\r\nb = 2\n"
    assert read_source(target) == "a = 1\r\nb = 2\n"


def test_ensure_parent_dir(tmp_path):
    target = tmp_path / "a" / "b" / "c.py"
    ensure_parent_dir(target)
    assert target.parent.is_dir()


def test_backup_path_for(tmp_path):
    assert backup_path_for("pkg/test_a.py") == Path("pkg/test_a.py.backup")
    assert backup_path_for("pkg/test_a.py", str(tmp_path)) == tmp_path / "test_a.py.backup"


def test_create_backup_keeps_existing_backup(tmp_path):
    source = tmp_path / "t.py"
    source.write_text("original\n")

    backup = create_backup(source)
    assert backup == tmp_path / "t.py.backup"
    assert backup.read_text() == "original\n"

    source.write_text("changed\n")
    assert create_backup(source) is None
    assert backup.read_text() == "original\n"


def test_create_backup_into_backup_root(tmp_path):
    source = tmp_path / "t.py"
    source.write_text("x\n")
    backup = create_backup(source, str(tmp_path / "backups"))
    assert backup == tmp_path / "backups" / "t.py.backup"
    assert backup.exists()


def test_normalize_path_for_display():
    assert normalize_path_for_display(Path("a") / "b.py", force_posix=True) == "a/b.py"
