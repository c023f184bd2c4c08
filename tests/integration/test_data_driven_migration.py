"""Data-driven integration tests for legacy assertion migration.

Each ``legacy_given_<case>.py.txt`` under tests/data/given_and_expected/ is
migrated through the full file pipeline and compared with
``fluent_expected_<case>.py.txt``.
"""

import pytest

from splurge_assert_migrator import main
from splurge_assert_migrator.context import MigrationConfig
from splurge_assert_migrator.transformers.assert_equals_transformer import migrate_source
from tests.test_utils import assert_code_equivalent, given_expected_pairs

PAIRS = given_expected_pairs()


def test_data_pairs_present():
    assert len(PAIRS) >= 10


@pytest.mark.parametrize("case_id,given,expected", PAIRS, ids=[p[0] for p in PAIRS])
def test_in_memory_migration(case_id, given, expected):
    source = given.read_text(encoding="utf-8")
    wanted = expected.read_text(encoding="utf-8")

    migrated = migrate_source(source)

    if source == wanted:
        assert migrated == source
    else:
        assert_code_equivalent(migrated, wanted)
    assert migrate_source(migrated) == migrated


@pytest.mark.parametrize("case_id,given,expected", PAIRS, ids=[p[0] for p in PAIRS])
def test_file_pipeline_migration(tmp_path, case_id, given, expected):
    source = given.read_text(encoding="utf-8")
    target = tmp_path / f"test_{case_id}.py"
    target.write_text(source, encoding="utf-8")

    result = main.migrate([str(target)], MigrationConfig(backup_originals=False))

    assert result.is_success(), result.error
    assert result.data == [str(target)]
    assert_code_equivalent(target.read_text(encoding="utf-8"), expected.read_text(encoding="utf-8"))
