"""
Unit tests for repository unit models and unit loading.
"""

import json

import pytest

from repoindex.core.repository_unit import (
    FileRecord,
    RecordReleasedError,
    RepositoryUnit,
    load_units,
)
from tests.support.unit_builders import capture_logs, make_file_record


class TestFileRecord:
    def test_release_drops_payloads(self):
        record = make_file_record(1)

        record.release()

        assert record.released
        assert record.file_location == "src/main/java/demo/File1.java"
        assert record.searchable_refs is None
        assert record.type_facts is None

    def test_released_record_is_not_live(self):
        record = make_file_record(1)
        record.ensure_live()
        record.release()

        with pytest.raises(RecordReleasedError):
            record.ensure_live()


class TestRepositoryUnit:
    def test_identity(self):
        unit = RepositoryUnit(owner_login="alice", repo_name="demo")

        assert unit.unit_key == "alice~demo"
        assert unit.display_name == "alice/demo"
        assert unit.file_count == 0

    def test_from_dict(self):
        unit = RepositoryUnit.from_dict(
            {
                "owner_login": "alice",
                "repo_name": "demo",
                "repo_id": "42",
                "files": [{"file_location": "A.java", "source_content": "class A {}"}],
            }
        )

        assert unit.repo_id == 42
        assert unit.files == [FileRecord(file_location="A.java", source_content="class A {}")]

    @pytest.mark.parametrize("data", [{"owner_login": "alice"}, {"repo_name": "demo"}, {}])
    def test_from_dict_requires_identity(self, data):
        with pytest.raises(ValueError):
            RepositoryUnit.from_dict(data)


class TestLoadUnits:
    def test_reads_units_lazily_and_skips_bad_lines(self, tmp_path):
        path = tmp_path / "units.jsonl"
        path.write_text(
            "\n".join(
                [
                    json.dumps({"owner_login": "alice", "repo_name": "one", "files": []}),
                    "",
                    "{broken",
                    json.dumps({"owner_login": "bob"}),
                    json.dumps({"owner_login": "carol", "repo_name": "two", "files": [{}]}),
                ]
            )
            + "\n",
            encoding="utf-8",
        )

        with capture_logs("repoindex.core.repository_unit") as logs:
            units = list(load_units(path))

        assert [u.unit_key for u in units] == ["alice~one", "carol~two"]
        assert units[1].file_count == 1
        assert sum("Skipping malformed unit" in m for m in logs.messages()) == 2
