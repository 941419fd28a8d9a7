"""Tests for environment identity lookup."""

import json

import pytest

from livestore.common.environment import get_host_name, read_environment_name

pytestmark = pytest.mark.unit


class TestReadEnvironmentName:
    """Tests for read_environment_name()."""

    def test_top_level_key(self, tmp_path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps({"environment_name": "perf-east"}))

        assert read_environment_name(path) == "perf-east"

    def test_nested_key(self, tmp_path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps({"config": {"tags": [{"environment_name": "perf-west"}]}}))

        assert read_environment_name(path) == "perf-west"

    def test_non_json_content_is_scanned(self, tmp_path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text('# generated\n  "environment_name": "legacy",\n  broken {')

        assert read_environment_name(path) == "legacy"

    def test_missing_file_is_unknown(self, tmp_path) -> None:
        assert read_environment_name(tmp_path / "nope.json") == "unknown"

    def test_missing_key_is_unknown(self, tmp_path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps({"region": "us-east-1"}))

        assert read_environment_name(path) == "unknown"

    def test_deeply_nested_json_is_unknown(self, tmp_path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text("[" * 200_000 + "]" * 200_000)

        assert read_environment_name(path) == "unknown"

    def test_non_string_value_is_unknown(self, tmp_path) -> None:
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps({"environment_name": 42}))

        assert read_environment_name(path) == "unknown"


def test_host_name_is_not_empty() -> None:
    assert get_host_name()
