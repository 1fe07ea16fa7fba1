"""
Tests for configuration loading and challenge files.
"""

import json

import pytest
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from judge.config_loader import load_config, create_sample_config
from judge.challenges import load_challenge
from judge.models import EngineConfig, Challenge, TestCase


class TestEngineConfig:
    """Test EngineConfig defaults and validation."""

    def test_default(self):
        config = EngineConfig.default()

        assert config.time_limit_ms == 2000
        assert config.timeout_sec == 2.0
        assert config.checker == "exact_match"
        assert config.validate() == (True, "")

    def test_from_dict_partial(self):
        config = EngineConfig.from_dict({"time_limit_ms": 500})

        assert config.time_limit_ms == 500
        assert config.memory_limit_mb == 256

    @pytest.mark.parametrize("data", [
        {"time_limit_ms": 0},
        {"time_limit_ms": 120000},
        {"memory_limit_mb": 8},
        {"max_output_chars": 0},
    ])
    def test_invalid_values(self, data):
        is_valid, message = EngineConfig.from_dict(data).validate()

        assert not is_valid
        assert message


class TestLoadConfig:
    """Test loading configuration files."""

    def test_none_returns_default(self):
        assert load_config(None) == EngineConfig.default()

    def test_missing_file_returns_default(self, tmp_path):
        assert load_config(tmp_path / "missing.json") == EngineConfig.default()

    def test_load_valid(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"time_limit_ms": 750, "checker": "float_isclose"}), encoding="utf-8")

        config = load_config(path)

        assert config.time_limit_ms == 750
        assert config.checker == "float_isclose"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid JSON"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"memory_limit_mb": 1}), encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(path)

    def test_sample_config_loads(self, tmp_path):
        path = tmp_path / "sample.json"

        create_sample_config(path)

        assert load_config(path) == EngineConfig.default()


class TestChallenges:
    """Test challenge loading."""

    def _write(self, tmp_path, data):
        path = tmp_path / "challenge.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def _data(self):
        return {
            "id": "E01",
            "title": "Hello",
            "entry_name": "main",
            "starter_code": "def main():\n    pass\n",
            "time_limit_ms": 1000,
            "tests": [
                {"description": "greets", "inputs": [], "expected_output": "Hello"},
                {"description": "hidden", "inputs": [1, 2], "expected_output": 3, "visible": False},
            ],
        }

    def test_load(self, tmp_path):
        challenge = load_challenge(self._write(tmp_path, self._data()))

        assert challenge.id == "E01"
        assert challenge.tests[0] == TestCase("greets", (), "Hello", True)
        assert challenge.tests[1].inputs == (1, 2)
        assert challenge.tests[1].expected_output == "3"
        assert challenge.visible_tests() == [challenge.tests[0]]

    def test_overrides(self, tmp_path):
        challenge = load_challenge(self._write(tmp_path, self._data()))

        config = challenge.apply_overrides(EngineConfig.default())

        assert config.time_limit_ms == 1000
        assert config.checker == "exact_match"

    @pytest.mark.parametrize("limit", [-5, 0, 10 ** 9, "soon"])
    def test_override_limits_are_validated(self, tmp_path, limit):
        """A challenge cannot set a negative or unbounded deadline."""
        data = self._data()
        data["time_limit_ms"] = limit
        challenge = load_challenge(self._write(tmp_path, data))

        with pytest.raises(ValueError, match="Invalid challenge limits"):
            challenge.apply_overrides(EngineConfig.default())

    def test_missing_field(self, tmp_path):
        data = self._data()
        del data["entry_name"]

        with pytest.raises(ValueError, match="entry_name"):
            load_challenge(self._write(tmp_path, data))

    def test_bad_entry_name(self, tmp_path):
        data = self._data()
        data["entry_name"] = "not valid"

        with pytest.raises(ValueError, match="identifier"):
            load_challenge(self._write(tmp_path, data))

    def test_no_tests(self, tmp_path):
        data = self._data()
        data["tests"] = []

        with pytest.raises(ValueError, match="no test cases"):
            load_challenge(self._write(tmp_path, data))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError):
            load_challenge(tmp_path / "nope.json")
