"""Unit tests for core.yaml module."""

import pytest
import yaml

from nostrpush.core.exceptions import ConfigurationError
from nostrpush.core.yaml import load_yaml


class TestLoadYaml:
    def test_mapping(self, tmp_path):
        path = tmp_path / "router.yaml"
        path.write_text("queue:\n  name: nostr_events\ninterval: 5\n")
        assert load_yaml(str(path)) == {"queue": {"name": "nostr_events"}, "interval": 5}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml(str(path)) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml(str(tmp_path / "missing.yaml"))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_yaml(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("key: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml(str(path))

    def test_safe_load_rejects_python_tags(self, tmp_path):
        path = tmp_path / "unsafe.yaml"
        path.write_text("key: !!python/object/apply:os.system ['true']\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml(str(path))
