"""Tests for bundled resources."""

import yaml

from waasabi.tools import copy_sample_config_to, open_sample_config


def test_sample_config_is_valid_yaml():
    with open_sample_config() as path:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    for section in ("matrix", "api", "backend", "dispatcher", "logging"):
        assert section in data
    assert data["dispatcher"]["burst"] == 1


def test_copy_to_directory(tmp_path):
    written = copy_sample_config_to(str(tmp_path / "conf"))
    assert written == str(tmp_path / "conf" / "sample_config.yaml")


def test_copy_to_file(tmp_path):
    target = tmp_path / "my.yaml"
    assert copy_sample_config_to(str(target)) == str(target)
    assert target.exists()
