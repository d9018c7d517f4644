"""
Tests for configuration loading

Run with: pytest tests/test_config.py -v
"""

import pytest

from core import config as config_module


@pytest.fixture(autouse=True)
def fresh_config():
    config_module.get_config(reload=True)
    yield
    config_module.get_config(reload=True)


class TestConfig:
    """Tests for the config.yaml accessors."""

    def test_project_root_has_config(self):
        assert (config_module.get_project_root() / "config.yaml").exists()

    def test_config_is_cached(self):
        assert config_module.get_config() is config_module.get_config()

    def test_sections_present(self):
        config = config_module.get_config()
        for section in ("camera", "capture", "packaging", "verification", "normalizer", "api"):
            assert section in config

    def test_capture_defaults(self):
        capture = config_module.get_capture_config()
        assert capture["frame_count"] == 6
        assert capture["inter_frame_delay_ms"] == 50
        assert capture["enrollment_pre_roll_seconds"] == 3

    def test_packaging_defaults(self):
        packaging = config_module.get_packaging_config()
        assert packaging["max_dimension"] == 1024
        assert packaging["quality"] == 0.95

    def test_normalizer_threshold(self):
        assert config_module.get_normalizer_config()["match_threshold"] == 0.70

    def test_unknown_section(self):
        with pytest.raises(KeyError):
            config_module.get_section("storage")

    def test_server_config(self):
        server = config_module.get_server_config()
        assert server["port"] == 8000
        assert server["host"] == "0.0.0.0"

    def test_load_explicit_path(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("camera:\n  max_devices: 2\n")

        loaded = config_module.load_config(str(path))

        assert loaded == {"camera": {"max_devices": 2}}

    @pytest.mark.parametrize("base_url,expected", [
        ("http://localhost:9000", {"host": "0.0.0.0", "port": 9000}),
        ("http://10.0.0.5:8080/", {"host": "10.0.0.5", "port": 8080}),
        ("http://relay.local", {"host": "relay.local", "port": 8000}),
    ])
    def test_server_config_from_base_url(self, monkeypatch, base_url, expected):
        monkeypatch.setattr(config_module, "get_api_config", lambda: {"base_url": base_url})

        assert config_module.get_server_config() == expected
