"""
Configuration for the Face ID capture client and relay.

Settings live in config.yaml at the project root. They are parsed once and
cached; components receive their own section as a plain dict.

Usage:
    from core.config import get_capture_config
    frame_count = get_capture_config().get("frame_count", 6)
"""

import httpx
import yaml
from pathlib import Path
from typing import Any, Dict, Optional


_config_instance: Optional[Dict[str, Any]] = None


def get_project_root() -> Path:
    """
    Directory holding config.yaml, searched upward from this package.

    Raises:
        FileNotFoundError: If no parent directory has a config.yaml.
    """
    current_dir = Path(__file__).resolve().parent

    while current_dir != current_dir.parent:
        if (current_dir / "config.yaml").exists():
            return current_dir
        current_dir = current_dir.parent

    raise FileNotFoundError("config.yaml not found above " + str(Path(__file__).parent))


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Parse a YAML config file (default: config.yaml at the project root).

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    path = Path(config_path) if config_path else get_project_root() / "config.yaml"

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_config(reload: bool = False) -> Dict[str, Any]:
    """Cached configuration; ``reload=True`` re-reads the file."""
    global _config_instance

    if _config_instance is None or reload:
        _config_instance = load_config()

    return _config_instance


def get_section(section_name: str) -> Dict[str, Any]:
    """
    One top-level section of the configuration.

    Raises:
        KeyError: If the section is missing.
    """
    config = get_config()
    if section_name not in config:
        raise KeyError(f"No '{section_name}' section in config.yaml (have: {sorted(config)})")
    return config[section_name]


def get_camera_config() -> Dict[str, Any]:
    return get_section("camera")


def get_capture_config() -> Dict[str, Any]:
    return get_section("capture")


def get_packaging_config() -> Dict[str, Any]:
    return get_section("packaging")


def get_verification_config() -> Dict[str, Any]:
    return get_section("verification")


def get_normalizer_config() -> Dict[str, Any]:
    return get_section("normalizer")


def get_api_config() -> Dict[str, Any]:
    return get_section("api")


def get_server_config() -> Dict[str, Any]:
    """Host and port the relay API binds to, taken from ``api.base_url``."""
    url = httpx.URL(get_api_config().get("base_url", "http://localhost:8000"))

    # localhost in the URL means "listen on every interface"
    host = url.host if url.host and url.host != "localhost" else "0.0.0.0"
    return {"host": host, "port": url.port or 8000}
