"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  -- Static defaults checked into the repo
#   2. .env file           -- Local developer overrides (not committed)
#   3. Environment vars    -- Set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the values
# resolved by Settings on top, so a tuning value can live in config.yaml
# and still be overridden per environment.
#
#   base = {"chunking": {"separators": ["\n\n", "\n"]}}
#   overrides = {"chunking": {"chunk_size": 800}}
#   result = {"chunking": {"separators": [...], "chunk_size": 800}}
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from src.config.settings import Settings

DEFAULT_SEPARATORS: list[str] = ["\n\n", "\n", ". ", " ", ""]


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    if settings is None:
        settings = Settings()

    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "chunking": {
            "chunk_size": settings.chunk_size,
            "chunk_overlap": settings.chunk_overlap,
        },
        "embedding": {
            "batch_size": settings.embedding_batch_size,
            "dimension": settings.embedding_dimension,
            "available_providers": settings.get_available_embedding_providers(),
        },
        "ocr": {
            "enabled": bool(settings.google_api_key),
            "min_text_length": settings.ocr_min_text_length,
            "max_pages": settings.ocr_max_pages,
            "batch_size": settings.ocr_batch_size,
        },
        "upload": {
            "max_mb": settings.max_upload_mb,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    yaml_config["chunking"].setdefault("separators", list(DEFAULT_SEPARATORS))
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
