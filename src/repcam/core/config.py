"""
RepCam configuration.

Settings come from three layers, each overriding the one before:
config/default.yaml, then config/<REPCAM_ENV>.yaml, then REPCAM_*
environment variables.
"""

import os
from pathlib import Path
from typing import Any

import yaml

ENV_PREFIX = "REPCAM_"
ENV_SELECTOR = "REPCAM_ENV"
DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"


class Config:
    """
    Layered YAML settings for the camera, pipeline and inference sections.

    Usage:
        config = Config()
        config.get("pipeline.labels")
        config["camera"]["rotation"]
    """

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = Path(config_dir) if config_dir is not None else DEFAULT_CONFIG_DIR
        self.env = os.getenv(ENV_SELECTOR, "production")
        self._config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {}
        for name in ("default", self.env):
            layer = self._read_yaml(self.config_dir / f"{name}.yaml")
            config = self._deep_merge(config, layer)
        return self._apply_env_overrides(config)

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _deep_merge(self, base: dict, override: dict) -> dict:
        merged = dict(base)
        for key, value in override.items():
            if isinstance(merged.get(key), dict) and isinstance(value, dict):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _apply_env_overrides(self, config: dict) -> dict:
        """
        Fold REPCAM_* variables into the config.

        REPCAM_PIPELINE_COLOR_ENCODING=I420 sets pipeline.color_encoding:
        underscore runs are matched against existing keys, longest first.
        """
        for name, raw in os.environ.items():
            if not name.startswith(ENV_PREFIX) or name == ENV_SELECTOR:
                continue
            parts = name[len(ENV_PREFIX) :].lower().split("_")
            path = self._resolve_path(config, parts)
            self._set_nested(config, path, self._parse_value(raw))
        return config

    def _resolve_path(self, config: dict, parts: list[str]) -> list[str]:
        path: list[str] = []
        node: Any = config
        i = 0
        while i < len(parts):
            width = 1
            if isinstance(node, dict):
                for j in range(len(parts), i, -1):
                    if "_".join(parts[i:j]) in node:
                        width = j - i
                        break
            key = "_".join(parts[i : i + width])
            path.append(key)
            node = node.get(key) if isinstance(node, dict) else None
            i += width
        return path

    @staticmethod
    def _set_nested(d: dict, keys: list[str], value: Any) -> None:
        for key in keys[:-1]:
            d = d.setdefault(key, {})
        d[keys[-1]] = value

    def _parse_value(self, raw: str) -> Any:
        """Coerce an env string to bool, int, float or a comma list."""
        lowered = raw.lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        for cast in (int, float):
            try:
                return cast(raw)
            except ValueError:
                pass
        if "," in raw:
            return [self._parse_value(item.strip()) for item in raw.split(",")]
        return raw

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted path such as 'pipeline.target_size'."""
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or node.get(part) is None:
                return default
            node = node[part]
        return node

    def __getitem__(self, key: str) -> Any:
        return self._config.get(key, {})

    @property
    def as_dict(self) -> dict[str, Any]:
        return self._config.copy()

    def reload(self) -> None:
        """Re-read the YAML files and environment."""
        self._config = self._load_config()
