"""YAML config loader with save, import/export and runtime get/set."""

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from wxfeed.config.schema import FeedConfig

DEFAULT_CONFIG_PATH = "config/wxfeed.yaml"


def load_config(path: str | Path) -> FeedConfig:
    """Load and validate config from a YAML file.

    A missing file yields the default config so a fresh install can start
    empty and be populated through the API.
    """
    path = Path(path)
    if not path.exists():
        return FeedConfig()
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return FeedConfig(**raw)


def save_config(config: FeedConfig, path: str | Path) -> None:
    """Write config as YAML, replacing the file atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w") as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, sort_keys=False)
    tmp.replace(path)


def export_config(config: FeedConfig) -> dict:
    return config.model_dump(mode="json")


def import_config(data: dict | str) -> FeedConfig:
    """Validate an exported config (dict, JSON or YAML text)."""
    if isinstance(data, str):
        data = yaml.safe_load(data) or {}
    return FeedConfig(**data)


def config_hash(config: FeedConfig) -> str:
    """Short stable fingerprint of the config, for change detection in logs."""
    canonical = json.dumps(export_config(config), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()[:16]


def _resolve(tree: Any, dotted_key: str) -> tuple[Any, str | int]:
    """Walk all but the last segment of ``dotted_key``; list segments are indexes."""
    *head, last = dotted_key.split(".")
    node = tree
    try:
        for segment in head:
            node = node[int(segment)] if isinstance(node, list) else node[segment]
        leaf: str | int = int(last) if isinstance(node, list) else last
        node[leaf]
    except (KeyError, IndexError, ValueError, TypeError):
        raise KeyError(f"Config key not found: {dotted_key}") from None
    return node, leaf


def _coerce_like(current: Any, value: Any) -> Any:
    # CLI values arrive as strings; match the type already stored.
    if not isinstance(value, str):
        return value
    if isinstance(current, bool):
        return value.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return value


def get_config_value(config: FeedConfig, dotted_key: str) -> Any:
    """Read a value by dotted path, e.g. ``locations.0.name``."""
    parent, leaf = _resolve(export_config(config), dotted_key)
    return parent[leaf]


def set_config_value(config: FeedConfig, dotted_key: str, value: Any) -> FeedConfig:
    """Return a re-validated copy of ``config`` with one value replaced."""
    tree = export_config(config)
    parent, leaf = _resolve(tree, dotted_key)
    parent[leaf] = _coerce_like(parent[leaf], value)
    return FeedConfig(**tree)
