"""YAML configuration under ``config/`` with ``HWBOT_*`` environment overrides.

Layout::

    config/profile.yml          browser, game url, overlay port, log level
    config/keys.yml             global hotkeys
    config/modes/<mode>.yml     click targets, timings and limits of one mode
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from hwbot.core.models import UNMAPPED

logger = logging.getLogger("hwbot.config")

ENV_PREFIX = "HWBOT"
TRUTHY = ("1", "true", "yes", "on")


def _coerce(raw: str, current: Any) -> Any:
    """Convert an environment string to the type of the value it replaces."""
    if isinstance(current, bool):
        return raw.strip().lower() in TRUTHY
    for kind in (int, float):
        if isinstance(current, kind):
            try:
                return kind(raw)
            except ValueError:
                logger.warning("ignoring override %r: expected %s", raw, kind.__name__)
                return current
    return raw


def _overlay_env(data: Any, prefix: str) -> Any:
    """Return ``data`` with every scalar leaf replaced by ``<prefix>_<KEY>`` when set.

    Nested keys are joined with underscores; lists are never overridden.
    """
    if not isinstance(data, dict):
        return data
    out: Dict[Any, Any] = {}
    for key, value in data.items():
        env_key = f"{prefix}_{str(key).upper()}"
        if isinstance(value, dict):
            out[key] = _overlay_env(value, env_key)
        elif not isinstance(value, list) and env_key in os.environ:
            out[key] = _coerce(os.environ[env_key], value)
        else:
            out[key] = value
    return out


class Config:
    """Cached reader for the files under one config directory."""

    def __init__(self, config_dir: Optional[str] = None):
        if config_dir is None:
            config_dir = os.environ.get("HWBOT_CONFIG_DIR") or Path(__file__).resolve().parents[2] / "config"
        self.config_dir = Path(config_dir)
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_profile(self) -> Dict[str, Any]:
        return self._load("profile.yml")

    def load_keys(self) -> Dict[str, Any]:
        return self._load("keys.yml")

    def load_mode_config(self, mode: str) -> Dict[str, Any]:
        """Settings of one automation mode (``modes/<mode>.yml``); ``{}`` when absent."""
        return self._load(f"modes/{mode}.yml")

    def list_modes(self) -> List[Dict[str, Any]]:
        folder = self.config_dir / "modes"
        if not folder.is_dir():
            return []
        return [
            {"id": path.stem, "name": self.load_mode_config(path.stem).get("name") or path.stem}
            for path in sorted(folder.glob("*.yml"))
        ]

    def save_coords(
        self,
        mode: str,
        name: str,
        *,
        coords: Tuple[float, float],
        table: str = "buttons",
        index: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Write a mapped coordinate into a mode's click-target table.

        Without ``index`` the table is a mapping of names to ``[x, y]``
        (``buttons``); with it, a list padded with unmapped ``[0, 0]``
        entries (``doors``). Returns the whole updated mode config.
        """
        if index is not None and index < 0:
            raise ValueError(f"Invalid {table} index: {index}")
        path = self.config_dir / "modes" / f"{mode}.yml"
        if not path.exists():
            raise FileNotFoundError(f"Mode config not found: {mode}")
        data = self._read_yaml(path)

        value = [round(float(coords[0]), 4), round(float(coords[1]), 4)]
        if index is None:
            data.setdefault(table, {})[name] = value
        else:
            rows = data.setdefault(table, [])
            rows.extend([UNMAPPED.x, UNMAPPED.y] for _ in range(index + 1 - len(rows)))
            rows[index] = value

        with path.open("w", encoding="utf-8") as fh:
            yaml.safe_dump(data, fh, sort_keys=False, allow_unicode=True)
        self._cache.pop(str(path), None)
        logger.info("saved %s.%s[%s] = %s", mode, table, name if index is None else index, value)
        return data

    def clear_cache(self) -> None:
        self._cache.clear()

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        return data if isinstance(data, dict) else {}

    def _load(self, relative: str) -> Dict[str, Any]:
        path = self.config_dir / relative
        key = str(path)
        if key not in self._cache:
            data: Dict[str, Any] = {}
            if path.exists():
                try:
                    data = self._read_yaml(path)
                except yaml.YAMLError:
                    logger.warning("Failed to parse %s; using defaults", path, exc_info=True)
            self._cache[key] = _overlay_env(data, f"{ENV_PREFIX}_{path.stem.upper()}")
        return copy.deepcopy(self._cache[key])


_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide config rooted at ``HWBOT_CONFIG_DIR`` or the repo's ``config/``."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def load_profile() -> Dict[str, Any]:
    return get_config().load_profile()


def load_keys() -> Dict[str, Any]:
    return get_config().load_keys()


def load_mode_config(mode: str) -> Dict[str, Any]:
    return get_config().load_mode_config(mode)


def list_modes() -> List[Dict[str, Any]]:
    return get_config().list_modes()


def save_coords(
    mode: str,
    name: str,
    *,
    coords: Tuple[float, float],
    table: str = "buttons",
    index: Optional[int] = None,
) -> Dict[str, Any]:
    return get_config().save_coords(mode, name, coords=coords, table=table, index=index)
