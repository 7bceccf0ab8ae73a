"""Configuration helpers for the SmartDisenchantEverything patcher."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from .records import FormKey, RecordFormatError

LOGGER = logging.getLogger(__name__)

DEFAULT_PATCH_NAME = "SmartDisenchantEverything.esp"

# Synthesis-style option names mapped onto dataclass fields.
SETTING_ALIASES: Dict[str, str] = {
    "ItemBlacklist": "item_blacklist",
    "KywdBlacklist": "kywd_blacklist",
    "SkipDaedric": "skip_daedric",
    "PatchScriptVDAM": "patch_script_vdam",
    "PatchEffectCond": "patch_effect_cond",
}
_FORM_KEY_SETS = ("item_blacklist", "kywd_blacklist")
_BOOLEAN_FLAGS = ("skip_daedric", "patch_script_vdam", "patch_effect_cond")


@dataclass
class PatcherSettings:
    """User options read once before the scan.

    ``patch_script_vdam`` patches items whose scripts reference records other
    than quests, linked references or messages. ``patch_effect_cond`` patches
    items whose enchantment depends on worn keywords or equip state.
    """

    item_blacklist: Set[FormKey] = field(default_factory=set)
    kywd_blacklist: Set[FormKey] = field(default_factory=set)
    skip_daedric: bool = True
    patch_script_vdam: bool = False
    patch_effect_cond: bool = False


class ConfigError(ValueError):
    """Raised when the provided settings file is invalid."""


def load_yaml_config(path: Optional[str]) -> Dict[str, Any]:
    """Load a settings file if available.

    ``.json`` files go through :mod:`json`, anything else through PyYAML.
    """

    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            if Path(path).suffix.lower() == ".json":
                data = json.load(handle) or {}
            else:
                data = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        LOGGER.warning("Settings file %s not found; using defaults", path)
        return {}
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read settings file {path}: {exc}") from exc
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must define a mapping")
    return data


def _normalize_keys(config_data: Dict[str, Any]) -> Dict[str, Any]:
    valid_fields = {field_.name for field_ in fields(PatcherSettings)}
    normalized: Dict[str, Any] = {}
    for key, value in config_data.items():
        name = SETTING_ALIASES.get(key, key)
        if name not in valid_fields:
            LOGGER.warning("Ignoring unknown setting '%s'", key)
            continue
        normalized[name] = value
    return normalized


def _parse_form_key_set(raw: Any, label: str, errors: List[str]) -> Set[FormKey]:
    if raw is None:
        return set()
    if isinstance(raw, str) or not isinstance(raw, (list, tuple, set)):
        errors.append(f"{label} must be a list of form keys")
        return set()
    parsed: Set[FormKey] = set()
    for entry in raw:
        try:
            parsed.add(FormKey.parse(entry))
        except RecordFormatError as exc:
            errors.append(f"{label}: {exc}")
    return parsed


def build_settings_from_config(config_data: Dict[str, Any]) -> PatcherSettings:
    """Instantiate ``PatcherSettings`` from a loaded settings mapping."""

    settings = PatcherSettings()
    if not config_data:
        return settings

    errors: List[str] = []
    data = _normalize_keys(config_data)
    for name in _FORM_KEY_SETS:
        if name in data:
            setattr(settings, name, _parse_form_key_set(data[name], name, errors))
    for name in _BOOLEAN_FLAGS:
        if name in data:
            setattr(settings, name, data[name])

    if errors:
        raise ConfigError("; ".join(errors))
    return settings


def validate_settings(settings: PatcherSettings) -> None:
    """Raise ``ConfigError`` if the instantiated settings are inconsistent."""

    errors: List[str] = []
    for name in _BOOLEAN_FLAGS:
        value = getattr(settings, name)
        if not isinstance(value, bool):
            errors.append(f"{name} must be true or false (got {value!r})")
    for name in _FORM_KEY_SETS:
        value = getattr(settings, name)
        if not isinstance(value, set) or not all(isinstance(item, FormKey) for item in value):
            errors.append(f"{name} must be a set of form keys")

    if errors:
        raise ConfigError("; ".join(errors))


def load_settings(config_path: Optional[str]) -> PatcherSettings:
    """Convenience helper for CLI/API layers."""

    config_data = load_yaml_config(config_path)
    settings = build_settings_from_config(config_data)
    validate_settings(settings)
    return settings
