"""Load-order assembly and link resolution over plugin record dumps."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence

import yaml

from .records import FormKey, ItemRecord, Record, RecordFormatError, record_from_dict

LOGGER = logging.getLogger(__name__)

SKYRIM_SE_IMPLICIT_PLUGINS: List[str] = [
    "Skyrim.esm",
    "Update.esm",
    "Dawnguard.esm",
    "HearthFires.esm",
    "Dragonborn.esm",
]
DUMP_SUFFIXES = (".yaml", ".yml", ".json")


class LoadOrderError(RuntimeError):
    """Raised when the plugin list or a plugin dump cannot be assembled."""


@dataclass
class PluginDump:
    """Records contributed by one plugin, in file order."""

    name: str
    masters: List[str] = field(default_factory=list)
    records: List[Record] = field(default_factory=list)


def read_plugin_list(path: str | Path) -> List[str]:
    """Return the active plugins listed in a ``plugins.txt`` file."""

    try:
        with open(path, "r", encoding="utf-8-sig") as handle:
            lines = handle.readlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise LoadOrderError(f"Cannot read plugin list {path}: {exc}") from exc

    plugins: List[str] = []
    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if not line.startswith("*"):
            LOGGER.debug("Skipping inactive plugin %s", line)
            continue
        plugins.append(line[1:].strip())
    return plugins


def _dedupe(names: Iterable[str]) -> List[str]:
    # Preserve order while removing duplicates
    seen = set()
    ordered = []
    for name in names:
        key = name.lower()
        if key not in seen:
            ordered.append(name)
            seen.add(key)
    return ordered


def find_dump(data_folder: Path, plugin_name: str) -> Optional[Path]:
    for suffix in DUMP_SUFFIXES:
        candidate = data_folder / f"{plugin_name}{suffix}"
        if candidate.exists():
            return candidate
    return None


def load_plugin_dump(path: str | Path) -> PluginDump:
    """Read one plugin dump document."""

    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as handle:
            if path.suffix.lower() == ".json":
                data = json.load(handle) or {}
            else:
                data = yaml.safe_load(handle) or {}
    except (OSError, UnicodeDecodeError) as exc:
        raise LoadOrderError(f"Cannot read plugin dump {path}: {exc}") from exc
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise LoadOrderError(f"Failed to parse plugin dump {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise LoadOrderError(f"Plugin dump {path} must define a mapping")

    name = str(data.get("plugin") or path.stem)
    try:
        records = [record_from_dict(entry) for entry in data.get("records") or []]
    except RecordFormatError as exc:
        raise LoadOrderError(f"{path}: {exc}") from exc
    return PluginDump(name=name, masters=list(data.get("masters") or []), records=records)


def resolve_plugin_names(
    plugins: Sequence[str],
    data_folder: Path,
    patch_name: Optional[str] = None,
    implicit: Sequence[str] = SKYRIM_SE_IMPLICIT_PLUGINS,
) -> List[str]:
    """Prepend implicit masters that have dumps, dedupe and drop the patch itself."""

    present_implicit = [name for name in implicit if find_dump(data_folder, name) is not None]
    names = _dedupe([*present_implicit, *plugins])
    if patch_name:
        names = [name for name in names if name.lower() != patch_name.lower()]
    return names


class LoadOrder:
    """Plugins from first loaded to last loaded."""

    def __init__(self, plugins: Sequence[PluginDump]) -> None:
        self.plugins: List[PluginDump] = list(plugins)

    @classmethod
    def from_data_folder(
        cls,
        data_folder: str | Path,
        plugins: Sequence[str],
        patch_name: Optional[str] = None,
    ) -> "LoadOrder":
        folder = Path(data_folder)
        if not folder.is_dir():
            raise LoadOrderError(f"Data folder {folder} does not exist")
        dumps: List[PluginDump] = []
        for name in resolve_plugin_names(plugins, folder, patch_name):
            path = find_dump(folder, name)
            if path is None:
                raise LoadOrderError(f"No record dump found for {name} in {folder}")
            LOGGER.debug("Loading %s from %s", name, path)
            dumps.append(load_plugin_dump(path))
        LOGGER.info("Load order assembled with %d plugins", len(dumps))
        return cls(dumps)

    @property
    def priority_order(self) -> List[PluginDump]:
        """Highest priority (last loaded) first."""

        return list(reversed(self.plugins))

    def winning_overrides(self) -> Iterator[Record]:
        seen = set()
        for plugin in self.priority_order:
            for record in plugin.records:
                if record.form_key in seen:
                    continue
                seen.add(record.form_key)
                yield record

    def winning_items(self) -> Iterator[ItemRecord]:
        for record in self.winning_overrides():
            if isinstance(record, ItemRecord):
                yield record

    def link_cache(self) -> "LinkCache":
        return LinkCache(self)


class LinkCache:
    """Resolves form keys to their winning override."""

    def __init__(self, load_order: LoadOrder) -> None:
        self._winners: Dict[FormKey, Record] = {}
        for record in load_order.winning_overrides():
            self._winners[record.form_key] = record

    def try_resolve(
        self, form_key: Optional[FormKey], record_types: Optional[FrozenSet[str]] = None
    ) -> Optional[Record]:
        """Return the winning record for ``form_key`` or ``None`` when it does not
        exist or is not one of ``record_types``."""

        if form_key is None:
            return None
        record = self._winners.get(form_key)
        if record is None:
            return None
        if record_types is not None and record.record_type not in record_types:
            return None
        return record

    def __len__(self) -> int:
        return len(self._winners)
