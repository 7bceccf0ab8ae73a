"""Override accumulator for the generated patch plugin."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

import yaml

from .records import FormKey, ItemRecord, record_to_dict

LOGGER = logging.getLogger(__name__)


class PatchMod:
    """Overrides keyed by form key, in insertion order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._overrides: Dict[FormKey, ItemRecord] = {}

    def get_or_add_override(self, record: ItemRecord) -> ItemRecord:
        """Return the override for ``record``, copying it in on first use."""

        existing = self._overrides.get(record.form_key)
        if existing is not None:
            return existing
        override = record.copy()
        self._overrides[record.form_key] = override
        return override

    def mutate(self, record: ItemRecord, fn: Callable[[ItemRecord], bool]) -> bool:
        """Apply ``fn`` to the override of ``record``; ``fn`` reports success."""

        return bool(fn(self.get_or_add_override(record)))

    def get(self, form_key: FormKey) -> Optional[ItemRecord]:
        return self._overrides.get(form_key)

    def __contains__(self, form_key: object) -> bool:
        return form_key in self._overrides

    def __iter__(self) -> Iterator[ItemRecord]:
        return iter(self._overrides.values())

    def __len__(self) -> int:
        return len(self._overrides)

    def masters(self) -> List[str]:
        seen = {}
        for form_key in self._overrides:
            seen.setdefault(form_key.mod.lower(), form_key.mod)
        return sorted(seen.values(), key=str.lower)

    def to_dict(self) -> Dict[str, object]:
        return {
            "plugin": self.name,
            "masters": self.masters(),
            "records": [record_to_dict(record) for record in self._overrides.values()],
        }

    def write(self, output_path: str | Path) -> Path:
        """Persist the overrides as a plugin dump."""

        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(self.to_dict(), handle, sort_keys=False, allow_unicode=True)
        LOGGER.info("Wrote %d overrides to %s", len(self), path)
        return path
