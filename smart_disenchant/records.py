"""Record model for the load-order data the patcher works on."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Union

MAJOR_FLAG_NON_PLAYABLE = 0x4
MAJOR_FLAG_NAMES: Dict[str, int] = {
    "NonPlayable": MAJOR_FLAG_NON_PLAYABLE,
}

SIG_OBJECT_EFFECT = "ENCH"
SIG_QUEST = "QUST"
SIG_MESSAGE = "MESG"
SIG_KEYWORD = "KYWD"

QUEST_TYPES: FrozenSet[str] = frozenset({SIG_QUEST})
MESSAGE_TYPES: FrozenSet[str] = frozenset({SIG_MESSAGE})
OBJECT_EFFECT_TYPES: FrozenSet[str] = frozenset({SIG_OBJECT_EFFECT})
LINKED_REFERENCE_TYPES: FrozenSet[str] = frozenset(
    {"REFR", "ACHR", "PARW", "PBAR", "PBEA", "PCON", "PFLA", "PHZD", "PMIS", "PGRE"}
)

COND_WORN_APPAREL_HAS_KEYWORD_COUNT = "WornApparelHasKeywordCount"
COND_WORN_HAS_KEYWORD = "WornHasKeyword"
COND_GET_EQUIPPED = "GetEquipped"
EQUIP_DEPENDENT_CONDITIONS: FrozenSet[str] = frozenset(
    {
        COND_WORN_APPAREL_HAS_KEYWORD_COUNT,
        COND_WORN_HAS_KEYWORD,
        COND_GET_EQUIPPED,
    }
)

PROPERTY_TYPE_OBJECT = "object"


class RecordFormatError(ValueError):
    """Raised when a record dump entry cannot be decoded."""


@dataclass(frozen=True)
class FormKey:
    """Load-order independent record identifier (``XXXXXX:Plugin.esp``).

    Plugin names compare case-insensitively, the way the game treats them.
    """

    local_id: int
    mod: str = field(compare=False)
    _mod_key: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_mod_key", self.mod.lower())

    @classmethod
    def parse(cls, raw: Any) -> "FormKey":
        if isinstance(raw, FormKey):
            return raw
        if not isinstance(raw, str) or ":" not in raw:
            raise RecordFormatError(f"Invalid form key {raw!r} (expected 'XXXXXX:Plugin.esp')")
        id_part, mod_part = raw.split(":", 1)
        mod_part = mod_part.strip()
        try:
            local_id = int(id_part.strip(), 16)
        except ValueError as exc:
            raise RecordFormatError(f"Invalid form id in {raw!r}") from exc
        if not mod_part or local_id < 0 or local_id > 0xFFFFFF:
            raise RecordFormatError(f"Invalid form key {raw!r}")
        return cls(local_id, mod_part)

    def __str__(self) -> str:
        return f"{self.local_id:06X}:{self.mod}"


class Keywords:
    """Vanilla keywords the patcher keys on."""

    MAGIC_DISALLOW_ENCHANTING = FormKey(0x0C27BD, "Skyrim.esm")
    DAEDRIC_ARTIFACT = FormKey(0x0A8668, "Skyrim.esm")


class ItemKind(Enum):
    WEAPON = "WEAP"
    ARMOR = "ARMO"
    AMMO = "AMMO"
    BOOK = "BOOK"
    INGREDIENT = "INGR"
    KEY = "KEYM"
    LIGHT = "LIGH"
    MISC = "MISC"
    POTION = "ALCH"
    SCROLL = "SCRL"
    SOUL_GEM = "SLGM"

    @property
    def is_enchantable(self) -> bool:
        return "enchantable" in KIND_CAPABILITIES.get(self, frozenset())

    @property
    def is_keyworded(self) -> bool:
        return "keyworded" in KIND_CAPABILITIES.get(self, frozenset())

    @property
    def is_scripted(self) -> bool:
        return "scripted" in KIND_CAPABILITIES.get(self, frozenset())


KIND_CAPABILITIES: Dict[ItemKind, FrozenSet[str]] = {
    ItemKind.WEAPON: frozenset({"enchantable", "keyworded", "scripted"}),
    ItemKind.ARMOR: frozenset({"enchantable", "keyworded", "scripted"}),
    ItemKind.AMMO: frozenset({"keyworded"}),
    ItemKind.BOOK: frozenset({"keyworded", "scripted"}),
    ItemKind.INGREDIENT: frozenset({"keyworded", "scripted"}),
    ItemKind.KEY: frozenset({"keyworded", "scripted"}),
    ItemKind.LIGHT: frozenset({"scripted"}),
    ItemKind.MISC: frozenset({"keyworded", "scripted"}),
    ItemKind.POTION: frozenset({"keyworded"}),
    ItemKind.SCROLL: frozenset({"keyworded"}),
    ItemKind.SOUL_GEM: frozenset({"keyworded"}),
}

ITEM_SIGNATURES: Dict[str, ItemKind] = {kind.value: kind for kind in ItemKind}


@dataclass
class ScriptProperty:
    name: str
    type: str = PROPERTY_TYPE_OBJECT
    target: Optional[FormKey] = None
    value: Any = None

    @property
    def is_object(self) -> bool:
        return self.type == PROPERTY_TYPE_OBJECT


@dataclass
class ScriptEntry:
    name: str
    properties: List[ScriptProperty] = field(default_factory=list)


@dataclass
class Condition:
    function: str


@dataclass
class EffectEntry:
    base_effect: Optional[FormKey] = None
    conditions: Optional[List[Condition]] = None


@dataclass
class ItemRecord:
    """Weapon, armor or other inventory item projected onto what the patcher reads."""

    form_key: FormKey
    kind: ItemKind
    editor_id: Optional[str] = None
    enchantment: Optional[FormKey] = None
    keywords: Optional[List[FormKey]] = None
    major_flags: int = 0
    scripts: Optional[List[ScriptEntry]] = None

    @property
    def record_type(self) -> str:
        return self.kind.value

    @property
    def is_weapon(self) -> bool:
        return self.kind is ItemKind.WEAPON

    @property
    def is_armor(self) -> bool:
        return self.kind is ItemKind.ARMOR

    def has_enchantment(self) -> bool:
        return self.kind.is_enchantable and self.enchantment is not None

    def has_keywords(self) -> bool:
        return self.kind.is_keyworded and self.keywords is not None

    def is_non_playable(self) -> bool:
        if not (self.is_weapon or self.is_armor):
            return False
        return bool(self.major_flags & MAJOR_FLAG_NON_PLAYABLE)

    def copy(self) -> "ItemRecord":
        return copy.deepcopy(self)


@dataclass
class ObjectEffectRecord:
    """Enchantment record (``ENCH``)."""

    form_key: FormKey
    editor_id: Optional[str] = None
    effects: List[EffectEntry] = field(default_factory=list)

    @property
    def record_type(self) -> str:
        return SIG_OBJECT_EFFECT


@dataclass
class GenericRecord:
    """Any other record type; only its signature is ever inspected."""

    form_key: FormKey
    record_type: str
    editor_id: Optional[str] = None


Record = Union[ItemRecord, ObjectEffectRecord, GenericRecord]


def _optional_form_key(raw: Any) -> Optional[FormKey]:
    if raw is None or raw == "":
        return None
    return FormKey.parse(raw)


def _parse_major_flags(raw: Any) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool):
        raise RecordFormatError(f"Invalid record flags {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        raw = [raw]
    flags = 0
    for name in raw:
        if name not in MAJOR_FLAG_NAMES:
            raise RecordFormatError(f"Unknown record flag {name!r}")
        flags |= MAJOR_FLAG_NAMES[name]
    return flags


def _format_major_flags(flags: int) -> Union[List[str], int]:
    names = [name for name, bit in MAJOR_FLAG_NAMES.items() if flags & bit]
    known = 0
    for name in names:
        known |= MAJOR_FLAG_NAMES[name]
    if known != flags:
        return flags
    return names


def _parse_scripts(raw: Any) -> Optional[List[ScriptEntry]]:
    if raw is None:
        return None
    scripts: List[ScriptEntry] = []
    for script_data in raw:
        properties = []
        for prop in script_data.get("properties") or []:
            prop_type = str(prop.get("type", PROPERTY_TYPE_OBJECT))
            target = _optional_form_key(prop.get("target")) if prop_type == PROPERTY_TYPE_OBJECT else None
            properties.append(
                ScriptProperty(
                    name=str(prop.get("name", "")),
                    type=prop_type,
                    target=target,
                    value=prop.get("value"),
                )
            )
        scripts.append(ScriptEntry(name=str(script_data.get("name", "")), properties=properties))
    return scripts


def _parse_effects(raw: Any) -> List[EffectEntry]:
    effects: List[EffectEntry] = []
    for effect_data in raw or []:
        raw_conditions = effect_data.get("conditions")
        conditions = None
        if raw_conditions is not None:
            conditions = [Condition(function=str(cond["function"])) for cond in raw_conditions]
        effects.append(
            EffectEntry(
                base_effect=_optional_form_key(effect_data.get("base_effect")),
                conditions=conditions,
            )
        )
    return effects


def record_from_dict(data: Dict[str, Any]) -> Record:
    """Decode one record entry of a plugin dump."""

    if not isinstance(data, dict):
        raise RecordFormatError(f"Record entry must be a mapping, got {type(data).__name__}")
    try:
        form_key = FormKey.parse(data["form_key"])
        record_type = str(data["type"]).upper()
    except KeyError as exc:
        raise RecordFormatError(f"Record entry missing required field {exc}") from exc
    editor_id = data.get("editor_id")

    try:
        if record_type in ITEM_SIGNATURES:
            keywords = data.get("keywords")
            return ItemRecord(
                form_key=form_key,
                kind=ITEM_SIGNATURES[record_type],
                editor_id=editor_id,
                enchantment=_optional_form_key(data.get("enchantment")),
                keywords=None if keywords is None else [FormKey.parse(k) for k in keywords],
                major_flags=_parse_major_flags(data.get("flags")),
                scripts=_parse_scripts(data.get("scripts")),
            )
        if record_type == SIG_OBJECT_EFFECT:
            return ObjectEffectRecord(
                form_key=form_key,
                editor_id=editor_id,
                effects=_parse_effects(data.get("effects")),
            )
    except (KeyError, AttributeError, TypeError) as exc:
        raise RecordFormatError(f"Malformed {record_type} record {form_key}: {exc}") from exc
    return GenericRecord(form_key=form_key, record_type=record_type, editor_id=editor_id)


def record_to_dict(record: Record) -> Dict[str, Any]:
    """Encode ``record`` in the plugin dump layout read by ``record_from_dict``."""

    data: Dict[str, Any] = {"form_key": str(record.form_key), "type": record.record_type}
    if record.editor_id is not None:
        data["editor_id"] = record.editor_id

    if isinstance(record, ItemRecord):
        if record.enchantment is not None:
            data["enchantment"] = str(record.enchantment)
        if record.keywords is not None:
            data["keywords"] = [str(keyword) for keyword in record.keywords]
        if record.major_flags:
            data["flags"] = _format_major_flags(record.major_flags)
        if record.scripts is not None:
            data["scripts"] = [
                {
                    "name": script.name,
                    "properties": [_property_to_dict(prop) for prop in script.properties],
                }
                for script in record.scripts
            ]
    elif isinstance(record, ObjectEffectRecord):
        effects = []
        for effect in record.effects:
            entry: Dict[str, Any] = {}
            if effect.base_effect is not None:
                entry["base_effect"] = str(effect.base_effect)
            if effect.conditions is not None:
                entry["conditions"] = [{"function": cond.function} for cond in effect.conditions]
            effects.append(entry)
        data["effects"] = effects
    return data


def _property_to_dict(prop: ScriptProperty) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"name": prop.name, "type": prop.type}
    if prop.target is not None:
        entry["target"] = str(prop.target)
    if prop.value is not None:
        entry["value"] = prop.value
    return entry
