"""Eligibility rules for removing ``MagicDisallowEnchanting`` from items.

Each rule is a plain function ``(item, settings, link_cache) -> Decision``.
``evaluate_item`` runs them in ``RULES`` order and returns the first decision
that is not ``CONTINUE``; an item that survives every rule is eligible.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from .config import PatcherSettings
from .load_order import LinkCache
from .records import (
    EQUIP_DEPENDENT_CONDITIONS,
    LINKED_REFERENCE_TYPES,
    MESSAGE_TYPES,
    OBJECT_EFFECT_TYPES,
    QUEST_TYPES,
    ItemRecord,
    Keywords,
    ObjectEffectRecord,
)

OUTCOME_CONTINUE = "continue"
OUTCOME_DROP = "drop"
OUTCOME_FLAG = "flag"
OUTCOME_ELIGIBLE = "eligible"

BUCKET_PATCHED = "PatchedItems"
BUCKET_SKIPPED = "SkippedItems"
BUCKET_MANUAL_CHECK = "ManualCheckItems"

RULE_ITEM_BLACKLIST = "item_blacklist"
RULE_NOT_ENCHANTED = "not_enchanted"
RULE_NON_PLAYABLE_ARMOR = "non_playable_armor"
RULE_NON_PLAYABLE_WEAPON = "non_playable_weapon"
RULE_NO_KEYWORDS = "no_keywords"
RULE_KEYWORD_BLACKLIST = "keyword_blacklist"
RULE_NOT_DISALLOWED = "not_disallow_enchanting"
RULE_DAEDRIC_ARTIFACT = "daedric_artifact"
RULE_NON_QUEST_SCRIPT = "non_quest_script"
RULE_EFFECT_CONDITIONS = "effect_conditions"


@dataclass(frozen=True)
class Decision:
    outcome: str
    rule: Optional[str] = None
    bucket: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.outcome != OUTCOME_CONTINUE


CONTINUE = Decision(OUTCOME_CONTINUE)
ELIGIBLE = Decision(OUTCOME_ELIGIBLE)

Rule = Callable[[ItemRecord, PatcherSettings, LinkCache], Decision]


def _drop(rule: str) -> Decision:
    return Decision(OUTCOME_DROP, rule=rule)


def _flag(rule: str, bucket: str) -> Decision:
    return Decision(OUTCOME_FLAG, rule=rule, bucket=bucket)


def check_item_blacklist(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if item.form_key in settings.item_blacklist:
        return _drop(RULE_ITEM_BLACKLIST)
    return CONTINUE


def check_enchantment(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if not item.has_enchantment():
        return _drop(RULE_NOT_ENCHANTED)
    return CONTINUE


def check_non_playable_armor(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if item.is_armor and item.is_non_playable():
        return _drop(RULE_NON_PLAYABLE_ARMOR)
    return CONTINUE


def check_non_playable_weapon(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if item.is_weapon and item.is_non_playable():
        return _drop(RULE_NON_PLAYABLE_WEAPON)
    return CONTINUE


def check_has_keywords(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if not item.has_keywords():
        return _drop(RULE_NO_KEYWORDS)
    return CONTINUE


def check_keyword_blacklist(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if any(keyword in settings.kywd_blacklist for keyword in item.keywords or []):
        return _drop(RULE_KEYWORD_BLACKLIST)
    return CONTINUE


def check_disallow_enchanting(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if Keywords.MAGIC_DISALLOW_ENCHANTING not in (item.keywords or []):
        return _drop(RULE_NOT_DISALLOWED)
    return CONTINUE


def check_daedric_artifact(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if settings.skip_daedric and Keywords.DAEDRIC_ARTIFACT in (item.keywords or []):
        return _drop(RULE_DAEDRIC_ARTIFACT)
    return CONTINUE


def _resolves_as_quest_like(link_cache: LinkCache, target) -> bool:
    return (
        link_cache.try_resolve(target, QUEST_TYPES) is not None
        or link_cache.try_resolve(target, LINKED_REFERENCE_TYPES) is not None
        or link_cache.try_resolve(target, MESSAGE_TYPES) is not None
    )


def has_non_quest_script_property(item: ItemRecord, link_cache: LinkCache) -> bool:
    """True when an object property of an attached script points at anything
    other than a quest, a linked reference or a message."""

    if not item.kind.is_scripted or item.scripts is None:
        return False
    return any(
        prop.is_object and not _resolves_as_quest_like(link_cache, prop.target)
        for script in item.scripts
        for prop in script.properties
    )


def check_scripts(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if settings.patch_script_vdam:
        return CONTINUE
    if has_non_quest_script_property(item, link_cache):
        return _flag(RULE_NON_QUEST_SCRIPT, BUCKET_MANUAL_CHECK)
    return CONTINUE


def has_equip_dependent_conditions(enchantment: ObjectEffectRecord) -> bool:
    return any(
        condition.function in EQUIP_DEPENDENT_CONDITIONS
        for effect in enchantment.effects
        if effect.conditions is not None
        for condition in effect.conditions
    )


def check_effect_conditions(item: ItemRecord, settings: PatcherSettings, link_cache: LinkCache) -> Decision:
    if settings.patch_effect_cond:
        return CONTINUE
    enchantment = link_cache.try_resolve(item.enchantment, OBJECT_EFFECT_TYPES)
    if not isinstance(enchantment, ObjectEffectRecord) or has_equip_dependent_conditions(enchantment):
        return _flag(RULE_EFFECT_CONDITIONS, BUCKET_SKIPPED)
    return CONTINUE


RULES: Tuple[Tuple[str, Rule], ...] = (
    (RULE_ITEM_BLACKLIST, check_item_blacklist),
    (RULE_NOT_ENCHANTED, check_enchantment),
    (RULE_NON_PLAYABLE_ARMOR, check_non_playable_armor),
    (RULE_NON_PLAYABLE_WEAPON, check_non_playable_weapon),
    (RULE_NO_KEYWORDS, check_has_keywords),
    (RULE_KEYWORD_BLACKLIST, check_keyword_blacklist),
    (RULE_NOT_DISALLOWED, check_disallow_enchanting),
    (RULE_DAEDRIC_ARTIFACT, check_daedric_artifact),
    (RULE_NON_QUEST_SCRIPT, check_scripts),
    (RULE_EFFECT_CONDITIONS, check_effect_conditions),
)


def evaluate_item(
    item: ItemRecord,
    settings: PatcherSettings,
    link_cache: LinkCache,
    rules: Optional[Sequence[Tuple[str, Rule]]] = None,
) -> Decision:
    """Run the rule chain for ``item``; ``ELIGIBLE`` when no rule stops it."""

    for _, rule in rules or RULES:
        decision = rule(item, settings, link_cache)
        if decision.is_final:
            return decision
    return ELIGIBLE
