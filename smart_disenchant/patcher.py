"""Scan winning item records and strip ``MagicDisallowEnchanting`` where safe."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .config import PatcherSettings
from .filters import (
    BUCKET_MANUAL_CHECK,
    BUCKET_PATCHED,
    BUCKET_SKIPPED,
    OUTCOME_DROP,
    OUTCOME_ELIGIBLE,
    OUTCOME_FLAG,
    evaluate_item,
)
from .load_order import LinkCache
from .patch_mod import PatchMod
from .records import ItemRecord, Keywords

LOGGER = logging.getLogger(__name__)

OUTCOME_PATCHED = "patched"
OUTCOME_SKIPPED = "skipped"
OUTCOME_MANUAL_CHECK = "manual_check"
OUTCOME_IGNORED = "ignored"

RULE_UNSUPPORTED_KIND = "unsupported_kind"
RULE_OVERRIDE_WITHOUT_KEYWORDS = "override_without_keywords"

_BUCKET_OUTCOMES = {
    BUCKET_PATCHED: OUTCOME_PATCHED,
    BUCKET_SKIPPED: OUTCOME_SKIPPED,
    BUCKET_MANUAL_CHECK: OUTCOME_MANUAL_CHECK,
}


@dataclass
class ItemOutcome:
    """What happened to one scanned item."""

    form_key: str
    editor_id: Optional[str]
    kind: str
    outcome: str
    rule: Optional[str] = None


@dataclass
class PatchReport:
    patched_items: List[str] = field(default_factory=list)
    skipped_items: List[str] = field(default_factory=list)
    manual_check_items: List[str] = field(default_factory=list)
    outcomes: List[ItemOutcome] = field(default_factory=list)

    def bucket(self, name: str) -> List[str]:
        return {
            BUCKET_PATCHED: self.patched_items,
            BUCKET_SKIPPED: self.skipped_items,
            BUCKET_MANUAL_CHECK: self.manual_check_items,
        }[name]

    def counts_by_outcome(self) -> Dict[str, int]:
        counts = {
            OUTCOME_PATCHED: 0,
            OUTCOME_SKIPPED: 0,
            OUTCOME_MANUAL_CHECK: 0,
            OUTCOME_IGNORED: 0,
        }
        for entry in self.outcomes:
            counts[entry.outcome] = counts.get(entry.outcome, 0) + 1
        return counts


def remove_disallow_enchanting(override: ItemRecord) -> bool:
    """Drop every copy of the keyword from ``override``; False when it has no
    keyword list."""

    if not override.kind.is_keyworded or override.keywords is None:
        return False
    override.keywords = [
        keyword for keyword in override.keywords if keyword != Keywords.MAGIC_DISALLOW_ENCHANTING
    ]
    return True


def _record(report: PatchReport, item: ItemRecord, outcome: str, rule: Optional[str]) -> None:
    report.outcomes.append(
        ItemOutcome(
            form_key=str(item.form_key),
            editor_id=item.editor_id,
            kind=item.kind.name,
            outcome=outcome,
            rule=rule,
        )
    )


def _add_to_bucket(report: PatchReport, bucket: str, item: ItemRecord) -> None:
    if item.editor_id is not None:
        report.bucket(bucket).append(item.editor_id)


def run_patch(
    items: Iterable[ItemRecord],
    settings: PatcherSettings,
    link_cache: LinkCache,
    patch_mod: PatchMod,
) -> PatchReport:
    """Evaluate every item and write overrides for the eligible ones.

    ``items`` must be the winning overrides in priority order. Bucket names
    follow that order. Items without an editor id are still patched or
    routed, but only show up in ``outcomes``.
    """

    report = PatchReport()
    for item in items:
        decision = evaluate_item(item, settings, link_cache)

        if decision.outcome == OUTCOME_DROP:
            LOGGER.debug("Dropping %s (%s): %s", item.editor_id, item.form_key, decision.rule)
            _record(report, item, OUTCOME_IGNORED, decision.rule)
            continue

        if decision.outcome == OUTCOME_FLAG:
            LOGGER.debug("Routing %s (%s) to %s", item.editor_id, item.form_key, decision.bucket)
            _add_to_bucket(report, decision.bucket, item)
            _record(report, item, _BUCKET_OUTCOMES[decision.bucket], decision.rule)
            continue

        if decision.outcome != OUTCOME_ELIGIBLE:  # pragma: no cover
            raise ValueError(f"Unexpected decision {decision!r} for {item.form_key}")

        if not (item.is_weapon or item.is_armor):
            # Eligible items of other kinds get neither an override nor a bucket.
            LOGGER.debug("Eligible %s (%s) is not a weapon or armor; left untouched", item.editor_id, item.form_key)
            _record(report, item, OUTCOME_IGNORED, RULE_UNSUPPORTED_KIND)
            continue

        if not patch_mod.mutate(item, remove_disallow_enchanting):
            LOGGER.debug("Override of %s has no keyword list; abandoned", item.form_key)
            _record(report, item, OUTCOME_IGNORED, RULE_OVERRIDE_WITHOUT_KEYWORDS)
            continue

        _add_to_bucket(report, BUCKET_PATCHED, item)
        _record(report, item, OUTCOME_PATCHED, None)

    counts = report.counts_by_outcome()
    LOGGER.info(
        "Scanned %d items: %d patched, %d skipped, %d for manual check, %d ignored",
        len(report.outcomes),
        counts[OUTCOME_PATCHED],
        counts[OUTCOME_SKIPPED],
        counts[OUTCOME_MANUAL_CHECK],
        counts[OUTCOME_IGNORED],
    )
    return report
