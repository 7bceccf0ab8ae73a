"""Console and export helpers."""
from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import List

import pandas as pd

from .filters import BUCKET_MANUAL_CHECK, BUCKET_PATCHED, BUCKET_SKIPPED
from .patcher import OUTCOME_IGNORED, PatchReport

SECTION_BANNER = "============================================"
SECTION_RULE = "--------------"
BUCKET_HEADERS = (
    (BUCKET_PATCHED, "Successfully patched items:"),
    (
        BUCKET_SKIPPED,
        "Items with an empty enchantment field or items that have conditions "
        "requiring specific keywords and/or equipped items:",
    ),
    (
        BUCKET_MANUAL_CHECK,
        "Items with non-quest scripts attached (Abilities might be partially "
        "contained within scripts rather than enchantment only):",
    ),
)
OUTCOME_COLUMNS = ["form_key", "editor_id", "kind", "outcome", "rule"]


def format_report(report: PatchReport) -> List[str]:
    """Return the console report lines; empty buckets are left out."""

    lines: List[str] = []
    for bucket, header in BUCKET_HEADERS:
        names = report.bucket(bucket)
        if not names:
            continue
        lines.extend(["", "", SECTION_BANNER, "", header, SECTION_RULE])
        lines.extend(names)
    return lines


def print_report(report: PatchReport) -> None:
    for line in format_report(report):
        print(line)


def summarize_report(report: PatchReport, patch_name: str) -> dict:
    """Return structured run totals for logging or printing."""

    frame = outcomes_frame(report)
    ignored = frame[frame["outcome"] == OUTCOME_IGNORED] if not frame.empty else frame
    dropped_by_rule = (
        ignored["rule"].value_counts().to_dict() if not ignored.empty else {}
    )
    return {
        "header": f"=== SmartDisenchantEverything ({patch_name}) ===",
        "total": int(len(frame)),
        "counts": report.counts_by_outcome(),
        "dropped_by_rule": {rule: int(count) for rule, count in dropped_by_rule.items()},
    }


def outcomes_frame(report: PatchReport) -> pd.DataFrame:
    """One row per scanned item, in scan order."""

    if not report.outcomes:
        return pd.DataFrame(columns=OUTCOME_COLUMNS)
    return pd.DataFrame.from_records(
        [asdict(entry) for entry in report.outcomes], columns=OUTCOME_COLUMNS
    )


def write_csv(df: pd.DataFrame, output_path: str | Path) -> Path:
    """Persist the decision log DataFrame to CSV."""

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
