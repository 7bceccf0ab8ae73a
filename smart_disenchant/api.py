"""Public Python API for SmartDisenchantEverything."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .config import DEFAULT_PATCH_NAME, PatcherSettings, load_settings
from .load_order import LoadOrder, read_plugin_list
from .patch_mod import PatchMod
from .patcher import PatchReport, run_patch
from .reporting import outcomes_frame, write_csv

LOGGER = logging.getLogger(__name__)
PATCH_SUFFIX = ".yaml"


@dataclass
class PatcherResult:
    report: PatchReport
    patch_mod: PatchMod
    patch_path: Path
    report_csv_path: Optional[Path] = None


def resolve_plugins(
    plugins: Optional[Sequence[str]] = None,
    load_order_path: Optional[str] = None,
) -> list:
    """Explicit plugin names win over a ``plugins.txt`` file."""

    if plugins:
        return list(plugins)
    if load_order_path:
        return read_plugin_list(load_order_path)
    return []


def run_patcher(
    data_folder: str | Path,
    plugins: Optional[Sequence[str]] = None,
    *,
    load_order_path: Optional[str] = None,
    settings: Optional[PatcherSettings] = None,
    settings_path: Optional[str] = None,
    patch_name: str = DEFAULT_PATCH_NAME,
    output_dir: Optional[str | Path] = None,
    report_csv: Optional[str | Path] = None,
) -> PatcherResult:
    """Assemble the load order, run the scan and write the patch dump.

    ``settings`` takes precedence over ``settings_path``. The patch is written
    to ``<output_dir>/<patch_name>.yaml`` (``output_dir`` defaults to the data
    folder) so it can be read back as a plugin dump.
    """

    if settings is None:
        settings = load_settings(settings_path)

    plugin_names = resolve_plugins(plugins, load_order_path)
    load_order = LoadOrder.from_data_folder(data_folder, plugin_names, patch_name=patch_name)
    link_cache = load_order.link_cache()
    patch_mod = PatchMod(patch_name)

    report = run_patch(load_order.winning_items(), settings, link_cache, patch_mod)

    target_dir = Path(output_dir) if output_dir else Path(data_folder)
    patch_path = patch_mod.write(target_dir / f"{patch_name}{PATCH_SUFFIX}")

    csv_path = None
    if report_csv:
        csv_path = write_csv(outcomes_frame(report), report_csv)
        LOGGER.info("Decision log saved to %s", csv_path)

    return PatcherResult(
        report=report,
        patch_mod=patch_mod,
        patch_path=patch_path,
        report_csv_path=csv_path,
    )
