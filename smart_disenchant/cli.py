"""Command-line interface for the SmartDisenchantEverything patcher."""
from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .api import run_patcher
from .config import DEFAULT_PATCH_NAME, ConfigError, load_settings
from .load_order import LoadOrderError
from .reporting import print_report, summarize_report

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Remove MagicDisallowEnchanting from enchanted weapons and armor"
    )
    parser.add_argument(
        "--data-folder",
        required=True,
        help="Folder holding one record dump per plugin (<Plugin.esp>.yaml)",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--load-order", default=None, help="plugins.txt listing the active plugins")
    source.add_argument("--plugins", nargs="+", default=None, help="Plugin names in load order")
    parser.add_argument(
        "--settings",
        default=None,
        help="Optional YAML/JSON settings file (ItemBlacklist, KywdBlacklist, ...)",
    )
    parser.add_argument("--output", default=DEFAULT_PATCH_NAME, help="Patch plugin name")
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Where to write the patch dump (defaults to the data folder)",
    )
    parser.add_argument("--report-csv", default=None, help="Optional per-item decision log CSV")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s - %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = load_settings(args.settings)
        result = run_patcher(
            args.data_folder,
            args.plugins,
            load_order_path=args.load_order,
            settings=settings,
            patch_name=args.output,
            output_dir=args.output_dir,
            report_csv=args.report_csv,
        )
    except (ConfigError, LoadOrderError) as exc:
        LOGGER.error("%s", exc)
        return 1

    print_report(result.report)

    summary = summarize_report(result.report, args.output)
    LOGGER.info(summary["header"])
    for outcome, count in summary["counts"].items():
        LOGGER.info("  %-13s: %d", outcome, count)
    for rule, count in summary["dropped_by_rule"].items():
        LOGGER.debug("  dropped by %-26s: %d", rule, count)
    LOGGER.info("Patch written to %s", result.patch_path)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
