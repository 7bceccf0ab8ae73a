"""SmartDisenchantEverything patcher package."""

from . import api, cli, config, filters, load_order, patcher, records, reporting

__all__ = ["api", "cli", "config", "filters", "load_order", "patcher", "records", "reporting"]
__version__ = "0.1.0"
