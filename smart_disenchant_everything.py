"""Entry point for the SmartDisenchantEverything CLI."""
from smart_disenchant.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
