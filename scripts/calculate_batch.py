#!/usr/bin/env python3
"""
Calculate batch totals from an item file (no DB).

The item file is YAML or JSON: either a list of item records or a mapping
with an ``items`` list.  Each record follows the wire format:

    items:
      - linen_category_id: bedsheet
        category_name: Bed sheet
        quantity_sent: 10
        quantity_received: 8
        price_per_item: "5.00"
        express_delivery: true

Usage:
  python3 scripts/calculate_batch.py items.yaml
  python3 scripts/calculate_batch.py items.yaml --config engine.yaml --invoice

Output: the batch summary as JSON; with --invoice, the invoice document
(per-line records plus the summary).  Exit code 1 on invalid input.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from linen_config import get_active_config  # noqa: E402
from linen_engines import BatchSummaryCalculator, build_invoice  # noqa: E402
from linen_kernel.exceptions import LinenKernelError  # noqa: E402
from linen_kernel.logging_config import configure_logging  # noqa: E402


def load_items(path: Path) -> list:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of items or a mapping with 'items'")
    return data


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Calculate linen batch totals from an item file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("items", type=Path, help="YAML or JSON file of item records")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="EngineConfig YAML (default: $LINEN_CONFIG_PATH or built-in values)",
    )
    parser.add_argument(
        "--invoice",
        action="store_true",
        help="Print invoice lines as well as the summary",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Emit structured logs to stderr",
    )
    args = parser.parse_args(argv)

    configure_logging(level=logging.INFO if args.verbose else logging.WARNING)

    if not args.items.exists():
        print(f"ERROR: Item file not found: {args.items}", file=sys.stderr)
        return 1

    try:
        config = get_active_config(args.config)
        items = load_items(args.items)
        if args.invoice:
            output = build_invoice(items, config).to_dict()
        else:
            output = BatchSummaryCalculator().summarize(items, config).to_dict()
    except LinenKernelError as e:
        print(f"ERROR [{e.code}]: {e}", file=sys.stderr)
        return 1
    except (ValueError, yaml.YAMLError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
