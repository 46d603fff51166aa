"""
Validate the novena content files and report unresolved references.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from novena_content.catalog import load_catalog
from novena_content.errors import NovenaDataError

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate novena content")
    parser.add_argument(
        "-d",
        "--data-dir",
        type=str,
        default=None,
        help="Content directory (defaults to the packaged data)",
    )
    parser.add_argument(
        "--allow-unknown-blocks",
        action="store_true",
        help="Keep unrecognized block shapes instead of rejecting them",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    try:
        catalog = load_catalog(
            args.data_dir, allow_unknown_blocks=args.allow_unknown_blocks
        )
    except NovenaDataError as e:
        logger.error("Invalid content: %s", e)
        return 1

    problems = catalog.unresolved_references()
    for problem in problems:
        logger.error("%s", problem)
    if problems:
        return 1
    logger.info("Content OK: %d novenas", len(catalog.novenas))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
