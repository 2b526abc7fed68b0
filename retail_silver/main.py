"""
Silver Layer Load Entry Point

Runs the full silver load (or a subset of entities) against the configured
warehouse database.
"""

import argparse
import asyncio
import json
from datetime import date
from typing import List, Optional

from retail_silver.config import get_settings
from retail_silver.config.logging import configure_logging, get_logger
from retail_silver.exceptions import PipelineRunError
from retail_silver.pipeline.runner import run_full_pipeline
from retail_silver.transformation.rules import ENTITY_ORDER

logger = get_logger(__name__)


def _processing_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Retail silver layer load")
    parser.add_argument(
        "--entities",
        nargs="+",
        choices=ENTITY_ORDER,
        metavar="ENTITY",
        help=f"Entities to load (default: all). One or more of: {', '.join(ENTITY_ORDER)}",
    )
    parser.add_argument(
        "--processing-date",
        type=_processing_date,
        help="Processing date used as the upper bound for business dates (default: today)",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create the bronze and silver tables if they do not exist",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override LOG_LEVEL",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        help="Override LOG_FORMAT",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    settings = get_settings()
    logger.info(
        "Starting silver layer load",
        app=settings.app_name,
        version=settings.version,
        environment=settings.app_env,
    )

    try:
        result = asyncio.run(
            run_full_pipeline(
                entities=args.entities,
                today=args.processing_date,
                create_tables=args.init_db,
            )
        )
    except PipelineRunError as e:
        logger.error("Silver layer load failed", **e.result.to_dict())
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0
