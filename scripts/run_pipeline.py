#!/usr/bin/env python3
"""
Run a price pipeline once from the command line.

Usage:
    python scripts/run_pipeline.py amazon [--limit N] [--model ID ...]
    python scripts/run_pipeline.py justbats [--limit N] [--model ID ...]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from battracker.logging_config import setup_logging
from battracker.worker.tasks import task_runner


async def main(source: str, limit: int | None, model_ids: list[int] | None) -> int:
    if source == "amazon":
        stats = await task_runner.run_amazon_pipeline(model_ids=model_ids, limit=limit)
    else:
        stats = await task_runner.run_justbats_pipeline(model_ids=model_ids, limit=limit)

    if stats is None:
        print("Run aborted, see logs/error.log")
        return 1

    print("")
    print(f"{source} run summary")
    for name, value in stats.as_dict().items():
        print(f"  {name:<18} {value}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Refresh bat prices from one retailer")
    parser.add_argument("source", choices=["amazon", "justbats"])
    parser.add_argument("--limit", type=int, default=None, help="Process at most N models")
    parser.add_argument(
        "--model", type=int, action="append", dest="model_ids", help="Only this model ID"
    )
    args = parser.parse_args()

    setup_logging(Path(__file__).parent.parent)
    sys.exit(asyncio.run(main(args.source, args.limit, args.model_ids)))
