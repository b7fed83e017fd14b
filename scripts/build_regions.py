#!/usr/bin/env python3
"""Build the linked-features regions file from a JSON build config."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from regionhub import (  # noqa: E402
    ConfigError,
    EmptyInputError,
    LiftoverError,
    RegionBuildConfigLoader,
    RegionBuildPipeline,
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build gene-centric regions for burden testing")
    parser.add_argument("--config", required=True, help="Path to region build JSON config")
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Run the expression and overlap linking stages concurrently.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Runner log level.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("regionhub.runner")

    try:
        config = RegionBuildConfigLoader().load(args.config)
        if args.parallel:
            config = dataclasses.replace(config, parallel=True)
        report = RegionBuildPipeline(config).run()
    except EmptyInputError as exc:
        logger.error("Stage %s produced no data: %s", exc.stage, exc.message)
        return 1
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    except LiftoverError as exc:
        logger.error("Stage expression_link could not lift variants over: %s", exc)
        return 1

    payload = dataclasses.asdict(report)
    payload["output"] = str(config.output_path)
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
