"""
Command-line entry point.

    python -m vaxnotify <free-dates|eligible-groups> [--dry] [--notify-no-dates]

Exit codes: 0 success, 1 run failed, 2 usage or configuration error. A run
whose only failing sinks lack configuration (e.g. no deploy hook URL outside
--dry) exits 2 as well; its snapshot has still been persisted.
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from .app import DOMAINS, run_domain
from .config import configure_logging, load_config
from .monitor import ConfigurationError, VaxNotifyError
from .notify import DispatchError

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vaxnotify", description="Diff observed state and notify on changes")
    parser.add_argument("domain", choices=[domain.replace("_", "-") for domain in DOMAINS])
    parser.add_argument("--dry", action="store_true",
                        help="log what every sink would send instead of sending it")
    parser.add_argument("--notify-no-dates", action="store_true", dest="notify_all",
                        help="notify about every current entry, not only significant changes")
    parser.add_argument("--config", type=Path, default=None,
                        help="TOML config file (default: config/default.toml)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.get("logging.level"))
    domain = args.domain.replace("-", "_")

    try:
        result = asyncio.run(run_domain(config, domain, dry=args.dry, notify_all=args.notify_all))
    except DispatchError as e:
        logger.error("run_notify_failed", domain=domain, failures=[f.to_dict() for f in e.failures])
        if all(isinstance(f.error, ConfigurationError) for f in e.failures):
            return 2
        return 1
    except VaxNotifyError as e:
        logger.error("run_failed", domain=domain, **e.to_dict())
        return 1

    logger.info(
        "run_succeeded",
        domain=domain,
        run_id=result.run_id,
        targets=sorted(result.targets),
        sinks=result.outcome.succeeded,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
