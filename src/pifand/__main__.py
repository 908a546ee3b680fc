"""Command line entry point: ``pifand`` / ``python -m pifand``."""

import argparse
import logging
import sys
from pathlib import Path

from pifand.base.config import load_config
from pifand.base.errors import ConfigurationError
from pifand.health import check_health
from pifand.lifecycle import LifecycleManager
from pifand.logging_setup import setup_logging

logger = logging.getLogger("pifand")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pifand",
        description="CPU and NVMe fan control daemon with hysteresis",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="JSON configuration file (built-in defaults if omitted)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--no-startup-test",
        action="store_true",
        help="Skip spinning the fans up at startup",
    )
    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Check PWM and sensor access, print OK or the problems, exit",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the daemon or the health check and return an exit code."""
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    if args.no_startup_test:
        config = config.model_copy(update={"startup_test_enabled": False})

    if args.health_check:
        problems = check_health(config)
        for problem in problems:
            print(f"ERROR: {problem}")
        if problems:
            return 1
        print("OK")
        return 0

    setup_logging(config, verbose=args.verbose)
    if args.config is not None:
        logger.info(f"Configuration: {args.config}")
    manager = LifecycleManager.from_config(config)
    manager.install_signal_handlers()
    return manager.run()


def run() -> None:
    """Console script wrapper around ``main()``."""
    sys.exit(main())


if __name__ == "__main__":
    run()
