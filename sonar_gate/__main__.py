import argparse
import logging
import subprocess
import sys

import httpx
from pydantic import ValidationError

from sonar_gate.config import Settings
from sonar_gate.errors import ConfigError, GateFailure, SonarGateError
from sonar_gate.logging_config import setup_logging
from sonar_gate.runner import GateRunner

logger = logging.getLogger(__name__)

EXIT_GATE_FAILED = 1
EXIT_ERROR = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sonar-gate",
        description="Wait for a SonarQube quality gate and post its status to the review.",
    )
    parser.add_argument("--task-file", help="Path to the scanner's report-task.txt")
    parser.add_argument("--gate-timeout", type=int, help="Seconds to wait for the background task")
    parser.add_argument("--poll-interval", type=int, help="Seconds between task status checks")
    parser.add_argument(
        "--warn-on-failure",
        action="store_true",
        default=None,
        help="Only warn when the quality gate does not pass",
    )
    parser.add_argument(
        "--measure",
        action="append",
        dest="measures",
        metavar="METRIC",
        help="Additional metric badge to show (repeatable)",
    )
    parser.add_argument("--image-dir", help="Directory the badges are written to")
    parser.add_argument("--comment-target", choices=["stdout", "gitlab", "github"])
    return parser.parse_args(argv)


def apply_overrides(base: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "task_file": args.task_file,
        "gate_timeout": args.gate_timeout,
        "poll_interval": args.poll_interval,
        "warn_on_failure": args.warn_on_failure,
        "image_dir": args.image_dir,
        "comment_target": args.comment_target,
    }
    if args.measures:
        overrides["additional_measures"] = ",".join(args.measures)
    updates = {k: v for k, v in overrides.items() if v is not None}
    try:
        return Settings.model_validate({**base.model_dump(), **updates})
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_settings(args: argparse.Namespace) -> Settings:
    try:
        base = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    return apply_overrides(base, args)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging()

    try:
        config = load_settings(args)
        setup_logging(config.log_level)
        GateRunner(config).run()
    except GateFailure as exc:
        if exc.fatal:
            sys.exit(EXIT_GATE_FAILED)
        logger.info("Quality gate did not pass, continuing as configured", extra={"status": exc.status})
    except (SonarGateError, httpx.HTTPError, subprocess.CalledProcessError) as exc:
        logger.error(str(exc), extra={"error": type(exc).__name__})
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    main()
