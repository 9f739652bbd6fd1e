"""Command-line entry point: ``protoflow run --config protoflow.yaml``."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from protoflow.codegen import CodegenRunner
from protoflow.codegen.platform_detector import detect_classifier
from protoflow.config import load_settings
from protoflow.errors import ProtoflowError
from protoflow.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="protoflow", description="Run protoc over configured output targets.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Generate sources for every output target.")
    run.add_argument("--config", default="protoflow.yaml", help="YAML file with a codegen_config section.")
    run.add_argument("--no-optimize", action="store_true", help="Always regenerate, ignoring the success marker.")

    subparsers.add_parser("classifier", help="Print the platform classifier used to pick protoc binaries.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "classifier":
        print(detect_classifier())
        return 0

    try:
        settings = load_settings(args.config)
        if args.no_optimize:
            settings = settings.model_copy(update={"optimize_codegen": False})
        report = CodegenRunner(settings).run()
    except ProtoflowError as exc:
        logger.error("%s", exc)
        return 1
    if report.skipped:
        return 0
    if report.codegen_skipped:
        logger.info("Sources are up to date.")
    else:
        logger.info("Compiled %s file(s) across %s target(s).", report.compiled_files, len(report.targets))
    return 0


if __name__ == "__main__":
    sys.exit(main())
