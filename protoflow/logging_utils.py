"""Logger names and console setup shared by the CLI and the codegen stages."""
from __future__ import annotations

import logging
from typing import Optional

CODEGEN_LOGGER_NAME = "protoflow.codegen.invocations"
RESOLVER_LOGGER_NAME = "protoflow.codegen.resolver"

_DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(verbose: bool = False, log_format: Optional[str] = None) -> None:
    """Install a basic console handler; ``verbose`` switches to DEBUG."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=log_format or _DEFAULT_FORMAT,
    )


__all__ = ["CODEGEN_LOGGER_NAME", "RESOLVER_LOGGER_NAME", "configure_logging"]
