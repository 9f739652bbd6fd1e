"""Turn protoc's stderr into per-file diagnostics for the host's message channel."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from protoflow.errors import DiagnosticParseWarning

from .host import BuildHost
from .models import Diagnostic, Severity

logger = logging.getLogger(__name__)


class DiagnosticParser:
    """Parses ``file:line:column: message`` lines.

    Lines that do not mention the file, or that do not split into four
    fields, become position-less diagnostics carrying the whole line. A line
    that does split but whose position is not numeric also falls back that
    way and logs a :class:`DiagnosticParseWarning`.
    """

    def parse(self, stderr_text: str, source_file: Path, exit_code: int) -> List[Diagnostic]:
        if not stderr_text:
            return []
        source_file = Path(source_file)
        severity = Severity.ERROR if exit_code != 0 else Severity.WARNING
        diagnostics: List[Diagnostic] = []
        for line in stderr_text.splitlines():
            if not line.strip():
                continue
            diagnostics.append(self._parse_line(line, source_file, severity))
        return diagnostics

    def _parse_line(self, line: str, source_file: Path, severity: Severity) -> Diagnostic:
        line_number = 0
        column = 0
        message = line
        if source_file.name in line:
            parts = line.split(":", 3)
            if len(parts) == 4:
                try:
                    line_number = int(parts[1])
                    column = int(parts[2])
                    message = parts[3].strip()
                except ValueError:
                    line_number, column, message = 0, 0, line
                    warning = DiagnosticParseWarning(f"Failed to parse protoc warning/error for {source_file}")
                    logger.warning("%s: %r", warning, line)
        return Diagnostic(
            file=source_file,
            line=line_number,
            column=column,
            severity=severity,
            message=message,
        )

    @staticmethod
    def publish(host: BuildHost, source_file: Path, diagnostics: Sequence[Diagnostic]) -> None:
        """Replace whatever the host currently shows for ``source_file``."""

        host.remove_messages(source_file)
        for diagnostic in diagnostics:
            host.add_message(diagnostic)


__all__ = ["DiagnosticParser"]
