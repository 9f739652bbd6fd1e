"""Run protoc as a blocking child process, tee-ing its output."""
from __future__ import annotations

import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import IO, List, Optional, Sequence, TextIO

from protoflow.logging_utils import CODEGEN_LOGGER_NAME

from .command_builder import is_version_selector
from .models import InvocationResult

logger = logging.getLogger(CODEGEN_LOGGER_NAME)


class ProcessInvoker:
    """Launch the compiler and wait for it.

    stdout and stderr are each drained by a reader thread that writes every
    line both to this process's own stream and to a buffer. The threads are
    joined before :meth:`run` returns; there is no timeout.
    """

    def __init__(
        self,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        self._stdout = stdout
        self._stderr = stderr
        self._cwd = cwd

    def run(self, executable: Path, args: Sequence[str]) -> InvocationResult:
        """Raises :class:`OSError` when the executable cannot be launched."""

        arguments = [arg for arg in args if not is_version_selector(arg)]
        command = [str(executable), *arguments]
        logger.debug("protoc command: %s", " ".join(command))
        process = subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=str(self._cwd) if self._cwd else None,
        )
        out_buffer: List[str] = []
        err_buffer: List[str] = []
        readers = [
            threading.Thread(
                target=_tee,
                args=(process.stdout, self._stdout or sys.stdout, out_buffer),
                daemon=True,
            ),
            threading.Thread(
                target=_tee,
                args=(process.stderr, self._stderr or sys.stderr, err_buffer),
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()
        exit_code = process.wait()
        for reader in readers:
            reader.join()
        return InvocationResult(
            command=tuple(command),
            exit_code=exit_code,
            stdout="".join(out_buffer),
            stderr="".join(err_buffer),
        )


def _tee(source: Optional[IO[str]], sink: TextIO, buffer: List[str]) -> None:
    if source is None:
        return
    try:
        for line in source:
            buffer.append(line)
            sink.write(line)
            sink.flush()
    finally:
        source.close()


__all__ = ["ProcessInvoker"]
