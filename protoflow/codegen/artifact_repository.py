"""Fetch binaries from a Maven-layout repository into the local cache."""
from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import List, Optional, Sequence

import requests

from protoflow.errors import ResolutionError

from .platform_detector import ArtifactCoordinate

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_REPOSITORY = "https://repo1.maven.org/maven2"
_CHUNK_SIZE = 64 * 1024


def default_local_repository() -> Path:
    return Path(os.getenv("PROTOFLOW_LOCAL_REPOSITORY") or Path.home() / ".m2" / "repository")


class ArtifactRepository:
    """Local cache in front of one or more remote repositories."""

    def __init__(
        self,
        local_repository: Optional[Path] = None,
        remote_repositories: Optional[Sequence[str]] = None,
        *,
        timeout: float = 60.0,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._local = Path(local_repository) if local_repository else default_local_repository()
        remotes = list(remote_repositories or [])
        if not remotes:
            remotes = [os.getenv("PROTOFLOW_REMOTE_REPOSITORY") or DEFAULT_REMOTE_REPOSITORY]
        self._remotes = [url.rstrip("/") for url in remotes]
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._retry_delay = retry_delay
        self._owns_http = session is None
        self._http = session or requests.Session()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    @property
    def local_repository(self) -> Path:
        return self._local

    def local_path(self, coordinate: ArtifactCoordinate) -> Path:
        return self._local / coordinate.repository_path

    def resolve(self, coordinate: ArtifactCoordinate) -> Path:
        """Return a local file for ``coordinate``, downloading it when not cached."""

        cached = self.local_path(coordinate)
        if cached.is_file():
            logger.debug("Using cached artifact %s", cached)
            return cached
        failures: List[str] = []
        for remote in self._remotes:
            url = f"{remote}/{coordinate.repository_path}"
            try:
                self._download(url, cached)
            except (requests.RequestException, OSError) as exc:
                failures.append(f"{url}: {exc}")
                continue
            logger.info("Downloaded %s", url)
            return cached
        raise ResolutionError(f"Error resolving artifact: {coordinate}", failures)

    def _download(self, url: str, destination: Path) -> None:
        attempt = 0
        backoff = self._retry_delay
        while True:
            try:
                self._stream_to(url, destination)
                return
            except requests.HTTPError as exc:
                # A 404 will not fix itself on retry.
                response = exc.response
                if response is not None and response.status_code == 404:
                    raise
                attempt += 1
                if attempt > self._max_retries:
                    raise
            except requests.RequestException:
                attempt += 1
                if attempt > self._max_retries:
                    raise
            time.sleep(backoff)
            backoff *= 2

    def _stream_to(self, url: str, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(destination.name + ".part")
        try:
            with self._http.get(url, stream=True, timeout=self._timeout) as response:
                response.raise_for_status()
                with open(partial, "wb") as handle:
                    for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
        except (requests.RequestException, OSError):
            partial.unlink(missing_ok=True)
            raise
        os.replace(partial, destination)


__all__ = ["ArtifactRepository", "DEFAULT_REMOTE_REPOSITORY", "default_local_repository"]
