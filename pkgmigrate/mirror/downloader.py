"""Artifact downloader.

Streams an artifact from its source URL into the ArtifactStore. Already
staged artifacts are skipped, which makes the download phase safe to rerun
any number of times. Failures are reported in the result and never raised.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from ..common.logger import get_logger
from .store import Artifact, ArtifactStore

logger = get_logger("pkgmigrate.downloader")

CHUNK_SIZE = 64 * 1024


class DownloadOutcome(Enum):
    """Outcome of one download task."""

    SKIPPED = "SKIP"
    DOWNLOADED = "DOWNLOADED"
    FAILED = "ERROR"


@dataclass
class DownloadResult:
    """Result of downloading a single artifact."""

    artifact: Artifact
    outcome: DownloadOutcome
    error_message: Optional[str] = None

    @property
    def source_url(self) -> str:
        return self.artifact.source_url

    @property
    def is_success(self) -> bool:
        return self.outcome != DownloadOutcome.FAILED


class Downloader:
    """Stages artifacts from their source URLs."""

    def __init__(self, store: ArtifactStore, client: httpx.Client):
        """Initialize downloader.

        Args:
            store: Where artifacts are staged
            client: HTTP client shared by all download tasks
        """
        self.store = store
        self.client = client

    def download(self, artifact: Artifact) -> DownloadResult:
        """Stage one artifact unless it is already present.

        Args:
            artifact: Artifact to stage

        Returns:
            DownloadResult; FAILED carries the underlying error message
        """
        source = artifact.source_url

        if self.store.exists(artifact):
            logger.info(f"{source} - SKIP")
            return DownloadResult(artifact, DownloadOutcome.SKIPPED)

        try:
            with self.store.staging(artifact) as tmp_file:
                with self.client.stream("GET", source) as response:
                    response.raise_for_status()
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        tmp_file.write(chunk)
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"{source} - ERR: {e}")
            return DownloadResult(artifact, DownloadOutcome.FAILED, error_message=str(e))

        logger.info(f"{source} - DOWNLOADED")
        return DownloadResult(artifact, DownloadOutcome.DOWNLOADED)
