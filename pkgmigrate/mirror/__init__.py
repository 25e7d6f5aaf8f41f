"""Mirroring pipeline: staging, downloading and bounded scheduling.

The orchestrator lives in ``pkgmigrate.mirror.orchestrator`` and is not
re-exported here, since it depends on configuration and the publishers.
"""

from .store import Artifact, ArtifactStore
from .downloader import Downloader, DownloadOutcome, DownloadResult
from .scheduler import TaskScheduler

__all__ = [
    "Artifact",
    "ArtifactStore",
    "DownloadOutcome",
    "DownloadResult",
    "Downloader",
    "TaskScheduler",
]
