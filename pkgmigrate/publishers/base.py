"""Base classes for destination registry publishers.

A publisher pushes one staged artifact file to the destination registry by
invoking the ecosystem's own client command. Failures are reported in the
result; nothing is rolled back and nothing is retried.
"""

import shlex
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..catalogs.base import Ecosystem
from ..common.logger import get_logger

logger = get_logger("pkgmigrate.publisher")


class PublishOutcome(Enum):
    """Outcome of one publish attempt."""

    PUBLISHED = "PUBLISHED"
    FAILED = "ERROR"


@dataclass
class PublishResult:
    """Result of publishing a single artifact."""

    path: Path
    outcome: PublishOutcome
    command: str
    error_message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.outcome == PublishOutcome.PUBLISHED


class Publisher(ABC):
    """Publishes staged artifacts to a destination registry."""

    def __init__(self, to_url: str, timeout: Optional[float] = None):
        """Initialize publisher.

        Args:
            to_url: Destination registry URL
            timeout: Per-command timeout in seconds; no limit when None
        """
        self.to_url = to_url.rstrip("/")
        self.timeout = timeout

    @property
    @abstractmethod
    def ecosystem(self) -> Ecosystem:
        """Return the ecosystem this publisher handles."""
        pass

    @abstractmethod
    def build_command(self, path: Path) -> List[str]:
        """Build the publish command line for a staged file.

        Args:
            path: Staged artifact path

        Returns:
            Command arguments
        """
        pass

    def publish(self, path: Path) -> PublishResult:
        """Publish one staged artifact.

        Args:
            path: Staged artifact path

        Returns:
            PublishResult; FAILED on non-zero exit, missing executable or timeout
        """
        cmd = self.build_command(path)
        cmd_str = shlex.join(cmd)
        logger.info(cmd_str)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            return self._failed(path, cmd_str, f"command not found: {e.filename or cmd[0]}")
        except subprocess.TimeoutExpired:
            return self._failed(path, cmd_str, f"timed out after {self.timeout}s")
        except OSError as e:
            return self._failed(path, cmd_str, str(e))

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip() if result.stderr else ""
            return self._failed(
                path, cmd_str, stderr or f"exit status {result.returncode}"
            )

        return PublishResult(path=path, outcome=PublishOutcome.PUBLISHED, command=cmd_str)

    def _failed(self, path: Path, cmd_str: str, message: str) -> PublishResult:
        logger.error(f"ERROR: {cmd_str} ({message})")
        return PublishResult(
            path=path,
            outcome=PublishOutcome.FAILED,
            command=cmd_str,
            error_message=message,
        )
