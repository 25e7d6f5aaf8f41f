"""Local artifact storage.

Artifacts are staged under ``{root}/{ecosystem}/{package}/{filename}``. The
presence of that file is the only record that an artifact was downloaded;
there is no manifest. Writes go through a temporary file in the same
directory that is renamed into place once complete, so a partial download
is never visible at the final path.
"""

import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional
from urllib.parse import unquote, urlparse

from ..catalogs.base import Ecosystem, Package, Version
from ..common.logger import get_logger

logger = get_logger("pkgmigrate.store")

PARTIAL_SUFFIX = ".part"


@dataclass(frozen=True)
class Artifact:
    """A Version mapped onto its local staging path."""

    ecosystem: Ecosystem
    package: str
    version: Version
    local_path: Path

    @property
    def source_url(self) -> str:
        return self.version.source_url

    def get_key(self) -> str:
        """Get a human readable identity for log lines."""
        if self.ecosystem == Ecosystem.NPM:
            return f"{self.package}@{self.version.version}"
        return f"{self.package}-{self.version.version}"


def filename_from_url(url: str) -> str:
    """Return the last path segment of a URL.

    Raises:
        ValueError: If the URL is not a string or has no filename segment
    """
    if not isinstance(url, str):
        raise ValueError(f"Source URL must be a string, got {type(url).__name__}")
    filename = os.path.basename(unquote(urlparse(url).path))
    if not filename or filename in (".", ".."):
        raise ValueError(f"No filename in URL: {url}")
    return filename


def check_package_name(name: str) -> None:
    """Reject package names that are not plain relative path segments.

    Scoped npm names such as ``@scope/pkg`` are allowed; absolute names,
    backslashes and empty, ``.`` or ``..`` segments are not.

    Raises:
        ValueError: If the name cannot be used as a directory under the root
    """
    if not isinstance(name, str) or not name:
        raise ValueError(f"Invalid package name: {name!r}")
    if name.startswith("/") or "\\" in name or "\0" in name:
        raise ValueError(f"Invalid package name: {name!r}")
    if any(segment in ("", ".", "..") for segment in name.split("/")):
        raise ValueError(f"Invalid package name: {name!r}")


class ArtifactStore:
    """Deterministic paths and atomic staging under an artifact root."""

    def __init__(self, root: str):
        self.root = Path(root)

    def local_path(self, ecosystem: Ecosystem, package_name: str, source_url: str) -> Path:
        """Compute the staging path for an artifact.

        Raises:
            ValueError: If the package name would leave the ecosystem directory
        """
        check_package_name(package_name)
        return self.root / ecosystem.value / package_name / filename_from_url(source_url)

    def artifact_for(self, package: Package, version: Version) -> Artifact:
        return Artifact(
            ecosystem=package.ecosystem,
            package=package.name,
            version=version,
            local_path=self.local_path(package.ecosystem, package.name, version.source_url),
        )

    def exists(self, artifact: Artifact) -> bool:
        """Check whether the artifact is staged. Always hits the filesystem."""
        return artifact.local_path.is_file()

    @contextmanager
    def staging(self, artifact: Artifact) -> Iterator[BinaryIO]:
        """Open a temporary file that becomes the artifact on clean exit.

        The temporary file lives next to the final path so the closing rename
        stays on one filesystem. If the block raises, the temporary file is
        removed and the exception propagates.
        """
        target = artifact.local_path
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=PARTIAL_SUFFIX, dir=target.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as tmp_file:
                yield tmp_file
            os.replace(tmp_path, target)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def clean_partials(self, ecosystem: Optional[Ecosystem] = None) -> int:
        """Remove temporary files left behind by interrupted runs.

        Args:
            ecosystem: Limit cleanup to one ecosystem's directory

        Returns:
            Number of files removed
        """
        base = self.root / ecosystem.value if ecosystem else self.root
        if not base.is_dir():
            return 0

        removed = 0
        for path in base.rglob(f".*{PARTIAL_SUFFIX}"):
            if path.is_file():
                path.unlink(missing_ok=True)
                logger.debug(f"Removed partial download: {path}")
                removed += 1
        return removed
