"""Migration orchestrator.

For every enabled ecosystem, in order: enumerate the source catalog, stage
every artifact (download phase), then publish every staged artifact to the
destination (publish phase). Each phase runs on its own TaskScheduler and
fully drains before the next one starts.
"""

from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..catalogs.base import Catalog, CatalogSource, Ecosystem
from ..common.config import MigrateConfig
from ..common.logger import get_logger
from ..publishers.base import Publisher, PublishResult
from ..registry import get_adapter
from .downloader import DownloadOutcome, Downloader
from .scheduler import TaskScheduler
from .store import Artifact, ArtifactStore

logger = get_logger("pkgmigrate.orchestrator")

# Result slot of a task that raised instead of returning
_CRASHED = object()


class Phase(Enum):
    """Which phases of a migration to run."""

    ALL = "all"
    DOWNLOAD = "download"
    PUBLISH = "publish"

    @property
    def downloads(self) -> bool:
        return self in (Phase.ALL, Phase.DOWNLOAD)

    @property
    def publishes(self) -> bool:
        return self in (Phase.ALL, Phase.PUBLISH)


@dataclass
class PhaseSummary:
    """Outcome counts of one phase."""

    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    failed_items: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.skipped + self.failed

    def record_failure(self, item: str) -> None:
        self.failed += 1
        self.failed_items.append(item)


@dataclass
class EcosystemReport:
    """Result of migrating one ecosystem."""

    ecosystem: Ecosystem
    packages: int = 0
    versions: int = 0
    downloads: PhaseSummary = field(default_factory=PhaseSummary)
    publishes: PhaseSummary = field(default_factory=PhaseSummary)
    duration_seconds: float = 0.0

    @property
    def failed(self) -> int:
        return self.downloads.failed + self.publishes.failed


@dataclass
class MigrationReport:
    """Result of a whole run."""

    ecosystems: List[EcosystemReport] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return sum(report.failed for report in self.ecosystems)

    @property
    def is_success(self) -> bool:
        return self.failed == 0


class Migrator:
    """Mirrors configured ecosystems from their source to their destination."""

    def __init__(
        self,
        config: MigrateConfig,
        client: Optional[httpx.Client] = None,
        store: Optional[ArtifactStore] = None,
        sources: Optional[Dict[Ecosystem, CatalogSource]] = None,
        publishers: Optional[Dict[Ecosystem, Publisher]] = None,
    ):
        """Initialize the migrator.

        Args:
            config: Validated configuration
            client: HTTP client; one is created (and closed) per run when None
            store: Artifact store; defaults to one rooted at ``config.dist_dir``
            sources: Catalog source overrides per ecosystem
            publishers: Publisher overrides per ecosystem
        """
        self.config = config
        self.client = client
        self.store = store or ArtifactStore(config.dist_dir)
        self._sources = dict(sources or {})
        self._publishers = dict(publishers or {})

    def migrate(
        self,
        ecosystems: Optional[Iterable[Ecosystem]] = None,
        phase: Phase = Phase.ALL,
    ) -> MigrationReport:
        """Run the migration.

        Args:
            ecosystems: Subset of enabled ecosystems to run; all when None
            phase: Phases to run for each ecosystem

        Returns:
            MigrationReport with per-ecosystem counts

        Raises:
            CatalogError: If a source catalog cannot be enumerated
        """
        selected = self.config.enabled_ecosystems()
        if ecosystems is not None:
            wanted = set(ecosystems)
            selected = [ecosystem for ecosystem in selected if ecosystem in wanted]

        owns_client = self.client is None
        client = self.client or self._create_client()
        report = MigrationReport()
        try:
            for ecosystem in selected:
                report.ecosystems.append(self.migrate_ecosystem(ecosystem, client, phase))
        finally:
            if owns_client:
                client.close()
        return report

    def migrate_ecosystem(
        self,
        ecosystem: Ecosystem,
        client: httpx.Client,
        phase: Phase = Phase.ALL,
    ) -> EcosystemReport:
        """Catalog, download and publish one ecosystem."""
        start_time = datetime.now()
        logger.info(f"Migrating {ecosystem.value}")

        catalog = self._source_for(ecosystem, client).fetch_catalog()
        report = EcosystemReport(
            ecosystem=ecosystem,
            packages=len(catalog.packages),
            versions=len(catalog),
        )
        artifacts = self._artifacts(catalog, report)

        if phase.downloads:
            self.download_all(artifacts, Downloader(self.store, client), report.downloads)
        if phase.publishes:
            self.publish_all(artifacts, self._publisher_for(ecosystem), report.publishes)

        report.duration_seconds = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Finished {ecosystem.value}: "
            f"{report.downloads.succeeded} downloaded, {report.downloads.skipped} skipped, "
            f"{report.downloads.failed} download errors, "
            f"{report.publishes.succeeded} published, {report.publishes.failed} publish errors"
        )
        return report

    def download_all(
        self,
        artifacts: List[Artifact],
        downloader: Downloader,
        summary: PhaseSummary,
    ) -> None:
        """Download phase: stage every artifact, waiting for the pool to drain."""
        with TaskScheduler(self.config.max_workers, name="download") as scheduler:
            futures = [scheduler.submit(downloader.download, artifact) for artifact in artifacts]

        for artifact, result in zip(artifacts, _results(futures)):
            if result is _CRASHED:
                summary.record_failure(artifact.source_url)
            elif result.outcome == DownloadOutcome.SKIPPED:
                summary.skipped += 1
            elif result.outcome == DownloadOutcome.DOWNLOADED:
                summary.succeeded += 1
            else:
                summary.record_failure(artifact.source_url)

    def publish_all(
        self,
        artifacts: List[Artifact],
        publisher: Publisher,
        summary: PhaseSummary,
    ) -> None:
        """Publish phase: push every staged artifact, waiting for the pool to drain.

        Artifacts that are not staged (their download failed) are skipped.
        """
        with TaskScheduler(self.config.max_workers, name="publish") as scheduler:
            futures = [scheduler.submit(self._publish_one, artifact, publisher) for artifact in artifacts]

        for artifact, result in zip(artifacts, _results(futures)):
            if result is _CRASHED:
                summary.record_failure(str(artifact.local_path))
            elif result is None:
                summary.skipped += 1
            elif result.is_success:
                summary.succeeded += 1
            else:
                summary.record_failure(str(artifact.local_path))

    def _publish_one(self, artifact: Artifact, publisher: Publisher) -> Optional[PublishResult]:
        if not self.store.exists(artifact):
            logger.warning(f"{artifact.get_key()} is not staged, skipping publish")
            return None
        return publisher.publish(artifact.local_path)

    def _artifacts(self, catalog: Catalog, report: EcosystemReport) -> List[Artifact]:
        artifacts = []
        for package, version in catalog.items():
            try:
                artifacts.append(self.store.artifact_for(package, version))
            except ValueError as e:
                logger.error(f"{version.source_url} - ERR: {e}")
                report.downloads.record_failure(str(version.source_url))
        return artifacts

    def _source_for(self, ecosystem: Ecosystem, client: httpx.Client) -> CatalogSource:
        if ecosystem not in self._sources:
            self._sources[ecosystem] = get_adapter(ecosystem).create_source(
                self.config.ecosystems[ecosystem], client, self.config.max_workers
            )
        return self._sources[ecosystem]

    def _publisher_for(self, ecosystem: Ecosystem) -> Publisher:
        if ecosystem not in self._publishers:
            self._publishers[ecosystem] = get_adapter(ecosystem).create_publisher(
                self.config.ecosystems[ecosystem], timeout=self.config.publish_timeout
            )
        return self._publishers[ecosystem]

    def _create_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.config.http_timeout,
            follow_redirects=True,
            limits=httpx.Limits(max_connections=max(100, self.config.max_workers)),
        )


def _results(futures: List[Future]) -> List[Any]:
    """Collect results of finished futures; a task that raised yields _CRASHED."""
    return [_CRASHED if future.exception() is not None else future.result() for future in futures]
