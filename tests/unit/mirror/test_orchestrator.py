"""Tests for the migration orchestrator."""

import threading
from pathlib import Path
from typing import List

import httpx
import pytest

from pkgmigrate.catalogs.base import (
    Catalog,
    CatalogError,
    CatalogSource,
    Ecosystem,
    Package,
    Version,
)
from pkgmigrate.mirror.orchestrator import Migrator, Phase
from pkgmigrate.publishers.base import Publisher, PublishOutcome, PublishResult


class StaticCatalogSource(CatalogSource):
    """Catalog source returning a prepared catalog."""

    def __init__(self, ecosystem: Ecosystem, catalog: Catalog = None, error: Exception = None):
        self._ecosystem = ecosystem
        self._catalog = catalog
        self._error = error

    @property
    def ecosystem(self) -> Ecosystem:
        return self._ecosystem

    def fetch_catalog(self) -> Catalog:
        if self._error:
            raise self._error
        return self._catalog


class RecordingPublisher(Publisher):
    """Publisher that records calls instead of running a command."""

    def __init__(self, ecosystem: Ecosystem, events: List[str], lock: threading.Lock, fail: set = None):
        super().__init__("http://dest.test")
        self._ecosystem = ecosystem
        self.events = events
        self.lock = lock
        self.fail = fail or set()

    @property
    def ecosystem(self) -> Ecosystem:
        return self._ecosystem

    def build_command(self, path: Path) -> List[str]:
        return ["publish", str(path)]

    def publish(self, path: Path) -> PublishResult:
        with self.lock:
            self.events.append(f"publish:{path.name}")
        outcome = PublishOutcome.FAILED if path.name in self.fail else PublishOutcome.PUBLISHED
        return PublishResult(path=path, outcome=outcome, command=f"publish {path}")


def npm_catalog(count: int) -> Catalog:
    catalog = Catalog(ecosystem=Ecosystem.NPM)
    for i in range(count):
        package = Package(name=f"pkg{i}", ecosystem=Ecosystem.NPM)
        package.add_version(
            Version(version="1.0.0", source_url=f"http://npm.old.test/pkg{i}/-/pkg{i}-1.0.0.tgz", checksum="abc")
        )
        catalog.add_package(package)
    return catalog


@pytest.fixture
def events():
    return [], threading.Lock()


def tarball_routes(catalog: Catalog, events, missing=()):
    log, lock = events
    routes = {}
    for _, version in catalog.items():
        if version.source_url in missing:
            continue

        def handler(request, url=version.source_url):
            with lock:
                log.append(f"download:{url.rsplit('/', 1)[-1]}")
            return httpx.Response(200, content=url.encode())

        routes[version.source_url] = handler
    return routes


def npm_only(config):
    del config.ecosystems[Ecosystem.GEM]
    return config


class TestMigrator:
    """Tests for Migrator."""

    def test_full_migration(self, migrate_config, make_client, events):
        """Test download then publish of every artifact."""
        config = npm_only(migrate_config)
        catalog = npm_catalog(5)
        publisher = RecordingPublisher(Ecosystem.NPM, *events)
        migrator = Migrator(
            config,
            client=make_client(tarball_routes(catalog, events)),
            sources={Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, catalog)},
            publishers={Ecosystem.NPM: publisher},
        )

        report = migrator.migrate()

        assert len(report.ecosystems) == 1
        npm = report.ecosystems[0]
        assert npm.packages == 5
        assert npm.versions == 5
        assert npm.downloads.succeeded == 5
        assert npm.publishes.succeeded == 5
        assert report.is_success
        staged = Path(config.dist_dir) / "npm" / "pkg0" / "pkg0-1.0.0.tgz"
        assert staged.read_bytes() == b"http://npm.old.test/pkg0/-/pkg0-1.0.0.tgz"

    def test_phase_ordering(self, migrate_config, make_client, events):
        """Test no publish starts before every download finished."""
        config = npm_only(migrate_config)
        catalog = npm_catalog(20)
        log, _ = events
        migrator = Migrator(
            config,
            client=make_client(tarball_routes(catalog, events)),
            sources={Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, catalog)},
            publishers={Ecosystem.NPM: RecordingPublisher(Ecosystem.NPM, *events)},
        )

        migrator.migrate()

        downloads = [i for i, event in enumerate(log) if event.startswith("download:")]
        publishes = [i for i, event in enumerate(log) if event.startswith("publish:")]
        assert len(downloads) == 20
        assert len(publishes) == 20
        assert max(downloads) < min(publishes)

    def test_failure_isolation(self, migrate_config, make_client, events):
        """Test one 404 fails only its own artifact."""
        config = npm_only(migrate_config)
        catalog = npm_catalog(5)
        missing = "http://npm.old.test/pkg2/-/pkg2-1.0.0.tgz"
        publisher = RecordingPublisher(Ecosystem.NPM, *events)
        migrator = Migrator(
            config,
            client=make_client(tarball_routes(catalog, events, missing={missing})),
            sources={Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, catalog)},
            publishers={Ecosystem.NPM: publisher},
        )

        report = migrator.migrate()

        npm = report.ecosystems[0]
        assert npm.downloads.succeeded == 4
        assert npm.downloads.failed == 1
        assert npm.downloads.failed_items == [missing]
        assert len(list((Path(config.dist_dir) / "npm").rglob("*.tgz"))) == 4
        # The unstaged artifact is not handed to the publisher
        assert npm.publishes.succeeded == 4
        assert npm.publishes.skipped == 1
        assert "publish:pkg2-1.0.0.tgz" not in events[0]

    def test_unusable_artifacts_counted_as_failures(self, migrate_config, make_client, events):
        """Test unsafe names and non-string URLs fail only their own version."""
        config = npm_only(migrate_config)
        catalog = npm_catalog(3)
        escaped = Package(name="../../escaped", ecosystem=Ecosystem.NPM)
        escaped.add_version(Version(version="1.0.0", source_url="http://npm.old.test/e/-/e-1.0.0.tgz"))
        catalog.add_package(escaped)
        numeric = Package(name="numeric", ecosystem=Ecosystem.NPM)
        numeric.add_version(Version(version="1.0.0", source_url=123))
        catalog.add_package(numeric)
        good = npm_catalog(3)
        migrator = Migrator(
            config,
            client=make_client(tarball_routes(good, events)),
            sources={Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, catalog)},
            publishers={Ecosystem.NPM: RecordingPublisher(Ecosystem.NPM, *events)},
        )

        report = migrator.migrate()

        npm = report.ecosystems[0]
        assert npm.downloads.succeeded == 3
        assert npm.downloads.failed == 2
        assert npm.publishes.succeeded == 3
        assert not (Path(config.dist_dir).parent / "escaped").exists()
        assert not list(Path(config.dist_dir).parent.glob("e-1.0.0.tgz"))

    def test_rerun_skips_staged(self, migrate_config, make_client, events):
        """Test a second run reports SKIP for everything downloaded before."""
        config = npm_only(migrate_config)
        catalog = npm_catalog(3)
        client = make_client(tarball_routes(catalog, events))

        def run():
            return Migrator(
                config,
                client=client,
                sources={Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, catalog)},
            ).migrate(phase=Phase.DOWNLOAD).ecosystems[0]

        first = run()
        second = run()

        assert first.downloads.succeeded == 3
        assert second.downloads.succeeded == 0
        assert second.downloads.skipped == 3
        assert second.publishes.total == 0

    def test_publish_failures_counted(self, migrate_config, make_client, events):
        """Test publish errors are counted and do not stop the run."""
        config = npm_only(migrate_config)
        catalog = npm_catalog(3)
        publisher = RecordingPublisher(Ecosystem.NPM, *events, fail={"pkg1-1.0.0.tgz"})
        migrator = Migrator(
            config,
            client=make_client(tarball_routes(catalog, events)),
            sources={Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, catalog)},
            publishers={Ecosystem.NPM: publisher},
        )

        report = migrator.migrate()

        assert report.ecosystems[0].publishes.succeeded == 2
        assert report.ecosystems[0].publishes.failed == 1
        assert report.failed == 1
        assert not report.is_success

    def test_publish_only_phase(self, migrate_config, make_client, events):
        """Test the publish phase alone uses already staged files."""
        config = npm_only(migrate_config)
        catalog = npm_catalog(2)
        staged = Path(config.dist_dir) / "npm" / "pkg0" / "pkg0-1.0.0.tgz"
        staged.parent.mkdir(parents=True)
        staged.write_bytes(b"tgz")
        log, _ = events
        migrator = Migrator(
            config,
            client=make_client({}),
            sources={Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, catalog)},
            publishers={Ecosystem.NPM: RecordingPublisher(Ecosystem.NPM, *events)},
        )

        npm = migrator.migrate(phase=Phase.PUBLISH).ecosystems[0]

        assert npm.downloads.total == 0
        assert npm.publishes.succeeded == 1
        assert npm.publishes.skipped == 1
        assert log == ["publish:pkg0-1.0.0.tgz"]

    def test_catalog_error_is_fatal(self, migrate_config, make_client, events):
        """Test an unreachable catalog aborts before anything else runs."""
        log, _ = events
        migrator = Migrator(
            migrate_config,
            client=make_client({}),
            sources={
                Ecosystem.GEM: StaticCatalogSource(Ecosystem.GEM, error=CatalogError("feed down")),
                Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, npm_catalog(1)),
            },
            publishers={Ecosystem.NPM: RecordingPublisher(Ecosystem.NPM, *events)},
        )

        with pytest.raises(CatalogError):
            migrator.migrate()

        assert log == []

    def test_ecosystem_selection(self, migrate_config, make_client, events):
        """Test only the requested ecosystems are migrated."""
        gem_source = StaticCatalogSource(Ecosystem.GEM, error=AssertionError("must not run"))
        migrator = Migrator(
            migrate_config,
            client=make_client({}),
            sources={
                Ecosystem.GEM: gem_source,
                Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, npm_catalog(0)),
            },
        )

        report = migrator.migrate(ecosystems=[Ecosystem.NPM], phase=Phase.DOWNLOAD)

        assert [item.ecosystem for item in report.ecosystems] == [Ecosystem.NPM]

    def test_gems_then_npm(self, migrate_config, make_client, events):
        """Test ecosystems run in order, each fully before the next."""
        log, lock = events
        gem_catalog = Catalog(ecosystem=Ecosystem.GEM)
        gem = Package(name="foo", ecosystem=Ecosystem.GEM)
        gem.add_version(Version(version="1.2.0", source_url="http://gems.old.test/gems/foo-1.2.0.gem"))
        gem_catalog.add_package(gem)
        npm = npm_catalog(1)

        routes = tarball_routes(npm, events)
        routes.update(tarball_routes(gem_catalog, events))
        migrator = Migrator(
            migrate_config,
            client=make_client(routes),
            sources={
                Ecosystem.GEM: StaticCatalogSource(Ecosystem.GEM, gem_catalog),
                Ecosystem.NPM: StaticCatalogSource(Ecosystem.NPM, npm),
            },
            publishers={
                Ecosystem.GEM: RecordingPublisher(Ecosystem.GEM, log, lock),
                Ecosystem.NPM: RecordingPublisher(Ecosystem.NPM, log, lock),
            },
        )

        report = migrator.migrate()

        assert [item.ecosystem for item in report.ecosystems] == [Ecosystem.GEM, Ecosystem.NPM]
        assert log == [
            "download:foo-1.2.0.gem",
            "publish:foo-1.2.0.gem",
            "download:pkg0-1.0.0.tgz",
            "publish:pkg0-1.0.0.tgz",
        ]

    def test_default_publishers_from_config(self, migrate_config):
        """Test publishers are built from the ecosystem configuration."""
        migrator = Migrator(migrate_config)

        publisher = migrator._publisher_for(Ecosystem.GEM)

        assert publisher.build_command(Path("/x.gem"))[:4] == ["gem", "push", "--host", "http://gems.new.test"]
