"""Pytest configuration and shared fixtures."""

import httpx
import pytest

from pkgmigrate.catalogs.base import Ecosystem
from pkgmigrate.common.config import EcosystemConfig, MigrateConfig


@pytest.fixture
def sample_config():
    """Sample configuration dictionary."""
    return {
        "gems": {
            "registry": "geminabox",
            "from": "http://gems.old.test",
            "to": "http://gems.new.test",
        },
        "npm": {
            "registry": "verdaccio",
            "from": "http://npm.old.test",
            "to": "http://npm.new.test",
        },
        "dist_dir": "/tmp/pkgmigrate-dist",
        "max_workers": 4,
        "logging": {
            "level": "INFO",
        },
    }


@pytest.fixture
def migrate_config(tmp_path):
    """Typed configuration with both ecosystems, staging under tmp_path."""
    return MigrateConfig(
        ecosystems={
            Ecosystem.GEM: EcosystemConfig(
                registry="geminabox",
                from_url="http://gems.old.test",
                to_url="http://gems.new.test",
            ),
            Ecosystem.NPM: EcosystemConfig(
                registry="verdaccio",
                from_url="http://npm.old.test",
                to_url="http://npm.new.test",
            ),
        },
        dist_dir=str(tmp_path / "dist"),
        max_workers=4,
    )


@pytest.fixture
def make_client():
    """Build an httpx client served by a dict of URL -> response or handler."""
    clients = []

    def _make(routes):
        def handler(request):
            route = routes.get(str(request.url))
            if route is None:
                return httpx.Response(404, text="not found")
            if callable(route):
                return route(request)
            return route

        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()
