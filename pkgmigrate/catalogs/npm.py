"""Catalog source for verdaccio registries.

verdaccio lists every hosted package at ``/-/verdaccio/packages``. The
versions of each package come from its packument at ``/{name}``, which is
fetched in parallel, one task per package.
"""

import queue
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..common.logger import get_logger
from ..mirror.scheduler import TaskScheduler
from .base import Catalog, CatalogError, CatalogSource, Ecosystem, Package, Version

logger = get_logger("pkgmigrate.catalog.npm")

PACKAGES_PATH = "/-/verdaccio/packages"


def encode_package_name(name: str) -> str:
    """Encode a package name for use as a registry URL path.

    Scoped names keep their ``@`` but the separating slash is escaped,
    e.g. ``@scope/pkg`` becomes ``@scope%2Fpkg``.
    """
    if name.startswith("@") and "/" in name:
        scope, bare = name[1:].split("/", 1)
        return f"@{quote(scope, safe='')}%2F{quote(bare, safe='')}"
    return quote(name, safe="")


def parse_packument(name: str, document: Dict[str, Any]) -> Package:
    """Extract versions from a package metadata document.

    Args:
        name: Package name
        document: Parsed ``{"versions": {version: {"dist": {...}}}}`` document

    Returns:
        Package with one Version per entry that has a tarball URL
    """
    package = Package(name=name, ecosystem=Ecosystem.NPM)
    versions = document.get("versions") or {}
    if not isinstance(versions, dict):
        raise ValueError(f"'versions' of {name} is not a mapping")

    for version, meta in versions.items():
        dist = (meta or {}).get("dist") or {}
        tarball = dist.get("tarball")
        if not tarball or not isinstance(tarball, str):
            logger.warning(f"{name}@{version} has no tarball URL, skipping")
            continue
        package.add_version(
            Version(version=version, source_url=tarball, checksum=dist.get("shasum"))
        )
    return package


class VerdaccioCatalogSource(CatalogSource):
    """Enumerates npm packages hosted on a verdaccio registry."""

    def __init__(
        self,
        from_url: str,
        client: httpx.Client,
        max_workers: Optional[int] = None,
    ):
        """Initialize the source.

        Args:
            from_url: Registry base URL
            client: HTTP client, shared across metadata tasks
            max_workers: Parallel metadata fetches (host CPU count when None)
        """
        self.from_url = from_url.rstrip("/")
        self.client = client
        self.max_workers = max_workers

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.NPM

    def fetch_catalog(self) -> Catalog:
        """List all packages, then fetch each package's versions in parallel.

        A package whose metadata cannot be fetched is logged and left out.

        Raises:
            CatalogError: If the package listing is unavailable
        """
        names = self.list_packages()
        logger.info(f"Found {len(names)} npm packages, fetching metadata")

        # Workers only put onto the queue; this thread is the single owner
        # of the catalog and fills it once the pool has drained.
        results: "queue.Queue[Package]" = queue.Queue()
        with TaskScheduler(self.max_workers, name="npm-metadata") as scheduler:
            for name in names:
                scheduler.submit(self._fetch_package, name, results)

        catalog = Catalog(ecosystem=Ecosystem.NPM)
        while not results.empty():
            catalog.add_package(results.get_nowait())

        logger.info(
            f"Collected {len(catalog.packages)} npm packages with {len(catalog)} versions"
        )
        return catalog

    def list_packages(self) -> List[str]:
        """Fetch the names of every package on the registry.

        Raises:
            CatalogError: If the listing is unreachable or malformed
        """
        url = f"{self.from_url}{PACKAGES_PATH}"
        try:
            response = self.client.get(url)
            response.raise_for_status()
            listing = response.json()
        except httpx.HTTPError as e:
            raise CatalogError(f"Cannot fetch npm package list {url}: {e}") from e
        except ValueError as e:
            raise CatalogError(f"Malformed npm package list {url}: {e}") from e

        if not isinstance(listing, list):
            raise CatalogError(f"Malformed npm package list {url}: expected a list")

        names = []
        for item in listing:
            name = item.get("name") if isinstance(item, dict) else None
            if name and isinstance(name, str):
                names.append(name)
            else:
                logger.warning(f"Skipping package list entry without name: {item!r}")
        return names

    def _fetch_package(self, name: str, results: "queue.Queue[Package]") -> None:
        url = f"{self.from_url}/{encode_package_name(name)}"
        try:
            response = self.client.get(url)
            response.raise_for_status()
            document = response.json()
            if not isinstance(document, dict):
                raise ValueError("expected a JSON object")
            package = parse_packument(name, document)
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.error(f"{url} - ERR: {e}")
            return
        results.put(package)
