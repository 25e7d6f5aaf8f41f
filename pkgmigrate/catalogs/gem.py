"""Catalog source for geminabox registries.

geminabox publishes an Atom feed at ``/atom.xml``. Each entry's ``id`` is the
gem name and each ``link`` points at one ``{name}-{version}.gem`` file.
"""

import os
import xml.etree.ElementTree as ET
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from ..common.logger import get_logger
from .base import Catalog, CatalogError, CatalogSource, Ecosystem, Package, Version

logger = get_logger("pkgmigrate.catalog.gem")

GEM_EXTENSION = ".gem"


def _local_name(tag: str) -> str:
    """Strip an XML namespace from a tag name."""
    return tag.rsplit("}", 1)[-1]


def parse_gem_version(name: str, href: str) -> str:
    """Derive a gem version from its download link.

    Args:
        name: Gem name, e.g. ``foo``
        href: Link to the gem file, e.g. ``http://host/gems/foo-1.2.0.gem``

    Returns:
        Version string, e.g. ``1.2.0``
    """
    filename = os.path.basename(unquote(urlparse(href).path))
    prefix = f"{name}-"
    if filename.startswith(prefix):
        filename = filename[len(prefix):]
    if filename.endswith(GEM_EXTENSION):
        filename = filename[: -len(GEM_EXTENSION)]
    return filename


class GeminaboxCatalogSource(CatalogSource):
    """Enumerates gems from a geminabox Atom feed."""

    def __init__(self, from_url: str, client: httpx.Client):
        self.from_url = from_url.rstrip("/")
        self.client = client

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.GEM

    @property
    def feed_url(self) -> str:
        return f"{self.from_url}/atom.xml"

    def fetch_catalog(self) -> Catalog:
        """Fetch and parse the Atom feed.

        Raises:
            CatalogError: If the feed is unreachable or not valid XML
        """
        logger.info(f"Fetching gem feed: {self.feed_url}")
        try:
            response = self.client.get(self.feed_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CatalogError(f"Cannot fetch gem feed {self.feed_url}: {e}") from e

        catalog = self.parse_feed(response.content)
        logger.info(
            f"Found {len(catalog.packages)} gems with {len(catalog)} versions"
        )
        return catalog

    def parse_feed(self, content: bytes) -> Catalog:
        """Build a catalog from feed XML.

        Raises:
            CatalogError: If the document is not valid XML
        """
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise CatalogError(f"Malformed gem feed {self.feed_url}: {e}") from e

        catalog = Catalog(ecosystem=Ecosystem.GEM)
        for entry in root.iter():
            if _local_name(entry.tag) != "entry":
                continue

            name = self._entry_id(entry)
            if not name:
                logger.warning("Skipping feed entry without id")
                continue

            package = catalog.get(name) or Package(name=name, ecosystem=Ecosystem.GEM)
            for child in entry:
                if _local_name(child.tag) != "link":
                    continue
                href = child.get("href")
                if not href:
                    logger.warning(f"Skipping link without href in entry {name}")
                    continue
                package.add_version(
                    Version(version=parse_gem_version(name, href), source_url=href)
                )
            catalog.add_package(package)

        return catalog

    @staticmethod
    def _entry_id(entry: ET.Element) -> Optional[str]:
        for child in entry:
            if _local_name(child.tag) == "id" and child.text:
                return child.text.strip()
        return None
