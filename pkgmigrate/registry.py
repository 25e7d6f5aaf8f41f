"""Ecosystem adapters.

Maps each supported ecosystem to the CatalogSource and Publisher that handle
it. The set is closed: adding an ecosystem means adding an entry here and a
registry kind in ``common.config.SUPPORTED_REGISTRIES``.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Type

import httpx

from .catalogs.base import CatalogSource, Ecosystem
from .catalogs.gem import GeminaboxCatalogSource
from .catalogs.npm import VerdaccioCatalogSource
from .common.config import SUPPORTED_REGISTRIES, EcosystemConfig
from .publishers.base import Publisher
from .publishers.gem import GemPushPublisher
from .publishers.npm import NpmPublishPublisher

SourceFactory = Callable[[EcosystemConfig, httpx.Client, Optional[int]], CatalogSource]


def _geminabox_source(
    config: EcosystemConfig, client: httpx.Client, max_workers: Optional[int]
) -> CatalogSource:
    # A single feed request, nothing to parallelize
    return GeminaboxCatalogSource(config.from_url, client)


def _verdaccio_source(
    config: EcosystemConfig, client: httpx.Client, max_workers: Optional[int]
) -> CatalogSource:
    return VerdaccioCatalogSource(config.from_url, client, max_workers=max_workers)


@dataclass(frozen=True)
class EcosystemAdapter:
    """The capability pair of one ecosystem."""

    ecosystem: Ecosystem
    registry_kind: str
    source_factory: SourceFactory
    publisher_class: Type[Publisher]

    def create_source(
        self,
        config: EcosystemConfig,
        client: httpx.Client,
        max_workers: Optional[int] = None,
    ) -> CatalogSource:
        """Create the catalog source for a configured ecosystem."""
        return self.source_factory(config, client, max_workers)

    def create_publisher(
        self, config: EcosystemConfig, timeout: Optional[float] = None
    ) -> Publisher:
        """Create the publisher for a configured ecosystem."""
        return self.publisher_class(config.to_url, timeout=timeout)


ADAPTERS: Dict[Ecosystem, EcosystemAdapter] = {
    Ecosystem.GEM: EcosystemAdapter(
        ecosystem=Ecosystem.GEM,
        registry_kind=SUPPORTED_REGISTRIES[Ecosystem.GEM],
        source_factory=_geminabox_source,
        publisher_class=GemPushPublisher,
    ),
    Ecosystem.NPM: EcosystemAdapter(
        ecosystem=Ecosystem.NPM,
        registry_kind=SUPPORTED_REGISTRIES[Ecosystem.NPM],
        source_factory=_verdaccio_source,
        publisher_class=NpmPublishPublisher,
    ),
}


def get_adapter(ecosystem: Ecosystem) -> EcosystemAdapter:
    """Get the adapter for an ecosystem.

    Raises:
        KeyError: If the ecosystem has no adapter
    """
    return ADAPTERS[ecosystem]
