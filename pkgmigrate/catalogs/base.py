"""Base classes and data structures for registry catalogs.

A catalog is the full set of packages and versions discovered on a source
registry during one run. It is rebuilt on every run and never persisted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple


class Ecosystem(Enum):
    """Supported package ecosystems.

    The value doubles as the configuration section name and the directory
    segment under the artifact root.
    """

    GEM = "gems"
    NPM = "npm"


class CatalogError(RuntimeError):
    """Raised when a registry's catalog cannot be enumerated at all."""


@dataclass(frozen=True)
class Version:
    """A single published version of a package."""

    version: str
    source_url: str
    checksum: Optional[str] = None  # npm shasum, informational only


@dataclass
class Package:
    """A package and its versions, keyed by version string."""

    name: str
    ecosystem: Ecosystem
    versions: Dict[str, Version] = field(default_factory=dict)

    def add_version(self, version: Version) -> None:
        """Add a version; a repeated version string replaces the earlier entry."""
        self.versions[version.version] = version


@dataclass
class Catalog:
    """Packages discovered on one source registry."""

    ecosystem: Ecosystem
    packages: Dict[str, Package] = field(default_factory=dict)

    def add_package(self, package: Package) -> None:
        self.packages[package.name] = package

    def get(self, name: str) -> Optional[Package]:
        return self.packages.get(name)

    def items(self) -> Iterator[Tuple[Package, Version]]:
        """Iterate over every (package, version) pair."""
        for package in self.packages.values():
            for version in package.versions.values():
                yield package, version

    def __len__(self) -> int:
        return sum(len(package.versions) for package in self.packages.values())


class CatalogSource(ABC):
    """Builds a Catalog from a source registry's enumeration endpoints."""

    @property
    @abstractmethod
    def ecosystem(self) -> Ecosystem:
        """Return the ecosystem this source enumerates."""
        pass

    @abstractmethod
    def fetch_catalog(self) -> Catalog:
        """Enumerate the source registry.

        Returns:
            Catalog of every package and version found

        Raises:
            CatalogError: If the registry cannot be enumerated
        """
        pass
