"""Publisher for npm registries, using ``npm publish``."""

from pathlib import Path
from typing import List

from ..catalogs.base import Ecosystem
from .base import Publisher


class NpmPublishPublisher(Publisher):
    """Publishes tarballs with ``npm publish --registry``.

    npm accepts a tarball path directly, so the staged file is published
    as-is without unpacking.
    """

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.NPM

    def build_command(self, path: Path) -> List[str]:
        return ["npm", "publish", "--silent", "--registry", self.to_url, str(path)]
