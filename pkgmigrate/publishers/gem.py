"""Publisher for gem registries, using ``gem push``."""

from pathlib import Path
from typing import List

from ..catalogs.base import Ecosystem
from .base import Publisher


class GemPushPublisher(Publisher):
    """Pushes ``.gem`` files with ``gem push --host``."""

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.GEM

    def build_command(self, path: Path) -> List[str]:
        return ["gem", "push", "--host", self.to_url, str(path)]
