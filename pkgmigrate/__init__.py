"""pkgmigrate: mirror private gem and npm registries.

Enumerates a source registry, stages every artifact under a local directory
and republishes the staged artifacts to a destination registry.
"""

__version__ = "0.1.0"
