"""modsync: discovery, update and share-code sync for game instance content."""

__version__ = "0.1.0"
