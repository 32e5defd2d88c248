"""
Global constants for modsync with minimal dependencies to avoid circular imports.
"""

MODRINTH_API_BASE = "https://api.modrinth.com/v2"
CURSEFORGE_API_BASE = "https://api.curseforge.com/v1"

DEFAULT_USER_AGENT = "modsync (github.com/modsync/modsync)"
DEFAULT_CONFIG_FILENAME = "modsync.config.yaml"

DEFAULT_PAGE_SIZE = 20
"""Number of hits requested per discovery page."""

SEARCH_CACHE_TTL_SECONDS = 120.0
SEARCH_CACHE_MAX_ENTRIES = 120

SORT_RELEVANCE = "relevance"
SORT_POPULARITY = "downloads"

CURSEFORGE_MINECRAFT_GAME_ID = 432
CURSEFORGE_SORT_FIELD_TOTAL_DOWNLOADS = 6
CURSEFORGE_MAX_PAGE_SIZE = 50

IMPORT_PREFETCH_PERCENT = 10.0
"""Share of the import progress range reserved for decoding and metadata prefetch."""

MANUAL_PROVIDER_LABEL = "Manual"
