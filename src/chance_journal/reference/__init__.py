"""Reference catalogs: currency pairs, timeframes and chart patterns."""

from .catalog import (
    CATALOG_SPECS,
    CatalogSpec,
    JournalVocabulary,
    ReferenceCatalog,
    ReferenceEntry,
    open_catalogs,
)

__all__ = [
    "CATALOG_SPECS",
    "CatalogSpec",
    "JournalVocabulary",
    "ReferenceCatalog",
    "ReferenceEntry",
    "open_catalogs",
]
