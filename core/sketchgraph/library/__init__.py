from sketchgraph.library.catalog import (
    CORE_LIBRARY,
    LibraryCatalog,
    default_catalog,
    load_bundled_library,
)

__all__ = ["CORE_LIBRARY", "LibraryCatalog", "default_catalog", "load_bundled_library"]
