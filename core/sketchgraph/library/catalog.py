"""Library catalog.

Holds every known library descriptor and the names of the active ones. The
palette lists functions from active libraries only.

Design:
- The catalog is a frozen model; every change returns a new catalog
- The core ``Arduino`` library can be neither removed nor deactivated
- Bundled descriptors are JSON package data under ``library/data``

Example:
    catalog = default_catalog()
    result = parse_header(source, "Servo.h")
    catalog = catalog.add(result.library, activate=True)
    by_category = catalog.functions_by_category()
"""

from __future__ import annotations

import logging
from importlib import resources

from pydantic import BaseModel, ConfigDict, Field

from sketchgraph.domain.models import ClassDef, FunctionDef, Library

logger = logging.getLogger(__name__)

CORE_LIBRARY = "Arduino"

_BUNDLED = ("arduino.json", "servo.json")


class LibraryCatalog(BaseModel):
    """Known libraries plus the active subset."""

    model_config = ConfigDict(frozen=True)

    libraries: list[Library] = Field(default_factory=list)
    active: list[str] = Field(default_factory=lambda: [CORE_LIBRARY], description="Names of active libraries")

    def get(self, name: str) -> Library | None:
        return next((lib for lib in self.libraries if lib.name == name), None)

    def is_active(self, name: str) -> bool:
        return name in self.active

    def add(self, library: Library, *, activate: bool = False) -> "LibraryCatalog":
        """Add a library. A name already present leaves the catalog unchanged."""

        if self.get(library.name) is not None:
            logger.warning("Library %s already exists", library.name)
            return self

        active = [*self.active, library.name] if activate else list(self.active)
        return self.model_copy(update={"libraries": [*self.libraries, library], "active": active})

    def remove(self, name: str) -> "LibraryCatalog":
        if name == CORE_LIBRARY:
            return self
        return self.model_copy(
            update={
                "libraries": [lib for lib in self.libraries if lib.name != name],
                "active": [n for n in self.active if n != name],
            }
        )

    def toggle(self, name: str) -> "LibraryCatalog":
        if name == CORE_LIBRARY:
            return self
        if name in self.active:
            return self.model_copy(update={"active": [n for n in self.active if n != name]})
        return self.model_copy(update={"active": [*self.active, name]})

    def active_libraries(self) -> list[Library]:
        return [lib for lib in self.libraries if lib.name in self.active]

    def functions(self) -> list[FunctionDef]:
        """Free functions then class methods of every active library."""

        result: list[FunctionDef] = []
        for lib in self.active_libraries():
            result.extend(lib.functions)
            for cls in lib.classes:
                result.extend(cls.methods)
        return result

    def classes(self) -> list[ClassDef]:
        return [cls for lib in self.active_libraries() for cls in lib.classes]

    def functions_by_category(self) -> dict[str, list[FunctionDef]]:
        """Group active functions for the palette.

        Free functions fall back to the library display name and methods to
        their class name when they carry no category.
        """

        grouped: dict[str, list[FunctionDef]] = {}
        for lib in self.active_libraries():
            for fn in lib.functions:
                grouped.setdefault(fn.category or lib.display_name, []).append(fn)
            for cls in lib.classes:
                for method in cls.methods:
                    grouped.setdefault(method.category or cls.name, []).append(method)
        return grouped

    def library_of(self, fn: FunctionDef) -> Library | None:
        """Return the active library that declares ``fn``."""

        for lib in self.active_libraries():
            if fn in lib.functions or any(fn in cls.methods for cls in lib.classes):
                return lib
        return None


def load_bundled_library(file_name: str) -> Library:
    """Load a library descriptor shipped under ``sketchgraph/library/data``."""

    text = resources.files("sketchgraph.library").joinpath("data").joinpath(file_name).read_text(encoding="utf-8")
    return Library.model_validate_json(text)


def default_catalog() -> LibraryCatalog:
    """Catalog with the bundled libraries; only the core library is active."""

    libraries = [load_bundled_library(name) for name in _BUNDLED]
    return LibraryCatalog(libraries=libraries, active=[CORE_LIBRARY])
