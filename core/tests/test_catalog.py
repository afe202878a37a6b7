"""Unit tests for the library catalog."""

from __future__ import annotations

import logging

import pytest

from sketchgraph.domain.models import ClassDef, FunctionDef, Library
from sketchgraph.domain.value_types import ValueType
from sketchgraph.library import CORE_LIBRARY, LibraryCatalog, default_catalog, load_bundled_library
from sketchgraph.services.header_parser import parse_header


@pytest.fixture
def catalog() -> LibraryCatalog:
    return default_catalog()


def test_default_catalog_activates_only_the_core_library(catalog: LibraryCatalog) -> None:
    assert [lib.name for lib in catalog.libraries] == ["Arduino", "Servo"]
    assert catalog.active == [CORE_LIBRARY]
    assert catalog.is_active("Arduino")
    assert not catalog.is_active("Servo")


def test_bundled_core_library() -> None:
    core = load_bundled_library("arduino.json")

    assert core.is_core
    names = {fn.name for fn in core.functions}
    assert {"pinMode", "digitalWrite", "digitalRead", "analogRead", "delay", "millis"} <= names
    assert {c.name for c in core.constants} >= {"HIGH", "LOW", "OUTPUT", "LED_BUILTIN"}

    serial = core.classes[0]
    assert serial.name == "Serial"
    assert all(m.qualified_name.startswith("Serial.") for m in serial.methods)


def test_functions_lists_free_functions_then_methods(catalog: LibraryCatalog) -> None:
    functions = catalog.functions()

    first_method = next(i for i, fn in enumerate(functions) if fn.is_method)
    assert all(not fn.is_method for fn in functions[:first_method])
    assert all(fn.is_method for fn in functions[first_method:])
    assert all(fn.class_name == "Serial" for fn in functions[first_method:])


def test_toggle_activates_and_deactivates(catalog: LibraryCatalog) -> None:
    on = catalog.toggle("Servo")
    assert on.is_active("Servo")
    assert [c.name for c in on.classes()] == ["Serial", "Servo"]

    off = on.toggle("Servo")
    assert not off.is_active("Servo")
    assert not catalog.is_active("Servo")


def test_core_library_cannot_be_deactivated_or_removed(catalog: LibraryCatalog) -> None:
    assert catalog.toggle(CORE_LIBRARY) is catalog
    assert catalog.remove(CORE_LIBRARY) is catalog


def test_remove_drops_library_and_activation(catalog: LibraryCatalog) -> None:
    updated = catalog.toggle("Servo").remove("Servo")

    assert updated.get("Servo") is None
    assert updated.active == [CORE_LIBRARY]


def test_add_parsed_library(catalog: LibraryCatalog) -> None:
    result = parse_header("class Led {\npublic:\n  void on();\n  void off();\n};\n", "Led.h")
    assert result.library is not None

    inactive = catalog.add(result.library)
    active = catalog.add(result.library, activate=True)

    assert inactive.get("Led") is result.library
    assert not inactive.is_active("Led")
    assert active.is_active("Led")
    assert "Led" in active.functions_by_category()


def test_add_duplicate_is_ignored(catalog: LibraryCatalog, caplog: pytest.LogCaptureFixture) -> None:
    duplicate = Library(name="Servo", display_name="Other", include="#include <Other.h>")

    with caplog.at_level(logging.WARNING):
        assert catalog.add(duplicate) is catalog
    assert "Library Servo already exists" in caplog.text


def test_functions_by_category_fallbacks() -> None:
    library = Library(
        name="Pins",
        display_name="Pin Helpers",
        include="#include <Pins.h>",
        functions=[
            FunctionDef(name="toggle", category=None),
            FunctionDef(name="pulse", category="Timing"),
        ],
        classes=[
            ClassDef(
                name="Button",
                methods=[FunctionDef(name="pressed", return_type=ValueType.BOOL, is_method=True, class_name="Button")],
            )
        ],
    )
    catalog = LibraryCatalog(libraries=[library], active=["Pins"])

    grouped = catalog.functions_by_category()

    assert {k: [fn.name for fn in v] for k, v in grouped.items()} == {
        "Pin Helpers": ["toggle"],
        "Timing": ["pulse"],
        "Button": ["pressed"],
    }


def test_library_of(catalog: LibraryCatalog) -> None:
    servo_write = catalog.get("Servo").classes[0].methods[1]

    assert catalog.library_of(servo_write) is None
    assert catalog.toggle("Servo").library_of(servo_write).name == "Servo"
