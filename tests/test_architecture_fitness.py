"""Architectural fitness functions to keep the layering intact.

The conversation apps talk to HTTP only through the ports in ``core.ports``;
FastAPI and Starlette belong to the adapters and the API app.
"""

import re
from pathlib import Path

ROOT = Path(__file__).parent.parent
PACKAGE_DIR = ROOT / "assistant_fulfillment"
WEB_FRAMEWORK_IMPORT = re.compile(r"^\s*(from|import)\s+(fastapi|starlette)\b", re.MULTILINE)


def _framework_importers(layer: str) -> list[str]:
    layer_dir = PACKAGE_DIR / layer
    return [
        str(py_file.relative_to(layer_dir))
        for py_file in layer_dir.rglob("*.py")
        if WEB_FRAMEWORK_IMPORT.search(py_file.read_text())
    ]


def test_no_python_modules_at_root():
    """Only packaging and pytest configuration may live at the repository root."""
    allowed = {"setup.py", "conftest.py", "main.py", "__main__.py"}
    violations = [f.name for f in ROOT.glob("*.py") if f.name not in allowed]

    assert not violations, (
        f"Unexpected Python modules at root: {violations}\n"
        "Library code must live inside assistant_fulfillment/."
    )


def test_no_web_framework_in_core():
    """Core layer must not import FastAPI or Starlette.

    The core is framework-agnostic and should not depend on web frameworks.
    """
    violations = _framework_importers("core")

    assert not violations, (
        f"Core layer imports a web framework: {violations}\n" "Core must remain framework-agnostic."
    )


def test_no_web_framework_in_services():
    """Conversation apps reach HTTP only through the request/response ports."""
    violations = _framework_importers("services")

    assert not violations, (
        f"Services layer imports a web framework: {violations}\n"
        "Use assistant_fulfillment.core.ports instead."
    )


def test_core_does_not_import_outer_layers():
    """Core must not depend on services, adapters, or apps."""
    pattern = re.compile(
        r"^\s*(from|import)\s+assistant_fulfillment\.(services|adapters|apps|cli)\b", re.MULTILINE
    )
    violations = [
        str(py_file.relative_to(PACKAGE_DIR))
        for py_file in (PACKAGE_DIR / "core").rglob("*.py")
        if pattern.search(py_file.read_text())
    ]

    assert not violations, f"Core imports outer layers: {violations}"
