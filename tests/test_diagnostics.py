"""Tests for registry diagnostics rendering."""

import pytest
from amd_loader.diagnostics import print_registry
from amd_loader.diagnostics import render_registry
from amd_loader.registry import Registry
from rich.console import Console

pytestmark = pytest.mark.anyio


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend only."""
    return "asyncio"


@pytest.fixture
async def registry():
    registry = Registry()
    registry.create("app")
    registry.create("lib")
    registry.create("broken")
    registry.settle("lib", "value")
    registry.alias("library", "lib")
    registry.begin_wait("app", "lib")
    registry.fail(registry.get("broken"), RuntimeError("boom"))
    return registry


async def test_render_all_records(registry):
    console = Console(record=True, width=120)
    console.print(render_registry(registry))
    output = console.export_text()

    assert "app" in output
    assert "lib (library)" in output
    assert "pending" in output
    assert "settled" in output
    assert "boom" in output


async def test_pending_only(registry):
    table = render_registry(registry, pending_only=True)
    assert table.row_count == 1


async def test_print_registry(registry):
    console = Console(record=True, width=120)
    print_registry(registry, console=console)
    assert "Loaded dependencies" in console.export_text()
