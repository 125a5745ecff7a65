"""
EcoCodeAI Backend - Package Import Tests
==========================================

What we test:
    ✅ Every module under ecocode imports cleanly (syntax and import-time errors)
    ✅ The console-script entry point resolves
"""

import importlib
import pkgutil

import pytest

import ecocode

MODULE_NAMES = sorted(
    info.name for info in pkgutil.walk_packages(ecocode.__path__, prefix="ecocode.")
)


def test_walk_finds_routes_and_middleware():
    assert "ecocode.routes" in MODULE_NAMES
    assert "ecocode.middleware" in MODULE_NAMES
    assert "ecocode.main" in MODULE_NAMES


@pytest.mark.parametrize("module_name", MODULE_NAMES)
def test_module_imports(module_name):
    importlib.import_module(module_name)


def test_entry_point_is_callable():
    from ecocode.main import run

    assert callable(run)
