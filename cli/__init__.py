"""CLI package for viewing and feeding the telemetry relay."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# The Typer application lives in ``cli.app``; re-exporting it here would shadow
# the module path that tests patch (``cli.app.ApiClient``).

__all__ = []
