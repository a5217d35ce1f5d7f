"""CLI package for querying the sensor telemetry service."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# The Typer instance stays in ``cli.app`` so that tests can patch attributes
# such as ``cli.app.ApiClient`` on the module path.

__all__ = []
