"""Run package.json scripts from the nearest enclosing package."""

__version__ = "1.0.0"
