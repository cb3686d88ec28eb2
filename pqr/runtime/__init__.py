"""Manifest discovery and script execution."""

from .executor import ExecutionError, ScriptNotFound, run_script
from .manifest import ManifestError, ManifestInfo, ManifestNotFound, find_manifest

__all__ = [
    "ExecutionError",
    "ManifestError",
    "ManifestInfo",
    "ManifestNotFound",
    "ScriptNotFound",
    "find_manifest",
    "run_script",
]
