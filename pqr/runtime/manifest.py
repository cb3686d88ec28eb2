"""Locate the nearest package.json and read its script table."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

MANIFEST_NAME = "package.json"


class ManifestNotFound(FileNotFoundError):
    """No manifest exists in the start directory or any of its ancestors."""

    def __init__(self, start: Path, filename: str = MANIFEST_NAME):
        super().__init__(f"No {filename} found at any level above {start}")
        self.start = start
        self.filename = filename


class ManifestError(RuntimeError):
    """A manifest location exists but could not be read or parsed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


@dataclass(frozen=True)
class ManifestInfo:
    directory: Path
    scripts: dict[str, str] = field(default_factory=dict)
    filename: str = MANIFEST_NAME

    @property
    def path(self) -> Path:
        return self.directory / self.filename


def walk_up(start: Path) -> list[Path]:
    out: list[Path] = []
    cur = Path(start)
    while True:
        out.append(cur)
        if cur.parent == cur:
            return out
        cur = cur.parent


def parse_scripts(document: Any, path: Path) -> dict[str, str]:
    """Return the ``scripts`` table of a decoded manifest.

    A missing or ``null`` table is an empty mapping. Anything other than an
    object of string values raises :class:`ManifestError`.
    """
    if not isinstance(document, dict):
        raise ManifestError(path, f"expected a JSON object, got {type(document).__name__}")
    scripts = document.get("scripts")
    if scripts is None:
        return {}
    if not isinstance(scripts, dict):
        raise ManifestError(path, f'"scripts" must be an object, got {type(scripts).__name__}')
    for name, command in scripts.items():
        if not isinstance(command, str):
            raise ManifestError(path, f'script "{name}" must be a string, got {type(command).__name__}')
    return dict(scripts)


def find_manifest(start: Path, filename: str = MANIFEST_NAME) -> ManifestInfo:
    for candidate in walk_up(start):
        path = candidate / filename
        try:
            f = path.open("r", encoding="utf-8")
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise ManifestError(path, exc.strerror or str(exc)) from exc

        with f:
            try:
                document = json.load(f)
            except (ValueError, OSError) as exc:
                raise ManifestError(path, str(exc)) from exc
        return ManifestInfo(directory=candidate, scripts=parse_scripts(document, path), filename=filename)

    raise ManifestNotFound(Path(start), filename)
