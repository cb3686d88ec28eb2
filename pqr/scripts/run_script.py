"""Run a script from the nearest package.json above the working directory."""

from __future__ import annotations

import pathlib
import sys

from ..runtime.config_loader import ConfigError, load_config
from ..runtime.executor import EXEC_MODES, ExecutionError, ScriptNotFound, run_script
from ..runtime.manifest import MANIFEST_NAME, ManifestError, ManifestNotFound, find_manifest
from .logger import log_event, resolve_log_path

USAGE = "Usage: pqr <command> [<args>...]"


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    if not argv:
        print(USAGE)
        return 1

    # No option parsing: everything after the script name belongs to the script.
    script_name, script_args = argv[0], argv[1:]

    try:
        cfg = load_config()
    except ConfigError as exc:
        return _fail(str(exc))
    log_path = resolve_log_path(cfg)
    manifest_cfg = cfg.get("manifest") or {}
    shell_cfg = cfg.get("shell") or {}
    exec_cfg = cfg.get("exec") or {}
    mode = str(exec_cfg.get("mode") or "auto")
    if mode not in EXEC_MODES:
        return _fail(f"unknown exec mode: {mode!r} (expected one of {', '.join(EXEC_MODES)})")

    wd = pathlib.Path.cwd()
    try:
        info = find_manifest(wd, manifest_cfg.get("filename") or MANIFEST_NAME)
    except ManifestNotFound as exc:
        log_event({"event": "manifest_missing", "cwd": str(wd)}, log_path)
        return _fail(str(exc))
    except ManifestError as exc:
        log_event({"event": "manifest_error", "path": str(exc.path), "error": exc.reason}, log_path)
        return _fail(str(exc))
    log_event({"event": "manifest_found", "path": str(info.path), "scripts": len(info.scripts)}, log_path)

    def _on_start(cmd: list[str], started_as: str) -> None:
        log_event(
            {
                "event": "script_start",
                "script": script_name,
                "mode": started_as,
                "cwd": str(info.directory),
                "cmd": cmd,
            },
            log_path,
        )

    try:
        status = run_script(
            info,
            script_name,
            script_args,
            shell=str(shell_cfg.get("path") or "sh"),
            bin_dir=str(manifest_cfg.get("bin_dir") or "node_modules/.bin"),
            mode=mode,
            on_start=_on_start,
        )
    except ScriptNotFound as exc:
        log_event({"event": "script_missing", "script": script_name, "path": str(info.path)}, log_path)
        return _fail(str(exc))
    except ExecutionError as exc:
        return _fail(f"Script failed: {exc}")

    log_event({"event": "script_exit", "script": script_name, "returncode": status}, log_path)
    if status != 0:
        print(f"Script failed: exit status {status}", file=sys.stderr)
    return status


if __name__ == "__main__":
    raise SystemExit(main())
