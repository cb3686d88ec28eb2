"""Run a manifest script through a POSIX shell.

On POSIX the shell replaces the current process image, so its exit status and
any signals belong to the script directly. Elsewhere the shell is spawned as a
child with inherited standard streams and the parent waits for it.
"""

from __future__ import annotations

import os
import shutil
import signal
import subprocess
from pathlib import Path
from typing import Mapping, NoReturn

from .manifest import ManifestInfo

DEFAULT_SHELL = "sh"
DEFAULT_BIN_DIR = "node_modules/.bin"
EXEC_MODES = ("auto", "exec", "spawn")


class ScriptNotFound(KeyError):
    def __init__(self, name: str, info: ManifestInfo):
        super().__init__(name)
        self.name = name
        self.directory = info.directory
        self.manifest_path = info.path

    def __str__(self) -> str:
        return f"No script named {self.name} in {self.manifest_path}"


class ExecutionError(RuntimeError):
    """The shell could not be launched."""


def lookup_script(info: ManifestInfo, name: str) -> str:
    try:
        return info.scripts[name]
    except KeyError:
        raise ScriptNotFound(name, info) from None


def build_command(command_text: str, args: list[str], shell: str = DEFAULT_SHELL) -> list[str]:
    # The token after the -c script becomes $0; args follow as $1, $2, ...
    return [shell, "-c", f'{command_text} "$@"', "sh", *args]


def build_env(
    directory: Path,
    environ: Mapping[str, str] | None = None,
    bin_dir: str = DEFAULT_BIN_DIR,
) -> dict[str, str]:
    """Return a copy of ``environ`` with the local bin directory on PATH.

    The path list separator cannot be escaped inside PATH, so a directory
    containing it leaves PATH untouched.
    """
    env = dict(os.environ if environ is None else environ)
    if os.pathsep in str(directory):
        return env
    local_bin = Path(directory).joinpath(*bin_dir.split("/"))
    env["PATH"] = f"{local_bin}{os.pathsep}{env.get('PATH', '')}"
    return env


def can_replace_process() -> bool:
    return os.name == "posix"


def resolve_shell(shell: str, environ: Mapping[str, str] | None = None) -> str:
    """Find ``shell`` on the caller's PATH, before any local bin is prepended."""
    source = os.environ if environ is None else environ
    found = shutil.which(shell, path=source.get("PATH", os.defpath))
    if found is None:
        raise ExecutionError(f"{shell}: command not found")
    return found


def exec_command(argv: list[str], cwd: Path, env: dict[str, str]) -> NoReturn:
    previous = os.getcwd()
    try:
        os.chdir(cwd)
        os.execvpe(argv[0], argv, env)
    except (OSError, ValueError) as exc:
        os.chdir(previous)
        raise ExecutionError(str(exc)) from exc


def _exit_status(returncode: int) -> int:
    if returncode < 0:
        return 128 - returncode
    return returncode


def spawn_command(argv: list[str], cwd: Path, env: dict[str, str]) -> int:
    proc = None

    def _forward(signum, _frame):
        if proc is not None and proc.poll() is None:
            proc.send_signal(signum)

    # Handlers go in before the child starts so an early signal is not lost.
    previous = {signum: signal.signal(signum, _forward) for signum in (signal.SIGINT, signal.SIGTERM)}
    try:
        try:
            proc = subprocess.Popen(argv, cwd=cwd, env=env)
        except (OSError, ValueError) as exc:
            raise ExecutionError(str(exc)) from exc
        returncode = proc.wait()
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
    return _exit_status(returncode)


def run_script(
    info: ManifestInfo,
    name: str,
    args: list[str],
    *,
    shell: str = DEFAULT_SHELL,
    bin_dir: str = DEFAULT_BIN_DIR,
    mode: str = "auto",
    environ: Mapping[str, str] | None = None,
    on_start=None,
) -> int:
    """Look up ``name`` in ``info`` and run it.

    Returns the script's exit status in spawn mode. In exec mode this call
    does not return unless the shell could not be launched.
    """
    if mode not in EXEC_MODES:
        raise ValueError(f"unknown exec mode: {mode!r} (expected one of {', '.join(EXEC_MODES)})")

    command_text = lookup_script(info, name)
    argv = build_command(command_text, args, resolve_shell(shell, environ))
    env = build_env(info.directory, environ, bin_dir)

    replace = mode == "exec" or (mode == "auto" and can_replace_process())
    if on_start is not None:
        on_start(argv, "exec" if replace else "spawn")
    if replace:
        exec_command(argv, info.directory, env)
    return spawn_command(argv, info.directory, env)
