import os
import pathlib
import signal

import pytest

from pqr.runtime.executor import (
    ExecutionError,
    ScriptNotFound,
    build_command,
    build_env,
    can_replace_process,
    exec_command,
    lookup_script,
    resolve_shell,
    run_script,
    spawn_command,
)
from pqr.runtime.manifest import ManifestInfo

posix_only = pytest.mark.skipif(os.name != "posix", reason="needs a POSIX sh")


def test_build_command_passes_args_positionally():
    argv = build_command("eslint .", ["--fix", "src dir"])
    assert argv == ["sh", "-c", 'eslint . "$@"', "sh", "--fix", "src dir"]


def test_build_command_custom_shell():
    assert build_command("true", [], shell="/bin/dash")[0] == "/bin/dash"


def test_build_env_prepends_local_bin(tmp_path):
    environ = {"PATH": "/usr/bin", "HOME": "/home/u"}
    env = build_env(tmp_path, environ)
    assert env["PATH"] == f"{tmp_path / 'node_modules' / '.bin'}{os.pathsep}/usr/bin"
    assert env["HOME"] == "/home/u"
    assert environ == {"PATH": "/usr/bin", "HOME": "/home/u"}


def test_build_env_without_path(tmp_path):
    env = build_env(tmp_path, {})
    assert env["PATH"] == f"{tmp_path / 'node_modules' / '.bin'}{os.pathsep}"


def test_build_env_skips_dir_with_separator(tmp_path):
    directory = tmp_path / f"a{os.pathsep}b"
    environ = {"PATH": "/usr/bin"}
    assert build_env(directory, environ) == environ


def test_build_env_does_not_touch_process_env(tmp_path, monkeypatch):
    monkeypatch.setenv("PATH", "/usr/bin")
    env = build_env(tmp_path)
    assert env["PATH"].endswith(f"{os.pathsep}/usr/bin")
    assert os.environ["PATH"] == "/usr/bin"


def test_lookup_script_missing(tmp_path):
    info = ManifestInfo(directory=tmp_path, scripts={"build": "make"})
    assert lookup_script(info, "build") == "make"
    with pytest.raises(ScriptNotFound) as excinfo:
        lookup_script(info, "test")
    assert str(excinfo.value) == f"No script named test in {tmp_path / 'package.json'}"
    assert excinfo.value.directory == tmp_path


def test_run_script_rejects_unknown_mode(tmp_path):
    info = ManifestInfo(directory=tmp_path, scripts={"a": "true"})
    with pytest.raises(ValueError):
        run_script(info, "a", [], mode="fork")


def test_run_script_missing_never_starts(tmp_path):
    started = []
    info = ManifestInfo(directory=tmp_path, scripts={})
    with pytest.raises(ScriptNotFound):
        run_script(info, "a", [], mode="spawn", on_start=lambda argv, mode: started.append(mode))
    assert started == []


@posix_only
def test_can_replace_process_on_posix():
    assert can_replace_process()


@posix_only
def test_spawn_prints_and_returns_zero(tmp_path, capfd):
    info = ManifestInfo(directory=tmp_path, scripts={"hi": "echo hi"})
    started = []
    rc = run_script(info, "hi", [], mode="spawn", on_start=lambda argv, mode: started.append(mode))
    assert rc == 0
    assert capfd.readouterr().out == "hi\n"
    assert started == ["spawn"]


@posix_only
def test_spawn_forwards_exit_status(tmp_path):
    info = ManifestInfo(directory=tmp_path, scripts={"fail": "exit 3"})
    assert run_script(info, "fail", [], mode="spawn") == 3


@posix_only
def test_spawn_args_in_order(tmp_path, capfd):
    info = ManifestInfo(directory=tmp_path, scripts={"show": "f() { printf '%s|' \"$@\"; }; f"})
    assert run_script(info, "show", ["one", "two words", "3"], mode="spawn") == 0
    assert capfd.readouterr().out == "one|two words|3|"


@posix_only
def test_spawn_runs_in_manifest_dir(tmp_path, capfd):
    info = ManifestInfo(directory=tmp_path, scripts={"where": "pwd -P"})
    assert run_script(info, "where", [], mode="spawn") == 0
    assert capfd.readouterr().out.strip() == os.path.realpath(tmp_path)


@posix_only
def test_spawn_signal_death_maps_to_shell_status(tmp_path):
    info = ManifestInfo(directory=tmp_path, scripts={"die": "kill -TERM $$"})
    assert run_script(info, "die", [], mode="spawn") == 128 + signal.SIGTERM


@posix_only
def test_spawn_restores_signal_handlers(tmp_path):
    before = (signal.getsignal(signal.SIGINT), signal.getsignal(signal.SIGTERM))
    spawn_command(["sh", "-c", "true"], tmp_path, dict(os.environ))
    assert (signal.getsignal(signal.SIGINT), signal.getsignal(signal.SIGTERM)) == before


def test_spawn_launch_failure(tmp_path):
    missing = str(pathlib.Path(tmp_path) / "no-such-shell")
    with pytest.raises(ExecutionError):
        spawn_command([missing, "-c", "true"], tmp_path, dict(os.environ))


@posix_only
def test_resolve_shell_uses_given_path(tmp_path):
    assert os.path.isabs(resolve_shell("sh"))
    with pytest.raises(ExecutionError):
        resolve_shell("sh", {"PATH": str(tmp_path)})


@posix_only
def test_local_bin_cannot_replace_shell(tmp_path, capfd):
    bin_dir = tmp_path / "node_modules" / ".bin"
    bin_dir.mkdir(parents=True)
    fake = bin_dir / "sh"
    fake.write_text("#!/bin/sh\necho replaced\n", encoding="utf-8")
    fake.chmod(0o755)
    info = ManifestInfo(directory=tmp_path, scripts={"hi": "echo hi"})
    started = []
    assert run_script(info, "hi", [], mode="spawn", on_start=lambda argv, mode: started.append(argv)) == 0
    assert capfd.readouterr().out == "hi\n"
    assert started[0][0] != str(fake)


def test_run_script_missing_shell(tmp_path):
    info = ManifestInfo(directory=tmp_path, scripts={"a": "true"})
    with pytest.raises(ExecutionError):
        run_script(info, "a", [], shell="pqr-no-such-shell", mode="spawn")


@posix_only
def test_null_byte_is_an_execution_error(tmp_path):
    info = ManifestInfo(directory=tmp_path, scripts={"bad": "echo a\x00b"})
    with pytest.raises(ExecutionError):
        run_script(info, "bad", [], mode="spawn")


@posix_only
def test_failed_exec_keeps_working_directory(tmp_path, monkeypatch):
    start = tmp_path / "start"
    start.mkdir()
    target = tmp_path / "target"
    target.mkdir()
    monkeypatch.chdir(start)
    with pytest.raises(ExecutionError):
        exec_command([str(tmp_path / "no-such-shell"), "-c", "true"], target, dict(os.environ))
    assert os.path.realpath(os.getcwd()) == os.path.realpath(start)
