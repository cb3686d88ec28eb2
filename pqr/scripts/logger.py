"""Structured event log in JSONL."""
import json
import os
import pathlib
import time

_LOG_ENV = "PQR_LOG"


def resolve_log_path(config=None, env=None):
    env = env if env is not None else os.environ
    env_path = env.get(_LOG_ENV)
    if env_path:
        return pathlib.Path(env_path).expanduser()
    cfg_path = ((config or {}).get("log") or {}).get("path")
    if cfg_path:
        return pathlib.Path(str(cfg_path)).expanduser()
    return None


def log_event(event, log_path=None):
    """Append ``event`` as one JSON line; a no-op when no log path is set."""
    if not log_path:
        return None
    path = pathlib.Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    record = {
        "ts": time.strftime("%Y-%m-%d %H:%M:%S"),
        "pid": os.getpid(),
        **event,
    }
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False) + "\n")
    return str(path)
