"""Run pqr from a source checkout without installing it."""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if not (ROOT / "pqr").exists():
    raise SystemExit(f"missing package directory: {ROOT / 'pqr'}")
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pqr.scripts.run_script import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
