from __future__ import annotations

from pathlib import Path
import sys

# Ensure project root is on sys.path so 'stratbook' resolves when running this script directly
def project_root() -> Path:
    return Path(__file__).resolve().parents[1]

_ROOT = project_root()
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from stratbook.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
