import os
import sys
import tempfile
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

TMP_DIR = ROOT_DIR / ".pytest-tmp"
TMP_DIR.mkdir(exist_ok=True)
os.environ.setdefault("TMPDIR", str(TMP_DIR))
tempfile.tempdir = str(TMP_DIR)
