import os
from pathlib import Path
import sys

# Ensure the src tree is on sys.path for tests
SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Keep console span exporters out of test output
os.environ.setdefault("BLUEGREEN_DISABLE_TRACING", "1")
