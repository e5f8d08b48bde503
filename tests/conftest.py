from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = str(Path(__file__).resolve().parents[1])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Console-only logging during tests; no logs/ directory in the checkout.
os.environ.setdefault("LIVEWATCH_LOG_TO_FILE", "0")
os.environ.setdefault("LIVEWATCH_LOG_LEVEL", "WARNING")
