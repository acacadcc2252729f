#!/usr/bin/env python3
"""Start geth-exporter from a source checkout."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from geth_exporter.main import run  # noqa: E402

if __name__ == "__main__":
    run()
