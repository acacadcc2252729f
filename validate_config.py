#!/usr/bin/env python3
"""Check that the geth-exporter environment is usable."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from geth_exporter.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
