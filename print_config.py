#!/usr/bin/env python3
"""Print the resolved geth-exporter settings as JSON."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from geth_exporter.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main(["--print-resolved", *sys.argv[1:]]))
