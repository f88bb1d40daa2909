"""Convenience shim to run the mirror workflow."""

from __future__ import annotations

import sys

from repo_mirror.sync.runner import main as mirror_main


if __name__ == "__main__":
    mirror_main(sys.argv[1:])
