"""Module entrypoint for running Culturicon as ``python -m culturicon``."""

from __future__ import annotations

from culturicon.cli import main


if __name__ == "__main__":
    main()
