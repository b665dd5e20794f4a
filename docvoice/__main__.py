"""Module entrypoint for running docvoice as ``python -m docvoice``."""

from __future__ import annotations

from docvoice.cli import main


if __name__ == "__main__":
    main()
