"""Module entrypoint for ``python -m varbill_store``."""

from __future__ import annotations

from varbill_store.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
