"""Entry point for ``python -m backend.addon_cli`` and the ``catalog-addon-cli`` script."""
from __future__ import annotations

from .app import app


def main() -> None:
    """Run the catalog addon CLI."""

    app(prog_name="catalog-addon-cli")


if __name__ == "__main__":
    main()
