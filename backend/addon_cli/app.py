"""Command line interface for the catalog addon."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer

from backend.addon_api.services.catalog_index import CatalogIndex, CatalogLoadError
from backend.addon_api.services.query import format_catalog_name

from .client import create_client


DEFAULT_API_BASE = "http://localhost:7000"

app = typer.Typer(help="Interact with the catalog addon service.")


def _api_base_option() -> typer.Option:
    return typer.Option(
        DEFAULT_API_BASE,
        "--api-base",
        help="Base URL for the addon service.",
        show_default=True,
        envvar="ADDON_API_BASE",
    )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.command()
def health(api_base: str = _api_base_option()) -> None:
    """Call the /health endpoint and pretty-print the response."""

    with create_client(api_base) as client:
        response = client.get("/health")
        response.raise_for_status()
        _echo_json(response.json())


@app.command()
def manifest(api_base: str = _api_base_option()) -> None:
    """Display the manifest advertised to clients."""

    with create_client(api_base) as client:
        response = client.get("/manifest.json")
        response.raise_for_status()
        _echo_json(response.json())


@app.command()
def catalog(
    catalog_type: str = typer.Argument(..., help="Content type, e.g. movie or series."),
    catalog_id: str = typer.Argument(..., help="Catalog identifier (catalog_name)."),
    skip: Optional[int] = typer.Option(None, min=0, help="Number of leading items to skip."),
    limit: Optional[int] = typer.Option(None, min=1, help="Maximum number of items to return."),
    genre: Optional[str] = typer.Option(None, help="Only include items tagged with this genre."),
    api_base: str = _api_base_option(),
) -> None:
    """Display one page of a catalog."""

    params: dict[str, object] = {}
    if skip is not None:
        params["skip"] = skip
    if limit is not None:
        params["limit"] = limit
    if genre:
        params["genre"] = genre

    with create_client(api_base) as client:
        response = client.get(f"/catalog/{catalog_type}/{catalog_id}.json", params=params)
        response.raise_for_status()
        _echo_json(response.json())


@app.command()
def validate(
    path: Path = typer.Argument(..., help="Catalog JSON document to check."),
) -> None:
    """Load a catalog file locally and summarize what would be served."""

    index = CatalogIndex()
    try:
        index.load(path)
    except CatalogLoadError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    snapshot = index.snapshot()
    summary = {
        "catalogs": len(snapshot.catalogs),
        "indexed": len(snapshot.mapping),
        "types": snapshot.supported_types(),
        "items": [
            {
                "type": catalog_type,
                "id": catalog_name,
                "name": format_catalog_name(catalog_name),
                "count": _item_count(entry),
            }
            for (catalog_type, catalog_name), entry in snapshot.mapping.items()
        ],
    }
    _echo_json(summary)


def _item_count(entry: dict[str, Any]) -> int:
    items = entry.get("catalog_items")
    return len(items) if isinstance(items, list) else 0
