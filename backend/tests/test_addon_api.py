"""Tests for the addon API application factory and routes."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.addon_api import create_app  # noqa: E402
from backend.addon_api.services.catalog_index import CatalogIndex, CatalogLoadError  # noqa: E402
from backend.addon_api.services.manifest import (  # noqa: E402
    ManifestConfigError,
    build_manifest,
)
from backend.addon_api.settings import AddonSettings  # noqa: E402

CATALOG_DOCUMENT: dict[str, Any] = {
    "catalogs": [
        {
            "catalog_type": "movie",
            "catalog_name": "top_picks",
            "catalog_items": [
                {
                    "id": "tt1",
                    "name": "A",
                    "poster": "https://img/a.jpg",
                    "banner": "https://img/a-wide.jpg",
                    "genres": ["Action"],
                },
                {"id": "tt2", "name": "B", "genres": ["Drama"], "imdbRating": "7.9"},
                {"id": "tt3", "name": "C", "genres": ["Action", "Drama"]},
            ],
        },
        {
            "catalog_type": "series",
            "catalog_name": "best_series_of_2025",
            "catalog_items": [{"id": "tt9", "name": "S"}],
        },
    ]
}


def _settings(tmp_path: Path, **overrides: Any) -> AddonSettings:
    path = tmp_path / "catalog_data.json"
    if not path.exists():
        path.write_text(json.dumps(CATALOG_DOCUMENT), encoding="utf-8")
    values: dict[str, Any] = {
        "catalog_data_path": str(path),
        "addon_id": "org.example.test",
        "addon_name": "Test Catalog",
        "addon_version": "1.2.3",
        "watch_catalog": False,
    }
    values.update(overrides)
    return AddonSettings(**values)


@pytest.fixture()
def client(tmp_path: Path) -> TestClient:
    """Provide a test client backed by a catalog file in a temporary directory."""

    app = create_app(settings=_settings(tmp_path))
    return TestClient(app)


def test_manifest_lists_catalogs_and_types(client: TestClient) -> None:
    response = client.get("/manifest.json")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "org.example.test"
    assert body["version"] == "1.2.3"
    assert body["name"] == "Test Catalog"
    assert body["resources"] == ["catalog"]
    assert body["types"] == ["movie", "series"]
    assert body["idPrefixes"] == ["tt"]
    assert body["catalogs"] == [
        {
            "type": "movie",
            "id": "top_picks",
            "name": "Top Picks",
            "extra": [{"name": "skip", "isRequired": False}],
        },
        {
            "type": "series",
            "id": "best_series_of_2025",
            "name": "Best Series Of 2025",
            "extra": [{"name": "skip", "isRequired": False}],
        },
    ]
    assert "logo" not in body
    assert "background" not in body


def test_manifest_includes_optional_artwork(tmp_path: Path) -> None:
    settings = _settings(
        tmp_path, addon_logo="https://img/logo.png", addon_background="https://img/bg.png"
    )
    client = TestClient(create_app(settings=settings))

    body = client.get("/manifest.json").json()

    assert body["logo"] == "https://img/logo.png"
    assert body["background"] == "https://img/bg.png"


def test_catalog_endpoint_returns_metas(client: TestClient) -> None:
    response = client.get("/catalog/movie/top_picks.json")

    assert response.status_code == 200
    assert response.json() == {
        "metas": [
            {
                "id": "tt1",
                "type": "movie",
                "name": "A",
                "poster": "https://img/a.jpg",
                "background": "https://img/a-wide.jpg",
            },
            {"id": "tt2", "type": "movie", "name": "B", "imdbRating": "7.9"},
            {"id": "tt3", "type": "movie", "name": "C"},
        ]
    }


def test_catalog_endpoint_filters_and_paginates_with_query(client: TestClient) -> None:
    response = client.get("/catalog/movie/top_picks.json", params={"genre": " drama", "skip": "1"})

    assert [meta["id"] for meta in response.json()["metas"]] == ["tt3"]


def _write_document(tmp_path: Path, document: dict[str, Any]) -> None:
    (tmp_path / "catalog_data.json").write_text(json.dumps(document), encoding="utf-8")


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/catalog/series/tv/genre=Sci-Fi%20%26%20Fantasy.json", ["tt20"]),
        ("/catalog/series/tv/genre=C%2B%2B.json", ["tt21"]),
        ("/catalog/series/tv/genre=Sci-Fi%20%26%20Fantasy&skip=0.json", ["tt20"]),
        ("/catalog/series/tv.json?genre=Sci-Fi%20%26%20Fantasy", ["tt20"]),
        ("/catalog/series/tv.json?genre=C%2B%2B", ["tt21"]),
    ],
)
def test_catalog_extras_keep_encoded_reserved_characters(
    tmp_path: Path, path: str, expected: list[str]
) -> None:
    _write_document(
        tmp_path,
        {
            "catalogs": [
                {
                    "catalog_type": "series",
                    "catalog_name": "tv",
                    "catalog_items": [
                        {"id": "tt20", "name": "Space", "genres": ["Sci-Fi & Fantasy"]},
                        {"id": "tt21", "name": "Code", "genres": ["C++"]},
                        {"id": "tt22", "name": "Plain", "genres": ["Sci-Fi"]},
                    ],
                }
            ]
        },
    )
    client = TestClient(create_app(settings=_settings(tmp_path)))

    response = client.get(path)

    assert response.status_code == 200
    assert [meta["id"] for meta in response.json()["metas"]] == expected


def test_numeric_catalog_names_are_served_as_strings(tmp_path: Path) -> None:
    _write_document(
        tmp_path,
        {
            "catalogs": [
                {
                    "catalog_type": "movie",
                    "catalog_name": 2025,
                    "catalog_items": [{"id": "tt30", "name": "New"}],
                }
            ]
        },
    )
    client = TestClient(create_app(settings=_settings(tmp_path)))

    manifest = client.get("/manifest.json")
    assert manifest.status_code == 200
    assert manifest.json()["catalogs"][0]["id"] == "2025"
    assert manifest.json()["catalogs"][0]["name"] == "2025"

    catalog = client.get("/catalog/movie/2025.json")
    assert [meta["id"] for meta in catalog.json()["metas"]] == ["tt30"]


def test_catalog_endpoint_accepts_path_extras(client: TestClient) -> None:
    response = client.get("/catalog/movie/top_picks/genre=Action&skip=1.json")

    assert response.status_code == 200
    assert [meta["id"] for meta in response.json()["metas"]] == ["tt3"]


def test_catalog_endpoint_tolerates_bad_pagination(client: TestClient) -> None:
    response = client.get(
        "/catalog/movie/top_picks.json", params={"skip": "nope", "limit": "-4"}
    )

    assert response.status_code == 200
    assert len(response.json()["metas"]) == 3


@pytest.mark.parametrize(
    "path",
    [
        "/catalog/movie/nonexistent.json",
        "/catalog/channel/top_picks.json",
        "/catalog/series/top_picks.json",
        "/catalog/movie/top_picks.json?skip=50",
    ],
)
def test_catalog_endpoint_returns_empty_page_for_misses(client: TestClient, path: str) -> None:
    response = client.get(path)

    assert response.status_code == 200
    assert response.json() == {"metas": []}


def test_catalog_endpoint_returns_empty_page_on_internal_error(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Unexpected failures inside the query layer still produce a valid page."""

    from backend.addon_api.services import catalog_handler

    def _explode(*_args: Any, **_kwargs: Any) -> list[dict[str, Any]]:
        raise RuntimeError("boom")

    monkeypatch.setattr(catalog_handler, "query_items", _explode)

    response = client.get("/catalog/movie/top_picks.json")

    assert response.status_code == 200
    assert response.json() == {"metas": []}


def test_health_endpoints_report_catalog_state(client: TestClient) -> None:
    for path in ("/health", "/healthz"):
        response = client.get(path)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == "1.2.3"
        assert body["uptime_seconds"] >= 0
        assert body["catalog"]["status"] == "ok"
        assert body["catalog"]["catalogs"] == 2
        assert body["catalog"]["last_error"] is None


def test_health_reports_degraded_after_failed_reload(client: TestClient) -> None:
    index: CatalogIndex = client.app.state.app_state.index
    index.reload(b"[]")

    body = client.get("/health").json()

    assert body["catalog"]["status"] == "degraded"
    assert "expected { catalogs" in body["catalog"]["last_error"]
    assert body["catalog"]["catalogs"] == 2


def test_root_points_to_manifest(client: TestClient) -> None:
    response = client.get("/", headers={"x-forwarded-proto": "https", "host": "addon.example.org"})

    assert response.status_code == 200
    assert response.json() == {
        "message": "Test Catalog",
        "manifest": "https://addon.example.org/manifest.json",
        "health": "https://addon.example.org/healthz",
    }


def test_cors_headers_are_present(client: TestClient) -> None:
    response = client.get("/manifest.json", headers={"Origin": "https://web.client.example"})

    assert response.headers["access-control-allow-origin"] == "*"


def test_manifest_reflects_reloaded_catalog(client: TestClient, tmp_path: Path) -> None:
    """The manifest is rebuilt from the current snapshot after a reload."""

    path = tmp_path / "catalog_data.json"
    path.write_text(
        json.dumps({"catalogs": [{"catalog_type": "tv", "catalog_name": "news_now", "catalog_items": []}]}),
        encoding="utf-8",
    )
    client.app.state.app_state.index.reload()

    body = client.get("/manifest.json").json()

    assert body["types"] == ["tv"]
    assert [catalog["name"] for catalog in body["catalogs"]] == ["News Now"]


def test_create_app_fails_without_catalog(tmp_path: Path) -> None:
    settings = AddonSettings(catalog_data_path=str(tmp_path / "missing.json"), watch_catalog=False)

    with pytest.raises(CatalogLoadError):
        create_app(settings=settings)


def test_create_app_fails_on_missing_identity(tmp_path: Path) -> None:
    with pytest.raises(ManifestConfigError, match="addon_name"):
        create_app(settings=_settings(tmp_path, addon_name=""))


@pytest.mark.parametrize(
    "field",
    ["addon_id", "addon_version", "addon_name", "addon_description", "id_prefixes"],
)
def test_build_manifest_requires_identity_fields(tmp_path: Path, field: str) -> None:
    settings = _settings(tmp_path).model_copy(update={field: None})
    index = CatalogIndex()
    index.load(settings.catalog_data_path)

    with pytest.raises(ManifestConfigError, match=field):
        build_manifest(index, settings)


def test_manifest_endpoint_reports_configuration_errors(client: TestClient) -> None:
    app_state = client.app.state.app_state
    app_state.settings = app_state.settings.model_copy(update={"addon_description": ""})

    response = client.get("/manifest.json")

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to load manifest"


def test_id_prefixes_parse_from_comma_separated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ID_PREFIXES", "tt, kitsu ,")

    assert AddonSettings().id_prefixes == ["tt", "kitsu"]


@pytest.mark.parametrize(
    "value, expected",
    [("warn", "warning"), ("WARN", "warning"), (" Debug ", "debug"), ("fatal", "critical"), ("trace", "trace")],
)
def test_log_level_normalizes_to_uvicorn_names(
    monkeypatch: pytest.MonkeyPatch, value: str, expected: str
) -> None:
    monkeypatch.setenv("LOG_LEVEL", value)

    assert AddonSettings().log_level == expected


def test_log_level_rejects_unknown_names() -> None:
    with pytest.raises(ValidationError, match="log_level"):
        AddonSettings(log_level="verbose")


def test_lifespan_starts_and_stops_watcher(tmp_path: Path) -> None:
    app = create_app(settings=_settings(tmp_path, watch_catalog=True, watch_poll_interval=0.05))
    app_state = app.state.app_state

    with TestClient(app) as client:
        assert client.get("/manifest.json").status_code == 200
        assert app_state.watcher is not None
        assert app_state.watcher.running

    assert not app_state.watcher.running
