from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.main import register_routes
from app.models import RowConfiguration
from app.services.config_store import ConfigurationStore
from app.services.row_engine import RowEngine
from conftest import NOW, FakeLibrary


class MemoryConfigurationStore(ConfigurationStore):
    """ConfigurationStore stub that keeps the configuration in memory."""

    def __init__(self, config: RowConfiguration | None = None) -> None:
        # Deliberately skip super().__init__ to avoid touching a database.
        self.current = config or RowConfiguration()
        self.saved: list[RowConfiguration] = []

    async def load(self) -> RowConfiguration:  # type: ignore[override]
        return self.current.model_copy(deep=True)

    async def save(self, config: RowConfiguration) -> RowConfiguration:  # type: ignore[override]
        self.current = config
        self.saved.append(config)
        return config


def build_app(
    library: FakeLibrary, config: RowConfiguration | None = None
) -> tuple[FastAPI, MemoryConfigurationStore]:
    app = FastAPI()
    register_routes(app)
    app.state.row_engine = RowEngine(
        library=library, users=library, presenter=library, clock=lambda: NOW
    )
    store = MemoryConfigurationStore(config)
    app.state.config_store = store
    return app, store


def test_healthcheck(library: FakeLibrary) -> None:
    app, _ = build_app(library)

    with TestClient(app) as client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_rows_endpoint_lists_rows_for_known_user(library: FakeLibrary) -> None:
    library.add(3, favorite=True, genres=["Drama"], played=True)
    library.add(8, genres=["Action"], played=True)
    app, _ = build_app(library, RowConfiguration(enabled_genres=["Action"], min_genre_items=5))

    with TestClient(app) as client:
        response = client.get("/NetflixRows/Rows", params={"userId": "alice"})

    assert response.status_code == 200
    rows = response.json()
    assert [row["kind"] for row in rows] == ["MyList", "RandomPicks", "Genre"]
    my_list = rows[0]
    assert my_list["id"] == "mylist"
    assert my_list["totalItemCount"] == 3
    assert len(my_list["previewItems"]) == 3
    assert rows[2]["id"] == "genre-action"
    assert rows[2]["genre"] == "Action"


def test_rows_endpoint_returns_empty_list_for_unknown_user(library: FakeLibrary) -> None:
    library.add(10, favorite=True)
    app, _ = build_app(library)

    with TestClient(app) as client:
        response = client.get("/NetflixRows/Rows", params={"userId": "mallory"})

    assert response.status_code == 200
    assert response.json() == []


def test_rows_endpoint_requires_user_id(library: FakeLibrary) -> None:
    app, _ = build_app(library)

    with TestClient(app) as client:
        response = client.get("/NetflixRows/Rows")

    assert response.status_code == 422


def test_row_items_endpoint_pages_results(library: FakeLibrary) -> None:
    library.add(30, favorite=True)
    app, _ = build_app(library)

    with TestClient(app) as client:
        response = client.get(
            "/NetflixRows/Row/MyList/Items",
            params={"userId": "alice", "startIndex": 25, "limit": 10},
        )

    assert response.status_code == 200
    payload = response.json()
    assert payload["totalCount"] == 30
    assert payload["startIndex"] == 25
    assert len(payload["items"]) == 5


def test_row_items_endpoint_applies_caps(library: FakeLibrary) -> None:
    library.add(80, genres=["Action"])
    app, _ = build_app(library)

    with TestClient(app) as client:
        response = client.get(
            "/NetflixRows/Row/Genre/Items",
            params={"userId": "alice", "genre": "Action", "limit": 1000},
        )

    assert response.status_code == 200
    assert len(response.json()["items"]) == 25


def test_row_items_endpoint_is_silent_for_unknown_rows(library: FakeLibrary) -> None:
    library.add(5)
    app, _ = build_app(library)

    with TestClient(app) as client:
        unknown = client.get("/NetflixRows/Row/Trending/Items", params={"userId": "alice"})
        no_genre = client.get("/NetflixRows/Row/Genre/Items", params={"userId": "alice"})

    assert unknown.status_code == 200
    assert unknown.json() == {"items": [], "totalCount": 0, "startIndex": 0}
    assert no_genre.status_code == 200
    assert no_genre.json()["items"] == []


def test_seeded_random_items_are_repeatable(library: FakeLibrary) -> None:
    library.add(40)
    app, _ = build_app(library)
    params = {"userId": "alice", "seed": 99, "limit": 10}

    with TestClient(app) as client:
        first = client.get("/NetflixRows/Row/RandomPicks/Items", params=params).json()
        again = client.get("/NetflixRows/Row/RandomPicks/Items", params=params).json()

    assert first == again
    assert len(first["items"]) == 10


def test_genres_endpoint(library: FakeLibrary) -> None:
    library.add(6, genres=["Drama"])
    library.add(2, genres=["Western"])
    library.add(6, genres=["Horror"])
    app, _ = build_app(library, RowConfiguration(blacklisted_genres=["Horror"]))

    with TestClient(app) as client:
        response = client.get("/NetflixRows/Genres", params={"userId": "alice"})

    assert response.status_code == 200
    assert response.json() == ["Drama"]


def test_config_round_trip(library: FakeLibrary) -> None:
    app, store = build_app(library)

    with TestClient(app) as client:
        current = client.get("/NetflixRows/Config").json()
        current["maxRows"] = 4
        current["enabledGenres"] = ["Drama", "Comedy"]
        saved = client.post("/NetflixRows/Config", json=current)
        reloaded = client.get("/NetflixRows/Config").json()

    assert saved.status_code == 200
    assert saved.json()["maxRows"] == 4
    assert reloaded["enabledGenres"] == ["Drama", "Comedy"]
    assert len(store.saved) == 1


def test_config_rejects_invalid_payloads(library: FakeLibrary) -> None:
    app, store = build_app(library)

    with TestClient(app) as client:
        inverted = client.post(
            "/NetflixRows/Config",
            json={"minItemsPerRow": 30, "maxItemsPerRow": 10},
        )
        not_an_object = client.post("/NetflixRows/Config", json=["maxRows"])
        garbage = client.post(
            "/NetflixRows/Config",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

    assert inverted.status_code == 400
    assert not_an_object.status_code == 400
    assert garbage.status_code == 400
    assert store.saved == []
