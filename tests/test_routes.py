"""Tests for the HTTP API using FastAPI's TestClient."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from songlib.config import Settings
from songlib.errors import MetadataNotFoundError, RequestTimeoutError, ServiceError
from songlib.models.metadata import SongMetadata
from songlib.models.song import Song
from songlib.web import create_app
from songlib.web.routes import get_lookup_client

PREFIX = "/api/v1"


class FakeLookup:
    """Stands in for the metadata lookup service."""

    def __init__(self):
        self.error = None
        self.calls = []

    def get_song_info(self, artist: str, title: str) -> SongMetadata:
        self.calls.append((artist, title))
        if self.error is not None:
            raise self.error
        return SongMetadata(
            release_date=date(2006, 7, 16),
            lyrics=f"Lyrics of {title}",
            url=f"https://example.com/{title}",
        )


@pytest.fixture
def lookup():
    return FakeLookup()


@pytest.fixture
def client(tmp_path, lookup):
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'api.db'}", api_prefix=PREFIX)
    app = create_app(settings)
    app.dependency_overrides[get_lookup_client] = lambda: lookup
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def add_song(client):
    """Insert a song directly through the service."""

    def _add(title="Song A", artist="Artist X", released=date(2020, 1, 1)) -> Song:
        song = Song(
            title=title,
            artist=artist,
            lyrics="Some lyrics",
            release_date=released,
            url="https://song.url",
        )
        return client.app.state.song_service.create_song(song)

    return _add


class TestCreate:
    def test_creates_song_with_metadata(self, client, lookup):
        response = client.post(f"{PREFIX}/songs", json={"artist": "Muse", "title": "Uprising"})

        assert response.status_code == 201
        body = response.json()
        assert body["id"] > 0
        assert body["title"] == "Uprising"
        assert body["artist"] == "Muse"
        assert body["lyrics"] == "Lyrics of Uprising"
        assert body["release_date"] == "2006-07-16"
        assert lookup.calls == [("Muse", "Uprising")]

    def test_created_song_is_retrievable(self, client):
        created = client.post(f"{PREFIX}/songs", json={"artist": "Muse", "title": "Uprising"})

        response = client.get(f"{PREFIX}/songs/{created.json()['id']}")

        assert response.status_code == 200
        assert response.json() == created.json()

    def test_duplicate_is_conflict(self, client):
        client.post(f"{PREFIX}/songs", json={"artist": "Muse", "title": "Uprising"})

        response = client.post(f"{PREFIX}/songs", json={"artist": "Muse", "title": "Uprising"})

        assert response.status_code == 409
        assert response.json()["error"] == "ConflictError"

    @pytest.mark.parametrize(
        "body",
        [{"artist": "Muse"}, {"title": "Uprising"}, {"artist": "", "title": "Uprising"}, {}],
    )
    def test_invalid_body_is_bad_request(self, client, lookup, body):
        response = client.post(f"{PREFIX}/songs", json=body)

        assert response.status_code == 400
        assert lookup.calls == []

    def test_metadata_not_found(self, client, lookup):
        lookup.error = MetadataNotFoundError("no metadata found")

        response = client.post(f"{PREFIX}/songs", json={"artist": "Nobody", "title": "Nothing"})

        assert response.status_code == 404

    def test_lookup_failure_is_bad_gateway(self, client, lookup):
        lookup.error = ServiceError("metadata lookup returned status 500")

        response = client.post(f"{PREFIX}/songs", json={"artist": "Muse", "title": "Uprising"})

        assert response.status_code == 502

    def test_lookup_timeout(self, client, lookup):
        lookup.error = RequestTimeoutError("metadata lookup timed out")

        response = client.post(f"{PREFIX}/songs", json={"artist": "Muse", "title": "Uprising"})

        assert response.status_code == 504


class TestList:
    def test_filters_by_artist_and_after(self, client, add_song):
        add_song("Song A", "Artist X", date(2020, 1, 1))
        add_song("Song B", "Artist X", date(2021, 6, 15))

        response = client.get(
            f"{PREFIX}/songs", params={"artist": "Artist X", "after": "2020-06-01"}
        )

        assert response.status_code == 200
        assert [s["title"] for s in response.json()] == ["Song B"]

    def test_paginates(self, client, add_song):
        for i in range(5):
            add_song(f"Song {i}", "Artist X")

        first = client.get(f"{PREFIX}/songs", params={"page": 1, "limit": 2}).json()
        third = client.get(f"{PREFIX}/songs", params={"page": 3, "limit": 2}).json()

        assert [s["title"] for s in first] == ["Song 0", "Song 1"]
        assert [s["title"] for s in third] == ["Song 4"]

    def test_default_page_size_is_ten(self, client, add_song):
        for i in range(12):
            add_song(f"Song {i}", "Artist X")

        assert len(client.get(f"{PREFIX}/songs").json()) == 10

    @pytest.mark.parametrize(
        "params",
        [
            {"after": "01.06.2020"},
            {"before": "tomorrow"},
            {"page": "0"},
            {"limit": "0"},
            {"page": "one"},
            {"group": "Artist X"},
        ],
    )
    def test_bad_query_is_bad_request(self, client, params):
        response = client.get(f"{PREFIX}/songs", params=params)

        assert response.status_code == 400


class TestGet:
    def test_unknown_id_is_not_found(self, client):
        assert client.get(f"{PREFIX}/songs/999").status_code == 404

    def test_non_integer_id_is_bad_request(self, client):
        assert client.get(f"{PREFIX}/songs/abc").status_code == 400


class TestPut:
    @pytest.fixture
    def full_body(self):
        return {
            "artist": "Coolio",
            "title": "Gangsta's Paradise",
            "lyrics": "As I walk through the valley",
            "release_date": "1995-11-07",
            "url": "https://www.youtube.com/watch?v=fPO76Jlnz6c",
        }

    def test_replaces_existing(self, client, add_song, full_body):
        song = add_song()

        response = client.put(f"{PREFIX}/songs/{song.id}", json=full_body)

        assert response.status_code == 200
        assert response.json() == {"id": song.id, **full_body}

    def test_creates_when_absent(self, client, full_body):
        response = client.put(f"{PREFIX}/songs/12345", json=full_body)

        assert response.status_code == 201
        created_id = response.json()["id"]
        assert client.get(f"{PREFIX}/songs/{created_id}").json()["title"] == full_body["title"]

    def test_missing_field_is_bad_request(self, client, add_song, full_body):
        song = add_song()
        del full_body["lyrics"]

        assert client.put(f"{PREFIX}/songs/{song.id}", json=full_body).status_code == 400

    def test_duplicate_is_conflict(self, client, add_song, full_body):
        add_song(full_body["title"], full_body["artist"])
        other = add_song("Other", "Other Artist")

        response = client.put(f"{PREFIX}/songs/{other.id}", json=full_body)

        assert response.status_code == 409


class TestPatch:
    def test_updates_only_given_fields(self, client, add_song):
        song = add_song()

        response = client.patch(f"{PREFIX}/songs/{song.id}", json={"lyrics": "New lyrics"})

        assert response.status_code == 200
        body = response.json()
        assert body["lyrics"] == "New lyrics"
        assert body["title"] == song.title
        assert body["release_date"] == "2020-01-01"

    def test_empty_values_leave_fields_unchanged(self, client, add_song):
        song = add_song()

        response = client.patch(
            f"{PREFIX}/songs/{song.id}", json={"lyrics": "", "release_date": ""}
        )

        assert response.status_code == 200
        assert response.json()["lyrics"] == "Some lyrics"
        assert response.json()["release_date"] == "2020-01-01"

    def test_updates_release_date(self, client, add_song):
        song = add_song()

        response = client.patch(f"{PREFIX}/songs/{song.id}", json={"release_date": "2001-09-11"})

        assert response.json()["release_date"] == "2001-09-11"
        assert client.get(f"{PREFIX}/songs/{song.id}").json()["release_date"] == "2001-09-11"

    def test_unknown_id_is_not_found(self, client):
        assert client.patch(f"{PREFIX}/songs/999", json={"lyrics": "x"}).status_code == 404

    def test_bad_date_is_bad_request(self, client, add_song):
        song = add_song()

        response = client.patch(f"{PREFIX}/songs/{song.id}", json={"release_date": "11.09.2001"})

        assert response.status_code == 400


class TestDelete:
    def test_deletes(self, client, add_song):
        song = add_song()

        response = client.delete(f"{PREFIX}/songs/{song.id}")

        assert response.status_code == 200
        assert client.get(f"{PREFIX}/songs/{song.id}").status_code == 404

    def test_unknown_id_is_not_found(self, client):
        assert client.delete(f"{PREFIX}/songs/999").status_code == 404


def test_health(client):
    response = client.get(f"{PREFIX}/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestOutOfRangeNumbers:
    """Integers wider than the storage column are rejected before reaching the database."""

    @pytest.mark.parametrize(
        "params",
        [
            {"page": str(10**19)},
            {"limit": str(10**20)},
            {"page": str(2**62), "limit": "10"},
        ],
    )
    def test_list_is_bad_request(self, client, params):
        response = client.get(f"{PREFIX}/songs", params=params)

        assert response.status_code == 400
        assert response.json()["error"]

    @pytest.mark.parametrize("method", ["get", "patch", "delete"])
    def test_song_id_is_bad_request(self, client, method):
        kwargs = {"json": {"lyrics": "x"}} if method == "patch" else {}

        response = client.request(method.upper(), f"{PREFIX}/songs/{10**20}", **kwargs)

        assert response.status_code == 400
        assert response.json()["error"]

    def test_put_song_id_is_bad_request(self, client):
        body = {
            "artist": "Muse",
            "title": "Uprising",
            "lyrics": "Paranoia is in bloom",
            "release_date": "2009-09-07",
            "url": "https://song.url",
        }

        response = client.put(f"{PREFIX}/songs/{10**20}", json=body)

        assert response.status_code == 400
        assert response.json()["error"]
