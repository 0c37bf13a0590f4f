"""
API endpoint tests.

Tests cover the full two-person flow plus error responses:
- GET /sessions - code generation
- POST /sessions/{code}/join - slot assignment
- POST /sessions/{code}/preferences - genre/year preferences
- GET /sessions/{code}/movies - candidate fetch via the catalog provider
- POST /sessions/{code}/rate - ratings
- GET /sessions/{code}/recommendation - final pick
"""

import re

import pytest

from moviematch.errors import UpstreamUnavailable

from conftest import make_movie


def new_session(client) -> str:
    response = client.get("/sessions")
    assert response.status_code == 200
    return response.json()["code"]


def joined_session(client) -> str:
    code = new_session(client)
    client.post(f"/sessions/{code}/join")
    client.post(f"/sessions/{code}/join")
    return code


def rate_all(client, code, slot, ratings):
    for movie_id, rating in ratings.items():
        response = client.post(
            f"/sessions/{code}/rate",
            json={"slot": slot, "movieId": movie_id, "rating": rating},
        )
        assert response.status_code == 200


class TestCreateSession:
    def test_generate_code(self, client):
        response = client.get("/sessions")

        assert response.status_code == 200
        assert re.fullmatch(r"[A-Z0-9]{6}", response.json()["code"])

    def test_post_also_generates_code(self, client):
        response = client.post("/sessions")

        assert response.status_code == 200
        assert len(response.json()["code"]) == 6

    def test_codes_differ(self, client):
        assert new_session(client) != new_session(client)


class TestJoin:
    def test_join_order(self, client):
        code = new_session(client)

        assert client.post(f"/sessions/{code}/join").json() == {"slot": "userA"}
        assert client.post(f"/sessions/{code}/join").json() == {"slot": "userB"}

        response = client.post(f"/sessions/{code}/join")
        assert response.status_code == 409
        assert response.json()["kind"] == "SessionFull"

    def test_join_lowercase_code(self, client):
        code = new_session(client)

        response = client.post(f"/sessions/{code.lower()}/join")

        assert response.json() == {"slot": "userA"}

    def test_join_unknown_session(self, client):
        response = client.post("/sessions/ZZZZZZ/join")

        assert response.status_code == 404
        body = response.json()
        assert body["kind"] == "SessionNotFound"
        assert "ZZZZZZ" in body["error"]


class TestPreferences:
    def test_save_preferences(self, client):
        code = joined_session(client)

        response = client.post(
            f"/sessions/{code}/preferences",
            json={"slot": "userA", "genres": ["28", 35], "releaseYearCutoff": 2000},
        )

        assert response.status_code == 200
        assert response.json()["ok"] is True

        status = client.get(f"/sessions/{code}").json()
        assert status["participants"]["userA"]["genres"] == ["28", "35"]
        assert status["participants"]["userA"]["releaseYearCutoff"] == 2000

    def test_preferences_replace_previous_genres(self, client):
        code = joined_session(client)
        url = f"/sessions/{code}/preferences"

        client.post(url, json={"slot": "userB", "genres": ["28", "35"]})
        client.post(url, json={"slot": "userB", "genres": ["18"]})

        status = client.get(f"/sessions/{code}").json()
        assert status["participants"]["userB"]["genres"] == ["18"]

    def test_invalid_slot(self, client):
        code = joined_session(client)

        response = client.post(
            f"/sessions/{code}/preferences", json={"slot": "userC", "genres": ["28"]}
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidSlot"

    def test_invalid_genre_id(self, client):
        code = joined_session(client)

        response = client.post(
            f"/sessions/{code}/preferences", json={"slot": "userA", "genres": ["action"]}
        )

        assert response.status_code == 422

    def test_unknown_session(self, client):
        response = client.post(
            "/sessions/ZZZZZZ/preferences", json={"slot": "userA", "genres": ["28"]}
        )

        assert response.status_code == 404


class TestFetchMovies:
    def test_fetch_uses_union_and_min_cutoff(self, client, mock_catalog, sample_movies):
        code = joined_session(client)
        url = f"/sessions/{code}/preferences"
        client.post(url, json={"slot": "userA", "genres": ["28", "35"], "releaseYearCutoff": 1990})
        client.post(url, json={"slot": "userB", "genres": ["18"], "releaseYearCutoff": 2010})

        response = client.get(f"/sessions/{code}/movies")

        assert response.status_code == 200
        mock_catalog.discover.assert_awaited_once()
        genres, cutoff = mock_catalog.discover.call_args[0]
        assert set(genres) == {"18", "28", "35"}
        assert len(genres) == 3
        assert cutoff == 1990
        assert mock_catalog.discover.call_args[1]["limit"] == 12

        movies = response.json()["movies"]
        assert [movie["id"] for movie in movies] == [m["id"] for m in sample_movies]
        assert movies[0]["posterPath"] == "/poster11.jpg"
        assert movies[0]["releaseDate"] == "1999-03-31"

    def test_one_sided_cutoff(self, client, mock_catalog):
        code = joined_session(client)
        url = f"/sessions/{code}/preferences"
        client.post(url, json={"slot": "userA", "genres": ["28"], "releaseYearCutoff": 2000})
        client.post(url, json={"slot": "userB", "genres": ["28"]})

        client.get(f"/sessions/{code}/movies")

        assert mock_catalog.discover.call_args[0] == (["28"], 2000)

    def test_movie_list_is_stored(self, client, session_module):
        code = joined_session(client)

        client.get(f"/sessions/{code}/movies")

        assert client.get(f"/sessions/{code}").json()["movieCount"] == 3

    def test_upstream_failure_keeps_previous_list(self, client, mock_catalog):
        code = joined_session(client)
        client.get(f"/sessions/{code}/movies")

        mock_catalog.discover.side_effect = UpstreamUnavailable()
        response = client.get(f"/sessions/{code}/movies")

        assert response.status_code == 502
        assert response.json()["kind"] == "UpstreamUnavailable"
        assert client.get(f"/sessions/{code}").json()["movieCount"] == 3

    def test_unknown_session(self, client, mock_catalog):
        response = client.get("/sessions/ZZZZZZ/movies")

        assert response.status_code == 404
        mock_catalog.discover.assert_not_awaited()

    def test_catalog_called_without_session_lock(
        self, client, mock_catalog, session_module, sample_movies
    ):
        code = joined_session(client)
        lock_held = []

        async def discover(genres, cutoff, limit=None):
            lock_held.append(session_module._lock.locked())
            return sample_movies

        mock_catalog.discover.side_effect = discover

        response = client.get(f"/sessions/{code}/movies")

        assert response.status_code == 200
        assert lock_held == [False]
        assert client.get(f"/sessions/{code}").json()["movieCount"] == 3

    def test_catalog_not_initialized(self, client, monkeypatch):
        from moviematch import main

        code = joined_session(client)
        monkeypatch.setattr(main, "catalog_module", None)

        response = client.get(f"/sessions/{code}/movies")

        assert response.status_code == 503
        assert response.json() == {"error": "Service not initialized", "kind": "ServiceUnavailable"}


class TestRate:
    def test_rate(self, client):
        code = joined_session(client)

        response = client.post(
            f"/sessions/{code}/rate", json={"slot": "userA", "movieId": 11, "rating": 4}
        )

        assert response.status_code == 200
        assert client.get(f"/sessions/{code}").json()["participants"]["userA"]["ratedCount"] == 1

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, client, rating):
        code = joined_session(client)

        response = client.post(
            f"/sessions/{code}/rate", json={"slot": "userA", "movieId": 11, "rating": rating}
        )

        assert response.status_code == 422

    def test_invalid_slot(self, client):
        code = joined_session(client)

        response = client.post(
            f"/sessions/{code}/rate", json={"slot": "nobody", "movieId": 11, "rating": 3}
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidSlot"


class TestRecommendation:
    def test_full_flow(self, client):
        code = joined_session(client)
        client.get(f"/sessions/{code}/movies")
        rate_all(client, code, "userA", {11: 3, 22: 5, 33: 4})
        rate_all(client, code, "userB", {11: 3, 22: 4, 33: 5})

        response = client.get(f"/sessions/{code}/recommendation")

        assert response.status_code == 200
        body = response.json()
        # 22 and 33 both average 4.5; 22 is listed first
        assert body["recommended"]["id"] == 22
        assert body["score"] == 4.5

    def test_incomplete_ratings(self, client):
        code = joined_session(client)
        client.get(f"/sessions/{code}/movies")
        rate_all(client, code, "userA", {11: 3, 22: 5, 33: 4})
        rate_all(client, code, "userB", {11: 3})

        response = client.get(f"/sessions/{code}/recommendation")

        assert response.status_code == 409
        body = response.json()
        assert body["kind"] == "IncompleteRatings"
        assert body["missing"] == {"userB": [22, 33]}

    def test_permissive_variant(self, client, app_config):
        app_config("require_complete_ratings", False)
        code = joined_session(client)
        client.get(f"/sessions/{code}/movies")
        rate_all(client, code, "userA", {33: 5})

        response = client.get(f"/sessions/{code}/recommendation")

        assert response.status_code == 200
        assert response.json()["recommended"]["id"] == 33

    def test_empty_movie_list(self, client):
        code = joined_session(client)

        response = client.get(f"/sessions/{code}/recommendation")

        assert response.status_code == 200
        body = response.json()
        assert body["recommended"] is None
        assert body["message"]

    def test_unknown_session(self, client):
        assert client.get("/sessions/ZZZZZZ/recommendation").status_code == 404


class TestSessionStatus:
    def test_status(self, client):
        code = new_session(client)
        client.post(f"/sessions/{code}/join")

        body = client.get(f"/sessions/{code}").json()

        assert body["code"] == code
        assert body["full"] is False
        assert body["participants"]["userA"]["joined"] is True
        assert body["participants"]["userB"]["joined"] is False
        assert body["movieCount"] == 0
        assert body["createdAt"]

    def test_end_session(self, client):
        code = new_session(client)

        assert client.delete(f"/sessions/{code}").status_code == 204
        assert client.get(f"/sessions/{code}").status_code == 404
        assert client.delete(f"/sessions/{code}").status_code == 404


class TestHealth:
    def test_healthz(self, client):
        assert client.get("/healthz").json() == {"status": "ok"}

    def test_health(self, client):
        new_session(client)

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["active_sessions"] == 1
        assert body["catalog"] == "configured"

    def test_health_not_initialized(self, client, monkeypatch):
        from moviematch import main

        monkeypatch.setattr(main, "session_module", None)

        assert client.get("/health").status_code == 503

    def test_metrics(self, client):
        new_session(client)
        new_session(client)

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "moviematch_active_sessions 2" in response.text

    def test_not_initialized(self, client, monkeypatch):
        from moviematch import main

        monkeypatch.setattr(main, "session_module", None)

        response = client.get("/sessions")

        assert response.status_code == 503
        assert response.json() == {"error": "Service not initialized", "kind": "ServiceUnavailable"}


def test_make_movie_helper_matches_api_model():
    from moviematch.modules.api import Movie

    assert Movie(**make_movie(1)).id == 1
