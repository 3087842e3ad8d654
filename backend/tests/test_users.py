"""
Tests for follows, profiles and playlists.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.user import User, Follow
from app.models.playlist import Playlist, PlaylistVideo
from app.services import playlist_service
from app.services.user_service import UserService


@pytest.mark.unit
class TestFollow:
    """Follow toggle endpoint."""

    def test_follow_then_unfollow(self, client: TestClient, test_db: Session, test_user: User, creator_user: User, auth_headers):
        url = f"/api/users/{creator_user.id}/follow"

        first = client.post(url, headers=auth_headers)
        assert first.status_code == 200
        assert first.json() == {"following": True}
        assert test_db.query(Follow).count() == 1

        second = client.post(url, headers=auth_headers)
        assert second.json() == {"following": False}
        assert test_db.query(Follow).count() == 0

    def test_cannot_follow_yourself(self, client: TestClient, test_user: User, auth_headers):
        response = client.post(f"/api/users/{test_user.id}/follow", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot follow yourself"

    def test_follow_unknown_user(self, client: TestClient, auth_headers):
        response = client.post("/api/users/9999/follow", headers=auth_headers)

        assert response.status_code == 404

    def test_following_list(self, client: TestClient, creator_user: User, other_creator: User, auth_headers):
        client.post(f"/api/users/{creator_user.id}/follow", headers=auth_headers)
        client.post(f"/api/users/{other_creator.id}/follow", headers=auth_headers)

        response = client.get("/api/users/me/following", headers=auth_headers)

        assert response.status_code == 200
        assert sorted(response.json()["following"]) == sorted([creator_user.id, other_creator.id])

    def test_follow_requires_auth(self, client: TestClient, creator_user: User):
        response = client.post(f"/api/users/{creator_user.id}/follow")

        assert response.status_code == 401


@pytest.mark.unit
class TestProfiles:

    def test_me(self, client: TestClient, test_user: User, auth_headers):
        response = client.get("/api/users/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "user": {"id": test_user.id, "name": "Lena Learner", "email": "learner@example.com", "role": "learner"}
        }

    def test_public_profile_counts(self, client: TestClient, test_db: Session, test_user: User, creator_user: User, make_video, auth_headers):
        make_video(creator_user)
        make_video(creator_user)
        test_db.add(Follow(follower_id=test_user.id, followee_id=creator_user.id))
        test_db.commit()

        response = client.get(f"/api/users/{creator_user.id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == creator_user.id
        assert data["followers"] == 1
        assert data["following"] == 0
        assert data["videos"] == 2
        assert data["is_following"] is True

    def test_public_profile_anonymous(self, client: TestClient, creator_user: User):
        response = client.get(f"/api/users/{creator_user.id}")

        assert response.status_code == 200
        assert response.json()["is_following"] is None

    def test_unknown_profile(self, client: TestClient):
        response = client.get("/api/users/4242")

        assert response.status_code == 404
        assert response.json()["message"] == "User not found"


@pytest.mark.unit
class TestPlaylists:
    """Playlist create-if-absent and idempotent add."""

    def test_add_creates_playlist(self, client: TestClient, test_db: Session, test_user: User, video, auth_headers):
        response = client.post(
            "/api/users/playlist",
            json={"title": "Recursion", "videoId": video.id},
            headers=auth_headers
        )

        assert response.status_code == 200
        playlist_id = response.json()["playlistId"]
        playlist = test_db.query(Playlist).filter(Playlist.id == playlist_id).one()
        assert playlist.user_id == test_user.id
        assert playlist.title == "Recursion"
        assert [entry.video_id for entry in playlist.entries] == [video.id]

    def test_same_title_reuses_playlist(self, client: TestClient, creator_user: User, make_video, auth_headers):
        first_video = make_video(creator_user)
        second_video = make_video(creator_user)

        first = client.post("/api/users/playlist", json={"title": "Mix", "videoId": first_video.id}, headers=auth_headers)
        second = client.post("/api/users/playlist", json={"title": "Mix", "videoId": second_video.id}, headers=auth_headers)

        assert first.json()["playlistId"] == second.json()["playlistId"]

    def test_adding_same_video_twice_is_noop(self, client: TestClient, test_db: Session, video, auth_headers):
        body = {"title": "Mix", "videoId": video.id}

        client.post("/api/users/playlist", json=body, headers=auth_headers)
        response = client.post("/api/users/playlist", json=body, headers=auth_headers)

        assert response.status_code == 200
        assert test_db.query(PlaylistVideo).count() == 1

    @pytest.mark.parametrize("body", [
        {"title": "Mix"},
        {"videoId": 1},
        {"title": "  ", "videoId": 1},
    ])
    def test_missing_title_or_video(self, client: TestClient, auth_headers, body):
        response = client.post("/api/users/playlist", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Missing title or videoId"

    def test_unknown_video(self, client: TestClient, auth_headers):
        response = client.post("/api/users/playlist", json={"title": "Mix", "videoId": 999}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Video not found"

    def test_list_my_playlists(self, client: TestClient, creator_user: User, make_video, auth_headers):
        first_video = make_video(creator_user, title="First")
        second_video = make_video(creator_user, title="Second")
        client.post("/api/users/playlist", json={"title": "Mix", "videoId": first_video.id}, headers=auth_headers)
        client.post("/api/users/playlist", json={"title": "Mix", "videoId": second_video.id}, headers=auth_headers)
        client.post("/api/users/playlist", json={"title": "Later", "videoId": first_video.id}, headers=auth_headers)

        response = client.get("/api/users/me/playlists", headers=auth_headers)

        assert response.status_code == 200
        playlists = response.json()["playlists"]
        assert [p["title"] for p in playlists] == ["Mix", "Later"]
        assert [v["title"] for v in playlists[0]["videos"]] == ["First", "Second"]
        assert playlists[0]["videos"][0]["creator"] == {"id": creator_user.id, "name": "Cora Creator"}

    def test_playlists_are_per_user(self, test_db: Session, test_user: User, creator_user: User, video):
        mine = playlist_service.add_to_playlist(test_db, test_user.id, "Mix", video.id)
        theirs = playlist_service.add_to_playlist(test_db, creator_user.id, "Mix", video.id)

        assert mine != theirs
        assert [p.id for p in playlist_service.list_playlists(test_db, test_user.id)] == [mine]


@pytest.mark.unit
class TestUserService:

    def test_toggle_follow_errors(self, test_db: Session, test_user: User):
        assert UserService.toggle_follow(test_db, test_user.id, test_user.id) == (None, "Cannot follow yourself")
        assert UserService.toggle_follow(test_db, test_user.id, 12345) == (None, "User not found")

    def test_following_ids_empty(self, test_db: Session, test_user: User):
        assert UserService.get_following_ids(test_db, test_user.id) == []
