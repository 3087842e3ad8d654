"""
End-to-end tests for complete user journeys.
"""

import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient

from app.main import app
from app.services.rag_service import SummaryPipeline, get_summary_pipeline
from conftest import SAMPLE_SUMMARY, build_fake_index, build_fake_openai


def _register(client: TestClient, name: str, email: str, role: str = None) -> dict:
    body = {"name": name, "email": email, "password": "SecurePassword123!"}
    if role:
        body["role"] = role

    response = client.post("/api/auth/register", json=body)
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.mark.e2e
class TestCreatorToLearnerJourney:
    """A creator publishes, a learner follows, watches, comments, saves and studies."""

    def test_complete_journey(self, client: TestClient):
        # Step 1: Creator signs up and uploads a reel
        creator_headers = _register(client, "Grace", "grace@example.com", role="creator")
        upload_response = client.post(
            "/api/videos/upload",
            data={"title": "Binary Search", "tags": "algorithms,search", "level": "beginner", "durationSec": "42"},
            files={"video": ("binary.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")},
            headers=creator_headers
        )
        assert upload_response.status_code == 200
        video_id = upload_response.json()["video"]["id"]
        creator_id = upload_response.json()["video"]["creator_id"]

        # Step 2: Learner signs up, logs in again and follows the creator
        _register(client, "Linus", "linus@example.com")
        login_response = client.post(
            "/api/auth/login",
            json={"email": "Linus@Example.com", "password": "SecurePassword123!"}
        )
        assert login_response.status_code == 200
        learner_headers = {"Authorization": f"Bearer {login_response.json()['token']}"}

        follow_response = client.post(f"/api/users/{creator_id}/follow", headers=learner_headers)
        assert follow_response.json() == {"following": True}

        # Step 3: The reel leads the learner's feed
        feed = client.get("/api/videos/feed", headers=learner_headers).json()["feed"]
        assert feed[0]["id"] == video_id
        assert feed[0]["creator"]["name"] == "Grace"
        assert feed[0]["durationSec"] == 42

        # Step 4: The file is streamable
        assert client.get(feed[0]["url"]).status_code == 200

        # Step 5: Learner comments and the creator replies
        client.post(f"/api/videos/{video_id}/comment", json={"text": "Why O(log n)?"}, headers=learner_headers)
        thread = client.post(
            f"/api/videos/{video_id}/comment",
            json={"text": "Each step halves the range."},
            headers=creator_headers
        ).json()["comments"]
        assert [c["user_name"] for c in thread] == ["Linus", "Grace"]

        # Step 6: Learner saves the reel
        playlist_response = client.post(
            "/api/users/playlist",
            json={"title": "Algorithms", "videoId": video_id},
            headers=learner_headers
        )
        assert playlist_response.status_code == 200
        playlists = client.get("/api/users/me/playlists", headers=learner_headers).json()["playlists"]
        assert playlists[0]["videos"][0]["id"] == video_id

        # Step 7: Learner asks for a summary and quiz
        fake_openai = build_fake_openai(transcript="Binary search halves a sorted range each step. " * 30)
        fake_index = build_fake_index(["Binary search halves a sorted range"])
        app.dependency_overrides[get_summary_pipeline] = lambda: SummaryPipeline(
            openai_client=fake_openai, vector_index=fake_index
        )

        summary_response = client.get(f"/api/ai/video/{video_id}/summary", headers=learner_headers)
        assert summary_response.status_code == 200
        assert summary_response.json() == SAMPLE_SUMMARY

        # Step 8: Profile reflects the follow and the upload
        profile = client.get(f"/api/users/{creator_id}", headers=learner_headers).json()
        assert profile["followers"] == 1
        assert profile["videos"] == 1
        assert profile["is_following"] is True

        # Step 9: Learner logs out and the token stops working
        assert client.post("/api/auth/logout", headers=learner_headers).status_code == 200
        assert client.get("/api/videos/feed", headers=learner_headers).status_code == 401


@pytest.mark.e2e
class TestRoleBoundaries:

    def test_only_creators_publish(self, client: TestClient):
        learner_headers = _register(client, "Pat", "pat@example.com")

        response = client.post(
            "/api/videos/upload",
            data={"title": "Nope"},
            files={"video": ("x.mp4", b"data", "video/mp4")},
            headers=learner_headers
        )
        assert response.status_code == 403

        creator_headers = _register(client, "Pat Creates", "pat.creates@example.com", role="creator")
        response = client.post(
            "/api/videos/upload",
            data={"title": "Yes"},
            files={"video": ("x.mp4", b"data", "video/mp4")},
            headers=creator_headers
        )
        assert response.status_code == 200

    def test_unfollow_moves_creator_out_of_priority(self, client: TestClient, creator_user, other_creator, make_video, auth_headers):
        now = datetime.utcnow()
        older = make_video(creator_user, created_at=now - timedelta(days=1))
        newer = make_video(other_creator, created_at=now)

        client.post(f"/api/users/{creator_user.id}/follow", headers=auth_headers)
        feed = client.get("/api/videos/feed", headers=auth_headers).json()["feed"]
        assert [v["id"] for v in feed] == [older.id, newer.id]

        client.post(f"/api/users/{creator_user.id}/follow", headers=auth_headers)
        feed = client.get("/api/videos/feed", headers=auth_headers).json()["feed"]
        assert [v["id"] for v in feed] == [newer.id, older.id]
