"""
End-to-end flows through the HTTP API.
"""
from fastapi import status


def points_of(client, user_id):
    return client.get(f"/api/users/{user_id}").json()["points"]


class TestVideoLifecycle:
    """Upload, approval and likes as seen by the uploader's score"""

    def test_upload_approve_like(self, test_client, register_user, upload_video, approve_video):
        uploader = register_user("greta")
        uploader_id = uploader["user"]["id"]
        assert points_of(test_client, uploader_id) == 0

        video = upload_video(uploader_id)
        assert video["status"] == "pending"
        assert points_of(test_client, uploader_id) == 10

        approved = approve_video(video["id"])
        assert approved["status"] == "approved"
        assert points_of(test_client, uploader_id) == 30

        liked = test_client.post(f"/api/videos/{video['id']}/like")
        assert liked.json()["likes"] == 1
        assert points_of(test_client, uploader_id) == 31

    def test_approved_video_appears_in_feed(self, test_client, register_user, upload_video, approve_video):
        uploader = register_user("greta")
        video = upload_video(uploader["user"]["id"])

        assert test_client.get("/api/videos").json() == []
        approve_video(video["id"])

        assert [v["id"] for v in test_client.get("/api/videos").json()] == [video["id"]]


class TestCommentFlow:
    """A comment bumps the counter and the commenter's score"""

    def test_comment(self, test_client, register_user, upload_video):
        owner = register_user("greta")
        commenter = register_user("david")
        video = upload_video(owner["user"]["id"])

        response = test_client.post(
            "/api/comments",
            json={
                "video_id": video["id"],
                "user_id": commenter["user"]["id"],
                "content": "Where did you buy the panels?",
            },
        )
        assert response.status_code == status.HTTP_201_CREATED
        comment_id = response.json()["id"]

        assert test_client.get(f"/api/videos/{video['id']}").json()["comments"] == 1
        assert points_of(test_client, commenter["user"]["id"]) == 1
        comments = test_client.get(f"/api/videos/{video['id']}/comments").json()
        assert comments[0]["id"] == comment_id


class TestObservability:
    """Correlation ids and timing headers on every response"""

    def test_headers_on_success(self, test_client):
        response = test_client.get("/healthcheck", headers={"X-Correlation-ID": "trace-123"})

        assert response.headers["X-Correlation-ID"] == "trace-123"
        assert float(response.headers["X-Process-Time"]) >= 0

    def test_error_body_carries_correlation_id(self, test_client):
        response = test_client.get("/api/videos/999", headers={"X-Correlation-ID": "trace-404"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        error = response.json()["error"]
        assert error["correlation_id"] == "trace-404"
        assert error["type"] == "VideoNotFoundError"
        assert error["message"] == "Video not found: 999"


class TestHealth:
    """Health and monitoring endpoints"""

    def test_healthcheck(self, test_client):
        data = test_client.get("/healthcheck").json()

        assert data["status"] == "healthy"
        assert data["service"] == "EcoSnap API"

    def test_ping(self, test_client):
        assert test_client.get("/monitoring/ping").json()["message"] == "pong"

    def test_detailed(self, test_client):
        data = test_client.get("/monitoring/detailed").json()

        assert data["status"] == "healthy"
        storage = data["components"]["storage"]
        assert storage["backend"] == "memory"
        assert storage["records"]["users"] == 1  # seeded admin
