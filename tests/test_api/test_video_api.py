from fastapi import status


class TestUploadEndpoint:
    """Test POST /api/videos"""

    def test_upload_creates_pending_video(self, test_client, register_user, upload_video, upload_dir):
        greta = register_user("greta")

        video = upload_video(greta["user"]["id"], title="Solar roof", topic="energy")

        assert video["status"] == "pending"
        assert video["title"] == "Solar roof"
        assert video["topic"] == "energy"
        assert (video["likes"], video["views"], video["comments"], video["shares"]) == (0, 0, 0, 0)
        assert video["video_url"].startswith("/uploads/")
        assert (upload_dir / video["video_url"].rsplit("/", 1)[1]).exists()

        user = test_client.get(f"/api/users/{greta['user']['id']}").json()
        assert user["points"] == 10

    def test_uploaded_file_is_served(self, test_client, register_user, upload_video):
        greta = register_user("greta")
        video = upload_video(greta["user"]["id"])

        response = test_client.get(video["video_url"])

        assert response.status_code == status.HTTP_200_OK
        assert response.content == b"fake-video-bytes"

    def test_missing_upload_is_404(self, test_client):
        response = test_client.get("/uploads/nothing-here.mp4")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "UPLOAD_NOT_FOUND"

    def test_upload_for_unknown_user(self, test_client, upload_dir):
        response = test_client.post(
            "/api/videos",
            files={"video": ("clip.mp4", b"bytes", "video/mp4")},
            data={"user_id": "999", "title": "Ghost", "topic": "energy"},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "USER_NOT_FOUND"
        # the stored file is removed again
        assert list(upload_dir.iterdir()) == []

    def test_upload_without_file(self, test_client, register_user):
        greta = register_user("greta")

        response = test_client.post(
            "/api/videos",
            data={"user_id": str(greta["user"]["id"]), "title": "No file", "topic": "energy"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_upload_with_missing_title(self, test_client, register_user):
        greta = register_user("greta")

        response = test_client.post(
            "/api/videos",
            files={"video": ("clip.mp4", b"bytes", "video/mp4")},
            data={"user_id": str(greta["user"]["id"]), "topic": "energy"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        fields = [f["field"] for f in response.json()["error"]["details"]["fields"]]
        assert "title" in fields


class TestFeedEndpoint:
    """Test GET /api/videos"""

    def test_only_approved_newest_first(self, test_client, register_user, upload_video, approve_video):
        greta = register_user("greta")
        first = upload_video(greta["user"]["id"], title="first")
        second = upload_video(greta["user"]["id"], title="second")
        upload_video(greta["user"]["id"], title="pending")
        approve_video(first["id"])
        approve_video(second["id"])

        response = test_client.get("/api/videos")

        assert response.status_code == status.HTTP_200_OK
        assert [v["title"] for v in response.json()] == ["second", "first"]

    def test_pagination(self, test_client, register_user, upload_video, approve_video):
        greta = register_user("greta")
        for title in ("a", "b", "c"):
            approve_video(upload_video(greta["user"]["id"], title=title)["id"])

        page_one = test_client.get("/api/videos", params={"limit": 2, "offset": 0}).json()
        page_two = test_client.get("/api/videos", params={"limit": 2, "offset": 2}).json()

        assert [v["title"] for v in page_one] == ["c", "b"]
        assert [v["title"] for v in page_two] == ["a"]

    def test_topic_filter(self, test_client, register_user, upload_video, approve_video):
        greta = register_user("greta")
        approve_video(upload_video(greta["user"]["id"], title="panels", topic="energy")["id"])
        approve_video(upload_video(greta["user"]["id"], title="bins", topic="waste")["id"])

        waste = test_client.get("/api/videos", params={"topic": "waste"}).json()
        everything = test_client.get("/api/videos", params={"topic": "all"}).json()

        assert [v["title"] for v in waste] == ["bins"]
        assert len(everything) == 2

    def test_invalid_limit(self, test_client):
        response = test_client.get("/api/videos", params={"limit": 0})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_user_videos_include_pending(self, test_client, register_user, upload_video):
        greta = register_user("greta")
        upload_video(greta["user"]["id"], title="mine")

        response = test_client.get(f"/api/users/{greta['user']['id']}/videos")

        assert [v["status"] for v in response.json()] == ["pending"]


class TestSingleVideoEndpoints:
    """Test view, like and fetch endpoints"""

    def test_get_counts_a_view(self, test_client, register_user, upload_video):
        greta = register_user("greta")
        video = upload_video(greta["user"]["id"])

        test_client.get(f"/api/videos/{video['id']}")
        response = test_client.get(f"/api/videos/{video['id']}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["views"] == 2

    def test_view_endpoint(self, test_client, register_user, upload_video):
        greta = register_user("greta")
        video = upload_video(greta["user"]["id"])

        response = test_client.post(f"/api/videos/{video['id']}/view")

        assert response.json()["views"] == 1

    def test_like_awards_owner(self, test_client, register_user, upload_video):
        greta = register_user("greta")
        video = upload_video(greta["user"]["id"])

        for _ in range(3):
            response = test_client.post(f"/api/videos/{video['id']}/like")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["likes"] == 3
        assert test_client.get(f"/api/users/{greta['user']['id']}").json()["points"] == 13

    def test_unknown_video(self, test_client):
        for response in (
            test_client.get("/api/videos/999"),
            test_client.post("/api/videos/999/like"),
            test_client.post("/api/videos/999/view"),
        ):
            assert response.status_code == status.HTTP_404_NOT_FOUND
            assert response.json()["error"]["code"] == "VIDEO_NOT_FOUND"


class TestSavedVideos:
    """Test bookmarks"""

    def test_save_requires_authentication(self, test_client, register_user, upload_video):
        greta = register_user("greta")
        video = upload_video(greta["user"]["id"])

        response = test_client.post(f"/api/videos/{video['id']}/save", json={"action": "save"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"

    def test_save_is_idempotent_and_unsave_round_trips(self, test_client, register_user, upload_video):
        greta = register_user("greta")
        david = register_user("david")
        video = upload_video(greta["user"]["id"])
        url = f"/api/videos/{video['id']}/save"

        first = test_client.post(url, json={"action": "save"}, headers=david["headers"])
        test_client.post(url, headers=david["headers"])

        assert first.json() == {"success": True, "action": "save", "saved": True}
        saved = test_client.get("/api/users/saved-videos", headers=david["headers"]).json()
        assert [v["id"] for v in saved] == [video["id"]]

        response = test_client.post(url, json={"action": "unsave"}, headers=david["headers"])

        assert response.json()["saved"] is False
        assert test_client.get("/api/users/saved-videos", headers=david["headers"]).json() == []

    def test_invalid_action(self, test_client, register_user, upload_video):
        greta = register_user("greta")
        video = upload_video(greta["user"]["id"])

        response = test_client.post(
            f"/api/videos/{video['id']}/save", json={"action": "pin"}, headers=greta["headers"]
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_saved_videos_requires_authentication(self, test_client):
        response = test_client.get("/api/users/saved-videos")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_video_reports_saved_state_for_caller(self, test_client, register_user, upload_video):
        greta = register_user("greta")
        david = register_user("david")
        video = upload_video(greta["user"]["id"])
        url = f"/api/videos/{video['id']}"

        test_client.post(f"{url}/save", headers=david["headers"])

        assert test_client.get(url, headers=david["headers"]).json()["saved"] is True
        assert test_client.get(url, headers=greta["headers"]).json()["saved"] is False
        assert test_client.get(url).json()["saved"] is None
