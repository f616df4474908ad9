"""Tests for server.py - Flask Annotation API."""

import pytest

from framenote.server import create_app

VIDEO = "e" * 64


@pytest.fixture
def user(client):
    return client.post("/api/users", json={"name": "Ada"}).get_json()


def create(client, user, **fields):
    body = {
        "video_id": VIDEO,
        "user_id": user["id"],
        "start_time": 30.0,
        "end_time": 45.0,
        "type": "comment",
        "text": "note",
    }
    body.update(fields)
    return client.post("/api/annotations", json=body)


class TestUsersApi:
    """Tests for /api/users."""

    def test_create_user(self, client):
        response = client.post("/api/users", json={"name": "  Ada "})
        assert response.status_code == 201
        data = response.get_json()
        assert data["name"] == "Ada"
        assert data["id"] and data["created_at"]

    def test_blank_name(self, client):
        assert client.post("/api/users", json={"name": "  "}).status_code == 400
        assert client.post("/api/users", json={}).status_code == 400

    def test_get_and_rename(self, client, user):
        assert client.get(f"/api/users/{user['id']}").get_json() == user
        renamed = client.patch(f"/api/users/{user['id']}", json={"name": "Grace"})
        assert renamed.get_json()["name"] == "Grace"
        assert client.get("/api/users/nobody").status_code == 404


class TestAnnotationsApi:
    """Tests for /api/annotations."""

    def test_create(self, client, user):
        response = create(client, user)
        assert response.status_code == 201
        data = response.get_json()
        assert data["author"] == {"id": user["id"], "name": "Ada"}
        assert data["attachments"] == []
        assert "parent_id" not in data

    def test_missing_fields(self, client, user):
        response = client.post("/api/annotations", json={"video_id": VIDEO})
        assert response.status_code == 400
        assert "user_id" in response.get_json()["fields"]

    def test_invalid_type(self, client, user):
        assert create(client, user, type="sticker").status_code == 400

    def test_inverted_range(self, client, user):
        assert create(client, user, start_time=50.0, end_time=40.0).status_code == 400

    def test_unknown_user(self, client):
        response = create(client, {"id": "nobody"})
        assert response.status_code == 404

    def test_list_ordered_by_start(self, client, user):
        create(client, user, start_time=60.0, end_time=60.0)
        create(client, user, start_time=5.0, end_time=6.0)
        create(client, user, video_id="f" * 64)
        rows = client.get(f"/api/annotations/video/{VIDEO}").get_json()
        assert [r["start_time"] for r in rows] == [5.0, 60.0]

    def test_drawing_payload_round_trip(self, client, user):
        drawing = {"version": "5.3.0", "objects": [{"type": "path", "path": [["M", 0, 0]]}]}
        create(client, user, type="drawing", text="", drawing_data=drawing)
        row = client.get(f"/api/annotations/video/{VIDEO}").get_json()[0]
        assert row["drawing_data"] == drawing
        assert row["type"] == "drawing"

    def test_patch(self, client, user):
        ann = create(client, user).get_json()
        response = client.patch(f"/api/annotations/{ann['id']}", json={"end_time": 50.0})
        assert response.get_json()["end_time"] == 50.0
        assert response.get_json()["text"] == "note"

        bad = client.patch(f"/api/annotations/{ann['id']}", json={"start_time": 70.0})
        assert bad.status_code == 400
        assert client.patch("/api/annotations/missing", json={"text": "x"}).status_code == 404

    def test_delete(self, client, user):
        ann = create(client, user).get_json()
        response = client.delete(f"/api/annotations/{ann['id']}")
        assert response.get_json() == {"success": True, "id": ann["id"]}
        assert client.delete(f"/api/annotations/{ann['id']}").status_code == 404

    def test_clear_video(self, client, user):
        create(client, user)
        create(client, user)
        response = client.delete(f"/api/annotations/video/{VIDEO}")
        assert response.get_json() == {"success": True, "deleted": 2}


class TestReplies:
    """Tests for threaded replies."""

    def test_reply_to_reply_flattened(self, client, user):
        root = create(client, user).get_json()
        reply = create(client, user, parent_id=root["id"]).get_json()
        nested = create(client, user, parent_id=reply["id"]).get_json()
        assert reply["parent_id"] == root["id"]
        assert nested["parent_id"] == root["id"]

    def test_parent_on_other_video(self, client, user):
        root = create(client, user).get_json()
        assert create(client, user, video_id="f" * 64, parent_id=root["id"]).status_code == 400

    def test_missing_parent(self, client, user):
        assert create(client, user, parent_id="ghost").status_code == 404

    def test_delete_cascades_to_replies(self, client, user):
        root = create(client, user).get_json()
        create(client, user, parent_id=root["id"])
        client.delete(f"/api/annotations/{root['id']}")
        assert client.get(f"/api/annotations/video/{VIDEO}").get_json() == []


class TestExportImport:
    """Tests for the portable export document."""

    def test_export_document(self, client, user):
        create(client, user, start_time=30.0, end_time=45.0)
        create(client, user, start_time=75.0, end_time=75.0)
        data = client.get(f"/api/annotations/export/{VIDEO}").get_json()

        assert data["exportVersion"] == "1.0"
        assert data["videoHash"] == VIDEO
        assert [a["timestamp"] for a in data["annotations"]] == ["0:30 - 0:45", "1:15"]
        assert data["annotations"][0]["author"]["name"] == "Ada"

    def test_import_attributes_to_importer(self, client, user):
        create(client, user)
        exported = client.get(f"/api/annotations/export/{VIDEO}").get_json()
        grace = client.post("/api/users", json={"name": "Grace"}).get_json()

        response = client.post(
            "/api/annotations/import",
            json={"videoHash": "f" * 64, "annotations": exported["annotations"], "userId": grace["id"]},
        )
        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] and body["imported"] == 1 and len(body["ids"]) == 1

        rows = client.get(f"/api/annotations/video/{'f' * 64}").get_json()
        assert rows[0]["author"]["name"] == "Grace"

    def test_import_requires_fields(self, client):
        response = client.post("/api/annotations/import", json={"videoHash": VIDEO})
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "entry",
        [
            {"startTime": "abc", "endTime": 3},
            {"startTime": 1, "endTime": 3, "type": "note"},
            {"endTime": 3},
            {"startTime": -1, "endTime": 3},
        ],
    )
    def test_import_rejects_malformed_entries(self, client, user, entry):
        """Bad entries are a 400 and nothing is written."""
        response = client.post(
            "/api/annotations/import",
            json={"videoHash": VIDEO, "annotations": [{"startTime": 1, "endTime": 2}, entry], "userId": user["id"]},
        )
        assert response.status_code == 400
        assert any(f.startswith("annotations.1") for f in response.get_json()["fields"])
        assert client.get(f"/api/annotations/video/{VIDEO}").get_json() == []

    def test_import_inverted_range(self, client, user):
        response = client.post(
            "/api/annotations/import",
            json={"videoHash": VIDEO, "annotations": [{"startTime": 9, "endTime": 3}], "userId": user["id"]},
        )
        assert response.status_code == 400

    def test_import_point_without_end(self, client, user):
        response = client.post(
            "/api/annotations/import",
            json={"videoHash": VIDEO, "annotations": [{"startTime": 7.5}], "userId": user["id"]},
        )
        assert response.status_code == 201
        row = client.get(f"/api/annotations/video/{VIDEO}").get_json()[0]
        assert (row["start_time"], row["end_time"], row["type"]) == (7.5, 7.5, "comment")

    def test_import_empty_list(self, client, user):
        response = client.post(
            "/api/annotations/import",
            json={"videoHash": VIDEO, "annotations": [], "userId": user["id"]},
        )
        assert response.get_json()["imported"] == 0


class TestSuggestionsApi:
    """Tests for /api/suggestions."""

    BODY = {
        "fullTranscript": "the whole talk",
        "selectionTranscript": "the selected part",
        "selectionTimeRange": {"start": 1.0, "end": 4.0},
    }

    def test_suggestions(self, temp_dir, mock_gemini_client, sample_gemini_suggestions_response):
        app = create_app(temp_dir / "s.db", gemini_client=mock_gemini_client(sample_gemini_suggestions_response))
        response = app.test_client().post("/api/suggestions", json=self.BODY)
        assert response.status_code == 200
        categories = [s["category"] for s in response.get_json()["suggestions"]]
        assert categories == ["MEME", "ANIMATION", "ILLUSTRATION"]

    def test_missing_fields(self, client):
        assert client.post("/api/suggestions", json={"fullTranscript": "x"}).status_code == 400

    def test_missing_key(self, client, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "")
        response = client.post("/api/suggestions", json=self.BODY)
        assert response.status_code == 500
        assert "GEMINI_API_KEY" in response.get_json()["error"]

    def test_generation_failure(self, temp_dir, mock_gemini_client):
        app = create_app(temp_dir / "s.db", gemini_client=mock_gemini_client(""))
        response = app.test_client().post("/api/suggestions", json=self.BODY)
        assert response.status_code == 500


class TestHealth:
    def test_health(self, client):
        assert client.get("/api/health").get_json()["status"] == "ok"
