import os
import shutil
import tempfile
import unittest

from fastapi.testclient import TestClient

from clients.sqlite_store import SQLiteRecordStore
from main import app
from routes.dependencies import get_content_service
from services.audio_storage import legacy_filename
from tests.fakes import CHUNK_TEXTS, FakeGateway, KindAwareGateway, QUIZ_JSON, make_service


class RoutesTestCase(unittest.TestCase):
    gateway_factory = KindAwareGateway

    def setUp(self):
        self.workdir = tempfile.mkdtemp()
        self.store = SQLiteRecordStore(os.path.join(self.workdir, "test.db"))
        self.file = self.store.insert_file("expedition.pdf", user_id="user-1")
        self.store.insert_chunks(self.file.id, CHUNK_TEXTS)
        self.service = make_service(self.workdir, self.gateway_factory(), store=self.store)
        app.dependency_overrides[get_content_service] = lambda: self.service
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        shutil.rmtree(self.workdir, ignore_errors=True)


class TestContentRoutes(RoutesTestCase):
    def test_create_quiz(self):
        response = self.client.post("/api/v1/create-quiz", json={"file_id": self.file.id})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["persisted"])
        self.assertEqual(len(body["quiz"]["questions"]), 5)

    def test_create_all_content(self):
        response = self.client.post("/api/v1/create-all-content", json={"file_id": self.file.id})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        for kind in ("quiz", "flashcards", "transcript"):
            self.assertIn(kind, body)

    def test_regenerate_content(self):
        first = self.client.post("/api/v1/create-transcript", json={"file_id": self.file.id}).json()
        second = self.client.post(
            "/api/v1/regenerate-content", json={"file_id": self.file.id, "kind": "transcript"}
        ).json()
        self.assertNotEqual(first["transcript"]["id"], second["transcript"]["id"])

    def test_missing_chunks_is_400(self):
        empty = self.store.insert_file("empty.pdf", user_id="user-1")
        response = self.client.post("/api/v1/create-flashcards", json={"file_id": empty.id})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "NO_CONTENT")

    def test_request_validation_is_422(self):
        response = self.client.post("/api/v1/create-quiz", json={})
        self.assertEqual(response.status_code, 422)
        self.assertIn("detail", response.json())

        response = self.client.post("/api/v1/regenerate-content", json={"file_id": self.file.id, "kind": "essay"})
        self.assertEqual(response.status_code, 422)


class TestExhaustedGeneration(RoutesTestCase):
    @staticmethod
    def gateway_factory():
        return FakeGateway([], default="I cannot help with that.")

    def test_exhausted_generation_is_500(self):
        response = self.client.post("/api/v1/create-quiz", json={"file_id": self.file.id})
        self.assertEqual(response.status_code, 500)
        body = response.json()
        self.assertEqual(body["error"], "GENERATION_EXHAUSTED")
        self.assertEqual(body["status_code"], 500)


class TestPodcastAndAudioRoutes(RoutesTestCase):
    def create_podcast(self):
        response = self.client.post(
            "/api/v1/create-podcast", json={"file_id": self.file.id, "user_id": "user-1"}
        )
        self.assertEqual(response.status_code, 200)
        return response.json()

    def test_create_podcast_and_serve_audio(self):
        body = self.create_podcast()
        self.assertTrue(body["audio_generated"])
        self.assertEqual(body["tier"], "procedural")
        self.assertTrue(body["persisted"])

        audio_url = body["podcast"]["sections"][0]["audio_url"]
        response = self.client.get(audio_url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "audio/wav")
        self.assertEqual(response.headers["cache-control"], "public, max-age=31536000")
        self.assertEqual(response.headers["accept-ranges"], "bytes")
        self.assertTrue(response.content.startswith(b"RIFF"))

        head = self.client.head(audio_url)
        self.assertEqual(head.status_code, 200)
        self.assertEqual(head.headers["accept-ranges"], "bytes")

    def test_podcast_for_other_user_is_404(self):
        response = self.client.post(
            "/api/v1/create-podcast", json={"file_id": self.file.id, "user_id": "someone-else"}
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "FILE_NOT_FOUND")

    def test_missing_audio_is_404(self):
        response = self.client.get("/api/v1/audio/nothing-here.wav")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "AUDIO_NOT_FOUND")

    def test_fix_audio_urls(self):
        self.create_podcast()
        response = self.client.post("/api/v1/fix-audio-urls", json={"file_id": self.file.id, "user_id": "user-1"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("1/1 sections have audio", response.json()["message"])

    def test_audio_files_listing(self):
        self.create_podcast()
        body = self.client.get("/api/v1/audio-files").json()
        self.assertTrue(body["exists"])
        self.assertEqual(len(body["audio_files"]), 1)

    def test_migrate_audio(self):
        podcast = self.create_podcast()["podcast"]
        legacy = os.path.join(self.service.audio_store.root, legacy_filename(podcast["id"], "f" * 36))
        with open(legacy, "wb") as f:
            f.write(b"RIFF")

        body = self.client.post("/api/v1/migrate-audio").json()
        self.assertEqual(body["success"], 1)
        self.assertEqual(body["failed"], 0)
        self.assertEqual(body["skipped"], 1)


if __name__ == "__main__":
    unittest.main()
