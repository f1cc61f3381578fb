from fastapi.testclient import TestClient

from app.main import app


class TestApp:
    def test_liveness(self):
        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_bots_registered_on_startup(self):
        with TestClient(app) as client:
            response = client.get("/bots/EasySystemQuillSBA/health")

        assert response.status_code == 200
        assert response.json()["instance_id"] == "es-quill-sba-bot"
