"""Tests for the HTTP API."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from wandascore.config import Config
from wandascore.container import DependencyContainer
from wandascore.exceptions import ChatServiceError, ContentSourceError
from wandascore.jobs import ScorePageJob
from wandascore.models import FACTORS
from wandascore.service import ScoreService
from wandascore.web.main import create_app, get_job_queue, get_service


class RecordingJobQueue:
    def __init__(self) -> None:
        self.titles = []

    async def enqueue(self, page_title: str) -> ScorePageJob:
        self.titles.append(page_title)
        return ScorePageJob(page_title, enqueued_at=datetime(2024, 5, 1, tzinfo=timezone.utc))


class BrokenContentSource:
    async def get_page(self, title):
        raise ContentSourceError("wiki is down")


@pytest.fixture
def container(tmp_path):
    config = Config(wiki={"api_url": "https://wiki.example.org/w/api.php"}, storage={"db_path": tmp_path / "scores.db"})
    return DependencyContainer(config=config)


@pytest.fixture
def job_queue():
    return RecordingJobQueue()


@pytest.fixture
def client(container, service, job_queue):
    app = create_app(container)
    app.dependency_overrides[get_service] = lambda: service
    app.dependency_overrides[get_job_queue] = lambda: job_queue
    with TestClient(app) as test_client:
        yield test_client


class TestGetScore:
    def test_returns_report(self, client):
        response = client.get("/api/wandascore", params={"page": "River Town"})

        assert response.status_code == 200
        report = response.json()["wandascore"]
        assert report["overall_score"] == 90
        assert list(report["factors"]) == list(FACTORS)
        assert report["factors"]["grammar"]["details"] == "<p>grammar looks fine.</p>"
        assert report["page_id"] == 7
        assert response.headers["X-Request-ID"]

    def test_second_request_is_cached(self, client, chat_client):
        client.get("/api/wandascore", params={"page": "River Town"})
        client.get("/api/wandascore", params={"page": "River Town"})

        assert len(chat_client.calls) == len(FACTORS)

    def test_refresh_recomputes(self, client, chat_client):
        client.get("/api/wandascore", params={"page": "River Town"})
        client.get("/api/wandascore", params={"page": "River Town", "refresh": "true"})

        assert len(chat_client.calls) == 2 * len(FACTORS)

    def test_missing_page(self, client):
        response = client.get("/api/wandascore", params={"page": "No Such Page"})

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "missingtitle"

    def test_page_without_content(self, client):
        response = client.get("/api/wandascore", params={"page": "Empty Redirect"})

        assert response.status_code == 500
        assert response.json()["detail"]["code"] == "wandascore-error-generation-failed"

    def test_wiki_failure(self, container, aggregator, memory_cache):

        app = create_app(container)
        app.dependency_overrides[get_service] = lambda: ScoreService(BrokenContentSource(), aggregator, memory_cache)
        with TestClient(app) as test_client:
            response = test_client.get("/api/wandascore", params={"page": "River Town"})

        assert response.status_code == 500
        assert "wiki is down" in response.json()["detail"]["info"]

    def test_failing_factors_still_score(self, client, chat_client):
        chat_client.replies = {name: ChatServiceError("offline") for name in FACTORS}

        response = client.get("/api/wandascore", params={"page": "River Town"})

        assert response.status_code == 200
        assert response.json()["wandascore"]["factors"]["bias"]["score"] == 80

    def test_page_parameter_is_required(self, client):
        assert client.get("/api/wandascore").status_code == 422


class TestJobs:
    def test_enqueue(self, client, job_queue):
        response = client.post("/api/wandascore/jobs", json={"page": "River Town"})

        assert response.status_code == 202
        assert response.json() == {"queued": "River Town", "enqueued_at": "2024-05-01T00:00:00+00:00"}
        assert job_queue.titles == ["River Town"]

    def test_empty_title_rejected(self, client, job_queue):
        response = client.post("/api/wandascore/jobs", json={"page": ""})

        assert response.status_code == 422
        assert job_queue.titles == []


class TestOperations:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["container"]["is_running"] is True

    def test_metrics(self, client):
        client.get("/api/wandascore", params={"page": "River Town"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "wandascore_chat_requests_total" in response.text
