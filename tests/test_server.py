"""Tests for the HTTP front end"""

from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from legacyparity.pipeline import EvaluationReport
from legacyparity.server import create_app

REQUEST = {"task_id": "task-1", "source_location": {"bucket": "legacy-bucket", "key": "src/interest.cbl"}}


@pytest.fixture
def pipeline():
    return Mock()


@pytest.fixture
def client(pipeline):
    return TestClient(create_app(pipeline))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_evaluate_returns_report(client, pipeline):
    pipeline.run.return_value = EvaluationReport(
        task_id="task-1",
        status_message="SUCCESS - Outputs match!",
        matched=True,
        candidate_url="https://signed/candidate",
        transcript_url="https://signed/logs",
        category="validated",
    )

    response = client.post("/evaluate", json=REQUEST)

    assert response.status_code == 200
    assert response.json() == {
        "task_id": "task-1",
        "status": "SUCCESS - Outputs match!",
        "match_confirmed": True,
        "candidate_code_url": "https://signed/candidate",
        "logs_url": "https://signed/logs",
    }
    task = pipeline.run.call_args.args[0]
    assert task.task_id == "task-1"
    assert task.source_location.bucket == "legacy-bucket"
    assert task.source_location.key == "src/interest.cbl"


def test_aborted_task_is_still_200(client, pipeline):
    pipeline.run.return_value = EvaluationReport(
        task_id="task-1",
        status_message="StorageAccessError: NoSuchKey",
        matched=False,
        failed_stage="storage",
    )

    response = client.post("/evaluate", json=REQUEST)

    assert response.status_code == 200
    assert response.json()["candidate_code_url"] is None
    assert response.json()["match_confirmed"] is False


def test_unexpected_error_is_500(client, pipeline):
    pipeline.run.side_effect = RuntimeError("disk full")

    response = client.post("/evaluate", json=REQUEST)

    assert response.status_code == 500
    body = response.json()
    assert body["task_id"] == "task-1"
    assert body["status"] == "RuntimeError: disk full"
    assert body["match_confirmed"] is False


def test_malformed_request(client, pipeline):
    response = client.post("/evaluate", json={"task_id": "task-1"})
    assert response.status_code == 422
    pipeline.run.assert_not_called()


def test_cross_origin_requests_allowed(client, pipeline):
    pipeline.run.return_value = EvaluationReport(task_id="task-1", status_message="ok", matched=True)

    response = client.post("/evaluate", json=REQUEST, headers={"Origin": "https://dashboard.example.com"})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_preflight(client):
    response = client.options("/evaluate", headers={
        "Origin": "https://dashboard.example.com",
        "Access-Control-Request-Method": "POST",
    })
    assert response.status_code == 200
    assert "POST" in response.headers["access-control-allow-methods"]


def test_default_pipeline_built_once():
    with patch("legacyparity.server.ModernizationPipeline") as mock_pipeline_cls:
        mock_pipeline_cls.return_value.run.return_value = EvaluationReport(
            task_id="task-1", status_message="ok", matched=True,
        )
        client = TestClient(create_app())
        client.post("/evaluate", json=REQUEST)
        client.post("/evaluate", json=REQUEST)

    mock_pipeline_cls.assert_called_once_with()
