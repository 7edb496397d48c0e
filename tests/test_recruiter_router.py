from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import make_job_doc
from zigzig.middleware.error_handlers import register_exception_handlers
from zigzig.models.recruiter import CandidateMatch, JobRequirements, MatchRunResult
from zigzig.routers import portfolios, recruiter
from zigzig.utils.exceptions import ExtractionError, JobNotFoundError

HEADERS = {"X-User-Id": "recruiter-1"}


@pytest.fixture
def extractor():
    mock = MagicMock()
    mock.extract_requirements.return_value = JobRequirements(
        title="Backend Engineer", required_skills=["Python", "AWS"], experience_level="senior"
    )
    return mock


@pytest.fixture
def orchestrator():
    mock = MagicMock()
    mock.compute_matches = AsyncMock(return_value=MatchRunResult(job_id="job-1", total_matches=7))
    return mock


@pytest.fixture
def test_app(store, extractor, orchestrator):
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(recruiter.router, prefix="/api/recruiter")
    app.include_router(portfolios.router, prefix="/api/portfolios")
    app.dependency_overrides[recruiter.get_store] = lambda: store
    app.dependency_overrides[recruiter.get_extractor] = lambda: extractor
    app.dependency_overrides[recruiter.get_orchestrator] = lambda: orchestrator
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


def seed_match(collections, match_id="m1", score=70.0, job_id="job-1"):
    match = CandidateMatch(id=match_id, job_id=job_id, candidate_user_id="cand-1",
                           portfolio_id="p1", match_score=score)
    collections.matches.docs.append(match.model_dump())


class TestAuthAndErrors:

    def test_missing_user_header_is_401(self, client):
        response = client.post("/api/recruiter/compute-matches", json={"jobId": "job-1"})
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Unauthorized"
        assert body["request_id"]

    def test_malformed_body_is_400(self, client):
        response = client.post(
            "/api/recruiter/parse-job",
            content="{not json",
            headers={**HEADERS, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestParseJob:

    def test_success_saves_job(self, client, collections, extractor):
        response = client.post(
            "/api/recruiter/parse-job",
            json={"description": "Senior Python engineer on AWS", "company": "Acme"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["extracted_requirements"]["required_skills"] == ["Python", "AWS"]
        assert body["job"]["title"] == "Backend Engineer"
        assert body["job"]["recruiter_id"] == "recruiter-1"

        saved = collections.jobs.docs[0]
        assert saved["id"] == body["job"]["id"]
        assert saved["company"] == "Acme"
        extractor.extract_requirements.assert_called_once_with("Senior Python engineer on AWS", None, "Acme")

    def test_empty_description_is_400(self, client):
        response = client.post("/api/recruiter/parse-job", json={"description": " "}, headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["error"] == "Job description is required"

    def test_extraction_failure_is_500(self, client, extractor, collections):
        extractor.extract_requirements.side_effect = ExtractionError(models=["a", "b"])
        response = client.post("/api/recruiter/parse-job", json={"description": "Role"}, headers=HEADERS)
        assert response.status_code == 500
        assert response.json()["error"] == "Failed to extract job requirements"
        assert collections.jobs.docs == []


class TestComputeMatches:

    def test_success(self, client, orchestrator):
        response = client.post("/api/recruiter/compute-matches", json={"jobId": "job-1"}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json() == {"success": True, "total_matches": 7, "job_id": "job-1"}
        orchestrator.compute_matches.assert_awaited_once_with("job-1", recruiter_id="recruiter-1")

    def test_missing_job_id_is_400(self, client):
        response = client.post("/api/recruiter/compute-matches", json={}, headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["error"] == "jobId is required"

    def test_unknown_job_is_404(self, client, orchestrator):
        orchestrator.compute_matches.side_effect = JobNotFoundError("job-9")
        response = client.post("/api/recruiter/compute-matches", json={"jobId": "job-9"}, headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["error"] == "Job not found"


class TestUpdateMatchStatus:

    @patch("zigzig.routers.recruiter.run_detached")
    def test_success_logs_activity(self, mock_detached, client, collections):
        collections.jobs.docs.append(make_job_doc())
        seed_match(collections)

        response = client.put(
            "/api/recruiter/update-match-status",
            json={"matchId": "m1", "status": "liked", "jobId": "job-1", "candidateUserId": "cand-1"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "matchId": "m1", "status": "liked"}
        assert collections.matches.docs[0]["status"] == "liked"
        assert mock_detached.call_count == 1
        mock_detached.call_args[0][0].close()

    @patch("zigzig.routers.recruiter.run_detached")
    def test_activity_skipped_without_candidate(self, mock_detached, client, collections):
        collections.jobs.docs.append(make_job_doc())
        seed_match(collections)
        response = client.put(
            "/api/recruiter/update-match-status", json={"matchId": "m1", "status": "passed"}, headers=HEADERS
        )
        assert response.status_code == 200
        mock_detached.assert_not_called()

    @pytest.mark.parametrize("payload", [
        {"matchId": "m1", "status": "pending"},
        {"matchId": "m1", "status": "maybe"},
        {"status": "liked"},
        {"matchId": "m1"},
    ])
    def test_invalid_payload_is_400(self, client, payload):
        response = client.put("/api/recruiter/update-match-status", json=payload, headers=HEADERS)
        assert response.status_code == 400

    def test_unknown_match_is_404(self, client):
        response = client.put(
            "/api/recruiter/update-match-status", json={"matchId": "ghost", "status": "liked"}, headers=HEADERS
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Match not found"


class TestReads:

    def test_list_matches_best_first(self, client, collections):
        collections.jobs.docs.append(make_job_doc())
        seed_match(collections, "low", score=30)
        seed_match(collections, "high", score=95)

        response = client.get("/api/recruiter/jobs/job-1/matches", headers=HEADERS)
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [m["id"] for m in body["matches"]] == ["high", "low"]

    def test_list_matches_of_foreign_job_is_404(self, client, collections):
        collections.jobs.docs.append(make_job_doc(recruiter_id="someone-else"))
        response = client.get("/api/recruiter/jobs/job-1/matches", headers=HEADERS)
        assert response.status_code == 404

    def test_bad_status_filter_is_400(self, client, collections):
        collections.jobs.docs.append(make_job_doc())
        response = client.get("/api/recruiter/jobs/job-1/matches?status=weird", headers=HEADERS)
        assert response.status_code == 400

    def test_stats(self, client, collections):
        collections.jobs.docs.append(make_job_doc())
        seed_match(collections, "a", score=80)
        response = client.get("/api/recruiter/jobs/job-1/stats", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["total_matches"] == 1
        assert response.json()["average_match_score"] == 80.0

    @patch("zigzig.routers.recruiter.run_detached")
    def test_view_match(self, mock_detached, client, collections):
        collections.jobs.docs.append(make_job_doc())
        seed_match(collections)

        response = client.post("/api/recruiter/matches/m1/view", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["match"]["viewed_at"] is not None
        assert collections.jobs.docs[0]["viewed_count"] == 1
        mock_detached.call_args[0][0].close()


def test_parse_portfolio_endpoint(client):
    response = client.post("/api/portfolios/parse", json={"content": {"skills": ["React", "react"]}})
    assert response.status_code == 200
    body = response.json()
    assert body["skills"]["all"] == ["React"]
    assert body["experience"]["level"] == "entry"
