import asyncio
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query

from zigzig.models.recruiter import (
    DECISION_STATUSES, MATCH_STATUSES, ComputeMatchesRequest, ComputeMatchesResponse, JobPosting,
    ParseJobRequest, ParseJobResponse, RecruiterStats, UpdateMatchStatusRequest, UpdateMatchStatusResponse,
)
from zigzig.models.settings import get_settings
from zigzig.services.extractor import JobRequirementExtractor
from zigzig.services.match_store import MatchStore
from zigzig.services.orchestrator import MatchOrchestrator
from zigzig.services.scoring import CandidateScorer
from zigzig.utils.exceptions import AuthenticationError, ValidationError
from zigzig.utils.logging_config import get_logger, log_api_call
from zigzig.utils.utils import GroqChatClient, run_detached

logger = get_logger(__name__)

router = APIRouter()


# -------- dependencies --------

async def get_recruiter_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity, as forwarded by the auth proxy"""
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationError()
    return x_user_id.strip()


@lru_cache(maxsize=1)
def get_llm_client() -> GroqChatClient:
    return GroqChatClient(get_settings().llm)


def get_store() -> MatchStore:
    return MatchStore()


def get_extractor() -> JobRequirementExtractor:
    return JobRequirementExtractor(get_llm_client(), get_settings().matching)


def get_orchestrator(store: MatchStore = Depends(get_store)) -> MatchOrchestrator:
    settings = get_settings().matching
    return MatchOrchestrator(CandidateScorer(get_llm_client(), settings), store, settings=settings)


# -------- endpoints --------

@router.post("/parse-job", response_model=ParseJobResponse)
@log_api_call("parse_job")
async def parse_job(
    body: ParseJobRequest,
    recruiter_id: str = Depends(get_recruiter_id),
    extractor: JobRequirementExtractor = Depends(get_extractor),
    store: MatchStore = Depends(get_store),
):
    """Extract requirements from a job description and save the posting"""
    if not body.description or not body.description.strip():
        raise ValidationError("Job description is required", field="description")

    loop = asyncio.get_running_loop()
    requirements = await loop.run_in_executor(
        None, extractor.extract_requirements, body.description, body.title, body.company
    )
    job = JobPosting(
        recruiter_id=recruiter_id,
        title=body.title or requirements.title or "Untitled role",
        company=body.company,
        description=body.description,
        extracted_requirements=requirements,
    )
    await store.create_job(job)
    return ParseJobResponse(job=job, extracted_requirements=requirements)


@router.post("/compute-matches", response_model=ComputeMatchesResponse)
@log_api_call("compute_matches")
async def compute_matches(
    body: ComputeMatchesRequest,
    recruiter_id: str = Depends(get_recruiter_id),
    orchestrator: MatchOrchestrator = Depends(get_orchestrator),
):
    """Regenerate every candidate match for a job"""
    if not body.job_id:
        raise ValidationError("jobId is required", field="jobId")

    result = await orchestrator.compute_matches(body.job_id, recruiter_id=recruiter_id)
    return ComputeMatchesResponse(total_matches=result.total_matches, job_id=result.job_id)


@router.put("/update-match-status", response_model=UpdateMatchStatusResponse)
@log_api_call("update_match_status")
async def update_match_status(
    body: UpdateMatchStatusRequest,
    recruiter_id: str = Depends(get_recruiter_id),
    store: MatchStore = Depends(get_store),
):
    """Record a recruiter decision on a match"""
    if not body.match_id or not body.status:
        raise ValidationError("matchId and status are required")
    if body.status not in DECISION_STATUSES:
        raise ValidationError("Invalid status", field="status", value=body.status)

    await store.update_match_status(body.match_id, body.status, recruiter_id=recruiter_id)

    if body.job_id and body.candidate_user_id:
        run_detached(
            store.log_activity(
                recruiter_id, body.status,
                job_id=body.job_id, candidate_user_id=body.candidate_user_id, match_id=body.match_id,
            ),
            name="log_activity",
            log=logger,
        )
    return UpdateMatchStatusResponse(match_id=body.match_id, status=body.status)


@router.get("/jobs/{job_id}/matches")
@log_api_call("list_matches")
async def list_matches(
    job_id: str,
    status: Optional[str] = Query(default=None, description="pending, liked, passed, super_liked or all"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    min_score: Optional[float] = Query(default=None, ge=0, le=100),
    recruiter_id: str = Depends(get_recruiter_id),
    store: MatchStore = Depends(get_store),
):
    """Matches for a job, best first"""
    if status and status != "all" and status not in MATCH_STATUSES:
        raise ValidationError("Invalid status filter", field="status", value=status)

    await store.get_job(job_id, recruiter_id)
    matches = await store.get_job_matches(job_id, status=status, min_score=min_score, limit=limit)
    return {"success": True, "job_id": job_id, "count": len(matches), "matches": matches}


@router.get("/jobs/{job_id}/stats", response_model=RecruiterStats)
@log_api_call("job_stats")
async def job_stats(
    job_id: str,
    recruiter_id: str = Depends(get_recruiter_id),
    store: MatchStore = Depends(get_store),
):
    await store.get_job(job_id, recruiter_id)
    return await store.get_recruiter_stats(job_id)


@router.post("/matches/{match_id}/view")
@log_api_call("view_match")
async def view_match(
    match_id: str,
    recruiter_id: str = Depends(get_recruiter_id),
    store: MatchStore = Depends(get_store),
):
    """Mark a match as seen; only the first view is recorded"""
    match = await store.get_match(match_id)
    await store.get_job(match.job_id, recruiter_id)
    first_view = match.viewed_at is None
    match = await store.mark_match_viewed(match_id)
    if first_view:
        run_detached(
            store.log_activity(
                recruiter_id, "viewed",
                job_id=match.job_id, candidate_user_id=match.candidate_user_id, match_id=match_id,
            ),
            name="log_activity",
            log=logger,
        )
    return {"success": True, "match": match}
