"""
Persistence for job postings, cached portfolios, candidate matches and recruiter activity
"""
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np
from pydantic import ValidationError as PydanticValidationError

from zigzig.models.portfolio import CachedPortfolio, ParsedPortfolioData
from zigzig.models.recruiter import (
    CandidateMatch, JobPosting, RecruiterStats, SkillCount, match_to_document,
)
from zigzig.utils.exceptions import ExceptionContext, JobNotFoundError, NotFoundError
from zigzig.utils.logging_config import get_logger

logger = get_logger(__name__)

# which job counter a decision status feeds
STATUS_COUNTERS = {"liked": "liked_count", "super_liked": "liked_count", "passed": "passed_count"}
TOP_SKILLS_LIMIT = 10


class MatchStore:

    def __init__(self, job_postings_coll=None, cached_portfolios_coll=None,
                 candidate_matches_coll=None, recruiter_activity_coll=None):
        if None in (job_postings_coll, cached_portfolios_coll, candidate_matches_coll, recruiter_activity_coll):
            from zigzig.services import db
            job_postings_coll = job_postings_coll if job_postings_coll is not None else db.job_postings_coll
            cached_portfolios_coll = (cached_portfolios_coll if cached_portfolios_coll is not None
                                      else db.cached_portfolios_coll)
            candidate_matches_coll = (candidate_matches_coll if candidate_matches_coll is not None
                                      else db.candidate_matches_coll)
            recruiter_activity_coll = (recruiter_activity_coll if recruiter_activity_coll is not None
                                       else db.recruiter_activity_coll)
        self.jobs = job_postings_coll
        self.cache = cached_portfolios_coll
        self.matches = candidate_matches_coll
        self.activity = recruiter_activity_coll

    # ---------------- job postings ----------------

    async def create_job(self, job: JobPosting) -> JobPosting:
        with ExceptionContext("create_job", logger, job_id=job.id):
            await self.jobs.insert_one(job.model_dump())
        logger.info(f"Created job posting {job.id} for recruiter {job.recruiter_id}")
        return job

    async def get_job(self, job_id: str, recruiter_id: Optional[str] = None) -> JobPosting:
        """Fetch a job, treating one owned by another recruiter as missing."""
        with ExceptionContext("get_job", logger, job_id=job_id):
            doc = await self.jobs.find_one({"id": job_id})
        if not doc or (recruiter_id is not None and doc.get("recruiter_id") != recruiter_id):
            raise JobNotFoundError(job_id)
        doc.pop("_id", None)
        return JobPosting.model_validate(doc)

    async def set_total_matches(self, job_id: str, total: int):
        with ExceptionContext("set_total_matches", logger, job_id=job_id):
            await self.jobs.update_one(
                {"id": job_id},
                {"$set": {"total_matches": total, "updated_at": datetime.utcnow()}},
            )

    # ---------------- portfolio cache ----------------

    async def get_cached_portfolio(self, user_id: str) -> Optional[ParsedPortfolioData]:
        with ExceptionContext("get_cached_portfolio", logger, user_id=user_id):
            doc = await self.cache.find_one({"user_id": user_id})
        if not doc or not doc.get("is_active", True):
            return None
        try:
            return ParsedPortfolioData.model_validate(doc.get("parsed_data") or {})
        except PydanticValidationError as e:
            logger.warning(f"Discarding unreadable cached portfolio for {user_id}: {e.error_count()} errors")
            return None

    async def cache_portfolio(self, user_id: str, portfolio_id: str, parsed: ParsedPortfolioData):
        entry = CachedPortfolio(user_id=user_id, portfolio_id=portfolio_id, parsed_data=parsed.model_dump())
        with ExceptionContext("cache_portfolio", logger, user_id=user_id):
            await self.cache.update_one({"user_id": user_id}, {"$set": entry.model_dump()}, upsert=True)

    # ---------------- matches ----------------

    async def delete_job_matches(self, job_id: str) -> int:
        with ExceptionContext("delete_job_matches", logger, job_id=job_id):
            result = await self.matches.delete_many({"job_id": job_id})
        return result.deleted_count

    async def create_matches(self, matches: List[CandidateMatch]) -> int:
        if not matches:
            return 0
        with ExceptionContext("create_matches", logger, count=len(matches)):
            await self.matches.insert_many([match_to_document(m) for m in matches])
        return len(matches)

    async def get_match(self, match_id: str) -> CandidateMatch:
        with ExceptionContext("get_match", logger, match_id=match_id):
            doc = await self.matches.find_one({"id": match_id})
        if not doc:
            raise NotFoundError("Match not found", resource="candidate_matches", resource_id=match_id)
        doc.pop("_id", None)
        return CandidateMatch.model_validate(doc)

    async def get_job_matches(self, job_id: str, status: Optional[str] = None,
                              min_score: Optional[float] = None, limit: Optional[int] = None) -> List[CandidateMatch]:
        query: Dict[str, Any] = {"job_id": job_id}
        if status and status != "all":
            query["status"] = status
        if min_score is not None:
            query["match_score"] = {"$gte": min_score}

        with ExceptionContext("get_job_matches", logger, job_id=job_id):
            cursor = self.matches.find(query).sort("match_score", -1)
            if limit:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list(length=limit or None)
        for doc in docs:
            doc.pop("_id", None)
        return [CandidateMatch.model_validate(doc) for doc in docs]

    async def update_match_status(self, match_id: str, status: str,
                                  recruiter_id: Optional[str] = None) -> CandidateMatch:
        match = await self.get_match(match_id)
        if recruiter_id is not None:
            # only the job's owner may decide on its matches
            await self.get_job(match.job_id, recruiter_id)

        now = datetime.utcnow()
        update: Dict[str, Any] = {"status": status}
        if match.decided_at is None:
            update["decided_at"] = now

        with ExceptionContext("update_match_status", logger, match_id=match_id, status=status):
            await self.matches.update_one({"id": match_id}, {"$set": update})

            previous = STATUS_COUNTERS.get(match.status)
            current = STATUS_COUNTERS.get(status)
            if previous != current:
                inc = {current: 1}
                if previous:
                    inc[previous] = -1
                await self.jobs.update_one(
                    {"id": match.job_id}, {"$inc": inc, "$set": {"updated_at": now}}
                )

        logger.info(f"Match {match_id} moved {match.status} -> {status}")
        return match.model_copy(update=update)

    async def mark_match_viewed(self, match_id: str) -> CandidateMatch:
        match = await self.get_match(match_id)
        if match.viewed_at is not None:
            return match

        now = datetime.utcnow()
        with ExceptionContext("mark_match_viewed", logger, match_id=match_id):
            result = await self.matches.update_one({"id": match_id, "viewed_at": None}, {"$set": {"viewed_at": now}})
            if result.modified_count:
                await self.jobs.update_one({"id": match.job_id}, {"$inc": {"viewed_count": 1}})
        return match.model_copy(update={"viewed_at": now})

    # ---------------- activity & stats ----------------

    async def log_activity(self, recruiter_id: str, action: str, job_id: Optional[str] = None,
                           candidate_user_id: Optional[str] = None, match_id: Optional[str] = None,
                           metadata: Optional[Dict[str, Any]] = None):
        doc = {
            "recruiter_id": recruiter_id,
            "action": action,
            "job_id": job_id,
            "candidate_user_id": candidate_user_id,
            "match_id": match_id,
            "metadata": metadata or {},
            "created_at": datetime.utcnow(),
        }
        with ExceptionContext("log_activity", logger, recruiter_id=recruiter_id, action=action):
            await self.activity.insert_one(doc)

    async def get_recruiter_stats(self, job_id: str) -> RecruiterStats:
        matches = await self.get_job_matches(job_id)
        if not matches:
            return RecruiterStats()

        by_status = Counter(m.status for m in matches)
        skills = Counter()
        for m in matches:
            skills.update(dict.fromkeys(s.strip() for s in m.candidate.skills if s.strip()).keys())

        return RecruiterStats(
            total_matches=len(matches),
            viewed_count=sum(1 for m in matches if m.viewed_at is not None),
            liked_count=by_status["liked"],
            passed_count=by_status["passed"],
            super_liked_count=by_status["super_liked"],
            pending_count=by_status["pending"],
            average_match_score=round(float(np.mean([m.match_score for m in matches])), 1),
            top_skills=[SkillCount(skill=s, count=c) for s, c in skills.most_common(TOP_SKILLS_LIMIT)],
        )
