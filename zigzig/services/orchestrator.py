"""
Match orchestration: score every published portfolio against one job and
replace that job's match set with the survivors.
"""
import asyncio
import contextvars
from typing import Any, Dict, List, Optional, Tuple

from zigzig.models.portfolio import ParsedPortfolioData
from zigzig.models.recruiter import CandidateMatch, CandidateSnapshot, JobPosting, MatchRunResult
from zigzig.models.settings import MatchingSettings
from zigzig.services.portfolio_parser import PortfolioParser
from zigzig.utils.exceptions import ExceptionContext
from zigzig.utils.logging_config import PerformanceMonitor, bind_job, get_matching_logger

logger = get_matching_logger("orchestrator")

SNAPSHOT_SKILLS = 12
SNAPSHOT_COMPANIES = 5

# (match, failed) for one candidate
Outcome = Tuple[Optional[CandidateMatch], bool]


def build_snapshot(parsed: ParsedPortfolioData, portfolio: Dict[str, Any]) -> CandidateSnapshot:
    """Display fields frozen onto the match at creation time."""
    content = portfolio.get("content") if isinstance(portfolio.get("content"), dict) else {}
    companies = []
    for role in parsed.experience.roles:
        if role.company and role.company not in companies:
            companies.append(role.company)
    degrees = parsed.education.degrees
    return CandidateSnapshot(
        name=parsed.name,
        title=parsed.title,
        location=parsed.location,
        avatar=content.get("avatar") or content.get("avatar_url"),
        skills=parsed.skills.all[:SNAPSHOT_SKILLS],
        experience_years=parsed.experience.total_years,
        portfolio_slug=portfolio.get("slug"),
        github=parsed.contact.github,
        linkedin=parsed.contact.linkedin,
        companies=companies[:SNAPSHOT_COMPANIES],
        education=degrees[0].degree if degrees else None,
    )


def chunked(items: List[Any], size: int) -> List[List[Any]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class MatchOrchestrator:

    def __init__(self, scorer, store, portfolios_coll=None,
                 settings: Optional[MatchingSettings] = None, parser=PortfolioParser):
        if portfolios_coll is None:
            from zigzig.services.db import portfolios_coll
        self.scorer = scorer
        self.store = store
        self.portfolios = portfolios_coll
        self.settings = settings or MatchingSettings()
        self.parser = parser

    async def compute_matches(self, job_id: str, recruiter_id: Optional[str] = None) -> MatchRunResult:
        """
        Regenerate every match for ``job_id``.

        Job and portfolio lookups are fatal. Single candidates that fail are
        logged and skipped. A started batch always runs to completion, so a
        cancelled run stops at the next batch boundary and keeps what it scored.
        """
        with bind_job(job_id):
            return await self._compute(job_id, recruiter_id)

    async def _compute(self, job_id: str, recruiter_id: Optional[str]) -> MatchRunResult:
        job = await self.store.get_job(job_id, recruiter_id)
        portfolios = await self._load_portfolios()
        removed = await self.store.delete_job_matches(job_id)
        logger.info(f"Matching job {job_id}: {len(portfolios)} portfolios, replaced {removed} old matches")

        matches: List[CandidateMatch] = []
        failed = 0
        with PerformanceMonitor(f"compute_matches[{job_id}]", logger, threshold_ms=30000):
            try:
                for index, batch in enumerate(chunked(portfolios, self.settings.batch_size)):
                    if index:
                        await asyncio.sleep(self.settings.batch_delay_seconds)
                    outcomes, cancelled = await self._finish_batch(job, batch)
                    for match, batch_failed in outcomes:
                        failed += batch_failed
                        if match is not None:
                            matches.append(match)
                    logger.debug(f"Batch {index + 1} for job {job_id} done, {len(matches)} matches so far")
                    if cancelled:
                        raise asyncio.CancelledError()
            except asyncio.CancelledError:
                logger.warning(f"Matching for job {job_id} cancelled; keeping {len(matches)} matches scored so far")
                await self._persist(job_id, matches)
                raise

            total = await self._persist(job_id, matches)

        logger.info(f"Job {job_id}: {total} matches from {len(portfolios)} candidates ({failed} failed)")
        return MatchRunResult(
            job_id=job_id, total_matches=total,
            candidates_considered=len(portfolios), candidates_failed=failed,
        )

    async def _load_portfolios(self) -> List[Dict[str, Any]]:
        with ExceptionContext("load_published_portfolios", logger):
            return await self.portfolios.find({"is_published": True}).to_list(length=None)

    async def _persist(self, job_id: str, matches: List[CandidateMatch]) -> int:
        total = await self.store.create_matches(matches)
        await self.store.set_total_matches(job_id, total)
        return total

    async def _finish_batch(self, job: JobPosting, batch: List[Dict[str, Any]]) -> Tuple[List[Outcome], bool]:
        task = asyncio.ensure_future(self._run_batch(job, batch))
        cancelled = False
        while not task.done():
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                cancelled = True
        return task.result(), cancelled

    async def _run_batch(self, job: JobPosting, batch: List[Dict[str, Any]]) -> List[Outcome]:
        return await asyncio.gather(*(self._process_candidate(job, portfolio) for portfolio in batch))

    async def _process_candidate(self, job: JobPosting, portfolio: Dict[str, Any]) -> Outcome:
        user_id = portfolio.get("user_id")
        portfolio_id = str(portfolio.get("id") or portfolio.get("_id") or "")
        try:
            parsed = await self._parsed_portfolio(user_id, portfolio_id, portfolio.get("content"))
            loop = asyncio.get_running_loop()
            context = contextvars.copy_context()
            result = await loop.run_in_executor(
                None, context.run, self.scorer.score_candidate, job.extracted_requirements, parsed
            )
        except Exception as e:
            logger.error(f"Candidate {user_id or portfolio_id} failed for job {job.id}: {e}", exc_info=True)
            return None, True

        if result is None:
            logger.warning(f"No score for candidate {user_id or portfolio_id} on job {job.id}; skipping")
            return None, True
        if result.match_score < self.settings.min_match_score:
            return None, False

        return CandidateMatch(
            job_id=job.id,
            candidate_user_id=user_id or "",
            portfolio_id=portfolio_id,
            match_score=result.match_score,
            match_reasons=result.match_reasons,
            match_details=result.match_details,
            candidate=build_snapshot(parsed, portfolio),
        ), False

    async def _parsed_portfolio(self, user_id: Optional[str], portfolio_id: str, content: Any) -> ParsedPortfolioData:
        """Read-through cache: reuse an active cached parse, otherwise parse and write back."""
        if user_id:
            cached = await self.store.get_cached_portfolio(user_id)
            if cached is not None:
                return cached
        parsed = self.parser.parse_portfolio(content)
        if user_id:
            await self.store.cache_portfolio(user_id, portfolio_id, parsed)
        return parsed
