import json
from typing import Any, Dict, List, Optional

from zigzig.helpers.prompts import SCORING_PROMPT, SCORING_SYSTEM
from zigzig.models.portfolio import ParsedPortfolioData
from zigzig.models.recruiter import JobRequirements, MatchDetails, ScoreResult
from zigzig.models.settings import MatchingSettings
from zigzig.services import rubric
from zigzig.utils.exceptions import ExternalServiceError, ModelError, RateLimitError
from zigzig.utils.logging_config import get_matching_logger
from zigzig.utils.utils import parse_json_object

logger = get_matching_logger("scoring")

MODEL_FAILURES = (ModelError, ExternalServiceError, RateLimitError)


def candidate_summary(candidate: ParsedPortfolioData) -> Dict[str, Any]:
    """Compact view of a parsed portfolio for the scoring prompt."""
    degrees = candidate.education.degrees
    return {
        "name": candidate.name,
        "title": candidate.title,
        "location": candidate.location,
        "skills": candidate.skills.all[:40],
        "total_years": candidate.experience.total_years,
        "level": candidate.experience.level,
        "industries": candidate.experience.industries,
        "roles": [
            {"title": r.title, "company": r.company, "years": r.years, "technologies": r.technologies,
             "achievements": r.achievements, "company_type": r.company_type}
            for r in candidate.experience.roles[:6]
        ],
        "education": degrees[0].degree if degrees else None,
        "certifications": candidate.education.certifications[:10],
        "continuous_learning": candidate.education.continuous_learning,
        "company_types": candidate.experience.company_types,
        "projects": {
            "count": candidate.projects.count,
            "technologies": candidate.projects.technologies[:20],
            "has_open_source": candidate.projects.has_open_source,
            "types": candidate.projects.types,
            "domains": candidate.projects.domains,
            "complexity": candidate.projects.complexity,
        },
        "remote_preference": candidate.preferences.remote_preference,
        "willing_to_relocate": candidate.preferences.willing_to_relocate,
        "needs_visa_sponsorship": candidate.preferences.needs_visa_sponsorship,
    }


def _reasons(data: Dict[str, Any], limit: int) -> List[str]:
    raw = data.get("matchReasons", data.get("match_reasons"))
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    reasons = [str(r).strip() for r in raw if r is not None and str(r).strip()]
    return reasons[:limit]


class CandidateScorer:
    """Scores one candidate against one job with an LLM rubric prompt, trying each configured model in turn."""

    def __init__(self, client, settings: Optional[MatchingSettings] = None):
        self.client = client
        self.settings = settings or MatchingSettings()

    @property
    def models(self) -> List[str]:
        return self.settings.scoring_models

    def score_candidate(self, job_reqs: JobRequirements, candidate: ParsedPortfolioData) -> Optional[ScoreResult]:
        prompt = SCORING_PROMPT.format(
            job=job_reqs.model_dump_json(),
            candidate=json.dumps(candidate_summary(candidate), default=str),
        )
        messages = [
            {"role": "system", "content": SCORING_SYSTEM},
            {"role": "user", "content": prompt},
        ]

        for model in self.models:
            try:
                raw = self.client.complete(
                    messages,
                    model=model,
                    temperature=self.settings.scoring_temperature,
                    max_tokens=self.settings.scoring_max_tokens,
                )
                data = parse_json_object(raw, model_name=model)
            except MODEL_FAILURES as e:
                logger.warning(f"Scoring with model {model} failed for {candidate.name or 'candidate'}: {e.message}")
                continue
            return self.build_result(data, job_reqs, candidate, model)

        logger.error(f"All scoring models failed for {candidate.name or 'candidate'}")
        return None

    def build_result(self, data: Dict[str, Any], job_reqs: JobRequirements,
                     candidate: ParsedPortfolioData, model: Optional[str] = None) -> ScoreResult:
        """Normalize a raw scoring reply into a bounded, rubric-consistent result."""
        data = dict(data)
        missing = [key for key in rubric.PARTS if not isinstance(data.get(key), dict)]
        if missing:
            fallback = rubric.score_by_rubric(job_reqs, candidate)
            for key in missing:
                data[key] = fallback[key]
            logger.debug(f"Model {model} omitted {missing}; filled from rubric")

        details = MatchDetails.from_untrusted(data)
        reported = data.get("overall_score", data.get("matchScore"))
        overall = rubric.reconcile_overall(
            (getattr(details, key).score for key in rubric.PARTS),
            reported,
            tolerance=self.settings.overall_score_tolerance,
        )
        details = details.model_copy(update={"overall_score": overall})
        return ScoreResult(
            match_score=overall,
            match_reasons=_reasons(data, self.settings.max_match_reasons),
            match_details=details,
            model=model,
        )
