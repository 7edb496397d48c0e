"""
Recruiter matching models: job requirements, match details and match records
"""
import re
import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from zigzig.models.portfolio import SalaryRange

JOB_EXPERIENCE_LEVELS = ("entry", "mid", "senior", "lead", "executive")
MATCH_STATUSES = ("pending", "liked", "passed", "super_liked")
DECISION_STATUSES = ("liked", "passed", "super_liked")

JobExperienceLevel = Literal["entry", "mid", "senior", "lead", "executive"]
MatchStatus = Literal["pending", "liked", "passed", "super_liked"]
DecisionStatus = Literal["liked", "passed", "super_liked"]


def clamp_score(value: Any) -> float:
    """Coerce anything into a 0-100 score; junk becomes 0."""
    if isinstance(value, bool):
        return 100.0 if value else 0.0
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if score != score:  # NaN
        return 0.0
    return max(0.0, min(100.0, score))


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return str(value).strip()


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        parts = [p.strip() for p in value.replace(";", ",").split(",")]
        return [p for p in parts if p]
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "y", "1", "remote")
    return False


def _as_years(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return max(0.0, float(value))
    if isinstance(value, str):
        match = re.search(r"\d+(?:\.\d+)?", value)
        if match:
            return float(match.group(0))
    return 0.0


class JobRequirements(BaseModel):
    """Structured requirements extracted from a job description"""
    title: str = ""
    location: str = ""
    company_size: str = ""
    remote_ok: bool = False
    required_skills: List[str] = Field(default_factory=list)
    nice_to_have_skills: List[str] = Field(default_factory=list)
    min_experience_years: float = Field(default=0.0, ge=0)
    experience_level: JobExperienceLevel = "mid"
    industries: List[str] = Field(default_factory=list)
    salary_range: Optional[SalaryRange] = None

    @classmethod
    def from_untrusted(cls, data: Any) -> "JobRequirements":
        """Build requirements from loosely shaped JSON, defaulting every field."""
        if not isinstance(data, dict):
            data = {}
        level = _as_str(data.get("experience_level")).lower()
        if level not in JOB_EXPERIENCE_LEVELS:
            level = "mid"
        return cls(
            title=_as_str(data.get("title")),
            location=_as_str(data.get("location")),
            company_size=_as_str(data.get("company_size")),
            remote_ok=_as_bool(data.get("remote_ok")),
            required_skills=_as_list(data.get("required_skills")),
            nice_to_have_skills=_as_list(data.get("nice_to_have_skills")),
            min_experience_years=_as_years(data.get("min_experience_years")),
            experience_level=level,
            industries=_as_list(data.get("industries")),
            salary_range=SalaryRange.from_untrusted(data.get("salary_range")),
        )


class _ScoredPart(BaseModel):
    score: float = 0.0

    @field_validator("score", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_score(v)


class SkillsMatch(_ScoredPart):
    matched_required: List[str] = Field(default_factory=list)
    matched_nice_to_have: List[str] = Field(default_factory=list)
    missing_required: List[str] = Field(default_factory=list)


class ExperienceMatch(_ScoredPart):
    years: float = 0.0
    level: str = ""
    is_match: bool = False


class IndustryMatch(_ScoredPart):
    matched_industries: List[str] = Field(default_factory=list)


class LocationMatch(_ScoredPart):
    is_match: bool = False


class MatchDetails(BaseModel):
    skills_match: SkillsMatch = Field(default_factory=SkillsMatch)
    experience_match: ExperienceMatch = Field(default_factory=ExperienceMatch)
    industry_match: IndustryMatch = Field(default_factory=IndustryMatch)
    location_match: LocationMatch = Field(default_factory=LocationMatch)
    overall_score: float = 0.0

    @field_validator("overall_score", mode="before")
    @classmethod
    def clamp_overall(cls, v):
        return clamp_score(v)

    @classmethod
    def from_untrusted(cls, data: Any) -> "MatchDetails":
        if not isinstance(data, dict):
            data = {}

        def part(key):
            value = data.get(key)
            return value if isinstance(value, dict) else {}

        skills = part("skills_match")
        experience = part("experience_match")
        industry = part("industry_match")
        location = part("location_match")
        return cls(
            skills_match=SkillsMatch(
                matched_required=_as_list(skills.get("matched_required")),
                matched_nice_to_have=_as_list(skills.get("matched_nice_to_have")),
                missing_required=_as_list(skills.get("missing_required")),
                score=skills.get("score"),
            ),
            experience_match=ExperienceMatch(
                years=_as_years(experience.get("years")),
                level=_as_str(experience.get("level")),
                is_match=_as_bool(experience.get("is_match")),
                score=experience.get("score"),
            ),
            industry_match=IndustryMatch(
                matched_industries=_as_list(industry.get("matched_industries")),
                score=industry.get("score"),
            ),
            location_match=LocationMatch(
                is_match=_as_bool(location.get("is_match")),
                score=location.get("score"),
            ),
            overall_score=data.get("overall_score"),
        )


class ScoreResult(BaseModel):
    """Scorer output for one candidate against one job"""
    match_score: float
    match_reasons: List[str] = Field(default_factory=list)
    match_details: MatchDetails
    model: Optional[str] = None


class CandidateSnapshot(BaseModel):
    """Display fields copied from the parsed portfolio when the match is created"""
    name: str = ""
    title: str = ""
    location: str = ""
    avatar: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience_years: float = 0.0
    portfolio_slug: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    companies: List[str] = Field(default_factory=list)
    education: Optional[str] = None


class CandidateMatch(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_id: str
    candidate_user_id: str
    portfolio_id: str
    match_score: float
    match_reasons: List[str] = Field(default_factory=list)
    match_details: MatchDetails = Field(default_factory=MatchDetails)
    status: MatchStatus = "pending"
    viewed_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    candidate: CandidateSnapshot = Field(default_factory=CandidateSnapshot)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("match_score", mode="before")
    @classmethod
    def clamp_match_score(cls, v):
        return clamp_score(v)


class JobPosting(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    recruiter_id: str
    title: str = ""
    company: Optional[str] = None
    description: str = ""
    extracted_requirements: JobRequirements = Field(default_factory=JobRequirements)
    status: Literal["active", "closed", "paused"] = "active"
    total_matches: int = 0
    viewed_count: int = 0
    liked_count: int = 0
    passed_count: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class SkillCount(BaseModel):
    skill: str
    count: int


class RecruiterStats(BaseModel):
    total_matches: int = 0
    viewed_count: int = 0
    liked_count: int = 0
    passed_count: int = 0
    super_liked_count: int = 0
    pending_count: int = 0
    average_match_score: float = 0.0
    top_skills: List[SkillCount] = Field(default_factory=list)


class MatchRunResult(BaseModel):
    job_id: str
    total_matches: int
    candidates_considered: int = 0
    candidates_failed: int = 0


# -------- Request / response bodies --------

class ParseJobRequest(BaseModel):
    description: str = ""
    title: Optional[str] = None
    company: Optional[str] = None


class ParseJobResponse(BaseModel):
    success: bool = True
    job: JobPosting
    extracted_requirements: JobRequirements


class ComputeMatchesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: Optional[str] = Field(default=None, alias="jobId")


class ComputeMatchesResponse(BaseModel):
    success: bool = True
    total_matches: int
    job_id: str


class UpdateMatchStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    match_id: Optional[str] = Field(default=None, alias="matchId")
    status: Optional[str] = None
    job_id: Optional[str] = Field(default=None, alias="jobId")
    candidate_user_id: Optional[str] = Field(default=None, alias="candidateUserId")


class UpdateMatchStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    match_id: str = Field(alias="matchId")
    status: DecisionStatus


def match_to_document(match: CandidateMatch) -> Dict[str, Any]:
    return match.model_dump()
