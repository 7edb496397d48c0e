"""
Weighted scoring rubric shared by the LLM scorer.

skills 40%, experience 30%, industry 15%, location 10%, plus up to 5 bonus points.
The deterministic sub-scores fill any part an LLM reply leaves out.
"""
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from zigzig.models.portfolio import ParsedPortfolioData
from zigzig.models.recruiter import JOB_EXPERIENCE_LEVELS, JobRequirements, clamp_score

WEIGHTS = np.array([0.40, 0.30, 0.15, 0.10])
PARTS = ("skills_match", "experience_match", "industry_match", "location_match")
BONUS_MAX = 5.0
NEUTRAL_SCORE = 50.0


def _skill_key(skill: str) -> str:
    return re.sub(r"[\s.\-_]", "", (skill or "").lower())


def weighted_base(skills: float, experience: float, industry: float, location: float) -> float:
    parts = np.clip(np.array([skills, experience, industry, location], dtype=float), 0.0, 100.0)
    return float(np.clip(np.dot(WEIGHTS, parts), 0.0, 100.0))


def reconcile_overall(sub_scores: Iterable[float], reported: Any = None, tolerance: float = 15.0) -> float:
    """
    Keep an LLM's overall judgment, but only within a band around the weighted rubric.
    A missing or non-numeric overall falls back to the rubric itself.
    """
    base = weighted_base(*sub_scores)
    if reported is None or isinstance(reported, bool):
        return round(base, 1)
    try:
        value = float(reported)
    except (TypeError, ValueError):
        return round(base, 1)
    if value != value:
        return round(base, 1)
    low, high = base - tolerance, base + BONUS_MAX + tolerance
    return round(clamp_score(float(np.clip(value, low, high))), 1)


def candidate_skill_pool(candidate: ParsedPortfolioData) -> List[str]:
    pool = list(candidate.skills.all) + list(candidate.projects.technologies)
    for role in candidate.experience.roles:
        pool.extend(role.technologies)
    return pool


def skill_coverage(job_skills: List[str], cv_skills: List[str],
                   weights: Optional[Dict[str, float]] = None) -> Tuple[float, List[str], List[str]]:
    """Weighted share of job skills the candidate has, with matched and missing lists."""
    weights = weights or {}
    cv_set = {_skill_key(s) for s in cv_skills}
    matched, missing = [], []
    score, total = 0.0, 0.0
    seen = set()
    for skill in job_skills:
        key = _skill_key(skill)
        if not key or key in seen:
            continue
        seen.add(key)
        w = 1.0 + weights.get(skill.lower(), 0.0)
        total += w
        if key in cv_set:
            score += w
            matched.append(skill)
        else:
            missing.append(skill)
    return (score / total if total > 0 else 0.0), matched, missing


def skills_part(job: JobRequirements, candidate: ParsedPortfolioData) -> Dict[str, Any]:
    pool = candidate_skill_pool(candidate)
    req_cov, matched_req, missing_req = skill_coverage(job.required_skills, pool)
    nice_cov, matched_nice, _ = skill_coverage(job.nice_to_have_skills, pool)
    if job.required_skills:
        nice_share = nice_cov if job.nice_to_have_skills else 1.0
        score = 85.0 * req_cov + 15.0 * nice_share
    elif job.nice_to_have_skills:
        score = 100.0 * nice_cov
    else:
        score = NEUTRAL_SCORE
    return {
        "matched_required": matched_req,
        "matched_nice_to_have": matched_nice,
        "missing_required": missing_req,
        "score": round(score, 1),
    }


def experience_part(job: JobRequirements, candidate: ParsedPortfolioData) -> Dict[str, Any]:
    years = candidate.experience.total_years
    level = candidate.experience.level
    years_ratio = min(years / job.min_experience_years, 1.0) if job.min_experience_years > 0 else 1.0
    gap = JOB_EXPERIENCE_LEVELS.index(job.experience_level) - JOB_EXPERIENCE_LEVELS.index(level)
    level_fit = 1.0 if gap <= 0 else max(0.0, 1.0 - 0.35 * gap)
    return {
        "years": years,
        "level": level,
        "is_match": years >= job.min_experience_years and gap <= 0,
        "score": round(100.0 * (0.6 * years_ratio + 0.4 * level_fit), 1),
    }


def industry_part(job: JobRequirements, candidate: ParsedPortfolioData) -> Dict[str, Any]:
    if not job.industries:
        return {"matched_industries": [], "score": NEUTRAL_SCORE}
    have = {i.lower() for i in candidate.experience.industries + candidate.preferences.preferred_industries}
    matched = [i for i in job.industries if i.lower() in have]
    return {"matched_industries": matched, "score": round(100.0 * len(matched) / len(job.industries), 1)}


def location_part(job: JobRequirements, candidate: ParsedPortfolioData) -> Dict[str, Any]:
    preference = candidate.preferences.remote_preference
    job_location = job.location.strip().lower()
    where = candidate.location.strip().lower()

    if job.remote_ok and preference != "onsite":
        return {"is_match": True, "score": 100.0}
    if not job_location:
        return {"is_match": True, "score": 100.0 if not job.remote_ok else 70.0}
    city = job_location.split(",")[0].strip()
    if where and (city in where or where.split(",")[0].strip() in job_location):
        return {"is_match": True, "score": 100.0}
    if job.remote_ok:
        return {"is_match": True, "score": 70.0}
    if candidate.preferences.willing_to_relocate:
        return {"is_match": False, "score": 60.0}
    return {"is_match": False, "score": 20.0}


def bonus_points(candidate: ParsedPortfolioData) -> float:
    bonus = 2.5 if candidate.projects.has_open_source else 0.0
    bonus += 2.5 * candidate.market_profile.rarity_score
    return min(BONUS_MAX, bonus)


def score_by_rubric(job: JobRequirements, candidate: ParsedPortfolioData) -> Dict[str, Any]:
    """Deterministic rubric result in the same JSON shape the scoring prompt asks for."""
    parts = {
        "skills_match": skills_part(job, candidate),
        "experience_match": experience_part(job, candidate),
        "industry_match": industry_part(job, candidate),
        "location_match": location_part(job, candidate),
    }
    base = weighted_base(*(parts[key]["score"] for key in PARTS))
    overall = round(clamp_score(base + bonus_points(candidate)), 1)

    reasons = []
    if parts["skills_match"]["matched_required"]:
        reasons.append("Has required skills: " + ", ".join(parts["skills_match"]["matched_required"][:5]))
    if parts["experience_match"]["is_match"]:
        reasons.append(f"{candidate.experience.total_years:g} years of experience at {candidate.experience.level} level")
    if parts["industry_match"]["matched_industries"]:
        reasons.append("Industry background: " + ", ".join(parts["industry_match"]["matched_industries"]))
    if parts["location_match"]["is_match"]:
        reasons.append("Location compatible")
    if candidate.projects.has_open_source:
        reasons.append("Open source contributor")

    return {"matchScore": overall, "matchReasons": reasons, **parts}
