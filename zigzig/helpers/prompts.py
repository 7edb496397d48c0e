EXTRACTION_SYSTEM = "You are a job requirement extraction expert. Return only valid JSON."

EXTRACTION_PROMPT = """Extract structured requirements from this job posting.
Return strict JSON with exactly these keys:
title, location, company_size, remote_ok, required_skills, nice_to_have_skills,
min_experience_years, experience_level, industries, salary_range.

- required_skills / nice_to_have_skills: short skill names (e.g. "Python", "AWS").
- min_experience_years: a number, 0 if not stated.
- experience_level: one of entry, mid, senior, lead, executive.
- remote_ok: true or false.
- salary_range: {{"min": <number>, "max": <number>}} or null.
- If unknown, use "" / [] / false / null.

JOB TITLE: {title}
COMPANY: {company}

JOB DESCRIPTION:
{description}
"""

SCORING_SYSTEM = "You are an expert technical recruiter. Score candidates objectively and return only valid JSON."

SCORING_PROMPT = """Score how well this candidate fits the job on a 0-100 scale.

Scoring rubric:
- Skills match (40%): required skills covered, nice-to-have skills as a bonus.
- Experience match (30%): years against the minimum, seniority level fit.
- Industry match (15%): overlap with the job's industries.
- Location match (10%): location or remote compatibility.
- Up to 5 bonus points for strong extras (open source work, rare in-demand skills).

Return strict JSON:
{{
  "matchScore": <0-100>,
  "matchReasons": ["<short reason>", "..."],
  "skills_match": {{"matched_required": [], "matched_nice_to_have": [], "missing_required": [], "score": <0-100>}},
  "experience_match": {{"years": <number>, "level": "<level>", "is_match": <true|false>, "score": <0-100>}},
  "industry_match": {{"matched_industries": [], "score": <0-100>}},
  "location_match": {{"is_match": <true|false>, "score": <0-100>}}
}}
Give at most 5 reasons.

JOB REQUIREMENTS:
{job}

CANDIDATE:
{candidate}
"""
