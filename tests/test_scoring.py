import json
import random
from datetime import date

import pytest

from conftest import StubLLMClient
from zigzig.models.recruiter import JobRequirements
from zigzig.models.settings import MatchingSettings
from zigzig.services import rubric
from zigzig.services.portfolio_parser import PortfolioParser
from zigzig.services.scoring import CandidateScorer, candidate_summary
from zigzig.utils.exceptions import ExternalServiceError

SETTINGS = MatchingSettings(scoring_models=["primary", "backup"])
TODAY = date(2024, 6, 1)

GOOD_REPLY = {
    "matchScore": 82,
    "matchReasons": ["Strong Python", "AWS experience", "Senior level", "Fintech", "Remote ok", "Extra one"],
    "skills_match": {"matched_required": ["Python"], "matched_nice_to_have": [], "missing_required": [],
                     "score": 90},
    "experience_match": {"years": 6, "level": "senior", "is_match": True, "score": 80},
    "industry_match": {"matched_industries": ["fintech"], "score": 70},
    "location_match": {"is_match": True, "score": 100},
}


def scorer_with(replies):
    client = StubLLMClient(replies)
    return CandidateScorer(client, SETTINGS), client


@pytest.fixture
def candidate(e2e_portfolio):
    return PortfolioParser.parse_portfolio(e2e_portfolio, today=TODAY)


class TestModelFallback:

    def test_second_model_used_when_first_unparseable(self, candidate, e2e_job_requirements):
        scorer, client = scorer_with({"primary": "I think they are great!", "backup": json.dumps(GOOD_REPLY)})
        result = scorer.score_candidate(e2e_job_requirements, candidate)
        assert client.calls == ["primary", "backup"]
        assert result.model == "backup"
        assert result.match_details.skills_match.score == 90

    def test_http_failure_falls_through(self, candidate, e2e_job_requirements):
        scorer, _ = scorer_with({"primary": ExternalServiceError("HTTP 500"), "backup": json.dumps(GOOD_REPLY)})
        assert scorer.score_candidate(e2e_job_requirements, candidate).model == "backup"

    def test_none_when_every_model_fails(self, candidate, e2e_job_requirements):
        scorer, client = scorer_with({"primary": "garbage", "backup": ExternalServiceError("down")})
        assert scorer.score_candidate(e2e_job_requirements, candidate) is None
        assert client.calls == ["primary", "backup"]


class TestReconciliation:

    def test_reasons_trimmed_to_five(self, candidate, e2e_job_requirements):
        scorer, _ = scorer_with({"primary": json.dumps(GOOD_REPLY)})
        result = scorer.score_candidate(e2e_job_requirements, candidate)
        assert len(result.match_reasons) == 5

    def test_overall_kept_when_consistent(self, candidate, e2e_job_requirements):
        scorer, _ = scorer_with({"primary": json.dumps(GOOD_REPLY)})
        result = scorer.score_candidate(e2e_job_requirements, candidate)
        # rubric base is 0.4*90 + 0.3*80 + 0.15*70 + 0.1*100 = 80.5
        assert result.match_score == 82
        assert result.match_details.overall_score == result.match_score

    def test_overall_pulled_back_towards_rubric(self, candidate, e2e_job_requirements):
        reply = dict(GOOD_REPLY, matchScore=5)
        scorer, _ = scorer_with({"primary": json.dumps(reply)})
        result = scorer.score_candidate(e2e_job_requirements, candidate)
        assert result.match_score == pytest.approx(80.5 - 15)

    def test_missing_overall_uses_rubric(self, candidate, e2e_job_requirements):
        reply = {k: v for k, v in GOOD_REPLY.items() if k != "matchScore"}
        scorer, _ = scorer_with({"primary": json.dumps(reply)})
        assert scorer.score_candidate(e2e_job_requirements, candidate).match_score == pytest.approx(80.5)

    def test_missing_parts_filled_from_rubric(self, candidate, e2e_job_requirements):
        reply = {"matchScore": 90, "skills_match": GOOD_REPLY["skills_match"]}
        scorer, _ = scorer_with({"primary": json.dumps(reply)})
        result = scorer.score_candidate(e2e_job_requirements, candidate)
        assert result.match_details.experience_match.is_match is True
        assert result.match_details.experience_match.score == 100

    def test_out_of_range_scores_clamped(self, candidate, e2e_job_requirements):
        reply = {
            "matchScore": 450,
            "skills_match": {"score": 180},
            "experience_match": {"score": -20},
            "industry_match": {"score": "very high"},
            "location_match": {"score": None},
        }
        scorer, _ = scorer_with({"primary": json.dumps(reply)})
        details = scorer.score_candidate(e2e_job_requirements, candidate).match_details
        assert details.skills_match.score == 100
        assert details.experience_match.score == 0
        assert details.industry_match.score == 0
        assert details.location_match.score == 0
        assert details.overall_score == pytest.approx(40 + 5 + 15)


EDGE_VALUES = [-1000, -1, 0, 0.5, 50, 99.9, 100, 101, 1e9, "80", "n/a", None, True, [], {}, float("nan")]
SKILL_POOL = ["Python", "Go", "Rust", "AWS", "React", "Docker", "SQL", "Kafka", "Figma", "Leadership"]


def random_reply(rng):
    def part(extra):
        return dict(extra, score=rng.choice(EDGE_VALUES))

    reply = {
        "matchScore": rng.choice(EDGE_VALUES),
        "matchReasons": rng.choice([[], ["ok"], "single", None, ["a"] * 9]),
    }
    for key, extra in (
        ("skills_match", {"matched_required": rng.sample(SKILL_POOL, 2)}),
        ("experience_match", {"years": rng.choice(EDGE_VALUES), "is_match": rng.choice(EDGE_VALUES)}),
        ("industry_match", {}),
        ("location_match", {"is_match": rng.choice([True, False, "yes"])}),
    ):
        if rng.random() < 0.8:
            reply[key] = part(extra)
    if rng.random() < 0.3:
        reply["overall_score"] = rng.choice(EDGE_VALUES)
    text = json.dumps(reply)
    return rng.choice([text, f"```json\n{text}\n```", f"Result: {text}"])


def random_job(rng):
    return JobRequirements.from_untrusted({
        "required_skills": rng.sample(SKILL_POOL, rng.randint(0, 4)),
        "nice_to_have_skills": rng.sample(SKILL_POOL, rng.randint(0, 3)),
        "min_experience_years": rng.choice([0, 1, 3, 5, 10, "2+", None]),
        "experience_level": rng.choice(["entry", "mid", "senior", "lead", "executive", "bogus"]),
        "industries": rng.sample(["fintech", "healthcare", "saas", "ai"], rng.randint(0, 2)),
        "remote_ok": rng.choice([True, False]),
        "location": rng.choice(["", "Berlin", "New York, NY"]),
    })


def random_candidate(rng):
    return PortfolioParser.parse_portfolio({
        "skills": rng.sample(SKILL_POOL, rng.randint(0, 6)),
        "location": rng.choice(["", "Berlin", "Lagos"]),
        "about": rng.choice(["", "remote only", "open to hybrid"]),
        "experience": [
            {"title": rng.choice(["Engineer", "Senior Engineer", "Lead Developer"]),
             "duration": rng.choice(["2019-2023", "2 years", "who knows", ""])}
            for _ in range(rng.randint(0, 3))
        ],
    }, today=TODAY)


def test_scores_always_within_bounds():
    rng = random.Random(20240601)
    for _ in range(100):
        scorer, _ = scorer_with({"primary": random_reply(rng)})
        result = scorer.score_candidate(random_job(rng), random_candidate(rng))
        assert result is not None
        details = result.match_details
        assert 0 <= result.match_score <= 100
        assert 0 <= details.overall_score <= 100
        for key in rubric.PARTS:
            assert 0 <= getattr(details, key).score <= 100
        assert len(result.match_reasons) <= 5


class RubricLLM:
    """Answers the scoring prompt by applying the weighted rubric literally"""

    def __init__(self, job, candidate):
        self.job = job
        self.candidate = candidate

    def complete(self, messages, model, temperature=0.2, max_tokens=1000):
        return json.dumps(rubric.score_by_rubric(self.job, self.candidate))


def test_full_alignment_scores_high(candidate, e2e_job_requirements):
    scorer = CandidateScorer(RubricLLM(e2e_job_requirements, candidate), SETTINGS)
    result = scorer.score_candidate(e2e_job_requirements, candidate)
    details = result.match_details
    assert details.skills_match.score == 100
    assert details.skills_match.matched_required == ["Python", "AWS"]
    assert details.experience_match.is_match is True
    assert details.overall_score >= 70


class TestCandidateSummary:

    @pytest.fixture
    def detailed(self):
        return PortfolioParser.parse_portfolio({
            "skills": ["Python", "AWS"],
            "about": "Open to relocating. Will require visa sponsorship.",
            "experience": [{
                "title": "Backend Engineer",
                "company": "Seed startup",
                "duration": "2020-2023",
                "description": "Cut infrastructure costs by 30% with Python on AWS",
            }],
            "projects": [{"name": "Ledger", "description": "Payment reconciliation tool",
                          "technologies": ["Python", "Postgres"]}],
            "certifications": ["AWS Certified Developer"],
        }, today=TODAY)

    def test_roles_carry_achievements_and_company_type(self, detailed):
        role = candidate_summary(detailed)["roles"][0]
        assert role["achievements"] == ["Cut infrastructure costs by 30%"]
        assert role["company_type"] == "startup"

    def test_projects_carry_domains_and_complexity(self, detailed):
        summary = candidate_summary(detailed)
        assert summary["projects"]["domains"] == ["fintech"]
        assert summary["projects"]["complexity"] == "beginner"
        assert summary["continuous_learning"] is True
        assert summary["company_types"] == ["startup"]
        assert summary["needs_visa_sponsorship"] is True

    def test_summary_reaches_the_prompt(self, detailed, e2e_job_requirements):
        seen = []

        def reply(messages):
            seen.append(" ".join(m["content"] for m in messages))
            return json.dumps(GOOD_REPLY)

        scorer, _ = scorer_with({"primary": reply})
        scorer.score_candidate(e2e_job_requirements, detailed)
        assert "Cut infrastructure costs by 30%" in seen[0]
        assert '"complexity": "beginner"' in seen[0]
