from datetime import date

import pytest

from zigzig.models.recruiter import JobRequirements
from zigzig.services import rubric
from zigzig.services.portfolio_parser import PortfolioParser

TODAY = date(2024, 6, 1)


def test_weighted_base():
    assert rubric.weighted_base(100, 100, 100, 100) == pytest.approx(100)
    assert rubric.weighted_base(100, 0, 0, 0) == pytest.approx(40)
    assert rubric.weighted_base(0, 100, 0, 0) == pytest.approx(30)
    assert rubric.weighted_base(500, -50, 0, 0) == pytest.approx(40)


class TestReconcileOverall:

    @pytest.mark.parametrize("reported", [None, "high", True, float("nan")])
    def test_missing_or_junk_becomes_base(self, reported):
        assert rubric.reconcile_overall((50, 50, 50, 50), reported) == 50

    def test_within_band_kept(self):
        assert rubric.reconcile_overall((50, 50, 50, 50), 60) == 60
        assert rubric.reconcile_overall((50, 50, 50, 50), 40) == 40

    def test_band_edges(self):
        assert rubric.reconcile_overall((50, 50, 50, 50), 99) == 50 + rubric.BONUS_MAX + 15
        assert rubric.reconcile_overall((50, 50, 50, 50), 0) == 35
        assert rubric.reconcile_overall((50, 50, 50, 50), 0, tolerance=5) == 45

    def test_never_outside_0_100(self):
        assert rubric.reconcile_overall((100, 100, 100, 100), 1000) == 100
        assert rubric.reconcile_overall((0, 0, 0, 0), -1000) == 0


def test_skill_coverage_is_case_and_punctuation_insensitive():
    score, matched, missing = rubric.skill_coverage(["Node.js", "AWS", "Go"], ["nodejs", "aws"])
    assert score == pytest.approx(2 / 3)
    assert matched == ["Node.js", "AWS"]
    assert missing == ["Go"]


def test_skill_coverage_empty_job():
    assert rubric.skill_coverage([], ["Python"]) == (0.0, [], [])


class TestParts:

    def setup_method(self):
        self.candidate = PortfolioParser.parse_portfolio({
            "skills": ["Python", "Docker"],
            "location": "Berlin, Germany",
            "about": "remote first",
            "experience": [{"title": "Engineer", "company": "Bank", "duration": "2 years",
                            "description": "Payment systems in Python"}],
        }, today=TODAY)

    def test_experience_short_of_requirements(self):
        job = JobRequirements(min_experience_years=4, experience_level="senior")
        part = rubric.experience_part(job, self.candidate)
        assert part["is_match"] is False
        # half the years, one level short
        assert part["score"] == pytest.approx(100 * (0.6 * 0.5 + 0.4 * 0.65))

    def test_industry_overlap(self):
        job = JobRequirements(industries=["Fintech", "Healthcare"])
        assert rubric.industry_part(job, self.candidate) == {"matched_industries": ["Fintech"], "score": 50.0}

    def test_location(self):
        assert rubric.location_part(JobRequirements(location="Berlin"), self.candidate)["score"] == 100
        assert rubric.location_part(JobRequirements(location="Paris", remote_ok=True), self.candidate)["is_match"]
        far = rubric.location_part(JobRequirements(location="Paris"), self.candidate)
        assert far == {"is_match": False, "score": 20.0}

    def test_score_by_rubric_shape(self):
        result = rubric.score_by_rubric(JobRequirements(required_skills=["Python"]), self.candidate)
        assert set(rubric.PARTS) <= set(result)
        assert 0 <= result["matchScore"] <= 100
        assert result["skills_match"]["matched_required"] == ["Python"]
