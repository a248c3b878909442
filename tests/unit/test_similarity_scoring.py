import math

import pytest

from hirelens.matching.scoring import (
    base_score,
    clamp_score,
    cosine_similarity,
    fallback_score,
    matched_skills,
)
from hirelens.models import JobPosting


def _job(title="Backend Engineer", skills=None):
    return JobPosting(
        id="j1",
        title=title,
        company="Acme",
        description="APIs",
        skills=["Python", "React", "PostgreSQL", "REST APIs"] if skills is None else skills,
    )


# ------------------------------------------------------------------
# cosine / base score
# ------------------------------------------------------------------

@pytest.mark.parametrize("v", [(1.0,), (0.3, -0.2, 0.9), (1e-6, 2e-6), (5.0, 5.0, 5.0, 5.0)])
def test_cosine_of_vector_with_itself_is_one(v):
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_cosine_orthogonal_and_opposite():
    assert cosine_similarity((1.0, 0.0), (0.0, 1.0)) == pytest.approx(0.0)
    assert cosine_similarity((1.0, 0.0), (-1.0, 0.0)) == pytest.approx(-1.0)


def test_cosine_zero_magnitude_is_zero():
    assert cosine_similarity((0.0, 0.0), (1.0, 2.0)) == 0.0
    assert cosine_similarity((1.0, 2.0), (0.0, 0.0)) == 0.0


def test_cosine_length_mismatch_raises():
    with pytest.raises(ValueError, match="length mismatch"):
        cosine_similarity((1.0, 0.0), (1.0, 0.0, 0.0))


def test_base_score_clamps_negative_similarity_to_zero():
    assert base_score(-0.4) == 0
    assert base_score(0.0) == 0
    assert base_score(0.874) == 87
    assert base_score(1.0) == 100


def test_clamp_score_bounds_and_half_up():
    assert clamp_score(-5) == 0
    assert clamp_score(250) == 100
    assert clamp_score(2.5) == 3
    assert clamp_score(float("nan")) == 0
    assert clamp_score(math.inf) == 0


# ------------------------------------------------------------------
# fallback scorer
# ------------------------------------------------------------------

def test_fallback_score_skill_ratio_only():
    resume = "I write Python and React against PostgreSQL."
    # 3 of 4 skills -> 0.75 * 60 = 45, no title bonus
    assert fallback_score(resume, _job()) == 45


def test_fallback_score_title_bonus_is_case_insensitive():
    resume = "backend engineer. python, react, postgresql, rest apis"
    assert fallback_score(resume, _job()) == 80


def test_fallback_score_with_no_skills_is_zero_not_nan():
    assert fallback_score("anything at all", _job(skills=[])) == 0


def test_fallback_score_empty_skills_still_gets_title_bonus():
    assert fallback_score("Backend Engineer for 5 years", _job(skills=[])) == 20


def test_fallback_score_uses_substring_containment():
    # "SQL" is contained in "PostgreSQL"
    job = _job(skills=["SQL"])
    assert fallback_score("PostgreSQL tuning", job) == 60


def test_fallback_score_never_exceeds_100():
    job = _job(title="a", skills=["a"])
    assert fallback_score("a", job) == 80
    for resume in ("", "a" * 5000, "Backend Engineer python react postgresql rest apis"):
        assert 0 <= fallback_score(resume, _job()) <= 100


def test_matched_skills_keeps_job_order_and_dedupes():
    job = _job(skills=["React", "python", "Python", "Go lang"])
    assert matched_skills("PYTHON and react", job.skills) == ["React", "python"]
