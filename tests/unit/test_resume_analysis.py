import asyncio
import json

from hirelens.errors import ProviderError
from hirelens.resume_analysis import ResumeAnalyzer, keyword_analysis


def _analyze(make_provider, complete, resume):
    return asyncio.run(ResumeAnalyzer(make_provider(complete=complete)).analyze(resume))


def test_keyword_analysis_of_fullstack_resume(load_text):
    a = keyword_analysis(load_text("resume_fullstack.txt"))

    assert a.degraded is True
    assert a.key_skills[:2] == ["python", "react"]
    assert len(a.key_skills) <= 5
    assert a.experience_level == "senior"
    assert a.recommended_roles[0] == "Full Stack Developer"
    assert "Technology" in a.industry_fit
    assert a.summary.startswith("Experienced professional with expertise in python, react")


def test_keyword_analysis_of_empty_resume_uses_defaults():
    a = keyword_analysis("")
    assert a.key_skills == ["JavaScript", "Python", "SQL"]
    assert a.experience_level == "mid"
    assert a.years_of_experience == 1
    assert a.summary == "Professional with technical background and relevant experience."


def test_junior_hint_sets_level():
    assert keyword_analysis("Graduate software intern, Python").experience_level == "junior"


def test_model_analysis_is_sanitised(make_provider):
    payload = {
        "keySkills": ["Python", "React", "SQL", "AWS", "Docker", "Go", "Rust"],
        "experienceLevel": "principal",
        "yearsOfExperience": 70,
        "recommendedRoles": ["Backend Developer", ""],
        "industryFit": ["Technology"],
        "topStrengths": ["Leadership"],
        "summary": "  Seasoned engineer.  ",
    }
    a = _analyze(make_provider, lambda p: json.dumps(payload), "resume")

    assert a.degraded is False
    assert a.key_skills == ["Python", "React", "SQL", "AWS", "Docker"]
    assert a.experience_level == "mid"
    assert a.years_of_experience == 50
    assert a.recommended_roles == ["Backend Developer"]
    assert a.summary == "Seasoned engineer."


def test_json_wrapped_in_prose_is_extracted(make_provider):
    reply = 'Here is the analysis:\n{"keySkills": ["Python"], "experienceLevel": "senior", "yearsOfExperience": 6}\nThanks!'
    a = _analyze(make_provider, lambda p: reply, "resume")
    assert a.key_skills == ["Python"]
    assert a.experience_level == "senior"
    assert a.years_of_experience == 6


def test_provider_failure_falls_back_to_keywords(make_provider, load_text):
    def boom(prompt):
        raise ProviderError("OpenAI API timed out.")

    a = _analyze(make_provider, boom, load_text("resume_fullstack.txt"))
    assert a.degraded is True
    assert a.experience_level == "senior"


def test_unparseable_reply_falls_back_to_keywords(make_provider):
    a = _analyze(make_provider, lambda p: "I can't help with that.", "Python developer")
    assert a.degraded is True
    assert a.key_skills == ["python"]


def test_prompt_truncates_resume(make_provider):
    provider = make_provider(complete=lambda p: "{}")
    asyncio.run(ResumeAnalyzer(provider, char_budget=10).analyze("0123456789ABCDEF"))
    assert "0123456789" in provider.complete_calls[0]
    assert "ABCDEF" not in provider.complete_calls[0]


def test_to_dict_is_camel_case():
    d = keyword_analysis("Python").to_dict()
    assert set(d) == {
        "keySkills",
        "experienceLevel",
        "yearsOfExperience",
        "recommendedRoles",
        "industryFit",
        "topStrengths",
        "summary",
        "degraded",
    }
