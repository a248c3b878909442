"""
hirelens/resume_analysis.py

Career profile extracted from resume text: key skills, seniority, years of
experience, recommended roles, industries, strengths, a one-line summary.

One model call, sanitised field by field. Any failure (provider error,
timeout, no JSON in the reply) falls back to a deterministic keyword analysis,
so callers always get a ResumeAnalysis back.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

from hirelens.config import RESUME_ANALYSIS_CHAR_BUDGET
from hirelens.errors import ParseError
from hirelens.llm.json_output import require_model_json
from hirelens.llm.prompt import build_resume_analysis_prompt
from hirelens.llm.provider import InferenceProvider

logger = logging.getLogger(__name__)

EXPERIENCE_LEVELS = ("junior", "mid", "senior")

_SKILL_KEYWORDS = (
    "javascript", "python", "java", "c++", "typescript", "react", "node.js", "nodejs",
    "sql", "aws", "docker", "git", "rest api", "graphql", "mongodb", "postgresql",
    "leadership", "communication", "project management", "agile", "scrum",
    "data analysis", "machine learning", "tensorflow", "pandas", "statistics",
    "excel", "tableau", "html", "css", "vue.js", "angular", "kubernetes", "ci/cd",
    "rust", "kotlin", "swift", "scala", "elixir",
    "rails", "django", "flask", "spring",
)

_SENIOR_HINTS = ("senior", "principal", "architect", "director")
_JUNIOR_HINTS = ("junior", "intern", "entry", "graduate")

_ACTIVITY_RE = re.compile(
    r"worked|experience|responsible|managed|developed|engineered|designed|led", re.IGNORECASE
)

_ROLE_KEYWORDS = (
    ("Full Stack Developer", ("javascript", "react", "node", "python", "sql", "mongodb")),
    ("Backend Developer", ("python", "java", "node", "spring", "sql", "postgresql")),
    ("Frontend Developer", ("javascript", "react", "vue", "angular", "css", "html")),
    ("DevOps Engineer", ("docker", "kubernetes", "aws", "ci/cd", "git")),
    ("Data Scientist", ("python", "machine learning", "tensorflow", "pandas", "statistics")),
    ("Cloud Architect", ("aws", "azure", "gcp", "kubernetes", "docker")),
    ("Product Manager", ("leadership", "management", "communication", "agile")),
)

_INDUSTRY_KEYWORDS = (
    ("Technology", ("javascript", "python", "react", "aws", "docker", "data")),
    ("Finance", ("sql", "data analysis", "statistics", "excel")),
    ("Healthcare", ("data", "analysis", "management", "communication")),
    ("Consulting", ("management", "communication", "project", "leadership")),
    ("E-commerce", ("javascript", "react", "aws", "data")),
)

_STRENGTH_PATTERNS = (
    (re.compile(r"leadership|lead|managed|managing", re.IGNORECASE), "Leadership"),
    (re.compile(r"technical|programming|developer|engineer", re.IGNORECASE), "Technical Skills"),
    (re.compile(r"communication|presentation|collaboration|team", re.IGNORECASE), "Team Collaboration"),
    (re.compile(r"problem.?solving|analytical|analyze", re.IGNORECASE), "Problem Solving"),
    (re.compile(r"innovation|creative|designed|architecture", re.IGNORECASE), "Creative Design"),
    (re.compile(r"organization|organized|planning|strategic", re.IGNORECASE), "Strategic Planning"),
)


@dataclass(frozen=True)
class ResumeAnalysis:
    key_skills: List[str]
    experience_level: str
    years_of_experience: int
    recommended_roles: List[str]
    industry_fit: List[str]
    top_strengths: List[str]
    summary: str
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        return {
            "keySkills": d["key_skills"],
            "experienceLevel": d["experience_level"],
            "yearsOfExperience": d["years_of_experience"],
            "recommendedRoles": d["recommended_roles"],
            "industryFit": d["industry_fit"],
            "topStrengths": d["top_strengths"],
            "summary": d["summary"],
            "degraded": d["degraded"],
        }


def _str_list(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()][:limit]


def _rank_by_keywords(skills: Sequence[str], table, limit: int) -> List[str]:
    hay = " ".join(skills).lower()
    scored = [(name, sum(1 for kw in kws if kw in hay)) for name, kws in table]
    scored = [s for s in scored if s[1] > 0]
    scored.sort(key=lambda s: s[1], reverse=True)
    return [name for name, _ in scored[:limit]]


def keyword_analysis(resume_text: str) -> ResumeAnalysis:
    """Deterministic analysis used when the model is unavailable."""
    text = resume_text or ""
    lower = text.lower()

    found: List[str] = []
    for kw in _SKILL_KEYWORDS:
        if kw in lower and kw not in found:
            found.append(kw)
    key_skills = found[:5]

    level = "mid"
    if any(h in lower for h in _SENIOR_HINTS):
        level = "senior"
    elif any(h in lower for h in _JUNIOR_HINTS):
        level = "junior"

    activity = len(_ACTIVITY_RE.findall(text))
    years = min(max(1, math.ceil(activity / 8)), 50)

    roles = _rank_by_keywords(key_skills, _ROLE_KEYWORDS, 3)
    industries = _rank_by_keywords(key_skills, _INDUSTRY_KEYWORDS, 3)
    strengths = [name for pattern, name in _STRENGTH_PATTERNS if pattern.search(text)][:3]

    if key_skills:
        adjective = {"senior": "Experienced", "junior": "Emerging"}.get(level, "Skilled")
        summary = f"{adjective} professional with expertise in {', '.join(key_skills[:2])}."
    else:
        summary = "Professional with technical background and relevant experience."

    return ResumeAnalysis(
        key_skills=key_skills or ["JavaScript", "Python", "SQL"],
        experience_level=level,
        years_of_experience=years,
        recommended_roles=roles or ["Software Developer", "Data Analyst", "Product Manager"],
        industry_fit=industries or ["Technology", "Consulting"],
        top_strengths=strengths or ["Technical Skills", "Problem Solving", "Team Collaboration"],
        summary=summary,
        degraded=True,
    )


def _sanitize(analysis: Dict[str, Any]) -> ResumeAnalysis:
    level = analysis.get("experienceLevel")
    years = analysis.get("yearsOfExperience")
    if isinstance(years, bool) or not isinstance(years, (int, float)) or not math.isfinite(years):
        years = 0
    summary = analysis.get("summary")
    return ResumeAnalysis(
        key_skills=_str_list(analysis.get("keySkills"), 5),
        experience_level=level if level in EXPERIENCE_LEVELS else "mid",
        years_of_experience=int(max(0, min(50, years))),
        recommended_roles=_str_list(analysis.get("recommendedRoles"), 4),
        industry_fit=_str_list(analysis.get("industryFit"), 3),
        top_strengths=_str_list(analysis.get("topStrengths"), 3),
        summary=summary.strip() if isinstance(summary, str) and summary.strip() else "Professional with relevant skills",
    )


class ResumeAnalyzer:
    def __init__(self, provider: InferenceProvider, *, char_budget: int = RESUME_ANALYSIS_CHAR_BUDGET) -> None:
        self._provider = provider
        self._char_budget = char_budget

    async def analyze(self, resume_text: str) -> ResumeAnalysis:
        prompt = build_resume_analysis_prompt(resume_text, char_budget=self._char_budget)
        try:
            raw = await self._provider.complete(prompt)
        except Exception as exc:
            logger.warning("resume analysis degraded to keyword scan: %s", type(exc).__name__)
            return keyword_analysis(resume_text)

        try:
            analysis = require_model_json(raw, extract_object=True)
        except ParseError as exc:
            logger.info("resume analysis was not valid JSON: %s", exc)
            return keyword_analysis(resume_text)
        return _sanitize(analysis)
