"""
hirelens/llm/prompt.py

Prompt builders for every model call the core makes.

Constrained prompts (explanation, intent, filter, resume analysis) ask for a
single label or a single JSON object and pin the shape with examples. Guidance
prompts (job search, help, general) are free-form and returned verbatim.
"""
from __future__ import annotations

from hirelens.models import JobPosting

_EXPLANATION_SYSTEM_PROMPT = """\
You are an expert career advisor analyzing job-resume matches.
Only reference skills and experience that actually appear in the resume text you are given.
Return ONLY valid JSON, no additional text.\
"""

_ASSISTANT_SYSTEM_PROMPT = """\
You are a friendly AI assistant for a job tracking application.
The app ranks job postings against the user's resume and lets them narrow the list with filters.
Keep every answer conversational and brief (2-3 sentences).\
"""


def build_explanation_prompt(
        *,
        resume_text: str,
        job: JobPosting,
        base_score: int,
        char_budget: int,
) -> str:
    """
    One structured-output request per job. The resume is truncated to
    char_budget characters to bound token cost.
    """
    resume_excerpt = (resume_text or "")[:char_budget]
    return f"""\
Resume Summary:
{resume_excerpt}

Job Details:
Title: {job.title}
Company: {job.company}
Description: {job.description}
Required Skills: {", ".join(job.skills)}

The semantic similarity score is {base_score}%.

Provide a concise match analysis in the following JSON format:
{{
  "matchingSkills": ["skill1", "skill2", "skill3"],
  "relevantExperience": "brief description of relevant experience found in resume",
  "keywordAlignment": "brief description of keyword matches",
  "adjustedScore": number between 0-100,
  "reasoning": "one sentence explaining the score"
}}

Focus on:
1. Specific skills from the resume that match job requirements
2. Relevant experience that aligns with the role
3. Keyword overlap between resume and job description
4. Adjust the score if needed based on strong matches or mismatches

Return ONLY valid JSON, no additional text.\
"""


def build_intent_prompt(query: str) -> str:
    return f"""\
You are an AI assistant for a job tracking application. Classify the user's intent.

User Query: {query}

Classify into ONE of these intents:
- "filter_update": User wants to change job filters (e.g., "show remote jobs", "only high matches", "clear filters")
- "job_search": User wants to find specific jobs (e.g., "find software engineer jobs", "show me Python roles")
- "help": User needs help with the app (e.g., "where are my applications?", "how does matching work?")
- "general": General conversation or unclear intent

Return ONLY the intent name, nothing else.\
"""


def build_filter_prompt(query: str) -> str:
    return f"""\
You are parsing a user's request to update job filters.

User Query: {query}

Available filters:
- role: string (job title/role)
- skills: array of strings
- datePosted: "24h" | "week" | "month" | "any"
- jobType: "full-time" | "part-time" | "contract" | "internship" | "any"
- workMode: "remote" | "hybrid" | "onsite" | "any"
- location: string
- matchScore: "high" (>70%) | "medium" (40-70%) | "all"

Special commands:
- "clear filters" or "reset" -> return {{"reset": true}}

Parse the query and return a JSON object with filter updates. Only include filters mentioned in the query.

Examples:
- "show remote jobs" -> {{"workMode": "remote"}}
- "high match score only" -> {{"matchScore": "high"}}
- "full-time jobs in San Francisco" -> {{"jobType": "full-time", "location": "San Francisco"}}
- "clear all filters" -> {{"reset": true}}
- "show Python and JavaScript jobs" -> {{"skills": ["Python", "JavaScript"]}}

Return ONLY valid JSON, no additional text.\
"""


def build_job_search_prompt(query: str) -> str:
    return f"""\
You are helping a user search for jobs.

User Query: {query}

Provide a helpful response about job searching. Mention that the user should:
1. Use the filters to narrow down results
2. Check the "Best Matches" section for top recommendations
3. Use the AI matching scores to find relevant positions

Keep the response conversational and helpful, 2-3 sentences max.\
"""


def build_help_prompt(query: str) -> str:
    return f"""\
You are a helpful assistant for a job tracking application.

User Query: {query}

Provide helpful guidance about the app. Here are key features:
- Applications: Track jobs you've applied to (check the Applications page in navigation)
- Matching: AI analyzes your resume and scores each job (0-100%)
- Filters: Use filters to narrow down jobs by role, skills, location, work mode, etc.
- Smart Apply: When you apply to jobs, we track your application status
- Best Matches: Top jobs based on your resume appear at the top of the dashboard

Keep the response friendly and concise, 2-3 sentences max.\
"""


def build_general_prompt(query: str) -> str:
    return f"""\
User Query: {query}

Respond helpfully. If the query is about jobs, guide them to use filters or search.
If it's about the app, explain features. Keep it conversational and brief (2-3 sentences).\
"""


def build_resume_analysis_prompt(resume_text: str, *, char_budget: int) -> str:
    return f"""\
Extract career information from this resume. Return ONLY valid JSON.

RESUME:
{(resume_text or "")[:char_budget]}

Return this exact JSON structure with real data from the resume:
{{"keySkills":["skill1","skill2","skill3"],"experienceLevel":"junior|mid|senior","yearsOfExperience":number,"recommendedRoles":["role1","role2"],"industryFit":["industry1"],"topStrengths":["strength1"],"summary":"brief one sentence summary"}}\
"""


def estimate_token_count(text: str) -> int:
    """
    Rough token estimate: ~4 chars per token.
    Used for budget checks in tests; not used at runtime.
    """
    return len(text) // 4
