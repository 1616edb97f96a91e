from __future__ import annotations

import json
from typing import Sequence

from app.schemas.analysis import CandidateFacts, JDAnalysis, MatchResult, RequirementItem

SYSTEM_PROMPT = (
    "You are a careful resume and job description analyst. "
    "Return exactly one JSON object that follows the requested structure. "
    "Never invent facts that are not present in the provided text."
)

_REQUIREMENTS_SHAPE = """{
  "job_title": "exact job title",
  "job_level": "entry" | "mid" | "senior" | "lead" | "manager" | "director" | "executive" | "unknown",
  "hard_skills": [
    {"name": "skill as written in the text", "importance": "required" | "preferred" | "bonus",
     "frequency": number_of_mentions, "variants": ["other names for the same skill found in the text"]}
  ],
  "soft_skills": [
    {"name": "soft skill", "importance": "required" | "preferred" | "bonus", "frequency": number_of_mentions}
  ],
  "minimum_years": number_or_null,
  "education": {"degree": "high_school" | "associate" | "bachelor" | "master" | "phd" | "any" | "not_specified",
                "field": "field of study or null", "is_required": true | false},
  "certifications": ["certification names"],
  "responsibilities": ["key duties"]
}"""

_CANDIDATE_SHAPE = """{
  "contact": {"email": "or null", "phone": "or null", "linkedin": "url or null", "github": "url or null",
              "portfolio": "url or null", "location": "or null"},
  "summary": "professional summary or null",
  "experience": [
    {"title": "job title", "org": "company", "start_date": "YYYY-MM or null", "end_date": "YYYY-MM, Present or null",
     "is_current": true | false,
     "bullet_points": [
       {"text": "bullet exactly as written", "has_action_verb": true | false, "action_verb": "verb or null",
        "has_metric": true | false, "metrics": ["numbers found"], "has_weak_phrase": true | false,
        "weak_phrases": ["e.g. responsible for"], "score": integer_0_to_100}
     ],
     "skills": ["skills used in this role"]}
  ],
  "education": [{"degree": "degree", "field": "field", "institution": "school", "graduation_date": "or null"}],
  "skills": [{"name": "skill", "frequency": number_of_mentions}],
  "certifications": ["certification names"],
  "total_years_experience": number
}"""

_MATCH_SHAPE = """{
  "matches": [
    {"skill": "requirement name exactly as listed", "found": true | false,
     "matched_as": "the exact wording used in the resume or null", "frequency": number_of_mentions}
  ],
  "extra_skills": ["skills in the resume that are not in the requirement list"]
}"""

_TIP_SHAPE = (
    '{"status": "pass" | "warning" | "fail", "title": "short title", "current": "what the resume shows now", '
    '"recommendation": "one concrete action", "impact": "high" | "medium" | "low"}'
)

_SUGGESTIONS_SHAPE = """{
  "suggestions": [
    {"type": "bullet_rewrite" | "add_keyword" | "add_metric" | "remove_weak_phrase" | "quantify" | "reorder" | "remove" | "general",
     "original": "exact original text or empty string",
     "suggested": "improved text",
     "reason": "why this is better",
     "impact": number_0_to_20}
  ]
}"""


def requirements_prompt(job_description: str) -> str:
    return f"""Extract every requirement from the job description below.

Rules:
1. List every tool, technology, framework, methodology and competency that is asked for.
2. Use the exact wording from the text for each name. Put alternative names found in the text into "variants".
3. Importance: "must have", "required", "essential" mean required; "nice to have", "preferred", "bonus" mean preferred.
   Unmarked skills in the main skills list are required.
4. Do not add skills that the text does not mention or clearly imply.

JOB DESCRIPTION:
{job_description}

Return JSON with this structure:
{_REQUIREMENTS_SHAPE}"""


def requirements_prompt_simple(job_description: str) -> str:
    return f"""List the skills a candidate needs for this job as JSON.

JOB DESCRIPTION:
{job_description}

Return JSON: {{"job_title": "title", "hard_skills": [{{"name": "skill", "importance": "required" | "preferred"}}]}}"""


def candidate_prompt(resume_text: str) -> str:
    return f"""Extract structured facts from the resume below. Copy bullet text exactly as written.

Scoring guide for each bullet (0-100): strong action verb at the start, a measurable result,
no weak phrases such as "responsible for", "helped with", "worked on".

RESUME:
{resume_text}

Return JSON with this structure:
{_CANDIDATE_SHAPE}"""


def match_prompt(requirements: Sequence[RequirementItem], resume_text: str) -> str:
    listed = "\n".join(
        f"- {item.name}" + (f" (also: {', '.join(item.variants)})" if item.variants else "") for item in requirements
    )
    return f"""For each requirement, decide whether the resume shows it.

Rules:
1. "found" is true only when the resume text itself names the skill or one of its listed alternatives.
2. "matched_as" must be copied from the resume text.
3. Return one entry per requirement, in the same order.

REQUIREMENTS:
{listed}

RESUME:
{resume_text}

Return JSON with this structure:
{_MATCH_SHAPE}"""


def _facts_block(jd: JDAnalysis, candidate: CandidateFacts, match: MatchResult) -> str:
    facts = {
        "job_title": jd.job_title,
        "job_level": jd.job_level,
        "candidate_level": match.job_level.candidate_level,
        "years_experience": candidate.total_years_experience,
        "required_years": match.experience.required_years,
        "matched_skills": [item.skill for item in match.matched],
        "missing_skills": [{"skill": item.skill, "importance": item.importance} for item in match.missing],
        "bullets": [bullet.text for bullet in candidate.bullet_points()][:20],
        "contact": candidate.contact.model_dump(exclude_none=True),
    }
    return json.dumps(facts, ensure_ascii=False, indent=2)


def tips_prompt(jd: JDAnalysis, candidate: CandidateFacts, match: MatchResult, resume_text: str) -> str:
    keys = ", ".join(
        (
            "job_level_match",
            "measurable_results",
            "resume_length",
            "resume_tone",
            "web_presence",
            "keyword_optimization",
            "ats_parsability",
        )
    )
    return f"""Give recruiter-style feedback on this resume for the role below.

Rules:
1. Base every statement on the facts and resume text provided. Do not cite studies, surveys or recruiter statistics.
2. Use at most two percentages in a tip, and only ones computed from the facts.
3. Each recommendation is one concrete action of at least ten characters.

FACTS:
{_facts_block(jd, candidate, match)}

RESUME WORD COUNT: {len(resume_text.split())}

Return JSON with exactly these keys: {keys}.
Each value has this structure: {_TIP_SHAPE}"""


def suggestions_prompt(
    jd: JDAnalysis,
    candidate: CandidateFacts,
    match: MatchResult,
    *,
    weak_bullet_score: int = 70,
) -> str:
    weak = [
        bullet.text for bullet in candidate.bullet_points() if bullet.score < weak_bullet_score or bullet.has_weak_phrase
    ][:5]
    missing = [item.skill for item in match.missing if item.importance == "required"][:5]
    weak_block = "\n".join(f'{index}. "{text}"' for index, text in enumerate(weak, start=1)) or "(none)"
    return f"""Suggest at most 5 improvements for a resume targeting the role "{jd.job_title}".

WEAK BULLET POINTS:
{weak_block}

MISSING REQUIRED SKILLS:
{', '.join(missing) or '(none)'}

Rules:
1. Never invent skills, employers or achievements the candidate does not have.
2. Only use numbers that are realistic; do not claim perfect results such as 100% or $1,000,000.
3. "original" must be copied exactly from the bullet being improved, or be empty.
4. "reason" explains the improvement in at least ten characters. "impact" is 0-20.

Return JSON with this structure:
{_SUGGESTIONS_SHAPE}"""


def suggestions_prompt_simple(candidate: CandidateFacts, match: MatchResult) -> str:
    bullets = [bullet.text for bullet in candidate.bullet_points()][:5]
    missing = [item.skill for item in match.missing][:5]
    return f"""Rewrite up to 3 of these resume bullets to start with an action verb. Do not add facts.

BULLETS:
{json.dumps(bullets, ensure_ascii=False)}

SKILLS TO MENTION IF THE CANDIDATE HAS THEM: {', '.join(missing) or '(none)'}

Return JSON: {{"suggestions": [{{"type": "bullet_rewrite", "original": "...", "suggested": "...", "reason": "...", "impact": 10}}]}}"""
