from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Importance = Literal["required", "preferred", "bonus"]
SkillCategory = Literal["hard", "soft"]
JobLevel = Literal["entry", "mid", "senior", "lead", "manager", "director", "executive", "unknown"]
DegreeLevel = Literal["high_school", "associate", "bachelor", "master", "phd", "any", "not_specified"]
MatchType = Literal["exact", "variant_text", "text_search"]
TipStatus = Literal["pass", "warning", "fail"]
Impact = Literal["high", "medium", "low"]
Priority = Literal["high", "medium", "low"]
RecommendationCategory = Literal["skills", "experience", "education", "formatting", "content"]
SuggestionType = Literal[
    "bullet_rewrite",
    "add_keyword",
    "add_metric",
    "remove_weak_phrase",
    "quantify",
    "reorder",
    "remove",
    "general",
]
StageSource = Literal["oracle", "fallback", "cache", "rules"]
AtsRating = Literal["excellent", "good", "fair", "poor"]
AtsCheckStatus = Literal["pass", "warning", "fail"]

REPORT_SCHEMA_VERSION = "3.0.0"


class AnalysisStage(str, Enum):
    EXTRACTING_REQUIREMENTS = "extracting_requirements"
    EXTRACTING_CANDIDATE = "extracting_candidate"
    MATCHING = "matching"
    SCORING = "scoring"
    GENERATING_TIPS = "generating_tips"
    GENERATING_SUGGESTIONS = "generating_suggestions"
    ASSEMBLED = "assembled"
    FAILED = "failed"


class RequirementItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=120)
    importance: Importance = "required"
    frequency: int = Field(default=1, ge=0)
    variants: tuple[str, ...] = ()
    category: SkillCategory = "hard"

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = " ".join(value.split())
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped

    @field_validator("variants", mode="before")
    @classmethod
    def _ordered_unique_variants(cls, value: object) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        seen: set[str] = set()
        ordered: list[str] = []
        for item in value:  # type: ignore[union-attr]
            text = " ".join(str(item).split())
            key = text.lower()
            if text and key not in seen:
                seen.add(key)
                ordered.append(text)
        return tuple(ordered)


class JDAnalysis(BaseModel):
    job_title: str = "Unknown Position"
    job_level: JobLevel = "unknown"
    requirements: list[RequirementItem] = Field(default_factory=list)
    minimum_years: float | None = Field(default=None, ge=0, le=60)
    education_degree: DegreeLevel = "not_specified"
    education_field: str | None = None
    education_required: bool = False
    certifications: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)


class ContactInfo(BaseModel):
    email: str | None = None
    phone: str | None = None
    linkedin: str | None = None
    github: str | None = None
    portfolio: str | None = None
    location: str | None = None


class BulletPoint(BaseModel):
    text: str = Field(min_length=1)
    has_action_verb: bool = False
    action_verb: str | None = None
    has_metric: bool = False
    metrics: list[str] = Field(default_factory=list)
    has_weak_phrase: bool = False
    weak_phrases: list[str] = Field(default_factory=list)
    score: int = Field(ge=0, le=100)


class ExperienceEntry(BaseModel):
    title: str = ""
    org: str = ""
    start_date: str | None = None
    end_date: str | None = None
    is_current: bool = False
    bullet_points: list[BulletPoint] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)


class EducationEntry(BaseModel):
    degree: str = ""
    field: str = ""
    institution: str = ""
    graduation_date: str | None = None


class ExtractedSkill(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    frequency: int = Field(default=1, ge=0)


class CandidateFacts(BaseModel):
    contact: ContactInfo = Field(default_factory=ContactInfo)
    summary: str | None = None
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    skills: list[ExtractedSkill] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    total_years_experience: float = Field(default=0.0, ge=0, le=70)

    def bullet_points(self) -> list[BulletPoint]:
        return [bullet for entry in self.experience for bullet in entry.bullet_points]


class ContentQuality(BaseModel):
    total_bullets: int = Field(default=0, ge=0)
    action_verb_count: int = Field(default=0, ge=0)
    bullets_with_metrics: int = Field(default=0, ge=0)
    bullets_with_weak_phrases: int = Field(default=0, ge=0)
    average_bullet_score: int = Field(default=0, ge=0, le=100)
    word_count: int = Field(default=0, ge=0)
    unique_skills_count: int = Field(default=0, ge=0)


class FormattingProfile(BaseModel):
    has_email: bool = False
    has_phone: bool = False
    has_linkedin: bool = False
    has_contact_info: bool = False
    sections_detected: list[str] = Field(default_factory=list)
    missing_sections: list[str] = Field(default_factory=list)
    has_tables_or_columns: bool = False
    estimated_pages: int = Field(default=1, ge=1)
    looks_unreadable: bool = False


class SkillMatch(BaseModel):
    skill: str
    importance: Importance = "required"
    category: SkillCategory = "hard"
    found_in_resume: bool = False
    jd_frequency: int = Field(default=0, ge=0)
    resume_frequency: int = Field(default=0, ge=0)
    matched_as: str | None = None
    match_type: MatchType | None = None


class ExperienceMatch(BaseModel):
    meets_requirement: bool
    candidate_years: float
    required_years: float
    gap: str | None = None


class EducationMatch(BaseModel):
    meets_requirement: bool
    candidate_degree: str
    required_degree: DegreeLevel
    field_match: bool


class CertificationMatch(BaseModel):
    matched: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)


class JobLevelMatch(BaseModel):
    matches: bool
    candidate_level: JobLevel
    required_level: JobLevel
    recommendation: str | None = None


class MatchResult(BaseModel):
    matched: list[SkillMatch] = Field(default_factory=list)
    missing: list[SkillMatch] = Field(default_factory=list)
    extra: list[SkillMatch] = Field(default_factory=list)
    experience: ExperienceMatch
    education: EducationMatch
    certifications: CertificationMatch = Field(default_factory=CertificationMatch)
    job_level: JobLevelMatch


class ScoreBreakdown(BaseModel):
    overall: int = Field(ge=0, le=100)
    keyword_match: int = Field(ge=0, le=100)
    experience_match: int = Field(ge=0, le=100)
    education_match: int = Field(ge=0, le=100)
    content_quality: int = Field(ge=0, le=100)


class RecruiterTip(BaseModel):
    status: TipStatus
    title: str = Field(min_length=5)
    current: str = Field(min_length=5)
    recommendation: str = Field(min_length=10)
    impact: Impact


TIP_KEYS: tuple[str, ...] = (
    "job_level_match",
    "measurable_results",
    "resume_length",
    "resume_tone",
    "web_presence",
    "keyword_optimization",
    "ats_parsability",
)


class RecruiterTips(BaseModel):
    job_level_match: RecruiterTip
    measurable_results: RecruiterTip
    resume_length: RecruiterTip
    resume_tone: RecruiterTip
    web_presence: RecruiterTip
    keyword_optimization: RecruiterTip
    ats_parsability: RecruiterTip


class Recommendation(BaseModel):
    id: str
    priority: Priority
    category: RecommendationCategory
    title: str
    description: str
    action_items: list[str] = Field(default_factory=list)
    expected_impact: int = Field(ge=0, le=100)


class ValidatedSuggestion(BaseModel):
    type: SuggestionType
    original: str = ""
    suggested: str = Field(min_length=10)
    reason: str = Field(min_length=10)
    impact: float = Field(ge=0, le=20)


class AtsCheck(BaseModel):
    name: str
    status: AtsCheckStatus
    message: str
    recommendation: str | None = None


class AtsCompatibility(BaseModel):
    overall: AtsRating
    checks: list[AtsCheck] = Field(default_factory=list)


class AnalysisReport(BaseModel):
    schema_version: str = REPORT_SCHEMA_VERSION
    generated_at: str
    jd_analysis: JDAnalysis
    candidate: CandidateFacts
    content_quality: ContentQuality
    formatting: FormattingProfile
    match: MatchResult
    scores: ScoreBreakdown
    recruiter_tips: RecruiterTips
    recommendations: list[Recommendation] = Field(default_factory=list)
    suggestions: list[ValidatedSuggestion] = Field(default_factory=list)
    ats_compatibility: AtsCompatibility
    summary: str
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    stage_sources: dict[str, StageSource] = Field(default_factory=dict)


class AnalyzeRequest(BaseModel):
    resume_text: str = Field(min_length=1, max_length=50000)
    job_description_text: str = Field(min_length=1, max_length=50000)

    @field_validator("job_description_text")
    @classmethod
    def _job_description_long_enough(cls, value: str) -> str:
        if len(value.strip()) < 50:
            raise ValueError("job_description_text must contain at least 50 characters")
        return value


class CacheClearResponse(BaseModel):
    status: Literal["ok"] = "ok"
    cleared: int = Field(ge=0)
