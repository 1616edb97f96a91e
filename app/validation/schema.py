from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.core.errors import SchemaViolation
from app.schemas.analysis import (
    AnalysisStage,
    CandidateFacts,
    DegreeLevel,
    Importance,
    JobLevel,
    RecruiterTips,
    ValidatedSuggestion,
)


class _OraclePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RequirementPayload(_OraclePayload):
    name: str = Field(min_length=1, max_length=120)
    importance: Importance
    frequency: int = Field(default=1, ge=0)
    variants: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        stripped = " ".join(value.split())
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped


class EducationRequirementPayload(_OraclePayload):
    degree: DegreeLevel = "not_specified"
    field: str | None = None
    is_required: bool = False


class RequirementsPayload(_OraclePayload):
    job_title: str = Field(default="Unknown Position", min_length=1)
    job_level: JobLevel = "unknown"
    hard_skills: list[RequirementPayload] = Field(default_factory=list)
    soft_skills: list[RequirementPayload] = Field(default_factory=list)
    minimum_years: float | None = Field(default=None, ge=0, le=60)
    education: EducationRequirementPayload = Field(default_factory=EducationRequirementPayload)
    certifications: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)


class CandidatePayload(CandidateFacts):
    model_config = ConfigDict(extra="ignore")


class MatchClaimPayload(_OraclePayload):
    skill: str = Field(min_length=1)
    found: bool
    matched_as: str | None = None
    frequency: int = Field(default=0, ge=0)


class MatchClaimsPayload(_OraclePayload):
    matches: list[MatchClaimPayload] = Field(default_factory=list)
    extra_skills: list[str] = Field(default_factory=list)


class TipsPayload(RecruiterTips):
    model_config = ConfigDict(extra="ignore")


class SuggestionsPayload(_OraclePayload):
    suggestions: list[ValidatedSuggestion] = Field(max_length=5)


STAGE_SCHEMAS: dict[str, type[BaseModel]] = {
    AnalysisStage.EXTRACTING_REQUIREMENTS.value: RequirementsPayload,
    AnalysisStage.EXTRACTING_CANDIDATE.value: CandidatePayload,
    AnalysisStage.MATCHING.value: MatchClaimsPayload,
    AnalysisStage.GENERATING_TIPS.value: TipsPayload,
    AnalysisStage.GENERATING_SUGGESTIONS.value: SuggestionsPayload,
}


def _summarize_errors(exc: ValidationError, limit: int = 3) -> str:
    parts = []
    for error in exc.errors()[:limit]:
        location = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    more = len(exc.errors()) - limit
    if more > 0:
        parts.append(f"+{more} more")
    return "; ".join(parts)


def validate(stage: str | AnalysisStage, payload: Any) -> BaseModel:
    """Validate a whole oracle payload for a stage; any invalid field rejects it all."""
    stage_name = stage.value if isinstance(stage, AnalysisStage) else stage
    schema = STAGE_SCHEMAS.get(stage_name)
    if schema is None:
        raise KeyError(f"No output schema registered for stage '{stage_name}'")
    if not isinstance(payload, dict):
        raise SchemaViolation(
            f"Expected a JSON object for {stage_name}, got {type(payload).__name__}",
            code="wrong_shape",
            stage=stage_name,
        )
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise SchemaViolation(
            f"Invalid {stage_name} payload: {_summarize_errors(exc)}",
            stage=stage_name,
        ) from exc
