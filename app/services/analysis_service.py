from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable

from app.ai.factory import get_oracle_client
from app.ai.types import OracleClient
from app.core.analysis_cache import NormalizedCache
from app.core.config import settings
from app.core.errors import NoRequirementsExtracted, QualityRejected, SchemaViolation
from app.features.resume_text import content_quality, formatting_profile
from app.matching.strict_matcher import StrictMatcher, dedupe_requirements, normalize_text
from app.schemas.analysis import (
    TIP_KEYS,
    AnalysisReport,
    AnalysisStage,
    CandidateFacts,
    JDAnalysis,
    MatchResult,
    RecruiterTip,
    RecruiterTips,
    RequirementItem,
    SkillMatch,
    StageSource,
    ValidatedSuggestion,
)
from app.services import prompts
from app.services.oracle_stage import OracleStage, StageOutcome
from app.services.rule_engine import AnalysisFacts, FallbackRuleEngine
from app.validation.quality import QualityGate
from app.validation.schema import CandidatePayload, MatchClaimsPayload, RequirementsPayload, SuggestionsPayload, TipsPayload

logger = logging.getLogger(__name__)


@dataclass
class AnalysisRun:
    run_id: str
    state: AnalysisStage = AnalysisStage.EXTRACTING_REQUIREMENTS
    stage_sources: dict[str, StageSource] = field(default_factory=dict)
    failure: tuple[str, str] | None = None

    def advance(self, state: AnalysisStage) -> None:
        self.state = state
        logger.debug("analysis_state run_id=%s state=%s", self.run_id, state.value)

    def record(self, stage: AnalysisStage, outcome: StageOutcome | None = None) -> None:
        if outcome is None:
            self.stage_sources[stage.value] = "fallback"
        elif outcome.ok:
            self.stage_sources[stage.value] = outcome.source or "oracle"
        else:
            self.stage_sources[stage.value] = "fallback"

    def fail(self, stage: str, cause: str) -> None:
        self.failure = (stage, cause)
        self.advance(AnalysisStage.FAILED)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AnalysisOrchestrator:
    """Runs one resume/job-description analysis through the staged pipeline.

    Requirements and candidate facts are extracted concurrently, matching
    waits for both, and every later stage degrades to the rule engine when
    the oracle fails. Only ``NoRequirementsExtracted`` reaches the caller.
    """

    def __init__(
        self,
        oracle: OracleClient | None,
        *,
        report_cache: NormalizedCache,
        stage_cache: NormalizedCache,
        matcher: StrictMatcher | None = None,
        gate: QualityGate | None = None,
        rules: FallbackRuleEngine | None = None,
        oracle_timeout_s: float = 30.0,
        clock: Callable[[], str] = _utc_now_iso,
    ) -> None:
        self._report_cache = report_cache
        self._stage_cache = stage_cache
        self._matcher = matcher or StrictMatcher()
        self._gate = gate or QualityGate()
        self._rules = rules or FallbackRuleEngine(matcher=self._matcher, gate=self._gate)
        self._stage = OracleStage(oracle, stage_cache=stage_cache, timeout_s=oracle_timeout_s)
        self._clock = clock

    @property
    def report_cache(self) -> NormalizedCache:
        return self._report_cache

    @property
    def stage_cache(self) -> NormalizedCache:
        return self._stage_cache

    def clear_caches(self) -> int:
        return self._report_cache.clear() + self._stage_cache.clear()

    def purge_expired(self) -> int:
        return self._report_cache.purge_expired() + self._stage_cache.purge_expired()

    def analyze(self, resume_text: str, job_description_text: str) -> AnalysisReport:
        return asyncio.run(self.analyze_async(resume_text, job_description_text))

    async def analyze_async(self, resume_text: str, job_description_text: str) -> AnalysisReport:
        cached = self._report_cache.get(resume_text, job_description_text)
        if cached is not None:
            logger.info("analysis_cache_hit")
            return AnalysisReport.model_validate(cached)

        run = AnalysisRun(run_id=uuid.uuid4().hex)
        try:
            report = await self._run(run, resume_text, job_description_text)
        except NoRequirementsExtracted as exc:
            run.fail(exc.stage or AnalysisStage.EXTRACTING_REQUIREMENTS.value, exc.code)
            logger.warning("analysis_failed run_id=%s stage=%s code=%s", run.run_id, exc.stage, exc.code)
            raise

        self._report_cache.set(resume_text, job_description_text, result=report.model_dump(mode="json"))
        run.advance(AnalysisStage.ASSEMBLED)
        logger.info(
            "analysis_complete run_id=%s overall=%s sources=%s",
            run.run_id,
            report.scores.overall,
            ",".join(f"{stage}:{source}" for stage, source in report.stage_sources.items()),
        )
        return report

    async def _run(self, run: AnalysisRun, resume_text: str, job_description_text: str) -> AnalysisReport:
        run.advance(AnalysisStage.EXTRACTING_REQUIREMENTS)
        requirements_task = asyncio.create_task(self._extract_requirements(run, job_description_text))
        run.advance(AnalysisStage.EXTRACTING_CANDIDATE)
        candidate_task = asyncio.create_task(self._extract_candidate(run, resume_text))
        try:
            jd, candidate = await asyncio.gather(requirements_task, candidate_task)
        except BaseException:
            for task in (requirements_task, candidate_task):
                task.cancel()
            raise

        run.advance(AnalysisStage.MATCHING)
        match = await self._match(run, jd, candidate, resume_text)

        run.advance(AnalysisStage.SCORING)
        scores = self._rules.score(candidate, jd.requirements, match)
        run.stage_sources[AnalysisStage.SCORING.value] = "rules"

        facts = AnalysisFacts(
            resume_text=resume_text,
            jd=jd,
            candidate=candidate,
            quality=content_quality(candidate, resume_text),
            formatting=formatting_profile(resume_text),
            match=match,
        )

        run.advance(AnalysisStage.GENERATING_TIPS)
        tips = await self._generate_tips(run, facts)

        run.advance(AnalysisStage.GENERATING_SUGGESTIONS)
        suggestions = await self._generate_suggestions(run, facts)

        summary, strengths, weaknesses = self._rules.summarize(facts, scores)
        return AnalysisReport(
            generated_at=self._clock(),
            jd_analysis=jd,
            candidate=candidate,
            content_quality=facts.quality,
            formatting=facts.formatting,
            match=match,
            scores=scores,
            recruiter_tips=tips,
            recommendations=self._rules.recommendations(facts),
            suggestions=suggestions,
            ats_compatibility=self._rules.ats_compatibility(facts.quality, facts.formatting),
            summary=summary,
            strengths=strengths,
            weaknesses=weaknesses,
            stage_sources=dict(run.stage_sources),
        )

    # Requirements: retry once with a simpler prompt, then fail the analysis.

    def _accept_requirements(self, payload: RequirementsPayload) -> JDAnalysis:
        items = [
            RequirementItem(
                name=skill.name,
                importance=skill.importance,
                frequency=skill.frequency,
                variants=skill.variants,
                category=category,
            )
            for category, skills in (("hard", payload.hard_skills), ("soft", payload.soft_skills))
            for skill in skills
        ]
        requirements = dedupe_requirements(items, single_letter_terms=self._matcher.exceptions.single_letter_terms)
        if not requirements:
            raise SchemaViolation("Requirement list is empty", code="empty_requirements")
        return JDAnalysis(
            job_title=payload.job_title,
            job_level=payload.job_level,
            requirements=requirements,
            minimum_years=payload.minimum_years,
            education_degree=payload.education.degree,
            education_field=payload.education.field,
            education_required=payload.education.is_required,
            certifications=payload.certifications,
            responsibilities=payload.responsibilities,
        )

    async def _extract_requirements(self, run: AnalysisRun, job_description_text: str) -> JDAnalysis:
        stage = AnalysisStage.EXTRACTING_REQUIREMENTS
        outcome = await self._stage.run(
            stage=stage,
            prompt=prompts.requirements_prompt(job_description_text),
            retry_prompt=prompts.requirements_prompt_simple(job_description_text),
            accept=self._accept_requirements,
            run_id=run.run_id,
        )
        if not outcome.ok or outcome.value is None:
            raise NoRequirementsExtracted(
                f"No requirements could be extracted from the job description ({outcome.status})."
            ) from outcome.error
        run.record(stage, outcome)
        return outcome.value

    # Candidate facts: rule-based extraction on any failure.

    async def _extract_candidate(self, run: AnalysisRun, resume_text: str) -> CandidateFacts:
        stage = AnalysisStage.EXTRACTING_CANDIDATE

        def accept(payload: CandidatePayload) -> CandidateFacts:
            return CandidateFacts.model_validate(payload.model_dump())

        outcome = await self._stage.run(
            stage=stage,
            prompt=prompts.candidate_prompt(resume_text),
            accept=accept,
            run_id=run.run_id,
        )
        run.record(stage, outcome)
        if outcome.ok and outcome.value is not None:
            return outcome.value
        return self._rules.candidate_facts(resume_text)

    # Matching: claims come from the oracle or a substring scan, and are always reconciled.

    @staticmethod
    def _claims_from_payload(requirements: list[RequirementItem], payload: MatchClaimsPayload) -> list[SkillMatch]:
        by_name = {normalize_text(claim.skill): claim for claim in payload.matches}
        claims = []
        for requirement in requirements:
            claim = by_name.get(normalize_text(requirement.name))
            claims.append(
                SkillMatch(
                    skill=requirement.name,
                    importance=requirement.importance,
                    category=requirement.category,
                    found_in_resume=bool(claim and claim.found),
                    jd_frequency=requirement.frequency,
                    resume_frequency=claim.frequency if claim else 0,
                    matched_as=claim.matched_as if claim else None,
                )
            )
        return claims

    async def _match(
        self,
        run: AnalysisRun,
        jd: JDAnalysis,
        candidate: CandidateFacts,
        resume_text: str,
    ) -> MatchResult:
        stage = AnalysisStage.MATCHING
        outcome = await self._stage.run(
            stage=stage,
            prompt=prompts.match_prompt(jd.requirements, resume_text),
            accept=lambda payload: payload,
            run_id=run.run_id,
        )
        run.record(stage, outcome)
        if outcome.ok and outcome.value is not None:
            claims = self._claims_from_payload(jd.requirements, outcome.value)
            extra_names = list(outcome.value.extra_skills)
        else:
            claims = self._rules.basic_match_claims(jd.requirements, resume_text)
            extra_names = []

        variants = {normalize_text(item.name): item.variants for item in jd.requirements}
        reconciled = self._matcher.reconcile(claims, resume_text, variants)
        return self._rules.build_match(
            reconciled,
            candidate=candidate,
            jd=jd,
            resume_text=resume_text,
            extra_names=extra_names,
        )

    # Tips: rejected tips are replaced one by one with the rule-based tip.

    def _accept_tips(self, payload: TipsPayload, *, grounding_text: str) -> dict[str, RecruiterTip]:
        accepted: dict[str, RecruiterTip] = {}
        reasons: set[str] = set()
        for key in TIP_KEYS:
            tip = getattr(payload, key)
            tip_reasons = self._gate.rejection_reasons(tip, grounding_text=grounding_text)
            if tip_reasons:
                reasons.update(tip_reasons)
                logger.info("recruiter_tip_rejected key=%s reasons=%s", key, ",".join(tip_reasons))
            else:
                accepted[key] = RecruiterTip.model_validate(tip.model_dump())
        if not accepted:
            raise QualityRejected(
                "Every recruiter tip was rejected by the quality gate",
                stage=AnalysisStage.GENERATING_TIPS.value,
                reasons=sorted(reasons),
            )
        return accepted

    async def _generate_tips(self, run: AnalysisRun, facts: AnalysisFacts) -> RecruiterTips:
        stage = AnalysisStage.GENERATING_TIPS
        rule_tips = self._rules.tips(facts)
        outcome = await self._stage.run(
            stage=stage,
            prompt=prompts.tips_prompt(facts.jd, facts.candidate, facts.match, facts.resume_text),
            accept=lambda payload: self._accept_tips(payload, grounding_text=facts.resume_text),
            run_id=run.run_id,
        )
        run.record(stage, outcome)
        if not outcome.ok or outcome.value is None:
            return rule_tips
        substituted = [key for key in TIP_KEYS if key not in outcome.value]
        if substituted:
            logger.info("recruiter_tips_substituted keys=%s", ",".join(substituted))
        return rule_tips.model_copy(update=outcome.value)

    # Suggestions: retry once with a simpler prompt, then rule-based suggestions.

    async def _generate_suggestions(self, run: AnalysisRun, facts: AnalysisFacts) -> list[ValidatedSuggestion]:
        stage = AnalysisStage.GENERATING_SUGGESTIONS

        def accept(payload: SuggestionsPayload) -> list[ValidatedSuggestion]:
            return self._gate.require_accepted(
                payload.suggestions,
                grounding_text=facts.resume_text,
                stage=stage.value,
            )

        outcome = await self._stage.run(
            stage=stage,
            prompt=prompts.suggestions_prompt(
                facts.jd,
                facts.candidate,
                facts.match,
                weak_bullet_score=self._rules.thresholds.weak_bullet_score,
            ),
            retry_prompt=prompts.suggestions_prompt_simple(facts.candidate, facts.match),
            accept=accept,
            run_id=run.run_id,
        )
        run.record(stage, outcome)
        if outcome.ok and outcome.value:
            return list(outcome.value)
        return self._rules.suggestions(facts)


@lru_cache(maxsize=1)
def get_analysis_orchestrator() -> AnalysisOrchestrator:
    return AnalysisOrchestrator(
        get_oracle_client(),
        report_cache=NormalizedCache(ttl_seconds=settings.analysis_cache_ttl_s, name="report"),
        stage_cache=NormalizedCache(ttl_seconds=settings.analysis_cache_ttl_s, name="stage"),
        oracle_timeout_s=settings.oracle_timeout_s,
    )
