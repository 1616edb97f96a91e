from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from app.core.config.scoring import get_scoring_float
from app.features.resume_text import DEGREE_RANK, degree_level, extract_candidate_facts
from app.matching.strict_matcher import StrictMatcher, normalize_text
from app.schemas.analysis import (
    AtsCheck,
    AtsCompatibility,
    CandidateFacts,
    CertificationMatch,
    ContentQuality,
    EducationMatch,
    ExperienceMatch,
    FormattingProfile,
    JDAnalysis,
    JobLevel,
    JobLevelMatch,
    MatchResult,
    Recommendation,
    RecruiterTip,
    RecruiterTips,
    RequirementItem,
    ScoreBreakdown,
    SkillMatch,
    ValidatedSuggestion,
)
from app.validation.quality import QualityGate

JOB_LEVEL_ORDER: tuple[JobLevel, ...] = ("entry", "mid", "senior", "lead", "manager", "director", "executive")
_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
_WEAK_REWRITES: dict[str, str] = {
    "responsible for": "Led",
    "helped with": "Contributed to",
    "assisted in": "Supported",
    "worked on": "Developed",
    "participated in": "Contributed to",
    "involved in": "Contributed to",
    "tasked with": "Delivered",
    "duties included": "Delivered",
}
_IRREGULAR_PAST: dict[str, str] = {
    "building": "Built",
    "leading": "Led",
    "writing": "Wrote",
    "running": "Ran",
    "making": "Made",
    "driving": "Drove",
    "setting": "Set",
    "teaching": "Taught",
    "selling": "Sold",
}


@dataclass(frozen=True)
class RuleThresholds:
    keyword_weight: float = 0.50
    experience_weight: float = 0.25
    education_weight: float = 0.15
    quality_weight: float = 0.10
    required_weight: float = 3
    preferred_weight: float = 2
    bonus_weight: float = 1
    education_unmet: float = 50
    word_count_min: int = 400
    word_count_max: int = 800
    metrics_pass: float = 0.50
    metrics_warn: float = 0.25
    action_verb_pass: float = 0.70
    weak_phrase_pass: float = 0.15
    weak_phrase_fail: float = 0.30
    keyword_pass: float = 0.80
    max_recommendations: int = 7
    rec_metrics_ratio: float = 0.50
    rec_weak_phrase_ratio: float = 0.20
    rec_action_verb_ratio: float = 0.70
    max_suggestions: int = 5
    weak_bullet_score: int = 70
    max_keyword_suggestions: int = 3
    lead_years: float = 10
    senior_years: float = 5
    mid_years: float = 2
    ats_word_min: int = 300
    ats_word_max: int = 1000
    ats_excellent: float = 0.9
    ats_good: float = 0.7
    ats_fair: float = 0.5

    @classmethod
    def from_scoring_config(cls) -> "RuleThresholds":
        return cls(
            keyword_weight=get_scoring_float("score.weights.keyword", 0.50),
            experience_weight=get_scoring_float("score.weights.experience", 0.25),
            education_weight=get_scoring_float("score.weights.education", 0.15),
            quality_weight=get_scoring_float("score.weights.content_quality", 0.10),
            required_weight=get_scoring_float("score.importance_weights.required", 3),
            preferred_weight=get_scoring_float("score.importance_weights.preferred", 2),
            bonus_weight=get_scoring_float("score.importance_weights.bonus", 1),
            education_unmet=get_scoring_float("score.education_unmet", 50),
            word_count_min=int(get_scoring_float("tips.word_count.min", 400)),
            word_count_max=int(get_scoring_float("tips.word_count.max", 800)),
            metrics_pass=get_scoring_float("tips.metrics.pass", 0.50),
            metrics_warn=get_scoring_float("tips.metrics.warn", 0.25),
            action_verb_pass=get_scoring_float("tips.action_verbs.pass", 0.70),
            weak_phrase_pass=get_scoring_float("tips.weak_phrases.pass", 0.15),
            weak_phrase_fail=get_scoring_float("tips.weak_phrases.fail", 0.30),
            keyword_pass=get_scoring_float("tips.keywords.pass", 0.80),
            max_recommendations=int(get_scoring_float("recommendations.max_items", 7)),
            rec_metrics_ratio=get_scoring_float("recommendations.metrics_ratio", 0.50),
            rec_weak_phrase_ratio=get_scoring_float("recommendations.weak_phrase_ratio", 0.20),
            rec_action_verb_ratio=get_scoring_float("recommendations.action_verb_ratio", 0.70),
            max_suggestions=int(get_scoring_float("suggestions.max_items", 5)),
            weak_bullet_score=int(get_scoring_float("suggestions.weak_bullet_score", 70)),
            max_keyword_suggestions=int(get_scoring_float("suggestions.max_keyword_suggestions", 3)),
            lead_years=get_scoring_float("job_level.years.lead", 10),
            senior_years=get_scoring_float("job_level.years.senior", 5),
            mid_years=get_scoring_float("job_level.years.mid", 2),
            ats_word_min=int(get_scoring_float("ats.word_count.min", 300)),
            ats_word_max=int(get_scoring_float("ats.word_count.max", 1000)),
            ats_excellent=get_scoring_float("ats.rating.excellent", 0.9),
            ats_good=get_scoring_float("ats.rating.good", 0.7),
            ats_fair=get_scoring_float("ats.rating.fair", 0.5),
        )


@dataclass(frozen=True)
class AnalysisFacts:
    """Validated inputs shared by the tip, recommendation and suggestion rules."""

    resume_text: str
    jd: JDAnalysis
    candidate: CandidateFacts
    quality: ContentQuality
    formatting: FormattingProfile
    match: MatchResult


def _ratio(part: int, total: int) -> float:
    return part / total if total > 0 else 0.0


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def rewrite_weak_bullet(text: str) -> str | None:
    """Turn a bullet that opens with a weak phrase into one that opens with a verb."""
    stripped = text.strip()
    lowered = stripped.lower()
    for phrase, verb in _WEAK_REWRITES.items():
        if not lowered.startswith(phrase):
            continue
        rest = stripped[len(phrase) :].strip(" :,-")
        if not rest:
            return None
        head, _, tail = rest.partition(" ")
        first = head.lower()
        if first.endswith("ing") and len(first) > 5:
            past = _IRREGULAR_PAST.get(first) or (first[:-3] + "ed").capitalize()
            return f"{past} {tail}".strip()
        return f"{verb} {rest}"
    return None


class FallbackRuleEngine:
    """Deterministic scoring and advice that never calls the oracle."""

    def __init__(
        self,
        *,
        matcher: StrictMatcher | None = None,
        gate: QualityGate | None = None,
        thresholds: RuleThresholds | None = None,
    ) -> None:
        self._matcher = matcher or StrictMatcher()
        self._gate = gate or QualityGate()
        self._t = thresholds or RuleThresholds.from_scoring_config()

    @property
    def thresholds(self) -> RuleThresholds:
        return self._t

    # Extraction and matching fallbacks

    def candidate_facts(self, resume_text: str) -> CandidateFacts:
        return extract_candidate_facts(resume_text, matcher=self._matcher)

    def basic_match_claims(self, requirements: Sequence[RequirementItem], resume_text: str) -> list[SkillMatch]:
        lowered = normalize_text(resume_text)
        claims = []
        for requirement in requirements:
            found = normalize_text(requirement.name) in lowered
            claims.append(
                SkillMatch(
                    skill=requirement.name,
                    importance=requirement.importance,
                    category=requirement.category,
                    found_in_resume=found,
                    jd_frequency=requirement.frequency,
                    matched_as=requirement.name if found else None,
                    match_type="text_search" if found else None,
                )
            )
        return claims

    def candidate_level(self, years: float) -> JobLevel:
        if years >= self._t.lead_years:
            return "lead"
        if years >= self._t.senior_years:
            return "senior"
        if years >= self._t.mid_years:
            return "mid"
        return "entry"

    def match_experience(self, candidate: CandidateFacts, jd: JDAnalysis) -> ExperienceMatch:
        required = float(jd.minimum_years or 0)
        years = float(candidate.total_years_experience)
        meets = years >= required
        gap = None
        if not meets:
            gap = f"{round(required - years, 1):g} more years than listed on the resume"
        return ExperienceMatch(meets_requirement=meets, candidate_years=years, required_years=required, gap=gap)

    def match_education(self, candidate: CandidateFacts, jd: JDAnalysis) -> EducationMatch:
        required_rank = DEGREE_RANK.get(jd.education_degree, 0)
        best = "not_specified"
        for entry in candidate.education:
            level = degree_level(entry.degree)
            if DEGREE_RANK.get(level, 0) > DEGREE_RANK.get(best, 0):
                best = level
        meets = required_rank == 0 or DEGREE_RANK.get(best, 0) >= required_rank

        field_match = True
        wanted = normalize_text(jd.education_field or "")
        if wanted:
            field_match = any(
                wanted in normalize_text(f"{entry.field} {entry.degree}")
                or (entry.field and normalize_text(entry.field) in wanted)
                for entry in candidate.education
            )
        return EducationMatch(
            meets_requirement=meets,
            candidate_degree=best,
            required_degree=jd.education_degree,
            field_match=field_match,
        )

    def match_certifications(self, candidate: CandidateFacts, jd: JDAnalysis, resume_text: str) -> CertificationMatch:
        listed = "\n".join(candidate.certifications)
        matched, missing = [], []
        for certification in jd.certifications:
            if self._matcher.verify(resume_text, certification) or self._matcher.verify(listed, certification):
                matched.append(certification)
            else:
                missing.append(certification)
        return CertificationMatch(matched=matched, missing=missing)

    def match_job_level(self, candidate: CandidateFacts, jd: JDAnalysis) -> JobLevelMatch:
        level = self.candidate_level(candidate.total_years_experience)
        required = jd.job_level
        if required == "unknown":
            return JobLevelMatch(matches=True, candidate_level=level, required_level=required)
        candidate_idx = JOB_LEVEL_ORDER.index(level)
        required_idx = JOB_LEVEL_ORDER.index(required)
        matches = candidate_idx >= required_idx - 1
        recommendation = None
        if not matches:
            recommendation = (
                f"Emphasize the scope and ownership you have held to show readiness for a {required}-level role."
            )
        return JobLevelMatch(
            matches=matches,
            candidate_level=level,
            required_level=required,
            recommendation=recommendation,
        )

    def extra_skills(
        self,
        names: Iterable[str],
        requirements: Sequence[RequirementItem],
        resume_text: str,
        *,
        limit: int = 15,
    ) -> list[SkillMatch]:
        known = set()
        for requirement in requirements:
            known.add(normalize_text(requirement.name))
            known.update(normalize_text(variant) for variant in requirement.variants)
        extras: list[SkillMatch] = []
        for name in names:
            key = normalize_text(name)
            if not key or key in known:
                continue
            known.add(key)
            count = self._matcher.count_occurrences(resume_text, name)
            if not count:
                continue
            extras.append(
                SkillMatch(
                    skill=name,
                    importance="bonus",
                    found_in_resume=True,
                    resume_frequency=count,
                    matched_as=name,
                    match_type="exact",
                )
            )
            if len(extras) >= limit:
                break
        return extras

    def build_match(
        self,
        reconciled: Sequence[SkillMatch],
        *,
        candidate: CandidateFacts,
        jd: JDAnalysis,
        resume_text: str,
        extra_names: Iterable[str] = (),
    ) -> MatchResult:
        names = [*extra_names, *(skill.name for skill in candidate.skills)]
        return MatchResult(
            matched=[item for item in reconciled if item.found_in_resume],
            missing=[item for item in reconciled if not item.found_in_resume],
            extra=self.extra_skills(names, jd.requirements, resume_text),
            experience=self.match_experience(candidate, jd),
            education=self.match_education(candidate, jd),
            certifications=self.match_certifications(candidate, jd, resume_text),
            job_level=self.match_job_level(candidate, jd),
        )

    # Scoring

    def _importance_weight(self, importance: str) -> float:
        return {
            "required": self._t.required_weight,
            "preferred": self._t.preferred_weight,
            "bonus": self._t.bonus_weight,
        }.get(importance, self._t.bonus_weight)

    def score(
        self,
        candidate: CandidateFacts,
        requirements: Sequence[RequirementItem],
        match: MatchResult,
    ) -> ScoreBreakdown:
        verified = {normalize_text(item.skill) for item in match.matched if item.found_in_resume}
        total_weight = sum(self._importance_weight(item.importance) for item in requirements)
        matched_weight = sum(
            self._importance_weight(item.importance)
            for item in requirements
            if normalize_text(item.name) in verified
        )
        keyword = round(matched_weight / total_weight * 100) if total_weight > 0 else 100

        required_years = match.experience.required_years
        if required_years <= 0:
            experience = 100
        else:
            experience = min(100, round(match.experience.candidate_years / required_years * 100))

        education = 100 if match.education.meets_requirement else round(self._t.education_unmet)

        scores = [bullet.score for bullet in candidate.bullet_points()]
        quality = round(sum(scores) / len(scores)) if scores else 0

        overall = round(
            keyword * self._t.keyword_weight
            + experience * self._t.experience_weight
            + education * self._t.education_weight
            + quality * self._t.quality_weight
        )
        return ScoreBreakdown(
            overall=max(0, min(100, overall)),
            keyword_match=max(0, min(100, keyword)),
            experience_match=max(0, min(100, experience)),
            education_match=max(0, min(100, education)),
            content_quality=max(0, min(100, quality)),
        )

    # Recruiter tips

    def _job_level_tip(self, facts: AnalysisFacts) -> RecruiterTip:
        level = facts.match.job_level
        if level.matches:
            return RecruiterTip(
                status="pass",
                title="Job Level Match",
                current=f"Your experience ({level.candidate_level}) aligns with this {level.required_level}-level role",
                recommendation="Good match. Keep the most relevant experience for this level near the top.",
                impact="high",
            )
        return RecruiterTip(
            status="warning",
            title="Job Level Mismatch",
            current=f"Your experience: {level.candidate_level}-level | Job requires: {level.required_level}-level",
            recommendation=level.recommendation or "Highlight leadership or strategic contributions.",
            impact="high",
        )

    def _measurable_results_tip(self, facts: AnalysisFacts) -> RecruiterTip:
        total = facts.quality.total_bullets
        with_metrics = facts.quality.bullets_with_metrics
        ratio = _ratio(with_metrics, total)
        percentage = round(ratio * 100)
        if ratio >= self._t.metrics_pass:
            return RecruiterTip(
                status="pass",
                title="Measurable Results",
                current=f"{with_metrics} of {total} bullets ({percentage}%) include metrics",
                recommendation="Your achievements are well quantified.",
                impact="high",
            )
        if ratio >= self._t.metrics_warn:
            return RecruiterTip(
                status="warning",
                title="Add More Metrics",
                current=f"Only {with_metrics} of {total} bullets ({percentage}%) include metrics",
                recommendation="Add numbers, percentages, or dollar amounts to more of your bullets.",
                impact="high",
            )
        return RecruiterTip(
            status="fail",
            title="Missing Measurable Results",
            current=f"Only {with_metrics} of {total} bullets include metrics",
            recommendation="Add concrete figures such as time saved, revenue affected, or team size.",
            impact="high",
        )

    def _resume_length_tip(self, facts: AnalysisFacts) -> RecruiterTip:
        words = facts.quality.word_count
        pages = facts.formatting.estimated_pages
        if self._t.word_count_min <= words <= self._t.word_count_max:
            return RecruiterTip(
                status="pass",
                title="Resume Length",
                current=f"{words} words (~{_plural(pages, 'page')})",
                recommendation="The length suits a quick recruiter scan.",
                impact="medium",
            )
        if words < self._t.word_count_min:
            return RecruiterTip(
                status="warning",
                title="Resume Too Short",
                current=f"{words} words (aim for {self._t.word_count_min}-{self._t.word_count_max})",
                recommendation="Add more detail about your achievements and responsibilities.",
                impact="medium",
            )
        return RecruiterTip(
            status="warning",
            title="Resume Too Long",
            current=f"{words} words (~{_plural(pages, 'page')})",
            recommendation="Trim to 1-2 pages and focus on recent, relevant experience.",
            impact="medium",
        )

    def _resume_tone_tip(self, facts: AnalysisFacts) -> RecruiterTip:
        total = facts.quality.total_bullets
        weak_ratio = _ratio(facts.quality.bullets_with_weak_phrases, total)
        verb_ratio = _ratio(facts.quality.action_verb_count, total)
        if weak_ratio < self._t.weak_phrase_pass and verb_ratio >= self._t.action_verb_pass:
            return RecruiterTip(
                status="pass",
                title="Professional Tone",
                current="Strong action verbs detected, minimal weak phrases",
                recommendation="Keep opening bullets with the action you took.",
                impact="medium",
            )
        if weak_ratio >= self._t.weak_phrase_fail:
            return RecruiterTip(
                status="fail",
                title="Weak Phrases Detected",
                current=f"{round(weak_ratio * 100)}% of bullets contain weak phrases",
                recommendation='Replace "Responsible for" with action verbs like "Led", "Developed", "Achieved".',
                impact="medium",
            )
        return RecruiterTip(
            status="warning",
            title="Improve Resume Tone",
            current=f"{round(verb_ratio * 100)}% of bullets start with action verbs",
            recommendation="Start more bullets with strong action verbs.",
            impact="medium",
        )

    def _web_presence_tip(self, facts: AnalysisFacts) -> RecruiterTip:
        has_linkedin = facts.formatting.has_linkedin or bool(facts.candidate.contact.linkedin)
        has_github = bool(facts.candidate.contact.github)
        has_portfolio = bool(facts.candidate.contact.portfolio)
        if has_linkedin and (has_github or has_portfolio):
            return RecruiterTip(
                status="pass",
                title="Web Presence",
                current="LinkedIn and portfolio/GitHub found",
                recommendation="Recruiters can learn more about your work online.",
                impact="low",
            )
        if has_linkedin:
            missing = [name for name, present in (("GitHub", has_github), ("Portfolio", has_portfolio)) if not present]
            return RecruiterTip(
                status="warning",
                title="Add More Web Presence",
                current="LinkedIn found",
                recommendation=f"Consider adding: {', '.join(missing)}",
                impact="low",
            )
        return RecruiterTip(
            status="fail",
            title="Missing Online Presence",
            current="No LinkedIn found",
            recommendation="Add your LinkedIn URL to the contact section.",
            impact="medium",
        )

    def _keyword_tip(self, facts: AnalysisFacts) -> RecruiterTip:
        matched = facts.match.matched
        missing = facts.match.missing
        total = len(matched) + len(missing)
        ratio = _ratio(len(matched), total)
        required_missing = [item.skill for item in missing if item.importance == "required"]
        if ratio >= self._t.keyword_pass and not required_missing:
            return RecruiterTip(
                status="pass",
                title="Keyword Optimization",
                current=f"{round(ratio * 100)}% keyword match ({len(matched)}/{total})",
                recommendation="Your keywords line up well with the job description.",
                impact="high",
            )
        if required_missing:
            return RecruiterTip(
                status="fail",
                title="Missing Required Skills",
                current=f"{_plural(len(required_missing), 'required skill')} not found in resume",
                recommendation=f"Add these critical skills where you have used them: {', '.join(required_missing[:3])}",
                impact="high",
            )
        return RecruiterTip(
            status="warning",
            title="Improve Keyword Match",
            current=f"{round(ratio * 100)}% keyword match",
            recommendation=f"Add missing skills: {', '.join(item.skill for item in missing[:3])}",
            impact="high",
        )

    def _ats_parsability_tip(self, facts: AnalysisFacts) -> RecruiterTip:
        formatting = facts.formatting
        if formatting.looks_unreadable:
            return RecruiterTip(
                status="fail",
                title="Unreadable Text",
                current="Text extraction yielded minimal content",
                recommendation="ATS cannot read images. Use a standard text-based PDF or DOCX.",
                impact="high",
            )
        if formatting.has_tables_or_columns:
            return RecruiterTip(
                status="warning",
                title="Parsing Structure / Layout Issue",
                current="Complex text structure detected (possible columns/tables)",
                recommendation="Use a simple single-column layout so parsers keep the text order.",
                impact="high",
            )
        if formatting.missing_sections:
            return RecruiterTip(
                status="fail",
                title="Missing Standard Sections",
                current=f"Could not identify: {', '.join(formatting.missing_sections)}",
                recommendation="Rename sections to standard names (Experience, Education, Skills).",
                impact="medium",
            )
        return RecruiterTip(
            status="pass",
            title="ATS Parsability",
            current="Clean text structure with standard sections",
            recommendation="Your resume text is easy for parsers to read.",
            impact="high",
        )

    def tips(self, facts: AnalysisFacts) -> RecruiterTips:
        return RecruiterTips(
            job_level_match=self._job_level_tip(facts),
            measurable_results=self._measurable_results_tip(facts),
            resume_length=self._resume_length_tip(facts),
            resume_tone=self._resume_tone_tip(facts),
            web_presence=self._web_presence_tip(facts),
            keyword_optimization=self._keyword_tip(facts),
            ats_parsability=self._ats_parsability_tip(facts),
        )

    # Recommendations

    def recommendations(self, facts: AnalysisFacts) -> list[Recommendation]:
        items: list[Recommendation] = []
        missing = facts.match.missing
        quality = facts.quality
        formatting = facts.formatting
        total = quality.total_bullets

        missing_required = [item for item in missing if item.importance == "required"]
        if missing_required:
            items.append(
                Recommendation(
                    id="add-required-skills",
                    priority="high",
                    category="skills",
                    title="Add Required Skills",
                    description=f"{_plural(len(missing_required), 'required skill')} missing from your resume",
                    action_items=[
                        f'Add "{item.skill}" to your resume with context of how you used it'
                        for item in missing_required[:5]
                    ],
                    expected_impact=min(20, len(missing_required) * 5),
                )
            )

        missing_preferred = [item for item in missing if item.importance == "preferred"]
        if missing_preferred:
            items.append(
                Recommendation(
                    id="add-preferred-skills",
                    priority="medium",
                    category="skills",
                    title="Add Preferred Skills",
                    description=f"{_plural(len(missing_preferred), 'preferred skill')} would strengthen your application",
                    action_items=[
                        f'Consider adding "{item.skill}" if you have experience with it' for item in missing_preferred[:3]
                    ],
                    expected_impact=min(10, len(missing_preferred) * 2),
                )
            )

        if quality.bullets_with_metrics < total * self._t.rec_metrics_ratio:
            items.append(
                Recommendation(
                    id="add-metrics",
                    priority="high",
                    category="content",
                    title="Add Measurable Results",
                    description=f"Only {quality.bullets_with_metrics} of {total} bullet points include metrics",
                    action_items=[
                        'Quantify achievements with percentages: "Increased sales by 40%"',
                        'Include amounts: "Saved $50K annually"',
                        'Add specific numbers: "Managed team of 15 engineers"',
                    ],
                    expected_impact=15,
                )
            )

        if quality.bullets_with_weak_phrases > total * self._t.rec_weak_phrase_ratio:
            items.append(
                Recommendation(
                    id="remove-weak-phrases",
                    priority="medium",
                    category="content",
                    title="Remove Weak Phrases",
                    description=f'{quality.bullets_with_weak_phrases} bullets contain weak phrases like "Responsible for"',
                    action_items=[
                        'Replace "Responsible for managing" with "Managed"',
                        'Replace "Helped with" with "Contributed to" or "Developed"',
                        "Start each bullet with a strong action verb",
                    ],
                    expected_impact=10,
                )
            )

        if quality.action_verb_count < total * self._t.rec_action_verb_ratio:
            items.append(
                Recommendation(
                    id="add-action-verbs",
                    priority="medium",
                    category="content",
                    title="Use Strong Action Verbs",
                    description=f"Only {quality.action_verb_count} of {total} bullets start with action verbs",
                    action_items=[
                        "Start bullets with verbs like: Led, Developed, Built, Increased, Achieved",
                        'Avoid starting with "I" or passive phrases',
                        "Use past tense for previous roles, present tense for current role",
                    ],
                    expected_impact=8,
                )
            )

        experience = facts.match.experience
        if not experience.meets_requirement:
            items.append(
                Recommendation(
                    id="experience-gap",
                    priority="high",
                    category="experience",
                    title="Address Experience Gap",
                    description=(
                        f"You have {experience.candidate_years:g} years, job requires {experience.required_years:g} years"
                    ),
                    action_items=[
                        "Highlight transferable skills from related experience",
                        "Include relevant internships, projects, or freelance work",
                        "Emphasize achievements that show rapid growth",
                    ],
                    expected_impact=15,
                )
            )

        if not facts.match.education.meets_requirement:
            items.append(
                Recommendation(
                    id="education-gap",
                    priority="low",
                    category="education",
                    title="Address Education Requirement",
                    description=f"The role asks for a {facts.match.education.required_degree} degree",
                    action_items=[
                        "List equivalent certifications or coursework",
                        "Show practical experience that covers the same ground",
                    ],
                    expected_impact=5,
                )
            )

        if formatting.missing_sections:
            items.append(
                Recommendation(
                    id="add-sections",
                    priority="medium",
                    category="formatting",
                    title="Add Missing Sections",
                    description=f"Missing sections: {', '.join(formatting.missing_sections)}",
                    action_items=[f"Add a {section} section to your resume" for section in formatting.missing_sections],
                    expected_impact=5,
                )
            )

        if not formatting.has_linkedin:
            items.append(
                Recommendation(
                    id="add-linkedin",
                    priority="low",
                    category="formatting",
                    title="Add LinkedIn URL",
                    description="Recruiters often look up a LinkedIn profile while evaluating candidates",
                    action_items=["Add your LinkedIn profile URL in the contact section"],
                    expected_impact=3,
                )
            )

        if formatting.looks_unreadable:
            items.append(
                Recommendation(
                    id="fix-unreadable-text",
                    priority="high",
                    category="formatting",
                    title="Resume Not ATS-Readable",
                    description="Very little text could be read, which usually means an image-based document",
                    action_items=[
                        "Use a text-based PDF or DOCX format",
                        "Recreate image-based resumes in a word processor",
                    ],
                    expected_impact=30,
                )
            )

        if formatting.has_tables_or_columns:
            items.append(
                Recommendation(
                    id="fix-tables",
                    priority="medium",
                    category="formatting",
                    title="Avoid Tables & Columns",
                    description="Tables and columns may cause ATS parsing issues",
                    action_items=[
                        "Use a single-column layout for better ATS compatibility",
                        "Replace tables with simple text formatting",
                    ],
                    expected_impact=10,
                )
            )

        items.sort(key=lambda item: (_PRIORITY_ORDER[item.priority], -item.expected_impact))
        return items[: self._t.max_recommendations]

    # Suggestions

    def suggestions(self, facts: AnalysisFacts) -> list[ValidatedSuggestion]:
        drafts: list[ValidatedSuggestion] = []
        for bullet in facts.candidate.bullet_points():
            if bullet.has_weak_phrase:
                phrase = f'"{bullet.weak_phrases[0]}"' if bullet.weak_phrases else "a weak opening phrase"
                rewritten = rewrite_weak_bullet(bullet.text)
                if rewritten and len(rewritten) >= 10 and rewritten != bullet.text:
                    drafts.append(
                        ValidatedSuggestion(
                            type="bullet_rewrite",
                            original=bullet.text,
                            suggested=rewritten,
                            reason=f"Opens with an action verb instead of {phrase}.",
                            impact=10,
                        )
                    )
                else:
                    drafts.append(
                        ValidatedSuggestion(
                            type="remove_weak_phrase",
                            original=bullet.text,
                            suggested=f"Rewrite this bullet without {phrase} and open with the action you took.",
                            reason="Weak phrases describe duties rather than results.",
                            impact=8,
                        )
                    )
            elif bullet.score < self._t.weak_bullet_score and not bullet.has_metric:
                drafts.append(
                    ValidatedSuggestion(
                        type="add_metric",
                        original=bullet.text,
                        suggested=f"{bullet.text.rstrip('.')}, and state the measurable outcome of this work.",
                        reason="Bullets with a concrete outcome are easier for recruiters to assess.",
                        impact=6,
                    )
                )

        missing_required = [item for item in facts.match.missing if item.importance == "required"]
        for item in missing_required[: self._t.max_keyword_suggestions]:
            drafts.append(
                ValidatedSuggestion(
                    type="add_keyword",
                    original="",
                    suggested=f"Add {item.skill} to your skills section and name a role or project where you used it.",
                    reason=f"{item.skill} is a required skill in the job description and was not found in the resume.",
                    impact=15,
                )
            )

        drafts.sort(key=lambda suggestion: -suggestion.impact)
        accepted = self._gate.filter(drafts, grounding_text=facts.resume_text).accepted
        if not accepted:
            accepted = [
                ValidatedSuggestion(
                    type="general",
                    original="",
                    suggested="Review each bullet for a clear action verb and a concrete outcome.",
                    reason="No specific gaps were detected, so a final review pass is the most useful step.",
                    impact=2,
                )
            ]
        return accepted[: self._t.max_suggestions]

    # Report summary

    def ats_compatibility(self, quality: ContentQuality, formatting: FormattingProfile) -> AtsCompatibility:
        words = quality.word_count
        contact_ok = formatting.has_email and formatting.has_phone
        checks = [
            AtsCheck(
                name="Contact Information",
                status="pass" if contact_ok else "warning" if formatting.has_contact_info else "fail",
                message="Email and phone found" if contact_ok else "Missing contact information",
                recommendation=None if formatting.has_contact_info else "Add email and phone number",
            ),
            AtsCheck(
                name="Standard Sections",
                status="pass" if not formatting.missing_sections else "warning",
                message=(
                    "All standard sections found"
                    if not formatting.missing_sections
                    else f"Missing: {', '.join(formatting.missing_sections)}"
                ),
                recommendation="Add missing sections for better ATS parsing" if formatting.missing_sections else None,
            ),
            AtsCheck(
                name="Text-Based Resume",
                status="fail" if formatting.looks_unreadable else "pass",
                message=(
                    "Resume appears to be scanned or image-based"
                    if formatting.looks_unreadable
                    else "Resume is text-based and ATS readable"
                ),
                recommendation="Use a text-based document, not a scanned image" if formatting.looks_unreadable else None,
            ),
            AtsCheck(
                name="Simple Layout",
                status="warning" if formatting.has_tables_or_columns else "pass",
                message=(
                    "Tables or columns detected"
                    if formatting.has_tables_or_columns
                    else "Single column layout (recommended)"
                ),
                recommendation=(
                    "Use a single-column layout for better ATS compatibility"
                    if formatting.has_tables_or_columns
                    else None
                ),
            ),
            AtsCheck(
                name="Resume Length",
                status="pass" if self._t.ats_word_min <= words <= self._t.ats_word_max else "warning",
                message=f"{words} words (~{_plural(formatting.estimated_pages, 'page')})",
                recommendation=(
                    "Add more detail"
                    if words < self._t.ats_word_min
                    else "Consider trimming to 1-2 pages"
                    if words > self._t.ats_word_max
                    else None
                ),
            ),
        ]
        pass_rate = sum(1 for check in checks if check.status == "pass") / len(checks)
        if pass_rate >= self._t.ats_excellent:
            overall = "excellent"
        elif pass_rate >= self._t.ats_good:
            overall = "good"
        elif pass_rate >= self._t.ats_fair:
            overall = "fair"
        else:
            overall = "poor"
        return AtsCompatibility(overall=overall, checks=checks)

    def summarize(self, facts: AnalysisFacts, scores: ScoreBreakdown) -> tuple[str, list[str], list[str]]:
        overall = scores.overall
        if overall >= get_scoring_float("summary.levels.excellent", 80):
            level = "an excellent"
        elif overall >= get_scoring_float("summary.levels.good", 65):
            level = "a good"
        elif overall >= get_scoring_float("summary.levels.fair", 50):
            level = "a fair"
        else:
            level = "a weak"

        matched = facts.match.matched
        missing = facts.match.missing
        focus = (
            f"Focus on adding: {', '.join(item.skill for item in missing[:3])}."
            if missing
            else "All listed skills were found."
        )
        summary = (
            f"Your resume is {level} match ({overall}%) for the {facts.jd.job_title} position. "
            f"You matched {len(matched)} of {len(matched) + len(missing)} listed skills. {focus}"
        )

        strengths: list[str] = []
        weaknesses: list[str] = []
        if scores.keyword_match >= get_scoring_float("summary.strong_keyword_match", 70):
            strengths.append(f"Strong keyword match ({scores.keyword_match}%)")
        if facts.match.experience.meets_requirement:
            strengths.append(f"Experience meets requirements ({facts.candidate.total_years_experience:g} years)")
        if facts.quality.average_bullet_score >= get_scoring_float("summary.strong_bullet_score", 70):
            strengths.append("High-quality bullet points with metrics")
        if len(matched) >= 5:
            strengths.append(f"{len(matched)} skills match job requirements")

        missing_required = [item for item in missing if item.importance == "required"]
        if missing_required:
            weaknesses.append(f"Missing {_plural(len(missing_required), 'required skill')}")
        if not facts.match.experience.meets_requirement:
            weaknesses.append(f"Experience gap: {facts.match.experience.gap}")
        weak_ratio = get_scoring_float("summary.weak_metrics_ratio", 0.30)
        if facts.quality.bullets_with_metrics < facts.quality.total_bullets * weak_ratio:
            weaknesses.append("Most bullet points lack measurable results")
        if facts.formatting.missing_sections:
            weaknesses.append(f"Missing sections: {', '.join(facts.formatting.missing_sections)}")
        return summary, strengths, weaknesses
