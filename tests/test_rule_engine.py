import unittest

from app.schemas.analysis import (
    BulletPoint,
    CandidateFacts,
    ContactInfo,
    ContentQuality,
    EducationEntry,
    ExperienceEntry,
    FormattingProfile,
    JDAnalysis,
    MatchResult,
    RequirementItem,
    SkillMatch,
)
from app.services.rule_engine import AnalysisFacts, FallbackRuleEngine, RuleThresholds, rewrite_weak_bullet


def _bullet(text: str, score: int, **flags) -> BulletPoint:
    return BulletPoint(text=text, score=score, **flags)


def _candidate(bullets=(), *, years: float = 6.0, education=(), contact: ContactInfo | None = None) -> CandidateFacts:
    return CandidateFacts(
        contact=contact or ContactInfo(),
        experience=[ExperienceEntry(title="Engineer", org="Acme", bullet_points=list(bullets))],
        education=list(education),
        total_years_experience=years,
    )


def _good_formatting(**overrides) -> FormattingProfile:
    values = {
        "has_email": True,
        "has_phone": True,
        "has_linkedin": True,
        "has_contact_info": True,
        "sections_detected": ["experience", "education", "skills"],
        "missing_sections": [],
        "has_tables_or_columns": False,
        "estimated_pages": 1,
        "looks_unreadable": False,
    }
    values.update(overrides)
    return FormattingProfile(**values)


class RuleEngineTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = FallbackRuleEngine(thresholds=RuleThresholds())
        self.jd = JDAnalysis(
            job_title="Backend Engineer",
            job_level="senior",
            requirements=[
                RequirementItem(name="Python", importance="required"),
                RequirementItem(name="Docker", importance="preferred"),
                RequirementItem(name="Go", importance="bonus"),
            ],
            minimum_years=5,
        )

    def _match(self, candidate: CandidateFacts, *, found=("Python", "Go"), jd: JDAnalysis | None = None) -> MatchResult:
        jd = jd or self.jd
        claims = [
            SkillMatch(
                skill=item.name,
                importance=item.importance,
                found_in_resume=item.name in found,
                match_type="exact" if item.name in found else None,
            )
            for item in jd.requirements
        ]
        return MatchResult(
            matched=[claim for claim in claims if claim.found_in_resume],
            missing=[claim for claim in claims if not claim.found_in_resume],
            experience=self.engine.match_experience(candidate, jd),
            education=self.engine.match_education(candidate, jd),
            job_level=self.engine.match_job_level(candidate, jd),
        )

    def _facts(
        self,
        *,
        candidate: CandidateFacts | None = None,
        quality: ContentQuality | None = None,
        formatting: FormattingProfile | None = None,
        match: MatchResult | None = None,
        resume_text: str = "Resume text",
    ) -> AnalysisFacts:
        candidate = candidate or _candidate()
        return AnalysisFacts(
            resume_text=resume_text,
            jd=self.jd,
            candidate=candidate,
            quality=quality or ContentQuality(total_bullets=4, action_verb_count=4, bullets_with_metrics=4, word_count=500),
            formatting=formatting or _good_formatting(),
            match=match or self._match(candidate, found=("Python", "Docker", "Go")),
        )


class ScoringTests(RuleEngineTestCase):
    def test_weighted_score(self):
        candidate = _candidate([_bullet("Built things", 90), _bullet("Ran things", 80)], years=3)
        scores = self.engine.score(candidate, self.jd.requirements, self._match(candidate))
        self.assertEqual(scores.keyword_match, 67)
        self.assertEqual(scores.experience_match, 60)
        self.assertEqual(scores.education_match, 100)
        self.assertEqual(scores.content_quality, 85)
        self.assertEqual(scores.overall, 72)

    def test_score_reads_only_reconciled_matches(self):
        candidate = _candidate(years=5)
        match = self._match(candidate, found=())
        match.missing[0] = match.missing[0].model_copy(update={"resume_frequency": 7})
        scores = self.engine.score(candidate, self.jd.requirements, match)
        self.assertEqual(scores.keyword_match, 0)

    def test_no_requirements_or_years_score_full(self):
        candidate = _candidate(years=0)
        jd = JDAnalysis(job_title="Analyst")
        match = self._match(candidate, found=(), jd=jd)
        scores = self.engine.score(candidate, jd.requirements, match)
        self.assertEqual(scores.keyword_match, 100)
        self.assertEqual(scores.experience_match, 100)

    def test_unmet_education_scores_half(self):
        candidate = _candidate(education=[EducationEntry(degree="B.Sc. Computer Science")])
        jd = self.jd.model_copy(update={"education_degree": "master"})
        match = self._match(candidate, jd=jd)
        self.assertFalse(match.education.meets_requirement)
        self.assertEqual(match.education.candidate_degree, "bachelor")
        self.assertEqual(self.engine.score(candidate, jd.requirements, match).education_match, 50)

    def test_candidate_level_from_years(self):
        self.assertEqual(self.engine.candidate_level(12), "lead")
        self.assertEqual(self.engine.candidate_level(5), "senior")
        self.assertEqual(self.engine.candidate_level(2), "mid")
        self.assertEqual(self.engine.candidate_level(1.5), "entry")


class TipTests(RuleEngineTestCase):
    def _quality(self, **values) -> ContentQuality:
        base = {"total_bullets": 4, "action_verb_count": 4, "bullets_with_metrics": 4, "word_count": 500}
        base.update(values)
        return ContentQuality(**base)

    def test_measurable_results_thresholds(self):
        statuses = [
            self.engine.tips(self._facts(quality=self._quality(bullets_with_metrics=count))).measurable_results.status
            for count in (2, 1, 0)
        ]
        self.assertEqual(statuses, ["pass", "warning", "fail"])

    def test_resume_length_thresholds(self):
        self.assertEqual(self.engine.tips(self._facts(quality=self._quality(word_count=400))).resume_length.status, "pass")
        short = self.engine.tips(self._facts(quality=self._quality(word_count=250))).resume_length
        self.assertEqual(short.title, "Resume Too Short")
        long = self.engine.tips(self._facts(quality=self._quality(word_count=801))).resume_length
        self.assertEqual(long.title, "Resume Too Long")

    def test_tone_thresholds(self):
        tips = self.engine.tips(self._facts(quality=self._quality(action_verb_count=3)))
        self.assertEqual(tips.resume_tone.status, "pass")
        tips = self.engine.tips(self._facts(quality=self._quality(bullets_with_weak_phrases=2)))
        self.assertEqual(tips.resume_tone.status, "fail")
        tips = self.engine.tips(self._facts(quality=self._quality(action_verb_count=2)))
        self.assertEqual(tips.resume_tone.status, "warning")

    def test_keyword_tip_flags_missing_required(self):
        candidate = _candidate()
        tips = self.engine.tips(self._facts(candidate=candidate, match=self._match(candidate, found=("Docker", "Go"))))
        self.assertEqual(tips.keyword_optimization.status, "fail")
        self.assertIn("Python", tips.keyword_optimization.recommendation)

    def test_web_presence(self):
        contact = ContactInfo(linkedin="linkedin.com/in/x", github="github.com/x")
        tips = self.engine.tips(self._facts(candidate=_candidate(contact=contact)))
        self.assertEqual(tips.web_presence.status, "pass")
        tips = self.engine.tips(self._facts(formatting=_good_formatting(has_linkedin=False)))
        self.assertEqual(tips.web_presence.status, "fail")

    def test_ats_parsability(self):
        tips = self.engine.tips(self._facts(formatting=_good_formatting(looks_unreadable=True)))
        self.assertEqual(tips.ats_parsability.title, "Unreadable Text")
        tips = self.engine.tips(self._facts(formatting=_good_formatting(missing_sections=["skills"])))
        self.assertEqual(tips.ats_parsability.status, "fail")


class RecommendationTests(RuleEngineTestCase):
    def test_clean_resume_with_missing_required_skill(self):
        candidate = _candidate()
        facts = self._facts(candidate=candidate, match=self._match(candidate, found=("Docker", "Go")))
        self.assertEqual([item.id for item in self.engine.recommendations(facts)], ["add-required-skills"])

    def test_sorted_by_priority_then_impact_and_capped(self):
        candidate = _candidate(years=1, education=[EducationEntry(degree="High School Diploma")])
        jd = self.jd.model_copy(update={"education_degree": "bachelor"})
        facts = AnalysisFacts(
            resume_text="x",
            jd=jd,
            candidate=candidate,
            quality=ContentQuality(total_bullets=5, bullets_with_weak_phrases=3, word_count=90),
            formatting=_good_formatting(
                has_linkedin=False,
                missing_sections=["skills"],
                has_tables_or_columns=True,
                looks_unreadable=True,
            ),
            match=self._match(candidate, found=(), jd=jd),
        )
        items = self.engine.recommendations(facts)
        self.assertEqual(len(items), 7)
        self.assertEqual(items[0].id, "fix-unreadable-text")
        order = {"high": 0, "medium": 1, "low": 2}
        keys = [(order[item.priority], -item.expected_impact) for item in items]
        self.assertEqual(keys, sorted(keys))
        ids = {item.id for item in items}
        self.assertTrue({"add-metrics", "experience-gap", "add-required-skills"} <= ids)


class SuggestionTests(RuleEngineTestCase):
    def test_rewrite_weak_bullet(self):
        self.assertEqual(rewrite_weak_bullet("Responsible for managing the billing service"), "Managed the billing service")
        self.assertEqual(rewrite_weak_bullet("Helped with building dashboards"), "Built dashboards")
        self.assertEqual(rewrite_weak_bullet("Worked on the search index"), "Developed the search index")
        self.assertIsNone(rewrite_weak_bullet("Responsible for"))
        self.assertIsNone(rewrite_weak_bullet("Designed the search index"))

    def test_weak_bullets_and_missing_skills_become_suggestions(self):
        weak = _bullet(
            "Responsible for managing the billing service",
            20,
            has_weak_phrase=True,
            weak_phrases=["responsible for"],
        )
        candidate = _candidate([weak])
        facts = self._facts(candidate=candidate, match=self._match(candidate, found=("Docker",)))
        suggestions = self.engine.suggestions(facts)
        self.assertEqual(suggestions[0].type, "add_keyword")
        rewrite = next(item for item in suggestions if item.type == "bullet_rewrite")
        self.assertEqual(rewrite.original, weak.text)
        self.assertEqual(rewrite.suggested, "Managed the billing service")
        self.assertLessEqual(len(suggestions), 5)

    def test_weak_flag_without_recorded_phrase(self):
        bullets = [
            _bullet("Responsible for managing the billing service", 20, has_weak_phrase=True),
            _bullet("Responsible for", 20, has_weak_phrase=True),
        ]
        candidate = _candidate(bullets)
        facts = self._facts(candidate=candidate, match=self._match(candidate, found=("Python", "Docker", "Go")))
        suggestions = self.engine.suggestions(facts)
        self.assertEqual(
            [item.type for item in suggestions if item.original in {bullet.text for bullet in bullets}],
            ["bullet_rewrite", "remove_weak_phrase"],
        )
        self.assertEqual(suggestions[0].reason, "Opens with an action verb instead of a weak opening phrase.")

    def test_never_empty(self):
        suggestions = self.engine.suggestions(self._facts())
        self.assertEqual(len(suggestions), 1)
        self.assertEqual(suggestions[0].type, "general")


class AtsAndSummaryTests(RuleEngineTestCase):
    def test_ats_rating(self):
        quality = ContentQuality(word_count=500)
        self.assertEqual(self.engine.ats_compatibility(quality, _good_formatting()).overall, "excellent")
        poor = self.engine.ats_compatibility(
            ContentQuality(word_count=50),
            _good_formatting(has_email=False, has_phone=False, has_contact_info=False, looks_unreadable=True),
        )
        self.assertEqual(poor.overall, "poor")
        self.assertEqual(len(poor.checks), 5)

    def test_summary_mentions_title_and_gaps(self):
        candidate = _candidate(years=2)
        facts = self._facts(candidate=candidate, match=self._match(candidate, found=("Go",)))
        scores = self.engine.score(candidate, self.jd.requirements, facts.match)
        summary, strengths, weaknesses = self.engine.summarize(facts, scores)
        self.assertIn("Backend Engineer", summary)
        self.assertIn("Python", summary)
        self.assertIn("Missing 1 required skill", weaknesses)
        self.assertTrue(any(item.startswith("Experience gap") for item in weaknesses))


if __name__ == "__main__":
    unittest.main()
