import unittest

from app.core.errors import SchemaViolation
from app.schemas.analysis import AnalysisStage, RequirementItem
from app.validation.schema import MatchClaimsPayload, RequirementsPayload, validate


class SchemaValidatorTests(unittest.TestCase):
    def test_valid_requirements_payload(self):
        model = validate(
            AnalysisStage.EXTRACTING_REQUIREMENTS,
            {
                "job_title": "Backend Engineer",
                "hard_skills": [{"name": "Python", "importance": "required", "variants": ["Py"]}],
                "unexpected": "ignored",
            },
        )
        self.assertIsInstance(model, RequirementsPayload)
        self.assertEqual(model.hard_skills[0].name, "Python")
        self.assertEqual(model.hard_skills[0].frequency, 1)

    def test_one_invalid_field_rejects_whole_payload(self):
        with self.assertRaises(SchemaViolation) as ctx:
            validate(
                "extracting_requirements",
                {
                    "hard_skills": [
                        {"name": "Python", "importance": "required"},
                        {"name": "Go", "importance": "critical"},
                    ]
                },
            )
        self.assertEqual(ctx.exception.code, "schema_violation")
        self.assertIn("hard_skills", str(ctx.exception))

    def test_non_object_payload_is_wrong_shape(self):
        with self.assertRaises(SchemaViolation) as ctx:
            validate("matching", [{"skill": "Python", "found": True}])
        self.assertEqual(ctx.exception.code, "wrong_shape")

    def test_missing_required_field_rejected(self):
        with self.assertRaises(SchemaViolation):
            validate("matching", {"matches": [{"skill": "Python"}]})

    def test_match_claims_defaults(self):
        model = validate("matching", {"matches": [{"skill": "SQL", "found": False}]})
        self.assertIsInstance(model, MatchClaimsPayload)
        self.assertEqual(model.extra_skills, [])
        self.assertIsNone(model.matches[0].matched_as)

    def test_suggestions_reject_short_text_and_out_of_range_impact(self):
        with self.assertRaises(SchemaViolation):
            validate(
                "generating_suggestions",
                {"suggestions": [{"type": "add_metric", "suggested": "short", "reason": "long enough reason", "impact": 5}]},
            )
        with self.assertRaises(SchemaViolation):
            validate(
                "generating_suggestions",
                {
                    "suggestions": [
                        {
                            "type": "add_metric",
                            "suggested": "Quantify the migration outcome",
                            "reason": "Numbers make impact concrete",
                            "impact": 25,
                        }
                    ]
                },
            )

    def test_tips_payload_requires_every_tip(self):
        tip = {
            "status": "pass",
            "title": "Resume Length",
            "current": "520 words",
            "recommendation": "Keep the current length.",
            "impact": "medium",
        }
        with self.assertRaises(SchemaViolation):
            validate("generating_tips", {"resume_length": tip})

    def test_blank_requirement_name_rejects_payload(self):
        payload = {
            "job_title": "Engineer",
            "hard_skills": [
                {"name": "Python", "importance": "required"},
                {"name": "   ", "importance": "bonus"},
            ],
        }
        with self.assertRaises(SchemaViolation) as ctx:
            validate(AnalysisStage.EXTRACTING_REQUIREMENTS, payload)
        self.assertEqual(ctx.exception.code, "schema_violation")

    def test_requirement_name_whitespace_is_collapsed(self):
        model = validate(
            AnalysisStage.EXTRACTING_REQUIREMENTS,
            {"hard_skills": [{"name": "  Machine \n Learning ", "importance": "preferred"}]},
        )
        self.assertEqual(model.hard_skills[0].name, "Machine Learning")

    def test_unknown_stage_raises_key_error(self):
        with self.assertRaises(KeyError):
            validate("scoring", {})

    def test_requirement_variants_are_deduplicated_in_order(self):
        item = RequirementItem(name="  Node.js ", variants=["NodeJS", "nodejs", "Node", "NodeJS"])
        self.assertEqual(item.name, "Node.js")
        self.assertEqual(item.variants, ("NodeJS", "Node"))


if __name__ == "__main__":
    unittest.main()
