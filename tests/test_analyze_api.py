import os
import unittest

# Keep API tests deterministic: no provider, no sqlite, no rate limiting.
os.environ.setdefault("ANALYTICS_ENABLED", "0")
os.environ.setdefault("ORACLE_ENABLED", "0")
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")

from fastapi.testclient import TestClient

from app.core.analysis_cache import NormalizedCache
from app.main import app
from app.services.analysis_service import AnalysisOrchestrator, get_analysis_orchestrator
from scripted_oracle import JOB_DESCRIPTION, RESUME, ScriptedOracle, full_script


class AnalyzeApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        self.oracle = ScriptedOracle(full_script())
        self.orchestrator = AnalysisOrchestrator(
            self.oracle,
            report_cache=NormalizedCache(ttl_seconds=3600, name="report"),
            stage_cache=NormalizedCache(ttl_seconds=3600, name="stage"),
        )
        app.dependency_overrides[get_analysis_orchestrator] = lambda: self.orchestrator

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_health(self):
        response = self.client.get("/v1/health")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["schema_version"], "3.0.0")
        self.assertFalse(body["oracle_configured"])

    def test_analyze_contract(self):
        response = self.client.post(
            "/v1/analyze",
            json={"resume_text": RESUME, "job_description_text": JOB_DESCRIPTION},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["schema_version"], "3.0.0")
        self.assertEqual(body["jd_analysis"]["job_title"], "Backend Engineer")
        self.assertEqual(len(body["recruiter_tips"]), 7)
        self.assertGreaterEqual(len(body["suggestions"]), 1)
        self.assertIn(body["ats_compatibility"]["overall"], {"excellent", "good", "fair", "poor"})
        self.assertTrue(body["summary"])

    def test_repeat_request_returns_identical_json(self):
        payload = {"resume_text": RESUME, "job_description_text": JOB_DESCRIPTION}
        first = self.client.post("/v1/analyze", json=payload)
        second = self.client.post("/v1/analyze", json={**payload, "job_description_text": JOB_DESCRIPTION + "  "})
        self.assertEqual(first.content, second.content)

    def test_no_requirements_is_422_with_code(self):
        script = full_script()
        script["extracting_requirements"] = "nothing useful"
        self.orchestrator = AnalysisOrchestrator(
            ScriptedOracle(script),
            report_cache=NormalizedCache(ttl_seconds=3600, name="report"),
            stage_cache=NormalizedCache(ttl_seconds=3600, name="stage"),
        )
        response = self.client.post(
            "/v1/analyze",
            json={"resume_text": RESUME, "job_description_text": JOB_DESCRIPTION},
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["detail"]["code"], "no_requirements_extracted")

    def test_short_job_description_rejected(self):
        response = self.client.post("/v1/analyze", json={"resume_text": RESUME, "job_description_text": "Python dev"})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.oracle.calls, [])

    def test_cache_clear(self):
        self.client.post("/v1/analyze", json={"resume_text": RESUME, "job_description_text": JOB_DESCRIPTION})
        response = self.client.post("/v1/cache/clear")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok", "cleared": 6})
        self.assertEqual(len(self.orchestrator.report_cache), 0)

    def test_analytics_routes_when_disabled(self):
        self.assertEqual(self.client.get("/v1/analytics/stages").json(), {"enabled": False})
        self.assertEqual(self.client.get("/v1/analytics/runs").json(), [])


if __name__ == "__main__":
    unittest.main()
