import os
import unittest

os.environ.setdefault("ANALYTICS_ENABLED", "0")
os.environ.setdefault("ORACLE_ENABLED", "0")

import app.main  # noqa: F401
from app.schemas.analysis import REPORT_SCHEMA_VERSION, AnalysisStage
from app.services.analysis_service import get_analysis_orchestrator


class PipelineSmokeTests(unittest.TestCase):
    def test_safe_imports_and_routes(self):
        paths = {route.path for route in app.main.app.routes}
        self.assertTrue({"/v1/health", "/v1/analyze", "/v1/cache/clear"} <= paths)
        self.assertEqual(REPORT_SCHEMA_VERSION, "3.0.0")

    def test_default_orchestrator_is_a_singleton(self):
        self.assertIs(get_analysis_orchestrator(), get_analysis_orchestrator())
        self.assertEqual(AnalysisStage.MATCHING.value, "matching")


if __name__ == "__main__":
    unittest.main()
