import asyncio
import os
import threading
import unittest

os.environ.setdefault("ANALYTICS_ENABLED", "0")
os.environ.setdefault("ORACLE_ENABLED", "0")

from app.ai.types import OracleResponse
from app.core.analysis_cache import NormalizedCache
from app.core.errors import QualityRejected, SchemaViolation
from app.schemas.analysis import AnalysisStage, RequirementItem
from app.services.oracle_stage import OracleStage
from scripted_oracle import ScriptedOracle

CLAIMS = {"matches": [{"skill": "Python", "found": True}], "extra_skills": []}


class OracleStageTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.cache = NormalizedCache(ttl_seconds=600, name="stage")
        self.runs: list[dict] = []

    def _stage(self, oracle, timeout_s: float = 5.0) -> OracleStage:
        return OracleStage(
            oracle,
            stage_cache=self.cache,
            timeout_s=timeout_s,
            run_logger=lambda **row: self.runs.append(row),
        )

    async def _run(self, stage: OracleStage, *, accept=lambda payload: payload, retry_prompt=None):
        return await stage.run(
            stage=AnalysisStage.MATCHING,
            prompt="match prompt",
            retry_prompt=retry_prompt,
            accept=accept,
            run_id="run-1",
        )

    async def test_ok_result_is_cached_and_reused(self):
        oracle = ScriptedOracle({"matching": CLAIMS})
        stage = self._stage(oracle)
        first = await self._run(stage)
        self.assertTrue(first.ok)
        self.assertEqual(first.source, "oracle")
        self.assertEqual(first.value.matches[0].skill, "Python")

        second = await self._run(stage)
        self.assertEqual(second.source, "cache")
        self.assertEqual(second.value, first.value)
        self.assertEqual(oracle.count("matching"), 1)
        self.assertEqual([row["status"] for row in self.runs], ["ok"])
        self.assertEqual(self.runs[0]["model"], "scripted-oracle")

    async def test_malformed_output_is_schema_failure(self):
        stage = self._stage(ScriptedOracle({"matching": "not json at all"}))
        outcome = await self._run(stage)
        self.assertEqual(outcome.status, "schema_failed")
        self.assertEqual(outcome.error.code, "malformed_json")
        self.assertEqual(len(self.cache), 0)

    async def test_retry_prompt_used_after_failure_and_cached_under_primary(self):
        oracle = ScriptedOracle({"matching": ["{\"matches\": \"oops\"}", CLAIMS]})
        stage = self._stage(oracle)
        outcome = await self._run(stage, retry_prompt="simpler prompt")
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.attempts, 2)
        self.assertEqual([row["status"] for row in self.runs], ["schema_failed", "ok"])
        self.assertIsNotNone(self.cache.get("matching", "match prompt"))
        self.assertIsNone(self.cache.get("matching", "simpler prompt"))

    async def test_quality_rejection_is_not_cached(self):
        def reject(payload):
            raise QualityRejected("all rejected", stage="matching", reasons=["placeholder_text"])

        stage = self._stage(ScriptedOracle({"matching": CLAIMS}))
        outcome = await self._run(stage, accept=reject)
        self.assertEqual(outcome.status, "quality_failed")
        self.assertEqual(outcome.error.reasons, ["placeholder_text"])
        self.assertEqual(len(self.cache), 0)

    async def test_model_errors_while_accepting_become_schema_failures(self):
        def build_requirement(payload):
            return RequirementItem(name="   ", importance="bonus")

        oracle = ScriptedOracle({"matching": CLAIMS})
        outcome = await self._run(self._stage(oracle), accept=build_requirement, retry_prompt="simpler prompt")
        self.assertEqual(outcome.status, "schema_failed")
        self.assertIsInstance(outcome.error, SchemaViolation)
        self.assertEqual(outcome.attempts, 2)
        self.assertEqual(len(self.cache), 0)

    async def test_run_log_is_written_off_the_event_loop_thread(self):
        threads = []
        stage = OracleStage(
            ScriptedOracle({"matching": CLAIMS}),
            stage_cache=self.cache,
            run_logger=lambda **row: threads.append(threading.get_ident()),
        )
        await self._run(stage)
        self.assertEqual(len(threads), 1)
        self.assertNotEqual(threads[0], threading.get_ident())

    async def test_provider_error_is_unavailable(self):
        stage = self._stage(ScriptedOracle({"matching": ConnectionError("quota exceeded")}))
        outcome = await self._run(stage)
        self.assertEqual(outcome.status, "unavailable")
        self.assertEqual(outcome.error.code, "oracle_error")

    async def test_timeout_is_unavailable(self):
        async def slow(request):
            await asyncio.sleep(5)
            return CLAIMS

        stage = self._stage(ScriptedOracle({"matching": slow}), timeout_s=0.01)
        outcome = await self._run(stage)
        self.assertEqual(outcome.status, "unavailable")
        self.assertEqual(outcome.error.code, "oracle_timeout")

    async def test_empty_response_is_unavailable(self):
        class SilentOracle:
            model_name = "silent"

            async def complete(self, request):
                return OracleResponse(text="   ")

        outcome = await self._run(self._stage(SilentOracle()))
        self.assertEqual(outcome.status, "unavailable")
        self.assertEqual(outcome.error.code, "empty_response")

    async def test_missing_oracle_skips_retry(self):
        stage = self._stage(None)
        outcome = await self._run(stage, retry_prompt="simpler prompt")
        self.assertEqual(outcome.status, "unavailable")
        self.assertEqual(outcome.error.code, "oracle_disabled")
        self.assertEqual(outcome.attempts, 1)
        self.assertEqual(stage.model_name, "none")

    async def test_stale_cache_entry_is_revalidated(self):
        self.cache.set("matching", "match prompt", result={"matches": "broken"})
        oracle = ScriptedOracle({"matching": CLAIMS})
        outcome = await self._run(self._stage(oracle))
        self.assertEqual(outcome.source, "oracle")
        self.assertEqual(oracle.count("matching"), 1)


if __name__ == "__main__":
    unittest.main()
