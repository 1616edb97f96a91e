from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from app.ai.types import OracleClient, OracleRequest
from app.analytics.db import log_oracle_stage_run
from app.core.analysis_cache import NormalizedCache
from app.core.errors import AnalysisError, OracleUnavailable, QualityRejected, SchemaViolation
from app.schemas.analysis import AnalysisStage
from app.validation.repair import parse_oracle_json
from app.validation.schema import validate

logger = logging.getLogger(__name__)

T = TypeVar("T")
StageStatus = Literal["ok", "schema_failed", "quality_failed", "unavailable"]
StageSourceName = Literal["oracle", "cache"]


@dataclass
class StageOutcome(Generic[T]):
    """Result of one oracle stage: ``ok`` carries a value, every other status carries an error."""

    stage: str
    status: StageStatus
    value: T | None = None
    error: AnalysisError | None = None
    source: StageSourceName | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def _status_for(exc: AnalysisError) -> StageStatus:
    if isinstance(exc, QualityRejected):
        return "quality_failed"
    if isinstance(exc, SchemaViolation):
        return "schema_failed"
    return "unavailable"


class OracleStage:
    """Runs prompts through cache, oracle, repair, schema and an acceptance step.

    ``accept`` receives the schema-validated payload and returns the stage value;
    it raises ``QualityRejected`` or ``SchemaViolation`` to reject the payload.
    Payloads are cached only after ``accept`` succeeds.
    """

    def __init__(
        self,
        oracle: OracleClient | None,
        *,
        stage_cache: NormalizedCache,
        timeout_s: float = 30.0,
        run_logger: Callable[..., None] = log_oracle_stage_run,
    ) -> None:
        self._oracle = oracle
        self._cache = stage_cache
        self._timeout_s = timeout_s
        self._run_logger = run_logger

    @property
    def model_name(self) -> str:
        if self._oracle is None:
            return "none"
        return getattr(self._oracle, "model_name", type(self._oracle).__name__)

    async def _log_run(
        self,
        *,
        run_id: str,
        stage: str,
        attempt: int,
        status: str,
        error_code: str | None,
        latency_ms: int | None,
    ) -> None:
        try:
            await asyncio.to_thread(
                self._run_logger,
                run_id=run_id,
                stage=stage,
                model=self.model_name,
                attempt=attempt,
                status=status,
                error_code=error_code,
                latency_ms=latency_ms,
            )
        except Exception:  # noqa: BLE001 - analytics must not break analysis
            logger.debug("oracle_stage_logging_failed stage=%s", stage, exc_info=True)

    async def _call_oracle(self, stage: str, prompt: str) -> str:
        if self._oracle is None:
            raise OracleUnavailable("Oracle is not configured", code="oracle_disabled", stage=stage)
        try:
            response = await asyncio.wait_for(
                self._oracle.complete(OracleRequest(prompt_text=prompt, stage=stage)),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise OracleUnavailable(
                f"Oracle did not answer within {self._timeout_s:g}s", code="oracle_timeout", stage=stage
            ) from exc
        except Exception as exc:  # noqa: BLE001 - provider errors route to the stage fallback
            raise OracleUnavailable(f"Oracle call failed: {exc}", code="oracle_error", stage=stage) from exc
        if not response.text or not response.text.strip():
            raise OracleUnavailable("Oracle returned an empty response", code="empty_response", stage=stage)
        return response.text

    def _from_cache(self, stage: str, prompt: str, accept: Callable[[Any], T]) -> T | None:
        cached = self._cache.get(stage, prompt)
        if cached is None:
            return None
        try:
            return self._accept(stage, accept, validate(stage, cached))
        except AnalysisError as exc:
            logger.warning("stage_cache_entry_rejected stage=%s code=%s", stage, exc.code)
            return None

    @staticmethod
    def _accept(stage: str, accept: Callable[[BaseModel], T], model: BaseModel) -> T:
        try:
            return accept(model)
        except ValidationError as exc:
            raise SchemaViolation(
                f"Invalid {stage} payload: {exc.error_count()} field error(s) while building stage value",
                stage=stage,
            ) from exc

    async def _attempt(self, stage: str, prompt: str, accept: Callable[[BaseModel], T]) -> tuple[T, dict[str, Any]]:
        text = await self._call_oracle(stage, prompt)
        payload = parse_oracle_json(text, stage=stage)
        model = validate(stage, payload)
        value = self._accept(stage, accept, model)
        return value, model.model_dump(mode="json")

    async def run(
        self,
        *,
        stage: AnalysisStage,
        prompt: str,
        accept: Callable[[BaseModel], T],
        run_id: str,
        retry_prompt: str | None = None,
    ) -> StageOutcome[T]:
        stage_name = stage.value
        cached = self._from_cache(stage_name, prompt, accept)
        if cached is not None:
            logger.debug("stage_cache_hit stage=%s", stage_name)
            return StageOutcome(stage=stage_name, status="ok", value=cached, source="cache")

        prompts = [prompt] if retry_prompt is None else [prompt, retry_prompt]
        last_error: AnalysisError | None = None
        attempts = 0
        for attempt, current_prompt in enumerate(prompts, start=1):
            attempts = attempt
            started = time.perf_counter()
            try:
                value, payload = await self._attempt(stage_name, current_prompt, accept)
            except AnalysisError as exc:
                last_error = exc
                status = _status_for(exc)
                await self._log_run(
                    run_id=run_id,
                    stage=stage_name,
                    attempt=attempt,
                    status=status,
                    error_code=exc.code,
                    latency_ms=int((time.perf_counter() - started) * 1000),
                )
                logger.warning(
                    "oracle_stage_failed stage=%s attempt=%s status=%s code=%s: %s",
                    stage_name,
                    attempt,
                    status,
                    exc.code,
                    exc,
                )
                if exc.code == "oracle_disabled":
                    break
                continue

            self._cache.set(stage_name, prompt, result=payload)
            await self._log_run(
                run_id=run_id,
                stage=stage_name,
                attempt=attempt,
                status="ok",
                error_code=None,
                latency_ms=int((time.perf_counter() - started) * 1000),
            )
            return StageOutcome(stage=stage_name, status="ok", value=value, source="oracle", attempts=attempt)

        error = last_error or OracleUnavailable("No oracle attempt was made", stage=stage_name)
        return StageOutcome(stage=stage_name, status=_status_for(error), error=error, attempts=attempts)
