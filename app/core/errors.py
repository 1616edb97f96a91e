from __future__ import annotations


class AnalysisError(RuntimeError):
    def __init__(self, message: str, *, code: str = "analysis_failed", stage: str | None = None):
        super().__init__(message)
        self.code = code
        self.stage = stage


class OracleUnavailable(AnalysisError):
    def __init__(self, message: str, *, code: str = "oracle_unavailable", stage: str | None = None):
        super().__init__(message, code=code, stage=stage)


class SchemaViolation(AnalysisError):
    def __init__(self, message: str, *, code: str = "schema_violation", stage: str | None = None):
        super().__init__(message, code=code, stage=stage)


class QualityRejected(AnalysisError):
    def __init__(
        self,
        message: str,
        *,
        code: str = "quality_rejected",
        stage: str | None = None,
        reasons: list[str] | None = None,
    ):
        super().__init__(message, code=code, stage=stage)
        self.reasons = list(reasons or [])


class NoRequirementsExtracted(AnalysisError):
    """The only error that escapes an analysis: without requirements there is nothing to match."""

    def __init__(
        self,
        message: str = "No requirements could be extracted from the job description.",
        *,
        code: str = "no_requirements_extracted",
        stage: str | None = "extracting_requirements",
    ):
        super().__init__(message, code=code, stage=stage)
