from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.errors import NoRequirementsExtracted
from app.core.rate_limit import rate_limit
from app.core.security import require_api_key
from app.schemas.analysis import AnalysisReport, AnalyzeRequest, CacheClearResponse
from app.services.analysis_service import AnalysisOrchestrator, get_analysis_orchestrator

router = APIRouter()


@router.post("/analyze", response_model=AnalysisReport)
@rate_limit()
async def analyze(
    request: Request,
    payload: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_analysis_orchestrator),
):
    _ = request
    try:
        return await orchestrator.analyze_async(payload.resume_text, payload.job_description_text)
    except NoRequirementsExtracted as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": exc.code, "message": str(exc)},
        ) from exc


@router.post("/cache/clear", response_model=CacheClearResponse)
def clear_cache(
    orchestrator: AnalysisOrchestrator = Depends(get_analysis_orchestrator),
    _: None = Depends(require_api_key),
):
    return CacheClearResponse(cleared=orchestrator.clear_caches())
