"""
Data quality endpoints
"""

from fastapi import APIRouter, Depends
from api.dependencies import get_manager
from etl.pipeline import PipelineManager
from schemas.quality import QualityAnalysisRequest, QualityReport

router = APIRouter(prefix="/quality", tags=["Data Quality"])


@router.post("/analyze", response_model=QualityReport)
async def analyze_records(request: QualityAnalysisRequest, manager: PipelineManager = Depends(get_manager)):
    """Profile and score a batch of records with optional checks"""
    return manager.analyze_quality(request.records, request.checks)
