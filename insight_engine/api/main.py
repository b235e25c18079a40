# insight_engine/api/main.py
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Dict, Any, Optional, List, Literal
import logging
import uvicorn
from datetime import datetime

from insight_engine.config import get_config
from insight_engine.pipeline import InsightPipeline
from insight_engine.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

config = get_config()

app = FastAPI(
    title="Tabular Insight Engine API",
    description="Schema inference, statistics, correlations, chart suggestions, forecasts and AI insights for tabular files",
    version="1.0.0",
    docs_url="/docs" if config.deployment.ENABLE_DOCS else None
)

if config.deployment.ENABLE_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

pipeline = InsightPipeline(config)

# error_type -> HTTP status
ERROR_STATUS = {
    "not_found": 404,
    "unsupported_format": 400,
    "too_large": 413,
    "invalid_request": 400,
}

class AnalyzeRequest(BaseModel):
    data_path: str
    columns: Optional[List[str]] = None
    extension: Optional[str] = Field(default=None, description="Overrides the file suffix, e.g. 'csv'")

class AIAnalyzeRequest(AnalyzeRequest):
    provider: Optional[Literal["ollama", "gemini", "openai", "huggingface"]] = None

class AnalyzeResponse(BaseModel):
    status: str
    file: Optional[Dict[str, Any]] = None
    rows_analyzed: int
    schema_: List[Dict[str, Any]] = Field(alias="schema")
    stats: Dict[str, Any]
    correlations: List[Dict[str, Any]]
    chart_recommendations: List[Dict[str, Any]]
    forecasts: List[Dict[str, Any]]

class AIAnalyzeResponse(BaseModel):
    status: str
    provider: Optional[str] = None
    model: Optional[str] = None
    rows_analyzed: Optional[int] = None
    ai: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    context: Optional[Dict[str, Any]] = None

def _raise_for_failure(result: dict):
    if result.get("status") == "failed":
        error_type = result.get("error_type", "error")
        raise HTTPException(
            status_code=ERROR_STATUS.get(error_type, 500),
            detail=f"{error_type}: {result.get('error')}"
        )

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}

@app.post("/analyze", response_model=AnalyzeResponse, response_model_by_alias=True)
async def analyze(request: AnalyzeRequest):
    """Run the statistical analysis over a stored dataset"""
    result = await pipeline.run_analysis(
        data_path=request.data_path,
        columns=request.columns,
        extension=request.extension
    )
    _raise_for_failure(result)
    return result

@app.post("/analyze/ai", response_model=AIAnalyzeResponse, response_model_exclude_none=True)
async def analyze_ai(request: AIAnalyzeRequest):
    """Ask the configured language-model providers for insights"""
    result = await pipeline.run_ai_analysis(
        data_path=request.data_path,
        columns=request.columns,
        extension=request.extension,
        provider=request.provider
    )
    _raise_for_failure(result)
    if result["status"] == "unavailable":
        logger.warning(f"AI analysis unavailable for {request.data_path}")
    return result

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Tabular Insight Engine API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }

if __name__ == "__main__":
    setup_logging(
        log_level=config.logging_level,
        log_dir=str(config.paths.LOGS_DIR),
        log_to_file=config.log_to_file
    )
    uvicorn.run(
        "insight_engine.api.main:app",
        host=config.deployment.DEFAULT_HOST,
        port=config.deployment.DEFAULT_PORT,
        workers=config.deployment.WORKERS,
        log_level="info"
    )
