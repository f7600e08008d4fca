"""HTTP front end: POST /evaluate"""

from __future__ import annotations

import logging
import threading

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env before legacyparity.config reads the environment
load_dotenv()

from legacyparity.config import SERVER_CONFIG
from legacyparity.pipeline import ModernizationPipeline
from legacyparity.tasks import EvaluationTask, SourceLocation

logger = logging.getLogger(__name__)


class SourceLocationModel(BaseModel):
    bucket: str
    key: str


class EvalRequest(BaseModel):
    task_id: str
    source_location: SourceLocationModel


class EvalResponse(BaseModel):
    task_id: str
    status: str
    match_confirmed: bool
    candidate_code_url: str | None = None
    logs_url: str | None = None


def create_app(pipeline: ModernizationPipeline | None = None) -> FastAPI:
    """
    Build the FastAPI app.

    Every request is handled on its own worker thread (sync endpoint), so
    tasks run concurrently but each task's stages stay sequential.
    """
    app = FastAPI(title="LegacyParity", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=SERVER_CONFIG["cors_origins"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    state = {"pipeline": pipeline}
    pipeline_lock = threading.Lock()

    def get_pipeline() -> ModernizationPipeline:
        if state["pipeline"] is None:
            with pipeline_lock:
                if state["pipeline"] is None:
                    state["pipeline"] = ModernizationPipeline()
        return state["pipeline"]

    @app.get("/health")
    def health() -> dict:
        return {"ok": True}

    @app.post("/evaluate", response_model=EvalResponse)
    def evaluate(req: EvalRequest):
        task = EvaluationTask(
            task_id=req.task_id,
            source_location=SourceLocation(bucket=req.source_location.bucket, key=req.source_location.key),
        )
        try:
            report = get_pipeline().run(task)
        except Exception as exc:
            logger.exception(f"[TASK: {req.task_id}] Error: {exc}")
            body = EvalResponse(task_id=req.task_id, status=f"{type(exc).__name__}: {exc}",
                                match_confirmed=False)
            return JSONResponse(status_code=500, content=body.model_dump())

        return EvalResponse(**report.to_response())

    return app
