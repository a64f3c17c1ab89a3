# ============================================================================
# api/main.py
# ============================================================================
"""
FastAPI Backend for the MediGuide prescription core

Run with:
    uvicorn api.main:app --port 8000

Endpoints:
- POST /api/parse          typed text or base64 image (JSON)
- POST /api/parse/upload   multipart image upload
- POST /api/med-chat       ask about a medicine
- GET  /api/health         liveness plus oracle status
"""

import base64
import binascii
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mediguide.chat import MedicineChatService, ResponseCache, generate_suggested_questions
from mediguide.config import llm_settings, logging_settings
from mediguide.core.schemas import ParseRequest, ParseResponse, ParserMode, UserPreferences
from mediguide.llm import OllamaTextOracle
from mediguide.ocr import get_paddle_ocr_recognizer
from mediguide.pipeline import PrescriptionPipeline, create_pipeline
from mediguide.utils import (
    InputValidationError,
    OracleError,
    OracleTimeoutError,
    OracleUnavailableError,
    setup_logging,
)

logger = logging.getLogger(__name__)

# error code -> HTTP status
ERROR_STATUS = {
    "input_validation": 400,
    "image_quality": 422,
    "oracle_timeout": 504,
    "oracle_unavailable": 503,
    "invalid_llm_output": 502,
    "oracle_error": 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and pre-load PaddleOCR so the first request is fast."""
    setup_logging(
        level=logging_settings.LOG_LEVEL,
        log_file=logging_settings.LOG_FILE,
        format_json=logging_settings.LOG_JSON,
    )
    logger.info("Pre-loading PaddleOCR models...")
    try:
        get_paddle_ocr_recognizer().warm_up()
        logger.info("PaddleOCR models loaded successfully")
    except OracleError as e:
        logger.warning(f"PaddleOCR pre-load failed (will retry on first use): {e}")
    yield
    await get_text_oracle().close()


app = FastAPI(
    title="MediGuide API",
    description="Prescription parsing, explainability, interactions and adherence nudges",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for web frontend and Expo mobile app
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8081",
        "http://localhost:19000",
    ],
    allow_origin_regex=r"http://192\.168\.\d+\.\d+:\d+",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Dependencies
# ============================================================================

@lru_cache(maxsize=1)
def get_text_oracle() -> OllamaTextOracle:
    return OllamaTextOracle()


@lru_cache(maxsize=1)
def get_pipeline() -> PrescriptionPipeline:
    return create_pipeline()


@lru_cache(maxsize=1)
def get_chat_service() -> MedicineChatService:
    cache = ResponseCache(
        ttl_seconds=llm_settings.CHAT_CACHE_TTL,
        max_entries=llm_settings.CHAT_CACHE_MAX_ENTRIES,
    )
    return MedicineChatService(get_text_oracle(), cache)


# ============================================================================
# Models
# ============================================================================

class UserPreferencesModel(BaseModel):
    wake_time: str = "07:00"
    sleep_time: str = "22:00"
    breakfast_time: str = "08:00"
    lunch_time: str = "13:00"
    dinner_time: str = "19:00"
    preferred_nudge_style: str = "gentle"
    timezone: str = "Asia/Kolkata"


class ParseRequestModel(BaseModel):
    raw_text: Optional[str] = None
    image_base64: Optional[str] = None
    language_hint: Optional[str] = None
    user_preferences: Optional[UserPreferencesModel] = None
    conditions: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    adherence_patterns: Optional[List[Dict[str, Any]]] = None
    parser_mode: Optional[Literal["rules", "llm"]] = None


class ChatRequestModel(BaseModel):
    message: str
    context: Optional[Dict[str, Any]] = None
    is_followup: bool = False


def _decode_image(data: str) -> bytes:
    # Accept data URLs as well as bare base64
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="image_base64 is not valid base64")


def _to_response(response: ParseResponse) -> JSONResponse:
    status = 200
    if response.error is not None:
        status = ERROR_STATUS.get(response.error.code, 500)
    return JSONResponse(status_code=status, content=response.to_dict())


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/")
async def root():
    return {"status": "ok", "service": "MediGuide API"}


@app.get("/api/health")
async def health(oracle: OllamaTextOracle = Depends(get_text_oracle)):
    """Liveness plus oracle readiness. Always 200; see `llm.healthy`."""
    return {
        "status": "healthy",
        "llm": await oracle.health_check(),
        "ocr": get_paddle_ocr_recognizer().get_statistics(),
    }


@app.post("/api/parse")
async def parse_prescription(
    body: ParseRequestModel,
    pipeline: PrescriptionPipeline = Depends(get_pipeline),
):
    """Parse typed prescription text, or a base64 image when given."""
    request = ParseRequest(
        raw_text=body.raw_text,
        image_bytes=_decode_image(body.image_base64) if body.image_base64 else None,
        language_hint=body.language_hint,
        user_preferences=(
            UserPreferences(**body.user_preferences.model_dump())
            if body.user_preferences else None
        ),
        conditions=body.conditions,
        allergies=body.allergies,
        adherence_patterns=body.adherence_patterns,
        parser_mode=ParserMode(body.parser_mode) if body.parser_mode else None,
    )
    return _to_response(await pipeline.process(request))


@app.post("/api/parse/upload")
async def parse_upload(
    file: UploadFile = File(...),
    parser_mode: Optional[Literal["rules", "llm"]] = Form(None),
    language_hint: Optional[str] = Form(None),
    pipeline: PrescriptionPipeline = Depends(get_pipeline),
):
    """Parse an uploaded prescription photo."""
    content = await file.read()
    logger.info(f"Received upload {file.filename} ({len(content)} bytes)")

    request = ParseRequest(
        image_bytes=content,
        language_hint=language_hint,
        parser_mode=ParserMode(parser_mode) if parser_mode else None,
    )
    return _to_response(await pipeline.process(request))


@app.post("/api/med-chat")
async def med_chat(
    body: ChatRequestModel,
    service: MedicineChatService = Depends(get_chat_service),
):
    """Ask about a medicine; follow-ups answer briefly about the previous one."""
    try:
        result = await service.ask(body.message, body.context, body.is_followup)
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=e.user_message)
    except OracleTimeoutError as e:
        raise HTTPException(status_code=504, detail={"error": "Failed to generate response.", "details": e.cause})
    except OracleUnavailableError as e:
        raise HTTPException(status_code=503, detail={"error": "Failed to generate response.", "details": e.cause})
    except OracleError as e:
        logger.error(f"Chat API error: {e}")
        raise HTTPException(status_code=502, detail={"error": "Failed to generate response.", "details": e.cause})

    if not body.is_followup and result.get("medicine"):
        result["suggested_questions"] = generate_suggested_questions([result["medicine"]])
    return result
