# backend/foodlens/routers/analyze.py
from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.responses import JSONResponse

from foodlens.models import AnalyzeResponse, ErrorResponse
from foodlens.services import openai_client, storage
from foodlens.services.nutrition_calc import aggregate
from foodlens.utils.json_extract import ExtractionError, ParseError, extract_json, safe_json_parse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analyze"])

MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(10 * 1024 * 1024)))  # 10MB

IMAGE_REQUIRED = "Image is required"
IMAGE_TOO_LARGE = "Image too large"
ANALYZE_FAILED = "Failed to analyze image"
INVALID_MODEL_RESPONSE = "Invalid model response"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


def interpret_model_text(raw_text: str) -> AnalyzeResponse:
    """模型文字 -> 擷取 -> 寬鬆解析 -> 加總；擷取或解析失敗就回傳空結果加 warning。"""
    try:
        parsed = safe_json_parse(extract_json(raw_text))
    except (ExtractionError, ParseError) as e:
        logger.warning("model response unusable: %s", e)
        return AnalyzeResponse.degraded(INVALID_MODEL_RESPONSE)
    return aggregate(parsed)


async def _read_upload(request: Request) -> Optional[UploadFile]:
    """
    從 multipart 取出 image 欄位；沒有檔案（缺欄位、純文字欄位、非 multipart）就回傳 None。
    """
    ct = (request.headers.get("content-type") or "").lower()
    if "multipart/form-data" not in ct:
        return None
    try:
        form = await request.form()
    except Exception as e:
        logger.warning("multipart parse failed: %s: %s", type(e).__name__, e)
        return None
    upload = form.get("image")
    if not isinstance(upload, UploadFile) or not upload.filename:
        return None
    return upload


@router.post(
    "/analyze-food",
    response_model=AnalyzeResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze_food(request: Request) -> JSONResponse:
    image = await _read_upload(request)
    if image is None:
        return _error(400, IMAGE_REQUIRED)

    try:
        # 多讀 1 byte 就能判斷是否超過上限
        content = await image.read(MAX_IMAGE_BYTES + 1)
        if not content:
            return _error(400, IMAGE_REQUIRED)
        if len(content) > MAX_IMAGE_BYTES:
            return _error(413, IMAGE_TOO_LARGE)

        mime_type = image.content_type or storage.guess_content_type(image.filename)
        if not mime_type.startswith("image/"):
            mime_type = storage.guess_content_type(image.filename)
        logger.info("analyze-food: %s (%d bytes, %s)", image.filename, len(content), mime_type)

        with storage.temp_upload(content, image.filename) as path:
            # 同步 SDK 呼叫丟到 threadpool，不卡住 event loop
            raw_text = await run_in_threadpool(openai_client.analyze_food_file, path, mime_type)

        result = interpret_model_text(raw_text)
        logger.info("analyze-food: %d foods, total=%d", len(result.foods), result.total_calories)
        return JSONResponse(result.to_payload(), status_code=200)

    except openai_client.UpstreamModelError:
        logger.exception("vision model call failed")
        return _error(500, ANALYZE_FAILED)
    except Exception:
        logger.exception("analyze-food failed")
        return _error(500, ANALYZE_FAILED)
    finally:
        await image.close()
