# backend/main.py
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from foodlens.routers import analyze as analyze_router
from foodlens.services import openai_client

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s :: %(message)s",
)
logger = logging.getLogger("foodlens")


# --------------------------
# 啟動檢查：缺金鑰直接失敗
# --------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    openai_client.require_api_key()
    logger.info("vision model=%s timeout=%ss", openai_client.VISION_MODEL, openai_client.VISION_TIMEOUT_S)
    yield


# --------------------------
# 建立 FastAPI App
# --------------------------
app = FastAPI(title="foodlens-backend", version="1.0.0", lifespan=lifespan)


# --------------------------
# 簡單請求日誌
# --------------------------
@app.middleware("http")
async def log_requests(request: Request, call_next: Callable):
    logger.info(">>> %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("unhandled error on %s", request.url.path)
        return JSONResponse({"error": "internal error"}, status_code=500)
    logger.info("<<< %s %s", response.status_code, request.url.path)
    return response


# --------------------------
# CORS
# --------------------------
_allowed = os.getenv("ALLOWED_ORIGINS", "*")
ALLOWED_ORIGINS = [o.strip() for o in _allowed.split(",") if o.strip()] or ["*"]
logger.info("[CORS] ALLOWED_ORIGINS raw='%s' parsed=%s", _allowed, ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    # 萬用字元時不能帶 credentials
    allow_credentials="*" not in ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --------------------------
# 前端頁面
# --------------------------
STATIC_DIR = os.path.abspath(os.path.join(os.path.dirname(analyze_router.__file__), "..", "static"))
app.mount("/ui", StaticFiles(directory=STATIC_DIR, html=True), name="ui")


# --------------------------
# 健康檢查
# --------------------------
@app.get("/")
def root():
    return {"status": "ok", "service": "foodlens-backend"}


@app.get("/health")
def health():
    return {"ok": True, "model": openai_client.VISION_MODEL}


app.include_router(analyze_router.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
