# backend/foodlens/services/openai_client.py
from __future__ import annotations

import base64
import logging
import os

from dotenv import load_dotenv
from openai import OpenAI, OpenAIError

load_dotenv()  # 允許用 .env 設 OPENAI_API_KEY

logger = logging.getLogger(__name__)

# ===== 可調參數 =====
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
VISION_MODEL = os.getenv("VISION_MODEL", "gpt-4o-mini").strip()
VISION_TIMEOUT_S = float(os.getenv("VISION_TIMEOUT_S", "60"))
VISION_TEMPERATURE = float(os.getenv("VISION_TEMPERATURE", "0.2"))

_client: OpenAI | None = None


class UpstreamModelError(RuntimeError):
    """The vision model call itself failed (network, auth, quota, timeout)."""


# === 提示：只准回傳純 JSON ===
FOOD_PROMPT = """
You are a nutrition analysis API.

CRITICAL RULES:
- Respond ONLY with valid JSON
- No markdown
- No explanations
- No comments
- No trailing commas

Return EXACTLY this schema:

{
  "foods": [
    {
      "name": "string",
      "estimated_weight_grams": number,
      "calories": number
    }
  ],
  "total_calories": number
}

If unsure, return empty foods array and total_calories = 0.
""".strip()


def require_api_key() -> str:
    """啟動時檢查；沒有金鑰就不要開服務。"""
    if not OPENAI_API_KEY:
        logger.error("OPENAI_API_KEY missing")
        raise RuntimeError("OPENAI_API_KEY is not set")
    return OPENAI_API_KEY


def _client_ok() -> OpenAI:
    """Singleton OpenAI client with API key check."""
    global _client
    if _client is None:
        # max_retries=0：每個請求只呼叫模型一次
        _client = OpenAI(
            api_key=require_api_key(),
            timeout=VISION_TIMEOUT_S,
            max_retries=0,
        )
    return _client


def analyze_food_image(image_b64: str, mime_type: str = "image/jpeg") -> str:
    """
    把圖片與固定提示送給模型，回傳模型的原始文字（不在這裡解析）。
    任何 OpenAIError 都包成 UpstreamModelError。
    """
    client = _client_ok()
    try:
        resp = client.chat.completions.create(
            model=VISION_MODEL,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": FOOD_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{image_b64}"},
                        },
                    ],
                },
            ],
            temperature=VISION_TEMPERATURE,
        )
    except OpenAIError as e:
        raise UpstreamModelError(f"{type(e).__name__}: {e}") from e

    if not resp.choices:
        return ""
    return resp.choices[0].message.content or ""


def analyze_food_file(path: str, mime_type: str = "image/jpeg") -> str:
    with open(path, "rb") as f:
        image_b64 = base64.b64encode(f.read()).decode("ascii")
    return analyze_food_image(image_b64, mime_type)
