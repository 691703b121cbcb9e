# backend/foodlens/utils/json_extract.py
from __future__ import annotations

import json
import re
from typing import Any

# 只拿掉圍欄標記，圍欄內外的文字都保留
_FENCE_JSON = "```json"
_FENCE = "```"

# 第一個 { 到最後一個 }（貪婪、跨行）
_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)

# 緊接在 } 或 ] 之前的逗號（中間可有空白）
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


class ExtractionError(ValueError):
    """Model text has no `{...}` span."""


class ParseError(ValueError):
    """Candidate JSON failed both the strict and the repaired parse."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def _strict_loads(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_constant)


def extract_json(text: str) -> str:
    """
    從模型回覆中取出 JSON 物件字串：
    1) 去掉 ```json 與 ``` 標記
    2) 去頭尾空白
    3) 取第一個 { 到最後一個 } 的區段（不檢查括號是否平衡）
    """
    if not isinstance(text, str):
        raise ExtractionError("no JSON found")

    cleaned = text.replace(_FENCE_JSON, "").replace(_FENCE, "").strip()

    m = _OBJECT_SPAN.search(cleaned)
    if not m:
        raise ExtractionError("no JSON found")
    return m.group(0)


def strip_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def safe_json_parse(candidate: str) -> Any:
    """
    Strict parse first; on failure drop trailing commas and try exactly once more.
    Raises ParseError if the repaired text still does not parse.
    """
    try:
        return _strict_loads(candidate)
    except (ValueError, RecursionError):
        pass

    fixed = strip_trailing_commas(candidate)
    try:
        return _strict_loads(fixed)
    except (ValueError, RecursionError) as e:
        # 巢狀過深也算解析失敗
        raise ParseError(f"invalid JSON after repair: {e}") from e
