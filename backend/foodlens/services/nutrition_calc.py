import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from foodlens.models import AnalyzeResponse

def coerce_calories(item: Any) -> float:
    """數字或數字字串 -> float，其餘（缺欄位、null、bool、非數字、NaN/inf）一律 0。"""
    if not isinstance(item, dict):
        return 0.0
    val = item.get("calories")
    if isinstance(val, bool):
        return 0.0
    if isinstance(val, (int, float)):
        num = float(val)
    elif isinstance(val, str):
        try:
            num = float(val.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return num if math.isfinite(num) else 0.0

def round_half_away(value: float) -> int:
    # 各項都有限但總和可能溢位成 inf，這時當 0
    if not math.isfinite(value):
        return 0
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def aggregate(parsed: Any) -> AnalyzeResponse:
    foods = parsed.get("foods") if isinstance(parsed, dict) else None
    if not isinstance(foods, list):
        foods = []
    total = sum(coerce_calories(it) for it in foods)
    return AnalyzeResponse(foods=foods, total_calories=round_half_away(total))
