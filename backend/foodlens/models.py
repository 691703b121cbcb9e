from typing import Any, List, Optional
from pydantic import BaseModel, Field

class AnalyzeResponse(BaseModel):
    # foods 原樣回傳模型給的項目，不逐項驗證
    foods: List[Any] = Field(default_factory=list)
    total_calories: int = 0
    warning: Optional[str] = None

    def to_payload(self) -> dict:
        # 不走 model_dump，避免改動 foods 內的 null 值
        payload = {"foods": self.foods, "total_calories": self.total_calories}
        if self.warning is not None:
            payload["warning"] = self.warning
        return payload

    @classmethod
    def degraded(cls, warning: str) -> "AnalyzeResponse":
        return cls(foods=[], total_calories=0, warning=warning)

class ErrorResponse(BaseModel):
    error: str
