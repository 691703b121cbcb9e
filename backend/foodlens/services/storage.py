# backend/foodlens/services/storage.py
from __future__ import annotations
import logging
import os
import re
import uuid
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

# 上傳暫存資料夾（每個請求一個檔，用完即刪）
UPLOAD_DIR = os.path.abspath(
    os.getenv("UPLOAD_DIR", os.path.join(os.path.dirname(__file__), "..", "uploads"))
)
os.makedirs(UPLOAD_DIR, exist_ok=True)


_EXT_OK = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


def _gen_filename(original_name: str) -> str:
    stem = uuid.uuid4().hex
    # 只取檔名本身的副檔名，且只接受英數字，避免路徑字元混進來
    ext = os.path.splitext(os.path.basename(original_name or ""))[1].lower()
    if not _EXT_OK.match(ext):
        ext = ""
    return f"{stem}{ext}"


def store_temp(raw: bytes, original_name: str) -> str:
    """寫入暫存檔（uuid 命名，不會撞名），回傳檔案路徑；寫到一半失敗會先刪掉殘檔。"""
    path = os.path.join(UPLOAD_DIR, _gen_filename(original_name))
    try:
        with open(path, "wb") as f:
            f.write(raw)
    except BaseException:
        discard(path)
        raise
    return path


def discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


@contextmanager
def temp_upload(raw: bytes, original_name: str) -> Iterator[str]:
    """
    暫存上傳圖片，離開 with 區塊時一定刪除（成功或例外都一樣）。
    """
    path = store_temp(raw, original_name)
    logger.debug("stored upload %s (%d bytes)", path, len(raw))
    try:
        yield path
    finally:
        discard(path)


def guess_content_type(name: str) -> str:
    name = (name or "").lower()
    if name.endswith(".png"):
        return "image/png"
    if name.endswith(".webp"):
        return "image/webp"
    if name.endswith(".gif"):
        return "image/gif"
    if name.endswith(".heic"):
        return "image/heic"
    # 預設 jpeg
    return "image/jpeg"
