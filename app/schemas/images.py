from __future__ import annotations

from pydantic import BaseModel


class CroppedImageOut(BaseModel):
    content_type: str = "image/jpeg"
    data_base64: str
    size_bytes: int
    quality: float
    attempts: int
    within_budget: bool
    messages: list[str]
