# app/routers/images.py
from __future__ import annotations

import asyncio
import base64
from functools import partial

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from app.core.config import settings
from app.core.deps import get_current_user
from app.schemas.images import CroppedImageOut
from app.services.images import ImageCropError, crop_image

router = APIRouter(prefix="/images", tags=["Images"])

# Raw upload cap, well above the encoded budget
MAX_UPLOAD_BYTES = 20 * 1024 * 1024


@router.post("/crop", response_model=CroppedImageOut)
async def crop(
    file: UploadFile = File(...),
    x: int = Form(..., ge=0),
    y: int = Form(..., ge=0),
    width: int = Form(..., gt=0),
    height: int = Form(..., gt=0),
    rotation: float = Form(default=0),
    current_user=Depends(get_current_user),
):
    source = await file.read()
    if not source:
        raise HTTPException(status_code=400, detail="Empty upload")
    if len(source) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Image is too large")

    messages: list[str] = []
    try:
        result = await asyncio.to_thread(
            partial(
                crop_image,
                source,
                x=x,
                y=y,
                width=width,
                height=height,
                rotation=rotation,
                max_bytes=settings.IMAGE_MAX_BYTES,
                on_progress=messages.append,
            )
        )
    except ImageCropError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return CroppedImageOut(
        data_base64=base64.b64encode(result.data).decode("ascii"),
        size_bytes=result.size_bytes,
        quality=result.quality,
        attempts=result.attempts,
        within_budget=result.within_budget,
        messages=messages,
    )
