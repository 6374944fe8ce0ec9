from __future__ import annotations

import re
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def _clock(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    m = _TIME_RE.match(value.strip())
    if not m:
        raise ValueError("Time must be in HH:MM format")
    return f"{int(m.group(1)):02d}:{m.group(2)}"


ClockTime = Annotated[Optional[str], AfterValidator(_clock)]


class BusinessHoursIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    day_of_week: int = Field(ge=0, le=6)
    open_time: ClockTime = None
    close_time: ClockTime = None
    is_closed: bool = False


class BusinessHoursUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    open_time: ClockTime = None
    close_time: ClockTime = None
    is_closed: Optional[bool] = None


class BusinessHoursOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_id: int
    day_of_week: int
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool
