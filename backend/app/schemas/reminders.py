"""Response model of the reminder dispatch trigger."""

from typing import List

from pydantic import Field

from ._strict_base import StrictModel


class ReminderRunResponse(StrictModel):
    ok: bool = True
    attempted: int
    sent: int
    warnings: List[str] = Field(default_factory=list)
