from typing import Optional

from pydantic import BaseModel, Field


class ResetStatus(BaseModel):
    last_reset_date: Optional[str] = Field(None, description="Reference-timezone date of the last reset")
    state: str = Field(..., description="idle or resetting")
    seconds_until_reset: int
    time_until_reset: str = Field(..., description="HH:MM:SS")


class LedgerSyncQueued(BaseModel):
    task_id: str
    dry_run: bool = False
