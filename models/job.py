from pydantic import BaseModel
from typing import Dict, Optional
from datetime import datetime

class RecurringJob(BaseModel):
    name: str = "email"
    data: Dict[str, str]
    unique: Dict[str, str]
    repeat_every: str
    timezone: str = "UTC"
    next_run_at: Optional[datetime] = None
