from pydantic import BaseModel
from typing import List, Optional
from enum import Enum

class FlowAction(str, Enum):
    ENROLL = "enroll"
    UNSUBSCRIBE = "unsubscribe"
    IGNORED = "ignored"

class StepResult(BaseModel):
    step: str
    ok: bool
    detail: Optional[str] = None
    error: Optional[str] = None

class FlowResult(BaseModel):
    action: FlowAction
    email: Optional[str] = None
    skipped: bool = False
    steps: List[StepResult] = []

    @property
    def ok(self) -> bool:
        return all(step.ok for step in self.steps)

    @property
    def failed_steps(self) -> List[str]:
        return [step.step for step in self.steps if not step.ok]
