from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict
from enum import Enum

from utils.email_validator_lite import is_valid_email, normalize_email

OPT_IN = "opt-in"

class Frequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"

class SubscriptionKey(BaseModel):
    """The (frequency, email, delegatorAddress) triple naming one subscription."""
    model_config = ConfigDict(populate_by_name=True)

    frequency: Frequency
    email: str
    delegator_address: str = Field(alias="delegatorAddress")

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @property
    def list_name(self) -> str:
        return f"{self.delegator_address} - {self.frequency.value}"

    def job_data(self) -> Dict[str, str]:
        return {
            "frequency": self.frequency.value,
            "email": self.email,
            "delegatorAddress": self.delegator_address,
        }

class ConfirmationRequest(SubscriptionKey):
    # Unknown fields are passed through to the confirmation email metadata
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError(f"Invalid email address: {value!r}")
        return normalize_email(value)

    def passthrough(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})
