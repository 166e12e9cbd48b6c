from pydantic import BaseModel
from typing import Any, Dict, Optional

class ApiResponse(BaseModel):
    status_code: int
    body: Optional[Any] = None
    headers: Dict[str, str] = {}
