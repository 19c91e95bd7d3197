"""
Ethics simulator schemas
"""

from pydantic import BaseModel, Field
from typing import Optional


class EthicsSessionStart(BaseModel):
    scenario_id: str
    retry_of: Optional[str] = None


class EthicsResponseSubmit(BaseModel):
    stage_id: str
    response_text: str = Field(..., min_length=1, max_length=10000)
    selected_option: Optional[str] = None
    time_taken: int = Field(0, ge=0, description="Seconds spent on this stage")


class EthicsRetryRequest(BaseModel):
    new_context: Optional[str] = Field(None, max_length=2000, description="Custom twist; generated when omitted")
