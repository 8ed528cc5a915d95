"""
Pydantic models for the agent API requests and responses
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from arvalo.agent.types import AgentResult


# Request Models
class PriceCheckRequest(BaseModel):
    """Price drop check for one purchase, or for all of a user's purchases"""
    user_id: str
    purchase_id: Optional[str] = None
    monitor_all: bool = False


class ReceiptRequest(BaseModel):
    """Receipt analysis from OCR'd text or a base64 image"""
    user_id: str
    receipt_text: Optional[str] = None
    image_data: Optional[str] = None
    mime_type: Optional[str] = None


class AnalyzePurchaseRequest(BaseModel):
    """Combined return-policy, price and recurrence analysis"""
    user_id: str
    purchase_id: Optional[str] = None


# Response Models
class AgentRunMetadata(BaseModel):
    iterations: int = 0
    tokens_used: int = 0
    cost: float = 0.0
    tools_used: List[str] = Field(default_factory=list)


class AgentRunResponse(BaseModel):
    """Successful agent run"""
    success: bool = True
    data: Any = None
    metadata: AgentRunMetadata = Field(default_factory=AgentRunMetadata)

    @classmethod
    def from_result(cls, result: AgentResult) -> "AgentRunResponse":
        return cls(
            success=result.success,
            data=result.data,
            metadata=AgentRunMetadata(
                iterations=result.iterations,
                tokens_used=result.tokens_used,
                cost=result.cost,
                tools_used=list(result.tools_used),
            ),
        )


class TaskErrorModel(BaseModel):
    agent: str
    error: str


class PurchaseAnalysisResponse(BaseModel):
    success: bool
    analysis: Dict[str, Any] = Field(default_factory=dict)
    recommendations: List[str] = Field(default_factory=list)
    errors: List[TaskErrorModel] = Field(default_factory=list)


class StatsResponse(BaseModel):
    """Execution monitor summary plus cache state"""
    total_executions: int = 0
    success_rate: float = 0.0
    average_duration_ms: float = 0.0
    average_iterations: float = 0.0
    total_tokens: int = 0
    total_cost: float = 0.0
    by_agent: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    cache: Dict[str, Any] = Field(default_factory=dict)
