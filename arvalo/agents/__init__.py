"""Specialized purchase-assistant agents and the orchestrator that composes them."""

from arvalo.agents.base import SpecializedAgent
from arvalo.agents.orchestrator import (
    Orchestrator,
    ParallelResult,
    ParallelTask,
    PurchaseAnalysis,
    TaskError,
    Workflow,
    WorkflowResult,
    WorkflowStep,
)
from arvalo.agents.price_detective import PriceDetectiveAgent
from arvalo.agents.receipt import ReceiptAgent
from arvalo.agents.recurrent_optimizer import RecurrentOptimizerAgent
from arvalo.agents.return_policy import ReturnPolicyAgent
from arvalo.agents.warranty import WarrantyAgent

__all__ = [
    "Orchestrator",
    "ParallelResult",
    "ParallelTask",
    "PriceDetectiveAgent",
    "PurchaseAnalysis",
    "ReceiptAgent",
    "RecurrentOptimizerAgent",
    "ReturnPolicyAgent",
    "SpecializedAgent",
    "TaskError",
    "WarrantyAgent",
    "Workflow",
    "WorkflowResult",
    "WorkflowStep",
]
