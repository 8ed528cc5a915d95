"""Recurring purchase optimizer agent."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from arvalo.agent.types import AgentResult
from arvalo.agents.base import SpecializedAgent

SYSTEM_PROMPT = """You are an expert at analyzing purchase patterns and optimizing recurring expenses. Your job is to:

1. Analyze purchase history to identify recurring purchases
2. Calculate purchase frequency and patterns
3. Search for subscription services or bulk purchase options
4. Compare total costs: one-time purchases vs subscriptions vs bulk buying
5. Predict when the user will need to buy the item again
6. Provide personalized money-saving recommendations

When analyzing recurring purchases:
- Look for items purchased multiple times
- Calculate average time between purchases
- Estimate annual spending on the item
- Search for subscription alternatives (e.g., Subscribe & Save)
- Calculate potential savings from subscriptions or bulk buying
- Consider convenience vs cost savings trade-offs
- Predict next purchase date based on pattern
- Provide clear, actionable recommendations

Always return your final analysis in JSON format with these fields:
{
  "item_name": "Product Name",
  "purchase_frequency": "Every 30 days",
  "times_purchased": 5,
  "average_price": 24.99,
  "annual_spending": 299.88,
  "patterns": {
    "average_days_between": 30,
    "consistent": true,
    "trend": "stable"
  },
  "next_purchase_prediction": {
    "date": "YYYY-MM-DD",
    "confidence": 0.85
  },
  "subscription_options": [
    {
      "service": "Subscribe & Save",
      "price_per_delivery": 21.24,
      "frequency": "Monthly",
      "annual_cost": 254.88,
      "annual_savings": 44.00,
      "pros": ["Automatic delivery", "15% discount"],
      "cons": ["Commitment required"]
    }
  ],
  "bulk_options": [
    {
      "quantity": 6,
      "total_price": 129.99,
      "price_per_unit": 21.67,
      "savings_vs_regular": 19.95,
      "months_supply": 6
    }
  ],
  "recommendation": {
    "best_option": "Subscribe & Save",
    "reasoning": "Saves $44/year with minimal effort",
    "action_steps": ["Visit product page", "Select subscription", "Choose monthly delivery"]
  }
}"""


class RecurringSummaryItem(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    item: str
    current_annual_cost: Optional[float] = None
    optimized_annual_cost: Optional[float] = None
    annual_savings: Optional[float] = None
    recommendation: Optional[str] = None


class RecurringPurchasesReport(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    total_purchases_analyzed: int = 0
    recurring_items_found: int = 0
    total_annual_spending: float = 0.0
    total_potential_savings: float = 0.0
    recurring_purchases: List[RecurringSummaryItem] = Field(default_factory=list)
    top_opportunities: List[str] = Field(default_factory=list)


class RecurringItemPlan(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    item_name: Optional[str] = None
    purchase_frequency: Optional[str] = None
    times_purchased: Optional[int] = None
    average_price: Optional[float] = None
    annual_spending: Optional[float] = None
    subscription_options: List[Dict[str, Any]] = Field(default_factory=list)
    bulk_options: List[Dict[str, Any]] = Field(default_factory=list)
    recommendation: Union[str, Dict[str, Any], None] = None


class NextPurchasePrediction(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    item: Optional[str] = None
    last_purchase_date: Optional[str] = None
    average_days_between: Optional[float] = None
    trend: Optional[str] = None
    predicted_date: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    reasoning: Optional[str] = None


class RecurrentOptimizerAgent(SpecializedAgent):
    agent_name = "recurrent_optimizer"
    description = "Intelligent recurring purchase analysis and optimization agent"
    system_prompt = SYSTEM_PROMPT
    tool_names = ("web_search", "price_lookup", "database_query")
    max_iterations = 10
    temperature = 0.5

    async def analyze_recurring_purchases(self, user_id: str) -> AgentResult:
        prompt = f"""Analyze the purchase history for user {user_id} and identify all recurring purchases with optimization opportunities.

Please:
1. Query the database for all purchases by this user
2. Group purchases by product/item to identify recurring items
3. For each recurring item, analyze the pattern
4. Search for subscription or bulk purchase alternatives
5. Calculate potential savings
6. Provide recommendations prioritized by savings potential

Return analysis in JSON format with:
{{
  "total_purchases_analyzed": number,
  "recurring_items_found": number,
  "total_annual_spending": number,
  "total_potential_savings": number,
  "recurring_purchases": [
    {{
      "item": "...",
      "current_annual_cost": number,
      "optimized_annual_cost": number,
      "annual_savings": number,
      "recommendation": "..."
    }}
  ],
  "top_opportunities": ["Item 1: Save $X/year", "Item 2: Save $Y/year"]
}}"""
        return await self.run(prompt, {"userId": user_id}, user_id=user_id, answer_model=RecurringPurchasesReport)

    async def optimize_recurring_item(
        self,
        user_id: str,
        item_name: str,
        product_url: Optional[str] = None,
    ) -> AgentResult:
        url_hint = f" for the product at {product_url}" if product_url else ""
        prompt = f"""Analyze and optimize the recurring purchase of "{item_name}" for user {user_id}.

Please:
1. Query the database for all purchases of this item
2. Calculate purchase frequency and patterns
3. Predict next purchase date
4. Search for subscription options{url_hint}
5. Search for bulk purchase options
6. Compare all options and provide recommendation

Return the detailed analysis in the specified JSON format."""
        return await self.run(
            prompt,
            {"userId": user_id, "itemName": item_name, "productUrl": product_url},
            user_id=user_id,
            answer_model=RecurringItemPlan,
        )

    async def predict_next_purchase(self, user_id: str, item_name: str) -> AgentResult:
        prompt = f"""Predict when user {user_id} will need to repurchase "{item_name}" based on their purchase history.

Please:
1. Query the database for past purchases of this item
2. Calculate average time between purchases
3. Identify any trends (increasing/decreasing frequency)
4. Account for seasonality if relevant
5. Predict the next purchase date with confidence level

Return prediction in JSON format with:
{{
  "item": "{item_name}",
  "last_purchase_date": "YYYY-MM-DD",
  "purchase_history": [
    {{"date": "YYYY-MM-DD", "days_since_previous": number}}
  ],
  "average_days_between": number,
  "trend": "stable|increasing|decreasing",
  "predicted_date": "YYYY-MM-DD",
  "confidence": 0.85,
  "reasoning": "Explanation of prediction"
}}"""
        return await self.run(
            prompt,
            {"userId": user_id, "itemName": item_name},
            user_id=user_id,
            answer_model=NextPurchasePrediction,
        )
