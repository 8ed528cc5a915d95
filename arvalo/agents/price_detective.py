"""Price drop detective agent: price-match and better-price discovery."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from arvalo.agent.types import AgentResult
from arvalo.agents.base import SpecializedAgent


SYSTEM_PROMPT = """You are an expert price detective and savings finder. Your job is to:

1. Monitor product prices for users' purchases
2. Detect price drops within return or price-match windows
3. Find the same products at competing retailers for better prices
4. Analyze pricing patterns and predict future drops
5. Generate clear price match claims with evidence
6. Provide actionable recommendations for maximum savings

When analyzing prices:
- Check the current price of products from the original purchase
- Search for the same product at competing retailers
- Calculate potential savings
- Verify the user is still within the price-match or return window
- Draft a clear price match request with all required details
- Provide step-by-step instructions for claiming the price match

Always return your final analysis in JSON format with these fields:
{
  "purchase_id": "123",
  "product_name": "Product Name",
  "original_price": 99.99,
  "current_price": 79.99,
  "price_drop": 20.00,
  "price_drop_percentage": 20.1,
  "competitor_prices": [
    {
      "retailer": "Competitor A",
      "price": 75.00,
      "url": "https://..."
    }
  ],
  "best_price": 75.00,
  "best_price_retailer": "Competitor A",
  "within_price_match_window": true,
  "days_remaining": 10,
  "eligible_for_price_match": true,
  "estimated_refund": 24.99,
  "price_match_claim": {
    "subject": "Price Match Request for [Product]",
    "body": "Draft email or claim text",
    "required_documents": ["Receipt", "Competitor URL"]
  },
  "recommendations": ["Action items"]
}"""


class CompetitorPrice(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    retailer: str
    price: Optional[float] = None
    url: Optional[str] = None


class PriceDropReport(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    purchase_id: Optional[str] = None
    product_name: Optional[str] = None
    original_price: Optional[float] = None
    current_price: Optional[float] = None
    price_drop: Optional[float] = None
    competitor_prices: List[CompetitorPrice] = Field(default_factory=list)
    eligible_for_price_match: Optional[bool] = None
    estimated_refund: Optional[float] = None
    recommendations: List[str] = Field(default_factory=list)


class PriceOpportunity(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    purchase_id: Optional[str] = None
    product: Optional[str] = None
    savings: Optional[float] = None
    eligible: Optional[bool] = None
    days_remaining: Optional[int] = None


class PriceMonitorReport(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    total_purchases_checked: int = 0
    opportunities_found: int = 0
    total_potential_savings: float = 0.0
    opportunities: List[PriceOpportunity] = Field(default_factory=list)
    prioritized_actions: List[str] = Field(default_factory=list)


class BetterPriceReport(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    product: Optional[str] = None
    current_price: Optional[float] = None
    current_retailer: Optional[str] = None
    competitors: List[CompetitorPrice] = Field(default_factory=list)
    best_deal: Optional[CompetitorPrice] = None


class PriceDetectiveAgent(SpecializedAgent):
    agent_name = "price_detective"
    description = "Intelligent price monitoring and savings detection agent"
    system_prompt = SYSTEM_PROMPT
    tool_names = ("web_search", "price_lookup", "database_query", "database_update")
    max_iterations = 10
    temperature = 0.5

    async def check_price_drops(self, purchase_id: str, user_id: str) -> AgentResult:
        prompt = f"""Check if there are any price drops or savings opportunities for purchase ID: {purchase_id}

Please:
1. Query the database to get the purchase details
2. Check the current price of the product
3. Search for the same product at competing retailers
4. Calculate potential savings
5. Verify if still within price-match window (check return policy)
6. If eligible, draft a price match claim
7. Provide clear recommendations

Return the analysis in the specified JSON format."""
        return await self.run(
            prompt,
            {"purchaseId": purchase_id, "userId": user_id},
            user_id=user_id,
            answer_model=PriceDropReport,
        )

    async def monitor_all_purchases(self, user_id: str) -> AgentResult:
        prompt = f"""Monitor all recent purchases for user {user_id} and identify any price drop opportunities.

Please:
1. Query the database for all purchases in the last 30 days
2. For each purchase with a product URL, check current prices
3. Identify which purchases have price drops
4. Prioritize by potential savings amount
5. Check which are still within price-match windows
6. Generate summary of all opportunities

Return analysis in JSON format with:
{{
  "total_purchases_checked": number,
  "opportunities_found": number,
  "total_potential_savings": number,
  "opportunities": [
    {{
      "purchase_id": "...",
      "product": "...",
      "savings": number,
      "eligible": true/false,
      "days_remaining": number
    }}
  ],
  "prioritized_actions": ["Action 1", "Action 2"]
}}"""
        return await self.run(prompt, {"userId": user_id}, user_id=user_id, answer_model=PriceMonitorReport)

    async def find_better_prices(self, product_name: str, current_price: float, current_retailer: str) -> AgentResult:
        prompt = f"""Find better prices for "{product_name}" which is currently ${current_price} at {current_retailer}.

Please:
1. Search for the product at major competing retailers
2. Check current prices at each retailer
3. Compare with the current price
4. Identify the best deal
5. Provide URLs and availability information

Return findings in JSON format with:
{{
  "product": "{product_name}",
  "current_price": {current_price},
  "current_retailer": "{current_retailer}",
  "competitors": [
    {{
      "retailer": "Name",
      "price": number,
      "url": "https://...",
      "available": true/false,
      "savings": number
    }}
  ],
  "best_deal": {{
    "retailer": "Name",
    "price": number,
    "savings": number
  }}
}}"""
        return await self.run(
            prompt,
            {"productName": product_name, "currentPrice": current_price, "currentRetailer": current_retailer},
            answer_model=BetterPriceReport,
        )
