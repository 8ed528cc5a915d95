"""Receipt processing agent.

Turns receipt text (or a receipt image, through the provider's vision
capability) into structured purchase data: merchant, items, categories,
duplicate detection and price-match opportunities.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from arvalo.agent.types import AgentResult, LoopStatus
from arvalo.agents.base import SpecializedAgent

logger = logging.getLogger(__name__)

OCR_PROMPT = (
    "Extract all text from this receipt image exactly as printed. Include the merchant name, "
    "date, every line item with its price, taxes and totals. Return plain text only."
)

SYSTEM_PROMPT = """You are an expert receipt processing assistant. Your job is to:

1. Analyze receipt data to extract structured information
2. Identify the merchant and find their website/return policy
3. Cross-reference with the user's purchase history to detect duplicates
4. Categorize items intelligently
5. Detect potential price match opportunities by checking if items are available cheaper elsewhere
6. Provide actionable recommendations

When processing a receipt:
- Be thorough in extracting all relevant details
- Use web search to find merchant information if needed
- Query the database to check for existing purchases
- Look for price match opportunities within the return/price-match window
- Provide clear, actionable recommendations

Always return your final analysis in JSON format with these fields:
{
  "merchant": "Store Name",
  "merchant_website": "https://...",
  "purchase_date": "YYYY-MM-DD",
  "total_amount": 99.99,
  "items": [
    {
      "name": "Product Name",
      "price": 49.99,
      "category": "Electronics",
      "price_match_opportunity": false
    }
  ],
  "duplicate_purchase": false,
  "recommendations": [
    "Action items for the user"
  ]
}"""


class ReceiptItem(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    name: str
    price: Optional[float] = None
    category: Optional[str] = None
    price_match_opportunity: Optional[bool] = None


class ReceiptAnalysis(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    merchant: Optional[str] = None
    merchant_website: Optional[str] = None
    purchase_date: Optional[str] = None
    total_amount: Optional[float] = None
    items: List[ReceiptItem] = Field(default_factory=list)
    duplicate_purchase: Optional[bool] = None
    recommendations: List[str] = Field(default_factory=list)


class ReceiptAgent(SpecializedAgent):
    agent_name = "receipt_processor"
    description = "Intelligent receipt processing and analysis agent"
    system_prompt = SYSTEM_PROMPT
    tool_names = ("web_search", "web_scrape", "database_query")
    max_iterations = 8
    temperature = 0.5

    async def process_receipt(self, image_bytes: bytes, mime_type: str, user_id: str) -> AgentResult:
        """OCR a receipt image, then analyze the extracted text."""
        logger.info("[%s] Extracting text from receipt image (%s)", self.name, mime_type)
        try:
            receipt_text = await self.provider.vision(image_bytes, OCR_PROMPT, media_type=mime_type)
        except Exception as exc:
            logger.error("[%s] Receipt OCR failed: %s", self.name, exc)
            return AgentResult(
                success=False,
                error=f"Failed to extract text from receipt: {exc}",
                error_code="ocr_failed",
                status=LoopStatus.FAILED,
            )
        return await self.analyze_receipt_text(receipt_text, user_id)

    async def analyze_receipt_text(self, receipt_text: str, user_id: str) -> AgentResult:
        prompt = f"""Analyze this receipt and provide comprehensive information about the purchase.

Receipt Text:
{receipt_text}

Please:
1. Extract merchant name, date, items, and prices
2. Find the merchant's website
3. Check if this purchase already exists in the database
4. Categorize the items
5. Check if there are any price match opportunities
6. Provide recommendations

Return the analysis in the specified JSON format."""
        return await self.run(
            prompt,
            {"userId": user_id, "receiptText": receipt_text},
            user_id=user_id,
            answer_model=ReceiptAnalysis,
        )
