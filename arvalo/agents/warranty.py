"""Warranty guardian agent: warranty tracking, expiry reminders and claims."""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from arvalo.agent.types import AgentResult
from arvalo.agents.base import SpecializedAgent

SYSTEM_PROMPT = """You are the Warranty Guardian - a friendly, empathetic AI assistant who helps people navigate warranties and product protection.

## Your Personality
- **Empathetic**: When someone's product breaks, acknowledge their frustration. "Oh no, that's really frustrating! Let me see if we can get this covered."
- **Proactive**: Alert users before warranties expire. "Hey! Your MacBook's warranty expires in 30 days - let me help you document everything now, just in case."
- **Patient & Supportive**: Filing claims can be stressful. Guide users step-by-step with encouragement.
- **Celebratory**: When coverage saves money, celebrate with them! "Great news! Your TV is covered - we just saved you $800!"
- **Honest**: If something isn't covered, be clear but helpful. "Unfortunately, this isn't covered, but here's what we can do..."

## Your Capabilities
1. **Track Warranties**: Find and monitor warranty information for purchases
2. **Scrape Warranty Terms**: Search manufacturer websites for coverage details
3. **Calculate Coverage**: Determine if products are still under warranty
4. **File Claims**: Help users file warranty claims with manufacturers
5. **Provide Guidance**: Explain what's covered and what documentation is needed

## How to Communicate
- Use conversational, friendly language (not corporate-speak)
- Add personality: "Let's get your money back!" not "I will process your claim"
- Show empathy: "I know dealing with broken products is stressful..."
- Be clear about next steps: "Here's exactly what we need to do..."
- Celebrate wins: "We got it covered!"

## When Processing Warranties
For each product:
1. Search for warranty information (manufacturer website, retailer policy)
2. Determine warranty duration (usually 1 year for electronics, varies by category)
3. Calculate warranty end date from purchase date
4. Check current status (covered, expiring soon, expired)
5. If filing a claim, find the claim process and required documents

## Response Format
Always return JSON with these fields:
{
  "product_name": "MacBook Pro 14\\"",
  "manufacturer": "Apple",
  "retailer": "Apple Store",
  "purchase_date": "2024-11-15",
  "warranty_duration_months": 12,
  "warranty_end_date": "2025-11-15",
  "days_remaining": 365,
  "status": "covered|expiring_soon|expired",
  "coverage_type": "manufacturer|extended|store",
  "coverage_details": "1-year limited hardware warranty covering defects",
  "claim_process": {
    "url": "https://...",
    "phone": "1-800-...",
    "required_documents": ["Receipt", "Serial number", "Photos of issue"],
    "estimated_time": "3-5 business days"
  },
  "agent_message": "Your empathetic, friendly message here",
  "next_steps": ["Step 1", "Step 2"]
}

Remember: You're not just tracking warranties - you're helping people get peace of mind about their purchases!"""


class ClaimProcess(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    url: Optional[str] = None
    phone: Optional[str] = None
    required_documents: List[str] = Field(default_factory=list)
    estimated_time: Optional[str] = None


class WarrantyStatus(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    product_name: Optional[str] = None
    manufacturer: Optional[str] = None
    warranty_end_date: Optional[str] = None
    days_remaining: Optional[int] = None
    status: Optional[str] = None
    claim_process: Optional[ClaimProcess] = None
    agent_message: Optional[str] = None
    next_steps: List[str] = Field(default_factory=list)


class WarrantyOverview(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    agent_message: Optional[str] = None
    next_steps: List[str] = Field(default_factory=list)


class WarrantyAgent(SpecializedAgent):
    agent_name = "warranty_guardian"
    description = "Friendly warranty tracking and claims assistant"
    system_prompt = SYSTEM_PROMPT
    tool_names = ("web_search", "web_scrape", "warranty_lookup", "database_query", "database_update")
    max_iterations = 8
    temperature = 0.7

    async def extract_warranty(self, purchase: Dict[str, Any], user_id: str) -> AgentResult:
        """Look up and save warranty coverage for every item of a purchase."""
        prompt = f"""Help me track the warranty for this purchase.

Purchase Details:
- Merchant: {purchase.get('merchant')}
- Purchase Date: {purchase.get('purchase_date')}
- Items: {json.dumps(purchase.get('items', []), default=str)}

Please:
1. For each item, look up warranty information
2. Determine warranty duration (search manufacturer websites if needed)
3. Calculate warranty end dates
4. Provide a friendly summary with next steps
5. Save warranty data to database

Be warm and helpful in your response!"""
        return await self.run(
            prompt,
            {"purchaseId": purchase.get("id"), "userId": user_id, "purchase": purchase},
            user_id=user_id,
        )

    async def check_warranty_status(self, product_id: str, user_id: str) -> AgentResult:
        prompt = f"""Check the warranty status for product {product_id}.

Please:
1. Query the database for the product details
2. Check current warranty status (covered, expiring soon, expired)
3. If expiring soon, be proactive with recommendations
4. If expired, offer helpful alternatives
5. Provide a friendly, clear summary

Remember to be empathetic and supportive!"""
        return await self.run(
            prompt,
            {"productId": product_id, "userId": user_id},
            user_id=user_id,
            answer_model=WarrantyStatus,
        )

    async def file_warranty_claim(self, product_id: str, issue_description: str, user_id: str) -> AgentResult:
        prompt = f"""Help the user file a warranty claim for product {product_id}.

Issue: {issue_description}

Please:
1. Query the database for product and warranty details
2. Check if the issue is covered under warranty
3. Search for the claim filing process (manufacturer website)
4. List required documents and steps
5. Provide encouraging, step-by-step guidance

Be patient and supportive - filing claims can be stressful!

Return detailed claim instructions in JSON format."""
        return await self.run(
            prompt,
            {"productId": product_id, "issueDescription": issue_description, "userId": user_id},
            user_id=user_id,
            answer_model=WarrantyStatus,
        )

    async def get_expiring_warranties(self, user_id: str, days_threshold: int = 60) -> AgentResult:
        prompt = f"""Find all warranties expiring in the next {days_threshold} days for user {user_id}.

Please:
1. Query the database for user's warranties
2. Calculate days remaining for each
3. Filter for those expiring within {days_threshold} days
4. Provide proactive, friendly reminders
5. Suggest actions to take before expiration

Be proactive and helpful - remind them before it's too late!

Return a list of expiring warranties with friendly reminders."""
        return await self.run(
            prompt,
            {"userId": user_id, "daysThreshold": days_threshold},
            user_id=user_id,
        )

    async def analyze_all_warranties(self, user_id: str) -> AgentResult:
        prompt = f"""Analyze all warranties for user {user_id} and provide a comprehensive overview.

Please:
1. Query all warranties from database
2. Categorize by status (covered, expiring soon, expired)
3. Calculate total coverage value
4. Identify actionable items (expiring soon, claim opportunities)
5. Provide a friendly, comprehensive summary

Be encouraging and highlight the value of their coverage!

Return comprehensive warranty analysis in JSON format."""
        return await self.run(prompt, {"userId": user_id}, user_id=user_id, answer_model=WarrantyOverview)
