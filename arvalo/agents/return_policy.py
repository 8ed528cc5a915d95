"""Return policy research agent."""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from arvalo.agent.types import AgentInput, AgentResult
from arvalo.agents.base import SpecializedAgent, today_iso


SYSTEM_PROMPT = """You are an expert return policy researcher. Your job is to:

1. Find the official return/exchange policy for a given merchant
2. Search multiple sources to verify information
3. Extract key policy details (return window, conditions, exclusions)
4. Compare the policy with competitors if requested
5. Identify price match policies
6. Provide confidence scores for your findings

When researching a return policy:
- Start with web search to find the official policy URL
- Scrape and analyze the policy page
- Look for: return window (days), conditions, restocking fees, price match policy
- Cross-reference with user reviews or forums if official policy is unclear
- Compare with competitors to provide context
- Be honest about confidence level

Always return your final analysis in JSON format with these fields:
{
  "merchant_name": "Store Name",
  "merchant_domain": "store.com",
  "policy_url": "https://...",
  "policy_text": "Clear summary of the return policy",
  "return_days": 30,
  "has_price_match": true,
  "price_match_days": 14,
  "conditions": ["Item must be in original packaging", "Receipt required"],
  "exclusions": ["Final sale items", "Opened software"],
  "restocking_fee": 0,
  "confidence": 0.95,
  "sources": ["Official policy page", "Customer service FAQ"],
  "competitor_comparison": {
    "better_than": ["Competitor A"],
    "worse_than": ["Competitor B"]
  }
}"""


class ReturnPolicy(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    merchant_name: Optional[str] = None
    merchant_domain: Optional[str] = None
    policy_url: Optional[str] = None
    policy_text: Optional[str] = None
    return_days: Optional[int] = None
    has_price_match: Optional[bool] = None
    price_match_days: Optional[int] = None
    conditions: List[str] = Field(default_factory=list)
    exclusions: List[str] = Field(default_factory=list)
    restocking_fee: Optional[float] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    sources: List[str] = Field(default_factory=list)


class ReturnEligibility(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    is_returnable: bool
    days_remaining: Optional[int] = None
    return_deadline: Optional[str] = None
    reasoning: Optional[str] = None
    conditions_met: List[str] = Field(default_factory=list)
    potential_issues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


def policy_cache_key(merchant_name: str, merchant_domain: Optional[str], compare: bool) -> str:
    key = f"return_policy:{merchant_name.strip().lower()}:{(merchant_domain or '').strip().lower()}"
    return f"{key}:compare" if compare else key


class ReturnPolicyAgent(SpecializedAgent):
    agent_name = "return_policy_researcher"
    description = "Intelligent return policy research and analysis agent"
    system_prompt = SYSTEM_PROMPT
    tool_names = ("web_search", "web_scrape", "database_query")
    max_iterations = 10
    temperature = 0.5

    def __init__(self, *args: Any, policy_cache_ttl_s: Optional[float] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.policy_cache_ttl_s = policy_cache_ttl_s

    async def research_policy(
        self,
        merchant_name: str,
        merchant_domain: Optional[str] = None,
        compare_with_competitors: bool = False,
    ) -> AgentResult:
        """Find and summarize a merchant's return policy. Successful results are cached per merchant."""
        domain_suffix = f" ({merchant_domain})" if merchant_domain else ""
        comparison = (
            "Compare with 2-3 major competitors in the same industry"
            if compare_with_competitors
            else "Skip competitor comparison"
        )
        prompt = f"""Research the return and exchange policy for {merchant_name}{domain_suffix}.

Please:
1. Find the official return policy URL
2. Scrape and analyze the policy page
3. Extract all key details (return window, conditions, price match, etc.)
4. Assess your confidence in the findings
5. {comparison}

Return the analysis in the specified JSON format."""
        agent_input = AgentInput(
            prompt=prompt,
            context={
                "merchantName": merchant_name,
                "merchantDomain": merchant_domain,
                "compareWithCompetitors": compare_with_competitors,
            },
        )
        return await self.execute_cached(
            agent_input,
            policy_cache_key(merchant_name, merchant_domain, compare_with_competitors),
            self.policy_cache_ttl_s,
            answer_model=ReturnPolicy,
        )

    async def analyze_return_eligibility(self, purchase: Dict[str, Any], policy_text: str) -> AgentResult:
        """Decide whether a purchase can still be returned under the given policy."""
        today = today_iso()
        prompt = f"""Analyze if this purchase is still eligible for return based on the policy.

Purchase Details:
- Merchant: {purchase.get('merchant')}
- Purchase Date: {purchase.get('purchase_date')}
- Today's Date: {today}
- Total Amount: ${purchase.get('total_amount')}
- Items: {json.dumps(purchase.get('items', []), default=str)}

Return Policy:
{policy_text}

Please provide:
1. Is the purchase still returnable?
2. How many days remain?
3. What is the exact deadline?
4. Are there any conditions that might affect eligibility?
5. Recommendations for the user

Return analysis in JSON format with fields:
{{
  "is_returnable": true/false,
  "days_remaining": number,
  "return_deadline": "YYYY-MM-DD",
  "reasoning": "Explanation",
  "conditions_met": ["Condition 1", "Condition 2"],
  "potential_issues": ["Issue 1"],
  "recommendations": ["Action 1", "Action 2"]
}}"""
        return await self.run(
            prompt,
            {"purchase": purchase, "policyText": policy_text, "today": today},
            answer_model=ReturnEligibility,
        )
