"""Composition root: builds the provider, tools, agents and orchestrator once.

Nothing in the package holds module-level agent instances; the web app
(or a script, or a test) calls build_agent_suite() and keeps the result.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from arvalo.agent.engine import BaseAgent
from arvalo.agent.pricing import blended_pricing
from arvalo.agent.providers.base import LLMAdapter, create_provider_from_config, default_model_for
from arvalo.agents import (
    Orchestrator,
    PriceDetectiveAgent,
    ReceiptAgent,
    RecurrentOptimizerAgent,
    ReturnPolicyAgent,
    WarrantyAgent,
)
from arvalo.agents.orchestrator import PRICE_DETECTIVE, RECEIPT, RECURRENT_OPTIMIZER, RETURN_POLICY, WARRANTY
from arvalo.cache_store import AgentCache
from arvalo.config import Settings
from arvalo.observability import EventBus, ExecutionMonitor
from arvalo.tools import InMemoryPurchaseStore, PriceChecker, PurchaseStore, build_toolkit

logger = logging.getLogger(__name__)


@dataclass
class AgentSuite:
    agents: Dict[str, BaseAgent]
    orchestrator: Orchestrator
    monitor: ExecutionMonitor
    cache: AgentCache
    bus: EventBus
    store: PurchaseStore

    @property
    def receipt(self) -> ReceiptAgent:
        return self.agents[RECEIPT]

    @property
    def return_policy(self) -> ReturnPolicyAgent:
        return self.agents[RETURN_POLICY]

    @property
    def price_detective(self) -> PriceDetectiveAgent:
        return self.agents[PRICE_DETECTIVE]

    @property
    def recurrent_optimizer(self) -> RecurrentOptimizerAgent:
        return self.agents[RECURRENT_OPTIMIZER]

    @property
    def warranty(self) -> WarrantyAgent:
        return self.agents[WARRANTY]


def build_agent_suite(
    config: Optional[Settings] = None,
    *,
    provider: Optional[LLMAdapter] = None,
    store: Optional[PurchaseStore] = None,
    price_checker: Optional[PriceChecker] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AgentSuite:
    """Wire every agent against one provider, one toolkit and one event bus."""
    if config is None:
        from arvalo.config import settings as config

    if provider is None:
        provider = create_provider_from_config(config)
    if store is None:
        logger.warning("No purchase store configured; using an empty in-memory store")
        store = InMemoryPurchaseStore()

    toolkit = build_toolkit(
        store,
        price_checker,
        search_url=config.web_search_url,
        http_timeout_s=config.http_timeout_s,
        scrape_max_length=config.scrape_max_length,
        transport=transport,
    )
    bus = EventBus()
    monitor = ExecutionMonitor(max_metrics=config.monitor_max_metrics)
    monitor.attach(bus)
    cache = AgentCache(default_ttl_s=config.cache_default_ttl_s)

    common = dict(
        model=default_model_for(config, config.agent_provider),
        max_tokens=config.agent_max_tokens,
        retry_policy=config.build_retry_policy(),
        pricing=blended_pricing(config.cost_per_token),
        timeout_s=config.agent_timeout_s or None,
        bus=bus,
        cache=cache,
    )
    agents: Dict[str, BaseAgent] = {
        RECEIPT: ReceiptAgent(provider, toolkit, **common),
        RETURN_POLICY: ReturnPolicyAgent(provider, toolkit, policy_cache_ttl_s=config.policy_cache_ttl_s, **common),
        PRICE_DETECTIVE: PriceDetectiveAgent(provider, toolkit, **common),
        RECURRENT_OPTIMIZER: RecurrentOptimizerAgent(provider, toolkit, **common),
        WARRANTY: WarrantyAgent(provider, toolkit, **common),
    }
    logger.info("Built agent suite: %s", ", ".join(a.name for a in agents.values()))

    return AgentSuite(
        agents=agents,
        orchestrator=Orchestrator(agents),
        monitor=monitor,
        cache=cache,
        bus=bus,
        store=store,
    )
