"""
Configuration management for the Arvalo agent core
Environment-based configuration loaded once at startup
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from arvalo.agent.types import RetryPolicy


class Settings(BaseSettings):
    """Application settings from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False

    # Provider Configuration
    agent_provider: str = "anthropic"
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-3-haiku-20240307"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4.1-mini"

    # Agent loop defaults
    agent_max_iterations: int = 10
    agent_temperature: float = 0.7
    agent_max_tokens: int = 4096
    agent_timeout_s: Optional[float] = 120.0

    # Model call retry policy
    model_max_retries: int = 2
    model_retry_base_delay_s: float = 1.0
    model_retry_max_delay_s: float = 8.0
    model_call_timeout_s: Optional[float] = 60.0

    # Cost estimation (blended rate, USD per token)
    cost_per_token: float = 0.000009

    # Monitor / cache
    monitor_max_metrics: int = 1000
    cache_default_ttl_s: float = 3600.0
    policy_cache_ttl_s: float = 86400.0
    cache_cleanup_interval_s: float = 300.0

    # Tool collaborators
    http_timeout_s: float = 15.0
    web_search_url: str = "https://api.duckduckgo.com/"
    scrape_max_length: int = 50_000

    def build_retry_policy(self) -> RetryPolicy:
        """Build the model-call retry policy from settings."""
        return RetryPolicy(
            max_retries=self.model_max_retries,
            base_delay_s=self.model_retry_base_delay_s,
            max_delay_s=self.model_retry_max_delay_s,
            timeout_s=self.model_call_timeout_s or None,
        )


# Global settings instance
settings = Settings()
