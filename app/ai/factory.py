import logging

from app.ai.config import load_ai_config
from app.ai.providers.openai_provider import OpenAIProvider
from app.ai.types import OracleClient
from app.core.config import settings

logger = logging.getLogger(__name__)


def get_oracle_client() -> OracleClient | None:
    """Build the configured oracle, or None when analysis should run on rules only."""
    if not settings.oracle_enabled:
        return None

    cfg = load_ai_config()
    if cfg.provider != "openai":
        raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")

    if not cfg.has_credentials:
        logger.warning("oracle_not_configured provider=%s reason=missing_api_key", cfg.provider)
        return None

    return OpenAIProvider(
        model=cfg.model,
        api_key=cfg.api_key,
        base_url=cfg.base_url,
        timeout_s=settings.oracle_timeout_s,
        max_retries=cfg.max_retries,
        temperature=cfg.temperature,
        seed=cfg.seed,
        max_output_tokens=cfg.max_output_tokens,
    )
