import os
from dataclasses import dataclass


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str
    api_key: str
    base_url: str | None
    max_retries: int
    temperature: float
    seed: int | None
    max_output_tokens: int

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key) and not _looks_like_placeholder(self.api_key)


def load_ai_config() -> AIConfig:
    seed_raw = (os.getenv("ORACLE_SEED") or "43").strip()
    return AIConfig(
        provider=os.getenv("AI_PROVIDER", "openai").strip().lower(),
        model=(os.getenv("AI_MODEL") or os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip(),
        api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
        base_url=(os.getenv("OPENAI_BASE_URL") or "").strip() or None,
        max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "2")),
        temperature=float(os.getenv("ORACLE_TEMPERATURE", "0")),
        seed=int(seed_raw) if seed_raw.lstrip("-").isdigit() else None,
        max_output_tokens=int(os.getenv("ORACLE_MAX_OUTPUT_TOKENS", "4000")),
    )
