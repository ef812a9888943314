import os
from dataclasses import dataclass, field
from typing import List, Tuple

try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    # .env is optional
    pass


def _default_cors_origins() -> List[str]:
    value = os.getenv("CORS_ORIGINS")
    return value.split(",") if value else ["*"]


def _default_models() -> List[Tuple[str, str]]:
    openai_model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    return [
        ("claude-3-haiku-20240307", "Claude 3 Haiku"),
        ("claude-3-5-sonnet-20240620", "Claude 3.5 Sonnet"),
        (openai_model, openai_model),
    ]


@dataclass
class Settings:
    """Runtime configuration loaded from environment variables."""

    anthropic_api_key: str = os.getenv("ANTHROPIC_API_KEY", "")
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    default_model: str = os.getenv("DEFAULT_MODEL", "claude-3-5-sonnet-20240620")
    available_models: List[Tuple[str, str]] = field(default_factory=_default_models)
    max_tokens: int = int(os.getenv("MAX_TOKENS", "4096"))
    temperature: float = float(os.getenv("TEMPERATURE", "0.7"))
    cors_origins: List[str] = field(default_factory=_default_cors_origins)
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
    preview_rows: int = int(os.getenv("PREVIEW_ROWS", "5"))
    session_ttl_minutes: int = int(os.getenv("SESSION_TTL_MINUTES", "60"))


settings = Settings()
