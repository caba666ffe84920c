"""Configuration management for the application."""
import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    """Application configuration class."""

    ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")  # development, production
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    ALLOWED_ORIGINS = os.environ.get("ALLOWED_ORIGINS", "*").split(",")

    # Database
    DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./permaculture.db")
    SEED_ON_STARTUP = _flag("SEED_ON_STARTUP", "true")

    # JWT Configuration
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))
    ADMIN_EMAILS = [
        e.strip().lower() for e in os.environ.get("ADMIN_EMAILS", "").split(",") if e.strip()
    ]

    # AI providers
    OPENROUTER_API_KEY = os.environ.get("OPENROUTER_API_KEY")
    OPENROUTER_BASE_URL = os.environ.get("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
    ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY")
    ANTHROPIC_FALLBACK_MODEL = os.environ.get("ANTHROPIC_FALLBACK_MODEL", "claude-3-5-haiku-latest")
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
    EMBEDDING_MODEL = os.environ.get("EMBEDDING_MODEL", "text-embedding-3-small")
    MAX_TOKENS = 2000
    TEMPERATURE = 0.7

    # Rate limiting for the AI assistant
    AI_RATE_LIMIT_REQUESTS = int(os.environ.get("AI_RATE_LIMIT_REQUESTS", "20"))
    AI_RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get("AI_RATE_LIMIT_WINDOW_SECONDS", "3600"))

    # Knowledge base
    KNOWLEDGE_FOLDER = os.environ.get("KNOWLEDGE_FOLDER", "data/knowledge")
    RAG_AUTO_SCAN = _flag("RAG_AUTO_SCAN")
    RAG_AUTO_PROCESS = _flag("RAG_AUTO_PROCESS")
    CHUNK_SIZE = 1000
    CHUNK_OVERLAP = 200
    MIN_CHUNK_SIZE = 100
    EMBEDDING_BATCH_SIZE = 100

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == "production"

    @classmethod
    def validate(cls):
        """Return a list of configuration warnings."""
        warnings = []
        if not cls.OPENROUTER_API_KEY and not cls.ANTHROPIC_API_KEY:
            warnings.append("No chat provider key set (OPENROUTER_API_KEY or ANTHROPIC_API_KEY)")
        if not cls.OPENAI_API_KEY:
            warnings.append("OPENAI_API_KEY is not set; knowledge base embeddings are disabled")
        if cls.is_production() and cls.JWT_SECRET_KEY == "dev-secret-change-me":
            warnings.append("JWT_SECRET_KEY is using the development default in production")
        return warnings
