"""Configuration management for the AiCode assistant."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration loaded from environment variables."""

    # Model provider Configuration
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "openai").lower()

    @classmethod
    def get_openai_api_key(cls) -> str:
        """Get OpenAI API key from environment variables.

        Returns:
            OpenAI API key from environment or empty string if not set.
        """
        return os.getenv("OPENAI_API_KEY", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/v1")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()
    HTTPX_LOG_LEVEL: str = os.getenv("HTTPX_LOG_LEVEL", "WARNING").upper()

    # Application Settings
    SYSTEM_PROMPT_PATH: Path = Path(
        os.getenv("SYSTEM_PROMPT_PATH", "resources/system-prompt.txt")
    )

    # Chat Model Configuration
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-4.1-nano-2025-04-14")
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "1000"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
    NATIVE_TOOL_CALLING: bool = _env_flag("NATIVE_TOOL_CALLING", "true")

    # RAG Configuration
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "1000"))
    CHUNK_OVERLAP: int = int(os.getenv("CHUNK_OVERLAP", "200"))
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    DOCS_DIR: Path = Path(os.getenv("DOCS_DIR", "resources/docs"))
    RAG_MAX_RESULTS: int = int(os.getenv("RAG_MAX_RESULTS", "5"))
    RAG_MIN_SCORE: float = float(os.getenv("RAG_MIN_SCORE", "0.75"))

    # Vector Store Configuration
    VECTOR_BACKEND: str = os.getenv("VECTOR_BACKEND", "sqlite").lower()
    VECTOR_STORE_DB_PATH: Path = Path(
        os.getenv("VECTOR_STORE_DB_PATH", "data/vectors.db")
    )

    # Conversation memory and telemetry
    MEMORY_MAX_MESSAGES: int = int(os.getenv("MEMORY_MAX_MESSAGES", "10"))
    LISTENER_REQUEST_TTL_SECONDS: float = float(
        os.getenv("LISTENER_REQUEST_TTL_SECONDS", "600")
    )

    # Tool Configuration
    TOOL_TIMEOUT_SECONDS: float = float(os.getenv("TOOL_TIMEOUT_SECONDS", "5"))

    @classmethod
    def get_web_search_api_key(cls) -> str:
        """Get the web search API key from environment variables.

        Returns:
            Web search API key or empty string if not set.
        """
        return os.getenv("WEB_SEARCH_API_KEY", "")

    WEB_SEARCH_URL: str = os.getenv(
        "WEB_SEARCH_URL",
        "https://open.bigmodel.cn/api/paas/v4/chat/completions",
    )
    WEB_SEARCH_MODEL: str = os.getenv("WEB_SEARCH_MODEL", "glm-4")

    # HTTP server Configuration
    API_PREFIX: str = os.getenv("API_PREFIX", "/api")
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8081"))
    CORS_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8081/api")

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "AiCode/1.0")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values.

        Raises:
            ValueError: If the provider is unknown or OPENAI_API_KEY is missing
                for the openai provider.
        """
        if cls.LLM_PROVIDER not in {"openai", "ollama"}:
            msg = f"Unsupported LLM_PROVIDER: {cls.LLM_PROVIDER}"
            raise ValueError(msg)
        if cls.LLM_PROVIDER == "openai" and not cls.get_openai_api_key():
            msg = (
                "OPENAI_API_KEY is required. Please set it in .env file or environment."
            )
            raise ValueError(msg)

    @classmethod
    def setup_logging(cls) -> None:
        """Setup basic logging configuration.

        Configure logging once at application startup with:
        - Console output for all levels
        - Simple, readable format
        - Configurable level via environment variable
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        # Configure third-party library log levels via environment variables
        logging.getLogger("openai").setLevel(
            getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        )
        logging.getLogger("httpx").setLevel(
            getattr(logging, cls.HTTPX_LOG_LEVEL, logging.WARNING)
        )

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Build default headers for outbound API calls.

        Returns:
            Mapping of header names to values used on outbound HTTP requests.
        """
        headers: dict[str, str] = {}

        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT

        return headers


config = Config()
