"""Configuration settings for the action."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the action."""

    # Every value is kept as the raw string found in the environment (or a .env file).
    # Interpretation happens in ``cortex_agent_action.core.inputs`` so that bad values
    # surface as a descriptive ConfigurationError rather than a settings crash.

    # Agent coordinates
    AGENT_DATABASE: str | None = None
    SNOWFLAKE_DATABASE: str | None = None
    AGENT_SCHEMA: str | None = None
    SNOWFLAKE_SCHEMA: str | None = None
    AGENT_NAME: str | None = None

    # Request
    AGENT_MESSAGES: str | None = None  # JSON array of messages
    AGENT_MESSAGE: str | None = None  # single plain-text prompt
    AGENT_THREAD_ID: str | None = None
    AGENT_PARENT_MESSAGE_ID: str | None = None
    AGENT_TOOL_CHOICE: str | None = None  # "auto", "required", ... or a JSON object

    # Persistence
    AGENT_PERSIST_RESULTS: str | None = None
    AGENT_PERSIST_DIR: str | None = None
    RUN_SQL_RESULT_DIR: str | None = None
    RUNNER_TEMP: str | None = None

    # Workflow runner signals
    GITHUB_OUTPUT: str | None = None
    GITHUB_ACTIONS: str | None = None

    # Agent service
    AGENT_RUNNER: str = "cortex"  # Options: cortex
    SNOWFLAKE_ACCOUNT_URL: str | None = None
    SNOWFLAKE_PAT: str | None = None
    SNOWFLAKE_TOKEN_TYPE: str = "PROGRAMMATIC_ACCESS_TOKEN"
    AGENT_HTTP_TIMEOUT: str | None = None  # seconds, default 600

    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"
        # Workflow runners export plenty of unrelated variables
        extra = "ignore"


settings = Settings()
