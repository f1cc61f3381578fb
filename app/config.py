from typing import Literal, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class CollaboratorConfig(BaseModel):
    """Which collaborator implementations are real and which are no-op."""

    circuit_breaker: Literal["memory", "noop"] = "memory"
    http_client: Literal["resilient", "direct"] = "resilient"
    health_monitor: Literal["periodic", "noop"] = "periodic"
    dialog_sdk: Literal["response", "callback"] = "response"


class Settings(BaseSettings):
    easysystem_send_message_url: str = "http://localhost:8080/api/v1/messages/send"
    easysystem_save_message_url: str = "http://localhost:8080/api/v1/messages/save"
    easysystem_context_load_url: str = "http://localhost:8080/api/v1/context/load"

    request_timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 10.0

    circuit_failure_threshold: int = 5
    circuit_open_seconds: float = 30.0

    health_cleanup_interval_seconds: float = 1800.0
    session_idle_seconds: float = 1800.0

    platform_callback_url: Optional[str] = None
    alert_bot_token: Optional[str] = None
    alert_chat_id: Optional[str] = None

    log_level: str = "INFO"
    debug: bool = False

    collaborators: CollaboratorConfig = CollaboratorConfig()

    class Config:
        env_file = ".env"
        env_nested_delimiter = "__"
        extra = "ignore"


settings = Settings()
