"""Collaborator wiring: resolved once at startup from CollaboratorConfig."""

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request, status

from app.config import Settings
from app.logging_config import EventLogger
from app.services.alert_service import AlertService
from app.services.backend_client import BackendClient
from app.services.circuit_breaker import CircuitBreaker, InMemoryCircuitBreaker, NoopCircuitBreaker
from app.services.context_service import ContextSynchronizer
from app.services.dialog_sdk import CallbackDialogSDK, DialogSDK, ResponseDialogSDK
from app.services.health_service import HealthMonitor, NoopHealthMonitor
from app.services.http_client import DirectHttpClient, ResilientHttpClient
from app.services.profiles import PROFILES, BusinessUnitProfile
from app.services.session_manager import SessionManager
from app.services.transcript_service import TranscriptRecorder
from app.services.turn_router import TurnRouter


@dataclass
class Collaborators:
    http: DirectHttpClient
    breaker: CircuitBreaker
    sdk: DialogSDK
    alerts: AlertService


def build_collaborators(settings: Settings) -> Collaborators:
    config = settings.collaborators
    alerts = AlertService(settings.alert_bot_token, settings.alert_chat_id)

    if config.http_client == "resilient":
        http = ResilientHttpClient(
            timeout=settings.request_timeout_seconds,
            max_retries=settings.max_retries,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
        )
    else:
        http = DirectHttpClient(timeout=settings.request_timeout_seconds)

    if config.circuit_breaker == "memory":
        breaker = InMemoryCircuitBreaker(
            failure_threshold=settings.circuit_failure_threshold,
            open_seconds=settings.circuit_open_seconds,
            on_open=alerts.circuit_opened,
        )
    else:
        breaker = NoopCircuitBreaker()

    if config.dialog_sdk == "callback":
        if not settings.platform_callback_url:
            raise ValueError("dialog_sdk=callback requires platform_callback_url")
        sdk = CallbackDialogSDK(settings.platform_callback_url)
    else:
        sdk = ResponseDialogSDK()

    return Collaborators(http=http, breaker=breaker, sdk=sdk, alerts=alerts)


def build_router(profile: BusinessUnitProfile, settings: Settings, collaborators: Collaborators) -> TurnRouter:
    events = EventLogger(profile.bot_name.lower(), bot=profile.bot_name, instance_id=profile.instance_id)
    backend = BackendClient(collaborators.http, collaborators.breaker, events, timeout=settings.request_timeout_seconds)
    sessions = SessionManager(idle_seconds=settings.session_idle_seconds)

    monitor_class = HealthMonitor if settings.collaborators.health_monitor == "periodic" else NoopHealthMonitor
    health = monitor_class(
        profile.instance_id,
        collaborators.breaker,
        sessions,
        cleanup_interval_seconds=settings.health_cleanup_interval_seconds,
    )

    return TurnRouter(
        profile=profile,
        backend=backend,
        transcripts=TranscriptRecorder(backend, settings.easysystem_save_message_url, events),
        context_sync=ContextSynchronizer(backend, settings.easysystem_context_load_url, events),
        sdk=collaborators.sdk,
        events=events,
        health=health,
        sessions=sessions,
        send_url=settings.easysystem_send_message_url,
    )


def build_routers(settings: Settings, collaborators: Optional[Collaborators] = None) -> dict[str, TurnRouter]:
    collaborators = collaborators or build_collaborators(settings)
    return {name: build_router(profile, settings, collaborators) for name, profile in PROFILES.items()}


def get_turn_router(bot_name: str, request: Request) -> TurnRouter:
    routers: dict[str, TurnRouter] = getattr(request.app.state, "routers", {})
    router = routers.get(bot_name)
    if router is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown bot: {bot_name}")
    return router
