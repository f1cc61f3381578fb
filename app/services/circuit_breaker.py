"""Per-service circuit breakers for backend calls."""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from app.logging_config import get_logger

logger = get_logger("circuit_breaker")

SEND_SERVICE = "easysystem-send-api"
SAVE_SERVICE = "easysystem-save-api"
CONTEXT_SERVICE = "easysystem-context-api"


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker(Protocol):
    async def can_execute(self, service: str) -> bool: ...

    async def record_success(self, service: str, context: Optional[dict] = None) -> None: ...

    async def record_failure(
        self, service: str, context: Optional[dict] = None, error: Optional[BaseException] = None
    ) -> None: ...

    def states(self) -> dict[str, str]: ...

    async def drain(self) -> None: ...


@dataclass
class _Circuit:
    state: CircuitState = CircuitState.CLOSED
    failures: int = 0
    opened_until: float = 0.0
    last_error: Optional[str] = None
    trial_in_flight: bool = field(default=False)


class InMemoryCircuitBreaker:
    """Counts consecutive failures per service.

    Closed -> Open after ``failure_threshold`` consecutive failures. After
    ``open_seconds`` one trial call is let through (HalfOpen); its success
    closes the circuit, its failure reopens it.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        open_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        on_open: Optional[Callable[[str, Optional[str]], Awaitable[None]]] = None,
    ):
        self.failure_threshold = max(1, failure_threshold)
        self.open_seconds = open_seconds
        self._clock = clock
        self._on_open = on_open
        self._circuits: dict[str, _Circuit] = {}
        self._alerts: set[asyncio.Task] = set()

    def _circuit(self, service: str) -> _Circuit:
        circuit = self._circuits.get(service)
        if circuit is None:
            circuit = _Circuit()
            self._circuits[service] = circuit
        return circuit

    def state_of(self, service: str) -> CircuitState:
        circuit = self._circuit(service)
        if circuit.state == CircuitState.OPEN and self._clock() >= circuit.opened_until:
            circuit.state = CircuitState.HALF_OPEN
            circuit.trial_in_flight = False
        return circuit.state

    async def can_execute(self, service: str) -> bool:
        state = self.state_of(service)
        if state == CircuitState.CLOSED:
            return True
        if state == CircuitState.HALF_OPEN:
            circuit = self._circuit(service)
            if circuit.trial_in_flight:
                return False
            circuit.trial_in_flight = True
            return True
        return False

    async def record_success(self, service: str, context: Optional[dict] = None) -> None:
        circuit = self._circuit(service)
        if circuit.state != CircuitState.CLOSED:
            logger.info(f"Circuit {service} closed")
        circuit.state = CircuitState.CLOSED
        circuit.failures = 0
        circuit.last_error = None
        circuit.trial_in_flight = False

    async def record_failure(
        self, service: str, context: Optional[dict] = None, error: Optional[BaseException] = None
    ) -> None:
        circuit = self._circuit(service)
        circuit.failures += 1
        circuit.last_error = str(error) if error else None
        circuit.trial_in_flight = False

        reopen = circuit.state == CircuitState.HALF_OPEN
        if reopen or (circuit.state == CircuitState.CLOSED and circuit.failures >= self.failure_threshold):
            circuit.state = CircuitState.OPEN
            circuit.opened_until = self._clock() + self.open_seconds
            logger.warning(
                f"Circuit {service} opened",
                extra={"context": {"failures": circuit.failures, "last_error": circuit.last_error}},
            )
            if self._on_open is not None:
                # The alert runs off the turn's path.
                task = asyncio.create_task(self._on_open(service, circuit.last_error))
                self._alerts.add(task)
                task.add_done_callback(self._alerts.discard)

    def states(self) -> dict[str, str]:
        return {service: self.state_of(service).value for service in list(self._circuits)}

    async def drain(self) -> None:
        """Wait for scheduled open alerts, used on shutdown and in tests."""
        if self._alerts:
            await asyncio.gather(*list(self._alerts), return_exceptions=True)


class NoopCircuitBreaker:
    """Always lets calls through and records nothing."""

    async def can_execute(self, service: str) -> bool:
        return True

    async def record_success(self, service: str, context: Optional[dict] = None) -> None:
        return None

    async def record_failure(
        self, service: str, context: Optional[dict] = None, error: Optional[BaseException] = None
    ) -> None:
        return None

    def states(self) -> dict[str, str]:
        return {}

    async def drain(self) -> None:
        return None
