import asyncio
import time
from collections import Counter
from typing import Callable, Optional

from app.logging_config import get_logger
from app.services.circuit_breaker import CircuitBreaker, CircuitState
from app.services.session_manager import SessionManager

logger = get_logger("health_service")


class HealthMonitor:
    """Reports breaker states and turn counters, and runs session cleanup on a timer."""

    def __init__(
        self,
        instance_id: str,
        breaker: CircuitBreaker,
        sessions: SessionManager,
        cleanup_interval_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.instance_id = instance_id
        self.breaker = breaker
        self.sessions = sessions
        self.cleanup_interval_seconds = max(cleanup_interval_seconds, 0.1)
        self._clock = clock
        self._started_at = clock()
        self._turns: Counter = Counter()
        self._task: Optional[asyncio.Task] = None

    def record_turn(self, path: str, ok: bool = True) -> None:
        self._turns[path] += 1
        if not ok:
            self._turns[f"{path}_failed"] += 1

    def get_health_status(self) -> dict:
        circuits = self.breaker.states()
        degraded = any(state == CircuitState.OPEN.value for state in circuits.values())
        return {
            "status": "degraded" if degraded else "ok",
            "instance_id": self.instance_id,
            "uptime_seconds": round(self._clock() - self._started_at, 3),
            "circuits": circuits,
            "active_conversations": self.sessions.active_count(),
            "turns": dict(self._turns),
        }

    async def _cleanup_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.cleanup_interval_seconds)
                self.sessions.cleanup()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.error(
                    "Session cleanup failed",
                    extra={"context": {"instance_id": self.instance_id, "error": str(exc)}},
                )

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._cleanup_loop())
            logger.info(f"Health monitor started for {self.instance_id}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


class NoopHealthMonitor(HealthMonitor):
    """Counters and status only; no background loop."""

    def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None
