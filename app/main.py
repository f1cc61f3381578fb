import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.dependencies import build_collaborators, build_routers
from app.logging_config import get_logger, setup_logging
from app.routers import bots

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="EasySystem Bridge",
    description="Webhook bots relaying dialog platform turns to EasySystem",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(bots.router)


def _is_monitor_enabled() -> bool:
    return not os.environ.get("PYTEST_CURRENT_TEST")


@app.on_event("startup")
async def start_bots() -> None:
    collaborators = build_collaborators(settings)
    app.state.collaborators = collaborators
    app.state.routers = build_routers(settings, collaborators)
    if _is_monitor_enabled():
        for turn_router in app.state.routers.values():
            turn_router.health.start()
    logger.info("Bots started", extra={"context": {"bots": sorted(app.state.routers)}})


@app.on_event("shutdown")
async def stop_bots() -> None:
    for name, turn_router in getattr(app.state, "routers", {}).items():
        try:
            await turn_router.cleanup()
        except Exception as exc:
            logger.error(f"Cleanup failed for {name}", extra={"context": {"error": str(exc)}})

    collaborators = getattr(app.state, "collaborators", None)
    if collaborators is not None:
        await collaborators.breaker.drain()
        await collaborators.http.aclose()
        if hasattr(collaborators.sdk, "aclose"):
            await collaborators.sdk.aclose()


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
