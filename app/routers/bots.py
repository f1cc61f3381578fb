from typing import Awaitable, Callable

from fastapi import APIRouter, Depends

from app.dependencies import get_turn_router
from app.schemas.platform import (
    BotTurnResponse,
    PlatformPayload,
    apply_turn_to_payload,
    fallback_turn,
    turn_from_payload,
)
from app.schemas.turn import ConversationTurn
from app.services.result import Result
from app.services.turn_router import TurnRouter

router = APIRouter(prefix="/bots/{bot_name}")


async def _run(
    payload: PlatformPayload,
    turn_router: TurnRouter,
    handler: Callable[[ConversationTurn], Awaitable[Result[ConversationTurn]]],
) -> BotTurnResponse:
    body = payload.model_dump()
    try:
        turn = turn_from_payload(body)
    except ValueError as e:
        # Unreadable session: hand the conversation to an agent like any other handler failure.
        turn = fallback_turn(body)
        result = await turn_router.on_malformed_payload(turn, e)
    else:
        result = await handler(turn)
    turn = result.value if result.value is not None else turn
    return BotTurnResponse(
        success=result.ok,
        delivery=turn.delivery.value,
        error_code=result.error_code,
        data=apply_turn_to_payload(body, turn),
    )


@router.post("/user-message", response_model=BotTurnResponse)
async def user_message(payload: PlatformPayload, turn_router: TurnRouter = Depends(get_turn_router)):
    return await _run(payload, turn_router, turn_router.on_user_message)


@router.post("/bot-message", response_model=BotTurnResponse)
async def bot_message(payload: PlatformPayload, turn_router: TurnRouter = Depends(get_turn_router)):
    return await _run(payload, turn_router, turn_router.on_bot_message)


@router.post("/webhook/{component_name}", response_model=BotTurnResponse)
async def webhook(
    component_name: str, payload: PlatformPayload, turn_router: TurnRouter = Depends(get_turn_router)
):
    return await _run(payload, turn_router, lambda turn: turn_router.on_webhook(turn, component_name))


@router.post("/event", response_model=BotTurnResponse)
async def event(payload: PlatformPayload, turn_router: TurnRouter = Depends(get_turn_router)):
    return await _run(payload, turn_router, turn_router.on_event)


@router.post("/client-event", response_model=BotTurnResponse)
async def client_event(payload: PlatformPayload, turn_router: TurnRouter = Depends(get_turn_router)):
    return await _run(payload, turn_router, turn_router.on_client_event)


@router.get("/health")
async def health(turn_router: TurnRouter = Depends(get_turn_router)):
    return turn_router.get_health_status()
