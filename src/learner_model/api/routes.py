"""REST API routes for user modeling."""

import functools
import json
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from learner_model.config import get_settings
from learner_model.engine import UserModelingEngine

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class TurnRequest(BaseModel):
    user_response: str = ""
    system_response: str = ""
    conversation_data: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


@functools.lru_cache
def get_engine() -> UserModelingEngine:
    """Get the process-wide engine singleton."""
    return UserModelingEngine(settings=get_settings())


@router.post("/users/{user_id}/turns")
def record_turn(user_id: str, turn: TurnRequest) -> dict:
    """Fold a conversational turn into the user's model."""
    outcome = get_engine().update_user_model(
        user_id,
        conversation_data=turn.conversation_data,
        user_response=turn.user_response,
        system_response=turn.system_response,
        metadata=turn.metadata,
    )
    if not outcome.success:
        logger.warning("turn_rejected", user_id=user_id, step=str(outcome.failed_step))
    return outcome.model_dump(mode="json", exclude_none=True)


@router.get("/users/{user_id}/recommendations")
def get_recommendations(
    user_id: str,
    current_topic: str | None = None,
    context: str | None = Query(default=None, description="JSON object, e.g. {\"goal\": ...}"),
) -> dict:
    caller_context: dict[str, Any] = {}
    if context:
        try:
            caller_context = json.loads(context)
        except json.JSONDecodeError as e:
            raise HTTPException(status_code=422, detail=f"Invalid context JSON: {e}") from e
        if not isinstance(caller_context, dict):
            raise HTTPException(status_code=422, detail="context must be a JSON object")
    result = get_engine().get_personalized_recommendations(
        user_id, current_topic=current_topic, context=caller_context
    )
    return result.model_dump(mode="json", exclude_none=True)


@router.get("/users/{user_id}/context")
def get_context(
    user_id: str,
    current_input: str = "",
    max_context: int = Query(default=5, ge=0, le=50),
) -> dict:
    """Cross-conversation context relevant to the current input."""
    result = get_engine().get_cross_conversation_context(
        user_id, current_input, max_context=max_context
    )
    return result.model_dump(mode="json", exclude_none=True)


@router.get("/users/{user_id}/profile")
def get_profile(user_id: str) -> dict:
    summary = get_engine().get_profile_summary(user_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="User not found")
    return summary.model_dump(mode="json")


@router.delete("/users/{user_id}")
def forget_user(user_id: str) -> dict:
    if not get_engine().forget_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"deleted": user_id}


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
