"""Business assistant routes: chat, owner administration and analytics."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from localhub.app.dependencies import (
    get_admin_service,
    get_agent_store,
    get_conversation_service,
)
from localhub.domain.schemas import (
    AgentAnalytics,
    AgentConfig,
    ChatRequest,
    RatingRequest,
    TurnResult,
)
from localhub.exceptions import AgentConfigValidationError, PersistenceError
from localhub.services.agent_admin_service import AgentAdminService
from localhub.services.agent_analytics import compute_agent_analytics
from localhub.services.agent_conversation_service import AgentConversationService
from localhub.services.agent_store import SqlAgentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agents", tags=["agents"])


@router.post("/{business_id}/chat", response_model=TurnResult)
async def chat(
    business_id: str,
    req: ChatRequest,
    service: AgentConversationService = Depends(get_conversation_service),
):
    try:
        return await service.handle_turn(
            business_id, req.message, req.session_id, user_id=req.user_id,
        )
    except PersistenceError as exc:
        logger.error("Chat turn for %s not recorded: %s", business_id, exc)
        raise HTTPException(
            status_code=503,
            detail="Your message could not be saved. Please send it again.",
        )


@router.get("/{business_id}/starters", response_model=list[str])
async def starters(
    business_id: str,
    admin: AgentAdminService = Depends(get_admin_service),
):
    return await admin.get_starters(business_id)


@router.get("/{business_id}/analytics", response_model=AgentAnalytics)
async def analytics(
    business_id: str,
    store: SqlAgentStore = Depends(get_agent_store),
):
    if await store.get(business_id) is None:
        raise HTTPException(status_code=404, detail="No assistant configured for this business")
    conversations = await store.list_conversations(business_id)
    return compute_agent_analytics(conversations)


@router.put("/{business_id}/config", response_model=AgentConfig)
async def update_config(
    business_id: str,
    partial: dict[str, Any] = Body(...),
    admin: AgentAdminService = Depends(get_admin_service),
):
    try:
        return await admin.update_config(business_id, partial)
    except AgentConfigValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.put("/{business_id}/knowledge/{kind}", response_model=AgentConfig)
async def update_knowledge(
    business_id: str,
    kind: str,
    data: Any = Body(...),
    admin: AgentAdminService = Depends(get_admin_service),
):
    try:
        return await admin.update_knowledge_base(business_id, kind, data)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid {kind}: {exc.error_count()} error(s)")
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/conversations/{conversation_id}/rating")
async def rate_conversation(
    conversation_id: str,
    req: RatingRequest,
    admin: AgentAdminService = Depends(get_admin_service),
):
    if not await admin.rate_conversation(conversation_id, req.rating, req.resolved):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"ok": True}
