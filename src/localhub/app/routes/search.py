"""Site-wide search and description enhancement routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from localhub.agents.description_agent import DescriptionAgent
from localhub.app.dependencies import get_llm_client, get_search_orchestrator
from localhub.domain.ports import LLMClient
from localhub.domain.schemas import EnhanceRequest, SearchRequest, SearchResponse
from localhub.exceptions import LLMCallError
from localhub.services.search_orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


@router.post("", response_model=SearchResponse)
async def search(
    req: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
):
    """Free-text search over events and listings. Always answers 200."""
    return await orchestrator.search(req.query, user_id=req.user_id)


@router.post("/enhance")
async def enhance_description(
    req: EnhanceRequest,
    llm_client: LLMClient = Depends(get_llm_client),
):
    agent = DescriptionAgent(llm_client)
    try:
        text = await agent.enhance(req.text, req.kind)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except LLMCallError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return {"text": text}
