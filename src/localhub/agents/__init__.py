"""LLM-backed agents.

Agents:
1. QueryInterpreterAgent (free text -> FilterDescriptor, JSON mode)
2. ResponseComposerAgent (search results -> short summary)
3. BusinessAssistantAgent (one visitor turn for one business)
4. DescriptionAgent (owner description polishing)

AgentContextBuilder is deterministic; it assembles the business
assistant's system prompt from the agent's knowledge base.
"""

from .base import AgentResult, BaseAgent
from .business_assistant import BusinessAssistantAgent
from .context_builder import AgentContextBuilder, PromptSection
from .description_agent import DescriptionAgent
from .query_interpreter import QueryInterpreterAgent
from .response_composer import ResponseComposerAgent
