"""Prompts for the general site search agents."""

QUERY_PARSE_PROMPT = """Parse this query about events and items in {locale} and return a JSON object with:
- date_range: "today", "this_weekend", "next_week", or "none"
- categories: array of matching categories, chosen only from: {categories}
- keywords: array of lowercase search keywords (normalize plurals to singular)
- price_range: "free", "budget", or "none"

Query: "{query}"

Respond with only valid JSON."""

COMPOSE_SYSTEM_PROMPT = (
    "You are a friendly local guide for {locale}. "
    "Reply in two to four conversational sentences. "
    "Only mention the events and listings provided; never invent dates, prices or places. "
    "No markdown headings."
)

COMPOSE_PROMPT = """The user searched for: "{query}"

{results}

Write a brief, helpful reply summarizing what was found."""
