"""LocalHub conversational assistant core.

Site-wide natural-language search and per-business AI assistants for a
local events and marketplace platform.
"""

__version__ = "0.1.0"
