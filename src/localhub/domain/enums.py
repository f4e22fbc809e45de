"""Domain enumerations for the LocalHub assistant core.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum, IntEnum


class DateRange(str, Enum):
    """Calendar window a search is restricted to."""

    TODAY = "today"
    THIS_WEEKEND = "this_weekend"
    NEXT_WEEK = "next_week"
    NONE = "none"


class PriceRange(str, Enum):
    """Price tier a search is restricted to."""

    FREE = "free"
    BUDGET = "budget"
    NONE = "none"


class EventCategory(str, Enum):
    """Event category labels offered to the query interpreter."""

    FAMILY_KIDS = "Family & Kids"
    SPORTS_RECREATION = "Sports & Recreation"
    ARTS_CULTURE = "Arts & Culture"
    MUSIC_CONCERTS = "Music & Concerts"
    FOOD_DINING = "Food & Dining"
    COMMUNITY = "Community"
    EDUCATION = "Education"
    BUSINESS_NETWORKING = "Business & Networking"
    HEALTH_WELLNESS = "Health & Wellness"
    SEASONAL_HOLIDAY = "Seasonal & Holiday"
    OTHER = "Other"


class Personality(str, Enum):
    """Tone a business assistant speaks in."""

    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    CASUAL = "casual"


class ConversationRole(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


class KnowledgeType(str, Enum):
    """Updatable sections of an agent knowledge base."""

    BUSINESS_INFO = "business_info"
    MENU_DATA = "menu_data"
    FAQ_DATA = "faq_data"
    POLICIES = "policies"


class AllowanceKind(str, Enum):
    """Whether a business agent's monthly allowance is metered."""

    METERED = "metered"
    UNLIMITED = "unlimited"


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


class ModerationAction(str, Enum):
    """Outcome of a moderation decision."""

    APPROVED = "approved"
    REJECTED = "rejected"
    MANUAL_REVIEW = "manual_review"


class ModerationStatus(str, Enum):
    """Moderation state stored on a piece of content."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MANUAL_REVIEW = "manual_review"


class FailureMode(str, Enum):
    """What the moderation gate decides when the classifier itself fails.

    OPEN approves (ephemeral chat turns), CLOSED holds for manual review
    (persisted or public content).
    """

    OPEN = "open"
    CLOSED = "closed"


class ModerationCategory(str, Enum):
    """Text moderation taxonomy."""

    SEXUAL = "sexual"
    SEXUAL_MINORS = "sexual/minors"
    HATE = "hate"
    HATE_THREATENING = "hate/threatening"
    SELF_HARM = "self-harm"
    SELF_HARM_INTENT = "self-harm/intent"
    SELF_HARM_INSTRUCTIONS = "self-harm/instructions"
    VIOLENCE = "violence"
    VIOLENCE_GRAPHIC = "violence/graphic"


class ImageDimension(str, Enum):
    """Safe-search dimensions reported by the image classifier."""

    ADULT = "adult"
    VIOLENCE = "violence"
    RACY = "racy"
    MEDICAL = "medical"
    SPOOF = "spoof"


class Likelihood(IntEnum):
    """Ordered likelihood scale used by the image classifier."""

    UNKNOWN = 0
    VERY_UNLIKELY = 1
    UNLIKELY = 2
    POSSIBLE = 3
    LIKELY = 4
    VERY_LIKELY = 5

    @classmethod
    def parse(cls, label: str | None) -> "Likelihood":
        """Map a classifier label like ``"VERY_LIKELY"`` onto the scale."""
        if not label:
            return cls.UNKNOWN
        try:
            return cls[label.strip().upper()]
        except KeyError:
            return cls.UNKNOWN
