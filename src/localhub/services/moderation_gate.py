"""Moderation Gate — approve / reject / hold-for-review decisions.

Text rule, in order:

1. Any category score strictly above its reject threshold -> REJECTED.
2. Otherwise, the classifier's general ``flagged`` bit -> MANUAL_REVIEW.
3. Otherwise -> APPROVED.

When the classifier itself fails, the caller-supplied ``FailureMode``
decides: OPEN approves (chat turns), CLOSED holds for manual review
(anything persisted or shown publicly).

The thresholds are tuned for the OpenAI moderation taxonomy and the Google
Vision likelihood scale; re-tune them when swapping classifiers.
"""

from __future__ import annotations

import logging

from localhub.domain.enums import (
    FailureMode,
    ImageDimension,
    Likelihood,
    ModerationAction,
    ModerationCategory,
    ModerationStatus,
)
from localhub.domain.ports import ImageModerationClassifier, TextModerationClassifier
from localhub.domain.schemas import (
    ClassifierScores,
    ImageClassification,
    ImageModerationVerdict,
    ModerationVerdict,
)

logger = logging.getLogger(__name__)

REJECT_THRESHOLDS: dict[ModerationCategory, float] = {
    ModerationCategory.SEXUAL_MINORS: 0.5,
    ModerationCategory.HATE: 0.7,
    ModerationCategory.HATE_THREATENING: 0.5,
    ModerationCategory.SELF_HARM: 0.7,
    ModerationCategory.SELF_HARM_INTENT: 0.5,
    ModerationCategory.SELF_HARM_INSTRUCTIONS: 0.5,
    ModerationCategory.VIOLENCE: 0.8,
    ModerationCategory.VIOLENCE_GRAPHIC: 0.7,
}

IMAGE_REJECT_THRESHOLDS: dict[ImageDimension, Likelihood] = {
    ImageDimension.ADULT: Likelihood.LIKELY,
    ImageDimension.VIOLENCE: Likelihood.LIKELY,
    ImageDimension.RACY: Likelihood.VERY_LIKELY,
    ImageDimension.MEDICAL: Likelihood.LIKELY,
    ImageDimension.SPOOF: Likelihood.VERY_LIKELY,
}

IMAGE_REVIEW_THRESHOLDS: dict[ImageDimension, Likelihood] = {
    ImageDimension.ADULT: Likelihood.POSSIBLE,
    ImageDimension.VIOLENCE: Likelihood.POSSIBLE,
    ImageDimension.RACY: Likelihood.POSSIBLE,
}

PROBLEMATIC_LABELS = (
    "weapon", "gun", "knife", "drug", "alcohol", "tobacco",
    "gambling", "adult content", "explicit",
)

CATEGORY_LABELS: dict[ModerationCategory, str] = {
    ModerationCategory.SEXUAL: "Sexual Content",
    ModerationCategory.SEXUAL_MINORS: "Sexual Content Involving Minors",
    ModerationCategory.HATE: "Hate Speech",
    ModerationCategory.HATE_THREATENING: "Threatening Hate Speech",
    ModerationCategory.SELF_HARM: "Self-Harm",
    ModerationCategory.SELF_HARM_INTENT: "Self-Harm Intent",
    ModerationCategory.SELF_HARM_INSTRUCTIONS: "Self-Harm Instructions",
    ModerationCategory.VIOLENCE: "Violence",
    ModerationCategory.VIOLENCE_GRAPHIC: "Graphic Violence",
}

STATUS_LABELS: dict[ModerationStatus, str] = {
    ModerationStatus.PENDING: "Pending Review",
    ModerationStatus.APPROVED: "Approved",
    ModerationStatus.REJECTED: "Rejected",
    ModerationStatus.MANUAL_REVIEW: "Under Review",
}


def format_category(category: str) -> str:
    """Human-readable label for a moderation category."""
    try:
        return CATEGORY_LABELS[ModerationCategory(category)]
    except ValueError:
        return category


def format_status(status: str) -> str:
    try:
        return STATUS_LABELS[ModerationStatus(status)]
    except ValueError:
        return "Unknown"


def can_display(status: str) -> bool:
    return status == ModerationStatus.APPROVED.value


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

def _known_scores(raw: dict[str, float]) -> dict[ModerationCategory, float]:
    scores: dict[ModerationCategory, float] = {}
    for key, value in raw.items():
        try:
            scores[ModerationCategory(key)] = float(value)
        except ValueError:
            continue  # taxonomy additions we have no threshold for
    return scores


def evaluate_scores(
    result: ClassifierScores,
    thresholds: dict[ModerationCategory, float] = REJECT_THRESHOLDS,
) -> ModerationVerdict:
    """Apply the reject / review / approve rule to classifier output."""
    scores = _known_scores(result.category_scores)
    over = {
        category for category, threshold in thresholds.items()
        if scores.get(category, 0.0) > threshold
    }

    if over:
        action = ModerationAction.REJECTED
    elif result.flagged:
        action = ModerationAction.MANUAL_REVIEW
    else:
        action = ModerationAction.APPROVED

    return ModerationVerdict(
        approved=action == ModerationAction.APPROVED,
        action=action,
        flagged=result.flagged,
        flagged_categories=over,
        scores=scores,
    )


def classifier_failure_verdict(failure_mode: FailureMode, error: str) -> ModerationVerdict:
    if failure_mode == FailureMode.OPEN:
        return ModerationVerdict(approved=True, action=ModerationAction.APPROVED, error=error)
    return ModerationVerdict(
        approved=False, action=ModerationAction.MANUAL_REVIEW, flagged=True, error=error,
    )


class ModerationGate:
    """Classifies free text and decides what happens to it."""

    def __init__(
        self,
        classifier: TextModerationClassifier,
        thresholds: dict[ModerationCategory, float] | None = None,
    ):
        self.classifier = classifier
        self.thresholds = thresholds or REJECT_THRESHOLDS

    async def classify(self, text: str, failure_mode: FailureMode) -> ModerationVerdict:
        try:
            result = await self.classifier.classify(text)
        except Exception as exc:
            logger.warning(
                "Text classifier failed (failure_mode=%s): %s", failure_mode.value, exc,
            )
            return classifier_failure_verdict(failure_mode, str(exc))

        verdict = evaluate_scores(result, self.thresholds)
        if verdict.action != ModerationAction.APPROVED:
            logger.info(
                "Moderation %s: categories=%s flagged=%s",
                verdict.action.value,
                sorted(c.value for c in verdict.flagged_categories),
                verdict.flagged,
            )
        return verdict


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def _has_problematic_label(labels: list[str]) -> bool:
    lowered = [label.lower() for label in labels]
    return any(problem in label for label in lowered for problem in PROBLEMATIC_LABELS)


def evaluate_image(result: ImageClassification) -> ImageModerationVerdict:
    """Apply the likelihood thresholds and the label check."""
    def level(dim: ImageDimension) -> Likelihood:
        return result.safe_search.get(dim, Likelihood.UNKNOWN)

    if any(level(dim) >= threshold for dim, threshold in IMAGE_REJECT_THRESHOLDS.items()):
        action = ModerationAction.REJECTED
    elif any(level(dim) >= threshold for dim, threshold in IMAGE_REVIEW_THRESHOLDS.items()):
        action = ModerationAction.MANUAL_REVIEW
    elif _has_problematic_label(result.labels):
        action = ModerationAction.MANUAL_REVIEW
    else:
        action = ModerationAction.APPROVED

    return ImageModerationVerdict(
        approved=action == ModerationAction.APPROVED,
        action=action,
        safe_search=result.safe_search,
        labels=result.labels,
    )


class ImageModerationGate:
    """Classifies an uploaded image by URL."""

    def __init__(self, classifier: ImageModerationClassifier):
        self.classifier = classifier

    async def classify(
        self, image_url: str, failure_mode: FailureMode = FailureMode.CLOSED,
    ) -> ImageModerationVerdict:
        try:
            result = await self.classifier.classify(image_url)
        except Exception as exc:
            logger.warning(
                "Image classifier failed (failure_mode=%s): %s", failure_mode.value, exc,
            )
            if failure_mode == FailureMode.OPEN:
                return ImageModerationVerdict(approved=True, action=ModerationAction.APPROVED, error=str(exc))
            return ImageModerationVerdict(
                approved=False, action=ModerationAction.MANUAL_REVIEW, error=str(exc),
            )
        return evaluate_image(result)
