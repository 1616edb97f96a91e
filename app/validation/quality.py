from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Generic, Sequence, TypeVar

from app.core.errors import QualityRejected
from app.schemas.analysis import RecruiterTip, ValidatedSuggestion

logger = logging.getLogger(__name__)

T = TypeVar("T", ValidatedSuggestion, RecruiterTip)

FORBIDDEN_PHRASES: tuple[str, ...] = (
    "studies show",
    "research indicates",
    "research shows",
    "statistics show",
    "data suggests",
    "recruiters prefer",
)
PLACEHOLDER_PHRASES: tuple[str, ...] = (
    "lorem ipsum",
    "example text",
    "placeholder",
    "insert here",
)

_AUDIENCE_STAT_RE = re.compile(
    r"\d+(?:\.\d+)?\s*%\s+of\s+(?:all\s+)?(?:recruiters|hiring managers|employers|companies)",
    re.IGNORECASE,
)
_TODO_RE = re.compile(r"\bTODO\b")
_PERCENT_RE = re.compile(r"\d+(?:\.\d+)?\s?%")
_PERFECT_VALUE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?<![\d.])100(?:\.0+)?\s?%"),
    re.compile(r"\$\s?1,000,000(?![\d,])"),
    re.compile(r"\$\s?1(?:\.0+)?\s?(?:m|mm|million)\b", re.IGNORECASE),
)
_SPACE_RE = re.compile(r"\s+")


def _compact(text: str) -> str:
    return _SPACE_RE.sub("", text).lower()


@dataclass
class QualityVerdict(Generic[T]):
    accepted: list[T] = field(default_factory=list)
    rejected: list[tuple[T, list[str]]] = field(default_factory=list)

    @property
    def all_rejected(self) -> bool:
        return not self.accepted and bool(self.rejected)


class QualityGate:
    """Heuristic filter for oracle-generated advice.

    Each check disqualifies an item on its own. The gate never rewrites an
    item; callers decide whether a partially accepted batch is usable.
    """

    def __init__(
        self,
        *,
        forbidden_phrases: Sequence[str] = FORBIDDEN_PHRASES,
        placeholder_phrases: Sequence[str] = PLACEHOLDER_PHRASES,
        max_percentages: int = 2,
        min_suggestion_chars: int = 10,
        min_recommendation_chars: int = 10,
    ) -> None:
        self._forbidden = tuple(phrase.lower() for phrase in forbidden_phrases)
        self._placeholders = tuple(phrase.lower() for phrase in placeholder_phrases)
        self._max_percentages = max_percentages
        self._min_suggestion_chars = min_suggestion_chars
        self._min_recommendation_chars = min_recommendation_chars

    @staticmethod
    def _texts(item: ValidatedSuggestion | RecruiterTip) -> list[str]:
        if isinstance(item, ValidatedSuggestion):
            return [item.suggested, item.reason]
        return [item.title, item.current, item.recommendation]

    def _length_reasons(self, item: ValidatedSuggestion | RecruiterTip) -> list[str]:
        if isinstance(item, ValidatedSuggestion):
            if item.type != "general" and len(item.suggested.strip()) < self._min_suggestion_chars:
                return ["too_short"]
            return []
        if len(item.recommendation.strip()) < self._min_recommendation_chars:
            return ["too_short"]
        return []

    def _ungrounded_perfect_values(self, text: str, grounding: str) -> bool:
        for pattern in _PERFECT_VALUE_RES:
            for match in pattern.finditer(text):
                if _compact(match.group(0)) not in grounding:
                    return True
        return False

    def rejection_reasons(self, item: ValidatedSuggestion | RecruiterTip, *, grounding_text: str = "") -> list[str]:
        reasons: list[str] = []
        texts = self._texts(item)
        joined = "\n".join(texts)
        lowered = joined.lower()

        if any(phrase in lowered for phrase in self._forbidden) or _AUDIENCE_STAT_RE.search(joined):
            reasons.append("unverifiable_claim")
        if any(phrase in lowered for phrase in self._placeholders) or _TODO_RE.search(joined):
            reasons.append("placeholder_text")
        if len({_compact(token) for token in _PERCENT_RE.findall(joined)}) > self._max_percentages:
            reasons.append("too_many_percentages")

        grounding = grounding_text
        if isinstance(item, ValidatedSuggestion):
            grounding = f"{grounding_text}\n{item.original}"
        if self._ungrounded_perfect_values(joined, _compact(grounding)):
            reasons.append("perfect_value")

        reasons.extend(self._length_reasons(item))
        return reasons

    def is_acceptable(self, item: ValidatedSuggestion | RecruiterTip, *, grounding_text: str = "") -> bool:
        return not self.rejection_reasons(item, grounding_text=grounding_text)

    def filter(self, items: Sequence[T], *, grounding_text: str = "") -> QualityVerdict[T]:
        verdict: QualityVerdict[T] = QualityVerdict()
        for item in items:
            reasons = self.rejection_reasons(item, grounding_text=grounding_text)
            if reasons:
                verdict.rejected.append((item, reasons))
            else:
                verdict.accepted.append(item)
        if verdict.rejected:
            logger.info(
                "quality_gate_filtered accepted=%s rejected=%s reasons=%s",
                len(verdict.accepted),
                len(verdict.rejected),
                sorted({reason for _, item_reasons in verdict.rejected for reason in item_reasons}),
            )
        return verdict

    def require_accepted(self, items: Sequence[T], *, grounding_text: str = "", stage: str | None = None) -> list[T]:
        verdict = self.filter(items, grounding_text=grounding_text)
        if not verdict.accepted:
            reasons = sorted({reason for _, item_reasons in verdict.rejected for reason in item_reasons})
            raise QualityRejected(
                f"All {len(verdict.rejected)} items were rejected by the quality gate",
                stage=stage,
                reasons=reasons,
            )
        return verdict.accepted
