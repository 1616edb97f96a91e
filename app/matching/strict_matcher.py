from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from app.schemas.analysis import RequirementItem, SkillMatch

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_IMPORTANCE_RANK = {"required": 3, "preferred": 2, "bonus": 1}


def normalize_text(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip().lower()


@dataclass(frozen=True)
class SymbolExceptions:
    """Characters that disqualify a match for specific literal terms.

    ``after["c"] = "+#"`` means "c" followed by "+" or "#" is a different term.
    """

    after: Mapping[str, str] = field(default_factory=dict)
    before: Mapping[str, str] = field(default_factory=dict)
    single_letter_terms: frozenset[str] = frozenset()

    @classmethod
    def load(cls, path: str | Path | None = None) -> "SymbolExceptions":
        source = Path(path) if path else Path(__file__).with_name("symbol_exceptions.json")
        with source.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        return cls(
            after={normalize_text(key): "".join(chars) for key, chars in (raw.get("after") or {}).items()},
            before={normalize_text(key): "".join(chars) for key, chars in (raw.get("before") or {}).items()},
            single_letter_terms=frozenset(normalize_text(item) for item in raw.get("single_letter_terms") or []),
        )


class StrictMatcher:
    """Symbol-aware whole-term matcher used as ground truth for skill claims."""

    def __init__(self, exceptions: SymbolExceptions | None = None) -> None:
        self._exceptions = exceptions if exceptions is not None else SymbolExceptions.load()

    @property
    def exceptions(self) -> SymbolExceptions:
        return self._exceptions

    def _is_boundary(self, char: str, extra: str) -> bool:
        return not char.isalnum() and char not in extra

    def _occurrences(self, text: str, term: str) -> Iterable[int]:
        if not term or not text:
            return
        after_extra = self._exceptions.after.get(term, "")
        before_extra = self._exceptions.before.get(term, "")
        start = text.find(term)
        while start != -1:
            end = start + len(term)
            before_ok = start == 0 or self._is_boundary(text[start - 1], before_extra)
            after_ok = end == len(text) or self._is_boundary(text[end], after_extra)
            if before_ok and after_ok:
                yield start
            start = text.find(term, start + 1)

    def verify(self, source_text: str, term: str) -> bool:
        normalized_term = normalize_text(term)
        normalized_text = normalize_text(source_text)
        return next(iter(self._occurrences(normalized_text, normalized_term)), None) is not None

    def count_occurrences(self, source_text: str, term: str) -> int:
        normalized_term = normalize_text(term)
        normalized_text = normalize_text(source_text)
        return sum(1 for _ in self._occurrences(normalized_text, normalized_term))

    def reconcile(
        self,
        claims: Sequence[SkillMatch],
        source_text: str,
        variants: Mapping[str, Sequence[str]] | None = None,
    ) -> list[SkillMatch]:
        """Replace every claimed verdict with the deterministic one."""
        variants = variants or {}
        normalized_text = normalize_text(source_text)
        reconciled: list[SkillMatch] = []
        overridden = 0
        for claim in claims:
            candidates = [claim.skill, *variants.get(normalize_text(claim.skill), ())]
            verified_term: str | None = None
            match_type: str | None = None
            count = 0
            for index, candidate in enumerate(candidates):
                term = normalize_text(candidate)
                count = sum(1 for _ in self._occurrences(normalized_text, term))
                if count:
                    verified_term = candidate
                    match_type = "exact" if index == 0 else "variant_text"
                    break
            found = verified_term is not None
            if found != claim.found_in_resume:
                overridden += 1
            reconciled.append(
                claim.model_copy(
                    update={
                        "found_in_resume": found,
                        "resume_frequency": count if found else 0,
                        "matched_as": verified_term,
                        "match_type": match_type,
                    }
                )
            )
        if overridden:
            logger.info("match_claims_overridden total=%s overridden=%s", len(claims), overridden)
        return reconciled


def dedupe_requirements(
    items: Iterable[RequirementItem],
    *,
    single_letter_terms: Iterable[str] = ("c", "r"),
) -> list[RequirementItem]:
    """Merge requirements that share a normalized name; the stronger importance wins."""
    keep_short = {normalize_text(term) for term in single_letter_terms}
    merged: dict[str, RequirementItem] = {}
    for item in items:
        key = normalize_text(item.name)
        if len(key) < 2 and key not in keep_short:
            continue
        existing = merged.get(key)
        if existing is None:
            merged[key] = item
            continue
        importance = existing.importance
        if _IMPORTANCE_RANK[item.importance] > _IMPORTANCE_RANK[importance]:
            importance = item.importance
        merged[key] = existing.model_copy(
            update={
                "importance": importance,
                "frequency": max(existing.frequency, item.frequency),
                "variants": RequirementItem.model_validate(
                    {"name": existing.name, "variants": [*existing.variants, *item.variants]}
                ).variants,
            }
        )
    return list(merged.values())
