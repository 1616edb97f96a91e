from app.matching.strict_matcher import StrictMatcher, SymbolExceptions, dedupe_requirements, normalize_text

__all__ = ["StrictMatcher", "SymbolExceptions", "dedupe_requirements", "normalize_text"]
