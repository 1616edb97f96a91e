from .resume_text import (
    analyze_bullet,
    content_quality,
    degree_level,
    extract_candidate_facts,
    extract_contact,
    find_metrics,
    formatting_profile,
)

__all__ = [
    "analyze_bullet",
    "content_quality",
    "degree_level",
    "extract_candidate_facts",
    "extract_contact",
    "find_metrics",
    "formatting_profile",
]
