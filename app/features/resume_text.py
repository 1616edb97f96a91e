from __future__ import annotations

import math
import re
from datetime import date

from app.core.config.scoring import get_scoring_float
from app.matching.strict_matcher import StrictMatcher, normalize_text
from app.schemas.analysis import (
    BulletPoint,
    CandidateFacts,
    ContactInfo,
    ContentQuality,
    DegreeLevel,
    EducationEntry,
    ExperienceEntry,
    ExtractedSkill,
    FormattingProfile,
)

ACTION_VERBS: frozenset[str] = frozenset(
    {
        "achieved", "architected", "automated", "built", "coordinated", "created", "decreased",
        "delivered", "designed", "developed", "drove", "engineered", "established", "executed",
        "implemented", "improved", "increased", "launched", "led", "managed", "mentored",
        "migrated", "optimized", "owned", "reduced", "refactored", "scaled", "shipped",
        "spearheaded", "streamlined", "supported", "trained",
    }
)
WEAK_PHRASES: tuple[str, ...] = (
    "responsible for",
    "helped with",
    "assisted in",
    "worked on",
    "participated in",
    "involved in",
    "tasked with",
    "duties included",
)
CRITICAL_SECTIONS: tuple[str, ...] = ("experience", "education", "skills")
SECTION_KEYWORDS: tuple[str, ...] = (
    "experience",
    "education",
    "skills",
    "summary",
    "objective",
    "certifications",
    "projects",
)
DEGREE_RANK: dict[str, int] = {
    "high_school": 1,
    "associate": 2,
    "bachelor": 3,
    "master": 4,
    "phd": 5,
    "any": 0,
    "not_specified": 0,
}

_BULLET_CHARS = "•◦▪▫●○■□◆◇▶►-–—*·"
_BULLET_PATTERN = re.compile(rf"^\s*(?:[{re.escape(_BULLET_CHARS)}]|(?:\d+[\.\)]))\s+")
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_PHONE_RE = re.compile(r"(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
_LINKEDIN_RE = re.compile(r"(?:https?://)?(?:[a-z]{2,3}\.)?linkedin\.com/in/[\w\-%]+/?", re.IGNORECASE)
_GITHUB_RE = re.compile(r"(?:https?://)?(?:www\.)?github\.com/[\w\-]+/?", re.IGNORECASE)
_URL_RE = re.compile(r"(?:https?://|www\.)[^\s,;|]+", re.IGNORECASE)
_METRIC_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\d+(?:\.\d+)?\s?%"),
    re.compile(r"[$€£]\s?\d[\d,.]*\s?(?:k|m|b|million|billion)?\b", re.IGNORECASE),
    re.compile(r"\b\d+(?:\.\d+)?x\b", re.IGNORECASE),
    re.compile(
        r"\b\d[\d,]*\+?\s+(?:users|customers|clients|engineers|developers|people|members|projects|countries|"
        r"teams|servers|services|requests|transactions|hours|days|weeks|months|stores|markets)\b",
        re.IGNORECASE,
    ),
)
_YEAR_RANGE_RE = re.compile(
    r"(?P<start>(?:19|20)\d{2})\s*(?:-|–|—|to)\s*(?P<end>(?:19|20)\d{2}|present|current|now|today)",
    re.IGNORECASE,
)
_YEARS_STATED_RE = re.compile(r"(\d{1,2})\+?\s+years?(?:\s+of)?\s+(?:professional\s+)?experience", re.IGNORECASE)
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_SKILL_SPLIT_RE = re.compile(r"[,;|•·]")
_DEGREE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("phd", re.compile(r"\bph\.?\s?d\b|\bdoctorate\b|\bdoctor of\b", re.IGNORECASE)),
    ("master", re.compile(r"\bmaster|\bm\.sc\b|\bmsc\b|\bmba\b|\bm\.eng\b|\bmeng\b|\bm\.s\.", re.IGNORECASE)),
    (
        "bachelor",
        re.compile(
            r"\bbachelor|\bb\.sc\b|\bbsc\b|\bb\.s\.|\bb\.a\.|\bb\.eng\b|\bbeng\b|\bb\.tech\b|\bbtech\b",
            re.IGNORECASE,
        ),
    ),
    ("associate", re.compile(r"\bassociate'?s?\s+(?:degree|of)\b|\ba\.a\.s?\b", re.IGNORECASE)),
    ("high_school", re.compile(r"\bhigh school\b|\bsecondary school\b|\bged\b", re.IGNORECASE)),
)
_INSTITUTION_RE = re.compile(r"universit|college|institute|school|academy|hochschule", re.IGNORECASE)
_SECTION_ALIASES: dict[str, tuple[str, ...]] = {
    "summary": ("summary", "professional summary", "profile", "objective", "about me"),
    "experience": (
        "experience",
        "work experience",
        "professional experience",
        "employment history",
        "work history",
        "employment",
    ),
    "education": ("education", "academic background", "education and training"),
    "skills": ("skills", "technical skills", "core competencies", "technologies", "key skills", "tools"),
    "certifications": ("certifications", "certificates", "licenses", "licenses and certifications"),
    "projects": ("projects", "selected projects", "personal projects"),
}


def normalize_line(line: str) -> str:
    return re.sub(r"\s+", " ", line).strip()


def is_bullet_like(line: str) -> bool:
    return bool(_BULLET_PATTERN.match(line))


def strip_bullet_prefix(line: str) -> str:
    return _BULLET_PATTERN.sub("", line).strip()


def section_for_heading(line: str) -> str | None:
    stripped = normalize_line(line).rstrip(":").strip().lower()
    if not stripped or len(stripped) > 40:
        return None
    for section, aliases in _SECTION_ALIASES.items():
        if stripped in aliases:
            return section
    return None


def degree_level(text: str | None) -> DegreeLevel:
    if not text:
        return "not_specified"
    for level, pattern in _DEGREE_PATTERNS:
        if pattern.search(text):
            return level  # type: ignore[return-value]
    lowered = text.strip().lower()
    if lowered in DEGREE_RANK:
        return lowered  # type: ignore[return-value]
    return "not_specified"


def find_metrics(text: str) -> list[str]:
    found: list[str] = []
    for pattern in _METRIC_RES:
        for match in pattern.finditer(text):
            value = match.group(0).strip()
            if value and value not in found:
                found.append(value)
    return found


def analyze_bullet(text: str) -> BulletPoint:
    clean = strip_bullet_prefix(normalize_line(text))
    words = clean.split()
    first_word = re.sub(r"[^a-z]", "", words[0].lower()) if words else ""
    has_action_verb = first_word in ACTION_VERBS
    lowered = clean.lower()
    weak = [phrase for phrase in WEAK_PHRASES if phrase in lowered]
    metrics = find_metrics(clean)

    score = 40
    if has_action_verb:
        score += 25
    if metrics:
        score += 25
    if weak:
        score -= 20
    if 8 <= len(words) <= 35:
        score += 10
    return BulletPoint(
        text=clean,
        has_action_verb=has_action_verb,
        action_verb=words[0].strip(",.;:") if has_action_verb else None,
        has_metric=bool(metrics),
        metrics=metrics,
        has_weak_phrase=bool(weak),
        weak_phrases=weak,
        score=max(0, min(100, score)),
    )


def _split_sections(lines: list[str]) -> list[tuple[str | None, str]]:
    tagged: list[tuple[str | None, str]] = []
    current: str | None = None
    for raw in lines:
        line = normalize_line(raw)
        if not line:
            continue
        section = section_for_heading(line)
        if section is not None:
            current = section
            continue
        tagged.append((current, raw))
    return tagged


def _starts_with_action_verb(line: str) -> bool:
    words = strip_bullet_prefix(line).split()
    return bool(words) and re.sub(r"[^a-z]", "", words[0].lower()) in ACTION_VERBS


def _year_span(match: re.Match[str], current_year: int) -> tuple[int, int]:
    start = int(match.group("start"))
    end_raw = match.group("end").lower()
    end = current_year if not end_raw.isdigit() else int(end_raw)
    return start, max(start, end)


def _merged_years(spans: list[tuple[int, int]]) -> float:
    total = 0
    last_end: int | None = None
    for start, end in sorted(spans):
        if last_end is not None and start < last_end:
            start = last_end
        if end > start:
            total += end - start
        last_end = end if last_end is None else max(last_end, end)
    return float(total)


def _experience_header(line: str, match: re.Match[str]) -> tuple[str, str]:
    header = normalize_line(line[: match.start()] + " " + line[match.end() :]).strip(" -–—|,()")
    for separator in (" at ", " @ ", " | ", " - ", " – ", ", "):
        if separator in header:
            title, org = header.split(separator, 1)
            return title.strip(" -–—|,"), org.strip(" -–—|,")
    return header, ""


def _education_entry(line: str) -> EducationEntry | None:
    text = strip_bullet_prefix(normalize_line(line))
    level = degree_level(text)
    if level == "not_specified":
        return None
    parts = [part.strip() for part in re.split(r",|\||–|—| - ", text) if part.strip()]
    degree = parts[0] if parts else text
    field_match = re.search(r"\bin\s+([A-Z][\w&/ ]+)", degree) or re.search(r"\bof\s+([A-Z][\w&/ ]+)", degree)
    institution = next((part for part in parts[1:] if _INSTITUTION_RE.search(part)), "")
    years = _YEAR_RE.findall(text)
    return EducationEntry(
        degree=degree,
        field=field_match.group(1).strip() if field_match else "",
        institution=institution,
        graduation_date=years[-1] if years else None,
    )


def extract_contact(resume_text: str) -> ContactInfo:
    email = _EMAIL_RE.search(resume_text)
    phone = _PHONE_RE.search(resume_text)
    linkedin = _LINKEDIN_RE.search(resume_text)
    github = _GITHUB_RE.search(resume_text)
    portfolio = None
    for match in _URL_RE.finditer(resume_text):
        url = match.group(0).rstrip(".)")
        if "linkedin.com" in url.lower() or "github.com" in url.lower():
            continue
        portfolio = url
        break
    return ContactInfo(
        email=email.group(0) if email else None,
        phone=phone.group(0).strip() if phone else None,
        linkedin=linkedin.group(0) if linkedin else None,
        github=github.group(0) if github else None,
        portfolio=portfolio,
    )


def extract_candidate_facts(
    resume_text: str,
    *,
    matcher: StrictMatcher | None = None,
    current_year: int | None = None,
) -> CandidateFacts:
    """Rule-based candidate extraction used when the oracle stage is unavailable."""
    matcher = matcher or StrictMatcher()
    year = current_year or date.today().year
    tagged = _split_sections(resume_text.splitlines())

    summary_lines: list[str] = []
    skill_names: list[str] = []
    certifications: list[str] = []
    education: list[EducationEntry] = []
    entries: list[ExperienceEntry] = []
    spans: list[tuple[int, int]] = []
    loose_bullets: list[BulletPoint] = []
    seen_bullets: set[str] = set()

    for section, raw in tagged:
        line = normalize_line(raw)
        if section == "summary":
            summary_lines.append(line)
            continue
        if section == "skills":
            body = line.split(":", 1)[1] if ":" in line and len(line.split(":", 1)[0]) <= 30 else line
            for piece in _SKILL_SPLIT_RE.split(strip_bullet_prefix(body)):
                name = normalize_line(piece).strip(".")
                if 1 <= len(name) <= 60:
                    skill_names.append(name)
            continue
        if section == "certifications":
            certifications.append(strip_bullet_prefix(line))
            continue
        if section == "education":
            entry = _education_entry(line)
            if entry is not None:
                education.append(entry)
            continue

        in_experience = section == "experience"
        range_match = _YEAR_RANGE_RE.search(line)
        if in_experience and range_match and not is_bullet_like(raw):
            title, org = _experience_header(line, range_match)
            start, end = _year_span(range_match, year)
            spans.append((start, end))
            end_raw = range_match.group("end")
            entries.append(
                ExperienceEntry(
                    title=title,
                    org=org,
                    start_date=range_match.group("start"),
                    end_date=end_raw if end_raw.isdigit() else "Present",
                    is_current=not end_raw.isdigit(),
                )
            )
            continue

        if is_bullet_like(raw) or (in_experience and _starts_with_action_verb(line) and len(line.split()) >= 4):
            bullet = analyze_bullet(line)
            key = bullet.text.lower()
            if len(bullet.text.split()) < 3 or key in seen_bullets:
                continue
            seen_bullets.add(key)
            if in_experience and entries:
                entries[-1].bullet_points.append(bullet)
            else:
                loose_bullets.append(bullet)

    if loose_bullets:
        entries.append(ExperienceEntry(bullet_points=loose_bullets))

    stated = [int(value) for value in _YEARS_STATED_RE.findall(resume_text)]
    total_years = max([_merged_years(spans), *map(float, stated)], default=0.0)

    skills: list[ExtractedSkill] = []
    seen_skills: set[str] = set()
    for name in skill_names:
        key = normalize_text(name)
        if key in seen_skills:
            continue
        seen_skills.add(key)
        skills.append(ExtractedSkill(name=name, frequency=max(1, matcher.count_occurrences(resume_text, name))))

    summary = " ".join(summary_lines)[:600] or None
    return CandidateFacts(
        contact=extract_contact(resume_text),
        summary=summary,
        experience=entries,
        education=education,
        skills=skills,
        certifications=certifications,
        total_years_experience=min(70.0, total_years),
    )


def content_quality(candidate: CandidateFacts, resume_text: str) -> ContentQuality:
    bullets = candidate.bullet_points()
    scores = [bullet.score for bullet in bullets]
    return ContentQuality(
        total_bullets=len(bullets),
        action_verb_count=sum(1 for bullet in bullets if bullet.has_action_verb),
        bullets_with_metrics=sum(1 for bullet in bullets if bullet.has_metric),
        bullets_with_weak_phrases=sum(1 for bullet in bullets if bullet.has_weak_phrase),
        average_bullet_score=round(sum(scores) / len(scores)) if scores else 0,
        word_count=len(resume_text.split()),
        unique_skills_count=len({normalize_text(skill.name) for skill in candidate.skills}),
    )


def formatting_profile(resume_text: str) -> FormattingProfile:
    lowered = resume_text.lower()
    words = len(resume_text.split())
    words_per_page = get_scoring_float("formatting.words_per_page", 500)
    short_chars = get_scoring_float("formatting.short_line_chars", 15)
    short_ratio = get_scoring_float("formatting.short_line_ratio", 0.40)
    unreadable_below = get_scoring_float("formatting.unreadable_below_chars", 200)

    lines = resume_text.split("\n")
    short_lines = [line for line in lines if line.strip() and len(line.strip()) < short_chars]
    has_email = bool(_EMAIL_RE.search(resume_text))
    has_phone = bool(_PHONE_RE.search(resume_text))
    detected = [keyword for keyword in SECTION_KEYWORDS if keyword in lowered]
    return FormattingProfile(
        has_email=has_email,
        has_phone=has_phone,
        has_linkedin=bool(_LINKEDIN_RE.search(resume_text)),
        has_contact_info=has_email or has_phone,
        sections_detected=detected,
        missing_sections=[section for section in CRITICAL_SECTIONS if section not in detected],
        has_tables_or_columns=len(short_lines) > len(lines) * short_ratio,
        estimated_pages=max(1, math.ceil(words / words_per_page)),
        looks_unreadable=len(resume_text.strip()) < unreadable_below,
    )
