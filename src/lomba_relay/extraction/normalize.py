# ABOUTME: Field normalization for loosely-typed AI provider output
# ABOUTME: Coerces strings/arrays/nested shapes onto the canonical vocabularies and value types

import re
from typing import Any

from lomba_relay.extraction.schema import CATEGORIES, FORMATS, LEVELS, OTHER_CATEGORY, PARTICIPATION_TYPES

# Ordered keyword tables: first matching entry wins (substring containment on lowercase text)
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Akademik & Sains", ("akademik", "sains", "olympiade", "olimpiade", "kti", "esai", "riset")),
    ("Teknologi & IT", ("teknologi", "it", "coding", "programming", "robotik", "ui", "ux")),
    ("Seni & Kreatif", ("seni", "kreatif", "desain", "fotografi", "musik", "tari")),
    ("Bisnis & Startup", ("bisnis", "startup", "business", "pitching")),
    ("Olahraga & E-sports", ("olahraga", "esport", "game", "mobile legend")),
    ("Sastra & Bahasa", ("sastra", "bahasa", "cerpen", "puisi")),
    ("Sosial & Lingkungan", ("sosial", "lingkungan")),
    ("Keagamaan", ("agama", "islam", "mtq")),
]

# "ma" (madrasah aliyah) would swallow "mahasiswa", so university keywords are checked first
LEVEL_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("SD", ("sd", "sekolah dasar")),
    ("SMP", ("smp", "mts", "m ts")),
    ("Mahasiswa", ("mahasiswa", "kuliah", "universitas")),
    ("Umum", ("umum", "public")),
    ("SMA", ("sma", "smk", "ma")),
]

FORMAT_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Online", ("online", "daring", "zoom", "gmeet")),
    ("Offline", ("offline", "luring", "tatap muka")),
    ("Hybrid", ("hybrid", "gabungan")),
]

PARTICIPATION_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Individual", ("individu", "individual", "personal")),
    ("Team", ("tim", "team", "kelompok", "group")),
]

TITLE_KEYS = ("title", "competitionName", "name")
URL_KEYS = ("url", "registrationUrl", "registration_url")
DMY_DATE = re.compile(r"(\d{1,2})[/-](\d{1,2})[/-](\d{4})")
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
NON_DIGITS = re.compile(r"[^\d]")


def _match_vocabulary(
    token: Any, vocabulary: tuple[str, ...], keywords: list[tuple[str, tuple[str, ...]]], fallback: str | None = None
) -> str | None:
    if not isinstance(token, str) or not token.strip():
        return None
    cleaned = token.strip()
    for value in vocabulary:
        if cleaned.lower() == value.lower():
            return value
    lower = cleaned.lower()
    for value, needles in keywords:
        if any(needle in lower for needle in needles):
            return value
    return fallback


def normalize_category(token: Any) -> str | None:
    """Map category text onto the vocabulary; unmatched text lands in the catch-all bucket."""
    if isinstance(token, dict):
        token = token.get("type")
    return _match_vocabulary(token, CATEGORIES, CATEGORY_KEYWORDS, fallback=OTHER_CATEGORY)


def normalize_level(token: Any) -> str | None:
    return _match_vocabulary(token, LEVELS, LEVEL_KEYWORDS)


def normalize_format(token: Any) -> str | None:
    return _match_vocabulary(token, FORMATS, FORMAT_KEYWORDS)


def normalize_participation(token: Any) -> str | None:
    return _match_vocabulary(token, PARTICIPATION_TYPES, PARTICIPATION_KEYWORDS)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _map_tokens(value: Any, mapper) -> list[str] | None:
    """Map each token, dropping unmatched ones and duplicates while keeping order."""
    result: list[str] = []
    for token in _as_list(value):
        mapped = mapper(token)
        if mapped and mapped not in result:
            result.append(mapped)
    return result or None


def parse_rupiah(value: Any) -> int | None:
    """Parse "Rp 50.000" style amounts by dropping every non-digit character."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if not isinstance(value, str):
        return None
    digits = NON_DIGITS.sub("", value)
    return int(digits) if digits else None


def normalize_pricing(value: Any) -> list[int] | None:
    """Normalize pricing to a list of integers; nothing parseable yields None, never []."""
    if isinstance(value, dict):
        value = value.get("amount")
    prices = []
    for item in _as_list(value):
        if isinstance(item, dict):
            item = item.get("amount")
        amount = parse_rupiah(item)
        if amount is not None:
            prices.append(amount)
    return prices or None


def normalize_date(value: Any) -> str | None:
    """ISO dates pass through, D/M/YYYY and D-M-YYYY are reordered, anything else is kept as-is."""
    if isinstance(value, list):
        value = value[0] if value else None
    if not isinstance(value, str) or not value.strip():
        return None
    cleaned = value.strip()
    if ISO_DATE.match(cleaned):
        return cleaned
    match = DMY_DATE.search(cleaned)
    if match:
        day, month, year = match.groups()
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return cleaned


def normalize_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def normalize_url(value: Any) -> str | None:
    """One registration URL; arrays contribute only their first element."""
    if isinstance(value, list):
        value = value[0] if value else None
    return normalize_text(value)


def normalize_organizer(value: Any) -> list[str] | None:
    organizers = [text for text in (normalize_text(item) for item in _as_list(value)) if text]
    return organizers or None


def normalize_contact(value: Any) -> list[str | dict[str, str]] | None:
    contacts: list[str | dict[str, str]] = []
    for item in _as_list(value):
        if isinstance(item, str) and item.strip():
            contacts.append(item.strip())
        elif isinstance(item, dict):
            entry = {str(k): v.strip() for k, v in item.items() if isinstance(v, str) and v.strip()}
            if entry:
                contacts.append(entry)
    return contacts or None


def _first_present(raw: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if raw.get(key) not in (None, "", []):
            return raw[key]
    return None


def normalize_payload(raw: Any) -> dict[str, Any]:
    """Normalize one provider payload into canonical field names, omitting empty fields.

    Accepts both the camelCase keys the providers are prompted with and
    snake_case variants.
    """
    if not isinstance(raw, dict):
        return {}

    title = None
    for key in TITLE_KEYS:
        title = normalize_text(raw.get(key))
        if title:
            break

    normalized = {
        "title": title,
        "organizer": normalize_organizer(raw.get("organizer")),
        "category": _map_tokens(_first_present(raw, ("categories", "category")), normalize_category),
        "level": _map_tokens(raw.get("level"), normalize_level),
        "start_date": normalize_date(_first_present(raw, ("startDate", "start_date"))),
        "end_date": normalize_date(_first_present(raw, ("endDate", "end_date"))),
        "format": normalize_format(raw.get("format")) if isinstance(raw.get("format"), str) else None,
        "participation_type": _map_tokens(
            _first_present(raw, ("participationType", "participation_type")), normalize_participation
        ),
        "pricing": normalize_pricing(raw.get("pricing")),
        "url": normalize_url(_first_present(raw, URL_KEYS)),
        "location": normalize_text(raw.get("location")),
        "contact": normalize_contact(raw.get("contact")),
    }
    return {key: value for key, value in normalized.items() if value is not None}
