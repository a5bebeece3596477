# ABOUTME: Canonical competition schema, closed vocabularies, and validation helpers
# ABOUTME: Whole-object validation with a per-field fallback for partially valid extractions

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, TypeAdapter, ValidationError

CategoryName = Literal[
    "Akademik & Sains",
    "Teknologi & IT",
    "Seni & Kreatif",
    "Bisnis & Startup",
    "Olahraga & E-sports",
    "Sastra & Bahasa",
    "Sosial & Lingkungan",
    "Keagamaan",
    "Gaya Hidup & Hobi",
    "Lainnya",
]
LevelName = Literal["SD", "SMP", "SMA", "Mahasiswa", "Umum"]
FormatName = Literal["Online", "Offline", "Hybrid"]
ParticipationName = Literal["Individual", "Team"]

CATEGORIES: tuple[str, ...] = get_args(CategoryName)
LEVELS: tuple[str, ...] = get_args(LevelName)
FORMATS: tuple[str, ...] = get_args(FormatName)
PARTICIPATION_TYPES: tuple[str, ...] = get_args(ParticipationName)
OTHER_CATEGORY = "Lainnya"


class CompetitionExtraction(BaseModel):
    """Canonical shape of extracted competition metadata after normalization."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    organizer: list[str] | None = Field(default=None, min_length=1)
    category: list[CategoryName] | None = Field(default=None, min_length=1)
    level: list[LevelName] | None = Field(default=None, min_length=1)
    start_date: str | None = Field(default=None, description="YYYY-MM-DD when the provider gave a parseable date")
    end_date: str | None = Field(default=None, description="YYYY-MM-DD when the provider gave a parseable date")
    format: FormatName | None = None
    participation_type: list[ParticipationName] | None = Field(default=None, min_length=1)
    pricing: list[NonNegativeInt] | None = Field(default=None, min_length=1)
    url: str | None = Field(default=None, min_length=1)
    location: str | None = Field(default=None, min_length=1)
    contact: list[str | dict[str, str]] | None = Field(default=None, description="Optional contact metadata")


FIELD_NAMES: tuple[str, ...] = tuple(CompetitionExtraction.model_fields)

# One adapter per field so a field can be checked in isolation
FIELD_VALIDATORS: dict[str, TypeAdapter] = {
    name: TypeAdapter(CompetitionExtraction.model_fields[name].annotation) for name in FIELD_NAMES
}


def validate_extraction(data: dict[str, Any]) -> tuple[dict[str, Any] | None, list[str]]:
    """Validate a whole accumulator. Returns (clean data or None, error descriptions)."""
    try:
        model = CompetitionExtraction.model_validate(data)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        return None, errors
    return model.model_dump(exclude_none=True), []


def validate_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Keep only the fields that validate on their own, discarding the rest."""
    kept = {}
    for name, value in data.items():
        if value is None:
            continue
        if name not in FIELD_VALIDATORS:
            continue
        try:
            clean = FIELD_VALIDATORS[name].validate_python(value)
        except ValidationError:
            continue
        # Length constraints live on the model Field, not the bare annotation
        if clean is None or (isinstance(clean, (list, str)) and not clean):
            continue
        kept[name] = clean
    return kept


# JSON schema handed to the OCR provider's document annotation. Most fields accept
# a single value, an array of values, or null.
def _loose(item: dict[str, Any], description: str, allow_array: bool = True) -> dict[str, Any]:
    variants = [item]
    if allow_array:
        variants.append({"type": "array", "items": item})
    variants.append({"type": "null"})
    return {"anyOf": variants, "description": f"{description} Return null if not found."}


PROVIDER_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": _loose({"type": "string"}, "Name or title of the competition.", allow_array=False),
        "organizer": _loose({"type": "string"}, "Competition organizer (single or multiple)."),
        "categories": _loose(
            {"type": "string", "enum": list(CATEGORIES)}, f"Competition category: {', '.join(CATEGORIES)}."
        ),
        "level": _loose({"type": "string", "enum": list(LEVELS)}, "Participant level (SD, SMP, SMA, Mahasiswa, Umum)."),
        "startDate": _loose({"type": "string"}, "Registration start date, format YYYY-MM-DD."),
        "endDate": _loose({"type": "string"}, "Registration end date, format YYYY-MM-DD."),
        "format": _loose({"type": "string", "enum": list(FORMATS)}, "Competition format.", allow_array=False),
        "participationType": _loose({"type": "string", "enum": list(PARTICIPATION_TYPES)}, "Participation type."),
        "pricing": _loose({"anyOf": [{"type": "number"}, {"type": "string"}]}, "Registration fee in rupiah."),
        "contact": {
            "anyOf": [
                {"type": "array", "items": {"type": "object", "additionalProperties": {"type": "string"}}},
                {"type": "null"},
            ],
            "description": 'Contact list: array of {name: phone}, e.g. [{"Budi": "+628123456789"}]. '
            "Return null if not found.",
        },
        "url": _loose({"type": "string"}, "Registration URL link.", allow_array=False),
        "location": _loose({"type": "string"}, "Country or city (e.g., Indonesia, Malaysia).", allow_array=False),
    },
    "required": [],
    "additionalProperties": False,
}
