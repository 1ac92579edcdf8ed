"""Budget model field definitions and boundary coercion.

Every persisted or submitted budget model passes through :func:`coerce_fields`
exactly once before it reaches the store or the cost engine.  Fields are
declared explicitly (name, camelCase alias, kind) instead of being guessed
from default values, so a string such as ``"35.00"`` coming back from the
database is turned into a number here and nowhere else.
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, fields as dataclass_fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

import pandas as pd

from .errors import ValidationError
from .weeks import to_utc

STRING = "string"
INTEGER = "integer"
NUMBER = "number"    # hours, stored as REAL
DECIMAL = "decimal"  # currency and percentages, stored with two decimals
DATE = "date"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    alias: str
    required: bool = False
    minimum: Optional[float] = None

    @property
    def default(self) -> Any:
        if self.kind == STRING:
            return ""
        if self.kind == DATE:
            return None
        if self.name == "number_of_teams":
            return 1
        return None


CONFIGURATION_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("discipline", STRING, "discipline", required=True),
    FieldSpec("level", STRING, "level", required=True),
    FieldSpec("category", STRING, "category", required=True),
    FieldSpec("gender", STRING, "gender"),
    FieldSpec("season_year", STRING, "seasonYear"),
    FieldSpec("head_coach_rate", DECIMAL, "headCoachRate", required=True, minimum=0),
    FieldSpec("assistant_coach_rate", DECIMAL, "assistantCoachRate", required=True, minimum=0),
    FieldSpec("employer_contribution_rate", DECIMAL, "employerContributionRate", required=True, minimum=0),
    FieldSpec("season_start_date", DATE, "seasonStartDate"),
    FieldSpec("season_end_date", DATE, "seasonEndDate"),
    FieldSpec("practices_per_week", INTEGER, "practicesPerWeek", required=True, minimum=0),
    FieldSpec("practice_duration", NUMBER, "practiceDuration", required=True, minimum=0),
    FieldSpec("num_games", INTEGER, "numGames", required=True, minimum=0),
    FieldSpec("game_duration", NUMBER, "gameDuration", required=True, minimum=0),
    FieldSpec("playoff_start_date", DATE, "playoffStartDate"),
    FieldSpec("playoff_end_date", DATE, "playoffEndDate"),
    FieldSpec("playoff_final_days", INTEGER, "playoffFinalDays", required=True, minimum=0),
    FieldSpec("playoff_finals_duration", NUMBER, "playoffFinalsDuration", required=True, minimum=0),
    FieldSpec("tournament_bonus", DECIMAL, "tournamentBonus", required=True, minimum=0),
    FieldSpec("federation_fee", DECIMAL, "federationFee", required=True, minimum=0),
    FieldSpec("transportation_fee", DECIMAL, "transportationFee", required=True, minimum=0),
)

MODEL_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("name", STRING, "name", required=True),
    FieldSpec("school_name", STRING, "schoolName"),
    FieldSpec("school_code", STRING, "schoolCode"),
    FieldSpec("number_of_teams", INTEGER, "numberOfTeams", minimum=1),
) + CONFIGURATION_FIELDS

FIELDS_BY_KEY: Dict[str, FieldSpec] = {}
for _spec in MODEL_FIELDS:
    FIELDS_BY_KEY[_spec.name] = _spec
    FIELDS_BY_KEY[_spec.alias] = _spec

# Parts of the generated model name, in order
NAME_PARTS = ("season_year", "school_name", "discipline", "gender", "category", "level")

# Dates arrive as ISO strings; words such as "now" or "today" are rejected
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")


def _coerce_string(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError("must be text")
    return value.strip()


def _coerce_number(value: Any, spec: FieldSpec) -> float:
    if isinstance(value, bool) or value is None:
        raise ValueError("must be a number")
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace("\u00a0", "").replace(" ", "")
        # Accept a decimal comma ("13,4") as typed in French forms
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"'{value}' is not a number") from None
    else:
        raise ValueError("must be a number")

    if not math.isfinite(number):
        raise ValueError("must be a finite number")
    if spec.minimum is not None and number < spec.minimum:
        raise ValueError(f"must be >= {spec.minimum:g}")
    if spec.kind == INTEGER:
        if not number.is_integer():
            raise ValueError("must be a whole number")
        return int(number)
    return number


def _coerce_date(value: Any) -> Optional[datetime]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, (date, datetime)):
        return to_utc(value)
    if not isinstance(value, str):
        raise ValueError("must be a date")
    if not ISO_DATE_PATTERN.match(value.strip()):
        raise ValueError(f"'{value}' is not an ISO date (YYYY-MM-DD)")
    ts = pd.to_datetime(value.strip(), utc=True, errors='coerce')
    if pd.isna(ts):
        raise ValueError(f"'{value}' is not a valid date")
    return ts.to_pydatetime()


def coerce_value(spec: FieldSpec, value: Any) -> Any:
    """Coerce a single raw value to the Python type of ``spec``.

    Raises:
        ValueError: If the value cannot be represented as the field's kind
    """
    if spec.kind == STRING:
        text = _coerce_string(value)
        if spec.required and not text:
            raise ValueError("is required")
        return text
    if spec.kind == DATE:
        return _coerce_date(value)
    return _coerce_number(value, spec)


def coerce_fields(
    raw: Mapping[str, Any],
    *,
    partial: bool = False,
    specs: Tuple[FieldSpec, ...] = MODEL_FIELDS,
) -> Dict[str, Any]:
    """Validate and coerce a raw budget model payload.

    Args:
        raw: Payload keyed by snake_case names or camelCase aliases
        partial: Validate only the supplied keys (updates) instead of
            requiring every mandatory field (creation)
        specs: Field definitions to validate against

    Returns:
        Dictionary keyed by snake_case field names with coerced values

    Raises:
        ValidationError: Listing every invalid, missing or unknown field
    """
    allowed = {spec.name for spec in specs}
    supplied: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    for key, value in raw.items():
        spec = FIELDS_BY_KEY.get(key)
        if spec is None or spec.name not in allowed:
            errors[key] = "unknown field"
            continue
        supplied[spec.name] = value

    result: Dict[str, Any] = {}
    for spec in specs:
        if spec.name in supplied:
            try:
                result[spec.name] = coerce_value(spec, supplied[spec.name])
            except ValueError as e:
                errors[spec.name] = str(e)
        elif not partial:
            if spec.required:
                errors[spec.name] = "is required"
            else:
                result[spec.name] = spec.default

    if errors:
        raise ValidationError(errors)
    return result


def serialize_value(spec: FieldSpec, value: Any) -> Any:
    """Storage representation: ISO strings for dates, two-decimal strings for decimals."""
    if value is None:
        return None
    if spec.kind == DATE:
        return to_utc(value).isoformat()
    if spec.kind == DECIMAL:
        return f"{float(value):.2f}"
    return value


def generate_model_name(values: Mapping[str, Any]) -> str:
    """Build the display name used to save a model, e.g. ``2025-2026 Handball Féminin D4 Tous``."""
    parts = [str(values.get(part) or "").strip() for part in NAME_PARTS]
    return " ".join(part for part in parts if part)


@dataclass(frozen=True)
class BudgetConfiguration:
    """Inputs of one team's budget calculation."""

    discipline: str = ""
    level: str = ""
    category: str = ""
    gender: str = ""
    season_year: str = ""
    head_coach_rate: float = 0.0
    assistant_coach_rate: float = 0.0
    employer_contribution_rate: float = 0.0
    season_start_date: Optional[datetime] = None
    season_end_date: Optional[datetime] = None
    practices_per_week: int = 0
    practice_duration: float = 0.0
    num_games: int = 0
    game_duration: float = 0.0
    playoff_start_date: Optional[datetime] = None
    playoff_end_date: Optional[datetime] = None
    playoff_final_days: int = 0
    playoff_finals_duration: float = 0.0
    tournament_bonus: float = 0.0
    federation_fee: float = 0.0
    transportation_fee: float = 0.0

    @classmethod
    def from_fields(cls, values: Mapping[str, Any]) -> "BudgetConfiguration":
        """Pick the configuration fields out of an already coerced mapping."""
        names = {f.name for f in dataclass_fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in names})

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "BudgetConfiguration":
        """Validate a raw payload (form values, JSON) into a configuration."""
        return cls.from_fields(coerce_fields(raw, specs=CONFIGURATION_FIELDS))

    def to_fields(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BudgetModel:
    """A saved budget configuration with its identity and audit timestamps."""

    id: str
    name: str
    configuration: BudgetConfiguration
    school_name: str = ""
    school_code: str = ""
    number_of_teams: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def discipline(self) -> str:
        return self.configuration.discipline

    @property
    def level(self) -> str:
        return self.configuration.level

    @classmethod
    def from_fields(
        cls,
        model_id: str,
        values: Mapping[str, Any],
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> "BudgetModel":
        return cls(
            id=model_id,
            name=values["name"],
            configuration=BudgetConfiguration.from_fields(values),
            school_name=values.get("school_name", ""),
            school_code=values.get("school_code", ""),
            number_of_teams=values.get("number_of_teams", 1),
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_fields(self) -> Dict[str, Any]:
        """Coerced model fields keyed by snake_case name, without identity or timestamps."""
        values = self.configuration.to_fields()
        values.update(
            name=self.name,
            school_name=self.school_name,
            school_code=self.school_code,
            number_of_teams=self.number_of_teams,
        )
        return {spec.name: values[spec.name] for spec in MODEL_FIELDS}

    def to_record(self, camel_case: bool = False) -> Dict[str, Any]:
        """Persisted record shape with serialized values.

        Args:
            camel_case: Key the record with the camelCase aliases used by
                older JSON exports instead of snake_case column names
        """
        values = self.to_fields()
        record: Dict[str, Any] = {"id": self.id}
        for spec in MODEL_FIELDS:
            key = spec.alias if camel_case else spec.name
            record[key] = serialize_value(spec, values[spec.name])
        record["createdAt" if camel_case else "created_at"] = (
            self.created_at.isoformat() if self.created_at else None
        )
        record["updatedAt" if camel_case else "updated_at"] = (
            self.updated_at.isoformat() if self.updated_at else None
        )
        return record
