# school_app/core/identifiers.py
"""
Identifier formats for records that get a human readable number on creation.

    student      STU + yy(start of academic year) + 4 digits   STU250007
    admission    ADM + yy + MM + 4 digits                      ADM25060001
    fee_receipt  RCP + yyyy + 6 digits                         RCP2025000001
    employee     FAC + 3 digits                                FAC001

Widths are minimums: a sequence wider than the pad is kept whole.
Everything here is pure; the counter lives in ``school_app.core.sequences``.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from beanie import Document

from school_app.core.config import ACADEMIC_YEAR_START_MONTH
from school_app.core.sequences import (
    IdentifierLookup,
    ensure_seeded,
    identifier_lookup,
    next_sequence_value,
)

from loguru import logger

ACADEMIC_YEAR_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")
MONTH_SCOPE_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
YEAR_SCOPE_PATTERN = re.compile(r"^\d{4}$")


class EntityType(str, Enum):
    STUDENT = "student"
    ADMISSION = "admission"
    FEE_RECEIPT = "fee_receipt"
    EMPLOYEE = "employee"


# --- Scope parsing ---
def _academic_year_prefix(scope: Optional[str]) -> str:
    match = ACADEMIC_YEAR_PATTERN.match(scope or "")
    if not match:
        raise ValueError(f"Academic year must be in format YYYY-YYYY, got {scope!r}")
    start, end = int(match.group(1)), int(match.group(2))
    if end != start + 1:
        raise ValueError(f"Academic year must span consecutive years, got {scope!r}")
    return f"STU{match.group(1)[-2:]}"


def validate_academic_year(value: Optional[str]) -> Optional[str]:
    """Field validator form of the academic year check; None passes through."""
    if value is not None:
        _academic_year_prefix(value)
    return value


def _month_prefix(scope: Optional[str]) -> str:
    match = MONTH_SCOPE_PATTERN.match(scope or "")
    if not match:
        raise ValueError(f"Admission scope must be in format YYYY-MM, got {scope!r}")
    return f"ADM{match.group(1)[-2:]}{match.group(2)}"


def _year_prefix(scope: Optional[str]) -> str:
    if not YEAR_SCOPE_PATTERN.match(scope or ""):
        raise ValueError(f"Receipt scope must be a 4-digit year, got {scope!r}")
    return f"RCP{scope}"


def _no_scope_prefix(scope: Optional[str]) -> str:
    return "FAC"


@dataclass(frozen=True)
class IdentifierScheme:
    field: str # Document field that receives the identifier
    key_name: str # Counter key namespace
    width: int # Minimum digits of the sequence part
    prefix_for: Callable[[Optional[str]], str]
    scoped: bool = True

    def prefix(self, scope: Optional[str]) -> str:
        return self.prefix_for(scope)

    def counter_key(self, scope: Optional[str]) -> str:
        if not self.scoped:
            return self.key_name
        self.prefix_for(scope) # validates the scope
        return f"{self.key_name}:{scope}"


IDENTIFIER_SCHEMES: Dict[EntityType, IdentifierScheme] = {
    EntityType.STUDENT: IdentifierScheme("student_id", "studentId", 4, _academic_year_prefix),
    EntityType.ADMISSION: IdentifierScheme("application_number", "applicationNumber", 4, _month_prefix),
    EntityType.FEE_RECEIPT: IdentifierScheme("receipt_number", "receiptNumber", 6, _year_prefix),
    EntityType.EMPLOYEE: IdentifierScheme("employee_id", "employeeId", 3, _no_scope_prefix, scoped=False),
}


def get_scheme(entity_type: Union[EntityType, str]) -> IdentifierScheme:
    try:
        return IDENTIFIER_SCHEMES[EntityType(entity_type)]
    except ValueError as e:
        raise ValueError(f"Unknown entity type: {entity_type!r}") from e


def identifier_prefix(entity_type: Union[EntityType, str], scope: Optional[str] = None) -> str:
    return get_scheme(entity_type).prefix(scope)


def counter_key(entity_type: Union[EntityType, str], scope: Optional[str] = None) -> str:
    return get_scheme(entity_type).counter_key(scope)


def format_identifier(entity_type: Union[EntityType, str], scope: Optional[str], seq: int) -> str:
    """Render ``seq`` for ``entity_type`` within ``scope``. Pure and deterministic."""
    scheme = get_scheme(entity_type)
    if isinstance(seq, bool) or not isinstance(seq, int) or seq < 1:
        raise ValueError(f"Sequence value must be a positive integer, got {seq!r}")
    return f"{scheme.prefix(scope)}{str(seq).zfill(scheme.width)}"


async def allocate_identifier(
    entity_type: Union[EntityType, str],
    scope: Optional[str],
    lookup: IdentifierLookup,
) -> str:
    """Seed (once) from legacy identifiers, take the next counter value and format it."""
    scheme = get_scheme(entity_type)
    key = scheme.counter_key(scope)
    prefix = scheme.prefix(scope)

    await ensure_seeded(key, prefix, lookup)
    seq = await next_sequence_value(key)
    identifier = format_identifier(entity_type, scope, seq)
    logger.info(f"Allocated {scheme.field} '{identifier}' (key={key}, seq={seq})")
    return identifier


async def assign_identifier(
    document: Document,
    entity_type: Union[EntityType, str],
    scope: Optional[str],
    **filters: Any,
) -> str:
    """
    Fill the identifier field of a document that is about to be inserted.
    A value already present (explicit import) is kept as is.
    """
    scheme = get_scheme(entity_type)
    current = getattr(document, scheme.field, None)
    if current:
        return current

    lookup = identifier_lookup(type(document), scheme.field, scheme.prefix(scope), scheme.width, **filters)
    identifier = await allocate_identifier(entity_type, scope, lookup)
    setattr(document, scheme.field, identifier)
    return identifier


# --- Scope helpers ---
def academic_year_for(moment: Optional[Union[date, datetime]] = None) -> str:
    """Academic year containing ``moment``; years start in ACADEMIC_YEAR_START_MONTH (April)."""
    moment = moment or datetime.now()
    start = moment.year if moment.month >= ACADEMIC_YEAR_START_MONTH else moment.year - 1
    return f"{start}-{start + 1}"


def month_scope(moment: Optional[Union[date, datetime]] = None) -> str:
    moment = moment or datetime.now()
    return f"{moment.year:04d}-{moment.month:02d}"


def year_scope(moment: Optional[Union[date, datetime]] = None) -> str:
    moment = moment or datetime.now()
    return f"{moment.year:04d}"
