"""Pydantic schemas for the Codice Fiscale and Partita IVA decoders.

Pure data classes — no I/O. Every result is built fresh per call and frozen,
so results can be shared between callers without copying.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Sex(str, Enum):
    """Sex as encoded in positions 10–11 of the codice fiscale."""

    MALE = "M"
    FEMALE = "F"


class IssueSeverity(str, Enum):
    """Import issue severity — errors exclude the row, warnings don't."""

    ERROR = "error"
    WARNING = "warning"


# ---------------------------------------------------------------------------
# Codice Fiscale
# ---------------------------------------------------------------------------


class Municipality(BaseModel):
    """Entry of the cadastral (Belfiore) code sample table."""

    model_config = ConfigDict(frozen=True)

    name: str          # e.g. "ROMA"
    province: str      # e.g. "RM"


class FiscalCodeValidation(BaseModel):
    """Outcome of validating a codice fiscale.

    ``is_valid`` only reflects the format (length + character classes).
    A wrong check character is reported in ``warnings``, never as a failure.
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool = False
    is_checksum_valid: bool = False
    normalized: str = ""
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


class BirthIdentity(BaseModel):
    """Birth data reverse-engineered from a codice fiscale. Best effort."""

    model_config = ConfigDict(frozen=True)

    birth_date: date | None = None
    birth_year: int | None = None
    birth_month: int | None = None
    birth_day: int | None = None
    birth_place: str | None = None       # "ROMA", or "Codice: Z999" if unknown
    province: str | None = None          # "RM"
    cadastral_code: str | None = None    # "H501"
    sex: Sex | None = None


# ---------------------------------------------------------------------------
# Partita IVA
# ---------------------------------------------------------------------------


class VatNumberParts(BaseModel):
    """Sub-fields of an 11-digit partita IVA."""

    model_config = ConfigDict(frozen=True)

    taxpayer_code: str   # digits 1–7
    office_code: str     # digits 8–10, provincial office
    check_digit: str     # digit 11


class VatValidation(BaseModel):
    """Outcome of validating a partita IVA.

    ``formatted`` holds the normalized 11-digit value (no IT prefix).
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool = False
    is_checksum_valid: bool = False
    formatted: str = ""
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Batch import checks
# ---------------------------------------------------------------------------


class ImportIssue(BaseModel):
    """Single problem found on a spreadsheet row."""

    model_config = ConfigDict(frozen=True)

    row: int
    column: str
    message: str
    value: str | None = None
    severity: IssueSeverity


class ImportCheckReport(BaseModel):
    """Summary of identifier checks over an imported batch."""

    model_config = ConfigDict(frozen=True)

    total_rows: int = 0
    valid_rows: int = 0
    duplicates: int = 0
    errors: tuple[ImportIssue, ...] = ()
    warnings: tuple[ImportIssue, ...] = ()
    normalized: tuple[str, ...] = ()
