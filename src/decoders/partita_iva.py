"""Italian Partita IVA (VAT number) validator.

Pure Python — no network. The online Agenzia delle Entrate lookup is not
part of this module; only the structural checks are.

P.IVA format: 0000000 000 0
  - 0000000: taxpayer code
  - 000:     provincial office code (001–100, plus 120/121)
  - 0:       check digit (Luhn variant)
"""

from __future__ import annotations

import re

from src.schemas.identifiers import VatNumberParts, VatValidation

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PIVA_LENGTH = 11

_PIVA_PATTERN = re.compile(r"[0-9]{11}")
_PIVA_BODY_PATTERN = re.compile(r"[0-9]{10}")
_SEPARATORS = re.compile(r"[\s\-]+")

_ALL_ZEROS = "0" * PIVA_LENGTH

# Office codes issued outside the 001–100 provincial range
SPECIAL_OFFICE_CODES: frozenset[int] = frozenset({120, 121})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_piva(piva: str) -> str:
    """Uppercase, drop spaces and hyphens, drop a leading IT country prefix."""
    clean = _SEPARATORS.sub("", piva.upper())
    if clean.startswith("IT"):
        clean = clean[2:]
    return clean


def validate_piva_format(piva: str) -> bool:
    """Check for exactly 11 decimal digits."""
    return bool(_PIVA_PATTERN.fullmatch(piva))


def compute_piva_check_digit(piva: str) -> int | None:
    """Compute the check digit from the first 10 digits.

    Digits in odd positions (1-indexed) are summed as they are; digits in
    even positions are doubled, minus 9 when the double exceeds 9.
    Returns None when the first 10 characters are not all digits.
    """
    if not _PIVA_BODY_PATTERN.fullmatch(piva[:10]):
        return None
    digits = [int(c) for c in piva[:10]]
    total = sum(digits[0:10:2])
    for d in digits[1:10:2]:
        doubled = d * 2
        total += doubled - 9 if doubled > 9 else doubled
    remainder = total % 10
    return 0 if remainder == 0 else 10 - remainder


def validate_piva_checksum(piva: str) -> bool:
    """Validate the check digit (position 11) of a partita IVA."""
    if not validate_piva_format(piva):
        return False
    return int(piva[10]) == compute_piva_check_digit(piva)


def extract_piva_parts(piva: str) -> VatNumberParts | None:
    """Split a P.IVA into taxpayer code, office code and check digit."""
    clean = normalize_piva(piva)
    if not validate_piva_format(clean):
        return None
    return VatNumberParts(
        taxpayer_code=clean[:7],
        office_code=clean[7:10],
        check_digit=clean[10],
    )


def _office_code_known(office_code: int) -> bool:
    return 1 <= office_code <= 100 or office_code in SPECIAL_OFFICE_CODES


def validate_piva(piva: str | None) -> VatValidation:
    """Validate a partita IVA without ever raising.

    Hard errors: missing, wrong length, non-digits, all zeros.
    Warnings: wrong check digit, unusual office code (new codes get issued).
    """
    if not piva or not piva.strip():
        return VatValidation(errors=("Partita IVA mancante",))

    clean = normalize_piva(piva)

    if len(clean) != PIVA_LENGTH:
        return VatValidation(
            formatted=clean,
            errors=(f"Lunghezza non valida: {len(clean)} cifre (richieste {PIVA_LENGTH})",),
        )

    if not validate_piva_format(clean):
        return VatValidation(
            formatted=clean,
            errors=("Formato non valido: la partita IVA deve contenere solo cifre",),
        )

    if clean == _ALL_ZEROS:
        return VatValidation(formatted=clean, errors=("Partita IVA non valida: tutti zeri",))

    warnings: list[str] = []

    checksum_ok = validate_piva_checksum(clean)
    if not checksum_ok:
        warnings.append("Attenzione: checksum non valido")

    if not _office_code_known(int(clean[7:10])):
        warnings.append("Codice ufficio provinciale insolito")

    return VatValidation(
        is_valid=True,
        is_checksum_valid=checksum_ok,
        formatted=clean,
        warnings=tuple(warnings),
    )


def format_piva(piva: str) -> str:
    """Return the P.IVA with the IT prefix, or the input unchanged if not 11 digits."""
    clean = normalize_piva(piva)
    if validate_piva_format(clean):
        return f"IT{clean}"
    return piva


def same_piva(first: str, second: str) -> bool:
    """Compare two P.IVA numbers after normalization."""
    return normalize_piva(first) == normalize_piva(second)
