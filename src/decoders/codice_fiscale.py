"""Italian Codice Fiscale (CF) validator and decoder.

Pure Python — no DB, no network. Validates the 16-character Italian tax code,
computes its check character, and extracts birthdate, sex and birthplace.

CF format: AAABBB 00C00 D000 E
  - AAA:  surname consonants (then vowels, then X)
  - BBB:  name consonants (then vowels, then X)
  - 00:   year of birth (last 2 digits)
  - C:    month of birth (letter A–T, non-sequential)
  - 00:   day of birth (1–31 male, 41–71 female)
  - D000: birthplace code (codice catastale / Belfiore)
  - E:    check character

Omocodia: when two people would get the same code, the Agenzia delle Entrate
replaces digits with letters (L=0 … V=9) at the 7 numeric positions, starting
from the right. The check character is computed on the literal characters.

Reference: DPR 605/1973, Decreto MEF 12/03/1974.
"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from datetime import date
from functools import lru_cache
from importlib.resources import files

from src.schemas.identifiers import BirthIdentity, FiscalCodeValidation, Municipality, Sex

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CF_LENGTH = 16

_CF_PATTERN = re.compile(r"[A-Z]{6}[A-Z0-9]{2}[A-Z][A-Z0-9]{2}[A-Z][A-Z0-9]{3}[A-Z]")
_WHITESPACE = re.compile(r"\s+")

MONTH_MAP: dict[str, int] = {
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "H": 6,
    "L": 7, "M": 8, "P": 9, "R": 10, "S": 11, "T": 12,
}

# Checksum tables per Decreto MEF 12/03/1974
ODD_VALUES: dict[str, int] = {
    "0": 1, "1": 0, "2": 5, "3": 7, "4": 9, "5": 13, "6": 15,
    "7": 17, "8": 19, "9": 21,
    "A": 1, "B": 0, "C": 5, "D": 7, "E": 9, "F": 13, "G": 15,
    "H": 17, "I": 19, "J": 21, "K": 2, "L": 4, "M": 18, "N": 20,
    "O": 11, "P": 3, "Q": 6, "R": 8, "S": 12, "T": 14, "U": 16,
    "V": 10, "W": 22, "X": 25, "Y": 24, "Z": 23,
}

EVEN_VALUES: dict[str, int] = {
    "0": 0, "1": 1, "2": 2, "3": 3, "4": 4, "5": 5, "6": 6,
    "7": 7, "8": 8, "9": 9,
    "A": 0, "B": 1, "C": 2, "D": 3, "E": 4, "F": 5, "G": 6,
    "H": 7, "I": 8, "J": 9, "K": 10, "L": 11, "M": 12, "N": 13,
    "O": 14, "P": 15, "Q": 16, "R": 17, "S": 18, "T": 19, "U": 20,
    "V": 21, "W": 22, "X": 23, "Y": 24, "Z": 25,
}

CHECK_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Omocodia: letter → digit
OMOCODIA_DIGITS: dict[str, str] = {
    "L": "0", "M": "1", "N": "2", "P": "3", "Q": "4",
    "R": "5", "S": "6", "T": "7", "U": "8", "V": "9",
}

# 0-indexed positions that may carry an omocodia letter (7, 8, 10, 11, 13, 14, 15 1-indexed)
OMOCODIA_POSITIONS: tuple[int, ...] = (6, 7, 9, 10, 12, 13, 14)

_VOWELS = frozenset("AEIOU")

# Two-digit years above (current year % 100) + window are read as 19xx
_CENTURY_WINDOW = 5

# Female day of birth is encoded as day + 40
_FEMALE_DAY_OFFSET = 40
_MAX_DAY = 31

# Cadastral codes data, shipped inside the package
_CADASTRAL_CODES_RESOURCE = files("src.decoders") / "data" / "cadastral_codes.json"


# ---------------------------------------------------------------------------
# Cadastral codes loader (cached)
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _load_cadastral_codes() -> dict[str, Municipality]:
    """Load the Belfiore code → municipality sample table."""
    if not _CADASTRAL_CODES_RESOURCE.is_file():
        logger.warning("Cadastral codes table not found at %s", _CADASTRAL_CODES_RESOURCE)
        return {}
    data = json.loads(_CADASTRAL_CODES_RESOURCE.read_text(encoding="utf-8"))
    return {code: Municipality(**entry) for code, entry in data.get("codes", {}).items()}


def lookup_municipality(cadastral_code: str) -> Municipality | None:
    """Return the municipality for a cadastral code, or None if not in the sample table."""
    return _load_cadastral_codes().get(cadastral_code.upper().strip())


# ---------------------------------------------------------------------------
# Normalization and format
# ---------------------------------------------------------------------------


def normalize_cf(cf: str) -> str:
    """Uppercase and remove every whitespace character."""
    return _WHITESPACE.sub("", cf.upper())


def validate_cf_format(cf: str) -> bool:
    """Check that the CF matches the 16-character positional grammar."""
    return bool(_CF_PATTERN.fullmatch(normalize_cf(cf)))


def decode_omocodia(cf: str) -> str:
    """Replace omocodia letters with their digits at the numeric positions.

    Characters already numeric are left as they are, so decoding twice is
    the same as decoding once.
    """
    chars = list(normalize_cf(cf))
    for pos in OMOCODIA_POSITIONS:
        if pos < len(chars):
            chars[pos] = OMOCODIA_DIGITS.get(chars[pos], chars[pos])
    return "".join(chars)


# ---------------------------------------------------------------------------
# Checksum
# ---------------------------------------------------------------------------


def compute_cf_check_char(cf: str) -> str:
    """Compute the check character from the first 15 characters of a CF.

    Works on the literal characters: omocodia letters are NOT decoded first.
    Unknown characters count as 0.
    """
    body = normalize_cf(cf)[:15]
    total = 0
    for i, char in enumerate(body):
        if i % 2 == 0:  # odd position (1-indexed)
            total += ODD_VALUES.get(char, 0)
        else:  # even position (1-indexed)
            total += EVEN_VALUES.get(char, 0)
    return CHECK_CHARS[total % 26]


def validate_cf_checksum(cf: str) -> bool:
    """Validate the check character (position 16) of a codice fiscale."""
    cf = normalize_cf(cf)
    if len(cf) != CF_LENGTH:
        return False
    return cf[15] == compute_cf_check_char(cf)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_cf(cf: str | None) -> FiscalCodeValidation:
    """Validate a codice fiscale without ever raising.

    Hard errors (missing, wrong length, wrong format) set ``is_valid=False``.
    A wrong check character or an omocode only produce warnings: real codes
    with a quirky check character must still be accepted.
    """
    if not cf or not cf.strip():
        return FiscalCodeValidation(errors=("Codice fiscale mancante",))

    cf_clean = normalize_cf(cf)

    if len(cf_clean) != CF_LENGTH:
        return FiscalCodeValidation(
            normalized=cf_clean,
            errors=(f"Lunghezza non valida: {len(cf_clean)} caratteri (richiesti {CF_LENGTH})",),
        )

    if not _CF_PATTERN.fullmatch(cf_clean):
        return FiscalCodeValidation(normalized=cf_clean, errors=("Formato non valido",))

    warnings: list[str] = []

    checksum_ok = validate_cf_checksum(cf_clean)
    if not checksum_ok:
        warnings.append("Attenzione: checksum non valido")

    if decode_omocodia(cf_clean) != cf_clean:
        logger.debug("Omocodia detected in CF %s", cf_clean[:4])
        warnings.append("Codice fiscale con omocodia rilevata")

    return FiscalCodeValidation(
        is_valid=True,
        is_checksum_valid=checksum_ok,
        normalized=cf_clean,
        warnings=tuple(warnings),
    )


# ---------------------------------------------------------------------------
# Reverse engineering
# ---------------------------------------------------------------------------


def _resolve_year(two_digits: int, today: date) -> int:
    # Heuristic: cannot tell a centenarian from a newborn
    if two_digits > today.year % 100 + _CENTURY_WINDOW:
        return 1900 + two_digits
    return 2000 + two_digits


def reverse_cf(cf: str | None, today: date | None = None) -> BirthIdentity:
    """Extract birthdate, sex and birthplace from a codice fiscale.

    Args:
        cf: The codice fiscale, in any case, spaces allowed.
        today: Reference date for century inference (defaults to today).

    Returns:
        BirthIdentity with every field that could be derived. A code with a
        bad format gives an empty identity; a bad check character does not
        prevent decoding.
    """
    if not cf:
        return BirthIdentity()

    cf_clean = normalize_cf(cf)
    if not _CF_PATTERN.fullmatch(cf_clean):
        return BirthIdentity()

    decoded = decode_omocodia(cf_clean)
    today = today or date.today()

    # Year (positions 7–8)
    year: int | None = None
    if decoded[6:8].isdigit():
        year = _resolve_year(int(decoded[6:8]), today)

    # Month (position 9, never omocodic)
    month = MONTH_MAP.get(cf_clean[8])

    # Day and sex (positions 10–11)
    day: int | None = None
    sex: Sex | None = None
    if decoded[9:11].isdigit():
        day_raw = int(decoded[9:11])
        if day_raw > _FEMALE_DAY_OFFSET:
            sex = Sex.FEMALE
            day_raw -= _FEMALE_DAY_OFFSET
        else:
            sex = Sex.MALE
        # Only 01–31 and 41–71 encode a day
        if 1 <= day_raw <= _MAX_DAY:
            day = day_raw

    birthdate: date | None = None
    if year and month and day:
        try:
            birthdate = date(year, month, day)
        except ValueError:
            logger.debug("CF %s encodes an impossible date %s-%s-%s", cf_clean[:4], year, month, day)

    # Birthplace (positions 12–15)
    cadastral_code = decoded[11:15]
    municipality = lookup_municipality(cadastral_code)
    if municipality is None:
        logger.debug("Cadastral code %s not in sample table", cadastral_code)
        birth_place = f"Codice: {cadastral_code}"
        province = None
    else:
        birth_place = municipality.name
        province = municipality.province

    return BirthIdentity(
        birth_date=birthdate,
        birth_year=year,
        birth_month=month,
        birth_day=day,
        birth_place=birth_place,
        province=province,
        cadastral_code=cadastral_code,
        sex=sex,
    )


def format_birth_date(value: date | None) -> str:
    """Format a birthdate as DD/MM/YYYY, empty string if missing."""
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


# ---------------------------------------------------------------------------
# Name fragment (first 6 characters)
# ---------------------------------------------------------------------------


def _letters(text: str) -> str:
    # "Nicolò D'Amico" → "NICOLODAMICO"
    folded = unicodedata.normalize("NFKD", text.upper())
    return "".join(c for c in folded if "A" <= c <= "Z")


def _encode_part(text: str, is_name: bool) -> str:
    letters = _letters(text)
    consonants = "".join(c for c in letters if c not in _VOWELS)
    vowels = "".join(c for c in letters if c in _VOWELS)

    # Given name with 4+ consonants: 1st, 3rd and 4th
    if is_name and len(consonants) > 3:
        return consonants[0] + consonants[2] + consonants[3]

    return (consonants + vowels + "XXX")[:3]


def generate_name_fragment(surname: str, name: str) -> str:
    """Build the 6-character surname + name fragment that opens a CF."""
    return _encode_part(surname, is_name=False) + _encode_part(name, is_name=True)


def check_cf_name(cf: str | None, surname: str | None, name: str | None) -> bool:
    """Return True if the CF is consistent with the given surname and name."""
    if not cf or not surname or not name:
        return False
    cf_clean = normalize_cf(cf)
    if len(cf_clean) != CF_LENGTH:
        return False
    return cf_clean[:6] == generate_name_fragment(surname, name)
