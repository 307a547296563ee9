"""Identifier checks for spreadsheet imports of students and companies.

Callers hand over the cell values of one column (already read from the
file) together with the codes already stored; each row is validated with
the decoders and flagged when it duplicates a known code or an earlier row.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from src.decoders.codice_fiscale import normalize_cf, validate_cf
from src.decoders.partita_iva import normalize_piva, validate_piva
from src.schemas.identifiers import (
    FiscalCodeValidation,
    ImportCheckReport,
    ImportIssue,
    IssueSeverity,
    VatValidation,
)

logger = logging.getLogger(__name__)

FISCAL_CODE_COLUMN = "Codice Fiscale"
VAT_NUMBER_COLUMN = "Partita IVA"


def _check_column(
    values: Iterable[str | None],
    existing: set[str],
    column: str,
    duplicate_message: str,
    validate: Callable[[str], FiscalCodeValidation | VatValidation],
    normalized_of: Callable[[FiscalCodeValidation | VatValidation], str],
    first_row: int,
) -> ImportCheckReport:
    errors: list[ImportIssue] = []
    warnings: list[ImportIssue] = []
    normalized: list[str] = []
    seen = set(existing)
    total = 0
    duplicates = 0

    for row, raw in enumerate(values, start=first_row):
        total += 1
        if raw is None or not str(raw).strip():
            continue
        value = str(raw)
        result = validate(value)

        if not result.is_valid:
            errors.extend(
                ImportIssue(row=row, column=column, message=msg, value=value, severity=IssueSeverity.ERROR)
                for msg in result.errors
            )
            continue

        code = normalized_of(result)
        warnings.extend(
            ImportIssue(row=row, column=column, message=msg, value=code, severity=IssueSeverity.WARNING)
            for msg in result.warnings
        )

        if code in seen:
            warnings.append(ImportIssue(
                row=row,
                column=column,
                message=duplicate_message,
                value=code,
                severity=IssueSeverity.WARNING,
            ))
            duplicates += 1
        seen.add(code)
        normalized.append(code)

    logger.info(
        "Import check on %s: %d rows, %d valid, %d duplicates, %d errors",
        column, total, len(normalized), duplicates, len(errors),
    )

    return ImportCheckReport(
        total_rows=total,
        valid_rows=len(normalized),
        duplicates=duplicates,
        errors=tuple(errors),
        warnings=tuple(warnings),
        normalized=tuple(normalized),
    )


def check_fiscal_codes(
    values: Iterable[str | None],
    existing: Iterable[str] = (),
    first_row: int = 2,
) -> ImportCheckReport:
    """Validate a column of student fiscal codes and flag duplicates.

    Args:
        values: Cell values in row order; blank cells are skipped.
        existing: Fiscal codes already stored (any case/spacing).
        first_row: Spreadsheet row of the first value (row 1 is the header).
    """
    known = {normalize_cf(code) for code in existing if code}
    return _check_column(
        values,
        known,
        FISCAL_CODE_COLUMN,
        "Codice fiscale già presente",
        validate_cf,
        lambda result: result.normalized,
        first_row,
    )


def check_vat_numbers(
    values: Iterable[str | None],
    existing: Iterable[str] = (),
    first_row: int = 2,
) -> ImportCheckReport:
    """Validate a column of company VAT numbers and flag duplicates."""
    known = {normalize_piva(piva) for piva in existing if piva}
    return _check_column(
        values,
        known,
        VAT_NUMBER_COLUMN,
        "Partita IVA già presente",
        validate_piva,
        lambda result: result.formatted,
        first_row,
    )
