"""Identifier validation API — FastAPI router used by the enrollment UI.

Validation outcomes are always returned with HTTP 200: the caller decides
whether warnings are acceptable. Only malformed request bodies fail (422).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from src.decoders.codice_fiscale import (
    check_cf_name,
    compute_cf_check_char,
    generate_name_fragment,
    normalize_cf,
    reverse_cf,
    validate_cf,
)
from src.decoders.partita_iva import extract_piva_parts, format_piva, validate_piva
from src.imports.checks import check_fiscal_codes, check_vat_numbers
from src.schemas.identifiers import (
    BirthIdentity,
    FiscalCodeValidation,
    ImportCheckReport,
    VatNumberParts,
    VatValidation,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/identifiers", tags=["identifiers"])


# ── Request / response bodies ────────────────────────────────────────


class FiscalCodeRequest(BaseModel):
    fiscal_code: str


class CheckCharRequest(BaseModel):
    partial_code: str  # at least the first 15 characters


class CheckCharResponse(BaseModel):
    check_char: str


class NameCheckRequest(BaseModel):
    fiscal_code: str
    surname: str
    name: str


class NameCheckResponse(BaseModel):
    matches: bool
    expected_fragment: str


class VatNumberRequest(BaseModel):
    vat_number: str


class VatValidationResponse(VatValidation):
    parts: VatNumberParts | None = None


class VatFormatResponse(BaseModel):
    formatted: str


class StudentImportRequest(BaseModel):
    fiscal_codes: list[str | None]
    existing: list[str] = Field(default_factory=list)


class CompanyImportRequest(BaseModel):
    vat_numbers: list[str | None]
    existing: list[str] = Field(default_factory=list)


# ── Codice fiscale ───────────────────────────────────────────────────


@router.post("/fiscal-code/validate", response_model=FiscalCodeValidation)
async def fiscal_code_validate(body: FiscalCodeRequest) -> FiscalCodeValidation:
    """Format + checksum validation of a codice fiscale."""
    result = validate_cf(body.fiscal_code)
    logger.info(
        "CF validation %s: valid=%s checksum=%s",
        result.normalized[:4], result.is_valid, result.is_checksum_valid,
    )
    return result


@router.post("/fiscal-code/reverse", response_model=BirthIdentity)
async def fiscal_code_reverse(body: FiscalCodeRequest) -> BirthIdentity:
    """Birth data for pre-filling the student form."""
    return reverse_cf(body.fiscal_code)


@router.post("/fiscal-code/check-digit", response_model=CheckCharResponse)
async def fiscal_code_check_digit(body: CheckCharRequest) -> CheckCharResponse:
    """Compute the check character from the first 15 characters."""
    partial = normalize_cf(body.partial_code)
    if len(partial) < 15:
        raise HTTPException(
            status_code=422,
            detail=f"Servono almeno 15 caratteri, ricevuti {len(partial)}",
        )
    return CheckCharResponse(check_char=compute_cf_check_char(partial))


@router.post("/fiscal-code/name-check", response_model=NameCheckResponse)
async def fiscal_code_name_check(body: NameCheckRequest) -> NameCheckResponse:
    """Cross-check the first 6 characters against surname and name."""
    return NameCheckResponse(
        matches=check_cf_name(body.fiscal_code, body.surname, body.name),
        expected_fragment=generate_name_fragment(body.surname, body.name),
    )


# ── Partita IVA ──────────────────────────────────────────────────────


@router.post("/vat-number/validate", response_model=VatValidationResponse)
async def vat_number_validate(body: VatNumberRequest) -> VatValidationResponse:
    """Format + checksum validation of a partita IVA, with its sub-fields."""
    result = validate_piva(body.vat_number)
    logger.info(
        "P.IVA validation %s: valid=%s checksum=%s",
        result.formatted[:4], result.is_valid, result.is_checksum_valid,
    )
    parts = extract_piva_parts(result.formatted) if result.is_valid else None
    return VatValidationResponse(**result.model_dump(), parts=parts)


@router.post("/vat-number/format", response_model=VatFormatResponse)
async def vat_number_format(body: VatNumberRequest) -> VatFormatResponse:
    """IT-prefixed P.IVA (input echoed back when not 11 digits)."""
    return VatFormatResponse(formatted=format_piva(body.vat_number))


# ── Batch imports ────────────────────────────────────────────────────


@router.post("/imports/students", response_model=ImportCheckReport)
async def import_students_check(body: StudentImportRequest) -> ImportCheckReport:
    """Check the fiscal code column of a student import."""
    return check_fiscal_codes(body.fiscal_codes, body.existing)


@router.post("/imports/companies", response_model=ImportCheckReport)
async def import_companies_check(body: CompanyImportRequest) -> ImportCheckReport:
    """Check the VAT number column of a company import."""
    return check_vat_numbers(body.vat_numbers, body.existing)
