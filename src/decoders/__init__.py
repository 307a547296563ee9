"""Deterministic identifier decoders — Codice Fiscale and Partita IVA."""

from src.decoders.codice_fiscale import check_cf_name, reverse_cf, validate_cf
from src.decoders.partita_iva import format_piva, validate_piva

__all__ = ["check_cf_name", "format_piva", "reverse_cf", "validate_cf", "validate_piva"]
