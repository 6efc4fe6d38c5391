"""Statement file parsing package."""

from bank_reconciler.services.statement.banks import (
    BANK_NAMES_BY_CODE,
    check_bank_match,
    get_bank_name_from_code,
)
from bank_reconciler.services.statement.ofx_parser import (
    ParseError,
    StatementFileParser,
    UnsupportedFileError,
    decode_ofx,
)

__all__ = [
    "BANK_NAMES_BY_CODE",
    "ParseError",
    "StatementFileParser",
    "UnsupportedFileError",
    "check_bank_match",
    "decode_ofx",
    "get_bank_name_from_code",
]
