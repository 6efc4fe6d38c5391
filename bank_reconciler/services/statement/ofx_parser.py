"""
OFX Statement Parser

Parses OFX (Open Financial Exchange) bank statement files into
normalized statement lines plus the bank-identifying header fields.

DESIGN DECISION: Extraction is tolerant and marker-driven, not schema-driven.
Brazilian banks emit SGML-flavoured OFX with unclosed tags, mixed case
and cp1252 text, so we look for each tag individually instead of parsing
a tree. A transaction block missing its id, amount or posting date is
omitted without raising; only the file-level wrapper decides that a
file is unusable.

Two layers:
1. decode_ofx()          - pure decoder, never raises on malformed blocks
2. StatementFileParser   - file-level wrapper: extension/size checks,
                           byte decoding, unusable-record filtering,
                           ParseError on empty result
"""

import re
from decimal import Decimal, InvalidOperation
from pathlib import PurePath
from typing import Optional, Union

import structlog

from bank_reconciler.config import AppSettings, get_settings
from bank_reconciler.models.statement import (
    BankInfo,
    DecodedStatement,
    DecodedStatementLine,
    StatementDirection,
)


logger = structlog.get_logger(__name__)

NO_DESCRIPTION = "No description"

_BLOCK_PATTERN = re.compile(
    r"<STMTTRN>([\s\S]*?)(?=<STMTTRN>|</STMTTRN>|</BANKTRANLIST>)",
    re.IGNORECASE,
)
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_DATE_DIGITS = re.compile(r"^\d{8}")
# Larger magnitudes cannot be stored to the cent
MAX_AMOUNT = Decimal("1e15")


class ParseError(Exception):
    """Statement file yielded no usable records."""

    def __init__(self, message: str, filename: Optional[str] = None):
        self.filename = filename
        super().__init__(message)


class UnsupportedFileError(ParseError):
    """Statement file has an unsupported extension or is too large."""
    pass


def extract_tag_value(content: str, tag: str) -> str:
    """
    Value of the first `<TAG>value` occurrence, trimmed.

    The value runs up to the next tag or line break. Returns an empty
    string when the tag is absent.
    """
    match = re.search(rf"<{re.escape(tag)}>([^<\n]+)", content, re.IGNORECASE)
    return match.group(1).strip() if match else ""


def parse_ofx_date(value: str) -> str:
    """
    Convert an OFX timestamp (YYYYMMDD[HHMMSS[.XXX][tz]]) to YYYY-MM-DD.

    Anything without eight leading digits yields an empty string.
    """
    if not _DATE_DIGITS.match(value):
        return ""
    return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"


def parse_ofx_amount(value: str) -> Optional[Decimal]:
    """
    Parse a TRNAMT value.

    A decimal comma is normalized to a decimal point, then the leading
    numeric part is read. Returns None when there is no number at all
    or its magnitude reaches MAX_AMOUNT.
    """
    normalized = value.strip().replace(",", ".", 1)
    match = _LEADING_NUMBER.match(normalized)
    if not match:
        return None
    try:
        amount = Decimal(match.group(0))
    except InvalidOperation:
        return None
    if abs(amount) >= MAX_AMOUNT:
        return None
    return amount


def _decode_block(block: str) -> Optional[DecodedStatementLine]:
    external_id = extract_tag_value(block, "FITID")
    raw_amount = extract_tag_value(block, "TRNAMT")
    raw_date = extract_tag_value(block, "DTPOSTED")

    if not (external_id and raw_amount and raw_date):
        return None

    amount = parse_ofx_amount(raw_amount)
    if amount is None:
        return None

    memo = extract_tag_value(block, "MEMO") or extract_tag_value(block, "NAME")

    return DecodedStatementLine(
        external_id=external_id,
        transaction_type=extract_tag_value(block, "TRNTYPE"),
        direction=StatementDirection.CREDIT if amount >= 0 else StatementDirection.DEBIT,
        posted_date=parse_ofx_date(raw_date),
        amount=abs(amount),
        memo=memo or NO_DESCRIPTION,
        check_number=extract_tag_value(block, "CHECKNUM") or None,
    )


def decode_ofx(content: str) -> DecodedStatement:
    """
    Decode OFX text into statement lines and bank info.

    Lines come out in the order their blocks appear in the file.
    Blocks without FITID, TRNAMT or DTPOSTED (or with an amount that
    is non-numeric or out of range) are skipped. Lines may carry an empty posted_date; callers
    must treat those as unusable.
    """
    bank_info = BankInfo(
        bank_id=extract_tag_value(content, "BANKID"),
        account_id=extract_tag_value(content, "ACCTID"),
        account_type=extract_tag_value(content, "ACCTTYPE"),
    )

    lines = []
    skipped = 0
    for match in _BLOCK_PATTERN.finditer(content):
        line = _decode_block(match.group(1))
        if line is None:
            skipped += 1
            continue
        lines.append(line)

    if skipped:
        logger.debug("ofx_blocks_skipped", skipped=skipped, decoded=len(lines))

    return DecodedStatement(bank_info=bank_info, lines=lines)


class StatementFileParser:
    """
    File-level statement parser.

    This is the entry point for an uploaded file: it rejects unsupported
    files loudly, decodes the bytes, and guarantees that what it returns
    has at least one usable line.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate_file(self, filename: str, size_bytes: int) -> None:
        """
        Reject files we don't accept.

        Raises:
            UnsupportedFileError: Wrong extension or too large
        """
        extension = PurePath(filename).suffix.lower().lstrip(".")
        allowed = self._settings.supported_formats_list
        if extension not in allowed:
            raise UnsupportedFileError(
                f"Unsupported statement file '{filename}'. "
                f"Accepted formats: {', '.join('.' + fmt for fmt in allowed)}",
                filename=filename,
            )

        if size_bytes > self._settings.max_upload_size_bytes:
            raise UnsupportedFileError(
                f"Statement file '{filename}' is larger than "
                f"{self._settings.max_upload_size_mb} MB",
                filename=filename,
            )

    def decode_bytes(self, raw: bytes) -> str:
        """Decode file bytes as UTF-8, falling back to the configured legacy encoding."""
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            return raw.decode(self._settings.statement_fallback_encoding, errors="replace")

    def parse(
        self,
        raw: Union[bytes, str],
        filename: str,
    ) -> DecodedStatement:
        """
        Parse an uploaded statement file.

        Returns:
            Decoded statement containing only usable lines

        Raises:
            UnsupportedFileError: Wrong extension or too large
            ParseError: No usable transaction found in the file
        """
        size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
        self.validate_file(filename, size)

        content = raw if isinstance(raw, str) else self.decode_bytes(raw)
        decoded = decode_ofx(content)

        usable = [line for line in decoded.lines if line.is_usable]
        discarded = len(decoded.lines) - len(usable)

        if not usable:
            raise ParseError(
                f"No transactions found in statement file '{filename}'",
                filename=filename,
            )

        logger.info(
            "statement_file_parsed",
            filename=filename,
            lines=len(usable),
            discarded=discarded,
            bank_id=decoded.bank_info.bank_id,
        )

        return DecodedStatement(
            bank_info=decoded.bank_info,
            lines=usable,
            discarded_count=discarded,
        )
