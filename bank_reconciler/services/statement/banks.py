"""
Bank identification from statement headers.

OFX files from Brazilian banks carry the bank's COMPE code in BANKID.
We resolve it to a name so the import flow can warn when a file is
being imported into an account held at a different bank.
"""

import re
import unicodedata
from typing import Optional

from bank_reconciler.models.statement import BankInfo, BankMatchCheck


BANK_NAMES_BY_CODE = {
    "001": "Banco do Brasil",
    "033": "Santander",
    "041": "Banrisul",
    "070": "BRB",
    "077": "Inter",
    "104": "Caixa",
    "208": "BTG Pactual",
    "212": "Banco Original",
    "237": "Bradesco",
    "260": "Nubank",
    "290": "PagBank",
    "323": "Mercado Pago",
    "336": "C6 Bank",
    "341": "Itaú",
    "380": "PicPay",
    "422": "Safra",
    "748": "Sicredi",
    "756": "Sicoob",
}


def normalize_bank_code(code: str) -> Optional[str]:
    """'0341', '341' and ' 341 ' all become '341'."""
    digits = re.sub(r"\D", "", code or "")
    if not digits:
        return None
    return f"{int(digits):03d}"


def get_bank_name_from_code(code: str) -> Optional[str]:
    normalized = normalize_bank_code(code)
    if normalized is None:
        return None
    return BANK_NAMES_BY_CODE.get(normalized)


def _normalize_name(name: str) -> str:
    folded = unicodedata.normalize("NFKD", name)
    return "".join(c for c in folded if not unicodedata.combining(c)).lower().strip()


def check_bank_match(
    bank_info: BankInfo,
    account_bank_name: Optional[str],
) -> BankMatchCheck:
    """
    Compare the statement's bank with the target account's bank.

    Names match when either contains the other, ignoring case and accents
    ("Itaú" matches "Banco Itau").
    """
    file_bank_name = get_bank_name_from_code(bank_info.bank_id)
    check = BankMatchCheck(
        bank_code=bank_info.bank_id,
        file_bank_name=file_bank_name,
        account_bank_name=account_bank_name or None,
    )
    if not file_bank_name or not account_bank_name or not account_bank_name.strip():
        return check

    file_name = _normalize_name(file_bank_name)
    account_name = _normalize_name(account_bank_name)
    check.matches = file_name in account_name or account_name in file_name
    return check
