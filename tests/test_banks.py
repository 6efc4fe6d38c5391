"""Tests for bank identification."""

import pytest

from bank_reconciler.models.statement import BankInfo
from bank_reconciler.services.statement import check_bank_match, get_bank_name_from_code


class TestBankCodes:
    """Tests for COMPE code lookups."""

    @pytest.mark.parametrize("code", ["341", "0341", " 341 "])
    def test_code_normalization(self, code):
        assert get_bank_name_from_code(code) == "Itaú"

    def test_short_code(self):
        assert get_bank_name_from_code("1") == "Banco do Brasil"

    def test_unknown_code(self):
        assert get_bank_name_from_code("999") is None

    def test_empty_code(self):
        assert get_bank_name_from_code("") is None


class TestBankMatch:
    """Tests for comparing the file's bank with the account's bank."""

    def test_match_ignores_case_and_accents(self):
        check = check_bank_match(BankInfo(bank_id="0341"), "Banco ITAU")
        assert check.file_bank_name == "Itaú"
        assert check.matches is True

    def test_match_either_direction(self):
        """An account named with a shorter name still matches."""
        check = check_bank_match(BankInfo(bank_id="001"), "Brasil")
        assert check.matches is True

    def test_mismatch(self):
        check = check_bank_match(BankInfo(bank_id="260"), "Bradesco")
        assert check.matches is False

    def test_unknown_file_bank(self):
        check = check_bank_match(BankInfo(bank_id="999"), "Nubank")
        assert check.matches is None

    @pytest.mark.parametrize("account_bank", [None, "", "   "])
    def test_unknown_account_bank(self, account_bank):
        check = check_bank_match(BankInfo(bank_id="260"), account_bank)
        assert check.matches is None
