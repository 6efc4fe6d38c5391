"""Tests for the statement import flow."""

import pytest
from decimal import Decimal

from bank_reconciler.audit import AuditLogger
from bank_reconciler.models.audit import AuditEventType
from bank_reconciler.models.statement import (
    DecodedStatementLine,
    StatementDirection,
    StatementLineStatus,
)
from bank_reconciler.orchestrator import StatementImportError, StatementImportFlow
from bank_reconciler.services.notifications import STATEMENT_LINES_SCOPE, TRANSACTIONS_SCOPE
from bank_reconciler.services.statement import ParseError
from bank_reconciler.services.storage import (
    InMemoryMembershipStorage,
    InMemoryStatementLineStorage,
    StorageError,
)

ACCOUNT_ID = "acct-1"
ORG_ID = "org-1"
USER_ID = "user-1"

OFX_CONTENT = """<OFX>
<BANKACCTFROM>
<BANKID>260
<ACCTID>999
</BANKACCTFROM>
<BANKTRANLIST>
<STMTTRN>
<TRNTYPE>DEBIT
<DTPOSTED>20260110
<TRNAMT>-50,00
<FITID>N1
<MEMO>Padaria
</STMTTRN>
<STMTTRN>
<TRNTYPE>CREDIT
<DTPOSTED>20260111
<TRNAMT>1500.00
<FITID>N2
<MEMO>Salario
</STMTTRN>
</BANKTRANLIST>
</OFX>
"""


def decoded(external_id, amount="50.00", direction=StatementDirection.DEBIT,
            posted="2026-01-10", memo="Padaria"):
    return DecodedStatementLine(
        external_id=external_id,
        direction=direction,
        posted_date=posted,
        amount=Decimal(amount),
        memo=memo,
    )


class FailingInsertStorage(InMemoryStatementLineStorage):
    async def insert_statement_lines(self, lines):
        raise StorageError("sheet is read-only")


@pytest.fixture
def flow(line_storage, membership_storage, audit_storage, notifier):
    return StatementImportFlow(
        line_storage=line_storage,
        membership_storage=membership_storage,
        notifier=notifier,
        audit_logger=AuditLogger(audit_storage),
    )


class TestImportLines:
    """Tests for de-duplicated persistence."""

    @pytest.mark.asyncio
    async def test_inserts_pending_lines(self, flow, line_storage):
        lines = [decoded("A1"), decoded("A2", amount="1500", direction=StatementDirection.CREDIT)]
        result = await flow.import_lines(ACCOUNT_ID, lines, USER_ID)

        assert result.inserted == 2
        assert result.skipped == 0

        stored = await line_storage.list_statement_lines(account_id=ACCOUNT_ID)
        assert len(stored) == 2
        for line in stored:
            assert line.status == StatementLineStatus.PENDING
            assert line.matched_transaction_id is None
            assert line.organization_id == ORG_ID
            assert line.user_id == USER_ID
        padaria = next(line for line in stored if line.external_id == "A1")
        assert padaria.description == "Padaria"
        assert padaria.memo == "Padaria"

    @pytest.mark.asyncio
    async def test_dedup_idempotence(self, flow, line_storage):
        """Importing the same batch twice inserts N then skips N."""
        lines = [
            decoded("A1"),
            decoded("A2", memo="Mercado"),
            decoded("A3", amount="10.5", direction=StatementDirection.CREDIT),
        ]
        first = await flow.import_lines(ACCOUNT_ID, lines, USER_ID)
        second = await flow.import_lines(ACCOUNT_ID, lines, USER_ID)

        assert (first.inserted, first.skipped) == (3, 0)
        assert (second.inserted, second.skipped) == (0, 3)
        assert len(await line_storage.list_statement_lines()) == 3

    @pytest.mark.asyncio
    async def test_duplicates_ignore_external_id(self, flow):
        """Same movement re-exported with a new bank id is still a duplicate."""
        await flow.import_lines(ACCOUNT_ID, [decoded("A1")], USER_ID)
        result = await flow.import_lines(ACCOUNT_ID, [decoded("Z9")], USER_ID)
        assert result.skipped == 1

    @pytest.mark.asyncio
    async def test_amount_formatting_does_not_defeat_dedup(self, flow):
        await flow.import_lines(ACCOUNT_ID, [decoded("A1", amount="50")], USER_ID)
        result = await flow.import_lines(ACCOUNT_ID, [decoded("A1", amount="50.00")], USER_ID)
        assert result.inserted == 0

    @pytest.mark.asyncio
    async def test_siblings_in_one_batch_are_both_inserted(self, flow):
        """Two identical coffees on the same day are two movements."""
        result = await flow.import_lines(ACCOUNT_ID, [decoded("A1"), decoded("A2")], USER_ID)
        assert result.inserted == 2

    @pytest.mark.asyncio
    async def test_dedup_is_scoped_to_account(self, flow):
        await flow.import_lines(ACCOUNT_ID, [decoded("A1")], USER_ID)
        result = await flow.import_lines("acct-2", [decoded("A1")], USER_ID)
        assert result.inserted == 1

    @pytest.mark.asyncio
    async def test_unusable_lines_are_skipped(self, flow):
        result = await flow.import_lines(ACCOUNT_ID, [decoded("A1", posted="")], USER_ID)
        assert (result.inserted, result.skipped) == (0, 1)

    @pytest.mark.asyncio
    async def test_notifies_and_invalidates(self, flow, notifier):
        await flow.import_lines(ACCOUNT_ID, [decoded("A1")], USER_ID)
        assert notifier.last.level == "success"
        assert notifier.last.details == {"inserted": 1, "skipped": 0}
        assert set(notifier.invalidated) == {STATEMENT_LINES_SCOPE, TRANSACTIONS_SCOPE}

    @pytest.mark.asyncio
    async def test_audits_import(self, flow, audit_storage):
        await flow.import_lines(ACCOUNT_ID, [decoded("A1")], USER_ID)
        assert [e.event_type for e in audit_storage.events] == [AuditEventType.STATEMENT_IMPORTED]
        assert audit_storage.events[0].actor_id == USER_ID

    @pytest.mark.asyncio
    async def test_missing_organization(self, line_storage, notifier):
        flow = StatementImportFlow(
            line_storage=line_storage,
            membership_storage=InMemoryMembershipStorage(),
            notifier=notifier,
        )
        with pytest.raises(StatementImportError, match="Organization not found"):
            await flow.import_lines(ACCOUNT_ID, [decoded("A1")], USER_ID)
        assert await line_storage.list_statement_lines() == []
        assert notifier.last.level == "error"

    @pytest.mark.asyncio
    async def test_store_failure(self, membership_storage, notifier, audit_storage):
        flow = StatementImportFlow(
            line_storage=FailingInsertStorage(),
            membership_storage=membership_storage,
            notifier=notifier,
            audit_logger=AuditLogger(audit_storage),
        )
        with pytest.raises(StatementImportError, match="read-only") as exc_info:
            await flow.import_lines(ACCOUNT_ID, [decoded("A1")], USER_ID)

        assert isinstance(exc_info.value.__cause__, StorageError)
        assert notifier.last.level == "error"
        assert notifier.invalidated == []
        assert audit_storage.events[-1].event_type == AuditEventType.IMPORT_FAILED

    @pytest.mark.asyncio
    async def test_unique_index_store_rejects_batch(self, membership_storage, notifier):
        storage = InMemoryStatementLineStorage(unique_dedup_keys=True)
        flow = StatementImportFlow(
            line_storage=storage,
            membership_storage=membership_storage,
            notifier=notifier,
        )
        with pytest.raises(StatementImportError):
            await flow.import_lines(ACCOUNT_ID, [decoded("A1"), decoded("A2")], USER_ID)
        assert await storage.list_statement_lines() == []


class TestImportFile:
    """Tests for parse + check + import."""

    @pytest.mark.asyncio
    async def test_import_file(self, flow, line_storage, audit_storage):
        result = await flow.import_file(
            OFX_CONTENT.encode("utf-8"),
            "extrato.ofx",
            account_id=ACCOUNT_ID,
            user_id=USER_ID,
            account_bank_name="Nubank",
        )
        assert result.inserted == 2

        stored = await line_storage.list_statement_lines(account_id=ACCOUNT_ID)
        salario = next(line for line in stored if line.external_id == "N2")
        assert salario.direction == StatementDirection.CREDIT
        assert salario.amount == Decimal("1500.00")

        event_types = [e.event_type for e in audit_storage.events]
        assert event_types == [AuditEventType.STATEMENT_PARSED, AuditEventType.STATEMENT_IMPORTED]
        assert len({e.correlation_id for e in audit_storage.events}) == 1

    @pytest.mark.asyncio
    async def test_bank_mismatch_warns_but_imports(self, flow, notifier):
        result = await flow.import_file(
            OFX_CONTENT,
            "extrato.ofx",
            account_id=ACCOUNT_ID,
            user_id=USER_ID,
            account_bank_name="Bradesco",
        )
        assert result.inserted == 2
        levels = [n.level for n in notifier.notifications]
        assert levels == ["warning", "success"]

    @pytest.mark.asyncio
    async def test_parse_failure(self, flow, notifier, audit_storage):
        with pytest.raises(ParseError):
            await flow.import_file("<OFX></OFX>", "extrato.ofx", ACCOUNT_ID, USER_ID)
        assert notifier.last.level == "error"
        assert audit_storage.events[-1].event_type == AuditEventType.STATEMENT_PARSE_FAILED
