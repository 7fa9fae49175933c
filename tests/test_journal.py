"""Tests for journal entry service."""

import pytest
from datetime import date
from decimal import Decimal

from parkledger.domain.entities import EntryStatus, JournalLineInput
from parkledger.domain.errors import (
    ConflictError,
    InvalidStatusTransitionError,
    NotFoundError,
    OperationInProgressError,
    UnbalancedEntryError,
    ValidationError,
)
from parkledger.domain.journal import CATCH_UP_LOCK


def _add_transaction(temp_db, category, amount="100.00", txn_date=date(2025, 3, 15), transaction_type=None):
    if transaction_type is None:
        transaction_type = "income" if category.code.startswith("4") else "expense"
    return temp_db.create_transaction(
        transaction_type=transaction_type,
        amount=Decimal(amount),
        date=txn_date,
        category_id=category.id,
        description="Test",
    )


def _lines_by_code(entry, seeded_chart):
    codes = {acc.id: code for code, acc in seeded_chart.items()}
    return {codes[line.account_id]: (line.debit, line.credit) for line in entry.lines}


class TestAutomaticEntries:
    """Tests for entries generated from transactions."""

    def test_income_entry(self, temp_db, journal_service, seeded_chart):
        """Test that income debits cash and credits the revenue category."""
        txn_id = _add_transaction(temp_db, seeded_chart["401.01"], amount="1000.00")
        entry = journal_service.ensure_entry(txn_id)

        assert entry.status is EntryStatus.POSTED
        assert entry.posted_at is not None
        assert entry.source_transaction_id == txn_id
        assert entry.total_debit == entry.total_credit == Decimal("1000.00")
        assert entry.is_balanced
        assert _lines_by_code(entry, seeded_chart) == {
            "101.01": (Decimal("1000.00"), Decimal("0.00")),
            "401.01": (Decimal("0.00"), Decimal("1000.00")),
        }
        assert entry.description == "Ingreso: Test"
        assert temp_db.get_transaction(txn_id).journal_entry_id == entry.id

    def test_expense_entry(self, temp_db, journal_service, seeded_chart):
        """Test that expense debits the category and credits cash."""
        txn_id = _add_transaction(temp_db, seeded_chart["501.01"], amount="250.00")
        entry = journal_service.ensure_entry(txn_id)

        assert _lines_by_code(entry, seeded_chart) == {
            "501.01": (Decimal("250.00"), Decimal("0.00")),
            "101.01": (Decimal("0.00"), Decimal("250.00")),
        }
        assert entry.description.startswith("Gasto:")

    def test_every_line_has_one_side(self, temp_db, journal_service, seeded_chart):
        """Test that each line moves exactly one side."""
        txn_id = _add_transaction(temp_db, seeded_chart["501.02"], amount="75.50")
        entry = journal_service.ensure_entry(txn_id)

        assert len(entry.lines) == 2
        for line in entry.lines:
            assert (line.debit == 0) != (line.credit == 0)

    def test_entry_numbers_follow_month_sequence(self, temp_db, journal_service, seeded_chart):
        """Test entry numbering per month."""
        category = seeded_chart["401.01"]
        first = journal_service.ensure_entry(_add_transaction(temp_db, category))
        second = journal_service.ensure_entry(_add_transaction(temp_db, category))
        april = journal_service.ensure_entry(
            _add_transaction(temp_db, category, txn_date=date(2025, 4, 2))
        )

        assert first.entry_number == "AST-2025-03-0001"
        assert second.entry_number == "AST-2025-03-0002"
        assert april.entry_number == "AST-2025-04-0001"
        assert journal_service.next_entry_number(date(2025, 3, 31)) == "AST-2025-03-0003"

    def test_ensure_entry_is_idempotent(self, temp_db, journal_service, seeded_chart):
        """Test that repeated calls return the same entry."""
        txn_id = _add_transaction(temp_db, seeded_chart["401.01"])
        first = journal_service.ensure_entry(txn_id)
        second = journal_service.ensure_entry(txn_id)

        assert first.id == second.id
        assert temp_db.count_journal_entries() == 1

    def test_ensure_entry_restores_lost_link(self, temp_db, journal_service, seeded_chart):
        """Test that an entry whose back-reference was lost is relinked, not duplicated."""
        txn_id = _add_transaction(temp_db, seeded_chart["401.01"])
        entry = journal_service.ensure_entry(txn_id)
        temp_db.set_transaction_entry(txn_id, None)

        again = journal_service.ensure_entry(txn_id)
        assert again.id == entry.id
        assert temp_db.get_transaction(txn_id).journal_entry_id == entry.id
        assert temp_db.count_journal_entries() == 1

    def test_ensure_entry_regenerates_dangling_link(self, temp_db, journal_service, seeded_chart):
        """Test that a link to a missing entry is replaced."""
        txn_id = _add_transaction(temp_db, seeded_chart["401.01"])
        temp_db.set_transaction_entry(txn_id, 999)

        entry = journal_service.ensure_entry(txn_id)
        assert entry.id != 999
        assert temp_db.get_transaction(txn_id).journal_entry_id == entry.id

    def test_generate_entry_refuses_linked_transaction(self, temp_db, journal_service, seeded_chart):
        """Test that generate_entry never books a transaction twice."""
        txn_id = _add_transaction(temp_db, seeded_chart["401.01"])
        journal_service.ensure_entry(txn_id)

        with pytest.raises(ConflictError):
            journal_service.generate_entry(temp_db.get_transaction(txn_id))

    def test_failed_back_reference_leaves_no_entry(
        self, temp_db, journal_service, seeded_chart, monkeypatch
    ):
        """Test that header, lines and link are written together or not at all."""
        txn_id = _add_transaction(temp_db, seeded_chart["401.01"])

        def fail_link(transaction_id, entry_id):
            raise RuntimeError("link failed")

        monkeypatch.setattr(temp_db, "set_transaction_entry", fail_link)
        with pytest.raises(RuntimeError, match="link failed"):
            journal_service.generate_entry(temp_db.get_transaction(txn_id))

        assert temp_db.count_journal_entries() == 0
        assert temp_db.count_lines_for_account(seeded_chart["101.01"].id) == 0
        assert temp_db.get_transaction(txn_id).journal_entry_id is None

        monkeypatch.undo()
        entry = journal_service.ensure_entry(txn_id)
        assert entry.entry_number == "AST-2025-03-0001"

    def test_ensure_entry_unknown_transaction(self, journal_service, seeded_chart):
        """Test ensuring an entry for a missing transaction."""
        with pytest.raises(NotFoundError):
            journal_service.ensure_entry(999)


class TestCatchUp:
    """Tests for the catch-up job."""

    def test_catch_up_processes_oldest_first(self, temp_db, journal_service, seeded_chart):
        """Test that pending transactions are booked in date order."""
        late = _add_transaction(temp_db, seeded_chart["401.01"], txn_date=date(2025, 3, 20))
        early = _add_transaction(temp_db, seeded_chart["501.01"], txn_date=date(2025, 3, 5))

        result = journal_service.generate_automatic_entries_for_unprocessed()

        assert result.processed == 2
        assert len(result.succeeded) == 2
        assert result.failed == ()
        early_entry = temp_db.get_journal_entry(temp_db.get_transaction(early).journal_entry_id)
        late_entry = temp_db.get_journal_entry(temp_db.get_transaction(late).journal_entry_id)
        assert early_entry.entry_number == "AST-2025-03-0001"
        assert late_entry.entry_number == "AST-2025-03-0002"

    def test_catch_up_is_idempotent(self, temp_db, journal_service, seeded_chart):
        """Test that a second run finds nothing to do."""
        _add_transaction(temp_db, seeded_chart["401.01"])
        _add_transaction(temp_db, seeded_chart["501.01"])

        journal_service.generate_automatic_entries_for_unprocessed()
        second = journal_service.generate_automatic_entries_for_unprocessed()

        assert second.processed == 0
        assert temp_db.count_journal_entries() == 2

    def test_catch_up_isolates_failures(self, temp_db, journal_service, seeded_chart):
        """Test that one failing transaction does not stop the batch."""
        good = _add_transaction(temp_db, seeded_chart["401.01"])
        bad = _add_transaction(temp_db, seeded_chart["401.01"], amount="0.00")
        other = _add_transaction(temp_db, seeded_chart["501.01"])

        result = journal_service.generate_automatic_entries_for_unprocessed()

        assert result.processed == 3
        assert len(result.succeeded) == 2
        assert [failure.transaction_id for failure in result.failed] == [bad]
        assert "greater than zero" in result.failed[0].message
        assert temp_db.get_transaction(good).journal_entry_id is not None
        assert temp_db.get_transaction(other).journal_entry_id is not None
        assert temp_db.get_transaction(bad).journal_entry_id is None

    def test_catch_up_respects_limit(self, temp_db, journal_service, seeded_chart):
        """Test the batch size limit."""
        for _ in range(3):
            _add_transaction(temp_db, seeded_chart["401.01"])

        assert journal_service.generate_automatic_entries_for_unprocessed(limit=2).processed == 2
        assert journal_service.generate_automatic_entries_for_unprocessed(limit=2).processed == 1

    def test_catch_up_refuses_concurrent_run(self, temp_db, journal_service, locks, seeded_chart):
        """Test that a held lock stops a second run."""
        _add_transaction(temp_db, seeded_chart["401.01"])

        with locks.hold(CATCH_UP_LOCK):
            with pytest.raises(OperationInProgressError):
                journal_service.generate_automatic_entries_for_unprocessed()

        assert not locks.is_held(CATCH_UP_LOCK)
        assert journal_service.generate_automatic_entries_for_unprocessed().processed == 1


class TestManualEntries:
    """Tests for hand-built entries and their lifecycle."""

    def _lines(self, seeded_chart, debit="500.00", credit="500.00"):
        return [
            JournalLineInput(account_id=seeded_chart["101.02"].id, debit=Decimal(debit)),
            JournalLineInput(account_id=seeded_chart["101.01"].id, credit=Decimal(credit)),
        ]

    def test_create_manual_entry_is_draft(self, journal_service, seeded_chart):
        """Test that manual entries start as drafts."""
        entry = journal_service.create_manual_entry(
            date(2025, 3, 1), "Depósito bancario", self._lines(seeded_chart), reference="DEP-1"
        )

        assert entry.status is EntryStatus.DRAFT
        assert entry.posted_at is None
        assert entry.source_transaction_id is None
        assert entry.reference == "DEP-1"
        assert entry.total_debit == Decimal("500.00")
        assert entry.entry_number == "AST-2025-03-0001"

    def test_unbalanced_entry(self, temp_db, journal_service, seeded_chart):
        """Test that unbalanced entries are rejected and nothing is stored."""
        with pytest.raises(UnbalancedEntryError, match="not balanced"):
            journal_service.create_manual_entry(
                date(2025, 3, 1), "Descuadre", self._lines(seeded_chart, credit="499.99")
            )
        assert temp_db.count_journal_entries() == 0

    def test_line_shape_validation(self, journal_service, seeded_chart):
        """Test line rules: two lines minimum, one side each, no negatives."""
        cash = seeded_chart["101.01"].id
        bank = seeded_chart["101.02"].id

        with pytest.raises(ValidationError, match="at least two lines"):
            journal_service.create_manual_entry(
                date(2025, 3, 1), "Una línea", [JournalLineInput(account_id=cash, debit=Decimal("1"))]
            )
        with pytest.raises(ValidationError, match="exactly one"):
            journal_service.create_manual_entry(
                date(2025, 3, 1),
                "Ambos lados",
                [
                    JournalLineInput(account_id=cash, debit=Decimal("1"), credit=Decimal("1")),
                    JournalLineInput(account_id=bank, debit=Decimal("1"), credit=Decimal("1")),
                ],
            )
        with pytest.raises(ValidationError, match="exactly one"):
            journal_service.create_manual_entry(
                date(2025, 3, 1),
                "Vacía",
                [JournalLineInput(account_id=cash), JournalLineInput(account_id=bank)],
            )
        with pytest.raises(ValidationError, match="negative"):
            journal_service.create_manual_entry(
                date(2025, 3, 1),
                "Negativa",
                [
                    JournalLineInput(account_id=cash, debit=Decimal("-5")),
                    JournalLineInput(account_id=bank, credit=Decimal("-5")),
                ],
            )

    @pytest.mark.parametrize("amount", ["NaN", "Infinity"])
    def test_non_finite_amounts(self, temp_db, journal_service, seeded_chart, amount):
        """Test that non-finite line amounts are validation errors."""
        with pytest.raises(ValidationError, match="Line 1"):
            journal_service.create_manual_entry(
                date(2025, 3, 1), "Inválida", self._lines(seeded_chart, debit=amount)
            )
        assert temp_db.count_journal_entries() == 0

    def test_unknown_and_inactive_accounts(self, chart_service, journal_service, seeded_chart):
        """Test that lines must name active accounts."""
        cash = seeded_chart["101.01"].id
        with pytest.raises(NotFoundError, match="Line 2"):
            journal_service.create_manual_entry(
                date(2025, 3, 1),
                "Cuenta inexistente",
                [
                    JournalLineInput(account_id=cash, debit=Decimal("5")),
                    JournalLineInput(account_id=999, credit=Decimal("5")),
                ],
            )

        chart_service.deactivate_account(seeded_chart["102.03"].id)
        with pytest.raises(ValidationError, match="inactive"):
            journal_service.create_manual_entry(
                date(2025, 3, 1),
                "Cuenta inactiva",
                [
                    JournalLineInput(account_id=seeded_chart["102.03"].id, debit=Decimal("5")),
                    JournalLineInput(account_id=cash, credit=Decimal("5")),
                ],
            )

    def test_blank_description(self, journal_service, seeded_chart):
        """Test that manual entries need a description."""
        with pytest.raises(ValidationError, match="description"):
            journal_service.create_manual_entry(date(2025, 3, 1), "  ", self._lines(seeded_chart))

    def test_status_transitions(self, journal_service, seeded_chart):
        """Test draft -> approved -> posted."""
        entry = journal_service.create_manual_entry(
            date(2025, 3, 1), "Depósito", self._lines(seeded_chart)
        )

        with pytest.raises(InvalidStatusTransitionError):
            journal_service.post_entry(entry.id)

        approved = journal_service.approve_entry(entry.id)
        assert approved.status is EntryStatus.APPROVED
        with pytest.raises(InvalidStatusTransitionError):
            journal_service.approve_entry(entry.id)

        posted = journal_service.post_entry(entry.id)
        assert posted.status is EntryStatus.POSTED
        assert posted.posted_at is not None
        with pytest.raises(InvalidStatusTransitionError, match="'posted' to 'posted'"):
            journal_service.post_entry(entry.id)

    def test_transition_unknown_entry(self, journal_service):
        """Test approving a missing entry."""
        with pytest.raises(NotFoundError):
            journal_service.approve_entry(999)

    def test_list_entries_by_status(self, temp_db, journal_service, seeded_chart):
        """Test listing filters."""
        journal_service.create_manual_entry(date(2025, 3, 1), "Depósito", self._lines(seeded_chart))
        journal_service.ensure_entry(_add_transaction(temp_db, seeded_chart["401.01"]))

        assert len(journal_service.list_entries()) == 2
        assert [e.status for e in journal_service.list_entries(status="draft")] == [EntryStatus.DRAFT]
        assert len(journal_service.list_entries(status=EntryStatus.POSTED)) == 1
        assert journal_service.list_entries(start_date=date(2025, 4, 1)) == []


class TestReversal:
    """Tests for reversing posted entries."""

    def test_reverse_swaps_sides(self, temp_db, journal_service, seeded_chart):
        """Test that a reversal offsets the original entry."""
        txn_id = _add_transaction(temp_db, seeded_chart["501.01"], amount="250.00")
        original = journal_service.ensure_entry(txn_id)

        reversal = journal_service.reverse_entry(original.id, reversal_date=date(2025, 3, 31))

        assert reversal.status is EntryStatus.POSTED
        assert reversal.reference == original.entry_number
        assert reversal.description.startswith(f"Reversa de {original.entry_number}")
        assert reversal.source_transaction_id is None
        assert _lines_by_code(reversal, seeded_chart) == {
            "501.01": (Decimal("0.00"), Decimal("250.00")),
            "101.01": (Decimal("250.00"), Decimal("0.00")),
        }
        # The original stays as it was
        assert journal_service.get_entry(original.id).status is EntryStatus.POSTED

    def test_reverse_requires_posted(self, journal_service, seeded_chart):
        """Test that drafts cannot be reversed."""
        entry = journal_service.create_manual_entry(
            date(2025, 3, 1),
            "Borrador",
            [
                JournalLineInput(account_id=seeded_chart["101.02"].id, debit=Decimal("5")),
                JournalLineInput(account_id=seeded_chart["101.01"].id, credit=Decimal("5")),
            ],
        )
        with pytest.raises(InvalidStatusTransitionError, match="Only posted"):
            journal_service.reverse_entry(entry.id)


class TestIntegrationStats:
    """Tests for linkage statistics."""

    def test_stats(self, temp_db, journal_service, seeded_chart):
        """Test counts of linked transactions and entries."""
        journal_service.ensure_entry(_add_transaction(temp_db, seeded_chart["401.01"]))
        _add_transaction(temp_db, seeded_chart["401.02"])
        journal_service.ensure_entry(_add_transaction(temp_db, seeded_chart["501.01"]))
        journal_service.create_manual_entry(
            date(2025, 3, 1),
            "Depósito",
            [
                JournalLineInput(account_id=seeded_chart["101.02"].id, debit=Decimal("5")),
                JournalLineInput(account_id=seeded_chart["101.01"].id, credit=Decimal("5")),
            ],
        )

        stats = journal_service.integration_stats()
        assert stats.income_total == 2
        assert stats.income_linked == 1
        assert stats.expense_total == 1
        assert stats.expense_linked == 1
        assert stats.entries_total == 3
        assert stats.entries_automatic == 2
        assert stats.pending == 1
