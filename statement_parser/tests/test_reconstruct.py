"""
Tests for the row-to-transaction fold.
"""
from decimal import Decimal

from statement_parser.core.columns import resolve_boundaries
from statement_parser.core.reconstruct import (
    ReconstructionState, RowValues, assign_columns, extract_row_values,
    finish, fold_rows, step, to_transaction
)
from statement_parser.core.loader import TextFragment
from statement_parser.core.rows import Row, group_rows
from statement_parser.models.schema import PendingTransaction


def _values(date=None, description="", amount="0", marker=None, inferred=None, amount_text=""):
    return RowValues(date, description, Decimal(amount), amount_text, marker, inferred)


def _fold(fragments, config, state=None):
    boundaries = resolve_boundaries(fragments, config)
    rows = group_rows(fragments, boundaries.header_y, config.row_tolerance)
    return fold_rows(rows, boundaries, config, state)


class TestStep:

    def test_date_and_description_open_pending(self):
        pending, emitted = step(None, _values("2025-06-12", "UPI", "100", marker="expense"), False)
        assert emitted is None
        assert pending.amount == Decimal("-100")
        assert pending.type == "expense"

    def test_new_date_row_emits_completed_pending(self):
        previous = PendingTransaction(date="2025-06-01", description="A", amount=Decimal("5"), type="income")
        pending, emitted = step(previous, _values("2025-06-02", "B"), False)
        assert emitted is previous
        assert pending.description == "B"

    def test_new_date_row_discards_amountless_pending(self):
        previous = PendingTransaction(date="2025-06-01", description="A")
        pending, emitted = step(previous, _values("2025-06-02", "B"), False)
        assert emitted is None
        assert pending.description == "B"

    def test_amount_row_completes_pending(self):
        previous = PendingTransaction(date="2025-06-01", description="NEFT")
        pending, emitted = step(previous, _values(amount="52683.63", marker="income"), False)
        assert emitted is None
        assert pending.amount == Decimal("52683.63")
        assert pending.type == "income"

    def test_amount_row_sign_falls_back_to_pending_type(self):
        previous = PendingTransaction(date="2025-06-01", description="NEFT", type="expense")
        pending, _ = step(previous, _values(amount="10", inferred="income"), False)
        assert pending.amount == Decimal("-10")

    def test_orphan_amount_dropped(self):
        pending, emitted = step(None, _values(amount="10", marker="expense"), True)
        assert pending is None and emitted is None

    def test_amount_after_completion_dropped(self):
        previous = PendingTransaction(date="2025-06-01", description="A", amount=Decimal("-5"), type="expense")
        pending, emitted = step(previous, _values(amount="99", marker="income"), True)
        assert pending is previous
        assert emitted is None

    def test_continuation_only_in_multi_line_mode(self):
        previous = PendingTransaction(date="2025-06-01", description="NEFT-ACME")
        joined, _ = step(previous, _values(description="PAYROLL JUNE"), True)
        assert joined.description == "NEFT-ACME PAYROLL JUNE"

        unchanged, _ = step(previous, _values(description="PAYROLL JUNE"), False)
        assert unchanged is previous

    def test_amount_row_text_joins_description_in_multi_line_mode(self):
        previous = PendingTransaction(date="2025-06-01", description="NEFT")
        values = _values(amount="10", marker="income", description="REF 123", amount_text="10.00")

        joined, _ = step(previous, values, True)
        assert joined.description == "NEFT REF 123"
        assert joined.amount == Decimal("10")

        single, _ = step(previous, values, False)
        assert single.description == "NEFT"
        assert single.amount == Decimal("10")

    def test_date_without_description_skipped(self):
        previous = PendingTransaction(date="2025-06-01", description="A")
        pending, emitted = step(previous, _values("2025-06-02", ""), True)
        assert pending is previous and emitted is None


class TestRowValues:

    def test_explicit_marker_wins_over_suffix(self, icici_config, icici_header, icici_row):
        boundaries = resolve_boundaries(icici_header, icici_config)
        row = Row(650, icici_row(650, "07-06-2025", "REFUND DR", "12.00", "CR"))
        values = extract_row_values(assign_columns(row, boundaries, icici_config.column_tolerance), icici_config)

        assert values.type == "income"
        assert values.description == "REFUND"

    def test_suffix_marker_when_type_column_empty(self, icici_config, icici_header, icici_row):
        boundaries = resolve_boundaries(icici_header, icici_config)
        row = Row(650, icici_row(650, "07-06-2025", "NEFT-ACME CR", "12.00"))
        values = extract_row_values(assign_columns(row, boundaries, icici_config.column_tolerance), icici_config)

        assert values.marker_type is None
        assert values.type == "income"
        assert values.description == "NEFT-ACME"

    def test_out_of_range_fragments_are_unassigned(self, icici_config, icici_header):
        boundaries = resolve_boundaries(icici_header, icici_config)
        assigned = assign_columns(Row(650, [TextFragment("far right", 900, 650)]), boundaries, 15)
        assert assigned["Unassigned"] == "far right"


class TestFoldRows:

    def test_scenario_a_debit_row(self, icici_config, icici_header, icici_row):
        fragments = icici_header + icici_row(680, "12-06-2025", "UPI/Payment.../", "90000.00", "DR")
        transactions = finish(_fold(fragments, icici_config))

        assert len(transactions) == 1
        assert transactions[0].date == "2025-06-12"
        assert transactions[0].amount == Decimal("-90000.00")
        assert transactions[0].type == "expense"

    def test_scenario_b_credit_row(self, icici_config, icici_header, icici_row):
        fragments = icici_header + icici_row(680, "07-06-2025", "NEFT-.../", "52683.63", "CR")
        [txn] = finish(_fold(fragments, icici_config))

        assert txn.date == "2025-06-07"
        assert txn.amount == Decimal("52683.63")
        assert txn.type == "income"

    def test_two_row_split_merges_once(self, icici_config, icici_header, icici_row):
        fragments = (
            icici_header
            + icici_row(680, "07-06-2025", "NEFT-ACME")
            + icici_row(665, amount="500.00", marker="CR")
            + icici_row(650, amount="75.00", marker="DR")
        )
        transactions = finish(_fold(fragments, icici_config))

        assert [(t.description, t.amount) for t in transactions] == [("NEFT-ACME", Decimal("500.00"))]

    def test_orphan_amount_row_absent(self, icici_config, icici_header, icici_row):
        fragments = icici_header + icici_row(680, amount="75.00", marker="DR")
        assert finish(_fold(fragments, icici_config)) == []

    def test_zero_amount_pending_never_emitted(self, icici_config, icici_header, icici_row):
        fragments = (
            icici_header
            + icici_row(680, "01-06-2025", "A", "10.00", "DR")
            + icici_row(665, "02-06-2025", "NO AMOUNT")
        )
        transactions = finish(_fold(fragments, icici_config))
        assert [t.description for t in transactions] == ["A"]

    def test_invalid_date_degrades_to_no_date(self, icici_config, icici_header, icici_row):
        fragments = icici_header + icici_row(680, "31-02-2025", "BAD DATE", "10.00", "DR")
        assert finish(_fold(fragments, icici_config)) == []

    def test_repeated_header_and_footer_rows_skipped(self, icici_config, icici_header, icici_row):
        repeated = [TextFragment(f.text, f.x, 665, f.width, f.height) for f in icici_header]
        footer = icici_row(640, description="This is a system-generated statement")
        fragments = (
            icici_header
            + icici_row(680, "01-06-2025", "NEFT-ACME")
            + repeated
            + footer
            + icici_row(620, amount="10.00", marker="CR")
        )
        [txn] = finish(_fold(fragments, icici_config))
        assert txn.description == "NEFT-ACME"

    def test_state_carries_between_pages(self, icici_config, icici_header, icici_row):
        first = _fold(icici_header + icici_row(680, "01-06-2025", "NEFT-ACME"), icici_config)
        assert first.pending is not None and first.emitted == ()

        # Continuation page without a header row: the default boundaries apply.
        continuation = [TextFragment("10.00", 480, 650), TextFragment("CR", 590, 650)]
        second = _fold(continuation, icici_config, first)

        [txn] = finish(second)
        assert txn.description == "NEFT-ACME"
        assert txn.amount == Decimal("10.00")
        assert txn.type == "income"

    def test_fold_is_pure(self, icici_config, icici_header, icici_row):
        fragments = icici_header + icici_row(680, "12-06-2025", "UPI", "1.00", "DR")
        state = ReconstructionState()
        _fold(fragments, icici_config, state)
        assert state.pending is None and state.emitted == ()


class TestToTransaction:

    def test_unknown_type_defaults_to_expense(self):
        txn = to_transaction(PendingTransaction(date="2025-06-01", description="A", amount=Decimal("3")), "INR")
        assert txn.type == "expense"
        assert txn.amount == Decimal("-3")
        assert txn.currency == "INR"
        assert txn.category == "Uncategorized"
        assert txn.id.startswith("txn-")
