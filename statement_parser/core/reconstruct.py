"""
Transaction reconstruction from ordered table rows.

Rows are folded into transactions with a single piece of state, the
pending transaction. A row carrying a date and a description opens a new
pending transaction (emitting the previous one if it has an amount); rows
without a date either supply the missing amount, continue the description,
or are dropped. The fold is pure: callers thread ``ReconstructionState``
from page to page and call ``finish`` once at the end of the document.
"""
import uuid
from decimal import Decimal
from typing import Dict, List, NamedTuple, Optional, Tuple
from pydantic import BaseModel, ConfigDict
import logging

from .normalize import (
    extract_date, marker_type, normalize_money, normalize_text,
    signed_amount, strip_suffix_marker, suffix_type
)
from .rows import Row
from ..models.schema import BoundarySet, PdfParserConfig, PendingTransaction, Transaction

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"
DEFAULT_TYPE = "expense"


class RowValues(NamedTuple):
    """Candidate transaction fields read from one row."""
    date: Optional[str]
    description: str
    amount: Decimal
    amount_text: str
    marker_type: Optional[str]
    inferred_type: Optional[str]

    @property
    def type(self) -> Optional[str]:
        return self.marker_type or self.inferred_type


class ReconstructionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    pending: Optional[PendingTransaction] = None
    emitted: Tuple[PendingTransaction, ...] = ()


def assign_columns(row: Row, boundaries: BoundarySet, tolerance: float) -> Dict[str, str]:
    """
    Assign each fragment to the first column whose interval contains its x.

    Fragments outside every interval land in the ``Unassigned`` bucket.
    """
    parts: Dict[str, List[str]] = {UNASSIGNED: []}

    for fragment in row.fragments:
        column = UNASSIGNED
        for label, boundary in boundaries.positions.items():
            start, end = boundary.interval(tolerance)
            if start <= fragment.x <= end:
                column = label
                break
        parts.setdefault(column, []).append(fragment.text)

    return {label: normalize_text(" ".join(texts)) for label, texts in parts.items()}


def _description(assigned: Dict[str, str], config: PdfParserConfig) -> str:
    labels = list(config.description_columns)
    if UNASSIGNED not in labels:
        labels.append(UNASSIGNED)
    return normalize_text(" ".join(assigned.get(label, "") for label in labels))


def _amount(assigned: Dict[str, str], config: PdfParserConfig) -> Tuple[Decimal, str, Optional[str]]:
    """Amount magnitude, its source text, and the type implied by its column."""
    columns = config.amount_columns
    clean = config.amount_clean_pattern

    if columns.is_single:
        text = assigned.get(columns.debit, "")
        return normalize_money(text, clean), text, None

    credit_text = assigned.get(columns.credit, "")
    credit = normalize_money(credit_text, clean)
    if credit > 0:
        return credit, credit_text, "income"

    debit_text = assigned.get(columns.debit, "")
    debit = normalize_money(debit_text, clean)
    if debit > 0:
        return debit, debit_text, "expense"

    return Decimal("0"), "", None


def extract_row_values(assigned: Dict[str, str], config: PdfParserConfig) -> RowValues:
    """
    Read date, description, amount and type from assigned column text.

    The type comes from the first of: an explicit marker in the type
    column, the debit/credit column the amount sat in, a marker trailing
    the description.
    """
    markers = config.type_markers
    date = extract_date(assigned.get(config.date_column, ""), config.date_pattern, config.date_format)
    description = _description(assigned, config)
    amount, amount_text, placement_type = _amount(assigned, config)

    explicit = None
    if config.type_column:
        explicit = marker_type(assigned.get(config.type_column, ""), markers.credit, markers.debit)

    inferred = suffix_type(description, markers.credit, markers.debit)
    if inferred:
        description = strip_suffix_marker(description, markers.credit, markers.debit)

    return RowValues(
        date=date,
        description=description,
        amount=amount,
        amount_text=amount_text,
        marker_type=explicit or placement_type,
        inferred_type=inferred
    )


def step(pending: Optional[PendingTransaction], values: RowValues,
         multi_line: bool) -> Tuple[Optional[PendingTransaction], Optional[PendingTransaction]]:
    """
    Apply one row to the pending transaction.

    Returns:
        (new pending, transaction finished by this row or None)
    """
    if values.date and values.description:
        emitted = None
        if pending is not None and pending.amount != 0:
            emitted = pending
        elif pending is not None:
            logger.debug(f"Discarding pending without amount: {pending.description[:40]}")

        txn_type = values.type
        opened = PendingTransaction(
            date=values.date,
            description=values.description,
            amount=signed_amount(values.amount, txn_type),
            type=txn_type
        )
        return opened, emitted

    if values.date:
        logger.debug("Row has a date but no description, skipping")
        return pending, None

    if values.amount != 0:
        if pending is None:
            logger.debug(f"Amount {values.amount} without pending transaction, skipping")
            return pending, None
        if pending.amount != 0:
            logger.debug(f"Amount {values.amount} after completed transaction, skipping")
            return pending, None

        txn_type = values.marker_type or pending.type or values.inferred_type
        description = pending.description
        if multi_line:
            residual = values.description
            if values.amount_text:
                residual = normalize_text(residual.replace(values.amount_text, ""))
            if residual and residual != values.amount_text.strip():
                description = f"{description} {residual}"

        completed = pending.model_copy(update={
            "amount": signed_amount(values.amount, txn_type),
            "type": txn_type,
            "description": description
        })
        return completed, None

    if values.description and pending is not None and multi_line:
        return pending.model_copy(update={
            "description": f"{pending.description} {values.description}"
        }), None

    return pending, None


def should_skip_row(text: str, config: PdfParserConfig) -> bool:
    """Repeated header lines and template-listed footer text."""
    lowered = text.lower()
    if all(label.lower() in lowered for label in config.headers):
        return True
    return any(pattern.lower() in lowered for pattern in config.skip_patterns)


def fold_rows(rows: List[Row], boundaries: BoundarySet, config: PdfParserConfig,
              state: Optional[ReconstructionState] = None,
              skip_leading: int = 0) -> ReconstructionState:
    """
    Fold a page's rows into the reconstruction state.

    Args:
        rows: Rows of one page, top to bottom
        boundaries: Column boundaries for the page
        config: PDF parser configuration
        state: State carried from the previous page
        skip_leading: Number of leading rows to ignore (header continuation)

    Returns:
        New ReconstructionState
    """
    state = state or ReconstructionState()
    pending = state.pending
    emitted = list(state.emitted)

    for index, row in enumerate(rows):
        text = row.text
        if not text or index < skip_leading:
            continue
        if should_skip_row(text, config):
            logger.debug(f"Skipping header/footer row: {text[:60]}")
            continue

        assigned = assign_columns(row, boundaries, config.column_tolerance)
        values = extract_row_values(assigned, config)
        pending, finished = step(pending, values, config.multi_line_description)
        if finished is not None:
            emitted.append(finished)

    return ReconstructionState(pending=pending, emitted=tuple(emitted))


def finish(state: ReconstructionState) -> List[PendingTransaction]:
    """Flush the state at end of document; an amount-less pending is dropped."""
    results = list(state.emitted)
    if state.pending is not None:
        if state.pending.amount != 0:
            results.append(state.pending)
        else:
            logger.debug("Discarding incomplete final transaction (missing amount)")
    return results


def to_transaction(pending: PendingTransaction, currency: str) -> Transaction:
    """Finalize a completed pending transaction."""
    txn_type = pending.type or DEFAULT_TYPE
    return Transaction(
        id=f"txn-{uuid.uuid4().hex}",
        date=pending.date,
        description=pending.description,
        amount=signed_amount(pending.amount, txn_type),
        currency=currency,
        type=txn_type
    )
