"""
Column based CSV statement parser.
"""
import io
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

import pandas as pd

from ..core.errors import ExtractionError
from ..core.normalize import marker_type, normalize_date, normalize_money, normalize_text
from ..core.reconstruct import to_transaction
from ..models.schema import CsvParserConfig, PendingTransaction, StatementDocument, Transaction

logger = logging.getLogger(__name__)


class ColumnCsvParser:
    """Reads transactions from fixed column positions of a CSV export."""

    def __init__(self, config: CsvParserConfig):
        self.config = config

    def _read(self, data: bytes) -> pd.DataFrame:
        try:
            return pd.read_csv(
                io.BytesIO(data),
                sep=self.config.delimiter,
                quotechar=self.config.text_qualifier,
                header=None,
                skiprows=self.config.skip_lines + (1 if self.config.has_header else 0),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding="utf-8-sig"
            )
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ExtractionError(f"Could not read CSV document: {e}") from e

    def _cell(self, row: List[str], index: Optional[int]) -> str:
        if index is None or index >= len(row):
            return ""
        return normalize_text(row[index])

    def _amount_and_type(self, row: List[str]):
        columns = self.config.columns
        markers = self.config.type_markers

        if columns.amount is not None:
            text = self._cell(row, columns.amount)
            amount = normalize_money(text)
            if columns.type is not None:
                return amount, marker_type(self._cell(row, columns.type), markers.credit, markers.debit)
            # Signed single column: negative amounts are debits.
            return amount, "expense" if text.startswith(("-", "(")) else "income"

        credit = normalize_money(self._cell(row, columns.credit))
        if credit > 0:
            return credit, "income"
        debit = normalize_money(self._cell(row, columns.debit))
        if debit > 0:
            return debit, "expense"
        return Decimal("0"), None

    def parse(self, document: StatementDocument) -> List[Transaction]:
        """
        Parse a CSV statement.

        Rows without a valid date, a description and a nonzero amount are
        dropped.
        """
        frame = self._read(document.data)
        transactions = []

        for position, values in enumerate(frame.itertuples(index=False, name=None), 1):
            row = list(values)
            date = normalize_date(self._cell(row, self.config.columns.date), self.config.date_format)
            description = self._cell(row, self.config.columns.description)
            amount, txn_type = self._amount_and_type(row)

            if not date or not description or amount == 0:
                logger.debug(f"CSV row {position} incomplete, skipping")
                continue

            pending = PendingTransaction(date=date, description=description, amount=amount, type=txn_type)
            transactions.append(to_transaction(pending, self.config.currency))

        logger.info(f"Extracted {len(transactions)} transactions from {len(frame)} CSV rows")
        return transactions


def create_parser(config: Dict[str, Any]) -> ColumnCsvParser:
    """Build a parser from a template's parser_config."""
    return ColumnCsvParser(CsvParserConfig.model_validate(config))
