"""
Pydantic models for bank statement templates and parsed transactions.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


TransactionType = Literal["income", "expense"]
TemplateFormat = Literal["PDF", "CSV"]


class ColumnBoundary(BaseModel):
    """A named horizontal interval on a page."""
    model_config = ConfigDict(frozen=True)

    label: str
    x_start: float
    width: float

    def interval(self, tolerance: float = 0) -> tuple:
        return (self.x_start - tolerance, self.x_start + self.width + tolerance)


class BoundarySet(BaseModel):
    """Column boundaries resolved for one page."""
    model_config = ConfigDict(frozen=True)

    positions: Dict[str, ColumnBoundary] = Field(default_factory=dict)
    header_y: float = float("inf")
    headers_found: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.positions


class ColumnPosition(BaseModel):
    """Template-supplied x/width override for a column."""
    x: float
    width: float = Field(ge=0)


class TypeMarkers(BaseModel):
    """Tokens marking a row as credit or debit."""
    credit: List[str] = Field(default_factory=lambda: ["CR"])
    debit: List[str] = Field(default_factory=lambda: ["DR"])


class AmountColumns(BaseModel):
    debit: str
    credit: str

    @property
    def is_single(self) -> bool:
        """Debit and credit share one column; sign comes from a type marker."""
        return self.debit == self.credit


class PdfParserConfig(BaseModel):
    """Parser configuration for table based PDF templates."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["table_based"] = "table_based"
    headers: List[str] = Field(min_length=1)
    date_column: str = Field(alias="dateColumn")
    date_format: str = Field("DD-MM-YYYY", alias="dateFormat")
    amount_columns: AmountColumns = Field(alias="amountColumns")
    type_column: Optional[str] = Field(None, alias="typeColumn")
    description_columns: List[str] = Field(alias="descriptionColumns", min_length=1)
    column_tolerance: float = Field(10, alias="columnTolerance", ge=0)
    row_tolerance: float = Field(5, alias="rowTolerance", ge=0)
    date_pattern: str = Field(r"(\d{2}-\d{2}-\d{4})", alias="datePattern")
    amount_clean_pattern: Optional[str] = Field(None, alias="amountCleanPattern")
    skip_header_lines: int = Field(1, alias="skipHeaderLines", ge=0)
    multi_line_description: bool = Field(False, alias="multiLineDescription")
    currency: str = "USD"
    column_adjustments: Dict[str, ColumnPosition] = Field(default_factory=dict, alias="columnAdjustments")
    default_boundaries: Dict[str, ColumnPosition] = Field(default_factory=dict, alias="defaultBoundaries")
    default_header_y: Optional[float] = Field(None, alias="defaultHeaderY")
    top_margin: Optional[float] = Field(None, alias="topMargin")
    type_markers: TypeMarkers = Field(default_factory=TypeMarkers, alias="typeMarkers")
    skip_patterns: List[str] = Field(default_factory=list, alias="skipPatterns")
    header_match_threshold: float = Field(100, alias="headerMatchThreshold", ge=0, le=100)

    @model_validator(mode="before")
    @classmethod
    def accept_singular_columns(cls, data: Any) -> Any:
        """Older templates name a single amount and description column."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "amountColumns" not in data and "amount_columns" not in data and data.get("amountColumn"):
            data["amountColumns"] = {"debit": data["amountColumn"], "credit": data["amountColumn"]}
        if "descriptionColumns" not in data and "description_columns" not in data and data.get("descriptionColumn"):
            data["descriptionColumns"] = [data["descriptionColumn"]]
        return data

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f"Currency must be a 3-letter ISO-4217 code: {v}")
        return v.upper()


class CsvColumns(BaseModel):
    date: int = Field(ge=0)
    description: int = Field(ge=0)
    amount: Optional[int] = Field(None, ge=0)
    type: Optional[int] = Field(None, ge=0)
    debit: Optional[int] = Field(None, ge=0)
    credit: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def require_amount(self):
        if self.amount is None and (self.debit is None or self.credit is None):
            raise ValueError("columns must map either amount or both debit and credit")
        return self


class CsvParserConfig(BaseModel):
    """Parser configuration for column based CSV templates."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["column_based"] = "column_based"
    columns: CsvColumns
    date_format: str = Field("MM/DD/YYYY", alias="dateFormat")
    has_header: bool = Field(True, alias="hasHeader")
    skip_lines: int = Field(0, alias="skipLines", ge=0)
    delimiter: str = ","
    text_qualifier: str = Field('"', alias="textQualifier")
    currency: str = "USD"
    type_markers: TypeMarkers = Field(default_factory=TypeMarkers, alias="typeMarkers")


class PendingTransaction(BaseModel):
    """A transaction being assembled from one or more rows."""
    model_config = ConfigDict(frozen=True)

    date: Optional[str] = None
    description: str = ""
    amount: Decimal = Decimal("0")
    type: Optional[TransactionType] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.date) and bool(self.description) and self.amount != 0


class Transaction(BaseModel):
    """Normalized transaction record."""
    model_config = ConfigDict(frozen=True)

    id: str
    date: str
    description: str
    amount: Decimal
    currency: str = "USD"
    type: TransactionType
    category: str = "Uncategorized"

    @field_validator("date")
    @classmethod
    def iso_date(cls, v: str) -> str:
        datetime.strptime(v, "%Y-%m-%d")
        return v

    @field_validator("amount")
    @classmethod
    def nonzero_amount(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("Transaction amount cannot be zero")
        return v


class Template(BaseModel):
    """A persisted per-institution parsing template."""
    identifier: str = Field(pattern=r"^[a-z0-9_]+$")
    bank_name: str = Field(min_length=1)
    format: TemplateFormat
    parser_module: str = Field(min_length=1)
    parser_config: Dict[str, Any]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_config(self) -> Dict[str, Any]:
        """Config shape accepted by the template manager."""
        return {
            "bank_name": self.bank_name,
            "format": self.format,
            "identifier": self.identifier,
            "parser_module": self.parser_module,
            "parser_config": self.parser_config,
        }


class StatementDocument(BaseModel):
    """Raw statement bytes plus the name it was uploaded under."""
    filename: str
    data: bytes
    password: Optional[str] = None


class ParseResult(BaseModel):
    success: bool
    transactions: List[Transaction] = Field(default_factory=list)
    error: Optional[str] = None


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)


class OperationResult(BaseModel):
    success: bool
    errors: Optional[List[str]] = None


class TemplateTestResult(BaseModel):
    success: bool
    transaction_count: int = 0
    errors: Optional[List[str]] = None
