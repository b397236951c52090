"""
Shared fixtures for statement parser tests.
"""
import shutil

import fitz  # PyMuPDF
import pytest

from statement_parser.core.loader import TextFragment
from statement_parser.core.registry import ParserRegistry
from statement_parser.core.runner import StatementParserService
from statement_parser.core.store import YamlTemplateStore, default_templates_dir
from statement_parser.models.schema import PdfParserConfig

# x positions the ICICI layout renders its columns at.
ICICI_X = {"Date": 90, "Description": 175, "Amount": 370, "Type": 440}
HEADER_Y = 700.0


class FakeLoader:
    """Loader stand-in serving pre-built fragments per page."""

    def __init__(self, pages):
        self.pages = pages
        self.opened_with = None

    def __call__(self, data, password=None):
        self.opened_with = (data, password)
        return self

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    @property
    def page_count(self):
        return len(self.pages)

    def extract_fragments(self, page_index):
        return self.pages[page_index]


@pytest.fixture
def icici_config():
    """Bundled ICICI parser config."""
    template = YamlTemplateStore().load_template("icici_pdf_v1")
    return PdfParserConfig.model_validate(template.parser_config)


@pytest.fixture
def dbs_config():
    """Bundled DBS parser config."""
    template = YamlTemplateStore().load_template("dbs_pdf_v1")
    return PdfParserConfig.model_validate(template.parser_config)


@pytest.fixture
def icici_header():
    return [TextFragment(label, x, HEADER_Y, width=40, height=8) for label, x in ICICI_X.items()]


@pytest.fixture
def icici_row():
    """Build the fragments of one ICICI table row; empty cells are omitted."""
    def build(y, date="", description="", amount="", marker=""):
        cells = {"Date": date, "Description": description, "Amount": amount, "Type": marker}
        return [
            TextFragment(text, ICICI_X[label], y, width=len(text) * 5, height=8)
            for label, text in cells.items() if text
        ]
    return build


@pytest.fixture
def fake_loader():
    return FakeLoader


@pytest.fixture
def templates_dir(tmp_path):
    """Writable copy of the bundled templates."""
    target = tmp_path / "templates"
    shutil.copytree(default_templates_dir(), target)
    return target


@pytest.fixture
def service(templates_dir):
    return StatementParserService(YamlTemplateStore(templates_dir), ParserRegistry())


def render_icici_statement() -> bytes:
    """Two page statement drawn with PyMuPDF at the ICICI column positions."""
    doc = fitz.open()

    page = doc.new_page(width=700, height=842)
    for text, x in (("Date", 90), ("Description", 175), ("Amount", 370), ("Type", 440)):
        page.insert_text((x, 100), text, fontsize=10)
    for text, x in (("12-06-2025", 90), ("UPI/Payment/SWIGGY", 175), ("90000.00", 370), ("DR", 440)):
        page.insert_text((x, 130), text, fontsize=10)
    for text, x in (("13-06-2025", 90), ("NEFT-ACME PAYROLL", 175)):
        page.insert_text((x, 160), text, fontsize=10)

    # Continuation page without a header row.
    page = doc.new_page(width=700, height=842)
    page.insert_text((480, 200), "52683.63", fontsize=10)
    page.insert_text((590, 200), "CR", fontsize=10)

    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def icici_pdf_bytes():
    return render_icici_statement()
