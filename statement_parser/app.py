#!/usr/bin/env python3
"""
CLI interface for the template-driven bank statement parser.
"""
import json
import logging
import typer
import yaml
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .core.manager import TemplateManager
from .core.runner import StatementParserService, load_document
from .core.store import YamlTemplateStore

app = typer.Typer(help="Template-driven bank statement parser")
console = Console()


def _service(templates_dir: Optional[Path]) -> StatementParserService:
    return StatementParserService(YamlTemplateStore(templates_dir))


def _read_config(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text) or {}


TemplatesDir = typer.Option(None, "--templates-dir", help="Directory of template YAML files")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")):
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


@app.command()
def parse(
    statement_path: Path = typer.Argument(..., help="Path to statement PDF or CSV"),
    template: str = typer.Option(..., "--template", "-t", help="Template ID to use"),
    output: Optional[Path] = typer.Option(None, "--out", "-o", help="Output JSON file path"),
    password: Optional[str] = typer.Option(None, "--password", help="Password for encrypted PDFs"),
    templates_dir: Optional[Path] = TemplatesDir
):
    """Parse a bank statement into normalized transactions."""
    if not statement_path.exists():
        console.print(f"[red]Error: File not found: {statement_path}[/red]")
        raise typer.Exit(1)

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                  console=console, transient=True) as progress:
        progress.add_task("Parsing statement...", total=None)
        result = _service(templates_dir).parse_statement(
            load_document(statement_path, password), template
        )

    if not result.success:
        console.print(f"[red]Error parsing statement: {result.error}[/red]")
        raise typer.Exit(1)

    if output:
        output.write_text(result.model_dump_json(indent=2))
        console.print(f"[green]✓ Parsed {len(result.transactions)} transactions! Output written to: {output}[/green]")
    else:
        console.print(result.model_dump_json(indent=2))


@app.command()
def templates(
    bank: Optional[str] = typer.Option(None, "--bank", help="Filter by bank name"),
    format: Optional[str] = typer.Option(None, "--format", help="Filter by format (PDF or CSV)"),
    templates_dir: Optional[Path] = TemplatesDir
):
    """List available templates."""
    available = _service(templates_dir).get_available_templates(bank, format.upper() if format else None)

    table = Table(title="Templates")
    table.add_column("Identifier")
    table.add_column("Bank")
    table.add_column("Format")
    table.add_column("Parser")
    for t in available:
        table.add_row(t.identifier, t.bank_name, t.format, t.parser_module)
    console.print(table)


@app.command()
def validate(config_path: Path = typer.Argument(..., help="Template config (YAML or JSON)")):
    """Validate a template configuration file."""
    result = TemplateManager().validate_template(_read_config(config_path))
    if result.is_valid:
        console.print("[green]✓ Template is valid[/green]")
        return

    console.print("[red]Template is invalid:[/red]")
    for error in result.errors:
        console.print(f"  - {error}")
    raise typer.Exit(1)


@app.command("import")
def import_template(
    config_path: Path = typer.Argument(..., help="Template config (YAML or JSON)"),
    templates_dir: Optional[Path] = TemplatesDir
):
    """Validate and store a template configuration."""
    result = TemplateManager(_service(templates_dir)).import_template(_read_config(config_path))
    if not result.success:
        console.print("[red]Import failed:[/red]")
        for error in result.errors or []:
            console.print(f"  - {error}")
        raise typer.Exit(1)
    console.print("[green]✓ Template imported[/green]")


@app.command()
def export(
    identifier: str = typer.Argument(..., help="Template ID"),
    output: Optional[Path] = typer.Option(None, "--out", "-o", help="Output YAML file path"),
    templates_dir: Optional[Path] = TemplatesDir
):
    """Export a stored template configuration."""
    config = TemplateManager(_service(templates_dir)).export_template(identifier)
    if config is None:
        console.print(f"[red]Template not found: {identifier}[/red]")
        raise typer.Exit(1)

    text = yaml.safe_dump(config, sort_keys=False, allow_unicode=True)
    if output:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]✓ Template written to: {output}[/green]")
    else:
        console.print(text)


@app.command()
def test(
    identifier: str = typer.Argument(..., help="Template ID"),
    sample_path: Path = typer.Argument(..., help="Sample statement"),
    templates_dir: Optional[Path] = TemplatesDir
):
    """Run a template against a sample statement without saving results."""
    if not sample_path.exists():
        console.print(f"[red]Error: File not found: {sample_path}[/red]")
        raise typer.Exit(1)

    result = TemplateManager(_service(templates_dir)).test_template(identifier, load_document(sample_path))
    if result.success:
        console.print(f"[green]✓ {result.transaction_count} transactions extracted[/green]")
        return

    console.print("[red]Template test failed:[/red]")
    for error in result.errors or []:
        console.print(f"  - {error}")
    raise typer.Exit(1)


@app.command()
def overlay(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
    template: str = typer.Option(..., "--template", "-t", help="Template ID to use"),
    output_dir: Path = typer.Option(Path("overlay"), "--out", "-o", help="Directory for overlay images"),
    templates_dir: Optional[Path] = TemplatesDir
):
    """Render pages with resolved columns and rows drawn on top."""
    from .tools.debug_overlay import create_debug_overlay

    try:
        written = create_debug_overlay(pdf_path, template, output_dir, _service(templates_dir))
    except Exception as e:
        console.print(f"[red]Error creating overlay: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[blue]Debug overlay created in: {output_dir} ({len(written)} pages)[/blue]")


if __name__ == "__main__":
    app()
