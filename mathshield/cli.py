"""
Command-line interface for mathshield.

Provides commands for:
- Listing the math spans found in a document
- Showing the token-substituted text and the vault
- Rendering markdown to HTML with math shielded from the renderer

Usage:
    mathshield scan --input notes.md
    mathshield protect --text 'Einstein: $E=mc^2$' --id sess1
    mathshield render --input notes.md --output notes.html --assets
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import markdown
import typer
from rich.console import Console
from rich.table import Table

from mathshield import __version__
from mathshield.config import load_config
from mathshield.engine import MathJax
from mathshield.errors import MathShieldError
from mathshield.pipeline import ContentPipeline, Page
from mathshield.scanner import scan as scan_text

app = typer.Typer(
    name="mathshield",
    help="mathshield: protect TeX math from markdown and other text filters",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"mathshield v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Enable debug logging",
    ),
):
    """mathshield: protect/restore math around text transformations."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _read_input(input_text: Optional[str], input_file: Optional[Path]) -> str:
    if input_text is not None:
        return input_text
    if input_file is None:
        console.print("[red]Error:[/] Provide either --text or --input", style="bold")
        raise typer.Exit(1)
    if not input_file.exists():
        console.print(f"[red]Error:[/] File not found: {input_file}", style="bold")
        raise typer.Exit(1)
    return input_file.read_text(encoding="utf-8")


def _preview(text: str, limit: int = 40) -> str:
    flat = text.replace("\n", "⏎")
    return flat if len(flat) <= limit else flat[: limit - 1] + "…"


@app.command()
def scan(
    input_text: Optional[str] = typer.Option(
        None, "--text", "-t",
        help="Text to scan",
    ),
    input_file: Optional[Path] = typer.Option(
        None, "--input", "-i",
        help="Input file",
    ),
):
    """List the math spans found in a document."""
    text = _read_input(input_text, input_file)
    spans = scan_text(text)

    if not spans:
        console.print("[yellow]No math found.[/]")
        return

    table = Table(title=f"Math spans ({len(spans)})")
    table.add_column("Start", justify="right", style="dim")
    table.add_column("End", justify="right", style="dim")
    table.add_column("Category", style="cyan")
    table.add_column("Rule", style="magenta")
    table.add_column("Source", style="green")
    for span in spans:
        table.add_row(str(span.start), str(span.end), span.category.value, span.rule, _preview(span.raw_text))
    console.print(table)


@app.command()
def protect(
    input_text: Optional[str] = typer.Option(
        None, "--text", "-t",
        help="Text to protect",
    ),
    input_file: Optional[Path] = typer.Option(
        None, "--input", "-i",
        help="Input file",
    ),
    doc_id: Optional[str] = typer.Option(
        None, "--id",
        help="Stable document id used as session id",
    ),
    renderer: str = typer.Option(
        "span", "--renderer", "-r",
        help="Renderer mode (identity, span, span-escaped)",
    ),
    show_vault: bool = typer.Option(
        True, "--vault/--no-vault",
        help="Show the stored payloads",
    ),
):
    """Show the token-substituted text of a document."""
    text = _read_input(input_text, input_file)
    try:
        engine = MathJax(renderer=renderer)
        protected = engine.protect(text, doc_id)
    except (MathShieldError, ValueError) as e:
        console.print(f"[red]Error:[/] {e}", style="bold")
        raise typer.Exit(1)

    console.print(protected, markup=False, highlight=False, soft_wrap=True)

    if show_vault and engine.modified():
        table = Table(title=f"Vault (session {engine.session_id})")
        table.add_column("Token", style="cyan")
        table.add_column("Rendered", style="green")
        table.add_column("Raw", style="dim")
        for token, record in engine.vault.items():
            table.add_row(token, _preview(record.rendered, 60), _preview(record.raw))
        console.print(table)


@app.command()
def render(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Markdown input file",
    ),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o",
        help="Output HTML file (prints to stdout if omitted)",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c",
        help="JSON configuration file",
    ),
    smarty: bool = typer.Option(
        True, "--smarty/--no-smarty",
        help="Apply SmartyPants punctuation",
    ),
    representation: Optional[str] = typer.Option(
        None, "--representation",
        help="Restore 'rendered' markup or 'raw' source",
    ),
    show_assets: bool = typer.Option(
        False, "--assets",
        help="List the assets the page needs",
    ),
):
    """Render markdown to HTML with math shielded from the renderer."""
    text = _read_input(None, input_file)
    try:
        config = load_config(config_file)
        if representation:
            config = config.merge({"representation": representation})
    except MathShieldError as e:
        console.print(f"[red]Error:[/] {e}", style="bold")
        raise typer.Exit(1)

    extensions = ["smarty"] if smarty else []
    pipeline = ContentPipeline(config)
    pipeline.register("markdown", lambda t: markdown.markdown(t, extensions=extensions))

    try:
        result = pipeline.process(Page(id=input_file.stem, raw_content=text))
    except MathShieldError as e:
        console.print(f"[red]Error:[/] {e}", style="bold")
        raise typer.Exit(1)

    if output_file:
        output_file.write_text(result.content, encoding="utf-8")
        console.print(f"[green]Saved to:[/] {output_file}")
    else:
        console.print(result.content, markup=False, highlight=False, soft_wrap=True)

    if result.lost_tokens:
        console.print(f"[yellow]Warning:[/] {len(result.lost_tokens)} token(s) could not be restored")
        for fragment in result.lost_tokens:
            console.print(f"  - {fragment}", markup=False)

    if show_assets:
        table = Table(title="Assets")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Asset", style="cyan")
        for i, asset in enumerate(result.assets, 1):
            table.add_row(str(i), asset)
        console.print(table)
