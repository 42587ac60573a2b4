from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from frame_orders.config import VENDORS, DocumentKind, Settings
from frame_orders.dates import pretty_date
from frame_orders.detection import MessageEnvelope, VendorDetector
from frame_orders.errors import FrameOrdersError, ParseError
from frame_orders.paths import exports_dir, log_dir, workspace_root
from frame_orders.pipeline import Pipeline, PipelineRequest, document_text

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


# ----------------------------
# Helpers
# ----------------------------
def timestamp_slug() -> str:
    # local time is fine for filenames
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def setup_logging(verbose: bool) -> Path:
    """Rich console logging plus a per-run log file under the workspace log/ folder."""
    log_path = log_dir() / f"run_{timestamp_slug()}.txt"
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s"))
    file_handler.setLevel(logging.DEBUG)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, level=logging.DEBUG if verbose else logging.WARNING),
                  file_handler],
        force=True,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger(__name__).debug("workspace root: %s", workspace_root())
    return log_path


def guess_kind(path: Path) -> DocumentKind:
    suffix = path.suffix.lower()
    if suffix == ".pdf":
        return DocumentKind.PDF
    if suffix in (".htm", ".html", ".eml"):
        return DocumentKind.HTML
    return DocumentKind.TEXT


def fmt_money(v) -> str:
    try:
        return f"{float(v):,.2f}"
    except (TypeError, ValueError):
        return ""


def safe_str(v) -> str:
    return "" if v is None else str(v)


def shorten(s: str, n: int = 40) -> str:
    s = safe_str(s)
    return s if len(s) <= n else s[: n - 1] + "…"


def resolve_out(path: Optional[Path], suffix: str) -> Optional[Path]:
    """Bare file names land in the workspace exports/ folder."""
    if path is None:
        return None
    if path.parent == Path("."):
        return exports_dir() / path.with_suffix(suffix).name
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def print_result(result: dict) -> None:
    order = result.get("order") or {}
    stats = result["enrichment"]
    console.print(Panel.fit(
        f"[bold]{result['vendor']}[/bold]  order [cyan]{safe_str(order.get('order_number'))}[/cyan]\n"
        f"customer: {safe_str(order.get('customer_name'))} ({safe_str(order.get('account_number'))})\n"
        f"date: {pretty_date(order.get('order_date'))}   pieces: {safe_str(order.get('total_pieces'))}\n"
        f"enriched {stats['enrichedCount']}/{stats['totalItems']}, failed {stats['failedCount']}, "
        f"cache hits {stats['cacheHits']}, rate {stats['enrichmentRate']}%, {stats['processingTimeSeconds']}s",
        border_style="cyan",
    ))
    if not result["items"]:
        console.print("[yellow]No line items.[/yellow]")
        return

    t = Table(show_header=True, header_style="bold magenta")
    t.add_column("brand", width=16)
    t.add_column("model", width=18)
    t.add_column("color")
    t.add_column("size", width=12)
    t.add_column("qty", justify="right")
    t.add_column("upc", width=14)
    t.add_column("wholesale", justify="right")
    t.add_column("conf", justify="right")
    t.add_column("status", style="dim")
    for it in result["items"]:
        color = " ".join(x for x in (safe_str(it.get("color_code")), safe_str(it.get("color_name"))) if x)
        t.add_row(
            shorten(it.get("brand"), 16),
            shorten(it.get("model"), 18),
            shorten(color, 28),
            safe_str(it.get("size")),
            safe_str(it.get("quantity")),
            safe_str(it.get("upc")),
            fmt_money(it.get("wholesale_price")),
            safe_str(it.get("confidence_score")),
            safe_str(it.get("validation_reason")),
        )
    console.print(t)


# ----------------------------
# Commands
# ----------------------------
@app.command()
def detect(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Order e-mail (HTML/text) or PDF"),
    sender: Optional[str] = typer.Option(None, "--sender", help="Envelope From address"),
    subject: Optional[str] = typer.Option(None, "--subject", help="Message subject"),
    forwarded: Optional[str] = typer.Option(None, "--forwarded-headers", help="Header text kept from a forwarded mail"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Show which vendor a document belongs to."""
    setup_logging(verbose)
    kind = guess_kind(file)
    raw = file.read_bytes()
    text = document_text(raw, kind)
    found = VendorDetector().detect(MessageEnvelope(
        sender=sender, subject=subject, body=text, forwarded_headers=forwarded,
    ))
    console.print(
        f"vendor: [bold]{found.vendor_key.value}[/bold]  tier: {found.tier.value}  "
        f"confidence: {found.confidence}"
    )
    if found.evidence:
        console.print(f"[dim]evidence: {', '.join(found.evidence)}[/dim]")


@app.command()
def parse(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Order e-mail (HTML/text) or PDF"),
    vendor: Optional[str] = typer.Option(None, "--vendor", help="Skip detection and use this vendor key"),
    kind: Optional[DocumentKind] = typer.Option(None, "--kind", help="html | pdf | text (default: from extension)"),
    sender: Optional[str] = typer.Option(None, "--sender"),
    subject: Optional[str] = typer.Option(None, "--subject"),
    forwarded: Optional[str] = typer.Option(None, "--forwarded-headers"),
    no_enrich: bool = typer.Option(False, "--no-enrich", help="Parse only, no catalog lookups"),
    json_out: Optional[Path] = typer.Option(None, "--json-out", help="Write the output record as JSON"),
    csv_out: Optional[Path] = typer.Option(None, "--csv-out", help="Write line items as CSV"),
    deadline: Optional[float] = typer.Option(None, "--deadline", help="Seconds for the whole run"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Settings .env file"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Parse one order document and enrich its line items."""
    log_path = setup_logging(verbose)
    try:
        settings = Settings.from_env(env_file)
        request = PipelineRequest(
            raw_document=file.read_bytes(),
            document_kind=kind or guess_kind(file),
            vendor_hint=vendor,
            sender=sender,
            subject=subject,
            forwarded_headers=forwarded,
            deadline=deadline,
        )
        result = Pipeline(settings=settings).run(request, enrich=not no_enrich, debug=verbose)
    except ParseError as e:
        console.print(f"[red]Could not parse document:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    except FrameOrdersError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    print_result(result)

    out = resolve_out(json_out, ".json")
    if out is not None:
        out.write_text(json.dumps(result, indent=2), encoding="utf-8")
        console.print(f"[green]Wrote[/green] JSON → [cyan]{out}[/cyan]")

    out = resolve_out(csv_out, ".csv")
    if out is not None:
        df = pd.DataFrame(result["items"])
        if not df.empty:
            order = result.get("order") or {}
            df.insert(0, "vendor", result["vendor"])
            df.insert(1, "order_number", order.get("order_number"))
        df.to_csv(out, index=False)
        console.print(f"[green]Exported[/green] items → [cyan]{out}[/cyan] ({len(df)} rows)")

    console.print(f"[dim]Log: {log_path}[/dim]")


@app.command("vendors")
def list_vendors():
    """List the known vendors and how each is enriched."""
    t = Table(show_header=True, header_style="bold magenta")
    t.add_column("vendor_key")
    t.add_column("name")
    t.add_column("document")
    t.add_column("adapter")
    t.add_column("enrich")
    for cfg in VENDORS.values():
        t.add_row(
            cfg.vendor_key.value,
            cfg.display_name,
            cfg.document_kind.value,
            cfg.adapter_kind.value if cfg.adapter_kind else "-",
            "yes" if cfg.requires_enrichment else "no",
        )
    console.print(t)


if __name__ == "__main__":
    app()
