"""CLI for policy-scout: analyze / classify commands."""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from policy_scout.core.config import AppSettings
from policy_scout.core.startup_checks import validate_settings
from policy_scout.intake import clean_text, extract_structured_fields
from policy_scout.models import DocumentInput, PipelineResponse, ProgressEvent
from policy_scout.pipeline import AnalysisPipeline

app = typer.Typer(name="policy-scout", help="Insurance policy classification and risk analysis")
console = Console()

_SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "green",
    "minimal": "dim",
}


def _parse_json_option(value: Optional[str], option: str) -> dict[str, Any]:
    """Accept inline JSON or ``@path/to/file.json``."""
    if not value:
        return {}
    raw = Path(value[1:]).read_text(encoding="utf-8") if value.startswith("@") else value
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{option} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{option} must be a JSON object")
    return data


def _load_document(path: Path) -> DocumentInput:
    mime_type, _ = mimetypes.guess_type(path.name)
    return DocumentInput(
        content=path.read_bytes(),
        mime_type=mime_type or "application/octet-stream",
        file_name=path.name,
    )


def _print_progress(event: ProgressEvent) -> None:
    if event.percent >= 100:
        console.print(f"[dim][{event.overall_percent:>3}%][/dim] {event.message}")


def _print_report(response: PipelineResponse) -> None:
    result = response.result
    if result is None:
        return
    risk = result.risk_profile

    console.print(f"\n[bold]Policy type:[/bold] {result.classification.primary_type.value} "
                  f"({result.classification.confidence:.0%} confidence)")
    style = _SEVERITY_STYLES.get(risk.risk_level.value, "")
    console.print(f"[bold]Risk:[/bold] [{style}]{risk.overall_score}/100 ({risk.risk_level.value})[/{style}]")
    console.print(f"[bold]Compliance:[/bold] {risk.compliance_status.value}")
    if risk.summary:
        console.print(risk.summary)

    table = Table(title="Risk Factors")
    table.add_column("Severity")
    table.add_column("Category", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Recommendation", max_width=60)
    for factor in risk.risk_factors:
        sev = factor.severity.value
        table.add_row(f"[{_SEVERITY_STYLES[sev]}]{sev}[/]", factor.category.value, factor.title, factor.recommendation)
    console.print(table)

    if result.action_plan:
        console.print("\n[bold]Action plan:[/bold]")
        for i, action in enumerate(result.action_plan, 1):
            console.print(f"  {i}. {action.title} [dim]({action.timeframe})[/dim]")

    console.print(
        f"\n[bold]Overall:[/bold] {result.overall_score} ({result.overall_rating})  "
        f"[bold]Completeness:[/bold] {result.completeness}%  "
        f"[bold]Reliability:[/bold] {result.reliability}%  "
        f"[bold]Confidence:[/bold] {result.confidence.score} ({result.confidence.level.value})"
    )
    for warning in response.warnings:
        console.print(f"[yellow]warning:[/yellow] {warning}")


@app.command()
def analyze(
    document: Optional[Path] = typer.Argument(None, help="Policy document to analyze"),
    manual: Optional[str] = typer.Option(None, "--manual", help="Manual policy fields as JSON or @file"),
    profile: Optional[str] = typer.Option(None, "--profile", help="User profile as JSON or @file"),
    as_json: bool = typer.Option(False, "--json", help="Print the full response as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Run the full risk analysis pipeline."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    settings = AppSettings()
    validate_settings(settings)
    pipeline = AnalysisPipeline.from_settings(settings)

    doc = _load_document(document) if document else None
    manual_fields = _parse_json_option(manual, "--manual")
    user_profile = _parse_json_option(profile, "--profile")

    response = asyncio.run(
        pipeline.run(doc, manual_fields, user_profile, on_progress=None if as_json else _print_progress)
    )

    if as_json:
        console.print_json(response.model_dump_json())
    elif response.success:
        _print_report(response)
    else:
        console.print(f"[red]Analysis failed at {response.failed_stage.value if response.failed_stage else '?'}:[/red] "
                      f"{response.error}")

    if not response.success:
        raise typer.Exit(code=1)


@app.command()
def classify(
    document: Path = typer.Argument(..., help="Plain-text policy document"),
) -> None:
    """Classify a policy document and show every candidate type."""
    settings = AppSettings()
    validate_settings(settings)
    classifier = AnalysisPipeline.from_settings(settings).classifier

    text = clean_text(document.read_text(encoding="utf-8", errors="replace"))
    result = classifier.classify(text, extract_structured_fields(text))

    table = Table(title=f"Classification: {document.name}")
    table.add_column("Type", style="cyan")
    table.add_column("Label", style="green")
    table.add_column("Confidence", justify="right")
    for candidate in result.candidates:
        marker = " *" if candidate.policy_type == result.primary_type else ""
        table.add_row(candidate.policy_type.value + marker, candidate.label, f"{candidate.confidence:.1%}")
    console.print(table)

    console.print(f"\n[bold]Primary:[/bold] {result.primary_type.value} "
                  f"({'confident' if result.is_confident else 'below threshold'})")
    for reason in classifier.explain(result, text):
        console.print(f"  - {reason}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: PSCOUT_API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (default: PSCOUT_API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
) -> None:
    """Serve the HTTP API."""
    import uvicorn

    settings = AppSettings()
    validate_settings(settings)
    bind_host = host or settings.api.host
    bind_port = port or settings.api.port
    console.print(f"Serving policy-scout API on [cyan]http://{bind_host}:{bind_port}[/cyan]")
    uvicorn.run(
        "policy_scout.api.app:app",
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_level=settings.observability.log_level.lower(),
    )


if __name__ == "__main__":
    app()
