"""
PIF CLI Commands - Command-line front end for the submission pipeline.

Provides commands for:
- Loading a spreadsheet extract into staging
- Validating staged data
- Saving a snapshot (commit to inflight) and finalizing (archive to approved)
- Report views and Excel export
- Database setup and the API server
"""
import json
import logging
from contextlib import contextmanager
from typing import Optional

import click

from pif_app.config import get_config
from pif_app.models import get_db, init_db as create_tables
from pif_app.domain.exceptions import DomainError
from pif_app.domain.services import (
    StagingStore,
    StagingValidator,
    SubmissionService,
    SubmissionResult,
    ValidationReport,
)
from pif_app.modules.etl import read_extract
from pif_app.modules.reporting import ReportBuilder, export_to_excel

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@contextmanager
def _session():
    sessions = get_db()
    try:
        yield next(sessions)
    finally:
        sessions.close()


def _echo_report(report: ValidationReport) -> None:
    if not report.findings:
        click.echo(click.style("No validation findings", fg='green'))
        return

    click.echo(f"\n{'=' * 70}")
    click.echo(click.style(f"VALIDATION REPORT - {report.site}", bold=True))
    click.echo(f"{'=' * 70}")
    for finding in report.findings:
        color = 'red' if finding.is_blocking else 'yellow'
        click.echo(
            click.style(f"[{finding.severity.value:<8}] ", fg=color)
            + f"{finding.finding_type}: {finding.record_identifier}"
        )
        click.echo(f"           {finding.message}")
    click.echo(f"{'=' * 70}")
    click.echo(f"Blocking: {report.blocking_count}   Advisory: {report.advisory_count}")


def _confirm_advisories(report: ValidationReport) -> bool:
    _echo_report(report)
    return click.confirm(
        f"{report.advisory_count} advisory finding(s). Continue with submission?",
        default=True,
    )


def _echo_result(result: SubmissionResult, output_json: bool) -> None:
    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        if result.validation is not None and result.validation.blocking_count:
            _echo_report(result.validation)

        stage = result.stage.value if result.stage else "none"
        if result.success:
            click.echo(click.style(f"✓ {result.operation} succeeded for {result.site} (stage {stage})", fg='green'))
        elif result.cancelled:
            click.echo(click.style(f"{result.operation} cancelled for {result.site}", fg='yellow'))
        else:
            click.echo(click.style(
                f"✗ {result.operation} failed at '{result.failed_stage}' for {result.site} (stage {stage})",
                fg='red',
            ))

        if result.promotion:
            click.echo(
                f"  Inflight: {result.promotion.projects_moved} projects, "
                f"{result.promotion.cost_lines_moved} cost lines"
            )
        if result.archive:
            click.echo(
                f"  Approved: {result.archive.projects_archived} projects "
                f"({result.archive.projects_created} new, {result.archive.projects_updated} updated), "
                f"{result.archive.cost_lines_archived} cost lines"
            )
        for warning in result.warnings:
            click.echo(click.style(f"  ! {warning}", fg='yellow'))
        for error in result.errors:
            click.echo(click.style(f"  - {error}", fg='red'))

    if not result.success and not result.cancelled:
        raise click.exceptions.Exit(1)


def _load_extract(path: Optional[str], costs: Optional[str], site: str):
    if path is None:
        return None
    try:
        return read_extract(path, costs_path=costs, site=site)
    except DomainError as e:
        raise click.ClickException(e.message)


@click.group()
@click.version_option(version='1.0.0')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """PIF Submission Pipeline CLI.

    Moves Project Impact Form records from a spreadsheet extract through
    staging, inflight and the approved archive, one site at a time.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


@cli.command()
@click.argument('extract', type=click.Path(exists=True))
@click.option('--costs', type=click.Path(exists=True), help='Costs CSV when EXTRACT is the Projects CSV')
@click.option('--site', required=True, help='Site the extract belongs to')
def load(extract: str, costs: Optional[str], site: str):
    """Replace staging with the rows of a spreadsheet extract."""
    data = _load_extract(extract, costs, site)
    with _session() as db:
        store = StagingStore(db)
        try:
            result = store.load(site, data.records, data.cost_lines)
        except DomainError as e:
            raise click.ClickException(e.message)
        summary = store.summary()

    click.echo(click.style(
        f"✓ Staged {result.projects_loaded} projects and {result.cost_lines_loaded} cost lines for {result.site}",
        fg='green',
    ))
    for staged_site, count in sorted(summary.projects_by_site.items(), key=lambda item: str(item[0])):
        click.echo(f"  {staged_site or '(blank)'}: {count} projects")


@cli.command()
@click.option('--site', required=True, help='Submitting site')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def validate(site: str, output_json: bool):
    """Run the validation checklist against staged data."""
    with _session() as db:
        try:
            report = StagingValidator(db).validate(site)
        except DomainError as e:
            raise click.ClickException(e.message)

    if output_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _echo_report(report)
    if not report.is_promotable:
        raise click.exceptions.Exit(1)


@cli.command()
@click.option('--site', required=True, help='Submitting site')
@click.option('--extract', 'extract_path', type=click.Path(exists=True), help='Extract to stage first')
@click.option('--costs', type=click.Path(exists=True), help='Costs CSV when the extract is a CSV')
@click.option('--yes', '-y', is_flag=True, help='Accept advisory findings without asking')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def save(site: str, extract_path: Optional[str], costs: Optional[str], yes: bool, output_json: bool):
    """Validate staged data and commit it to the site's inflight set."""
    extract = _load_extract(extract_path, costs, site)
    with _session() as db:
        result = SubmissionService(db).save_snapshot(
            site,
            extract=extract,
            confirm_advisories=None if yes else _confirm_advisories,
        )
    _echo_result(result, output_json)


@cli.command()
@click.option('--site', required=True, help='Submitting site')
@click.option('--extract', 'extract_path', type=click.Path(exists=True), help='Extract to stage first')
@click.option('--costs', type=click.Path(exists=True), help='Costs CSV when the extract is a CSV')
@click.option('--submitted-by', help='Submitter recorded in the submission log')
@click.option('--notes', help='Notes recorded in the submission log')
@click.option('--yes', '-y', is_flag=True, help='Accept advisory findings without asking')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def finalize(site: str, extract_path: Optional[str], costs: Optional[str],
             submitted_by: Optional[str], notes: Optional[str], yes: bool, output_json: bool):
    """Save a snapshot, then archive eligible lines to approved."""
    extract = _load_extract(extract_path, costs, site)
    with _session() as db:
        result = SubmissionService(db).finalize(
            site,
            extract=extract,
            submitted_by=submitted_by,
            notes=notes,
            confirm_advisories=None if yes else _confirm_advisories,
        )
    _echo_result(result, output_json)


@cli.command()
@click.argument('view', type=click.Choice(['inflight', 'approved', 'history']))
@click.option('--site', default=None, help='Site code, or the fleet name for all sites')
@click.option('--year', type=int, default=None, help='Reporting year (defaults to configured year)')
@click.option('--output', type=click.Path(), help='Write an Excel workbook instead of printing')
def report(view: str, site: Optional[str], year: Optional[int], output: Optional[str]):
    """Show a report view for one site or the fleet."""
    site = site or get_config().fleet_site
    with _session() as db:
        builder = ReportBuilder(db)
        try:
            if view == 'inflight':
                df = builder.inflight_wide(site, reporting_year=year)
            elif view == 'approved':
                df = builder.approved_wide(site, reporting_year=year)
            else:
                df = builder.all_history(site)
        except DomainError as e:
            raise click.ClickException(e.message)

    if output:
        path = export_to_excel({f"{view}_{site}": df}, output)
        click.echo(click.style(f"✓ Wrote {len(df)} rows to {path}", fg='green'))
    elif df.empty:
        click.echo(f"No {view} rows for {site}")
    else:
        click.echo(df.to_string(index=False))


@cli.command('init-db')
def init_db():
    """Create all tables in the configured database."""
    create_tables()
    click.echo(click.style(f"✓ Database initialized: {get_config().database_url}", fg='green'))


@cli.command()
@click.option('--port', type=int, default=8000, help='Server port')
@click.option('--host', default='0.0.0.0', help='Server host')
@click.option('--reload', is_flag=True, help='Enable auto-reload')
def serve(port: int, host: str, reload: bool):
    """Start the API server.

    Example:
        pif serve --port 8000 --reload
    """
    import uvicorn

    click.echo(click.style('PIF Submission Pipeline - API Server', fg='cyan', bold=True))
    click.echo(f"Starting server at http://{host}:{port}")
    click.echo("Press CTRL+C to stop\n")

    uvicorn.run(
        "pif_app.main:app",
        host=host,
        port=port,
        reload=reload,
    )
