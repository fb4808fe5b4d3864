"""CLI entry point for the esMD document exchange client.

Commands:
    wiser upload   : upload every file in the upload directory
    wiser download : download, extract and acknowledge waiting packages
    wiser status   : latest processing status for the mailbox or a transaction
    wiser notify   : submit a notification envelope from a file
    wiser realtime : post a PA results letter to the real-time endpoint
    wiser validate : check an inbound PA reject or admin error payload
    wiser checksum : print a file's digest
"""

import json
import logging
import sys
from pathlib import Path

import click

from wiser.config import Settings, load_settings
from wiser.errors import ConfigurationError, WiserError
from wiser.schemas.exchange import AuthError, DigestAlgorithm, TransferStatus

logger = logging.getLogger("wiser")


def _load_settings(ctx: click.Context) -> Settings:
    """Load settings once per invocation, exiting with a message if they are unusable."""
    if ctx.obj.get("settings") is None:
        try:
            ctx.obj["settings"] = load_settings(
                ctx.obj["env_file"], environment=ctx.obj["environment"]
            )
        except ConfigurationError as exc:
            click.echo(f"Error: {exc}", err=True)
            click.echo("Set these in secrets/wiser.env or via SOPS.", err=True)
            sys.exit(1)
    return ctx.obj["settings"]


def _echo_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2))


def _fail(exc: Exception) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


def _auth_failed(result: AuthError) -> None:
    _echo_json(result.model_dump(mode="json"))
    click.echo(f"Error: authentication failed ({result.status_code}): {result.error}", err=True)
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (defaults to WISER_ENV_FILE or secrets/wiser.env).",
)
@click.option("--environment", "-e", default=None, help="Target environment (dev, val, uat, prod).")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, env_file: Path | None, environment: str | None) -> None:
    """Wiser, prior-authorization document exchange with esMD."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.ensure_object(dict)
    ctx.obj.update(env_file=env_file, environment=environment)


# ------------------------------------------------------------------
# wiser upload / download
# ------------------------------------------------------------------


@cli.command()
@click.pass_context
def upload(ctx: click.Context) -> None:
    """Upload every file in the upload directory, stopping at the first failure."""
    from wiser.orchestrator.upload import UploadOrchestrator

    settings = _load_settings(ctx)
    try:
        detail = UploadOrchestrator(settings).run()
    except WiserError as exc:
        _fail(exc)

    _echo_json(detail.model_dump(mode="json", by_alias=True))
    if detail.status == TransferStatus.FAILED:
        sys.exit(1)


@cli.command()
@click.pass_context
def download(ctx: click.Context) -> None:
    """Download, extract and acknowledge every waiting package."""
    from wiser.orchestrator.download import DownloadOrchestrator

    settings = _load_settings(ctx)
    try:
        details = DownloadOrchestrator(settings).run()
    except WiserError as exc:
        _fail(exc)

    _echo_json([d.model_dump(mode="json", by_alias=True) for d in details])
    if not details:
        click.echo("No files available for download.", err=True)
    if any(d.status == TransferStatus.FAILED for d in details):
        sys.exit(1)


# ------------------------------------------------------------------
# wiser status / notify / realtime
# ------------------------------------------------------------------


@cli.command()
@click.option("--transaction-id", "-t", default=None, help="Limit to one esMD transaction id.")
@click.pass_context
def status(ctx: click.Context, transaction_id: str | None) -> None:
    """Show the latest processing status reported by the service."""
    from wiser.orchestrator.reconcile import StatusService

    settings = _load_settings(ctx)
    try:
        with StatusService(settings) as service:
            report = service.latest(transaction_id)
    except WiserError as exc:
        _fail(exc)

    if isinstance(report, AuthError):
        _auth_failed(report)
    _echo_json(report.model_dump(mode="json", by_alias=True))


@cli.command()
@click.option("--type", "notification_type", default=None, help="Notification type (default: pickup type).")
@click.option(
    "--payload",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file holding the notification envelope.",
)
@click.pass_context
def notify(ctx: click.Context, notification_type: str | None, payload: Path) -> None:
    """Submit a notification envelope read from a JSON file."""
    from wiser.orchestrator.reconcile import NotificationService

    settings = _load_settings(ctx)
    envelope = payload.read_text(encoding="utf-8")
    try:
        json.loads(envelope)
    except json.JSONDecodeError as exc:
        _fail(ValueError(f"{payload} is not valid JSON: {exc}"))

    try:
        with NotificationService(settings) as service:
            ack = service.submit(envelope, notification_type)
    except WiserError as exc:
        _fail(exc)

    if isinstance(ack, AuthError):
        _auth_failed(ack)
    _echo_json(ack.model_dump(mode="json", by_alias=True))


@cli.command()
@click.option("--letter-id", "-l", required=True, help="Letter identifier sent with the results.")
@click.option(
    "--payload",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file holding the PA results letter.",
)
@click.pass_context
def realtime(ctx: click.Context, letter_id: str, payload: Path) -> None:
    """Post a PA results letter to the real-time endpoint."""
    from wiser.orchestrator.realtime import RealtimeUploadService

    settings = _load_settings(ctx)
    body = payload.read_text(encoding="utf-8")
    try:
        json.loads(body)
    except json.JSONDecodeError as exc:
        _fail(ValueError(f"{payload} is not valid JSON: {exc}"))

    try:
        with RealtimeUploadService(settings) as service:
            ack = service.send(body, letter_id)
    except (WiserError, ValueError) as exc:
        _fail(exc)

    if isinstance(ack, AuthError):
        _auth_failed(ack)
    _echo_json(ack.model_dump(mode="json", by_alias=True))


# ------------------------------------------------------------------
# wiser validate / checksum
# ------------------------------------------------------------------


@cli.command()
@click.argument("kind", type=click.Choice(["pa-reject", "admin-error"]))
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(kind: str, path: Path) -> None:
    """Validate an inbound PA reject response or admin error notification."""
    from wiser.validation.inbound import (
        build_error_report,
        validate_admin_errors_json,
        validate_pa_reject_json,
    )

    text = path.read_bytes()
    errors = validate_pa_reject_json(text) if kind == "pa-reject" else validate_admin_errors_json(text)
    report = build_error_report(errors)
    if report is None:
        click.echo(f"{path.name}: valid")
        return

    _echo_json(report.model_dump(mode="json", by_alias=True))
    sys.exit(1)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--algorithm",
    "-a",
    type=click.Choice([a.value for a in DigestAlgorithm]),
    default=DigestAlgorithm.SHA256.value,
    show_default=True,
)
def checksum(path: Path, algorithm: str) -> None:
    """Print a file's digest in hex and base64."""
    from wiser.integrity.checksum import compute_checksum

    digest = compute_checksum(path, DigestAlgorithm(algorithm))
    _echo_json({"file": path.name, "algorithm": algorithm, "hex": digest.hex, "base64": digest.base64})
