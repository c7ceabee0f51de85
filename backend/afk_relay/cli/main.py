"""
claude-afk — agent-side CLI: pair | notify | status | activate | deactivate | clear | install-hook
"""

import io
import json
import logging
import shutil
import sys
import time
from collections.abc import Callable

import click
import qrcode
from pydantic import ValidationError

from afk_relay.cli import hooks
from afk_relay.cli.config import (
    APP_NAME,
    DECISION_POLL_INTERVAL,
    DECISION_TIMEOUT,
    POLL_INTERVAL,
    SETUP_TIMEOUT,
    CliConfig,
    configure_logging,
    get_app_url,
    get_backend_url,
    log_file_path,
)
from afk_relay.client.relay_client import DecisionStatus, RelayClient, RelayClientError

logger = logging.getLogger(__name__)


def make_client(base_url: str, device_token: str | None = None) -> RelayClient:
    return RelayClient(base_url, device_token)


def render_qr(data: str) -> str:
    qr = qrcode.QRCode(border=1)
    qr.add_data(data)
    qr.make(fit=True)
    out = io.StringIO()
    qr.print_ascii(out=out, invert=True)
    return out.getvalue()


def poll_decision(
    client: RelayClient,
    decision_id: str,
    *,
    timeout: float = DECISION_TIMEOUT,
    interval: float = DECISION_POLL_INTERVAL,
    sleep: Callable[[float], None] | None = None,
) -> DecisionStatus | None:
    """Poll until the decision leaves "pending". None means we gave up waiting."""
    sleep = sleep or time.sleep
    start = time.monotonic()
    while time.monotonic() - start <= timeout:
        sleep(interval)
        status = client.decision_status(decision_id)
        if status.status != "pending":
            return status
        logger.debug("Decision %s pending, continuing to poll", decision_id)
    return None


def _tip(text: str, command: str) -> None:
    click.echo()
    click.echo(f"  {click.style('Tip:', dim=True)} Run {click.style(command, fg='cyan')} {text}")


@click.group()
@click.version_option(package_name="afk-relay")
def cli() -> None:
    """Push notifications for Claude Code."""
    configure_logging()


@cli.command()
def setup() -> None:
    """Set up device pairing by scanning a QR code."""
    config = CliConfig.load()
    backend_url = get_backend_url()

    click.echo()
    click.echo(f"  {click.style('◆', fg='cyan')} {click.style('Claude AFK Pairing', bold=True)}")
    click.echo(f"  {click.style('→ ' + backend_url, dim=True)}")
    click.echo()

    with make_client(backend_url) as client:
        try:
            pairing = client.initiate_pairing()
        except RelayClientError as exc:
            raise click.ClickException(f"Failed to start pairing: {exc}") from exc

        pairing_url = client.pairing_url(pairing.pairing_token, app_url=get_app_url())
        click.echo("  Scan this QR code with your phone:")
        click.echo()
        click.echo(render_qr(pairing_url))
        click.echo(f"  {click.style('Or open:', dim=True)} {click.style(pairing_url, fg='cyan', underline=True)}")
        click.echo(click.style("  (served by the web app; set CLAUDE_AFK_APP_URL if it runs elsewhere)", dim=True))
        click.echo()
        click.echo(f"  {click.style('◌', fg='yellow')} Waiting for pairing… (press Ctrl+C to cancel)")

        start = time.monotonic()
        while True:
            if time.monotonic() - start > SETUP_TIMEOUT:
                raise click.ClickException("Pairing timed out. Run setup again to retry.")
            time.sleep(POLL_INTERVAL)
            try:
                status = client.pairing_status(pairing.pairing_id)
            except RelayClientError as exc:
                logger.debug("Pairing status poll failed: %s", exc)
                continue
            if not status.complete:
                continue
            if not status.device_token:
                raise click.ClickException("Pairing completed but no device token received")
            break

    config.device_token = status.device_token
    config.backend_url = backend_url
    config.active = True
    config.save()

    click.echo()
    click.echo(f"  {click.style('✓', fg='green', bold=True)} {click.style('Device paired', fg='green', bold=True)}")
    click.echo(f"    {click.style('→', dim=True)} Notifications are now active")
    click.echo()


cli.add_command(setup, name="pair")


def _handle_notification(raw: str, client: RelayClient) -> None:
    try:
        notification = hooks.NotificationInput.model_validate_json(raw)
    except ValidationError as exc:
        click.echo(f"Failed to parse Notification input: {exc}", err=True)
        sys.exit(1)

    if notification.notification_type != hooks.NOTIFICATION_IDLE_PROMPT:
        sys.exit(0)

    try:
        client.notify_simple(title="Claude is waiting", message=notification.message)
        logger.debug("Notification sent successfully")
    except RelayClientError as exc:
        click.echo(f"Failed to send notification: {exc}", err=True)
    sys.exit(0)


def _handle_permission_request(raw: str, client: RelayClient) -> None:
    try:
        request = hooks.PermissionRequestInput.model_validate_json(raw)
    except ValidationError as exc:
        click.echo(f"Failed to parse PermissionRequest input: {exc}", err=True)
        sys.exit(1)

    title, message = hooks.format_tool_notification(request.tool_name, request.tool_input)
    try:
        decision_id = client.notify(
            title=title,
            message=message,
            tool_use_id=request.resolved_tool_use_id(),
            session_id=request.session_id,
        )
        status = poll_decision(client, decision_id)
    except RelayClientError as exc:
        click.echo(f"Failed to relay permission request: {exc}", err=True)
        sys.exit(1)

    if status is None:
        # Fall back to asking in the terminal
        click.echo("Decision timed out", err=True)
        sys.exit(1)

    if status.status == "decided" and status.decision == "allow":
        click.echo(json.dumps(hooks.allow_output()))
        sys.exit(0)
    if status.status == "decided" and status.decision == "dismiss":
        sys.exit(0)
    if status.status == "expired":
        click.echo("Decision expired", err=True)
        sys.exit(1)

    click.echo("Unknown decision status, falling back to asking user normally", err=True)
    sys.exit(1)


@cli.command()
@click.argument("json_input", required=False)
def notify(json_input: str | None) -> None:
    """Send a notification (hook JSON as argument or on stdin)."""
    config = CliConfig.load()
    # Not configured or paused: let the agent ask in the terminal as usual
    if not config.should_notify:
        sys.exit(0)

    raw = json_input if json_input is not None else click.get_text_stream("stdin").read()
    try:
        event = hooks.GenericHookInput.model_validate_json(raw)
    except ValidationError as exc:
        click.echo(f"Failed to parse hook input: {exc}", err=True)
        sys.exit(1)

    with make_client(get_backend_url(config), config.device_token) as client:
        if event.hook_event_name == hooks.HOOK_NOTIFICATION:
            _handle_notification(raw, client)
        elif event.hook_event_name == hooks.HOOK_PERMISSION_REQUEST:
            _handle_permission_request(raw, client)
        else:
            click.echo(f"Unknown hook event: {event.hook_event_name}", err=True)
            sys.exit(1)


def _read_agent_settings() -> dict:
    path = hooks.settings_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except (ValueError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


@cli.command()
def status() -> None:
    """Show current configuration status."""
    config = CliConfig.load()
    paired = bool(config.device_token)
    installed = hooks.hooks_installed(_read_agent_settings())

    def _row(label: str, ok: bool, ok_text: str, bad_text: str, bad_icon: str = "○", bad_color: str = "yellow") -> None:
        icon = click.style("✓", fg="green") if ok else click.style(bad_icon, fg=bad_color)
        text = click.style(ok_text, fg="green") if ok else click.style(bad_text, fg=bad_color)
        click.echo(f"  {icon} {label:<15} {text}")

    click.echo()
    click.echo(f"  {click.style('◆', fg='cyan')} {click.style('Claude AFK Status', bold=True)}")
    click.echo()
    _row("Device", paired, "Paired", "Not paired", bad_icon="✗", bad_color="red")
    _row("Notifications", config.active, "Active", "Inactive")
    _row("Hooks", installed, "Installed", "Not installed")

    if not paired:
        _tip("to set up notifications", f"{APP_NAME} pair")
    elif not installed:
        _tip("to install Claude Code hooks", f"{APP_NAME} install-hook")
    elif not config.active:
        _tip("to enable notifications", f"{APP_NAME} activate")
    click.echo()


@cli.command()
def activate() -> None:
    """Enable notifications."""
    config = CliConfig.load()
    if not config.device_token:
        click.echo(f"  {click.style('✗ No device paired', fg='red')}  Run {APP_NAME} pair first")
        raise SystemExit(1)
    if config.active:
        click.echo(f"  Notifications are already {click.style('active', fg='green')}")
        return
    config.active = True
    config.save()
    click.echo(f"  {click.style('✓ Notifications activated', fg='green', bold=True)}")
    click.echo("    You'll receive push notifications when Claude needs input")


@cli.command()
def deactivate() -> None:
    """Disable notifications."""
    config = CliConfig.load()
    if not config.active:
        click.echo(f"  Notifications are already {click.style('inactive', fg='yellow')}")
        return
    config.active = False
    config.save()
    click.echo(f"  {click.style('○ Notifications deactivated', fg='yellow')}")
    click.echo(f"    Run {APP_NAME} activate to re-enable")


@cli.command()
def clear() -> None:
    """Clear device pairing."""
    config = CliConfig.load()
    if not config.device_token:
        click.echo(click.style("  No device pairing to clear", dim=True))
        return
    config.device_token = None
    config.active = False
    config.save()
    click.echo(f"  {click.style('✓', fg='green')} Device pairing cleared")
    click.echo(f"    Run {APP_NAME} pair to pair a new device")


@cli.command("install-hook")
def install_hook() -> None:
    """Install Claude Code hooks that call this CLI."""
    executable = shutil.which(APP_NAME) or APP_NAME
    command = f"{executable} notify"

    settings = _read_agent_settings()
    try:
        hooks.install_hooks(settings, command)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    path = hooks.settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings, indent=2))

    click.echo(f"  {click.style('✓', fg='green', bold=True)} Hooks installed to {click.style(str(path), fg='cyan')}")
    click.echo("    • PermissionRequest (all tools)")
    click.echo("    • Notification (idle_prompt)")
    _tip("to enable notifications", f"{APP_NAME} activate")


@cli.command("clear-logs")
def clear_logs() -> None:
    """Delete the debug log."""
    path = log_file_path()
    if path.exists():
        path.unlink()
    click.echo(f"  {click.style('✓', fg='green')} Debug logs cleared")


if __name__ == "__main__":
    cli()
