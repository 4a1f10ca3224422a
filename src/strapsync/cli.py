"""CLI for strapsync."""

import asyncio
import contextlib
from datetime import datetime, timezone
from pathlib import Path

import click

from strapsync.config import get_settings
from strapsync.log import setup_logging

WEEK = 7


def _open_store(ctx: click.Context):
    from strapsync.storage import DatabaseStore

    return DatabaseStore(ctx.obj["database_url"])


def _capture_path(capture_dir: Path) -> Path:
    return capture_dir / f"capture_{datetime.now():%Y%m%d_%H%M%S}.jsonl"


def _resolve_address(address: str | None) -> str | None:
    """Use *address*, the configured one, or the first strap found."""
    from strapsync.scanner import find_strap

    address = address or get_settings().strap_address
    if address is not None:
        return address
    device = asyncio.run(find_strap(get_settings().scan_timeout))
    if device is None:
        click.echo("No strap found.")
        return None
    return device.address


@click.group()
@click.option("--database-url", default=None, help="SQLAlchemy URL of the history database.")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")
@click.pass_context
def main(ctx: click.Context, database_url: str | None, log_level: str | None) -> None:
    """strapsync: download strap history and derive sleep, activity and stress."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url or settings.database_url


@main.command()
@click.option("--timeout", "-t", default=None, type=float, help="Scan timeout in seconds.")
def scan(timeout: float | None) -> None:
    """Scan for nearby straps."""
    from strapsync.scanner import scan as do_scan

    results = asyncio.run(do_scan(timeout or get_settings().scan_timeout))
    if not results:
        click.echo("No strap found.")
    for device, adv in results:
        click.echo(f"{adv.local_name or device.name}  {device.address}  RSSI={adv.rssi} dBm")


@main.command("download-history")
@click.option("--address", "-a", default=None, help="BLE address to connect to.")
@click.option("--idle-timeout", default=None, type=float, help="Stop after this many idle seconds.")
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False),
              help="Capture file for raw notifications (default: a new file in the capture dir).")
@click.option("--no-capture", is_flag=True, help="Do not keep raw notifications.")
@click.pass_context
def download_history(
    ctx: click.Context,
    address: str | None,
    idle_timeout: float | None,
    output: str | None,
    no_capture: bool,
) -> None:
    """Download buffered history from the strap into the database.

    Raw notifications are kept as a JSONL capture so `replay` can rebuild
    the readings later.
    """
    from strapsync.device import sync_history
    from strapsync.ingest import PacketHandler
    from strapsync.replay import CaptureWriter

    addr = _resolve_address(address)
    if addr is None:
        return

    settings = get_settings()
    handler = PacketHandler(_open_store(ctx))
    capture = None if no_capture else CaptureWriter(output or _capture_path(settings.capture_dir))
    try:
        with capture or contextlib.nullcontext():
            complete = asyncio.run(
                sync_history(addr, handler, idle_timeout or settings.idle_timeout, capture)
            )
    except KeyboardInterrupt:
        click.echo("\nStopped.")
        complete = False

    status = "complete" if complete else "incomplete"
    click.echo(f"History {status}: {handler.readings_stored} readings stored.")
    if capture is not None:
        click.echo(f"Capture: {capture.count} packets -> {capture.path}")


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.pass_context
def replay(ctx: click.Context, file: str) -> None:
    """Replay a captured packet log into the database."""
    from strapsync.ingest import PacketHandler
    from strapsync.replay import replay_file

    stats = replay_file(file, PacketHandler(_open_store(ctx)))
    click.echo(
        f"{stats.total} packets, {stats.decoded} decoded, {stats.stored} readings stored."
    )


@main.command("detect-events")
@click.pass_context
def detect_events(ctx: click.Context) -> None:
    """Detect sleeps, then the activities and naps between them."""
    from strapsync.engine import BatchEngine

    engine = BatchEngine(_open_store(ctx))
    sleeps = engine.detect_sleeps()
    events = engine.detect_events()
    click.echo(f"{sleeps} sleep cycle(s) committed, {events} event(s) recorded.")


@main.command("calculate-stress")
@click.pass_context
def calculate_stress(ctx: click.Context) -> None:
    """Score stress for every sample not yet scored."""
    from strapsync.engine import BatchEngine

    scored = BatchEngine(_open_store(ctx)).calculate_stress()
    click.echo(f"{scored} sample(s) scored.")


@main.command("sleep-stats")
@click.pass_context
def sleep_stats(ctx: click.Context) -> None:
    """Print sleep statistics for all time and the last week."""
    from strapsync.analytics.summary import summarize_sleep

    cycles = _open_store(ctx).all_sleep_cycles()
    if not cycles:
        click.echo("No sleep records found.")
        return

    click.echo("All time:")
    click.echo(summarize_sleep(cycles).to_json())
    click.echo("Last week:")
    click.echo(summarize_sleep(cycles[-WEEK:]).to_json())


@main.command("exercise-stats")
@click.pass_context
def exercise_stats(ctx: click.Context) -> None:
    """Print exercise statistics for all time and the last week."""
    from strapsync.analytics.summary import summarize_exercise
    from strapsync.models import ActivityType

    records = [
        r for r in _open_store(ctx).activity_records()
        if r.activity == ActivityType.ACTIVITY
    ]
    if not records:
        click.echo("No activities found.")
        return

    click.echo("All time:")
    click.echo(summarize_exercise(records).to_json())
    click.echo("Last week:")
    click.echo(summarize_exercise(records[-WEEK:]).to_json())


@main.command("set-alarm")
@click.argument("when", type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S"]))
@click.option("--address", "-a", default=None, help="BLE address to connect to.")
@click.pass_context
def set_alarm(ctx: click.Context, when: datetime, address: str | None) -> None:
    """Set the strap's alarm to WHEN (local time)."""
    from strapsync.device import send_commands
    from strapsync.protocol import build_set_alarm

    alarm = when.astimezone(timezone.utc)
    if alarm <= datetime.now(timezone.utc):
        raise click.BadParameter(f"{when:%Y-%m-%d %H:%M} is in the past", param_hint="WHEN")

    addr = _resolve_address(address)
    if addr is None:
        return
    asyncio.run(send_commands(addr, build_set_alarm(int(alarm.timestamp()))))
    click.echo(f"Alarm set for {when:%Y-%m-%d %H:%M}.")


@main.command()
@click.option("--address", "-a", default=None, help="BLE address to connect to.")
def reboot(address: str | None) -> None:
    """Reboot the strap."""
    from strapsync.device import send_commands
    from strapsync.protocol import build_reboot

    addr = _resolve_address(address)
    if addr is None:
        return
    asyncio.run(send_commands(addr, build_reboot()))
    click.echo("Reboot command sent.")


if __name__ == "__main__":
    main()
