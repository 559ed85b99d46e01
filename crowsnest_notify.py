#!/usr/bin/env python3
"""
CrowsNest NUT Notification Handler

Invoked by upsmon as its NOTIFYCMD. upsmon puts the notification type in the
NOTIFYTYPE environment variable (and optionally the UPS name in UPSNAME) and
passes the human readable message as arguments.

Each notification type maps to a severity tier, which decides both the level
it is logged at and the exit status:
- INFO     -> 0
- WARNING  -> 1
- ERROR    -> 1
- CRITICAL -> 2

Unknown types are logged as INFO and never fail the caller.
"""

import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
import pendulum
from loguru import logger

from crowsnest_common import configure_logging


# ==================== Classification ====================


class Severity(Enum):
    """Severity tiers for UPS notifications."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def exit_code(self) -> int:
        return SEVERITY_EXIT_CODES[self]

    @property
    def log_level(self) -> str:
        return LOG_LEVELS[self]


SEVERITY_EXIT_CODES = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 1,
    Severity.CRITICAL: 2,
}

# Warning-tier lines keep the [WARN] tag that crowsnest-notify.log has always used
WARN_LEVEL = "WARN"

LOG_LEVELS = {
    Severity.INFO: "INFO",
    Severity.WARNING: WARN_LEVEL,
    Severity.ERROR: "ERROR",
    Severity.CRITICAL: "CRITICAL",
}


def register_warn_level() -> None:
    """Add loguru's WARN level (same severity as WARNING) if it is missing."""
    try:
        logger.level(WARN_LEVEL)
    except ValueError:
        logger.level(WARN_LEVEL, no=logger.level("WARNING").no, color="<yellow><bold>")


register_warn_level()


@dataclass(frozen=True)
class NotificationInfo:
    """How a notification type is described and logged."""

    severity: Severity
    description: str
    headline: str
    details: Tuple[str, ...] = ()

    def render(self, message: str) -> Tuple[str, ...]:
        """Log lines for this notification, headline first."""
        return (f"{self.headline}: {message}",) + self.details


@dataclass(frozen=True)
class NotificationEvent:
    """One notification as received from upsmon."""

    notify_type: str
    message: str
    ups_name: Optional[str] = None

    @property
    def known(self) -> bool:
        return self.notify_type in NOTIFICATIONS

    @property
    def info(self) -> NotificationInfo:
        return NOTIFICATIONS.get(self.notify_type) or unknown_notification(
            self.notify_type
        )

    @property
    def severity(self) -> Severity:
        return classify(self.notify_type)


NOTIFICATIONS: Dict[str, NotificationInfo] = {
    "ONLINE": NotificationInfo(
        Severity.INFO,
        "Power restored - UPS is back on line power",
        "⚡ POWER RESTORED",
        ("UPS is back on line power - normal operation resumed",),
    ),
    "ONBATT": NotificationInfo(
        Severity.WARNING,
        "Power failure - UPS is running on battery",
        "🔋 ON BATTERY",
        (
            "Power failure detected - running on UPS battery",
            "Monitor battery level - shutdown will occur if power is not restored",
        ),
    ),
    "LOWBATT": NotificationInfo(
        Severity.CRITICAL,
        "Low battery - UPS battery is critically low, shutdown imminent",
        "⚠️  LOW BATTERY",
        (
            "UPS battery critically low - system shutdown is imminent!",
            "Save all work immediately - power will be lost soon",
        ),
    ),
    "FSD": NotificationInfo(
        Severity.CRITICAL,
        "Forced shutdown - UPS is forcing system shutdown",
        "🛑 FORCED SHUTDOWN",
        (
            "UPS has initiated forced shutdown sequence",
            "System will power off momentarily",
        ),
    ),
    "COMMOK": NotificationInfo(
        Severity.INFO,
        "Communications OK - Connection to UPS established",
        "✅ COMMUNICATIONS OK",
        ("Successfully connected to UPS monitoring daemon",),
    ),
    "COMMBAD": NotificationInfo(
        Severity.WARNING,
        "Communications lost - Connection to UPS failed",
        "❌ COMMUNICATIONS LOST",
        (
            "Lost connection to UPS - monitoring may be impaired",
            "Check network connectivity and UPS daemon status",
        ),
    ),
    "SHUTDOWN": NotificationInfo(
        Severity.CRITICAL,
        "Shutdown - System is shutting down now",
        "💀 SHUTDOWN IN PROGRESS",
        ("System shutdown has been initiated",),
    ),
    "REPLBATT": NotificationInfo(
        Severity.WARNING,
        "Replace battery - UPS battery needs replacement",
        "🔧 BATTERY REPLACEMENT NEEDED",
        (
            "UPS battery is failing and should be replaced",
            "Schedule battery replacement to maintain power protection",
        ),
    ),
    "NOCOMM": NotificationInfo(
        Severity.ERROR,
        "No communication - UPS is not responding",
        "📡 NO COMMUNICATION",
        (
            "UPS is not responding to status queries",
            "Check UPS power and connectivity",
        ),
    ),
    "NOPARENT": NotificationInfo(
        Severity.ERROR,
        "No parent - upsmon parent process died unexpectedly",
        "👻 PARENT PROCESS DIED",
        (
            "upsmon parent process has terminated unexpectedly",
            "This may indicate a serious problem - check system logs",
        ),
    ),
    "CAL": NotificationInfo(
        Severity.INFO,
        "Calibration - UPS is performing battery calibration",
        "📊 CALIBRATION",
        ("UPS is performing battery runtime calibration",),
    ),
    "NOTCAL": NotificationInfo(
        Severity.INFO,
        "Calibration complete - UPS calibration finished",
        "📊 CALIBRATION COMPLETE",
    ),
    "OFF": NotificationInfo(
        Severity.WARNING,
        "UPS offline - UPS is off or unavailable",
        "⭕ UPS OFFLINE",
    ),
    "NOTOFF": NotificationInfo(
        Severity.INFO,
        "UPS online - UPS is back online",
        "🟢 UPS ONLINE",
    ),
    "BYPASS": NotificationInfo(
        Severity.WARNING,
        "Bypass mode - UPS is in bypass mode",
        "⚡ BYPASS MODE",
        ("UPS is in bypass mode - no battery protection active",),
    ),
    "NOTBYPASS": NotificationInfo(
        Severity.INFO,
        "Normal mode - UPS returned from bypass mode",
        "🔒 NORMAL MODE",
        ("UPS returned to normal operation from bypass",),
    ),
}


def unknown_notification(notify_type: str) -> NotificationInfo:
    return NotificationInfo(
        Severity.INFO,
        f"Unknown notification type: {notify_type}",
        f"📢 NOTIFICATION [{notify_type}]",
    )


def classify(notify_type: str) -> Severity:
    """Severity tier for a notification type; unknown types are INFO."""
    info = NOTIFICATIONS.get(notify_type)
    return info.severity if info else Severity.INFO


# ==================== Output ====================

RULE_WIDTH = 60


def print_header(event: NotificationEvent) -> None:
    """Boxed summary on stdout only (not written to the log file)."""
    heavy = click.style("═" * RULE_WIDTH, fg="white", bold=True)
    light = click.style("─" * RULE_WIDTH, fg="white", bold=True)
    now = pendulum.now().format("YYYY-MM-DD HH:mm:ss zz")

    click.echo()
    click.echo(heavy)
    click.echo(click.style("  CrowsNest UPS Notification", fg="white", bold=True))
    click.echo(heavy)
    click.echo(f"  {click.style('Type:', fg='cyan')}      {event.notify_type}")
    click.echo(f"  {click.style('UPS:', fg='cyan')}       {event.ups_name or 'unknown'}")
    click.echo(f"  {click.style('Time:', fg='cyan')}      {now}")
    click.echo(light)


def handle_notification(event: NotificationEvent) -> Severity:
    """Log the notification at its tier's level and return the tier."""
    info = event.info
    if not event.known:
        logger.info(f"Unknown notification type: {event.notify_type}")

    for line in info.render(event.message):
        logger.log(info.severity.log_level, line)

    return info.severity


# ==================== CLI ====================


@click.command()
@click.argument("message", nargs=-1)
@click.option(
    "--notify-type",
    envvar="NOTIFYTYPE",
    default="UNKNOWN",
    show_default=True,
    help="Notification type (set by upsmon)",
)
@click.option(
    "--ups-name",
    envvar="UPSNAME",
    default=None,
    help="Name of the UPS that raised the event",
)
@click.option(
    "--host-root",
    envvar="HOST_ROOT",
    default="/host",
    show_default=True,
    help="Mount point of the host filesystem",
)
@click.option(
    "--log-file",
    envvar="CROWSNEST_NOTIFY_LOG",
    default=None,
    help="Log file (default: <host-root>/var/log/crowsnest-notify.log)",
)
@click.option(
    "--log-level",
    envvar="CROWSNEST_LOG_LEVEL",
    type=click.Choice(
        ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARN", "WARNING", "ERROR", "CRITICAL"]
    ),
    default="DEBUG",
    help="Logging level",
)
def main(
    message: Tuple[str, ...],
    notify_type: str,
    ups_name: Optional[str],
    host_root: str,
    log_file: Optional[str],
    log_level: str,
) -> None:
    """
    CrowsNest UPS notification handler.

    Logs MESSAGE at the severity of NOTIFYTYPE and exits 0 (info),
    1 (warning/error) or 2 (critical).

    Examples:

        NOTIFYTYPE=LOWBATT crowsnest-notify "UPS ups@localhost battery is low"
    """
    event = NotificationEvent(
        notify_type=notify_type,
        message=" ".join(message) or "No message provided",
        ups_name=ups_name,
    )

    host = Path(host_root)
    if host.is_dir():
        log_path = Path(log_file) if log_file else host / "var/log/crowsnest-notify.log"
    else:
        click.echo(f"[WARN] Host filesystem not mounted at {host_root} - logging to stdout only")
        log_path = None
    configure_logging(log_path, log_level)

    print_header(event)

    logger.debug(f"NOTIFYTYPE={event.notify_type}")
    logger.debug(f"Message: {event.message}")
    logger.debug(f"UPSNAME={event.ups_name or 'not set'}")

    severity = handle_notification(event)

    click.echo(click.style("═" * RULE_WIDTH, fg="white", bold=True))
    click.echo()

    sys.exit(severity.exit_code)


if __name__ == "__main__":
    main()
