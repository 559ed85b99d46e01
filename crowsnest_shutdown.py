#!/usr/bin/env python3
"""
CrowsNest Node Shutdown

Invoked by upsmon (Network UPS Tools) as its SHUTDOWNCMD when the UPS reports a
critical power event. Runs from a privileged container with the host filesystem
mounted at HOST_ROOT and:
1. Cordons the local OpenShift node so nothing new is scheduled on it
2. Drains the node (best effort, bounded by a short timeout)
3. Powers off the host through a cascade of increasingly blunt mechanisms

Cluster hygiene (cordon/drain) never blocks the power-off. If the oc binary,
a kubeconfig or the node name cannot be found, the script goes straight to
the shutdown cascade. Only a missing host filesystem or an exhausted cascade
ends the run with a non-zero exit status.
"""

import fcntl
import os
import shlex
import socket
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import click
import pendulum
from loguru import logger

from crowsnest_common import (
    AllMechanismsFailed,
    ClientBinaryNotFound,
    CommandOutcome,
    CommandResult,
    CommandRunner,
    CredentialNotFound,
    DegradedPrerequisite,
    FatalPrerequisite,
    IdentityNotFound,
    configure_logging,
)

NODE_KUBECONFIG_DIR = (
    "/etc/kubernetes/static-pod-resources/kube-apiserver-certs/secrets/node-kubeconfigs"
)
DEFAULT_KUBECONFIG = f"{NODE_KUBECONFIG_DIR}/lb-int.kubeconfig"
DEFAULT_KUBECONFIG_ALTERNATIVES = (
    f"{NODE_KUBECONFIG_DIR}/localhost.kubeconfig",
    "/var/lib/kubelet/kubeconfig",
)
DEFAULT_OC_BIN = "/usr/bin/oc"

SERVICE_MANAGER_SOCKETS = ("run/systemd/private", "run/dbus/system_bus_socket")
SYSRQ_TRIGGER = "proc/sysrq-trigger"
SYSRQ_PAUSE_SECONDS = 1


# ==================== Configuration ====================


@dataclass(frozen=True)
class ShutdownConfig:
    """Tunables for one shutdown run. Credential and binary paths are host-relative."""

    host_root: str = "/host"
    kubeconfig: str = DEFAULT_KUBECONFIG
    kubeconfig_alternatives: Tuple[str, ...] = DEFAULT_KUBECONFIG_ALTERNATIVES
    oc_bin: str = DEFAULT_OC_BIN
    cordon_timeout: int = 10
    drain_timeout: int = 20
    drain_grace_period: int = 5
    shutdown_timeout: int = 10
    node_name: Optional[str] = None
    log_file: Optional[str] = None
    lock_file: Optional[str] = None
    dry_run: bool = False

    def __post_init__(self):
        paths = {
            "host_root": self.host_root,
            "kubeconfig": self.kubeconfig,
            "oc_bin": self.oc_bin,
        }
        for i, alt in enumerate(self.kubeconfig_alternatives):
            paths[f"kubeconfig_alternatives[{i}]"] = alt
        if self.log_file:
            paths["log_file"] = self.log_file
        if self.lock_file:
            paths["lock_file"] = self.lock_file

        for name, value in paths.items():
            if not value or not os.path.isabs(value):
                raise ValueError(f"{name} must be an absolute path (got '{value}')")

        for name in ("cordon_timeout", "drain_timeout", "shutdown_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be a positive number of seconds")
        if self.drain_grace_period < 0:
            raise ValueError("drain_grace_period must be non-negative")

    @property
    def host_root_path(self) -> Path:
        return Path(self.host_root)

    def host_path(self, path: str) -> Path:
        """Map a host-relative absolute path into the mounted host filesystem."""
        return self.host_root_path / path.lstrip("/")

    @property
    def log_path(self) -> Path:
        if self.log_file:
            return Path(self.log_file)
        return self.host_path("/var/log/crowsnest-shutdown.log")

    @property
    def lock_path(self) -> Path:
        if self.lock_file:
            return Path(self.lock_file)
        return self.host_path("/run/crowsnest-shutdown.lock")


# ==================== Prerequisites ====================


def check_host_mount(host_root: Path) -> None:
    """Raise FatalPrerequisite unless host_root looks like a mounted host filesystem."""
    try:
        mounted = host_root.is_dir()
        has_usr = mounted and (host_root / "usr").is_dir()
    except OSError as e:
        raise FatalPrerequisite(f"Cannot inspect host filesystem at {host_root}: {e}")

    if not mounted:
        raise FatalPrerequisite(f"Host filesystem not mounted at {host_root}")

    if not has_usr:
        raise FatalPrerequisite(
            f"Host filesystem at {host_root} appears invalid (no /usr directory)"
        )

    logger.info(f"Host filesystem mounted at: {host_root}")


def check_client_binary(config: ShutdownConfig) -> None:
    """Raise ClientBinaryNotFound unless the oc binary is executable on the host."""
    binary = config.host_path(config.oc_bin)
    try:
        present = binary.is_file() and os.access(binary, os.X_OK)
    except OSError as e:
        logger.debug(f"Cannot stat {binary}: {e}")
        present = False
    if not present:
        raise ClientBinaryNotFound(f"oc binary not found at {binary}")
    logger.info(f"Found oc binary: {config.oc_bin}")


# ==================== Credential Resolver ====================


@dataclass(frozen=True)
class ResolvedCredential:
    """The kubeconfig chosen for this run."""

    path: str  # host-relative, as passed to oc inside the chroot
    host_path: Path
    is_primary: bool


def resolve_credential(
    host_root: Path, primary: str, alternatives: Sequence[str]
) -> ResolvedCredential:
    """
    Find the first kubeconfig that exists on the host.

    Only the supplied paths are checked, in order: the primary first, then each
    alternative. The earliest existing path wins.

    Args:
        host_root: Mount point of the host filesystem
        primary: Preferred kubeconfig path (host-relative)
        alternatives: Fallback kubeconfig paths, in order of preference

    Returns:
        ResolvedCredential for the chosen path

    Raises:
        CredentialNotFound: if none of the paths exist
    """
    candidates = [primary] + [alt for alt in alternatives if alt != primary]

    for index, candidate in enumerate(candidates):
        host_file = host_root / candidate.lstrip("/")
        try:
            present = host_file.is_file()
        except OSError as e:
            logger.debug(f"Cannot stat kubeconfig {host_file}: {e}")
            continue
        if present:
            if index == 0:
                logger.info(f"Using kubeconfig: {candidate}")
            else:
                logger.info(f"Using alternative kubeconfig: {candidate}")
            return ResolvedCredential(
                path=candidate, host_path=host_file, is_primary=index == 0
            )
        logger.debug(f"Kubeconfig not present: {host_file}")

    raise CredentialNotFound(
        f"Could not find a valid kubeconfig (tried {len(candidates)} paths)"
    )


# ==================== Node Identity Resolver ====================


class IdentitySource(Enum):
    """Where the node name came from."""

    OVERRIDE = "override"
    HOST_FILE = "host_file"
    PROCESS_HOSTNAME = "process_hostname"


@dataclass(frozen=True)
class NodeIdentity:
    """The name this host is registered under with the control plane."""

    name: str
    source: IdentitySource

    @property
    def reliable(self) -> bool:
        # The container's own hostname need not match the node name
        return self.source != IdentitySource.PROCESS_HOSTNAME


def resolve_node_identity(
    host_root: Path,
    override: Optional[str] = None,
    hostname_func: Callable[[], str] = socket.gethostname,
) -> NodeIdentity:
    """
    Determine the node name, in strict priority order.

    1. The explicit override (NODE_NAME, usually from the downward API)
    2. The host's /etc/hostname
    3. The process's own hostname, which may not match the node

    Raises:
        IdentityNotFound: if every source is empty or unreadable
    """
    if override and override.strip():
        return NodeIdentity(name=override.strip(), source=IdentitySource.OVERRIDE)

    hostname_file = host_root / "etc/hostname"
    try:
        host_name = hostname_file.read_text().strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Cannot read {hostname_file}: {e}")
        host_name = ""
    if host_name:
        return NodeIdentity(name=host_name, source=IdentitySource.HOST_FILE)

    try:
        process_name = (hostname_func() or "").strip()
    except OSError as e:
        logger.debug(f"Cannot read process hostname: {e}")
        process_name = ""
    if process_name:
        logger.warning(f"Using container hostname (may not match node): {process_name}")
        return NodeIdentity(name=process_name, source=IdentitySource.PROCESS_HOSTNAME)

    raise IdentityNotFound("Could not determine node name")


# ==================== Control-Plane Client ====================


class ControlPlaneClient:
    """Runs oc against the cluster from inside the host filesystem (via chroot)."""

    def __init__(
        self,
        runner: CommandRunner,
        host_root: Path,
        oc_bin: str,
        kubeconfig: str,
    ):
        self.runner = runner
        self.host_root = host_root
        self.oc_bin = oc_bin
        self.kubeconfig = kubeconfig

    def _oc_command(self, *args: str) -> List[str]:
        return [
            "chroot",
            str(self.host_root),
            self.oc_bin,
            f"--kubeconfig={self.kubeconfig}",
            *args,
        ]

    def cordon(self, node: str, timeout: int) -> CommandResult:
        """Mark the node unschedulable. Never raises; failures are in the result."""
        logger.info(f"Cordoning node: {node} (timeout: {timeout}s)")
        result = self.runner.run(
            self._oc_command("adm", "cordon", node), timeout=timeout, label="cordon"
        )

        if result.succeeded:
            logger.success(f"Node {node} cordoned successfully")
        elif result.timed_out:
            logger.error(f"Cordon timed out after {timeout}s - continuing anyway")
        else:
            logger.error(f"Failed to cordon node: {node} ({result.describe()})")
        return result

    def drain(self, node: str, timeout: int, grace_period: int) -> CommandResult:
        """
        Evict workloads from the node for an emergency power-off.

        DaemonSet pods stay (they live and die with the node), emptyDir data is
        discarded and unmanaged pods are forced out. oc's own --timeout is the
        soft limit; the runner timeout is the hard one.
        """
        logger.info(f"Draining node: {node} (timeout: {timeout}s)")
        cmd = self._oc_command(
            "adm",
            "drain",
            node,
            "--delete-emptydir-data",
            "--ignore-daemonsets=true",
            f"--timeout={timeout}s",
            "--force",
            f"--grace-period={grace_period}",
        )
        result = self.runner.run(cmd, timeout=timeout, label="drain")

        if result.succeeded:
            logger.success(f"Node {node} drained successfully")
        elif result.timed_out:
            logger.error(
                f"Drain timed out after {timeout}s - continuing with shutdown anyway"
            )
        else:
            logger.error(
                f"Failed to drain node: {node} ({result.describe()}) - "
                "continuing with shutdown anyway"
            )
        return result


# ==================== Shutdown Executor ====================


@dataclass
class ShutdownMechanism:
    """One way of powering off the host."""

    name: str
    description: str
    build_command: Callable[[Path], List[str]]
    is_available: Callable[[Path], bool] = lambda host_root: True
    unavailable_reason: str = ""
    timeout: int = 10


def service_manager_reachable(host_root: Path) -> bool:
    """True if systemd's private socket or the system D-Bus socket is present."""
    return any((host_root / sock).is_socket() for sock in SERVICE_MANAGER_SOCKETS)


def sysrq_available(host_root: Path) -> bool:
    return (host_root / SYSRQ_TRIGGER).exists()


def systemctl_poweroff_command(host_root: Path) -> List[str]:
    return ["chroot", str(host_root), "/usr/bin/systemctl", "poweroff"]


def shutdown_now_command(host_root: Path) -> List[str]:
    return ["chroot", str(host_root), "/sbin/shutdown", "-h", "now"]


def sysrq_poweroff_command(
    host_root: Path, pause: int = SYSRQ_PAUSE_SECONDS
) -> List[str]:
    """Sync, remount read-only, then power off, pausing between each trigger."""
    trigger = shlex.quote(str(host_root / SYSRQ_TRIGGER))
    script = "; ".join(
        [
            f"echo s > {trigger}",
            f"sleep {pause}",
            f"echo u > {trigger}",
            f"sleep {pause}",
            f"echo o > {trigger}",
        ]
    )
    return ["sh", "-c", script]


def default_mechanisms(timeout: int) -> List[ShutdownMechanism]:
    """The power-off cascade, most graceful first."""
    return [
        ShutdownMechanism(
            name="systemctl",
            description="systemctl poweroff via chroot",
            build_command=systemctl_poweroff_command,
            is_available=service_manager_reachable,
            unavailable_reason="service manager socket not reachable",
            timeout=timeout,
        ),
        ShutdownMechanism(
            name="shutdown",
            description="shutdown command via chroot",
            build_command=shutdown_now_command,
            timeout=timeout,
        ),
        ShutdownMechanism(
            name="sysrq",
            description="emergency shutdown via sysrq",
            build_command=sysrq_poweroff_command,
            is_available=sysrq_available,
            unavailable_reason=f"/{SYSRQ_TRIGGER} not present",
            timeout=timeout,
        ),
    ]


@dataclass
class ShutdownResult:
    """Outcome of a successful cascade."""

    mechanism: str
    attempts: List[CommandResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class ShutdownExecutor:
    """Walks the shutdown cascade and stops at the first mechanism that succeeds."""

    def __init__(
        self,
        runner: CommandRunner,
        host_root: Path,
        mechanisms: List[ShutdownMechanism],
    ):
        self.runner = runner
        self.host_root = host_root
        self.mechanisms = mechanisms

    def shutdown(self) -> ShutdownResult:
        """
        Power off the host.

        Returns:
            ShutdownResult naming the mechanism that succeeded

        Raises:
            AllMechanismsFailed: if no available mechanism succeeded
        """
        logger.info("Initiating host shutdown...")
        attempts: List[CommandResult] = []
        skipped: List[str] = []

        for mechanism in self.mechanisms:
            try:
                available = mechanism.is_available(self.host_root)
                reason = mechanism.unavailable_reason
            except OSError as e:
                available = False
                reason = f"availability check failed ({e})"
            if not available:
                logger.info(f"Skipping {mechanism.description}: {reason}")
                skipped.append(mechanism.name)
                continue

            logger.info(
                f"Attempting {mechanism.description} (timeout: {mechanism.timeout}s)..."
            )
            result = self.runner.run(
                mechanism.build_command(self.host_root),
                timeout=mechanism.timeout,
                label=mechanism.name,
            )
            attempts.append(result)

            if result.succeeded:
                logger.success(f"Shutdown initiated via {mechanism.description}")
                return ShutdownResult(
                    mechanism=mechanism.name, attempts=attempts, skipped=skipped
                )

            if result.outcome == CommandOutcome.TIMED_OUT:
                logger.error(f"{mechanism.description} timed out - trying next method")
            else:
                logger.error(
                    f"{mechanism.description} failed ({result.describe()}) - "
                    "trying next method"
                )

        logger.critical("All shutdown methods failed!")
        raise AllMechanismsFailed(attempts)


# ==================== Run Guard ====================


class RunGuard:
    """
    Non-blocking exclusive lock so overlapping upsmon invocations do not issue
    duplicate cordon/drain/power-off calls.

    Entering yields False if another run holds the lock. If the lock file cannot
    be opened at all the run proceeds unguarded.
    """

    def __init__(self, lock_path: Path):
        self.lock_path = lock_path
        self._handle = None

    def __enter__(self) -> bool:
        try:
            self._handle = open(self.lock_path, "a")
        except OSError as e:
            logger.warning(f"Cannot open lock file {self.lock_path} ({e}) - running unguarded")
            return True

        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            self._handle.close()
            self._handle = None
            return False
        except OSError as e:
            logger.warning(f"Cannot lock {self.lock_path} ({e}) - running unguarded")
        return True

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._handle is not None:
            try:
                fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
            finally:
                self._handle.close()
                self._handle = None


# ==================== Orchestrator ====================


class RunState(Enum):
    """States of one shutdown run."""

    START = "start"
    CREDENTIAL_RESOLVED = "credential_resolved"
    IDENTITY_RESOLVED = "identity_resolved"
    CORDONED = "cordoned"
    CORDON_SKIPPED = "cordon_skipped"
    DRAINED = "drained"
    DRAIN_SKIPPED = "drain_skipped"
    SHUTTING_DOWN = "shutting_down"
    SUCCESS = "success"
    FATAL = "fatal"
    SUPERSEDED = "superseded"  # another run holds the guard


TERMINAL_STATES = {RunState.SUCCESS, RunState.FATAL, RunState.SUPERSEDED}


@dataclass
class OrchestrationReport:
    """What happened during one run."""

    started_at: pendulum.DateTime = field(default_factory=pendulum.now)
    finished_at: Optional[pendulum.DateTime] = None
    states: List[RunState] = field(default_factory=lambda: [RunState.START])
    credential: Optional[ResolvedCredential] = None
    identity: Optional[NodeIdentity] = None
    cordon: Optional[CommandResult] = None
    drain: Optional[CommandResult] = None
    shutdown: Optional[ShutdownResult] = None
    degraded_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def state(self) -> RunState:
        return self.states[-1]

    @property
    def exit_code(self) -> int:
        return 1 if self.state == RunState.FATAL else 0

    @property
    def elapsed(self) -> pendulum.Duration:
        end = self.finished_at or pendulum.now()
        return end - self.started_at

    def transition(self, state: RunState) -> None:
        logger.debug(f"State: {self.state.value} -> {state.value}")
        self.states.append(state)
        if state in TERMINAL_STATES:
            self.finished_at = pendulum.now()


class Orchestrator:
    """
    Sequences one emergency shutdown: verify host, guard, resolve, cordon,
    drain, power off. A single linear attempt with no retries.
    """

    def __init__(
        self,
        config: ShutdownConfig,
        runner: Optional[CommandRunner] = None,
        mechanisms: Optional[List[ShutdownMechanism]] = None,
        hostname_func: Callable[[], str] = socket.gethostname,
    ):
        self.config = config
        self.runner = runner or CommandRunner(dry_run=config.dry_run)
        self.mechanisms = (
            mechanisms
            if mechanisms is not None
            else default_mechanisms(config.shutdown_timeout)
        )
        self.hostname_func = hostname_func

    def run(self) -> OrchestrationReport:
        report = OrchestrationReport()

        logger.info("==========================================")
        logger.info("CrowsNest Shutdown Started")
        logger.info("==========================================")
        logger.info("Triggered by UPS power event")
        if self.config.dry_run:
            logger.warning("DRY RUN: no command will actually be executed")

        try:
            check_host_mount(self.config.host_root_path)
        except FatalPrerequisite as e:
            logger.error(str(e))
            logger.error("Host filesystem not available - cannot proceed")
            report.error = str(e)
            report.transition(RunState.FATAL)
            return report

        with RunGuard(self.config.lock_path) as acquired:
            if not acquired:
                logger.warning(
                    f"Another shutdown run holds {self.config.lock_path} - not starting a second one"
                )
                report.transition(RunState.SUPERSEDED)
                return report

            self._cluster_hygiene(report)
            self._power_off(report)

        self._summarize(report)
        return report

    def _cluster_hygiene(self, report: OrchestrationReport) -> None:
        """Resolve prerequisites, then cordon and drain. Never fatal."""
        try:
            check_client_binary(self.config)
            report.credential = resolve_credential(
                self.config.host_root_path,
                self.config.kubeconfig,
                self.config.kubeconfig_alternatives,
            )
            report.transition(RunState.CREDENTIAL_RESOLVED)
            report.identity = resolve_node_identity(
                self.config.host_root_path,
                override=self.config.node_name,
                hostname_func=self.hostname_func,
            )
            report.transition(RunState.IDENTITY_RESOLVED)
        except DegradedPrerequisite as e:
            logger.error(f"{e} - attempting direct shutdown")
            report.degraded_reason = str(e)
            return
        except Exception as e:
            logger.exception(
                f"Unexpected error while resolving prerequisites: {e} - "
                "attempting direct shutdown"
            )
            report.degraded_reason = f"unexpected error: {e}"
            return

        node = report.identity.name
        logger.info(f"Node name: {node}")

        client = ControlPlaneClient(
            self.runner,
            self.config.host_root_path,
            self.config.oc_bin,
            report.credential.path,
        )

        report.cordon = client.cordon(node, self.config.cordon_timeout)
        report.transition(
            RunState.CORDONED if report.cordon.succeeded else RunState.CORDON_SKIPPED
        )

        report.drain = client.drain(
            node, self.config.drain_timeout, self.config.drain_grace_period
        )
        report.transition(
            RunState.DRAINED if report.drain.succeeded else RunState.DRAIN_SKIPPED
        )

    def _power_off(self, report: OrchestrationReport) -> None:
        logger.info("Proceeding with host shutdown...")
        report.transition(RunState.SHUTTING_DOWN)

        executor = ShutdownExecutor(
            self.runner, self.config.host_root_path, self.mechanisms
        )
        try:
            report.shutdown = executor.shutdown()
        except AllMechanismsFailed as e:
            report.error = str(e)
            report.transition(RunState.FATAL)
            return

        report.transition(RunState.SUCCESS)

    def _summarize(self, report: OrchestrationReport) -> None:
        trail = " -> ".join(state.value for state in report.states)
        logger.info(f"Run finished in {report.elapsed.in_words()}: {trail}")
        if report.state == RunState.FATAL:
            logger.critical(f"Node could not be powered off: {report.error}")


# ==================== CLI ====================


@click.command()
@click.option(
    "--host-root",
    envvar="HOST_ROOT",
    default="/host",
    show_default=True,
    help="Mount point of the host filesystem",
)
@click.option(
    "--kubeconfig",
    envvar="KUBECONFIG",
    default=DEFAULT_KUBECONFIG,
    show_default=True,
    help="Kubeconfig path on the host (relative to the host root)",
)
@click.option(
    "--kubeconfig-alternative",
    "kubeconfig_alternatives",
    envvar="KUBECONFIG_ALTERNATIVES",
    type=click.Path(),
    multiple=True,
    default=DEFAULT_KUBECONFIG_ALTERNATIVES,
    show_default=True,
    help="Fallback kubeconfig path, tried in order (repeatable; colon separated in the environment)",
)
@click.option(
    "--oc-bin",
    envvar="OC_BIN",
    default=DEFAULT_OC_BIN,
    show_default=True,
    help="oc binary path on the host",
)
@click.option(
    "--cordon-timeout",
    envvar="CORDON_TIMEOUT",
    type=click.IntRange(min=1),
    default=10,
    show_default=True,
    help="Timeout in seconds for the cordon",
)
@click.option(
    "--drain-timeout",
    envvar="DRAIN_TIMEOUT",
    type=click.IntRange(min=1),
    default=20,
    show_default=True,
    help="Timeout in seconds for the drain",
)
@click.option(
    "--drain-grace-period",
    envvar="DRAIN_GRACE_PERIOD",
    type=click.IntRange(min=0),
    default=5,
    show_default=True,
    help="Pod termination grace period in seconds during the drain",
)
@click.option(
    "--shutdown-timeout",
    envvar="SHUTDOWN_TIMEOUT",
    type=click.IntRange(min=1),
    default=10,
    show_default=True,
    help="Timeout in seconds for each shutdown method",
)
@click.option(
    "--node-name",
    envvar="NODE_NAME",
    default=None,
    help="Node name override (normally set through the downward API)",
)
@click.option(
    "--log-file",
    envvar="CROWSNEST_SHUTDOWN_LOG",
    default=None,
    help="Log file (default: <host-root>/var/log/crowsnest-shutdown.log)",
)
@click.option(
    "--lock-file",
    envvar="CROWSNEST_LOCK_FILE",
    default=None,
    help="Lock file guarding against overlapping runs (default: <host-root>/run/crowsnest-shutdown.lock)",
)
@click.option(
    "--dry-run",
    envvar="CROWSNEST_DRY_RUN",
    is_flag=True,
    help="Log the commands but don't execute them",
)
@click.option(
    "--log-level",
    envvar="CROWSNEST_LOG_LEVEL",
    type=click.Choice(
        ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
    ),
    default="INFO",
    help="Logging level",
)
def main(
    host_root: str,
    kubeconfig: str,
    kubeconfig_alternatives: Tuple[str, ...],
    oc_bin: str,
    cordon_timeout: int,
    drain_timeout: int,
    drain_grace_period: int,
    shutdown_timeout: int,
    node_name: Optional[str],
    log_file: Optional[str],
    lock_file: Optional[str],
    dry_run: bool,
    log_level: str,
) -> None:
    """
    CrowsNest node shutdown - cordon, drain and power off this node.

    Meant to be run by upsmon as SHUTDOWNCMD with no arguments; every option
    can also be set through the environment variable shown in its help.

    Exit status is 0 when the power-off was initiated (even if cordon or drain
    failed) and 1 when the host filesystem is missing or every shutdown method
    failed.

    Examples:

        # What upsmon runs
        crowsnest-shutdown

        # See what would happen on this node
        crowsnest-shutdown --dry-run --node-name worker-3 --log-level DEBUG
    """
    try:
        config = ShutdownConfig(
            host_root=host_root,
            kubeconfig=kubeconfig,
            kubeconfig_alternatives=tuple(kubeconfig_alternatives),
            oc_bin=oc_bin,
            cordon_timeout=cordon_timeout,
            drain_timeout=drain_timeout,
            drain_grace_period=drain_grace_period,
            shutdown_timeout=shutdown_timeout,
            node_name=node_name,
            log_file=log_file,
            lock_file=lock_file,
            dry_run=dry_run,
        )
    except ValueError as e:
        configure_logging(None, log_level)
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    # Never create the log directory on a host root that isn't mounted
    log_path = config.log_path if config.host_root_path.is_dir() else None
    configure_logging(log_path, log_level)

    report = Orchestrator(config).run()
    sys.exit(report.exit_code)


if __name__ == "__main__":
    main()
