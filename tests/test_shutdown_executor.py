#!/usr/bin/env python3
"""
Tests for the power-off cascade.
"""

import socket
from pathlib import Path
from unittest.mock import Mock

import pytest

from crowsnest_common import AllMechanismsFailed, CommandOutcome, CommandResult, CommandRunner
from crowsnest_shutdown import (
    ShutdownExecutor,
    ShutdownMechanism,
    default_mechanisms,
    service_manager_reachable,
    shutdown_now_command,
    sysrq_available,
    sysrq_poweroff_command,
    systemctl_poweroff_command,
)


def scripted_runner(outcomes):
    """Runner whose result depends on the label; unknown labels succeed."""
    runner = Mock(spec=CommandRunner)

    def run(cmd, timeout, label=""):
        outcome = outcomes.get(label, CommandOutcome.SUCCEEDED)
        returncode = {CommandOutcome.SUCCEEDED: 0, CommandOutcome.FAILED: 1}.get(outcome)
        return CommandResult(command=cmd, outcome=outcome, returncode=returncode, label=label)

    runner.run.side_effect = run
    return runner


def mechanism(name, available=True):
    return ShutdownMechanism(
        name=name,
        description=f"{name} method",
        build_command=lambda host_root: [name],
        is_available=lambda host_root: available,
        unavailable_reason="not here",
        timeout=3,
    )


def labels_run(runner):
    return [c.kwargs["label"] for c in runner.run.call_args_list]


def test_first_success_stops_the_cascade():
    runner = scripted_runner({})
    executor = ShutdownExecutor(runner, Path("/host"), [mechanism("one"), mechanism("two"), mechanism("three")])

    result = executor.shutdown()

    assert result.mechanism == "one"
    assert labels_run(runner) == ["one"]


def test_third_mechanism_succeeds_after_two_failures():
    runner = scripted_runner({"one": CommandOutcome.FAILED, "two": CommandOutcome.TIMED_OUT})
    mechanisms = [mechanism("one"), mechanism("two"), mechanism("three"), mechanism("four")]

    result = ShutdownExecutor(runner, Path("/host"), mechanisms).shutdown()

    assert result.mechanism == "three"
    assert [a.label for a in result.attempts] == ["one", "two", "three"]
    assert "four" not in labels_run(runner)


def test_each_mechanism_has_its_own_timeout():
    runner = scripted_runner({"one": CommandOutcome.FAILED})
    first, second = mechanism("one"), mechanism("two")
    first.timeout, second.timeout = 7, 11

    ShutdownExecutor(runner, Path("/host"), [first, second]).shutdown()

    assert [c.kwargs["timeout"] for c in runner.run.call_args_list] == [7, 11]


def test_unavailable_mechanism_is_skipped(log_lines):
    runner = scripted_runner({})
    mechanisms = [mechanism("one", available=False), mechanism("two")]

    result = ShutdownExecutor(runner, Path("/host"), mechanisms).shutdown()

    assert result.mechanism == "two"
    assert result.skipped == ["one"]
    assert labels_run(runner) == ["two"]
    assert any("Skipping one method: not here" in line for line in log_lines)


def test_failing_availability_check_skips_mechanism(log_lines):
    runner = scripted_runner({})
    broken = mechanism("one")
    broken.is_available = Mock(side_effect=PermissionError(13, "Permission denied"))

    result = ShutdownExecutor(runner, Path("/host"), [broken, mechanism("two")]).shutdown()

    assert result.mechanism == "two"
    assert result.skipped == ["one"]
    assert labels_run(runner) == ["two"]
    assert any(
        "Skipping one method: availability check failed" in line and "Permission denied" in line
        for line in log_lines
    )


def test_all_failed_raises_with_one_error_per_attempt(log_lines):
    runner = scripted_runner(
        {
            "one": CommandOutcome.FAILED,
            "two": CommandOutcome.TIMED_OUT,
            "three": CommandOutcome.NOT_FOUND,
        }
    )
    mechanisms = [mechanism("one"), mechanism("two"), mechanism("three")]

    with pytest.raises(AllMechanismsFailed) as excinfo:
        ShutdownExecutor(runner, Path("/host"), mechanisms).shutdown()

    assert [a.label for a in excinfo.value.attempts] == ["one", "two", "three"]
    errors = [line for line in log_lines if line.startswith("ERROR|")]
    assert len(errors) == 3
    assert "one method failed (exit code: 1)" in errors[0]
    assert "two method timed out" in errors[1]
    assert "three method failed (command not found)" in errors[2]
    assert any(line.startswith("CRITICAL|All shutdown methods failed") for line in log_lines)


def test_nothing_available_raises():
    runner = scripted_runner({})

    with pytest.raises(AllMechanismsFailed) as excinfo:
        ShutdownExecutor(runner, Path("/host"), [mechanism("one", available=False)]).shutdown()

    assert excinfo.value.attempts == []
    runner.run.assert_not_called()


# ==================== Default cascade ====================


def test_default_cascade_order_and_timeouts():
    mechanisms = default_mechanisms(timeout=15)

    assert [m.name for m in mechanisms] == ["systemctl", "shutdown", "sysrq"]
    assert all(m.timeout == 15 for m in mechanisms)


def test_mechanism_commands():
    host = Path("/host")

    assert systemctl_poweroff_command(host) == ["chroot", "/host", "/usr/bin/systemctl", "poweroff"]
    assert shutdown_now_command(host) == ["chroot", "/host", "/sbin/shutdown", "-h", "now"]

    cmd = sysrq_poweroff_command(host, pause=1)
    assert cmd[:2] == ["sh", "-c"]
    script = cmd[2]
    steps = [step.strip() for step in script.split(";")]
    assert steps == [
        "echo s > /host/proc/sysrq-trigger",
        "sleep 1",
        "echo u > /host/proc/sysrq-trigger",
        "sleep 1",
        "echo o > /host/proc/sysrq-trigger",
    ]


def test_sysrq_requires_trigger_file(host_root, install_file):
    assert not sysrq_available(host_root)

    install_file("/proc/sysrq-trigger")

    assert sysrq_available(host_root)


def test_service_manager_requires_a_socket(host_root, install_file):
    install_file("/run/systemd/private")  # a regular file is not a socket

    assert not service_manager_reachable(host_root)


def test_service_manager_socket_detected(tmp_path):
    # AF_UNIX paths are length limited, so keep the root short
    root = tmp_path / "h"
    (root / "run/dbus").mkdir(parents=True)
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.bind(str(root / "run/dbus/system_bus_socket"))
    except OSError:
        sock.close()
        pytest.skip("cannot bind a unix socket here")
    try:
        assert service_manager_reachable(root)
    finally:
        sock.close()


def test_default_cascade_skips_systemctl_without_socket(host_root, install_file):
    install_file("/proc/sysrq-trigger")
    runner = scripted_runner({"shutdown": CommandOutcome.FAILED})

    result = ShutdownExecutor(runner, host_root, default_mechanisms(10)).shutdown()

    assert result.skipped == ["systemctl"]
    assert result.mechanism == "sysrq"
    assert labels_run(runner) == ["shutdown", "sysrq"]
