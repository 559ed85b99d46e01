#!/usr/bin/env python3
"""
Tests for the oc-backed cordon and drain operations.
"""

from pathlib import Path
from unittest.mock import Mock

from crowsnest_common import CommandOutcome, CommandResult, CommandRunner
from crowsnest_shutdown import ControlPlaneClient

KUBECONFIG = "/var/lib/kubelet/kubeconfig"


def make_client(outcome=CommandOutcome.SUCCEEDED, returncode=0):
    runner = Mock(spec=CommandRunner)
    runner.run.side_effect = lambda cmd, timeout, label="": CommandResult(
        command=cmd, outcome=outcome, returncode=returncode, label=label
    )
    client = ControlPlaneClient(runner, Path("/host"), "/usr/bin/oc", KUBECONFIG)
    return client, runner


def test_cordon_command():
    client, runner = make_client()

    result = client.cordon("worker-1", timeout=10)

    assert result.succeeded
    cmd = runner.run.call_args.args[0]
    assert cmd == [
        "chroot",
        "/host",
        "/usr/bin/oc",
        f"--kubeconfig={KUBECONFIG}",
        "adm",
        "cordon",
        "worker-1",
    ]
    assert runner.run.call_args.kwargs["timeout"] == 10


def test_drain_command_uses_emergency_flags():
    client, runner = make_client()

    client.drain("worker-1", timeout=20, grace_period=5)

    cmd = runner.run.call_args.args[0]
    assert cmd[:7] == [
        "chroot",
        "/host",
        "/usr/bin/oc",
        f"--kubeconfig={KUBECONFIG}",
        "adm",
        "drain",
        "worker-1",
    ]
    assert "--delete-emptydir-data" in cmd
    assert "--ignore-daemonsets=true" in cmd
    assert "--force" in cmd
    assert "--timeout=20s" in cmd
    assert "--grace-period=5" in cmd
    assert runner.run.call_args.kwargs["timeout"] == 20


def test_cordon_timeout_is_reported_not_raised(log_lines):
    client, _ = make_client(outcome=CommandOutcome.TIMED_OUT, returncode=None)

    result = client.cordon("worker-1", timeout=10)

    assert result.timed_out
    assert any("Cordon timed out after 10s - continuing anyway" in line for line in log_lines)


def test_cordon_failure_logs_exit_code(log_lines):
    client, _ = make_client(outcome=CommandOutcome.FAILED, returncode=1)

    result = client.cordon("worker-1", timeout=10)

    assert not result.succeeded
    assert any("Failed to cordon node: worker-1 (exit code: 1)" in line for line in log_lines)


def test_drain_timeout_and_failure_are_distinguished(log_lines):
    client, _ = make_client(outcome=CommandOutcome.TIMED_OUT, returncode=None)
    client.drain("worker-1", timeout=20, grace_period=5)

    client, _ = make_client(outcome=CommandOutcome.FAILED, returncode=1)
    client.drain("worker-1", timeout=20, grace_period=5)

    assert any("Drain timed out after 20s" in line for line in log_lines)
    assert any("Failed to drain node: worker-1 (exit code: 1)" in line for line in log_lines)
