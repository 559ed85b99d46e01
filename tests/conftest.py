"""Shared fixtures: a fake mounted host filesystem and a loguru capture sink."""

import os
from pathlib import Path
from typing import List

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def reset_logger():
    """CLI tests reconfigure loguru; start and end every test from a clean slate."""
    logger.remove()
    yield
    logger.remove()


@pytest.fixture
def log_lines() -> List[str]:
    """Captured log lines as 'LEVEL|message'."""
    lines: List[str] = []
    logger.add(lambda m: lines.append(str(m).rstrip("\n")), format="{level}|{message}", level="TRACE")
    return lines


@pytest.fixture
def host_root(tmp_path) -> Path:
    """A directory that passes the host mount check."""
    root = tmp_path / "host"
    for sub in ("usr/bin", "etc", "var/log", "run", "proc", "var/lib/kubelet"):
        (root / sub).mkdir(parents=True)
    return root


@pytest.fixture
def install_file(host_root):
    """Create a file at a host-relative absolute path inside host_root."""

    def _install(path: str, content: str = "", executable: bool = False) -> Path:
        target = host_root / path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        if executable:
            os.chmod(target, 0o755)
        return target

    return _install
