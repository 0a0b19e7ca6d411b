# Test configuration
import os
import stat
import sys
from pathlib import Path

import pytest
import structlog

REPO_ROOT = Path(__file__).parent.parent

# Add repo root to path so tests can import modules
sys.path.insert(0, str(REPO_ROOT))

from src.worker.session import SessionConfig  # noqa: E402

FAKE_WORKER = Path(__file__).parent / "fake_worker.py"


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging configuration a test applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_worker(tmp_path):
    """Factory writing an executable wrapper around fake_worker.py.

    Usage: ``make_worker("hang_request")`` or
    ``make_worker("normal", tools=3, prefix="alpha")``.
    """
    counter = {"n": 0}

    def _make(mode: str = "normal", **options) -> str:
        counter["n"] += 1
        extra = " ".join(
            f"--{key.replace('_', '-')} '{value}'" for key, value in options.items()
        )
        script = tmp_path / f"worker_{counter['n']}_{mode}.sh"
        script.write_text(
            f"#!/bin/sh\nexec '{sys.executable}' '{FAKE_WORKER}' --mode {mode} {extra}\n",
            encoding="utf-8",
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _make


@pytest.fixture
def session_config() -> SessionConfig:
    """Short budgets so failure paths finish quickly."""
    return SessionConfig(
        handshake_timeout=5.0,
        request_timeout=5.0,
        exit_timeout=2.0,
        stream_limit=1024 * 1024,
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove gateway settings that may leak in from the environment."""
    for name in (
        "HOST", "PORT", "LOG_LEVEL", "ROUTES_CONFIG_PATH", "HANDSHAKE_TIMEOUT_SECONDS",
        "REQUEST_TIMEOUT_SECONDS", "EXIT_TIMEOUT_SECONDS", "STREAM_LIMIT_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)
    return os.environ
