"""Colored sync logger — ANSI-colored console logging for watcher sampling passes.

Provides a SyncLogger with color-coded output per pass stage, making it
easy to visually trace polling, diffing and event emission in the terminal.

Color scheme:
    🔵 Blue    — Polling the store
    🟡 Yellow  — Differential detection
    🟣 Magenta — Full-record fetch
    🟢 Green   — Event emission / cache
    🟠 Cyan    — Background preload
    🔴 Red     — Errors
    ⚪ Gray    — Timing / Stats
"""

import logging
import time
from contextlib import contextmanager
from typing import Any


# ── ANSI Color Codes ─────────────────────────────────────────────────

class _Colors:
    """ANSI escape codes for terminal colors."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


# ── Pass Stage Definitions ───────────────────────────────────────────

class SyncStage:
    """Predefined sampling-pass stages with colors and icons."""

    POLL = ("POLL", _Colors.BLUE, "🔍")
    DIFF = ("DIFF", _Colors.YELLOW, "🧮")
    FETCH = ("FETCH", _Colors.MAGENTA, "📥")
    EMIT = ("EMIT", _Colors.GREEN, "📣")
    CACHE = ("CACHE", _Colors.GREEN, "📦")
    PRELOAD = ("PRELOAD", _Colors.CYAN, "🚀")
    WATCHER = ("WATCHER", _Colors.WHITE, "⚙️")
    ERROR = ("ERROR", _Colors.RED, "❌")


# ── SyncLogger ───────────────────────────────────────────────────────

class SyncLogger:
    """Color-coded logger for the database watcher.

    Usage:
        log = SyncLogger("DatabaseWatcher")
        log.step_start(SyncStage.POLL, "Sampling store")
        log.detail("tests=120 processes=4800")
        log.step_complete(SyncStage.EMIT, "Change event #4 published")
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)
        self._component = component_name

    def step_start(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        """Log the start of a pass step with its stage color."""
        label, color, icon = stage
        formatted = (
            f"{color}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{color}{message}{_Colors.RESET}"
        )
        if kwargs:
            details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted += f" {_Colors.GRAY}({details}){_Colors.RESET}"
        self._logger.info(formatted)

    def step_complete(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        """Log the successful completion of a pass step."""
        label, color, icon = stage
        formatted = (
            f"{color}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.GREEN}✓ {message}{_Colors.RESET}"
        )
        if kwargs:
            details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted += f" {_Colors.GRAY}({details}){_Colors.RESET}"
        self._logger.info(formatted)

    def step_error(self, stage: tuple[str, str, str], message: str, error: Exception | None = None) -> None:
        """Log a pass step error in red."""
        label, _, icon = stage
        formatted = (
            f"{_Colors.RED}{_Colors.BOLD}❌ [{label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}"
        )
        if error:
            formatted += f" {_Colors.DIM}→ {type(error).__name__}: {error}{_Colors.RESET}"
        self._logger.error(formatted)

    def quiet(self, message: str, **kwargs: Any) -> None:
        """Log routine no-op ticks at DEBUG so idle polling stays silent."""
        formatted = f"{_Colors.GRAY}{message}{_Colors.RESET}"
        if kwargs:
            details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted += f" {_Colors.DIM}({details}){_Colors.RESET}"
        self._logger.debug(formatted)

    def detail(self, message: str, **kwargs: Any) -> None:
        """Log additional detail (gray/dimmed)."""
        formatted = f"   {_Colors.GRAY}├─ {message}{_Colors.RESET}"
        if kwargs:
            details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted += f" {_Colors.DIM}({details}){_Colors.RESET}"
        self._logger.info(formatted)

    def stats(self, **kwargs: Any) -> None:
        """Log statistics / timing information."""
        parts = [f"{_Colors.GRAY}{k}: {v}" for k, v in kwargs.items()]
        formatted = f"   {_Colors.GRAY}📈 {' | '.join(parts)}{_Colors.RESET}"
        self._logger.info(formatted)

    @contextmanager
    def timed_step(self, stage: tuple[str, str, str], message: str, **kwargs: Any):
        """Context manager that logs start/end with elapsed time.

        Usage:
            with log.timed_step(SyncStage.FETCH, "Fetching changed records"):
                records = await store.read_full_processes(keys)
        """
        self.step_start(stage, message, **kwargs)
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - start
            self.step_error(stage, f"{message} — failed after {elapsed:.2f}s", error=e)
            raise
        else:
            elapsed = time.perf_counter() - start
            self.step_complete(stage, f"{message} — {elapsed:.2f}s", **kwargs)
