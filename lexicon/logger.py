"""
Centralized debug logging for AI Lexicon.

Every line is timestamped and tagged with a short category so the flow of a
lookup (text call -> image call -> entry) or a speech request can be followed
in the terminal:

    from lexicon.logger import logger, Timer

    logger.api_call("chat.completions.create", model="gpt-4o-mini")
    logger.audio("Decoded 1.2s of speech")
    logger.error("Notebook blob unreadable", exc_info=True)

Set LEXICON_DEBUG=0 in the environment to silence output.
"""

import os
import sys
import time
import traceback
from datetime import datetime
from typing import Optional

# Force UTF-8 output so the status glyphs (✓, ✗, →) never raise on Windows consoles
if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8")
if hasattr(sys.stderr, "reconfigure"):
    sys.stderr.reconfigure(encoding="utf-8")


class ColorCodes:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"


class DebugLogger:
    """
    Category-tagged console logger.

    Categories:
    - ENV:  settings and .env loading
    - API:  calls to the generative services
    - IMG:  illustration generation
    - AUD:  speech decoding and playback
    - DB:   notebook / setup persistence
    - UI:   controller state changes
    - TASK: background threads
    - OK / WARN / ERR / INFO / DBG: general status
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._start_time = datetime.now()

    def _timestamp(self) -> str:
        now = datetime.now()
        elapsed = (now - self._start_time).total_seconds()
        return f"{now.strftime('%H:%M:%S')}.{now.microsecond // 1000:03d} (+{elapsed:>6.1f}s)"

    def _log(self, category: str, color: str, message: str, **kwargs) -> None:
        if not self.enabled:
            return

        timestamp = self._timestamp()
        prefix = f"{ColorCodes.DIM}{timestamp}{ColorCodes.RESET}"
        tag = f"{color}{ColorCodes.BOLD}[{category:>4}]{ColorCodes.RESET}"
        padding = " " * (len(timestamp) + 8)

        first, *rest = message.split("\n")
        print(f"{prefix} {tag} {first}", file=sys.stdout, flush=True)
        for line in rest:
            print(f"{ColorCodes.DIM}{padding}{ColorCodes.RESET}{line}", file=sys.stdout, flush=True)

        if kwargs.get("exc_info"):
            for line in traceback.format_exc().split("\n"):
                if line.strip():
                    print(f"{ColorCodes.DIM}{padding}{ColorCodes.RED}{line}{ColorCodes.RESET}",
                          file=sys.stderr, flush=True)

    # === Environment/Configuration ===
    def env(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.MAGENTA, message, **kwargs)

    def env_success(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.GREEN, f"✓ {message}", **kwargs)

    def env_error(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.RED, f"✗ {message}", **kwargs)

    # === Service calls ===
    def api(self, message: str, **kwargs) -> None:
        self._log("API", ColorCodes.CYAN, message, **kwargs)

    def api_call(self, endpoint: str, model: Optional[str] = None, **kwargs) -> None:
        """Log an outgoing service call."""
        model_info = f" (model: {model})" if model else ""
        self._log("API", ColorCodes.CYAN, f"→ Calling {endpoint}{model_info}", **kwargs)

    def api_response(self, endpoint: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        """Log a service response."""
        duration_info = f" ({duration_ms:.0f}ms)" if duration_ms else ""
        self._log("API", ColorCodes.BRIGHT_CYAN, f"← Response from {endpoint}{duration_info}", **kwargs)

    def api_error(self, message: str, **kwargs) -> None:
        self._log("API", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    # === Illustrations ===
    def img(self, message: str, **kwargs) -> None:
        self._log("IMG", ColorCodes.YELLOW, message, **kwargs)

    def img_start(self, prompt: str, **kwargs) -> None:
        display_prompt = prompt[:60] + "..." if len(prompt) > 60 else prompt
        self._log("IMG", ColorCodes.YELLOW, f"→ Illustrating: \"{display_prompt}\"", **kwargs)

    def img_complete(self, size_bytes: int, duration_ms: Optional[float] = None, **kwargs) -> None:
        duration_info = f" ({duration_ms:.0f}ms)" if duration_ms else ""
        self._log("IMG", ColorCodes.BRIGHT_GREEN, f"✓ Received {size_bytes} bytes{duration_info}", **kwargs)

    def img_error(self, message: str, **kwargs) -> None:
        self._log("IMG", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    # === Audio ===
    def audio(self, message: str, **kwargs) -> None:
        self._log("AUD", ColorCodes.BRIGHT_MAGENTA, message, **kwargs)

    def audio_error(self, message: str, **kwargs) -> None:
        self._log("AUD", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    # === Persistence ===
    def store(self, message: str, **kwargs) -> None:
        self._log("DB", ColorCodes.GREEN, message, **kwargs)

    # === UI / controller ===
    def ui(self, message: str, **kwargs) -> None:
        self._log("UI", ColorCodes.BLUE, message, **kwargs)

    def ui_transition(self, from_state: str, to_state: str, **kwargs) -> None:
        self._log("UI", ColorCodes.BRIGHT_BLUE, f"{from_state} → {to_state}", **kwargs)

    # === Background Tasks ===
    def task(self, message: str, **kwargs) -> None:
        self._log("TASK", ColorCodes.WHITE, message, **kwargs)

    def task_start(self, task_name: str, **kwargs) -> None:
        self._log("TASK", ColorCodes.WHITE, f"⚡ Starting: {task_name}", **kwargs)

    def task_complete(self, task_name: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        duration_info = f" ({duration_ms:.0f}ms)" if duration_ms else ""
        self._log("TASK", ColorCodes.BRIGHT_GREEN, f"✓ Completed: {task_name}{duration_info}", **kwargs)

    def task_error(self, task_name: str, error: str, **kwargs) -> None:
        self._log("TASK", ColorCodes.BRIGHT_RED, f"✗ Failed: {task_name} - {error}", **kwargs)

    # === General Status ===
    def success(self, message: str, **kwargs) -> None:
        self._log("OK", ColorCodes.BRIGHT_GREEN, f"✓ {message}", **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log("WARN", ColorCodes.BRIGHT_YELLOW, f"⚠ {message}", **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log("ERR", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log("INFO", ColorCodes.WHITE, message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log("DBG", ColorCodes.DIM, message, **kwargs)

    # === Separators/Formatting ===
    def separator(self, title: Optional[str] = None) -> None:
        if not self.enabled:
            return
        line = f"{'─' * 20} {title} {'─' * 20}" if title else "─" * 60
        print(f"\n{ColorCodes.DIM}{line}{ColorCodes.RESET}\n", file=sys.stdout, flush=True)

    def banner(self, text: str) -> None:
        if not self.enabled:
            return
        width = max(60, len(text) + 4)
        border = "═" * width
        padding = " " * ((width - len(text)) // 2)
        print(f"\n{ColorCodes.BRIGHT_CYAN}{border}{ColorCodes.RESET}", file=sys.stdout, flush=True)
        print(f"{ColorCodes.BRIGHT_CYAN}{padding}{ColorCodes.BOLD}{text}{ColorCodes.RESET}", file=sys.stdout, flush=True)
        print(f"{ColorCodes.BRIGHT_CYAN}{border}{ColorCodes.RESET}\n", file=sys.stdout, flush=True)


def _debug_enabled() -> bool:
    return os.getenv("LEXICON_DEBUG", "1").strip().lower() not in ("0", "false", "no", "off")


# Global logger instance
logger = DebugLogger(enabled=_debug_enabled())


class Timer:
    """Context manager measuring the wall time of a block in milliseconds."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.duration_ms: float = 0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        if self.start_time:
            self.duration_ms = (time.perf_counter() - self.start_time) * 1000
