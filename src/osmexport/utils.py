"""
Shared Utilities

Sections:
- Logging and timing utilities
- Signal handling for cancellation
"""

import contextlib
import functools
import logging
import signal
import sys
import time
from collections.abc import Callable, Iterator
from datetime import datetime
from pathlib import Path
from typing import Optional

# =============================================================================
# Logging and Timing Utilities
# =============================================================================

def setup_logging(
    verbose: bool,
    target_name: Optional[str] = None,
    mode: Optional[str] = None,
    enable_file_logging: bool = False
) -> None:
    """
    Configure logging with optional timestamped file output.

    Args:
        verbose: Enable debug-level logging if True
        target_name: Target name for log file naming
        mode: Operation mode for log file naming
        enable_file_logging: Create timestamped log files when True
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]

    if enable_file_logging and target_name and mode:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = logs_dir / f"{target_name}_{mode}_{timestamp}.log"

        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        print(f"Logging to: {log_file}")

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True
    )


def timer(func: Callable) -> Callable:
    """Decorator to time function execution."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        end_time = time.time()
        logging.info(f"{func.__name__} completed in {end_time - start_time:.2f} seconds")
        return result
    return wrapper


# =============================================================================
# Signal Handling
# =============================================================================

@contextlib.contextmanager
def cancel_on_signals(cancel: Callable[[], None]) -> Iterator[None]:
    """Route SIGINT/SIGTERM to `cancel` while the block runs, then restore the previous handlers."""
    def signal_handler(signum: int, frame) -> None:
        logging.warning(f"Received signal {signum}, canceling export...")
        cancel()

    previous = {
        signum: signal.signal(signum, signal_handler) for signum in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
