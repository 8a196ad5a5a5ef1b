"""UI layer -- Rich results table, progress bar, and output writers."""

from .dashboard import (
    ProgressDisplay,
    build_results_table,
    console,
    print_header,
    print_results,
)
from .log import setup_logging
from .output import (
    create_result_json,
    save_json,
    save_proxies,
    save_results,
)

__all__ = [
    "ProgressDisplay",
    "build_results_table",
    "console",
    "create_result_json",
    "print_header",
    "print_results",
    "save_json",
    "save_proxies",
    "save_results",
    "setup_logging",
]
