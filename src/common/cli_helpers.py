"""Common CLI helper utilities."""

from __future__ import annotations

import argparse
import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Configure standard logging format for CLI tools.

    Verbose mode lets informational messages through; otherwise only
    warnings and errors are shown.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


def parse_positive_int(value: str, field_name: str = "value") -> int:
    """Parse a strictly positive integer for argparse arguments.

    Raises:
        argparse.ArgumentTypeError: If the value is not an integer >= 1.
    """
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{field_name} must be an integer") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"{field_name} must be at least 1")
    return number
