"""Demonstration: a few nested functions that leak blocks, reported at shutdown."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .tracer import LeaksDetectedError, alloc, install, uninstall

INT_SIZE = 4
CHAR_SIZE = 1


def function_c() -> None:
    """Leak an int-sized block: the result should have been kept and freed."""
    alloc(INT_SIZE)


def function_b() -> None:
    """Call :func:`function_c`, then leak a char-sized block."""
    function_c()
    alloc(CHAR_SIZE)


def function_a() -> None:
    """Start the chain of leaking calls."""
    function_b()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the leaking functions under a tracer; return 1 if leaks were reported."""
    parser = argparse.ArgumentParser(
        prog="leaks_demo",
        description="Leak a few blocks from nested calls and report them on exit.",
    )
    parser.parse_args(argv)

    install()
    try:
        function_a()
    finally:
        try:
            uninstall()
        except LeaksDetectedError:
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())