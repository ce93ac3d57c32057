"""Demonstration: the main thread and two worker threads each leak blocks."""

from __future__ import annotations

import argparse
import threading
import time
from typing import Optional, Sequence

from .tracer import LeaksDetectedError, alloc, install, uninstall

INT8_SIZE = 1
INT16_SIZE = 2
INT32_SIZE = 4
LEAKS_PER_THREAD = 5
LEAK_DELAY = 0.01


def leak_worker(
    label: str, size: int, count: int = LEAKS_PER_THREAD, delay: float = LEAK_DELAY
) -> None:
    """Leak ``count`` blocks of ``size`` bytes, announcing each and pausing between them."""
    for _ in range(count):
        print(f"{label} is leaking . . .", flush=True)
        alloc(size)
        time.sleep(delay)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Leak from three threads under a tracer; return 1 if leaks were reported."""
    parser = argparse.ArgumentParser(
        prog="threads_demo",
        description="Leak blocks from the main thread and two workers, then report them.",
    )
    parser.parse_args(argv)

    install()
    try:
        print("Main thread is leaking . . .", flush=True)
        alloc(INT8_SIZE)

        workers = [
            threading.Thread(target=leak_worker, args=("Child thread 1", INT16_SIZE)),
            threading.Thread(target=leak_worker, args=("Child thread 2", INT32_SIZE)),
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
    finally:
        try:
            uninstall()
        except LeaksDetectedError:
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())