"""Allocation tracing and leak reporting.

A :class:`MemoryTracer` records every allocation it is told about, together with the
allocating thread and (optionally) the call stack.  Deallocations remove the record.
Whatever is still recorded when the tracer is closed is reported as a leak.
"""

from __future__ import annotations

import itertools
import os
import sys
import threading
import traceback
from dataclasses import dataclass, field
from typing import IO, Callable, Hashable, Iterable, Optional, Sequence

from .arraystack import ArrayStack

DEFAULT_ALIGNMENT = 16
MAX_ALIGNMENT = 0xFFFF

PRETTIFY_STRS: tuple[tuple[str, str], ...] = (
    ("> >", ">>"),
    ("basic_string<char,std::char_traits<char>,std::allocator<char>>", "string"),
    ("basic_ifstream<char,std::char_traits<char>>", "ifstream"),
)
PRETTIFY_ENVS: tuple[str, ...] = ("VS2019INSTALLDIR",)
IGNORE_FUNCS: tuple[str, ...] = ("std::use_facet", "std::_Facet_Register")

_LOCK = threading.RLock()
_THIS_FILE = os.path.normcase(os.path.abspath(__file__))


class LeaksDetectedError(RuntimeError):
    """Raised by the default leak handler when blocks were never freed."""

    def __init__(self, blocks: Iterable[BlockInfo]) -> None:
        self.blocks = tuple(blocks)
        super().__init__(f"Leaks detected! {len(self.blocks)} block(s) were never freed")


class InvalidPointerError(ValueError):
    """Raised when freeing a pointer that was never recorded as allocated."""

    def __init__(self, ptr: object) -> None:
        self.ptr = ptr
        super().__init__(f"Deleting an invalid pointer {_format_ptr(ptr)}!")


def replace_all(text: str, find: str, replacement: str) -> str:
    """Replace every occurrence of ``find``; an empty ``find`` leaves the text alone."""
    if not find:
        return text
    return text.replace(find, replacement)


def _format_ptr(ptr: object) -> str:
    if isinstance(ptr, int) and not isinstance(ptr, bool) and ptr >= 0:
        return f"0x{ptr:x}"
    return repr(ptr)


@dataclass(frozen=True)
class _Style:
    replacements: tuple[tuple[str, str], ...] = PRETTIFY_STRS
    envs: tuple[str, ...] = PRETTIFY_ENVS
    ignore_funcs: tuple[str, ...] = IGNORE_FUNCS

    def prettify_name(self, name: str) -> str:
        for find, replacement in self.replacements:
            name = replace_all(name, find, replacement)
        return name

    def is_ignored(self, name: str) -> bool:
        return any(ignored in name for ignored in self.ignore_funcs)

    def shorten_path(self, filename: str) -> str:
        shortest = filename
        for varname in self.envs:
            value = os.environ.get(varname)
            if value is None:
                continue
            candidate = replace_all(filename, value, f"%{varname}%")
            if len(candidate) < len(shortest):
                shortest = candidate
        return shortest


_DEFAULT_STYLE = _Style()


def _is_internal(frame: traceback.FrameSummary) -> bool:
    return os.path.normcase(os.path.abspath(frame.filename)) == _THIS_FILE


def _capture_trace() -> tuple[traceback.FrameSummary, ...]:
    """Return the caller's stack, innermost first, without this module's own frames."""
    stack = traceback.extract_stack()
    return tuple(itertools.dropwhile(_is_internal, reversed(stack)))


class BlockInfo:
    """One recorded allocation."""

    __slots__ = ("ptr", "alignment", "size", "thread_id", "trace", "_style", "_text", "_keep")

    def __init__(
        self,
        ptr: Hashable,
        alignment: int,
        size: int,
        trace: Sequence[traceback.FrameSummary] = (),
        thread_id: Optional[int] = None,
        style: Optional[_Style] = None,
    ) -> None:
        self.ptr = ptr
        self.alignment = alignment
        self.size = size
        self.thread_id = threading.get_ident() if thread_id is None else thread_id
        self.trace = tuple(trace)
        self._style = style or _DEFAULT_STYLE
        self._text: Optional[str] = None
        self._keep = True

    def _finalize(self) -> bool:
        """Build the report text; return whether the block still counts as a leak."""
        style = self._style
        keep = True
        header = (
            f"  Leaked {_format_ptr(self.ptr)} "
            f"( align {self.alignment}, size {self.size}, thread {self.thread_id} )"
        )
        if not self.trace:
            parts = [header, "\n"]
        else:
            parts = [header, " allocated at:\n"]
            for frame in self.trace:
                descr = style.prettify_name(frame.name or "")
                if keep and style.is_ignored(descr):
                    keep = False
                line = "    " + (descr or "<unknown>")
                if frame.filename:
                    line += " at " + style.shorten_path(frame.filename)
                    if frame.lineno:
                        line += f"({frame.lineno})"
                parts.append(line + "\n")
        self._text = "".join(parts)
        self._keep = keep
        return keep

    def describe(self) -> str:
        """Return the human-readable leak record for this block."""
        if self._text is None:
            self._finalize()
        assert self._text is not None
        return self._text

    def basic_print(self, file: Optional[IO[str]] = None) -> None:
        """Write the leak record to ``file`` (standard error by default)."""
        (sys.stderr if file is None else file).write(self.describe())

    def __repr__(self) -> str:
        return (
            f"BlockInfo(ptr={_format_ptr(self.ptr)}, alignment={self.alignment}, "
            f"size={self.size}, thread_id={self.thread_id})"
        )


def _default_print_block(tracer: MemoryTracer, block: BlockInfo) -> None:
    block.basic_print()


def _default_post_alloc(tracer: MemoryTracer, ptr: Hashable, alignment: int, size: int) -> None:
    pass


def _default_pre_dealloc(tracer: MemoryTracer, ptr: Hashable, alignment: int) -> None:
    pass


def _default_leaks_detected(tracer: MemoryTracer) -> None:
    sys.stderr.write("Leaks detected!\n")
    for block in tracer.blocks.values():
        tracer.callbacks.print_block(tracer, block)
    raise LeaksDetectedError(tracer.blocks.values())


def _stack_of(value: bool) -> ArrayStack[bool]:
    return ArrayStack(value)


@dataclass
class Mode:
    """Pushable switches: whether to record, and whether to capture stacks."""

    record: ArrayStack[bool] = field(default_factory=lambda: _stack_of(True))
    with_stacktrace: ArrayStack[bool] = field(default_factory=lambda: _stack_of(True))


@dataclass
class Callbacks:
    """Hooks a user may replace to customise the tracer's behaviour."""

    print_block: Callable[[MemoryTracer, BlockInfo], None] = _default_print_block
    post_alloc: Callable[[MemoryTracer, Hashable, int, int], None] = _default_post_alloc
    pre_dealloc: Callable[[MemoryTracer, Hashable, int], None] = _default_pre_dealloc
    leaks_detected: Callable[[MemoryTracer], None] = _default_leaks_detected


class MemoryTracer:
    """Records allocations and reports those never freed when closed."""

    def __init__(
        self,
        record: bool = True,
        with_stacktrace: bool = True,
        prettify_strs: Iterable[tuple[str, str]] = PRETTIFY_STRS,
        prettify_envs: Iterable[str] = PRETTIFY_ENVS,
        ignore_funcs: Iterable[str] = IGNORE_FUNCS,
    ) -> None:
        self.mode = Mode(_stack_of(record), _stack_of(with_stacktrace))
        self.blocks: dict[Hashable, BlockInfo] = {}
        self.callbacks = Callbacks()
        self._style = _Style(
            tuple((find, replacement) for find, replacement in prettify_strs),
            tuple(prettify_envs),
            tuple(ignore_funcs),
        )

    def record_alloc(self, ptr: Hashable, alignment: int, size: int) -> None:
        """Record that ``size`` bytes were allocated at ``ptr``."""
        with _LOCK:
            if not self.mode.record.peek():
                return
            self.mode.record.push(False)
            try:
                if ptr not in self.blocks:
                    trace = _capture_trace() if self.mode.with_stacktrace.peek() else ()
                    self.blocks[ptr] = BlockInfo(ptr, alignment, size, trace, style=self._style)
                self.callbacks.post_alloc(self, ptr, alignment, size)
            finally:
                self.mode.record.pop()

    def record_dealloc(self, ptr: Optional[Hashable], alignment: int) -> None:
        """Record that the block at ``ptr`` was freed; ``None`` is ignored."""
        if ptr is None:
            return
        with _LOCK:
            if not self.mode.record.peek():
                return
            self.mode.record.push(False)
            try:
                self.callbacks.pre_dealloc(self, ptr, alignment)
                if ptr not in self.blocks:
                    raise InvalidPointerError(ptr)
                del self.blocks[ptr]
            finally:
                self.mode.record.pop()

    def close(self) -> None:
        """Stop recording and report every block that is still allocated."""
        with _LOCK:
            if not self.blocks:
                return
            # Recording stays off for good once the tracer is closed.
            self.mode.record.push(False)
            self.blocks = {
                ptr: block
                for ptr, block in sorted(self.blocks.items(), key=lambda item: item[0])
                if block._finalize()
            }
            if not self.blocks:
                return
            try:
                self.callbacks.leaks_detected(self)
            finally:
                self.blocks.clear()

    def __enter__(self) -> MemoryTracer:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.close()
        else:
            try:
                self.close()
            except LeaksDetectedError:
                pass
        return False


_installed: Optional[MemoryTracer] = None
_live: dict[int, bytearray] = {}


def install(tracer: Optional[MemoryTracer] = None) -> MemoryTracer:
    """Make ``tracer`` (or a new one) the tracer used by :func:`alloc` and :func:`free`."""
    global _installed
    with _LOCK:
        if _installed is not None:
            raise RuntimeError("a memory tracer is already installed")
        _installed = MemoryTracer() if tracer is None else tracer
        return _installed


def uninstall() -> None:
    """Detach the installed tracer, if any, and close it so leaks are reported."""
    global _installed
    with _LOCK:
        tracer, _installed = _installed, None
    if tracer is not None:
        tracer.close()


def current_tracer() -> Optional[MemoryTracer]:
    """Return the installed tracer, or ``None``."""
    return _installed


def alloc(size: int, alignment: int = DEFAULT_ALIGNMENT) -> bytearray:
    """Allocate a zeroed block, recording it with the installed tracer."""
    if not 1 <= alignment <= MAX_ALIGNMENT:
        raise ValueError(f"Alignment {alignment} out of range 1..{MAX_ALIGNMENT}!")
    if size < 0:
        raise ValueError(f"size must not be negative, got {size}")
    block = bytearray(size)
    ptr = id(block)
    with _LOCK:
        _live[ptr] = block
        tracer = _installed
        if tracer is not None:
            tracer.record_alloc(ptr, alignment, size)
    return block


def free(block: Optional[bytearray], alignment: int = DEFAULT_ALIGNMENT) -> None:
    """Free a block returned by :func:`alloc`; ``None`` is ignored."""
    if block is None:
        return
    ptr = id(block)
    with _LOCK:
        if _live.get(ptr) is not block:
            raise InvalidPointerError(ptr)
        tracer = _installed
        if tracer is not None:
            tracer.record_dealloc(ptr, alignment)
        del _live[ptr]