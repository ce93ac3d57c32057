# tinyleakcheck

A tiny, standalone, thread-safe memory tracer and leak checker.

A `MemoryTracer` (in `tinyleakcheck.tracer`) records every allocation and
deallocation that is reported to it. Each allocation becomes a `BlockInfo`.
A `BlockInfo` holds the pointer, alignment and size, the id of the thread that
made it, and, unless disabled, the call stack where it was made. The stack is
stored innermost frame first. When the tracer is closed, blocks that were never
freed are reported as leaks. A block is dropped from the report when any frame
of its stack has a name containing one of the tracer's ignored function names.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Usage

Install a tracer, then allocate and free through the package. Uninstalling
the tracer closes it, and closing checks for leaks:

```python
from tinyleakcheck.tracer import MemoryTracer, install, uninstall, alloc, free

install(MemoryTracer())   # or install() to create a default tracer

block = alloc(16, 8)      # a zeroed bytearray of size 16, alignment 8
free(block, 8)

uninstall()               # nothing leaked, so this returns quietly
```

`alloc(size, alignment=16)` returns a zeroed `bytearray` and records it under
its `id()`. The alignment must be between 1 and 65535, and the size must not be
negative. Otherwise `ValueError` is raised. `free(block, alignment=16)` ignores
`None`. It raises `InvalidPointerError` for a block that did not come from
`alloc` or was already freed. `install` raises `RuntimeError` if a tracer is
already installed. `current_tracer()` returns the installed tracer or `None`.

If blocks are still outstanding when a tracer is closed, the default handling
does three things. It writes `Leaks detected!` to standard error. It then
writes a description of each leaked block, in ascending pointer order. Last,
it raises `LeaksDetectedError`, whose `blocks` attribute holds the leaked
blocks. Each description looks like this:

```
  Leaked 0x7f... ( align 16, size 4, thread 1402... ) allocated at:
    function_c at /path/to/leaks_demo.py(17)
    ...
```

`BlockInfo.describe()` returns this text, and `BlockInfo.basic_print(file)`
writes it to `file`, or to standard error when `file` is `None`.

`MemoryTracer` also works as a context manager and calls `close()` on exit. If
the block is already leaving with an exception, a `LeaksDetectedError` from
closing is suppressed, so the original exception propagates.

On a tracer that is recording, `record_dealloc` raises `InvalidPointerError`
for a pointer it has not recorded.

### Custom allocators

If you manage memory yourself, for example in a pool, you can report its
allocations to the tracer directly. Any hashable value can serve as the
pointer:

```python
tracer.record_alloc(ptr, alignment, size)
...
tracer.record_dealloc(ptr, alignment)
```

`record_dealloc(None, alignment)` does nothing.

### Configuration

`MemoryTracer` takes these keyword arguments:

- `record` (default `True`): whether allocations are recorded at all.
- `with_stacktrace` (default `True`): whether a stack trace is captured for
  each block.
- `prettify_strs`: (find, replace) pairs applied to frame names in reports.
- `prettify_envs`: names of environment variables. Where one of their values
  appears in a file name, it is abbreviated to `%NAME%`, and the shortest
  result is used.
- `ignore_funcs`: substrings of frame names. A leak whose stack contains a
  matching frame does not count.

The default `prettify_strs`, `prettify_envs` and `ignore_funcs` are the
module's `PRETTIFY_STRS`, `PRETTIFY_ENVS` and `IGNORE_FUNCS`.

Both switches are held in the tracer's `mode` (a `Mode`) as `ArrayStack`s:
`mode.record` and `mode.with_stacktrace`. You can push a new setting for a
stretch of code and pop it afterwards to restore the previous one:

```python
tracer.mode.record.push(False)
...                              # not recorded
tracer.mode.record.pop()
```

`ArrayStack` (in `tinyleakcheck.arraystack`) is a fixed-capacity stack with a
default capacity of 8. Indexing counts from the top, so `stack[0]` is the most
recent value. Overflow, underflow, an out-of-range index, and too many initial
values all raise `StackError`.

The tracer's `callbacks` (a `Callbacks`) hold four hooks that you may replace:

- `post_alloc(tracer, ptr, alignment, size)`: runs after each recorded
  allocation.
- `pre_dealloc(tracer, ptr, alignment)`: runs before each recorded
  deallocation.
- `print_block(tracer, block)`: used by the default leak handler for each
  block.
- `leaks_detected(tracer)`: runs when leaks remain at close.

## Demonstrations

Two commands show the checker at work. Each exits with status 1 when leaks
were reported.

```
tinyleakcheck-leaks
```

leaks two blocks from nested function calls (`function_a` → `function_b` →
`function_c`). It then reports them with their allocation sites.

```
tinyleakcheck-threads
```

leaks one block from the main thread and five from each of two worker threads.
The report shows which thread each block came from.

## What it does not do

The tracer does not hook Python's own memory management. It only sees blocks
made with `alloc` and freed with `free`, plus whatever is reported to it
through `record_alloc` and `record_dealloc`.