import pytest

from tinyleakcheck import leaks_demo
from tinyleakcheck.tracer import MemoryTracer, current_tracer, install, uninstall


@pytest.fixture
def captured():
    found = []
    tracer = MemoryTracer()
    tracer.callbacks.leaks_detected = lambda t: found.extend(t.blocks.values())
    install(tracer)
    try:
        yield tracer, found
    finally:
        if current_tracer() is not None:
            uninstall()


def test_function_a_leaks_two_blocks(captured):
    tracer, found = captured
    leaks_demo.function_a()
    assert len(tracer.blocks) == 2
    uninstall()
    assert sorted(b.size for b in found) == sorted(
        [leaks_demo.INT_SIZE, leaks_demo.CHAR_SIZE]
    )


def test_int_leak_trace_points_at_function_c(captured):
    tracer, found = captured
    leaks_demo.function_a()
    uninstall()
    int_block = next(b for b in found if b.size == leaks_demo.INT_SIZE)
    names = [frame.name for frame in int_block.trace]
    assert names[:3] == ["function_c", "function_b", "function_a"]


def test_char_leak_trace_points_at_function_b(captured):
    tracer, found = captured
    leaks_demo.function_b()
    uninstall()
    char_block = next(b for b in found if b.size == leaks_demo.CHAR_SIZE)
    assert char_block.trace[0].name == "function_b"
    assert "function_b" in char_block.describe()


def test_function_c_alone_leaks_one_block(captured):
    tracer, found = captured
    leaks_demo.function_c()
    assert [b.size for b in tracer.blocks.values()] == [leaks_demo.INT_SIZE]


def test_main_reports_leaks(capsys):
    assert leaks_demo.main([]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Leaks detected!\n")
    assert err.count("  Leaked ") == 2
    assert "function_c" in err
    assert current_tracer() is None


def test_main_rejects_unknown_arguments():
    with pytest.raises(SystemExit):
        leaks_demo.main(["--bogus"])
    assert current_tracer() is None