import pytest

from tinyleakcheck.arraystack import PUSHABLE_DEPTH, ArrayStack, StackError


def test_initial_values_top_is_last():
    stack = ArrayStack("a", "b", "c")
    assert len(stack) == 3
    assert stack.peek() == "c"
    assert stack[0] == "c"
    assert stack[2] == "a"


def test_empty_stack_is_falsy():
    stack = ArrayStack()
    assert not stack
    assert len(stack) == 0


def test_single_value_is_truthy():
    stack = ArrayStack(True)
    assert stack
    assert stack.peek() is True


def test_push_pop_round_trip():
    stack = ArrayStack(capacity=5)
    for value in [10, 20, 30]:
        stack.push(value)
    assert [stack.pop(), stack.pop(), stack.pop()] == [30, 20, 10]
    assert not stack


def test_push_then_peek():
    stack = ArrayStack(False)
    stack.push(True)
    assert stack.peek() is True
    assert stack.pop() is True
    assert stack.peek() is False


def test_iteration_goes_top_to_bottom():
    stack = ArrayStack(1, 2, 3)
    assert list(stack) == [3, 2, 1]


def test_clear():
    stack = ArrayStack(1, 2)
    stack.clear()
    assert len(stack) == 0
    with pytest.raises(StackError):
        stack.peek()


def test_default_capacity_matches_depth():
    stack = ArrayStack()
    assert stack.capacity == PUSHABLE_DEPTH
    for i in range(PUSHABLE_DEPTH):
        stack.push(i)
    assert len(stack) == PUSHABLE_DEPTH
    with pytest.raises(StackError):
        stack.push(PUSHABLE_DEPTH)


def test_overflow():
    stack = ArrayStack(capacity=2)
    stack.push("x")
    stack.push("y")
    with pytest.raises(StackError, match="overflow"):
        stack.push("z")
    assert stack.peek() == "y"


def test_underflow():
    stack = ArrayStack()
    with pytest.raises(StackError, match="underflow"):
        stack.pop()


def test_peek_empty():
    with pytest.raises(StackError, match="no elements"):
        ArrayStack().peek()


def test_index_out_of_bound():
    stack = ArrayStack(1, 2)
    assert stack[0] == 2
    assert stack[1] == 1
    with pytest.raises(StackError):
        stack[2]
    with pytest.raises(StackError):
        stack[-1]
    assert len(stack) == 2


def test_index_error_is_index_error():
    with pytest.raises(IndexError):
        ArrayStack()[0]


def test_non_integer_index():
    with pytest.raises(TypeError):
        ArrayStack(1)["0"]


def test_initial_values_must_leave_room():
    with pytest.raises(StackError):
        ArrayStack(1, 2, capacity=2)
    stack = ArrayStack(1, capacity=2)
    assert stack.peek() == 1


def test_invalid_capacity():
    with pytest.raises(ValueError):
        ArrayStack(capacity=0)


@pytest.mark.parametrize("values", [(True,), (True, False), (1, 2, 3, 4)])
def test_len_matches_pushed(values):
    stack = ArrayStack(capacity=8)
    for v in values:
        stack.push(v)
    assert len(stack) == len(values)
    assert list(stack) == list(reversed(values))