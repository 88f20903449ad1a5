import time
import pytest

from stepguard.asserts import await_during, await_until_asserted, equals_in_any_order, threw_exception
from stepguard.errors import GuardAssertionError, GuardTimeoutError


class TestEqualsInAnyOrder:

    def test_scalars(self):
        equals_in_any_order(1, 1)
        equals_in_any_order(1, "1.0")
        equals_in_any_order("bob", "bob")
        equals_in_any_order(None, "null")
        equals_in_any_order(True, "true")
        with pytest.raises(GuardAssertionError):
            equals_in_any_order("bob", "alice")

    def test_lists_ignore_order(self):
        equals_in_any_order([1, 2, 3], [3, 1, 2])
        with pytest.raises(GuardAssertionError):
            equals_in_any_order([1, 2, 2], [1, 2, 3])
        with pytest.raises(GuardAssertionError):
            equals_in_any_order([1, 2], [1, 2, 3])

    def test_mappings(self):
        equals_in_any_order({"a": [1, 2], "b": "x"}, {"b": "x", "a": [2, 1]})
        with pytest.raises(GuardAssertionError):
            equals_in_any_order({"a": 1}, {"a": 1, "b": 2})

    @pytest.mark.parametrize("actual, flag", [
        (5, "?== 5"),
        (5, "?!= 4"),
        (5, "?> 4"),
        (5, "?>= 5"),
        (5, "?< 6"),
        (5, "?<= 5"),
        ("abc123", "?e [a-z]+\\d+"),
        ("hello world", "?contains world"),
        ("bob", "?not alice"),
        ("bob", "?bob"),
    ])
    def test_flags_match(self, actual, flag):
        equals_in_any_order(actual, flag)

    @pytest.mark.parametrize("actual, flag", [
        (5, "?== 6"),
        (5, "?> 5"),
        ("abc", "?e \\d+"),
        ("bob", "?not bob"),
        ("bob", "?> 1"),
    ])
    def test_flags_mismatch(self, actual, flag):
        with pytest.raises(GuardAssertionError):
            equals_in_any_order(actual, flag)


class TestPolling:

    def test_await_until_asserted_retries(self):
        attempts = []

        def operation():
            attempts.append(1)
            assert len(attempts) >= 3

        await_until_asserted(operation, 500, 5)
        assert len(attempts) == 3

    def test_await_until_asserted_times_out(self):
        def operation():
            raise AssertionError("nope")

        start = time.monotonic()
        with pytest.raises(GuardTimeoutError, match="within 50ms"):
            await_until_asserted(operation, 50, 5)
        assert time.monotonic() - start >= 0.05

    def test_await_during_checks_whole_window(self):
        attempts = []
        await_during(lambda: attempts.append(1), 50, 5)
        assert len(attempts) > 1

    def test_await_during_wraps_first_failure(self):
        def operation():
            raise ValueError("bad value")

        with pytest.raises(GuardAssertionError) as excinfo:
            await_during(operation, 500, 5)
        assert isinstance(excinfo.value.__cause__, ValueError)


class TestThrewException:

    def test_expected(self):
        def operation():
            raise KeyError("k")

        threw_exception(operation, LookupError)

    def test_none_thrown(self):
        with pytest.raises(GuardAssertionError, match="expected exception of type KeyError but none was thrown"):
            threw_exception(lambda: None, KeyError)

    def test_mismatch_chains_cause(self):
        def operation():
            raise ValueError("v")

        with pytest.raises(GuardAssertionError) as excinfo:
            threw_exception(operation, KeyError)
        assert isinstance(excinfo.value.__cause__, ValueError)
