"""Tests for ordered strategy chains."""

import pytest

from storefront_qa.executor.strategies import first_successful


def _returning(value, calls, name):
    async def attempt():
        calls.append(name)
        return value
    return attempt


def _raising(calls, name):
    async def attempt():
        calls.append(name)
        raise RuntimeError(f"{name} broke")
    return attempt


@pytest.mark.asyncio
class TestFirstSuccessful:
    """Tests for first_successful."""

    async def test_returns_first_success_and_stops(self):
        calls = []
        result = await first_successful([
            ("a", _returning(False, calls, "a")),
            ("b", _returning(True, calls, "b")),
            ("c", _returning(True, calls, "c")),
        ])
        assert result == "b"
        assert calls == ["a", "b"]

    async def test_exception_moves_to_next(self):
        calls = []
        result = await first_successful([
            ("a", _raising(calls, "a")),
            ("b", _returning(True, calls, "b")),
        ], label="test")
        assert result == "b"

    async def test_none_when_all_fail(self):
        calls = []
        result = await first_successful([
            ("a", _raising(calls, "a")),
            ("b", _returning(False, calls, "b")),
        ])
        assert result is None
        assert calls == ["a", "b"]

    async def test_empty_chain(self):
        assert await first_successful([]) is None

    async def test_reraise_types_end_the_chain(self):
        calls = []

        async def fatal():
            calls.append("a")
            raise KeyError("fatal")

        with pytest.raises(KeyError):
            await first_successful([
                ("a", fatal),
                ("b", _returning(True, calls, "b")),
            ], reraise=(KeyError,))
        assert calls == ["a"]
