"""Tests for record_spine.result."""

from __future__ import annotations

import pytest

from record_spine.errors import NotFoundError
from record_spine.result import Err, Ok, from_optional


class TestOk:
    def test_unwrap(self):
        assert Ok(3).unwrap() == 3
        assert Ok(3).unwrap_or(0) == 3
        assert Ok(3).unwrap_or_else(lambda e: 0) == 3

    def test_flags(self):
        assert Ok(1).is_ok() and not Ok(1).is_err()

    def test_map_and_flat_map(self):
        assert Ok(10).map(lambda x: x * 2) == Ok(20)
        assert Ok(10).flat_map(lambda x: Ok(x + 1)) == Ok(11)
        assert Ok(10).map_err(lambda e: RuntimeError()) == Ok(10)

    def test_to_dict(self):
        assert Ok(True).to_dict() == {"ok": True, "value": True}
        assert repr(Ok(False)) == "Ok(False)"


class TestErr:
    def test_unwrap_raises(self):
        error = NotFoundError(identity=1)
        with pytest.raises(NotFoundError):
            Err(error).unwrap()

    def test_defaults(self):
        err = Err(ValueError("bad"))
        assert err.is_err() and not err.is_ok()
        assert err.unwrap_or(5) == 5
        assert err.unwrap_or_else(lambda e: str(e)) == "bad"

    def test_map_is_skipped(self):
        err = Err(ValueError("bad"))
        assert err.map(lambda x: x + 1).error is err.error
        assert err.flat_map(lambda x: Ok(x)).is_err()

    def test_map_err(self):
        mapped = Err(ValueError("bad")).map_err(lambda e: RuntimeError(str(e)))
        assert isinstance(mapped.error, RuntimeError)

    def test_to_dict_for_library_errors(self):
        data = Err(NotFoundError(identity=2)).to_dict()
        assert data["ok"] is False
        assert data["error"]["error_type"] == "NotFoundError"
        assert data["error"]["context"] == {"identity": 2}

    def test_to_dict_for_plain_errors(self):
        assert Err(KeyError("k")).to_dict()["error"]["error_type"] == "KeyError"


class TestFromOptional:
    def test_value(self):
        assert from_optional(0, NotFoundError()) == Ok(0)

    def test_none(self):
        error = NotFoundError()
        assert from_optional(None, error) == Err(error)
