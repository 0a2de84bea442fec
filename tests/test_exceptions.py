"""
tests/test_exceptions.py

Every error has a unique numeric code inside its family's range.
"""

import pytest

from fusionswap.core import exceptions as exc
from fusionswap.core.exceptions import (
    ERROR_CODES,
    ErrorKind,
    FusionSwapError,
    IndivisibleAmountError,
    NotTakerError,
    error_for_code,
)

FAMILY_RANGES = {
    ErrorKind.VALIDATION:    range(100, 200),
    ErrorKind.AUTHORIZATION: range(200, 300),
    ErrorKind.STATE:         range(300, 400),
    ErrorKind.ARITHMETIC:    range(400, 500),
}


def all_error_classes():
    return [
        obj for obj in vars(exc).values()
        if isinstance(obj, type) and issubclass(obj, FusionSwapError) and obj is not FusionSwapError
    ]


class TestCodes:

    def test_codes_are_unique(self):
        classes = all_error_classes()
        codes = [cls.code for cls in classes]
        assert len(codes) == len(set(codes))
        assert set(classes) <= set(ERROR_CODES.values())

    @pytest.mark.parametrize("cls", all_error_classes(), ids=lambda c: c.__name__)
    def test_code_matches_family(self, cls):
        assert cls.code in FAMILY_RANGES[cls.kind]

    def test_lookup_by_code(self):
        assert error_for_code(103) is IndivisibleAmountError
        assert error_for_code(203) is NotTakerError
        with pytest.raises(KeyError):
            error_for_code(999)


class TestFormatting:

    def test_str_includes_code_and_details(self):
        err = IndivisibleAmountError("not divisible", {"amount": 105, "parts": 10})
        assert str(err) == "[103] not divisible (amount=105, parts=10)"
        assert err.message == "not divisible"

    def test_str_without_details(self):
        assert str(NotTakerError("nope")) == "[203] nope"

    def test_family_catch(self):
        with pytest.raises(exc.AuthorizationError):
            raise NotTakerError("nope")
        with pytest.raises(FusionSwapError):
            raise IndivisibleAmountError("x")
