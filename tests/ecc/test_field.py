#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for the `sigforensics.ecc.field` module."

import pytest

from sigforensics.ecc.field import FieldContext, FieldElement
from sigforensics.exceptions import (
    DivisionByZeroScalarError,
    FieldContextMismatchError,
    SigForensicsTypeError,
    SigForensicsValueError,
)

P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

coords = FieldContext(P, "coordinate")
scalars = FieldContext(N, "scalar")


def test_context() -> None:
    assert coords.size == 32
    assert FieldContext(13).size == 1
    assert coords == FieldContext(P)  # the name is just a label
    assert coords != scalars
    assert "scalar field mod" in str(scalars)

    with pytest.raises(SigForensicsValueError, match="invalid field modulus: "):
        FieldContext(1)

    with pytest.raises(SigForensicsValueError, match="field element not in 0..p-1: "):
        FieldElement(scalars, N)
    with pytest.raises(SigForensicsValueError, match="field element not in 0..p-1: "):
        FieldElement(scalars, -1)


def test_value() -> None:
    assert scalars.value(N + 5).value == 5
    assert scalars.value(-1).value == N - 1
    assert scalars.zero().value == 0
    assert scalars.one().value == 1
    x = scalars.value(7)
    assert scalars.value(x) is x
    assert int(x) == 7

    with pytest.raises(FieldContextMismatchError, match="field mismatch: "):
        coords.value(x)
    with pytest.raises(SigForensicsTypeError, match="not an int or field element: "):
        coords.value("7")  # type: ignore[arg-type]


def test_arithmetic() -> None:
    f = FieldContext(13)
    for a in range(13):
        x = f.value(a)
        for b in range(13):
            y = f.value(b)
            assert (x + y).value == (a + b) % 13
            assert (x - y).value == (a - b) % 13
            assert (x * y).value == (a * b) % 13
            assert (a + y).value == (a + b) % 13
            assert (a - y).value == (a - b) % 13
            assert (a * y).value == (a * b) % 13
            if b:
                assert (x / y) * y == x
                assert (a / y) * y == x
        assert (-x + x).value == 0
        assert x.square().value == a * a % 13
        assert x.cube().value == a * a * a % 13
        assert (x ** 5).value == pow(a, 5, 13)
        assert (x ** 0).value == 1
        if a:
            assert x.inverse() * x == f.one()
            assert x ** -2 == x.square().inverse()
            assert (1 / x) == x.inverse()


def test_immutability() -> None:
    x = scalars.value(3)
    y = x + 1
    assert x.value == 3
    assert y.value == 4
    with pytest.raises(AttributeError):
        x.value = 5  # type: ignore[misc]


def test_zero_division() -> None:
    zero = scalars.zero()
    with pytest.raises(DivisionByZeroScalarError, match="zero has no inverse"):
        zero.inverse()
    with pytest.raises(DivisionByZeroScalarError, match="zero has no inverse"):
        scalars.one() / zero
    with pytest.raises(DivisionByZeroScalarError, match="zero has no inverse"):
        scalars.one() / N
    with pytest.raises(DivisionByZeroScalarError, match="zero has no inverse"):
        zero ** -1
    # a ZeroDivisionError too
    with pytest.raises(ZeroDivisionError):
        1 / zero


def test_context_mismatch() -> None:
    x = coords.value(5)
    k = scalars.value(5)
    for op in (
        lambda: x + k,
        lambda: x - k,
        lambda: x * k,
        lambda: x / k,
        lambda: k + x,
    ):
        with pytest.raises(FieldContextMismatchError, match="field mismatch: "):
            op()

    # explicit conversion is the way across
    assert scalars.convert(x) == k
    assert coords.convert(k) == x
    assert scalars.convert(coords.value(N + 1)).value == 1

    with pytest.raises(SigForensicsTypeError, match="unsupported operand type: "):
        x + 1.0  # type: ignore[operator]


def test_equality_and_hash() -> None:
    assert coords.value(5) == FieldContext(P).value(5)
    assert coords.value(5) != scalars.value(5)
    assert coords.value(5) != 5
    assert len({coords.value(5), coords.value(P + 5), scalars.value(5)}) == 2
    assert bool(scalars.value(0)) is False
    assert bool(scalars.value(1)) is True


def test_sqrt() -> None:
    # 13 % 4 = 1; 13 % 8 = 5
    # 17 % 4 = 1; 17 % 8 = 1
    # 19 % 4 = 3
    for p in (13, 17, 19, 23, 10009, P):
        f = FieldContext(p)
        for a in range(0, min(p, 200)):
            x = f.value(a)
            squares = {i * i % p for i in range(min(p, 200))}
            root0 = x.sqrt(0)
            root1 = x.sqrt(1)
            if f.legendre(x) == -1:
                assert root0 is None
                assert root1 is None
                continue
            assert root0 is not None and root1 is not None
            assert root0.square() == x
            assert root1.square() == x
            if a:
                assert not root0.is_odd()
                assert root1.is_odd()
                assert root0 + root1 == f.zero()
            if p < 200:
                assert a in squares


def test_to_bytes() -> None:
    assert scalars.value(1).to_bytes() == b"\x00" * 31 + b"\x01"
    assert len(coords.value(P - 1).to_bytes()) == 32
    assert FieldContext(13).value(12).to_bytes() == b"\x0c"
