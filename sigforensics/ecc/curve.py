#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Elliptic curve of prime order and its parameters.

A Curve bundles the coordinate field (mod p),
the scalar field (mod n), and the generator G.
Curves are plain values passed explicitly to every operation:
use create_curve to get a fresh instance from named parameters.
"""

from math import isqrt
from typing import Dict, Optional, Tuple, Union

from sigforensics.alias import Integer
from sigforensics.ecc.curve_group import INF, CurveGroup, Infinity, Point, mult_aff
from sigforensics.ecc.field import FieldContext, FieldElement
from sigforensics.exceptions import SigForensicsRuntimeError, SigForensicsValueError
from sigforensics.utils import HEX_THRESHOLD, hex_string, int_from_integer, int_repr

Scalar = Union[int, FieldElement]

# name: (p, a, b, (Gx, Gy), n, h)
CurveParams = Tuple[int, int, int, Tuple[int, int], int, int]

CURVE_PARAMS: Dict[str, CurveParams] = {
    # SEC 2 v.2 2.4.1
    "secp256k1": (
        0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F,
        0,
        7,
        (
            0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
            0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
        ),
        0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
        1,
    ),
}


def hasse_delta(p: int) -> int:
    "Return floor(2*sqrt(p)): by Hasse theorem |#E(Fp) - (p+1)| <= delta."
    return isqrt(4 * p)


class Curve(CurveGroup):
    "Prime order subgroup of the points of an elliptic curve over Fp."

    def __init__(
        self,
        p: Integer,
        a: Integer,
        b: Integer,
        G: Tuple[Integer, Integer],
        n: Integer,
        h: int,
        weakness_check: bool = True,
        name: Optional[str] = None,
    ) -> None:

        super().__init__(p, a, b)
        self.name = name

        # 2. check that xG and yG are integers in the interval [0, p−1]
        # 4. Check that yG^2 = xG^3 + a*xG + b (mod p)
        if len(G) != 2:
            raise SigForensicsValueError("Generator must a be a sequence[int, int]")
        self.G = self.point(int_from_integer(G[0]), int_from_integer(G[1]))

        n = int_from_integer(n)
        self.n = n
        self.nlen = n.bit_length()
        self.n_size = (self.nlen + 7) // 8
        self.scalars = FieldContext(n, "scalar")

        # 5. Check that n is prime.
        if n < 2 or n % 2 == 0 or pow(2, n - 1, n) != 1:
            raise SigForensicsValueError(f"n is not prime: {int_repr(n)}")
        delta = hasse_delta(self.p)
        # also check n with Hasse Theorem
        if h < 2 and not self.p + 1 - delta <= n <= self.p + 1 + delta:
            err_msg = f"n not in p+1-delta..p+1+delta: {int_repr(n)}"
            raise SigForensicsValueError(err_msg)

        # 7. Check that nG = INF
        if mult_aff(n, self.G, self) != INF:
            raise SigForensicsValueError(f"n is not the group order: {int_repr(n)}")

        # 6. Check cofactor
        exp_h = (1 + delta + self.p) // n
        if h != exp_h:
            raise SigForensicsValueError(f"invalid h: {h}, expected {exp_h}")
        self.h = h

        # 8. Check that n ≠ p
        if n == self.p:
            raise SigForensicsValueError(f"n=p weak curve: {int_repr(n)}")

        if weakness_check:
            # 8. Check that p^i % n ≠ 1 for all 1≤i<100
            for i in range(1, 100):
                if pow(self.p, i, n) == 1:
                    raise SigForensicsValueError("weak curve")

    def __str__(self) -> str:
        result = super().__str__()
        if self.p > HEX_THRESHOLD:
            result += f"\n x_G = {hex_string(self.G.x.value)}"
            result += f"\n y_G = {hex_string(self.G.y.value)}"
            result += f"\n n   = {hex_string(self.n)}"
        else:
            result += f"\n x_G = {self.G.x.value}"
            result += f"\n y_G = {self.G.y.value}"
            result += f"\n n   = {self.n}"
        result += f"\n h = {self.h}"
        return result

    def __repr__(self) -> str:
        if self.name:
            return f"create_curve('{self.name}')"
        result = f"Curve({int_repr(self.p)}, {int_repr(self.a.value)}, {int_repr(self.b.value)}"
        result += f", ({int_repr(self.G.x.value)}, {int_repr(self.G.y.value)})"
        result += f", {int_repr(self.n)}, {self.h})"
        return result

    def scalar(self, x: Scalar) -> FieldElement:
        "Return x as a scalar field element, reducing ints mod n."
        return self.scalars.value(x)

    def mult(self, m: Scalar, Q: Optional[Point] = None) -> Point:  # type: ignore[override]
        """Return m*Q, with Q defaulting to the generator G.

        m is an int (reduced mod n) or a scalar field element:
        a coordinate field element is rejected.
        """
        Q = self.G if Q is None else Q
        self.require_on_curve(Q)
        return mult_aff(self.scalar(m).value, Q, self)

    def div(self, Q: Point, m: Scalar) -> Point:
        "Return Q/m, i.e. Q multiplied by the inverse of m mod n."
        return self.mult(self.scalar(m).inverse(), Q)

    def x_scalar(self, Q: Point) -> FieldElement:
        "Return the x-coordinate of Q lifted into the scalar field."
        if isinstance(Q, Infinity):
            raise SigForensicsRuntimeError("INF has no x-coordinate")
        return self.scalars.convert(Q.x)

    def is_low_s(self, s: Scalar) -> bool:
        "Return True if s is not greater than n/2."
        return self.scalar(s).value <= self.n // 2


def create_curve(name: str = "secp256k1", weakness_check: bool = True) -> Curve:
    "Return a fresh Curve instance from named parameters."
    try:
        p, a, b, G, n, h = CURVE_PARAMS[name]
    except KeyError:
        raise SigForensicsValueError(f"unknown curve: {name}") from None
    return Curve(p, a, b, G, n, h, weakness_check, name)
