#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Elliptic CurveGroup class and functions.

Note that CurveGroup does not have to be a cyclic subgroup.
For the cyclic subgroup of prime order,
see the sigforensics.ecc.curve module.

Points are either the point at infinity INF
or an AffinePoint whose coordinates are elements
of the curve coordinate field:
there is no "(x, 0) means infinity" convention.
"""

from dataclasses import dataclass
from math import ceil
from typing import Union

from sigforensics.alias import Integer
from sigforensics.ecc.field import FieldContext, FieldElement
from sigforensics.exceptions import (
    FieldContextMismatchError,
    NoSquareRootError,
    PointNotOnCurveError,
    SigForensicsTypeError,
    SigForensicsValueError,
)
from sigforensics.utils import HEX_THRESHOLD, hex_string, int_from_integer, int_repr


@dataclass(frozen=True)
class Infinity:
    "The point at infinity, i.e. the identity element of the group."

    def __repr__(self) -> str:
        return "INF"


INF = Infinity()


@dataclass(frozen=True)
class AffinePoint:
    "Curve point in affine coordinates."

    x: FieldElement
    y: FieldElement

    def __post_init__(self) -> None:
        if self.x.ctx != self.y.ctx:
            raise FieldContextMismatchError("coordinates from different fields")

    def __repr__(self) -> str:
        return f"AffinePoint({int_repr(self.x.value)}, {int_repr(self.y.value)})"


Point = Union[Infinity, AffinePoint]

Coordinate = Union[int, FieldElement]


class CurveGroup:
    """Finite group of the points of an elliptic curve over Fp.

    The elliptic curve is the set of points (x, y)
    that are solutions to a Weierstrass equation y^2 = x^3 + a*x + b,
    with x, y, a, and b in Fp (p being a prime),
    together with a point at infinity INF.
    The constants a, b must satisfy the relationship
    4 a^3 + 27 b^2 ≠ 0.

    The group is defined by the point addition group law.
    """

    def __init__(self, p: Integer, a: Integer, b: Integer) -> None:
        # Parameters are checked according to SEC 1 v.2 3.1.1.2.1

        p = int_from_integer(p)
        a = int_from_integer(a)
        b = int_from_integer(b)

        # 1) check that p is a prime
        # Fermat test will do as _probabilistic_ primality test...
        if p < 2 or p % 2 == 0 or pow(2, p - 1, p) != 1:
            raise SigForensicsValueError(f"p is not prime: {int_repr(p)}")

        # byte-length
        self.p_size = ceil(p.bit_length() / 8)
        self.p = p
        self.field = FieldContext(p, "coordinate")

        # 2. check that a and b are integers in the interval [0, p−1]
        if a < 0:
            raise SigForensicsValueError(f"negative a: {a}")
        if p <= a:
            raise SigForensicsValueError(f"p <= a: {int_repr(p)} <= {int_repr(a)}")
        if b < 0:
            raise SigForensicsValueError(f"negative b: {b}")
        if p <= b:
            raise SigForensicsValueError(f"p <= b: {int_repr(p)} <= {int_repr(b)}")

        # 3. Check that 4*a^3 + 27*b^2 ≠ 0 (mod p)
        d = 4 * a * a * a + 27 * b * b
        if d % p == 0:
            raise SigForensicsValueError("zero discriminant")
        self.a = self.field.value(a)
        self.b = self.field.value(b)

    def __str__(self) -> str:
        result = "Curve"
        if self.p > HEX_THRESHOLD:
            result += f"\n p   = {hex_string(self.p)}"
        else:
            result += f"\n p   = {self.p}"

        a, b = self.a.value, self.b.value
        if a > HEX_THRESHOLD or b > HEX_THRESHOLD:
            result += f"\n a   = {hex_string(a)}"
            result += f"\n b   = {hex_string(b)}"
        else:
            result += f"\n a   = {a}"
            result += f"\n b   = {b}"

        return result

    def __repr__(self) -> str:
        return f"CurveGroup({int_repr(self.p)}, {int_repr(self.a.value)}, {int_repr(self.b.value)})"

    def coord(self, x: Coordinate) -> FieldElement:
        """Return x as a coordinate field element.

        Unlike FieldContext.value, ints are not silently reduced:
        they must already be in [0, p).
        """
        if isinstance(x, int) and not 0 <= x < self.p:
            raise SigForensicsValueError(f"coordinate not in 0..p-1: {int_repr(x)}")
        return self.field.value(x)

    def point(self, x: Coordinate, y: Coordinate) -> AffinePoint:
        "Return the affine point (x, y), which must be on the curve."
        Q = AffinePoint(self.coord(x), self.coord(y))
        self.require_on_curve(Q)
        return Q

    def negate(self, Q: Point) -> Point:
        """Return the opposite point.

        The input point is not checked to be on the curve.
        """
        if isinstance(Q, Infinity):
            return INF
        if isinstance(Q, AffinePoint):
            return AffinePoint(Q.x, -Q.y)
        raise SigForensicsTypeError("not a point")

    def add(self, Q1: Point, Q2: Point) -> Point:
        """Return the sum of two points.

        The input points must be on the curve.
        """
        self.require_on_curve(Q1)
        self.require_on_curve(Q2)
        return self.add_aff(Q1, Q2)

    def sub(self, Q1: Point, Q2: Point) -> Point:
        "Return Q1 - Q2; the input points must be on the curve."
        self.require_on_curve(Q1)
        self.require_on_curve(Q2)
        return self.add_aff(Q1, self.negate(Q2))

    def double(self, Q: Point) -> Point:
        "Return 2Q; the input point must be on the curve."
        self.require_on_curve(Q)
        return self.add_aff(Q, Q)

    def add_aff(self, Q: Point, R: Point) -> Point:
        "Chord-and-tangent addition; points are assumed to be on curve."

        if isinstance(R, Infinity):
            return Q
        if isinstance(Q, Infinity):
            return R

        if R.x == Q.x:
            if R.y != Q.y or not Q.y:  # opposite points, or 2-torsion
                return INF
            # point doubling
            lam = (3 * Q.x.square() + self.a) / (2 * Q.y)
        else:
            lam = (R.y - Q.y) / (R.x - Q.x)
        x = lam.square() - Q.x - R.x
        y = lam * (Q.x - x) - Q.y
        return AffinePoint(x, y)

    def _y2(self, x: FieldElement) -> FieldElement:
        # skipping a crucial check here:
        # if sqrt(y*y) does not exist, then x is not valid.
        # This is a good reason to keep this method private
        return (x.square() + self.a) * x + self.b

    def decompress(self, x: Coordinate, parity: int = 0) -> AffinePoint:
        """Return the curve point having x-coordinate x and y parity.

        NoSquareRootError is raised if no point has such x-coordinate.
        """
        x = self.coord(x)
        y = self._y2(x).sqrt(parity)
        if y is None:
            raise NoSquareRootError(f"invalid x-coordinate: {int_repr(x.value)}")
        return AffinePoint(x, y)

    def y(self, x: Coordinate) -> FieldElement:
        "Return the even y coordinate from x, as in (x, y)."
        return self.decompress(x, 0).y

    def require_on_curve(self, Q: Point) -> None:
        """Require the input curve Point to be on the curve.

        An Error is raised if not.
        """
        if not self.is_on_curve(Q):
            raise PointNotOnCurveError("point not on curve")

    def is_on_curve(self, Q: Point) -> bool:
        "Return True if the point is on the curve."
        if isinstance(Q, Infinity):
            return True
        if not isinstance(Q, AffinePoint):
            raise SigForensicsTypeError("not a point")
        if Q.x.ctx != self.field:
            raise FieldContextMismatchError("point coordinates not in the curve field")
        return self._y2(Q.x) == Q.y.square()

    def mult(self, m: int, Q: Point) -> Point:
        """Return the scalar multiplication m*Q.

        The input point must be on the curve, m must be non-negative.
        """
        self.require_on_curve(Q)
        return mult_aff(m, Q, self)


def mult_aff(m: int, Q: Point, ec: CurveGroup) -> Point:
    """Scalar multiplication of a curve point in affine coordinates.

    This implementation uses 'double & add' algorithm,
    binary decomposition of m,
    affine coordinates.
    It is not constant-time.

    The input point is assumed to be on curve,
    m is assumed to have been reduced mod n if appropriate
    (e.g. cyclic groups of order n).
    """

    if m < 0:
        raise SigForensicsValueError(f"negative m: {hex(m)}")

    R: Point = INF  # initialize as infinity point
    while m > 0:  # use binary representation of m
        if m & 1:  # if least significant bit is 1
            R = ec.add_aff(R, Q)  # then add current Q
        m = m >> 1  # remove the bit just accounted for
        if m:
            Q = ec.add_aff(Q, Q)  # double Q for next step
    return R
