#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Prime field arithmetic with explicit field contexts.

A FieldContext owns a modulus;
a FieldElement is an immutable residue tagged with its context.

An elliptic curve needs two distinct prime fields:
the coordinate field (modulo the curve prime p)
and the scalar field (modulo the group order n).
Mixing the two is always a bug, hence arithmetic between elements
of different contexts raises FieldContextMismatchError;
the only way across is the explicit FieldContext.convert.

Plain ints are lifted (i.e. reduced) into the context of the
FieldElement they are combined with.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from sigforensics.ecc.number_theory import legendre_symbol, mod_inv, mod_pow, mod_sqrt
from sigforensics.exceptions import (
    DivisionByZeroScalarError,
    FieldContextMismatchError,
    SigForensicsTypeError,
    SigForensicsValueError,
)
from sigforensics.utils import int_repr


@dataclass(frozen=True)
class FieldContext:
    "Prime field of integers modulo p."

    p: int
    # label only: contexts with the same modulus are the same field
    name: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.p, int) or self.p < 2:
            raise SigForensicsValueError(f"invalid field modulus: {self.p!r}")

    @property
    def size(self) -> int:
        "Byte length of the field elements."
        return (self.p.bit_length() + 7) // 8

    def value(self, x: Union[int, "FieldElement"]) -> "FieldElement":
        """Return x as an element of this field.

        An int is reduced modulo p;
        a FieldElement must already belong to this field.
        """
        if isinstance(x, FieldElement):
            if x.ctx != self:
                raise _mismatch(self, x.ctx)
            return x
        if isinstance(x, int):
            return FieldElement(self, x % self.p)
        raise SigForensicsTypeError(f"not an int or field element: {type(x).__name__}")

    def convert(self, x: "FieldElement") -> "FieldElement":
        "Explicitly lift an element of another field into this one."
        return FieldElement(self, x.value % self.p)

    def zero(self) -> "FieldElement":
        return FieldElement(self, 0)

    def one(self) -> "FieldElement":
        return FieldElement(self, 1)

    def legendre(self, a: Union[int, "FieldElement"]) -> int:
        return legendre_symbol(self.value(a).value, self.p)

    def sqrt(
        self, a: Union[int, "FieldElement"], parity: int = 0
    ) -> Optional["FieldElement"]:
        """Return the square root of a having the requested parity.

        None is returned if a is a quadratic non-residue.
        The root of zero is zero, whatever the requested parity.
        """

        a = self.value(a)
        if a.value == 0:
            return a
        if self.legendre(a) != 1:
            return None
        root = mod_sqrt(a.value, self.p)
        if root & 1 != parity & 1:
            root = self.p - root
        return FieldElement(self, root)

    def __str__(self) -> str:
        label = f"{self.name} " if self.name else ""
        return f"{label}field mod {int_repr(self.p)}"


def _mismatch(ctx1: FieldContext, ctx2: FieldContext) -> FieldContextMismatchError:
    err_msg = f"field mismatch: mod {int_repr(ctx1.p)} vs mod {int_repr(ctx2.p)}"
    return FieldContextMismatchError(err_msg)


Operand = Union[int, "FieldElement"]


@dataclass(frozen=True)
class FieldElement:
    "Immutable residue in [0, p) of a given FieldContext."

    ctx: FieldContext
    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value < self.ctx.p:
            err_msg = f"field element not in 0..p-1: {int_repr(self.value)}"
            raise SigForensicsValueError(err_msg)

    def _lift(self, other: Operand) -> int:
        if isinstance(other, FieldElement):
            if other.ctx != self.ctx:
                raise _mismatch(self.ctx, other.ctx)
            return other.value
        if isinstance(other, int):
            return other
        err_msg = f"unsupported operand type: {type(other).__name__}"
        raise SigForensicsTypeError(err_msg)

    def _new(self, value: int) -> "FieldElement":
        return FieldElement(self.ctx, value % self.ctx.p)

    def __add__(self, other: Operand) -> "FieldElement":
        return self._new(self.value + self._lift(other))

    def __radd__(self, other: Operand) -> "FieldElement":
        return self._new(self._lift(other) + self.value)

    def __sub__(self, other: Operand) -> "FieldElement":
        return self._new(self.value - self._lift(other))

    def __rsub__(self, other: Operand) -> "FieldElement":
        return self._new(self._lift(other) - self.value)

    def __mul__(self, other: Operand) -> "FieldElement":
        return self._new(self.value * self._lift(other))

    def __rmul__(self, other: Operand) -> "FieldElement":
        return self._new(self._lift(other) * self.value)

    def __truediv__(self, other: Operand) -> "FieldElement":
        return self * self._new(self._lift(other)).inverse()

    def __rtruediv__(self, other: Operand) -> "FieldElement":
        return self._new(self._lift(other)) * self.inverse()

    def __neg__(self) -> "FieldElement":
        return self._new(-self.value)

    def __pow__(self, exponent: int) -> "FieldElement":
        if not isinstance(exponent, int):
            raise SigForensicsTypeError("exponent must be an int")
        if exponent < 0 and self.value == 0:
            raise DivisionByZeroScalarError(f"zero has no inverse mod {int_repr(self.ctx.p)}")
        return FieldElement(self.ctx, mod_pow(self.value, exponent, self.ctx.p))

    def __int__(self) -> int:
        return self.value

    def __bool__(self) -> bool:
        return self.value != 0

    def __repr__(self) -> str:
        return f"FieldElement({int_repr(self.value)} mod {int_repr(self.ctx.p)})"

    def square(self) -> "FieldElement":
        return self._new(self.value * self.value)

    def cube(self) -> "FieldElement":
        return self._new(self.value * self.value * self.value)

    def inverse(self) -> "FieldElement":
        if self.value == 0:
            err_msg = f"zero has no inverse mod {int_repr(self.ctx.p)}"
            raise DivisionByZeroScalarError(err_msg)
        return FieldElement(self.ctx, mod_inv(self.value, self.ctx.p))

    def sqrt(self, parity: int = 0) -> Optional["FieldElement"]:
        return self.ctx.sqrt(self, parity)

    def is_odd(self) -> bool:
        return self.value & 1 == 1

    def to_bytes(self) -> bytes:
        "Return the fixed-size big-endian serialization."
        return self.value.to_bytes(self.ctx.size, byteorder="big", signed=False)
