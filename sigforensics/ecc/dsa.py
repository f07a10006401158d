#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Elliptic Curve Digital Signature Algorithm (ECDSA).

Implementation according to SEC 1 v.2:

http://www.secg.org/sec1-v2.pdf

The bitcoin canonical 'lower-s' form is optional (lower_s=True),
as forensic analysis needs to reason about signatures
as they appear on the blockchain, high-s included.

Besides signing and verification,
the module provides the algebra exploited by nonce attacks:
private key recovery from a reused (or known) nonce,
nonce recovery from a known private key,
and public key recovery from a signature.
"""

import logging
import secrets
from dataclasses import InitVar, dataclass
from typing import List, Optional, Tuple, Union

from sigforensics import der
from sigforensics.alias import BinaryData, Octets
from sigforensics.ecc.curve import Curve, Scalar
from sigforensics.ecc.curve_group import AffinePoint, Infinity, Point
from sigforensics.ecc.field import FieldElement
from sigforensics.ecc.sec_point import point_from_octets
from sigforensics.exceptions import (
    FieldContextMismatchError,
    InconsistentRecoveryError,
    NoSquareRootError,
    SigForensicsRuntimeError,
    SigForensicsTypeError,
    SigForensicsValueError,
)
from sigforensics.utils import bytes_from_octets, int_from_bits, int_repr

LOGGER = logging.getLogger(__name__)

MsgHash = Union[Octets, int, FieldElement]
Key = Union[AffinePoint, Octets]


@dataclass(frozen=True)
class Sig:
    """ECDSA signature (r, s).

    - r is a scalar, 0 < r < ec.n
    - s is a scalar, 0 < s < ec.n

    (ec.n is the curve order)
    """

    r: FieldElement
    s: FieldElement
    check_validity: InitVar[bool] = True

    def __post_init__(self, check_validity: bool) -> None:
        if check_validity:
            self.assert_valid()

    def assert_valid(self) -> None:
        if self.r.ctx != self.s.ctx:
            raise FieldContextMismatchError("r and s from different fields")
        # r and s are scalars, fail if not in [1, n-1]
        if not self.r:
            raise SigForensicsValueError("scalar r not in 1..n-1: 0")
        if not self.s:
            raise SigForensicsValueError("scalar s not in 1..n-1: 0")

    @classmethod
    def from_ints(cls, r: int, s: int, ec: Curve) -> "Sig":
        "Return a Sig from ints, that must already be in 1..n-1."
        for name, value in (("r", r), ("s", s)):
            if not 0 < value < ec.n:
                err_msg = f"scalar {name} not in 1..n-1: {int_repr(value)}"
                raise SigForensicsValueError(err_msg)
        return cls(ec.scalar(r), ec.scalar(s))

    def serialize(self) -> bytes:
        "Serialize the signature to strict ASN.1 DER representation."
        return der.encode(self.r.value, self.s.value)

    @classmethod
    def parse(cls, data: BinaryData, ec: Curve, strict: bool = True) -> "Sig":
        """Return a Sig by parsing DER binary data.

        If strict, any DER defect is an error;
        otherwise the r and s values are taken as they come.
        """
        decoded = der.decode(data)
        if strict and decoded.defects:
            defects = ", ".join(d.value for d in decoded.defects)
            raise SigForensicsValueError(f"non-strict DER signature: {defects}")
        return cls.from_ints(decoded.r, decoded.s, ec)


@dataclass(frozen=True)
class NonceReuseRecovery:
    "Private key and nonce recovered from two signatures sharing r."

    prv_key: FieldElement
    nonce: FieldElement


def challenge(msg_hash: MsgHash, ec: Curve) -> FieldElement:
    """Return the message digest as scalar field element.

    A digest given as octets is converted taking its leftmost nlen bits,
    according to SEC 1 v.2 section 4.1.3 (5);
    ints are reduced mod n.
    """

    if isinstance(msg_hash, (int, FieldElement)):
        return ec.scalar(msg_hash)
    return ec.scalar(int_from_bits(bytes_from_octets(msg_hash), ec.nlen))


def _in_range(x: Scalar, what: str, ec: Curve) -> FieldElement:
    # ints are not reduced: they must be valid scalars already
    if isinstance(x, int) and not 0 < x < ec.n:
        raise SigForensicsValueError(f"{what} not in 1..n-1: {int_repr(x)}")
    x = ec.scalar(x)
    if not x:
        raise SigForensicsValueError(f"{what} not in 1..n-1: 0")
    return x


def _point_from_key(key: Key, ec: Curve) -> AffinePoint:
    if isinstance(key, AffinePoint):
        ec.require_on_curve(key)
        return key
    return point_from_octets(key, ec)


def pub_key_from_prv_key(prv_key: Scalar, ec: Curve) -> AffinePoint:
    "Return the public key G*prv_key."
    Q = ec.mult(_in_range(prv_key, "private key", ec))
    # a non-zero scalar times a generator of prime order is never INF
    if not isinstance(Q, AffinePoint):
        raise SigForensicsRuntimeError("INF public key")
    return Q


def gen_keys(ec: Curve, prv_key: Optional[Scalar] = None) -> Tuple[FieldElement, AffinePoint]:
    "Return a private/public key pair, random if no private key is given."
    if prv_key is None:
        prv_key = 1 + secrets.randbelow(ec.n - 1)
    q = _in_range(prv_key, "private key", ec)
    return q, pub_key_from_prv_key(q, ec)


def sign(
    msg_hash: MsgHash, prv_key: Scalar, nonce: Scalar, ec: Curve, lower_s: bool = False
) -> Sig:
    """Sign a message digest using the given private key and nonce.

    r = (G*k).x mod n
    s = (m + q*r) / k

    Nonce generation is left to the caller:
    deterministic RFC6979 nonces and nonce hygiene
    are not the concern of a forensic tool.
    """

    m = challenge(msg_hash, ec)
    q = _in_range(prv_key, "private key", ec)
    k = _in_range(nonce, "nonce", ec)

    r = ec.x_scalar(ec.mult(k))
    if not r:
        raise SigForensicsRuntimeError("r = 0, failed to sign")
    s = (m + q * r) / k
    if not s:
        raise SigForensicsRuntimeError("s = 0, failed to sign")
    if lower_s and not ec.is_low_s(s):
        s = -s

    return Sig(r, s)


def assert_as_valid(
    msg_hash: MsgHash, key: Key, sig: Sig, ec: Curve, lower_s: bool = False
) -> None:
    """Raise an error if the signature is not valid.

    R' = (G*m + Q*r) / s, computed as G*(m/s) + Q*(r/s),
    must not be INF and must satisfy R'.x mod n == r.
    """

    m = challenge(msg_hash, ec)
    Q = _point_from_key(key, ec)
    sig.assert_valid()
    r, s = ec.scalar(sig.r), ec.scalar(sig.s)
    if lower_s and not ec.is_low_s(s):
        raise SigForensicsValueError("not a low s")

    w = s.inverse()
    R = ec.add(ec.mult(m * w), ec.mult(r * w, Q))
    if isinstance(R, Infinity):
        raise SigForensicsRuntimeError("INF point, invalid signature")
    if ec.x_scalar(R) != r:
        raise SigForensicsRuntimeError("signature verification failed")


def verify(
    msg_hash: MsgHash, key: Key, sig: Sig, ec: Curve, lower_s: bool = False
) -> bool:
    "Return True if the signature is valid for the message digest and key."

    try:
        assert_as_valid(msg_hash, key, sig, ec, lower_s)
    except (SigForensicsValueError, SigForensicsTypeError, SigForensicsRuntimeError):
        return False
    return True


def prv_key_from_known_nonce(
    r: Scalar, s: Scalar, msg_hash: MsgHash, nonce: Scalar, ec: Curve
) -> FieldElement:
    "Return the private key q = (s*k - m)/r, given the nonce k."
    m = challenge(msg_hash, ec)
    return (ec.scalar(s) * ec.scalar(nonce) - m) / ec.scalar(r)


def prv_key_from_nonce(s: Scalar, msg_hash: MsgHash, nonce: Scalar, ec: Curve) -> FieldElement:
    "Return the private key given the nonce; r is computed as (G*k).x mod n."
    k = _in_range(nonce, "nonce", ec)
    r = ec.x_scalar(ec.mult(k))
    return prv_key_from_known_nonce(r, s, msg_hash, k, ec)


def find_nonce(
    msg_hash: MsgHash, prv_key: Scalar, r: Scalar, s: Scalar, ec: Curve
) -> FieldElement:
    "Return the nonce k = (m + q*r)/s, given the private key q."
    m = challenge(msg_hash, ec)
    return (m + ec.scalar(prv_key) * ec.scalar(r)) / ec.scalar(s)


def _is_consistent(
    r: FieldElement,
    q: FieldElement,
    k: FieldElement,
    pub_key: Optional[AffinePoint],
    ec: Curve,
) -> bool:
    if not q or not k:
        return False
    if ec.x_scalar(ec.mult(k)) != r:
        return False
    return pub_key is None or ec.mult(q) == pub_key


def crack_prv_key(
    r: Scalar,
    s1: Scalar,
    s2: Scalar,
    msg_hash1: MsgHash,
    msg_hash2: MsgHash,
    ec: Curve,
    pub_key: Optional[Key] = None,
) -> NonceReuseRecovery:
    """Return the private key and nonce from two signatures sharing r.

    k = (m1 - m2) / (s1 - s2)
    q = (s*k - m) / r

    Both signatures yield a private key candidate;
    the result is accepted only if the candidates agree,
    (G*k).x mod n equals r,
    and G*q matches the public key (if provided).
    As one of the two signatures could have been normalized
    to low-s, n - s2 is tried too.
    InconsistentRecoveryError is raised, carrying the first candidate,
    if no candidate survives the checks.
    """

    r = _in_range(r, "r", ec)
    s1 = _in_range(s1, "s1", ec)
    s2 = _in_range(s2, "s2", ec)
    if s1 == s2:
        raise SigForensicsValueError("identical signatures")
    m1 = challenge(msg_hash1, ec)
    m2 = challenge(msg_hash2, ec)
    if m1 == m2:
        raise SigForensicsValueError("identical message digests")
    Q = None if pub_key is None else _point_from_key(pub_key, ec)

    # s1 != s2 here, while s1 == n - s2 leaves a single candidate
    candidates: List[Tuple[FieldElement, FieldElement]] = []
    for s2_ in (s2, -s2):
        if s1 == s2_:
            continue
        k = (m1 - m2) / (s1 - s2_)
        q1 = (s1 * k - m1) / r
        q2 = (s2_ * k - m2) / r
        if q1 == q2 and _is_consistent(r, q1, k, Q, ec):
            return NonceReuseRecovery(q1, k)
        candidates.append((q1, k))

    q, k = candidates[0]
    LOGGER.warning("inconsistent nonce reuse recovery for r=%s", int_repr(r.value))
    err_msg = "recovered key fails consistency checks"
    raise InconsistentRecoveryError(err_msg, q.value, k.value)


def recover_pub_key(msg_hash: MsgHash, r: Scalar, s: Scalar, parity: int, ec: Curve) -> Point:
    """Return the public key from the signature and the y parity of R.

    R is the point with x-coordinate r and the given y parity;
    the key is (R*s - G*m) / r.
    """

    m = challenge(msg_hash, ec)
    r = ec.scalar(r)
    s = ec.scalar(s)
    if not r:
        raise SigForensicsValueError("scalar r not in 1..n-1: 0")
    R = ec.decompress(ec.field.convert(r), parity)
    return ec.div(ec.sub(ec.mult(s, R), ec.mult(m)), r)


def recover_pub_keys(msg_hash: MsgHash, sig: Sig, ec: Curve) -> List[AffinePoint]:
    """Return all the public keys the signature is valid for.

    Both y parities are tried, for every x-coordinate
    congruent to r mod n (i.e. r + j*n < p).
    """

    m = challenge(msg_hash, ec)
    sig.assert_valid()
    r, s = ec.scalar(sig.r), ec.scalar(sig.s)
    keys: List[AffinePoint] = []
    x = r.value
    while x < ec.p:
        for parity in (0, 1):
            try:
                R = ec.decompress(x, parity)
            except NoSquareRootError:
                break
            Q = ec.div(ec.sub(ec.mult(s, R), ec.mult(m)), r)
            if isinstance(Q, AffinePoint) and Q not in keys and verify(m, Q, sig, ec):
                keys.append(Q)
        x += ec.n
    return keys
