#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""SEC compressed/uncompressed point representation.

SEC 1 v.2 2.3.3 and 2.3.4
"""

from sigforensics.alias import Octets
from sigforensics.ecc.curve_group import AffinePoint, CurveGroup, Infinity, Point
from sigforensics.exceptions import SigForensicsValueError
from sigforensics.utils import bytes_from_octets


def bytes_from_point(Q: Point, ec: CurveGroup, compressed: bool = True) -> bytes:
    """Return a point as compressed/uncompressed octet sequence.

    Return a point as compressed (0x02, 0x03) or uncompressed (0x04)
    octet sequence, according to SEC 1 v.2, section 2.3.3.
    """

    if isinstance(Q, Infinity):
        raise SigForensicsValueError("no bytes representation for infinity point")
    ec.require_on_curve(Q)

    bPx = Q.x.to_bytes()
    if compressed:
        return (b"\x03" if Q.y.is_odd() else b"\x02") + bPx

    return b"\x04" + bPx + Q.y.to_bytes()


def point_from_octets(pub_key: Octets, ec: CurveGroup) -> AffinePoint:
    """Return a tuple (x_Q, y_Q) that belongs to the curve.

    Return a tuple (x_Q, y_Q) that belongs to the curve according to
    SEC 1 v.2, section 2.3.4.
    """

    pub_key = bytes_from_octets(pub_key, (ec.p_size + 1, 2 * ec.p_size + 1))

    bsize = len(pub_key)  # bytes
    if pub_key[0] in (0x02, 0x03):  # compressed point
        if bsize != ec.p_size + 1:
            err_msg = "invalid size for compressed point: "
            err_msg += f"{bsize} instead of {ec.p_size + 1}"
            raise SigForensicsValueError(err_msg)
        x_Q = int.from_bytes(pub_key[1:], byteorder="big", signed=False)
        return ec.decompress(x_Q, pub_key[0] & 1)

    if pub_key[0] == 0x04:  # uncompressed point
        if bsize != 2 * ec.p_size + 1:
            err_msg = "invalid size for uncompressed point: "
            err_msg += f"{bsize} instead of {2 * ec.p_size + 1}"
            raise SigForensicsValueError(err_msg)
        x_Q = int.from_bytes(pub_key[1 : ec.p_size + 1], byteorder="big", signed=False)
        y_Q = int.from_bytes(pub_key[ec.p_size + 1 :], byteorder="big", signed=False)
        return ec.point(x_Q, y_Q)

    raise SigForensicsValueError(f"not a point: {pub_key.hex()}")
