#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for the `sigforensics.ecc.sec_point` module."

import secrets

import pytest

from sigforensics.ecc.curve_group import INF, AffinePoint
from sigforensics.ecc.sec_point import bytes_from_point, point_from_octets
from sigforensics.exceptions import (
    NoSquareRootError,
    PointNotOnCurveError,
    SigForensicsValueError,
)
from tests.ecc.test_curve import all_curves, secp256k1

G_COMPRESSED = "0279BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798"
G_UNCOMPRESSED = (
    "0479BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798"
    "483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8"
)


def test_generator_vectors() -> None:
    ec = secp256k1
    assert bytes_from_point(ec.G, ec).hex().upper() == G_COMPRESSED
    assert bytes_from_point(ec.G, ec, False).hex().upper() == G_UNCOMPRESSED
    assert point_from_octets(G_COMPRESSED, ec) == ec.G
    assert point_from_octets(G_UNCOMPRESSED, ec) == ec.G


def test_octets2point() -> None:
    for ec in all_curves.values():

        G_bytes = bytes_from_point(ec.G, ec)
        G_point = point_from_octets(G_bytes, ec)
        assert ec.G == G_point

        G_bytes = bytes_from_point(ec.G, ec, False)
        G_point = point_from_octets(G_bytes, ec)
        assert ec.G == G_point

        # just a random point, not INF
        q = 1 + secrets.randbelow(ec.n - 1)
        Q = ec.mult(q)
        assert isinstance(Q, AffinePoint)

        Q_bytes = b"\x03" if Q.y.is_odd() else b"\x02"
        Q_bytes += Q.x.value.to_bytes(ec.p_size, byteorder="big", signed=False)
        Q_point = point_from_octets(Q_bytes, ec)
        assert Q_point == Q
        assert bytes_from_point(Q_point, ec) == Q_bytes

        Q_hex_str = Q_bytes.hex()
        Q_point = point_from_octets(Q_hex_str, ec)
        assert Q_point == Q

        Q_bytes = b"\x04" + Q.x.to_bytes() + Q.y.to_bytes()
        Q_point = point_from_octets(Q_bytes, ec)
        assert Q_point == Q
        assert bytes_from_point(Q_point, ec, False) == Q_bytes

        Q_bytes = b"\x01" + b"\x01" * ec.p_size
        with pytest.raises(SigForensicsValueError, match="not a point: "):
            point_from_octets(Q_bytes, ec)

        Q_bytes = b"\x01" + b"\x01" * 2 * ec.p_size
        with pytest.raises(SigForensicsValueError, match="not a point: "):
            point_from_octets(Q_bytes, ec)

        Q_bytes = b"\x04" + b"\x01" * ec.p_size
        with pytest.raises(
            SigForensicsValueError, match="invalid size for uncompressed point: "
        ):
            point_from_octets(Q_bytes, ec)

        Q_bytes = b"\x02" + b"\x01" * 2 * ec.p_size
        with pytest.raises(
            SigForensicsValueError, match="invalid size for compressed point: "
        ):
            point_from_octets(Q_bytes, ec)

        Q_bytes = b"\x03" + b"\x01" * (3 * ec.p_size)
        with pytest.raises(SigForensicsValueError, match="invalid size: "):
            point_from_octets(Q_bytes, ec)


def test_invalid_points() -> None:
    ec = secp256k1
    x_Q = 0xEEFDEA4CDB677750A420FEE807EACF21EB9898AE79B9768766E4FAA04A2D4A34
    xstr = format(x_Q, "064X")
    with pytest.raises(NoSquareRootError, match="invalid x-coordinate: "):
        point_from_octets("03" + xstr, ec)
    with pytest.raises(PointNotOnCurveError, match="point not on curve"):
        point_from_octets("04" + 2 * xstr, ec)
    off_curve = AffinePoint(ec.coord(x_Q), ec.coord(x_Q))
    with pytest.raises(PointNotOnCurveError, match="point not on curve"):
        bytes_from_point(off_curve, ec)
    with pytest.raises(PointNotOnCurveError, match="point not on curve"):
        bytes_from_point(off_curve, ec, False)

    # x-coordinate not smaller than p
    pstr = format(ec.p, "064X")
    with pytest.raises(SigForensicsValueError, match="coordinate not in 0..p-1: "):
        point_from_octets("02" + pstr, ec)


def test_infinity_point_bytes() -> None:
    with pytest.raises(
        SigForensicsValueError, match="no bytes representation for infinity point"
    ):
        bytes_from_point(INF, secp256k1)
