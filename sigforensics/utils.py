#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Conversions shared by the key, digest and signature parsers.

Signatures, public keys and message digests reach the package either
as raw bytes or as hex-strings (as found in block explorers and
transaction dumps); everything is normalized to bytes here,
reporting malformed input as SigForensicsValueError.
"""

from collections.abc import Iterable as IterableCollection
from io import BytesIO
from typing import Iterable, Optional, Union

from sigforensics.alias import BinaryData, Integer, Octets
from sigforensics.exceptions import SigForensicsValueError

# allowed byte lengths: any, exactly one, or one of many
# (e.g. 33 or 65 for SEC 1 public keys)
ExpectedSize = Optional[Union[int, Iterable[int]]]

# ints above this are rendered as hex-strings in messages
HEX_THRESHOLD = 0xFFFFFFFF


def _fromhex(hex_str: str) -> bytes:
    try:
        return bytes.fromhex(hex_str)
    except ValueError as e:
        raise SigForensicsValueError(f"invalid hex-string: {e}") from e


def _size_ok(size: int, expected: ExpectedSize) -> bool:
    if expected is None:
        return True
    if isinstance(expected, int):
        return size == expected
    if isinstance(expected, IterableCollection):
        return size in expected
    return False


def bytes_from_octets(octets: Octets, out_size: ExpectedSize = None) -> bytes:
    """Return the bytes of a key, digest or DER blob.

    A hex-string is decoded, whitespace between digit pairs allowed;
    bytes go untouched.
    If out_size is given, the byte length must match it.
    """

    data = _fromhex(octets) if isinstance(octets, str) else octets
    if _size_ok(len(data), out_size):
        return data
    err_msg = f"invalid size: {len(data)} bytes instead of {out_size}"
    raise SigForensicsValueError(err_msg)


def bytesio_from_binarydata(stream: BinaryData) -> BytesIO:
    "Return a stream to parse DER elements from, wrapping hex-strings and bytes."

    if isinstance(stream, (str, bytes)):
        return BytesIO(bytes_from_octets(stream))
    return stream


def int_from_bits(octets: Octets, nlen: int) -> int:
    """Return the integer made of the leftmost nlen bits of a digest.

    This is the SEC 1 v.2 section 4.1.3 (5) conversion of a message
    digest to an ECDSA challenge: digests longer than the group order
    are truncated, shorter ones are taken whole.
    The result still needs a reduction modulo n.
    """

    data = bytes_from_octets(octets)
    excess_bits = max(0, len(data) * 8 - nlen)
    return int.from_bytes(data, byteorder="big", signed=False) >> excess_bits


def int_from_integer(i: Integer) -> int:
    """Return an int from curve parameters or scalars in any notation.

    Accepted are ints, "0x"-prefixed (optionally negative) strings,
    plain big-endian hex-strings and big-endian bytes.
    """

    if isinstance(i, int):
        return i
    if isinstance(i, str):
        i = i.strip().lower()
        if i.startswith(("0x", "-0x")):
            return int(i, 16)
        i = _fromhex(i)
    return int.from_bytes(i, "big", signed=False)


def hex_string(i: Integer) -> str:
    """Return an upper-case hex-string grouped in four-byte words.

    The leading word is zero-padded to an even number of digits,
    e.g. 34492435054806958080 becomes "01 DEADBEEF 00000000".
    """

    int_ = int_from_integer(i)
    if int_ < 0:
        raise SigForensicsValueError(f"negative integer: {int_}")
    digits = f"{int_:X}"
    if len(digits) % 2:
        digits = "0" + digits
    head = len(digits) % 8 or 8
    words = [digits[:head]]
    words += [digits[j : j + 8] for j in range(head, len(digits), 8)]
    return " ".join(words)


def int_repr(i: int) -> str:
    "Return the error-message rendering of an int: hex-string if large."
    return f"'{hex_string(i)}'" if i > HEX_THRESHOLD else f"{i}"
