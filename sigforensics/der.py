#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""ASN.1 DER format for ECDSA signature representation.

The original Bitcoin implementation used OpenSSL to verify
ECDSA signatures in ASN.1 DER representation.
However, OpenSSL does not do strict validation
(e.g. extra padding is ignored) and this changes the transaction
hash value, leading to transaction malleability.
This was fixed by BIP66, activated on block 363,724.

source:
https://github.com/bitcoin/bips/blob/master/bip-0066.mediawiki

BIP66 mandates a strict DER format:

Format:
[0x30] [data-size][0x02][r-size][r][0x02][s-size][s]

* 0x30: header byte to indicate compound structure
* data-size: 1-byte size descriptor of the following data
* 0x02: header byte indicating an integer
* r-size: 1-byte size descriptor of the r value that follows
* r: arbitrary-size big-endian r value.
    It must use the shortest possible encoding for
    a positive integers: no null bytes at the start,
    except a single one when the next byte has its highest bit set
    (to avoid being interpreted as a negative number)
* 0x02: header byte indicating an integer
* s-size: 1-byte size descriptor of the s value that follows
* s: arbitrary-size big-endian s value. Same rules as for r apply

Being a forensic tool, the decoder here is deliberately lenient:
deviations from the strict format that still allow the values
to be read unambiguously (BER long-form lengths, excess padding,
negative integers, trailing bytes) are reported as DERDefect entries;
only structurally broken input raises MalformedDERError.
"""

from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from typing import List

from dataclasses_json import DataClassJsonMixin, config

from sigforensics.alias import BinaryData
from sigforensics.ecc.curve import Curve
from sigforensics.exceptions import (
    MalformedDERError,
    SigForensicsValueError,
    UnsupportedEncodingError,
)
from sigforensics.utils import bytesio_from_binarydata, int_repr

DER_SCALAR_MARKER = 0x02
DER_SIG_MARKER = 0x30

# BER long-form lengths with more length bytes are refused
MAX_LENGTH_BYTES = 2


class DERDefect(Enum):
    LONG_FORM_SEQUENCE_LENGTH = "long-form-sequence-length"
    LONG_FORM_R_LENGTH = "long-form-r-length"
    LONG_FORM_S_LENGTH = "long-form-s-length"
    EXCESS_PADDING_R = "excess-padding-r"
    EXCESS_PADDING_S = "excess-padding-s"
    NEGATIVE_R = "negative-r"
    NEGATIVE_S = "negative-s"
    TRAILING_BYTES = "trailing-bytes"


_LONG_FORM = {
    "sequence": DERDefect.LONG_FORM_SEQUENCE_LENGTH,
    "r": DERDefect.LONG_FORM_R_LENGTH,
    "s": DERDefect.LONG_FORM_S_LENGTH,
}
_PADDING = {"r": DERDefect.EXCESS_PADDING_R, "s": DERDefect.EXCESS_PADDING_S}
_NEGATIVE = {"r": DERDefect.NEGATIVE_R, "s": DERDefect.NEGATIVE_S}


@dataclass(frozen=True)
class DecodedSignature(DataClassJsonMixin):
    "Result of decoding a (possibly non-canonical) DER signature."

    # raw integer payloads, padding included
    r_bytes: bytes = field(
        metadata=config(encoder=lambda v: v.hex(), decoder=bytes.fromhex)
    )
    s_bytes: bytes = field(
        metadata=config(encoder=lambda v: v.hex(), decoder=bytes.fromhex)
    )
    defects: List[DERDefect] = field(default_factory=list)
    trailing: bytes = field(
        default=b"", metadata=config(encoder=lambda v: v.hex(), decoder=bytes.fromhex)
    )

    @property
    def r(self) -> int:
        return int.from_bytes(self.r_bytes, byteorder="big", signed=False)

    @property
    def s(self) -> int:
        return int.from_bytes(self.s_bytes, byteorder="big", signed=False)

    @property
    def is_strict(self) -> bool:
        "True if no BIP66 deviation has been detected."
        return not self.defects


def _read(stream: BytesIO, size: int, end: int, what: str) -> bytes:
    offset = stream.tell()
    if offset + size > end:
        err_msg = f"not enough binary data for {what}: "
        err_msg += f"{size} bytes required, {max(end - offset, 0)} available"
        raise MalformedDERError(err_msg, offset)
    return stream.read(size)


def _read_length(stream: BytesIO, end: int, which: str, defects: List[DERDefect]) -> int:
    offset = stream.tell()
    size = _read(stream, 1, end, f"{which} length")[0]
    if size < 0x80:
        return size
    if size == 0x80:
        raise UnsupportedEncodingError(f"indefinite {which} length at offset {offset}")
    n_bytes = size & 0x7F
    if n_bytes > MAX_LENGTH_BYTES:
        err_msg = f"{n_bytes}-byte long-form {which} length at offset {offset}"
        raise UnsupportedEncodingError(err_msg)
    length = int.from_bytes(_read(stream, n_bytes, end, f"{which} length"), "big")
    defects.append(_LONG_FORM[which])
    return length


def _deserialize_scalar(
    stream: BytesIO, end: int, which: str, defects: List[DERDefect]
) -> bytes:

    offset = stream.tell()
    marker = _read(stream, 1, end, f"{which} header")[0]
    if marker != DER_SCALAR_MARKER:
        err_msg = f"invalid value header: {marker:02x}"
        err_msg += f", instead of integer element {DER_SCALAR_MARKER:02x}"
        raise MalformedDERError(err_msg, offset)

    length = _read_length(stream, end, which, defects)
    if length == 0:
        raise MalformedDERError(f"zero size {which}", offset + 1)
    payload = _read(stream, length, end, which)

    if len(payload) > 1 and payload[0] == 0 and payload[1] < 0x80:
        defects.append(_PADDING[which])
    if payload[0] >= 0x80:
        defects.append(_NEGATIVE[which])
    return payload


def decode(data: BinaryData) -> DecodedSignature:
    """Return the DecodedSignature of a DER-encoded ECDSA signature.

    Raise MalformedDERError if the structure cannot be decoded,
    UnsupportedEncodingError for indefinite or oversized BER lengths.
    """

    stream = bytesio_from_binarydata(data)
    buffer = stream.getvalue()
    total = len(buffer)
    if total == 0:
        raise MalformedDERError("empty signature", 0)
    defects: List[DERDefect] = []

    # [0x30] [data-size][0x02][r-size][r][0x02][s-size][s]
    marker = stream.read(1)[0]
    if marker != DER_SIG_MARKER:
        err_msg = f"invalid compound header: {marker:02x}"
        err_msg += f", instead of DER sequence tag {DER_SIG_MARKER:02x}"
        raise MalformedDERError(err_msg, 0)

    # [data-size][0x02][r-size][r][0x02][s-size][s]
    seq_len = _read_length(stream, total, "sequence", defects)
    start = stream.tell()
    if start + seq_len > total:
        err_msg = f"declared sequence length {seq_len} exceeds "
        err_msg += f"the {total - start} available bytes"
        raise MalformedDERError(err_msg, 1)
    end = start + seq_len

    # [0x02][r-size][r][0x02][s-size][s]
    r_bytes = _deserialize_scalar(stream, end, "r", defects)
    s_bytes = _deserialize_scalar(stream, end, "s", defects)

    # the declared sequence must have been consumed entirely
    if stream.tell() != end:
        err_msg = f"invalid DER sequence length: {end - stream.tell()} "
        err_msg += "unexpected bytes inside the sequence"
        raise MalformedDERError(err_msg, stream.tell())

    trailing = buffer[end:]
    if trailing:
        defects.append(DERDefect.TRAILING_BYTES)

    return DecodedSignature(r_bytes, s_bytes, defects, trailing)


def _serialize_length(length: int) -> bytes:
    if length >= 0x80:
        err_msg = f"too large for short-form DER length: {length}"
        raise UnsupportedEncodingError(err_msg)
    return bytes([length])


def _serialize_scalar(scalar: int) -> bytes:
    # 'highest bit set' padding included here
    scalar_size = scalar.bit_length() // 8 + 1
    scalar_bytes = scalar.to_bytes(scalar_size, byteorder="big", signed=False)
    return bytes([DER_SCALAR_MARKER]) + _serialize_length(scalar_size) + scalar_bytes


def encode(r: int, s: int) -> bytes:
    "Serialize (r, s) to strict ASN.1 DER representation."

    for name, value in (("r", r), ("s", s)):
        if value < 1:
            err_msg = f"scalar {name} must be positive: {int_repr(value)}"
            raise SigForensicsValueError(err_msg)

    out = _serialize_scalar(r) + _serialize_scalar(s)
    return bytes([DER_SIG_MARKER]) + _serialize_length(len(out)) + out


def is_canonical(data: BinaryData, ec: Curve) -> bool:
    """Return True if the signature is strict DER with low s.

    Canonical signatures decode with no defect,
    have r and s in 1..n-1, and s not greater than n/2.
    """

    try:
        decoded = decode(data)
    except SigForensicsValueError:
        return False
    if decoded.defects:
        return False
    if not 0 < decoded.r < ec.n:
        return False
    if not 0 < decoded.s < ec.n:
        return False
    return ec.is_low_s(decoded.s)
