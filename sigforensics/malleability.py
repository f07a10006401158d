#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Catalogue of malleated variants of a canonical DER signature.

Each variant is a different byte string that a non-conforming
verifier might still accept as the same (r, s) signature,
changing the transaction id without invalidating it.

The catalogue is deterministic: same input, same variants, same order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from dataclasses_json import DataClassJsonMixin, config

from sigforensics import der
from sigforensics.alias import Octets
from sigforensics.ecc.curve import Curve
from sigforensics.exceptions import SigForensicsValueError
from sigforensics.utils import bytes_from_octets

TRAILING_GARBAGE = bytes.fromhex("deadbeef")
WRONG_SEQUENCE_TAG = 0x31


class VariantCategory(Enum):
    CANONICAL = "canonical"
    HIGH_S = "high-s"
    EXTRA_ZEROS = "extra-zeros"
    LONG_FORM_LENGTH = "long-form-length"
    TRAILING = "trailing"
    WRONG_TAG = "wrong-tag"
    LENGTH_MISMATCH = "length-mismatch"


@dataclass(frozen=True)
class DERVariant(DataClassJsonMixin):
    category: VariantCategory
    data: bytes = field(
        metadata=config(encoder=lambda v: v.hex(), decoder=bytes.fromhex)
    )
    description: str

    @property
    def is_baseline(self) -> bool:
        return self.category is VariantCategory.CANONICAL


def _length(length: int, long_form: bool) -> bytes:
    if long_form:
        return b"\x81" + bytes([length])
    return bytes([length])


def _integer(payload: bytes, long_form: bool = False) -> bytes:
    return bytes([der.DER_SCALAR_MARKER]) + _length(len(payload), long_form) + payload


def serialize_ber(
    r_payload: bytes,
    s_payload: bytes,
    long_form_sequence: bool = False,
    long_form_r: bool = False,
    tag: int = der.DER_SIG_MARKER,
) -> bytes:
    """Return a BER sequence of the two integer payloads, taken as they are.

    Payloads are not minimized and lengths can use the long form:
    this is the lax encoding accepted by pre-BIP66 OpenSSL.
    """
    content = _integer(r_payload, long_form_r) + _integer(s_payload)
    return bytes([tag]) + _length(len(content), long_form_sequence) + content


def generate_variants(data: Octets, ec: Curve) -> List[DERVariant]:
    """Return the catalogue of malleated variants of a canonical signature.

    The input itself is the first (baseline) entry;
    every other entry fails der.is_canonical.
    """

    canonical = bytes_from_octets(data)
    if not der.is_canonical(canonical, ec):
        raise SigForensicsValueError("not a canonical DER signature")

    decoded = der.decode(canonical)
    r_bytes, s_bytes = decoded.r_bytes, decoded.s_bytes
    high_s = (-ec.scalar(decoded.s)).value

    seq_len = canonical[1]
    # length declared one byte longer than the actual content
    length_mismatch = canonical[:1] + bytes([seq_len + 1]) + canonical[2:]

    return [
        DERVariant(
            VariantCategory.CANONICAL,
            canonical,
            "canonical input: strict DER with low s",
        ),
        DERVariant(
            VariantCategory.HIGH_S,
            der.encode(decoded.r, high_s),
            "s replaced by n - s: still a valid ECDSA signature",
        ),
        DERVariant(
            VariantCategory.EXTRA_ZEROS,
            serialize_ber(b"\x00" + r_bytes, s_bytes),
            "extra leading zero byte in r",
        ),
        DERVariant(
            VariantCategory.EXTRA_ZEROS,
            serialize_ber(r_bytes, b"\x00" + s_bytes),
            "extra leading zero byte in s",
        ),
        DERVariant(
            VariantCategory.EXTRA_ZEROS,
            serialize_ber(b"\x00" + r_bytes, b"\x00" + s_bytes),
            "extra leading zero bytes in both r and s",
        ),
        DERVariant(
            VariantCategory.LONG_FORM_LENGTH,
            serialize_ber(r_bytes, s_bytes, long_form_sequence=True),
            "sequence length in BER long form (0x81 prefix)",
        ),
        DERVariant(
            VariantCategory.LONG_FORM_LENGTH,
            serialize_ber(r_bytes, s_bytes, long_form_r=True),
            "r length in BER long form (0x81 prefix)",
        ),
        DERVariant(
            VariantCategory.TRAILING,
            canonical + TRAILING_GARBAGE,
            f"trailing garbage bytes ({TRAILING_GARBAGE.hex()}) after the sequence",
        ),
        DERVariant(
            VariantCategory.WRONG_TAG,
            serialize_ber(r_bytes, s_bytes, tag=WRONG_SEQUENCE_TAG),
            f"sequence tag {WRONG_SEQUENCE_TAG:02x} instead of {der.DER_SIG_MARKER:02x}",
        ),
        DERVariant(
            VariantCategory.LENGTH_MISMATCH,
            length_mismatch,
            "sequence length exceeding the available data",
        ),
    ]
