#!/usr/bin/env python3

# Copyright (C) 2020-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Signature hash types.

The hash type byte is appended to the DER signature in the script
and selects which parts of the transaction are committed to.

https://medium.com/@bitaps.com/exploring-bitcoin-signature-hash-types-15427766f0a9
https://raghavsood.com/blog/2018/06/10/bitcoin-signature-types-sighash
"""

from typing import Tuple

from sigforensics.alias import Octets
from sigforensics.exceptions import SigForensicsValueError
from sigforensics.utils import bytes_from_octets

# taproot only
DEFAULT = 0
ALL = 1
NONE = 2
SINGLE = 3
ANYONECANPAY = 0b10000000

SIG_HASH_TYPES = [
    DEFAULT,
    ALL,
    NONE,
    SINGLE,
    ANYONECANPAY | ALL,
    ANYONECANPAY | NONE,
    ANYONECANPAY | SINGLE,
]

_BASE_NAMES = {DEFAULT: "DEFAULT", ALL: "ALL", NONE: "NONE", SINGLE: "SINGLE"}


def assert_valid_hash_type(hash_type: int) -> None:
    if hash_type not in SIG_HASH_TYPES:
        raise SigForensicsValueError(f"invalid sig_hash type: {hex(hash_type)}")


def sig_hash_name(hash_type: int) -> str:
    "Return the name of the hash type, e.g. 'SINGLE|ANYONECANPAY'."

    if hash_type not in SIG_HASH_TYPES:
        return f"UNKNOWN(0x{hash_type:02x})"
    name = _BASE_NAMES[hash_type & ~ANYONECANPAY]
    if hash_type & ANYONECANPAY:
        name += "|ANYONECANPAY"
    return name


def is_standard(hash_type: int) -> bool:
    "Return True for the hash types of legacy and segwit v0 signatures."
    return hash_type != DEFAULT and hash_type in SIG_HASH_TYPES


def is_anyone_can_pay(hash_type: int) -> bool:
    return bool(hash_type & ANYONECANPAY)


def split_sighash(sig: Octets) -> Tuple[bytes, int]:
    """Split a script-pushed signature into DER bytes and hash type.

    The hash type is the last byte of the push.
    """

    sig = bytes_from_octets(sig)
    if len(sig) < 2:
        raise SigForensicsValueError(f"too short for a signature: {len(sig)} bytes")
    return sig[:-1], sig[-1]
