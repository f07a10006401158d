#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Wallet Import Format of recovered private keys.

A WIF is the Base58Check encoding of
network prefix + 32-byte big-endian private key [+ 0x01 if compressed],
Base58Check appending hash256(payload)[:4] as checksum:
it is the format wallets import private keys from.

Base58 omits 0 (zero), O (capital o), I (capital i) and l (lower case L),
leading zero bytes becoming leading '1' characters.
"""

import hashlib
from typing import Dict, Tuple

from sigforensics.ecc.curve import Curve
from sigforensics.exceptions import SigForensicsValueError

_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE = len(_ALPHABET)

WIF_PREFIXES: Dict[str, bytes] = {
    "mainnet": b"\x80",
    "testnet": b"\xef",
}

_COMPRESSED_SUFFIX = b"\x01"


def _hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def _b58encode(data: bytes) -> bytes:
    stripped = data.lstrip(b"\0")
    i = int.from_bytes(stripped, byteorder="big", signed=False)
    digits = b""
    while i:
        i, idx = divmod(i, _BASE)
        digits = _ALPHABET[idx : idx + 1] + digits
    return _ALPHABET[:1] * (len(data) - len(stripped)) + digits


def _b58decode(data: bytes) -> bytes:
    if any(char not in _ALPHABET for char in data):
        raise SigForensicsValueError("Base58 string contains invalid characters")
    stripped = data.lstrip(_ALPHABET[:1])
    i = 0
    for char in stripped:
        i = i * _BASE + _ALPHABET.index(char)
    nbytes = (i.bit_length() + 7) // 8
    return b"\0" * (len(data) - len(stripped)) + i.to_bytes(nbytes, "big")


def b58encode(payload: bytes) -> bytes:
    "Return the Base58Check encoding of payload, as ASCII bytes."
    return _b58encode(payload + _hash256(payload)[:4])


def b58decode(v: str) -> bytes:
    "Return the payload of a Base58Check string, checking its checksum."

    decoded = _b58decode(v.encode("ascii"))
    if len(decoded) < 4:
        err_msg = "not enough bytes for checksum, "
        err_msg += f"invalid base58 decoded size: {len(decoded)}"
        raise SigForensicsValueError(err_msg)
    payload, checksum = decoded[:-4], decoded[-4:]
    expected = _hash256(payload)[:4]
    if checksum != expected:
        err_msg = f"invalid checksum: 0x{checksum.hex()} instead of 0x{expected.hex()}"
        raise SigForensicsValueError(err_msg)
    return payload


def wif_from_prv_key(
    prv_key: int, ec: Curve, compressed: bool = True, network: str = "mainnet"
) -> str:
    "Return the WIF encoding of a private key."

    if network not in WIF_PREFIXES:
        raise SigForensicsValueError(f"unknown network: {network}")
    if not 0 < prv_key < ec.n:
        raise SigForensicsValueError(f"private key not in 1..n-1: {prv_key}")
    payload = b"".join(
        [
            WIF_PREFIXES[network],
            prv_key.to_bytes(ec.n_size, byteorder="big", signed=False),
            _COMPRESSED_SUFFIX if compressed else b"",
        ]
    )
    return b58encode(payload).decode("ascii")


def prv_key_from_wif(wif: str, ec: Curve) -> Tuple[int, bool, str]:
    "Return private key, compressed flag and network of a WIF."

    payload = b58decode(wif.strip())
    prefix, key = payload[:1], payload[1:]
    networks = [net for net, value in WIF_PREFIXES.items() if value == prefix]
    if not networks:
        raise SigForensicsValueError(f"invalid wif prefix: 0x{prefix.hex()}")

    compressed = len(key) == ec.n_size + 1
    if compressed:
        if key[-1:] != _COMPRESSED_SUFFIX:
            err_msg = f"invalid compressed key suffix: 0x{key[-1:].hex()}"
            raise SigForensicsValueError(err_msg)
        key = key[:-1]
    elif len(key) != ec.n_size:
        raise SigForensicsValueError(f"invalid wif private key size: {len(key)}")

    prv_key = int.from_bytes(key, byteorder="big", signed=False)
    if not 0 < prv_key < ec.n:
        raise SigForensicsValueError("private key not in 1..n-1")
    return prv_key, compressed, networks[0]
