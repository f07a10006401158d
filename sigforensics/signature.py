#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Signature records handed to the scanner.

SignatureInput is the raw material extracted from a transaction input
(DER bytes, hash type, and optionally public key and message digest);
Signature is its decoded form, with r and s as scalar field elements.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from dataclasses_json import DataClassJsonMixin, config

from sigforensics import der, sighash
from sigforensics.alias import Octets
from sigforensics.ecc import dsa
from sigforensics.ecc.curve import Curve
from sigforensics.ecc.curve_group import AffinePoint
from sigforensics.ecc.field import FieldElement
from sigforensics.ecc.sec_point import point_from_octets
from sigforensics.utils import bytes_from_octets


def _optional_hex_encoder(v: Optional[bytes]) -> Optional[str]:
    return None if v is None else v.hex()


def _optional_hex_decoder(v: Optional[str]) -> Optional[bytes]:
    return None if v is None else bytes.fromhex(v)


@dataclass(frozen=True)
class SignatureInput(DataClassJsonMixin):
    sig_id: str
    # DER signature, without the trailing hash type byte
    der: bytes = field(
        metadata=config(encoder=lambda v: v.hex(), decoder=bytes.fromhex)
    )
    sighash: int = sighash.ALL
    # SEC serialized public key
    pub_key: Optional[bytes] = field(
        default=None,
        metadata=config(encoder=_optional_hex_encoder, decoder=_optional_hex_decoder),
    )
    # 32 bytes digest the signature commits to
    msg_hash: Optional[bytes] = field(
        default=None,
        metadata=config(encoder=_optional_hex_encoder, decoder=_optional_hex_decoder),
    )

    def __post_init__(self) -> None:
        # hex-strings are accepted for all the binary fields
        object.__setattr__(self, "der", bytes_from_octets(self.der))
        if self.pub_key is not None:
            object.__setattr__(self, "pub_key", bytes_from_octets(self.pub_key))
        if self.msg_hash is not None:
            object.__setattr__(self, "msg_hash", bytes_from_octets(self.msg_hash))

    @classmethod
    def from_pushed_sig(
        cls,
        sig_id: str,
        pushed_sig: Octets,
        pub_key: Optional[Octets] = None,
        msg_hash: Optional[Octets] = None,
    ) -> "SignatureInput":
        "Return a SignatureInput from a script-pushed signature (DER + hash type)."
        der_sig, hash_type = sighash.split_sighash(pushed_sig)
        return cls(sig_id, der_sig, hash_type, pub_key, msg_hash)  # type: ignore[arg-type]


@dataclass(frozen=True)
class Signature:
    sig_id: str
    der: bytes
    sighash: int
    r: FieldElement
    s: FieldElement
    defects: Tuple[der.DERDefect, ...] = ()
    pub_key: Optional[AffinePoint] = None
    msg_hash: Optional[FieldElement] = None

    @classmethod
    def from_input(cls, item: SignatureInput, ec: Curve) -> "Signature":
        """Decode a SignatureInput.

        Malformed DER, r or s not in 1..n-1,
        and invalid public keys are errors.
        """
        decoded = der.decode(item.der)
        sig = dsa.Sig.from_ints(decoded.r, decoded.s, ec)
        pub_key = None
        if item.pub_key is not None:
            pub_key = point_from_octets(item.pub_key, ec)
        msg_hash = None
        if item.msg_hash is not None:
            msg_hash = dsa.challenge(item.msg_hash, ec)
        return cls(
            item.sig_id,
            item.der,
            item.sighash,
            sig.r,
            sig.s,
            tuple(decoded.defects),
            pub_key,
            msg_hash,
        )

    @property
    def sig(self) -> dsa.Sig:
        return dsa.Sig(self.r, self.s)

    @property
    def is_high_s(self) -> bool:
        # s lives in the scalar field: its modulus is the curve order
        return self.s.value > self.s.ctx.p // 2
