#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Conformance suite for ECDSA signature verifiers.

Feed the malleated variants of a canonical signature to a verifier
and record which ones it accepts.
A verifier accepting BER encodings (extra padding, long-form lengths,
trailing data) is vulnerable to signature malleability,
as in CVE-2022-42461 (elliptic, JavaScript).

Accepting high-s is reported separately:
it is a standardness rule, not a consensus one.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from dataclasses_json import DataClassJsonMixin, config

from sigforensics import der
from sigforensics.alias import Octets
from sigforensics.ecc import dsa
from sigforensics.ecc.curve import Curve
from sigforensics.malleability import VariantCategory, generate_variants
from sigforensics.utils import bytes_from_octets

LOGGER = logging.getLogger(__name__)

# (msg_hash, pub_key, der_signature) -> accepted
VerifyFn = Callable[[bytes, bytes, bytes], bool]


@dataclass(frozen=True)
class ConformanceCase(DataClassJsonMixin):
    category: VariantCategory
    description: str
    data: bytes = field(
        metadata=config(encoder=lambda v: v.hex(), decoder=bytes.fromhex)
    )
    accepted: bool
    error: Optional[str] = None

    @property
    def is_baseline(self) -> bool:
        return self.category is VariantCategory.CANONICAL


@dataclass(frozen=True)
class ConformanceReport(DataClassJsonMixin):
    verifier: str
    cases: List[ConformanceCase] = field(default_factory=list)

    @property
    def accepts_canonical(self) -> bool:
        return any(case.accepted for case in self.cases if case.is_baseline)

    @property
    def accepted_variants(self) -> List[ConformanceCase]:
        return [case for case in self.cases if case.accepted and not case.is_baseline]

    @property
    def accepts_non_canonical(self) -> bool:
        return bool(self.accepted_variants)

    @property
    def accepts_high_s(self) -> bool:
        return any(
            case.category is VariantCategory.HIGH_S for case in self.accepted_variants
        )

    @property
    def vulnerable(self) -> bool:
        "True if any non-DER encoding of the signature is accepted."
        return any(
            case.category is not VariantCategory.HIGH_S
            for case in self.accepted_variants
        )


def run_conformance(
    verify_fn: VerifyFn,
    msg_hash: Octets,
    pub_key: Octets,
    canonical_der: Octets,
    ec: Curve,
    name: str = "verifier",
) -> ConformanceReport:
    """Run the malleability catalogue against a verifier.

    The canonical signature must be valid for msg_hash and pub_key;
    verifier exceptions count as rejections and are recorded.
    """

    msg_hash = bytes_from_octets(msg_hash)
    pub_key = bytes_from_octets(pub_key)
    cases: List[ConformanceCase] = []
    for variant in generate_variants(canonical_der, ec):
        error = None
        # all kind of Exceptions are catched because
        # the verifier under test is arbitrary code
        try:
            accepted = bool(verify_fn(msg_hash, pub_key, variant.data))
        except Exception as e:  # pylint: disable=broad-except
            LOGGER.debug("%s raised on %s: %s", name, variant.category.value, e)
            accepted = False
            error = f"{type(e).__name__}: {e}"
        cases.append(
            ConformanceCase(
                variant.category, variant.description, variant.data, accepted, error
            )
        )
    return ConformanceReport(name, cases)


def strict_verifier(ec: Curve) -> VerifyFn:
    "Return a verifier requiring strict DER and low s (BIP66 and BIP62)."

    def verify_fn(msg_hash: bytes, pub_key: bytes, data: bytes) -> bool:
        if not der.is_canonical(data, ec):
            return False
        sig = dsa.Sig.parse(data, ec)
        return dsa.verify(msg_hash, pub_key, sig, ec, lower_s=True)

    return verify_fn


def lax_verifier(ec: Curve) -> VerifyFn:
    "Return a verifier ignoring DER defects and high s, like pre-BIP66 OpenSSL."

    def verify_fn(msg_hash: bytes, pub_key: bytes, data: bytes) -> bool:
        sig = dsa.Sig.parse(data, ec, strict=False)
        return dsa.verify(msg_hash, pub_key, sig, ec)

    return verify_fn
