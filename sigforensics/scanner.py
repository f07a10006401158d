#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Vulnerability scanner for a corpus of ECDSA signatures.

Detections:

* nonce reuse: signatures sharing r, with private key recovery
  when two of them have distinct message digests
* high s: malleable, non-standard since BIP62/BIP146
* non-canonical DER: any BIP66 deviation
* abnormal sighash: anything but SIGHASH_ALL
* key reuse: the same public key signing more than one input
* invalid signature: verification failure (when key and digest are known)

Inputs that cannot be decoded are reported as unanalyzable,
without aborting the scan.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence

from dataclasses_json import DataClassJsonMixin, config

from sigforensics import sighash
from sigforensics.ecc import dsa
from sigforensics.ecc.curve import Curve
from sigforensics.ecc.curve_group import AffinePoint
from sigforensics.exceptions import (
    InconsistentRecoveryError,
    SigForensicsTypeError,
    SigForensicsValueError,
)
from sigforensics.r_index import RValueIndex
from sigforensics.signature import Signature, SignatureInput
from sigforensics.utils import int_repr
from sigforensics.wif import wif_from_prv_key

LOGGER = logging.getLogger(__name__)


class FindingKind(Enum):
    NONCE_REUSE = "nonce-reuse"
    HIGH_S = "high-s"
    NON_CANONICAL_DER = "non-canonical-der"
    ABNORMAL_SIGHASH = "abnormal-sighash"
    KEY_REUSE = "key-reuse"
    INVALID_SIGNATURE = "invalid-signature"
    UNANALYZABLE = "unanalyzable"


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class Confidence(Enum):
    HIGH = "high"
    LOW = "low"


def _int_encoder(v: Optional[int]) -> Optional[str]:
    return None if v is None else f"{v:064x}"


def _int_decoder(v: Optional[str]) -> Optional[int]:
    return None if v is None else int(v, 16)


@dataclass(frozen=True)
class Finding(DataClassJsonMixin):
    kind: FindingKind
    severity: Severity
    sig_ids: List[str]
    description: str
    prv_key: Optional[int] = field(
        default=None, metadata=config(encoder=_int_encoder, decoder=_int_decoder)
    )
    nonce: Optional[int] = field(
        default=None, metadata=config(encoder=_int_encoder, decoder=_int_decoder)
    )
    confidence: Optional[Confidence] = None
    details: List[str] = field(default_factory=list)

    def wif(
        self, ec: Curve, compressed: bool = True, network: str = "mainnet"
    ) -> Optional[str]:
        "Return the recovered private key in Wallet Import Format, if any."
        if self.prv_key is None:
            return None
        return wif_from_prv_key(self.prv_key, ec, compressed, network)


@dataclass(frozen=True)
class ScanReport(DataClassJsonMixin):
    findings: List[Finding] = field(default_factory=list)
    analyzed: List[str] = field(default_factory=list)
    unanalyzed: List[str] = field(default_factory=list)

    def by_kind(self, kind: FindingKind) -> List[Finding]:
        return [finding for finding in self.findings if finding.kind is kind]


def _nonce_reuse_finding(group: Sequence[Signature], ec: Curve) -> Finding:

    sig_ids = [sig.sig_id for sig in group]
    r = group[0].r
    failed: Optional[InconsistentRecoveryError] = None
    for sig1, sig2 in combinations(group, 2):
        if sig1.msg_hash is None or sig2.msg_hash is None:
            continue
        if sig1.s == sig2.s or sig1.msg_hash == sig2.msg_hash:
            continue
        if sig1.pub_key is not None and sig2.pub_key is not None:
            if sig1.pub_key != sig2.pub_key:
                # same nonce, different keys: not enough equations
                continue
        pub_key = sig1.pub_key if sig1.pub_key is not None else sig2.pub_key
        try:
            recovery = dsa.crack_prv_key(
                r, sig1.s, sig2.s, sig1.msg_hash, sig2.msg_hash, ec, pub_key
            )
        except InconsistentRecoveryError as e:
            failed = failed or e
            continue
        LOGGER.info("private key recovered from %s and %s", sig1.sig_id, sig2.sig_id)
        return Finding(
            FindingKind.NONCE_REUSE,
            Severity.CRITICAL,
            sig_ids,
            "nonce reuse: private key recovered",
            recovery.prv_key.value,
            recovery.nonce.value,
            Confidence.HIGH,
            [f"recovered from {sig1.sig_id} and {sig2.sig_id}"],
        )

    if failed is not None:
        return Finding(
            FindingKind.NONCE_REUSE,
            Severity.CRITICAL,
            sig_ids,
            "nonce reuse: recovered key failed consistency checks",
            failed.prv_key,
            failed.nonce,
            Confidence.LOW,
        )

    LOGGER.info("nonce reuse without recovery for r=%s", int_repr(r.value))
    return Finding(
        FindingKind.NONCE_REUSE,
        Severity.CRITICAL,
        sig_ids,
        "nonce reuse: key recovery needs two signatures over distinct digests",
    )


def _sighash_severity(hash_type: int) -> Severity:
    if not sighash.is_standard(hash_type):
        return Severity.MEDIUM
    if hash_type & ~sighash.ANYONECANPAY in (sighash.NONE, sighash.SINGLE):
        return Severity.MEDIUM
    return Severity.LOW


def _signature_findings(sig: Signature, ec: Curve, verify_signatures: bool) -> List[Finding]:

    findings: List[Finding] = []
    if sig.is_high_s:
        findings.append(
            Finding(
                FindingKind.HIGH_S,
                Severity.LOW,
                [sig.sig_id],
                "high s: the signature is malleable into n - s",
            )
        )
    if sig.defects:
        findings.append(
            Finding(
                FindingKind.NON_CANONICAL_DER,
                Severity.MEDIUM,
                [sig.sig_id],
                "non-canonical DER encoding",
                details=[defect.value for defect in sig.defects],
            )
        )
    if sig.sighash != sighash.ALL:
        name = sighash.sig_hash_name(sig.sighash)
        findings.append(
            Finding(
                FindingKind.ABNORMAL_SIGHASH,
                _sighash_severity(sig.sighash),
                [sig.sig_id],
                f"abnormal sighash type: {name}",
            )
        )
    if verify_signatures and sig.pub_key is not None and sig.msg_hash is not None:
        if not dsa.verify(sig.msg_hash, sig.pub_key, sig.sig, ec):
            findings.append(
                Finding(
                    FindingKind.INVALID_SIGNATURE,
                    Severity.HIGH,
                    [sig.sig_id],
                    "signature does not verify for the given key and digest",
                )
            )
    return findings


def _key_reuse_findings(signatures: Iterable[Signature]) -> List[Finding]:

    by_key: Dict[AffinePoint, List[str]] = {}
    for sig in signatures:
        if sig.pub_key is not None:
            by_key.setdefault(sig.pub_key, []).append(sig.sig_id)
    return [
        Finding(
            FindingKind.KEY_REUSE,
            Severity.LOW,
            sig_ids,
            f"the same public key signs {len(sig_ids)} inputs",
        )
        for sig_ids in by_key.values()
        if len(sig_ids) > 1
    ]


def scan(
    inputs: Iterable[SignatureInput],
    ec: Curve,
    index: Optional[RValueIndex] = None,
    verify_signatures: bool = True,
) -> ScanReport:
    """Scan a batch of signatures for vulnerabilities.

    Pass the same index to successive calls to detect
    nonce reuse across batches: a collision is reported
    by the call adding its second (or later) signature.
    """

    index = RValueIndex() if index is None else index
    findings: List[Finding] = []
    analyzed: List[str] = []
    unanalyzed: List[str] = []
    signatures: List[Signature] = []
    for item in inputs:
        try:
            signatures.append(Signature.from_input(item, ec))
        except (SigForensicsValueError, SigForensicsTypeError) as e:
            LOGGER.warning("could not analyze %s: %s", item.sig_id, e)
            unanalyzed.append(item.sig_id)
            findings.append(
                Finding(
                    FindingKind.UNANALYZABLE,
                    Severity.INFO,
                    [item.sig_id],
                    f"could not analyze: {e}",
                )
            )
            continue
        analyzed.append(item.sig_id)

    # groups come from what add returns: signatures indexed afterwards
    # by a concurrent scan are reported by that scan
    groups: Dict[int, List[Signature]] = {}
    for sig in signatures:
        prior = index.add(sig)
        group = groups.setdefault(sig.r.value, [])
        for other in prior:
            if not any(other is member for member in group):
                group.append(other)
        group.append(sig)
    for group in groups.values():
        if len(group) > 1:
            findings.append(_nonce_reuse_finding(group, ec))

    for sig in signatures:
        findings.extend(_signature_findings(sig, ec, verify_signatures))
    findings.extend(_key_reuse_findings(signatures))

    LOGGER.debug(
        "scanned %d signatures: %d findings, %d unanalyzed",
        len(analyzed) + len(unanalyzed),
        len(findings),
        len(unanalyzed),
    )
    return ScanReport(findings, analyzed, unanalyzed)


def scan_for_vulnerabilities(
    inputs: Iterable[SignatureInput],
    ec: Curve,
    index: Optional[RValueIndex] = None,
    verify_signatures: bool = True,
) -> List[Finding]:
    "Return the findings of a scan, see scan."
    return scan(inputs, ec, index, verify_signatures).findings
