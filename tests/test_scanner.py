#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for the `sigforensics.scanner` module."

import json
from typing import Callable, List, Optional, Tuple

from sigforensics import der, sighash
from sigforensics.ecc import dsa
from sigforensics.ecc.sec_point import bytes_from_point
from sigforensics.r_index import RValueIndex
from sigforensics.scanner import (
    Confidence,
    FindingKind,
    ScanReport,
    Severity,
    scan,
    scan_for_vulnerabilities,
)
from sigforensics.signature import Signature, SignatureInput
from sigforensics.wif import prv_key_from_wif
from tests.ecc.test_curve import secp256k1 as ec

G_BYTES = bytes_from_point(ec.G, ec)


def _item(
    sig_id: str,
    m: int,
    prv_key: int = 1,
    nonce: int = 1,
    pub_key: Optional[bytes] = G_BYTES,
    hash_type: int = sighash.ALL,
    with_msg_hash: bool = True,
) -> SignatureInput:
    msg_hash = m.to_bytes(32, byteorder="big", signed=False)
    sig = dsa.sign(msg_hash, prv_key, nonce, ec)
    return SignatureInput(
        sig_id,
        sig.serialize(),
        hash_type,
        pub_key,
        msg_hash if with_msg_hash else None,
    )


def test_nonce_reuse() -> None:
    # private key 1, nonce 1, digests 1 and 2
    report = scan([_item("a", 1), _item("b", 2)], ec)
    assert report.analyzed == ["a", "b"]
    assert report.unanalyzed == []

    findings = report.by_kind(FindingKind.NONCE_REUSE)
    assert len(findings) == 1
    finding = findings[0]
    assert finding.severity is Severity.CRITICAL
    assert finding.confidence is Confidence.HIGH
    assert finding.sig_ids == ["a", "b"]
    assert finding.prv_key == 1
    assert finding.nonce == 1
    assert finding.wif(ec) == "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"

    # the same key signs both
    assert len(report.by_kind(FindingKind.KEY_REUSE)) == 1
    assert report.by_kind(FindingKind.INVALID_SIGNATURE) == []


def test_one_finding_per_collision() -> None:
    inputs = [_item("a", 1), _item("b", 2), _item("c", 3), _item("d", 4, nonce=2)]
    findings = scan_for_vulnerabilities(inputs, ec, verify_signatures=False)
    nonce_reuse = [f for f in findings if f.kind is FindingKind.NONCE_REUSE]
    assert len(nonce_reuse) == 1
    assert nonce_reuse[0].sig_ids == ["a", "b", "c"]
    assert nonce_reuse[0].prv_key == 1


def test_distinct_r() -> None:
    inputs = [_item("a", 1, nonce=2), _item("b", 1, nonce=3)]
    report = scan(inputs, ec, verify_signatures=False)
    assert report.by_kind(FindingKind.NONCE_REUSE) == []


def test_nonce_reuse_without_digests() -> None:
    inputs = [_item("a", 1, with_msg_hash=False), _item("b", 2, with_msg_hash=False)]
    report = scan(inputs, ec)
    findings = report.by_kind(FindingKind.NONCE_REUSE)
    assert len(findings) == 1
    assert findings[0].severity is Severity.CRITICAL
    assert findings[0].confidence is None
    assert findings[0].wif(ec) is None
    assert findings[0].prv_key is None
    assert "needs two signatures over distinct digests" in findings[0].description


def test_nonce_reuse_inconsistent() -> None:
    # the declared public key does not match the signing key
    wrong_key = bytes_from_point(ec.mult(2), ec)
    inputs = [_item("a", 1, pub_key=wrong_key), _item("b", 2, pub_key=wrong_key)]
    report = scan(inputs, ec, verify_signatures=False)
    findings = report.by_kind(FindingKind.NONCE_REUSE)
    assert len(findings) == 1
    assert findings[0].confidence is Confidence.LOW
    assert findings[0].prv_key == 1
    assert "failed consistency checks" in findings[0].description


def test_incremental_index() -> None:
    index = RValueIndex()
    report = scan([_item("a", 1)], ec, index, verify_signatures=False)
    assert report.by_kind(FindingKind.NONCE_REUSE) == []

    report = scan([_item("b", 2)], ec, index, verify_signatures=False)
    findings = report.by_kind(FindingKind.NONCE_REUSE)
    assert len(findings) == 1
    assert findings[0].sig_ids == ["a", "b"]
    assert findings[0].prv_key == 1
    assert len(index) == 2

    # an unrelated batch does not report the old collision again
    report = scan([_item("c", 1, nonce=2)], ec, index, verify_signatures=False)
    assert report.by_kind(FindingKind.NONCE_REUSE) == []


def test_malformed_input() -> None:
    inputs = [
        SignatureInput("bad-der", b""),
        SignatureInput("bad-key", bytes.fromhex("3006020101020101"), pub_key=b"\x05" * 33),
        _item("good", 1),
    ]
    report = scan(inputs, ec)
    assert report.analyzed == ["good"]
    assert report.unanalyzed == ["bad-der", "bad-key"]
    findings = report.by_kind(FindingKind.UNANALYZABLE)
    assert [f.sig_ids for f in findings] == [["bad-der"], ["bad-key"]]
    for finding in findings:
        assert finding.severity is Severity.INFO
        assert finding.description.startswith("could not analyze: ")


def test_key_reuse() -> None:
    uncompressed = bytes_from_point(ec.G, ec, compressed=False)
    inputs = [
        _item("a", 1, nonce=2),
        _item("b", 1, nonce=3, pub_key=uncompressed),
        _item("c", 1, prv_key=2, nonce=4, pub_key=bytes_from_point(ec.mult(2), ec)),
        _item("d", 1, nonce=5, pub_key=None),
    ]
    report = scan(inputs, ec)
    findings = report.by_kind(FindingKind.KEY_REUSE)
    assert len(findings) == 1
    assert findings[0].sig_ids == ["a", "b"]
    assert findings[0].severity is Severity.LOW


def test_sighash_findings() -> None:
    expected = {
        sighash.ALL: None,
        sighash.ALL | sighash.ANYONECANPAY: Severity.LOW,
        sighash.NONE: Severity.MEDIUM,
        sighash.SINGLE | sighash.ANYONECANPAY: Severity.MEDIUM,
        sighash.DEFAULT: Severity.MEDIUM,
        0x05: Severity.MEDIUM,
    }
    for hash_type, severity in expected.items():
        item = _item("a", 1, hash_type=hash_type, pub_key=None)
        findings = scan([item], ec).by_kind(FindingKind.ABNORMAL_SIGHASH)
        if severity is None:
            assert findings == []
        else:
            assert len(findings) == 1
            assert findings[0].severity is severity
            name = sighash.sig_hash_name(hash_type)
            assert findings[0].description == f"abnormal sighash type: {name}"


def test_high_s_and_non_canonical_der() -> None:
    item = _item("a", 1, pub_key=None)
    sig = dsa.Sig.parse(item.der, ec)
    high_s = dsa.Sig(sig.r, -sig.s).serialize()
    inputs = [
        SignatureInput("high-s", high_s),
        SignatureInput("trailing", item.der + b"\x00"),
    ]
    report = scan(inputs, ec)

    findings = report.by_kind(FindingKind.HIGH_S)
    assert [f.sig_ids for f in findings] == [["high-s"]]
    assert findings[0].severity is Severity.LOW

    findings = report.by_kind(FindingKind.NON_CANONICAL_DER)
    assert [f.sig_ids for f in findings] == [["trailing"]]
    assert findings[0].severity is Severity.MEDIUM
    assert findings[0].details == ["trailing-bytes"]

    # same r for both: a collision, but s values are n - s of each other
    findings = report.by_kind(FindingKind.NONCE_REUSE)
    assert len(findings) == 1
    assert findings[0].prv_key is None


def test_invalid_signature() -> None:
    item = _item("a", 1)
    forged = SignatureInput("a", item.der, pub_key=item.pub_key, msg_hash=b"\x02" * 32)
    report = scan([forged], ec)
    findings = report.by_kind(FindingKind.INVALID_SIGNATURE)
    assert len(findings) == 1
    assert findings[0].severity is Severity.HIGH

    report = scan([forged], ec, verify_signatures=False)
    assert report.by_kind(FindingKind.INVALID_SIGNATURE) == []


def test_json() -> None:
    report = scan([_item("a", 1), _item("b", 2)], ec)
    report_dict = json.loads(report.to_json())
    finding = report_dict["findings"][0]
    assert finding["kind"] == "nonce-reuse"
    assert finding["severity"] == "critical"
    assert finding["confidence"] == "high"
    assert finding["prv_key"] == "00" * 31 + "01"
    assert finding["nonce"] == "00" * 31 + "01"
    assert report_dict["analyzed"] == ["a", "b"]

    assert ScanReport.from_json(report.to_json()) == report


class _InterleavingIndex(RValueIndex):
    "Run a callback, once, right after the first add."

    def __init__(self) -> None:
        super().__init__()
        self.callback: Optional[Callable[[], None]] = None

    def add(self, sig: Signature) -> Tuple[Signature, ...]:
        prior = super().add(sig)
        callback, self.callback = self.callback, None
        if callback is not None:
            callback()
        return prior


def test_interleaved_scans() -> None:
    index = _InterleavingIndex()
    reports: List[ScanReport] = []

    def scan_b() -> None:
        reports.append(scan([_item("b", 2)], ec, index, verify_signatures=False))

    # scan "b" runs while scan "a" is still processing its batch
    index.callback = scan_b
    reports.append(scan([_item("a", 1)], ec, index, verify_signatures=False))

    assert len(reports) == 2
    findings = [f for report in reports for f in report.by_kind(FindingKind.NONCE_REUSE)]
    assert len(findings) == 1
    assert findings[0].sig_ids == ["a", "b"]
    assert findings[0].prv_key == 1
    # the finding belongs to the scan adding the second signature
    assert reports[0].by_kind(FindingKind.NONCE_REUSE) == findings


def test_published_nonce_reuse() -> None:
    # two inputs of a 2013 bitcoin transaction signed with the same nonce
    r = "d47ce4c025c35ec440bc81d99834a624875161a26bf56ef7fdc0f5d52f843ad1"
    s1 = "44e1ff2dfd8102cf7a47c21d5c9fd5701610d04953c6836596b4fe9dd2f53e3e"
    s2 = "9a5f1c75e461d7ceb1cf3cab9013eb2dc85b6d0da8c3c6e27e3a5a5b3faa5bab"
    z1 = "c0e2d0a89a348de88fda08211c70d1d7e52ccef2eb9459911bf977d587784c6e"
    z2 = "17b0f41c8c337ac1e18c98759e83a8cccbc368dd9d89e5f03cb633c265fd0ddc"
    prv_key = 0xC477F9F65C22CCE20657FAA5B2D1D8122336F851A508A1ED04E479C34985BF96

    inputs = [
        SignatureInput("in:0", der.encode(int(r, 16), int(s1, 16)), msg_hash=z1),
        SignatureInput("in:1", der.encode(int(r, 16), int(s2, 16)), msg_hash=z2),
    ]
    report = scan(inputs, ec)
    findings = report.by_kind(FindingKind.NONCE_REUSE)
    assert len(findings) == 1
    assert findings[0].confidence is Confidence.HIGH
    assert findings[0].sig_ids == ["in:0", "in:1"]
    assert findings[0].prv_key == prv_key
    wif = findings[0].wif(ec, compressed=False)
    assert prv_key_from_wif(wif, ec) == (prv_key, False, "mainnet")
    # the second signature is not low-s
    assert [f.sig_ids for f in report.by_kind(FindingKind.HIGH_S)] == [["in:1"]]
