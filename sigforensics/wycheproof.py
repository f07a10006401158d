#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Project Wycheproof ECDSA test vectors run against a verifier.

The vectors are the JSON files of
https://github.com/C2SP/wycheproof (e.g. ecdsa_secp256k1_sha256_test.json),
already loaded with json.load:
each test group has a public key and a hash function,
each test a raw message, a DER signature and the expected result.

Every test records whether the verifier accepts the signature
and, independently, whether it is canonical (strict DER, low s)
together with the DER defects found,
so that mismatches can be told apart from encoding leniency.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from dataclasses_json import DataClassJsonMixin

from sigforensics import der
from sigforensics.conformance import VerifyFn
from sigforensics.ecc.curve import Curve
from sigforensics.ecc.sec_point import bytes_from_point
from sigforensics.exceptions import SigForensicsValueError
from sigforensics.utils import bytes_from_octets

LOGGER = logging.getLogger(__name__)


class WycheproofResult(Enum):
    VALID = "valid"
    INVALID = "invalid"
    # legacy encodings a verifier may accept or reject
    ACCEPTABLE = "acceptable"


@dataclass(frozen=True)
class WycheproofCase(DataClassJsonMixin):
    tc_id: int
    comment: str
    expected: WycheproofResult
    library_accepts: bool
    parser_accepts: bool
    flags: List[str] = field(default_factory=list)
    defects: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        "Invalid signatures must be rejected, all the others accepted."
        if self.expected is WycheproofResult.INVALID:
            return not self.library_accepts
        return self.library_accepts


@dataclass(frozen=True)
class WycheproofReport(DataClassJsonMixin):
    verifier: str
    cases: List[WycheproofCase] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.cases)

    @property
    def passed(self) -> int:
        return sum(1 for case in self.cases if case.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def mismatches(self) -> List[WycheproofCase]:
        return [case for case in self.cases if not case.passed]


def hash_message(msg: bytes, hash_name: str) -> bytes:
    "Return the digest of msg, the hash named as in Wycheproof (e.g. SHA-256)."

    name = hash_name.lower().replace("sha-", "sha").replace("-", "_").replace("/", "_")
    try:
        return hashlib.new(name, msg).digest()
    except ValueError as e:
        raise SigForensicsValueError(f"unsupported hash: {hash_name}") from e


def _group_pub_key(key: Dict[str, Any], ec: Curve) -> bytes:
    if "uncompressed" in key:
        return bytes_from_octets(key["uncompressed"])
    if "wx" in key and "wy" in key:
        # wx and wy are big-endian, with a leading zero byte if the msb is set
        Q = ec.point(int(key["wx"], 16), int(key["wy"], 16))
        return bytes_from_point(Q, ec, compressed=False)
    raise SigForensicsValueError(f"no public key in test group: {sorted(key)}")


def _defects(data: bytes) -> List[str]:
    try:
        decoded = der.decode(data)
    except SigForensicsValueError as e:
        return [str(e)]
    return [defect.value for defect in decoded.defects]


def run_wycheproof(
    verify_fn: VerifyFn, json_dict: Dict[str, Any], ec: Curve, name: str = "verifier"
) -> WycheproofReport:
    """Run the tests of a Wycheproof ECDSA file against a verifier.

    verify_fn receives the message digest, the uncompressed public key
    and the DER signature; its exceptions count as rejections.
    """

    cases: List[WycheproofCase] = []
    for group in json_dict.get("testGroups", []):
        pub_key = _group_pub_key(group.get("key", {}), ec)
        hash_name = group.get("sha", "SHA-256")
        for test in group.get("tests", []):
            msg_hash = hash_message(bytes_from_octets(test.get("msg", "")), hash_name)
            data = bytes_from_octets(test.get("sig", ""))
            error = None
            # the verifier under test is arbitrary code
            try:
                library_accepts = bool(verify_fn(msg_hash, pub_key, data))
            except Exception as e:  # pylint: disable=broad-except
                LOGGER.debug("%s raised on tcId %s: %s", name, test.get("tcId"), e)
                library_accepts = False
                error = f"{type(e).__name__}: {e}"
            case = WycheproofCase(
                tc_id=test["tcId"],
                comment=test.get("comment", ""),
                expected=WycheproofResult(test["result"]),
                library_accepts=library_accepts,
                parser_accepts=der.is_canonical(data, ec),
                flags=list(test.get("flags", [])),
                defects=_defects(data),
                error=error,
            )
            if not case.passed:
                LOGGER.info("%s mismatch on tcId %s: %s", name, case.tc_id, case.comment)
            cases.append(case)
    return WycheproofReport(name, cases)
