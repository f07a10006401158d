#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Exception classes.

The three base classes are only meant to discriminate between Exceptions
raised by sigforensics from those raised by other codebase.

Users are usually better off just dealing with the regular
ValueError, TypeError, and RuntimeError
from which the sigforensics versions are derived.

The remaining classes are the typed failure kinds
that callers (e.g. the scanner) may want to tell apart.
"""

from typing import Optional


class SigForensicsValueError(ValueError):
    pass


class SigForensicsTypeError(TypeError):
    pass


class SigForensicsRuntimeError(RuntimeError):
    pass


class MalformedDERError(SigForensicsValueError):
    "Structurally broken DER: the signature cannot be decoded at all."

    def __init__(self, reason: str, offset: int) -> None:
        self.reason = reason
        self.offset = offset
        super().__init__(f"{reason} (at offset {offset})")


class UnsupportedEncodingError(SigForensicsValueError):
    "BER constructs outside what the decoder is willing to interpret."


class FieldContextMismatchError(SigForensicsTypeError):
    "Arithmetic attempted across field elements of different moduli."


class PointNotOnCurveError(SigForensicsValueError):
    pass


class NoSquareRootError(SigForensicsValueError):
    pass


class DivisionByZeroScalarError(SigForensicsValueError, ZeroDivisionError):
    pass


class InconsistentRecoveryError(SigForensicsRuntimeError):
    """Nonce-reuse recovery produced a candidate that fails cross-checks.

    The candidate private key and nonce are carried along,
    so that callers can still report them as low confidence results.
    """

    def __init__(
        self, msg: str, prv_key: Optional[int] = None, nonce: Optional[int] = None
    ) -> None:
        self.prv_key = prv_key
        self.nonce = nonce
        super().__init__(msg)
