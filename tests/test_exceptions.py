#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for the `sigforensics.exceptions` module."

import pytest

from sigforensics.exceptions import (
    DivisionByZeroScalarError,
    FieldContextMismatchError,
    InconsistentRecoveryError,
    MalformedDERError,
    NoSquareRootError,
    PointNotOnCurveError,
    SigForensicsRuntimeError,
    SigForensicsTypeError,
    SigForensicsValueError,
    UnsupportedEncodingError,
)


def test_hierarchy() -> None:
    for err in (
        MalformedDERError("reason", 0),
        UnsupportedEncodingError(),
        PointNotOnCurveError(),
        NoSquareRootError(),
        DivisionByZeroScalarError(),
    ):
        assert isinstance(err, SigForensicsValueError)
        assert isinstance(err, ValueError)
    assert isinstance(DivisionByZeroScalarError(), ZeroDivisionError)
    assert isinstance(FieldContextMismatchError(), SigForensicsTypeError)
    assert isinstance(FieldContextMismatchError(), TypeError)
    assert isinstance(InconsistentRecoveryError("msg"), SigForensicsRuntimeError)


def test_malformed_der_error() -> None:
    with pytest.raises(ValueError, match=r"zero size r \(at offset 4\)") as excinfo:
        raise MalformedDERError("zero size r", 4)
    assert excinfo.value.reason == "zero size r"
    assert excinfo.value.offset == 4


def test_inconsistent_recovery_error() -> None:
    err = InconsistentRecoveryError("recovered key fails consistency checks")
    assert err.prv_key is None
    assert err.nonce is None
    assert str(err) == "recovered key fails consistency checks"

    err = InconsistentRecoveryError("msg", 1, 2)
    assert err.prv_key == 1
    assert err.nonce == 2
