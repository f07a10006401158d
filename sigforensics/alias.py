#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Aliases

mypy aliases, documenting also coding input conventions.
"""

from io import BytesIO
from typing import Union

# Octets are a sequence of eight-bit bytes or a hex-string (not text string)
#
# hex-strings are strings that can be converted to bytes using bytes.fromhex,
# e.g.:
# "3044 0220 4e45e16932b8af514961a1d3a1a25fdf3f4f7732e9d624c6c61548ab5fb8cd41..."
# "02 cc71eb30d653c0c3163990c47b976f3fb3f37cccdcbedb169a1dfef58bbfbfaf"
# "02cc71eb30d653c0c3163990c47b976f3fb3f37cccdcbedb169a1dfef58bbfbfaf"
#
# use sigforensics.utils.bytes_from_octets to convert Octets to bytes
#
# Octets are used for DER signatures, SEC public keys,
# message digests (32 bytes), etc.
Octets = Union[bytes, str]

# binary data, usually to be cosumed as byte stream,
# but possibily provided as Octets too
BinaryData = Union[BytesIO, Octets]

# hex-string or bytes representation of an int
Integer = Union[bytes, str, int]
