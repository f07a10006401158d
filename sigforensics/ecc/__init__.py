#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Modular arithmetic, finite fields, elliptic curves, and ECDSA."
