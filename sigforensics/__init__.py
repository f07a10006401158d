#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"__init__ module for the sigforensics package."

import logging

name = "sigforensics"

__version__ = "2022.7.20"
__author__ = "The sigforensics developers"
__author_email__ = "devs@sigforensics.org"
__copyright__ = "Copyright (C) 2017-2022 The sigforensics developers"
__license__ = "MIT License"

logging.getLogger(__name__).addHandler(logging.NullHandler())
