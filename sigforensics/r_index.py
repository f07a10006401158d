#!/usr/bin/env python3

# Copyright (C) 2017-2022 The sigforensics developers
#
# This file is part of sigforensics. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of sigforensics including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Index of signatures by r-value.

Two signatures sharing r have been produced with the same nonce
(or with nonces k and n - k),
which is enough to recover the private key.

The index is insert-only and lock protected:
it can be shared across concurrent or successive scans,
so that collisions spanning different batches are detected.
"""

import threading
from typing import Dict, List, Tuple

from sigforensics.signature import Signature


class RValueIndex:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[int, List[Signature]] = {}

    def add(self, sig: Signature) -> Tuple[Signature, ...]:
        "Index the signature, returning the ones already sharing its r."
        with self._lock:
            bucket = self._entries.setdefault(sig.r.value, [])
            prior = tuple(bucket)
            bucket.append(sig)
        return prior

    def get(self, r: int) -> Tuple[Signature, ...]:
        with self._lock:
            return tuple(self._entries.get(r, ()))

    def collisions(self) -> Dict[int, Tuple[Signature, ...]]:
        "Return all the r-values shared by more than one signature."
        with self._lock:
            return {
                r: tuple(bucket)
                for r, bucket in self._entries.items()
                if len(bucket) > 1
            }

    def __contains__(self, r: object) -> bool:
        with self._lock:
            return r in self._entries

    def __len__(self) -> int:
        "Number of indexed signatures."
        with self._lock:
            return sum(len(bucket) for bucket in self._entries.values())
