"""Shard key selection.

The tenant id is the shard key: a tenant on the sharded tier always lands on
the same shard for a given shard list.
"""

from __future__ import annotations

import hashlib
from typing import Sequence

from tenancy.domain.value_objects import TenantId


def select_shard(tenant_id: TenantId, shard_addresses: Sequence[str]) -> str:
    """Pick the shard address for a tenant.

    Uses a stable digest rather than ``hash()``, which is salted per process.

    Raises:
        ValueError: If no shard addresses are configured
    """
    if not shard_addresses:
        raise ValueError("At least one shard address is required")
    digest = hashlib.sha256(tenant_id.value.encode("utf-8")).digest()
    return shard_addresses[int.from_bytes(digest[:8], "big") % len(shard_addresses)]
