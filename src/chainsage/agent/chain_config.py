# spdx-license-identifier: mit
"""networks the explorer client can address"""

from __future__ import annotations

NETWORKS = frozenset({
    "ethereum",
    "sepolia",
    "optimism",
    "base",
    "arbitrum",
    "polygon",
})

NETWORK_ALIASES = {
    "mainnet": "ethereum",
    "eth": "ethereum",
    "arb": "arbitrum",
    "op": "optimism",
    "matic": "polygon",
}


def normalize_network(network: str) -> str:
    """Normalize network name using aliases."""
    key = (network or "").strip().lower()
    return NETWORK_ALIASES.get(key, key)
