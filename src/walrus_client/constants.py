"""
Sia currency units and walrus protocol constants.
"""

from __future__ import annotations

# Smallest currency unit. 1 SC = 10^24 hastings
HASTINGS_PER_SIACOIN = 10**24

# Default walrus server listen address
DEFAULT_WALRUS_ADDRESS = "127.0.0.1:9380"

# Default per-request timeout in seconds (transport level, no retries)
DEFAULT_TIMEOUT = 30.0

# Hex lengths of the identifiers used in paths
# Unlock hashes carry a 6-byte checksum after the 32-byte hash
HASH_HEX_LENGTH = 64
UNLOCK_HASH_HEX_LENGTH = 76
