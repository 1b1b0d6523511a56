"""
walrus_client - Client library for the walrus Sia wallet server

Provides typed access to addresses, balances, transactions, unspent outputs
and the Limbo set of unconfirmed transactions.
"""

__version__ = "0.1.0"

from walrus_client.client import (
    InvalidRequestError,
    WalrusAPIError,
    WalrusClient,
    WalrusDecodeError,
    WalrusError,
    WalrusTransportError,
    normalize_address,
)
from walrus_client.config import Settings, get_settings
from walrus_client.constants import HASTINGS_PER_SIACOIN
from walrus_client.models import (
    BlockReward,
    ConsensusInfo,
    FileContract,
    LimboTransaction,
    SeedAddressInfo,
    SiacoinInput,
    SiacoinOutput,
    SiaPublicKey,
    Transaction,
    TransactionDetail,
    UnlockConditions,
    UnspentOutput,
    format_currency,
    siacoins_to_hastings,
)

__all__ = [
    "BlockReward",
    "ConsensusInfo",
    "FileContract",
    "HASTINGS_PER_SIACOIN",
    "InvalidRequestError",
    "LimboTransaction",
    "SeedAddressInfo",
    "Settings",
    "SiaPublicKey",
    "SiacoinInput",
    "SiacoinOutput",
    "Transaction",
    "TransactionDetail",
    "UnlockConditions",
    "UnspentOutput",
    "WalrusAPIError",
    "WalrusClient",
    "WalrusDecodeError",
    "WalrusError",
    "WalrusTransportError",
    "format_currency",
    "get_settings",
    "normalize_address",
    "siacoins_to_hastings",
]
