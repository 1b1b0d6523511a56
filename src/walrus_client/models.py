"""
Wallet resource models using Pydantic for validation and serialization.

Field aliases follow the walrus server's JSON names. Models accept either the
alias or the Python attribute name, and the client always serializes by alias.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, localcontext
from typing import Annotated, Any, TypeVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    StringConstraints,
    model_serializer,
    model_validator,
)

from walrus_client.constants import (
    HASH_HEX_LENGTH,
    HASTINGS_PER_SIACOIN,
    UNLOCK_HASH_HEX_LENGTH,
)

T = TypeVar("T")

_DIGITS_RE = re.compile(r"[0-9]+")


def _parse_currency(value: Any) -> Any:
    # Currency travels as a JSON string so that it survives float-based decoders
    if isinstance(value, bool):
        raise ValueError("currency must be an integer amount, not a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if not _DIGITS_RE.fullmatch(value):
            raise ValueError(f"currency must be a string of decimal digits, got {value!r}")
        return int(value)
    raise ValueError(f"currency must be a decimal string or integer, got {type(value).__name__}")


def _lower_hex(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _null_to_list(value: Any) -> Any:
    # Go encodes nil slices as null
    if value is None:
        return []
    return value


Currency = Annotated[
    int,
    Field(ge=0),
    BeforeValidator(_parse_currency),
    PlainSerializer(str, return_type=str, when_used="json"),
]

Hash = Annotated[
    str,
    StringConstraints(pattern=rf"^[0-9a-f]{{{HASH_HEX_LENGTH}}}$"),
    BeforeValidator(_lower_hex),
]
TransactionID = Hash
FileContractID = Hash
SiacoinOutputID = Hash
BlockID = Hash

UnlockHash = Annotated[
    str,
    StringConstraints(pattern=rf"^[0-9a-f]{{{UNLOCK_HASH_HEX_LENGTH}}}$"),
    BeforeValidator(_lower_hex),
]

# Go decodes these as uint64 and rejects strings, booleans and fractions
Uint64 = Annotated[int, Field(strict=True, ge=0, le=2**64 - 1)]

NullableList = Annotated[list[T], BeforeValidator(_null_to_list)]


class WalrusModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SiaPublicKey(WalrusModel):
    """
    Public key with its signature algorithm.

    The server writes keys as ``"algorithm:key"`` strings; the older object
    form ``{"algorithm": ..., "key": ...}`` is accepted as well.
    """

    algorithm: str = Field(..., min_length=1)
    key: str

    @model_validator(mode="before")
    @classmethod
    def parse_string_form(cls, data: Any) -> Any:
        if isinstance(data, str):
            algorithm, sep, key = data.partition(":")
            if not sep:
                raise ValueError(f"public key must be 'algorithm:key', got {data!r}")
            return {"algorithm": algorithm, "key": key}
        return data

    @model_serializer
    def to_string(self) -> str:
        return f"{self.algorithm}:{self.key}"


class UnlockConditions(WalrusModel):
    """Spend-authorization rules of an address."""

    timelock: Uint64 = 0
    public_keys: NullableList[SiaPublicKey] = Field(default_factory=list, alias="publickeys")
    signatures_required: Uint64 = Field(default=0, alias="signaturesrequired")


class SeedAddressInfo(WalrusModel):
    """Unlock conditions of an address and the seed index it was derived from."""

    unlock_conditions: UnlockConditions = Field(..., alias="unlockConditions")
    key_index: Uint64 = Field(..., alias="keyIndex")


class SiacoinOutput(WalrusModel):
    value: Currency
    unlock_hash: UnlockHash = Field(..., alias="unlockhash")


class SiacoinInput(WalrusModel):
    parent_id: SiacoinOutputID = Field(..., alias="parentid")
    unlock_conditions: UnlockConditions = Field(..., alias="unlockconditions")


class Transaction(WalrusModel):
    """
    A Sia transaction as exchanged with the server.

    Only the fields the wallet reasons about are typed. Everything else the
    server sends is kept as-is so a fetched transaction can be sent back
    unchanged (e.g. from ``unconfirmed_parents`` into ``broadcast``).
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    siacoin_inputs: NullableList[SiacoinInput] = Field(
        default_factory=list, alias="siacoininputs"
    )
    siacoin_outputs: NullableList[SiacoinOutput] = Field(
        default_factory=list, alias="siacoinoutputs"
    )
    file_contracts: NullableList[dict[str, Any]] = Field(
        default_factory=list, alias="filecontracts"
    )
    file_contract_revisions: NullableList[dict[str, Any]] = Field(
        default_factory=list, alias="filecontractrevisions"
    )
    storage_proofs: NullableList[dict[str, Any]] = Field(
        default_factory=list, alias="storageproofs"
    )
    siafund_inputs: NullableList[dict[str, Any]] = Field(
        default_factory=list, alias="siafundinputs"
    )
    siafund_outputs: NullableList[dict[str, Any]] = Field(
        default_factory=list, alias="siafundoutputs"
    )
    miner_fees: NullableList[Currency] = Field(default_factory=list, alias="minerfees")
    arbitrary_data: NullableList[str] = Field(default_factory=list, alias="arbitrarydata")
    transaction_signatures: NullableList[dict[str, Any]] = Field(
        default_factory=list, alias="transactionsignatures"
    )

    def total_output_value(self) -> int:
        """Sum of siacoin outputs and miner fees, in hastings."""
        return sum(o.value for o in self.siacoin_outputs) + sum(self.miner_fees)


class LimboTransaction(Transaction):
    """A transaction the wallet considers broadcast but not yet confirmed."""

    limbo_since: datetime | None = Field(default=None, alias="limboSince")


class UnspentOutput(SiacoinOutput):
    id: SiacoinOutputID = Field(..., alias="ID")


class BlockReward(WalrusModel):
    id: SiacoinOutputID = Field(..., alias="ID")
    value: Currency
    unlock_hash: UnlockHash = Field(..., alias="unlockHash")
    timelock: Uint64 = 0


class FileContract(WalrusModel):
    """One revision of a storage contract tracked by the wallet."""

    id: FileContractID = Field(..., alias="ID")
    file_size: Uint64 = Field(default=0, alias="filesize")
    file_merkle_root: Hash = Field(default="0" * HASH_HEX_LENGTH, alias="filemerkleroot")
    window_start: Uint64 = Field(..., alias="windowstart")
    window_end: Uint64 = Field(..., alias="windowend")
    payout: Currency
    valid_proof_outputs: NullableList[SiacoinOutput] = Field(
        default_factory=list, alias="validproofoutputs"
    )
    missed_proof_outputs: NullableList[SiacoinOutput] = Field(
        default_factory=list, alias="missedproofoutputs"
    )
    unlock_hash: UnlockHash = Field(..., alias="unlockhash")
    revision_number: Uint64 = Field(default=0, alias="revisionnumber")
    unlock_conditions: UnlockConditions = Field(
        default_factory=UnlockConditions, alias="unlockConditions"
    )


class ConsensusInfo(WalrusModel):
    """Current chain height and consensus change ID."""

    height: Uint64
    ccid: Hash


class TransactionDetail(WalrusModel):
    """A wallet-relevant transaction with its inflow, outflow and fee."""

    transaction: Transaction
    block_id: BlockID | None = Field(default=None, alias="blockID")
    block_height: Uint64 | None = Field(default=None, alias="blockHeight")
    timestamp: datetime | None = None
    fee_per_byte: Currency = Field(default=0, alias="feePerByte")
    inflow: Currency
    outflow: Currency

    @property
    def net_flow(self) -> int:
        """Inflow minus outflow; negative when the wallet spent more than it received."""
        return self.inflow - self.outflow


def siacoins_to_hastings(amount: Decimal | str | int) -> int:
    """
    Convert a siacoin amount to hastings.

    Raises:
        ValueError: If the amount is negative or finer than one hasting
    """
    with localcontext() as ctx:
        ctx.prec = 80
        hastings = Decimal(str(amount)) * HASTINGS_PER_SIACOIN
    if hastings < 0:
        raise ValueError(f"Amount must be non-negative: {amount}")
    if hastings != hastings.to_integral_value():
        raise ValueError(f"Amount has more precision than one hasting: {amount}")
    return int(hastings)


_UNITS = ["pS", "nS", "uS", "mS", "SC", "KS", "MS", "GS", "TS"]


def format_currency(hastings: int) -> str:
    """Format a hasting amount with the largest fitting siacoin unit."""
    if hastings < 10**12:
        return f"{hastings} H"
    mag = 10**12
    for unit in _UNITS:
        if hastings < mag * 1000 or unit == _UNITS[-1]:
            break
        mag *= 1000
    with localcontext() as ctx:
        ctx.prec = 80
        amount = Decimal(hastings) / Decimal(mag)
    return f"{amount:.3f} {unit}"
