"""
HTTP client for the walrus wallet server.

Every public method performs exactly one HTTP exchange with the server and
returns its decoded result. The client keeps no wallet state of its own; the
server is the only source of truth. There are no retries or caches, callers
decide how to react to failures.

Errors:
- WalrusTransportError: connection, DNS or timeout failures
- WalrusAPIError: any non-200 response; the message is the raw response body
- WalrusDecodeError: a 200 response whose body is not the expected JSON
- InvalidRequestError: the request could not be built (a caller bug)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from walrus_client.config import Settings
from walrus_client.constants import DEFAULT_TIMEOUT
from walrus_client.models import (
    BlockReward,
    ConsensusInfo,
    Currency,
    FileContract,
    Hash,
    LimboTransaction,
    NullableList,
    SeedAddressInfo,
    Transaction,
    TransactionDetail,
    TransactionID,
    Uint64,
    UnlockHash,
    UnspentOutput,
)

_HASH = TypeAdapter(Hash)
_UNLOCK_HASH = TypeAdapter(UnlockHash)
_PAYLOAD = TypeAdapter(Any)


class WalrusError(Exception):
    """Base class for runtime failures of a walrus request."""

    pass


class WalrusTransportError(WalrusError):
    """The HTTP exchange itself failed (connection refused, DNS, timeout)."""

    pass


class WalrusAPIError(WalrusError):
    """The server answered with a non-200 status. The message is the body text."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class WalrusDecodeError(WalrusError):
    """The server answered 200 but the body did not match the expected shape."""

    pass


class InvalidRequestError(ValueError):
    """
    A request could not be constructed.

    This indicates a bug at the call site (malformed identifier, unserializable
    payload, invalid URL) rather than a runtime condition, so it is not a
    WalrusError and is not caught by handlers for server or network failures.
    """

    pass


def normalize_address(address: str) -> str:
    """Prefix a bare host with https:// and drop any trailing slash."""
    address = address.strip()
    if not address.startswith(("https://", "http://")):
        address = "https://" + address
    return address.rstrip("/")


def _format_bool(flag: bool) -> str:
    return "true" if flag else "false"


def _hash_param(value: str, kind: str) -> str:
    try:
        return _HASH.validate_python(value)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid {kind}: {value!r}") from e


def _address_param(value: str) -> str:
    try:
        return _UNLOCK_HASH.validate_python(value)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid address: {value!r}") from e


class WalrusClient:
    """
    Client for a walrus server.

    The client holds only the server address and an httpx connection pool, so
    a single instance can be shared between concurrent tasks. Ordering between
    concurrent calls is not guaranteed.
    """

    def __init__(
        self,
        address: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            address: Server address. A bare host:port is treated as https.
            timeout: Transport timeout in seconds for each request
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        self.address = normalize_address(address)
        self.timeout = timeout
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> WalrusClient:
        return cls(settings.address, timeout=settings.timeout, transport=transport)

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> WalrusClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        data: Any = None,
        response_type: Any = None,
        content: bytes | None = None,
    ) -> Any:
        """
        Perform one HTTP exchange with the server.

        Args:
            method: HTTP method
            path: Path relative to the server address, including any query string
            data: Value to send as a JSON body (pydantic models are dumped by alias)
            response_type: Type to validate the JSON response body against
            content: Raw bytes to send as the body instead of JSON

        Returns:
            The validated response if response_type is given, else the raw body bytes
        """
        url = f"{self.address}{path}"
        headers: dict[str, str] = {}
        if data is not None:
            try:
                content = _PAYLOAD.dump_json(data, by_alias=True)
            except (TypeError, ValueError) as e:
                raise InvalidRequestError(f"Cannot encode request body for {path}: {e}") from e
            headers["Content-Type"] = "application/json"

        try:
            request = self.client.build_request(method, url, content=content, headers=headers)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise InvalidRequestError(f"Cannot build request {method} {url}: {e}") from e

        logger.debug(f"walrus request: {method} {path}")
        try:
            response = await self.client.send(request, stream=True)
            try:
                body = await response.aread()
            finally:
                await response.aclose()
        except httpx.TransportError as e:
            logger.error(f"walrus request failed: {method} {path} - {e!r}")
            raise WalrusTransportError(str(e) or type(e).__name__) from e
        except httpx.DecodingError as e:
            logger.warning(f"walrus response for {method} {path} could not be decoded: {e!r}")
            raise WalrusDecodeError(f"Undecodable response body for {method} {path}: {e}") from e

        if response.status_code != 200:
            message = body.decode("utf-8", errors="replace")
            logger.warning(
                f"walrus server returned {response.status_code} for {method} {path}: {message}"
            )
            raise WalrusAPIError(message, response.status_code)

        if response_type is None:
            return body

        try:
            return TypeAdapter(response_type).validate_json(body)
        except ValidationError as e:
            logger.warning(f"walrus response for {method} {path} did not decode: {e}")
            raise WalrusDecodeError(f"Invalid response body for {method} {path}: {e}") from e

    async def _get(self, path: str, response_type: Any) -> Any:
        return await self._request("GET", path, response_type=response_type)

    async def _post(self, path: str, data: Any, response_type: Any = None) -> Any:
        return await self._request("POST", path, data=data, response_type=response_type)

    async def _put(self, path: str, data: Any) -> None:
        await self._request("PUT", path, data=data)

    async def _delete(self, path: str) -> None:
        await self._request("DELETE", path)

    async def addresses(self) -> list[str]:
        """Return all addresses known to the wallet."""
        return await self._get("/addresses", NullableList[UnlockHash])

    async def address_info(self, address: str) -> SeedAddressInfo:
        """
        Return the unlock conditions of an address and the seed index it was
        derived from. Unknown addresses surface as a WalrusAPIError.
        """
        address = _address_param(address)
        return await self._get(f"/addresses/{address}", SeedAddressInfo)

    async def add_address(self, info: SeedAddressInfo) -> str:
        """
        Add address metadata to the wallet and return the resulting address.

        Future transactions and outputs relevant to the address will be
        considered relevant to the wallet. Importing an address does NOT import
        transactions and outputs already in the blockchain.
        """
        return await self._post("/addresses", info, UnlockHash)

    async def remove_address(self, address: str) -> None:
        """
        Remove an address from the wallet.

        Transactions and outputs already recorded for the address are kept.
        """
        address = _address_param(address)
        await self._delete(f"/addresses/{address}")

    async def balance(self, limbo: bool) -> int:
        """
        Return the wallet balance in hastings. If limbo is true, the balance
        reflects the transactions currently in Limbo.
        """
        return await self._get(f"/balance?limbo={_format_bool(limbo)}", Currency)

    async def broadcast(self, txn_set: Sequence[Transaction]) -> None:
        """
        Broadcast a transaction set to the server's peers.

        Every transaction in the set is moved to Limbo until it is confirmed.
        """
        await self._post("/broadcast", list(txn_set))

    async def block_rewards(self, limit: int = -1) -> list[BlockReward]:
        """
        Return block rewards tracked by the wallet, newest first. A negative
        limit returns all of them.
        """
        return await self._get(f"/blockrewards?max={int(limit)}", NullableList[BlockReward])

    async def consensus_info(self) -> ConsensusInfo:
        """Return the current chain height and consensus change ID."""
        return await self._get("/consensus", ConsensusInfo)

    async def recommended_fee(self) -> int:
        """Return the recommended fee in hastings per byte of encoded transaction."""
        return await self._get("/fee", Currency)

    async def file_contracts(self, limit: int = -1) -> list[FileContract]:
        """
        Return file contracts tracked by the wallet, newest first. A negative
        limit returns all of them.
        """
        return await self._get(f"/filecontracts?max={int(limit)}", NullableList[FileContract])

    async def file_contract_history(self, contract_id: str) -> list[FileContract]:
        """Return the revision history of a file contract tracked by the wallet."""
        contract_id = _hash_param(contract_id, "file contract ID")
        return await self._get(f"/filecontracts/{contract_id}", NullableList[FileContract])

    async def limbo_transactions(self) -> list[LimboTransaction]:
        """Return the transactions currently in Limbo."""
        return await self._get("/limbo", NullableList[LimboTransaction])

    async def add_to_limbo(self, txid: str, txn: Transaction) -> None:
        """
        Place a transaction in Limbo. Its outputs are no longer reported by
        unspent_outputs and it no longer contributes to the balance.

        This is rarely needed: broadcast moves transactions to Limbo
        automatically. The ID must be the Sia ID of txn.
        """
        txid = _hash_param(txid, "transaction ID")
        await self._put(f"/limbo/{txid}", txn)

    async def remove_from_limbo(self, txid: str) -> None:
        """
        Remove a transaction from Limbo.

        This is rarely needed: transactions leave Limbo once they appear in a
        valid block.
        """
        txid = _hash_param(txid, "transaction ID")
        await self._delete(f"/limbo/{txid}")

    async def memo(self, txid: str) -> bytes:
        """Return the memo stored for a transaction. A missing memo is an API error."""
        txid = _hash_param(txid, "transaction ID")
        return await self._request("GET", f"/memos/{txid}")

    async def set_memo(self, txid: str, memo: bytes) -> None:
        """
        Set the memo of a transaction, overwriting any previous memo.

        Memos are not stored on the blockchain; they exist only in the local wallet.
        """
        txid = _hash_param(txid, "transaction ID")
        await self._request("PUT", f"/memos/{txid}", content=bytes(memo))

    async def seed_index(self) -> int:
        """Return the seed index to use for deriving the next address."""
        return await self._get("/seedindex", Uint64)

    async def transactions(self, limit: int = -1) -> list[TransactionID]:
        """
        Return IDs of transactions relevant to the wallet, newest first. A
        negative limit returns all of them.
        """
        return await self._get(f"/transactions?max={int(limit)}", NullableList[TransactionID])

    async def transactions_by_address(self, address: str, limit: int = -1) -> list[TransactionID]:
        """
        Return IDs of transactions relevant to an address owned by the wallet,
        newest first. A negative limit returns all of them.
        """
        address = _address_param(address)
        return await self._get(
            f"/transactions?max={int(limit)}&addr={address}", NullableList[TransactionID]
        )

    async def transaction(self, txid: str) -> TransactionDetail:
        """Return a wallet-relevant transaction with its inflow, outflow and fee."""
        txid = _hash_param(txid, "transaction ID")
        return await self._get(f"/transactions/{txid}", TransactionDetail)

    async def unconfirmed_parents(self, txn: Transaction) -> list[LimboTransaction]:
        """
        Return the parents of txn that are still in Limbo. They must be
        included ahead of txn in the set passed to broadcast.
        """
        return await self._post("/unconfirmedparents", txn, NullableList[LimboTransaction])

    async def unspent_outputs(self, limbo: bool) -> list[UnspentOutput]:
        """
        Return the outputs the wallet can spend. If limbo is true, the outputs
        reflect the transactions currently in Limbo.
        """
        return await self._get(
            f"/utxos?limbo={_format_bool(limbo)}", NullableList[UnspentOutput]
        )
