"""
Test configuration and fixtures for walrus_client tests.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

import httpx
import pytest
import pytest_asyncio

from walrus_client.client import WalrusClient
from walrus_client.models import Transaction

BASE_URL = "http://walrus.test"

ADDR = "1f" * 32 + "0a1b2c3d4e5f"
OTHER_ADDR = "2e" * 32 + "5f4e3d2c1b0a"
TXID = "ab" * 32
OTHER_TXID = "cd" * 32
OUTPUT_ID = "3c" * 32
OTHER_OUTPUT_ID = "4d" * 32
CONTRACT_ID = "5e" * 32
CCID = "6f" * 32
PUBKEY = "ed25519:" + "7a" * 32

ONE_SC = 10**24


def make_txn(parent_id: str = OUTPUT_ID, value: int = ONE_SC, fee: int = 1000) -> dict[str, Any]:
    """Wire-format transaction spending one output to ADDR."""
    return {
        "siacoininputs": [
            {
                "parentid": parent_id,
                "unlockconditions": {
                    "timelock": 0,
                    "publickeys": [PUBKEY],
                    "signaturesrequired": 1,
                },
            }
        ],
        "siacoinoutputs": [{"value": str(value), "unlockhash": ADDR}],
        "filecontracts": None,
        "filecontractrevisions": None,
        "storageproofs": None,
        "siafundinputs": None,
        "siafundoutputs": None,
        "minerfees": [str(fee)],
        "arbitrarydata": None,
        "transactionsignatures": None,
    }


def wire(txn: dict[str, Any]) -> dict[str, Any]:
    """The transaction as the client puts it on the wire."""
    return Transaction.model_validate(txn).model_dump(mode="json", by_alias=True)


def fake_txid(txn: dict[str, Any]) -> str:
    """Stand-in for the Sia transaction ID used by the fake server."""
    canonical = json.dumps(txn, sort_keys=True).encode()
    return hashlib.blake2b(canonical, digest_size=32).hexdigest()


def _json(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(data).encode())


def _text(message: str, status_code: int) -> httpx.Response:
    return httpx.Response(status_code, content=message.encode())


class FakeWalrusServer:
    """
    In-memory walrus server for httpx.MockTransport.

    Keeps just enough state to exercise the wallet semantics the client
    relies on: memos, Limbo, addresses, newest-first listings and the
    limbo flag on balance and outputs.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.addresses: dict[str, dict[str, Any]] = {}
        self.memos: dict[str, bytes] = {}
        self.limbo: dict[str, dict[str, Any]] = {}
        self.outputs: list[dict[str, Any]] = [
            {"ID": OUTPUT_ID, "value": str(3 * ONE_SC), "unlockhash": ADDR},
            {"ID": OTHER_OUTPUT_ID, "value": str(2 * ONE_SC), "unlockhash": OTHER_ADDR},
        ]
        # newest first
        self.txids: list[str] = [TXID, OTHER_TXID, "ef" * 32]
        self.rewards: list[dict[str, Any]] = [
            {
                "ID": "0" * 63 + str(i),
                "value": str(i * ONE_SC),
                "unlockHash": ADDR,
                "timelock": i,
            }
            for i in range(5, 0, -1)
        ]
        self.contracts: list[dict[str, Any]] = [
            {
                "ID": CONTRACT_ID,
                "filesize": 4096,
                "filemerkleroot": "00" * 32,
                "windowstart": 200,
                "windowend": 300,
                "payout": str(ONE_SC),
                "validproofoutputs": [{"value": str(ONE_SC), "unlockhash": ADDR}],
                "missedproofoutputs": None,
                "unlockhash": OTHER_ADDR,
                "revisionnumber": rev,
                "unlockConditions": {
                    "timelock": 0,
                    "publickeys": [PUBKEY],
                    "signaturesrequired": 1,
                },
            }
            for rev in (2, 1, 0)
        ]
        self.seed_index = 7
        self.fee = "1500000000000000000000"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method = request.method
        parts = request.url.path.strip("/").split("/")
        resource, rest = parts[0], parts[1:]
        params = request.url.params

        if resource == "addresses":
            if method == "GET" and not rest:
                return _json(list(self.addresses))
            if method == "POST":
                info = json.loads(request.content)
                addr = f"{info['keyIndex']:076x}"
                self.addresses[addr] = info
                return _json(addr)
            addr = rest[0]
            if addr not in self.addresses:
                return _text("address not found", 404)
            if method == "GET":
                return _json(self.addresses[addr])
            del self.addresses[addr]
            return httpx.Response(200)

        if resource == "balance":
            confirmed = sum(int(o["value"]) for o in self.outputs)
            if params["limbo"] == "true":
                return _json(str(confirmed - self._limbo_spent()))
            return _json(str(confirmed))

        if resource == "utxos":
            outputs = self.outputs
            if params["limbo"] == "true":
                spent = self._limbo_parents()
                outputs = [o for o in outputs if o["ID"] not in spent]
            return _json(outputs)

        if resource == "broadcast":
            for txn in json.loads(request.content):
                self.limbo[fake_txid(txn)] = dict(txn, limboSince="2024-05-01T12:00:00Z")
            return httpx.Response(200)

        if resource == "limbo":
            if not rest:
                return _json(list(self.limbo.values()))
            if method == "PUT":
                txn = json.loads(request.content)
                self.limbo[rest[0]] = dict(txn, limboSince="2024-05-01T12:00:00Z")
            else:
                self.limbo.pop(rest[0], None)
            return httpx.Response(200)

        if resource == "memos":
            txid = rest[0]
            if method == "PUT":
                self.memos[txid] = request.content
                return httpx.Response(200)
            if txid not in self.memos:
                return _text("no memo for that transaction", 400)
            return httpx.Response(200, content=self.memos[txid])

        if resource == "transactions":
            if rest:
                return _json(
                    {
                        "transaction": make_txn(),
                        "blockID": "00" * 32,
                        "blockHeight": 1234,
                        "timestamp": "2024-05-01T12:00:00Z",
                        "feePerByte": "10",
                        "inflow": str(ONE_SC),
                        "outflow": str(ONE_SC + 1000),
                    }
                )
            return _json(self._bounded(self.txids, int(params["max"])))

        if resource == "blockrewards":
            return _json(self._bounded(self.rewards, int(params["max"])))

        if resource == "filecontracts":
            if rest:
                return _json(self.contracts)
            return _json(self._bounded(self.contracts[:1], int(params["max"])))

        if resource == "unconfirmedparents":
            txn = json.loads(request.content)
            parents = {i["parentid"] for i in txn["siacoininputs"] or []}
            return _json([t for t in self.limbo.values() if self._creates_any(t, parents)])

        if resource == "consensus":
            return _json({"height": 1234, "ccid": CCID})
        if resource == "fee":
            return _json(self.fee)
        if resource == "seedindex":
            return _json(self.seed_index)

        return _text("unknown route", 404)

    @staticmethod
    def _bounded(items: list[Any], limit: int) -> list[Any]:
        return list(items) if limit < 0 else list(items[:limit])

    def _limbo_parents(self) -> set[str]:
        return {i["parentid"] for t in self.limbo.values() for i in t["siacoininputs"] or []}

    def _limbo_spent(self) -> int:
        values = {o["ID"]: int(o["value"]) for o in self.outputs}
        return sum(values.get(p, 0) for p in self._limbo_parents())

    @staticmethod
    def _creates_any(txn: dict[str, Any], output_ids: set[str]) -> bool:
        # The fake derives output IDs from the parent txid and output index
        txid = fake_txid({k: v for k, v in txn.items() if k != "limboSince"})
        created = {
            hashlib.blake2b(f"{txid}:{n}".encode(), digest_size=32).hexdigest()
            for n in range(len(txn["siacoinoutputs"] or []))
        }
        return bool(created & output_ids)


def child_output_id(txn: dict[str, Any], index: int = 0) -> str:
    """Output ID the fake server assigns to output ``index`` of ``txn``."""
    return hashlib.blake2b(f"{fake_txid(txn)}:{index}".encode(), digest_size=32).hexdigest()


@pytest.fixture
def fake_server() -> FakeWalrusServer:
    return FakeWalrusServer()


@pytest_asyncio.fixture
async def client(fake_server: FakeWalrusServer):
    walrus = WalrusClient(BASE_URL, transport=httpx.MockTransport(fake_server))
    yield walrus
    await walrus.close()
