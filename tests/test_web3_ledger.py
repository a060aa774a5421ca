"""Pruebas del adaptador Web3 con un cliente falso (sin red).

Web3 adapter tests against a fake client (no network).
"""

import asyncio

import pytest
from web3 import Web3

from votechain.ledger.web3_ledger import FACTORY_ABI, VOTING_ABI, Web3Ledger
from votechain.ports import LedgerReader, LedgerReadError, LedgerWriteError, LedgerWriter

PRIVATE_KEY = "0x" + "11" * 32
FACTORY = Web3.to_checksum_address("0x" + "fa" * 20)
VOTING = Web3.to_checksum_address("0x" + "0a" * 20)
CREATED = Web3.to_checksum_address("0x" + "0c" * 20)


class FakeCall:
    def __init__(self, contract, name, args):
        self.contract = contract
        self.name = name
        self.args = args

    async def call(self, block_identifier=None):
        self.contract.calls.append((self.name, self.args, block_identifier))
        result = self.contract.results[self.name]
        if isinstance(result, dict):
            result = result[block_identifier]
        return result(*self.args) if callable(result) else result

    async def build_transaction(self, params):
        self.contract.built.append((self.name, self.args, params))
        return {
            **params,
            "to": self.contract.address,
            "gas": 200_000,
            "gasPrice": 1_000_000_000,
            "value": 0,
            "data": "0x",
        }


class FakeFunctions:
    def __init__(self, contract):
        self._contract = contract

    def __getattr__(self, name):
        return lambda *args: FakeCall(self._contract, name, args)


class FakeContract:
    def __init__(self, address, abi):
        self.address = address
        self.abi = abi
        self.results = {}
        self.calls = []
        self.built = []
        self.functions = FakeFunctions(self)


class FakeEth:
    def __init__(self):
        self.contracts = {}
        self.sent = []
        self.receipt_status = 1
        self.block_transactions = []
        self.receipts = {}

    def contract(self, address, abi):
        if address not in self.contracts:
            self.contracts[address] = FakeContract(address, abi)
        return self.contracts[address]

    async def get_transaction_count(self, address):
        return len(self.sent)

    async def send_raw_transaction(self, raw):
        self.sent.append(raw)
        return b"\x12" * 32

    async def wait_for_transaction_receipt(self, tx_hash, timeout):
        return {
            "status": self.receipt_status,
            "transactionHash": tx_hash,
            "blockNumber": 7,
            "transactionIndex": 3,
        }

    async def get_block(self, number, full_transactions=False):
        return {"number": number, "transactions": self.block_transactions}

    async def get_transaction_receipt(self, tx_hash):
        return self.receipts[tx_hash]


class FakeWeb3:
    def __init__(self):
        self.eth = FakeEth()

    @staticmethod
    def to_hex(value):
        return Web3.to_hex(value)


def _ledger(private_key=None, read_retries=3):
    web3 = FakeWeb3()
    ledger = Web3Ledger(
        None,
        FACTORY,
        private_key=private_key,
        chain_id=11155111,
        read_retries=read_retries,
        web3=web3,
    )
    return ledger, web3


def test_adapter_satisfies_ports():
    ledger, _ = _ledger()

    assert isinstance(ledger, LedgerReader)
    assert isinstance(ledger, LedgerWriter)


def test_abi_declares_contract_surface():
    factory = {entry["name"] for entry in FACTORY_ABI}
    voting = {entry["name"] for entry in VOTING_ABI}

    assert factory == {"createVoting", "getAllVotings", "getVotingsByCreator"}
    assert {"title", "getCandidate", "hasVoted", "vote"} <= voting
    candidate = next(entry for entry in VOTING_ABI if entry["name"] == "getCandidate")
    assert [output["name"] for output in candidate["outputs"]] == ["name", "voteCount"]


def test_requires_rpc_url_without_client():
    with pytest.raises(ValueError):
        Web3Ledger(None, FACTORY)


def test_reads_are_converted():
    ledger, web3 = _ledger()
    contract = web3.eth.contract(VOTING, VOTING_ABI)
    contract.results.update(
        {
            "title": "Best Color",
            "startTime": 10,
            "endTime": 20,
            "finalized": False,
            "candidatesCount": 2,
            "getCandidate": lambda index: (["Red", "Blue"][index], 3 + index),
            "hasVoted": lambda voter: voter == Web3.to_checksum_address("0x" + "b2" * 20),
        }
    )

    async def run():
        return (
            await ledger.get_title(VOTING.lower()),
            await ledger.get_start_time(VOTING),
            await ledger.get_end_time(VOTING),
            await ledger.get_finalized(VOTING),
            await ledger.get_candidates_count(VOTING),
            await ledger.get_candidate(VOTING, 1),
            await ledger.get_has_voted(VOTING, "0x" + "b2" * 20),
        )

    assert asyncio.run(run()) == ("Best Color", 10, 20, False, 2, ("Blue", 4), True)


def test_transient_read_errors_are_retried():
    ledger, web3 = _ledger(read_retries=2)
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise OSError("connection reset")
        return [VOTING]

    web3.eth.contract(FACTORY, FACTORY_ABI).results["getAllVotings"] = flaky

    assert asyncio.run(ledger.list_all_votings()) == [VOTING]
    assert len(attempts) == 2


def test_non_transient_read_error_becomes_read_error():
    ledger, web3 = _ledger()
    attempts = []

    def broken():
        attempts.append(1)
        raise RuntimeError("execution reverted")

    web3.eth.contract(VOTING, VOTING_ABI).results["title"] = broken

    with pytest.raises(LedgerReadError, match="execution reverted"):
        asyncio.run(ledger.get_title(VOTING))
    assert len(attempts) == 1


def test_read_only_adapter_refuses_writes():
    ledger, web3 = _ledger()

    assert ledger.current_identity() is None
    with pytest.raises(LedgerWriteError, match="No signing key configured"):
        asyncio.run(ledger.cast_vote(VOTING, 0))
    assert web3.eth.sent == []


def test_cast_vote_signs_and_sends():
    ledger, web3 = _ledger(private_key=PRIVATE_KEY)

    asyncio.run(ledger.cast_vote(VOTING, 1))

    contract = web3.eth.contracts[VOTING]
    name, args, params = contract.built[0]
    assert (name, args) == ("vote", (1,))
    assert params["from"] == ledger.current_identity()
    assert params["chainId"] == 11155111
    assert len(web3.eth.sent) == 1


def test_reverted_receipt_raises_write_error():
    ledger, web3 = _ledger(private_key=PRIVATE_KEY)
    web3.eth.receipt_status = 0

    with pytest.raises(LedgerWriteError, match="vote transaction reverted"):
        asyncio.run(ledger.cast_vote(VOTING, 0))


def test_create_voting_returns_address_added_in_its_block():
    ledger, web3 = _ledger(private_key=PRIVATE_KEY)
    factory = web3.eth.contract(FACTORY, FACTORY_ABI)
    factory.results["getVotingsByCreator"] = {6: [VOTING], 7: [VOTING, CREATED]}

    address = asyncio.run(ledger.create_voting("Lunch", ["Pizza", "Sushi"], 10, 20))

    assert address == CREATED
    name, args, _ = factory.built[0]
    assert name == "createVoting"
    assert args == ("Lunch", ["Pizza", "Sushi"], 10, 20)
    identity = ledger.current_identity()
    assert factory.calls[-2:] == [
        ("getVotingsByCreator", (identity,), 6),
        ("getVotingsByCreator", (identity,), 7),
    ]


def test_same_block_creations_resolve_by_transaction_order():
    """Español: Dos creaciones del mismo remitente en un bloque no se confunden.

    English: Two creations by the same sender in one block are told apart.
    """
    ledger, web3 = _ledger(private_key=PRIVATE_KEY)
    identity = ledger.current_identity()
    other = Web3.to_checksum_address("0x" + "0e" * 20)
    factory = web3.eth.contract(FACTORY, FACTORY_ABI)
    factory.results["getVotingsByCreator"] = {6: [], 7: [other, CREATED]}
    web3.eth.block_transactions = [
        {"transactionIndex": 0, "from": identity, "to": VOTING, "hash": b"\x00"},
        {"transactionIndex": 1, "from": identity, "to": FACTORY, "hash": b"\x01"},
        {"transactionIndex": 2, "from": identity, "to": FACTORY, "hash": b"\x02"},
        {"transactionIndex": 3, "from": identity, "to": FACTORY, "hash": b"\x12" * 32},
    ]
    web3.eth.receipts = {b"\x01": {"status": 1}, b"\x02": {"status": 0}}

    assert asyncio.run(ledger.create_voting("Lunch", ["Pizza", "Sushi"], 10, 20)) == CREATED


def test_creation_missing_from_listing_is_a_write_error():
    ledger, web3 = _ledger(private_key=PRIVATE_KEY)
    web3.eth.contract(FACTORY, FACTORY_ABI).results["getVotingsByCreator"] = {6: [VOTING], 7: [VOTING]}

    with pytest.raises(LedgerWriteError, match="could not be located"):
        asyncio.run(ledger.create_voting("Lunch", ["Pizza", "Sushi"], 10, 20))
