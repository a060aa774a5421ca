"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votechain/ledger/web3_ledger.py`.
Adaptador EVM para los puertos del ledger: lee la fábrica y cada contrato de
votación vía RPC y firma las escrituras con una cuenta local.

Componentes detectados:
  - FACTORY_ABI
  - VOTING_ABI
  - Web3Ledger

Notas:
- Las lecturas se reintentan solo ante errores de transporte.
- Un recibo con estado 0 se reporta como LedgerWriteError.

======================== ENGLISH ========================
File: `src/votechain/ledger/web3_ledger.py`.
EVM adapter for the ledger ports: reads the factory and every voting contract
over RPC and signs writes with a local account.

Detected components:
  - FACTORY_ABI
  - VOTING_ABI
  - Web3Ledger

Notes:
- Reads are retried on transport errors only.
- A receipt with status 0 is reported as LedgerWriteError.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from eth_account import Account
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from web3 import AsyncHTTPProvider, AsyncWeb3

from ..ports import LedgerReadError, LedgerWriteError
from ..timeutils import shorten_identifier

logger = structlog.get_logger(__name__)

TRANSIENT_ERRORS = (OSError, asyncio.TimeoutError)


def _abi_function(
    name: str,
    inputs: Sequence[Tuple[str, str]] = (),
    outputs: Sequence[Tuple[str, str]] = (),
    mutability: str = "view",
) -> Dict[str, Any]:
    return {
        "inputs": [{"internalType": kind, "name": arg, "type": kind} for arg, kind in inputs],
        "name": name,
        "outputs": [{"internalType": kind, "name": arg, "type": kind} for arg, kind in outputs],
        "stateMutability": mutability,
        "type": "function",
    }


FACTORY_ABI = [
    _abi_function(
        "createVoting",
        inputs=[
            ("title", "string"),
            ("candidateNames", "string[]"),
            ("startTime", "uint256"),
            ("endTime", "uint256"),
        ],
        outputs=[("", "address")],
        mutability="nonpayable",
    ),
    _abi_function("getAllVotings", outputs=[("", "address[]")]),
    _abi_function(
        "getVotingsByCreator",
        inputs=[("creator", "address")],
        outputs=[("", "address[]")],
    ),
]

VOTING_ABI = [
    _abi_function("title", outputs=[("", "string")]),
    _abi_function("startTime", outputs=[("", "uint256")]),
    _abi_function("endTime", outputs=[("", "uint256")]),
    _abi_function("finalized", outputs=[("", "bool")]),
    _abi_function("candidatesCount", outputs=[("", "uint256")]),
    _abi_function("creator", outputs=[("", "address")]),
    _abi_function(
        "getCandidate",
        inputs=[("index", "uint256")],
        outputs=[("name", "string"), ("voteCount", "uint256")],
    ),
    _abi_function("hasVoted", inputs=[("", "address")], outputs=[("", "bool")]),
    _abi_function("vote", inputs=[("candidateIndex", "uint256")], mutability="nonpayable"),
]


def _build_web3_client(rpc_url: str) -> AsyncWeb3:
    """Construye un cliente Web3 asíncrono para el RPC.

    English: Build an async Web3 client for the RPC endpoint.
    """
    return AsyncWeb3(AsyncHTTPProvider(rpc_url))


class Web3Ledger:
    """Puertos de lectura y escritura sobre contratos EVM desplegados.

    English:
        Read and write ports over deployed EVM contracts. Without a private
        key the adapter is read-only and writes raise ``LedgerWriteError``.
    """

    def __init__(
        self,
        rpc_url: Optional[str],
        factory_address: str,
        *,
        private_key: Optional[str] = None,
        chain_id: Optional[int] = None,
        read_retries: int = 3,
        receipt_timeout: float = 120.0,
        web3: Optional[AsyncWeb3] = None,
    ) -> None:
        if web3 is None:
            if not rpc_url:
                raise ValueError("rpc_url is required when no web3 client is given")
            web3 = _build_web3_client(rpc_url)
        self._web3 = web3
        self._factory = web3.eth.contract(
            address=AsyncWeb3.to_checksum_address(factory_address),
            abi=FACTORY_ABI,
        )
        self._account = Account.from_key(private_key) if private_key else None
        self._chain_id = chain_id
        self._read_retries = read_retries
        self._receipt_timeout = receipt_timeout
        self._contracts: Dict[str, Any] = {}

    def current_identity(self) -> Optional[str]:
        return self._account.address if self._account else None

    def _voting(self, voting: str) -> Any:
        address = AsyncWeb3.to_checksum_address(voting)
        contract = self._contracts.get(address)
        if contract is None:
            contract = self._web3.eth.contract(address=address, abi=VOTING_ABI)
            self._contracts[address] = contract
        return contract

    async def _call(self, label: str, function: Any, block_identifier: Any = None) -> Any:
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                stop=stop_after_attempt(self._read_retries),
                wait=wait_exponential(multiplier=0.5, max=4),
                reraise=True,
            ):
                with attempt:
                    if block_identifier is None:
                        return await function.call()
                    return await function.call(block_identifier=block_identifier)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("ledger_read_failed", call=label, reason=str(exc))
            raise LedgerReadError(f"{label} failed: {exc}") from exc
        raise LedgerReadError(f"{label} returned no result")

    # ------------------------------------------------------------------
    # Lecturas / Reads
    # ------------------------------------------------------------------

    async def get_title(self, voting: str) -> str:
        return await self._call("title", self._voting(voting).functions.title())

    async def get_start_time(self, voting: str) -> int:
        return int(await self._call("startTime", self._voting(voting).functions.startTime()))

    async def get_end_time(self, voting: str) -> int:
        return int(await self._call("endTime", self._voting(voting).functions.endTime()))

    async def get_finalized(self, voting: str) -> bool:
        return bool(await self._call("finalized", self._voting(voting).functions.finalized()))

    async def get_candidates_count(self, voting: str) -> int:
        return int(
            await self._call("candidatesCount", self._voting(voting).functions.candidatesCount())
        )

    async def get_candidate(self, voting: str, index: int) -> Tuple[str, int]:
        name, vote_count = await self._call(
            "getCandidate",
            self._voting(voting).functions.getCandidate(index),
        )
        return str(name), int(vote_count)

    async def get_has_voted(self, voting: str, identity: str) -> bool:
        return bool(
            await self._call(
                "hasVoted",
                self._voting(voting).functions.hasVoted(AsyncWeb3.to_checksum_address(identity)),
            )
        )

    async def get_creator(self, voting: str) -> str:
        return await self._call("creator", self._voting(voting).functions.creator())

    async def list_votings_by_creator(self, identity: str) -> List[str]:
        return list(
            await self._call(
                "getVotingsByCreator",
                self._factory.functions.getVotingsByCreator(AsyncWeb3.to_checksum_address(identity)),
            )
        )

    async def list_all_votings(self) -> List[str]:
        return list(await self._call("getAllVotings", self._factory.functions.getAllVotings()))

    # ------------------------------------------------------------------
    # Escrituras / Writes
    # ------------------------------------------------------------------

    async def create_voting(
        self,
        title: str,
        candidate_names: Sequence[str],
        start_time: int,
        end_time: int,
    ) -> str:
        account = self._require_account()
        receipt = await self._transact(
            "createVoting",
            self._factory.functions.createVoting(
                title,
                list(candidate_names),
                int(start_time),
                int(end_time),
            ),
        )
        return await self._created_address(account.address, receipt)

    async def cast_vote(self, voting: str, candidate_index: int) -> None:
        await self._transact("vote", self._voting(voting).functions.vote(int(candidate_index)))

    async def _created_address(self, creator: str, receipt: Dict[str, Any]) -> str:
        """Localiza la votación creada por la transacción del recibo.

        La fábrica no emite eventos: se comparan los listados del creador antes
        y después del bloque, y las creaciones previas del mismo remitente en
        ese bloque fijan la posición de la nuestra.

        English:
            Locate the voting created by the receipt's transaction. The
            factory emits no event, so the creator's listing before and after
            the block is compared; earlier successful creations by the same
            sender in that block fix the position of ours.
        """
        block_number = receipt["blockNumber"]
        listing = self._factory.functions.getVotingsByCreator(creator)
        before = await self._call("getVotingsByCreator", listing, block_number - 1)
        after = await self._call("getVotingsByCreator", listing, block_number)
        created = list(after)[len(before):]
        position = 0
        if len(created) > 1:
            position = await self._earlier_creations(creator, receipt)
        if position >= len(created):
            raise LedgerWriteError("Voting was created but could not be located")
        return created[position]

    async def _earlier_creations(self, creator: str, receipt: Dict[str, Any]) -> int:
        block = await self._web3.eth.get_block(receipt["blockNumber"], full_transactions=True)
        factory = self._factory.address.lower()
        count = 0
        for tx in block["transactions"]:
            if tx["transactionIndex"] >= receipt["transactionIndex"]:
                break
            if str(tx["from"]).lower() != creator.lower() or str(tx.get("to") or "").lower() != factory:
                continue
            earlier = await self._web3.eth.get_transaction_receipt(tx["hash"])
            if earlier.get("status") == 1:
                count += 1
        return count

    def _require_account(self) -> Any:
        if self._account is None:
            raise LedgerWriteError("No signing key configured")
        return self._account

    async def _transact(self, label: str, function: Any) -> Dict[str, Any]:
        """Construye, firma y envía una transacción y espera su recibo.

        English: Build, sign and send a transaction, then wait for its
        receipt. Reverts and RPC failures become ``LedgerWriteError``.
        """
        account = self._require_account()
        try:
            chain_id = self._chain_id or await self._web3.eth.chain_id
            nonce = await self._web3.eth.get_transaction_count(account.address)
            tx = await function.build_transaction(
                {"from": account.address, "nonce": nonce, "chainId": chain_id}
            )
            signed = account.sign_transaction(tx)
            raw_tx = getattr(signed, "raw_transaction", None) or signed.rawTransaction
            tx_hash = await self._web3.eth.send_raw_transaction(raw_tx)
            logger.info(
                "ledger_tx_sent",
                call=label,
                sender=shorten_identifier(account.address),
                tx_hash=self._web3.to_hex(tx_hash),
            )
            receipt = await self._web3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self._receipt_timeout,
            )
        except asyncio.CancelledError:
            raise
        except LedgerWriteError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("ledger_tx_failed", call=label, reason=str(exc))
            raise LedgerWriteError(str(exc)) from exc

        if receipt.get("status") != 1:
            logger.warning("ledger_tx_reverted", call=label)
            raise LedgerWriteError(f"{label} transaction reverted")
        return dict(receipt)
