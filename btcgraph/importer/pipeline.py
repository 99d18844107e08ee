"""
Tip ingestion: fetch the node's best block and write it to the graph.
"""

import itertools
import logging
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from btcgraph.errors import RemoteQueryError, StoreWriteError
from btcgraph.graph import GraphStore
from btcgraph.importer.writers import link_previous, load_transactions, upsert_block
from btcgraph.rpc import NodeClient

logger = logging.getLogger(__name__)

_run_ids = itertools.count(1)


def next_run_id() -> int:
    return next(_run_ids)


class PipelineState(str, Enum):
    IDLE = 'idle'
    FETCHING_TIP = 'fetching_tip'
    FETCHING_BLOCK = 'fetching_block'
    UPSERTING_BLOCK = 'upserting_block'
    LINKING = 'linking'
    LOADING_TRANSACTIONS = 'loading_transactions'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class IngestionResult:
    run_id: int
    state: PipelineState = PipelineState.IDLE
    failed_in: Optional[PipelineState] = None
    height: Optional[int] = None
    hash: Optional[str] = None
    linked: bool = False
    relinked_successor: bool = False
    transactions_loaded: int = 0
    transactions_failed: int = 0
    error: Optional[str] = None
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.DONE

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['state'] = self.state.value
        data['failed_in'] = self.failed_in.value if self.failed_in else None
        return data


class IngestionPipeline:
    def __init__(self, node: NodeClient, store: GraphStore):
        self.node = node
        self.store = store.acquire()

    def close(self):
        self.store.release()

    def _enter(self, result: IngestionResult, state: PipelineState):
        logger.debug(f"Run {result.run_id}: {result.state.value} -> {state.value}")
        result.state = state

    def _fail(self, result: IngestionResult, error: Exception):
        result.failed_in = result.state
        result.error = str(error)
        result.state = PipelineState.FAILED
        logger.error(f"Run {result.run_id} failed while {result.failed_in.value}: {error}")

    def run(self) -> IngestionResult:
        """
        Ingest the block at the node's current tip.

        Node failures and a failed block upsert end the run in FAILED;
        linkage and per-transaction failures are logged and the run carries on.
        """
        result = IngestionResult(run_id=next_run_id(), started_at=time.time())
        try:
            self._run(result)
        finally:
            result.finished_at = time.time()
        return result

    def _run(self, result: IngestionResult):
        self._enter(result, PipelineState.FETCHING_TIP)
        try:
            tip_height = self.node.get_chain_height()
            best_hash = self.node.get_best_block_hash()
        except RemoteQueryError as e:
            self._fail(result, e)
            return
        logger.info(f"Run {result.run_id}: chain tip at height {tip_height} ({best_hash})")

        self._enter(result, PipelineState.FETCHING_BLOCK)
        try:
            block = self.node.get_block_by_hash(best_hash)
        except RemoteQueryError as e:
            self._fail(result, e)
            return
        if block.height != tip_height:
            logger.info(f"Run {result.run_id}: tip moved to {block.height} while fetching, using block height")
        result.height = block.height
        result.hash = block.hash

        self._enter(result, PipelineState.UPSERTING_BLOCK)
        try:
            upsert_block(self.store, block)
        except StoreWriteError as e:
            self._fail(result, e)
            return

        self._enter(result, PipelineState.LINKING)
        result.linked = link_previous(self.store, block.height)
        # a run for height + 1 may have finished before this block existed
        result.relinked_successor = link_previous(self.store, block.height + 1)

        self._enter(result, PipelineState.LOADING_TRANSACTIONS)
        report = load_transactions(self.store, block.height, block.txids)
        result.transactions_loaded = report.loaded
        result.transactions_failed = len(report.failed)

        self._enter(result, PipelineState.DONE)
        logger.info(
            f"Run {result.run_id}: ingested block {block.height}, "
            f"{report.loaded} transactions, linked={result.linked}"
        )
