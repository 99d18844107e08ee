"""
Read-only lookups against the block graph.

A missing block or transaction is returned as None; store failures raise
StoreReadError.
"""

import logging
from typing import List, Optional

from btcgraph.graph import GraphStore
from btcgraph.models import BlockView, TransactionView

logger = logging.getLogger(__name__)

MAX_CHAIN_DEPTH = 100

GET_BLOCK = """
    MATCH (b:Block {height: $height})
    RETURN b.height AS height, b.hash AS hash, b.size AS size, b.time AS time
    LIMIT 1
"""

GET_TRANSACTION = """
    MATCH (t:Transaction {txid: $txid})
    RETURN t.txid AS txid, t.height AS height
    LIMIT 1
"""

GET_CHAIN = """
    MATCH (b:Block {height: $height})
    OPTIONAL MATCH path = (b)-[:NEXT*1..%d]->(:Block)
    WITH b, path
    ORDER BY length(path) DESC
    LIMIT 1
    WITH CASE WHEN path IS NULL THEN [b] ELSE nodes(path) END AS blocks
    UNWIND blocks AS block
    RETURN block.height AS height, block.hash AS hash, block.size AS size, block.time AS time
"""


class QueryService:
    def __init__(self, store: GraphStore):
        self.store = store.acquire()

    def close(self):
        self.store.release()

    def get_block(self, height: int) -> Optional[BlockView]:
        records = self.store.read(GET_BLOCK, height=height)
        if not records:
            return None
        return BlockView.from_record(records[0])

    def get_transaction(self, txid: str) -> Optional[TransactionView]:
        records = self.store.read(GET_TRANSACTION, txid=txid)
        if not records:
            return None
        return TransactionView.from_record(records[0])

    def get_chain(self, height: int, depth: int = 10) -> List[BlockView]:
        """
        The block at `height` followed by its predecessors along NEXT edges.

        Walks at most `depth` edges (clamped to 1..MAX_CHAIN_DEPTH) and stops
        at the first missing link. Empty when the start block is absent.
        """
        depth = max(1, min(depth, MAX_CHAIN_DEPTH))
        records = self.store.read(GET_CHAIN % depth, height=height)
        return [BlockView.from_record(record) for record in records]
