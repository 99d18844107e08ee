"""
Graph writes performed by the importer.

All statements are MERGE based so they can be repeated, and concurrent
importers never need a lock around them.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable

from btcgraph.errors import StoreWriteError
from btcgraph.graph import GraphStore
from btcgraph.models import BlockView, format_block_time
from btcgraph.rpc import BlockDocument

logger = logging.getLogger(__name__)

MERGE_BLOCK = """
    MERGE (b:Block {height: $height, hash: $hash})
    ON CREATE SET b.size = $size,
                  b.time = $time
    RETURN b.height AS height, b.hash AS hash, b.size AS size, b.time AS time
"""

LINK_PREVIOUS = """
    MATCH (current:Block {height: $height})
    MATCH (previous:Block {height: $height - 1})
    MERGE (current)-[:NEXT]->(previous)
    RETURN count(*) AS linked
"""

MERGE_TRANSACTION = """
    MERGE (t:Transaction {txid: $txid})
    SET t.height = $height

    WITH t
    OPTIONAL MATCH (other:Block)-[old:CONTAINS]->(t)
    WHERE other.height <> $height
    DELETE old

    WITH DISTINCT t
    OPTIONAL MATCH (b:Block {height: $height})
    FOREACH (_ IN CASE WHEN b IS NULL THEN [] ELSE [1] END |
        MERGE (b)-[:CONTAINS]->(t))
    RETURN t.txid AS txid, t.height AS height
"""


@dataclass
class LoadReport:
    height: int
    loaded: int = 0
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def upsert_block(store: GraphStore, block: BlockDocument) -> BlockView:
    """
    Create the block node keyed by (height, hash) or match the existing one.

    size and time are only written when the node is created, so a repeated
    import leaves the stored values alone. Raises StoreWriteError.
    """
    records = store.write(
        MERGE_BLOCK,
        height=block.height,
        hash=block.hash,
        size=block.n_tx,
        time=format_block_time(block.time),
    )
    if not records:
        raise StoreWriteError(f"block {block.height} merge returned no record")
    view = BlockView.from_record(records[0])
    logger.info(f"Upserted block {view.height} ({view.hash})")
    return view


def link_previous(store: GraphStore, height: int) -> bool:
    """
    Merge the NEXT edge from the block at `height` to the block below it.

    Returns True when the edge exists afterwards. A missing endpoint is not
    an error; the edge is simply not created. Store failures are logged and
    reported as False.
    """
    if height <= 0:
        return False
    try:
        records = store.write(LINK_PREVIOUS, height=height)
    except StoreWriteError as e:
        logger.warning(f"Could not link block {height} to {height - 1}: {e}")
        return False

    linked = bool(records) and records[0]['linked'] > 0
    if linked:
        logger.info(f"Linked block {height} -[:NEXT]-> {height - 1}")
    else:
        logger.info(f"Block {height} or its predecessor {height - 1} not in graph, no NEXT edge")
    return linked


def load_transactions(store: GraphStore, height: int, txids: Iterable[str]) -> LoadReport:
    """
    Merge one Transaction node per txid and attach it to the block at `height`.

    A failing txid does not stop the rest; failures are collected in the
    returned report.
    """
    report = LoadReport(height=height)
    for txid in txids:
        try:
            store.write(MERGE_TRANSACTION, txid=txid, height=height)
        except StoreWriteError as e:
            report.failed[txid] = str(e)
            continue
        report.loaded += 1

    if report.failed:
        logger.warning(
            f"Block {height}: {len(report.failed)} of "
            f"{report.loaded + len(report.failed)} transactions failed to load"
        )
        for txid, message in report.failed.items():
            logger.debug(f"Transaction {txid} failed: {message}")
    else:
        logger.info(f"Block {height}: loaded {report.loaded} transactions")
    return report
