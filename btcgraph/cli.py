#!/usr/bin/env python3
"""
Block Inspection Script
Prints what the graph holds for a block height:
- Block attributes
- Transactions attached to it
- Predecessors reachable over NEXT edges
"""

import argparse
import sys

from btcgraph.api.queries import QueryService
from btcgraph.config import configure_logging, load_settings
from btcgraph.errors import StoreError
from btcgraph.graph import GraphStore

COUNT_TRANSACTIONS = """
    MATCH (:Block {height: $height})-[:CONTAINS]->(t:Transaction)
    RETURN count(t) AS tx_count
"""


def inspect_block(height, depth, queries: QueryService, out=sys.stdout) -> bool:
    """Print block details; returns False when the block is not in the graph"""

    print(f"\n{'='*60}", file=out)
    print(f"Block Inspection: {height}", file=out)
    print(f"{'='*60}\n", file=out)

    block = queries.get_block(height)
    if block is None:
        print(f"Block not found in graph: {height}", file=out)
        return False

    print("Block:", file=out)
    print(f"   Hash: {block.hash}", file=out)
    print(f"   Transactions reported by node: {block.size}", file=out)
    print(f"   Time: {block.time}", file=out)

    records = queries.store.read(COUNT_TRANSACTIONS, height=height)
    loaded = records[0]['tx_count'] if records else 0
    print(f"   Transactions in graph: {loaded}", file=out)

    print(f"\nChain (up to {depth} predecessors):", file=out)
    chain = queries.get_chain(height, depth)
    for previous in chain[1:]:
        print(f"   {previous.height}  {previous.hash}", file=out)
    if len(chain) <= 1:
        print("   No NEXT edge from this block", file=out)
    elif len(chain) - 1 < depth and chain[-1].height > 0:
        print(f"   Chain stops at {chain[-1].height}: block {chain[-1].height - 1} not linked", file=out)

    print(f"\n{'='*60}\n", file=out)
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description='Inspect a block in the graph')
    parser.add_argument('height', type=int, help='Block height to inspect')
    parser.add_argument('--depth', type=int, default=5, help='Predecessors to follow')
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging('WARNING')

    try:
        store = GraphStore.connect(settings)
    except StoreError as e:
        print(f"Could not connect to Neo4j: {e}", file=sys.stderr)
        return 2

    store.acquire()
    try:
        queries = QueryService(store)
        try:
            found = inspect_block(args.height, args.depth, queries)
        finally:
            queries.close()
    except StoreError as e:
        print(f"Graph query failed: {e}", file=sys.stderr)
        return 2
    finally:
        store.release()
    return 0 if found else 1


if __name__ == '__main__':
    sys.exit(main())
