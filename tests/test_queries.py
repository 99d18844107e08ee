"""
Tests for QueryService lookups.
"""

import pytest

from btcgraph.api.queries import MAX_CHAIN_DEPTH, QueryService
from btcgraph.errors import StoreReadError
from btcgraph.importer.writers import link_previous, load_transactions


@pytest.fixture
def queries(store):
    for height in (97, 98, 99, 100):
        store.add_block(height)
    for height in (98, 99, 100):
        link_previous(store, height)
    load_transactions(store, 100, ['t1'])
    return QueryService(store)


def test_get_block(queries):
    block = queries.get_block(100)
    assert block.to_dict() == {'height': 100, 'hash': 'hash100', 'size': 1, 'time': '2023-11-14T22:13:20'}


def test_get_block_not_found(queries):
    assert queries.get_block(101) is None


def test_get_transaction(queries):
    assert queries.get_transaction('t1').to_dict() == {'txid': 't1', 'height': 100}
    assert queries.get_transaction('missing') is None


def test_get_chain_follows_next_edges(queries):
    assert [b.height for b in queries.get_chain(100, depth=2)] == [100, 99, 98]
    assert [b.height for b in queries.get_chain(100, depth=10)] == [100, 99, 98, 97]


def test_get_chain_stops_at_gap(store, queries):
    store.add_block(95)
    store.add_block(94)
    link_previous(store, 95)
    assert [b.height for b in queries.get_chain(95)] == [95, 94]
    assert [b.height for b in queries.get_chain(97)] == [97]


def test_get_chain_missing_start(queries):
    assert queries.get_chain(500) == []


def test_get_chain_depth_is_clamped(store, queries):
    queries.get_chain(100, depth=10_000)
    query, _ = store.calls[-1]
    assert f"*1..{MAX_CHAIN_DEPTH}]" in query
    queries.get_chain(100, depth=0)
    query, _ = store.calls[-1]
    assert "*1..1]" in query


def test_store_unavailable_raises(store, queries):
    store.unavailable = True
    with pytest.raises(StoreReadError):
        queries.get_block(100)
