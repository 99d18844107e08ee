import io

from btcgraph.api.queries import QueryService
from btcgraph.cli import inspect_block
from btcgraph.importer.writers import link_previous, load_transactions


def test_inspect_block(store):
    for height in (98, 99, 100):
        store.add_block(height)
    link_previous(store, 99)
    link_previous(store, 100)
    load_transactions(store, 100, ['t1', 't2'])

    out = io.StringIO()
    assert inspect_block(100, 5, QueryService(store), out=out) is True
    text = out.getvalue()
    assert 'Hash: hash100' in text
    assert 'Transactions in graph: 2' in text
    assert '   99  hash99' in text
    assert 'Chain stops at 98' in text


def test_inspect_missing_block(store):
    out = io.StringIO()
    assert inspect_block(7, 5, QueryService(store), out=out) is False
    assert 'Block not found in graph: 7' in out.getvalue()
