"""
GraphQL schema over the block graph.
"""

from typing import List, Optional

import strawberry
from strawberry.types import Info

from btcgraph.api.queries import QueryService
from btcgraph.models import BlockView, TransactionView


@strawberry.type
class BlockInfo:
    height: int
    hash: str
    size: int
    time: str

    @classmethod
    def from_view(cls, view: BlockView) -> 'BlockInfo':
        return cls(height=view.height, hash=view.hash, size=view.size, time=view.time)


@strawberry.type
class TransactionInfo:
    txid: str
    height: int

    @classmethod
    def from_view(cls, view: TransactionView) -> 'TransactionInfo':
        return cls(txid=view.txid, height=view.height)


def _queries(info: Info) -> QueryService:
    return info.context["request"].app.state.queries


@strawberry.type
class Query:
    @strawberry.field
    def block(self, info: Info, height: int) -> Optional[BlockInfo]:
        """Get block by height"""
        view = _queries(info).get_block(height)
        return BlockInfo.from_view(view) if view else None

    @strawberry.field
    def transaction(self, info: Info, txid: str) -> Optional[TransactionInfo]:
        """Get transaction by txid"""
        view = _queries(info).get_transaction(txid)
        return TransactionInfo.from_view(view) if view else None

    @strawberry.field
    def chain(self, info: Info, height: int, depth: int = 10) -> List[BlockInfo]:
        """Block at height and its predecessors along NEXT edges"""
        return [BlockInfo.from_view(view) for view in _queries(info).get_chain(height, depth)]


schema = strawberry.Schema(query=Query)
