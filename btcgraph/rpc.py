"""
Bitcoin Core JSON-RPC client.

Every call opens its own AuthServiceProxy, so one call is exactly one
authenticated request/response exchange with the node and the client can
be shared between threads.
"""

import http.client
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List
from urllib.parse import urlsplit, urlunsplit

from bitcoinrpc.authproxy import AuthServiceProxy, JSONRPCException

from btcgraph.config import Settings
from btcgraph.errors import RemoteQueryError
from btcgraph.models import format_block_time

logger = logging.getLogger(__name__)


@dataclass
class BlockDocument:
    """The parts of a `getblock` response the importer uses"""
    hash: str
    height: int
    n_tx: int
    time: int
    txids: List[str] = field(default_factory=list)

    @classmethod
    def from_rpc(cls, doc: Dict[str, Any]) -> 'BlockDocument':
        try:
            txids = doc['tx']
            if not isinstance(txids, list):
                raise TypeError(f"'tx' is {type(txids).__name__}, expected list")
            block = cls(
                hash=str(doc['hash']),
                height=int(doc['height']),
                n_tx=int(doc['nTx']),
                time=int(doc['time']),
                txids=[tx if isinstance(tx, str) else tx['txid'] for tx in txids],
            )
            if block.height < 0:
                raise ValueError(f"negative height {block.height}")
            format_block_time(block.time)
            return block
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            raise RemoteQueryError('getblock', f"malformed block document: {e!r}") from e


def _with_credentials(url: str, user: str, password: str) -> str:
    parts = urlsplit(url)
    host = parts.hostname or ''
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{user}:{password}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class NodeClient:
    def __init__(self, url: str, user: str, password: str, timeout: int = 30):
        self.url = url
        self.timeout = timeout
        self._service_url = _with_credentials(url, user, password)

    @classmethod
    def from_settings(cls, settings: Settings) -> 'NodeClient':
        return cls(settings.btc_rpc_url, settings.btc_rpc_user,
                   settings.btc_rpc_password, settings.btc_rpc_timeout)

    def _call(self, method: str, *params):
        proxy = AuthServiceProxy(self._service_url, timeout=self.timeout)
        try:
            return getattr(proxy, method)(*params)
        except JSONRPCException as e:
            logger.warning(f"RPC {method} rejected by node: {e}")
            raise RemoteQueryError(method, f"node returned error: {e}") from e
        except (OSError, http.client.HTTPException, ValueError) as e:
            logger.warning(f"RPC {method} to {self.url} failed: {e!r}")
            raise RemoteQueryError(method, f"request failed: {e!r}") from e

    def get_chain_height(self) -> int:
        """Height of the node's chain tip"""
        height = self._call('getblockcount')
        if not isinstance(height, int):
            raise RemoteQueryError('getblockcount', f"unexpected result {height!r}")
        return height

    def get_best_block_hash(self) -> str:
        """Hash of the node's chain tip"""
        block_hash = self._call('getbestblockhash')
        if not isinstance(block_hash, str):
            raise RemoteQueryError('getbestblockhash', f"unexpected result {block_hash!r}")
        return block_hash

    def get_block_by_hash(self, block_hash: str) -> BlockDocument:
        """Block header fields and txid list (verbosity 1)"""
        doc = self._call('getblock', block_hash, 1)
        if not isinstance(doc, dict):
            raise RemoteQueryError('getblock', f"unexpected result {doc!r}")
        return BlockDocument.from_rpc(doc)
