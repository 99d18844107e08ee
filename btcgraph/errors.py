"""Exceptions raised by btcgraph components."""


class BtcGraphError(Exception):
    """Base exception for btcgraph"""
    pass


class ConfigError(BtcGraphError):
    """Raised when the environment holds an invalid setting"""
    pass


class RemoteQueryError(BtcGraphError):
    """Raised when a call to the Bitcoin node fails"""

    def __init__(self, method: str, message: str):
        super().__init__(f"{method}: {message}")
        self.method = method


class StoreError(BtcGraphError):
    """Base exception for graph store failures"""
    pass


class StoreWriteError(StoreError):
    """Raised when the graph store is unavailable or rejects a write"""
    pass


class StoreReadError(StoreError):
    """Raised when the graph store is unavailable on read"""
    pass
