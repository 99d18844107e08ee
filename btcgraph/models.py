"""Read models shared by the importer and the query service."""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict

BLOCK_TIME_FORMAT = '%Y-%m-%dT%H:%M:%S'


def format_block_time(epoch_seconds: int) -> str:
    """Render node epoch seconds as the stored block time, e.g. 2023-11-14T22:13:20"""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime(BLOCK_TIME_FORMAT)


@dataclass(frozen=True)
class BlockView:
    height: int
    hash: str
    size: int
    time: str

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'BlockView':
        return cls(
            height=record['height'],
            hash=record['hash'],
            size=record['size'],
            time=record['time'],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TransactionView:
    txid: str
    height: int

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'TransactionView':
        return cls(txid=record['txid'], height=record['height'])

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
