"""
Runtime configuration.

Everything comes from the environment; a .env file in the working
directory is loaded first when present.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from btcgraph.errors import ConfigError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass(frozen=True)
class Settings:
    btc_rpc_url: str
    btc_rpc_user: str
    btc_rpc_password: str
    btc_rpc_timeout: int
    neo4j_uri: str
    neo4j_user: str
    neo4j_password: str
    neo4j_database: Optional[str]
    port: int
    ingest_queue_size: int
    ingest_history_size: int
    log_level: str


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_settings() -> Settings:
    """Read settings from the environment"""
    load_dotenv(find_dotenv(usecwd=True))

    rpc_url = os.getenv('BITCOIN_RPC_URL')
    if not rpc_url:
        host = os.getenv('BITCOIN_RPC_HOST', 'bitcoin')
        port = os.getenv('BITCOIN_RPC_PORT', '8332')
        rpc_url = f"http://{host}:{port}"

    return Settings(
        btc_rpc_url=rpc_url,
        btc_rpc_user=os.getenv('BITCOIN_RPC_USER', 'btcuser'),
        btc_rpc_password=os.getenv('BITCOIN_RPC_PASS') or os.getenv('BITCOIN_RPC_PASSWORD', 'btcpass'),
        btc_rpc_timeout=_int_env('BITCOIN_RPC_TIMEOUT', 30, minimum=1),
        neo4j_uri=os.getenv('NEO4J_URI', 'bolt://neo4j:7687'),
        neo4j_user=os.getenv('NEO4J_USER', 'neo4j'),
        neo4j_password=os.getenv('NEO4J_PASSWORD', 'bitcoin123'),
        neo4j_database=os.getenv('NEO4J_DATABASE') or None,
        port=_int_env('PORT', 8080, minimum=1),
        ingest_queue_size=_int_env('INGEST_QUEUE_SIZE', 4, minimum=1),
        ingest_history_size=_int_env('INGEST_HISTORY_SIZE', 20, minimum=1),
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    )


def configure_logging(level: str = 'INFO'):
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
