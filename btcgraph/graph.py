"""
Shared Neo4j handle.

One GraphStore wraps one driver. Components that need the graph hold a
reference obtained with acquire() and give it back with release(); the
driver is closed when the last holder releases it. The driver is
thread-safe, a session is opened per statement.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from btcgraph.config import Settings
from btcgraph.errors import StoreReadError, StoreWriteError

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    "CREATE CONSTRAINT block_height IF NOT EXISTS FOR (b:Block) REQUIRE b.height IS UNIQUE",
    "CREATE CONSTRAINT transaction_txid IF NOT EXISTS FOR (t:Transaction) REQUIRE t.txid IS UNIQUE",
    "CREATE INDEX block_hash IF NOT EXISTS FOR (b:Block) ON (b.hash)",
    "CREATE INDEX transaction_height IF NOT EXISTS FOR (t:Transaction) ON (t.height)",
]


class GraphStore:
    def __init__(self, driver, database: Optional[str] = None):
        self._driver = driver
        self.database = database
        self._refs = 0
        self._lock = threading.Lock()
        self.closed = False

    @classmethod
    def connect(cls, settings: Settings) -> 'GraphStore':
        """Create the driver and check that the server answers"""
        logger.info(f"Connecting to Neo4j at {settings.neo4j_uri}...")
        driver = GraphDatabase.driver(
            settings.neo4j_uri,
            auth=(settings.neo4j_user, settings.neo4j_password)
        )
        store = cls(driver, settings.neo4j_database)
        try:
            store.read("RETURN 1 AS test")
        except StoreReadError:
            driver.close()
            raise
        logger.info("Connected to Neo4j")
        return store

    def acquire(self) -> 'GraphStore':
        with self._lock:
            if self.closed:
                raise StoreReadError("graph store is closed")
            self._refs += 1
            return self

    def release(self):
        with self._lock:
            if self._refs == 0:
                return
            self._refs -= 1
            if self._refs > 0:
                return
            self.closed = True
        logger.info("Last graph store reference released, closing driver")
        self._driver.close()

    @property
    def references(self) -> int:
        return self._refs

    def _run(self, query: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._driver.session(database=self.database) as session:
            result = session.run(query, params)
            return result.data()

    def write(self, query: str, **params) -> List[Dict[str, Any]]:
        """Run a write statement, returning its records as dicts"""
        try:
            return self._run(query, params)
        except (Neo4jError, DriverError) as e:
            raise StoreWriteError(f"graph write failed: {e}") from e

    def read(self, query: str, **params) -> List[Dict[str, Any]]:
        """Run a read statement, returning its records as dicts"""
        try:
            return self._run(query, params)
        except (Neo4jError, DriverError) as e:
            raise StoreReadError(f"graph read failed: {e}") from e

    def setup_schema(self):
        """Create constraints and indexes"""
        logger.info("Setting up Neo4j schema...")
        for statement in SCHEMA_STATEMENTS:
            self.write(statement)
        logger.info("Schema setup complete")
