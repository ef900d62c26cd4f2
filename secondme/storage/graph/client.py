"""
FalkorDB Client
===============

Async client for FalkorDB graph database.

FalkorDB runs on Redis protocol and supports Cypher queries, including the
vector index procedure ``db.idx.vector.queryNodes`` used for semantic search
over Topic/Person/Event embeddings.
"""

import asyncio
from typing import Any, Dict, List, Optional

import structlog
from falkordb import FalkorDB, Graph

from secondme.storage.graph.config import FalkorDBConfig

log = structlog.get_logger()


class FalkorDBClient:
    """
    Async client for FalkorDB graph database.

    Example:
        client = FalkorDBClient(config)
        await client.connect()

        results = await client.query('''
            MATCH (c:Contact {id: $contactId})-[:KNOWS]->(p:Person)
            RETURN p.name AS name
        ''', {"contactId": "contact-42"}, timeout=2.0)

        await client.close()
    """

    def __init__(self, config: Optional[FalkorDBConfig] = None):
        self.config = config or FalkorDBConfig()
        self._db: Optional[FalkorDB] = None
        self._graph: Optional[Graph] = None
        self._connected = False

        log.info(
            f"FalkorDBClient initialized - "
            f"host={self.config.host}:{self.config.port}, "
            f"graph={self.config.graph_name}"
        )

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self):
        """Establish connection to FalkorDB."""
        if self._connected:
            log.debug("Already connected to FalkorDB")
            return

        # Run in executor since falkordb-py is synchronous
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._connect_sync)

        log.info(f"Connected to FalkorDB at {self.config.host}:{self.config.port}")

    def _connect_sync(self):
        """Synchronous connection (called in executor)."""
        self._db = FalkorDB(
            host=self.config.host,
            port=self.config.port,
            password=self.config.password,
        )
        self._graph = self._db.select_graph(self.config.graph_name)
        self._connected = True

    async def close(self):
        """Close connection."""
        if not self._connected:
            return

        # Connection is managed by the redis connection pool
        self._connected = False
        self._db = None
        self._graph = None
        log.info("Disconnected from FalkorDB")

    async def query(
        self,
        cypher: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute Cypher query.

        Args:
            cypher: Cypher query string
            params: Query parameters
            timeout: Seconds allowed for this call; defaults to config.timeout_ms

        Returns:
            List of result records as dicts

        Raises:
            RuntimeError: If not connected
            asyncio.TimeoutError: If the query exceeds ``timeout``
        """
        if not self._connected:
            raise RuntimeError("Not connected to FalkorDB. Call connect() first.")

        if timeout is None:
            timeout = self.config.timeout_ms / 1000.0
        server_timeout_ms = max(1, int(timeout * 1000))

        # Run query in executor (falkordb-py is synchronous)
        loop = asyncio.get_event_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(
                None,
                self._query_sync,
                cypher,
                params or {},
                server_timeout_ms
            ),
            timeout=timeout
        )

    def _query_sync(
        self,
        cypher: str,
        params: Dict[str, Any],
        timeout_ms: int
    ) -> List[Dict[str, Any]]:
        """Execute query synchronously (called in executor)."""
        try:
            result = self._graph.query(cypher, params, timeout=timeout_ms)
        except Exception as e:
            log.error(f"Query failed: {cypher.strip()[:100]}... Error: {e}")
            raise

        records = self._to_records(result)
        log.debug(
            f"Query executed: {cypher.strip()[:100]}... "
            f"(params={list(params.keys())}) -> {len(records)} records"
        )
        return records

    @staticmethod
    def _to_records(result: Any) -> List[Dict[str, Any]]:
        """Convert a falkordb QueryResult into a list of dicts keyed by alias."""
        records = []
        if not result.result_set:
            return records

        headers = result.header
        for row in result.result_set:
            record = {}
            for i, header in enumerate(headers):
                # Header format is [type, alias]
                col_name = header[1] if len(header) > 1 else f"col_{i}"
                value = row[i]

                if hasattr(value, 'properties'):
                    # Node or Edge
                    record[col_name] = {
                        "properties": value.properties,
                        "labels": getattr(value, 'labels', []),
                        "id": getattr(value, 'id', None),
                    }
                else:
                    record[col_name] = value

            records.append(record)

        return records

    async def health_check(self) -> bool:
        """
        Check if FalkorDB is healthy and reachable.

        Returns:
            True if healthy, False otherwise
        """
        try:
            if not self._connected:
                await self.connect()

            await self.query("RETURN 1")
            return True

        except Exception as e:
            log.error(f"Health check failed: {e}")
            return False
