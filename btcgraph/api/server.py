#!/usr/bin/env python3
"""
HTTP API for the Bitcoin block graph.

REST lookups for blocks and transactions, a refresh trigger that queues
ingestion of the current chain tip, and a GraphQL endpoint over the same
queries.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from strawberry.fastapi import GraphQLRouter

from btcgraph.api.queries import QueryService
from btcgraph.api.schema import schema
from btcgraph.config import Settings, configure_logging, load_settings
from btcgraph.errors import StoreReadError
from btcgraph.graph import GraphStore
from btcgraph.importer.pipeline import IngestionPipeline
from btcgraph.importer.queue import IngestionQueue
from btcgraph.rpc import NodeClient

logger = logging.getLogger(__name__)

REFRESH_ACK = "Refresh triggered"


def create_app(settings: Optional[Settings] = None,
               store: Optional[GraphStore] = None,
               node: Optional[NodeClient] = None) -> FastAPI:
    """Build the API; store and node are created from settings unless given"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = settings
        if config is None and (store is None or node is None):
            config = load_settings()
        graph = store or GraphStore.connect(config)
        client = node or NodeClient.from_settings(config)

        # the app owns one reference, the pipeline and query service one each
        graph.acquire()
        graph.setup_schema()
        pipeline = IngestionPipeline(client, graph)
        queries = QueryService(graph)
        ingestion = IngestionQueue(
            pipeline,
            maxsize=config.ingest_queue_size if config else 4,
            history=config.ingest_history_size if config else 20,
        )
        app.state.store = graph
        app.state.node = client
        app.state.queries = queries
        app.state.ingestion = ingestion
        await ingestion.start()
        try:
            yield
        finally:
            await ingestion.stop()
            pipeline.close()
            queries.close()
            graph.release()

    app = FastAPI(title="Bitcoin Block Graph API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(StoreReadError)
    async def store_read_error(request: Request, exc: StoreReadError):
        logger.error(f"Graph read failed for {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # declared before /blocks/{height} so "refresh" is not parsed as a height
    @app.get("/blocks/refresh", response_class=PlainTextResponse)
    async def refresh_blocks(request: Request):
        try:
            request.app.state.ingestion.submit()
        except RuntimeError:
            logger.warning("Refresh ignored, ingestion queue is shutting down")
        return REFRESH_ACK

    @app.get("/blocks/{height}")
    def get_block(height: int, request: Request):
        block = request.app.state.queries.get_block(height)
        if block is None:
            raise HTTPException(status_code=404, detail=f"Block {height} not found")
        return block.to_dict()

    @app.get("/transactions/{txid}")
    def get_transaction(txid: str, request: Request, origin: Optional[str] = Header(default=None)):
        transaction = request.app.state.queries.get_transaction(txid)
        if transaction is None:
            raise HTTPException(status_code=404, detail=f"Transaction {txid} not found")
        return JSONResponse(
            content=transaction.to_dict(),
            headers={"Access-Control-Allow-Origin": origin or "*"},
        )

    @app.get("/ingestion/runs")
    def ingestion_runs(request: Request):
        return [result.to_dict() for result in request.app.state.ingestion.recent()]

    @app.get("/health")
    def health_check(request: Request):
        try:
            request.app.state.node.get_chain_height()
            request.app.state.store.read("RETURN 1")
            return {"status": "healthy"}
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}

    @app.get("/")
    async def root():
        return {
            "message": "Bitcoin Block Graph API",
            "graphql_endpoint": "/graphql",
            "health_endpoint": "/health"
        }

    app.include_router(GraphQLRouter(schema), prefix="/graphql")
    return app


def main():
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
