from btcgraph.importer.pipeline import IngestionPipeline, IngestionResult, PipelineState
from btcgraph.importer.queue import IngestionQueue, IngestionTicket
from btcgraph.importer.writers import LoadReport, link_previous, load_transactions, upsert_block

__all__ = [
    'IngestionPipeline',
    'IngestionQueue',
    'IngestionResult',
    'IngestionTicket',
    'LoadReport',
    'PipelineState',
    'link_previous',
    'load_transactions',
    'upsert_block',
]
