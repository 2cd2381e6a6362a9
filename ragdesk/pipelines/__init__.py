"""
RagDesk Pipelines

Ingestion, query and deletion orchestration over the registry, the
extractor, the embedding client, the vector index and the completion client.
"""
