"""
RagDesk Observability Module

Prometheus-style metrics for queries and ingestions.
"""

from ragdesk.observability.metrics import get_metrics_text, record_ingestion, record_query

__all__ = ["get_metrics_text", "record_ingestion", "record_query"]
