"""
RagDesk - Document-backed Question Answering Models

Register a named model from a PDF or web page and query it over HTTP with
its own API key.

Features:
- PDF and web page ingestion with text normalization
- Pinecone-backed vector index per model
- Pluggable completion backends (chat, plain completion, Anthropic)
- Per-model API key authentication
"""

__version__ = "0.1.0"
__author__ = "RagDesk Team"
