"""
Request/Response Models for RagDesk

JSON field names follow the public camelCase contract; Python attributes
stay snake_case.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())


class QueryRequest(_CamelModel):
    # Optional so an empty body reaches the pipeline's own validation
    message: str | None = None


class RelayRequest(_CamelModel):
    url: str | None = None
    api_key: str | None = Field(default=None, alias="apiKey")
    message: str | None = None


class SourceDocument(_CamelModel):
    page_content: str = Field(alias="pageContent")
    metadata: dict[str, Any] = Field(default_factory=dict)


class QueryResponse(_CamelModel):
    answer: str
    source_documents: list[SourceDocument] = Field(alias="sourceDocuments")


class IngestResponse(_CamelModel):
    message: str
    model_name: str = Field(alias="modelName")
    api_key: str = Field(alias="apiKey")
    is_text_truncated: bool = Field(alias="isTextTruncated")


class ModelSummary(_CamelModel):
    name: str
    api_key: str = Field(alias="apiKey")
    llm_model: str = Field(alias="llmModel")


class ModelListResponse(_CamelModel):
    models: list[ModelSummary]


class DeleteResponse(_CamelModel):
    message: str
    index_deleted: bool = Field(alias="indexDeleted")


class ErrorResponse(_CamelModel):
    error: str
    details: dict[str, Any] = Field(default_factory=dict)
