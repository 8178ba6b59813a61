"""Error kinds raised by the document processing pipeline.

Every stage error derives from DocumentProcessingError so the processing
service can catch a single base type, log it with the document context and
move the document to the failed status.
"""


class DocumentProcessingError(Exception):
    """Base class for all pipeline errors.

    Attributes:
        document_id: Document the failure belongs to, if known.
    """

    def __init__(self, message: str, document_id: int | None = None) -> None:
        super().__init__(message)
        self.document_id = document_id


class DocumentNotFoundError(DocumentProcessingError):
    """The document id does not exist in the relational store."""


class DocumentFetchError(DocumentProcessingError):
    """The document, its project or its chunks could not be read."""


class EmbeddingError(DocumentProcessingError):
    """At least one embedding call of a batch failed."""


class VectorStoreError(DocumentProcessingError):
    """A vector index request failed or returned a non-success status.

    Attributes:
        status_code: HTTP status of the failed response, if there was one.
    """

    def __init__(self, message: str, document_id: int | None = None, status_code: int | None = None) -> None:
        super().__init__(message, document_id=document_id)
        self.status_code = status_code


class CollectionNotFoundError(VectorStoreError):
    """The requested vector index collection does not exist."""


class RelationalStoreError(DocumentProcessingError):
    """A row insert, delete, update or commit failed."""
