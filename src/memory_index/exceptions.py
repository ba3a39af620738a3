"""
Exceptions

Errors raised by the indexing core. Collaborator errors (LLMResponseError,
CollaboratorUnavailableError) are caught by the pipelines and resolved with
their fallbacks; the rest reach callers.
"""


class MemoryIndexError(Exception):
    """Base class for indexing errors."""
    pass


class UnknownIndexCodeError(MemoryIndexError):
    """Raised when an index code is not present in the taxonomy."""

    def __init__(self, code: str):
        super().__init__(f"Unknown index code: {code}")
        self.code = code


class DocumentNotFoundError(MemoryIndexError):
    """Raised when a single named document does not exist."""

    def __init__(self, user_id: str, index_code: str):
        super().__init__(f"No index document {index_code} for user {user_id}")
        self.user_id = user_id
        self.index_code = index_code


class DuplicateDocumentError(MemoryIndexError):
    """Raised when a second document is created for the same (user, index code)."""

    def __init__(self, user_id: str, index_code: str):
        super().__init__(f"Index document {index_code} already exists for user {user_id}")
        self.user_id = user_id
        self.index_code = index_code


class ConcurrentUpdateError(MemoryIndexError):
    """Raised when a document write loses a version compare-and-swap."""

    def __init__(self, document_id, expected_version: int):
        super().__init__(
            f"Document {document_id} changed concurrently (expected version {expected_version})"
        )
        self.document_id = document_id
        self.expected_version = expected_version


class LLMResponseError(MemoryIndexError):
    """Raised when a collaborator response cannot be parsed."""
    pass


class CollaboratorUnavailableError(MemoryIndexError):
    """Raised when a text-generation call is made without a configured API key."""
    pass
