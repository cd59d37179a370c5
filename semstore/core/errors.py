"""
Exceptions raised by the semantic store.
"""


class SemanticStoreError(Exception):
    """Base exception for all semantic store errors."""
    pass


class DimensionMismatch(SemanticStoreError, ValueError):
    """
    A vector does not have the dimension established for a store or index.

    Raised when:
    - put() receives a vector of a different length than stored records
    - build() receives records that disagree on dimension
    - nearest() receives a query vector of the wrong length
    """

    def __init__(self, expected: int, actual: int, identifier: str = None):
        if identifier:
            message = f"Vector '{identifier}' has dimension {actual}, expected {expected}"
        else:
            message = f"Vector dimension {actual} does not match expected dimension {expected}"
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.identifier = identifier


class NotFound(SemanticStoreError, KeyError):
    """No record exists under the requested identifier."""

    def __init__(self, identifier: str):
        super().__init__(identifier)
        self.identifier = identifier

    def __str__(self):
        return f"No record with identifier '{self.identifier}'"


class EmptyInput(SemanticStoreError):
    """An index was asked to build over zero records."""
    pass


class InvalidArgument(SemanticStoreError, ValueError):
    """An argument is out of its valid range (k < 1, empty id, NaN values)."""
    pass


class EmptyStore(SemanticStoreError):
    """A query was issued before any record was ingested."""
    pass


class EmbeddingProviderError(SemanticStoreError):
    """
    The embedding provider failed to produce a vector.

    Raised when:
    - the provider is unreachable or times out
    - the provider rejects the request (quota, authentication)
    - the provider returns a malformed embedding

    The original exception is kept on ``cause`` and chained as ``__cause__``.
    """

    def __init__(self, message: str, cause: BaseException = None, provider: str = None):
        super().__init__(message)
        self.cause = cause
        self.provider = provider


class BackingStoreError(SemanticStoreError):
    """Reading or writing the persistent backing store failed."""

    def __init__(self, message: str, key: str = None):
        super().__init__(message)
        self.key = key
