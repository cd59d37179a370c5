"""
HTTP API over a SemanticStore.
"""

from fastapi import FastAPI, HTTPException, Depends

from .schemas import (
    IngestRequest,
    IngestResponse,
    BatchIngestRequest,
    BatchIngestResponse,
    QueryRequest,
    QueryResponse,
    NeighborResult,
    RecordResponse,
    HealthResponse
)
from ..core.config import VERSION, debug_enabled, get_semantic_store
from ..core.errors import (
    BackingStoreError,
    DimensionMismatch,
    EmbeddingProviderError,
    EmptyStore,
    InvalidArgument,
    NotFound,
    SemanticStoreError
)
from ..util.logging import logger
from ..vector.semantic_store import SemanticStore

# Initialize the FastAPI application
app = FastAPI(
    title="Semantic Store API",
    version=VERSION,
    description="Embedding-backed semantic similarity store",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

_store = None


def get_store() -> SemanticStore:
    """Dependency returning the process-wide store, built from config on first use."""
    global _store
    if _store is None:
        _store = get_semantic_store()
    return _store


def to_http_error(error: SemanticStoreError) -> HTTPException:
    """Map a store error to an HTTP error."""
    if isinstance(error, NotFound):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, EmptyStore):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, (DimensionMismatch, InvalidArgument)):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, EmbeddingProviderError):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, BackingStoreError):
        return HTTPException(status_code=503, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint(store: SemanticStore = Depends(get_store)):
    """Check system health."""
    health = store.health()
    return HealthResponse(
        status=health["status"],
        version=VERSION,
        size=health["size"],
        dimension=health["dimension"],
        provider=health["provider"],
        index_strategy=health["index_strategy"],
        stale=health["stale"],
        persistent=health["persistent"]
    )


@app.post("/semantic/ingest", response_model=IngestResponse)
def ingest_endpoint(request: IngestRequest, store: SemanticStore = Depends(get_store)):
    """Embed and store one text."""
    try:
        record = store.ingest(request.id, request.text)
    except SemanticStoreError as e:
        logger.log_operation("api.ingest", "error", details={"id": request.id, "error": type(e).__name__})
        raise to_http_error(e) from e

    return IngestResponse(success=True, id=record.id, dimension=record.dimension)


@app.post("/semantic/ingest/batch", response_model=BatchIngestResponse)
def ingest_batch_endpoint(request: BatchIngestRequest, store: SemanticStore = Depends(get_store)):
    """Embed and store several texts, all or nothing."""
    try:
        records = store.ingest_many([(item.id, item.text) for item in request.items])
    except SemanticStoreError as e:
        logger.log_operation("api.ingest_batch", "error", details={"count": len(request.items), "error": type(e).__name__})
        raise to_http_error(e) from e

    return BatchIngestResponse(success=True, ids=[r.id for r in records], count=len(records))


@app.post("/semantic/query", response_model=QueryResponse)
def query_endpoint(request: QueryRequest, store: SemanticStore = Depends(get_store)):
    """Return the k nearest stored records to the query text."""
    try:
        results = store.query(request.text, request.k)
    except SemanticStoreError as e:
        logger.log_operation("api.query", "error", details={"k": request.k, "error": type(e).__name__})
        raise to_http_error(e) from e

    return QueryResponse(
        query=request.text,
        k=request.k,
        results=[NeighborResult(id=n.id, distance=n.distance) for n in results]
    )


@app.get("/semantic/records/{record_id}", response_model=RecordResponse)
def get_record_endpoint(record_id: str, store: SemanticStore = Depends(get_store)):
    """Get a stored record by id."""
    try:
        record = store.get(record_id)
    except SemanticStoreError as e:
        raise to_http_error(e) from e

    return RecordResponse(id=record.id, dimension=record.dimension, vector=list(record.vector))
