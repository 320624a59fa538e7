"""Embedding storage, similarity search, recommendations, and duplicate detection."""

import logging

from .core import (
    DEFAULT_DUPLICATE_THRESHOLD,
    MAX_RECOMMENDATION_LIMIT,
    CancellationToken,
    DimensionMismatchError,
    DuplicateClusterer,
    DuplicateGroup,
    DuplicateMember,
    DuplicateOptions,
    DuplicateReport,
    EmbeddingStore,
    EmbeddingVector,
    EngineConfig,
    Float32BlobCodec,
    ImageRef,
    InvalidArgumentError,
    NotReadyError,
    OperationCancelledError,
    RecommendationCandidate,
    RecommendationEngine,
    RecommendationOptions,
    RecommendationReason,
    RecommendationResult,
    RecommendationsEmpty,
    RecommendationsFound,
    SimilarityEngineError,
    SimilarityIndexAdapter,
    SimilarityResult,
    StorageFailureError,
    UnionFind,
    VectorBlobCodec,
    VectorMetric,
    ViewHistoryEntry,
    distance_to_score,
)
from .factory import open_embedding_store
from .ports import (
    Database,
    FaissVectorStore,
    InMemoryImageCatalog,
    InMemoryVectorStore,
    InMemoryViewHistory,
    SQLiteDialect,
    SQLiteVectorStore,
    SQLiteViewHistory,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "open_embedding_store",
    "EngineConfig",
    "CancellationToken",
    "EmbeddingStore",
    "EmbeddingVector",
    "SimilarityResult",
    "SimilarityIndexAdapter",
    "VectorMetric",
    "VectorBlobCodec",
    "Float32BlobCodec",
    "distance_to_score",
    "RecommendationEngine",
    "RecommendationOptions",
    "RecommendationReason",
    "RecommendationCandidate",
    "RecommendationResult",
    "RecommendationsFound",
    "RecommendationsEmpty",
    "ViewHistoryEntry",
    "MAX_RECOMMENDATION_LIMIT",
    "DuplicateClusterer",
    "DuplicateOptions",
    "DuplicateReport",
    "DuplicateGroup",
    "DuplicateMember",
    "ImageRef",
    "UnionFind",
    "DEFAULT_DUPLICATE_THRESHOLD",
    "SimilarityEngineError",
    "DimensionMismatchError",
    "InvalidArgumentError",
    "NotReadyError",
    "StorageFailureError",
    "OperationCancelledError",
    "Database",
    "SQLiteDialect",
    "InMemoryVectorStore",
    "SQLiteVectorStore",
    "FaissVectorStore",
    "InMemoryViewHistory",
    "InMemoryImageCatalog",
    "SQLiteViewHistory",
]
