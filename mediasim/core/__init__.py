"""Public core API for embedding storage, recommendations, and duplicates."""

from .cancellation import CancellationToken
from .config import EngineConfig
from .duplicates.clusterer import DuplicateClusterer
from .duplicates.duplicate_types import (
    DEFAULT_DUPLICATE_THRESHOLD,
    DuplicateGroup,
    DuplicateMember,
    DuplicateOptions,
    DuplicateReport,
    ImageRef,
)
from .duplicates.union_find import UnionFind
from .errors import (
    DimensionMismatchError,
    InvalidArgumentError,
    NotReadyError,
    OperationCancelledError,
    SimilarityEngineError,
    StorageFailureError,
)
from .recommendations.engine import RecommendationEngine, merge_candidates
from .recommendations.recommendation_types import (
    MAX_RECOMMENDATION_LIMIT,
    RecommendationCandidate,
    RecommendationOptions,
    RecommendationReason,
    RecommendationResult,
    RecommendationsEmpty,
    RecommendationsFound,
    ViewHistoryEntry,
)
from .vectors.embedding_store import EmbeddingStore
from .vectors.similarity_index import SimilarityIndexAdapter
from .vectors.vector_codecs import Float32BlobCodec, VectorBlobCodec
from .vectors.vector_metrics import (
    VectorMetric,
    VectorMetricInput,
    distance_to_score,
    normalize_vector_metric,
)
from .vectors.vector_types import EmbeddingVector, SimilarityResult

__all__ = [
    "CancellationToken",
    "EngineConfig",
    "EmbeddingStore",
    "EmbeddingVector",
    "SimilarityResult",
    "SimilarityIndexAdapter",
    "VectorMetric",
    "VectorMetricInput",
    "VectorBlobCodec",
    "Float32BlobCodec",
    "normalize_vector_metric",
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
    "merge_candidates",
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
]
