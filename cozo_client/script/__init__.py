"""Script builders: one pure function per logical operation, each returning a QueryRequest."""

from . import graph, relations, search, system
from .base import QueryRequest
from .fixed import read_csv, read_json, reorder_sort, reorder_sort_rule
from .graph import ALGORITHMS, Algorithm, run_algorithm
from .relations import create_relation, delete, noop, select_all, upsert
from .search import (
    AlphaNumOnly,
    AsciiFolding,
    FtsFilter,
    FtsTokenizer,
    Lowercase,
    Stemmer,
    Stopwords,
    VectorDistance,
    VectorDType,
    create_fts_index,
    create_hnsw_index,
    create_lsh_index,
    drop_fts_index,
    drop_hnsw_index,
    drop_lsh_index,
    similarity_search,
    similarity_search_with_conditions,
    text_search,
    text_search_with_conditions,
    vector_search,
    vector_search_with_conditions,
    vector_upsert,
)

__all__ = [
    "QueryRequest",
    "graph",
    "relations",
    "search",
    "system",
    # Relations
    "upsert",
    "delete",
    "create_relation",
    "select_all",
    "noop",
    # Graph algorithms
    "Algorithm",
    "ALGORITHMS",
    "run_algorithm",
    # Fixed rules
    "reorder_sort",
    "reorder_sort_rule",
    "read_csv",
    "read_json",
    # Search
    "VectorDistance",
    "VectorDType",
    "FtsTokenizer",
    "FtsFilter",
    "Lowercase",
    "AlphaNumOnly",
    "AsciiFolding",
    "Stemmer",
    "Stopwords",
    "create_hnsw_index",
    "drop_hnsw_index",
    "create_fts_index",
    "drop_fts_index",
    "create_lsh_index",
    "drop_lsh_index",
    "vector_search",
    "vector_search_with_conditions",
    "text_search",
    "text_search_with_conditions",
    "similarity_search",
    "similarity_search_with_conditions",
    "vector_upsert",
]
