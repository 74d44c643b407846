"""Builders for HNSW vector, full-text (FTS) and MinHash-LSH index searches.

An index search is a clause ``~relation:index{ fields | options }`` inside a
rule body. The query payload (vector or text) always travels out of band as
the ``$_q`` parameter; names and numeric options are inlined.

The ``*_with_conditions`` variants append caller-supplied join conditions
after the index clause for hybrid search. That text and the ``filter``
expressions are not validated: they are inserted into the script as given.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Collection, List, Mapping, Optional, Sequence

from ..errors import UsageError
from ..literals import Vector, to_literal
from .base import (
    QUERY_PARAM,
    QueryRequest,
    bindings,
    ensure_identifier,
    ensure_identifiers,
    ensure_number,
    ensure_positive_int,
    ensure_text,
    format_options,
    merge_params,
)
from .relations import upsert


class VectorDistance(Enum):
    L2 = "L2"
    COSINE = "Cosine"
    INNER_PRODUCT = "InnerProduct"


class VectorDType(Enum):
    F32 = "F32"
    F64 = "F64"


class FtsTokenizer(Enum):
    """Tokenizer used when building FTS and LSH indices."""
    RAW = "Raw"
    SIMPLE = "Simple"
    CANGJIE = "Cangjie"


class FtsFilter:
    """Token filter applied, in order, after tokenization."""

    def to_script(self) -> str:
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FtsFilter):
            return NotImplemented
        return self.to_script() == other.to_script()

    def __hash__(self) -> int:
        return hash(self.to_script())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_script()!r})"


class Lowercase(FtsFilter):
    def to_script(self) -> str:
        return "Lowercase"


class AlphaNumOnly(FtsFilter):
    def to_script(self) -> str:
        return "AlphaNumOnly"


class AsciiFolding(FtsFilter):
    """Folds accented characters to their ASCII equivalents."""

    def to_script(self) -> str:
        return "AsciiFolding"


class Stemmer(FtsFilter):
    """Language stemming, e.g. ``Stemmer("english")``."""

    def __init__(self, language: str):
        self.language = ensure_identifier(language, "stemmer language")

    def to_script(self) -> str:
        return f"Stemmer('{self.language}')"


class Stopwords(FtsFilter):
    """Stopword removal by ISO 639-1 code, e.g. ``Stopwords("en")``."""

    def __init__(self, language: str):
        self.language = ensure_identifier(language, "stopwords language")

    def to_script(self) -> str:
        return f"Stopwords('{self.language}')"


def _index_target(relation: str, index: str) -> str:
    return f"{ensure_identifier(relation, 'relation')}:{ensure_identifier(index, 'index name')}"


def _enum_value(value: Any, enum_type: type, ctx: str) -> str:
    if isinstance(value, enum_type):
        return value.value
    try:
        return enum_type(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise UsageError(f"{ctx} must be one of: {allowed}") from None


def _tokenizer_options(tokenizer: Any, filters: Sequence[FtsFilter]) -> List[str]:
    parts = [f"tokenizer: {_enum_value(tokenizer, FtsTokenizer, 'tokenizer')}"]
    if filters:
        for idx, item in enumerate(filters):
            if not isinstance(item, FtsFilter):
                raise UsageError(f"filters[{idx}] must be an FtsFilter")
        parts.append("filters: [" + ", ".join(item.to_script() for item in filters) + "]")
    return parts


def _bool(value: bool) -> str:
    return "true" if value else "false"


# Index management


def create_hnsw_index(
    relation: str,
    index: str,
    *,
    dim: int,
    fields: Sequence[str],
    distance: VectorDistance = VectorDistance.COSINE,
    dtype: VectorDType = VectorDType.F32,
    m: int = 50,
    ef_construction: int = 200,
    extend_candidates: bool = False,
    keep_pruned_connections: bool = False,
) -> QueryRequest:
    """Create an HNSW index over the vector columns ``fields``.

    ``m`` bounds the edges per graph node; ``ef_construction`` sizes the
    candidate list during the build. Both trade build time for recall.
    """
    options = [
        f"dim: {ensure_positive_int(dim, 'dim')}",
        f"m: {ensure_positive_int(m, 'm')}",
        f"dtype: {_enum_value(dtype, VectorDType, 'dtype')}",
        f"fields: [{bindings(ensure_identifiers(fields, 'fields'))}]",
        f"distance: {_enum_value(distance, VectorDistance, 'distance')}",
        f"ef_construction: {ensure_positive_int(ef_construction, 'ef_construction')}",
        f"extend_candidates: {_bool(extend_candidates)}",
        f"keep_pruned_connections: {_bool(keep_pruned_connections)}",
    ]
    return QueryRequest(f"::hnsw create {_index_target(relation, index)} {{ {format_options(options)} }}")


def drop_hnsw_index(relation: str, index: str) -> QueryRequest:
    return QueryRequest(f"::hnsw drop {_index_target(relation, index)}")


def create_fts_index(
    relation: str,
    index: str,
    *,
    extractor: str,
    tokenizer: FtsTokenizer = FtsTokenizer.SIMPLE,
    filters: Sequence[FtsFilter] = (),
) -> QueryRequest:
    """Create a BM25 full-text index over the text column ``extractor``."""
    options = [f"extractor: {ensure_identifier(extractor, 'extractor')}"]
    options.extend(_tokenizer_options(tokenizer, filters))
    return QueryRequest(f"::fts create {_index_target(relation, index)} {{ {format_options(options)} }}")


def drop_fts_index(relation: str, index: str) -> QueryRequest:
    return QueryRequest(f"::fts drop {_index_target(relation, index)}")


def create_lsh_index(
    relation: str,
    index: str,
    *,
    extractor: str,
    tokenizer: FtsTokenizer = FtsTokenizer.SIMPLE,
    filters: Sequence[FtsFilter] = (),
    n_perm: int = 200,
    target_threshold: float = 0.7,
    n_gram: int = 3,
    false_positive_weight: float = 1.0,
    false_negative_weight: float = 1.0,
) -> QueryRequest:
    """Create a MinHash-LSH index for near-duplicate detection.

    ``target_threshold`` is the Jaccard similarity above which two documents
    count as similar.
    """
    threshold = ensure_number(target_threshold, "target_threshold")
    if not 0.0 <= threshold <= 1.0:
        raise UsageError("target_threshold must be between 0 and 1")
    options = [f"extractor: {ensure_identifier(extractor, 'extractor')}"]
    options.extend(_tokenizer_options(tokenizer, filters))
    options.extend(
        [
            f"n_perm: {ensure_positive_int(n_perm, 'n_perm')}",
            f"target_threshold: {to_literal(float(threshold))}",
            f"n_gram: {ensure_positive_int(n_gram, 'n_gram')}",
            f"false_positive_weight: {to_literal(float(ensure_number(false_positive_weight, 'false_positive_weight')))}",
            f"false_negative_weight: {to_literal(float(ensure_number(false_negative_weight, 'false_negative_weight')))}",
        ]
    )
    return QueryRequest(f"::lsh create {_index_target(relation, index)} {{ {format_options(options)} }}")


def drop_lsh_index(relation: str, index: str) -> QueryRequest:
    return QueryRequest(f"::lsh drop {_index_target(relation, index)}")


# Searches


def _search_script(
    relation: str,
    index: str,
    bind_fields: Sequence[str],
    options: Sequence[Optional[str]],
    output_fields: Sequence[str],
    join_conditions: Optional[str] = None,
) -> str:
    target = _index_target(relation, index)
    fields = ensure_identifiers(bind_fields, "bind_fields")
    clause = f"~{target}{{ {bindings(fields)} | {format_options(options)} }}"
    if join_conditions is not None:
        clause = f"{clause}, {ensure_text(join_conditions, 'join_conditions')}"
    return f"?[{bindings(output_fields)}] := {clause}"


def _vector_payload(query_vector: Any) -> List[float]:
    if isinstance(query_vector, (str, bytes)) or not isinstance(query_vector, (Sequence, Vector)):
        raise UsageError("query_vector must be a sequence of numbers")
    vector = query_vector if isinstance(query_vector, Vector) else Vector(query_vector)
    if not len(vector):
        raise UsageError("query_vector must not be empty")
    return list(vector.values)


def _vector_options(
    k: int,
    ef: Optional[int],
    bind_distance: str,
    radius: Optional[float],
    filter: Optional[str] = None,
) -> List[Optional[str]]:
    k = ensure_positive_int(k, "k")
    effective_ef = k if ef is None else ensure_positive_int(ef, "ef")
    return [
        f"query: vec(${QUERY_PARAM})",
        f"k: {k}",
        f"ef: {effective_ef}",
        f"bind_distance: {bind_distance}",
        None if radius is None else f"radius: {to_literal(float(ensure_number(radius, 'radius')))}",
        None if filter is None else f"filter: {ensure_text(filter, 'filter')}",
    ]


def vector_search(
    relation: str,
    index: str,
    *,
    query_vector: Sequence[float],
    bind_fields: Sequence[str],
    k: int = 10,
    ef: Optional[int] = None,
    bind_distance: str = "distance",
    radius: Optional[float] = None,
    filter: Optional[str] = None,
) -> QueryRequest:
    """Approximate k-nearest-neighbour search over an HNSW index.

    Args:
        relation: Indexed stored relation.
        index: HNSW index name.
        query_vector: Vector to search for; its length must match the index.
        bind_fields: Columns of ``relation`` to return.
        k: Number of neighbours to return.
        ef: Search-time candidate list size; defaults to ``k``.
        bind_distance: Output column receiving each neighbour's distance.
        radius: Only return neighbours within this distance.
        filter: Script expression pre-filtering candidates.

    Returns:
        A read-only request whose output columns are ``bind_fields`` followed
        by ``bind_distance``.
    """
    bind_distance = ensure_identifier(bind_distance, "bind_distance")
    outputs = ensure_identifiers(list(bind_fields) + [bind_distance], "output fields")
    script = _search_script(
        relation, index, bind_fields, _vector_options(k, ef, bind_distance, radius, filter), outputs
    )
    return QueryRequest(script, {QUERY_PARAM: _vector_payload(query_vector)}, immutable=True)


def vector_search_with_conditions(
    relation: str,
    index: str,
    *,
    query_vector: Sequence[float],
    bind_fields: Sequence[str],
    join_conditions: str,
    output_fields: Sequence[str],
    k: int = 10,
    ef: Optional[int] = None,
    bind_distance: str = "distance",
    radius: Optional[float] = None,
    additional_params: Optional[Mapping[str, Any]] = None,
) -> QueryRequest:
    """Vector search joined with further rule atoms (hybrid search).

    ```python
    vector_search_with_conditions(
        "documents", "doc_vec_idx",
        query_vector=embedding,
        bind_fields=["id", "content"],
        k=50,
        join_conditions="*documents{id, author_id}, *users{author_id, author_name}",
        output_fields=["content", "author_name", "distance"],
    )
    ```
    """
    bind_distance = ensure_identifier(bind_distance, "bind_distance")
    script = _search_script(
        relation,
        index,
        bind_fields,
        _vector_options(k, ef, bind_distance, radius),
        ensure_identifiers(output_fields, "output_fields"),
        join_conditions,
    )
    params = merge_params({QUERY_PARAM: _vector_payload(query_vector)}, additional_params)
    return QueryRequest(script, params, immutable=True)


def _text_options(k: int, bind_score: Optional[str], filter: Optional[str] = None) -> List[Optional[str]]:
    return [
        f"query: ${QUERY_PARAM}",
        f"k: {ensure_positive_int(k, 'k')}",
        None if bind_score is None else f"bind_score: {bind_score}",
        None if filter is None else f"filter: {ensure_text(filter, 'filter')}",
    ]


def text_search(
    relation: str,
    index: str,
    *,
    query_text: str,
    bind_fields: Sequence[str],
    k: int = 10,
    bind_score: str = "score",
    filter: Optional[str] = None,
) -> QueryRequest:
    """BM25-ranked full-text search; outputs ``bind_fields`` plus ``bind_score``."""
    bind_score = ensure_identifier(bind_score, "bind_score")
    outputs = ensure_identifiers(list(bind_fields) + [bind_score], "output fields")
    script = _search_script(relation, index, bind_fields, _text_options(k, bind_score, filter), outputs)
    return QueryRequest(script, {QUERY_PARAM: ensure_text(query_text, "query_text")}, immutable=True)


def text_search_with_conditions(
    relation: str,
    index: str,
    *,
    query_text: str,
    bind_fields: Sequence[str],
    join_conditions: str,
    output_fields: Sequence[str],
    k: int = 10,
    bind_score: str = "score",
    additional_params: Optional[Mapping[str, Any]] = None,
) -> QueryRequest:
    bind_score = ensure_identifier(bind_score, "bind_score")
    script = _search_script(
        relation,
        index,
        bind_fields,
        _text_options(k, bind_score),
        ensure_identifiers(output_fields, "output_fields"),
        join_conditions,
    )
    params = merge_params({QUERY_PARAM: ensure_text(query_text, "query_text")}, additional_params)
    return QueryRequest(script, params, immutable=True)


def similarity_search(
    relation: str,
    index: str,
    *,
    query_text: str,
    bind_fields: Sequence[str],
    k: int = 10,
) -> QueryRequest:
    """Near-duplicate lookup through an LSH index."""
    fields = ensure_identifiers(bind_fields, "bind_fields")
    script = _search_script(relation, index, fields, _text_options(k, None), fields)
    return QueryRequest(script, {QUERY_PARAM: ensure_text(query_text, "query_text")}, immutable=True)


def similarity_search_with_conditions(
    relation: str,
    index: str,
    *,
    query_text: str,
    bind_fields: Sequence[str],
    join_conditions: str,
    output_fields: Sequence[str],
    k: int = 10,
    additional_params: Optional[Mapping[str, Any]] = None,
) -> QueryRequest:
    script = _search_script(
        relation,
        index,
        bind_fields,
        _text_options(k, None),
        ensure_identifiers(output_fields, "output_fields"),
        join_conditions,
    )
    params = merge_params({QUERY_PARAM: ensure_text(query_text, "query_text")}, additional_params)
    return QueryRequest(script, params, immutable=True)


def vector_upsert(
    relation: str,
    rows: Sequence[Mapping[str, Any]],
    *,
    vector_columns: Collection[str],
) -> QueryRequest:
    """Upsert rows whose ``vector_columns`` hold embeddings."""
    if isinstance(vector_columns, str):
        vector_columns = (vector_columns,)
    names = ensure_identifiers(list(vector_columns), "vector_columns")
    return upsert(relation, rows, vector_columns=names)
