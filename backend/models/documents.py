"""
文档与评分数据模型 - Document / ScoreResult / PairwiseResult
Wire names from the document store and scorer are camelCase; both spellings are accepted.
"""
from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel, to_snake

# 百分比取值范围 [0, 100]; anything outside is a malformed scorer result
Percent = Annotated[float, Field(ge=0, le=100)]


class WireModel(BaseModel):
    """Base for payloads exchanged with the document store and scorer"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Document(WireModel):
    """文档实体 - read-only for the duration of a run"""
    id: str = Field(..., min_length=1)
    folder: str = ""
    filename: str
    original_filename: str = ""
    size: int = 0
    ext: str = ""
    updated_at: Optional[datetime] = None


class JaccardResult(WireModel):
    intersection: int
    union: int
    score: float


class CosineTFIDFResult(WireModel):
    dot: float
    na2: float
    nb2: float
    score: float


class MatchingSegment(WireModel):
    text_a: str
    text_b: str
    score: float


class ScoreResult(WireModel):
    """
    单对文档的评分结果

    The raw scores (``near_duplicate``, ``topic_similarity``, ``final``) arrive as
    fractions in [0, 1]. The ``*_percent`` siblings are filled in here, once, and
    everything downstream only reads the percent values.
    """
    near_duplicate: float
    topic_similarity: float
    final: float

    near_duplicate_percent: Percent
    topic_similarity_percent: Percent
    final_percent: Percent

    doc1_text_content_length: Optional[int] = None
    doc2_text_content_length: Optional[int] = None
    doc1_tokens_length: Optional[int] = None
    doc2_tokens_length: Optional[int] = None
    doc1_shingles_length: Optional[int] = None
    doc2_shingles_length: Optional[int] = None
    jaccard: Optional[JaccardResult] = None
    cosine: Optional[CosineTFIDFResult] = None
    matching_segments: List[MatchingSegment] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _derive_percentages(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for raw, percent in (
            ("nearDuplicate", "nearDuplicatePercent"),
            ("topicSimilarity", "topicSimilarityPercent"),
            ("final", "finalPercent"),
        ):
            snake_raw = to_snake(raw)
            snake_percent = to_snake(percent)
            value = data.get(raw, data.get(snake_raw))
            if percent in data or snake_percent in data:
                continue
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                data[percent] = value * 100
        if data.get("matchingSegments") is None and data.get("matching_segments") is None:
            # 评分服务可能返回 null
            data.pop("matchingSegments", None)
            data.pop("matching_segments", None)
        return data

    @classmethod
    def from_percentages(
        cls,
        final_percent: float,
        near_duplicate_percent: Optional[float] = None,
        topic_similarity_percent: Optional[float] = None,
    ) -> "ScoreResult":
        """Build a result from percent values (fixtures, cached rows)."""
        near = final_percent if near_duplicate_percent is None else near_duplicate_percent
        topic = final_percent if topic_similarity_percent is None else topic_similarity_percent
        return cls(
            near_duplicate=near / 100,
            topic_similarity=topic / 100,
            final=final_percent / 100,
            near_duplicate_percent=near,
            topic_similarity_percent=topic,
            final_percent=final_percent,
        )


class PairwiseResult(BaseModel):
    """One scored pair, in the order the pair was generated"""

    model_config = ConfigDict(frozen=True)

    doc1: Document
    doc2: Document
    result: ScoreResult

    def involves(self, document_id: str) -> bool:
        return self.doc1.id == document_id or self.doc2.id == document_id

    def other(self, document_id: str) -> Document:
        """The counterpart of ``document_id`` in this pair."""
        return self.doc2 if self.doc1.id == document_id else self.doc1


class SimilarDocument(WireModel):
    """Row of the scorer's top-k similar-documents lookup"""
    id: str
    final_percent: Percent
    near_duplicate_percent: Percent
    topic_similarity_percent: Percent
