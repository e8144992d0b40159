from datetime import UTC, datetime

from qdrant_client import models as q

from knowledge_rag.adapters import qdrant_mapper
from knowledge_rag.core.constants import DENSE_VEC
from knowledge_rag.core.models import PassageToUpload


def test_passage_to_point_payload_and_vector() -> None:
    uploaded_at = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    point = qdrant_mapper.passage_to_point(
        PassageToUpload(content="hello", page=4),
        point_id="00000000-0000-0000-0000-000000000001",
        vector=[0.6, 0.8],
        document_id="doc.pdf",
        filename="doc.pdf",
        file_type="pdf",
        chunk_index=2,
        total_chunks=5,
        uploaded_at=uploaded_at,
    )

    assert point.id == "00000000-0000-0000-0000-000000000001"
    assert point.vector == {DENSE_VEC: [0.6, 0.8]}
    assert point.payload == {
        "content": "hello",
        "metadata": {
            "document_id": "doc.pdf",
            "filename": "doc.pdf",
            "file_type": "pdf",
            "chunk_index": 2,
            "total_chunks": 5,
            "source_type": "text",
            "uploaded_at": "2024-05-01T12:00:00+00:00",
            "page": 4,
        },
    }


def test_scored_point_to_candidate() -> None:
    point = q.ScoredPoint(
        id="abc",
        version=1,
        score=0.91,
        payload={"content": "text", "metadata": {"document_id": "a.txt"}},
    )

    candidate = qdrant_mapper.scored_point_to_candidate(point)

    assert candidate.id == "abc"
    assert candidate.score == 0.91
    assert candidate.content == "text"
    assert candidate.metadata == {"document_id": "a.txt"}


def test_candidate_tolerates_missing_payload() -> None:
    candidate = qdrant_mapper.record_to_candidate(q.Record(id=7, payload=None))

    assert candidate.id == "7"
    assert candidate.score == 0.0
    assert candidate.content == ""
    assert candidate.metadata == {}
