"""Unit tests for vector store backends."""

import threading
import uuid
import pytest
from unittest.mock import MagicMock

from replydash.models import CompanyStats
from replydash.rag.chunker import TextChunk
from replydash.rag.config import RAGConfig
from replydash.rag.vector_store import (
    InMemoryVectorStore,
    InvalidCompanyIdError,
    VectorStore,
    VectorStoreError,
    get_vector_store,
    validate_company_id,
)


def make_chunks(count, prefix="chunk"):
    return [TextChunk(content=f"{prefix} {i}", token_count=2, chunk_index=i) for i in range(count)]


def make_embeddings(count):
    return [[1.0, float(i), 0.0] for i in range(count)]


@pytest.fixture
def supabase_client():
    """Mock Supabase client."""
    return MagicMock()


@pytest.fixture
def supabase_store(supabase_client):
    return VectorStore(RAGConfig(), client=supabase_client)


class TestValidateCompanyId:
    """Tests for company id validation."""

    def test_accepts_uuid(self):
        company_id = str(uuid.uuid4())
        assert validate_company_id(company_id) == company_id

    def test_accepts_uppercase(self):
        assert validate_company_id(str(uuid.uuid4()).upper())

    @pytest.mark.parametrize("value", ["not-a-uuid", "", "1234", None, "'; drop table--"])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidCompanyIdError):
            validate_company_id(value)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            validate_company_id("not-a-uuid")


class TestStoreChunks:
    """Tests for store_chunks preconditions and batching."""

    def test_length_mismatch_writes_nothing(self, supabase_store, supabase_client, company_id):
        with pytest.raises(ValueError, match="same length"):
            supabase_store.store_chunks(company_id, "doc-1", make_chunks(3), make_embeddings(2))

        supabase_client.table.assert_not_called()

    def test_index_must_match_position(self, supabase_store, supabase_client, company_id):
        chunks = [TextChunk("a", 1, 0), TextChunk("b", 1, 2)]

        with pytest.raises(ValueError, match="position 1 has chunk_index 2"):
            supabase_store.store_chunks(company_id, "doc-1", chunks, make_embeddings(2))

        supabase_client.table.assert_not_called()

    def test_empty_store(self, supabase_store, supabase_client, company_id):
        assert supabase_store.store_chunks(company_id, "doc-1", [], []) == 0
        supabase_client.table.assert_not_called()

    def test_records_carry_metadata(self, supabase_store, supabase_client, company_id):
        supabase_store.store_chunks(
            company_id, "doc-1", make_chunks(2), make_embeddings(2), {"filename": "guide.pdf"}
        )

        supabase_client.table.assert_called_with("company_chunks")
        batch = supabase_client.table.return_value.insert.call_args.args[0]
        assert batch[1] == {
            "company_id": company_id,
            "document_id": "doc-1",
            "content": "chunk 1",
            "embedding": [1.0, 1.0, 0.0],
            "chunk_index": 1,
            "token_count": 2,
            "metadata": {"filename": "guide.pdf", "original_index": 1},
        }

    def test_batches_of_fifty(self, supabase_store, supabase_client, company_id):
        stored = supabase_store.store_chunks(
            company_id, "doc-1", make_chunks(120), make_embeddings(120)
        )

        sizes = [len(c.args[0]) for c in supabase_client.table.return_value.insert.call_args_list]
        assert sizes == [50, 50, 20]
        assert stored == 120

    def test_partial_failure_keeps_committed_batches(
        self, supabase_store, supabase_client, company_id
    ):
        execute = supabase_client.table.return_value.insert.return_value.execute
        execute.side_effect = [MagicMock(), Exception("payload too large")]

        with pytest.raises(VectorStoreError, match="payload too large"):
            supabase_store.store_chunks(company_id, "doc-1", make_chunks(120), make_embeddings(120))

        # Third batch never attempted
        assert supabase_client.table.return_value.insert.call_count == 2


class TestRetrieveRelevantChunks:
    """Tests for similarity search."""

    def test_invalid_company_id_issues_no_query(self, supabase_store, supabase_client):
        with pytest.raises(InvalidCompanyIdError):
            supabase_store.retrieve_relevant_chunks("not-a-uuid", [1.0, 0.0, 0.0])

        supabase_client.rpc.assert_not_called()

    def test_calls_search_rpc(self, supabase_store, supabase_client, company_id):
        rows = [{"content": "Refunds within 30 days", "similarity": 0.91}]
        supabase_client.rpc.return_value.execute.return_value.data = rows

        results = supabase_store.retrieve_relevant_chunks(
            company_id, [0.1, 0.2, 0.3], limit=5, similarity_threshold=0.8
        )

        assert results == rows
        supabase_client.rpc.assert_called_once_with("search_company_knowledge", {
            "p_company_id": company_id,
            "p_query_embedding": [0.1, 0.2, 0.3],
            "p_limit": 5,
            "p_similarity_threshold": 0.8,
        })

    def test_rpc_failure_wrapped(self, supabase_store, supabase_client, company_id):
        supabase_client.rpc.return_value.execute.side_effect = Exception("function does not exist")

        with pytest.raises(VectorStoreError, match="function does not exist"):
            supabase_store.retrieve_relevant_chunks(company_id, [1.0])


class TestCompanyStats:
    """Tests for company statistics."""

    def test_no_rows_returns_zeroes(self, supabase_store, supabase_client, company_id):
        supabase_client.rpc.return_value.execute.return_value.data = []

        assert supabase_store.get_company_stats(company_id) == CompanyStats()

    def test_null_aggregates_become_zero(self, supabase_store, supabase_client, company_id):
        supabase_client.rpc.return_value.execute.return_value.data = [{
            "total_documents": 0,
            "total_chunks": None,
            "total_tokens": None,
            "total_storage_bytes": None,
            "last_updated": None,
        }]

        stats = supabase_store.get_company_stats(company_id)

        assert stats.total_chunks == 0
        assert stats.last_updated is None

    def test_stats_values(self, supabase_store, supabase_client, company_id):
        supabase_client.rpc.return_value.execute.return_value.data = [{
            "total_documents": 2,
            "total_chunks": 14,
            "total_tokens": 5200,
            "total_storage_bytes": 20800,
            "last_updated": "2026-01-05T10:00:00+00:00",
        }]

        stats = supabase_store.get_company_stats(company_id)

        assert stats.total_documents == 2
        assert stats.total_tokens == 5200
        supabase_client.rpc.assert_called_once_with(
            "get_company_knowledge_stats", {"p_company_id": company_id}
        )


class TestDeleteDocumentChunks:
    """Tests for chunk deletion."""

    def test_deletes_by_document(self, supabase_store, supabase_client):
        supabase_store.delete_document_chunks("doc-1")

        supabase_client.table.return_value.delete.return_value.eq.assert_called_once_with(
            "document_id", "doc-1"
        )


class TestSupabaseConfiguration:
    """Tests for backend selection."""

    def test_requires_credentials(self):
        with pytest.raises(ValueError, match="Supabase credentials not configured"):
            VectorStore(RAGConfig(supabase_url=None, supabase_key=None))

    def test_memory_backend(self):
        store = get_vector_store(RAGConfig(vector_backend="memory"))
        assert isinstance(store, InMemoryVectorStore)


class TestInMemoryVectorStore:
    """Tests for the in-memory backend."""

    def test_retrieval_ranked_and_thresholded(self, vector_store, company_id):
        chunks = make_chunks(3)
        embeddings = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 1.0, 0.0]]
        vector_store.store_chunks(company_id, "doc-1", chunks, embeddings, {"filename": "faq.md"})

        results = vector_store.retrieve_relevant_chunks(
            company_id, [1.0, 0.0, 0.0], limit=10, similarity_threshold=0.5
        )

        assert [r["content"] for r in results] == ["chunk 0", "chunk 2"]
        assert results[0]["similarity"] >= results[1]["similarity"]
        assert results[0]["filename"] == "faq.md"

    def test_limit(self, vector_store, company_id):
        vector_store.store_chunks(
            company_id, "doc-1", make_chunks(5), [[1.0, 0.0, 0.0]] * 5
        )

        results = vector_store.retrieve_relevant_chunks(company_id, [1.0, 0.0, 0.0], limit=2)

        assert len(results) == 2

    def test_company_isolation(self, vector_store):
        company_a, company_b = str(uuid.uuid4()), str(uuid.uuid4())
        vector_store.store_chunks(company_a, "doc-a", make_chunks(2, "alpha"), [[1.0, 0.0]] * 2)
        vector_store.store_chunks(company_b, "doc-b", make_chunks(2, "beta"), [[1.0, 0.0]] * 2)

        results = vector_store.retrieve_relevant_chunks(company_a, [1.0, 0.0])

        assert {r["document_id"] for r in results} == {"doc-a"}

    def test_same_query_same_order(self, vector_store, company_id):
        vector_store.store_chunks(company_id, "doc-1", make_chunks(6), make_embeddings(6))
        query = [1.0, 2.5, 0.0]

        first = vector_store.retrieve_relevant_chunks(company_id, query, similarity_threshold=0.0)
        second = vector_store.retrieve_relevant_chunks(company_id, query, similarity_threshold=0.0)

        assert [r["id"] for r in first] == [r["id"] for r in second]

    def test_concurrent_stores(self, vector_store, company_id):
        """Two documents stored at once stay independently retrievable."""
        errors = []

        def store(document_id, prefix):
            try:
                vector_store.store_chunks(
                    company_id, document_id, make_chunks(200, prefix), [[1.0, 0.0]] * 200
                )
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=store, args=("doc-1", "first")),
            threading.Thread(target=store, args=("doc-2", "second")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert vector_store.count_chunks("doc-1") == 200
        assert vector_store.count_chunks("doc-2") == 200

        results = vector_store.retrieve_relevant_chunks(company_id, [1.0, 0.0], limit=400)
        by_document = {}
        for result in results:
            by_document.setdefault(result["document_id"], []).append(result)
        assert all(r["content"].startswith("first") for r in by_document["doc-1"])
        assert all(r["content"].startswith("second") for r in by_document["doc-2"])
        assert sorted(r["chunk_index"] for r in by_document["doc-1"]) == list(range(200))

    def test_delete_document_chunks(self, vector_store, company_id):
        vector_store.store_chunks(company_id, "doc-1", make_chunks(3), make_embeddings(3))
        vector_store.store_chunks(company_id, "doc-2", make_chunks(2), make_embeddings(2))

        vector_store.delete_document_chunks("doc-1")

        assert vector_store.count_chunks("doc-1") == 0
        assert vector_store.count_chunks("doc-2") == 2

    def test_stats(self, vector_store, company_id):
        vector_store.store_chunks(company_id, "doc-1", make_chunks(3), make_embeddings(3))
        vector_store.store_chunks(company_id, "doc-2", make_chunks(1), make_embeddings(1))

        stats = vector_store.get_company_stats(company_id)

        assert stats.total_documents == 2
        assert stats.total_chunks == 4
        assert stats.total_tokens == 8
        assert stats.total_storage_bytes == len("chunk 0") * 4
        assert stats.last_updated is not None

    def test_stats_for_unknown_company(self, vector_store, company_id):
        assert vector_store.get_company_stats(company_id) == CompanyStats()
