import logging
from dataclasses import dataclass, field
from typing import Any

import chromadb
from chromadb.config import Settings
from chromadb.utils import embedding_functions

from . import config

logger = logging.getLogger(__name__)


@dataclass
class Passage:
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float | None = None


def chunk_text(text: str, chunk_size: int = 2000, overlap: int = 200) -> list[str]:
    """Split text into overlapping character chunks with simple natural break detection."""
    chunks: list[str] = []
    start = 0
    text_len = len(text)

    while start < text_len:
        end = min(start + chunk_size, text_len)

        if end < text_len:
            break_point = end
            for i in range(end, max(start, end - 100), -1):
                if text[i] in ["\n", ".", " "]:
                    break_point = i + 1
                    break
            end = break_point

        chunks.append(text[start:end])
        if end >= text_len:
            break
        start = max(end - overlap, start + 1)

    return chunks


def _tenant_filter(company_id) -> dict[str, Any]:
    return {"company_id": str(company_id)}


def _default_embedding_function():
    if config.EMBEDDING_API_KEY:
        return embedding_functions.OpenAIEmbeddingFunction(
            api_key=config.EMBEDDING_API_KEY,
            api_base=config.EMBEDDING_BASE_URL,
            model_name=config.EMBEDDING_MODEL,
        )
    return embedding_functions.DefaultEmbeddingFunction()


class RetrievalIndex:
    """Company-partitioned vector index over document and chat content."""

    available = True

    def __init__(self, client=None, collection_name: str = config.CHROMA_COLLECTION, embedding_function=None):
        self.client = client or chromadb.PersistentClient(
            path=config.CHROMA_PATH,
            settings=Settings(allow_reset=True, anonymized_telemetry=False),
        )
        self.collection_name = collection_name
        self.embedding_function = embedding_function
        self._collection = None

    @property
    def collection(self):
        # get-or-create makes concurrent cold starts harmless
        if self._collection is None:
            kwargs = {"name": self.collection_name, "metadata": {"hnsw:space": "cosine"}}
            if self.embedding_function is None:
                self.embedding_function = _default_embedding_function()
            kwargs["embedding_function"] = self.embedding_function
            self._collection = self.client.get_or_create_collection(**kwargs)
        return self._collection

    def store_document(self, company_id, document_id, content: str, metadata: dict | None = None) -> str:
        point_id = f"doc_{document_id}"
        chunks = chunk_text(content)
        if not chunks:
            return point_id
        self.delete_document(document_id)
        extra = {key: str(value) for key, value in (metadata or {}).items() if value is not None}
        ids = [f"{point_id}_{i}" for i in range(len(chunks))]
        metadatas = [
            {
                **extra,
                "company_id": str(company_id),
                "document_id": str(document_id),
                "source": "document",
                "chunk_index": i,
            }
            for i in range(len(chunks))
        ]
        try:
            self.collection.upsert(documents=chunks, metadatas=metadatas, ids=ids)
            logger.info("Indexed %s chunk(s) for document %s", len(chunks), document_id)
        except Exception as e:
            logger.error("Error indexing document %s: %s", document_id, e)
            raise
        return point_id

    def store_chat_message(self, company_id, message_id, content: str, role: str) -> str:
        point_id = f"msg_{message_id}"
        try:
            self.collection.upsert(
                documents=[content],
                metadatas=[{
                    "company_id": str(company_id),
                    "message_id": str(message_id),
                    "source": "chat_message",
                    "role": role,
                }],
                ids=[point_id],
            )
        except Exception as e:
            logger.error("Error indexing chat message %s: %s", message_id, e)
            raise
        return point_id

    def search(self, company_id, query: str, limit: int = 5) -> list[Passage]:
        if not query:
            return []
        try:
            results = self.collection.query(
                query_texts=[query],
                n_results=limit,
                where=_tenant_filter(company_id),
            )
        except Exception as e:
            logger.error("Error querying index for company %s: %s", company_id, e)
            return []

        documents = (results.get("documents") or [[]])[0] or []
        metadatas = (results.get("metadatas") or [[]])[0] or []
        distances = (results.get("distances") or [[]])[0] or []
        passages = []
        for idx, document in enumerate(documents):
            metadata = metadatas[idx] if idx < len(metadatas) and isinstance(metadatas[idx], dict) else {}
            # Chroma applies the filter, this guards against a misconfigured backend.
            if metadata.get("company_id") != str(company_id):
                continue
            distance = distances[idx] if idx < len(distances) else None
            passages.append(Passage(
                content=document,
                metadata=metadata,
                score=None if distance is None else 1 - distance,
            ))
        return passages

    def delete_document(self, document_id):
        try:
            self.collection.delete(where={"document_id": str(document_id)})
        except Exception as e:
            logger.error("Error deleting document %s from index: %s", document_id, e)

    def delete_company(self, company_id):
        try:
            self.collection.delete(where={"company_id": str(company_id)})
        except Exception as e:
            logger.error("Error deleting index entries for company %s: %s", company_id, e)


class UnavailableRetrieval:
    available = False

    def store_document(self, company_id, document_id, content: str, metadata: dict | None = None) -> str:
        logger.warning("Retrieval index unavailable - skipping document storage")
        return f"mock_{document_id}"

    def store_chat_message(self, company_id, message_id, content: str, role: str) -> str:
        logger.warning("Retrieval index unavailable - skipping message storage")
        return f"mock_{message_id}"

    def search(self, company_id, query: str, limit: int = 5) -> list[Passage]:
        return []

    def delete_document(self, document_id):
        return None

    def delete_company(self, company_id):
        return None
