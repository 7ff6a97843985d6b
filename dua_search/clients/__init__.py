"""
Upstream clients: embeddings, vector search, and chat completions.

Each client has a Protocol for duck typing and a Fake for tests.
"""
from dua_search.clients.chat import (
    ChatClient,
    ChatClientError,
    ChatClientProtocol,
    FakeChatClient,
)
from dua_search.clients.embedding import (
    EmbeddingClient,
    EmbeddingClientError,
    EmbeddingClientProtocol,
    FakeEmbeddingClient,
)
from dua_search.clients.vector_search import (
    EditionSourceProtocol,
    FakeVectorSearchClient,
    SearchClientError,
    VectorSearchClient,
    VectorSearchClientProtocol,
)

__all__ = [
    "ChatClient",
    "ChatClientError",
    "ChatClientProtocol",
    "EditionSourceProtocol",
    "EmbeddingClient",
    "EmbeddingClientError",
    "EmbeddingClientProtocol",
    "FakeChatClient",
    "FakeEmbeddingClient",
    "FakeVectorSearchClient",
    "SearchClientError",
    "VectorSearchClient",
    "VectorSearchClientProtocol",
]
