"""Tests for the OpenAI embedding service."""

import pytest

from src.core.errors import ProviderError
from src.rag.embedder import Embedder, create_openai_client

from tests.conftest import MODEL, FakeOpenAI


async def test_embeds_single_input_with_pinned_model():
    client = FakeOpenAI(vectors={"frações": [0.1, 0.2, 0.3]})
    embedder = Embedder(client, MODEL, timeout=7.5)

    vector = await embedder.embed_text("  frações  ")

    assert vector == [0.1, 0.2, 0.3]
    assert client.embedding_calls == [{"input": "frações", "model": MODEL, "timeout": 7.5}]


async def test_provider_failure_becomes_provider_error():
    client = FakeOpenAI()
    client.failing_inputs.add("texto")

    with pytest.raises(ProviderError, match="Embedding request failed"):
        await Embedder(client, MODEL).embed_text("texto")

    assert len(client.embedding_calls) == 1


async def test_empty_response_is_provider_error():
    client = FakeOpenAI()
    client.empty_response = True

    with pytest.raises(ProviderError, match="no data"):
        await Embedder(client, MODEL).embed_query("pergunta")


async def test_empty_text_is_rejected_without_a_call():
    client = FakeOpenAI()

    with pytest.raises(ValueError):
        await Embedder(client, MODEL).embed_text("   ")

    assert client.embedding_calls == []


def test_client_never_retries(settings):
    client = create_openai_client(settings)
    assert client.max_retries == 0
