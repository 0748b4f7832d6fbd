"""Query pipeline: question -> retrieval -> streamed grounded answer.

`QueryPipeline.answer()` does all the work that can still fail with a
plain HTTP status (validation, no matches) before returning an
`AnswerStream`. Iterating the stream opens the chat completion and yields
`start`, `token`... and `end`, or a terminal `error` event. The stream
itself never raises.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from typing import Any

from openai import AsyncOpenAI

from src.core.errors import (
    NoRelevantInformationError,
    PersistenceError,
    ProviderError,
    QuestionValidationError,
)
from src.observability.metrics import QUERY_DURATION, QUERY_TOTAL
from src.rag.events import AnswerEvent, EndEvent, ErrorEvent, StartEvent, TokenEvent
from src.rag.prompts import (
    NO_INFO_FOUND,
    QUESTION_REQUIRED,
    QUESTION_TOO_LONG,
    QUESTION_TOO_SHORT,
    STREAM_ERROR,
)
from src.rag.retriever import Retriever, distinct_sources

logger = logging.getLogger(__name__)


def validate_question(question: Any, min_length: int = 10, max_length: int = 500) -> str:
    """Return the stripped question or raise QuestionValidationError.

    Anything other than a non-blank string counts as a missing question.
    """
    if not isinstance(question, str) or not question.strip():
        raise QuestionValidationError(QUESTION_REQUIRED)
    question = question.strip()
    if len(question) < min_length:
        raise QuestionValidationError(QUESTION_TOO_SHORT.format(min_length=min_length))
    if len(question) > max_length:
        raise QuestionValidationError(QUESTION_TOO_LONG.format(max_length=max_length))
    return question


class AnswerStream:
    """Async iterator of answer events for one question.

    Tokens are forwarded as they arrive from the chat completion; nothing
    is buffered. Closing or cancelling the consumer closes the upstream
    stream.
    """

    def __init__(
        self,
        chat_client: AsyncOpenAI | None = None,
        request: dict | None = None,
        sources: list[str] | None = None,
        stream_timeout: float = 120.0,
        error: str | None = None,
    ):
        self.chat_client = chat_client
        self.request = request or {}
        self.sources = sources or []
        self.stream_timeout = stream_timeout
        self.error = error

    @classmethod
    def failed(cls, message: str) -> "AnswerStream":
        """A stream that yields a single error event."""
        return cls(error=message)

    def __aiter__(self) -> AsyncIterator[AnswerEvent]:
        return self._events()

    async def _events(self) -> AsyncIterator[AnswerEvent]:
        if self.error is not None:
            QUERY_TOTAL.labels(outcome="error").inc()
            yield ErrorEvent(error=self.error)
            return

        started = time.perf_counter()
        stream = None
        outcome = "error"

        try:
            stream = await self.chat_client.chat.completions.create(
                **self.request, stream=True
            )
            yield StartEvent(sources=self.sources)

            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.stream_timeout
            iterator = stream.__aiter__()

            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise asyncio.TimeoutError()
                try:
                    chunk = await asyncio.wait_for(iterator.__anext__(), timeout=remaining)
                except StopAsyncIteration:
                    break

                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield TokenEvent(content=content)

            yield EndEvent(sources=self.sources)
            outcome = "answered"

        except asyncio.TimeoutError:
            logger.error(f"Answer stream exceeded {self.stream_timeout}s")
            yield ErrorEvent(error=f"{STREAM_ERROR}: tempo limite excedido")
        except Exception as e:
            logger.error(f"Answer stream failed: {e}", exc_info=True)
            yield ErrorEvent(error=f"{STREAM_ERROR}: {e}")
        finally:
            if stream is not None:
                await stream.close()
            QUERY_TOTAL.labels(outcome=outcome).inc()
            QUERY_DURATION.observe(time.perf_counter() - started)


class QueryPipeline:
    """Answers curriculum questions with retrieval-grounded streamed completions."""

    def __init__(
        self,
        retriever: Retriever,
        chat_client: AsyncOpenAI,
        chat_model: str = "gpt-4",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        stream_timeout: float = 120.0,
        min_question_length: int = 10,
        max_question_length: int = 500,
    ):
        self.retriever = retriever
        self.chat_client = chat_client
        self.chat_model = chat_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.stream_timeout = stream_timeout
        self.min_question_length = min_question_length
        self.max_question_length = max_question_length
        self._model_verified = False

    def validate(self, question: Any) -> str:
        try:
            return validate_question(
                question, self.min_question_length, self.max_question_length
            )
        except QuestionValidationError:
            QUERY_TOTAL.labels(outcome="invalid").inc()
            raise

    async def answer(self, question: Any) -> AnswerStream:
        """Prepare the answer stream for a question.

        Args:
            question: Raw user question

        Returns:
            AnswerStream ready to iterate

        Raises:
            QuestionValidationError: Before any network call
            NoRelevantInformationError: If nothing matched above the threshold
            EmbeddingModelMismatchError: If the store holds vectors from another model
        """
        question = self.validate(question)

        if not self._model_verified:
            await self.retriever.vector_store.verify_embedding_model()
            self._model_verified = True

        try:
            matches = await self.retriever.retrieve(question)
        except (ProviderError, PersistenceError) as e:
            logger.error(f"Retrieval failed: {e.message}")
            return AnswerStream.failed(f"{STREAM_ERROR}: {e.message}")

        if not matches:
            QUERY_TOTAL.labels(outcome="no_match").inc()
            logger.info("No chunks matched the question above the threshold")
            raise NoRelevantInformationError(NO_INFO_FOUND)

        sources = distinct_sources(matches)
        logger.info(f"Answering from {len(matches)} chunks across sources {sources}")

        request = {
            "model": self.chat_model,
            "messages": self.retriever.build_messages(question, matches),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        return AnswerStream(
            chat_client=self.chat_client,
            request=request,
            sources=sources,
            stream_timeout=self.stream_timeout,
        )
