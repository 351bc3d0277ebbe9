"""Query orchestration: one question at a time through the RAG core."""

import asyncio

from .answer import extract_answer
from .config import config
from .exceptions import (
    ConfigurationError,
    GenerationFailure,
    QueryInProgressError,
    SessionNotReadyError,
)
from .generation import GenerationOptions, Generator
from .models import QueryResult, QueryState
from .pipeline import RAGPipeline, ResumeSession
from .prompting import build_prompt
from .similarity import rank_chunks
from .sinks import LoggingSink, MessageHandle, UISink

logger = config.get_logger(__name__)

ASSISTANT = "Assistant"
USER = "User"

GREETING = "Hi there! I've read the resume. How can I help you?"
READY_STATUS = (
    "I am ready. Ask me anything about my professional experience "
    "and I will do my best to answer your questions!"
)
LOADING_STATUS = "Fetching resume and generating embeddings..."
THINKING_STATUS = "Thinking..."
FAILURE_ANSWER = "Sorry, I am facing a problem. Please try again later."
INIT_FAILURE_ANSWER = "I couldn't start properly. Please try again later."


class _AnswerDisplay:
    """Tracks the assistant message of the current query in the sink."""

    def __init__(self, sink: UISink) -> None:
        self.sink = sink
        self.started = False
        self.handle: MessageHandle | None = None

    def push(self, text: str) -> None:
        if not self.started:
            self.started = True
            self.handle = self.sink.on_message(ASSISTANT, text, streaming=True)
        elif self.handle is not None:
            self.handle.append(text)

    def show(self, text: str) -> None:
        if self.handle is not None:
            self.handle.finalize(text)
        else:
            self.sink.on_message(ASSISTANT, text)


class QueryOrchestrator:
    """Coordinates startup and per-question handling for one session.

    Per question the state moves Idle -> Embedding -> Ranking -> Prompting ->
    Generating -> Finalizing -> Idle. Any failure on the way goes through
    Errored back to Idle and is shown as a fixed apology; failed turns are not
    recorded in memory. Only one question is handled at a time.
    """

    def __init__(  # noqa: PLR0913
        self,
        pipeline: RAGPipeline,
        generator: Generator,
        sink: UISink | None = None,
        *,
        top_k: int | None = None,
        options: GenerationOptions | None = None,
        generation_timeout: float | None = None,
        persona: str | None = None,
        min_answer_length: int | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            pipeline: Pipeline that builds the session and embeds questions.
            generator: Generation backend.
            sink: UI sink. Defaults to a LoggingSink.
            top_k: Chunks per prompt. If None, uses config.RETRIEVAL_TOP_K.
            options: Generation options. If None, built from config.
            generation_timeout: Seconds before a generation is abandoned.
                If None, uses config.GENERATION_TIMEOUT.
            persona: Name of the resume owner used in the prompt.
            min_answer_length: Shortest acceptable answer before falling back.

        Raises:
            ConfigurationError: If top_k or the timeout is out of range.
        """
        if top_k is None:
            top_k = config.RETRIEVAL_TOP_K
        if generation_timeout is None:
            generation_timeout = config.GENERATION_TIMEOUT
        if top_k < 1:
            msg = f"top_k must be at least 1, got {top_k}"
            raise ConfigurationError(msg)
        if generation_timeout <= 0:
            msg = f"Generation timeout must be positive, got {generation_timeout}"
            raise ConfigurationError(msg)

        self.pipeline = pipeline
        self.generator = generator
        self.sink: UISink = sink or LoggingSink()
        self.top_k = top_k
        self.options = options or GenerationOptions.from_config()
        self.generation_timeout = generation_timeout
        self.persona = persona
        self.min_answer_length = min_answer_length
        self.session: ResumeSession | None = None
        self.state = QueryState.IDLE

    @property
    def is_ready(self) -> bool:
        return self.session is not None

    @property
    def is_busy(self) -> bool:
        return self.state is not QueryState.IDLE

    async def initialize(self) -> ResumeSession:
        """Build a new session; inputs stay disabled if this fails.

        Returns:
            ResumeSession: The new session, which also replaces any previous one.
        """
        self.session = None
        self.sink.set_input_enabled(False)
        self.sink.on_status(LOADING_STATUS)
        try:
            session = await self.pipeline.build_session(self.sink.on_progress)
        except Exception:
            logger.exception("Initialization failed")
            self.sink.on_status(INIT_FAILURE_ANSWER)
            self.sink.on_message(ASSISTANT, INIT_FAILURE_ANSWER)
            raise

        self.session = session
        self.sink.on_progress(100)
        self.sink.on_status(READY_STATUS)
        self.sink.on_message(ASSISTANT, GREETING)
        self.sink.set_input_enabled(True)
        logger.info("Chat initialized")
        return session

    async def handle_query(self, question: str) -> QueryResult:
        """Answer one question.

        Returns:
            QueryResult: The answer and everything produced on the way to it.

        Raises:
            ValueError: If the question is blank.
            SessionNotReadyError: If ``initialize`` has not succeeded.
            QueryInProgressError: If another question is still being handled.
        """
        question = question.strip()
        if not question:
            msg = "Question must not be empty"
            raise ValueError(msg)
        if self.session is None:
            msg = "Chat session is not initialized"
            raise SessionNotReadyError(msg)
        if self.is_busy:
            msg = f"Still answering the previous question ({self.state.value})"
            raise QueryInProgressError(msg)

        session = self.session
        result = QueryResult(question=question)
        display = _AnswerDisplay(self.sink)
        self._transition(QueryState.EMBEDDING, result)
        logger.info("Processing question: %s", question)

        try:
            self.sink.on_message(USER, question)
            self.sink.set_input_enabled(False)
            self.sink.on_status(THINKING_STATUS)

            try:
                await self._answer(session, result, display)
            except Exception:
                logger.exception("Error answering question")
                self._transition(QueryState.ERRORED, result)
                result.errored = True
                result.answer = FAILURE_ANSWER

            display.show(result.answer)
        finally:
            # Also runs for cancellation and UI aborts, which are not Exceptions.
            self._transition(QueryState.IDLE, result)
            self.sink.set_input_enabled(True)
            self.sink.on_status(READY_STATUS)

        return result

    async def _answer(
        self, session: ResumeSession, result: QueryResult, display: _AnswerDisplay
    ) -> None:
        """Embed, rank, prompt, generate and finalize, filling in ``result``."""
        question = result.question
        query_vector = await self.pipeline.embed_query(session, question)

        self._transition(QueryState.RANKING, result)
        result.ranked_chunks = rank_chunks(
            query_vector, session.embeddings, session.chunks, self.top_k
        )
        for ranked in result.ranked_chunks:
            logger.info(
                "Chunk %d (score: %.4f): %s...",
                ranked.chunk.index,
                ranked.score,
                ranked.text[:100],
            )

        self._transition(QueryState.PROMPTING, result)
        result.prompt = build_prompt(
            [ranked.text for ranked in result.ranked_chunks],
            question,
            session.memory.recent(),
            persona=self.persona,
        )
        logger.debug("Constructed prompt. Length: %d", len(result.prompt))

        self._transition(QueryState.GENERATING, result)
        result.raw_output = await self._generate(result.prompt, display)

        self._transition(QueryState.FINALIZING, result)
        extracted = extract_answer(
            result.raw_output,
            result.ranked_chunks,
            min_length=self.min_answer_length,
        )
        result.answer = extracted.text
        result.used_fallback = extracted.used_fallback
        if extracted.used_fallback:
            logger.warning("Model output unusable, answering with fallback")
        session.memory.record(question, result.answer)

    async def _generate(self, prompt: str, display: _AnswerDisplay) -> str:
        """Run the generator under the timeout, streaming deltas to the sink.

        Returns:
            str: The full raw output.

        Raises:
            GenerationFailure: If the service fails or exceeds the timeout.
        """
        try:
            async with asyncio.timeout(self.generation_timeout):
                response = await self.generator.generate(prompt, self.options)
                if isinstance(response, str):
                    return response

                full_response = ""
                async for delta in response:
                    if delta.content:
                        full_response += delta.content
                        display.push(delta.content)
                return full_response
        except TimeoutError as exc:
            msg = f"Generation exceeded {self.generation_timeout} seconds"
            raise GenerationFailure(msg) from exc
        except Exception as exc:
            msg = "Generation service failed"
            raise GenerationFailure(msg) from exc

    def _transition(self, state: QueryState, result: QueryResult) -> None:
        logger.debug("Query state: %s -> %s", self.state.value, state.value)
        self.state = state
        result.states.append(state)
