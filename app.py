"""Streamlit chat page: load a resume, then ask it questions."""

import asyncio
import tempfile
from pathlib import Path

import streamlit as st
from openai import OpenAIError

from resumechat import (
    DocumentLoader,
    FileDocumentSource,
    OpenAIEmbedder,
    OpenAIGenerator,
    QueryOrchestrator,
    RAGPipeline,
    ResumeChatError,
    TextDocumentSource,
)
from resumechat.config import config
from resumechat.orchestrator import INIT_FAILURE_ANSWER, USER

EXCERPT_PREVIEW_CHARS = 200

config.setup_logging()
logger = config.get_logger(__name__)


class StreamlitMessageHandle:
    """Assistant message rendered into a placeholder while it streams."""

    def __init__(self, placeholder, message: dict[str, str]) -> None:  # noqa: ANN001
        self.placeholder = placeholder
        self.message = message

    def append(self, text: str) -> None:
        self.message["text"] += text
        self.placeholder.markdown(self.message["text"] + " ▌")

    def finalize(self, text: str) -> None:
        self.message["text"] = text
        self.placeholder.markdown(text)


class StreamlitSink:
    """UI sink writing status, progress and chat messages into the page."""

    def __init__(self) -> None:
        self.status = st.empty()
        self.progress = None

    def on_status(self, text: str) -> None:
        st.session_state.status = text
        self.status.caption(text)

    def on_message(
        self, sender: str, text: str, *, streaming: bool = False
    ) -> StreamlitMessageHandle | None:
        message = {"sender": sender, "text": text}
        st.session_state.messages.append(message)
        role = "user" if sender == USER else "assistant"
        with st.chat_message(role):
            placeholder = st.empty()
            placeholder.markdown(text)
        if streaming:
            return StreamlitMessageHandle(placeholder, message)
        return None

    def on_progress(self, percent: int) -> None:
        if self.progress is None:
            self.progress = st.progress(0, text="Embedding resume chunks...")
        self.progress.progress(min(percent, 100), text=f"{percent}%")
        if percent >= 100:  # noqa: PLR2004
            self.progress.empty()
            self.progress = None

    def set_input_enabled(self, enabled: bool) -> None:  # noqa: FBT001
        st.session_state.input_enabled = enabled


class SessionState:
    """Per-browser-session storage: transcript, orchestrator and event loop."""

    @staticmethod
    def initialize() -> None:
        """Fill in any session keys a fresh browser tab does not have yet."""
        defaults = {
            "event_loop": None,
            "orchestrator": None,
            "messages": [],
            "status": "",
            "input_enabled": False,
            "last_result": None,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def reset_system() -> None:
        """Drop the current chat session."""
        st.session_state.orchestrator = None
        st.session_state.messages = []
        st.session_state.input_enabled = False
        st.session_state.last_result = None

    @staticmethod
    def is_system_ready() -> bool:
        """Check if the chat session is initialized.

        Returns:
            bool: True if the orchestrator has a live session, False otherwise.
        """
        orchestrator = st.session_state.get("orchestrator")
        return orchestrator is not None and orchestrator.is_ready

    @staticmethod
    def run(coroutine):  # noqa: ANN001, ANN205
        """Run a coroutine on the session's own event loop.

        The async OpenAI clients stay bound to this loop across reruns.
        """
        if st.session_state.event_loop is None:
            st.session_state.event_loop = asyncio.new_event_loop()
        return st.session_state.event_loop.run_until_complete(coroutine)


def load_uploaded_resume(uploaded_file) -> str:  # noqa: ANN001
    """Extract text from an uploaded resume.

    Returns:
        str: The resume text.
    """
    suffix = Path(uploaded_file.name).suffix
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp_file:
        tmp_file.write(uploaded_file.getbuffer())
        tmp_file_path = Path(tmp_file.name)
    try:
        return DocumentLoader.load_document(tmp_file_path)
    finally:
        tmp_file_path.unlink()


def initialize_system(sink: StreamlitSink, uploaded_file=None) -> bool:  # noqa: ANN001
    """Build the orchestrator and index the resume.

    Returns:
        bool: True if initialization succeeds, False otherwise.
    """
    try:
        config.validate()
        if uploaded_file is not None:
            source = TextDocumentSource(load_uploaded_resume(uploaded_file))
        else:
            source = FileDocumentSource(config.RESUME_PATH)

        pipeline = RAGPipeline(OpenAIEmbedder(), source)
        orchestrator = QueryOrchestrator(pipeline, OpenAIGenerator(), sink)
        SessionState.reset_system()
        st.session_state.orchestrator = orchestrator
        SessionState.run(orchestrator.initialize())
    except (ResumeChatError, OpenAIError, ValueError, OSError):
        logger.exception("Could not start the resume chat")
        st.error(INIT_FAILURE_ANSWER)
        return False
    else:
        logger.info("Resume chat ready (%s)", source.__class__.__name__)
        return True


def render_sidebar() -> tuple[bool, object]:
    """Render the sidebar with resume selection and system status.

    Returns:
        Whether "Load Resume" was clicked, and the uploaded file if any.
    """
    with st.sidebar:
        st.header("Resume")
        uploaded_file = st.file_uploader(
            "Upload a resume (optional)",
            type=["pdf", "txt", "md"],
            help=f"Defaults to {config.RESUME_PATH}",
        )

        load_requested = st.button("Load Resume", use_container_width=True)

        st.divider()
        st.subheader("Session")
        if SessionState.is_system_ready():
            session = st.session_state.orchestrator.session
            st.write("**Status:** Ready")
            st.write(f"**Chunks:** {len(session.chunks)}")
            st.write(f"**Remembered turns:** {len(session.memory)}")
            if session.skipped_chunks:
                st.write(f"**Skipped chunks:** {len(session.skipped_chunks)}")
        else:
            st.write("**Status:** No resume loaded")

        st.divider()
        st.markdown(f"**Embedding Model:** {config.EMBEDDING_MODEL}")
        st.markdown(f"**Chat Model:** {config.CHAT_MODEL}")
        st.markdown(f"**Chunk Size:** {config.CHUNK_SIZE} ({config.CHUNK_STRATEGY})")

    return load_requested, uploaded_file


def render_transcript() -> None:
    """Replay the chat transcript kept in session state."""
    for message in st.session_state.messages:
        role = "user" if message["sender"] == USER else "assistant"
        with st.chat_message(role):
            st.markdown(message["text"])


def render_chat_input(sink: StreamlitSink) -> None:
    """Render the question box and answer the submitted question."""
    question = st.chat_input(
        "Ask about my professional experience...",
        disabled=not (SessionState.is_system_ready() and st.session_state.input_enabled),
    )
    if not question or not question.strip():
        return

    orchestrator = st.session_state.orchestrator
    orchestrator.sink = sink
    try:
        st.session_state.last_result = SessionState.run(
            orchestrator.handle_query(question)
        )
    except ResumeChatError as e:
        logger.warning("Question rejected: %s", e)
        st.warning("Please wait for the current answer to finish.")


def render_retrieved_contexts() -> None:
    """Show the chunks used for the last answer."""
    result = st.session_state.last_result
    if result is None or not result.ranked_chunks:
        return

    if st.checkbox("Show resume excerpts used for the last answer"):
        for ranked in result.ranked_chunks:
            with st.expander(
                f"Chunk {ranked.chunk.index} - Similarity: {ranked.score:.4f}",
                expanded=False,
            ):
                text = ranked.text
                st.code(
                    text[:EXCERPT_PREVIEW_CHARS] + "..."
                    if len(text) > EXCERPT_PREVIEW_CHARS
                    else text,
                )


def main() -> None:
    """Render one Streamlit run of the chat page.

    Every widget interaction reruns this function; the transcript and the
    orchestrator survive in session state.
    """
    st.set_page_config(page_title="ResumeChat", layout="centered")

    SessionState.initialize()

    st.title("Chat with my resume")
    render_transcript()
    sink = StreamlitSink()
    if st.session_state.status:
        sink.status.caption(st.session_state.status)

    load_requested, uploaded_file = render_sidebar()
    if load_requested and initialize_system(sink, uploaded_file):
        st.rerun()

    if not SessionState.is_system_ready():
        st.info("Load the resume from the sidebar to get started.")
        return

    render_chat_input(sink)
    render_retrieved_contexts()


if __name__ == "__main__":
    main()
