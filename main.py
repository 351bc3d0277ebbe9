"""ResumeChat launcher: serve the chat page or chat in the terminal.

Usage:
    python main.py web --port 8501
    python main.py --resume cv.pdf chat
"""

from __future__ import annotations

import argparse
import asyncio
import os
import subprocess
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from resumechat import (
    FileDocumentSource,
    GenerationOptions,
    OpenAIEmbedder,
    OpenAIGenerator,
    QueryOrchestrator,
    RAGPipeline,
)
from resumechat.config import config
from resumechat.exceptions import ConfigurationError
from resumechat.sinks import ConsoleSink

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence
    from logging import Logger

    from resumechat.sinks import UISink

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"
DEFAULT_PORT = 8501
DEFAULT_ADDRESS = "localhost"
EXIT_COMMANDS = frozenset({"exit", "quit", ":q"})


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Read command-line arguments; without a subcommand the web UI is served."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Chat with a resume in the browser or in the terminal.",
    )
    parser.add_argument(
        "--resume",
        type=Path,
        default=None,
        help=f"Resume to chat with, .pdf/.txt/.md (default: {config.RESUME_PATH}).",
    )
    subparsers = parser.add_subparsers(dest="command")
    parser.set_defaults(
        command="web",
        app=DEFAULT_APP,
        port=DEFAULT_PORT,
        address=DEFAULT_ADDRESS,
        headless=True,
    )

    web = subparsers.add_parser("web", help="Serve the Streamlit chat page.")
    web.add_argument("--app", type=Path, default=DEFAULT_APP)
    web.add_argument("--port", type=int, default=DEFAULT_PORT)
    web.add_argument("--address", default=DEFAULT_ADDRESS)
    web.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open a browser window instead of running headless.",
    )

    chat = subparsers.add_parser("chat", help="Chat with the resume in this terminal.")
    chat.add_argument(
        "--no-stream",
        dest="stream",
        action="store_false",
        help="Print each answer once it is complete.",
    )
    chat.set_defaults(stream=config.STREAM_RESPONSES)

    return parser.parse_args(argv)


def build_streamlit_command(
    script_path: Path, *, port: int, headless: bool, address: str
) -> list[str]:
    """Command line for ``streamlit run`` on the chat page."""  # noqa: DOC201
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        "true" if headless else "false",
    ]


def run_streamlit(
    command: Sequence[str], logger: Logger, env: Mapping[str, str] | None = None
) -> int:
    """Run Streamlit in a child process and return its exit code."""  # noqa: DOC201
    try:
        completed = subprocess.run(
            command,
            check=False,
            cwd=PROJECT_ROOT,
            env=env,
        )
    except KeyboardInterrupt:
        logger.info("ResumeChat stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return completed.returncode


def serve_web(args: argparse.Namespace, resume_path: Path, logger: Logger) -> int:
    """Launch the Streamlit page for ``resume_path``."""  # noqa: DOC201
    script_path = args.app if args.app.is_absolute() else PROJECT_ROOT / args.app
    script_path = script_path.resolve()
    if not script_path.exists():
        logger.error("Chat page script not found: %s", script_path)
        return 1

    if not resume_path.exists():
        logger.warning(
            "Resume not found at %s; upload one from the web page instead",
            resume_path,
        )

    logger.info(
        "Serving ResumeChat at http://%s:%s (headless=%s)",
        args.address,
        args.port,
        args.headless,
    )
    command = build_streamlit_command(
        script_path, port=args.port, headless=args.headless, address=args.address
    )
    exit_code = run_streamlit(
        command, logger, {**os.environ, "RESUME_PATH": str(resume_path)}
    )
    if exit_code != 0:
        logger.error("Streamlit exited with status %s", exit_code)
    return exit_code


def build_orchestrator(
    resume_path: Path, sink: UISink, *, stream: bool
) -> QueryOrchestrator:
    """Wire the OpenAI-backed services to a sink for one resume."""  # noqa: DOC201
    pipeline = RAGPipeline(OpenAIEmbedder(), FileDocumentSource(resume_path))
    options = replace(GenerationOptions.from_config(), stream=stream)
    return QueryOrchestrator(pipeline, OpenAIGenerator(), sink, options=options)


async def _read_question() -> str:
    return await asyncio.to_thread(input, "> ")


async def chat_loop(
    orchestrator: QueryOrchestrator,
    read_question: Callable[[], Awaitable[str]] = _read_question,
) -> int:
    """Answer questions until the user types ``exit`` or closes the input.

    Returns:
        int: Process exit code, 1 if the session could not be started.
    """
    try:
        await orchestrator.initialize()
    except Exception:  # noqa: BLE001
        # Already logged and shown through the sink.
        return 1

    while True:
        try:
            question = (await read_question()).strip()
        except EOFError:
            return 0
        if not question:
            continue
        if question.lower() in EXIT_COMMANDS:
            return 0
        await orchestrator.handle_query(question)


def run_chat(resume_path: Path, logger: Logger, *, stream: bool) -> int:
    """Chat with ``resume_path`` on stdin/stdout."""  # noqa: DOC201
    if not resume_path.exists():
        logger.error("Resume not found: %s", resume_path)
        return 1

    orchestrator = build_orchestrator(resume_path, ConsoleSink(), stream=stream)
    try:
        return asyncio.run(chat_loop(orchestrator))
    except KeyboardInterrupt:
        logger.info("ResumeChat stopped by user")
        return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration and start the selected interface."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
    except ConfigurationError:
        logger.exception("Configuration invalid")
        return 1

    resume_path = args.resume if args.resume is not None else config.RESUME_PATH
    if not resume_path.is_absolute():
        resume_path = Path.cwd() / resume_path

    if args.command == "chat":
        return run_chat(resume_path, logger, stream=args.stream)
    return serve_web(args, resume_path, logger)


if __name__ == "__main__":
    sys.exit(main())
