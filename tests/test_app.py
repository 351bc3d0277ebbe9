"""Tests for the Streamlit chat page."""

from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

from resumechat.config import Config
from resumechat.orchestrator import INIT_FAILURE_ANSWER

APP_PATH = Path(__file__).parent.parent / "app.py"


@pytest.fixture
def app():
    at = AppTest.from_file(str(APP_PATH), default_timeout=30)
    at.run()
    return at


def error_texts(at):
    return [element.value for element in at.error]


def test_page_waits_for_a_resume(app):
    assert not app.exception
    assert app.main.info[0].value == "Load the resume from the sidebar to get started."
    assert app.sidebar.button[0].label == "Load Resume"


def test_missing_api_key_shows_fixed_message_in_main_area(app, monkeypatch):
    monkeypatch.setattr(Config, "get_openai_api_key", classmethod(lambda cls: ""))

    app.sidebar.button[0].click().run()

    assert not app.exception
    assert [element.value for element in app.main.error] == [INIT_FAILURE_ANSWER]
    assert len(app.sidebar.error) == 0
    assert not any("OPENAI_API_KEY" in text for text in error_texts(app))


def test_unreadable_resume_does_not_leak_details(app, monkeypatch, tmp_path):
    missing = tmp_path / "nowhere" / "secret-resume.pdf"
    monkeypatch.setattr(
        Config, "get_openai_api_key", classmethod(lambda cls: "test-key")
    )
    monkeypatch.setattr(Config, "RESUME_PATH", missing)

    app.sidebar.button[0].click().run()

    assert not app.exception
    assert app.main.error[0].value == INIT_FAILURE_ANSWER
    assert len(app.sidebar.error) == 0
    assert not any("secret-resume" in text for text in error_texts(app))
