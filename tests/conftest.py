"""Pytest fixtures for the LingoTube tests."""

import pytest
from fastapi.testclient import TestClient

from lingotube.api.main import create_app
from lingotube.core.config import Config
from lingotube.pipelines.lesson_store import LessonStore
from lingotube.pipelines.pipeline import LessonImportPipeline
from lingotube.pipelines.transcript_fetcher import TranscriptResult
from lingotube.pipelines.translator import Translator

VIDEO_ID = "dQw4w9WgXcQ"
VIDEO_URL = f"https://www.youtube.com/watch?v={VIDEO_ID}"

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,500
Hello everyone.

2
00:00:04,000 --> 00:00:06,000
Welcome to the lesson.
"""


class FakeTranslatorClient:
    """Stands in for GoogleTranslator: prefixes text, can fail a few times first."""

    def __init__(self, failures=None):
        self.failures = list(failures or [])
        self.calls = []

    def translate(self, text):
        self.calls.append(text)
        if self.failures:
            raise self.failures.pop(0)
        return f"中文:{text}"


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


class FakeFetcher:
    """Transcript fetcher returning a canned result."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def fetch(self, video_id, source="transcript-api"):
        self.calls.append((video_id, source))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def config(tmp_path):
    """Config pointing at a temporary lessons directory with no proxy lookups."""
    cfg = Config(workspace_root=tmp_path)
    cfg.LESSONS_DIR = tmp_path / "lessons"
    cfg.PROBE_PROXIES = False
    cfg.PROXY = None
    cfg._proxy_resolved = True
    return cfg


@pytest.fixture
def store(config):
    return LessonStore(config)


@pytest.fixture
def translator_client():
    return FakeTranslatorClient()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def translator(config, translator_client, fake_sleep):
    return Translator(config, client=translator_client, sleep=fake_sleep)


@pytest.fixture
def transcript_result():
    return TranscriptResult(
        video_id=VIDEO_ID,
        segments=[
            {"start": 0, "end": 2, "text": "Hi there."},
            {"start": 2, "end": 5, "text": "Let's learn English."},
        ],
        title="Real English Conversation",
        description="A short clip",
        duration=6,
    )


@pytest.fixture
def fetcher(transcript_result):
    return FakeFetcher(transcript_result)


@pytest.fixture
def pipeline(config, fetcher, translator, store):
    return LessonImportPipeline(config, fetcher=fetcher, translator=translator, store=store)


@pytest.fixture
def client(config, pipeline):
    """TestClient over an app wired to the fake pipeline."""
    with TestClient(create_app(config, pipeline)) as test_client:
        yield test_client
