"""Tests for YouTube video ID extraction."""

import pytest

from lingotube.pipelines.video_id import extract_video_id, sanitize_lesson_id, thumbnail_url


class TestExtractVideoId:
    """URL forms that must resolve to the 11-character ID."""

    @pytest.mark.parametrize("url", [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/v/dQw4w9WgXcQ",
        "dQw4w9WgXcQ",
        "  dQw4w9WgXcQ  ",
    ])
    def test_accepted_forms(self, url):
        assert extract_video_id(url) == "dQw4w9WgXcQ"

    @pytest.mark.parametrize("url", [
        "",
        None,
        "https://vimeo.com/123456",
        "https://www.youtube.com/watch?v=short",
        "not a url at all",
    ])
    def test_rejected_forms(self, url):
        assert extract_video_id(url) is None

    def test_ids_with_dash_and_underscore(self):
        assert extract_video_id("https://youtu.be/a_b-c_d-e_f") == "a_b-c_d-e_f"


class TestSanitizeLessonId:
    def test_strips_path_characters(self):
        assert sanitize_lesson_id("../../etc/passwd") == "etcpasswd"

    def test_keeps_video_id_alphabet(self):
        assert sanitize_lesson_id("a_b-c_d-e_f") == "a_b-c_d-e_f"

    def test_none(self):
        assert sanitize_lesson_id(None) == ""


def test_thumbnail_url():
    assert thumbnail_url("dQw4w9WgXcQ") == "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"
