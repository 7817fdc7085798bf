"""Tests for the HTTP API and pages."""

import json

import pytest

from lingotube.api.main import prune_jobs
from lingotube.core.errors import TranscriptUnavailableError
from lingotube.pipelines import lesson_store

from .conftest import SAMPLE_SRT, VIDEO_ID, VIDEO_URL


def import_sample(client, **overrides):
    body = {"url": VIDEO_URL, "title": "Sample", "subtitleContent": SAMPLE_SRT}
    body.update(overrides)
    return client.post("/api/import-srt", json=body)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["message"] == "LingoTube API is running"


class TestImportEndpoints:
    """Import routes and their error mapping."""

    def test_import_srt(self, client):
        response = import_sample(client)
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "lessonId": VIDEO_ID,
            "title": "Sample",
            "subtitleCount": 2,
            "duration": 6,
            "translated": True,
        }

    def test_import_srt_skip_translation(self, client):
        response = import_sample(client, skipTranslation=True)
        assert response.json()["translated"] is False

    def test_import_srt_missing_fields(self, client):
        response = client.post("/api/import-srt", json={"url": VIDEO_URL})
        assert response.status_code == 400
        assert response.json() == {"error": "请提供 YouTube URL、课程标题和字幕内容"}

    def test_import_srt_blank_title(self, client):
        response = import_sample(client, title="   ")
        assert response.status_code == 400
        assert response.json() == {"error": "请提供 YouTube URL、课程标题和字幕内容"}

    def test_import_srt_unparseable(self, client):
        response = import_sample(client, subtitleContent="no timestamps here")
        assert response.status_code == 400
        assert "无法解析字幕" in response.json()["error"]

    def test_import_youtube(self, client, fetcher):
        response = client.post("/api/import-youtube", json={"url": VIDEO_URL})
        assert response.status_code == 200
        assert response.json()["title"] == "Real English Conversation"
        assert fetcher.calls == [(VIDEO_ID, "transcript-api")]

    def test_import_youtube_v2_uses_ytdlp(self, client, fetcher):
        client.post("/api/import-youtube-v2", json={"url": VIDEO_URL, "title": "Mine"})
        assert fetcher.calls == [(VIDEO_ID, "ytdlp")]

    def test_import_youtube_invalid_url(self, client):
        response = client.post("/api/import-youtube", json={"url": "https://example.com"})
        assert response.status_code == 400
        assert "无效的 YouTube URL" in response.json()["error"]

    def test_import_youtube_missing_url(self, client):
        response = client.post("/api/import-youtube", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "请提供 YouTube URL"}

    def test_unexpected_error_becomes_500(self, client, fetcher):
        fetcher.error = RuntimeError("kaboom")
        response = client.post("/api/import-youtube", json={"url": VIDEO_URL})
        assert response.status_code == 500
        assert response.json() == {"error": "导入失败，请重试。错误：kaboom"}

    def test_storage_failure_becomes_500(self, client, monkeypatch):
        def fail(path, data):
            raise OSError("disk full")

        monkeypatch.setattr(lesson_store, "write_json_atomic", fail)
        response = import_sample(client)
        assert response.status_code == 500
        assert response.json() == {"error": "保存课程文件失败"}

    def test_malformed_body(self, client):
        response = client.post("/api/import-youtube", content=b"{", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_upload(self, client):
        response = client.post(
            "/api/import-srt/upload",
            data={"url": VIDEO_URL, "title": "Uploaded", "skipTranslation": "true"},
            files={"subtitle_file": ("lesson.srt", ("\ufeff" + SAMPLE_SRT).encode("utf-8"), "text/plain")},
        )
        assert response.status_code == 200
        assert response.json()["subtitleCount"] == 2
        assert response.json()["translated"] is False

    def test_upload_wrong_extension(self, client):
        response = client.post(
            "/api/import-srt/upload",
            data={"url": VIDEO_URL, "title": "Uploaded"},
            files={"subtitle_file": ("lesson.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 400


class TestJobs:
    def test_job_completes(self, client):
        response = client.post("/api/jobs", json={"url": VIDEO_URL, "source": "ytdlp"})
        assert response.status_code == 200
        job_id = response.json()["jobId"]

        status = client.get(f"/api/jobs/{job_id}").json()
        assert status["status"] == "completed"
        assert status["result"]["lessonId"] == VIDEO_ID
        assert status["progress"] == status["total"] == 2

    def test_job_rejects_bad_input_immediately(self, client):
        response = client.post("/api/jobs", json={"url": "nope"})
        assert response.status_code == 400

    def test_failed_job_records_message(self, client, fetcher):
        fetcher.error = TranscriptUnavailableError("没有字幕")
        job_id = client.post("/api/jobs", json={"url": VIDEO_URL}).json()["jobId"]
        status = client.get(f"/api/jobs/{job_id}").json()
        assert status["status"] == "failed"
        assert status["message"] == "没有字幕"

    def test_unknown_job(self, client):
        response = client.get("/api/jobs/missing")
        assert response.status_code == 404
        assert response.json() == {"error": "Job not found"}

    def test_finished_jobs_pruned(self, client, config):
        config.MAX_JOBS = 2
        job_ids = [client.post("/api/jobs", json={"url": VIDEO_URL}).json()["jobId"] for _ in range(3)]
        assert client.get(f"/api/jobs/{job_ids[0]}").status_code == 404
        assert [client.get(f"/api/jobs/{j}").json()["status"] for j in job_ids[1:]] == ["completed", "completed"]
        assert len(client.app.state.jobs) == 2

    def test_running_jobs_never_pruned(self):
        jobs = {
            "old-running": {"status": "processing"},
            "done-1": {"status": "completed"},
            "done-2": {"status": "failed"},
            "queued": {"status": "queued"},
        }
        prune_jobs(jobs, 2)
        assert list(jobs) == ["old-running", "queued"]
        prune_jobs(jobs, 1)
        assert list(jobs) == ["old-running", "queued"]


class TestLessonEndpoints:
    def test_list_and_get(self, client):
        import_sample(client)
        index = client.get("/api/lessons").json()
        assert [l["id"] for l in index["lessons"]] == [VIDEO_ID]

        lesson = client.get(f"/api/lessons/{VIDEO_ID}").json()
        assert lesson["youtubeId"] == VIDEO_ID
        assert lesson["subtitles"][0]["textZh"] == "中文:Hello everyone."

    def test_lesson_json_served_statically(self, client):
        import_sample(client)
        response = client.get("/lessons/index.json")
        assert response.status_code == 200
        assert response.json()["lessons"][0]["id"] == VIDEO_ID

    def test_missing_lesson(self, client):
        response = client.get("/api/lessons/nothing")
        assert response.status_code == 404
        assert response.json() == {"error": "课程未找到"}

    def test_fractional_times_in_hand_edited_files(self, client, config):
        lesson = {
            "id": VIDEO_ID, "title": "Edited", "youtubeId": VIDEO_ID, "duration": 6.5,
            "subtitles": [{"id": f"{VIDEO_ID}-1", "lessonId": VIDEO_ID, "startTime": 1.5, "endTime": 3.5,
                           "textEn": "Hi", "textZh": "你好", "order": 0}],
        }
        (config.LESSONS_DIR / f"lesson-{VIDEO_ID}.json").write_text(json.dumps(lesson), encoding="utf-8")
        (config.LESSONS_DIR / "index.json").write_text(
            json.dumps({"lessons": [{"id": VIDEO_ID, "title": "Edited", "duration": 6.5}]}), encoding="utf-8")

        assert client.get("/api/lessons").json()["lessons"][0]["duration"] == 6
        assert client.get(f"/api/lessons/{VIDEO_ID}").json()["subtitles"][0]["startTime"] == 1
        assert client.get(f"/lesson/{VIDEO_ID}").status_code == 200
        assert client.get("/").status_code == 200

    @pytest.mark.parametrize("lang", ["en", "zh", "bilingual"])
    def test_srt_download(self, client, lang):
        import_sample(client)
        response = client.get(f"/api/lessons/{VIDEO_ID}/subtitles.srt", params={"lang": lang})
        assert response.status_code == 200
        assert response.text.startswith("1\n00:00:01,000 --> 00:00:03,000\n")

    def test_srt_download_bad_lang(self, client):
        import_sample(client)
        response = client.get(f"/api/lessons/{VIDEO_ID}/subtitles.srt", params={"lang": "fr"})
        assert response.status_code == 400


class TestPlayerEndpoints:
    def test_default_state(self, client):
        state = client.get("/api/player/s1").json()
        assert state["playbackRate"] == 1.0
        assert state["displayMode"] == "bilingual"

    def test_patch(self, client):
        state = client.patch("/api/player/s1", json={"displayMode": "chinese", "playbackRate": 1.25}).json()
        assert state["displayMode"] == "chinese"
        assert state["playbackRate"] == 1.25

    def test_patch_invalid_mode(self, client):
        response = client.patch("/api/player/s1", json={"displayMode": "klingon"})
        assert response.status_code == 400

    def test_seek_and_progress(self, client):
        import_sample(client)
        seek = client.post("/api/player/s1/seek", json={"lessonId": VIDEO_ID, "order": 1}).json()
        assert seek["currentTime"] == 4
        assert seek["playing"] is True

        tick = client.post("/api/player/s1/progress", json={"lessonId": VIDEO_ID, "currentTime": 4.5}).json()
        assert tick["action"] is None
        assert tick["activeOrder"] == 1
        assert tick["lines"] == [
            {"kind": "en", "text": "Welcome to the lesson."},
            {"kind": "zh", "text": "中文:Welcome to the lesson."},
        ]

    def test_sentence_pause_action(self, client):
        import_sample(client)
        client.patch("/api/player/s2", json={"playbackMode": "sentence-pause"})
        client.post("/api/player/s2/seek", json={"lessonId": VIDEO_ID, "order": 0})
        tick = client.post("/api/player/s2/progress", json={"lessonId": VIDEO_ID, "currentTime": 3.8}).json()
        assert tick["action"] == {"type": "pause"}
        assert tick["state"]["playing"] is False

    def test_seek_unknown_subtitle(self, client):
        import_sample(client)
        response = client.post("/api/player/s1/seek", json={"lessonId": VIDEO_ID, "order": 99})
        assert response.status_code == 404


class TestPages:
    def test_catalog_empty(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "还没有课程" in response.text

    def test_catalog_lists_lessons(self, client):
        import_sample(client)
        html = client.get("/").text
        assert "Sample" in html
        assert f"/lesson/{VIDEO_ID}" in html

    def test_lesson_page(self, client):
        import_sample(client)
        html = client.get(f"/lesson/{VIDEO_ID}").text
        assert f'data-youtube-id="{VIDEO_ID}"' in html
        assert 'data-order="1"' in html
        assert "0:04" in html

    def test_lesson_page_missing(self, client):
        response = client.get("/lesson/nothing")
        assert response.status_code == 404
        assert "课程未找到" in response.text

    def test_admin_page(self, client):
        response = client.get("/admin/import")
        assert response.status_code == 200
        assert "manual-form" in response.text

    def test_static_assets(self, client):
        assert client.get("/static/player.js").status_code == 200
