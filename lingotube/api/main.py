"""
FastAPI app: lesson catalog, player pages and lesson import API
"""
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from lingotube.core.config import Config
from lingotube.core.errors import InvalidInputError, LessonImportError
from lingotube.core.models import CamelModel, PlayerStateUpdate
from lingotube.pipelines.lesson_store import LessonStore
from lingotube.pipelines.pipeline import (
    SOURCE_MANUAL,
    SOURCE_TRANSCRIPT_API,
    SOURCE_YTDLP,
    ImportRequest,
    LessonImportPipeline,
)
from lingotube.pipelines.srt_exporter import LANGUAGES, compose_srt
from lingotube.pipelines.time_parser import format_time
from lingotube.player.store import (
    DISPLAY_MODES,
    PLAYBACK_MODES,
    PLAYBACK_RATES,
    PlayerSessions,
    visible_lines,
)

VERSION = "0.1.0"
LESSON_NOT_FOUND = '课程未找到'
SUBTITLE_FILE_EXTENSIONS = ('.srt', '.vtt', '.txt')
DIFFICULTY_STARS = {'beginner': 2, 'intermediate': 3, 'advanced': 4}


class YouTubeImportBody(BaseModel):
    url: Optional[str] = None
    title: Optional[str] = None


class SubtitleImportBody(CamelModel):
    url: Optional[str] = None
    title: Optional[str] = None
    subtitle_content: Optional[str] = Field(default=None, alias='subtitleContent')
    skip_translation: bool = Field(default=False, alias='skipTranslation')


class JobBody(SubtitleImportBody):
    source: str = SOURCE_TRANSCRIPT_API


class JobStatus(CamelModel):
    job_id: str = Field(alias='jobId')
    status: str
    message: str
    progress: int = 0
    total: int = 0
    result: Optional[dict] = None


class SeekBody(CamelModel):
    lesson_id: str = Field(alias='lessonId')
    order: int


class ProgressBody(CamelModel):
    lesson_id: str = Field(alias='lessonId')
    current_time: float = Field(alias='currentTime', ge=0)


router = APIRouter()


def run_import(request: Request, import_request: ImportRequest, on_progress=None):
    """Run the pipeline; unexpected failures become a 500 with the error text"""
    pipeline = request.app.state.pipeline
    try:
        return pipeline.run(import_request, on_progress=on_progress)
    except LessonImportError:
        raise
    except Exception as e:
        print(f"ERROR: Import error: {e}")
        raise LessonImportError('导入失败，请重试。错误：' + str(e)) from e


def prune_jobs(jobs: dict, max_jobs: int):
    """Drop the oldest finished jobs until the table is within max_jobs"""
    finished = [job_id for job_id, job in list(jobs.items()) if job["status"] in ("completed", "failed")]
    for job_id in finished[:max(0, len(jobs) - max_jobs)]:
        del jobs[job_id]


def run_import_job(app: FastAPI, job_id: str, import_request: ImportRequest):
    """Run an import in the background, recording progress in the job table"""
    jobs = app.state.jobs
    jobs[job_id].update(status="processing", message="Import started")

    def on_progress(done, total):
        jobs[job_id].update(progress=done, total=total, message=f"翻译进度: {done}/{total}")

    try:
        result = app.state.pipeline.run(import_request, on_progress=on_progress)
        jobs[job_id].update(status="completed", message="Import completed successfully",
                            result=result.to_json_dict())
    except LessonImportError as e:
        jobs[job_id].update(status="failed", message=e.message)
    except Exception as e:
        jobs[job_id].update(status="failed", message='导入失败，请重试。错误：' + str(e))


# ---------------------------------------------------------------------------
# Import API
# ---------------------------------------------------------------------------

@router.post("/api/import-youtube")
def import_youtube(body: YouTubeImportBody, request: Request):
    """Auto-fetch an English transcript through youtube-transcript-api and translate it"""
    result = run_import(request, ImportRequest(url=body.url, title=body.title, source=SOURCE_TRANSCRIPT_API))
    return result.to_json_dict()


@router.post("/api/import-youtube-v2")
def import_youtube_v2(body: YouTubeImportBody, request: Request):
    """Auto-fetch video info and captions through yt-dlp and translate them"""
    result = run_import(request, ImportRequest(url=body.url, title=body.title, source=SOURCE_YTDLP))
    return result.to_json_dict()


@router.post("/api/import-srt")
def import_srt(body: SubtitleImportBody, request: Request):
    """Import pasted SRT or YouTube transcript text"""
    result = run_import(request, ImportRequest(
        url=body.url,
        title=body.title,
        subtitle_content=body.subtitle_content,
        skip_translation=body.skip_translation,
        source=SOURCE_MANUAL,
    ))
    return result.to_json_dict()


@router.post("/api/import-srt/upload")
def import_srt_upload(
    request: Request,
    url: str = Form(""),
    title: str = Form(""),
    skip_translation: bool = Form(False, alias="skipTranslation"),
    subtitle_file: UploadFile = File(...),
):
    """
    Import an uploaded subtitle file

    - **subtitle_file**: .srt, .vtt or .txt (YouTube transcript) file, UTF-8
    """
    if not subtitle_file.filename or not subtitle_file.filename.lower().endswith(SUBTITLE_FILE_EXTENSIONS):
        raise InvalidInputError('字幕文件必须是 .srt、.vtt 或 .txt 格式')

    try:
        content = subtitle_file.file.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        raise InvalidInputError('字幕文件必须是 UTF-8 编码')

    result = run_import(request, ImportRequest(
        url=url,
        title=title,
        subtitle_content=content,
        skip_translation=skip_translation,
        source=SOURCE_MANUAL,
    ))
    return result.to_json_dict()


@router.post("/api/jobs")
def create_job(body: JobBody, request: Request, background_tasks: BackgroundTasks):
    """Queue an import and return a job ID to poll"""
    import_request = ImportRequest(
        url=body.url,
        title=body.title,
        subtitle_content=body.subtitle_content,
        skip_translation=body.skip_translation,
        source=body.source,
    )
    # Reject bad input right away instead of failing inside the job
    request.app.state.pipeline.validate(import_request)

    prune_jobs(request.app.state.jobs, request.app.state.config.MAX_JOBS - 1)
    job_id = str(uuid.uuid4())
    request.app.state.jobs[job_id] = {
        "status": "queued",
        "message": "Job queued for processing",
        "progress": 0,
        "total": 0,
        "result": None,
    }
    background_tasks.add_task(run_import_job, request.app, job_id, import_request)
    return JobStatus(job_id=job_id, **request.app.state.jobs[job_id]).model_dump(by_alias=True)


@router.get("/api/jobs/{job_id}")
def get_job(job_id: str, request: Request):
    """Get the status of an import job"""
    jobs = request.app.state.jobs
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatus(job_id=job_id, **jobs[job_id]).model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Lesson API
# ---------------------------------------------------------------------------

def _load_lesson_or_404(request: Request, lesson_id: str):
    lesson = request.app.state.store.load_lesson(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail=LESSON_NOT_FOUND)
    return lesson


@router.get("/api/lessons")
def list_lessons(request: Request):
    return request.app.state.store.read_index().to_json_dict()


@router.get("/api/lessons/{lesson_id}")
def get_lesson(lesson_id: str, request: Request):
    return _load_lesson_or_404(request, lesson_id).to_json_dict()


@router.get("/api/lessons/{lesson_id}/subtitles.srt")
def download_srt(lesson_id: str, request: Request, lang: str = "bilingual"):
    """Download the lesson subtitles as SRT (en, zh or bilingual)"""
    if lang not in LANGUAGES:
        raise InvalidInputError(f'不支持的字幕语言: {lang}')
    lesson = _load_lesson_or_404(request, lesson_id)
    return PlainTextResponse(
        compose_srt(lesson, lang),
        media_type="application/x-subrip",
        headers={"Content-Disposition": f'attachment; filename="{lesson.id}.{lang}.srt"'},
    )


# ---------------------------------------------------------------------------
# Player state API
# ---------------------------------------------------------------------------

def _bound_store(request: Request, session_id: str, lesson_id: str):
    store = request.app.state.sessions.get(session_id)
    if store.lesson_id != lesson_id:
        store.bind_lesson(_load_lesson_or_404(request, lesson_id))
    return store


@router.get("/api/player/{session_id}")
def get_player_state(session_id: str, request: Request):
    return request.app.state.sessions.get(session_id).state.model_dump(by_alias=True)


@router.patch("/api/player/{session_id}")
def update_player_state(session_id: str, update: PlayerStateUpdate, request: Request):
    store = request.app.state.sessions.get(session_id)
    return store.apply(update).model_dump(by_alias=True)


@router.post("/api/player/{session_id}/seek")
def seek_player(session_id: str, body: SeekBody, request: Request):
    """Click-to-seek on a subtitle of the lesson"""
    store = _bound_store(request, session_id, body.lesson_id)
    if not 0 <= body.order < len(store.subtitles):
        raise HTTPException(status_code=404, detail="Subtitle not found")
    return store.seek_to(store.subtitles[body.order]).model_dump(by_alias=True)


@router.post("/api/player/{session_id}/progress")
def player_progress(session_id: str, body: ProgressBody, request: Request):
    """Progress tick from the video player; answers with the lines to display"""
    store = _bound_store(request, session_id, body.lesson_id)
    action = store.update_progress(body.current_time, store.subtitles)
    active = store.active_subtitle(store.subtitles)
    return {
        "state": store.state.model_dump(by_alias=True),
        "action": action,
        "activeOrder": None if active is None else active.order,
        "lines": [{"kind": kind, "text": text} for kind, text in visible_lines(active, store.state.display_mode)],
    }


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

@router.get("/", response_class=HTMLResponse)
def catalog_page(request: Request):
    lessons = request.app.state.store.list_lessons()
    return request.app.state.templates.TemplateResponse(request, "index.html", {"lessons": lessons})


@router.get("/lesson/{lesson_id}", response_class=HTMLResponse)
def lesson_page(lesson_id: str, request: Request):
    templates = request.app.state.templates
    lesson = request.app.state.store.load_lesson(lesson_id)
    if lesson is None:
        return templates.TemplateResponse(request, "lesson.html", {"lesson": None, "error": LESSON_NOT_FOUND},
                                          status_code=404)
    return templates.TemplateResponse(request, "lesson.html", {
        "lesson": lesson,
        "error": None,
        "playback_rates": PLAYBACK_RATES,
        "display_modes": DISPLAY_MODES,
        "playback_modes": PLAYBACK_MODES,
    })


@router.get("/admin/import", response_class=HTMLResponse)
def admin_import_page(request: Request):
    return request.app.state.templates.TemplateResponse(request, "admin_import.html", {})


@router.get("/health")
def health():
    """Health check endpoint"""
    return {"message": "LingoTube API is running", "version": VERSION}


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

async def lesson_import_error_handler(request: Request, exc: LessonImportError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return JSONResponse({"error": f"请求格式错误：{details}"}, status_code=400)


def create_app(config: Config = None, pipeline: LessonImportPipeline = None) -> FastAPI:
    config = config or Config()
    config.LESSONS_DIR.mkdir(parents=True, exist_ok=True)

    app = FastAPI(
        title="LingoTube",
        description="Learn English with bilingual YouTube lessons",
        version=VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    templates = Jinja2Templates(directory=str(config.TEMPLATES_DIR))
    templates.env.filters["format_time"] = format_time
    templates.env.globals["difficulty_stars"] = lambda level: DIFFICULTY_STARS.get(level, 3)

    app.state.config = config
    app.state.store = pipeline.store if pipeline else LessonStore(config)
    app.state.pipeline = pipeline or LessonImportPipeline(config, store=app.state.store)
    app.state.sessions = PlayerSessions(max_sessions=config.MAX_PLAYER_SESSIONS)
    app.state.jobs = {}  # in-memory job table, lost on restart; finished jobs pruned past MAX_JOBS
    app.state.templates = templates

    app.add_exception_handler(LessonImportError, lesson_import_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(router)
    app.mount("/static", StaticFiles(directory=str(config.STATIC_DIR)), name="static")
    app.mount("/lessons", StaticFiles(directory=str(config.LESSONS_DIR)), name="lessons")
    return app


def main():
    import uvicorn

    config = Config()
    uvicorn.run(create_app(config), host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
