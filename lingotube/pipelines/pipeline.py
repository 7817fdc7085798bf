"""
Main lesson import pipeline
"""
from dataclasses import dataclass
from typing import Optional

from lingotube.core.errors import InvalidInputError
from lingotube.core.models import ImportResult, Lesson, Subtitle
from lingotube.pipelines.lesson_store import LessonStore
from lingotube.pipelines.subtitle_parser import SubtitleParser
from lingotube.pipelines.transcript_fetcher import TranscriptFetcher
from lingotube.pipelines.translator import BACKOFF_EXPONENTIAL, BACKOFF_LINEAR, Translator
from lingotube.pipelines.video_id import extract_video_id, thumbnail_url

SOURCE_TRANSCRIPT_API = 'transcript-api'
SOURCE_YTDLP = 'ytdlp'
SOURCE_MANUAL = 'manual'
SOURCES = (SOURCE_TRANSCRIPT_API, SOURCE_YTDLP, SOURCE_MANUAL)

INVALID_URL_MESSAGE = '无效的 YouTube URL。请使用 youtube.com/watch?v= 或 youtu.be/ 格式'


@dataclass
class ImportRequest:
    url: str
    source: str = SOURCE_TRANSCRIPT_API
    title: Optional[str] = None
    subtitle_content: Optional[str] = None
    skip_translation: bool = False


class LessonImportPipeline:
    def __init__(self, config, fetcher=None, translator=None, store=None, parser=None):
        self.config = config
        self.fetcher = fetcher or TranscriptFetcher(config)
        self.translator = translator or Translator(config)
        self.store = store or LessonStore(config)
        self.parser = parser or SubtitleParser(config)

    def validate(self, request: ImportRequest):
        """Check required fields and return the video ID"""
        if request.source not in SOURCES:
            raise InvalidInputError(f'未知的字幕来源: {request.source}')

        if request.source == SOURCE_MANUAL:
            if not request.url or not (request.title or '').strip() or not request.subtitle_content:
                raise InvalidInputError('请提供 YouTube URL、课程标题和字幕内容')
        elif not request.url:
            raise InvalidInputError('请提供 YouTube URL')

        video_id = extract_video_id(request.url)
        if not video_id:
            raise InvalidInputError(INVALID_URL_MESSAGE)
        return video_id

    def build_subtitles(self, video_id, segments, translated):
        subtitles = []
        for i, seg in enumerate(segments):
            subtitles.append(Subtitle(
                id=f"{video_id}-{i + 1}",
                lesson_id=video_id,
                start_time=seg['start'],
                end_time=seg['end'],
                text_en=seg['text'],
                text_zh=seg['text_zh'] if translated else seg['text'],
                order=i,
            ))
        return subtitles

    def run(self, request: ImportRequest, on_progress=None) -> ImportResult:
        """
        Execute the complete import

        Args:
            request: What to import and how
            on_progress: Optional callback(done, total) invoked after each translated line

        Returns:
            ImportResult summary of the saved lesson
        """
        print("\n" + "="*70)
        print("LESSON IMPORT PIPELINE")
        print(f"Source: {request.source}, translation: {'skip' if request.skip_translation else 'en -> zh'}")
        print("="*70)

        video_id = self.validate(request)
        manual = request.source == SOURCE_MANUAL

        # Step 1/2: acquire timed English lines
        if manual:
            print(f"Parsing subtitles for video: {video_id}")
            segments = self.parser.parse(request.subtitle_content)
            title = request.title.strip()
            description = '从字幕文件导入的课程（未翻译）' if request.skip_translation else '从字幕文件导入的课程'
            duration = segments[-1]['end']
            tags = ['imported', 'youtube', 'manual']
            if request.skip_translation:
                tags.append('no-translation')
        else:
            print(f"Fetching transcript for video: {video_id}")
            transcript = self.fetcher.fetch(video_id, source=request.source)
            segments = transcript.segments
            title = (request.title or '').strip() or transcript.title or f"YouTube Video - {video_id}"
            description = transcript.description or '从 YouTube 导入的课程'
            duration = transcript.duration or transcript.end_time
            tags = ['imported', 'youtube']

        # Step 3: translation
        translated = not request.skip_translation
        if translated:
            if manual:
                line_delay, backoff = self.config.MANUAL_LINE_DELAY, BACKOFF_EXPONENTIAL
            else:
                line_delay, backoff = self.config.AUTO_LINE_DELAY, BACKOFF_LINEAR
            self.translator.translate_all_segments(segments, line_delay, backoff=backoff, on_progress=on_progress)
        else:
            print("Skipping translation, using English text only...")
            if on_progress is not None:
                on_progress(len(segments), len(segments))

        lesson = Lesson(
            id=video_id,
            title=title,
            youtube_id=video_id,
            description=description,
            duration=int(duration),
            level=self.config.DEFAULT_LEVEL,
            tags=tags,
            thumbnail=thumbnail_url(video_id),
            subtitles=self.build_subtitles(video_id, segments, translated),
        )

        # Step 4: persistence
        self.store.save_lesson(lesson)

        print("\n" + "="*70)
        print("IMPORT COMPLETE")
        print("="*70)
        print(f"Lesson: {lesson.id} - {lesson.title}")
        print(f"Subtitles: {len(lesson.subtitles)}, duration: {lesson.duration}s")
        print("="*70 + "\n")

        return ImportResult(
            lesson_id=lesson.id,
            title=lesson.title,
            subtitle_count=len(lesson.subtitles),
            duration=lesson.duration,
            translated=translated,
        )
