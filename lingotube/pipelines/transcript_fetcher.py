"""
Transcript fetching module

Two sources are available:

- ``TranscriptApiFetcher`` uses the community youtube-transcript-api package.
  It only returns timed text, so the lesson gets a generated title.
- ``YtDlpFetcher`` talks to YouTube's internal API through yt-dlp. It also
  returns the video title, description and duration, and reads the caption
  track in YouTube's json3 format.
"""
import json
from dataclasses import dataclass, field
from typing import List, Optional

import yt_dlp
from yt_dlp.networking.exceptions import RequestError, TransportError
from yt_dlp.utils import DownloadError
from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api._errors import CouldNotRetrieveTranscript
from youtube_transcript_api.proxies import GenericProxyConfig

from lingotube.core.errors import (
    NETWORK_HINT,
    TranscriptUnavailableError,
    UpstreamNetworkError,
    is_network_error,
)
from lingotube.utils.proxy import resolve_proxy

NO_ENGLISH_TRANSCRIPT = (
    '无法获取字幕。可能原因：\n1. 视频没有英文字幕\n2. 视频已被删除或设为私密\n3. 字幕被禁用\n\n'
    '请尝试其他有英文字幕的视频。'
)
NO_TRANSCRIPT_MANUAL_HINT = (
    '无法获取字幕。可能原因：\n1. 视频没有字幕\n2. 字幕被禁用\n\n请尝试使用"手动上传"功能。'
)
VIDEO_INFO_UNAVAILABLE = '无法获取视频信息。视频可能已被删除或设为私密'
EMPTY_TRANSCRIPT = '该视频没有可用的英文字幕'


@dataclass
class TranscriptResult:
    video_id: str
    segments: List[dict] = field(default_factory=list)  # {'start', 'end', 'text'}
    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[int] = None

    @property
    def end_time(self) -> int:
        return self.segments[-1]['end'] if self.segments else 0


def _clean_text(text):
    return ' '.join((text or '').split())


class TranscriptApiFetcher:
    name = 'transcript-api'

    def __init__(self, config, api=None):
        self.config = config
        self._api = api

    @property
    def api(self):
        if self._api is None:
            proxy = resolve_proxy(self.config)
            proxy_config = GenericProxyConfig(http_url=proxy, https_url=proxy) if proxy else None
            self._api = YouTubeTranscriptApi(proxy_config=proxy_config)
        return self._api

    def _fetch_any_language(self, video_id):
        """Fall back to whatever transcript the video has (manual first, then generated)"""
        transcript_list = self.api.list(video_id)
        transcript = next(iter(transcript_list), None)
        if transcript is None:
            raise TranscriptUnavailableError(EMPTY_TRANSCRIPT)
        if not transcript.language_code.startswith('en'):
            print(f"  WARNING: Fetched subtitles may not be in English ({transcript.language_code})")
        return transcript.fetch()

    def fetch(self, video_id) -> TranscriptResult:
        print(f"\n{'='*70}")
        print(f"STEP 1: TRANSCRIPT FETCH (youtube-transcript-api)")
        print(f"{'='*70}")

        fetched = None
        for lang in self.config.TRANSCRIPT_LANGUAGES:
            try:
                print(f"Attempting to fetch transcript with lang: {lang}")
                fetched = self.api.fetch(video_id, languages=[lang])
                print(f"Successfully fetched transcript with lang: {lang}")
                break
            except CouldNotRetrieveTranscript:
                print(f"Failed to fetch with lang {lang}, trying next...")
            except Exception as e:
                if is_network_error(e):
                    raise UpstreamNetworkError(NETWORK_HINT + str(e)) from e
                raise

        if fetched is None:
            try:
                print("Attempting to fetch transcript without language specification")
                fetched = self._fetch_any_language(video_id)
            except CouldNotRetrieveTranscript as e:
                print(f"ERROR: All transcript fetch attempts failed: {type(e).__name__}")
                raise TranscriptUnavailableError(NO_ENGLISH_TRANSCRIPT) from e
            except TranscriptUnavailableError:
                raise
            except Exception as e:
                if is_network_error(e):
                    raise UpstreamNetworkError(NETWORK_HINT + str(e)) from e
                raise

        segments = []
        for snippet in fetched:
            text = _clean_text(snippet.text)
            if not text:
                continue
            segments.append({
                'start': int(snippet.start),
                'end': int(snippet.start + snippet.duration),
                'text': text,
            })

        if not segments:
            raise TranscriptUnavailableError(EMPTY_TRANSCRIPT)

        print(f"Fetched {len(segments)} transcript segments")
        return TranscriptResult(video_id=video_id, segments=segments)


class YtDlpFetcher:
    name = 'ytdlp'

    def __init__(self, config, ydl_factory=None):
        self.config = config
        self.ydl_factory = ydl_factory or yt_dlp.YoutubeDL

    def _options(self):
        opts = {
            'skip_download': True,
            'quiet': True,
            'no_warnings': True,
        }
        proxy = resolve_proxy(self.config)
        if proxy:
            opts['proxy'] = proxy
        return opts

    def pick_caption_track(self, info):
        """
        Choose an English json3 caption track from the video info

        Manual subtitles win over automatic captions; within each, the
        configured language order is tried before any other ``en*`` track.
        """
        for kind in ('subtitles', 'automatic_captions'):
            tracks = info.get(kind) or {}
            candidates = [lang for lang in self.config.TRANSCRIPT_LANGUAGES if lang in tracks]
            candidates += sorted(lang for lang in tracks if lang.startswith('en') and lang not in candidates)
            for lang in candidates:
                for fmt in tracks[lang]:
                    if fmt.get('ext') == 'json3' and fmt.get('url'):
                        return lang, fmt['url']
        return None, None

    @staticmethod
    def parse_json3(data):
        """Turn YouTube json3 caption events into segments"""
        segments = []
        for event in data.get('events', []):
            segs = event.get('segs')
            if not segs:
                continue
            text = _clean_text(''.join(seg.get('utf8', '') for seg in segs))
            if not text:
                continue
            start_ms = int(event.get('tStartMs', 0))
            duration_ms = int(event.get('dDurationMs', 0))
            segments.append({
                'start': start_ms // 1000,
                'end': (start_ms + duration_ms) // 1000,
                'text': text,
            })
        return segments

    def fetch(self, video_id) -> TranscriptResult:
        print(f"\n{'='*70}")
        print(f"STEP 1: VIDEO INFO + TRANSCRIPT FETCH (yt-dlp)")
        print(f"{'='*70}")

        url = f"https://www.youtube.com/watch?v={video_id}"
        try:
            with self.ydl_factory(self._options()) as ydl:
                info = ydl.extract_info(url, download=False)
                if not info:
                    raise TranscriptUnavailableError(VIDEO_INFO_UNAVAILABLE)

                lang, track_url = self.pick_caption_track(info)
                if track_url is None:
                    print("ERROR: No English caption track in video info")
                    raise TranscriptUnavailableError(NO_TRANSCRIPT_MANUAL_HINT)

                print(f"Downloading {lang} caption track")
                raw = ydl.urlopen(track_url).read()
        except (DownloadError, RequestError) as e:
            if isinstance(e, TransportError) or is_network_error(e):
                raise UpstreamNetworkError(NETWORK_HINT + str(e)) from e
            if isinstance(e, RequestError):
                print(f"ERROR: Caption track download failed: {e}")
                raise TranscriptUnavailableError(NO_TRANSCRIPT_MANUAL_HINT) from e
            raise TranscriptUnavailableError(VIDEO_INFO_UNAVAILABLE) from e

        try:
            data = json.loads(raw.decode('utf-8') if isinstance(raw, bytes) else raw)
        except ValueError as e:
            raise TranscriptUnavailableError(NO_TRANSCRIPT_MANUAL_HINT) from e

        segments = self.parse_json3(data)
        if not segments:
            raise TranscriptUnavailableError(EMPTY_TRANSCRIPT)

        duration = info.get('duration')
        print(f"Video: {info.get('title')} ({duration}s), {len(segments)} caption segments")
        return TranscriptResult(
            video_id=video_id,
            segments=segments,
            title=info.get('title'),
            description=info.get('description'),
            duration=int(duration) if duration else None,
        )


class TranscriptFetcher:
    """Source registry used by the import pipeline"""

    def __init__(self, config, sources=None):
        self.config = config
        self.sources = sources if sources is not None else {
            TranscriptApiFetcher.name: TranscriptApiFetcher(config),
            YtDlpFetcher.name: YtDlpFetcher(config),
        }

    def fetch(self, video_id, source=TranscriptApiFetcher.name) -> TranscriptResult:
        try:
            fetcher = self.sources[source]
        except KeyError:
            raise ValueError(f"Unknown transcript source: {source}")
        return fetcher.fetch(video_id)

