"""
YouTube video ID extraction
"""
import re

VIDEO_ID_RE = re.compile(r'^[a-zA-Z0-9_-]{11}$')

URL_PATTERNS = [
    re.compile(r'(?:youtube\.com/watch\?v=|youtu\.be/)([a-zA-Z0-9_-]{11})'),
    re.compile(r'youtube\.com/embed/([a-zA-Z0-9_-]{11})'),
    re.compile(r'youtube\.com/v/([a-zA-Z0-9_-]{11})'),
]


def extract_video_id(url):
    """
    Extract the 11-character video ID from a YouTube URL or a bare ID

    Returns None when nothing matches; callers treat that as bad user input.
    """
    if not url:
        return None
    url = url.strip()

    for pattern in URL_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)

    if VIDEO_ID_RE.match(url):
        return url

    return None


def sanitize_lesson_id(lesson_id):
    """Strip everything outside the video ID alphabet (path traversal guard)"""
    return re.sub(r'[^a-zA-Z0-9_-]', '', lesson_id or '')


def thumbnail_url(video_id, quality='high'):
    quality_map = {
        'default': 'default',
        'medium': 'mqdefault',
        'high': 'hqdefault',
    }
    return f"https://i.ytimg.com/vi/{video_id}/{quality_map[quality]}.jpg"
