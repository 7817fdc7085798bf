"""
Subtitle text parsing module (SRT and YouTube transcript formats)
"""
import re

import srt

from lingotube.core.errors import SubtitleParseError
from lingotube.pipelines.time_parser import parse_time_to_seconds

ARROW = '-->'
# MM:SS.mmm cue timing (WebVTT short form), not preceded or followed by another field
SHORT_TIMING_RE = re.compile(r'(?<![\d:])(\d{1,2}):(\d{2})[,.](\d{1,3})(?![\d:])')
TIMESTAMP = r'\d{1,2}:\d{2}(?::\d{2})?'
SAME_LINE_RE = re.compile(rf'^({TIMESTAMP})\s+(.+)$')
LEADING_TIMESTAMP_RE = re.compile(rf'^({TIMESTAMP})\s')
BARE_TIMESTAMP_RE = re.compile(rf'^{TIMESTAMP}$')

PARSE_FAILED_MESSAGE = '无法解析字幕。请确保格式正确（SRT 格式或 YouTube 文稿格式）'


def _clean_lines(text):
    return [line.strip() for line in text.split('\n') if line.strip()]


def _expand_short_timings(content):
    """Rewrite MM:SS.mmm timings on arrow lines to HH:MM:SS,mmm for srt.parse"""
    lines = content.split('\n')
    for i, line in enumerate(lines):
        if ARROW in line:
            lines[i] = SHORT_TIMING_RE.sub(r'00:\1:\2,\3', line)
    return '\n'.join(lines)


class SubtitleParser:
    def __init__(self, config):
        self.config = config

    def detect_format(self, content):
        return 'srt' if ARROW in content else 'transcript'

    def parse(self, content):
        """Detect the format of pasted subtitle text and parse it into cues"""
        print(f"\n{'='*70}")
        print(f"STEP 2: SUBTITLE PARSING")
        print(f"{'='*70}")

        content = (content or '').replace('\r\n', '\n').replace('\r', '\n')
        print(f"Content length: {len(content)}")

        fmt = self.detect_format(content)
        if fmt == 'srt':
            print("Detected SRT format")
            cues = self.parse_srt(content)
        else:
            print("Attempting YouTube transcript format")
            cues = self.parse_transcript(content)

        if not cues:
            print(f"ERROR: Failed to parse any subtitles. Content preview: {content[:200]!r}")
            raise SubtitleParseError(PARSE_FAILED_MESSAGE)

        print(f"Parsed {len(cues)} {fmt} subtitles")
        return cues

    def parse_srt(self, content):
        """Parse SRT (or WebVTT) cues with the srt library"""
        cues = []
        for sub in srt.parse(_expand_short_timings(content), ignore_errors=True):
            text = ' '.join(_clean_lines(sub.content))
            if not text:
                continue
            cues.append({
                'start': int(sub.start.total_seconds()),
                'end': int(sub.end.total_seconds()),
                'text': text,
            })
        return cues

    def parse_transcript(self, content):
        """
        Parse a transcript copied from YouTube's "Show transcript" panel

        Two layouts exist: timestamp and text on the same line
        (``0:01 Hello``), or a bare timestamp line followed by one or more
        text lines. If any line matches the same-line layout, the whole
        document is read that way.
        """
        lines = _clean_lines(content)
        if any(SAME_LINE_RE.match(line) for line in lines):
            return self._parse_same_line(lines)
        return self._parse_alternating(lines)

    def _parse_same_line(self, lines):
        padding = self.config.DEFAULT_END_PADDING
        cues = []
        for i, line in enumerate(lines):
            match = SAME_LINE_RE.match(line)
            if not match:
                continue

            start = parse_time_to_seconds(match.group(1))
            end = start + padding
            if i < len(lines) - 1:
                next_match = LEADING_TIMESTAMP_RE.match(lines[i + 1])
                if next_match:
                    end = parse_time_to_seconds(next_match.group(1))

            cues.append({'start': start, 'end': end, 'text': match.group(2).strip()})
        return cues

    def _parse_alternating(self, lines):
        padding = self.config.DEFAULT_END_PADDING
        cues = []
        i = 0
        while i < len(lines):
            if not BARE_TIMESTAMP_RE.match(lines[i]):
                i += 1
                continue

            start = parse_time_to_seconds(lines[i])
            i += 1
            text_lines = []
            while i < len(lines) and not BARE_TIMESTAMP_RE.match(lines[i]):
                text_lines.append(lines[i])
                i += 1

            text = ' '.join(text_lines).strip()
            if text:
                end = parse_time_to_seconds(lines[i]) if i < len(lines) else start + padding
                cues.append({'start': start, 'end': end, 'text': text})
        return cues
