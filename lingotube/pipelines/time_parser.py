"""
Timestamp parsing for SRT and YouTube transcript notation
"""
import re

FRACTION_SPLIT_RE = re.compile(r'[,.]')


def _to_int(component):
    try:
        return int(component.strip())
    except ValueError:
        return None


def parse_time_to_seconds(time_str):
    """
    Convert a timestamp token to whole seconds

    SRT style ``00:00:01,000`` / ``00:01.000`` drops the fraction and reads
    HH:MM:SS or MM:SS. Transcript style ``0:01`` / ``1:23:45`` / ``65`` reads
    H:MM:SS, M:SS or SS. Sub-second precision is not kept.

    Returns None if a component is not a number.
    """
    time_str = (time_str or '').strip()
    if not time_str:
        return None

    if ':' in time_str and (',' in time_str or '.' in time_str):
        time_part = FRACTION_SPLIT_RE.split(time_str)[0]
        parts = [_to_int(p) for p in time_part.split(':')]
        if None in parts or len(parts) not in (2, 3):
            return None
    else:
        parts = [_to_int(p) for p in time_str.split(':')]
        if None in parts or len(parts) > 3:
            return None

    seconds = 0
    for part in parts:
        seconds = seconds * 60 + part
    return seconds


def format_time(seconds):
    """Render seconds as M:SS for the subtitle list"""
    seconds = int(seconds or 0)
    mins, secs = divmod(seconds, 60)
    return f"{mins}:{secs:02d}"
