"""
Playback state store

The player page keeps its state here instead of in a client-side global:
one PlayerStore per browser session, reached through PlayerSessions.
Transitions are plain field assignments; no combination of display mode
and playback mode is rejected.
"""
import threading
from collections import OrderedDict

from lingotube.core.models import PlayerState, PlayerStateUpdate

PLAYBACK_RATES = [0.5, 0.75, 1.0, 1.25, 1.5, 1.75, 2.0]

DISPLAY_MODES = [
    ('bilingual', '双语'),
    ('english', '英文'),
    ('chinese', '中文'),
    ('ipa', 'IPA'),
    ('dictation', '听写'),
]

PLAYBACK_MODES = [
    ('normal', '正常'),
    ('sentence-pause', '单句暂停'),
    ('sentence-loop', '单句循环'),
]


def find_active_index(current_time, subtitles):
    """Index of the first subtitle whose [start, end] covers current_time, else None"""
    for i, sub in enumerate(subtitles):
        if sub.start_time <= current_time <= sub.end_time:
            return i
    return None


def visible_lines(subtitle, display_mode):
    """Lines of a subtitle to show for a display mode, as (kind, text) pairs"""
    if subtitle is None:
        return []

    lines = []
    if display_mode in ('bilingual', 'english'):
        lines.append(('en', subtitle.text_en))
    if display_mode in ('bilingual', 'chinese'):
        lines.append(('zh', subtitle.text_zh))
    if display_mode == 'ipa' and subtitle.text_ipa:
        lines.append(('ipa', subtitle.text_ipa))
    # dictation shows nothing
    return lines


class PlayerStore:
    def __init__(self, state: PlayerState = None):
        self.state = state or PlayerState()
        self.lesson_id = None
        self.subtitles = []

    def bind_lesson(self, lesson):
        """
        Attach the lesson being played; resets position but keeps the
        user's rate and mode choices
        """
        self.lesson_id = lesson.id
        self.subtitles = list(lesson.subtitles)
        self.state = PlayerState(
            playback_rate=self.state.playback_rate,
            display_mode=self.state.display_mode,
            playback_mode=self.state.playback_mode,
            duration=lesson.duration,
        )
        return self.state

    def _set(self, **changes):
        self.state = PlayerState.model_validate({**self.state.model_dump(), **changes})
        return self.state

    def set_playing(self, playing):
        return self._set(playing=playing)

    def set_playback_rate(self, rate):
        return self._set(playback_rate=rate)

    def set_current_time(self, time):
        return self._set(current_time=time)

    def set_duration(self, duration):
        return self._set(duration=duration)

    def set_display_mode(self, mode):
        return self._set(display_mode=mode)

    def set_playback_mode(self, mode):
        return self._set(playback_mode=mode)

    def set_current_subtitle_index(self, index):
        return self._set(current_subtitle_index=index)

    def apply(self, update: PlayerStateUpdate):
        """Apply the fields present in a partial update"""
        changes = update.model_dump(exclude_none=True)
        if changes:
            self._set(**changes)
        return self.state

    def seek_to(self, subtitle):
        """Click-to-seek: jump to the subtitle's start and play"""
        return self._set(
            current_time=subtitle.start_time,
            current_subtitle_index=subtitle.order,
            playing=True,
        )

    def update_progress(self, current_time, subtitles):
        """
        Record a progress tick from the video player

        Returns the action the page must perform on the video, or None:
        ``{'type': 'pause'}`` at the end of a sentence in sentence-pause
        mode, ``{'type': 'seek', 'time': start}`` in sentence-loop mode.
        """
        state = self.state
        index = state.current_subtitle_index
        active = subtitles[index] if 0 <= index < len(subtitles) else None

        if (active is not None and state.playback_mode != 'normal'
                and active.start_time <= state.current_time <= active.end_time < current_time):
            if state.playback_mode == 'sentence-pause':
                self._set(current_time=current_time, playing=False)
                return {'type': 'pause'}
            self._set(current_time=active.start_time)
            return {'type': 'seek', 'time': active.start_time}

        new_index = find_active_index(current_time, subtitles)
        self._set(
            current_time=current_time,
            current_subtitle_index=index if new_index is None else new_index,
        )
        return None

    def active_subtitle(self, subtitles):
        """The subtitle to display right now (must cover the current time)"""
        index = find_active_index(self.state.current_time, subtitles)
        return None if index is None else subtitles[index]


class PlayerSessions:
    """
    One PlayerStore per session ID, created on first access

    Holds at most ``max_sessions`` stores; the least recently used one is
    dropped when a new session would exceed that.
    """

    def __init__(self, max_sessions=1000):
        self.max_sessions = max_sessions
        self._stores = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id) -> PlayerStore:
        with self._lock:
            store = self._stores.get(session_id)
            if store is None:
                store = PlayerStore()
                self._stores[session_id] = store
                while len(self._stores) > self.max_sessions:
                    self._stores.popitem(last=False)
            else:
                self._stores.move_to_end(session_id)
            return store

    def __contains__(self, session_id):
        return session_id in self._stores

    def __len__(self):
        return len(self._stores)
