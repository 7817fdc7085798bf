"""
Lesson, subtitle and player data models

Field names on disk and on the wire are camelCase, as the lesson JSON files
have always been written; Python code uses the snake_case attributes.
"""
import math
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DisplayMode = Literal['bilingual', 'english', 'chinese', 'ipa', 'dictation']
PlaybackMode = Literal['normal', 'sentence-pause', 'sentence-loop']


def whole_seconds(value):
    """Hand-edited lesson files may carry fractional seconds; floor them"""
    if isinstance(value, float) and math.isfinite(value):
        return math.floor(value)
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self):
        return self.model_dump(by_alias=True, exclude_none=True)


class Subtitle(CamelModel):
    id: str
    lesson_id: str = Field(alias='lessonId')
    start_time: int = Field(alias='startTime')
    end_time: int = Field(alias='endTime')
    text_en: str = Field(alias='textEn')
    text_zh: str = Field(alias='textZh')
    text_ipa: Optional[str] = Field(default=None, alias='textIpa')
    order: int

    floor_times = field_validator('start_time', 'end_time', mode='before')(whole_seconds)


class LessonSummary(CamelModel):
    id: str
    title: str
    description: str = ''
    thumbnail: str = ''
    duration: int = 0
    level: str = 'intermediate'  # beginner | intermediate | advanced
    tags: List[str] = Field(default_factory=list)
    blogger_name: Optional[str] = Field(default=None, alias='bloggerName')

    floor_duration = field_validator('duration', mode='before')(whole_seconds)


class Lesson(LessonSummary):
    youtube_id: str = Field(alias='youtubeId')
    subtitles: List[Subtitle] = Field(default_factory=list)

    def summary(self) -> LessonSummary:
        return LessonSummary(**self.model_dump(exclude={'youtube_id', 'subtitles'}))


class LessonIndex(CamelModel):
    lessons: List[LessonSummary] = Field(default_factory=list)


class ImportResult(CamelModel):
    success: bool = True
    lesson_id: str = Field(alias='lessonId')
    title: str
    subtitle_count: int = Field(alias='subtitleCount')
    duration: int
    translated: Optional[bool] = None


class PlayerState(CamelModel):
    playing: bool = False
    playback_rate: float = Field(default=1.0, alias='playbackRate', gt=0)
    current_time: float = Field(default=0, alias='currentTime', ge=0)
    duration: float = Field(default=0, ge=0)
    display_mode: DisplayMode = Field(default='bilingual', alias='displayMode')
    playback_mode: PlaybackMode = Field(default='normal', alias='playbackMode')
    current_subtitle_index: int = Field(default=0, alias='currentSubtitleIndex')


class PlayerStateUpdate(CamelModel):
    """Partial PlayerState sent by the player controls"""
    playing: Optional[bool] = None
    playback_rate: Optional[float] = Field(default=None, alias='playbackRate', gt=0)
    current_time: Optional[float] = Field(default=None, alias='currentTime', ge=0)
    duration: Optional[float] = Field(default=None, ge=0)
    display_mode: Optional[DisplayMode] = Field(default=None, alias='displayMode')
    playback_mode: Optional[PlaybackMode] = Field(default=None, alias='playbackMode')
    current_subtitle_index: Optional[int] = Field(default=None, alias='currentSubtitleIndex')
