"""
SRT export of lesson subtitles
"""
from datetime import timedelta

import srt

LANGUAGES = ('en', 'zh', 'bilingual')


def _content(subtitle, lang):
    if lang == 'en':
        return subtitle.text_en
    if lang == 'zh':
        return subtitle.text_zh
    if subtitle.text_zh and subtitle.text_zh != subtitle.text_en:
        return f"{subtitle.text_en}\n{subtitle.text_zh}"
    return subtitle.text_en


def compose_srt(lesson, lang='bilingual'):
    """Compose the lesson's subtitles as an SRT document"""
    if lang not in LANGUAGES:
        raise ValueError(f"Unsupported subtitle language: {lang}")

    srt_content = []
    for sub in lesson.subtitles:
        subtitle = srt.Subtitle(
            index=sub.order + 1,
            start=timedelta(seconds=sub.start_time),
            end=timedelta(seconds=max(sub.end_time, sub.start_time)),
            content=_content(sub, lang),
        )
        srt_content.append(subtitle)

    return srt.compose(srt_content, reindex=False)
