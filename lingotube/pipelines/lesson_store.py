"""
Lesson persistence module

Lessons are flat JSON files next to a shared ``index.json`` catalog. The
index read-modify-write is serialized by a process-wide lock and every
file is replaced atomically, so concurrent imports inside one server
process cannot lose index entries.
"""
import json
import os
import tempfile
import threading
from pathlib import Path

from pydantic import ValidationError

from lingotube.core.errors import StorageError
from lingotube.core.models import Lesson, LessonIndex, LessonSummary
from lingotube.pipelines.video_id import sanitize_lesson_id
from lingotube.utils.paths import lesson_file_name

_INDEX_LOCK = threading.Lock()


def write_json_atomic(path, data):
    """Write JSON to a temp file in the same directory, then os.replace it"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class LessonStore:
    def __init__(self, config):
        self.config = config

    @property
    def lessons_dir(self) -> Path:
        return Path(self.config.LESSONS_DIR)

    @property
    def index_path(self) -> Path:
        return self.lessons_dir / self.config.INDEX_FILE

    def lesson_path(self, lesson_id) -> Path:
        return self.lessons_dir / lesson_file_name(lesson_id)

    def _read_index_entries(self):
        """Raw catalog entries; a missing or undecodable file gives an empty list"""
        try:
            with open(self.index_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError):
            return []

        if isinstance(data, dict):
            data = data.get('lessons')
        return data if isinstance(data, list) else []

    def read_index(self) -> LessonIndex:
        """Load the catalog; entries that do not validate are left out of the listing"""
        lessons = []
        for entry in self._read_index_entries():
            try:
                lessons.append(LessonSummary.model_validate(entry))
            except ValidationError as e:
                print(f"WARNING: Skipping invalid index entry: {e.error_count()} validation error(s)")
        return LessonIndex(lessons=lessons)

    def list_lessons(self):
        return self.read_index().lessons

    def load_lesson(self, lesson_id):
        """Return the Lesson for an ID, or None if it does not exist or cannot be read"""
        lesson_id = sanitize_lesson_id(lesson_id)
        if not lesson_id:
            return None

        try:
            with open(self.lesson_path(lesson_id), 'r', encoding='utf-8') as f:
                return Lesson.model_validate(json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, ValidationError) as e:
            print(f"ERROR: Failed to load lesson {lesson_id}: {e}")
            return None

    def save_lesson(self, lesson: Lesson):
        """Write the lesson file, then upsert its summary into the index"""
        print(f"\n{'='*70}")
        print(f"STEP 4: SAVING LESSON")
        print(f"{'='*70}")

        lesson_path = self.lesson_path(lesson.id)
        try:
            write_json_atomic(lesson_path, lesson.to_json_dict())
        except OSError as e:
            print(f"ERROR: Failed to write lesson file: {e}")
            raise StorageError('保存课程文件失败') from e
        print(f"Lesson saved: {lesson_path}")

        self.upsert_index(lesson)
        return lesson_path

    def upsert_index(self, lesson: Lesson):
        """
        Replace the index entry with the lesson's ID, or append one

        Works on the raw entries so that entries this version cannot
        validate are written back unchanged.
        """
        entry = lesson.summary().to_json_dict()
        with _INDEX_LOCK:
            entries = self._read_index_entries()
            for i, existing in enumerate(entries):
                if isinstance(existing, dict) and existing.get('id') == lesson.id:
                    entries[i] = entry
                    print(f"Updated existing index entry: {lesson.id}")
                    break
            else:
                entries.append(entry)
                print(f"Added index entry: {lesson.id}")

            try:
                write_json_atomic(self.index_path, {'lessons': entries})
            except OSError as e:
                print(f"ERROR: Failed to update index: {e}")
                raise StorageError('更新索引文件失败') from e
        return entries
