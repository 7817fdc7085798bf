"""
Configuration class for the lesson platform
"""
import os
from pathlib import Path

from lingotube.utils.paths import setup_paths


class Config:
    """Configuration for the lesson import pipeline and web app"""

    def __init__(self, workspace_root: Path = None):
        """
        Initialize configuration

        Args:
            workspace_root: Root directory of the project. If None, auto-detects.
        """
        if workspace_root is None:
            workspace_root = Path(__file__).parent.parent.parent.absolute()

        self.WORKSPACE_ROOT = workspace_root

        # Storage (lesson JSON files are served as static assets from here)
        lessons_dir = os.environ.get('LINGOTUBE_LESSONS_DIR')
        self.LESSONS_DIR = Path(lessons_dir) if lessons_dir else workspace_root / "public" / "lessons"
        self.INDEX_FILE = "index.json"
        self.TEMPLATES_DIR, self.STATIC_DIR = setup_paths(workspace_root)

        # Translation
        self.SOURCE_LANG = "en"
        self.TARGET_LANG = os.environ.get('LINGOTUBE_TARGET_LANG', 'zh-CN')
        self.TRANSLATION_RETRIES = int(os.environ.get('TRANSLATION_RETRIES', '3'))
        self.RETRY_BASE_DELAY = float(os.environ.get('RETRY_BASE_DELAY', '1.0'))  # seconds

        # Per-line throttle before each translation call (seconds)
        self.AUTO_LINE_DELAY = float(os.environ.get('AUTO_LINE_DELAY', '0.1'))
        self.MANUAL_LINE_DELAY = float(os.environ.get('MANUAL_LINE_DELAY', '1.0'))

        # Transcript fetching
        self.TRANSCRIPT_LANGUAGES = ['en', 'en-US', 'en-GB', 'en-CA', 'en-AU']
        self.DEFAULT_END_PADDING = 5  # end time of the last transcript line = start + 5

        # Lesson defaults
        self.DEFAULT_LEVEL = "intermediate"

        # Network: env proxy first, then common Clash/V2Ray local ports
        self.PROXY = os.environ.get('LINGOTUBE_PROXY')
        self.DEFAULT_PROXY_PORTS = [7890, 7897, 10809]
        self.PROXY_PROBE_TIMEOUT = 0.3
        self.PROBE_PROXIES = os.environ.get('PROBE_PROXIES', 'true').lower() == 'true'

        # In-memory state kept by the web app
        self.MAX_PLAYER_SESSIONS = int(os.environ.get('MAX_PLAYER_SESSIONS', '1000'))
        self.MAX_JOBS = int(os.environ.get('MAX_JOBS', '200'))  # finished jobs beyond this are dropped

        # Server
        self.HOST = os.environ.get('HOST', '0.0.0.0')
        self.PORT = int(os.environ.get('PORT', '8000'))
