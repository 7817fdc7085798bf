"""
Path setup utilities for the web layer
"""
from pathlib import Path


def setup_paths(workspace_root: Path = None):
    """
    Resolve the template and static directories of the web UI

    Args:
        workspace_root: Root directory of the project. If None, auto-detects.

    Returns:
        tuple: (TEMPLATES_DIR, STATIC_DIR)
    """
    web_root = Path(__file__).parent.parent.absolute() / "web"

    # A checkout may override the packaged templates with its own web/ folder
    if workspace_root is not None:
        override = Path(workspace_root) / "web"
        if (override / "templates").exists():
            web_root = override

    return web_root / "templates", web_root / "static"


def lesson_file_name(lesson_id: str) -> str:
    """File name of a lesson inside the lessons directory"""
    return f"lesson-{lesson_id}.json"
