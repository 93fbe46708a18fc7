"""Application configuration and constants."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

# Directory paths
BASE_DIR = Path(__file__).resolve().parent.parent
STORAGE_ROOT = Path(os.environ.get("GALLERY_STORAGE_PATH", str(BASE_DIR / "gallery_storage")))
DATABASE_PATH = Path(os.environ.get("GALLERY_DATABASE_PATH", str(BASE_DIR / "gallery.db")))

# Default visibility of folders registered by sync or by an upload into a new path
DEFAULT_FOLDER_PUBLIC = os.environ.get("GALLERY_DEFAULT_PUBLIC", "true").lower() == "true"

# Session configuration
SESSION_COOKIE = "gallery_session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days

# Paths that don't require authentication
PUBLIC_PATHS = {"/login", "/health", "/api/internal/notify"}

# Shared secret for the internal notify bridge (disabled when unset)
NOTIFY_TOKEN = os.environ.get("GALLERY_NOTIFY_TOKEN") or None
NOTIFY_TOKEN_HEADER = "X-Notify-Token"

# Content listing
PAGE_SIZE = int(os.environ.get("GALLERY_PAGE_SIZE", "18"))
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"}
VIDEO_EXTENSIONS = {".mp4", ".webm", ".mov", ".mkv"}
TEXT_EXTENSIONS = {
    ".txt", ".md", ".json", ".yaml", ".yml", ".toml", ".csv", ".log",
    ".py", ".js", ".ts", ".html", ".css", ".sh", ".sql", ".xml",
}

# Root folders per combined UPDATE in bulk recursive propagation
BULK_CHUNK_SIZE = int(os.environ.get("GALLERY_BULK_CHUNK_SIZE", "30"))

# Buffered events per subscriber before new events are dropped
EVENT_QUEUE_SIZE = int(os.environ.get("GALLERY_EVENT_QUEUE_SIZE", "100"))

LOG_LEVEL = os.environ.get("GALLERY_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    """Runtime settings handed to ``create_app``.

    Defaults mirror the module constants; tests build their own instance
    pointing at temporary directories.
    """
    storage_root: Path = STORAGE_ROOT
    database_path: Path = DATABASE_PATH
    default_folder_public: bool = DEFAULT_FOLDER_PUBLIC
    notify_token: str | None = NOTIFY_TOKEN
    page_size: int = PAGE_SIZE
    bulk_chunk_size: int = BULK_CHUNK_SIZE
    event_queue_size: int = EVENT_QUEUE_SIZE
    log_level: str = LOG_LEVEL
    public_paths: set[str] = field(default_factory=lambda: set(PUBLIC_PATHS))

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Attach a stream handler to the ``app`` logger once."""
    logger = logging.getLogger("app")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
