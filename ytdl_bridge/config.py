from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App Info
    APP_NAME: str = "ytdl-bridge"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    BIN_DIR: Path = BASE_DIR / "bin"
    USER_DATA_DIR: Path = BASE_DIR / "user_data"
    DOWNLOAD_DIR: Path = USER_DATA_DIR / "downloads"  # HTTP callers can only write below this

    # Extraction executable
    YTDL_PATH: str = ""  # Set via .env: YTDL_PATH=/usr/local/bin/yt-dlp
    YTDL_DETAILS_FILE: Path = BIN_DIR / "details"
    YTDL_INTERPRETER: str = ""  # e.g. "python" when YTDL_PATH points at a script

    # Encoder
    FFMPEG_PATH: str = "ffmpeg"

    # Output caps (bytes per stdout/stderr line)
    MAX_BUFFER_SIZE: int = 1024 * 1024
    PLAYLIST_MAX_BUFFER_SIZE: int = 7000 * 1024

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def model_post_init(self, __context):
        """Auto-detect a bundled encoder binary."""
        for name in ("ffmpeg", "ffmpeg.exe"):
            local_ffmpeg = self.BIN_DIR / name
            if local_ffmpeg.exists():
                self.FFMPEG_PATH = str(local_ffmpeg)
                break

    def init_dirs(self):
        """Ensure runtime directories exist."""
        for path in [self.USER_DATA_DIR, self.USER_DATA_DIR / "logs", self.DOWNLOAD_DIR]:
            path.mkdir(parents=True, exist_ok=True)

settings = Settings()
