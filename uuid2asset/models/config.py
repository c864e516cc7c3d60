"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

DEFAULT_FILE_EXTENSIONS = [
    ".json",
    ".ttf",
    ".bin",
    ".png",
    ".jpg",
    ".bmp",
    ".jpeg",
    ".gif",
    ".ico",
    ".tiff",
    ".webp",
    ".image",
    ".pvr",
    ".pkm",
    ".mp3",
    ".ogg",
    ".wav",
    ".m4a",
]

DEFAULT_CONCURRENCY_LIMIT = 400
DEFAULT_SUB_BATCH_SIZE = 50
DEFAULT_TASK_TIMEOUT = 30.0
DEFAULT_RETRY_DELAY = 5.0


class RunConfig(BaseModel):
    """A validated configuration model for the application."""

    # Target
    server_url: str = ""
    extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FILE_EXTENSIONS)
    )

    # Download Engine
    concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT
    sub_batch_size: int = DEFAULT_SUB_BATCH_SIZE
    task_timeout: float = DEFAULT_TASK_TIMEOUT

    # Retry Policy (no max_attempts means retry forever)
    retry_delay: float = DEFAULT_RETRY_DELAY
    max_attempts: int | None = None
    backoff_factor: float = 1.0
    max_retry_delay: float | None = None

    # Output
    output_dir: str = "."
    external_archive: bool = True

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)
    sources: list[str] = Field(default_factory=list, repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        """Normalizes the server URL so paths can be appended with a single '/'."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError(f"Server URL must start with http:// or https://: {v}")
        return v.rstrip("/")

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        """Ensures every extension is a non-empty '.ext' string, keeping order."""
        cleaned = []
        for ext in v:
            ext = ext.strip()
            if not ext:
                continue
            if not ext.startswith(".") or len(ext) < 2:
                raise ValueError(f"File extension must look like '.png', got: {ext}")
            cleaned.append(ext)
        if not cleaned:
            raise ValueError("At least one file extension is required.")
        return list(dict.fromkeys(cleaned))

    @field_validator("concurrency_limit")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Ensures a reasonable number of in-flight requests."""
        if v < 1 or v > 2000:
            raise ValueError("Concurrency limit must be between 1 and 2000.")
        return v

    @field_validator("sub_batch_size")
    @classmethod
    def validate_sub_batch(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Sub-batch size must be at least 1.")
        return v

    @field_validator("task_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Task timeout must be greater than zero.")
        return v

    @field_validator("retry_delay")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Retry delay cannot be negative.")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int | None) -> int | None:
        """Zero is accepted as an alias for 'retry forever'."""
        if v is None or v == 0:
            return None
        if v < 0:
            raise ValueError("Max attempts cannot be negative.")
        return v

    @field_validator("backoff_factor")
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError("Backoff factor must be at least 1.0.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path", "sources", "server_url"}
        return {key for key in cls.model_fields if key not in internal_fields}
