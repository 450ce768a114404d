"""
Configuration settings for the sheet normalization service
"""
from pydantic_settings import BaseSettings
from pathlib import Path


class Settings(BaseSettings):
    """Application settings using pydantic-settings"""

    # Project paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    OUTPUT_DIR: Path = PROJECT_ROOT / "essayfiles"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Job admission (each call is CPU-bound and memory heavy)
    MAX_CONCURRENT_JOBS: int = 3

    # Normalizer defaults
    NORMALIZER_STRATEGY: str = "corner_cluster"
    DETECTION_SCALE: float = 0.25
    DETECTION_DOWNSCALE_ABOVE: int = 2000
    ENHANCE_SCAN_LOOK: bool = True

    # Output encoding
    OUTPUT_FORMAT: str = "webp"
    OUTPUT_QUALITY: int = 90

    # Stitching
    STITCH_GUTTER: int = 20

    class Config:
        env_file = ".env"
        env_prefix = "SHEETSCAN_"
        extra = "allow"


settings = Settings()

# Ensure directories exist
settings.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
