"""
Configuration management using Pydantic Settings.

Environment variables:
- DATABASE_URL: SQLAlchemy database URL for the form store
- DETECT_BRIGHTNESS_THRESHOLD: Luminance cutoff for blank-area candidates
- DETECT_DEFAULT_TOLERANCE: Detect with widened thresholds by default
- BRUSH_COLOR / BRUSH_SIZE / ERASER_SIZE: Drawing defaults
- TEXT_COLOR / TEXT_SIZE / TEXT_FONT_PATH: Text tool defaults
- LOG_LEVEL: Logging level for the CLI
"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database Configuration
    database_url: str = Field(default="sqlite:///form_store.db")

    # Blank Area Detection
    detect_brightness_threshold: int = Field(default=235, ge=0, le=255)
    detect_min_pixel_count: int = Field(default=100, ge=1)
    detect_max_std_dev: float = Field(default=15.0, ge=0.0)
    detect_min_aspect_ratio: float = Field(default=0.2, gt=0.0)
    detect_max_aspect_ratio: float = Field(default=5.0, gt=0.0)
    detect_tolerant_brightness_threshold: int = Field(default=220, ge=0, le=255)
    detect_tolerant_cell_size: int = Field(default=15, ge=1)
    detect_default_tolerance: bool = Field(default=True)

    # Drawing Tools
    brush_color: str = Field(default="#FF0000")
    brush_size: int = Field(default=5, ge=1)
    eraser_size: int = Field(default=20, ge=1)
    text_color: str = Field(default="#000000")
    text_size: int = Field(default=24, ge=1)
    text_font_path: Optional[str] = Field(
        default="/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
    )

    # Image Placement
    default_fit_mode: str = Field(default="crop-fill")
    max_image_size: int = Field(default=4096, ge=0)

    # History (0 = unlimited)
    history_limit: int = Field(default=0, ge=0)

    # Logging
    log_level: str = Field(default="INFO")

    def get_detection_defaults(self) -> dict:
        """Get detector thresholds as dictionary."""
        return {
            'brightness_threshold': self.detect_brightness_threshold,
            'min_pixel_count': self.detect_min_pixel_count,
            'max_std_dev': self.detect_max_std_dev,
            'min_aspect_ratio': self.detect_min_aspect_ratio,
            'max_aspect_ratio': self.detect_max_aspect_ratio,
            'tolerant_brightness_threshold': self.detect_tolerant_brightness_threshold,
            'tolerant_cell_size': self.detect_tolerant_cell_size,
        }

    def get_brush_defaults(self) -> dict:
        """Get drawing tool defaults as dictionary."""
        return {
            'brush_color': self.brush_color,
            'brush_size': self.brush_size,
            'eraser_size': self.eraser_size,
            'text_color': self.text_color,
            'text_size': self.text_size,
            'font_path': self.text_font_path,
        }


# Global settings instance
settings = Settings()
