"""
Core domain models for blank area detection and image placement.

These are pure data structures without business logic.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .constants import DEFAULT_BRUSH, DEFAULT_DETECTION_PARAMS


@dataclass(frozen=True)
class BlankArea:
    """A fillable rectangle in base-raster pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    @property
    def area(self) -> int:
        """Calculate area."""
        return self.width * self.height

    def contains(self, px: float, py: float) -> bool:
        """Hit test with inclusive edges."""
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def overlaps(self, other: "BlankArea") -> bool:
        """True when the two rectangles share at least one pixel."""
        return (
            self.x < other.right and other.x < self.right
            and self.y < other.bottom and other.y < self.bottom
        )

    def union(self, other: "BlankArea") -> "BlankArea":
        """Smallest rectangle covering both."""
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return BlankArea(
            x=x,
            y=y,
            width=max(self.right, other.right) - x,
            height=max(self.bottom, other.bottom) - y,
        )

    def fits_within(self, width: int, height: int) -> bool:
        """Check the containment invariant against a raster size."""
        return (
            self.x >= 0 and self.y >= 0
            and self.width > 0 and self.height > 0
            and self.right <= width and self.bottom <= height
        )

    def as_box(self) -> tuple:
        """Pillow box (left, upper, right, lower)."""
        return (self.x, self.y, self.right, self.bottom)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BlankArea":
        """Build from the persisted JSON shape."""
        return cls(
            x=int(data['x']),
            y=int(data['y']),
            width=int(data['width']),
            height=int(data['height'])
        )


@dataclass
class Component:
    """A connected set of bright pixels found during detection."""
    pixel_count: int
    min_x: int
    min_y: int
    max_x: int
    max_y: int
    std_dev: float = 0.0

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def aspect_ratio(self) -> float:
        """Bounding box width / height."""
        return self.width / self.height

    def to_area(self) -> BlankArea:
        return BlankArea(x=self.min_x, y=self.min_y, width=self.width, height=self.height)


@dataclass(frozen=True)
class SourceCrop:
    """Real-valued region of the source image."""
    x: float
    y: float
    width: float
    height: float

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def as_box(self) -> tuple:
        """Pillow box (left, upper, right, lower)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(frozen=True)
class PlacementTransform:
    """Where to read from the source and where to draw on the base."""
    source_crop: SourceCrop
    dest_rect: BlankArea


@dataclass
class DetectionConfig:
    """Thresholds for the blank area detector."""
    brightness_threshold: int = DEFAULT_DETECTION_PARAMS['brightness_threshold']
    min_pixel_count: int = DEFAULT_DETECTION_PARAMS['min_pixel_count']
    max_std_dev: float = DEFAULT_DETECTION_PARAMS['max_std_dev']
    min_aspect_ratio: float = DEFAULT_DETECTION_PARAMS['min_aspect_ratio']
    max_aspect_ratio: float = DEFAULT_DETECTION_PARAMS['max_aspect_ratio']
    tolerance: bool = False
    tolerant_brightness_threshold: int = DEFAULT_DETECTION_PARAMS['tolerant_brightness_threshold']
    tolerant_cell_size: int = DEFAULT_DETECTION_PARAMS['tolerant_cell_size']
    tolerant_std_dev_factor: float = DEFAULT_DETECTION_PARAMS['tolerant_std_dev_factor']

    @property
    def effective_threshold(self) -> int:
        """Brightness cutoff after applying the tolerance flag."""
        if self.tolerance:
            return min(self.brightness_threshold, self.tolerant_brightness_threshold)
        return self.brightness_threshold

    @property
    def effective_max_std_dev(self) -> float:
        if self.tolerance:
            return self.max_std_dev * self.tolerant_std_dev_factor
        return self.max_std_dev

    @property
    def expansion_margin(self) -> int:
        """Pixels added on every side of accepted areas (tolerant mode only)."""
        return self.tolerant_cell_size // 2 if self.tolerance else 0

    @classmethod
    def from_settings(cls, settings, tolerance: Optional[bool] = None) -> "DetectionConfig":
        """Build a config from application settings."""
        if tolerance is None:
            tolerance = settings.detect_default_tolerance
        return cls(tolerance=tolerance, **settings.get_detection_defaults())

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'brightness_threshold': self.brightness_threshold,
            'min_pixel_count': self.min_pixel_count,
            'max_std_dev': self.max_std_dev,
            'min_aspect_ratio': self.min_aspect_ratio,
            'max_aspect_ratio': self.max_aspect_ratio,
            'tolerance': self.tolerance,
            'tolerant_brightness_threshold': self.tolerant_brightness_threshold,
            'tolerant_cell_size': self.tolerant_cell_size,
            'tolerant_std_dev_factor': self.tolerant_std_dev_factor,
        }


@dataclass
class BrushSettings:
    """Active colours and sizes for the annotation tools."""
    brush_color: str = DEFAULT_BRUSH['brush_color']
    brush_size: int = DEFAULT_BRUSH['brush_size']
    eraser_size: int = DEFAULT_BRUSH['eraser_size']
    text_color: str = DEFAULT_BRUSH['text_color']
    text_size: int = DEFAULT_BRUSH['text_size']
    font_path: Optional[str] = DEFAULT_BRUSH['font_path']

    @classmethod
    def from_settings(cls, settings) -> "BrushSettings":
        return cls(**settings.get_brush_defaults())


@dataclass
class FormSummary:
    """Lightweight listing entry for a stored form."""
    id: str
    timestamp: datetime
    size: int
    area_count: int = 0
