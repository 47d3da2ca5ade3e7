"""
Adaptive image fitting.

Computes how an arbitrary image is placed inside a blank area:
- crop-fill: crop the source to the cell's aspect ratio and fill the cell
- letterbox: scale the whole source to fit and centre it in the cell
"""
from typing import Union

from PIL import Image

from core.constants import FitMode
from core.models import BlankArea, PlacementTransform, SourceCrop


def crop_fill_source(source_width: int, source_height: int, dest_rect: BlankArea) -> SourceCrop:
    """
    Largest centred source region with the destination's aspect ratio.

    Args:
        source_width: Source image width
        source_height: Source image height
        dest_rect: Target rectangle

    Returns:
        Real-valued SourceCrop
    """
    source_aspect = source_width / source_height
    target_aspect = dest_rect.width / dest_rect.height

    if source_aspect > target_aspect:
        # Source is wider than the target, trim left and right
        crop_width = source_height * target_aspect
        return SourceCrop(
            x=(source_width - crop_width) / 2,
            y=0.0,
            width=crop_width,
            height=float(source_height)
        )

    # Source is taller than the target, trim top and bottom
    crop_height = source_width / target_aspect
    return SourceCrop(
        x=0.0,
        y=(source_height - crop_height) / 2,
        width=float(source_width),
        height=crop_height
    )


def letterbox_dest(source_width: int, source_height: int, dest_rect: BlankArea) -> BlankArea:
    """Scaled and centred destination for the full source image."""
    scale = min(dest_rect.width / source_width, dest_rect.height / source_height)
    new_width = min(dest_rect.width, max(1, round(source_width * scale)))
    new_height = min(dest_rect.height, max(1, round(source_height * scale)))

    return BlankArea(
        x=dest_rect.x + (dest_rect.width - new_width) // 2,
        y=dest_rect.y + (dest_rect.height - new_height) // 2,
        width=new_width,
        height=new_height
    )


def fit(
    source_width: int,
    source_height: int,
    dest_rect: BlankArea,
    mode: Union[FitMode, str] = FitMode.CROP_FILL
) -> PlacementTransform:
    """
    Compute the placement of a source image inside a destination rectangle.

    Args:
        source_width: Source image width (> 0)
        source_height: Source image height (> 0)
        dest_rect: Target rectangle on the base raster
        mode: FitMode or its string value

    Returns:
        PlacementTransform with source crop and integer destination rectangle
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Source dimensions must be positive, got {source_width}x{source_height}")
    if dest_rect.width <= 0 or dest_rect.height <= 0:
        raise ValueError(f"Destination must be non-empty, got {dest_rect}")

    mode = FitMode(mode)

    if mode is FitMode.CROP_FILL:
        return PlacementTransform(
            source_crop=crop_fill_source(source_width, source_height, dest_rect),
            dest_rect=dest_rect
        )

    return PlacementTransform(
        source_crop=SourceCrop(0.0, 0.0, float(source_width), float(source_height)),
        dest_rect=letterbox_dest(source_width, source_height, dest_rect)
    )


def render_placement(source: Image.Image, transform: PlacementTransform) -> Image.Image:
    """Resample the source crop to the destination size."""
    dest = transform.dest_rect
    if source.mode != 'RGBA':
        source = source.convert('RGBA')
    return source.resize(
        (dest.width, dest.height),
        Image.Resampling.LANCZOS,
        box=transform.source_crop.as_box()
    )
