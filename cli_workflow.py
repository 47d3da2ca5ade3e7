#!/usr/bin/env python3
"""
CLI workflow runner for the form filling engine.

Provides command-line access to the form library: import a form image,
detect its blank areas, fill cells with images, annotate and export.
"""
import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import settings
from core.constants import FitMode, Tool
from core.exceptions import FormFillError
from data.database import DatabaseManager, init_database
from services.form_service import FormService
from utils.bbox_utils import areas_to_dicts
from utils.image_utils import format_size


def build_service(database_url: Optional[str] = None) -> FormService:
    """Create the storage handle and the service that owns it."""
    db_manager = init_database(DatabaseManager(database_url))
    return FormService(db_manager, settings)


async def import_form_cli(service: FormService, file_path: str, tolerance: Optional[bool]) -> Optional[str]:
    """Store a form image and detect its blank areas."""
    print("=" * 60)
    print(f"Importing: {file_path}")
    print("=" * 60)

    if not os.path.exists(file_path):
        print(f"❌ Error: File not found: {file_path}")
        return None

    summary = await service.create_form(file_path, tolerance=tolerance)

    print(f"✓ Form created: {summary.id}")
    print(f"  Blank areas: {summary.area_count}")
    print(f"  Size: {format_size(summary.size)}")
    return summary.id


async def list_forms_cli(service: FormService):
    """List all stored forms."""
    forms = await service.list_forms(limit=50)

    if not forms:
        print("No forms found in database.")
        return

    print(f"\nFound {len(forms)} forms:")
    print("-" * 80)
    print(f"{'ID':<38} {'Areas':<6} {'Size':<12} {'Updated'}")
    print("-" * 80)

    for form in forms:
        updated = form.timestamp.strftime("%Y-%m-%d %H:%M") if form.timestamp else "-"
        print(f"{form.id:<38} {form.area_count:<6} {format_size(form.size):<12} {updated}")


async def detect_cli(service: FormService, file_path: str, tolerance: Optional[bool], as_json: bool):
    """Detect blank areas in an image without storing it."""
    areas = await service.detect_blank_areas(file_path, tolerance=tolerance)

    if as_json:
        print(json.dumps(areas_to_dicts(areas), indent=2))
        return

    print(f"Found {len(areas)} blank areas:")
    for i, area in enumerate(areas, 1):
        print(f"  {i:>3}. x={area.x} y={area.y} w={area.width} h={area.height}")


async def fill_cli(service: FormService, form_id: str, x: float, y: float, image_path: str, fit_mode: str):
    """Place an image into the blank area under (x, y)."""
    session = await service.open_form(form_id)
    area = session.area_at(x, y)
    if area is None:
        print(f"❌ No blank area at ({x}, {y})")
        return

    transform = await session.place_image(area, image_path, fit_mode)
    if transform is None:
        print(f"❌ Area {area} lies outside the form")
        return
    dest = transform.dest_rect
    print(f"✓ Placed {os.path.basename(image_path)} at x={dest.x} y={dest.y} w={dest.width} h={dest.height}")


def _parse_point(value: str):
    try:
        x, y = value.split(',')
        return float(x), float(y)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected X,Y but got {value!r}")


async def draw_cli(
    service: FormService,
    form_id: str,
    points: List[tuple],
    erase: bool,
    color: Optional[str],
    width: Optional[int],
    text: Optional[str]
):
    """Draw a polyline, erase along it, or place text at its first point."""
    session = await service.open_form(form_id)

    if text:
        await session.place_text(points[0], text, color=color, size=width)
        print(f"✓ Text placed at {points[0]}")
    else:
        tool = Tool.ERASER if erase else Tool.DRAW
        await session.begin_stroke(points[0], tool=tool, color=color, width=width)
        for point in points[1:]:
            session.extend_stroke(point)
        await session.end_stroke()
        print(f"✓ {tool.value.capitalize()} stroke with {len(points)} points saved")

    await session.save()


async def export_cli(service: FormService, form_id: str, output: Optional[str]):
    """Export the flattened form as PNG."""
    session = await service.open_form(form_id)
    output_path = output or session.download_name

    with open(output_path, 'wb') as fh:
        fh.write(session.export_png())

    print(f"✓ Exported to: {output_path}")


async def delete_cli(service: FormService, form_id: str):
    """Delete a stored form."""
    if await service.delete_form(form_id):
        print(f"✓ Deleted: {form_id}")
    else:
        print(f"❌ Form not found: {form_id}")


def main():
    parser = argparse.ArgumentParser(
        description='Form filling workflow CLI'
    )
    parser.add_argument('--database-url', type=str, default=None, help='Database URL (default: DATABASE_URL setting)')
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    import_parser = subparsers.add_parser('import', help='Import a form image')
    import_parser.add_argument('file', type=str, help='Form image file')
    import_parser.add_argument('--strict', action='store_true', help='Detect without widened tolerance')

    subparsers.add_parser('list', help='List stored forms')

    detect_parser = subparsers.add_parser('detect', help='Detect blank areas in an image')
    detect_parser.add_argument('file', type=str, help='Image file')
    detect_parser.add_argument('--tolerance', action='store_true', help='Widen thresholds for noisy scans')
    detect_parser.add_argument('--json', action='store_true', help='Print areas as JSON')

    fill_parser = subparsers.add_parser('fill', help='Fill the blank area at a point with an image')
    fill_parser.add_argument('form_id', type=str, help='Form ID')
    fill_parser.add_argument('point', type=_parse_point, help='X,Y inside the blank area')
    fill_parser.add_argument('image', type=str, help='Image file to place')
    fill_parser.add_argument('--fit', type=str, default=settings.default_fit_mode,
                             choices=[mode.value for mode in FitMode], help='Fit mode')

    draw_parser = subparsers.add_parser('draw', help='Annotate a form')
    draw_parser.add_argument('form_id', type=str, help='Form ID')
    draw_parser.add_argument('points', type=_parse_point, nargs='+', help='X,Y points of the stroke')
    draw_parser.add_argument('--erase', action='store_true', help='Erase instead of draw')
    draw_parser.add_argument('--color', type=str, default=None, help='Colour, e.g. #FF0000')
    draw_parser.add_argument('--width', type=int, default=None, help='Brush/eraser width or text size')
    draw_parser.add_argument('--text', type=str, default=None, help='Place text at the first point')

    export_parser = subparsers.add_parser('export', help='Export the flattened form as PNG')
    export_parser.add_argument('form_id', type=str, help='Form ID')
    export_parser.add_argument('-o', '--output', type=str, help='Output file path')

    delete_parser = subparsers.add_parser('delete', help='Delete a stored form')
    delete_parser.add_argument('form_id', type=str, help='Form ID')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    service = build_service(args.database_url)

    try:
        if args.command == 'import':
            asyncio.run(import_form_cli(service, args.file, False if args.strict else None))
        elif args.command == 'list':
            asyncio.run(list_forms_cli(service))
        elif args.command == 'detect':
            asyncio.run(detect_cli(service, args.file, args.tolerance, args.json))
        elif args.command == 'fill':
            asyncio.run(fill_cli(service, args.form_id, args.point[0], args.point[1], args.image, args.fit))
        elif args.command == 'draw':
            asyncio.run(draw_cli(service, args.form_id, args.points, args.erase, args.color, args.width, args.text))
        elif args.command == 'export':
            asyncio.run(export_cli(service, args.form_id, args.output))
        elif args.command == 'delete':
            asyncio.run(delete_cli(service, args.form_id))
    except FormFillError as e:
        print(f"❌ Error ({e.kind.value}): {e.message}")
        sys.exit(1)


if __name__ == '__main__':
    main()
