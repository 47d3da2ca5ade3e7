"""
Pytest configuration and global fixtures.
"""
import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageDraw
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import Settings
from data.database import DatabaseManager
from data.db_models import Base, FormDocument


@pytest.fixture(scope="session")
def test_db_engine():
    """Create in-memory SQLite engine for tests."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture
def test_db_session(test_db_engine):
    """Create fresh database session for each test."""
    Session = sessionmaker(bind=test_db_engine)
    session = Session()

    yield session

    # Rollback any uncommitted changes and empty the table
    session.rollback()
    session.query(FormDocument).delete()
    session.commit()
    session.close()


@pytest.fixture
def temp_dir(tmp_path):
    """Provide temporary directory for test files."""
    return tmp_path


@pytest.fixture
def db_manager(tmp_path):
    """File-backed database shared by worker threads."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'forms.db'}")
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def test_settings():
    """Settings with strict detection and no font file."""
    return Settings(
        _env_file=None,
        detect_default_tolerance=False,
        text_font_path=None,
        history_limit=0
    )


@pytest.fixture
def bordered_form_image():
    """200x200 white form with a one pixel black border."""
    img = Image.new('RGB', (200, 200), color='white')
    draw = ImageDraw.Draw(img)
    draw.rectangle([0, 0, 199, 199], outline='black', width=1)
    return img


@pytest.fixture
def two_cell_form_image():
    """Black 300x120 form with two white 100x80 cells."""
    img = Image.new('RGB', (300, 120), color='black')
    draw = ImageDraw.Draw(img)
    draw.rectangle([20, 20, 119, 99], fill='white')
    draw.rectangle([180, 20, 279, 99], fill='white')
    return img


@pytest.fixture
def sample_image_path(temp_dir, bordered_form_image):
    """Write the bordered form to disk."""
    img_path = temp_dir / "form.png"
    bordered_form_image.save(img_path)
    return str(img_path)


@pytest.fixture
def sample_png_bytes(bordered_form_image):
    """Bordered form encoded as PNG bytes."""
    buf = BytesIO()
    bordered_form_image.save(buf, format='PNG')
    return buf.getvalue()


@pytest.fixture
def sample_base64_image():
    """Provide base64 encoded sample image."""
    import base64

    img = Image.new('RGB', (100, 100), color='blue')
    buf = BytesIO()
    img.save(buf, format='PNG')
    return base64.b64encode(buf.getvalue()).decode()


@pytest.fixture
def wide_photo():
    """1600x900 gradient photo to place into cells."""
    img = Image.new('RGB', (1600, 900), color=(0, 128, 0))
    draw = ImageDraw.Draw(img)
    draw.rectangle([0, 0, 349, 899], fill=(255, 0, 0))
    draw.rectangle([1250, 0, 1599, 899], fill=(255, 0, 0))
    return img
