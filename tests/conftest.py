import io

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from galleryharvest.db.models import Base


def _pattern(variant: int) -> Image.Image:
    if variant == 4:
        return Image.radial_gradient("L")
    return Image.linear_gradient("L").rotate(90 * variant)


def image_bytes(width: int = 400, height: int = 400, variant: int = 0, fmt: str = "JPEG") -> bytes:
    """Encode a gradient test image; different variants hash far apart."""
    img = _pattern(variant).resize((width, height)).convert("RGB")
    buf = io.BytesIO()
    if fmt == "JPEG":
        img.save(buf, format=fmt, quality=95)
    else:
        img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image():
    return image_bytes


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, future=True)
    engine.dispose()
