from .engine import make_engine, init_db
from .models import Base, CrawlJob, Dataset, Image

__all__ = [
    "make_engine",
    "init_db",
    "Base",
    "CrawlJob",
    "Dataset",
    "Image",
]
