from __future__ import annotations


from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Boolean, JSON, func
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class Dataset(Base):
    __tablename__ = "datasets"

    id = Column(Text, primary_key=True)
    workspace_id = Column(Text, nullable=True)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Image(Base):
    __tablename__ = "images"

    id = Column(Text, primary_key=True)
    dataset_id = Column(Text, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=False)
    workspace_id = Column(Text, nullable=True)
    source_type = Column(Text, nullable=False, default="crawl")
    source_url = Column(Text, nullable=True)
    storage_key = Column(Text, nullable=False)
    original_filename = Column(Text, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    mime = Column(Text, nullable=True)
    size_bytes = Column(Integer, nullable=True)
    hash = Column(Text, nullable=True)
    aspect_ratio = Column(Text, nullable=True)
    flagged_duplicate = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CrawlJob(Base):
    __tablename__ = "crawl_jobs"

    id = Column(Text, primary_key=True)
    dataset_id = Column(Text, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=True)
    subject_name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    discovered_sites = Column(JSON, nullable=False, default=list)
    current_site = Column(Text, nullable=True)
    pages_scanned = Column(Integer, nullable=False, default=0)
    images_found = Column(Integer, nullable=False, default=0)
    images_downloaded = Column(Integer, nullable=False, default=0)
    images_staged = Column(Integer, nullable=False, default=0)
    duplicates_removed = Column(Integer, nullable=False, default=0)
    min_resolution = Column(Integer, nullable=False, default=300)
    max_images = Column(Integer, nullable=False, default=500)
    crawl_depth = Column(Integer, nullable=False, default=3)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
