"""Database connection management for GeoLink."""

from geolink.db.connection import Database

__all__ = ["Database"]
