"""HKDSE examination statistics: CSV extraction, SQL import files and a dashboard API."""

from hkdse_stats.config import VERSION as __version__
