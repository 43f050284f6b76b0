"""
Job bodies. Importing this package registers every job with ``cron_registry``.
"""

from . import ingestion, trends

__all__ = ["ingestion", "trends"]
