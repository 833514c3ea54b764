"""
bidfinder - Tender and award ingestion pipeline.

Fetches procurement listing pages from configured sources, extracts
opportunities, tags them, and stores anything new in a local database.
"""

__version__ = "0.1.0"
__app_name__ = "bidfinder"
