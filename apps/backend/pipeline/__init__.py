"""
PMHNP job ingestion pipeline.

Raw postings from source connectors are classified, normalized, deduplicated,
link-checked, scored and persisted; maintenance passes keep the stored records
fresh afterwards.
"""

__version__ = "1.0.0"
