"""
Source connector system for the PMHNP ingestion pipeline.

Connectors own request shaping and field mapping for one external source:
- ATS board APIs (Greenhouse, Lever, Ashby, Workday, BambooHR, SmartRecruiters)
- Paginated search APIs (USAJobs, Adzuna, Jooble, JSearch, ATS Jobs DB, Careerjet)
- HTML career sites (iCIMS, JazzHR, configured employer career pages)
"""

from .base import FetchContext, SearchUnit, SourceConnector, build_search_matrix
from .registry import ConnectorRegistry, get_connector_registry

__all__ = [
    'FetchContext',
    'SearchUnit',
    'SourceConnector',
    'build_search_matrix',
    'ConnectorRegistry',
    'get_connector_registry'
]
