"""
Connector registry for managing job sources.
"""
import logging
from typing import Dict, List, Optional

from .base import SourceConnector

logger = logging.getLogger(__name__)

# Global registry instance
_registry: Optional['ConnectorRegistry'] = None


class ConnectorRegistry:
    """Registry for source connectors"""

    def __init__(self):
        self._connectors: List[SourceConnector] = []
        self._connectors_by_name: Dict[str, SourceConnector] = {}

    def register(self, connector: SourceConnector):
        """Register a connector"""
        if connector.name in self._connectors_by_name:
            logger.warning(f"[registry] Connector {connector.name} already registered, replacing")
            self._connectors = [c for c in self._connectors if c.name != connector.name]

        self._connectors_by_name[connector.name] = connector
        self._connectors.append(connector)

        # Sort by priority (higher first)
        self._connectors.sort(key=lambda c: c.priority, reverse=True)

        logger.debug(f"[registry] Registered connector: {connector.name} (kind={connector.kind}, priority={connector.priority})")

    def get(self, name: str) -> Optional[SourceConnector]:
        """Get connector by name"""
        return self._connectors_by_name.get(name)

    def names(self) -> List[str]:
        return [connector.name for connector in self._connectors]

    def resolve(self, names: Optional[List[str]] = None) -> List[SourceConnector]:
        """
        Connectors for a run, in the order requested.

        Args:
            names: Connector names; None means every registered connector

        Raises:
            KeyError: if a name is not registered
        """
        if not names:
            return list(self._connectors)
        unknown = [name for name in names if name not in self._connectors_by_name]
        if unknown:
            raise KeyError(f"Unknown sources: {', '.join(unknown)}")
        return [self._connectors_by_name[name] for name in names]

    def list(self) -> List[Dict]:
        """List all registered connectors"""
        return [
            {
                'name': connector.name,
                'kind': connector.kind,
                'priority': connector.priority,
                'class': connector.__class__.__name__
            }
            for connector in self._connectors
        ]


def get_connector_registry() -> ConnectorRegistry:
    """Get or create the global connector registry"""
    global _registry
    if _registry is None:
        _registry = ConnectorRegistry()
        # Auto-register built-in connectors
        _register_builtin_connectors(_registry)
    return _registry


def _register_builtin_connectors(registry: ConnectorRegistry):
    """Register all built-in connectors"""
    from .adzuna import AdzunaConnector
    from .ashby import AshbyConnector
    from .ats_jobs_db import ATSJobsDBConnector
    from .bamboohr import BambooHRConnector
    from .career_page import CareerPageConnector
    from .careerjet import CareerjetConnector
    from .greenhouse import GreenhouseConnector
    from .icims import ICIMSConnector
    from .jazzhr import JazzHRConnector
    from .jooble import JoobleConnector
    from .jsearch import JSearchConnector
    from .lever import LeverConnector
    from .smartrecruiters import SmartRecruitersConnector
    from .usajobs import USAJobsConnector
    from .workday import WorkdayConnector

    for connector_class in (
        GreenhouseConnector,
        LeverConnector,
        AshbyConnector,
        WorkdayConnector,
        BambooHRConnector,
        SmartRecruitersConnector,
        USAJobsConnector,
        AdzunaConnector,
        JoobleConnector,
        JSearchConnector,
        ATSJobsDBConnector,
        CareerjetConnector,
        ICIMSConnector,
        JazzHRConnector,
        CareerPageConnector,
    ):
        registry.register(connector_class())
