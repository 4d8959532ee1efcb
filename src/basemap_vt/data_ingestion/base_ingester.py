"""
Base Data Ingester

Common extract / validate / transform workflow for loading source documents
into the tile engine's internal representation.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import structlog

from ..monitoring.metrics import MetricsCollector
from ..utils.exceptions import InvalidInputError


class BaseDataIngester(ABC):
    """
    Abstract base class for all ingesters.

    Subclasses implement the three stages; ``ingest`` runs them in order,
    keeps statistics and logs progress.
    """

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        """
        Initialize the base data ingester.

        Args:
            metrics_collector: Optional metrics collector for monitoring
        """
        self.metrics = metrics_collector or MetricsCollector()

        self.logger = structlog.get_logger(ingester_type=self.__class__.__name__)

        self.stats: Dict[str, Any] = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'records_processed': 0,
            'records_failed': 0,
            'start_time': None,
            'end_time': None,
            'errors': []
        }

    @abstractmethod
    def extract(self, source: Any) -> Any:
        """
        Extract data from the specified source.

        Args:
            source: Data source specification (path, string or object)

        Returns:
            Extracted data in appropriate format
        """
        pass

    @abstractmethod
    def validate(self, data: Any) -> bool:
        """
        Validate the extracted data before it is transformed.

        Args:
            data: Data to validate

        Returns:
            True if data is valid, False otherwise
        """
        pass

    @abstractmethod
    def transform(self, data: Any) -> Any:
        """
        Convert validated data into the internal representation.

        Args:
            data: Raw extracted data

        Returns:
            Transformed data ready for tiling
        """
        pass

    def ingest(self, source: Any) -> Any:
        """
        Complete ingestion workflow: extract, validate and transform.

        Args:
            source: Data source specification

        Returns:
            The transformed data

        Raises:
            InvalidInputError: If the source cannot be used at all
        """
        self.stats = self._empty_stats()
        self.stats['start_time'] = time.time()

        try:
            self.logger.info("Starting data ingestion")

            data = self.extract(source)

            if data is None:
                raise InvalidInputError("Data extraction returned None")

            if not self.validate(data):
                raise InvalidInputError("Data validation failed")

            transformed = self.transform(data)

            self.stats['end_time'] = time.time()
            self.logger.info(
                "Data ingestion completed",
                records_processed=self.stats['records_processed'],
                records_failed=self.stats['records_failed'],
                duration_seconds=self.stats['end_time'] - self.stats['start_time']
            )

            return transformed

        except Exception as e:
            self.stats['end_time'] = time.time()
            self.stats['errors'].append(str(e))

            self.logger.error(
                "Data ingestion failed",
                error=str(e),
                duration_seconds=self.stats['end_time'] - self.stats['start_time']
            )
            raise
