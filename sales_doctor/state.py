"""Holds the bundle the presentation layer is currently showing.

There is one bundle at a time. It starts as the analysis of the built-in
sample book and is replaced wholesale by each successful upload. Consumers
get the ``AnalysisState`` handed to them; there is no module-level instance.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sales_doctor.config import DEFAULT_CONFIG, AnalysisConfig
from sales_doctor.pipeline import AnalysisResult, analyze_rows
from sales_doctor.providers import RandomStockProvider
from sales_doctor.sample import SAMPLE_ROWS

logger = logging.getLogger(__name__)

SOURCE_SAMPLE = "sample"
SOURCE_UPLOADED = "uploaded"


def build_sample_bundle(config: AnalysisConfig = DEFAULT_CONFIG, seed: int = 0) -> dict[str, Any]:
    result = analyze_rows(SAMPLE_ROWS, config=config, stock_provider=RandomStockProvider(seed))
    if not result.success or result.bundle is None:
        raise RuntimeError(f"Built-in sample could not be analysed: {result.error}")
    return result.bundle


class AnalysisState:
    def __init__(self, config: AnalysisConfig = DEFAULT_CONFIG) -> None:
        self._config = config
        self._sample: Optional[dict[str, Any]] = None
        self.bundle: dict[str, Any] = {}
        self.data_source = SOURCE_SAMPLE
        self.reset()

    @property
    def is_sample(self) -> bool:
        return self.data_source == SOURCE_SAMPLE

    def replace(self, bundle: dict[str, Any]) -> None:
        self.bundle = bundle
        self.data_source = SOURCE_UPLOADED
        logger.info("Analysis state replaced with uploaded data")

    def apply(self, result: AnalysisResult) -> bool:
        """Adopt a successful result; a failed one leaves the current bundle alone."""
        if not result.success or result.bundle is None:
            return False
        self.replace(result.bundle)
        return True

    def reset(self) -> None:
        if self._sample is None:
            self._sample = build_sample_bundle(self._config)
        self.bundle = self._sample
        self.data_source = SOURCE_SAMPLE
