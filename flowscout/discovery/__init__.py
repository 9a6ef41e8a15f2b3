"""Application discovery: crawling, extraction and flow synthesis."""

from flowscout.discovery.crawler import (
    DiscoveryCrawler,
    load_discovery_report,
    save_discovery_report,
)
from flowscout.discovery.extractors import PageExtractor
from flowscout.discovery.flows import synthesize_flows
from flowscout.discovery.models import (
    DiscoveredElement,
    DiscoveredForm,
    DiscoveredPage,
    DiscoveryError,
    DiscoveryErrorType,
    DiscoveryReport,
    ElementType,
    InputFieldType,
    ValidationRule,
    ValidationRuleType,
)

__all__ = [
    "DiscoveryCrawler",
    "load_discovery_report",
    "save_discovery_report",
    "PageExtractor",
    "synthesize_flows",
    "DiscoveredElement",
    "DiscoveredForm",
    "DiscoveredPage",
    "DiscoveryError",
    "DiscoveryErrorType",
    "DiscoveryReport",
    "ElementType",
    "InputFieldType",
    "ValidationRule",
    "ValidationRuleType",
]
