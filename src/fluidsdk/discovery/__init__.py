"""
Capability discovery for MCP and A2A endpoints.
"""

from fluidsdk.discovery.crawler import CapabilitySet, EndpointCrawler
from fluidsdk.discovery.extract import extract_list

__all__ = [
    "CapabilitySet",
    "EndpointCrawler",
    "extract_list",
]
