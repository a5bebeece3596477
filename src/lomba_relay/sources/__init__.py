# ABOUTME: Source adapters that scrape competition announcements from upstreams
# ABOUTME: Pipeline Stage 1: social profile and HTML listings → candidate items

"""
Sources Layer: Fetch candidate posts from unreliable upstreams

This layer handles:
- Instagram profile scraping with pacing and bounded retries
- HTML listing scraping with concurrent detail-page enrichment
- Lexical normalization of relative links and image URLs

Data Flow: Upstreams → CandidateItem → core/ collector
"""

from lomba_relay.config import Config, get_config

from .base import CandidateItem, SourceAdapter, SourceBatch, SourceError, SourceOrigin
from .infolombaid import InfolombaIDAdapter
from .infolombait import InfolombaITAdapter
from .instagram import InstagramAdapter


def build_adapters(config: Config | None = None) -> list[SourceAdapter]:
    """Instantiate the adapters enabled in configuration, in a stable order."""
    config = config or get_config()
    factories = {
        "instagram": lambda: InstagramAdapter(config),
        "infolombait": lambda: InfolombaITAdapter(
            config.infolombait_url, config.infolombait_limit, timeout=config.source_timeout
        ),
        "infolombaid": lambda: InfolombaIDAdapter(
            config.infolombaid_url, config.infolombaid_limit, timeout=config.source_timeout
        ),
    }
    return [factories[name]() for name in factories if name in config.enabled_sources]


__all__ = [
    "CandidateItem",
    "InfolombaIDAdapter",
    "InfolombaITAdapter",
    "InstagramAdapter",
    "SourceAdapter",
    "SourceBatch",
    "SourceError",
    "SourceOrigin",
    "build_adapters",
]
