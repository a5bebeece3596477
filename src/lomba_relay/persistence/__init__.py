# ABOUTME: Database operations and data persistence layer
# ABOUTME: Competition records from draft insertion through enrichment and delivery

"""
Persistence Layer: Store and query competition records

This layer handles:
- The SQLModel competition table and JSON-typed columns
- Dedup key reads and bulk draft insertion
- Fill-only enrichment updates
- Delivery eligibility queries

Data Flow: core/ admission → Database → extraction/ enrichment → delivery/
"""

from .json_types import PydanticJson
from .manager import DatabaseManager, DedupKeys, is_empty
from .models import STATUS_DRAFT, STATUS_PUBLISHED, CompetitionRecord

__all__ = [
    "CompetitionRecord",
    "DatabaseManager",
    "DedupKeys",
    "PydanticJson",
    "STATUS_DRAFT",
    "STATUS_PUBLISHED",
    "is_empty",
]
