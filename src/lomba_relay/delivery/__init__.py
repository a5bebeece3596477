# ABOUTME: Outbound delivery of finished competition records to chat channels
# ABOUTME: Pipeline Stage 4: persisted eligible records → WhatsApp channels

"""
Delivery Layer: Publish enriched records

This layer handles:
- Eligibility selection (title, poster, not expired, not yet delivered)
- Caption formatting with Indonesian deadline dates
- All-or-nothing fan-out to the configured channels

Data Flow: persistence/ eligible records → WAHA gateway → persistence/ published
"""

from .whatsapp import DeliveryGate, DeliveryReport, WahaClient, format_caption

__all__ = [
    "DeliveryGate",
    "DeliveryReport",
    "WahaClient",
    "format_caption",
]
