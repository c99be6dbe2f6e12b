"""Event decoding.

This package provides:
- Event shape system (EventShape, FieldSpec)
- Signature parsing into shapes (event_shape_from_signature)
- The per-event decoder (EventDecoder) and the DepositEvent shape
"""

from depwatch.decoding.decoder import (
    DEPOSIT_EVENT,
    DEPOSIT_EVENT_SIGNATURE,
    EventDecoder,
    make_deposit_decoder,
)
from depwatch.decoding.signature import event_shape_from_signature, event_topic0
from depwatch.decoding.specs import EventShape, FieldSpec

__all__ = [
    "DEPOSIT_EVENT",
    "DEPOSIT_EVENT_SIGNATURE",
    "EventDecoder",
    "make_deposit_decoder",
    "event_shape_from_signature",
    "event_topic0",
    "EventShape",
    "FieldSpec",
]
