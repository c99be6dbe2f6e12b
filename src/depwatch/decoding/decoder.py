"""Event decoder bound to one `EventShape`.

`match` answers "is this log an instance of the event" without ever raising.
`decode` splits a matching log into named raw byte values, all or nothing.
`decode_deposit` turns those values into a `DecodedDeposit`.
"""

from __future__ import annotations

from depwatch.core.errors import DecodeError
from depwatch.core.models import DecodedDeposit, LogRecord
from depwatch.decoding.signature import event_shape_from_signature
from depwatch.decoding.specs import EventShape
from depwatch.decoding.utils import dynamic_bytes_at, le_uint64, topic_bytes, word_at

DEPOSIT_EVENT_SIGNATURE = """DepositEvent(
    bytes pubkey,
    bytes whitdrawalcred,
    bytes amount,
    bytes signature,
    bytes index
)"""

DEPOSIT_EVENT: EventShape = event_shape_from_signature(DEPOSIT_EVENT_SIGNATURE)


class EventDecoder:
    """Match and decode logs of a single event type."""

    def __init__(self, shape: EventShape) -> None:
        self.shape = shape

    def match(self, log: LogRecord) -> bool:
        try:
            topics = log.topics
            if not topics:
                return False
            return str(topics[0]).lower() == self.shape.topic0
        except Exception:
            # Anything that does not even look like a log is not a match.
            return False

    def decode(self, log: LogRecord) -> dict[str, bytes]:
        """Return `{field name: raw bytes}` in the shape's field order.

        Raises `DecodeError` if the log does not match or its payload cannot
        be split; no partial result is ever returned.
        """
        if not self.match(log):
            raise DecodeError(f"log does not match {self.shape.name}")

        data = log.data
        if len(data) < 32 * self.shape.head_words:
            raise DecodeError(
                f"{self.shape.name} needs at least {32 * self.shape.head_words} data bytes, got {len(data)}"
            )

        values: dict[str, bytes] = {}
        for f in self.shape.fields:
            if f.indexed:
                if f.position >= len(log.topics):
                    raise DecodeError(f"{self.shape.name} is missing topic {f.position} ({f.name})")
                values[f.name] = topic_bytes(log.topics[f.position])
            elif f.dynamic:
                values[f.name] = dynamic_bytes_at(data, f.position)
            else:
                values[f.name] = word_at(data, f.position)
        return values

    def decode_deposit(self, log: LogRecord) -> DecodedDeposit:
        vals = self.decode(log)
        try:
            index_raw, amount_raw = vals["index"], vals["amount"]
        except KeyError as e:
            raise DecodeError(f"{self.shape.name} has no field {e}") from e
        return DecodedDeposit(
            block_number=log.block_number,
            index=le_uint64(index_raw),
            amount=le_uint64(amount_raw),
        )


def make_deposit_decoder() -> EventDecoder:
    return EventDecoder(DEPOSIT_EVENT)
