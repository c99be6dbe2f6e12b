"""Line-oriented report output.

Report lines go to stdout through a `rich` console with markup, highlighting
and wrapping turned off so every line is written byte-for-byte as formatted.
"""

from __future__ import annotations

from rich.console import Console

from depwatch.core.models import DecodedDeposit


class DepositReporter:
    """The program's only observable output. Sink errors propagate."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(soft_wrap=True)

    def _line(self, text: str) -> None:
        self.console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)

    def report(self, deposit: DecodedDeposit) -> None:
        self._line(f"Deposit: Block {deposit.block_number} Index {deposit.index} Amount {deposit.amount}")

    def ready(self) -> None:
        self._line("Tracker is ready")

    def last_block(self, number: int) -> None:
        self._line(f"Last block processed: {number}")

    def sync_complete(self) -> None:
        self._line("Historical sync is done")

    def error(self, err: BaseException | str) -> None:
        self._line(f"[ERR]: {err}")
