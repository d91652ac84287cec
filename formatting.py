"""Turn raw transfer records into display rows."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable, List

from transfers import FormattedTransfer, TimestampError, TransferRecord

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_DECIMAL = re.compile(r"-?[0-9]+")


def timestamp_to_date(ts: str) -> tuple[str, int]:
    """Return the UTC date string and integer seconds for a Unix timestamp string."""
    if not isinstance(ts, str) or not _DECIMAL.fullmatch(ts):
        raise TimestampError(f"error formatting timestamp: {ts!r} is not a decimal integer")
    seconds = int(ts)
    try:
        date = datetime.fromtimestamp(seconds, tz=timezone.utc).strftime(DATE_FORMAT)
    except (OverflowError, OSError, ValueError) as exc:
        raise TimestampError(f"error formatting timestamp: {ts!r} is out of range") from exc
    return date, seconds


def format_transfers(transfers: Iterable[TransferRecord]) -> List[FormattedTransfer]:
    formatted: List[FormattedTransfer] = []
    for tx in transfers:
        date, seconds = timestamp_to_date(tx.timestamp)
        formatted.append(
            FormattedTransfer(
                date=date,
                from_address=tx.from_address,
                to_address=tx.to_address,
                value=tx.value,
                hash=tx.hash,
                timestamp_seconds=seconds,
            )
        )
    return formatted
