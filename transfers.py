"""Transfer records and the error types shared by the fetch/format/output stages."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

# Etherscan keys of a tokentx item, mapped to TransferRecord fields.
API_FIELDS: dict[str, str] = {
    "timeStamp": "timestamp",
    "from": "from_address",
    "to": "to_address",
    "value": "value",
    "hash": "hash",
    "blockNumber": "block_number",
}


class CrawlerError(Exception):
    """Base class for every terminal error of a crawl."""

    stage = "crawl"

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class TransportError(CrawlerError):
    """Network or HTTP failure while talking to Etherscan."""

    stage = "fetch"


class APIError(CrawlerError):
    """Etherscan answered with a non-success status."""

    stage = "fetch"

    def __init__(self, message: str, result: Any = None):
        self.message = message
        self.result = result
        detail = f"Etherscan API error: {message}"
        if isinstance(result, str) and result and result != message:
            detail += f" ({result})"
        super().__init__(detail)


class DecodeError(CrawlerError):
    """Response body is not the expected JSON envelope or record array."""

    stage = "parse"


class TimestampError(CrawlerError):
    stage = "format"


class ConfigError(CrawlerError):
    stage = "config"


class OutputError(CrawlerError):
    stage = "output"


@dataclass(frozen=True)
class TransferRecord:
    """One raw ERC-20 transfer, string fields exactly as Etherscan sent them."""

    timestamp: str
    from_address: str
    to_address: str
    value: str
    hash: str
    block_number: str

    @classmethod
    def from_api(cls, item: Any) -> "TransferRecord":
        if not isinstance(item, dict):
            raise DecodeError(f"transfer entry is not an object: {item!r:.80}")
        fields: Dict[str, str] = {}
        for api_key, field in API_FIELDS.items():
            value = item.get(api_key)
            if not isinstance(value, str):
                raise DecodeError(
                    f"transfer entry has no string {api_key!r}: {item.get('hash', '?')}"
                )
            fields[field] = value

        block_number = fields["block_number"]
        if not (block_number.isascii() and block_number.isdigit()):
            raise DecodeError(f"invalid blockNumber {block_number!r} in {fields['hash']}")
        return cls(**fields)

    @property
    def block(self) -> int:
        """Block number as an integer."""
        return int(self.block_number)


@dataclass(frozen=True)
class FormattedTransfer:
    """Display-ready transfer with a decoded UTC date."""

    date: str
    from_address: str
    to_address: str
    value: str
    hash: str
    timestamp_seconds: int
