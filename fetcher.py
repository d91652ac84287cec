"""Etherscan ERC-20 transfer fetcher.

Etherscan's ``tokentx`` listing refuses any request where ``page * offset``
exceeds 10 000. Histories longer than that are walked in windows: once the
next page would cross the ceiling, the query is re-anchored with a
``startblock`` filter just past the last block already collected and paging
restarts at 1.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests

from formatting import format_transfers
from transfers import APIError, DecodeError, FormattedTransfer, TransferRecord, TransportError

logger = logging.getLogger(__name__)

API = "https://api.etherscan.io/api"

PAGE_CEILING = 10_000
PAGE_SIZE = 5000
POLITE_SLEEP = 0.2
NO_TRANSACTIONS = "no transactions found"


@dataclass
class FetchState:
    """Paging position of one fetch, threaded through the request loop."""

    page_size: int = PAGE_SIZE
    accumulated: List[TransferRecord] = field(default_factory=list)
    api_page: int = 1
    display_page: int = 1
    start_block: int = 0
    # index in ``accumulated`` where the current start_block window begins
    window_start: int = 0

    def ceiling_reached(self) -> bool:
        return self.api_page * self.page_size > PAGE_CEILING

    def reanchor(self) -> None:
        """Restart paging at page 1 from just past the last complete block.

        The last block of the window may have more transfers than we have
        seen, so its trailing records are dropped and that block is requested
        again from the top. A window made of a single block cannot be split
        that way and is kept as is.
        """
        last_block = self.accumulated[-1].block
        keep = len(self.accumulated)
        while keep > self.window_start and self.accumulated[keep - 1].block == last_block:
            keep -= 1

        if keep == self.window_start:
            logger.warning(
                "Block %d alone fills the %d-transfer window; its remaining transfers are skipped",
                last_block,
                PAGE_CEILING,
            )
        else:
            dropped = len(self.accumulated) - keep
            del self.accumulated[keep:]
            logger.debug("Re-requesting %d transfer(s) of boundary block %d", dropped, last_block)

        self.start_block = self.accumulated[-1].block + 1
        self.api_page = 1
        self.window_start = len(self.accumulated)
        logger.info("Page ceiling reached, continuing from block %d", self.start_block)

    def advance(self) -> None:
        self.api_page += 1
        self.display_page += 1

    def transaction_range(self) -> tuple[int, int]:
        """Inferred 1-based range of transactions the current page covers."""
        first = (self.display_page - 1) * self.page_size + 1
        return first, self.display_page * self.page_size

    def request_params(self, address: str, contract: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "module": "account",
            "action": "tokentx",
            "contractaddress": contract,
            "address": address,
            "page": self.api_page,
            "offset": self.page_size,
            "sort": "asc",
        }
        if self.start_block > 0:
            params["startblock"] = self.start_block
        return params


def _call_etherscan(
    params: dict[str, Any], api_key: str, base_url: str = API, timeout: int = 30
) -> dict[str, Any]:
    """Internal helper to call Etherscan API with standard error-handling."""
    logger.debug("GET %s %s", base_url, params)
    params = {**params, "apikey": api_key}
    try:
        r = requests.get(base_url, params=params, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as exc:
        raise TransportError(f"error making request: {exc}") from exc

    try:
        data = r.json()
    except ValueError as exc:
        raise DecodeError(f"error unmarshalling response: {exc}") from exc
    if not isinstance(data, dict):
        raise DecodeError(f"unexpected response body: {str(data)[:120]}")
    return data


def parse_page(envelope: dict[str, Any], empty_is_error: bool = True) -> List[TransferRecord]:
    """Return the transfers of one ``tokentx`` response envelope."""
    if "status" not in envelope or "result" not in envelope:
        raise DecodeError(f"response is missing status/result: {sorted(envelope)}")

    status = envelope["status"]
    message = str(envelope.get("message") or "")
    result = envelope["result"]

    if status != "1":
        if not empty_is_error and message.lower().startswith(NO_TRANSACTIONS):
            return []
        raise APIError(message, result)

    if not isinstance(result, list):
        raise DecodeError(f"error parsing list of transactions: {str(result)[:120]}")
    return [TransferRecord.from_api(item) for item in result]


def _log_progress(state: FetchState) -> None:
    first, last = state.transaction_range()
    if state.start_block:
        logger.info(
            "Downloading page %d (transactions %d-%d) from block %d...",
            state.display_page,
            first,
            last,
            state.start_block,
        )
    else:
        logger.info("Downloading page %d (transactions %d-%d)...", state.display_page, first, last)


def get_token_transfers(
    address: str,
    api_key: str,
    contract: str,
    *,
    page_size: int = PAGE_SIZE,
    base_url: str = API,
    delay: float = POLITE_SLEEP,
    empty_is_error: bool = True,
    progress: Optional[Callable[[FetchState], None]] = None,
) -> List[TransferRecord]:
    """Return every *contract* transfer involving *address*, oldest first.

    ``progress`` is called with the fetch state before each request and
    defaults to logging the page being downloaded.
    """
    if not 1 <= page_size <= PAGE_CEILING:
        raise ValueError(f"page_size must be between 1 and {PAGE_CEILING}, got {page_size}")

    report = progress or _log_progress
    state = FetchState(page_size=page_size)
    while True:
        if state.ceiling_reached():
            state.reanchor()

        report(state)
        envelope = _call_etherscan(
            state.request_params(address, contract), api_key, base_url=base_url
        )
        page = parse_page(envelope, empty_is_error=empty_is_error)
        state.accumulated.extend(page)

        if len(page) < state.page_size:
            break

        state.advance()
        time.sleep(delay)

    logger.info("Downloaded %d transactions total", len(state.accumulated))
    return state.accumulated


def fetch_formatted_transfers(
    address: str, api_key: str, contract: str, **options: Any
) -> List[FormattedTransfer]:
    """Fetch the full transfer history of *address* and format it for output."""
    return format_transfers(get_token_transfers(address, api_key, contract, **options))
