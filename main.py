#!/usr/bin/env python3
"""EthCrawler - download the full ERC-20 (USDT by default) transfer history of an address.

Usage:
  python main.py -a 0x... [--format text|excel|both] [--config ethcrawler.conf]

The Etherscan API key and token contract come from ``ethcrawler.conf`` or
``.env`` (see .env.example); on first run the key is asked for and saved.
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, just_fix_windows_console

import fetcher
import settings
import writers
from transfers import CrawlerError, FormattedTransfer

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def say(color: str, message: str, end: str = "\n") -> None:
    print(f"{color}{message}{Style.RESET_ALL}", end=end, flush=True)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def page_size_arg(value: str) -> int:
    size = int(value)
    if not 1 <= size <= fetcher.PAGE_CEILING:
        raise argparse.ArgumentTypeError(f"must be between 1 and {fetcher.PAGE_CEILING}")
    return size


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download every ERC-20 token transfer of an Ethereum address from Etherscan."
    )
    parser.add_argument("-a", "--address", default="", help="Ethereum address (0x + 40 hex characters)")
    parser.add_argument(
        "--format",
        choices=("text", "excel", "both"),
        default="both",
        help="Output format (default: both)",
    )
    parser.add_argument(
        "--config",
        default="",
        metavar="PATH",
        help="Path to config file (.env or .conf). Searched for next to the program and in the cwd if omitted.",
    )
    parser.add_argument(
        "--output-dir",
        default=".",
        metavar="DIR",
        help="Directory to write <address>.txt / <address>.xlsx into (default: current directory)",
    )
    parser.add_argument(
        "--page-size",
        type=page_size_arg,
        default=fetcher.PAGE_SIZE,
        metavar="N",
        help=f"Transfers requested per page (default {fetcher.PAGE_SIZE}, max {fetcher.PAGE_CEILING})",
    )
    parser.add_argument(
        "--allow-empty",
        action="store_true",
        help="Treat Etherscan's 'No transactions found' status as an empty history instead of an error.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log request details")
    parser.add_argument(
        "--no-pause",
        action="store_true",
        help="Exit immediately instead of waiting for Enter (for scripted use).",
    )
    return parser.parse_args(argv)


def is_valid_address(address: str) -> bool:
    return bool(ADDRESS_RE.match(address))


def prompt_for_address() -> str:
    while True:
        address = input(f"{Fore.GREEN}Please enter an Ethereum address (starting with 0x): {Style.RESET_ALL}").strip()
        if is_valid_address(address):
            return address
        say(
            Fore.RED,
            "Invalid Ethereum address format. Address should start with 0x followed by 40 hex characters.\n",
        )


def prompt_for_api_key() -> str:
    while True:
        api_key = input(f"{Fore.GREEN}Please enter your Etherscan API key: {Style.RESET_ALL}").strip()
        if api_key:
            return api_key
        say(Fore.RED, "API key cannot be empty. Please try again.")


def wait_for_enter() -> None:
    try:
        input(f"\n{Fore.YELLOW}Press Enter to exit...{Style.RESET_ALL}")
    except EOFError:
        pass


def save_outputs(transfers: List[FormattedTransfer], address: str, fmt: str, output_dir: str) -> int:
    """Write the requested formats; a failing writer does not stop the other one."""
    failures = 0
    targets = []
    if fmt in ("text", "both"):
        targets.append(("text", writers.save_to_text_file, writers.output_path(address, "txt", output_dir)))
    if fmt in ("excel", "both"):
        targets.append(("Excel", writers.save_to_excel, writers.output_path(address, "xlsx", output_dir)))

    for label, write, path in targets:
        try:
            write(transfers, path)
        except CrawlerError as exc:
            say(Fore.RED, f"Error saving {label} file: {exc}")
            failures += 1
        else:
            say(Fore.GREEN, f"Transactions saved to `{path}`")
    return failures


def run(args: argparse.Namespace) -> int:
    say(Fore.GREEN, "EthCrawler - USDT Transaction Tool\n")

    address = args.address.strip() or prompt_for_address()
    if not is_valid_address(address):
        say(Fore.RED, "Address has to start from 0x and contain 40 hex-symbols")
        return 1

    say(Fore.GREEN, f"Fetching transactions for address: {address}")

    try:
        cfg = settings.setup_configuration(args.config, prompt_for_api_key)
        transfers = fetcher.fetch_formatted_transfers(
            address,
            cfg.api_key,
            cfg.contract,
            page_size=args.page_size,
            empty_is_error=not args.allow_empty,
        )
    except CrawlerError as exc:
        say(Fore.RED, f"Error: {exc}")
        return 1

    say(Fore.GREEN, f"Downloaded {len(transfers)} transactions")
    if save_outputs(transfers, address, args.format, args.output_dir):
        return 1

    say(Fore.GREEN, f"\nOperation completed. Files saved in {Path(args.output_dir).resolve()}.")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    just_fix_windows_console()
    setup_logging(args.verbose)
    try:
        code = run(args)
    except KeyboardInterrupt:
        say(Fore.YELLOW, "\nInterrupted.")
        code = 130
    if not args.no_pause:
        wait_for_enter()
    sys.exit(code)


if __name__ == "__main__":
    main()
