"""Text and spreadsheet output for formatted transfers."""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Sequence

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from transfers import FormattedTransfer, OutputError

logger = logging.getLogger(__name__)

SHEET_NAME = "USDT Transactions"
HEADERS = ["Date", "From", "To", "Value (Wei)", "Value (USDT)", "Hash"]
COLUMN_WIDTHS = [20, 45, 45, 20, 15, 70]
TOKEN_NUMBER_FORMAT = "#,##0.000000"
PROGRESS_EVERY = 5000


def output_path(address: str, ext: str, output_dir: str | Path = ".") -> Path:
    return Path(output_dir) / f"{address}.{ext}"


def format_line(tx: FormattedTransfer) -> str:
    return f"{tx.date} | FROM: {tx.from_address} | TO: {tx.to_address} | VALUE: {tx.value} | HASH: {tx.hash}\n"


def save_to_text_file(transfers: Sequence[FormattedTransfer], path: str | Path) -> Path:
    """Write one pipe-separated line per transfer."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for tx in transfers:
                f.write(format_line(tx))
    except OSError as exc:
        raise OutputError(f"error writing text file {path}: {exc}") from exc
    return path


def token_amount(value: str, decimals: int) -> float:
    """Base-unit integer string -> token amount (0.0 when unparsable)."""
    try:
        return float(Decimal(value).scaleb(-decimals))
    except InvalidOperation:
        return 0.0


def save_to_excel(
    transfers: Sequence[FormattedTransfer], path: str | Path, decimals: int = 6
) -> Path:
    """Stream transfers into an .xlsx workbook with a filtered, frozen header row.

    The sheet is write-only, so rows go straight to disk instead of being
    kept in memory; layout settings must be in place before the first row.
    """
    path = Path(path)
    logger.info("Creating Excel file with %d transactions...", len(transfers))

    wb = Workbook(write_only=True)
    ws = wb.create_sheet(SHEET_NAME)

    for idx, width in enumerate(COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.auto_filter.ref = f"A1:{get_column_letter(len(HEADERS))}1"
    ws.freeze_panes = "A2"

    header_font = Font(bold=True, size=12)
    header_fill = PatternFill(fill_type="solid", start_color="DDEBF7", end_color="DDEBF7")
    header_border = Border(bottom=Side(style="thin", color="000000"))
    header = []
    for title in HEADERS:
        cell = WriteOnlyCell(ws, value=title)
        cell.font = header_font
        cell.fill = header_fill
        cell.border = header_border
        header.append(cell)
    ws.append(header)

    for i, tx in enumerate(transfers, start=1):
        amount = WriteOnlyCell(ws, value=token_amount(tx.value, decimals))
        amount.number_format = TOKEN_NUMBER_FORMAT
        ws.append([tx.date, tx.from_address, tx.to_address, tx.value, amount, tx.hash])
        if i % PROGRESS_EVERY == 0:
            logger.info("Processed %d of %d transactions...", i, len(transfers))

    logger.info("Saving Excel file...")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(path)
    except OSError as exc:
        raise OutputError(f"error saving Excel file {path}: {exc}") from exc
    return path
