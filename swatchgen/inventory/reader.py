"""Header-driven CSV inventory reader."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterator, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.errors import EmptyInventory, InvalidRow, MalformedInventory, MissingColumn
from ..core.models import Record, RowError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("manufacturer", "material", "color", "temperature")

InventoryItem = Union[Record, InvalidRow]


class Inventory(BaseModel):
    """Valid records plus the rows rejected while reading them."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    records: list[Record] = Field(default_factory=list)
    errors: list[InvalidRow] = Field(default_factory=list)

    @property
    def row_errors(self) -> list[RowError]:
        return [RowError(line=err.line, reason=err.reason) for err in self.errors]


def resolve_columns(header: list[str]) -> dict[str, int]:
    """Map each required column name to its position in the header.

    Args:
        header: Raw header cells

    Returns:
        Mapping of required column name to index
    """
    positions: dict[str, int] = {}
    for index, cell in enumerate(header):
        name = cell.strip().lower()
        if name not in REQUIRED_COLUMNS:
            continue
        if name in positions:
            raise MalformedInventory(f"duplicate column {name!r}", line=1)
        positions[name] = index

    missing = [name for name in REQUIRED_COLUMNS if name not in positions]
    if missing:
        raise MissingColumn(missing)
    return positions


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"]) or "row"
        message = error["msg"].removeprefix("Value error, ")
        parts.append(f"{field}: {message}")
    return "; ".join(parts)


def parse_row(cells: list[str], columns: dict[str, int], width: int, line: int) -> InventoryItem:
    """Validate one data row into a Record, or an InvalidRow describing why not."""
    if len(cells) != width:
        return InvalidRow(line, f"expected {width} column(s), found {len(cells)}")

    values = {name: cells[index].strip() for name, index in columns.items()}
    try:
        return Record.model_validate(values)
    except ValidationError as exc:
        return InvalidRow(line, _describe_validation_error(exc))


def iter_inventory(path: Path) -> Iterator[InventoryItem]:
    """Lazily yield a Record or an InvalidRow for every data row.

    Args:
        path: Inventory CSV path

    Returns:
        Iterator over parsed rows in file order
    """
    try:
        handle = path.open(newline="", encoding="utf-8-sig")
    except OSError as exc:
        raise MalformedInventory(f"cannot open inventory {path}: {exc.strerror or exc}") from exc

    with handle:
        reader = csv.reader(handle)
        try:
            header = next(reader, None)
            if header is None or not any(cell.strip() for cell in header):
                raise MalformedInventory(f"inventory {path} has no header", line=1)

            columns = resolve_columns(header)
            width = len(header)
            logger.debug(f"Resolved inventory columns: {columns}")

            for cells in reader:
                if not cells:
                    continue
                yield parse_row(cells, columns, width, reader.line_num)
        except UnicodeDecodeError as exc:
            raise MalformedInventory(
                f"inventory is not valid UTF-8: {exc.reason}", line=reader.line_num + 1
            ) from exc
        except csv.Error as exc:
            raise MalformedInventory(str(exc), line=reader.line_num) from exc


def read_inventory(path: Path) -> Inventory:
    """Read the whole inventory, collecting row errors instead of stopping.

    Raises:
        EmptyInventory: when no row produced a valid record
    """
    inventory = Inventory()
    for item in iter_inventory(path):
        if isinstance(item, InvalidRow):
            logger.warning(f"Skipping inventory row: {item}")
            inventory.errors.append(item)
        else:
            inventory.records.append(item)

    logger.info(
        f"Read {len(inventory.records)} record(s) from {path} "
        f"({len(inventory.errors)} invalid row(s))"
    )

    if not inventory.records:
        raise EmptyInventory(f"inventory {path} contains no valid rows")
    return inventory
