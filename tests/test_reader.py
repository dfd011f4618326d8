import pytest

from swatchgen.core.errors import EmptyInventory, InvalidRow, MalformedInventory, MissingColumn
from swatchgen.core.models import Record
from swatchgen.inventory.reader import iter_inventory, read_inventory, resolve_columns

HEADER = ["manufacturer", "material", "color", "temperature"]


def test_reads_records_in_order(scenario_inventory):
    inventory = read_inventory(scenario_inventory)

    assert [record.key for record in inventory.records] == [
        ("eSun", "PLA", "Orange", 210),
        ("Fiberlogy", "PLA", "Vertigo", 215),
        ("Hatchbox", "PETG", "Black", 235),
        ("Hatchbox", "PLA", "White", 215),
    ]
    assert inventory.errors == []


def test_column_order_and_case_do_not_matter(inventory_file):
    path = inventory_file(
        ["Temperature", " COLOR ", "Notes", "Material", "Manufacturer"],
        [("210", "Orange", "half spool", "PLA", "eSun")],
    )

    inventory = read_inventory(path)

    assert inventory.records == [
        Record(manufacturer="eSun", material="PLA", color="Orange", temperature=210)
    ]


def test_missing_column_is_fatal(inventory_file):
    path = inventory_file(["manufacturer", "material", "colour"], [("eSun", "PLA", "Orange")])

    with pytest.raises(MissingColumn) as excinfo:
        read_inventory(path)

    assert excinfo.value.columns == ["color", "temperature"]


def test_duplicate_required_column(inventory_file):
    with pytest.raises(MalformedInventory):
        read_inventory(inventory_file(HEADER + ["Color"], [("eSun", "PLA", "Orange", "210", "x")]))


def test_invalid_rows_are_collected_with_line_numbers(inventory_file):
    path = inventory_file(
        HEADER,
        [
            ("eSun", "PLA", "Orange", "210"),
            ("Hatchbox", "PLA", "Red", "abc"),
            ("Hatchbox", "PLA", "", "215"),
            ("Hatchbox", "PLA", "Blue"),
            ("Fiberlogy", "PLA", "Vertigo", "215"),
        ],
    )

    inventory = read_inventory(path)

    assert [record.color for record in inventory.records] == ["Orange", "Vertigo"]
    assert [error.line for error in inventory.errors] == [3, 4, 5]
    assert "temperature" in inventory.errors[0].reason
    assert "color" in inventory.errors[1].reason
    assert "expected 4 column(s), found 3" in inventory.errors[2].reason
    assert [row.line for row in inventory.row_errors] == [3, 4, 5]


def test_iter_inventory_is_lazy(inventory_file):
    path = inventory_file(HEADER, [("eSun", "PLA", "Orange", "210"), ("x", "PLA", "Red", "abc")])

    items = iter_inventory(path)
    assert isinstance(next(items), Record)
    assert isinstance(next(items), InvalidRow)
    assert next(items, None) is None


def test_blank_lines_and_bom_are_tolerated(tmp_path):
    path = tmp_path / "inventory.csv"
    path.write_bytes(
        "\ufeffmanufacturer,material,color,temperature\n\neSun,PLA,Orange,210\n\n".encode("utf-8")
    )

    inventory = read_inventory(path)

    assert len(inventory.records) == 1
    assert inventory.errors == []


def test_whitespace_only_row_is_an_invalid_row(tmp_path):
    path = tmp_path / "inventory.csv"
    path.write_text(
        "manufacturer,material,color,temperature\neSun,PLA,Orange,210\n  ,  , , \n",
        encoding="utf-8",
    )

    inventory = read_inventory(path)

    assert len(inventory.records) == 1
    assert [error.line for error in inventory.errors] == [3]


def test_zero_valid_rows_fails_fast(inventory_file):
    with pytest.raises(EmptyInventory):
        read_inventory(inventory_file(HEADER, [("eSun", "PLA", "Orange", "abc")]))


def test_empty_file(tmp_path):
    path = tmp_path / "inventory.csv"
    path.write_text("")

    with pytest.raises(MalformedInventory, match="no header"):
        read_inventory(path)


def test_missing_file(tmp_path):
    with pytest.raises(MalformedInventory, match="cannot open"):
        read_inventory(tmp_path / "nope.csv")


def test_undecodable_file(tmp_path):
    path = tmp_path / "inventory.csv"
    path.write_bytes(b"manufacturer,material,color,temperature\n\xff\xfe,PLA,Orange,210\n")

    with pytest.raises(MalformedInventory, match="UTF-8"):
        read_inventory(path)


def test_resolve_columns():
    assert resolve_columns(["Color", "x", "TEMPERATURE", "material", "Manufacturer"]) == {
        "color": 0,
        "temperature": 2,
        "material": 3,
        "manufacturer": 4,
    }
