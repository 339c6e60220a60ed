from __future__ import annotations

from typing import TYPE_CHECKING

from pharmabid.adapters.csv_reader import read_inventory_csv

if TYPE_CHECKING:
    from pathlib import Path


def test_reads_headers_in_file_order(tmp_path: Path) -> None:
    path = tmp_path / "stock.csv"
    path.write_text(
        "\ufeffItem Name,MRP,Company\nParacetamol 500,22,Acme Pharma\nCetirizine 10\n",
        encoding="utf-8",
    )

    headers, records = read_inventory_csv(path)

    assert headers == ["Item Name", "MRP", "Company"]
    assert records == [
        {"Item Name": "Paracetamol 500", "MRP": "22", "Company": "Acme Pharma"},
        {"Item Name": "Cetirizine 10", "MRP": "", "Company": ""},
    ]


def test_extra_cells_are_dropped(tmp_path: Path) -> None:
    path = tmp_path / "wide.csv"
    path.write_text("Name,Price\nAmoxicillin 500,80,surplus\n", encoding="utf-8")

    _, records = read_inventory_csv(path)

    assert records == [{"Name": "Amoxicillin 500", "Price": "80"}]


def test_header_only_file(tmp_path: Path) -> None:
    path = tmp_path / "empty.csv"
    path.write_text("Name,Price\n", encoding="utf-8")

    assert read_inventory_csv(path) == (["Name", "Price"], [])
