import json
from datetime import datetime

import pytest

from backoffice.enums import ExportFormat
from backoffice.exceptions import InvalidExportFormatException
from backoffice.services import export_service


def test_parse_export_format():
    assert export_service.parse_export_format("CSV") == ExportFormat.CSV
    assert export_service.parse_export_format("json") == ExportFormat.JSON

    with pytest.raises(InvalidExportFormatException) as exc_info:
        export_service.parse_export_format("xlsx")

    assert str(exc_info.value) == "Invalid export format: xlsx"


def test_csv_quotes_every_value():
    rows = [
        {"ID": 1, "Name": 'Say "hi"', "Note": None},
        {"ID": 2, "Name": "a,b", "Note": {"k": 1}},
    ]

    assert export_service.to_csv(rows) == (
        '"ID","Name","Note"\n'
        '"1","Say ""hi""",""\n'
        '"2","a,b","{""k"": 1}"'
    )


def test_csv_without_rows():
    assert export_service.to_csv([]) == ""
    assert export_service.to_csv([], headers=["ID"]) == '"ID"'


def test_json_rendering():
    rows = [{"ID": 1, "Created At": datetime(2024, 5, 1, 12, 30)}]

    assert json.loads(export_service.render(rows, ExportFormat.JSON)) == [
        {"ID": 1, "Created At": "2024-05-01T12:30:00"}
    ]


def test_export_filename():
    filename = export_service.export_filename("orders", ExportFormat.CSV, now=datetime(2024, 1, 2, 3, 4, 5))

    assert filename == "orders-export-2024-01-02T03-04-05.csv"


def test_format_categories():
    rows = export_service.format_categories([
        {
            "id": 3,
            "name": "Phones",
            "slug": "phones",
            "parent_id": None,
            "is_active": True,
            "sort_order": 0,
            "product_count": 4,
            "created_at": datetime(2024, 1, 1),
            "updated_at": None,
        }
    ])

    assert rows == [{
        "ID": 3,
        "Name": "Phones",
        "Slug": "phones",
        "Parent ID": "N/A",
        "Active": "Yes",
        "Sort Order": 0,
        "Products": 4,
        "Created At": "2024-01-01 00:00:00",
        "Updated At": "",
    }]
