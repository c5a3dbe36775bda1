# Shared pytest fixtures
from __future__ import annotations

import io
import tempfile
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from bulk_import.logging.init import reset_logging
from bulk_import.models.field_spec import FieldSpec


@pytest.fixture(autouse=True)
def _fresh_logging():
    # the stdout handler binds sys.stdout at setup time; rebuild it per test so capsys sees output
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """error_display_limit: 10
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
entities:
  products:
    name: Products
    table: products
    returning: id
    columns:
      - {name: name, label: Product Name, required: true}
      - {name: price, label: Price, type: number, required: true}
      - name: category
        type: select
        options: [hardware, software]
    sample_rows:
      - {name: Widget, price: 9.5, category: hardware}
  contacts:
    name: Contacts
    max_rows: 3
    error_display_limit: 2
    columns:
      - {name: contactName, label: Contact Name, required: true}
      - {name: email, label: Email, type: email}
      - {name: phone, label: Phone, type: phone, required: true}
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "entities.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def product_fields() -> list[FieldSpec]:
    return [
        FieldSpec("name", label="Product Name", required=True),
        FieldSpec("price", label="Price", type="number", required=True),
        FieldSpec("category", type="select", options=("hardware", "software")),
    ]


def build_xlsx(rows: list[list[Any]], title: str = "Sheet1") -> bytes:
    """Workbook bytes with ``rows`` written from A1 on the first sheet."""
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_csv(rows: list[list[Any]], delimiter: str = ",") -> bytes:
    lines = [delimiter.join("" if v is None else str(v) for v in row) for row in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture()
def make_xlsx():
    return build_xlsx


@pytest.fixture()
def make_csv():
    return build_csv
