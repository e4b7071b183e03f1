import enum
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd
from fastapi import Response

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

def format_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, enum.Enum):
        return value.value
    return value

def build_excel_bytes(rows: List[Dict[str, Any]], headers: Sequence[Tuple[str, str]]) -> bytes:
    """`headers` is a list of (row key, column label) pairs, in column order."""
    labels = [label for _, label in headers]
    records = [{label: format_cell(row.get(key)) for key, label in headers} for row in rows]
    df = pd.DataFrame(records, columns=labels)

    output = BytesIO()
    df.to_excel(output, index=False, engine="openpyxl")
    output.seek(0)
    return output.getvalue()

def build_excel_response(rows: List[Dict[str, Any]], headers: Sequence[Tuple[str, str]], filename: str) -> Response:
    full_name = f"{filename}_{datetime.now().strftime('%Y-%m-%d')}.xlsx"
    return Response(
        content=build_excel_bytes(rows, headers),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={full_name}"},
    )
