"""Format conversion between XML, CSV and JSON-shaped Python values.

XML elements map to dicts keyed by child tag. Attributes live under
``"@attributes"``, repeated child tags coalesce into a list, and an element
holding only text collapses to that string. When such an element also has
attributes its text is kept under ``"#text"``.
"""

from __future__ import annotations

import csv
import io
import xml.etree.ElementTree as ET
from collections.abc import Mapping, Sequence
from typing import Any
from xml.sax.saxutils import escape

ATTRIBUTES_KEY = "@attributes"
TEXT_KEY = "#text"

_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
_ATTR_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def xml_to_json(xml: str) -> Any:
    """Parse an XML document and convert its root element.

    Raises:
        xml.etree.ElementTree.ParseError: If the document is not well-formed
    """
    return _element_to_value(ET.fromstring(xml))


def _element_to_value(element: ET.Element) -> Any:
    text = "".join(
        part.strip() for part in [element.text or ""] + [c.tail or "" for c in element]
    )

    if len(element) == 0 and text and not element.attrib:
        return text

    obj: dict[str, Any] = {}
    if element.attrib:
        obj[ATTRIBUTES_KEY] = dict(element.attrib)
        if len(element) == 0 and text:
            obj[TEXT_KEY] = text

    for child in element:
        value = _element_to_value(child)
        if child.tag in obj:
            existing = obj[child.tag]
            if not isinstance(existing, list):
                obj[child.tag] = existing = [existing]
            existing.append(value)
        else:
            obj[child.tag] = value

    return obj


def json_to_xml(obj: Any, root_name: str = "root") -> str:
    """Serialize a JSON-shaped value to an XML document string.

    Lists repeat their parent tag; None values are dropped.
    """
    return _XML_DECLARATION + _build_xml(obj, root_name)


def _build_xml(value: Any, name: str) -> str:
    if value is None:
        return ""

    if isinstance(value, Mapping):
        attributes = value.get(ATTRIBUTES_KEY) or {}
        attr_str = " ".join(
            f'{key}="{escape(_scalar(v), _ATTR_ENTITIES)}"' for key, v in attributes.items()
        )
        inner = ""
        for key, child in value.items():
            if key == ATTRIBUTES_KEY:
                continue
            if key == TEXT_KEY:
                inner += escape(_scalar(child), _ATTR_ENTITIES)
            else:
                inner += _build_xml(child, key)
        open_tag = f"{name} {attr_str}" if attr_str else name
        return f"<{open_tag}>{inner}</{name}>"

    if isinstance(value, list):
        return "".join(_build_xml(item, name) for item in value)

    return f"<{name}>{escape(_scalar(value), _ATTR_ENTITIES)}</{name}>"


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def csv_to_json(
    text: str,
    delimiter: str = ",",
    headers: Sequence[str] | None = None,
) -> list[dict[str, str]]:
    """Parse CSV text into one dict per row.

    Without ``headers`` the first row names the columns. Values are
    whitespace-trimmed and missing trailing values become ``""``.
    """
    reader = csv.reader(io.StringIO(text.strip()), delimiter=delimiter)
    rows = [row for row in reader if row]
    if not rows:
        return []

    if headers is None:
        columns = [h.strip() for h in rows[0]]
        rows = rows[1:]
    else:
        columns = list(headers)

    records = []
    for row in rows:
        values = [v.strip() for v in row]
        records.append(
            {column: values[i] if i < len(values) else "" for i, column in enumerate(columns)}
        )
    return records


def json_to_csv(
    rows: Sequence[Mapping[str, Any]],
    delimiter: str = ",",
    headers: Sequence[str] | None = None,
) -> str:
    """Render dict rows as CSV text without a trailing newline.

    Columns default to the keys of the first row. Values containing the
    delimiter are quoted.
    """
    if not rows:
        return ""

    columns = list(headers) if headers is not None else list(rows[0].keys())

    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow(
            ["" if row.get(column) is None else _scalar(row.get(column)) for column in columns]
        )

    output = buffer.getvalue()
    return output[:-1] if output.endswith("\n") else output
