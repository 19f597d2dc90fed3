"""CSV flattening for extraction results."""

from __future__ import annotations

import csv
import io
from collections.abc import Mapping, Sequence


def rows_to_csv(rows: Sequence[Mapping[str, str]]) -> str:
    """Serialise flat records to CSV.

    Columns are the union of all record keys in first-seen order; cells
    for missing keys are left empty.
    """
    if not rows:
        return ""

    columns: dict[str, None] = {}
    for row in rows:
        for key in row:
            columns.setdefault(key, None)

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(columns), restval="")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def tags_to_csv(data_by_tag: Mapping[str, Sequence[str]]) -> str:
    """One column per tag, row *i* holding each tag's *i*-th value."""
    if not data_by_tag:
        return ""

    tags = list(data_by_tag)
    depth = max(len(values) for values in data_by_tag.values())

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(tags)
    for i in range(depth):
        writer.writerow(
            data_by_tag[tag][i] if i < len(data_by_tag[tag]) else ""
            for tag in tags
        )
    return buf.getvalue().rstrip("\n")


def flatten_tags(data_by_tag: Mapping[str, Sequence[str]]) -> list[str]:
    values: list[str] = []
    for tag_values in data_by_tag.values():
        values.extend(tag_values)
    return values
