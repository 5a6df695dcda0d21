# Copyright 2026 Pennyworth Technologies, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Loading flat record files (JSON or YAML) into Record objects."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from flatree.tree.errors import RecordLoadError
from flatree.tree.node import Record

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".json", ".yaml", ".yml")


@dataclass(frozen=True)
class FieldMapping:
    """Names of the source fields that feed each Record attribute."""

    key: str = "id"
    parent: str = "parent_id"
    name: str = "name"
    order: str = "order"
    id: str = "id"
    root_value: Any = None

    @property
    def mapped_fields(self) -> set[str]:
        return {self.key, self.parent, self.name, self.order, self.id}


class RecordSchema(BaseModel):
    """Validated shape of one row after field mapping."""

    key: str | int
    parent_key: str | int | None = None
    name: str | None = None
    order: int = 0
    record_id: int | None = None


def _format_validation_error(exc: ValidationError, mapping: FieldMapping) -> str:
    source_names = {
        "key": mapping.key,
        "parent_key": mapping.parent,
        "name": mapping.name,
        "order": mapping.order,
        "record_id": mapping.id,
    }
    parts = []
    for err in exc.errors():
        loc = err["loc"][0] if err["loc"] else ""
        field_name = source_names.get(str(loc), str(loc))
        parts.append(f"{field_name}: {err['msg']}")
    return "; ".join(parts)


def parse_records(
    rows: list[dict[str, Any]],
    mapping: FieldMapping | None = None,
    source: str = "<input>",
) -> list[Record]:
    """Turn raw rows into Records.

    Fields not named by the mapping are kept in ``Record.data``.

    Raises:
        RecordLoadError: If a row is not a mapping or fails validation
    """
    mapping = mapping or FieldMapping()
    records: list[Record] = []

    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise RecordLoadError(
                f"{source}: row {i} must be a mapping, got {type(row).__name__}"
            )

        values: dict[str, Any] = {
            "key": row.get(mapping.key),
            "parent_key": row.get(mapping.parent),
            "name": row.get(mapping.name),
        }
        if row.get(mapping.order) is not None:
            values["order"] = row[mapping.order]
        if mapping.id != mapping.key and row.get(mapping.id) is not None:
            values["record_id"] = row[mapping.id]

        try:
            parsed = RecordSchema.model_validate(values)
        except ValidationError as e:
            raise RecordLoadError(
                f"{source}: row {i}: {_format_validation_error(e, mapping)}"
            ) from e

        records.append(
            Record(
                key=parsed.key,
                parent_key=parsed.parent_key,
                name=parsed.name if parsed.name is not None else str(parsed.key),
                order=parsed.order,
                record_id=parsed.record_id,
                data={k: v for k, v in row.items() if k not in mapping.mapped_fields},
                root_value=mapping.root_value,
            )
        )

    logger.debug("Parsed %d records from %s", len(records), source)
    return records


def _read_document(path: Path) -> Any:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise RecordLoadError(
            f"Unsupported record file '{path}'. "
            f"Valid suffixes: {', '.join(SUPPORTED_SUFFIXES)}"
        )

    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise RecordLoadError(f"Record file not found: {path}")
    except OSError as e:
        raise RecordLoadError(f"Error reading {path}: {e}")

    if suffix == ".json":
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise RecordLoadError(f"Invalid JSON in {path}: {e}")

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise RecordLoadError(f"Invalid YAML in {path}: {e}")


def load_records(path: Path, mapping: FieldMapping | None = None) -> list[Record]:
    """Load records from a JSON or YAML file.

    The document is either a list of rows or a mapping with a
    ``records`` list. An empty document yields no records.

    Raises:
        RecordLoadError: If the file cannot be read, parsed or validated
    """
    path = Path(path)
    document = _read_document(path)

    if document is None:
        rows: Any = []
    elif isinstance(document, dict):
        rows = document.get("records")
        if rows is None:
            raise RecordLoadError(f"{path}: mapping document has no 'records' list")
    else:
        rows = document

    if not isinstance(rows, list):
        raise RecordLoadError(
            f"{path}: expected a list of records, got {type(rows).__name__}"
        )

    records = parse_records(rows, mapping, source=str(path))
    logger.info("Loaded %d records from %s", len(records), path.name)
    return records
