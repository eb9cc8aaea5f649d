from typing import Any, Dict, Iterable, List, Mapping, Union

from sheetsync.schemas.mapping import FieldMapping


FieldMappingLike = Union[FieldMapping, Mapping[str, Any]]


def parse_field_mappings(raw: Iterable[FieldMappingLike]) -> List[FieldMapping]:
    """Coerce stored JSON entries (or already-parsed models) into FieldMapping objects, keeping order."""
    return [
        entry if isinstance(entry, FieldMapping) else FieldMapping.model_validate(entry)
        for entry in (raw or [])
    ]


def map_row(source_row: Mapping[str, str], field_mappings: Iterable[FieldMappingLike]) -> Dict[str, str]:
    """
    Build a target-keyed record from one source row.

    Entries missing either side of the correspondence are skipped. A column absent from
    the row maps to an empty string. Later entries writing the same target field win.
    """
    record: Dict[str, str] = {}
    for entry in parse_field_mappings(field_mappings):
        if not entry.source_column or not entry.target_field:
            continue
        record[entry.target_field] = source_row.get(entry.source_column, "")
    return record


def map_rows(source_rows: Iterable[Mapping[str, str]], field_mappings: Iterable[FieldMappingLike]) -> List[Dict[str, str]]:
    entries = parse_field_mappings(field_mappings)
    return [map_row(row, entries) for row in source_rows]


def required_target_fields(field_mappings: Iterable[FieldMappingLike]) -> List[str]:
    """Target fields flagged required, in mapping order, without duplicates."""
    fields: List[str] = []
    for entry in parse_field_mappings(field_mappings):
        if entry.required and entry.target_field and entry.target_field not in fields:
            fields.append(entry.target_field)
    return fields
