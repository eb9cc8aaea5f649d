from sheetsync.schemas.mapping import FieldMapping
from sheetsync.services.field_mapper import map_row, map_rows, parse_field_mappings, required_target_fields


def test_map_row_renames_columns():
    row = {"Email": "ada@example.com", "Amount": "12", "Ignored": "x"}
    mappings = [
        {"source_column": "Email", "target_field": "ACCOUNT_EMAIL"},
        {"source_column": "Amount", "target_field": "TOTAL"},
    ]
    assert map_row(row, mappings) == {"ACCOUNT_EMAIL": "ada@example.com", "TOTAL": "12"}


def test_map_row_missing_source_column_maps_to_empty_string():
    record = map_row({"Email": "ada@example.com"}, [{"source_column": "Phone", "target_field": "PHONE"}])
    assert record == {"PHONE": ""}


def test_map_row_skips_incomplete_entries():
    mappings = [
        {"source_column": "", "target_field": "A"},
        {"source_column": "Email", "target_field": ""},
        {"source_column": "Email", "target_field": "EMAIL"},
    ]
    assert map_row({"Email": "x"}, mappings) == {"EMAIL": "x"}


def test_map_row_last_mapping_to_same_target_wins():
    mappings = [
        {"source_column": "First", "target_field": "NAME"},
        {"source_column": "Second", "target_field": "NAME"},
    ]
    assert map_row({"First": "a", "Second": "b"}, mappings) == {"NAME": "b"}


def test_map_row_empty_mapping_list():
    assert map_row({"Email": "x"}, []) == {}


def test_camel_case_entries_are_accepted():
    entries = parse_field_mappings([{"sheetColumn": "Email", "targetField": "EMAIL", "dataType": "string"}])
    assert entries[0].source_column == "Email"
    assert entries[0].target_field == "EMAIL"
    assert entries[0].data_type == "string"


def test_map_rows_preserves_row_order():
    rows = [{"Email": "1"}, {"Email": "2"}, {"Email": "3"}]
    records = map_rows(rows, [FieldMapping(source_column="Email", target_field="E")])
    assert [r["E"] for r in records] == ["1", "2", "3"]


def test_required_target_fields_deduplicated_in_order():
    mappings = [
        {"source_column": "B", "target_field": "SECOND", "required": True},
        {"source_column": "A", "target_field": "FIRST", "required": False},
        {"source_column": "C", "target_field": "SECOND", "required": True},
        {"source_column": "D", "target_field": "THIRD", "required": True},
    ]
    assert required_target_fields(mappings) == ["SECOND", "THIRD"]


def test_sheet_row_to_contact_record_scenario():
    from sheetsync.connectors.base import SheetData
    from sheetsync.services.validator import validate_records

    mappings = [
        {"sourceColumn": "Email", "targetField": "ACCOUNT_EMAIL", "required": True},
        {"sourceColumn": "Name", "targetField": "FIRST_NAME", "required": False},
    ]
    sheet = SheetData.from_values([["Email", "Name"], ["a@x.com", "Ann"]])
    records = map_rows(sheet.as_records(), mappings)
    assert records == [{"ACCOUNT_EMAIL": "a@x.com", "FIRST_NAME": "Ann"}]
    assert validate_records(records, required_target_fields(mappings)).is_valid

    blank = SheetData.from_values([["Email", "Name"], ["", "Ann"]])
    result = validate_records(map_rows(blank.as_records(), mappings), required_target_fields(mappings))
    assert not result.is_valid
    assert result.errors == ['Row 1: Missing required field "ACCOUNT_EMAIL"']
