from typing import Any, Iterable, List, Mapping

from pydantic import BaseModel


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = []


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def validate_records(records: Iterable[Mapping[str, Any]], required_fields: Iterable[str]) -> ValidationResult:
    """
    Check every record for every required field. Rows are numbered from 1 in messages.
    A single violation invalidates the whole batch.
    """
    required = list(required_fields)
    errors: List[str] = []
    for index, record in enumerate(records, start=1):
        for field in required:
            if _is_blank(record.get(field)):
                errors.append(f'Row {index}: Missing required field "{field}"')
    return ValidationResult(is_valid=not errors, errors=errors)
