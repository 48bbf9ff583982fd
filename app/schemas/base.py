from typing import Any


def reject_null(value: Any) -> Any:
    """
    Partial updates may omit a field, but not null out a column that is
    required in the database.
    """
    if value is None:
        raise ValueError("Field cannot be null")
    return value
