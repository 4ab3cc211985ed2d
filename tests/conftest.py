from __future__ import annotations

import pytest

from qfilter.query import ColumnSpec, ColumnType, SqlFieldResolver

USERS_COLUMNS = {
    "ID": ColumnSpec(ColumnType.NUMBER),
    "NAME": ColumnSpec(ColumnType.TEXT),
    "EMAIL": ColumnSpec(ColumnType.TEXT),
    "AGE": ColumnSpec(ColumnType.NUMBER),
    "ACTIVE": ColumnSpec(ColumnType.BOOLEAN),
    "BIRTHDAY": ColumnSpec(ColumnType.TIMESTAMP),
    "SIGNUP_DATE": ColumnSpec(ColumnType.DATE),
    "STATUS": ColumnSpec(
        ColumnType.ENUM, enum_name="UserStatus", enum_members=("ACTIVE", "INACTIVE", "SUSPENDED")
    ),
    "SHAPE": ColumnSpec(ColumnType.TEXT),
}

ENTITIES_YAML = """
entities:
  users:
    view: ANALYTICS.PUBLIC.USERS_V
    columns:
      NAME: TEXT
      EMAIL: TEXT
      AGE: NUMBER
      BIRTHDAY: TIMESTAMP
      SIGNUP_DATE: DATE
      STATUS:
        type: ENUM
        enum: UserStatus
        members: [ACTIVE, INACTIVE]
"""


@pytest.fixture
def resolver() -> SqlFieldResolver:
    return SqlFieldResolver(USERS_COLUMNS)


@pytest.fixture
def entities_file(tmp_path):
    path = tmp_path / "entities.yaml"
    path.write_text(ENTITIES_YAML, encoding="utf-8")
    return path
