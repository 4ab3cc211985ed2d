import json, logging, os, time, typing as t
from pathlib import Path

import jsonschema
import yaml

from .query import ColumnSpec, ColumnType, SqlFieldResolver

log = logging.getLogger("registry")

ENTITIES_PATH = Path(os.getenv("ENTITIES_FILE", "config/entities.yaml"))

_COLUMN_TYPES = [c.value for c in ColumnType]

ENTITIES_SCHEMA: dict[str, t.Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Entity catalogue",
    "type": "object",
    "properties": {
        "entities": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "view": {"type": "string", "minLength": 1},
                    "columns": {
                        "type": "object",
                        "additionalProperties": {
                            "oneOf": [
                                {"type": "string", "enum": _COLUMN_TYPES},
                                {
                                    "type": "object",
                                    "additionalProperties": False,
                                    "properties": {
                                        "type": {"type": "string", "enum": _COLUMN_TYPES},
                                        "enum": {"type": "string"},
                                        "members": {"type": "array", "items": {"type": "string"}},
                                    },
                                    "required": ["type"],
                                },
                            ]
                        },
                    },
                },
                "required": ["view", "columns"],
            },
        },
    },
    "required": ["entities"],
}


class RegistryEntry(t.TypedDict):
    view: str
    columns: dict[str, ColumnSpec]  # NAME -> spec
    loadedAt: str


def _column_spec(name: str, raw: t.Any) -> ColumnSpec:
    if isinstance(raw, str):
        raw = {"type": raw}
    column_type = ColumnType(raw["type"].upper())
    members = tuple(raw.get("members", []))
    if column_type is ColumnType.ENUM:
        if not members:
            raise RuntimeError(f"Enumerated column {name} declares no members")
        return ColumnSpec(column_type, enum_name=raw.get("enum", name), enum_members=members)
    if members:
        raise RuntimeError(f"Column {name} lists members but is not ENUM")
    return ColumnSpec(column_type)


class Registry:
    def __init__(self, path: t.Optional[Path] = None):
        self.path = Path(path) if path else ENTITIES_PATH
        self.entities: dict[str, RegistryEntry] = {}

    def _read(self) -> dict[str, t.Any]:
        if not self.path.exists():
            raise RuntimeError(f"Entity file not found: {self.path}")
        with self.path.open("r", encoding="utf-8") as f:
            if self.path.suffix.lower() in (".yaml", ".yml"):
                cfg = yaml.safe_load(f) or {}
            else:
                cfg = json.load(f)
        try:
            jsonschema.validate(instance=cfg, schema=ENTITIES_SCHEMA)
        except jsonschema.ValidationError as e:
            raise RuntimeError(f"Bad entity file {self.path}: {e.message}") from e
        return cfg

    def load_entities(self) -> None:
        cfg = self._read()
        loaded_at = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        norm: dict[str, RegistryEntry] = {}
        for name, v in cfg.get("entities", {}).items():
            norm[name] = {
                "view": v["view"],
                "columns": {c.upper(): _column_spec(c, raw) for c, raw in v["columns"].items()},
                "loadedAt": loaded_at,
            }
        self.entities = norm
        log.info("Loaded %d entities from %s", len(norm), self.path)

    def ensure_entity(self, name: str) -> RegistryEntry:
        if name not in self.entities:
            raise KeyError(f"Unknown entity: {name}")
        return self.entities[name]

    def resolver_for(self, name: str, *, quote_identifiers: bool = False) -> SqlFieldResolver:
        entry = self.ensure_entity(name)
        return SqlFieldResolver(entry["columns"], quote_identifiers=quote_identifiers)

    def refresh_all(self) -> dict[str, str]:
        """Re-read the entity file and summarise what was loaded."""
        self.load_entities()
        return {name: f"ok ({len(e['columns'])} cols)" for name, e in self.entities.items()}
