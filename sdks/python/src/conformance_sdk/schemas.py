from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from typing import Any

from jsonschema import Draft202012Validator

SCHEMA_PACKAGE = "conformance_sdk"
SCHEMA_DIR = "spec"


def _json_path(err: object) -> str:
    path = getattr(err, "absolute_path", None)
    if not path:
        return "$"
    out = "$"
    for part in path:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}"
    return out


@dataclass(frozen=True)
class SchemaRegistry:
    store: dict[str, dict[str, Any]]

    @classmethod
    def load(cls) -> "SchemaRegistry":
        store: dict[str, dict[str, Any]] = {}
        for entry in resources.files(SCHEMA_PACKAGE).joinpath(SCHEMA_DIR).iterdir():
            if entry.name.endswith(".schema.json"):
                store[entry.name] = json.loads(entry.read_text(encoding="utf-8"))
        return cls(store=store)

    def load_schema(self, name: str) -> dict[str, Any]:
        schema = self.store.get(name)
        if schema is None:
            raise KeyError(f"Schema not found: {name}")
        return schema

    def validate(self, instance: Any, *, schema_name: str) -> list[str]:
        validator = Draft202012Validator(self.load_schema(schema_name))
        errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in getattr(e, "absolute_path", [])])
        return [f"{_json_path(e)}: {e.message}" for e in errors]

