"""
Schema validation for CraftLink configuration.

Purpose
-------
Provide a small recursive schema type that checks the shape and primitive
types of the YAML configuration tree, with dot-notation error paths.

Notes
-----
- Missing fields are allowed; built-in defaults fill them in before
  validation runs.
- `int` is accepted where `float` is expected.
- `bool` is rejected where `int` is expected (YAML `yes` is not a number).
- Semantic checks (bounds, choices) live in ConfigManager.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from craftlink.core.config.errors import ConfigValidationError


SchemaField = Union[type, tuple, "ConfigSchema"]


@dataclass(slots=True)
class ConfigSchema:
    """
    Recursive schema for nested configuration validation.

    Examples
    --------
    >>> schema = ConfigSchema(fields={"count": int, "rate": float})
    >>> schema.validate({"count": 10, "rate": 0.5})
    {'count': 10, 'rate': 0.5}
    """

    fields: Mapping[str, SchemaField]
    allow_extra: bool = True

    def validate(self, value: Any, path: str = "") -> Any:
        if not isinstance(value, Mapping):
            raise ConfigValidationError(
                path or "<root>",
                f"must be a mapping; got {type(value).__name__}",
                value,
            )

        for key, expected in self.fields.items():
            full_path = f"{path}.{key}" if path else key

            if key not in value:
                continue

            raw = value[key]

            if isinstance(expected, ConfigSchema):
                expected.validate(raw, path=full_path)
                continue

            _check_type(full_path, raw, expected)

        if not self.allow_extra:
            unknown_keys = set(value.keys()) - set(self.fields.keys())
            if unknown_keys:
                unknown_list = ", ".join(sorted(str(k) for k in unknown_keys))
                raise ConfigValidationError(
                    path or "<root>", f"unexpected keys: {unknown_list}"
                )

        return value


def _check_type(path: str, raw: Any, expected: Union[type, tuple]) -> None:
    expected_types = expected if isinstance(expected, tuple) else (expected,)

    if raw is None and type(None) in expected_types:
        return

    if isinstance(raw, bool) and bool not in expected_types:
        raise ConfigValidationError(path, "must not be a boolean", raw)

    if float in expected_types and isinstance(raw, int):
        return

    if not isinstance(raw, expected_types):
        names = " or ".join(t.__name__ for t in expected_types)
        raise ConfigValidationError(
            path, f"must be {names}; got {type(raw).__name__}", raw
        )


OptionalInt = (int, type(None))

CRAFTLINK_SCHEMA = ConfigSchema(
    fields={
        "discord": ConfigSchema(
            fields={
                "chat_channel_id": OptionalInt,
                "command_prefix": str,
                "connect_timeout_seconds": float,
                "activity": (str, type(None)),
            },
        ),
        "relay": ConfigSchema(
            fields={
                "enabled": bool,
                "server_start": bool,
                "server_stop": bool,
                "join": bool,
                "leave": bool,
                "chat": bool,
                "death": bool,
                "advancement": bool,
                "formats": ConfigSchema(fields={}),
            },
        ),
        "status": ConfigSchema(
            fields={
                "enabled": bool,
                "mode": str,
                "channel_id": OptionalInt,
                "update_interval_seconds": float,
                "online_format": str,
                "offline_format": str,
            },
        ),
        "commands": ConfigSchema(
            fields={
                "enabled": list,
                "admin_role_ids": list,
                "admin_user_ids": list,
            },
        ),
        "minecraft": ConfigSchema(
            fields={
                "log_file": str,
                "poll_interval_seconds": float,
                "max_players": int,
            },
        ),
    },
)


__all__ = ["ConfigSchema", "SchemaField", "CRAFTLINK_SCHEMA"]
