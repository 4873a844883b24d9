"""Checks every bundled schema and that each pushed event name has one."""

import sys

from auction_relay.validation.validator import EVENT_SCHEMA_MAP, SCHEMA_DIR, SchemaRegistry


def validate() -> int:
    registry = SchemaRegistry(SCHEMA_DIR)
    missing = sorted(set(EVENT_SCHEMA_MAP.values()) - set(registry.names()))
    for name in missing:
        print(f"missing schema for event payload: {name}", file=sys.stderr)
    print(f"{len(registry.names())} schemas ok" if not missing else "schema check failed")
    return 1 if missing else 0


if __name__ == "__main__":
    sys.exit(validate())
