"""
Package configuration, managed with `donfig`
"""

from typing import Any, Literal, cast

from donfig import Config

config = Config(
    "blockedarray",
    defaults=[
        {
            "array": {"storage": "block"},
            "reconcile": {"check_boundaries": True},
        }
    ],
)


def parse_storage(data: Any) -> Literal["block", "pseudo"]:
    if data in ("block", "pseudo"):
        return cast(Literal["block", "pseudo"], data)
    msg = f"Expected one of ('block', 'pseudo'), got {data} instead."
    raise ValueError(msg)
