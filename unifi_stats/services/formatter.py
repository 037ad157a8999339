"""Render fetched data as text in the output format chosen by the user."""

import json
import pprint
from typing import Any, Callable, Dict

DEFAULT_FORMAT = "json"


def _var_dump(data: Any, indent: int = 0) -> str:
    pad = "  " * indent
    if isinstance(data, dict):
        inner = "".join(
            f"{pad}  [{key!r}] =>\n{_var_dump(value, indent + 1)}" for key, value in data.items()
        )
        return f"{pad}dict({len(data)}) {{\n{inner}{pad}}}\n"
    if isinstance(data, list):
        inner = "".join(
            f"{pad}  [{idx}] =>\n{_var_dump(value, indent + 1)}" for idx, value in enumerate(data)
        )
        return f"{pad}list({len(data)}) [\n{inner}{pad}]\n"
    return f"{pad}{type(data).__name__}({data!r})\n"


FORMATTERS: Dict[str, Callable[[Any], str]] = {
    "json": lambda data: json.dumps(data, indent=4),
    "json_color": lambda data: json.dumps(data, separators=(",", ":")),
    "pformat": pprint.pformat,
    "repr": repr,
    "var_dump": _var_dump,
}


def format_output(output_format: str, data: Any) -> str:
    """Format ``data``; unknown format names fall back to pretty-printed JSON."""
    formatter = FORMATTERS.get(output_format, FORMATTERS[DEFAULT_FORMAT])
    return formatter(data)
