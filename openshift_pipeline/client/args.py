"""Command argument composition for the oc client.

Option mappings render as ``--key=value`` flags. Lists repeat the flag
for each item, nested mappings render as ``--key=name=value`` (the form
``oc set env --env`` expects), and ``None`` values are skipped.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _append_command_arg(prefix: str, value: Any, result: list[str]) -> None:
    if isinstance(value, (list, tuple)):
        for item in value:
            _append_command_arg(prefix, item, result)
    elif isinstance(value, Mapping):
        for key, item in value.items():
            _append_command_arg(f"{prefix}={key}", item, result)
    else:
        result.append(f"{prefix}={_render_value(value)}")


def to_command_args(options: Mapping[str, Any] | None) -> list[str]:
    """Render an option mapping as command line flags.

    Args:
        options: Mapping of flag name (without dashes) to value.

    Returns:
        List of ``--flag=value`` strings in mapping order.
    """
    result: list[str] = []
    if not options:
        return result
    for key, value in options.items():
        if value is None:
            continue
        _append_command_arg(f"--{key}", value, result)
    return result


def build_common_args(
    verb: str,
    verb_args: Sequence[str] | str | None = None,
    user_args: Mapping[str, Any] | None = None,
    override_args: Mapping[str, Any] | None = None,
    global_args: Mapping[str, Any] | None = None,
) -> list[str]:
    """Compose the argument list for an oc invocation.

    Options are merged in order global < user < override. The namespace,
    when present, is always emitted first.

    Args:
        verb: oc verb, e.g. ``get`` or ``start-build``.
        verb_args: Positional arguments following the verb.
        user_args: Caller supplied options.
        override_args: Options the operation itself enforces.
        global_args: Client wide defaults such as the namespace.

    Returns:
        Argument list without the executable.
    """
    merged: dict[str, Any] = {}
    for source in (global_args, user_args, override_args):
        if source:
            merged.update({k: v for k, v in source.items() if v is not None})

    args: list[str] = []
    namespace = merged.pop("namespace", None)
    if namespace:
        args.append(f"--namespace={namespace}")
    args.append(verb)

    if isinstance(verb_args, str):
        args.append(verb_args)
    elif verb_args:
        args.extend(verb_args)

    args.extend(to_command_args(merged))
    return args


__all__ = ["build_common_args", "to_command_args"]
