"""Schema bridge between pydantic validation types and prompt text.

A schema is anything pydantic's ``TypeAdapter`` understands: a ``BaseModel``
subclass, a ``TypedDict``, ``list[int]`` and so on. The JSON description
produced here is embedded in prompts and has no enforcement power; validation
always goes through the adapter.
"""

from typing import Any

from pydantic import TypeAdapter

DEFAULT_SCHEMA_NAME = "Output"


def get_type_adapter(schema: Any) -> TypeAdapter:
    """Return a TypeAdapter for ``schema`` (an existing adapter is reused)."""
    if isinstance(schema, TypeAdapter):
        return schema
    return TypeAdapter(schema)


def get_json_schema(schema: Any, name: str = DEFAULT_SCHEMA_NAME) -> dict[str, Any]:
    """Describe ``schema`` as a plain JSON schema rooted at ``name``.

    The dialect marker (``$schema``) is dropped and the root definition is
    registered under ``name`` next to any nested definitions, e.g.::

        {"$ref": "#/$defs/Output", "$defs": {"Address": {...}, "Output": {...}}}

    A nested definition that already uses ``name`` is renamed (``Output1``)
    and its references are rewritten.

    Args:
        schema: Validation type or TypeAdapter.
        name: Key of the root definition.

    Returns:
        A new dict; the caller's schema is never modified.
    """
    json_schema = dict(get_type_adapter(schema).json_schema())
    json_schema.pop("$schema", None)
    definitions = json_schema.pop("$defs", {})

    if name in definitions:
        # A nested definition already uses the root name: move it aside
        renamed = _free_name(name, definitions)
        old_ref, new_ref = f"#/$defs/{name}", f"#/$defs/{renamed}"
        definitions = {
            (renamed if key == name else key): _rewrite_refs(value, old_ref, new_ref)
            for key, value in definitions.items()
        }
        json_schema = _rewrite_refs(json_schema, old_ref, new_ref)

    return {
        "$ref": f"#/$defs/{name}",
        "$defs": {**definitions, name: json_schema},
    }


def _free_name(name: str, definitions: dict[str, Any]) -> str:
    index = 1
    while f"{name}{index}" in definitions:
        index += 1
    return f"{name}{index}"


def _rewrite_refs(node: Any, old_ref: str, new_ref: str) -> Any:
    """Copy of ``node`` with every ``$ref`` to ``old_ref`` pointing at ``new_ref``."""
    if isinstance(node, dict):
        return {
            key: new_ref if key == "$ref" and value == old_ref else _rewrite_refs(value, old_ref, new_ref)
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [_rewrite_refs(item, old_ref, new_ref) for item in node]
    return node
