"""Argument Serializer (C3) — Render parsed elements back to source text.

Structural inverse of the argument parser: ``serialize_arguments(
parse_arguments(text))`` reproduces ``text`` up to whitespace normalisation.
"""

import re

from importkit.arguments import (
    ArrayLiteral,
    ArrowFn,
    Call,
    Generic,
    Leaf,
    ObjectLiteral,
    ParsedElement,
    TypeAssertion,
)

_IDENTIFIER_RE = re.compile(r"[A-Za-z_$][\w$]*")


def serialize_arguments(elements: list[ParsedElement]) -> str:
    """Render an argument list, joined by ``", "``."""
    return ", ".join(serialize_element(element) for element in elements)


def serialize_element(element: ParsedElement) -> str:
    if isinstance(element, Leaf):
        return element.text
    if isinstance(element, ArrayLiteral):
        return f"[{serialize_arguments(element.items)}]"
    if isinstance(element, Call):
        return f"{element.name}({serialize_arguments(element.args)})"
    if isinstance(element, Generic):
        return _serialize_generic(element)
    if isinstance(element, ArrowFn):
        return _serialize_arrow(element)
    if isinstance(element, ObjectLiteral):
        return _serialize_object(element)
    if isinstance(element, TypeAssertion):
        return f"{serialize_element(element.expression)} as {element.target_type}"
    raise TypeError(f"Cannot serialize {type(element).__name__}")


def _serialize_generic(element: Generic) -> str:
    text = f"{element.name}<{serialize_arguments(element.type_args)}>"
    if element.invoked or element.call_args:
        text += f"({serialize_arguments(element.call_args or [])})"
    return text


def _serialize_arrow(element: ArrowFn) -> str:
    prefix = "async " if element.is_async else ""
    if element.types is not None:
        params = []
        for param, param_type in zip(element.params, element.types.param_types):
            name = serialize_element(param)
            params.append(f"{name}: {param_type}" if param_type else name)
        head = f"({', '.join(params)}): {element.types.return_type}"
    elif (
        len(element.params) == 1
        and isinstance(element.params[0], Leaf)
        and _IDENTIFIER_RE.fullmatch(element.params[0].text)
    ):
        head = element.params[0].text
    else:
        head = f"({serialize_arguments(element.params)})"
    return f"{prefix}{head} => {serialize_element(element.body)}"


def _serialize_object(element: ObjectLiteral) -> str:
    if not element.properties:
        return "{}"
    entries = []
    for key, value in element.properties.items():
        if isinstance(value, Leaf) and value.text == key:
            entries.append(key)
        else:
            entries.append(f"{key}: {serialize_element(value)}")
    return "{ " + ", ".join(entries) + " }"
