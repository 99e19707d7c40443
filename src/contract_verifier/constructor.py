from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

import eth_abi
from eth_abi.exceptions import ABITypeError, EncodingError, ParseError
from eth_utils import decode_hex, to_checksum_address

from .errors import ArgumentEncodingError, UnexpectedConstructorArgs

_ARRAY_RE = re.compile(r"^(.*)\[(\d*)\]$")
_ENCODE_ERRORS = (EncodingError, ParseError, ABITypeError, ValueError, TypeError, OverflowError)


def find_constructor(abi: Sequence[dict[str, Any]]) -> dict[str, Any] | None:
    for entry in abi:
        if isinstance(entry, dict) and entry.get("type") == "constructor":
            return entry
    return None


def constructor_as_function(constructor: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "function",
        "name": "constructor",
        "inputs": list(constructor.get("inputs") or []),
        "outputs": [],
        "stateMutability": "nonpayable",
    }


def canonical_type(param: dict[str, Any]) -> str:
    typ = str(param["type"])
    if typ.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.get("components") or [])
        return f"({inner}){typ[len('tuple'):]}"
    return typ


def function_signature(descriptor: dict[str, Any]) -> str:
    types = ",".join(canonical_type(p) for p in descriptor.get("inputs") or [])
    return f"{descriptor['name']}({types})"


def _split_literal(text: str, open_ch: str, close_ch: str) -> list[str]:
    """Split `[a, b, [c]]` / `(a, "b,c")` into its top-level elements."""
    s = text.strip()
    if not (s.startswith(open_ch) and s.endswith(close_ch)):
        raise ValueError(f"expected a {open_ch}...{close_ch} literal, got {text!r}")
    body = s[1:-1]
    if not body.strip():
        return []
    items: list[str] = []
    depth = 0
    in_quote = False
    buf: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if in_quote:
            if ch == "\\" and i + 1 < len(body):
                buf.append(body[i + 1])
                i += 2
                continue
            if ch == '"':
                in_quote = False
            buf.append(ch)
        elif ch == '"':
            in_quote = True
            buf.append(ch)
        elif ch in "[(":
            depth += 1
            buf.append(ch)
        elif ch in "])":
            depth -= 1
            buf.append(ch)
        elif ch == "," and depth == 0:
            items.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
        i += 1
    if in_quote or depth != 0:
        raise ValueError(f"unbalanced literal {text!r}")
    items.append("".join(buf).strip())
    return [_unquote(item) for item in items]


def _unquote(item: str) -> str:
    if len(item) >= 2 and item[0] == '"' and item[-1] == '"':
        return item[1:-1]
    return item


def _coerce_scalar(typ: str, value: str) -> Any:
    v = value.strip() if typ != "string" else value
    if typ.startswith(("uint", "int")):
        try:
            return int(v, 0)
        except ValueError:
            # int(..., 0) rejects leading zeros such as "0100".
            return int(v, 10)
    if typ == "bool":
        low = v.lower()
        if low in ("true", "1"):
            return True
        if low in ("false", "0"):
            return False
        raise ValueError(f"invalid bool {value!r}")
    if typ == "address":
        return to_checksum_address(v)
    if typ == "string":
        return value
    if typ.startswith("bytes") or typ == "function":
        return decode_hex(v)
    if typ.startswith(("fixed", "ufixed")):
        try:
            return Decimal(v)
        except InvalidOperation as exc:
            raise ValueError(f"invalid decimal {value!r}") from exc
    raise ValueError(f"unsupported type {typ!r}")


def coerce_argument(param: dict[str, Any], value: Any) -> Any:
    """Turn a user-supplied string (or parsed literal element) into the ABI value."""
    typ = str(param["type"])
    m = _ARRAY_RE.match(typ)
    if m:
        items = _split_literal(value, "[", "]") if isinstance(value, str) else list(value)
        size = m.group(2)
        if size and len(items) != int(size):
            raise ValueError(f"expected {size} elements for {typ}, got {len(items)}")
        inner = dict(param, type=m.group(1))
        return [coerce_argument(inner, item) for item in items]
    if typ == "tuple":
        components = list(param.get("components") or [])
        items = _split_literal(value, "(", ")") if isinstance(value, str) else list(value)
        if len(items) != len(components):
            raise ValueError(f"expected {len(components)} tuple fields, got {len(items)}")
        return tuple(coerce_argument(c, item) for c, item in zip(components, items))
    if not isinstance(value, str):
        raise TypeError(f"expected a string for {typ}, got {type(value).__name__}")
    return _coerce_scalar(typ, value)


def signature_types(signature: str) -> list[str]:
    """Split `name(uint256,(uint8,string)[])` into its top-level parameter types."""
    name, paren, _ = signature.partition("(")
    if not paren:
        raise ValueError(f"not a function signature: {signature!r}")
    return _split_literal(signature[len(name):], "(", ")")


def encode_arguments(descriptor: dict[str, Any], args: Sequence[str]) -> bytes:
    """Encode argument strings against the descriptor's canonical signature."""
    signature = function_signature(descriptor)
    inputs = list(descriptor.get("inputs") or [])
    if len(args) != len(inputs):
        raise ArgumentEncodingError(f"{signature} expects {len(inputs)} arguments, got {len(args)}")
    types = signature_types(signature)
    values = []
    for index, (param, raw) in enumerate(zip(inputs, args)):
        try:
            values.append(coerce_argument(param, raw))
        except _ENCODE_ERRORS as exc:
            raise ArgumentEncodingError(f"{raw!r} is not a valid {types[index]} for {signature}: {exc}", index) from exc
    try:
        return eth_abi.encode(types, values)
    except _ENCODE_ERRORS as exc:
        raise ArgumentEncodingError(f"{signature}: {exc}", _failing_index(types, values)) from exc


def _failing_index(types: list[str], values: list[Any]) -> int | None:
    for index, (typ, value) in enumerate(zip(types, values)):
        try:
            eth_abi.encode([typ], [value])
        except _ENCODE_ERRORS:
            return index
    return None


def encode_constructor_args(abi: Sequence[dict[str, Any]], args: Sequence[str]) -> bytes | None:
    """
    ABI-encode constructor arguments for the explorer's `constructorArguements` field.

    Returns None when the contract has no constructor and no arguments were given.
    The result carries no function selector.
    """
    constructor = find_constructor(abi)
    if constructor is None:
        if args:
            raise UnexpectedConstructorArgs(len(args))
        return None
    return encode_arguments(constructor_as_function(constructor), args)
