"""
Solidity ABI helpers.

Thin layer over eth-abi that works with canonical Solidity signatures
such as ``execute(address,uint256,bytes)`` or tuple-typed signatures like
``handleOps((address,uint256,bytes)[],address)``.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from eth_abi import decode, encode
from eth_utils import keccak, to_checksum_address


def split_types(type_list: str) -> List[str]:
    """
    Split a comma separated ABI type list, respecting nested tuples.

    Args:
        type_list: Type list without the enclosing parentheses

    Returns:
        List of top-level type strings
    """
    types: List[str] = []
    depth = 0
    current: List[str] = []
    for char in type_list:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise ValueError(f"Unbalanced parentheses in type list: {type_list}")
        if char == "," and depth == 0:
            types.append("".join(current))
            current = []
        else:
            current.append(char)
    if depth != 0:
        raise ValueError(f"Unbalanced parentheses in type list: {type_list}")
    if current:
        types.append("".join(current))
    return types


def parse_signature(signature: str) -> Tuple[str, Tuple[str, ...]]:
    """
    Parse ``name(type1,type2)`` into its name and argument types.

    Raises:
        ValueError: If the signature is not of the form ``name(...)``
    """
    name, sep, rest = signature.partition("(")
    if not sep or not name or not rest.endswith(")"):
        raise ValueError(f"Invalid function signature: {signature}")
    return name, tuple(split_types(rest[:-1]))


def function_selector(signature: str) -> bytes:
    """First four bytes of keccak256 of the canonical signature."""
    return keccak(text=signature)[:4]


def encode_call(signature: str, args: Sequence[Any]) -> bytes:
    """Encode calldata (selector followed by ABI-encoded arguments)."""
    _, types = parse_signature(signature)
    if len(types) != len(args):
        raise ValueError(
            f"{signature} expects {len(types)} arguments, got {len(args)}"
        )
    return function_selector(signature) + encode(list(types), list(args))


def _checksum_addresses(abi_type: str, value: Any) -> Any:
    """Render every ``address`` inside a decoded value in EIP-55 form."""
    if abi_type.endswith("]"):
        element_type = abi_type[: abi_type.rindex("[")]
        return tuple(_checksum_addresses(element_type, item) for item in value)
    if abi_type.startswith("("):
        return tuple(
            _checksum_addresses(component, item)
            for component, item in zip(split_types(abi_type[1:-1]), value)
        )
    if abi_type == "address":
        return to_checksum_address(value)
    return value


def _decode(types: Sequence[str], data: bytes) -> Tuple[Any, ...]:
    values = decode(list(types), data)
    return tuple(_checksum_addresses(abi_type, value) for abi_type, value in zip(types, values))


def decode_call_args(types: Sequence[str], data: bytes) -> Tuple[Any, ...]:
    """Decode ABI-encoded arguments (calldata without the selector)."""
    if not types:
        return ()
    return _decode(types, data)


def encode_outputs(types: Sequence[str], result: Any) -> bytes:
    """Encode a contract function's return value(s)."""
    if not types:
        return b""
    values = (result,) if len(types) == 1 else tuple(result)
    return encode(list(types), list(values))


def decode_outputs(types: Sequence[str], data: bytes) -> Any:
    """
    Decode return data.

    Addresses come back checksummed whatever casing the decoder produced.

    Returns:
        None for no outputs, the bare value for a single output,
        otherwise a tuple
    """
    if not types:
        return None
    values = _decode(types, data)
    if len(types) == 1:
        return values[0]
    return values
