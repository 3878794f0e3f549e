"""JSON-ready encoding of the AST (used by the driver's `--ast-out`)."""

from __future__ import annotations

import json
from typing import Any, Dict

from .ast import (
    Block,
    BinaryOperatorNode,
    IdentificatorNode,
    Node,
    TypeNode,
    UnaryOperatorNode,
    ValueNode,
)


def encode_block(block: Block) -> Dict[str, int]:
    return {
        "first_line": block.first_line,
        "first_column": block.first_column,
        "last_line": block.last_line,
        "last_column": block.last_column,
    }


def encode_node(node: Node) -> Dict[str, Any]:
    """Encode a node and its subtree.

    Operator nodes only carry their symbol: their operands are already the
    sibling children of the enclosing expression.
    """
    payload: Dict[str, Any] = {
        "kind": node.kind.name,
        "kind_family": type(node.kind).__name__,
        "block": encode_block(node.block),
    }
    if isinstance(node, ValueNode):
        payload["value"] = node.value
        payload["type"] = node.type
    elif isinstance(node, IdentificatorNode):
        payload["identificator"] = node.identificator
    elif isinstance(node, TypeNode):
        payload["type"] = node.name
    elif isinstance(node, (UnaryOperatorNode, BinaryOperatorNode)):
        payload["operator"] = node.operator
    payload["children"] = [encode_node(child) for child in node.children]
    return payload


def dumps(node: Node) -> str:
    return json.dumps(encode_node(node), indent=4)
