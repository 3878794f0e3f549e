from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Tuple, Union

from .errors import LexicalError


# Kind values are distinct across families so a bare number in serialized
# output still identifies its family.
class CommandKind(IntEnum):
    NIL = 0
    DECLARATION_COMMAND = 1
    COMMAND_COMMAND = 2
    ASSIGNMENT = 3
    IF = 4
    IF_ELSE = 5
    WHILE = 6
    PRINT = 7


class ExpressionKind(IntEnum):
    VALUE = 9
    IDENTIFICATOR = 10
    UNARY_OPERATOR = 11
    BINARY_OPERATOR = 12
    PARENTHESIS = 13


class DeclarationKind(IntEnum):
    NIL = 15
    CONSTANT = 16
    VARIABLE = 17
    DECLARATION_DECLARATION = 18


class ValueKind(IntEnum):
    BOOLEAN = 20
    NUMBER = 21


class TypeKind(IntEnum):
    BOOLEAN = 22
    NUMBER = 23


class OperatorKind(IntEnum):
    UNARY_OPERATOR = 24
    BINARY_OPERATOR = 25


Kind = Union[CommandKind, ExpressionKind, DeclarationKind, ValueKind, TypeKind, OperatorKind]

VALID_IDENTIFICATOR_REGEX = r"[a-zA-Z_][a-zA-Z0-9_]*"
_VALID_IDENTIFICATOR = re.compile(VALID_IDENTIFICATOR_REGEX)

UNARY_OPERATORS = frozenset({"!", "+", "-"})
BINARY_OPERATORS = frozenset(
    {"&&", "||", "+", "-", "*", "/", "//", "%", "^", ">", "<", ">=", "<=", "==", "!="}
)

TYPE_NAMES: Dict[TypeKind, str] = {
    TypeKind.BOOLEAN: "bool",
    TypeKind.NUMBER: "num",
}

VALUE_KIND_TO_TYPE: Dict[ValueKind, TypeKind] = {
    ValueKind.BOOLEAN: TypeKind.BOOLEAN,
    ValueKind.NUMBER: TypeKind.NUMBER,
}


@dataclass(frozen=True)
class Block:
    """Half-open source range; columns are 1-based, `last_column` is exclusive."""

    first_line: int
    first_column: int
    last_line: int
    last_column: int

    def union(self, other: Block) -> Block:
        start = min((self.first_line, self.first_column), (other.first_line, other.first_column))
        end = max((self.last_line, self.last_column), (other.last_line, other.last_column))
        return Block(start[0], start[1], end[0], end[1])

    def end(self) -> Block:
        """Empty block positioned at the end of this one."""
        return Block(self.last_line, self.last_column, self.last_line, self.last_column)


UNKNOWN_BLOCK = Block(1, 1, 1, 1)


class Node:
    kind: Kind
    children: Tuple["Node", ...]
    block: Block


@dataclass(frozen=True)
class CommandNode(Node):
    kind: CommandKind
    children: Tuple[Node, ...] = ()
    block: Block = field(default=UNKNOWN_BLOCK, compare=False)


@dataclass(frozen=True)
class DeclarationNode(Node):
    kind: DeclarationKind
    children: Tuple[Node, ...] = ()
    block: Block = field(default=UNKNOWN_BLOCK, compare=False)


@dataclass(frozen=True)
class ExpressionNode(Node):
    kind: ExpressionKind
    children: Tuple[Node, ...] = ()
    block: Block = field(default=UNKNOWN_BLOCK, compare=False)


@dataclass(frozen=True)
class ValueNode(Node):
    # Literal lexeme; converted to a runtime value on evaluation.
    value: str
    kind: ValueKind
    block: Block = field(default=UNKNOWN_BLOCK, compare=False)
    children: Tuple[Node, ...] = ()

    @property
    def type(self) -> str:
        return TYPE_NAMES[VALUE_KIND_TO_TYPE[self.kind]]


@dataclass(frozen=True)
class TypeNode(Node):
    kind: TypeKind
    block: Block = field(default=UNKNOWN_BLOCK, compare=False)
    children: Tuple[Node, ...] = ()

    @property
    def name(self) -> str:
        return TYPE_NAMES[self.kind]


@dataclass(frozen=True)
class IdentificatorNode(Node):
    identificator: str
    block: Block = field(default=UNKNOWN_BLOCK, compare=False)
    kind: ExpressionKind = ExpressionKind.IDENTIFICATOR
    children: Tuple[Node, ...] = ()

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if _VALID_IDENTIFICATOR.fullmatch(self.identificator) is None:
            raise LexicalError(
                f"invalid identificator '{self.identificator}'",
                line=self.block.first_line,
                column=self.block.first_column,
            )


class OperatorNode(Node):
    operator: str


@dataclass(frozen=True)
class UnaryOperatorNode(OperatorNode):
    operator: str
    operand: ExpressionNode
    block: Block = field(default=UNKNOWN_BLOCK, compare=False)
    kind: OperatorKind = OperatorKind.UNARY_OPERATOR
    children: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class BinaryOperatorNode(OperatorNode):
    operator: str
    left_operand: ExpressionNode
    right_operand: ExpressionNode
    block: Block = field(default=UNKNOWN_BLOCK, compare=False)
    kind: OperatorKind = OperatorKind.BINARY_OPERATOR
    children: Tuple[Node, ...] = ()


def nil_command(block: Block = UNKNOWN_BLOCK) -> CommandNode:
    return CommandNode(CommandKind.NIL, (), block)


def nil_declaration(block: Block = UNKNOWN_BLOCK) -> DeclarationNode:
    return DeclarationNode(DeclarationKind.NIL, (), block)


def spanning(*nodes: Node) -> Block:
    """Block covering every given node."""
    block = nodes[0].block
    for node in nodes[1:]:
        block = block.union(node.block)
    return block
