from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Union

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from .ast import (
    BinaryOperatorNode,
    Block,
    CommandKind,
    CommandNode,
    DeclarationKind,
    DeclarationNode,
    ExpressionKind,
    ExpressionNode,
    IdentificatorNode,
    TypeKind,
    TypeNode,
    UNKNOWN_BLOCK,
    UnaryOperatorNode,
    ValueKind,
    ValueNode,
    nil_command,
    nil_declaration,
    spanning,
)
from .errors import LexicalError, ParseError

logger = logging.getLogger(__name__)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()


class SeparatorInserter:
    """Turns NEWLINE / SEMI tokens into `_SEP` tokens the grammar understands.

    - a newline inside parentheses is layout only (the `for` header may
      span several lines); a `;` there still reaches the parser;
    - runs of separators collapse into one;
    - separators at the start of input or right after `{` are dropped, and so
      is one right before `}`, `{`, `else`, `then`, `do` or end of input.

    Every other separator is passed on, so `if c then ; print 1` keeps its
    empty branch and `x = ; 5` is a syntax error.
    """

    always_accept = ("NEWLINE", "SEMI")

    LEADING = {
        None,
        "_LBRACE",
    }

    ABSORBING = {
        "_LBRACE",
        "_RBRACE",
        "_ELSE",
        "_THEN",
        "_DO",
    }

    def __init__(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self.paren_depth = 0
        self.previous: Optional[str] = None
        self.pending: Optional[Token] = None

    def process(self, stream: Iterator[Token]) -> Iterator[Token]:
        self._reset()
        for token in stream:
            ttype = token.type
            if ttype in self.always_accept:
                if ttype == "NEWLINE" and self.paren_depth:
                    continue
                if self.previous not in self.LEADING and self.pending is None:
                    self.pending = token
                continue
            if self.pending is not None:
                if ttype not in self.ABSORBING:
                    yield Token.new_borrow_pos("_SEP", self.pending.value, self.pending)
                self.pending = None
            yield token
            self._update_depth(ttype)
            self.previous = ttype

    def _update_depth(self, ttype: str) -> None:
        if ttype == "_LPAR":
            self.paren_depth += 1
        elif ttype == "_RPAR" and self.paren_depth:
            self.paren_depth -= 1


_PARSER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    lexer="basic",
    start="start",
    propagate_positions=True,
    maybe_placeholders=False,
    postlex=SeparatorInserter(),
)


def parse_program(source: str) -> CommandNode:
    """Parse SmLL source text into its root command node."""
    try:
        tree = _PARSER.parse(source)
    except UnexpectedCharacters as err:
        raise LexicalError(
            f"unexpected character {err.char!r}", line=err.line, column=err.column
        ) from err
    except UnexpectedToken as err:
        raise ParseError(_describe_unexpected(err.token), line=err.line, column=err.column) from err
    except UnexpectedInput as err:
        raise ParseError(
            "unexpected end of input",
            line=getattr(err, "line", None),
            column=getattr(err, "column", None),
        ) from err
    program = _build_start(tree)
    logger.debug("parsed program spanning %s", program.block)
    return program


def _describe_unexpected(token: Token) -> str:
    if token.type == "$END":
        return "unexpected end of input"
    if token.type == "_SEP":
        return "unexpected command separator"
    return f"unexpected token {token.value!r}"


def _build_start(tree: Tree) -> CommandNode:
    sequence = next((child for child in tree.children if isinstance(child, Tree)), None)
    if sequence is None:
        return nil_command(_block(tree))
    return _build_sequence(sequence)


def _build_sequence(tree: Tree) -> CommandNode:
    items = [_build_item(child) for child in tree.children if isinstance(child, Tree)]
    return _fold_sequence(items, _block(tree))


def _fold_sequence(items: List[Union[CommandNode, DeclarationNode]], block: Block) -> CommandNode:
    """Right-fold a flat item list into sequencing / scoping nodes.

    A run of declarations scopes over everything that follows it; a command
    followed by more items is sequenced with them.
    """
    result: Optional[CommandNode] = None
    declarations: List[DeclarationNode] = []
    for item in reversed(items):
        if isinstance(item, DeclarationNode):
            declarations.append(item)
            continue
        if declarations:
            result = _scope(list(reversed(declarations)), result)
            declarations = []
        if result is None:
            result = item
        else:
            result = CommandNode(CommandKind.COMMAND_COMMAND, (item, result), spanning(item, result))
    if declarations:
        result = _scope(list(reversed(declarations)), result)
    if result is None:
        return nil_command(block)
    return result


def _scope(declarations: List[DeclarationNode], body: Optional[CommandNode]) -> CommandNode:
    declaration = declarations[0]
    for following in declarations[1:]:
        declaration = DeclarationNode(
            DeclarationKind.DECLARATION_DECLARATION,
            (declaration, following),
            spanning(declaration, following),
        )
    if body is None:
        body = nil_command(declaration.block.end())
    return CommandNode(CommandKind.DECLARATION_COMMAND, (declaration, body), spanning(declaration, body))


def _build_item(tree: Tree) -> Union[CommandNode, DeclarationNode]:
    if _name(tree) in {"variable", "constant"}:
        return _build_declaration(tree)
    return _build_command(tree)


def _build_declaration(tree: Tree) -> DeclarationNode:
    kind = DeclarationKind.VARIABLE if _name(tree) == "variable" else DeclarationKind.CONSTANT
    name_token = next(child for child in tree.children if isinstance(child, Token) and child.type == "IDENT")
    type_node = next(child for child in tree.children if isinstance(child, Tree) and _name(child) == "type")
    value_node = next(child for child in reversed(tree.children) if isinstance(child, Tree))
    return DeclarationNode(
        kind,
        (_build_identificator(name_token), _build_type(type_node), _build_expr(value_node)),
        _block(tree),
    )


def _build_type(tree: Tree) -> TypeNode:
    token = tree.children[0]
    kind = TypeKind.NUMBER if token.type == "NUM_TYPE" else TypeKind.BOOLEAN
    return TypeNode(kind, _block(tree))


def _build_command(tree: Tree) -> CommandNode:
    kind = _name(tree)
    loc = _block(tree)
    if kind == "assignment":
        name_token, value_node = tree.children
        return CommandNode(
            CommandKind.ASSIGNMENT,
            (_build_identificator(name_token), _build_expr(value_node)),
            loc,
        )
    if kind == "if_command":
        condition = _build_expr(tree.children[0])
        bodies: List[CommandNode] = []
        for child in tree.children[1:]:
            bodies.append(_build_body(child, (bodies[-1] if bodies else condition).block.end()))
        if len(bodies) == 2:
            return CommandNode(CommandKind.IF_ELSE, (condition, bodies[0], bodies[1]), loc)
        return CommandNode(CommandKind.IF, (condition, bodies[0]), loc)
    if kind == "while_command":
        condition_node, body_node = tree.children
        condition = _build_expr(condition_node)
        return CommandNode(CommandKind.WHILE, (condition, _build_body(body_node, loc.end())), loc)
    if kind == "print_command":
        return CommandNode(CommandKind.PRINT, (_build_expr(tree.children[0]),), loc)
    if kind == "for_command":
        return _build_for(tree)
    raise ValueError(f"Unsupported command node: {kind}")


def _build_for(tree: Tree) -> CommandNode:
    """Desugar `for (init, cond, step) do body`.

    The result is `DECLARATION_COMMAND(init, WHILE(cond, COMMAND_COMMAND(body, step)))`:
    the loop variable is declared once and the step runs after each body.
    """
    loc = _block(tree)
    init: Optional[DeclarationNode] = None
    step: Optional[CommandNode] = None
    condition: Optional[ExpressionNode] = None
    body: Optional[CommandNode] = None
    for child in tree.children:
        name = _name(child)
        if name == "for_init":
            init = _build_declaration(child.children[0])
        elif name == "for_step":
            step = _build_command(child.children[0])
        elif name == "command_body":
            body = _build_body(child, loc.end())
        elif condition is None:
            condition = _build_expr(child)
    if condition is None or body is None:
        raise ValueError("malformed for command")
    if init is None:
        init = nil_declaration(Block(loc.first_line, loc.first_column, loc.first_line, loc.first_column))
    if step is None:
        step = nil_command(body.block.end())
    loop_body = CommandNode(CommandKind.COMMAND_COMMAND, (body, step), spanning(body, step))
    loop = CommandNode(CommandKind.WHILE, (condition, loop_body), loc)
    return CommandNode(CommandKind.DECLARATION_COMMAND, (init, loop), loc)


def _build_body(tree: Tree, empty_at: Block) -> CommandNode:
    children = [child for child in tree.children if isinstance(child, Tree)]
    if not children:
        block = _block(tree)
        # `{ }` has a position of its own; a bare empty body does not.
        return nil_command(empty_at if block is UNKNOWN_BLOCK else block)
    inner = children[0]
    if _name(inner) == "sequence":
        return _build_sequence(inner)
    return _build_command(inner)


def _build_expr(node: Union[Tree, Token]) -> ExpressionNode:
    if not isinstance(node, Tree):
        raise TypeError(f"Unexpected node type: {type(node)}")
    name = _name(node)
    loc = _block(node)
    if name == "number":
        value = ValueNode(node.children[0].value, ValueKind.NUMBER, loc)
        return ExpressionNode(ExpressionKind.VALUE, (value,), loc)
    if name == "boolean":
        value = ValueNode(node.children[0].value, ValueKind.BOOLEAN, loc)
        return ExpressionNode(ExpressionKind.VALUE, (value,), loc)
    if name == "identificator":
        return ExpressionNode(
            ExpressionKind.IDENTIFICATOR,
            (_build_identificator(node.children[0]),),
            loc,
        )
    if name == "parenthesis":
        return ExpressionNode(ExpressionKind.PARENTHESIS, (_build_expr(node.children[0]),), loc)
    if name == "unary":
        op_token, operand_node = node.children
        operand = _build_expr(operand_node)
        operator = UnaryOperatorNode(op_token.value, operand, _token_block(op_token))
        return ExpressionNode(ExpressionKind.UNARY_OPERATOR, (operator, operand), loc)
    if name == "binary":
        left_node, op_token, right_node = node.children
        left = _build_expr(left_node)
        right = _build_expr(right_node)
        operator = BinaryOperatorNode(op_token.value, left, right, _token_block(op_token))
        return ExpressionNode(ExpressionKind.BINARY_OPERATOR, (left, operator, right), loc)
    raise ValueError(f"Unsupported expression node: {name}")


def _build_identificator(token: Token) -> IdentificatorNode:
    return IdentificatorNode(token.value, _token_block(token))


def _block(tree: Tree) -> Block:
    meta = tree.meta
    if getattr(meta, "empty", True):
        return UNKNOWN_BLOCK
    return Block(meta.line, meta.column, meta.end_line, meta.end_column)


def _token_block(token: Token) -> Block:
    return Block(token.line, token.column, token.end_line, token.end_column)


def _name(node: Union[Tree, Token]) -> str:
    if isinstance(node, Tree):
        data = node.data
        if isinstance(data, Token):
            return data.value
        return data
    if isinstance(node, Token):
        return node.type
    return str(node)
