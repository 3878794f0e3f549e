from __future__ import annotations

import logging
import operator
import sys
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .ast import (
    BinaryOperatorNode,
    CommandKind,
    CommandNode,
    DeclarationKind,
    DeclarationNode,
    ExpressionKind,
    ExpressionNode,
    IdentificatorNode,
    Node,
    TYPE_NAMES,
    TypeKind,
    UnaryOperatorNode,
    ValueKind,
    ValueNode,
)
from .env import (
    EMPTY_ENVIRONMENT,
    EMPTY_STORE,
    Binding,
    Environment,
    LocationAllocator,
    Store,
    Undefined,
    is_location,
)
from .errors import DynamicError, DynamicErrorType, StaticError, StaticErrorType
from .values import (
    Value,
    boolean_from_literal,
    floor_divide,
    format_value,
    number_from_literal,
    power,
    remainder,
    type_name,
    type_of,
)

logger = logging.getLogger(__name__)

NUM = TypeKind.NUMBER
BOOL = TypeKind.BOOLEAN


@dataclass(frozen=True)
class BinaryOperation:
    operand_type: Optional[TypeKind]  # None: both sides must share a type
    impl: Callable[[Value, Value], Value]
    nonzero_divisor: bool = False


BINARY_OPERATIONS: Dict[str, BinaryOperation] = {
    "+": BinaryOperation(NUM, operator.add),
    "-": BinaryOperation(NUM, operator.sub),
    "*": BinaryOperation(NUM, operator.mul),
    "^": BinaryOperation(NUM, power),
    "/": BinaryOperation(NUM, operator.truediv, nonzero_divisor=True),
    "//": BinaryOperation(NUM, floor_divide, nonzero_divisor=True),
    "%": BinaryOperation(NUM, remainder, nonzero_divisor=True),
    "<": BinaryOperation(NUM, operator.lt),
    ">": BinaryOperation(NUM, operator.gt),
    "<=": BinaryOperation(NUM, operator.le),
    ">=": BinaryOperation(NUM, operator.ge),
    "==": BinaryOperation(None, operator.eq),
    "!=": BinaryOperation(None, operator.ne),
    "&&": BinaryOperation(BOOL, lambda left, right: left and right),
    "||": BinaryOperation(BOOL, lambda left, right: left or right),
}

UNARY_OPERATIONS: Dict[str, Tuple[TypeKind, Callable[[Value], Value]]] = {
    "!": (BOOL, operator.not_),
    "+": (NUM, operator.pos),
    "-": (NUM, operator.neg),
}


def _wrong_type(expected: TypeKind, found: Value, node: Node) -> StaticError:
    return StaticError(
        f"expected '{TYPE_NAMES[expected]}' type, but found '{type_name(found)}' type",
        StaticErrorType.WRONG_TYPE,
        node.block,
    )


class Interpreter:
    """Tree-walking evaluator over an environment (ρ) and a store (σ).

    `execute` returns the new store and never a new environment; bindings made
    by a declaration only reach the command nested under it.
    """

    def __init__(self, stdout=None) -> None:
        self.stdout = stdout or sys.stdout
        self.locations = LocationAllocator()

    def run(self, program: CommandNode) -> Store:
        return self.execute(program, EMPTY_ENVIRONMENT, EMPTY_STORE)

    # --- commands ------------------------------------------------------

    def execute(self, command: CommandNode, rho: Environment, sigma: Store) -> Store:
        # Sequencing and scoping chains are walked iteratively; only the
        # first half of each pair recurses.
        while True:
            kind = command.kind
            if kind is CommandKind.COMMAND_COMMAND:
                first, command = command.children
                sigma = self.execute(first, rho, sigma)
                continue
            if kind is CommandKind.DECLARATION_COMMAND:
                declaration, command = command.children
                rho, sigma = self.elaborate(declaration, rho, sigma)
                continue
            return self._execute_single(command, rho, sigma)

    def _execute_single(self, command: CommandNode, rho: Environment, sigma: Store) -> Store:
        kind = command.kind
        if kind is CommandKind.NIL:
            return sigma
        if kind is CommandKind.ASSIGNMENT:
            identificator, expression = command.children
            binding = self._resolve(identificator, rho)
            if not is_location(binding):
                raise StaticError(
                    f"constant '{identificator.identificator}' re-assignment",
                    StaticErrorType.CONSTANT_REASSIGNMENT,
                    command.block,
                )
            return sigma.extend(binding, self.evaluate(expression, rho, sigma))
        if kind is CommandKind.IF:
            condition, then_command = command.children
            if self._condition(condition, rho, sigma):
                return self.execute(then_command, rho, sigma)
            return sigma
        if kind is CommandKind.IF_ELSE:
            condition, then_command, else_command = command.children
            if self._condition(condition, rho, sigma):
                return self.execute(then_command, rho, sigma)
            return self.execute(else_command, rho, sigma)
        if kind is CommandKind.WHILE:
            condition, body = command.children
            while self._condition(condition, rho, sigma):
                sigma = self.execute(body, rho, sigma)
            return sigma
        if kind is CommandKind.PRINT:
            (expression,) = command.children
            value = self.evaluate(expression, rho, sigma)
            self.stdout.write(format_value(value) + "\n")
            self.stdout.flush()
            return sigma
        raise DynamicError("unknown command", DynamicErrorType.UNKNOWN_COMMAND, command.block)

    def _condition(self, condition: ExpressionNode, rho: Environment, sigma: Store) -> bool:
        value = self.evaluate(condition, rho, sigma)
        if type_of(value) is not BOOL:
            raise _wrong_type(BOOL, value, condition)
        return value

    def _resolve(self, identificator: IdentificatorNode, rho: Environment) -> Binding:
        try:
            return rho[identificator.identificator]
        except Undefined:
            raise StaticError(
                f"undefined identificator '{identificator.identificator}'",
                StaticErrorType.UNDEFINED_IDENTIFICATOR,
                identificator.block,
            ) from None

    # --- expressions ---------------------------------------------------

    def evaluate(self, expression: ExpressionNode, rho: Environment, sigma: Store) -> Value:
        kind = expression.kind
        if kind is ExpressionKind.VALUE:
            return self._literal(expression.children[0])
        if kind is ExpressionKind.IDENTIFICATOR:
            binding = self._resolve(expression.children[0], rho)
            return sigma[binding] if is_location(binding) else binding
        if kind is ExpressionKind.UNARY_OPERATOR:
            operator_node, operand = expression.children
            return self._eval_unary(operator_node, operand, rho, sigma)
        if kind is ExpressionKind.BINARY_OPERATOR:
            left, operator_node, right = expression.children
            return self._eval_binary(operator_node, left, right, rho, sigma)
        if kind is ExpressionKind.PARENTHESIS:
            return self.evaluate(expression.children[0], rho, sigma)
        raise DynamicError("unknown expression", DynamicErrorType.UNKNOWN_EXPRESSION, expression.block)

    def _literal(self, value_node: ValueNode) -> Value:
        if value_node.kind is ValueKind.NUMBER:
            return number_from_literal(value_node.value)
        return boolean_from_literal(value_node.value)

    def _eval_unary(
        self,
        operator_node: UnaryOperatorNode,
        operand: ExpressionNode,
        rho: Environment,
        sigma: Store,
    ) -> Value:
        value = self.evaluate(operand, rho, sigma)
        try:
            required, impl = UNARY_OPERATIONS[operator_node.operator]
        except KeyError:
            raise DynamicError(
                f"unknown operator '{operator_node.operator}'",
                DynamicErrorType.UNKNOWN_OPERATOR,
                operator_node.block,
            ) from None
        if type_of(value) is not required:
            raise _wrong_type(required, value, operand)
        return impl(value)

    def _eval_binary(
        self,
        operator_node: BinaryOperatorNode,
        left: ExpressionNode,
        right: ExpressionNode,
        rho: Environment,
        sigma: Store,
    ) -> Value:
        value1 = self.evaluate(left, rho, sigma)
        value2 = self.evaluate(right, rho, sigma)
        op = operator_node.operator
        operation = BINARY_OPERATIONS.get(op)
        if operation is None:
            raise DynamicError(
                f"unknown operator '{op}'",
                DynamicErrorType.UNKNOWN_OPERATOR,
                operator_node.block,
            )
        if operation.operand_type is None:
            if type_of(value1) is not type_of(value2):
                raise _wrong_type(type_of(value1), value2, right)
        else:
            if type_of(value1) is not operation.operand_type:
                raise _wrong_type(operation.operand_type, value1, left)
            if type_of(value2) is not operation.operand_type:
                raise _wrong_type(operation.operand_type, value2, right)
        if operation.nonzero_divisor and value2 == 0:
            raise DynamicError("division by zero", DynamicErrorType.DIVISION_BY_ZERO, operator_node.block)
        return operation.impl(value1, value2)

    # --- declarations --------------------------------------------------

    def elaborate(
        self, declaration: DeclarationNode, rho: Environment, sigma: Store
    ) -> Tuple[Environment, Store]:
        kind = declaration.kind
        if kind is DeclarationKind.NIL:
            return rho, sigma
        if kind is DeclarationKind.VARIABLE:
            # The declared type is not checked; the initialiser is evaluated under
            # the outer (ρ, σ), so it never sees its own name.
            identificator, _type_node, expression = declaration.children
            value = self.evaluate(expression, rho, sigma)
            location = self.locations.fresh()
            logger.debug("variable %s bound to %s", identificator.identificator, location)
            return rho.extend(identificator.identificator, location), sigma.extend(location, value)
        if kind is DeclarationKind.CONSTANT:
            identificator, _type_node, expression = declaration.children
            value = self.evaluate(expression, rho, sigma)
            logger.debug("constant %s bound to %s", identificator.identificator, format_value(value))
            return rho.extend(identificator.identificator, value), sigma
        if kind is DeclarationKind.DECLARATION_DECLARATION:
            first, second = declaration.children
            rho1, sigma1 = self.elaborate(first, rho, sigma)
            return self.elaborate(second, rho1, sigma1)
        raise StaticError("unknown declaration", StaticErrorType.UNKNOWN_DECLARATION, declaration.block)


def run_program(program: CommandNode, stdout=None) -> Store:
    return Interpreter(stdout=stdout).run(program)
