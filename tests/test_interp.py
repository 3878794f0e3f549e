from __future__ import annotations

import io

import pytest

from smll.ast import (
    Block,
    CommandKind,
    CommandNode,
    DeclarationKind,
    DeclarationNode,
    ExpressionKind,
    ExpressionNode,
    TypeKind,
    TypeNode,
    ValueKind,
    ValueNode,
    BinaryOperatorNode,
    IdentificatorNode,
)
from smll.env import EMPTY_ENVIRONMENT, EMPTY_STORE, Location
from smll.errors import (
    DynamicError,
    DynamicErrorType,
    ErrorKind,
    InterpreterError,
    StaticError,
    StaticErrorType,
)
from smll.interp import Interpreter, run_program
from smll.parser import parse_program


def _run(source: str) -> list[str]:
    out = io.StringIO()
    run_program(parse_program(source), stdout=out)
    return out.getvalue().splitlines()


def _error(source: str) -> InterpreterError:
    with pytest.raises(InterpreterError) as excinfo:
        _run(source)
    return excinfo.value


def test_variable_update() -> None:
    assert _run("let : num x = 5; x = x + 1; print x") == ["6"]


def test_constant_reassignment_fails() -> None:
    err = _error("const : num y = 1; y = 2")
    assert isinstance(err, StaticError)
    assert err.error_type is StaticErrorType.CONSTANT_REASSIGNMENT
    assert err.kind is ErrorKind.STATIC_SEMANTIC_ERROR


def test_division_operators() -> None:
    assert _run("print 7 // 2\nprint 7 % 2\nprint 2 ^ 3\nprint 6 / 2\nprint 7 / 2") == [
        "3",
        "1",
        "8",
        "3",
        "3.5",
    ]


@pytest.mark.parametrize("source", ["print 7 / 0", "print 7 // 0", "print 7 % 0", "print 1.5 / 0.0"])
def test_division_by_zero(source: str) -> None:
    err = _error(source)
    assert isinstance(err, DynamicError)
    assert err.error_type is DynamicErrorType.DIVISION_BY_ZERO
    assert err.kind is ErrorKind.DYNAMIC_SEMANTIC_ERROR


def test_remainder_takes_sign_of_dividend() -> None:
    assert _run("print -7 % 3\nprint 7 % -3\nprint 7.5 % 2") == ["-1", "1", "1.5"]


def test_floor_division_floors_negative_results() -> None:
    assert _run("print -7 // 2") == ["-4"]


def test_floor_division_floors_the_true_quotient() -> None:
    # 1 / 0.1 rounds to exactly 10
    assert _run("print 1 // 0.1\nprint 7.5 // 2") == ["10", "3"]


def test_huge_numbers_overflow_to_infinity() -> None:
    assert _run(
        "print 10 ^ 5000\nprint (10 ^ 400) / 3\nprint -(10 ^ 400)\nprint (10 ^ 400) // 7\nprint (10 ^ 400) - (10 ^ 400)"
    ) == ["Infinity", "Infinity", "-Infinity", "Infinity", "NaN"]
    assert _run("print (10 ^ 200) * (10 ^ 200)") == ["Infinity"]


def test_long_number_literal_is_a_double() -> None:
    assert _run("print " + "9" * 400) == ["Infinity"]
    assert _run("print 12345678901234567890") == ["12345678901234567000"]


def test_boolean_operator_on_number_is_wrong_type() -> None:
    err = _error("print true && 1")
    assert err.error_type is StaticErrorType.WRONG_TYPE
    assert err.message == "expected 'bool' type, but found 'num' type"


def test_arithmetic_on_boolean_is_wrong_type() -> None:
    assert _error("print true + 1").error_type is StaticErrorType.WRONG_TYPE
    assert _error("print 1 < false").error_type is StaticErrorType.WRONG_TYPE


def test_equality_requires_matching_types() -> None:
    assert _error("print 1 == true").error_type is StaticErrorType.WRONG_TYPE
    assert _run("print 1 == 1.0\nprint true == false\nprint 2 != 3\nprint false != false") == [
        "true",
        "false",
        "true",
        "false",
    ]


def test_logic_and_comparison() -> None:
    assert _run("print 1 < 2 && 2 <= 2\nprint 3 >= 4 || 5 > 4\nprint !true") == ["true", "true", "false"]


def test_unary_operators() -> None:
    assert _run("print -3\nprint +3\nprint -(1 - 4)") == ["-3", "3", "3"]
    assert _error("print -true").error_type is StaticErrorType.WRONG_TYPE
    assert _error("print !1").error_type is StaticErrorType.WRONG_TYPE


def test_operator_precedence_at_runtime() -> None:
    # `^` binds looser than `+`: 2 ^ (1 + 2)
    assert _run("print 2 ^ 1 + 2\nprint 1 + 2 * 3\nprint (1 + 2) * 3") == ["8", "7", "9"]


def test_while_false_runs_zero_iterations() -> None:
    program = parse_program("while false do print 1")
    out = io.StringIO()
    sigma = Interpreter(stdout=out).execute(program, EMPTY_ENVIRONMENT, EMPTY_STORE)
    assert sigma is EMPTY_STORE
    assert out.getvalue() == ""


def test_while_counts() -> None:
    assert _run("let : num i = 0; while i < 3 do { print i; i = i + 1 }") == ["0", "1", "2"]


def test_for_matches_hand_expanded_while() -> None:
    looped = _run("for (let i : num = 0, i < 3, i = i + 1) do print i")
    expanded = _run("let i : num = 0\nwhile i < 3 do { print i; i = i + 1 }")
    assert looped == expanded == ["0", "1", "2"]


def test_for_loop_variable_does_not_escape() -> None:
    err = _error("for (let i : num = 0, i < 1, i = i + 1) do print i\nprint i")
    assert err.error_type is StaticErrorType.UNDEFINED_IDENTIFICATOR


def test_long_loop_does_not_hit_recursion_limit() -> None:
    assert _run("let i : num = 0\nwhile i < 5000 do i = i + 1\nprint i") == ["5000"]


def test_long_program_does_not_hit_recursion_limit() -> None:
    source = "let x : num = 0\n" + "x = x + 1\n" * 3000 + "print x"
    assert _run(source) == ["3000"]


@pytest.mark.parametrize(
    "source",
    [
        "print y",
        "print 1 + y",
        "print (2 * (y - 1))",
        "print -y",
        "y = 1",
        "if y then print 1",
        "while y do print 1",
        "let x : num = y",
        "let x : num = 1; print x + y",
    ],
)
def test_undefined_identificator_anywhere(source: str) -> None:
    err = _error(source)
    assert err.error_type is StaticErrorType.UNDEFINED_IDENTIFICATOR
    assert "'y'" in err.message


def test_condition_must_be_boolean() -> None:
    assert _error("if 1 then print 1").error_type is StaticErrorType.WRONG_TYPE
    assert _error("if 0 then print 1 else print 2").error_type is StaticErrorType.WRONG_TYPE
    assert _error("while 1 do print 1").error_type is StaticErrorType.WRONG_TYPE


def test_if_else_branches() -> None:
    assert _run("if 1 < 2 then print 1 else print 2\nif false then print 3\nif 2 < 1 print 4 else print 5") == [
        "1",
        "5",
    ]


def test_empty_branch_does_not_swallow_the_next_command() -> None:
    assert _run("if false then ; print 1") == ["1"]
    assert _run("if true then print 1 else ; print 2") == ["1", "2"]


def test_nested_declaration_shadows_and_scope_exit_restores() -> None:
    source = "\n".join(
        [
            "let x : num = 1",
            "if true then {",
            "  let x : bool = false",
            "  print x",
            "}",
            "print x",
        ]
    )
    assert _run(source) == ["false", "1"]


def test_assignment_inside_nested_scope_updates_outer_variable() -> None:
    source = "let x : num = 1\nif true then { x = 2 }\nprint x"
    assert _run(source) == ["2"]


def test_initialiser_does_not_see_new_binding() -> None:
    assert _error("let x : num = x").error_type is StaticErrorType.UNDEFINED_IDENTIFICATOR
    # the outer x is visible to the shadowing initialiser
    assert _run("let x : num = 1\nif true then { let x : num = x + 10; print x }\nprint x") == ["11", "1"]


def test_declarations_in_a_group_see_earlier_siblings() -> None:
    assert _run("let a : num = 2; const b : num = a * 3; print b") == ["6"]


def test_declared_type_is_not_checked() -> None:
    assert _run("let x : num = true; print x") == ["true"]
    assert _run("const c : bool = 1; print c + 1") == ["2"]


def test_assignment_may_change_stored_type() -> None:
    assert _run("let x : num = 1; x = false; print x") == ["false"]
    # operators still guard the runtime type
    assert _error("let x : num = 1; x = false; print x + 1").error_type is StaticErrorType.WRONG_TYPE


def test_prints_before_error_remain() -> None:
    out = io.StringIO()
    with pytest.raises(DynamicError):
        run_program(parse_program("print 1\nprint 1 / 0\nprint 2"), stdout=out)
    assert out.getvalue() == "1\n"


def test_error_carries_position() -> None:
    err = _error("print 1\nprint nope")
    assert (err.line, err.column) == (2, 7)
    assert err.report() == "ERROR -> UNDEFINED_IDENTIFICATOR: undefined identificator 'nope' (line 2, column 7)"


def test_float_and_power_rendering() -> None:
    assert _run("print 0.5 + 0.25\nprint 2 ^ 3 ^ 2\nprint 4 ^ 0.5\nprint 2 ^ -1\nprint 1.0") == [
        "0.75",
        "512",
        "2",
        "0.5",
        "1",
    ]


def test_extreme_magnitudes_render_in_exponent_form() -> None:
    source = "\n".join(
        [
            "print 1000000000 * 1000000000000",
            "print 100000000000 * 1000000000",
            "print 15000000000 * 1000000000000",
            "print 1 / 10000000",
            "print 1 / 100000",
        ]
    )
    assert _run(source) == [
        "1e+21",
        "100000000000000000000",
        "1.5e+22",
        "1e-7",
        "0.00001",
    ]


def test_store_snapshots_are_unaffected_by_execution() -> None:
    interpreter = Interpreter(stdout=io.StringIO())
    rho, sigma = interpreter.elaborate(parse_program("let x : num = 1").children[0], EMPTY_ENVIRONMENT, EMPTY_STORE)
    location = rho["x"]
    assert isinstance(location, Location)
    assignment = parse_program("let x : num = 0; x = 41 + 1").children[1]
    sigma2 = interpreter.execute(assignment, rho, sigma)
    assert sigma[location] == 1
    assert sigma2[location] == 42


def test_constants_bind_values_directly() -> None:
    interpreter = Interpreter(stdout=io.StringIO())
    declaration = parse_program("const k : num = 2 * 4").children[0]
    rho, sigma = interpreter.elaborate(declaration, EMPTY_ENVIRONMENT, EMPTY_STORE)
    assert rho["k"] == 8
    assert sigma is EMPTY_STORE


def test_each_variable_gets_a_fresh_location() -> None:
    interpreter = Interpreter(stdout=io.StringIO())
    declaration = parse_program("let a : num = 1; let b : num = 1").children[0]
    rho, sigma = interpreter.elaborate(declaration, EMPTY_ENVIRONMENT, EMPTY_STORE)
    assert rho["a"] != rho["b"]
    assert len(sigma) == 2


def test_unknown_command_kind() -> None:
    bogus = CommandNode(ExpressionKind.VALUE)  # type: ignore[arg-type]
    with pytest.raises(DynamicError) as excinfo:
        run_program(bogus)
    assert excinfo.value.error_type is DynamicErrorType.UNKNOWN_COMMAND


def test_unknown_expression_kind() -> None:
    bogus = ExpressionNode(CommandKind.NIL)  # type: ignore[arg-type]
    program = CommandNode(CommandKind.PRINT, (bogus,))
    with pytest.raises(DynamicError) as excinfo:
        run_program(program, stdout=io.StringIO())
    assert excinfo.value.error_type is DynamicErrorType.UNKNOWN_EXPRESSION


def test_unknown_operator() -> None:
    one = ExpressionNode(ExpressionKind.VALUE, (ValueNode("1", ValueKind.NUMBER),))
    operator = BinaryOperatorNode("<>", one, one)
    expr = ExpressionNode(ExpressionKind.BINARY_OPERATOR, (one, operator, one))
    program = CommandNode(CommandKind.PRINT, (expr,))
    with pytest.raises(DynamicError) as excinfo:
        run_program(program, stdout=io.StringIO())
    assert excinfo.value.error_type is DynamicErrorType.UNKNOWN_OPERATOR


def test_unknown_declaration_kind() -> None:
    bogus = DeclarationNode(CommandKind.NIL)  # type: ignore[arg-type]
    program = CommandNode(CommandKind.DECLARATION_COMMAND, (bogus, CommandNode(CommandKind.NIL)))
    with pytest.raises(StaticError) as excinfo:
        run_program(program)
    assert excinfo.value.error_type is StaticErrorType.UNKNOWN_DECLARATION


def test_hand_built_tree_runs() -> None:
    block = Block(1, 1, 1, 1)
    declaration = DeclarationNode(
        DeclarationKind.CONSTANT,
        (
            IdentificatorNode("k", block),
            TypeNode(TypeKind.BOOLEAN, block),
            ExpressionNode(ExpressionKind.VALUE, (ValueNode("true", ValueKind.BOOLEAN, block),), block),
        ),
        block,
    )
    read = ExpressionNode(ExpressionKind.IDENTIFICATOR, (IdentificatorNode("k", block),), block)
    program = CommandNode(
        CommandKind.DECLARATION_COMMAND,
        (declaration, CommandNode(CommandKind.PRINT, (read,), block)),
        block,
    )
    out = io.StringIO()
    run_program(program, stdout=out)
    assert out.getvalue() == "true\n"


def test_runs_are_deterministic() -> None:
    source = "let n : num = 1\nfor (let i : num = 0, i < 5, i = i + 1) do n = n * 2\nprint n"
    assert _run(source) == _run(source) == ["32"]
