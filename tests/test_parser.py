"""
Unit tests for the LALR parser, its destructuring postlexer and error recovery.
"""
import pytest
from lark import Tree

from promptlang.errors import ParseError, ParseErrors
from promptlang.lexer import tokenize
from promptlang.parser import DestructuringPostLex, enclosing_rule, parse


def parse_source(source):
    return parse(tokenize(source))


def flow_statements(source):
    """Statement subtrees of the first flow in ``source``."""
    tree = parse_source(source)
    flow = tree.children[0]
    assert flow.data == "flow_definition"
    return [statement.children[0] for statement in flow.children[2:]]


def statement_kinds(body):
    return [stmt.data for stmt in flow_statements("flow Main() {\n" + body + "\n}")]


class TestDeclarations:

    def test_empty_program(self):
        assert parse_source("") == Tree("script", [])

    def test_prompt_import(self):
        tree = parse_source('''
            import prompt "rank.j2" as RankIdeas
              with input { ideas: list<Idea> }
              returns { best: Idea }
        ''')
        (statement,) = tree.children
        assert statement.data == "import_statement"
        prompt = statement.children[0]
        assert prompt.data == "prompt_import"
        path, name, input_type, return_type = prompt.children
        assert path.value == '"rank.j2"'
        assert name.value == "RankIdeas"
        assert input_type.data == "type_object"
        assert return_type.data == "type_object"

    def test_nested_generic_type(self):
        tree = parse_source('import prompt "p" as P with input { x: list<list<string>> } returns {}')
        input_type = tree.children[0].children[0].children[2]
        type_tree = input_type.children[0].children[1]
        assert type_tree.children[0].value == "list"
        assert type_tree.children[1].children[0].value == "list"
        assert type_tree.children[1].children[1].children[0].value == "string"

    def test_symbol_import(self):
        tree = parse_source('import { slugify, titlecase } from "./helpers.py"')
        symbol_import = tree.children[0].children[0]
        assert symbol_import.data == "symbol_import"
        assert [t.value for t in symbol_import.children] == ["slugify", "titlecase", "from", '"./helpers.py"']

    def test_symbol_import_needs_a_symbol(self):
        with pytest.raises(ParseErrors) as exc_info:
            parse_source('import { } from "./helpers.py"')
        assert exc_info.value.errors[0].error_type == ParseError.EARLY_EXIT

    def test_flow_without_parameters(self):
        tree = parse_source("flow Main() { }")
        flow = tree.children[0]
        assert flow.children[0].value == "Main"
        assert flow.children[1] is None
        assert len(flow.children) == 2

    def test_flow_parameters(self):
        tree = parse_source("flow Add(x: number, ys: list<number>) { return x }")
        params = tree.children[0].children[1]
        assert params.data == "parameter_list"
        assert [p.children[0].value for p in params.children] == ["x", "ys"]

    def test_declarations_keep_source_order(self):
        tree = parse_source('flow A() {}\nimport { h } from "./h.py"\nflow B() {}')
        assert [child.data for child in tree.children] == ["flow_definition", "import_statement", "flow_definition"]


class TestStatements:

    def test_statement_kinds(self):
        body = '''
            x = 1
            if x { print(x) }
            for item in items { print(item) }
            loop { return x }
            print(x)
            return x
        '''
        assert statement_kinds(body) == [
            "assignment", "if_statement", "for_statement", "loop_statement",
            "expression_statement", "return_statement",
        ]

    def test_destructuring_assignment(self):
        (stmt,) = flow_statements("flow Main() { { a, b } = f() }")
        assert stmt.data == "destructuring_assignment"
        assert [t.value for t in stmt.children[:2]] == ["a", "b"]

    def test_assignment_of_object_literal(self):
        (stmt,) = flow_statements("flow Main() { x = { a: 1 } }")
        assert stmt.data == "assignment"

    def test_object_literal_statement(self):
        (stmt,) = flow_statements("flow Main() { { a: 1 } }")
        assert stmt.data == "expression_statement"

    def test_destructuring_within_lookahead_budget(self):
        names = ", ".join(f"a{i}" for i in range(9))
        (stmt,) = flow_statements("flow Main() { { " + names + " } = f() }")
        assert stmt.data == "destructuring_assignment"

    def test_destructuring_past_lookahead_budget_is_not_recognized(self):
        # The closing brace of ten names sits past the 20-token lookahead
        names = ", ".join(f"a{i}" for i in range(10))
        with pytest.raises(ParseErrors) as exc_info:
            parse_source("flow Main() { { " + names + " } = f() }")
        error = exc_info.value.errors[0]
        assert error.rule == "statement"
        assert error.token.type == "EQUALS"

    def test_destructuring_after_another_statement(self):
        stmts = flow_statements("flow Main() { x = f() { a } = x }")
        assert [s.data for s in stmts] == ["assignment", "destructuring_assignment"]

    def test_nested_destructuring_in_loop_body(self):
        (stmt,) = flow_statements("flow Main() { loop { { a } = f() } }")
        inner = stmt.children[0].children[0]
        assert inner.data == "destructuring_assignment"

    def test_statement_cannot_start_with_operator(self):
        with pytest.raises(ParseErrors) as exc_info:
            parse_source("flow Main() { == }")
        assert exc_info.value.errors[0].error_type == ParseError.NO_VIABLE_ALT


class TestExpressions:

    def expression(self, text):
        (stmt,) = flow_statements("flow Main() { return " + text + " }")
        return stmt.children[0]

    def test_logical_chain_is_flat(self):
        logical = self.expression("a and b or c").children[0]
        assert logical.data == "logical_expression"
        assert len(logical.children) == 5
        assert [t.type for t in logical.children[1::2]] == ["AND", "OR"]

    def test_not_binds_comparison(self):
        logical = self.expression("not a == b").children[0]
        not_expr = logical.children[0]
        assert not_expr.children[0].type == "NOT"
        comparison = not_expr.children[1]
        assert comparison.data == "comparison_expression"
        assert comparison.children[1].type == "DOUBLE_EQUALS"

    def test_comparison_operands_take_dot_chains(self):
        logical = self.expression("a.score >= b.limits.max").children[0]
        comparison = logical.children[0].children[0]
        left, operator, right = comparison.children
        assert operator.type == "GREATER_EQUALS"
        assert left.children[1].data == "dot_access"
        assert right.children[1].children[2].data == "dot_access"

    def test_chained_comparison_is_rejected(self):
        with pytest.raises(ParseErrors):
            parse_source("flow Main() { return a == b == c }")

    def test_method_call_chain(self):
        logical = self.expression("a.b().c.d(1, 2)").children[0]
        postfix = logical.children[0].children[0].children[0]
        assert postfix.data == "postfix_expression"
        first = postfix.children[1]
        assert first.children[0].value == "b"
        assert first.children[1] == Tree("call_suffix", [None])
        second = first.children[2]
        assert second.children[0].value == "c"
        assert second.children[1] is None
        third = second.children[2]
        assert third.children[0].value == "d"
        assert len(third.children[1].children[0].children) == 2

    def test_object_literal_properties(self):
        logical = self.expression("{ file, feedback: f(x) }").children[0]
        primary = logical.children[0].children[0].children[0].children[0]
        obj = primary.children[0]
        assert obj.data == "object_literal"
        assert [p.data for p in obj.children] == ["shorthand_property", "property"]

    def test_array_literal(self):
        logical = self.expression("[1, \"two\", true]").children[0]
        primary = logical.children[0].children[0].children[0].children[0]
        array = primary.children[0]
        assert array.data == "array_literal"
        assert len(array.children) == 3


class TestErrorRecovery:

    def test_mismatched_token(self):
        with pytest.raises(ParseErrors) as exc_info:
            parse_source("flow Main(x {\n}")
        error = exc_info.value.errors[0]
        assert error.error_type == ParseError.MISMATCHED_TOKEN
        assert error.rule == "flow_definition"
        assert error.expected == [":"]
        assert error.token.value == "{"
        assert (error.line_number, error.column) == (1, 13)

    def test_no_viable_alternative_lists_expected_tokens(self):
        with pytest.raises(ParseErrors) as exc_info:
            parse_source("flow Main( {\n}")
        error = exc_info.value.errors[0]
        assert error.error_type == ParseError.NO_VIABLE_ALT
        assert error.expected == ["identifier", ")"]
        assert (error.line_number, error.column) == (1, 12)

    @pytest.mark.parametrize("source, rule", [
        ("flow A() { x = }", "assignment"),
        ("flow A() { return }", "return_statement"),
        ("flow A() { for x { } }", "for_statement"),
        ("flow A() { f(1, ) }", "function_call"),
        ("flow A() { return a.b(1, ) }", "call_suffix"),
        ("flow A() { return [1, ] }", "array_literal"),
        ("flow A() { return { a: } }", "object_literal"),
        ('import prompt "p" as P with input { a: } returns {}', "type_object"),
        ('import prompt "p" as P input {} returns {}', "prompt_import"),
    ])
    def test_error_rule(self, source, rule):
        with pytest.raises(ParseErrors) as exc_info:
            parse_source(source)
        assert exc_info.value.errors[0].rule == rule

    def test_empty_destructuring_target(self):
        with pytest.raises(ParseErrors) as exc_info:
            parse_source("flow A() { { } = f() }")
        error = exc_info.value.errors[0]
        assert error.error_type == ParseError.EARLY_EXIT
        assert error.rule == "destructuring_assignment"

    def test_recovery_resumes_at_next_declaration(self):
        source = 'flow A() { return }\nimport { } from "./h.py"\nflow B() { return 1 }\nflow C( }'
        with pytest.raises(ParseErrors) as exc_info:
            parse_source(source)
        assert [e.line_number for e in exc_info.value.errors] == [1, 2, 4]

    def test_error_on_declaration_keyword_restarts_there(self):
        # the unclosed block of A fails on B's ``flow`` keyword; B is still checked
        with pytest.raises(ParseErrors) as exc_info:
            parse_source("flow A() { return 1\nflow B() { return }")
        errors = exc_info.value.errors
        assert [(e.line_number, e.token.type) for e in errors] == [(2, "FLOW"), (2, "RCURLY")]

    def test_multiple_diagnostics(self):
        source = "flow A() { x = }\nflow B() { return }\nflow C() { return 1 }"
        with pytest.raises(ParseErrors) as exc_info:
            parse_source(source)
        errors = exc_info.value.errors
        assert len(errors) == 2
        assert [e.line_number for e in errors] == [1, 2]
        assert "2 parse errors" in str(exc_info.value)

    def test_stray_top_level_statement(self):
        with pytest.raises(ParseErrors) as exc_info:
            parse_source("x = 1\nflow Main() {}")
        errors = exc_info.value.errors
        assert len(errors) == 1
        assert errors[0].error_type == ParseError.NOT_ALL_INPUT_PARSED

    def test_unexpected_end_of_input(self):
        with pytest.raises(ParseErrors) as exc_info:
            parse_source("flow Main() { return 1")
        error = exc_info.value.errors[0]
        assert "end of input" in error.message


class TestDestructuringPostLex:

    def token_types(self, source):
        return [t.type for t in DestructuringPostLex().process(tokenize(source))]

    def test_statement_brace_is_retagged(self):
        types = self.token_types("{ a, b } = f()")
        assert types[0] == "_DESTRUCTURE_LCURLY"
        assert types.count("LCURLY") == 0

    @pytest.mark.parametrize("source", [
        "x = { a } == y",
        "f({ a } = 1)",
        "return { a } = x",
        'import { a } from "./h.py"',
        "{ a: 1 }",
    ])
    def test_value_braces_are_kept(self, source):
        assert "_DESTRUCTURE_LCURLY" not in self.token_types(source)

    def test_positions_are_kept(self):
        (brace, *_) = DestructuringPostLex().process(tokenize("\n  { a } = f()"))
        assert (brace.line, brace.column, brace.value) == (2, 3, "{")


class TestEnclosingRule:

    def test_empty_stack_is_script(self):
        assert enclosing_rule([]) == "script"

    def test_finished_declarations_are_script(self):
        assert enclosing_rule([Tree("flow_definition", [])]) == "script"
