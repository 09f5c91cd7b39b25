"""
promptlang AST Transformer - Converts the parse tree into the typed AST.

``PromptlangTransformer`` walks the ``lark.Tree`` built by the parser bottom-up
and returns a ``Program`` made of the pydantic nodes in ``promptlang.ast_nodes``.
"""
import json

from lark import Token, Transformer
from lark.exceptions import VisitError
from pydantic import ValidationError

from promptlang.ast_nodes import (
    ArrayLiteral,
    Assignment,
    BooleanLiteral,
    ComparisonExpression,
    DestructuringAssignment,
    ExpressionStatement,
    FlowDefinition,
    ForStatement,
    FunctionCall,
    Identifier,
    IfStatement,
    ImportStatement,
    LogicalExpression,
    LoopStatement,
    MemberExpression,
    MethodCall,
    NumberLiteral,
    ObjectLiteral,
    Parameter,
    Program,
    PromptImport,
    Property,
    ReturnStatement,
    StringLiteral,
    SymbolImport,
    Type,
    TypeObject,
    TypeProperty,
    UnaryExpression,
)
from promptlang.console import warn
from promptlang.errors import TransformError


def _require(args, rule, count):
    """Check that ``args`` holds exactly ``count`` present children."""
    if len(args) != count or any(arg is None for arg in args):
        raise TransformError(f"Parse tree for '{rule}' is missing an expected sub-rule")
    return args


def parse_number(text):
    """Numeric token text to int, or float when it has a fraction or exponent."""
    if any(marker in text for marker in ".eE"):
        return float(text)
    return int(text)


class PromptlangTransformer(Transformer):
    """
    Transforms promptlang parse trees into AST nodes.

    Optional sub-rules arrive as ``None`` placeholders and become empty lists
    or absent fields. A tree with an unexpected shape raises
    ``TransformError``.
    """

    def __default__(self, data, children, meta):
        raise TransformError(f"Unknown parse tree rule '{data}'")

    def script(self, args):
        """Collect top-level declarations."""
        return Program(body=args)

    # --- Imports ---

    def import_statement(self, args):
        (node,) = _require(args, "import_statement", 1)
        if isinstance(node, PromptImport):
            return ImportStatement(import_type="prompt", prompt_import=node)
        if isinstance(node, SymbolImport):
            return ImportStatement(import_type="symbol", symbol_import=node)
        raise TransformError("Invalid import statement structure")

    def prompt_import(self, args):
        path, name, input_type, return_type = _require(args, "prompt_import", 4)
        return PromptImport(
            name=name,
            prompt_path=path.value,
            input=input_type,
            returns=return_type,
        )

    def symbol_import(self, args):
        """Symbols, then the ``from`` word, then the source path."""
        if len(args) < 3:
            raise TransformError("Parse tree for 'symbol_import' is missing an expected sub-rule")
        *symbols, source_word, source = args
        if source_word.name != "from":
            warn(f"expected 'from' before import path \"{source.value}\", found '{source_word.name}'")
        return SymbolImport(symbols=symbols, source=source.value)

    # --- Flows ---

    def flow_definition(self, args):
        """Name, optional parameter list, then the body statements."""
        if len(args) < 2 or args[0] is None:
            raise TransformError("Parse tree for 'flow_definition' is missing an expected sub-rule")
        name, parameters, *body = args
        return FlowDefinition(name=name, parameters=parameters or [], body=body)

    def parameter_list(self, args):
        return list(args)

    def parameter(self, args):
        name, param_type = _require(args, "parameter", 2)
        return Parameter(name=name, param_type=param_type)

    # --- Types ---

    def type_object(self, args):
        return TypeObject(properties=args)

    def type_property(self, args):
        name, value = _require(args, "type_property", 2)
        return TypeProperty(key=name.name, value=value)

    def type(self, args):
        if len(args) != 2 or args[0] is None:
            raise TransformError("Parse tree for 'type' is missing an expected sub-rule")
        name, generic = args
        return Type(name=name.name, generic=generic)

    # --- Statements ---

    def statement(self, args):
        """Unwrap statement node."""
        return _require(args, "statement", 1)[0]

    def return_statement(self, args):
        (expression,) = _require(args, "return_statement", 1)
        return ReturnStatement(expression=expression)

    def if_statement(self, args):
        if not args or args[0] is None:
            raise TransformError("Parse tree for 'if_statement' is missing its condition")
        condition, *body = args
        return IfStatement(condition=condition, body=body)

    def for_statement(self, args):
        if len(args) < 2 or args[0] is None or args[1] is None:
            raise TransformError("Parse tree for 'for_statement' is missing an expected sub-rule")
        variable, iterable, *body = args
        return ForStatement(variable=variable, iterable=iterable, body=body)

    def loop_statement(self, args):
        return LoopStatement(body=args)

    def assignment(self, args):
        left, right = _require(args, "assignment", 2)
        return Assignment(left=left, right=right)

    def destructuring_assignment(self, args):
        if len(args) < 2:
            raise TransformError("Parse tree for 'destructuring_assignment' is missing an expected sub-rule")
        *names, right = args
        return DestructuringAssignment(left=names, right=right)

    def expression_statement(self, args):
        (expression,) = _require(args, "expression_statement", 1)
        return ExpressionStatement(expression=expression)

    # --- Expressions ---

    def expression(self, args):
        return _require(args, "expression", 1)[0]

    def logical_expression(self, args):
        """Fold ``a and b or c`` left to right in encounter order."""
        if not args or len(args) % 2 == 0:
            raise TransformError("Parse tree for 'logical_expression' has a dangling operator")
        expr = args[0]
        for operator, right in zip(args[1::2], args[2::2]):
            expr = LogicalExpression(operator=str(operator), left=expr, right=right)
        return expr

    def not_expression(self, args):
        if len(args) == 2 and isinstance(args[0], Token) and args[0].type == "NOT":
            return UnaryExpression(argument=args[1])
        return _require(args, "not_expression", 1)[0]

    def comparison_expression(self, args):
        if len(args) == 1:
            return args[0]
        left, operator, right = _require(args, "comparison_expression", 3)
        return ComparisonExpression(operator=str(operator), left=left, right=right)

    def postfix_expression(self, args):
        """Fold the dot-access chain onto the primary, left-associated."""
        if len(args) != 2 or args[0] is None:
            raise TransformError("Parse tree for 'postfix_expression' is missing its primary expression")
        expr, chain = args
        for name, arguments in chain or []:
            if arguments is None:
                expr = MemberExpression(object=expr, property=name)
            else:
                expr = MethodCall(object=expr, method=name, arguments=arguments)
        return expr

    def dot_access(self, args):
        """Flatten the right-recursive chain into ``[(name, arguments_or_None), ...]``."""
        if len(args) != 3 or args[0] is None:
            raise TransformError("Parse tree for 'dot_access' is missing its property name")
        name, arguments, rest = args
        return [(name, arguments)] + (rest or [])

    def call_suffix(self, args):
        if len(args) != 1:
            raise TransformError("Parse tree for 'call_suffix' has an unexpected shape")
        return args[0] or []

    def primary_expression(self, args):
        return _require(args, "primary_expression", 1)[0]

    def function_call(self, args):
        if len(args) != 2 or args[0] is None:
            raise TransformError("Parse tree for 'function_call' is missing its callee")
        callee, arguments = args
        return FunctionCall(callee=callee, arguments=arguments or [])

    def argument_list(self, args):
        return list(args)

    def object_literal(self, args):
        return ObjectLiteral(properties=args)

    def property(self, args):
        key, value = _require(args, "property", 2)
        return Property(key=key, value=value)

    def shorthand_property(self, args):
        (key,) = _require(args, "shorthand_property", 1)
        return Property(key=key, shorthand=True)

    def array_literal(self, args):
        return ArrayLiteral(elements=args)

    # --- Tokens ---

    def NAME(self, t):
        return Identifier(name=str(t))

    def STRING(self, t):
        """Decode the literal; the lexer only admits JSON escape sequences."""
        return StringLiteral(value=json.loads(str(t), strict=False))

    def NUMBER(self, t):
        return NumberLiteral(value=parse_number(str(t)))

    def TRUE(self, t):
        return BooleanLiteral(value=True)

    def FALSE(self, t):
        return BooleanLiteral(value=False)


def transform(tree):
    """
    Transform a parse tree into a ``Program``.

    Lark wraps callback exceptions in ``VisitError``; the original
    ``TransformError`` is re-raised, and a node that fails validation is
    reported as a ``TransformError`` as well.
    """
    try:
        return PromptlangTransformer().transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, TransformError):
            raise e.orig_exc from e
        if isinstance(e.orig_exc, ValidationError):
            raise TransformError(f"Invalid node in rule '{e.rule}': {e.orig_exc}") from e
        raise
    except ValidationError as e:
        raise TransformError(f"Invalid program node: {e}") from e
