"""
promptlang parser.

Feeds the token list produced by ``promptlang.lexer.tokenize`` to the LALR
parser built from ``promptlang_grammar`` and returns the ``script`` tree.

Two things happen around Lark:

- ``DestructuringPostLex`` retags the ``{`` that opens ``{ a, b } = value``
  so the LALR grammar can tell it apart from an object literal.
- Syntax errors do not stop the parse. Each ``UnexpectedToken`` is turned
  into a ``ParseError``, the tokens up to the next ``import`` or ``flow`` are
  skipped, and parsing restarts there. All errors are raised together as
  ``ParseErrors``.
"""
from lark import Token, Tree
from lark.exceptions import UnexpectedToken
from lark.lark import PostLex

from promptlang.errors import ParseError, ParseErrors
from promptlang.grammar import COMPARISON_OPERATORS, DESTRUCTURE_LCURLY
from promptlang.lexer import END_OF_INPUT, end_token, get_parser

# Token budget for the destructuring lookahead, counted from the opening
# brace. A statement whose closing brace lies further away is parsed as an
# expression statement.
DESTRUCTURING_LOOKAHEAD = 20

_DISPLAY_NAMES = {
    "LCURLY": "{", "RCURLY": "}", "LPAREN": "(", "RPAREN": ")",
    "LBRACKET": "[", "RBRACKET": "]", "COLON": ":", "COMMA": ",", "DOT": ".",
    "EQUALS": "=", "DOUBLE_EQUALS": "==", "NOT_EQUALS": "!=",
    "LESS_EQUALS": "<=", "GREATER_EQUALS": ">=", "LESS_THAN": "<", "GREATER_THAN": ">",
    "NAME": "identifier", "STRING": "string", "NUMBER": "number",
    DESTRUCTURE_LCURLY: "{", END_OF_INPUT: "end of input",
}

# A ``{`` after one of these is a value, never the start of a statement
_VALUE_CONTEXT = {
    "EQUALS", "LPAREN", "LBRACKET", "COMMA", "COLON",
    "RETURN", "IF", "IN", "NOT", "AND", "OR",
    "IMPORT", "INPUT", "RETURNS",
} | set(COMPARISON_OPERATORS)

_DECLARATION_START = ("IMPORT", "FLOW")

# Unclosed tokens on the parser stack and the rule they belong to
_KEYWORD_RULES = {
    "FLOW": "flow_definition",
    "IMPORT": "import_statement",
    "PROMPT": "prompt_import",
    "AS": "prompt_import",
    "WITH": "prompt_import",
    "INPUT": "prompt_import",
    "RETURNS": "prompt_import",
    "RETURN": "return_statement",
    "IF": "if_statement",
    "FOR": "for_statement",
    "IN": "for_statement",
    "LOOP": "loop_statement",
    "DOT": "dot_access",
    "LBRACKET": "array_literal",
    DESTRUCTURE_LCURLY: "destructuring_assignment",
}

_OPENERS = {"LCURLY", "LPAREN", "LBRACKET", DESTRUCTURE_LCURLY}
_CLOSERS = {"RCURLY", "RPAREN", "RBRACKET"}


def display_name(token_type):
    """Human readable name of a terminal for diagnostics."""
    return _DISPLAY_NAMES.get(token_type, token_type.lower())


class DestructuringPostLex(PostLex):
    """
    Marks the ``{`` of a destructuring assignment as ``_DESTRUCTURE_LCURLY``.

    For a ``{`` that can open a statement, scans forward tracking only brace
    depth. If the matching ``}`` is found within ``DESTRUCTURING_LOOKAHEAD``
    tokens of the brace and is directly followed by ``=``, the brace is
    retagged. Braces nested inside parentheses or brackets are counted too,
    and anything past the budget is not seen.
    """

    always_accept = ()

    def process(self, stream):
        tokens = list(stream)
        for index, token in enumerate(tokens):
            if token.type == "LCURLY" and self._opens_destructuring(tokens, index):
                token = Token.new_borrow_pos(DESTRUCTURE_LCURLY, token.value, token)
            yield token

    def _opens_destructuring(self, tokens, index):
        if index > 0 and tokens[index - 1].type in _VALUE_CONTEXT:
            return False

        def type_at(offset):
            position = index + offset - 1
            return tokens[position].type if position < len(tokens) else END_OF_INPUT

        offset = 2
        depth = 1
        while depth > 0 and offset < DESTRUCTURING_LOOKAHEAD:
            token_type = type_at(offset)
            if token_type == "LCURLY":
                depth += 1
            elif token_type == "RCURLY":
                depth -= 1
            offset += 1

        return depth == 0 and type_at(offset) == "EQUALS"


def enclosing_rule(stack):
    """
    Name the rule an error occurred in from the LALR value stack.

    Walks down from the top, skipping bracketed groups that are already
    closed, until a keyword or an unclosed bracket identifies the rule. An
    empty stack, or one holding only finished declarations, is ``script``.
    """
    depth = 0
    for index in range(len(stack) - 1, -1, -1):
        item = stack[index]
        if not isinstance(item, Token):
            continue
        if item.type in _CLOSERS:
            depth += 1
        elif item.type in _OPENERS and depth:
            depth -= 1
        elif depth:
            continue
        elif item.type == "EQUALS":
            before = stack[index - 1] if index else None
            if isinstance(before, Token) and before.type == "RCURLY":
                return "destructuring_assignment"
            return "assignment"
        elif item.type == "LCURLY":
            return _brace_rule(stack, index)
        elif item.type == "LPAREN":
            return _paren_rule(stack, index)
        elif item.type in _KEYWORD_RULES:
            return _KEYWORD_RULES[item.type]
    return "script"


def _brace_rule(stack, index):
    before = stack[index - 1] if index else None
    if isinstance(before, Token):
        if before.type in ("INPUT", "RETURNS"):
            return "type_object"
        if before.type == "IMPORT":
            return "symbol_import"
        if before.type in ("RPAREN", "LOOP"):
            return "statement"
    elif isinstance(before, Tree) and before.data != "statement" and not before.data.startswith("_"):
        # the block after an ``if`` or ``for`` header
        return "statement"
    return "object_literal"


def _paren_rule(stack, index):
    callee = stack[index - 1] if index else None
    owner = stack[index - 2] if index > 1 else None
    if isinstance(callee, Token) and callee.type == "NAME" and isinstance(owner, Token):
        if owner.type == "FLOW":
            return "flow_definition"
        if owner.type == "DOT":
            return "call_suffix"
    return "function_call"


class Parser:
    """Parses a list of tokens into a ``script`` parse tree."""

    def __init__(self, tokens):
        self.tokens = list(DestructuringPostLex().process(tokens))
        self.errors = []
        self._end = end_token(self.tokens)

    def parse(self):
        """
        Parse the whole token stream.

        A failing declaration is recorded and skipped so that later
        declarations are still checked.

        Raises:
            ParseErrors: if any syntax error was found
        """
        tree = None
        start = 0
        while start is not None:
            tree, start = self._parse_from(start)

        if self.errors:
            raise ParseErrors(self.errors)
        return tree

    def _parse_from(self, start):
        """
        Feed ``tokens[start:]`` to a fresh LALR parser.

        Returns ``(tree, None)`` when the rest of the input parses, or
        ``(None, resume_index)`` after recording an error.
        """
        interactive = get_parser().parse_interactive("")
        position = start
        try:
            for position in range(start, len(self.tokens)):
                interactive.feed_token(self.tokens[position])
            position = len(self.tokens)
            return interactive.feed_token(self._end), None
        except UnexpectedToken as e:
            self.errors.append(self._error(e, interactive.parser_state.value_stack))
            return None, self._synchronize(start, position)

    def _error(self, error, stack):
        rule = enclosing_rule(stack)
        expected = []
        for terminal in sorted(error.expected):
            name = display_name(terminal)
            if name not in expected:
                expected.append(name)

        top = stack[-1] if stack else None
        if rule == "script":
            error_type = ParseError.NOT_ALL_INPUT_PARSED
        elif rule in ("symbol_import", "destructuring_assignment") and isinstance(top, Token) \
                and top.type in ("LCURLY", DESTRUCTURE_LCURLY):
            error_type = ParseError.EARLY_EXIT
        elif len(expected) == 1:
            error_type = ParseError.MISMATCHED_TOKEN
        else:
            error_type = ParseError.NO_VIABLE_ALT
        return ParseError(error_type, rule, expected, error.token)

    def _synchronize(self, start, position):
        """Index of the next top-level declaration keyword, or None at the end."""
        index = max(position, start + 1)
        while index < len(self.tokens):
            if self.tokens[index].type in _DECLARATION_START:
                return index
            index += 1
        return None


def parse(tokens):
    """Parse a token list into a ``script`` tree (raises ``ParseErrors``)."""
    return Parser(tokens).parse()
