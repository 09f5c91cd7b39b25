"""
Error handling utilities for the promptlang compiler.
"""

# Number of source lines shown above and below a diagnostic
ERROR_CONTEXT_LINES = 3


class PromptlangCompileError(Exception):
    """Base exception for compilation errors with line numbers and hints."""
    def __init__(self, message, line_number=None, column=None, context=None, suggestion=None):
        self.message = message
        self.line_number = line_number
        self.column = column
        self.context = context  # The offending line
        self.suggestion = suggestion  # How to fix it
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with position, context and suggestion."""
        lines = [f"{self.kind}"]
        if self.line_number:
            lines.append(f" at line {self.line_number}")
            if self.column:
                lines.append(f", column {self.column}")
        lines.append(f": {self.message}")

        if self.context:
            lines.append(f"\n   > {self.context}")

        if self.suggestion:
            lines.append(f"\n   Hint: {self.suggestion}")

        return "".join(lines)

    @property
    def kind(self):
        return "Compilation error"


class LexError(PromptlangCompileError):
    """No token pattern matches at a source position."""

    @property
    def kind(self):
        return "Lexical error"


class ParseError(PromptlangCompileError):
    """A single syntax diagnostic produced by the parser.

    ``error_type`` is one of ``MISMATCHED_TOKEN``, ``NO_VIABLE_ALT``,
    ``NOT_ALL_INPUT_PARSED`` or ``EARLY_EXIT``.
    """

    MISMATCHED_TOKEN = "MismatchedTokenException"
    NO_VIABLE_ALT = "NoViableAltException"
    NOT_ALL_INPUT_PARSED = "NotAllInputParsedException"
    EARLY_EXIT = "EarlyExitException"

    _HINTS = {
        NO_VIABLE_ALT: "Check for syntax errors like missing braces, parentheses, or keywords.",
        MISMATCHED_TOKEN: "The parser found a token it didn't expect. Check your syntax.",
        NOT_ALL_INPUT_PARSED: "There are extra tokens after a valid structure. Check for misplaced code.",
        EARLY_EXIT: "A list that needs at least one entry is empty.",
    }

    def __init__(self, error_type, rule, expected, token):
        self.error_type = error_type
        self.rule = rule
        self.expected = list(expected)
        self.token = token
        super().__init__(
            self._describe(),
            line_number=token.line,
            column=token.column,
            suggestion=self._HINTS.get(error_type),
        )

    @property
    def kind(self):
        return "Parse error"

    def _describe(self):
        actual = format_token(self.token)
        if self.error_type == self.NOT_ALL_INPUT_PARSED:
            return f"Unexpected {actual} found after parsing rule '{self.rule}'"
        if self.error_type == self.NO_VIABLE_ALT:
            return (f"No viable alternative in rule '{self.rule}' matches {actual}, "
                    f"expected {format_expected(self.expected)}")
        if self.error_type == self.EARLY_EXIT:
            return (f"Missing mandatory iteration in rule '{self.rule}', "
                    f"expected {format_expected(self.expected)} but found {actual}")
        return f"Expected {format_expected(self.expected)} but found {actual} in rule '{self.rule}'"


class ParseErrors(PromptlangCompileError):
    """All syntax diagnostics collected while parsing one compilation unit."""
    def __init__(self, errors):
        self.errors = list(errors)
        first = self.errors[0]
        message = "\n".join(error.message for error in self.errors)
        super().__init__(message, line_number=first.line_number, column=first.column)

    @property
    def kind(self):
        count = len(self.errors)
        return f"{count} parse error{'s' if count != 1 else ''}"


class TransformError(PromptlangCompileError):
    """The parse tree does not have the shape the transformer expects.

    This is an internal invariant violation: a tree that parsed successfully
    should always transform.
    """

    @property
    def kind(self):
        return "Internal transform error"


class CodegenError(PromptlangCompileError):
    """Code generation failed (missing named parameter, name collision, ...)."""

    @property
    def kind(self):
        return "Code generation error"


def format_expected(expected):
    """Render an expected token set as ``'A'`` or ``one of: 'A', 'B' or 'C'``."""
    items = [str(item) for item in expected]
    if not items:
        return "nothing"
    if len(items) == 1:
        return f"'{items[0]}'"
    head = ", ".join(f"'{item}'" for item in items[:-1])
    return f"one of: {head} or '{items[-1]}'"


def format_token(token):
    """Describe a token for diagnostics."""
    if token is None or token.type == "$END":
        return "end of input"
    return f"'{token.value}' (type: {token.type}) at line {token.line}, column {token.column}"


def get_line_context(source_code, line_number):
    """Extract the line of code from source by line number (1-based)."""
    if not source_code or line_number is None:
        return None
    source_lines = source_code.split('\n')
    if 0 < line_number <= len(source_lines):
        return source_lines[line_number - 1].strip()
    return None


def format_source_context(source_code, error_line, error_column=0):
    """Render the lines around ``error_line`` with line numbers and a caret."""
    lines = source_code.split('\n')
    start_line = max(1, error_line - ERROR_CONTEXT_LINES)
    end_line = min(len(lines), error_line + ERROR_CONTEXT_LINES)
    width = len(str(end_line))

    result = []
    for number in range(start_line, end_line + 1):
        content = lines[number - 1] if number - 1 < len(lines) else ''
        marker = '>' if number == error_line else ' '
        result.append(f"{marker} {str(number).rjust(width)} | {content}")
        if number == error_line and error_column and error_column > 0:
            result.append(' ' * (width + 5 + error_column - 1) + '^')
    return "\n".join(result)


def format_diagnostic(error, source_code, file_name):
    """Full diagnostic text for the CLI: one block per error with source context."""
    errors = error.errors if isinstance(error, ParseErrors) else [error]
    blocks = []
    for item in errors:
        location = file_name
        if item.line_number:
            location += f":{item.line_number}:{item.column or 0}"
        block = [f"{item.kind} in {location}", f"  {item.message}"]
        if source_code and item.line_number:
            block.append(format_source_context(source_code, item.line_number, item.column or 0))
        if item.suggestion:
            block.append(f"Hint: {item.suggestion}")
        blocks.append("\n".join(block))
    return "\n\n".join(blocks)
