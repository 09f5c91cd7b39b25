"""
promptlang tokenizer.

Builds the LALR parser for ``promptlang_grammar`` once, and uses its ``basic``
lexer to turn source text into tokens. Lark's ``UnexpectedCharacters``
becomes a ``LexError``.
"""
from lark import Lark, Token
from lark.exceptions import UnexpectedCharacters

from promptlang.errors import LexError, get_line_context
from promptlang.grammar import promptlang_grammar

END_OF_INPUT = "$END"

_parser = None


def get_parser():
    """The shared ``Lark`` instance (LALR tables are built on first use)."""
    global _parser
    if _parser is None:
        _parser = Lark(
            promptlang_grammar,
            start='script',
            parser='lalr',
            lexer='basic',
            maybe_placeholders=True,
        )
    return _parser


def tokenize(source_code):
    """
    Convert source text into a list of positioned tokens.

    Whitespace is discarded. Each token is a ``lark.Token`` whose ``type`` is
    the terminal name (``FLOW``, ``NAME``, ``LESS_EQUALS``, ...) and whose
    ``line``/``column`` are 1-based.

    Raises:
        LexError: at the first position no terminal matches
    """
    try:
        return list(get_parser().lex(source_code))
    except UnexpectedCharacters as e:
        raise LexError(
            f"Unexpected character {e.char!r}",
            line_number=e.line,
            column=e.column,
            context=get_line_context(source_code, e.line),
        ) from e


def end_token(tokens):
    """Sentinel token marking the end of input, positioned after the last token."""
    if tokens:
        last = tokens[-1]
        return Token(END_OF_INPUT, '', line=last.end_line, column=last.end_column)
    return Token(END_OF_INPUT, '', line=1, column=1)
