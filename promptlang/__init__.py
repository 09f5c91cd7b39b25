# promptlang - Core Compiler Components
"""
Core modules for the promptlang compiler:
- grammar: the Lark grammar
- lexer: tokenization with the grammar's basic lexer
- parser: LALR parse with error recovery, building a lark parse tree
- transformer: parse tree to typed AST
- codegen: AST to Python source
- errors: compile errors and diagnostic formatting
- runtime: preamble prepended to compiled programs
"""

from .errors import (
    CodegenError,
    LexError,
    ParseError,
    ParseErrors,
    PromptlangCompileError,
    TransformError,
)
from .lexer import tokenize
from .parser import Parser, parse
from .transformer import PromptlangTransformer, transform
from .codegen import CodeGenerator

__all__ = [
    'PromptlangCompileError',
    'LexError',
    'ParseError',
    'ParseErrors',
    'TransformError',
    'CodegenError',
    'tokenize',
    'Parser',
    'parse',
    'PromptlangTransformer',
    'transform',
    'CodeGenerator',
]
