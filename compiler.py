"""
promptlang compiler pipeline: source -> tokens -> parse tree -> AST -> Python.
"""
from promptlang.codegen import CodeGenerator
from promptlang.console import debug_log, set_verbose
from promptlang.errors import ParseErrors, PromptlangCompileError
from promptlang.lexer import tokenize
from promptlang.parser import parse
from promptlang.transformer import transform


def parse_source(source_code, file_name="<input>"):
    """Tokenize, parse and transform source text into a ``Program``."""
    tokens = tokenize(source_code)
    debug_log(f"{file_name}: {len(tokens)} tokens")

    tree = parse(tokens)
    debug_log(f"{file_name}: parsed {len(tree.children)} declaration(s)")

    program = transform(tree)
    debug_log(f"{file_name}: AST transformation complete")
    return program


def compile_source(source_code, file_name="<input>", runtime_preamble=None):
    """
    Compile promptlang source text into a Python program.

    Args:
        source_code: the program text
        file_name: name used in debug output
        runtime_preamble: Optional custom runtime preamble. If None, uses get_preamble().

    Returns:
        The generated Python source.

    Raises:
        PromptlangCompileError: LexError, ParseErrors, TransformError or
            CodegenError; no output is produced in any of these cases
    """
    debug_log(f"Compiling source: {file_name}")
    program = parse_source(source_code, file_name)

    code = CodeGenerator(runtime_preamble=runtime_preamble).generate(program)
    debug_log(f"{file_name}: code generation complete")
    return code


def check_source(source_code, file_name="<input>"):
    """
    Return every diagnostic for ``source_code`` without generating code.

    Parse errors are reported individually; the other phases stop at their
    first error.
    """
    try:
        compile_source(source_code, file_name, runtime_preamble="")
    except ParseErrors as e:
        return list(e.errors)
    except PromptlangCompileError as e:
        return [e]
    return []
