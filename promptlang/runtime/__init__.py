# promptlang Runtime Components
"""
Runtime modules that get injected into compiled promptlang programs.

These are real Python files that provide IDE support and testability,
but are concatenated into a single preamble string at compile time.
"""

import ast
import builtins
import os

# Order matters - dependencies must come first
RUNTIME_MODULES = [
    'preamble_header.py',  # Imports, registries, logging helpers
    'records.py',          # Record, to_record, destructure
    'validation.py',       # PromptTypeError, validate_type
    'config.py',           # load_model_config, get_model_name
    'drivers.py',          # LLMDriver, OpenAIDriver, GeminiDriver, LocalDriver
    'templates.py',        # resolve_template_path, render_prompt
    'prompt_runtime.py',   # extract_json, call_prompt
    'builtin_functions.py',  # _builtins
]


def _strip_main_block(content):
    """Drop a trailing ``if __name__`` block kept for running a module directly."""
    filtered = []
    skip_main = False
    for line in content.split('\n'):
        if line.startswith('if __name__'):
            skip_main = True
        elif skip_main and line and not line.startswith((' ', '\t')):
            skip_main = False
        if not skip_main:
            filtered.append(line)
    return '\n'.join(filtered)


def get_preamble():
    """
    Read and concatenate all runtime modules into a single preamble string.

    This is prepended to every compiled program so that the output is
    self-contained (no dependency on the promptlang package at run time).
    """
    runtime_dir = os.path.dirname(__file__)

    parts = []
    for module in RUNTIME_MODULES:
        path = os.path.join(runtime_dir, module)
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
        if module != 'preamble_header.py':
            content = _strip_main_block(content)
        parts.append(content.strip('\n'))

    return '\n\n\n'.join(parts)


_runtime_names = None


def get_runtime_names():
    """
    Scan the preamble for the names a compiled program must leave alone.

    Returns ``(bound, builtins_read)``: every name the preamble binds at
    module level, and the Python builtins its code reads. A flow, prompt or
    symbol of the compiled program with one of these names would replace it
    in the shared globals.
    """
    global _runtime_names
    if _runtime_names is None:
        tree = ast.parse(get_preamble())
        bound = set()
        for node in tree.body:
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                bound.add(node.name)
            elif isinstance(node, (ast.Import, ast.ImportFrom)):
                bound.update((alias.asname or alias.name).split('.')[0] for alias in node.names)
            elif isinstance(node, (ast.Assign, ast.AnnAssign)):
                targets = node.targets if isinstance(node, ast.Assign) else [node.target]
                for target in targets:
                    bound.update(name.id for name in ast.walk(target) if isinstance(name, ast.Name))

        builtins_read = {
            node.id for node in ast.walk(tree)
            if isinstance(node, ast.Name) and node.id in vars(builtins)
        }
        _runtime_names = (frozenset(bound), frozenset(builtins_read - bound))
    return _runtime_names
