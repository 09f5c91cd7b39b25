"""
promptlang Code Generator - Emits Python source from the typed AST.

Flows become ``async def`` functions and prompt imports become ``async def``
wrappers around the runtime's ``call_prompt``. Calls to either are awaited
wherever they appear. The runtime preamble is prepended verbatim so the output
is a self-contained script.
"""
import json
import keyword
import math
import posixpath

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
    ReturnStatement,
    StringLiteral,
    UnaryExpression,
)
from promptlang.console import debug_log
from promptlang.errors import CodegenError

INDENT = "    "

BUILTIN_FUNCTIONS = ("print", "stringify", "parse")

MAIN_FLOW = "Main"

# Names the generated code reads besides the runtime's own
GENERATED_NAMES = frozenset({"_run_main", "getattr", "float", "Exception"})

MAIN_EPILOGUE = '''async def _run_main():
    log_info("Starting Main flow execution...")
    try:
        await Main()
    except Exception as error:
        log_error(f"Main flow execution failed: {error}")
        sys.exit(1)
    log_info("Main flow execution completed successfully.")


if __name__ == "__main__":
    asyncio.run(_run_main())
'''


def python_name(name):
    """Identifier safe to use in Python: keywords get a trailing underscore."""
    if keyword.iskeyword(name):
        return name + "_"
    return name


def module_path(source):
    """
    Convert an import path like ``./lib/helpers.py`` into ``lib.helpers``.

    Raises:
        CodegenError: if the path leaves the program directory or does not
            name a valid module
    """
    normalized = posixpath.normpath(source)
    if normalized.startswith(".."):
        raise CodegenError(f"Cannot import symbols from outside the program directory: \"{source}\"")
    base, _ext = posixpath.splitext(normalized)
    parts = base.split("/")
    if not all(part.isidentifier() and not keyword.iskeyword(part) for part in parts):
        raise CodegenError(f"Import path \"{source}\" does not name a Python module")
    return ".".join(parts)


class GenerationContext:
    """
    Mutable state for one ``generate`` call.

    Holds the registries built before any statement is emitted and the set of
    names already bound in the flow being generated.
    """

    def __init__(self):
        self.flows = {}          # flow name -> ordered parameter names
        self.prompts = {}        # prompt name -> PromptImport
        self.symbols = {}        # symbol name -> source path
        self.declared = set()
        self.has_main = False
        self.flow_name = None

    def enter_flow(self, flow):
        """Reset the binding set to the flow's own parameters."""
        self.flow_name = flow.name.name
        self.declared = {param.name.name for param in flow.parameters}

    def is_async_call(self, expr):
        return isinstance(expr, FunctionCall) and (
            expr.callee.name in self.prompts or expr.callee.name in self.flows
        )


class CodeGenerator:
    """
    Generates Python source for a ``Program``.

    The instance only keeps the preamble text and the runtime's reserved names;
    each ``generate`` call builds its own ``GenerationContext``, so one
    generator can be reused freely.
    """

    def __init__(self, runtime_preamble=None):
        """
        Args:
            runtime_preamble: Optional custom runtime preamble. If None, uses get_preamble().
        """
        from promptlang.runtime import get_preamble, get_runtime_names
        if runtime_preamble is None:
            runtime_preamble = get_preamble()
        self._runtime_preamble = runtime_preamble

        bound, builtins_read = get_runtime_names()
        self._reserved_locals = bound | GENERATED_NAMES
        self._reserved_globals = self._reserved_locals | builtins_read

    def generate(self, program):
        """Generate the full script: preamble, declaration blocks, Main epilogue."""
        ctx = GenerationContext()
        self._register(program, ctx)

        blocks = []
        for declaration in program.body:
            if isinstance(declaration, ImportStatement):
                blocks.append(self._import_statement(declaration, ctx))
            else:
                blocks.append(self._flow_definition(declaration, ctx))

        if ctx.has_main:
            blocks.append(MAIN_EPILOGUE)

        return self._runtime_preamble + "\n\n" + "\n\n".join(blocks)

    # --- Registry pass ---

    def _register(self, program, ctx):
        """Record every flow, prompt and symbol before any code is emitted."""
        for declaration in program.body:
            if isinstance(declaration, FlowDefinition):
                name = declaration.name.name
                self._check_global(name, "Flow")
                if name in ctx.flows:
                    raise CodegenError(f"Flow '{name}' is defined more than once")
                ctx.flows[name] = [param.name.name for param in declaration.parameters]
                if name == MAIN_FLOW:
                    ctx.has_main = True
            elif declaration.import_type == "prompt":
                prompt = declaration.prompt_import
                name = prompt.name.name
                self._check_global(name, "Prompt")
                if name in ctx.prompts:
                    raise CodegenError(f"Prompt '{name}' is imported more than once")
                ctx.prompts[name] = prompt
            else:
                symbol_import = declaration.symbol_import
                for symbol in symbol_import.symbols:
                    self._check_global(symbol.name, "Imported symbol")
                    previous = ctx.symbols.get(symbol.name)
                    if previous is not None and previous != symbol_import.source:
                        raise CodegenError(
                            f"Symbol '{symbol.name}' is imported from both \"{previous}\" "
                            f"and \"{symbol_import.source}\""
                        )
                    ctx.symbols[symbol.name] = symbol_import.source

        for name in ctx.prompts:
            if name in ctx.flows:
                raise CodegenError(f"Prompt '{name}' has the same name as a flow")
        for name in ctx.symbols:
            if name in ctx.flows:
                raise CodegenError(f"Imported symbol '{name}' has the same name as a flow")
            if name in ctx.prompts:
                raise CodegenError(f"Imported symbol '{name}' has the same name as a prompt")

        debug_log(
            f"Registered {len(ctx.flows)} flow(s), {len(ctx.prompts)} prompt(s), "
            f"{len(ctx.symbols)} symbol(s)"
        )

    def _check_global(self, name, what):
        if python_name(name) in self._reserved_globals:
            raise CodegenError(f"{what} name '{name}' is reserved by the promptlang runtime")

    def _check_local(self, name, ctx, what="Variable"):
        if python_name(name) in self._reserved_locals:
            raise CodegenError(
                f"{what} name '{name}' in flow '{ctx.flow_name}' is reserved by the promptlang runtime"
            )

    # --- Declarations ---

    def _import_statement(self, node, ctx):
        if node.import_type == "prompt":
            return self._prompt_import(node.prompt_import)
        return self._symbol_import(node.symbol_import)

    def _prompt_import(self, prompt):
        name = python_name(prompt.name.name)
        path = _string_literal(prompt.prompt_path)
        input_schema = repr(prompt.input.model_dump())
        return_schema = repr(prompt.returns.model_dump())
        return (
            f"# Prompt import: {prompt.name.name} from {path}\n"
            f"# input {prompt.input.describe()} returns {prompt.returns.describe()}\n"
            f"async def {name}(input_data):\n"
            f"{INDENT}validated_input = validate_type(input_data, {input_schema})\n"
            f"{INDENT}return await call_prompt(\"{prompt.name.name}\", {path}, validated_input, {return_schema})\n"
            f"\n"
            f"PROMPT_REGISTRY[\"{prompt.name.name}\"] = {{\n"
            f"{INDENT}\"path\": {path},\n"
            f"{INDENT}\"input_type\": {input_schema},\n"
            f"{INDENT}\"return_type\": {return_schema},\n"
            f"}}"
        )

    def _symbol_import(self, symbol_import):
        names = ", ".join(python_name(symbol.name) for symbol in symbol_import.symbols)
        return f"from {module_path(symbol_import.source)} import {names}"

    def _flow_definition(self, flow, ctx):
        ctx.enter_flow(flow)
        for param in flow.parameters:
            self._check_local(param.name.name, ctx, "Parameter")
        name = python_name(flow.name.name)
        params = ", ".join(python_name(param.name.name) for param in flow.parameters)
        signature = ", ".join(
            f"{param.name.name}: {param.param_type.describe()}" for param in flow.parameters
        )

        body = self._block(flow.body, ctx)
        lines = [
            f"# Flow: {flow.name.name}({signature})",
            f"async def {name}({params}):",
            f"{INDENT}try:",
        ]
        lines.extend(_indent(body, 2))
        lines.extend([
            f"{INDENT}except Exception as error:",
            f"{INDENT * 2}log_error(f\"Error in flow {flow.name.name}: {{error}}\")",
            f"{INDENT * 2}raise",
        ])
        return "\n".join(lines)

    # --- Statements ---

    def _block(self, statements, ctx):
        """Lines of a statement block, unindented; an empty block is ``pass``."""
        lines = []
        for statement in statements:
            lines.extend(self._statement(statement, ctx))
        return lines or ["pass"]

    def _statement(self, node, ctx):
        if isinstance(node, ReturnStatement):
            return [f"return {self._expression(node.expression, ctx)}"]

        if isinstance(node, IfStatement):
            condition = self._expression(node.condition, ctx)
            return [f"if {condition}:"] + _indent(self._block(node.body, ctx), 1)

        if isinstance(node, ForStatement):
            iterable = self._expression(node.iterable, ctx)
            variable = node.variable.name
            self._check_local(variable, ctx, "Loop variable")
            ctx.declared.add(variable)
            header = f"for {python_name(variable)} in {iterable}:"
            return [header] + _indent(self._block(node.body, ctx), 1)

        if isinstance(node, LoopStatement):
            return ["while True:"] + _indent(self._block(node.body, ctx), 1)

        if isinstance(node, Assignment):
            value = self._expression(node.right, ctx)
            name = node.left.name
            self._check_local(name, ctx)
            if name in ctx.declared:
                return [f"{python_name(name)} = {value}"]
            ctx.declared.add(name)
            return [f"{python_name(name)}: Any = {value}"]

        if isinstance(node, DestructuringAssignment):
            value = self._expression(node.right, ctx)
            names = [identifier.name for identifier in node.left]
            for name in names:
                self._check_local(name, ctx)
            lines = [f"{python_name(name)}: Any" for name in names]
            targets = ", ".join(python_name(name) for name in names)
            if len(names) == 1:
                targets += ","
            keys = ", ".join(f"\"{name}\"" for name in names)
            if len(names) == 1:
                keys += ","
            lines.append(f"{targets} = destructure({value}, ({keys}))")
            ctx.declared.update(names)
            return lines

        if isinstance(node, ExpressionStatement):
            return [self._expression(node.expression, ctx)]

        raise CodegenError(f"Unsupported statement type: {node.kind}")

    # --- Expressions ---

    def _expression(self, node, ctx):
        if isinstance(node, FunctionCall):
            return self._function_call(node, ctx)

        if isinstance(node, MethodCall):
            args = self._arguments(node.arguments, ctx)
            return f"{self._member(node.object, node.method.name, ctx)}({args})"

        if isinstance(node, MemberExpression):
            return self._member(node.object, node.property.name, ctx)

        if isinstance(node, ObjectLiteral):
            return self._object_literal(node, ctx)

        if isinstance(node, ArrayLiteral):
            return f"[{self._arguments(node.elements, ctx)}]"

        if isinstance(node, Identifier):
            return python_name(node.name)

        if isinstance(node, StringLiteral):
            return _string_literal(node.value)

        if isinstance(node, NumberLiteral):
            return _number_literal(node.value)

        if isinstance(node, BooleanLiteral):
            return "True" if node.value else "False"

        if isinstance(node, ComparisonExpression):
            left = self._expression(node.left, ctx)
            right = self._expression(node.right, ctx)
            return f"{left} {node.operator} {right}"

        if isinstance(node, LogicalExpression):
            left = self._expression(node.left, ctx)
            # Python binds ``and`` tighter than ``or``
            if isinstance(node.left, LogicalExpression) and node.left.operator != node.operator:
                left = f"({left})"
            right = self._expression(node.right, ctx)
            return f"{left} {node.operator} {right}"

        if isinstance(node, UnaryExpression):
            return f"not {self._expression(node.argument, ctx)}"

        raise CodegenError(f"Unsupported expression type: {node.kind}")

    def _arguments(self, expressions, ctx):
        return ", ".join(self._expression(expr, ctx) for expr in expressions)

    def _member(self, obj, name, ctx):
        """``obj.name``, or ``getattr`` when the name is a Python keyword."""
        target = self._expression(obj, ctx)
        if ctx.is_async_call(obj):
            target = f"({target})"
        if keyword.iskeyword(name):
            return f"getattr({target}, \"{name}\")"
        return f"{target}.{name}"

    def _object_literal(self, node, ctx):
        if not node.properties:
            return "Record()"
        items = []
        for prop in node.properties:
            value = prop.key if prop.shorthand else prop.value
            items.append(f"\"{prop.key.name}\": {self._expression(value, ctx)}")
        return "Record({" + ", ".join(items) + "})"

    def _function_call(self, node, ctx):
        """Dispatch a call site: prompt, flow, builtin, then plain call."""
        callee = node.callee.name

        if callee in ctx.prompts:
            if len(node.arguments) > 1:
                raise CodegenError(
                    f"Prompt '{callee}' takes a single input object, "
                    f"got {len(node.arguments)} arguments"
                )
            if node.arguments:
                arg = self._expression(node.arguments[0], ctx)
            else:
                arg = "Record()"
            return f"await {python_name(callee)}({arg})"

        if callee in ctx.flows:
            if len(node.arguments) == 1 and isinstance(node.arguments[0], ObjectLiteral):
                args = self._flow_arguments(callee, node.arguments[0], ctx)
            else:
                args = self._arguments(node.arguments, ctx)
            return f"await {python_name(callee)}({args})"

        if callee in BUILTIN_FUNCTIONS:
            return f"_builtins.{callee}({self._arguments(node.arguments, ctx)})"

        return f"{python_name(callee)}({self._arguments(node.arguments, ctx)})"

    def _flow_arguments(self, callee, obj, ctx):
        """Reorder a named-argument object literal into the flow's parameter order."""
        props = {prop.key.name: prop for prop in obj.properties}
        args = []
        for param in ctx.flows[callee]:
            prop = props.get(param)
            if prop is None:
                raise CodegenError(f"Missing required parameter '{param}' in call to flow '{callee}'")
            value = prop.key if prop.shorthand else prop.value
            args.append(self._expression(value, ctx))
        return ", ".join(args)


def _string_literal(value):
    """Double-quoted Python literal for a decoded string."""
    return json.dumps(value)


def _number_literal(value):
    """Python literal for a number; a float literal too large for a double is infinite."""
    if isinstance(value, float) and math.isinf(value):
        return 'float("-inf")' if value < 0 else 'float("inf")'
    return repr(value)


def _indent(lines, level):
    prefix = INDENT * level
    return [prefix + line for line in lines]
