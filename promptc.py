import argparse
import json
import os
import subprocess
import sys
import tempfile

from compiler import check_source, compile_source, parse_source, set_verbose
from promptlang.console import error, log
from promptlang.errors import PromptlangCompileError, format_diagnostic

BUILD_DIR = "dist"
CONFIG_FILE = "models.json"
SOURCE_EXTENSION = ".flow"

SAMPLE_PROGRAM = '''import prompt "prompts/summarize.j2" as Summarize
  with input { text: string }
  returns { summary: string }

flow Main() {
  result = Summarize({ text: "promptlang compiles flows into Python." })
  print(result.summary)
}
'''

SAMPLE_TEMPLATE = '''Summarize the following text in one sentence.
Reply with a JSON object of the form {"summary": "..."}.

{{ text }}
'''


def read_source(filepath):
    """Read a source file, or stdin for ``-``. Exits with status 1 if the file is missing."""
    if filepath is None or filepath == "-":
        return sys.stdin.read(), "<stdin>"
    if not os.path.exists(filepath):
        error(f"File '{filepath}' not found.")
        sys.exit(1)
    with open(filepath, 'r', encoding='utf-8') as f:
        return f.read(), filepath


def default_output_path(filepath, extension=".py"):
    """``dist/<input base name><extension>``."""
    base = "main" if filepath in (None, "-") else os.path.splitext(os.path.basename(filepath))[0]
    return os.path.join(BUILD_DIR, base + extension)


def write_atomic(target_file, content):
    """Write ``content`` to a temporary file next to the target, then move it into place."""
    directory = os.path.dirname(target_file) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".promptc-", suffix=".tmp")
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(content)
        os.replace(tmp_path, target_file)
    except OSError:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def build(filepath, output=None, emit_ast=False, verbose=False):
    """Compile one file and write the result. Exits with status 1 on any compile error."""
    set_verbose(verbose)
    source_code, file_name = read_source(filepath)

    try:
        if emit_ast:
            program = parse_source(source_code, file_name)
            content = program.model_dump_json(indent=2) + "\n"
        else:
            content = compile_source(source_code, file_name)
    except PromptlangCompileError as e:
        print(format_diagnostic(e, source_code, file_name), file=sys.stderr)
        sys.exit(1)

    target_file = output or default_output_path(filepath, ".json" if emit_ast else ".py")
    write_atomic(target_file, content)
    log(f"Compiled {file_name} -> {target_file}")
    return target_file


def cmd_compile(args):
    build(args.input, args.output, emit_ast=args.emit_ast, verbose=args.verbose)


def cmd_run(args):
    target_file = build(args.input, args.output, verbose=args.verbose)
    log(f"Running {target_file}")
    sys.exit(subprocess.call([sys.executable, target_file]))


def cmd_check(args):
    set_verbose(args.verbose)
    source_code, file_name = read_source(args.input)
    problems = check_source(source_code, file_name)
    for problem in problems:
        print(format_diagnostic(problem, source_code, file_name), file=sys.stderr)
        print(file=sys.stderr)
    if problems:
        error(f"{len(problems)} problem(s) found in {file_name}")
        sys.exit(1)
    log(f"No problems found in {file_name}")


def cmd_update(args):
    latest_models = {
        "gpt-4o": {"type": "openai"},
        "gpt-4o-mini": {"type": "openai"},
        "gemini-2.5-flash": {"type": "gemini"},
        "llama3": {"type": "local"},
    }
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump(latest_models, f, indent=2)
    log(f"Updated {CONFIG_FILE} with {len(latest_models)} models.")


def cmd_init(args):
    log("Initializing project...")
    os.makedirs("prompts", exist_ok=True)
    with open("main" + SOURCE_EXTENSION, "w", encoding="utf-8") as f:
        f.write(SAMPLE_PROGRAM)
    with open(os.path.join("prompts", "summarize.j2"), "w", encoding="utf-8") as f:
        f.write(SAMPLE_TEMPLATE)
    log(f"Created main{SOURCE_EXTENSION} and prompts/summarize.j2")


def main(argv=None):
    parser = argparse.ArgumentParser(description="promptlang compiler")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    subparsers = parser.add_subparsers(dest="command")

    compile_cmd = subparsers.add_parser("compile", help="Compile a file to Python")
    compile_cmd.add_argument("-i", "--input", default="-", help="Source file (default: read from stdin)")
    compile_cmd.add_argument("-o", "--output", help=f"Output file (default: {BUILD_DIR}/<input name>.py)")
    compile_cmd.add_argument("--emit-ast", action="store_true", help="Write the AST as JSON instead of code")

    run = subparsers.add_parser("run", help="Compile a file and run it")
    run.add_argument("-i", "--input", default="-", help="Source file (default: read from stdin)")
    run.add_argument("-o", "--output", help=f"Output file (default: {BUILD_DIR}/<input name>.py)")

    check = subparsers.add_parser("check", help="Report all diagnostics without writing output")
    check.add_argument("-i", "--input", default="-", help="Source file (default: read from stdin)")

    subparsers.add_parser("init", help="Create a sample project")
    subparsers.add_parser("update", help="Write the default model registry")

    args = parser.parse_args(argv)

    if args.command == "compile": cmd_compile(args)
    elif args.command == "run": cmd_run(args)
    elif args.command == "check": cmd_check(args)
    elif args.command == "init": cmd_init(args)
    elif args.command == "update": cmd_update(args)
    else: parser.print_help()


if __name__ == "__main__":
    main()
