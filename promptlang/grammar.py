"""
promptlang Grammar Definition.

This module contains the Lark grammar for promptlang, parsed with LALR.

Keywords are plain string terminals. Lark embeds string terminals that the
NAME regex fully matches into NAME's callback, so a whole word equal to a
keyword lexes as that keyword while ``index`` or ``format`` stay identifiers.
String terminals are tried longest first, so ``<=`` never splits into ``<``
and ``=``.

Punctuation and keywords written as literals inside rules are dropped from
the tree. Optional sub-rules in ``[...]`` stay as ``None`` placeholders.
"""

promptlang_grammar = r"""
    script: (import_statement | flow_definition)*

    // --- Imports ---
    import_statement: "import" (prompt_import | symbol_import)
    prompt_import: "prompt" STRING "as" NAME "with" "input" type_object "returns" type_object
    symbol_import: "{" NAME ("," NAME)* "}" NAME STRING

    // --- Flows ---
    flow_definition: "flow" NAME "(" [parameter_list] ")" "{" statement* "}"
    parameter_list: parameter ("," parameter)*
    parameter: NAME ":" type

    // --- Types ---
    type_object: "{" (type_property ("," type_property)*)? "}"
    type_property: NAME ":" type
    type: NAME ["<" type ">"]

    // --- Statements ---
    statement: return_statement | if_statement | for_statement | loop_statement
             | assignment | destructuring_assignment | expression_statement

    return_statement: "return" expression
    if_statement: "if" expression "{" statement* "}"
    for_statement: "for" NAME "in" expression "{" statement* "}"
    loop_statement: "loop" "{" statement* "}"
    assignment: NAME "=" expression
    destructuring_assignment: _DESTRUCTURE_LCURLY NAME ("," NAME)* "}" "=" expression
    expression_statement: expression

    // --- Expressions ---
    expression: logical_expression
    logical_expression: not_expression (_logical_operator not_expression)*
    _logical_operator: AND | OR
    not_expression: NOT comparison_expression | comparison_expression
    comparison_expression: postfix_expression (_comparison_operator postfix_expression)?
    _comparison_operator: DOUBLE_EQUALS | NOT_EQUALS | LESS_EQUALS | GREATER_EQUALS
                        | LESS_THAN | GREATER_THAN
    postfix_expression: primary_expression [dot_access]
    dot_access: "." NAME [call_suffix] [dot_access]
    call_suffix: "(" [argument_list] ")"

    primary_expression: function_call | object_literal | array_literal
                      | STRING | NUMBER | TRUE | FALSE | NAME
    function_call: NAME "(" [argument_list] ")"
    argument_list: expression ("," expression)*

    object_literal: "{" (_object_entry ("," _object_entry)*)? "}"
    _object_entry: property | shorthand_property
    property: NAME ":" expression
    shorthand_property: NAME
    array_literal: "[" (expression ("," expression)*)? "]"

    // --- Keywords ---
    IMPORT: "import"
    PROMPT: "prompt"
    AS: "as"
    WITH: "with"
    INPUT: "input"
    RETURNS: "returns"
    FLOW: "flow"
    RETURN: "return"
    IF: "if"
    FOR: "for"
    IN: "in"
    LOOP: "loop"
    AND: "and"
    OR: "or"
    NOT: "not"
    TRUE: "true"
    FALSE: "false"

    // --- Symbols ---
    LCURLY: "{"
    RCURLY: "}"
    LPAREN: "("
    RPAREN: ")"
    LBRACKET: "["
    RBRACKET: "]"
    COLON: ":"
    COMMA: ","
    DOT: "."

    // --- Comparison operators ---
    DOUBLE_EQUALS: "=="
    NOT_EQUALS: "!="
    LESS_EQUALS: "<="
    GREATER_EQUALS: ">="
    EQUALS: "="
    LESS_THAN: "<"
    GREATER_THAN: ">"

    // --- Literals ---
    STRING: /"(?:[^"\\]|\\["\\\/bfnrt]|\\u[0-9a-fA-F]{4})*"/
    NUMBER: /-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?/
    NAME: /[a-zA-Z_][a-zA-Z0-9_]*/

    // Emitted by the destructuring postlexer in place of LCURLY
    %declare _DESTRUCTURE_LCURLY

    %import common.WS
    %ignore WS
"""

DESTRUCTURE_LCURLY = "_DESTRUCTURE_LCURLY"

COMPARISON_OPERATORS = {
    "DOUBLE_EQUALS": "==",
    "NOT_EQUALS": "!=",
    "LESS_EQUALS": "<=",
    "GREATER_EQUALS": ">=",
    "LESS_THAN": "<",
    "GREATER_THAN": ">",
}
