"""
Typed AST for promptlang programs.

Every node is a pydantic model tagged by a literal ``kind`` field; statements
and expressions are discriminated unions on that tag. Nodes are plain values:
calls refer to flows and prompts by name only.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class Node(BaseModel):
    """Base class for AST nodes."""


# --- Types ---

class Type(Node):
    """A named type with an optional single generic parameter, e.g. ``list<Idea>``."""
    kind: Literal["Type"] = "Type"
    name: str
    generic: Optional["Type"] = None

    def describe(self):
        if self.generic is None:
            return self.name
        return f"{self.name}<{self.generic.describe()}>"


class TypeProperty(Node):
    kind: Literal["TypeProperty"] = "TypeProperty"
    key: str
    value: Type


class TypeObject(Node):
    """Object schema: property name -> Type, in declaration order."""
    kind: Literal["TypeObject"] = "TypeObject"
    properties: List[TypeProperty] = Field(default_factory=list)

    def describe(self):
        inner = ", ".join(f"{prop.key}: {prop.value.describe()}" for prop in self.properties)
        return "{ " + inner + " }" if inner else "{}"


# --- Expressions ---

class Identifier(Node):
    kind: Literal["Identifier"] = "Identifier"
    name: str


class StringLiteral(Node):
    """String literal; ``value`` is the decoded text without quotes."""
    kind: Literal["StringLiteral"] = "StringLiteral"
    value: str


class NumberLiteral(Node):
    kind: Literal["NumberLiteral"] = "NumberLiteral"
    value: Union[int, float]


class BooleanLiteral(Node):
    kind: Literal["BooleanLiteral"] = "BooleanLiteral"
    value: bool


class Property(Node):
    """Object literal property; shorthand properties (``{ file }``) have no value."""
    kind: Literal["Property"] = "Property"
    key: Identifier
    value: Optional["Expression"] = None
    shorthand: bool = False


class ObjectLiteral(Node):
    kind: Literal["ObjectLiteral"] = "ObjectLiteral"
    properties: List[Property] = Field(default_factory=list)


class ArrayLiteral(Node):
    kind: Literal["ArrayLiteral"] = "ArrayLiteral"
    elements: List["Expression"] = Field(default_factory=list)


class FunctionCall(Node):
    kind: Literal["FunctionCall"] = "FunctionCall"
    callee: Identifier
    arguments: List["Expression"] = Field(default_factory=list)


class MethodCall(Node):
    kind: Literal["MethodCall"] = "MethodCall"
    object: "Expression"
    method: Identifier
    arguments: List["Expression"] = Field(default_factory=list)


class MemberExpression(Node):
    kind: Literal["MemberExpression"] = "MemberExpression"
    object: "Expression"
    property: Identifier


ComparisonOperator = Literal["==", "!=", "<", "<=", ">", ">="]


class ComparisonExpression(Node):
    kind: Literal["ComparisonExpression"] = "ComparisonExpression"
    operator: ComparisonOperator
    left: "Expression"
    right: "Expression"


class LogicalExpression(Node):
    kind: Literal["LogicalExpression"] = "LogicalExpression"
    operator: Literal["and", "or"]
    left: "Expression"
    right: "Expression"


class UnaryExpression(Node):
    kind: Literal["UnaryExpression"] = "UnaryExpression"
    operator: Literal["not"] = "not"
    argument: "Expression"


Expression = Annotated[
    Union[
        FunctionCall,
        MethodCall,
        ObjectLiteral,
        ArrayLiteral,
        MemberExpression,
        Identifier,
        StringLiteral,
        NumberLiteral,
        BooleanLiteral,
        ComparisonExpression,
        LogicalExpression,
        UnaryExpression,
    ],
    Field(discriminator="kind"),
]


# --- Statements ---

class ReturnStatement(Node):
    kind: Literal["ReturnStatement"] = "ReturnStatement"
    expression: Expression


class IfStatement(Node):
    kind: Literal["IfStatement"] = "IfStatement"
    condition: Expression
    body: List["Statement"] = Field(default_factory=list)


class ForStatement(Node):
    kind: Literal["ForStatement"] = "ForStatement"
    variable: Identifier
    iterable: Expression
    body: List["Statement"] = Field(default_factory=list)


class LoopStatement(Node):
    kind: Literal["LoopStatement"] = "LoopStatement"
    body: List["Statement"] = Field(default_factory=list)


class Assignment(Node):
    kind: Literal["Assignment"] = "Assignment"
    left: Identifier
    right: Expression


class DestructuringAssignment(Node):
    kind: Literal["DestructuringAssignment"] = "DestructuringAssignment"
    left: List[Identifier]
    right: Expression


class ExpressionStatement(Node):
    kind: Literal["ExpressionStatement"] = "ExpressionStatement"
    expression: Expression


Statement = Annotated[
    Union[
        ReturnStatement,
        IfStatement,
        ForStatement,
        LoopStatement,
        Assignment,
        DestructuringAssignment,
        ExpressionStatement,
    ],
    Field(discriminator="kind"),
]


# --- Declarations ---

class PromptImport(Node):
    """``import prompt "<path>" as Name with input {...} returns {...}``"""
    kind: Literal["PromptImport"] = "PromptImport"
    name: Identifier
    prompt_path: str
    input: TypeObject
    returns: TypeObject


class SymbolImport(Node):
    """``import { a, b } from "<path>"``"""
    kind: Literal["SymbolImport"] = "SymbolImport"
    symbols: List[Identifier]
    source: str


class ImportStatement(Node):
    kind: Literal["ImportStatement"] = "ImportStatement"
    import_type: Literal["prompt", "symbol"]
    prompt_import: Optional[PromptImport] = None
    symbol_import: Optional[SymbolImport] = None


class Parameter(Node):
    kind: Literal["Parameter"] = "Parameter"
    name: Identifier
    param_type: Type


class FlowDefinition(Node):
    kind: Literal["FlowDefinition"] = "FlowDefinition"
    name: Identifier
    parameters: List[Parameter] = Field(default_factory=list)
    body: List[Statement] = Field(default_factory=list)


Declaration = Annotated[
    Union[ImportStatement, FlowDefinition],
    Field(discriminator="kind"),
]


class Program(Node):
    kind: Literal["Program"] = "Program"
    body: List[Declaration] = Field(default_factory=list)


for _model in list(globals().values()):
    if isinstance(_model, type) and issubclass(_model, Node) and _model is not Node:
        _model.model_rebuild()
