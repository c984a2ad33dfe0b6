"""
emitter.py
==========
Polymorphic emission engine: ingested package tree → Python source text.

- Variables become annotated module-level declarations (package scope) or
  plain local assignments (container scope).
- Every executable becomes one function. Containers nest their children's
  functions and call them in document order; leaf tasks translate their
  captured properties into the most direct Python equivalent.
- Anything without a known translation (task kinds, SSIS expressions) turns
  into a clearly marked placeholder plus an `UntranslatedConstructWarning`;
  emission itself never aborts on a single node.
"""

from __future__ import annotations

import builtins
import datetime
import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from dessist.config import GeneratorOptions, SqlCompatibility
from dessist.core.boilerplate import (
    ARITHMETIC_HELPERS,
    GENERIC_SQL_HELPERS,
    PROGRAM_FOOTER,
    PROGRAM_HEADER,
    SQL_SMO_HELPERS,
    TABLE_PARAMETER_HELPERS,
    JinjaTemplateProvider,
    TemplateProvider,
)
from dessist.core.exceptions import UntranslatedConstructWarning
from dessist.core.expressions import TranslatedExpression, translate_expression
from dessist.core.naming import NameScope, sanitize_identifier, variable_identifier
from dessist.core.node import CONNECTION_MANAGER, EXECUTABLE, OBJECT_DATA, VARIABLE_VALUE, Node
from dessist.core.package import PackageContents, require_executables

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Task classification
# ---------------------------------------------------------------------------


class TaskKind(str, Enum):
    PACKAGE = "Package"
    SEQUENCE = "Sequence"
    FOR_LOOP = "ForLoop"
    FOREACH_LOOP = "ForEachLoop"
    EXECUTE_SQL = "ExecuteSQL"
    SCRIPT = "Script"
    EXECUTE_PROCESS = "ExecuteProcess"
    EXPRESSION = "Expression"
    DATA_FLOW = "DataFlow"
    UNKNOWN = "Unknown"


# Matched as case-insensitive substrings of DTS:ExecutableType, in order.
# Covers both the 2012+ monikers and the 2008 assembly-qualified names.
_EXECUTABLE_TYPE_PATTERNS: list[tuple[str, TaskKind]] = [
    ("STOCK:SEQUENCE", TaskKind.SEQUENCE),
    ("STOCK:FORLOOP", TaskKind.FOR_LOOP),
    ("STOCK:FOREACHLOOP", TaskKind.FOREACH_LOOP),
    ("SSIS.PACKAGE", TaskKind.PACKAGE),
    ("MICROSOFT.PACKAGE", TaskKind.PACKAGE),
    ("MSDTS.PACKAGE", TaskKind.PACKAGE),
    ("SSIS.PIPELINE", TaskKind.DATA_FLOW),
    ("MICROSOFT.PIPELINE", TaskKind.DATA_FLOW),
    ("EXECUTESQLTASK", TaskKind.EXECUTE_SQL),
    ("SCRIPTTASK", TaskKind.SCRIPT),
    ("EXECUTEPROCESS", TaskKind.EXECUTE_PROCESS),
    ("EXPRESSIONTASK", TaskKind.EXPRESSION),
]

_KIND_LABELS: dict[TaskKind, str] = {
    TaskKind.PACKAGE: "Package",
    TaskKind.SEQUENCE: "Sequence container",
    TaskKind.FOR_LOOP: "For loop container",
    TaskKind.FOREACH_LOOP: "Foreach loop container",
    TaskKind.EXECUTE_SQL: "Execute SQL task",
    TaskKind.SCRIPT: "Script task",
    TaskKind.EXECUTE_PROCESS: "Execute process task",
    TaskKind.EXPRESSION: "Expression task",
    TaskKind.DATA_FLOW: "Data flow task",
    TaskKind.UNKNOWN: "Task",
}

# Property expressions a handler consumes itself; the rest go to task_properties.
_CONSUMED_EXPRESSIONS: dict[TaskKind, frozenset[str]] = {
    TaskKind.EXECUTE_SQL: frozenset({"SqlStatementSource"}),
    TaskKind.EXPRESSION: frozenset({"Expression"}),
    TaskKind.FOR_LOOP: frozenset({"InitExpression", "EvalExpression", "AssignExpression"}),
}


def classify_executable(node: Node) -> TaskKind:
    """Map an executable node onto the task kind that drives emission."""
    if node.kind != EXECUTABLE:
        return TaskKind.UNKNOWN
    raw = (node.executable_type or "").upper()
    for pattern, kind in _EXECUTABLE_TYPE_PATTERNS:
        if pattern in raw:
            return kind
    if not raw and node.parent is None:
        return TaskKind.PACKAGE
    return TaskKind.UNKNOWN


# ---------------------------------------------------------------------------
# Variable types
# ---------------------------------------------------------------------------


def _int_literal(raw: str) -> str:
    return str(int(raw.strip() or "0"))


def _float_literal(raw: str) -> str:
    return repr(float(raw.strip() or "0"))


def _decimal_literal(raw: str) -> str:
    text = raw.strip() or "0"
    float(text)
    return f'Decimal("{text}")'


def _str_literal(raw: str) -> str:
    return repr(raw)


def _bool_literal(raw: str) -> str:
    text = raw.strip().lower()
    if text in ("true", "1", "-1"):
        return "True"
    if text in ("false", "0", ""):
        return "False"
    raise ValueError(f"not a boolean: {raw!r}")


_DATETIME_FORMATS = (
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
)


def _datetime_literal(raw: str) -> str:
    text = raw.strip()
    if not text:
        return "None"
    try:
        dt = datetime.datetime.fromisoformat(text)
    except ValueError:
        for fmt in _DATETIME_FORMATS:
            try:
                dt = datetime.datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            raise ValueError(f"unrecognised date: {raw!r}")
    return (
        f"datetime.datetime({dt.year}, {dt.month}, {dt.day}, "
        f"{dt.hour}, {dt.minute}, {dt.second})"
    )


def _object_literal(raw: str) -> str:
    return "None"


@dataclass(frozen=True)
class _PyType:
    annotation: str
    literal: Callable[[str], str]


_INT = _PyType("int", _int_literal)
_FLOAT = _PyType("float", _float_literal)
_DECIMAL = _PyType("Decimal", _decimal_literal)

# SSIS variant type codes (TypeCode / VARENUM) → Python declaration shape.
_PY_TYPES: dict[str, _PyType] = {
    "2": _INT,
    "3": _INT,
    "4": _FLOAT,
    "5": _FLOAT,
    "6": _DECIMAL,
    "7": _PyType("datetime.datetime | None", _datetime_literal),
    "8": _PyType("str", _str_literal),
    "11": _PyType("bool", _bool_literal),
    "13": _PyType("Any", _object_literal),
    "14": _DECIMAL,
    "16": _INT,
    "17": _INT,
    "18": _INT,
    "19": _INT,
    "20": _INT,
    "21": _INT,
}

OBJECT_TYPE_CODE = "13"

_TRUTHY = frozenset({"true", "1", "-1"})

# Names the program header defines, temporaries used inside task bodies, and builtins.
RESERVED_IDENTIFIERS = frozenset(
    {
        "Any", "CONNECTIONS_PATH", "Decimal", "Path", "connect", "connection_string",
        "datetime", "execute_sql", "item", "items", "json", "logger", "logging", "math",
        "params", "platform", "props", "pyodbc", "re", "result", "rows",
        "run_sql_batches", "shlex", "sql", "ssis_divide", "ssis_modulo", "subprocess",
        "system_variables", "table_parameter", "task_properties",
    }
) | frozenset(dir(builtins))


# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------


@dataclass
class VariableScope:
    """
    One name-resolution frame: the module, or one emitted function.

    `names` maps qualified SSIS variable names (`User::Count`) to the Python
    identifiers declared in this frame.
    """

    names: dict[str, str] = field(default_factory=dict)
    parent: VariableScope | None = None
    function_name: str | None = None

    @property
    def is_module(self) -> bool:
        return self.function_name is None

    def declare(self, qualified: str, ident: str) -> None:
        self.names[qualified] = ident

    def _find_local(self, ref: str) -> str | None:
        if ref in self.names:
            return self.names[ref]
        if "::" not in ref:
            for qualified, ident in self.names.items():
                if qualified.split("::", 1)[-1] == ref:
                    return ident
        return None

    def resolve(self, ref: str) -> tuple[str | None, VariableScope | None]:
        scope: VariableScope | None = self
        while scope is not None:
            ident = scope._find_local(ref)
            if ident is not None:
                return ident, scope
            scope = scope.parent
        return None, None


class _FunctionContext:
    """Tracks reads and writes inside one function body for global/nonlocal declarations."""

    def __init__(self, scope: VariableScope) -> None:
        self.scope = scope
        self.globals: list[str] = []
        self.nonlocals: list[str] = []

    def read(self, ref: str) -> str:
        if ref.startswith("System::"):
            return f"system_variables[{ref.split('::', 1)[1]!r}]"
        ident, _ = self.scope.resolve(ref)
        if ident is None:
            logger.debug("Variable '%s' is not declared in any enclosing scope.", ref)
            return variable_identifier(ref)
        return ident

    def write(self, ref: str) -> str:
        ident = self.read(ref)
        if ref.startswith("System::") or self.scope.is_module:
            return ident
        _, owner = self.scope.resolve(ref)
        if owner is self.scope:
            return ident
        target = self.globals if owner is None or owner.is_module else self.nonlocals
        if ident not in target:
            target.append(ident)
        return ident

    def declarations(self) -> list[str]:
        lines = []
        if self.globals:
            lines.append(f"global {', '.join(self.globals)}")
        if self.nonlocals:
            lines.append(f"nonlocal {', '.join(self.nonlocals)}")
        return lines


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------


@dataclass
class FunctionEmission:
    """Emission result for a single top-level executable."""

    name: str
    display_name: str | None
    task_kind: TaskKind
    code: str
    untranslated: int = 0


@dataclass
class EmissionResult:
    """Aggregate result for a full package."""

    package_name: str
    entry_point: str
    header_code: str
    variables_code: str
    functions: list[FunctionEmission] = field(default_factory=list)
    footer_code: str = ""
    diagnostics: list[str] = field(default_factory=list)

    @property
    def full_code(self) -> str:
        """Assemble the complete program."""
        parts = [
            self.header_code,
            f"# {'-' * 75}",
            "# Global variables",
            f"# {'-' * 75}",
            "",
            self.variables_code,
            "",
            f"# {'-' * 75}",
            "# Package code",
            f"# {'-' * 75}",
            "",
            "",
            "\n\n".join(f.code for f in self.functions),
        ]
        return "\n".join(parts) + self.footer_code

    @property
    def untranslated_count(self) -> int:
        return len(self.diagnostics)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def _local(qualified: str) -> str:
    return qualified.split(":", 1)[-1]


def _one_line(text: str) -> str:
    return " ".join(text.split())


def _docstring(text: str) -> str:
    safe = _one_line(text).replace("\\", "\\\\").replace('"', "'")
    return f'"""{safe}"""'


def _assign_string(target: str, text: str) -> list[str]:
    """`target = <literal>` that survives re-indentation of the surrounding block."""
    parts = text.splitlines(keepends=True)
    if len(parts) <= 1:
        return [f"{target} = {text!r}"]
    return [f"{target} = (", *(f"    {p!r}" for p in parts), ")"]


def _indent(lines: list[str], prefix: str) -> list[str]:
    return [f"{prefix}{line}" if line else "" for line in lines]


def _is_truthy(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


def _is_expression_bound(variable: Node) -> bool:
    return bool(variable.lookup("Expression")) and _is_truthy(variable.lookup("EvaluateAsExpression"))


def _task_values(node: Node) -> dict[str, str]:
    """Flatten a task's design-time settings: its own properties/attributes, then its ObjectData payload."""
    values: dict[str, str] = {}
    for key, value in node.properties.items():
        # Run-time bindings live in node.expressions.
        if key not in node.expressions:
            values.setdefault(key, value)
    for key, value in _local_attributes(node).items():
        values.setdefault(key, value)
    data = node.find_child(OBJECT_DATA)
    if data is not None:
        for part in (data, *data.iter_descendants()):
            for key, value in _local_attributes(part).items():
                values.setdefault(key, value)
            for key, value in part.properties.items():
                if key not in part.expressions:
                    values.setdefault(key, value)
    return values


def _find_descendant(node: Node, local_kind: str) -> Node | None:
    for candidate in node.iter_descendants():
        if _local(candidate.kind) == local_kind:
            return candidate
    return None


def _local_attributes(node: Node) -> dict[str, str]:
    # Namespace declarations are not settings.
    return {_local(k): v for k, v in node.attributes.items() if k.split(":", 1)[0] != "xmlns"}


# ---------------------------------------------------------------------------
# Emission engine
# ---------------------------------------------------------------------------


class EmissionEngine:
    """
    Converts an ingested package into Python source text.

    Usage
    -----
    ::

        root = parse_package_file("Nightly.dtsx")
        contents = select_package_contents(root, "Nightly")
        result = EmissionEngine(GeneratorOptions()).emit_program(contents)
        print(result.full_code)
    """

    def __init__(
        self,
        options: GeneratorOptions | None = None,
        templates: TemplateProvider | None = None,
    ) -> None:
        self.options = options or GeneratorOptions()
        self.templates = templates or JinjaTemplateProvider()
        self._handlers: dict[TaskKind, Callable[[Node, _FunctionContext], list[str]]] = {
            TaskKind.PACKAGE: self._emit_sequence,
            TaskKind.SEQUENCE: self._emit_sequence,
            TaskKind.FOR_LOOP: self._emit_for_loop,
            TaskKind.FOREACH_LOOP: self._emit_foreach_loop,
            TaskKind.EXECUTE_SQL: self._emit_sql_task,
            TaskKind.SCRIPT: self._emit_script_task,
            TaskKind.EXECUTE_PROCESS: self._emit_execute_process,
            TaskKind.EXPRESSION: self._emit_expression_task,
            TaskKind.DATA_FLOW: self._emit_data_flow,
        }
        self.reset()

    def reset(self) -> None:
        """Forget every identifier handed out so far."""
        self._names = NameScope(reserved=set(RESERVED_IDENTIFIERS))
        self._function_names: dict[int, str] = {}
        self._variable_names: dict[int, str] = {}
        self.module_scope = VariableScope()
        self.diagnostics: list[str] = []
        self.entry_point: str | None = None

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    def function_name(self, node: Node) -> str:
        """Stable, collision-free Python identifier for an executable."""
        key = id(node)
        if key not in self._function_names:
            if node.name:
                base = sanitize_identifier(node.name)
            else:
                parent = node.parent
                index = 0
                if parent is not None:
                    index = next(i for i, c in enumerate(parent.children) if c is node)
                base = sanitize_identifier(f"{node.kind}_{index}")
            self._function_names[key] = self._names.claim(base)
        return self._function_names[key]

    def _claim_function_names(self, node: Node) -> None:
        self.function_name(node)
        for child in node.executable_children():
            self._claim_function_names(child)

    @staticmethod
    def qualified_variable_name(node: Node) -> str:
        namespace = node.lookup("Namespace") or "User"
        return f"{namespace}::{node.name or ''}"

    def _declare_variable(self, node: Node, scope: VariableScope) -> str:
        key = id(node)
        if key not in self._variable_names:
            self._variable_names[key] = self._names.claim(variable_identifier(node.name or "var"))
        ident = self._variable_names[key]
        scope.declare(self.qualified_variable_name(node), ident)
        return ident

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def _untranslated(self, message: str) -> None:
        logger.warning(message)
        warnings.warn(message, UntranslatedConstructWarning, stacklevel=3)
        self.diagnostics.append(message)

    def _translate(self, source: str, ctx: _FunctionContext) -> TranslatedExpression:
        return translate_expression(source, ctx.read)

    def _statement_lines(self, source: str | None, ctx: _FunctionContext, what: str) -> list[str]:
        if not source or not source.strip():
            return []
        translated = self._translate(source, ctx)
        if not translated.ok:
            self._untranslated(f"Untranslated {what} expression '{_one_line(source)}': {translated.reason}")
            return [f"# untranslated expression: {_one_line(source)}"]
        if translated.target is not None:
            ctx.write(translated.variables[0])
        return [translated.as_statement()]

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def emit_variable(
        self,
        node: Node,
        indent: str = "",
        as_global: bool = True,
        scope: VariableScope | None = None,
    ) -> str:
        """One declaration statement for a `DTS:Variable` node."""
        scope = scope or self.module_scope
        ident = self._declare_variable(node, scope)
        qualified = self.qualified_variable_name(node)

        value_node = node.find_child(VARIABLE_VALUE)
        type_code = node.get_property("DataType")
        if type_code is None and value_node is not None:
            type_code = value_node.lookup("DataType")
        raw = node.get_property("Value")
        if raw is None and value_node is not None:
            raw = value_node.content or ""

        py_type = _PY_TYPES.get((type_code or "").strip())
        comment = f"  # {qualified}"
        literal: str | None = None
        annotation = py_type.annotation if py_type else "Any"

        expression = node.lookup("Expression")
        if _is_expression_bound(node):
            translated = self._translate(expression, _FunctionContext(scope))
            if translated.ok and translated.target is None:
                literal = translated.code
            else:
                self._untranslated(
                    f"Untranslated expression on variable '{qualified}': {_one_line(expression)}"
                )
                comment += f"; untranslated expression: {_one_line(expression)}"

        if literal is None and py_type is not None:
            try:
                literal = py_type.literal(raw or "")
            except ValueError as exc:
                logger.debug("Variable '%s' value %r not convertible: %s", qualified, raw, exc)
                annotation = "Any"
        if literal is None:
            annotation = "Any"
            literal = repr(raw) if raw else "None"

        if as_global:
            return f"{indent}{ident}: {annotation} = {literal}{comment}"
        return f"{indent}{ident} = {literal}{comment}"

    def _declaration_order(self, variables: list[Node]) -> list[Node]:
        """
        Plain variables in document order, then expression-bound ones after
        every variable their expression reads. Cycles keep document order.
        """
        plain = [v for v in variables if not _is_expression_bound(v)]
        pending = [v for v in variables if _is_expression_bound(v)]
        bound_idents = {self._variable_names[id(v)]: v for v in pending}

        depends_on: dict[int, set[str]] = {}
        for variable in pending:
            refs = translate_expression(variable.lookup("Expression") or "").variables
            idents = {self.module_scope.resolve(ref)[0] for ref in refs}
            depends_on[id(variable)] = (idents & bound_idents.keys()) - {self._variable_names[id(variable)]}

        ordered = list(plain)
        placed: set[str] = set()
        while pending:
            ready = next((v for v in pending if depends_on[id(v)] <= placed), pending[0])
            pending.remove(ready)
            ordered.append(ready)
            placed.add(self._variable_names[id(ready)])
        return ordered

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def emit_function(
        self,
        node: Node,
        indent: str = "",
        enclosing_scope: VariableScope | None = None,
    ) -> str:
        """The full `def` for one executable, nested children included."""
        name = self.function_name(node)
        kind = classify_executable(node)
        display = node.name or name
        scope = VariableScope(parent=enclosing_scope or self.module_scope, function_name=name)
        ctx = _FunctionContext(scope)
        step = self.options.indent

        label = _KIND_LABELS[kind]
        if kind is TaskKind.UNKNOWN and node.executable_type:
            label = f"{label} of type {node.executable_type}"

        body: list[str] = []
        try:
            for variable in node.scoped_variables():
                body.append(self.emit_variable(variable, "", as_global=False, scope=scope))
            if _is_truthy(node.lookup("Disabled")):
                body.append(f'logger.info("Skipping disabled task %s.", {display!r})')
            else:
                body.extend(self._property_expression_lines(node, kind, name, ctx))
                handler = self._handlers.get(kind, self._emit_unknown)
                body.extend(handler(node, ctx))
        except Exception as exc:
            logger.error("Emission failed for '%s': %s", display, exc, exc_info=True)
            body = [f"# ERROR emitting {display!r}: {_one_line(str(exc))}", "pass"]
            ctx = _FunctionContext(scope)
            self.diagnostics.append(f"Emission failed for '{display}': {exc}")

        lines = [
            f"def {name}():",
            *_indent(
                [
                    _docstring(f"{label}: {display}."),
                    *ctx.declarations(),
                    f'logger.info("Starting %s", {display!r})',
                    *body,
                ],
                step,
            ),
        ]
        return "\n".join(_indent(lines, indent)) + "\n"

    def _property_expression_lines(
        self, node: Node, kind: TaskKind, name: str, ctx: _FunctionContext
    ) -> list[str]:
        consumed = _CONSUMED_EXPRESSIONS.get(kind, frozenset())
        pending = [(k, v) for k, v in node.expressions.items() if k not in consumed]
        if not pending:
            return []
        lines = [f"props = task_properties.setdefault({name!r}, {{}})"]
        for prop, source in pending:
            translated = self._translate(source, ctx)
            if translated.ok and translated.target is None:
                lines.append(f"props[{prop!r}] = {translated.code}")
            else:
                self._untranslated(
                    f"Untranslated property expression '{prop}' on '{node.name}': {_one_line(source)}"
                )
                lines.append(f"# untranslated expression: {prop} = {_one_line(source)}")
        return lines

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def _nested_functions(self, node: Node, ctx: _FunctionContext) -> tuple[list[str], list[str]]:
        """Nested `def` lines for each child executable, and the calls that run them in order."""
        defs: list[str] = []
        calls: list[str] = []
        for child in node.executable_children():
            defs.extend(self.emit_function(child, "", ctx.scope).splitlines())
            defs.append("")
            calls.append(f"{self.function_name(child)}()")
        return defs, calls

    def _emit_sequence(self, node: Node, ctx: _FunctionContext) -> list[str]:
        defs, calls = self._nested_functions(node, ctx)
        return defs + (calls or ["pass"])

    def _emit_for_loop(self, node: Node, ctx: _FunctionContext) -> list[str]:
        defs, calls = self._nested_functions(node, ctx)
        lines = list(defs)
        lines.extend(self._statement_lines(node.lookup("InitExpression"), ctx, "for-loop init"))

        condition = "False"
        eval_source = node.lookup("EvalExpression")
        if eval_source and eval_source.strip():
            translated = self._translate(eval_source, ctx)
            if translated.ok and translated.target is None:
                condition = translated.code
            else:
                self._untranslated(
                    f"Untranslated for-loop condition on '{node.name}': {_one_line(eval_source)}"
                )
                lines.append(f"# untranslated expression: {_one_line(eval_source)}")

        loop_body = calls + self._statement_lines(node.lookup("AssignExpression"), ctx, "for-loop assign")
        lines.append(f"while {condition}:")
        lines.extend(_indent(loop_body or ["pass"], self.options.indent))
        return lines

    def _emit_foreach_loop(self, node: Node, ctx: _FunctionContext) -> list[str]:
        defs, calls = self._nested_functions(node, ctx)
        lines = list(defs)

        enumerator = node.find_child("DTS:ForEachEnumerator")
        items_code = self._foreach_items(enumerator, ctx) if enumerator is not None else None
        if items_code is None:
            enum_type = enumerator.lookup("CreationName") if enumerator is not None else None
            self._untranslated(f"Untranslated foreach enumerator '{enum_type}' on '{node.name}'.")
            lines.append(f"# untranslated expression: foreach enumerator {enum_type}")
            lines.append("items: list = []")
        else:
            lines.append(f"items = {items_code}")

        loop_body: list[str] = []
        mappings = node.find_child("DTS:ForEachVariableMappings")
        for mapping in mappings.children if mappings is not None else []:
            variable = mapping.lookup("VariableName")
            index = mapping.lookup("ValueIndex") or "0"
            if variable:
                loop_body.append(f"{ctx.write(variable)} = item[{int(index)}]")
        loop_body.extend(calls)

        lines.append("for item in items:")
        lines.extend(_indent(loop_body or ["pass"], self.options.indent))
        return lines

    def _foreach_items(self, enumerator: Node, ctx: _FunctionContext) -> str | None:
        enum_type = (enumerator.lookup("CreationName") or "").upper()
        values: dict[str, str] = {}
        for part in (enumerator, *enumerator.iter_descendants()):
            for key, value in part.properties.items():
                values.setdefault(key, value)
            for key, value in _local_attributes(part).items():
                values.setdefault(key, value)

        if "FILEENUMERATOR" in enum_type:
            folder = values.get("Folder") or values.get("Directory")
            if not folder:
                return None
            spec = values.get("FileSpec") or "*.*"
            walker = "rglob" if _is_truthy(values.get("Recurse")) else "glob"
            return f"[(str(p),) for p in sorted(Path({folder!r}).{walker}({spec!r}))]"
        if "ADOENUMERATOR" in enum_type:
            source = values.get("VarName") or values.get("EnumeratorObject")
            if not source:
                return None
            return f"list({ctx.read(source)} or [])"
        return None

    # ------------------------------------------------------------------
    # Leaf tasks
    # ------------------------------------------------------------------

    def _resolve_connection(self, node: Node, reference: str | None) -> str:
        """Connection manager name for a GUID reference, found from the package root."""
        if not reference:
            return ""
        wanted = reference.strip().strip("{}").lower()
        for candidate in node.root.iter_descendants():
            if candidate.kind != CONNECTION_MANAGER:
                continue
            if (candidate.dtsid or "").strip().strip("{}").lower() == wanted:
                return candidate.name or reference
        # Older packages may reference the connection by name directly.
        return reference

    def _variable_type_code(self, node: Node, reference: str) -> str | None:
        bare = reference.split("::", 1)[-1]
        for owner in (node, *node.ancestors()):
            for variable in owner.scoped_variables():
                if variable.name == bare:
                    value_node = variable.find_child(VARIABLE_VALUE)
                    code = variable.get_property("DataType")
                    if code is None and value_node is not None:
                        code = value_node.lookup("DataType")
                    return code
        return None

    def _emit_sql_task(self, node: Node, ctx: _FunctionContext) -> list[str]:
        values = _task_values(node)
        task_data = _find_descendant(node, "SqlTaskData") or node
        connection = self._resolve_connection(node, values.get("Connection"))
        if not connection:
            self._untranslated(f"Execute SQL task '{node.name}' has no connection.")

        lines: list[str] = []
        sql_source = values.get("SqlStatementSource", "")
        bound = node.expressions.get("SqlStatementSource")
        translated = self._translate(bound, ctx) if bound else None
        if translated is not None and translated.ok and translated.target is None:
            lines.append(f"sql = {translated.code}")
        else:
            if bound:
                self._untranslated(
                    f"Untranslated SqlStatementSource expression on '{node.name}': {_one_line(bound)}"
                )
                lines.append(f"# untranslated expression: {_one_line(bound)}")
            lines.extend(_assign_string("sql", sql_source))

        args: list[str] = []
        for binding in task_data.children:
            if _local(binding.kind) != "ParameterBinding":
                continue
            attrs = _local_attributes(binding)
            variable = attrs.get("DtsVariableName", "")
            direction = attrs.get("ParameterDirection", "Input")
            if direction.lower() != "input":
                self._untranslated(
                    f"{direction} parameter '{attrs.get('ParameterName')}' on '{node.name}' is not supported."
                )
                lines.append(f"# untranslated expression: {direction} parameter bound to {variable}")
                continue
            arg = ctx.read(variable)
            if (
                self.options.sql_mode is SqlCompatibility.SQL2008
                and self._variable_type_code(node, variable) == OBJECT_TYPE_CODE
            ):
                arg = f"table_parameter({arg})"
            args.append(arg)
        params = f"({args[0]},)" if len(args) == 1 else f"({', '.join(args)})"

        helper = "run_sql_batches" if self.options.use_smo else "execute_sql"
        call = f"{helper}({connection!r}, sql, {params})"
        result_type = values.get("ResultType", "ResultSetType_None")
        results = [
            _local_attributes(b) for b in task_data.children if _local(b.kind) == "ResultBinding"
        ]
        if not results or result_type.endswith("_None"):
            lines.append(call)
            return lines

        lines.append(f"rows = {call}")
        if result_type.endswith("_SingleRow"):
            assigns = []
            for attrs in results:
                target = ctx.write(attrs.get("DtsVariableName", ""))
                column = attrs.get("ResultName", "0")
                getter = f"rows[0][{int(column)}]" if column.isdigit() else f"getattr(rows[0], {column!r})"
                assigns.append(f"{target} = {getter}")
            lines.append("if rows:")
            lines.extend(_indent(assigns, self.options.indent))
        else:
            for attrs in results:
                lines.append(f"{ctx.write(attrs.get('DtsVariableName', ''))} = rows")
        return lines

    def _emit_script_task(self, node: Node, ctx: _FunctionContext) -> list[str]:
        values = _task_values(node)
        language = values.get("ScriptLanguage") or values.get("Language") or "unknown language"
        self._untranslated(f"Script task '{node.name}' ({language}) was not translated.")

        lines = [f"# untranslated script task ({language})"]
        for key in ("ReadOnlyVariables", "ReadWriteVariables"):
            if values.get(key):
                lines.append(f"# {key}: {values[key]}")
        for item in node.iter_descendants():
            item_name = _local_attributes(item).get("Name", "")
            if _local(item.kind) != "ProjectItem" or not item_name.lower().endswith((".cs", ".vb")):
                continue
            lines.append(f"# --- {item_name} ---")
            lines.extend(f"# {line}".rstrip() for line in (item.content or "").splitlines())
        lines.append(f'logger.warning("Script task %s was not translated.", {node.name or ""!r})')
        return lines

    def _emit_execute_process(self, node: Node, ctx: _FunctionContext) -> list[str]:
        values = _task_values(node)
        executable = values.get("Executable")
        if not executable:
            self._untranslated(f"Execute process task '{node.name}' has no executable.")
            return ["# untranslated expression: execute process without an executable", "pass"]

        arguments = values.get("Arguments", "")
        cwd = values.get("WorkingDirectory") or None
        lines = [
            f"result = subprocess.run([{executable!r}, *shlex.split({arguments!r})], "
            f"cwd={cwd!r}, check=False)"
        ]
        if _is_truthy(values.get("FailTaskIfReturnCodeIsNotSuccessValue", "True")):
            success = values.get("SuccessValue", "0").strip() or "0"
            lines.append(f"if result.returncode != {int(success)}:")
            lines.append(
                f'{self.options.indent}raise RuntimeError("Process exited with code %d" % result.returncode)'
            )
        return lines

    def _emit_expression_task(self, node: Node, ctx: _FunctionContext) -> list[str]:
        source = node.expressions.get("Expression") or _task_values(node).get("Expression")
        lines = self._statement_lines(source, ctx, "expression task")
        return lines or ["pass"]

    def _emit_data_flow(self, node: Node, ctx: _FunctionContext) -> list[str]:
        self._untranslated(f"Data flow task '{node.name}' was not translated.")
        lines = ["# untranslated data flow; components:"]
        for component in node.iter_descendants():
            if _local(component.kind) != "component":
                continue
            attrs = _local_attributes(component)
            lines.append(f"#   - {attrs.get('name', '?')} ({attrs.get('componentClassID', '?')})")
        lines.append(f'logger.warning("Data flow %s was not translated.", {node.name or ""!r})')
        return lines

    def _emit_unknown(self, node: Node, ctx: _FunctionContext) -> list[str]:
        kind = node.executable_type or node.kind
        self._untranslated(f"No translation for task '{node.name}' of type '{kind}'; emitted a stub.")
        return [f"# untranslated task type {kind!r}", "pass"]

    # ------------------------------------------------------------------
    # Whole program
    # ------------------------------------------------------------------

    def emit_program(self, contents: PackageContents, app_name: str | None = None) -> EmissionResult:
        """
        Emit the complete program for a selected package.

        Raises
        ------
        EmptyExecutableSetError
            If the package has no top-level executables.
        """
        require_executables(contents)
        self.reset()
        namespace = app_name or contents.package_name
        logger.info("Emitting package '%s'.", namespace)

        for variable in contents.variables:
            self._declare_variable(variable, self.module_scope)
        for executable in contents.executables:
            self._claim_function_names(executable)
        self.entry_point = self.function_name(contents.executables[0])

        variables_code = "\n".join(
            self.emit_variable(v, "", as_global=True) for v in self._declaration_order(contents.variables)
        )

        functions: list[FunctionEmission] = []
        for executable in contents.executables:
            before = len(self.diagnostics)
            functions.append(
                FunctionEmission(
                    name=self.function_name(executable),
                    display_name=executable.name,
                    task_kind=classify_executable(executable),
                    code=self.emit_function(executable, "", self.module_scope),
                    untranslated=len(self.diagnostics) - before,
                )
            )

        sql_helpers = self.templates.render(
            SQL_SMO_HELPERS if self.options.use_smo else GENERIC_SQL_HELPERS
        )
        table_helpers = (
            self.templates.render(TABLE_PARAMETER_HELPERS)
            if self.options.sql_mode is SqlCompatibility.SQL2008
            else ""
        )
        header = self.templates.render(
            PROGRAM_HEADER,
            namespace=namespace,
            main_function=self.entry_point,
            arithmetic_helpers=self.templates.render(ARITHMETIC_HELPERS),
            sql_helpers=sql_helpers,
            table_parameter_helpers=table_helpers,
        )
        footer = self.templates.render(PROGRAM_FOOTER, main_function=self.entry_point)

        logger.info(
            "Emission complete: %d functions, entry point %s(), %d untranslated constructs.",
            len(functions),
            self.entry_point,
            len(self.diagnostics),
        )
        return EmissionResult(
            package_name=namespace,
            entry_point=self.entry_point,
            header_code=header,
            variables_code=variables_code,
            functions=functions,
            footer_code=footer,
            diagnostics=list(self.diagnostics),
        )
