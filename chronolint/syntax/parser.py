from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

from chronolint.errors import SourceParseError
from chronolint.syntax.nodes import (
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    CallExpression,
    ClassNode,
    Comment,
    ConditionalExpression,
    ExpressionStatement,
    Function,
    GenericNode,
    Identifier,
    ImportDeclaration,
    ImportSpecifier,
    LogicalExpression,
    MemberExpression,
    NewExpression,
    Node,
    NumberLiteral,
    ObjectExpression,
    Parameter,
    Program,
    Property,
    ReturnStatement,
    StringLiteral,
    TemplateLiteral,
    TypeCast,
    UnaryExpression,
    UpdateExpression,
    VariableDeclaration,
    VariableDeclarator,
)

LOGGER = logging.getLogger(__name__)

LANGUAGE_BY_SUFFIX = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

_IDENTIFIER_TYPES = {
    "identifier",
    "property_identifier",
    "shorthand_property_identifier",
    "shorthand_property_identifier_pattern",
    "private_property_identifier",
    "statement_identifier",
    "type_identifier",
}
_FUNCTION_TYPES = {
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
    "function_signature",
}
_CLASS_TYPES = {"class_declaration", "abstract_class_declaration", "class"}
_LOGICAL_OPERATORS = {"&&", "||", "??"}


def language_for_path(path: str | Path) -> str | None:
    return LANGUAGE_BY_SUFFIX.get(Path(path).suffix.lower())


@lru_cache(maxsize=None)
def _get_parser(language: str):
    try:
        from tree_sitter_language_pack import get_parser
    except ImportError as exc:  # pragma: no cover
        raise SourceParseError(
            "tree-sitter-language-pack is required to parse JS/TS sources"
        ) from exc
    return get_parser(language)


def parse_source(text: str, language: str = "typescript") -> Program:
    """Parse ``text`` and convert it into the typed node model."""
    parser = _get_parser(language)
    data = text.encode("utf-8")
    tree = parser.parse(data)
    program = _Converter(text, data).convert_program(tree.root_node)
    if program.has_error:
        LOGGER.debug("recovered from syntax errors while parsing %s source", language)
    return program


class _Converter:
    def __init__(self, text: str, data: bytes) -> None:
        self.text = text
        self.comments: dict[int, Comment] = {}
        self._line_starts = [0] + [i + 1 for i, ch in enumerate(text) if ch == "\n"]
        self._char_at: list[int] | None = None
        if len(data) != len(text):
            table: list[int] = []
            for index, ch in enumerate(text):
                table.extend([index] * len(ch.encode("utf-8")))
            table.append(len(text))
            self._char_at = table
        self._handlers: dict[str, Callable[[Any], Node]] = {
            "expression_statement": self._expression_statement,
            "lexical_declaration": self._variable_declaration,
            "variable_declaration": self._variable_declaration,
            "variable_declarator": self._variable_declarator,
            "ambient_declaration": self._ambient_declaration,
            "export_statement": self._export_statement,
            "statement_block": self._block,
            "return_statement": self._return,
            "number": self._number,
            "string": self._string,
            "template_string": self._template,
            "member_expression": self._member,
            "subscript_expression": self._subscript,
            "call_expression": self._call,
            "new_expression": self._new,
            "binary_expression": self._binary,
            "unary_expression": self._unary,
            "update_expression": self._update,
            "ternary_expression": self._ternary,
            "assignment_expression": self._assignment,
            "augmented_assignment_expression": self._assignment,
            "object": self._object,
            "pair": self._pair,
            "pair_pattern": self._pair,
            "field_definition": self._field_definition,
            "public_field_definition": self._field_definition,
            "as_expression": self._cast,
            "satisfies_expression": self._cast,
            "non_null_expression": self._cast,
            "type_assertion": self._cast,
            "import_statement": self._import,
            "for_in_statement": self._for_in,
        }

    # -- helpers ---------------------------------------------------------

    def _offset(self, byte_offset: int) -> int:
        if self._char_at is None:
            return byte_offset
        return self._char_at[min(byte_offset, len(self._char_at) - 1)]

    def _span(self, ts) -> dict[str, Any]:
        start = self._offset(ts.start_byte)
        end = self._offset(ts.end_byte)
        return {"start": start, "end": end, "text": self.text[start:end]}

    def _line(self, offset: int) -> int:
        low, high = 0, len(self._line_starts)
        while low < high:
            mid = (low + high) // 2
            if self._line_starts[mid] <= offset:
                low = mid + 1
            else:
                high = mid
        return low

    def _named(self, ts) -> list:
        out = []
        for child in ts.named_children:
            if child.type in {"comment", "html_comment"}:
                self._record_comment(child)
                continue
            out.append(child)
        return out

    def _record_comment(self, ts) -> None:
        span = self._span(ts)
        if span["start"] in self.comments:
            return
        self.comments[span["start"]] = Comment(
            start=span["start"],
            end=span["end"],
            text=span["text"],
            line=self._line(span["start"]),
            end_line=self._line(max(span["end"] - 1, span["start"])),
        )

    def _opt(self, ts) -> Node | None:
        return self.convert(ts) if ts is not None else None

    @staticmethod
    def _has_token(ts, token: str) -> bool:
        return any(child.type == token for child in ts.children)

    def _annotation(self, ts) -> str | None:
        if ts is None:
            return None
        raw = self._span(ts)["text"].strip()
        if raw.startswith(":"):
            raw = raw[1:]
        return raw.strip() or None

    # -- conversion ------------------------------------------------------

    def convert_program(self, root) -> Program:
        body = [self.convert(child) for child in self._named(root) if child.type != "hash_bang_line"]
        program = Program(
            start=0,
            end=len(self.text),
            text=self.text,
            body=body,
            comments=[],
            source=self.text,
            has_error=bool(root.has_error),
            line_starts=self._line_starts,
        )
        self._collect_all_comments(root)
        program.comments = [self.comments[key] for key in sorted(self.comments)]
        _link(program)
        return program

    def _collect_all_comments(self, root) -> None:
        stack = [root]
        while stack:
            current = stack.pop()
            for child in current.children:
                if child.type in {"comment", "html_comment"}:
                    self._record_comment(child)
                elif child.child_count:
                    stack.append(child)

    def convert(self, ts) -> Node:
        kind = ts.type
        if kind == "parenthesized_expression":
            inner = self._named(ts)
            if len(inner) == 1:
                return self.convert(inner[0])
        if kind in _IDENTIFIER_TYPES:
            span = self._span(ts)
            return Identifier(name=span["text"], **span)
        if kind in _FUNCTION_TYPES:
            return self._function(ts)
        if kind in _CLASS_TYPES:
            return self._class(ts)
        handler = self._handlers.get(kind)
        if handler is not None:
            return handler(ts)
        return GenericNode(
            kind=kind,
            items=[self.convert(child) for child in self._named(ts)],
            **self._span(ts),
        )

    def _expression_statement(self, ts) -> Node:
        named = self._named(ts)
        return ExpressionStatement(
            expression=self.convert(named[0]) if named else None,
            **self._span(ts),
        )

    def _variable_declaration(self, ts) -> Node:
        keyword = ts.children[0] if ts.children else None
        kind = keyword.type if keyword is not None else "var"
        declarations = [
            self._variable_declarator(child)
            for child in self._named(ts)
            if child.type == "variable_declarator"
        ]
        return VariableDeclaration(
            kind=kind,
            declarations=declarations,
            kind_start=self._offset(keyword.start_byte) if keyword is not None else 0,
            kind_end=self._offset(keyword.end_byte) if keyword is not None else 0,
            **self._span(ts),
        )

    def _variable_declarator(self, ts) -> VariableDeclarator:
        return VariableDeclarator(
            id=self._opt(ts.child_by_field_name("name")),
            init=self._opt(ts.child_by_field_name("value")),
            annotation=self._annotation(ts.child_by_field_name("type")),
            **self._span(ts),
        )

    def _ambient_declaration(self, ts) -> Node:
        named = self._named(ts)
        inner = [self.convert(child) for child in named]
        if len(inner) == 1 and isinstance(inner[0], VariableDeclaration):
            declaration = inner[0]
            declaration.declare = True
            span = self._span(ts)
            declaration.start = span["start"]
            declaration.text = span["text"]
            return declaration
        return GenericNode(kind=ts.type, items=inner, **self._span(ts))

    def _export_statement(self, ts) -> Node:
        items = [self.convert(child) for child in self._named(ts)]
        for item in items:
            if isinstance(item, VariableDeclaration):
                item.exported = True
        return GenericNode(kind=ts.type, items=items, **self._span(ts))

    def _block(self, ts) -> Node:
        return BlockStatement(
            body=[self.convert(child) for child in self._named(ts)],
            **self._span(ts),
        )

    def _return(self, ts) -> Node:
        named = self._named(ts)
        return ReturnStatement(
            argument=self.convert(named[0]) if named else None,
            **self._span(ts),
        )

    def _number(self, ts) -> Node:
        span = self._span(ts)
        return NumberLiteral(value=_number_value(span["text"]), raw=span["text"], **span)

    def _string(self, ts) -> Node:
        span = self._span(ts)
        raw = span["text"]
        value = raw[1:-1] if len(raw) >= 2 else ""
        return StringLiteral(value=value, **span)

    def _template(self, ts) -> Node:
        substitutions = []
        for child in self._named(ts):
            if child.type == "template_substitution":
                substitutions.extend(self.convert(inner) for inner in self._named(child))
        return TemplateLiteral(substitutions=substitutions, **self._span(ts))

    def _member(self, ts) -> Node:
        return MemberExpression(
            object=self._opt(ts.child_by_field_name("object")),
            prop=self._opt(ts.child_by_field_name("property")),
            computed=False,
            optional=self._has_token(ts, "optional_chain") or self._has_token(ts, "?."),
            **self._span(ts),
        )

    def _subscript(self, ts) -> Node:
        return MemberExpression(
            object=self._opt(ts.child_by_field_name("object")),
            prop=self._opt(ts.child_by_field_name("index")),
            computed=True,
            optional=self._has_token(ts, "optional_chain") or self._has_token(ts, "?."),
            **self._span(ts),
        )

    def _arguments(self, ts) -> list[Node]:
        if ts is None:
            return []
        if ts.type == "template_string":
            return [self.convert(ts)]
        return [self.convert(child) for child in self._named(ts)]

    def _call(self, ts) -> Node:
        return CallExpression(
            callee=self._opt(ts.child_by_field_name("function")),
            arguments=self._arguments(ts.child_by_field_name("arguments")),
            optional=self._has_token(ts, "optional_chain") or self._has_token(ts, "?."),
            **self._span(ts),
        )

    def _new(self, ts) -> Node:
        return NewExpression(
            callee=self._opt(ts.child_by_field_name("constructor")),
            arguments=self._arguments(ts.child_by_field_name("arguments")),
            **self._span(ts),
        )

    def _operator(self, ts) -> str:
        operator = ts.child_by_field_name("operator")
        if operator is None:
            return ""
        return self._span(operator)["text"]

    def _binary(self, ts) -> Node:
        operator = self._operator(ts)
        cls = LogicalExpression if operator in _LOGICAL_OPERATORS else BinaryExpression
        return cls(
            operator=operator,
            left=self._opt(ts.child_by_field_name("left")),
            right=self._opt(ts.child_by_field_name("right")),
            **self._span(ts),
        )

    def _unary(self, ts) -> Node:
        return UnaryExpression(
            operator=self._operator(ts),
            argument=self._opt(ts.child_by_field_name("argument")),
            **self._span(ts),
        )

    def _update(self, ts) -> Node:
        return UpdateExpression(
            operator=self._operator(ts),
            argument=self._opt(ts.child_by_field_name("argument")),
            **self._span(ts),
        )

    def _ternary(self, ts) -> Node:
        return ConditionalExpression(
            test=self._opt(ts.child_by_field_name("condition")),
            consequent=self._opt(ts.child_by_field_name("consequence")),
            alternate=self._opt(ts.child_by_field_name("alternative")),
            **self._span(ts),
        )

    def _assignment(self, ts) -> Node:
        operator = self._operator(ts) if ts.type == "augmented_assignment_expression" else "="
        return AssignmentExpression(
            operator=operator,
            left=self._opt(ts.child_by_field_name("left")),
            right=self._opt(ts.child_by_field_name("right")),
            **self._span(ts),
        )

    def _object(self, ts) -> Node:
        properties: list[Node] = []
        for child in self._named(ts):
            if child.type == "shorthand_property_identifier":
                span = self._span(child)
                properties.append(
                    Property(
                        key=None,
                        value=Identifier(name=span["text"], **span),
                        shorthand=True,
                        **span,
                    )
                )
            else:
                properties.append(self.convert(child))
        return ObjectExpression(properties=properties, **self._span(ts))

    def _pair(self, ts) -> Node:
        key_ts = ts.child_by_field_name("key")
        computed = key_ts is not None and key_ts.type == "computed_property_name"
        if computed:
            inner = self._named(key_ts)
            key = self.convert(inner[0]) if inner else None
        else:
            key = self._opt(key_ts)
        return Property(
            key=key,
            value=self._opt(ts.child_by_field_name("value")),
            computed=computed,
            **self._span(ts),
        )

    def _field_definition(self, ts) -> Node:
        key_ts = ts.child_by_field_name("name") or ts.child_by_field_name("property")
        return Property(
            key=self._opt(key_ts),
            value=self._opt(ts.child_by_field_name("value")),
            **self._span(ts),
        )

    def _cast(self, ts) -> Node:
        named = self._named(ts)
        if ts.type == "type_assertion":
            expression = next((c for c in named if c.type != "type_arguments"), None)
            annotation = next((c for c in named if c.type == "type_arguments"), None)
        else:
            expression = named[0] if named else None
            annotation = named[1] if len(named) > 1 else None
        text = self._span(annotation)["text"].strip("<> ") if annotation is not None else None
        return TypeCast(
            expression=self._opt(expression),
            annotation=text,
            **self._span(ts),
        )

    def _import(self, ts) -> Node:
        source_ts = ts.child_by_field_name("source")
        source = ""
        if source_ts is not None:
            source = self._span(source_ts)["text"][1:-1]
        declaration = ImportDeclaration(
            source=source,
            type_only=any(child.type == "type" for child in ts.children),
            **self._span(ts),
        )
        clause = next((c for c in self._named(ts) if c.type == "import_clause"), None)
        if clause is None:
            return declaration
        for child in self._named(clause):
            if child.type == "identifier":
                declaration.default = self.convert(child)  # type: ignore[assignment]
            elif child.type == "namespace_import":
                names = [c for c in self._named(child) if c.type == "identifier"]
                if names:
                    declaration.namespace = self.convert(names[0])  # type: ignore[assignment]
            elif child.type == "named_imports":
                for spec in self._named(child):
                    if spec.type == "import_specifier":
                        declaration.specifiers.append(self._import_specifier(spec))
        return declaration

    def _import_specifier(self, ts) -> ImportSpecifier:
        name_ts = ts.child_by_field_name("name")
        alias_ts = ts.child_by_field_name("alias")
        imported = self._span(name_ts)["text"] if name_ts is not None else ""
        if imported[:1] in {"'", '"'}:
            imported = imported[1:-1]
        local_ts = alias_ts if alias_ts is not None else name_ts
        local = self.convert(local_ts) if local_ts is not None else None
        return ImportSpecifier(
            imported=imported,
            local=local if isinstance(local, Identifier) else None,
            type_only=any(child.type == "type" for child in ts.children),
            **self._span(ts),
        )

    def _for_in(self, ts) -> Node:
        kind_ts = ts.child_by_field_name("kind")
        left_ts = ts.child_by_field_name("left")
        items: list[Node] = []
        if kind_ts is not None and left_ts is not None:
            left = self.convert(left_ts)
            items.append(
                VariableDeclaration(
                    kind=kind_ts.type,
                    declarations=[
                        VariableDeclarator(id=left, start=left.start, end=left.end, text=left.text)
                    ],
                    kind_start=self._offset(kind_ts.start_byte),
                    kind_end=self._offset(kind_ts.end_byte),
                    start=self._offset(kind_ts.start_byte),
                    end=left.end,
                    text=self.text[self._offset(kind_ts.start_byte) : left.end],
                )
            )
            skip = {left_ts.start_byte}
        else:
            skip = set()
        for child in self._named(ts):
            if child.start_byte in skip and child.type == left_ts.type:
                continue
            items.append(self.convert(child))
        return GenericNode(kind=ts.type, items=items, **self._span(ts))

    def _function(self, ts) -> Node:
        name: Node | None = None
        if ts.type != "method_definition":
            name = self._opt(ts.child_by_field_name("name"))
        params: list[Parameter] = []
        single = ts.child_by_field_name("parameter")
        if single is not None:
            params.append(self._parameter(single))
        formal = ts.child_by_field_name("parameters")
        if formal is not None:
            params.extend(self._parameter(child) for child in self._named(formal))
        return Function(
            name=name if isinstance(name, Identifier) else None,
            params=params,
            body=self._opt(ts.child_by_field_name("body")),
            is_arrow=ts.type == "arrow_function",
            is_declaration=ts.type.endswith("_declaration"),
            **self._span(ts),
        )

    def _parameter(self, ts) -> Parameter:
        span = self._span(ts)
        if ts.type in {"required_parameter", "optional_parameter"}:
            return Parameter(
                pattern=self._opt(ts.child_by_field_name("pattern")),
                annotation=self._annotation(ts.child_by_field_name("type")),
                default=self._opt(ts.child_by_field_name("value")),
                **span,
            )
        if ts.type == "assignment_pattern":
            return Parameter(
                pattern=self._opt(ts.child_by_field_name("left")),
                default=self._opt(ts.child_by_field_name("right")),
                **span,
            )
        return Parameter(pattern=self.convert(ts), **span)

    def _class(self, ts) -> Node:
        heritage = next((c for c in self._named(ts) if c.type == "class_heritage"), None)
        body = ts.child_by_field_name("body")
        members = [self.convert(child) for child in self._named(body)] if body is not None else []
        name = self._opt(ts.child_by_field_name("name"))
        return ClassNode(
            name=name if isinstance(name, Identifier) else None,
            heritage=self._opt(heritage),
            members=members,
            is_declaration=ts.type.endswith("_declaration"),
            **self._span(ts),
        )


def _number_value(raw: str) -> float | None:
    text = raw.replace("_", "")
    if text.endswith("n"):
        return None
    lower = text.lower()
    try:
        if lower.startswith("0x"):
            return float(int(text[2:], 16))
        if lower.startswith("0o"):
            return float(int(text[2:], 8))
        if lower.startswith("0b"):
            return float(int(text[2:], 2))
        if len(text) > 1 and text.startswith("0") and text.isdigit():
            if all(ch in "01234567" for ch in text):
                return float(int(text, 8))
        return float(text)
    except ValueError:
        return None


def _link(root: Node) -> None:
    stack = [root]
    while stack:
        current = stack.pop()
        for child in current.children():
            child.parent = current
            stack.append(child)
