"""Source-to-executable transform for React component files.

Parses ``.js``/``.jsx``/``.ts``/``.tsx`` sources with tree-sitter grammars and
re-emits them as plain ES modules:

- JSX is compiled for the automatic runtime (``react/jsx-runtime``).
- TypeScript-only syntax is erased (annotations, generics, interfaces,
  type aliases, ``declare``, ``as``/``satisfies``/``!``, type-only imports);
  enums are lowered to plain objects.
- Stylesheet imports are stripped and reported separately.
- Relative import specifiers are rewritten to absolute project paths.

Syntax errors never raise: they come back as ``TransformResult.error`` in the
``"<path>: <message> (<line>:<column>)"`` shape followed by a code frame.
"""

from __future__ import annotations

import hashlib
import html
import json
import re
from collections import OrderedDict
from collections.abc import Iterable
from functools import lru_cache
from typing import Optional

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_parser

from uigen.config import DEFAULT_CONFIG, PreviewConfig, RuntimeSettings
from uigen.transform.models import TransformResult
from uigen.vfs import paths

# ---------------------------------------------------------------------------
# Grammar selection
# ---------------------------------------------------------------------------

_GRAMMARS: dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
}


@lru_cache(maxsize=None)
def _parser_for(grammar: str) -> Parser:
    return get_parser(grammar)


def grammar_for(path: str) -> str:
    """Return the tree-sitter grammar name used for *path*."""
    for ext, grammar in _GRAMMARS.items():
        if path.endswith(ext):
            return grammar
    return "javascript"


# ---------------------------------------------------------------------------
# Node classification
# ---------------------------------------------------------------------------

# Erased entirely.
_TYPE_ONLY_NODES = frozenset({
    "type_annotation",
    "type_parameters",
    "type_arguments",
    "interface_declaration",
    "type_alias_declaration",
    "ambient_declaration",
    "implements_clause",
    "accessibility_modifier",
    "override_modifier",
    "abstract_method_signature",
    "index_signature",
    "function_signature",
    "asserts_annotation",
    "type_predicate_annotation",
    "omitting_type_annotation",
    "opting_type_annotation",
})

# Replaced by their wrapped expression.
_UNWRAP_FIRST = frozenset({"as_expression", "satisfies_expression", "non_null_expression"})

# Modifier keywords dropped wherever they appear as anonymous tokens.
_MODIFIER_TOKENS = frozenset({"readonly", "declare", "abstract", "override"})

# Prefix modifiers whose trailing whitespace is dropped along with them.
_PREFIX_MODIFIERS = _MODIFIER_TOKENS | {"accessibility_modifier", "override_modifier"}

# Optional / definite-assignment markers that only exist in TypeScript.
_OPTIONAL_MARKER_PARENTS = frozenset({"optional_parameter", "public_field_definition"})
_DEFINITE_MARKER_PARENTS = frozenset({"public_field_definition", "variable_declarator"})

_NAMESPACES = frozenset({"internal_module", "module"})

_JSX_ELEMENTS = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})
_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


class _CompileError(Exception):
    def __init__(self, node: Node, message: str):
        self.node = node
        super().__init__(message)


# ---------------------------------------------------------------------------
# JSX text helpers
# ---------------------------------------------------------------------------

def clean_jsx_text(text: str) -> str:
    """Collapse JSX text whitespace the way the React JSX transform does.

    Lines are trimmed (except the outer edges of the first and last lines),
    whitespace-only lines vanish, and the remaining lines are joined with a
    single space.
    """
    lines = re.split(r"\r\n|\n|\r", text)
    last_non_empty = 0
    for index, line in enumerate(lines):
        if re.search(r"[^ \t]", line):
            last_non_empty = index

    result = ""
    for index, line in enumerate(lines):
        trimmed = line.replace("\t", " ")
        if index != 0:
            trimmed = trimmed.lstrip(" ")
        if index != len(lines) - 1:
            trimmed = trimmed.rstrip(" ")
        if trimmed:
            if index != last_non_empty:
                trimmed += " "
            result += trimmed
    return result


def _js_string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Compiler (one instance per transform call)
# ---------------------------------------------------------------------------

class _Compiler:
    """Walks one syntax tree and emits the executable module body."""

    def __init__(self, source: str, path: str, runtime: RuntimeSettings) -> None:
        self.source = source
        self.src = b""
        self.path = path
        self.runtime = runtime
        self.from_dir = paths.parent(path)
        self.imports: set[str] = set()
        self.css_imports: set[str] = set()
        self.runtime_used: set[str] = set()
        self._overrides: dict[tuple[int, int, str], str] = {}

    # -- Entry point -------------------------------------------------------

    def run(self) -> TransformResult:
        try:
            self.src = self.source.encode("utf-8")
        except UnicodeEncodeError as exc:
            return TransformResult(error=self._encoding_error(exc.start))
        tree = _parser_for(grammar_for(self.path)).parse(self.src)
        failure = _first_syntax_error(tree.root_node)
        if failure is not None:
            node, message = failure
            return TransformResult(error=self._format_error(node, message))

        try:
            root = tree.root_node
            body = (
                self._slice(0, root.start_byte)
                + self.emit(root)
                + self._slice(root.end_byte, len(self.src))
            )
        except _CompileError as exc:
            return TransformResult(error=self._format_error(exc.node, str(exc)))
        except RecursionError:
            return TransformResult(error=f"{self.path}: Maximum nesting depth exceeded")

        return TransformResult(
            code=self._runtime_header() + body,
            imports=frozenset(self.imports),
            css_imports=frozenset(self.css_imports),
        )

    def _runtime_header(self) -> str:
        bindings = [
            f"{name} as _{name}"
            for name in ("jsx", "jsxs", "Fragment")
            if name in self.runtime_used
        ]
        if not bindings:
            return ""
        return f'import {{ {", ".join(bindings)} }} from "react/jsx-runtime";\n'

    # -- Source access -----------------------------------------------------

    def _slice(self, start: int, end: int) -> str:
        return self.src[start:end].decode("utf-8")

    def _text(self, node: Node) -> str:
        return self._slice(node.start_byte, node.end_byte)

    def _string_value(self, node: Node) -> str:
        return self._text(node)[1:-1]

    def _override(self, node: Node, replacement: str) -> None:
        self._overrides[(node.start_byte, node.end_byte, node.type)] = replacement

    # -- Generic emission --------------------------------------------------

    def emit(self, node: Node) -> str:
        key = (node.start_byte, node.end_byte, node.type)
        if key in self._overrides:
            return self._overrides[key]

        kind = node.type
        if kind in _TYPE_ONLY_NODES:
            return ""
        if kind in _UNWRAP_FIRST:
            return self.emit(node.named_children[0])
        if kind == "type_assertion":
            return self.emit(node.named_children[-1])
        if kind in _JSX_ELEMENTS:
            return self._emit_jsx(node)
        if kind == "import_statement":
            return self._emit_import(node)
        if kind == "export_statement":
            return self._emit_export(node)
        if kind == "call_expression":
            self._note_dynamic_import(node)
        if kind == "enum_declaration":
            return self._emit_enum(node)
        if kind in _NAMESPACES:
            return self._emit_namespace(node)
        if kind == "method_definition":
            self._lower_parameter_properties(node)
        return self._emit_children(node)

    def _emit_children(self, node: Node) -> str:
        if node.child_count == 0:
            return self._text(node)
        out: list[str] = []
        cursor = node.start_byte
        drop_space = False
        for child in node.children:
            gap = self._slice(cursor, child.start_byte)
            if drop_space:
                gap = gap.lstrip(" \t")
            emitted = self._emit_child(node, child)
            drop_space = child.type in _PREFIX_MODIFIERS and not emitted
            out.append(gap)
            out.append(emitted)
            cursor = child.end_byte
        out.append(self._slice(cursor, node.end_byte))
        return "".join(out)

    def _emit_child(self, parent: Node, child: Node) -> str:
        if not child.is_named:
            if child.type in _MODIFIER_TOKENS:
                return ""
            if child.type == "?" and parent.type in _OPTIONAL_MARKER_PARENTS:
                return ""
            if child.type == "!" and parent.type in _DEFINITE_MARKER_PARENTS:
                return ""
        return self.emit(child)

    # -- Module references -------------------------------------------------

    def _is_stylesheet(self, specifier: str) -> bool:
        return specifier.endswith(self.runtime.stylesheet_extensions)

    def _reference(self, specifier: str) -> str:
        """Record an executable reference and return its emitted form."""
        if specifier in (".", "..") or specifier.startswith(("./", "../")):
            specifier = paths.resolve_relative(self.from_dir, specifier)
        self.imports.add(specifier)
        return specifier

    def _rewrite_source(self, source: Node) -> None:
        quote = self._text(source)[0]
        emitted = self._reference(self._string_value(source))
        self._override(source, f"{quote}{emitted}{quote}")

    def _emit_import(self, node: Node) -> str:
        if any(child.type in ("type", "typeof") for child in node.children):
            return ""
        source = node.child_by_field_name("source")
        if source is None:
            # ``import x = require(...)`` and friends
            return self._emit_children(node)

        specifier = self._string_value(source)
        if self._is_stylesheet(specifier):
            self.css_imports.add(specifier)
            return ""

        clause = next((c for c in node.named_children if c.type == "import_clause"), None)
        if clause is not None and not self._strip_type_specifiers(clause, "import_specifier"):
            return ""

        self._rewrite_source(source)
        return self._emit_children(node)

    def _emit_export(self, node: Node) -> str:
        if any(child.type == "type" for child in node.children):
            return ""
        declaration = node.child_by_field_name("declaration")
        if declaration is not None and (
            declaration.type in _TYPE_ONLY_NODES
            or (declaration.type in _NAMESPACES and _declares_only_types(declaration))
        ):
            return ""

        clause = next((c for c in node.named_children if c.type == "export_clause"), None)
        if clause is not None and not self._strip_type_specifiers(clause, "export_specifier"):
            return ""

        source = node.child_by_field_name("source")
        if source is not None:
            self._rewrite_source(source)
        return self._emit_children(node)

    def _strip_type_specifiers(self, clause: Node, specifier_type: str) -> bool:
        """Drop inline ``type`` specifiers. Returns ``False`` if nothing is left."""
        groups = [clause] if clause.type == "export_clause" else [
            c for c in clause.named_children if c.type == "named_imports"
        ]
        keeps_binding = any(
            c.type in ("identifier", "namespace_import") for c in clause.named_children
        )
        for group in groups:
            specifiers = [c for c in group.named_children if c.type == specifier_type]
            kept = [
                s for s in specifiers
                if not any(t.type in ("type", "typeof") for t in s.children)
            ]
            if len(kept) != len(specifiers):
                if not kept and not keeps_binding:
                    return False
                self._override(group, "{ " + ", ".join(self._text(s) for s in kept) + " }")
            if kept:
                keeps_binding = True
        return keeps_binding or not groups

    def _note_dynamic_import(self, node: Node) -> None:
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is None or function.type != "import" or arguments is None:
            return
        first = next((a for a in arguments.named_children if a.type != "comment"), None)
        if first is not None and first.type == "string":
            self._rewrite_source(first)

    # -- TypeScript enums --------------------------------------------------

    def _emit_enum(self, node: Node) -> str:
        name = self._text(node.child_by_field_name("name"))
        body = node.child_by_field_name("body")
        members: list[str] = []
        next_value: Optional[int] = 0

        for member in body.named_children if body is not None else ():
            if member.type == "comment":
                continue
            if member.type == "enum_assignment":
                key_node = member.child_by_field_name("name") or member.named_children[0]
                value_node = member.child_by_field_name("value") or member.named_children[-1]
                value = self.emit(value_node)
                try:
                    next_value = int(value.replace("_", ""), 0) + 1
                except ValueError:
                    next_value = None
            else:
                key_node = member
                value = str(next_value) if next_value is not None else "undefined"
                if next_value is not None:
                    next_value += 1
            members.append(f"{self._text(key_node)}: {value}")

        return f"const {name} = {{ {', '.join(members)} }};"

    def _emit_namespace(self, node: Node) -> str:
        if _declares_only_types(node):
            return ""
        raise _CompileError(node, "Namespaces are not supported")

    def _lower_parameter_properties(self, node: Node) -> None:
        """Turn ``constructor(private x)`` into an explicit ``this.x = x``.

        The assignments go first in the body, or right after a top-level
        ``super(...)`` call when there is one.
        """
        name = node.child_by_field_name("name")
        params = node.child_by_field_name("parameters")
        body = node.child_by_field_name("body")
        if name is None or self._text(name) != "constructor" or params is None or body is None:
            return

        names: list[str] = []
        for param in params.named_children:
            pattern = param.child_by_field_name("pattern")
            if (
                _is_parameter_property(param)
                and pattern is not None
                and pattern.type == "identifier"
            ):
                names.append(self._text(pattern))
        if not names:
            return
        assignments = "".join(f" this.{n} = {n};" for n in names)

        for statement in body.named_children:
            if _is_super_call(statement):
                self._override(statement, self.emit(statement) + assignments)
                return
        self._override(body, "{" + assignments + self._emit_children(body)[1:])

    # -- JSX ---------------------------------------------------------------

    def _emit_jsx(self, node: Node) -> str:
        opening: Optional[Node]
        if node.type == "jsx_self_closing_element":
            opening, start, end = node, node.end_byte, node.end_byte
        elif node.type == "jsx_fragment":
            # '<' '>' children '<' '/' '>'
            opening, start, end = None, node.children[1].end_byte, node.children[-3].start_byte
        else:
            named = node.named_children
            opening, closing = named[0], named[-1]
            self._check_closing_tag(opening, closing)
            start, end = opening.end_byte, closing.start_byte
        children = [
            c for c in node.named_children
            if start <= c.start_byte and c.end_byte <= end
            and (c.type == "jsx_expression" or c.type in _JSX_ELEMENTS)
        ]

        name_node = opening.child_by_field_name("name") if opening is not None else None
        element_type = self._jsx_type(name_node)
        props, key = self._jsx_props(opening) if opening is not None else ([], None)
        child_exprs, has_spread = self._jsx_children(start, end, children)

        function = "_jsx"
        if len(child_exprs) == 1 and not has_spread:
            props.append(f"children: {child_exprs[0]}")
        elif child_exprs:
            props.append(f"children: [{', '.join(child_exprs)}]")
            function = "_jsxs"
        self.runtime_used.add(function[1:])

        args = [element_type, "{ " + ", ".join(props) + " }" if props else "{}"]
        if key is not None:
            args.append(key)
        return f"{function}({', '.join(args)})"

    def _check_closing_tag(self, opening: Node, closing: Node) -> None:
        open_name = opening.child_by_field_name("name")
        close_name = closing.child_by_field_name("name")
        open_text = self._text(open_name) if open_name is not None else None
        close_text = self._text(close_name) if close_name is not None else None
        if open_text == close_text:
            return
        if open_text is None:
            raise _CompileError(closing, "Expected corresponding closing tag for JSX fragment")
        raise _CompileError(closing, f"Expected corresponding JSX closing tag for <{open_text}>")

    def _jsx_type(self, name_node: Optional[Node]) -> str:
        if name_node is None:
            self.runtime_used.add("Fragment")
            return "_Fragment"
        text = self._text(name_node)
        if name_node.type == "jsx_namespace_name":
            return _js_string(text)
        if name_node.type in ("identifier", "jsx_identifier"):
            if text[:1].islower() or "-" in text:
                return _js_string(text)
        return text

    def _jsx_props(self, opening: Node) -> tuple[list[str], Optional[str]]:
        props: list[str] = []
        key: Optional[str] = None
        for attribute in opening.named_children:
            if attribute.type == "jsx_expression":
                inner = self._expression_children(attribute)
                if inner:
                    props.append(self.emit(inner[0]))
                continue
            if attribute.type != "jsx_attribute":
                continue

            parts = [c for c in attribute.named_children if c.type != "comment"]
            name = self._text(parts[0])
            value = self._jsx_attribute_value(parts[1]) if len(parts) > 1 else "true"
            if name == "key":
                key = value
            else:
                prop_name = name if _IDENTIFIER.match(name) else _js_string(name)
                props.append(f"{prop_name}: {value}")
        return props, key

    def _jsx_attribute_value(self, value: Node) -> str:
        if value.type == "string":
            return _js_string(html.unescape(self._string_value(value)))
        if value.type == "jsx_expression":
            inner = self._expression_children(value)
            if not inner:
                raise _CompileError(
                    value, "JSX attributes must only be assigned a non-empty expression"
                )
            return self.emit(inner[0])
        return self.emit(value)

    def _expression_children(self, node: Node) -> list[Node]:
        return [c for c in node.named_children if c.type != "comment"]

    def _jsx_children(
        self, start: int, end: int, children: list[Node]
    ) -> tuple[list[str], bool]:
        """Compile the content between an element's tags.

        Text is taken from the raw source between non-text children so that
        whitespace handling does not depend on how the grammar tokenises it.
        """
        exprs: list[str] = []
        has_spread = False
        cursor = start

        def flush(text: str) -> None:
            cleaned = clean_jsx_text(html.unescape(text))
            if cleaned:
                exprs.append(_js_string(cleaned))

        for child in children:
            flush(self._slice(cursor, child.start_byte))
            cursor = child.end_byte
            if child.type == "jsx_expression":
                inner = self._expression_children(child)
                if not inner:
                    continue
                if inner[0].type == "spread_element":
                    has_spread = True
                exprs.append(self.emit(inner[0]))
            elif child.type in _JSX_ELEMENTS:
                exprs.append(self._emit_jsx(child))
        flush(self._slice(cursor, end))
        return exprs, has_spread

    # -- Error formatting --------------------------------------------------

    def _location(self, node: Node) -> tuple[int, int]:
        """Return the 1-based line and 0-based character column of *node*."""
        line_start = self.src.rfind(b"\n", 0, node.start_byte) + 1
        column = len(self.src[line_start:node.start_byte].decode("utf-8", errors="replace"))
        return node.start_point[0] + 1, column

    def _format_error(self, node: Node, message: str) -> str:
        line, column = self._location(node)
        return f"{self.path}: {message} ({line}:{column})\n\n{code_frame(self.source, line, column)}"

    def _encoding_error(self, offset: int) -> str:
        # Never echo the raw character back into the message.
        line = self.source.count("\n", 0, offset) + 1
        column = offset - (self.source.rfind("\n", 0, offset) + 1)
        char = ord(self.source[offset])
        return f"{self.path}: Invalid character U+{char:04X}, unpaired surrogate ({line}:{column})"


def _is_parameter_property(param: Node) -> bool:
    if param.type not in ("required_parameter", "optional_parameter"):
        return False
    return any(
        child.type in ("accessibility_modifier", "override_modifier", "readonly")
        for child in param.children
    )


def _is_super_call(statement: Node) -> bool:
    if statement.type != "expression_statement" or not statement.named_children:
        return False
    call = statement.named_children[0]
    function = call.child_by_field_name("function") if call.type == "call_expression" else None
    return function is not None and function.type == "super"


def _declares_only_types(namespace: Node) -> bool:
    body = namespace.child_by_field_name("body")
    if body is None:
        return True
    for statement in body.named_children:
        if statement.type == "export_statement":
            statement = statement.child_by_field_name("declaration") or statement
        if statement.type == "expression_statement" and statement.named_children:
            statement = statement.named_children[0]
        if statement.type in _NAMESPACES:
            if not _declares_only_types(statement):
                return False
        elif statement.type not in _TYPE_ONLY_NODES and statement.type != "comment":
            return False
    return True


def _first_syntax_error(node: Node) -> Optional[tuple[Node, str]]:
    """Return the first ERROR or MISSING node in document order."""
    if node.type == "ERROR":
        return node, "Unexpected token"
    if node.is_missing:
        return node, f'Unexpected token, expected "{node.type}"'
    if not node.has_error:
        return None
    for child in node.children:
        found = _first_syntax_error(child)
        if found is not None:
            return found
    return None


def code_frame(source: str, line: int, column: int, context: int = 2) -> str:
    """Render a Babel-style code frame pointing at ``line:column``."""
    lines = source.split("\n")
    first = max(1, line - context)
    last = min(len(lines), line + context)
    width = len(str(last))
    frame: list[str] = []
    for number in range(first, last + 1):
        marker = ">" if number == line else " "
        frame.append(f"{marker} {number:>{width}} | {lines[number - 1]}".rstrip())
        if number == line:
            frame.append(f"  {' ' * width} | {' ' * column}^")
    return "\n".join(frame)


# ---------------------------------------------------------------------------
# ModuleTransformer
# ---------------------------------------------------------------------------

class ModuleTransformer:
    """Converts one source file into an executable module body.

    Stateless per call apart from a bounded memo of previous results keyed by
    path and content hash, so rebuilding an unchanged file is free.
    """

    def __init__(self, config: PreviewConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self._cache: OrderedDict[tuple[str, str], TransformResult] = OrderedDict()

    def transform(
        self,
        source: str,
        path: str,
        known_paths: Iterable[str] | None = None,
    ) -> TransformResult:
        """Transform *source* (the content of *path*).

        Args:
            source: Raw source text.
            path: Absolute project path; selects the grammar and anchors
                relative specifiers.
            known_paths: Other project paths. Advisory only.

        Returns:
            A :class:`TransformResult`; syntax problems are reported in
            ``error`` rather than raised.
        """
        cache_size = self.config.transform_cache_size
        key = (path, hashlib.sha256(source.encode("utf-8", "surrogatepass")).hexdigest())
        if cache_size and key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]

        result = _Compiler(source, path, self.config.runtime).run()

        if cache_size:
            self._cache[key] = result
            while len(self._cache) > cache_size:
                self._cache.popitem(last=False)
        return result

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)
