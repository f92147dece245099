"""
Module transformers - turn one source file into CommonJS-style code.

A transformer reads a module from disk and returns the raw import specifiers
it uses plus code that runs against injected `require`, `exports` and
`module` bindings. The bundler treats the returned code as opaque text.
"""
import json
import os
from abc import ABC, abstractmethod
from collections import namedtuple
from functools import lru_cache
from typing import List

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import LarkError, VisitError
from pydantic import BaseModel, Field

from jspack_core.errors import TransformError
from jspack_core.grammar import js_module_grammar


ES_MODULE_MARKER = 'Object.defineProperty(exports, "__esModule", { value: true });'
STRICT_DIRECTIVE = '"use strict";'

Edit = namedtuple("Edit", ["start", "end", "text"])

# A require( or import( call whose closing paren has not been reached
PendingCall = namedtuple("PendingCall", ["source"])

# Marks an `export var|let|const` whose later declarators are exported too
_VARIABLE_EXPORT = object()


class TransformResult(BaseModel):
    """Output of transforming a single module."""
    import_specifiers: List[str] = Field(default_factory=list)
    code: str


@lru_cache(maxsize=None)
def get_parser():
    """Build the LALR parser once; it is safe to share between threads."""
    return Lark(js_module_grammar, parser='lalr', lexer='basic', propagate_positions=True)


def read_source(file_path):
    """Read a module as text, dropping a UTF-8 byte order mark."""
    try:
        with open(file_path, 'r', encoding='utf-8-sig') as f:
            return f.read()
    except (UnicodeDecodeError, OSError) as e:
        raise TransformError(file_path, e)


def _js_string(value):
    return json.dumps(value)


def _unquote(token):
    return str(token)[1:-1]


class EsModuleRewriter(Transformer):
    """
    Collects the rewrites for one parsed module.

    Import and export statements become `require` calls and `exports`
    bindings; all other tokens are left alone. The rewrites are recorded as
    positional edits and spliced into the original text by apply().
    """

    def __init__(self):
        super().__init__()
        self.edits = []
        self.specifiers = []
        self.exported = []  # (exported name, expression) pairs, in source order
        self.is_es_module = False
        self._temp_count = 0

    # --- Helpers ---
    def _use(self, token):
        specifier = _unquote(token)
        if specifier not in self.specifiers:
            self.specifiers.append(specifier)
        return specifier

    def _temp(self):
        name = f"_jspack_import_{self._temp_count}"
        self._temp_count += 1
        return name

    def _export(self, name, expression):
        name = str(name)
        if any(existing == name for existing, _ in self.exported):
            raise ValueError(f"Duplicate export '{name}'")
        self.exported.append((name, str(expression)))

    def _edit(self, start, end, text, module_syntax=True):
        if module_syntax:
            self.is_es_module = True
        self.edits.append(Edit(start, end, text))

    # --- Imports ---
    def default_binding(self, args): return [("default", str(args[0]))]
    def namespace_import(self, args): return [("*", str(args[-1]))]
    def named_imports(self, args): return [a for a in args if isinstance(a, tuple)]

    def import_spec(self, args):
        names = [a for a in args if a.type != "AS"]
        return (str(names[0]), str(names[-1]))

    def import_clause(self, args):
        bindings = []
        for arg in args:
            if isinstance(arg, list):
                bindings.extend(arg)
        return bindings

    @v_args(meta=True)
    def import_from(self, meta, args):
        bindings, source = args[1], args[-1]
        temp = self._temp()
        parts = [f"var {temp} = require({_js_string(self._use(source))});"]
        for imported, local in bindings:
            if imported == "default":
                parts.append(f'var {local} = {temp} && {temp}.__esModule ? {temp}["default"] : {temp};')
            elif imported == "*":
                parts.append(f"var {local} = {temp};")
            else:
                parts.append(f"var {local} = {temp}[{_js_string(imported)}];")
        self._edit(meta.start_pos, meta.end_pos, " ".join(parts))

    @v_args(meta=True)
    def import_bare(self, meta, args):
        self._edit(meta.start_pos, meta.end_pos, f"require({_js_string(self._use(args[-1]))});")

    # --- Exports ---
    @v_args(meta=True)
    def default_head(self, meta, args):
        return (meta.start_pos, meta.end_pos)

    def export_default(self, args):
        start, end = args[0]
        self._edit(start, end, 'exports["default"] =')

    def export_default_declaration(self, args):
        name = args[-1]
        if name == "extends":
            # `export default class extends Base {}` is an anonymous class
            return self.export_default(args)
        start, end = args[0]
        self._edit(start, end, "")
        self._export("default", name)

    def export_declaration(self, args):
        keyword = args[0]
        self._edit(keyword.start_pos, keyword.end_pos, "")
        self._export(args[-1], args[-1])
        if args[1].type in ("VAR", "LET", "CONST"):
            return _VARIABLE_EXPORT

    def export_spec(self, args):
        names = [a for a in args if a.type != "AS"]
        return (str(names[0]), str(names[-1]))

    def export_list(self, args): return [a for a in args if isinstance(a, tuple)]

    @v_args(meta=True)
    def export_named(self, meta, args):
        self._edit(meta.start_pos, meta.end_pos, "")
        for local, exported in args[1]:
            self._export(exported, local)

    @v_args(meta=True)
    def export_from(self, meta, args):
        temp = self._temp()
        self._edit(meta.start_pos, meta.end_pos,
                   f"var {temp} = require({_js_string(self._use(args[-1]))});")
        for local, exported in args[1]:
            self._export(exported, f"{temp}[{_js_string(local)}]")

    @v_args(meta=True)
    def export_all(self, meta, args):
        temp = self._temp()
        self._edit(meta.start_pos, meta.end_pos, (
            f"var {temp} = require({_js_string(self._use(args[-1]))}); "
            f"Object.keys({temp}).forEach(function (key) {{ "
            f'if (key === "default" || key === "__esModule" || '
            f"Object.prototype.hasOwnProperty.call(exports, key)) return; "
            f"Object.defineProperty(exports, key, {{ enumerable: true, "
            f"get: function () {{ return {temp}[key]; }} }}); }});"
        ))

    @v_args(meta=True)
    def export_namespace(self, meta, args):
        temp = self._temp()
        self._edit(meta.start_pos, meta.end_pos,
                   f"var {temp} = require({_js_string(self._use(args[-1]))});")
        self._export(args[3], temp)

    # --- CommonJS and dynamic import() ---
    def require_open(self, args): return PendingCall(None)
    def require_head(self, args): return PendingCall(args[-1])

    def require_call(self, args):
        self._use(args[0].source)

    import_call_open = require_open
    import_call_head = require_head

    @v_args(meta=True)
    def import_call(self, meta, args):
        specifier = self._use(args[0].source)
        self._edit(meta.start_pos, meta.end_pos,
                   f"Promise.resolve().then(function () {{ return require({_js_string(specifier)}); }})",
                   module_syntax=False)

    def start(self, args):
        self._export_declarators(args)
        return self

    def _export_declarators(self, items):
        """Export the names after top-level commas in `export var|let|const` statements."""
        scanning, depth, expect_name = False, 0, False
        for item in items:
            if item is _VARIABLE_EXPORT:
                scanning, depth, expect_name = True, 0, False
                continue
            if not scanning:
                continue
            if isinstance(item, PendingCall):
                depth += 1
                continue
            if not isinstance(item, Token):
                continue
            if expect_name:
                expect_name = False
                if item.type == "NAME":
                    self._export(item, item)
                    continue
            if item.type in ("LBRACE", "LPAREN") or item == "[":
                depth += 1
            elif item.type in ("RBRACE", "RPAREN") or item == "]":
                depth -= 1
                scanning = depth >= 0
            elif depth == 0 and item.type == "COMMA":
                expect_name = True
            elif depth == 0 and (item == ";" or item.type in ("VAR", "LET", "CONST")):
                scanning = False

    def prologue(self):
        """The `__esModule` marker and live-binding getters for every export."""
        if not self.is_es_module:
            return ""
        lines = [STRICT_DIRECTIVE, ES_MODULE_MARKER]
        for name, expression in self.exported:
            lines.append(
                f"Object.defineProperty(exports, {_js_string(name)}, "
                f"{{ enumerable: true, get: function () {{ return {expression}; }} }});"
            )
        # A single line keeps the line numbers of the original code intact
        return " ".join(lines) + "\n"

    def apply(self, source):
        """Splice the collected edits into the source text."""
        pieces = []
        cursor = 0
        for edit in sorted(self.edits):
            pieces.append(source[cursor:edit.start])
            # Keep the line count of multi-line statements
            pieces.append(edit.text + "\n" * source.count("\n", edit.start, edit.end))
            cursor = edit.end
        pieces.append(source[cursor:])
        return self.prologue() + "".join(pieces)


class ModuleTransformer(ABC):
    """Converts one module's source into `require`/`exports` code."""

    @abstractmethod
    def transform(self, file_path) -> TransformResult:
        pass


class EsModuleTransformer(ModuleTransformer):
    """Rewrites ES module syntax to CommonJS and collects require() specifiers."""

    def transform(self, file_path) -> TransformResult:
        return self.transform_source(read_source(file_path), file_path)

    def transform_source(self, source, file_path="<string>") -> TransformResult:
        try:
            tree = get_parser().parse(source)
            rewriter = EsModuleRewriter()
            rewriter.transform(tree)
        except VisitError as e:
            raise TransformError(file_path, e.orig_exc)
        except LarkError as e:
            raise TransformError(file_path, e)
        return TransformResult(import_specifiers=rewriter.specifiers, code=rewriter.apply(source))


class StylesheetTransformer(ModuleTransformer):
    """Turns a stylesheet into a module that injects a <style> element."""

    def transform(self, file_path) -> TransformResult:
        return self.transform_source(read_source(file_path), file_path)

    def transform_source(self, source, file_path="<string>") -> TransformResult:
        code = "\n".join([
            f"var css = {_js_string(source)};",
            'if (typeof document !== "undefined") {',
            '  var style = document.createElement("style");',
            '  style.setAttribute("type", "text/css");',
            "  style.innerHTML = css;",
            "  document.head.appendChild(style);",
            "}",
            ES_MODULE_MARKER,
            'exports["default"] = css;',
            "",
        ])
        return TransformResult(import_specifiers=[], code=code)


class JsonTransformer(ModuleTransformer):
    """Turns a JSON document into a module exporting the parsed value."""

    def transform(self, file_path) -> TransformResult:
        return self.transform_source(read_source(file_path), file_path)

    def transform_source(self, source, file_path="<string>") -> TransformResult:
        try:
            data = json.loads(source)
        except ValueError as e:
            raise TransformError(file_path, e)
        return TransformResult(import_specifiers=[], code=f"module.exports = {json.dumps(data)};\n")


class DefaultTransformer(ModuleTransformer):
    """Picks a transformer by file extension, JavaScript for anything unknown."""

    def __init__(self, transformers=None, fallback=None):
        self.transformers = transformers if transformers is not None else {
            ".css": StylesheetTransformer(),
            ".json": JsonTransformer(),
        }
        self.fallback = fallback or EsModuleTransformer()

    def for_path(self, file_path):
        extension = os.path.splitext(str(file_path))[1].lower()
        return self.transformers.get(extension, self.fallback)

    def transform(self, file_path) -> TransformResult:
        return self.for_path(file_path).transform(file_path)
