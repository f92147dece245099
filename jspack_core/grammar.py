"""
JavaScript module syntax grammar.

This is not a full JavaScript grammar. It recognises the statements that bind
modules together (ES imports/exports, literal CommonJS requires and dynamic
imports) and lexes everything else as opaque tokens, so the transformer can
splice rewrites into the original text by position.
"""

js_module_grammar = r"""
    start: (_statement | _token)*

    _statement: import_decl
              | export_decl
              | require_call
              | require_head
              | require_open
              | import_call
              | import_call_head
              | import_call_open

    // --- Imports ---
    import_decl: IMPORT import_clause FROM STRING     -> import_from
               | IMPORT STRING                        -> import_bare

    import_clause: default_binding
                 | namespace_import
                 | named_imports
                 | default_binding COMMA namespace_import
                 | default_binding COMMA named_imports

    default_binding: NAME
    namespace_import: STAR AS NAME
    named_imports: LBRACE (import_spec (COMMA import_spec)* COMMA?)? RBRACE
    import_spec: _binding_name (AS NAME)?

    // --- Exports ---
    export_decl: default_head                                -> export_default
               | default_head _default_kind                  -> export_default
               | default_head _default_kind NAME             -> export_default_declaration
               | EXPORT _declaration_kind NAME               -> export_declaration
               | EXPORT export_list                          -> export_named
               | EXPORT export_list FROM STRING              -> export_from
               | EXPORT STAR FROM STRING                     -> export_all
               | EXPORT STAR AS _binding_name FROM STRING    -> export_namespace

    default_head: EXPORT DEFAULT
    _default_kind: CLASS | FUNCTION | FUNCTION STAR | ASYNC | ASYNC FUNCTION | ASYNC FUNCTION STAR
    _declaration_kind: VAR | LET | CONST | _default_kind

    export_list: LBRACE (export_spec (COMMA export_spec)* COMMA?)? RBRACE
    export_spec: _binding_name (AS _binding_name)?

    _binding_name: NAME | DEFAULT

    // --- CommonJS ---
    require_call: require_head RPAREN
    require_head: require_open STRING
    require_open: REQUIRE LPAREN

    // --- Dynamic import() ---
    import_call: import_call_head RPAREN
    import_call_head: import_call_open STRING
    import_call_open: IMPORT LPAREN

    // --- Everything else ---
    _token: NAME | NUMBER | STRING | TEMPLATE | PUNCT | DOT | _property
          | IMPORT | FROM | AS | DEFAULT | REQUIRE
          | VAR | LET | CONST | CLASS | FUNCTION | ASYNC
          | LBRACE | RBRACE | LPAREN | RPAREN | COMMA | STAR

    // Keywords right after a dot are property names
    _property: DOT (REQUIRE | EXPORT | IMPORT)

    // --- Terminals ---
    IMPORT: "import"
    EXPORT: "export"
    FROM: "from"
    AS: "as"
    DEFAULT: "default"
    REQUIRE: "require"
    VAR: "var"
    LET: "let"
    CONST: "const"
    CLASS: "class"
    FUNCTION: "function"
    ASYNC: "async"

    LBRACE: "{"
    RBRACE: "}"
    LPAREN: "("
    RPAREN: ")"
    COMMA: ","
    STAR: "*"
    DOT: "."

    STRING: /"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*'/
    TEMPLATE: /`(?:[^`\\]|\\.)*`/
    NAME: /(?!\d)[\w$]+/
    NUMBER: /\d[\w.]*/
    PUNCT: /=>|\.\.\.|[^\s\w"'`]/

    LINE_COMMENT: /\/\/[^\n]*/
    BLOCK_COMMENT: /\/\*[\s\S]*?\*\//

    %import common.WS
    %ignore WS
    %ignore LINE_COMMENT
    %ignore BLOCK_COMMENT
"""
