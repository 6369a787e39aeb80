"""
WebPPL Grammar Definition.

This module contains the Lark grammar for the JavaScript subset the compiler
accepts: var declarations, returns, function expressions, calls, member access,
arrays, conditionals and the usual arithmetic and comparison operators.
"""

wppl_grammar = r"""
    start: _statements

    _statements: (_simple_statement ";" | if_stmt)* _simple_statement?

    // --- Statements ---
    _simple_statement: var_decl | return_stmt | expr_stmt

    var_decl: "var" NAME "=" expr
    return_stmt: "return" expr?
    expr_stmt: expr
    if_stmt: "if" "(" expr ")" block ("else" block)?

    block: "{" _statements "}"

    // --- Expressions ---
    ?expr: conditional

    ?conditional: logical_or
        | logical_or "?" expr ":" expr      -> conditional

    ?logical_or: logical_and
        | logical_or OR_OP logical_and      -> logical

    ?logical_and: equality
        | logical_and AND_OP equality       -> logical

    ?equality: relational
        | equality EQ_OP relational         -> binary

    ?relational: additive
        | relational REL_OP additive        -> binary

    ?additive: multiplicative
        | additive ADD_OP multiplicative    -> binary

    ?multiplicative: unary
        | multiplicative MUL_OP unary       -> binary

    ?unary: postfix
        | UNARY_OP unary                    -> unary
        | ADD_OP unary                      -> unary

    ?postfix: primary
        | postfix "(" arguments? ")"        -> call
        | postfix "." NAME                  -> member
        | postfix "[" expr "]"              -> index

    ?primary: NUMBER                        -> number
        | STRING                            -> string
        | "true"                            -> true
        | "false"                           -> false
        | "null"                            -> null
        | NAME                              -> identifier
        | array
        | function
        | "(" expr ")"

    array: "[" [expr ("," expr)*] "]"
    function: "function" "(" [NAME ("," NAME)*] ")" block
    arguments: expr ("," expr)*

    // --- Terminals ---
    OR_OP: "||"
    AND_OP: "&&"
    EQ_OP: "===" | "!==" | "==" | "!="
    REL_OP: "<=" | ">=" | "<" | ">"
    ADD_OP: "+" | "-"
    MUL_OP: "*" | "/" | "%"
    UNARY_OP: "!"

    NAME: /[a-zA-Z_$][a-zA-Z0-9_$]*/
    NUMBER: /(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?/
    STRING: /"(?:[^"\\]|\\.)*"/ | /'(?:[^'\\]|\\.)*'/

    COMMENT_1: /\/\/[^\n]*/
    BLOCK_COMMENT: /\/\*[\s\S]*?\*\//

    %import common.WS
    %ignore WS
    %ignore COMMENT_1
    %ignore BLOCK_COMMENT
"""
