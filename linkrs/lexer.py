LEXER = r'''file: (item | _DOC_COMMENT)*

item: const_decl | memory_map | elf_segments | section | discard | provide_symbols

const_decl: [PUB] "const" IDENT [":" IDENT] "=" expr ";"

memory_map: "memory_map" "{" (region | _DOC_COMMENT)* "}"
region: "region" IDENT "{" [permissions_field] "start" ":" expr "," "size" ":" expr "," "}"

elf_segments: "elf_segments" "{" (segment | _DOC_COMMENT)* "}"
segment: "segment" IDENT "{" "type" ":" SEGMENT_TYPE "," [permissions_field] "}"

permissions_field: "permissions" ":" permissions ","
permissions: PERMISSION_FLAG ("|" PERMISSION_FLAG)*

section: "section" section_name "{" ["place_in" ":" IDENT ","] ["load_from" ":" IDENT ","] ["output_to" ":" "segment" "(" IDENT ")" ","] [permissions_field] ["occupies_file_space" ":" BOOL ","] [address_block] [file_position] [contents_block] _section_check* "}"
_section_check: assert_stmt | no_cross_refs

section_name: IDENT | DOT_NAME

address_block: "address" "{" ["start" ":" expr ","] ["size" ":" expr ","] ["alignment" ":" expr ","] ["follows" ":" section_name ","] ["virtual_base" ":" expr ","] ["region" ":" IDENT ","] ["load_from_region" ":" IDENT ","] "}"

file_position: "file_position" "{" "start" ":" (ORIGIN | expr) "," "}"

// Doc comments are accepted between the entries of a block. Elsewhere they lex as plain comments.
contents_block: "contents" "{" (contents_item | _DOC_COMMENT)* "}"

contents_item: cfg_item | symbol_def | input_item | keep_item | align_to | advance_by | fill_padding_with

cfg_item: "#[" "cfg" "(" cfg_predicate ")" "]" contents_item

cfg_predicate: "feature" "=" STRING -> feature_predicate
    | "not" "(" cfg_predicate ")" -> not_predicate
    | "all" "(" cfg_predicate ("," cfg_predicate)* ")" -> all_predicate
    | "any" "(" cfg_predicate ("," cfg_predicate)* ")" -> any_predicate

symbol_def: [PUB] "symbol" IDENT "=" location_expr ";"
location_expr: "here" "(" ")" ["." LOCATION_ACCESSOR "(" ")"]

input_item: input_stmt [";"]
keep_item: "keep" "(" (input_stmt | input_args) ")" [";"]
align_to: "align_to" "(" expr ")" ";"
advance_by: "advance_by" "(" expr ")" ";"
fill_padding_with: "fill_padding_with" "(" expr ")" ";"

input_stmt: "input" "(" input_args ")"
input_args: pattern ("," pattern)* ["," "from" ":" STRING] ["," "sort_by" ":" SORT_KEY]
pattern: GLOB | STRING

assert_stmt: "assert" "(" expr "," STRING ")" ";"
no_cross_refs: "assert_no_cross_references_to" "(" section_name ("," section_name)* ")" ";"

discard: "discard" "{" input_item* "}"

provide_symbols: "provide_symbols" "{" provide_entry* "}"
provide_entry: IDENT "=" IDENT ","


// Operands and operators are kept flat; precedence is applied when the tree is transformed.
expr: unary (bin_op unary)*

?unary: MINUS unary -> neg
    | postfix

?postfix: primary
    | postfix "." IDENT -> member
    | postfix "(" [call_args] ")" -> call

call_args: expr ("," expr)*

?primary: NUMBER -> number
    | IDENT -> ident
    | "here" "(" ")" -> here
    | "size" "(" ")" -> size
    | "(" expr ")"

bin_op: PLUS | MINUS | STAR | SLASH | PERCENT | LE | GE | EQ | NE | LT | GT

PLUS: "+"
MINUS: "-"
STAR: "*"
SLASH: "/"
PERCENT: "%"
LE: "<="
GE: ">="
EQ: "=="
NE: "!="
LT: "<"
GT: ">"


PUB: "pub"
ORIGIN: "origin"

PERMISSION_FLAG: "Read" | "Write" | "Execute"
SEGMENT_TYPE: "Null" | "Load" | "Dynamic" | "Interp" | "Note" | "Phdr" | "Tls"
SORT_KEY: "Name" | "Address" | "Alignment"
LOCATION_ACCESSOR: "physical" | "virtual"
BOOL: "true" | "false"

NUMBER: /0x[0-9A-Fa-f][0-9A-Fa-f_]*[KM]?/ | /[0-9][0-9_]*[KM]?/

IDENT: /[A-Za-z_][A-Za-z_0-9]*/
DOT_NAME: /\.[A-Za-z_][A-Za-z_0-9.]*/
GLOB: /[A-Za-z0-9_.*?\[\]\-]+/
STRING: /"(?:[^"\\\n]|\\.)*"/


_DOC_COMMENT.2: /\/\/\/[^\n]*/

%ignore COMMENT
COMMENT: /\/\/[^\n]*/


%ignore WHITESPACE
WHITESPACE: WHITESPACE_INLINE | /[\r\n]/+
WHITESPACE_INLINE: /[ \t]/+
'''

START_RULES = (
    'file',
    'item',
    'const_decl',
    'memory_map',
    'region',
    'elf_segments',
    'segment',
    'section',
    'address_block',
    'file_position',
    'contents_block',
    'contents_item',
    'cfg_predicate',
    'input_stmt',
    'assert_stmt',
    'discard',
    'provide_symbols',
    'permissions',
    'expr',
)
