import functools
import logging
import re

from typing import List

from lark import Lark, Transformer, Token, Tree, UnexpectedCharacters, UnexpectedEOF, UnexpectedInput
from lark.exceptions import UnexpectedToken, VisitError

from linkrs.objects import *

from linkrs.error import LinkrsError, LinkrsStructuralError, LinkrsSyntaxError

from linkrs.lexer import LEXER, START_RULES


LOGGER = logging.getLogger(__name__)


SIZE_SUFFIXES = {
    'K': 1024,
    'M': 1024 * 1024,
}

U64_MAX = (1 << 64) - 1

_escape_regex = re.compile(r'\\(.)')
_escapes = {'n': '\n', 't': '\t', 'r': '\r', '0': '\0'}


def parse_number(text, line=None, column=None):
    """Normalize a numeric literal into an unsigned 64-bit integer.

    Separators are dropped first, then the ``K``/``M`` suffix is split off and
    the remaining digits are read as hex (``0x`` prefix) or decimal. Anything
    that does not fit in 64 bits, before or after the multiplier is applied,
    raises :class:`LinkrsStructuralError`.
    """
    digits = text.replace('_', '')
    multiplier = 1

    if digits[-1:] in SIZE_SUFFIXES:
        multiplier = SIZE_SUFFIXES[digits[-1]]
        digits = digits[:-1]

    try:
        if digits[:2] in ('0x', '0X'):
            value = int(digits[2:], 16)
        else:
            value = int(digits, 10)
    except ValueError:
        raise LinkrsStructuralError('malformed numeric literal %r' % text, text, line, column)

    if value > U64_MAX:
        raise LinkrsStructuralError('numeric literal %r does not fit in 64 bits' % text, text, line, column)

    value *= multiplier
    if value > U64_MAX:
        raise LinkrsStructuralError('numeric literal %r overflows 64 bits once its suffix is applied' % text,
                                    text, line, column)

    return value


def climb_precedence(operands, operators):
    """Fold a flat ``operand (operator operand)*`` sequence into a BinaryExpr tree."""
    if len(operands) != len(operators) + 1:
        raise LinkrsStructuralError('expected %d operands for %d operators, got %d' % (
            len(operators) + 1, len(operators), len(operands)))

    pos = 0

    def climb(lhs, min_precedence):
        nonlocal pos

        while pos < len(operators) and operators[pos].precedence >= min_precedence:
            op = operators[pos]
            rhs = operands[pos + 1]
            pos += 1

            # Bind tighter operators to the right operand first.
            while pos < len(operators) and operators[pos].precedence > op.precedence:
                rhs = climb(rhs, op.precedence + 1)

            lhs = BinaryExpr(lhs, op, rhs)

        return lhs

    return climb(operands[0], 0)


def _unpack(args, count, rule):
    if len(args) != count:
        raise LinkrsStructuralError('%s: expected %d children, got %d' % (rule, count, len(args)), args)
    return args


def _require(value, what, rule):
    if value is None:
        raise LinkrsStructuralError('%s: missing %s' % (rule, what))
    return value


class LinkerScriptTransformer(Transformer):
    """Builds the AST from a parse tree.

    Holds no state between calls, so one instance can serve any number of parses.
    """

    def __init__(self):
        Transformer.__init__(self, visit_tokens=True)

    # Items

    def file(self, args):
        return list(args)

    def item(self, args):
        item, = _unpack(args, 1, 'item')
        return item

    def const_decl(self, args):
        pub, name, type_ann, value = _unpack(args, 4, 'const_decl')
        return ConstDecl(name=name, value=_require(value, 'value', 'const_decl'), type_ann=type_ann,
                         public=pub is not None)

    def memory_map(self, args):
        return MemoryMap(tuple(args))

    def region(self, args):
        name, permissions, start, size = _unpack(args, 4, 'region')
        if permissions is None:
            permissions = Permissions()

        return Region(name=name, start=_require(start, 'start', 'region'), size=_require(size, 'size', 'region'),
                      permissions=permissions)

    def elf_segments(self, args):
        return ElfSegments(tuple(args))

    def segment(self, args):
        name, segment_type, permissions = _unpack(args, 3, 'segment')
        if permissions is None:
            permissions = Permissions()

        return Segment(name=name, segment_type=SegmentType[_require(segment_type, 'type', 'segment')],
                       permissions=permissions)

    def permissions_field(self, args):
        permissions, = _unpack(args, 1, 'permissions_field')
        return permissions

    def permissions(self, args):
        return Permissions.from_flags(args)

    def section(self, args):
        name = args.pop(0)
        fields = args[:8]
        place_in, load_from, output_to, permissions, occupies, address, file_position, contents = \
            _unpack(fields, 8, 'section')

        assertions = []
        no_cross_refs = []

        for check in args[8:]:
            if isinstance(check, Assertion):
                assertions.append(check)
            elif isinstance(check, Tree) and check.data == 'no_cross_refs':
                no_cross_refs.extend(check.children)
            else:
                raise LinkrsStructuralError('section %s: unexpected child %r' % (name, check), check)

        return Section(
            name=name,
            place_in=place_in,
            load_from=load_from,
            output_to=output_to,
            permissions=permissions,
            occupies_file_space=occupies,
            address=address,
            file_position=file_position,
            contents=contents,
            assertions=tuple(assertions),
            no_cross_refs=tuple(no_cross_refs),
        )

    def section_name(self, args):
        name, = _unpack(args, 1, 'section_name')
        return str(name)

    def address_block(self, args):
        start, size, alignment, follows, virtual_base, region, load_from_region = _unpack(args, 7, 'address_block')
        return AddressBlock(start=start, size=size, alignment=alignment, follows=follows, virtual_base=virtual_base,
                            region=region, load_from_region=load_from_region)

    def file_position(self, args):
        start, = _unpack(args, 1, 'file_position')
        if isinstance(start, Token) and start.type == 'ORIGIN':
            return FilePosition(ORIGIN)
        return FilePosition(start)

    def no_cross_refs(self, args):
        return Tree('no_cross_refs', list(args))

    def assert_stmt(self, args):
        condition, message = _unpack(args, 2, 'assert_stmt')
        return Assertion(condition, message)

    def discard(self, args):
        return Discard(tuple(item.stmt for item in args))

    def provide_symbols(self, args):
        return ProvideSymbols(tuple(args))

    def provide_entry(self, args):
        name, target = _unpack(args, 2, 'provide_entry')
        return name, target

    # Contents

    def contents_block(self, args):
        return Contents(tuple(args))

    def contents_item(self, args):
        item, = _unpack(args, 1, 'contents_item')
        return item

    def cfg_item(self, args):
        predicate, item = _unpack(args, 2, 'cfg_item')
        return Cfg(predicate, item)

    def feature_predicate(self, args):
        name, = _unpack(args, 1, 'feature_predicate')
        return FeaturePredicate(name)

    def not_predicate(self, args):
        predicate, = _unpack(args, 1, 'not_predicate')
        return NotPredicate(predicate)

    def all_predicate(self, args):
        return AllPredicate(tuple(args))

    def any_predicate(self, args):
        return AnyPredicate(tuple(args))

    def symbol_def(self, args):
        pub, name, value = _unpack(args, 3, 'symbol_def')
        return SymbolDef(public=pub is not None, name=name, value=value)

    def location_expr(self, args):
        accessor, = _unpack(args, 1, 'location_expr')
        if accessor is None:
            return LocationExpr()
        return LocationExpr(LocationAccessor[accessor.capitalize()])

    def input_item(self, args):
        stmt, = _unpack(args, 1, 'input_item')
        return Input(stmt)

    def keep_item(self, args):
        stmt, = _unpack(args, 1, 'keep_item')
        return Keep(stmt)

    def align_to(self, args):
        alignment, = _unpack(args, 1, 'align_to')
        return AlignTo(alignment)

    def advance_by(self, args):
        amount, = _unpack(args, 1, 'advance_by')
        return AdvanceBy(amount)

    def fill_padding_with(self, args):
        value, = _unpack(args, 1, 'fill_padding_with')
        return FillPaddingWith(value)

    def input_stmt(self, args):
        stmt, = _unpack(args, 1, 'input_stmt')
        return stmt

    def input_args(self, args):
        if len(args) < 3:
            raise LinkrsStructuralError('input: no section pattern', args)

        patterns, source, sort_by = args[:-2], args[-2], args[-1]
        if sort_by is not None:
            sort_by = SortKey[sort_by]

        return InputStmt(patterns=tuple(patterns), source=source, sort_by=sort_by)

    def pattern(self, args):
        pattern, = _unpack(args, 1, 'pattern')
        return str(pattern)

    # Expressions

    def expr(self, args):
        return climb_precedence(args[0::2], args[1::2])

    def bin_op(self, args):
        token, = _unpack(args, 1, 'bin_op')
        return BinOp.from_symbol(str(token))

    def neg(self, args):
        minus, operand = _unpack(args, 2, 'neg')
        return UnaryMinus(operand)

    def member(self, args):
        expr, name = _unpack(args, 2, 'member')
        return Member(expr, name)

    def call(self, args):
        func, call_args = _unpack(args, 2, 'call')
        return Call(func, tuple(call_args or ()))

    def call_args(self, args):
        return list(args)

    def number(self, args):
        value, = _unpack(args, 1, 'number')
        return Number(value)

    def ident(self, args):
        name, = _unpack(args, 1, 'ident')
        return Ident(name)

    def here(self, args):
        return Here()

    def size(self, args):
        return Size()

    # Terminals

    def NUMBER(self, token):
        return parse_number(str(token), token.line, token.column)

    def STRING(self, token):
        return _escape_regex.sub(lambda m: _escapes.get(m.group(1), m.group(1)), token[1:-1])

    def IDENT(self, token):
        return str(token)

    def BOOL(self, token):
        return token == 'true'

    def PERMISSION_FLAG(self, token):
        return str(token)

    def SEGMENT_TYPE(self, token):
        return str(token)

    def SORT_KEY(self, token):
        return str(token)


_transformer = LinkerScriptTransformer()


@functools.lru_cache(maxsize=None)
def get_parser(debug=False) -> Lark:
    LOGGER.debug('Building LALR parser for %d start rules', len(START_RULES))
    return Lark(LEXER, start=list(START_RULES), debug=debug, parser='lalr', lexer='contextual',
                maybe_placeholders=True)


def _byte_offset(data, pos):
    return len(data[:pos].encode('utf-8'))


def _end_position(data):
    line = data.count('\n') + 1
    column = len(data) - (data.rfind('\n') + 1) + 1
    return len(data), line, column


def _describe_terminal(parser, name):
    try:
        pattern = parser.get_terminal(name).pattern
    except KeyError:
        return name

    if pattern.type == 'str':
        return repr(pattern.value)
    return name


def _convert_lark_error(e: UnexpectedInput, data: str, rule: str, parser: Lark) -> LinkrsSyntaxError:
    if isinstance(e, UnexpectedEOF) or (isinstance(e, UnexpectedToken) and e.token.type == '$END'):
        pos, line, column = _end_position(data)
        expected = set(e.expected)
        expected.discard('$END')
        msg = 'Unexpected end of input'
        token = None
    elif isinstance(e, UnexpectedCharacters):
        pos, line, column = e.pos_in_stream, e.line, e.column
        expected = e.allowed or ()
        msg = 'Illegal character %r' % e.char
        token = e.char
    elif isinstance(e, UnexpectedToken):
        pos, line, column = e.pos_in_stream, e.line, e.column
        expected = set(e.expected)
        expected.discard('$END')
        msg = 'Unexpected token %r' % str(e.token)
        token = str(e.token)
    else:
        pos, line, column = getattr(e, 'pos_in_stream', 0) or 0, e.line, e.column
        expected = ()
        msg = str(e)
        token = None

    if expected:
        msg += ', expected %s' % ' or '.join(sorted(_describe_terminal(parser, name) for name in expected))

    return LinkrsSyntaxError(msg, _byte_offset(data, pos), line, column, rule, expected, token)


def parse_tree(start: str, data: str, debug=False) -> Tree:
    if start not in START_RULES:
        raise ValueError('unknown start rule %r, expected one of %s' % (start, ', '.join(START_RULES)))

    parser = get_parser(debug)
    try:
        return parser.parse(data, start=start)
    except UnexpectedInput as e:
        error = _convert_lark_error(e, data, start, parser)
        LOGGER.debug('%s', error)
        raise error from e


def parse_rule(start: str, data: str, debug=False):
    LOGGER.debug('Parsing %d characters from rule %s', len(data), start)
    tree = parse_tree(start, data, debug=debug)

    try:
        result = _transformer.transform(tree)
    except VisitError as e:
        # Lark wraps exceptions raised by transformer callbacks.
        if isinstance(e.orig_exc, LinkrsError):
            raise e.orig_exc from e
        raise LinkrsStructuralError('%s: %s' % (e.rule, e.orig_exc), e.obj) from e

    LOGGER.debug('Parsed %s', start)
    return result


def parse_linkrs(data: str, debug=False) -> List[Item]:
    items = parse_rule('file', data, debug=debug)
    LOGGER.debug('Parsed %d top level items', len(items))
    return items
