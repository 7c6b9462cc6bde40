from enum import IntEnum

from dataclasses import dataclass, field
from dataslots import dataslots
from typing import Optional, Tuple, Union


class SegmentType(IntEnum):
    # Values are the ELF p_type numbers.
    Null = 0
    Load = 1
    Dynamic = 2
    Interp = 3
    Note = 4
    Phdr = 6
    Tls = 7


class SortKey(IntEnum):
    Name = 0
    Address = 1
    Alignment = 2


class LocationAccessor(IntEnum):
    Physical = 0
    Virtual = 1


class BinOp(IntEnum):
    Add = 0
    Sub = 1
    Mul = 2
    Div = 3
    Mod = 4
    Lt = 5
    Gt = 6
    Le = 7
    Ge = 8
    Eq = 9
    Ne = 10

    @property
    def symbol(self):
        return binop_symbols[self]

    @property
    def precedence(self):
        return binop_precedence[self]

    @staticmethod
    def from_symbol(symbol):
        return binop_by_symbol[symbol]


binop_symbols = {
    BinOp.Add: '+',
    BinOp.Sub: '-',
    BinOp.Mul: '*',
    BinOp.Div: '/',
    BinOp.Mod: '%',
    BinOp.Lt: '<',
    BinOp.Gt: '>',
    BinOp.Le: '<=',
    BinOp.Ge: '>=',
    BinOp.Eq: '==',
    BinOp.Ne: '!=',
}

binop_by_symbol = {symbol: op for op, symbol in binop_symbols.items()}

# Higher binds tighter. Every tier is left-associative.
binop_precedence = {
    BinOp.Lt: 1,
    BinOp.Gt: 1,
    BinOp.Le: 1,
    BinOp.Ge: 1,
    BinOp.Eq: 1,
    BinOp.Ne: 1,

    BinOp.Add: 2,
    BinOp.Sub: 2,

    BinOp.Mul: 3,
    BinOp.Div: 3,
    BinOp.Mod: 3,
}


# Expressions


class Expr(object):
    __slots__ = ()


@dataslots
@dataclass(frozen=True)
class Number(Expr):
    value: int

    def __str__(self):
        return str(self.value)


@dataslots
@dataclass(frozen=True)
class Ident(Expr):
    name: str

    def __str__(self):
        return self.name


@dataslots
@dataclass(frozen=True)
class Here(Expr):
    def __str__(self):
        return 'here()'


@dataslots
@dataclass(frozen=True)
class Size(Expr):
    def __str__(self):
        return 'size()'


@dataslots
@dataclass(frozen=True)
class BinaryExpr(Expr):
    left: Expr
    op: BinOp
    right: Expr

    def __str__(self):
        return '({} {} {})'.format(self.left, self.op.symbol, self.right)


@dataslots
@dataclass(frozen=True)
class UnaryMinus(Expr):
    operand: Expr

    def __str__(self):
        return '-{}'.format(self.operand)


@dataslots
@dataclass(frozen=True)
class Member(Expr):
    expr: Expr
    field: str

    def __str__(self):
        return '{}.{}'.format(self.expr, self.field)


@dataslots
@dataclass(frozen=True)
class Call(Expr):
    func: Expr
    args: Tuple[Expr, ...] = ()

    def __str__(self):
        return '{}({})'.format(self.func, ', '.join(str(arg) for arg in self.args))


# Shared leaves


@dataslots
@dataclass(frozen=True)
class Permissions:
    read: bool = False
    write: bool = False
    execute: bool = False

    @classmethod
    def from_flags(cls, flags):
        flags = set(flags)
        return cls(read='Read' in flags, write='Write' in flags, execute='Execute' in flags)

    def __str__(self):
        flags = [name for name, enabled in (('Read', self.read), ('Write', self.write), ('Execute', self.execute))
                 if enabled]
        return ' | '.join(flags)


@dataslots
@dataclass(frozen=True)
class InputStmt:
    patterns: Tuple[str, ...]
    source: Optional[str] = None
    sort_by: Optional[SortKey] = None


@dataslots
@dataclass(frozen=True)
class Assertion:
    condition: Expr
    message: str


# cfg predicates


class CfgPredicate(object):
    __slots__ = ()


@dataslots
@dataclass(frozen=True)
class FeaturePredicate(CfgPredicate):
    name: str


@dataslots
@dataclass(frozen=True)
class NotPredicate(CfgPredicate):
    predicate: CfgPredicate


@dataslots
@dataclass(frozen=True)
class AllPredicate(CfgPredicate):
    predicates: Tuple[CfgPredicate, ...]


@dataslots
@dataclass(frozen=True)
class AnyPredicate(CfgPredicate):
    predicates: Tuple[CfgPredicate, ...]


# Section contents


class ContentsItem(object):
    __slots__ = ()


@dataslots
@dataclass(frozen=True)
class LocationExpr:
    # None means the current location.
    accessor: Optional[LocationAccessor] = None


@dataslots
@dataclass(frozen=True)
class SymbolDef(ContentsItem):
    public: bool
    name: str
    value: LocationExpr


@dataslots
@dataclass(frozen=True)
class Input(ContentsItem):
    stmt: InputStmt


@dataslots
@dataclass(frozen=True)
class Keep(ContentsItem):
    stmt: InputStmt


@dataslots
@dataclass(frozen=True)
class AlignTo(ContentsItem):
    alignment: Expr


@dataslots
@dataclass(frozen=True)
class AdvanceBy(ContentsItem):
    amount: Expr


@dataslots
@dataclass(frozen=True)
class FillPaddingWith(ContentsItem):
    value: Expr


@dataslots
@dataclass(frozen=True)
class Cfg(ContentsItem):
    predicate: CfgPredicate
    item: ContentsItem


@dataslots
@dataclass(frozen=True)
class Contents:
    items: Tuple[ContentsItem, ...] = ()


# Section placement


@dataslots
@dataclass(frozen=True)
class AddressBlock:
    start: Optional[Expr] = None
    size: Optional[Expr] = None
    alignment: Optional[Expr] = None
    follows: Optional[str] = None
    virtual_base: Optional[Expr] = None
    region: Optional[str] = None
    load_from_region: Optional[str] = None


class FilePositionOrigin(object):
    """Marker for ``file_position { start: origin, }``."""
    __slots__ = ()

    def __eq__(self, other):
        return isinstance(other, FilePositionOrigin)

    def __hash__(self):
        return hash(FilePositionOrigin)

    def __repr__(self):
        return 'FilePositionOrigin()'


ORIGIN = FilePositionOrigin()


@dataslots
@dataclass(frozen=True)
class FilePosition:
    start: Union[FilePositionOrigin, Expr]

    @property
    def is_origin(self):
        return isinstance(self.start, FilePositionOrigin)


# Top level items


class Item(object):
    __slots__ = ()


@dataslots
@dataclass(frozen=True)
class ConstDecl(Item):
    name: str
    value: Expr
    type_ann: Optional[str] = None
    public: bool = False


@dataslots
@dataclass(frozen=True)
class Region:
    name: str
    start: Expr
    size: Expr
    permissions: Permissions = field(default_factory=Permissions)


@dataslots
@dataclass(frozen=True)
class MemoryMap(Item):
    regions: Tuple[Region, ...] = ()

    def __getitem__(self, name):
        for region in self.regions:
            if region.name == name:
                return region
        raise KeyError(name)


@dataslots
@dataclass(frozen=True)
class Segment:
    name: str
    segment_type: SegmentType
    permissions: Permissions = field(default_factory=Permissions)


@dataslots
@dataclass(frozen=True)
class ElfSegments(Item):
    segments: Tuple[Segment, ...] = ()

    def __getitem__(self, name):
        for segment in self.segments:
            if segment.name == name:
                return segment
        raise KeyError(name)


@dataslots
@dataclass(frozen=True)
class Section(Item):
    name: str
    place_in: Optional[str] = None
    load_from: Optional[str] = None
    output_to: Optional[str] = None
    permissions: Optional[Permissions] = None
    occupies_file_space: Optional[bool] = None
    address: Optional[AddressBlock] = None
    file_position: Optional[FilePosition] = None
    contents: Optional[Contents] = None
    assertions: Tuple[Assertion, ...] = ()
    no_cross_refs: Tuple[str, ...] = ()

    def __str__(self):
        return 'section {}'.format(self.name)


@dataslots
@dataclass(frozen=True)
class Discard(Item):
    patterns: Tuple[InputStmt, ...] = ()


@dataslots
@dataclass(frozen=True)
class ProvideSymbols(Item):
    symbols: Tuple[Tuple[str, str], ...] = ()

    def aliases_of(self, target):
        return [name for name, alias in self.symbols if alias == target]
