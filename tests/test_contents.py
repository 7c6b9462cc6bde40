import unittest

from linkrs.objects import *
from linkrs.parser import parse_rule


CFG_TEST = '''
contents {
    #[cfg(feature = "debug")]
    input(.debug_text*)
    input(.text*)
}
'''.strip()

NESTED_CFG_TEST = '''
contents {
    /// Only on instrumented, non-release builds
    #[cfg(all(feature = "trace", not(feature = "release"), any(feature = "qemu", feature = "fpga")))]
    keep(.trace_buffer)

    #[cfg(feature = "a")]
    #[cfg(feature = "b")]
    align_to(4K);
}
'''.strip()


class TestCfg(unittest.TestCase):
    def test_cfg_wraps_only_next_item(self):
        contents = parse_rule('contents_block', CFG_TEST)
        self.assertEqual(contents.items, (
            Cfg(FeaturePredicate('debug'), Input(InputStmt(('.debug_text*',)))),
            Input(InputStmt(('.text*',))),
        ))

    def test_nested_predicates(self):
        first, second = parse_rule('contents_block', NESTED_CFG_TEST).items

        self.assertEqual(first.predicate, AllPredicate((
            FeaturePredicate('trace'),
            NotPredicate(FeaturePredicate('release')),
            AnyPredicate((FeaturePredicate('qemu'), FeaturePredicate('fpga'))),
        )))
        self.assertEqual(first.item, Keep(InputStmt(('.trace_buffer',))))

        self.assertEqual(second, Cfg(FeaturePredicate('a'), Cfg(FeaturePredicate('b'), AlignTo(Number(4096)))))

    def test_predicate_argument_order_is_kept(self):
        predicate = parse_rule('cfg_predicate', 'any(feature = "z", feature = "a", feature = "m")')
        self.assertEqual([p.name for p in predicate.predicates], ['z', 'a', 'm'])

    def test_single_item_rule(self):
        item = parse_rule('contents_item', '#[cfg(not(feature = "smp"))] advance_by(PAGE_SIZE);')
        self.assertEqual(item, Cfg(NotPredicate(FeaturePredicate('smp')), AdvanceBy(Ident('PAGE_SIZE'))))


class TestDocComments(unittest.TestCase):
    def test_trailing_doc_comment(self):
        contents = parse_rule('contents_block', 'contents {\n    input(.a)\n    /// input(.b)\n}')
        self.assertEqual(contents, Contents((Input(InputStmt(('.a',))),)))

    def test_only_doc_comments(self):
        self.assertEqual(parse_rule('contents_block', 'contents {\n    /// nothing yet\n}'), Contents())

    def test_doc_comment_after_cfg(self):
        item = parse_rule('contents_item', '#[cfg(feature = "x")]\n/// eight byte boundary\nalign_to(8);')
        self.assertEqual(item, Cfg(FeaturePredicate('x'), AlignTo(Number(8))))


class TestSymbols(unittest.TestCase):
    def test_location_accessors(self):
        self.assertEqual(parse_rule('contents_item', 'symbol __start = here();'),
                         SymbolDef(public=False, name='__start', value=LocationExpr()))
        self.assertEqual(parse_rule('contents_item', 'symbol __load = here().physical();').value,
                         LocationExpr(LocationAccessor.Physical))
        self.assertEqual(parse_rule('contents_item', 'pub symbol __virt = here().virtual();'),
                         SymbolDef(public=True, name='__virt', value=LocationExpr(LocationAccessor.Virtual)))


class TestInputStmt(unittest.TestCase):
    def test_pattern_order_is_kept(self):
        stmt = parse_rule('input_stmt', 'input(.text.hot*, .text*, .text.unlikely*)')
        self.assertEqual(stmt.patterns, ('.text.hot*', '.text*', '.text.unlikely*'))
        self.assertIsNone(stmt.source)
        self.assertIsNone(stmt.sort_by)

    def test_source_and_sort(self):
        stmt = parse_rule('input_stmt', 'input(.init_array.*, from: "*crtbegin?.o", sort_by: Name)')
        self.assertEqual(stmt, InputStmt(('.init_array.*',), source='*crtbegin?.o', sort_by=SortKey.Name))

        stmt = parse_rule('input_stmt', 'input(.rodata*, sort_by: Address)')
        self.assertEqual(stmt, InputStmt(('.rodata*',), sort_by=SortKey.Address))

    def test_quoted_pattern(self):
        stmt = parse_rule('input_stmt', 'input(".text$exit", .text*)')
        self.assertEqual(stmt.patterns, ('.text$exit', '.text*'))

    def test_keep_forms(self):
        self.assertEqual(parse_rule('contents_item', 'keep(input(.vectors))'), Keep(InputStmt(('.vectors',))))
        self.assertEqual(parse_rule('contents_item', 'keep(.init, sort_by: Alignment);'),
                         Keep(InputStmt(('.init',), sort_by=SortKey.Alignment)))

    def test_padding_directives(self):
        contents = parse_rule('contents_block', '''
contents {
    align_to(PAGE_SIZE);
    advance_by(0x100);
    fill_padding_with(0xdead_beef);
}'''.strip())
        self.assertEqual(contents.items, (
            AlignTo(Ident('PAGE_SIZE')),
            AdvanceBy(Number(256)),
            FillPaddingWith(Number(0xdeadbeef)),
        ))

    def test_empty_contents(self):
        self.assertEqual(parse_rule('contents_block', 'contents { }'), Contents(()))


if __name__ == '__main__':
    unittest.main()
