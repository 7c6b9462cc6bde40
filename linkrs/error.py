class LinkrsError(Exception):
    pass


class LinkrsSyntaxError(LinkrsError):
    """Input does not match the grammar.

    ``pos`` is a byte offset into the UTF-8 encoded input, ``line`` and
    ``column`` are 1-based. ``expected`` holds the terminal names the parser
    would have accepted at that position.

    ``rule`` is the start rule the parse was entered with, not the innermost
    production that failed. The LALR tables keep no record of the rule in
    progress, so ``expected`` and ``token`` are what narrow the failure down.
    """

    def __init__(self, msg, pos, line, column, rule, expected=(), token=None):
        LinkrsError.__init__(self, msg)
        self.msg = msg
        self.pos = pos
        self.line = line
        self.column = column
        self.rule = rule
        self.expected = tuple(sorted(expected))
        self.token = token

    def __str__(self):
        s = 'Syntax error in %s at line %d, column %d: %s' % (self.rule, self.line, self.column, self.msg)
        if self.expected:
            s += ' (expected one of: %s)' % ', '.join(self.expected)
        return s

    def get_context(self, text, span=40):
        """Return the offending source line with a caret under the error column."""
        lines = text.splitlines()
        if not 0 < self.line <= len(lines):
            return ''

        line = lines[self.line - 1]
        start = max(self.column - 1 - span, 0)
        return '%s\n%s^\n' % (line[start:self.column - 1 + span], ' ' * (self.column - 1 - start))


class LinkrsStructuralError(LinkrsError):
    """The parse tree matched the grammar but no AST node could be built from it."""

    def __init__(self, msg, value=None, line=None, column=None):
        LinkrsError.__init__(self, msg)
        self.msg = msg
        self.value = value
        self.line = line
        self.column = column

    def __str__(self):
        if self.line is None:
            return self.msg
        return '%s at line %d, column %d' % (self.msg, self.line, self.column)
