"""Parser and AST for the linkrs linker layout language."""
