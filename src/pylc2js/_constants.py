"""Resource limit and notation constants for comprehension rewriting."""

DEFAULT_MAX_CLAUSES = 8
"""Maximum number of ``for`` clauses in one comprehension (CWE-400 prevention)."""

DEFAULT_MAX_OUTPUT_LENGTH = 50000
"""Maximum printed length of one rewritten occurrence."""

LIST_TAG = "list"
"""Tag identifier of the tagged template surface."""

LIST_MARKER = "/*list*/"
"""Comment that marks a template literal as comprehension notation."""

FOR_KEYWORD = "for"
OF_KEYWORD = "of"
IF_KEYWORD = "if"

FILTER = "filter"
MAP = "map"
FLAT_MAP = "flatMap"
