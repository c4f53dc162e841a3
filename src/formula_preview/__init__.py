"""formula-preview: tabulate small arithmetic formulas over sample grids.

Public API::

    from formula_preview import locate_formula_spans, parse_range_directives, render_preview
"""

__version__ = "0.1.0"

from formula_preview.directives import RangeDirective, parse_range_directives
from formula_preview.documents import DocumentCache, DocumentStore
from formula_preview.preview import build_preview, render_preview
from formula_preview.spans import FormulaSpan, locate_formula_spans
from formula_preview.variables import extract_variables, rewrite_expression

__all__ = [
    "DocumentCache",
    "DocumentStore",
    "FormulaSpan",
    "RangeDirective",
    "__version__",
    "build_preview",
    "extract_variables",
    "locate_formula_spans",
    "parse_range_directives",
    "render_preview",
    "rewrite_expression",
]
