from siteintel.parser.aggregate import aggregate_signals, first_non_empty
from siteintel.parser.document import parse_page, readable_text
from siteintel.parser.platforms import extract_platform_profile

__all__ = [
    "aggregate_signals",
    "extract_platform_profile",
    "first_non_empty",
    "parse_page",
    "readable_text",
]
