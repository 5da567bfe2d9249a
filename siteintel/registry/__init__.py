from siteintel.registry.merge import MergedCompany, merge_sources
from siteintel.registry.names import generate_aliases, normalize_name, strip_legal_suffix

__all__ = ["MergedCompany", "generate_aliases", "merge_sources", "normalize_name", "strip_legal_suffix"]
