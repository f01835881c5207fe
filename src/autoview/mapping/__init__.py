from .source_mapper import SourceMapper, name_patterns, name_variants

__all__ = ["SourceMapper", "name_patterns", "name_variants"]
