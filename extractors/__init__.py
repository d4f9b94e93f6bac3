from .xml_extractor import NfeRowExtractor, extract_rows

__all__ = ["NfeRowExtractor", "extract_rows"]
