from .json_salvage import STRATEGIES, ExtractionError, extract, repair_cosmetics, repair_structure

__all__ = ["ExtractionError", "STRATEGIES", "extract", "repair_cosmetics", "repair_structure"]
