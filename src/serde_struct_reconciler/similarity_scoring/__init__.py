"""Similarity scoring exports."""

from .overlap_scoring import DefinitionMatch, find_best_match, score, variant_score

__all__ = ["DefinitionMatch", "find_best_match", "score", "variant_score"]
