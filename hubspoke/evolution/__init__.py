from .analysis import (
    INITIAL_WEIGHT,
    WEIGHT_STEP,
    AnalysisConflictPolicy,
    ConflictPolicy,
    StrictConflictPolicy,
    apply_proposals,
    decode_analysis,
)
from .engine import EvolutionEngine
from .intelligence import generate_description, migrate_knowledge

__all__ = [
    "INITIAL_WEIGHT",
    "WEIGHT_STEP",
    "AnalysisConflictPolicy",
    "ConflictPolicy",
    "EvolutionEngine",
    "StrictConflictPolicy",
    "apply_proposals",
    "decode_analysis",
    "generate_description",
    "migrate_knowledge",
]
