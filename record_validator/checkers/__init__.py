"""
Rule checkers - registry by name and construction in the configured order.
"""
from typing import Callable, Dict, List, Optional

from record_validator.checkers.base import CorpusChecker, RuleChecker
from record_validator.checkers.cross_section_duplicate import CrossSectionDuplicateChecker
from record_validator.checkers.cross_student_duplicate import CrossStudentDuplicateChecker
from record_validator.checkers.date_pattern import DatePatternChecker
from record_validator.checkers.document_duplicate import DocumentDuplicateChecker
from record_validator.checkers.format import FormatChecker
from record_validator.checkers.grammar import GrammarChecker
from record_validator.checkers.institution_name import InstitutionNameChecker
from record_validator.checkers.keyword_prohibition import KeywordProhibitionChecker
from record_validator.checkers.korean_english import KoreanEnglishChecker
from record_validator.checkers.semantic_review import SemanticReviewChecker
from record_validator.checkers.sentence_duplicate import SentenceDuplicateChecker
from record_validator.core.config import Settings, get_settings
from record_validator.core.errors import ConfigurationError
from record_validator.services.corpus_store import CorpusStore
from record_validator.services.similarity import SimilarityEngine

CheckerFactory = Callable[[Settings, CorpusStore, SimilarityEngine], RuleChecker]

CHECKER_REGISTRY: Dict[str, CheckerFactory] = {
    "korean_english": lambda settings, store, engine: KoreanEnglishChecker(),
    "institution_name": lambda settings, store, engine: InstitutionNameChecker(),
    "keyword_prohibition": lambda settings, store, engine: KeywordProhibitionChecker(),
    "grammar": lambda settings, store, engine: GrammarChecker(),
    "format": lambda settings, store, engine: FormatChecker(),
    "date_pattern": lambda settings, store, engine: DatePatternChecker(),
    "duplicate_detection": lambda settings, store, engine: DocumentDuplicateChecker(store, engine, settings),
    "cross_section_duplicate": lambda settings, store, engine: CrossSectionDuplicateChecker(store, engine, settings),
    "cross_student_duplicate": lambda settings, store, engine: CrossStudentDuplicateChecker(store, engine, settings),
    "sentence_duplicate": lambda settings, store, engine: SentenceDuplicateChecker(store, settings),
    "semantic_review": lambda settings, store, engine: SemanticReviewChecker(settings),
}


def build_checkers(settings: Optional[Settings] = None, corpus_store: Optional[CorpusStore] = None) -> List[RuleChecker]:
    """Instantiate the checkers named in settings.checker_order, in that order."""
    settings = settings or get_settings()
    corpus_store = corpus_store if corpus_store is not None else CorpusStore(settings)
    engine = SimilarityEngine.from_settings(settings)

    checkers = []
    for name in settings.checker_order:
        factory = CHECKER_REGISTRY.get(name)
        if factory is None:
            raise ConfigurationError(f"Unknown checker '{name}'", setting="checker_order")
        if name == "semantic_review" and not settings.semantic_enabled:
            continue
        checkers.append(factory(settings, corpus_store, engine))
    return checkers


__all__ = [
    "CHECKER_REGISTRY",
    "CorpusChecker",
    "CrossSectionDuplicateChecker",
    "CrossStudentDuplicateChecker",
    "DatePatternChecker",
    "DocumentDuplicateChecker",
    "FormatChecker",
    "GrammarChecker",
    "InstitutionNameChecker",
    "KeywordProhibitionChecker",
    "KoreanEnglishChecker",
    "RuleChecker",
    "SemanticReviewChecker",
    "SentenceDuplicateChecker",
    "build_checkers",
]
