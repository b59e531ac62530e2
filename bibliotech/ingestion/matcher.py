"""Best-effort matching of books to curators."""

import logging

from bibliotech.config import MatcherConfig
from bibliotech.errors import StoreError
from bibliotech.models.curator import Curator

logger = logging.getLogger(__name__)

SUBJECT_KEYWORDS: tuple[str, ...] = (
    "computer",
    "programming",
    "software",
    "mathematics",
    "statistics",
    "physics",
    "chemistry",
    "biology",
    "ecology",
    "geology",
    "astronomy",
    "science",
    "engineering",
    "technology",
    "medicine",
    "nursing",
    "psychology",
    "philosophy",
    "religion",
    "theology",
    "history",
    "geography",
    "economics",
    "business",
    "finance",
    "politics",
    "political",
    "sociology",
    "anthropology",
    "education",
    "law",
    "language",
    "linguistics",
    "literature",
    "poetry",
    "writing",
    "music",
    "art",
    "architecture",
    "film",
)


class CuratorMatcher:
    """Scores curators against a book's text and picks the best one.

    Scoring per curator:

    - department appears in the text: ``department_weight``
    - each subject keyword present in both department and text: ``keyword_weight``
    - each name token longer than 3 characters found in the text: ``name_token_weight``
    - department's first word appears in the title: ``title_department_weight``

    The highest score wins if it reaches ``threshold``. On ties the
    curator seen first keeps the match.

    Args:
        config: Weights and cutoff.
        keywords: Subject keyword list.
    """

    def __init__(
        self,
        config: MatcherConfig,
        keywords: tuple[str, ...] = SUBJECT_KEYWORDS,
    ) -> None:
        self._config = config
        self._keywords = keywords

    def score(
        self,
        curator: Curator,
        title: str,
        description: str | None = None,
        subject: str | None = None,
    ) -> int:
        cfg = self._config
        text = f"{title or ''} {description or ''} {subject or ''}".lower()
        department = (curator.department or "").lower().strip()
        score = 0

        if department and department in text:
            score += cfg.department_weight

        for keyword in self._keywords:
            if keyword in department and keyword in text:
                score += cfg.keyword_weight

        for token in (curator.name or "").lower().split():
            if len(token) >= cfg.min_name_token_length and token in text:
                score += cfg.name_token_weight

        if department:
            first_word = department.split()[0]
            if first_word in (title or "").lower():
                score += cfg.title_department_weight

        return score

    def match(
        self,
        curators: list[Curator],
        title: str,
        description: str | None = None,
        subject: str | None = None,
    ) -> str | None:
        """Return the id of the best-scoring curator, or None below threshold."""
        best_id: str | None = None
        best_score = 0
        for curator in curators:
            score = self.score(curator, title, description, subject)
            if score > best_score:
                best_score = score
                best_id = curator.id

        if best_score >= self._config.threshold:
            return best_id
        return None


def load_curators(store, table: str = "faculty", limit: int = 100) -> list[Curator]:
    """Read curators from the store.

    A store failure disables matching for the run instead of aborting it.
    """
    try:
        rows = store.select(table, columns="id,name,department", limit=limit)
    except StoreError as exc:
        logger.warning("Could not load curators from %s, matching disabled: %s", table, exc)
        return []

    curators = [
        Curator(id=str(row["id"]), name=row.get("name") or "", department=row.get("department") or "")
        for row in rows
        if row.get("id") is not None
    ]
    logger.info("Loaded %d curators for matching", len(curators))
    return curators
