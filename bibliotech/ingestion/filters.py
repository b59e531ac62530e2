"""Record filter: keeps real catalog entries, drops administrative pages."""

# Lowercased substrings marking namespace, maintenance or navigation pages.
ADMIN_MARKERS: tuple[str, ...] = (
    "category:",
    "template:",
    "help:",
    "user:",
    "file:",
    "wikibooks:",
    "mediawiki:",
    "disambiguation",
    "redirect",
    "stub",
    "book:",
    "module:",
)

MIN_TITLE_LENGTH = 3


def is_catalog_entry(title: str | None) -> bool:
    """Return True if a title looks like a genuine book.

    Total and deterministic: any input, including None, yields a verdict.
    """
    if not isinstance(title, str):
        return False
    if len(title) < MIN_TITLE_LENGTH:
        return False
    lowered = title.lower()
    return not any(marker in lowered for marker in ADMIN_MARKERS)
