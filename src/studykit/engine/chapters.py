"""Page to chapter resolution."""

from typing import Iterable, Optional

from studykit.models import Chapter


def resolve_chapter(page: int, chapters: Iterable[Chapter]) -> Optional[str]:
    """Title of the first chapter whose page range contains `page`.

    Overlapping ranges are not rejected anywhere; the earliest listed
    chapter wins. Returns None when nothing matches.
    """
    for chapter in chapters:
        if chapter.start_page <= page <= chapter.end_page:
            return chapter.title
    return None


def chapter_contains(chapters: Iterable[Chapter], title: str, page: int) -> bool:
    """Check that a chapter named `title` covers `page`."""
    return any(c.title == title and c.contains(page) for c in chapters)
